"""Domain models for the telecheck verification harness.

All models in this module use only Python standard library types,
ensuring zero external dependencies in the core domain.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from .errors import MismatchError, VerificationTimeoutError


class ServiceKind(Enum):
    """The three telemetry ingestion contracts the fake receiver serves."""

    METRICS = "metrics"
    LOGGING = "logging"
    EDGES = "edges"


def freeze(value: Any) -> Any:
    """Return a deep read-only copy of a decoded JSON value.

    Dicts become ``MappingProxyType`` and lists become tuples so that a
    captured payload cannot be mutated after capture.
    """
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Return a plain, mutable dict/list copy of a frozen JSON value."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class CapturedRequest:
    """A single RPC request recorded by a service stub.

    The payload is the JSON document exactly as the proxy sent it,
    converted to a read-only structure in __post_init__.
    """

    kind: ServiceKind
    method: str  # e.g. "CreateTimeSeries"
    payload: Mapping[str, Any]
    sequence: int  # receipt order within the capturing channel
    received_at: datetime

    def __post_init__(self) -> None:
        """Freeze the payload and validate the sequence number."""
        if self.sequence < 1:
            raise ValueError(f"sequence must be >= 1, got {self.sequence}")
        if not isinstance(self.payload, MappingProxyType):
            object.__setattr__(self, "payload", freeze(self.payload))


@dataclass(frozen=True)
class Fixture:
    """An expected wire-format message used as a comparison baseline."""

    name: str
    message: Mapping[str, Any]

    def __post_init__(self) -> None:
        """Freeze the message so fixtures can be shared between runs."""
        if not self.name or not self.name.strip():
            raise ValueError("name must be a non-empty string")
        if not isinstance(self.message, MappingProxyType):
            object.__setattr__(self, "message", freeze(self.message))


@dataclass(frozen=True)
class MismatchReport:
    """Describes why a captured payload differs from its fixture.

    Both renderings are kept so the failure can be read without
    re-running the test.
    """

    expectation: str | None  # None for events no expectation claimed
    summary: str
    actual: str
    expected: str
    diff: tuple[str, ...] = ()

    def __str__(self) -> str:
        lines = [f"{self.summary}, got {self.actual} \nwant {self.expected}"]
        if self.diff:
            lines.append("diff:")
            lines.extend(self.diff)
        return "\n".join(lines)


class VerificationState(Enum):
    """States of a verification run.

    WAITING is the only non-terminal state. ALL_SATISFIED is reached when
    every expectation has been observed, TIMED_OUT when the deadline
    fires first.
    """

    WAITING = "waiting"
    ALL_SATISFIED = "all_satisfied"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ExpectationStatus:
    """Snapshot of one expectation at the end of a run."""

    name: str
    kind: ServiceKind
    observed: bool
    matched: bool
    observations: int
    mismatches: tuple[MismatchReport, ...] = ()


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a single verification run."""

    state: VerificationState
    statuses: tuple[ExpectationStatus, ...]
    mismatches: tuple[MismatchReport, ...]
    unconsumed: tuple[CapturedRequest, ...] = ()
    elapsed_seconds: float = 0.0
    finished_at: datetime | None = None
    unclassified: int = 0

    def __post_init__(self) -> None:
        """Validate that a finished run is in a terminal state."""
        if self.state == VerificationState.WAITING:
            raise ValueError("a verification result must be in a terminal state")

    @property
    def passed(self) -> bool:
        """True when every expectation was observed and nothing mismatched."""
        return self.state == VerificationState.ALL_SATISFIED and not self.mismatches

    def status(self, name: str) -> ExpectationStatus:
        """Return the status of the named expectation.

        Raises:
            KeyError: If no expectation has that name.
        """
        for status in self.statuses:
            if status.name == name:
                return status
        raise KeyError(f"Unknown expectation: {name}")

    def unmet(self) -> list[str]:
        """Names of expectations that were never observed."""
        return [s.name for s in self.statuses if not s.observed]

    def summary(self) -> str:
        """One-line observed flags, e.g. ``logs: true, edges: false``."""
        return ", ".join(
            f"{s.name}: {str(s.observed).lower()}" for s in self.statuses
        )

    def describe(self) -> str:
        """Multi-line diagnostic covering every expectation and mismatch."""
        lines = [
            f"verification {self.state.value} after {self.elapsed_seconds:.2f}s",
        ]
        for s in self.statuses:
            lines.append(
                f"  {s.name} [{s.kind.value}]: observed={str(s.observed).lower()} "
                f"matched={str(s.matched).lower()} events={s.observations}"
            )
        if self.unclassified:
            lines.append(f"  unclassified events: {self.unclassified}")
        if self.unconsumed:
            lines.append(f"  unconsumed events: {len(self.unconsumed)}")
        for report in self.mismatches:
            lines.append("")
            lines.append(str(report))
        return "\n".join(lines)

    def raise_for_status(self) -> "VerificationResult":
        """Raise the error matching this outcome, or return self if passed.

        Raises:
            VerificationTimeoutError: If the deadline fired first.
            MismatchError: If any captured payload differed from its fixture.
        """
        if self.state == VerificationState.TIMED_OUT:
            raise VerificationTimeoutError(self)
        if self.mismatches:
            raise MismatchError(self.mismatches)
        return self
