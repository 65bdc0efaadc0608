"""Expectations a verification run must observe.

An expectation pairs a discriminator (``claims``), which decides whether
a captured payload belongs to it, with a ``check`` that compares the
payload to a fixture. Several expectations may share one service kind;
metrics, for example, are split into client-side and server-side
request counts by inspecting the metric type inside the payload.
"""

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .comparator import compare_messages, render_message
from .models import (
    CapturedRequest,
    ExpectationStatus,
    Fixture,
    MismatchReport,
    ServiceKind,
)

logger = logging.getLogger(__name__)

Payload = Mapping[str, Any]

TIME_SERIES_VOLATILE_FIELDS = ("points.interval",)
LOG_ENTRIES_VOLATILE_FIELDS = ("entries.timestamp",)
TRAFFIC_ASSERTIONS_VOLATILE_FIELDS = ("**.timestamp",)


def _claims_everything(payload: Payload) -> bool:
    return True


@dataclass(frozen=True)
class Expectation:
    """A named condition a verification run must observe.

    Attributes:
        name: Label used in diagnostics (e.g. "client metrics").
        kind: Service kind whose events may satisfy this expectation.
        check: Returns None when the payload is valid, otherwise a report.
        claims: Discriminator deciding whether a payload of ``kind``
            belongs to this expectation.
    """

    name: str
    kind: ServiceKind
    check: Callable[[Payload], MismatchReport | None]
    claims: Callable[[Payload], bool] = _claims_everything

    def __post_init__(self) -> None:
        """Validate expectation invariants on creation."""
        if not self.name or not self.name.strip():
            raise ValueError("name must be a non-empty string")


def _metric_type(series: Payload) -> str | None:
    metric = series.get("metric") or {}
    return metric.get("type")


def time_series_expectation(
    name: str,
    fixture: Fixture,
    ignore: Iterable[str] = TIME_SERIES_VOLATILE_FIELDS,
) -> Expectation:
    """Expect a CreateTimeSeries request carrying the fixture's time series.

    The expectation claims a request if any of its time series has the
    fixture's metric type, and compares the first such series.

    Args:
        name: Expectation label.
        fixture: Expected TimeSeries message.
        ignore: Volatile fields masked before comparing.
    """
    metric_type = _metric_type(fixture.message)
    if not metric_type:
        raise ValueError(f"fixture {fixture.name!r} has no metric.type")
    ignore = tuple(ignore)

    def claims(payload: Payload) -> bool:
        return any(_metric_type(ts) == metric_type for ts in payload.get("timeSeries", ()))

    def check(payload: Payload) -> MismatchReport | None:
        for series in payload.get("timeSeries", ()):
            if _metric_type(series) == metric_type:
                return compare_messages(
                    series,
                    fixture.message,
                    ignore=ignore,
                    expectation=name,
                    summary=f"{name} timeseries is not expected",
                )
        return MismatchReport(
            expectation=name,
            summary=f"cannot find {metric_type} in create time series request",
            actual=render_message(payload),
            expected=render_message(fixture.message),
        )

    return Expectation(name=name, kind=ServiceKind.METRICS, check=check, claims=claims)


def log_entries_expectation(
    name: str,
    fixture: Fixture,
    ignore: Iterable[str] = LOG_ENTRIES_VOLATILE_FIELDS,
) -> Expectation:
    """Expect a WriteLogEntries request equal to the fixture."""
    ignore = tuple(ignore)

    def check(payload: Payload) -> MismatchReport | None:
        return compare_messages(
            payload,
            fixture.message,
            ignore=ignore,
            expectation=name,
            summary="log entries are not expected",
        )

    return Expectation(name=name, kind=ServiceKind.LOGGING, check=check)


def traffic_assertions_expectation(
    name: str,
    fixture: Fixture,
    ignore: Iterable[str] = TRAFFIC_ASSERTIONS_VOLATILE_FIELDS,
) -> Expectation:
    """Expect a ReportTrafficAssertions request equal to the fixture."""
    ignore = tuple(ignore)

    def check(payload: Payload) -> MismatchReport | None:
        return compare_messages(
            payload,
            fixture.message,
            ignore=ignore,
            expectation=name,
            summary="traffic assertions are not expected",
        )

    return Expectation(name=name, kind=ServiceKind.EDGES, check=check)


@dataclass
class _Tracker:
    """Mutable per-run state of one expectation."""

    expectation: Expectation
    observations: int = 0
    matched: bool = False
    mismatches: list[MismatchReport] = field(default_factory=list)

    @property
    def observed(self) -> bool:
        return self.observations > 0

    def snapshot(self) -> ExpectationStatus:
        return ExpectationStatus(
            name=self.expectation.name,
            kind=self.expectation.kind,
            observed=self.observed,
            matched=self.matched,
            observations=self.observations,
            mismatches=tuple(self.mismatches),
        )


class ExpectationSet:
    """Per-run bookkeeping of which expectations have been observed.

    Created once per verification run and mutated only by the verifier.
    """

    def __init__(self, expectations: Sequence[Expectation]):
        """Initialize every expectation as unobserved.

        Raises:
            ValueError: If two expectations share a name.
        """
        names = [e.name for e in expectations]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate expectation names: {duplicates}")
        self._trackers = [_Tracker(e) for e in expectations]
        self.unclassified: list[MismatchReport] = []

    @property
    def kinds(self) -> set[ServiceKind]:
        """Service kinds referenced by at least one expectation."""
        return {t.expectation.kind for t in self._trackers}

    def all_observed(self) -> bool:
        return all(t.observed for t in self._trackers)

    def _classify(self, event: CapturedRequest) -> _Tracker | None:
        claiming = [
            t
            for t in self._trackers
            if t.expectation.kind == event.kind and t.expectation.claims(event.payload)
        ]
        for tracker in claiming:
            if not tracker.observed:
                return tracker
        return claiming[0] if claiming else None

    def record(self, event: CapturedRequest) -> MismatchReport | None:
        """Classify an event, check it, and update the matching expectation.

        A failed check is recorded but still marks the expectation as
        observed. An event no expectation claims satisfies nothing and is
        recorded as an unclassified mismatch.

        Returns:
            The mismatch report produced for this event, if any.
        """
        tracker = self._classify(event)
        if tracker is None:
            candidates = [
                t.expectation.name for t in self._trackers if t.expectation.kind == event.kind
            ]
            report = MismatchReport(
                expectation=None,
                summary=(
                    f"{event.method} request #{event.sequence} matches none of "
                    f"{candidates}"
                ),
                actual=render_message(event.payload),
                expected="one of " + ", ".join(candidates),
            )
            self.unclassified.append(report)
            logger.warning(f"Unclassified {event.kind.value} event #{event.sequence}")
            return report

        name = tracker.expectation.name
        try:
            report = tracker.expectation.check(event.payload)
        except Exception as e:
            logger.error(f"Check for {name} raised: {e}", exc_info=True)
            report = MismatchReport(
                expectation=name,
                summary=f"{name} check raised {type(e).__name__}: {e}",
                actual=render_message(event.payload),
                expected="",
            )
        tracker.observations += 1
        if report is None:
            tracker.matched = True
            logger.info(f"Expectation {name} satisfied by {event.method} #{event.sequence}")
        else:
            tracker.mismatches.append(report)
            logger.error(f"{event.method} verification failed for {name}: {report.summary}")
        return report

    def statuses(self) -> tuple[ExpectationStatus, ...]:
        return tuple(t.snapshot() for t in self._trackers)

    def mismatches(self) -> tuple[MismatchReport, ...]:
        """Every report recorded so far, per expectation then unclassified."""
        reports = [r for t in self._trackers for r in t.mismatches]
        return tuple(reports + self.unclassified)
