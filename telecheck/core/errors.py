"""Error taxonomy for the telecheck verification harness.

- BindError: the fake receiver cannot claim its port. Fatal to the run.
- DecodeError: an inbound RPC payload does not parse. Logged by the
  receiver; the call is still acknowledged.
- MismatchError: a captured payload differs from its fixture.
- VerificationTimeoutError: the deadline elapsed with unmet expectations.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import MismatchReport, VerificationResult


class TelecheckError(Exception):
    """Base class for all telecheck errors."""


class BindError(TelecheckError):
    """The fake receiver could not bind its listening endpoint."""

    def __init__(self, host: str, port: int, reason: str):
        self.host = host
        self.port = port
        self.reason = reason
        super().__init__(f"Cannot bind fake receiver to {host}:{port}: {reason}")


class DecodeError(TelecheckError):
    """An inbound RPC payload could not be decoded."""

    def __init__(self, service: str, method: str, reason: str):
        self.service = service
        self.method = method
        self.reason = reason
        super().__init__(f"Cannot decode {service}/{method} request: {reason}")


class MismatchError(TelecheckError):
    """One or more captured payloads differed from their fixtures."""

    def __init__(self, reports: "Sequence[MismatchReport]"):
        self.reports = tuple(reports)
        details = "\n\n".join(str(r) for r in self.reports)
        super().__init__(f"{len(self.reports)} verification mismatch(es):\n{details}")


class VerificationTimeoutError(TelecheckError, TimeoutError):
    """The verification deadline fired before every expectation was observed.

    Carries the full result so callers can inspect per-expectation status.
    """

    def __init__(self, result: "VerificationResult"):
        self.result = result
        super().__init__(
            "timeout: telemetry receiver did not receive required requests: "
            + result.summary()
        )
