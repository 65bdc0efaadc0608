"""Port interfaces for the telecheck verification harness.

These abstract base classes define the boundaries between core
domain logic and external adapters. Implementations live in the
adapters/ package (and in tests/fakes for in-memory doubles).

Port Interface Categories:

1. **Driven Ports** (core reads from adapters)
   - CaptureSourcePort: A FIFO of captured requests of one service kind

2. **Driving Ports** (tests and the composition root call into adapters)
   - ReceiverPort: Lifecycle of the fake telemetry backend
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping

from .models import CapturedRequest, ServiceKind


# ============================================================================
# DRIVEN PORTS (Core reads from adapters)
# ============================================================================


class CaptureSourcePort(ABC):
    """Port for consuming captured requests of a single service kind.

    Implementations must guarantee:
    - FIFO order within the source
    - No event is lost or duplicated
    - ``next_event`` removes an event only when it returns it, so a
      cancelled wait never drops an event
    """

    @property
    @abstractmethod
    def kind(self) -> ServiceKind:
        """The service kind whose requests this source yields."""

    @abstractmethod
    async def next_event(self, poll_interval: float = 0.01) -> CapturedRequest:
        """Wait until an event is available and return it.

        Args:
            poll_interval: Seconds between availability checks for
                implementations that poll a thread-safe buffer.

        Returns:
            The oldest pending CapturedRequest.
        """


# ============================================================================
# DRIVING PORTS (Callers drive the fake backend)
# ============================================================================


class ReceiverPort(ABC):
    """Port for the fake telemetry backend lifecycle.

    The receiver has no verification logic; it only exposes its capture
    sources so a verifier can read from them directly.
    """

    @abstractmethod
    async def start(self) -> Mapping[ServiceKind, CaptureSourcePort]:
        """Bind the listening endpoint and begin serving.

        Returns:
            Capture sources keyed by service kind.

        Raises:
            BindError: If the endpoint cannot be bound.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Release the listener. Safe to call more than once."""
