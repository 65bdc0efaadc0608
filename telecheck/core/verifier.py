"""Verification of the telemetry a proxy sends to the fake receiver.

The verifier merges every capture source into one tagged event stream,
fed by one pump task per source, and consumes that stream until every
expectation has been observed or a single wall-clock deadline fires.

State machine::

    WAITING --(all expectations observed)--> ALL_SATISFIED
    WAITING --(deadline)-------------------> TIMED_OUT

Arrival order across sources is not controlled; within a source the
FIFO order of the capture channel is preserved.
"""

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone

from .expectations import Expectation, ExpectationSet
from .models import CapturedRequest, ServiceKind, VerificationResult, VerificationState
from .ports import CaptureSourcePort

logger = logging.getLogger(__name__)


class TelemetryVerifier:
    """Waits for and validates the requests captured by the fake receiver.

    One verifier may run many verifications, but only one at a time per
    set of sources: each source has exactly one consumer.
    """

    def __init__(
        self,
        sources: Mapping[ServiceKind, CaptureSourcePort] | Iterable[CaptureSourcePort],
        timeout_seconds: float = 20.0,
        poll_interval_seconds: float = 0.01,
    ):
        """Initialize the verifier.

        Args:
            sources: Capture sources, keyed by kind or as a plain iterable.
            timeout_seconds: Deadline for a whole verification run.
            poll_interval_seconds: Interval between source availability checks.

        Raises:
            ValueError: On non-positive timings or two sources of one kind.
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")

        source_list = list(sources.values()) if isinstance(sources, Mapping) else list(sources)
        self.sources: dict[ServiceKind, CaptureSourcePort] = {}
        for source in source_list:
            if source.kind in self.sources:
                raise ValueError(f"more than one capture source for {source.kind.value}")
            self.sources[source.kind] = source
        self.timeout_seconds = timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self._running = False

    async def _pump(
        self, source: CaptureSourcePort, merged: asyncio.Queue[CapturedRequest]
    ) -> None:
        """Move events from one source into the merged stream until cancelled."""
        while True:
            event = await source.next_event(self.poll_interval_seconds)
            merged.put_nowait(event)

    async def verify(
        self,
        expectations: Sequence[Expectation],
        timeout_seconds: float | None = None,
    ) -> VerificationResult:
        """Wait until every expectation is observed or the deadline fires.

        A failed comparison is recorded and the wait continues, since
        other expectations may still need observing.

        Args:
            expectations: What the run must observe, in priority order.
            timeout_seconds: Override of the configured deadline.

        Returns:
            The VerificationResult in state ALL_SATISFIED or TIMED_OUT.

        Raises:
            ValueError: If an expectation refers to a kind without a source.
            RuntimeError: If a verification is already running.
        """
        expectation_set = ExpectationSet(expectations)
        missing = expectation_set.kinds - self.sources.keys()
        if missing:
            names = sorted(k.value for k in missing)
            raise ValueError(f"no capture source for expected kinds: {names}")
        if self._running:
            raise RuntimeError("a verification is already running on these sources")

        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        if timeout <= 0:
            raise ValueError("timeout_seconds must be positive")

        self._running = True
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + timeout
        merged: asyncio.Queue[CapturedRequest] = asyncio.Queue()
        pumps = [
            asyncio.create_task(self._pump(self.sources[kind], merged))
            for kind in sorted(expectation_set.kinds, key=lambda k: k.value)
        ]
        state = VerificationState.WAITING
        logger.info(
            f"Waiting up to {timeout:.1f}s for {len(expectations)} expectation(s)"
        )

        try:
            while state == VerificationState.WAITING:
                if expectation_set.all_observed():
                    state = VerificationState.ALL_SATISFIED
                    break
                remaining = deadline - loop.time()
                if remaining <= 0:
                    state = VerificationState.TIMED_OUT
                    break
                try:
                    event = await asyncio.wait_for(merged.get(), timeout=remaining)
                except asyncio.TimeoutError:
                    state = VerificationState.TIMED_OUT
                    break
                expectation_set.record(event)
        finally:
            for pump in pumps:
                pump.cancel()
            await asyncio.gather(*pumps, return_exceptions=True)
            self._running = False

        unconsumed: list[CapturedRequest] = []
        while not merged.empty():
            unconsumed.append(merged.get_nowait())

        result = VerificationResult(
            state=state,
            statuses=expectation_set.statuses(),
            mismatches=expectation_set.mismatches(),
            unconsumed=tuple(unconsumed),
            elapsed_seconds=loop.time() - started,
            finished_at=datetime.now(timezone.utc),
            unclassified=len(expectation_set.unclassified),
        )

        if state == VerificationState.TIMED_OUT:
            logger.error(
                "timeout: telemetry receiver did not receive required requests: "
                + result.summary()
            )
        elif result.mismatches:
            logger.error(
                f"All expectations observed with {len(result.mismatches)} mismatch(es)"
            )
        else:
            logger.info(f"All expectations satisfied in {result.elapsed_seconds:.2f}s")
        return result

    async def verify_or_raise(
        self,
        expectations: Sequence[Expectation],
        timeout_seconds: float | None = None,
    ) -> VerificationResult:
        """Run ``verify`` and raise unless the run passed.

        Raises:
            VerificationTimeoutError: If the deadline fired first.
            MismatchError: If any payload differed from its fixture.
        """
        result = await self.verify(expectations, timeout_seconds)
        return result.raise_for_status()
