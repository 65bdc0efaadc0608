"""Capture channel connecting service stubs to the verifier.

Many RPC handler threads publish into a channel while a single
verifier consumes from it. Publishing never waits on the consumer:
the buffer is unbounded, so requests are buffered rather than dropped.
"""

import asyncio
import logging
import queue
import threading
import time
from collections import deque
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from .models import CapturedRequest, ServiceKind
from .ports import CaptureSourcePort

logger = logging.getLogger(__name__)


class CaptureChannel(CaptureSourcePort):
    """Unbounded, thread-safe FIFO of captured requests for one RPC method."""

    def __init__(self, kind: ServiceKind, method: str):
        """Initialize an empty channel.

        Args:
            kind: Service kind of the requests carried by this channel.
            method: Name of the captured RPC method (e.g. "CreateTimeSeries").
        """
        self._kind = kind
        self.method = method
        self._items: deque[CapturedRequest] = deque()
        self._not_empty = threading.Condition(threading.Lock())
        self._published = 0

    @property
    def kind(self) -> ServiceKind:
        """The service kind whose requests this channel carries."""
        return self._kind

    @property
    def published(self) -> int:
        """Total number of requests ever published."""
        with self._not_empty:
            return self._published

    @property
    def pending(self) -> int:
        """Number of requests waiting to be consumed."""
        with self._not_empty:
            return len(self._items)

    def __len__(self) -> int:
        return self.pending

    def publish(self, payload: Mapping[str, Any]) -> CapturedRequest:
        """Record a request and make it available to the consumer.

        The sequence number is assigned and the event enqueued under the
        same lock, so sequence order is FIFO order.

        Args:
            payload: Decoded request document.

        Returns:
            The CapturedRequest that was enqueued.
        """
        with self._not_empty:
            self._published += 1
            event = CapturedRequest(
                kind=self._kind,
                method=self.method,
                payload=payload,
                sequence=self._published,
                received_at=datetime.now(timezone.utc),
            )
            self._items.append(event)
            self._not_empty.notify()
        logger.debug(
            f"Captured {self._kind.value} {self.method} request #{event.sequence}"
        )
        return event

    def get_nowait(self) -> CapturedRequest:
        """Remove and return the oldest event.

        Raises:
            queue.Empty: If no event is pending.
        """
        with self._not_empty:
            if not self._items:
                raise queue.Empty
            return self._items.popleft()

    def get(self, timeout: float | None = None) -> CapturedRequest:
        """Block until an event is available, then remove and return it.

        Args:
            timeout: Maximum seconds to wait. None waits forever.

        Raises:
            queue.Empty: If the timeout elapsed with nothing pending.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._not_empty:
            while not self._items:
                if deadline is None:
                    self._not_empty.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise queue.Empty
                self._not_empty.wait(remaining)
            return self._items.popleft()

    def drain(self) -> list[CapturedRequest]:
        """Remove and return every pending event in FIFO order."""
        with self._not_empty:
            items = list(self._items)
            self._items.clear()
            return items

    async def next_event(self, poll_interval: float = 0.01) -> CapturedRequest:
        """Wait for the next event without blocking the event loop.

        The only suspension point is the sleep between checks, so a
        cancelled wait never removes an event.
        """
        while True:
            try:
                return self.get_nowait()
            except queue.Empty:
                await asyncio.sleep(poll_interval)
