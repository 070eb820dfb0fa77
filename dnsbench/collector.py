"""
Sample collection for concurrent probe workers.

``SampleCollector`` gathers samples written by many workers under a lock.
``LogChannel`` forwards the same samples to a single consumer so live
output from concurrent workers is emitted one line at a time.
"""

import asyncio
import logging
import threading
from typing import Callable, Optional

from .models import Sample

logger = logging.getLogger(__name__)

# Receives every sample from the log channel consumer, one at a time
LogSink = Callable[[Sample], None]

_CLOSED = object()


class SampleCollector:
    """
    Thread-safe, append-only store of samples for one phase.

    Samples are read with :meth:`snapshot` once every producer is done.
    """

    def __init__(self, expected: int = 0):
        self.expected = expected
        self._samples: list[Sample] = []
        self._lock = threading.Lock()
        self._active = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def append(self, sample: Sample) -> None:
        """Store one sample. Safe to call from any thread or task."""
        with self._lock:
            self._samples.append(sample)

    def producer_started(self) -> None:
        with self._lock:
            self._active += 1

    def producer_finished(self) -> None:
        with self._lock:
            if self._active == 0:
                raise RuntimeError("producer_finished() without producer_started()")
            self._active -= 1

    def snapshot(self) -> tuple[Sample, ...]:
        """
        Return every sample collected so far, in arrival order.

        Raises:
            RuntimeError: If a producer is still writing
        """
        with self._lock:
            if self._active:
                raise RuntimeError(
                    f"snapshot() called with {self._active} active producer(s)"
                )
            return tuple(self._samples)


class LogChannel:
    """
    Single-consumer queue that feeds samples to a log sink.

    Workers :meth:`publish`; the coordinator calls :meth:`close` exactly
    once after all workers have finished, then awaits :meth:`join`.
    """

    def __init__(self, sink: Optional[LogSink] = None):
        self.sink = sink
        self._queue: asyncio.Queue = asyncio.Queue()
        self._consumer: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start the consumer task on the running event loop."""
        if self._consumer is None:
            self._consumer = asyncio.ensure_future(self._consume())

    def publish(self, sample: Sample) -> None:
        if self._closed:
            raise RuntimeError("publish() on a closed log channel")
        self._queue.put_nowait(sample)

    def close(self) -> None:
        if self._closed:
            raise RuntimeError("log channel already closed")
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def join(self) -> None:
        """Wait for the consumer to drain every published sample."""
        if self._consumer is not None:
            await self._consumer

    async def _consume(self) -> None:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            if self.sink is None:
                continue
            try:
                self.sink(item)
            except Exception:
                logger.exception("Log sink failed for %s", item.server_address)
