"""Outbound signal delivery.

SignalPublisher decouples the analysis passes from downstream sinks through a
bounded asyncio.Queue:

- ``submit`` never blocks. When the queue is full the NEW signal is dropped
  and counted; queued signals are never displaced.
- One worker task delivers each signal once to every sink, in sink order.
  A failing sink is logged and not retried (at-most-once per sink).
- ``stop`` drains whatever is queued before returning.
"""

import asyncio
from typing import Protocol

from screener.logging import get_logger
from screener.models import Signal

logger = get_logger(__name__)


class EventSink(Protocol):
    """Downstream consumer of published signals."""

    async def publish(self, signal: Signal) -> None: ...


class SignalPublisher:
    """Bounded, non-blocking fan-out of signals to event sinks.

    Args:
        sinks: Consumers receiving every delivered signal.
        max_queue_size: Capacity of the pending-signal queue.
    """

    def __init__(self, sinks: list[EventSink], max_queue_size: int = 1000) -> None:
        self._sinks = list(sinks)
        self._queue: asyncio.Queue[Signal] = asyncio.Queue(maxsize=max_queue_size)
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._submitted = 0
        self._delivered = 0
        self._dropped = 0
        self._sink_failures = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def add_sink(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    def submit(self, signal: Signal) -> bool:
        """Queue a signal for delivery. Returns False if it was dropped."""
        try:
            self._queue.put_nowait(signal)
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning(
                "signal_dropped_queue_full",
                signal_id=signal.id,
                symbol=signal.symbol,
                dropped_total=self._dropped,
            )
            return False
        self._submitted += 1
        return True

    async def start(self) -> None:
        if self._task is not None:
            logger.warning("signal_publisher_already_running")
            return
        self._task = asyncio.create_task(self._worker())
        logger.info("signal_publisher_started", sinks=len(self._sinks))

    async def stop(self) -> None:
        """Deliver everything already queued, then stop the worker."""
        if self._task is None:
            return
        await self._queue.join()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("signal_publisher_stopped", **self.stats())

    async def _worker(self) -> None:
        while True:
            signal = await self._queue.get()
            try:
                await self._deliver(signal)
            finally:
                self._queue.task_done()

    async def _deliver(self, signal: Signal) -> None:
        for sink in self._sinks:
            try:
                await sink.publish(signal)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._sink_failures += 1
                logger.warning(
                    "signal_sink_failed",
                    sink=type(sink).__name__,
                    signal_id=signal.id,
                    symbol=signal.symbol,
                    error=str(e),
                )
        self._delivered += 1

    def stats(self) -> dict:
        return {
            "submitted": self._submitted,
            "delivered": self._delivered,
            "dropped": self._dropped,
            "sink_failures": self._sink_failures,
            "queued": self._queue.qsize(),
        }
