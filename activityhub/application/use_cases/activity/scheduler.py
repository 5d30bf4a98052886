"""Interval and signal driven collection cycles."""

from __future__ import annotations

import asyncio
import logging

from anyio import to_thread

from activityhub.domain.errors import ActivityError
from activityhub.infrastructure.pubsub import PubSubTransport

from .collector import ActivityCollector, CollectionResult

logger = logging.getLogger(__name__)

COLLECT_CHANNEL = "activity:collect"
COLLECT_MESSAGE = "collect"


class CollectionScheduler:
    """Run collection cycles every ``polling_frequency`` ms or when signalled.

    A ``polling_frequency`` of zero or less disables the interval; cycles then
    only run when a message arrives on :data:`COLLECT_CHANNEL`.
    """

    def __init__(
        self,
        collector: ActivityCollector,
        transport: PubSubTransport,
        *,
        polling_frequency: int,
    ) -> None:
        self._collector = collector
        self._transport = transport
        self._polling_frequency = polling_frequency
        self._loop: asyncio.AbstractEventLoop | None = None
        self._trigger: asyncio.Event | None = None
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Subscribe to collection signals and start the background task."""

        if self._running:
            return
        self._loop = asyncio.get_running_loop()
        self._trigger = asyncio.Event()
        self._transport.subscribe(COLLECT_CHANNEL, self._on_signal)
        self._running = True
        self._task = self._loop.create_task(self.run_forever())
        if self._polling_frequency > 0:
            logger.info("Collecting activities every %d ms", self._polling_frequency)
        else:
            logger.info("Automatic activity collection disabled")

    async def stop(self) -> None:
        self._running = False
        if self._trigger is not None:
            self._trigger.set()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def request_collection(self) -> None:
        """Ask every node of the cluster to run a collection cycle."""

        self._transport.publish(COLLECT_CHANNEL, COLLECT_MESSAGE)

    def _on_signal(self, channel: str, message: str) -> None:
        if message != COLLECT_MESSAGE or self._loop is None or self._trigger is None:
            return
        self._loop.call_soon_threadsafe(self._trigger.set)

    async def run_forever(self) -> None:
        if self._trigger is None:
            raise RuntimeError("scheduler not started")
        timeout = self._polling_frequency / 1000 if self._polling_frequency > 0 else None
        while self._running:
            try:
                await asyncio.wait_for(self._trigger.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                pass
            self._trigger.clear()
            if not self._running:
                break
            await self.run_once()

    async def run_once(self) -> CollectionResult | None:
        """Run one cycle in a worker thread; errors are logged and retried next cycle."""

        try:
            return await to_thread.run_sync(self._collector.collect)
        except ActivityError as exc:
            logger.error("Collection cycle failed: %s", exc)
        except Exception:
            logger.exception("Unexpected error during collection cycle")
        return None


__all__ = ["COLLECT_CHANNEL", "COLLECT_MESSAGE", "CollectionScheduler"]
