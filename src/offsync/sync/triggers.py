"""
Trigger sources that invoke SyncOrchestrator.full_sync().

Three independent callers, none aware of the others:
  - connectivity restored (ConnectivityMonitor.on_restored edge)
  - a cross-context message arriving on a SyncChannel
  - a manual or periodic request (request_sync(); see offsync.scheduler.jobs)

None of them debounce. The orchestrator's guard collapses overlapping
requests into a single run.
"""
import asyncio
import logging
from typing import Any, Dict, Optional, Set

logger = logging.getLogger(__name__)

SYNC_MESSAGE_TYPE = "BACKGROUND_SYNC"


class SyncChannel:
    """
    In-process message channel standing in for a cross-context transport
    (e.g. a background worker posting to the foreground client).

    Producers call post(); SyncTriggers.listen() consumes.
    """

    def __init__(self):
        self._queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()

    def post(self, message: Dict[str, Any]) -> None:
        self._queue.put_nowait(message)

    def request_sync(self, tag: str = "sync-items") -> None:
        """Convenience for producers: post the background-sync message."""
        self.post({"type": SYNC_MESSAGE_TYPE, "tag": tag})

    def close(self) -> None:
        """Stop the listener once queued messages are consumed."""
        self._queue.put_nowait(None)

    async def receive(self) -> Optional[Dict[str, Any]]:
        return await self._queue.get()


class SyncTriggers:
    """Wires trigger sources to one orchestrator instance."""

    def __init__(self, orchestrator, monitor):
        self.orchestrator = orchestrator
        self.monitor = monitor
        self._tasks: Set[asyncio.Task] = set()
        self._unsubscribe = None
        self._listener_task: Optional[asyncio.Task] = None

    def attach(self) -> None:
        """Start syncing on every offline→online edge."""
        if self._unsubscribe is None:
            self._unsubscribe = self.monitor.on_restored(self._on_restored)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def request_sync(self, reason: str = "manual") -> asyncio.Task:
        """Schedule full_sync() on the running loop and return its task."""
        logger.info("Sync requested (%s)", reason)
        task = asyncio.get_running_loop().create_task(self.orchestrator.full_sync())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def listen(self, channel: SyncChannel) -> asyncio.Task:
        """Consume `channel` in a background task until it is closed."""
        self._listener_task = asyncio.get_running_loop().create_task(self._consume(channel))
        return self._listener_task

    async def drain(self) -> None:
        """Wait for every sync this object has scheduled so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def stop(self) -> None:
        self.detach()
        if self._listener_task is not None:
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
            self._listener_task = None
        await self.drain()

    # ─── Internal helpers ─────────────────────────────────────────────────────

    def _on_restored(self) -> None:
        logger.info("Connection restored, auto-syncing...")
        self.request_sync("connectivity restored")

    async def _consume(self, channel: SyncChannel) -> None:
        while True:
            message = await channel.receive()
            if message is None:
                return
            if message.get("type") == SYNC_MESSAGE_TYPE:
                logger.info("Background sync message received")
                self.request_sync("background message")
