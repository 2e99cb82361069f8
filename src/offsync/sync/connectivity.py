"""
ConnectivityMonitor — reachability state and the offline→online edge.

Platform code feeds it with set_online(); the scheduler's probe job feeds it
with probe(gateway). Listeners registered with on_restored() are called
exactly once per offline→online transition, never on repeated online
signals. The monitor only signals; wiring to the orchestrator lives in
offsync.sync.triggers.
"""
import logging
from typing import Callable, List

logger = logging.getLogger(__name__)

RestoredListener = Callable[[], None]


class ConnectivityMonitor:
    def __init__(self, online: bool = True):
        self._online = online
        self._was_offline = not online
        self._listeners: List[RestoredListener] = []

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def was_offline(self) -> bool:
        """True once the monitor has observed at least one offline period."""
        return self._was_offline

    def on_restored(self, listener: RestoredListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        if not online:
            self._was_offline = True
            logger.info("Connection lost")
            return

        logger.info("Connection restored")
        for listener in list(self._listeners):
            listener()

    async def probe(self, gateway) -> bool:
        """Ask the gateway's health endpoint and record the answer."""
        reachable = await gateway.check_health()
        self.set_online(reachable)
        return reachable
