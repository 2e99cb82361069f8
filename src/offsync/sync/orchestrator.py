"""
SyncOrchestrator — reconciles the LocalReplica with the remote store.

Flow for one full_sync() call:
  1. Guard: skip if offline or if a run is already executing on this instance
  2. Enter "syncing", open a SyncLog row
  3. Push: upload every dirty record in one batch upsert; on acceptance mark
     exactly the submitted ids synced
  4. Pull (regardless of push outcome): fetch records changed since
     last_sync_time and apply each one that is new locally or strictly newer
     than the local copy (last-write-wins on updated_at)
  5. Advance last_sync_time to the server-reported time, close the SyncLog,
     return to "idle"; the final status text stays visible for
     status_clear_seconds

The guard is a plain instance attribute tested and set before the first
await, so on a single event loop two overlapping calls produce exactly one
run. Rejected calls are not queued.

No exception escapes full_sync(): phase failures are captured in the
returned SyncResult. There are no retries inside a call; the next trigger is
the retry.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from offsync.errors import AlreadyInProgress, OffsyncError
from offsync.models.record import utcnow
from offsync.models.wire import RecordWire
from offsync.remote.normalizer import wire_to_record

logger = logging.getLogger(__name__)

STATUS_IDLE = "idle"
STATUS_SYNCING = "Syncing..."
STATUS_UP_TO_DATE = "Already up to date"
STATUS_FAILED = "Sync failed. Will retry."

SKIP_OFFLINE = "offline"
SKIP_IN_PROGRESS = "in_progress"


class SyncState(str, enum.Enum):
    IDLE = "idle"
    SYNCING = "syncing"


@dataclass
class PhaseResult:
    success: bool
    count: int = 0
    error: Optional[str] = None


@dataclass
class SyncResult:
    """Outcome of one full_sync() call: "success", "failed" or "skipped"."""

    outcome: str
    uploaded: int = 0
    downloaded: int = 0
    push: Optional[PhaseResult] = None
    pull: Optional[PhaseResult] = None
    skip_reason: Optional[str] = None
    error: Optional[OffsyncError] = None

    @property
    def success(self) -> bool:
        return self.outcome == "success"

    @property
    def skipped(self) -> bool:
        return self.outcome == "skipped"

    @classmethod
    def skip(cls, reason: str, error: Optional[OffsyncError] = None) -> "SyncResult":
        return cls(outcome="skipped", skip_reason=reason, error=error)

    def describe(self) -> str:
        """Human-readable status line for this result."""
        if self.skipped:
            return f"Sync skipped ({self.skip_reason})"
        if not self.success:
            return STATUS_FAILED
        if self.uploaded or self.downloaded:
            return f"Sync complete: {self.uploaded} uploaded, {self.downloaded} downloaded"
        return STATUS_UP_TO_DATE


Listener = Callable[["SyncOrchestrator"], None]


class SyncOrchestrator:
    """Push-then-pull sync engine with an instance-local concurrency guard."""

    def __init__(
        self,
        replica,
        gateway,
        monitor,
        *,
        status_clear_seconds: float = 3.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            replica: LocalReplica.
            gateway: RemoteGateway (or AsyncMock in tests).
            monitor: ConnectivityMonitor; its is_online gates every run.
            status_clear_seconds: How long the final status text stays
                visible before resetting to "idle".
            clock: Source of "now" for mark_synced (tests pin it).
        """
        self.replica = replica
        self.gateway = gateway
        self.monitor = monitor
        self.status_clear_seconds = status_clear_seconds
        self._clock = clock

        self._state = SyncState.IDLE
        self._status = STATUS_IDLE
        self._last_success_at: Optional[datetime] = None
        self._clear_handle: Optional[asyncio.TimerHandle] = None
        self._listeners: List[Listener] = []

    # ─── Observable state ─────────────────────────────────────────────────────

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_syncing(self) -> bool:
        return self._state is SyncState.SYNCING

    @property
    def is_online(self) -> bool:
        return self.monitor.is_online

    @property
    def status(self) -> str:
        return self._status

    @property
    def last_success_at(self) -> Optional[datetime]:
        """Client time of the last fully successful run."""
        return self._last_success_at

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(self)` on every state or status change."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ─── Entry point ──────────────────────────────────────────────────────────

    async def full_sync(self) -> SyncResult:
        if not self.monitor.is_online:
            logger.debug("Sync skipped: offline")
            return SyncResult.skip(SKIP_OFFLINE)
        if self._state is SyncState.SYNCING:
            logger.debug("Sync skipped: already in progress")
            return SyncResult.skip(SKIP_IN_PROGRESS, AlreadyInProgress("Sync already in progress"))

        self._state = SyncState.SYNCING
        try:
            self._cancel_status_clear()
            self._set_status(STATUS_SYNCING)
            logger.info("Starting full sync")
            result = await self._run()
        except Exception as exc:
            # Only reachable if the audit log itself fails; phases and listeners never raise.
            logger.exception("Sync aborted")
            result = SyncResult(outcome="failed", error=OffsyncError(str(exc)))
        finally:
            self._state = SyncState.IDLE

        if result.success:
            self._last_success_at = self._clock()
        logger.info(
            "Sync %s: %d uploaded, %d downloaded",
            result.outcome, result.uploaded, result.downloaded,
        )
        self._set_status(result.describe())
        self._schedule_status_clear()
        return result

    # ─── Phases ───────────────────────────────────────────────────────────────

    async def _run(self) -> SyncResult:
        log = self.replica.start_sync_log()

        push = await self._push()
        pull = await self._pull()

        ok = push.success and pull.success
        result = SyncResult(
            outcome="success" if ok else "failed",
            uploaded=push.count,
            downloaded=pull.count,
            push=push,
            pull=pull,
        )
        errors = [p.error for p in (push, pull) if p.error]
        self.replica.finish_sync_log(
            log,
            status=result.outcome,
            uploaded=push.count,
            downloaded=pull.count,
            error_message="; ".join(errors) or None,
        )
        return result

    async def _push(self) -> PhaseResult:
        try:
            dirty = self.replica.list_dirty()
            if not dirty:
                return PhaseResult(success=True)

            logger.info("Pushing %d dirty record(s)", len(dirty))
            accepted = await self.gateway.batch_upsert(dirty)
            self.replica.mark_synced([r.id for r in dirty], self._clock())
            return PhaseResult(success=True, count=accepted)

        except OffsyncError as exc:
            logger.warning("Push failed, records stay dirty: %s", exc)
            return PhaseResult(success=False, error=f"push: {exc}")
        except Exception as exc:
            logger.exception("Push failed unexpectedly")
            return PhaseResult(success=False, error=f"push: {exc}")

    async def _pull(self) -> PhaseResult:
        try:
            since = self.replica.read_metadata()
            delta = await self.gateway.fetch_since(since)

            applied = sum(1 for remote in delta.records if self._apply_remote(remote))

            if delta.server_time is not None:
                self.replica.write_metadata(delta.server_time)
            else:
                logger.warning("Server omitted its timestamp; last_sync_time unchanged")
            return PhaseResult(success=True, count=applied)

        except OffsyncError as exc:
            logger.warning("Pull failed: %s", exc)
            return PhaseResult(success=False, error=f"pull: {exc}")
        except Exception as exc:
            logger.exception("Pull failed unexpectedly")
            return PhaseResult(success=False, error=f"pull: {exc}")

    def _apply_remote(self, remote: RecordWire) -> bool:
        """Last-write-wins: overwrite only if absent locally or strictly newer."""
        local = self.replica.get(remote.id)
        if local is not None and remote.updated_at <= local.updated_at:
            return False
        # A dirty local edit older than the remote value is lost here.
        self.replica.upsert_local(wire_to_record(remote, synced=True))
        return True

    # ─── Status helpers ───────────────────────────────────────────────────────

    def _set_status(self, status: str) -> None:
        self._status = status
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Status listener %r failed", listener)

    def _schedule_status_clear(self) -> None:
        loop = asyncio.get_running_loop()
        self._clear_handle = loop.call_later(
            self.status_clear_seconds, self._set_status, STATUS_IDLE
        )

    def _cancel_status_clear(self) -> None:
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None
