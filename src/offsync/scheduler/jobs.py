"""
APScheduler jobs for background sync.

Two interval jobs run inside the client process:
  - periodic_sync: asks the orchestrator for a full sync every
    SYNC_INTERVAL_MINUTES (catches changes made on other clients even when
    connectivity never flapped)
  - connectivity_probe: hits the service health endpoint every
    CONNECTIVITY_PROBE_SECONDS and feeds the ConnectivityMonitor; an
    offline→online edge then triggers a sync through SyncTriggers
"""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from offsync.config import get_settings

logger = logging.getLogger(__name__)


def build_scheduler(orchestrator, monitor, gateway) -> AsyncIOScheduler:
    """
    Create and configure the APScheduler.

    Args:
        orchestrator: SyncOrchestrator invoked by the periodic job.
        monitor: ConnectivityMonitor updated by the probe job.
        gateway: RemoteGateway whose health endpoint is probed.

    Returns:
        Configured AsyncIOScheduler (not yet started).
    """
    settings = get_settings()
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        _periodic_sync,
        trigger="interval",
        minutes=settings.sync_interval_minutes,
        id="periodic_sync",
        replace_existing=True,
        kwargs={"orchestrator": orchestrator},
    )
    scheduler.add_job(
        _probe_connectivity,
        trigger="interval",
        seconds=settings.connectivity_probe_seconds,
        id="connectivity_probe",
        replace_existing=True,
        kwargs={"monitor": monitor, "gateway": gateway},
    )

    return scheduler


async def _periodic_sync(orchestrator) -> None:
    """Periodic job. full_sync() self-guards, so overlapping runs are skipped."""
    result = await orchestrator.full_sync()
    if result.skipped:
        logger.debug("Periodic sync skipped (%s)", result.skip_reason)
    elif not result.success:
        logger.warning("Periodic sync failed: %s", result.describe())


async def _probe_connectivity(monitor, gateway) -> None:
    try:
        await monitor.probe(gateway)
    except Exception as exc:
        # Keep the scheduler alive; treat any probe error as unreachable.
        logger.error("Connectivity probe failed: %s", exc)
        monitor.set_online(False)
