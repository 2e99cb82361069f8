"""
Main entrypoint: runs the sync client (triggers + scheduler) in one process.

The remote items service runs separately under uvicorn.

Usage:
    python -m offsync               # starts the client; syncs on triggers
    python -m offsync sync          # one full sync, then exit
    uvicorn offsync.api.main:app --host 0.0.0.0 --port 8000  # starts the service
"""
import asyncio
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


def _build_engine_parts():
    from offsync.config import get_settings
    from offsync.db.engine import get_engine
    from offsync.remote.gateway import RemoteGateway
    from offsync.replica.store import LocalReplica
    from offsync.sync.connectivity import ConnectivityMonitor
    from offsync.sync.orchestrator import SyncOrchestrator

    settings = get_settings()
    replica = LocalReplica(get_engine())
    gateway = RemoteGateway(
        settings.api_base_url, timeout=settings.request_timeout_seconds
    )
    monitor = ConnectivityMonitor(online=True)
    orchestrator = SyncOrchestrator(
        replica,
        gateway,
        monitor,
        status_clear_seconds=settings.status_clear_seconds,
    )
    return gateway, monitor, orchestrator


async def _run_once() -> int:
    gateway, monitor, orchestrator = _build_engine_parts()
    async with gateway:
        await monitor.probe(gateway)
        result = await orchestrator.full_sync()
    print(result.describe())
    return 0 if result.success else 1


async def _run_client() -> None:
    from offsync.config import get_settings
    from offsync.scheduler.jobs import build_scheduler
    from offsync.sync.triggers import SyncChannel, SyncTriggers

    settings = get_settings()
    gateway, monitor, orchestrator = _build_engine_parts()

    orchestrator.add_listener(lambda o: logger.info("Sync status: %s", o.status))

    triggers = SyncTriggers(orchestrator, monitor)
    triggers.attach()
    channel = SyncChannel()
    triggers.listen(channel)

    scheduler = build_scheduler(orchestrator, monitor, gateway)
    scheduler.start()
    logger.info(
        "Scheduler started (sync every %d min, probe every %d s)",
        settings.sync_interval_minutes,
        settings.connectivity_probe_seconds,
    )

    await monitor.probe(gateway)
    triggers.request_sync("startup")

    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down...")
    finally:
        scheduler.shutdown()
        channel.close()
        await triggers.stop()
        await gateway.aclose()
        logger.info("Goodbye.")


if __name__ == "__main__":
    # Dispatch on first argument: `python -m offsync sync` or just `python -m offsync`
    if len(sys.argv) > 1 and sys.argv[1] == "sync":
        sys.exit(asyncio.run(_run_once()))
    else:
        asyncio.run(_run_client())
