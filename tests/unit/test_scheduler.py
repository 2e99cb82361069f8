"""Tests for APScheduler job configuration and job bodies."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from offsync.scheduler.jobs import _periodic_sync, _probe_connectivity, build_scheduler
from offsync.sync.connectivity import ConnectivityMonitor
from offsync.sync.orchestrator import SyncResult


def build():
    return build_scheduler(MagicMock(), MagicMock(), MagicMock())


class TestBuildScheduler:
    def test_returns_scheduler(self):
        assert isinstance(build(), AsyncIOScheduler)

    def test_jobs_registered(self):
        job_ids = {job.id for job in build().get_jobs()}
        assert job_ids == {"periodic_sync", "connectivity_probe"}

    def test_jobs_are_interval(self):
        for job in build().get_jobs():
            assert job.trigger.__class__.__name__ == "IntervalTrigger"

    def test_intervals_from_settings(self):
        with patch("offsync.scheduler.jobs.get_settings") as mock_settings:
            mock_settings.return_value.sync_interval_minutes = 15
            mock_settings.return_value.connectivity_probe_seconds = 45
            scheduler = build()

        jobs = {j.id: j for j in scheduler.get_jobs()}
        assert jobs["periodic_sync"].trigger.interval.total_seconds() == 15 * 60
        assert jobs["connectivity_probe"].trigger.interval.total_seconds() == 45

    def test_scheduler_not_running_on_creation(self):
        assert not build().running


class TestPeriodicSyncJob:
    @pytest.mark.asyncio
    async def test_calls_full_sync(self):
        orchestrator = MagicMock()
        orchestrator.full_sync = AsyncMock(return_value=SyncResult(outcome="success"))
        await _periodic_sync(orchestrator=orchestrator)
        orchestrator.full_sync.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_skipped_and_failed_results_do_not_raise(self):
        orchestrator = MagicMock()
        orchestrator.full_sync = AsyncMock(return_value=SyncResult.skip("offline"))
        await _periodic_sync(orchestrator=orchestrator)
        orchestrator.full_sync = AsyncMock(return_value=SyncResult(outcome="failed"))
        await _periodic_sync(orchestrator=orchestrator)


class TestProbeJob:
    @pytest.mark.asyncio
    async def test_probe_feeds_monitor(self):
        monitor = ConnectivityMonitor(online=False)
        gateway = MagicMock()
        gateway.check_health = AsyncMock(return_value=True)
        await _probe_connectivity(monitor=monitor, gateway=gateway)
        assert monitor.is_online is True

    @pytest.mark.asyncio
    async def test_probe_exception_marks_offline(self):
        monitor = ConnectivityMonitor(online=True)
        gateway = MagicMock()
        gateway.check_health = AsyncMock(side_effect=RuntimeError("loop closed"))
        # Should not raise
        await _probe_connectivity(monitor=monitor, gateway=gateway)
        assert monitor.is_online is False
