"""
Tests for the background job scheduler registry.
"""

from unittest.mock import AsyncMock

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from apply4me.core import scheduler


@pytest.fixture(autouse=True)
async def _clean_scheduler():
    scheduler.clear_registry()
    yield
    await scheduler.stop_scheduler()
    scheduler.clear_registry()


class TestRegistry:
    @pytest.mark.asyncio
    async def test_register_without_running_scheduler(self):
        job = AsyncMock()

        scheduler.register_job("nightly", job, IntervalTrigger(minutes=5))

        assert scheduler.get_scheduler() is None
        assert scheduler.list_registered_jobs() == [{"job_id": "nightly", "registered": True}]

    @pytest.mark.asyncio
    async def test_pause_and_resume_without_scheduler(self):
        assert scheduler.pause_job("nightly") is False
        assert scheduler.resume_job("nightly") is False


class TestTriggerJobManually:
    @pytest.mark.asyncio
    async def test_success_returns_job_result(self):
        job = AsyncMock(return_value={"dispatched": 2})
        scheduler.register_job("dispatch", job, IntervalTrigger(minutes=1))

        outcome = await scheduler.trigger_job_manually("dispatch")

        assert outcome["status"] == "success"
        assert outcome["result"] == {"dispatched": 2}
        job.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_is_reported(self):
        job = AsyncMock(side_effect=RuntimeError("database down"))
        scheduler.register_job("dispatch", job, IntervalTrigger(minutes=1))

        outcome = await scheduler.trigger_job_manually("dispatch")

        assert outcome["status"] == "error"
        assert outcome["error"] == "database down"

    @pytest.mark.asyncio
    async def test_unknown_job(self):
        with pytest.raises(ValueError, match="not found in registry"):
            await scheduler.trigger_job_manually("missing")


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_adds_registered_jobs(self):
        scheduler.register_job("dispatch", AsyncMock(), IntervalTrigger(minutes=1))

        instance = await scheduler.start_scheduler()

        assert instance.running
        assert instance.get_job("dispatch") is not None
        jobs = scheduler.list_registered_jobs()
        assert jobs[0]["is_paused"] is False

        assert scheduler.pause_job("dispatch") is True
        assert scheduler.list_registered_jobs()[0]["is_paused"] is True
        assert scheduler.resume_job("dispatch") is True

    @pytest.mark.asyncio
    async def test_register_after_start_schedules_immediately(self):
        instance = await scheduler.start_scheduler()

        scheduler.register_job("late", AsyncMock(), IntervalTrigger(minutes=1))

        assert instance.get_job("late") is not None

    @pytest.mark.asyncio
    async def test_stop_clears_instance(self):
        await scheduler.start_scheduler()
        await scheduler.stop_scheduler()

        assert scheduler.get_scheduler() is None

    @pytest.mark.asyncio
    async def test_restart_after_stop(self):
        scheduler.register_job("dispatch", AsyncMock(), IntervalTrigger(minutes=1))

        await scheduler.start_scheduler()
        await scheduler.stop_scheduler()
        restarted = await scheduler.start_scheduler()

        assert restarted.running
        assert restarted.get_job("dispatch") is not None
