"""
TIPSTREAM - Scheduler Unit Tests
Job registration and failure isolation
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from tipstream.services.matches.match_store import MatchCacheStore
from tipstream.services.matches.source_registry import SourceRegistry
from tipstream.services.scheduling.scheduler_service import (
    GENERATE_JOB_ID,
    REFRESH_JOB_ID,
    JobStatus,
    SchedulerService,
)
from tipstream.services.scrapers.base_scraper import ScrapeResult, ScrapeStatus

pytestmark = pytest.mark.unit


@pytest.fixture
def enabled_settings(test_settings):
    return test_settings.model_copy(update={"SCHEDULER_ENABLED": True})


class TestSchedulerService:
    """Test the recurring pipeline jobs."""

    @pytest.mark.asyncio
    async def test_registers_default_jobs(self, enabled_settings):
        scheduler = SchedulerService(AsyncMock(), AsyncMock(), settings=enabled_settings)
        await scheduler.initialize()

        job_ids = [job["job_id"] for job in scheduler.get_jobs()]
        assert job_ids == [REFRESH_JOB_ID, GENERATE_JOB_ID]
        assert scheduler.get_job(GENERATE_JOB_ID)["trigger_args"] == {"crontab": "0 12,18 * * *"}
        assert scheduler.get_job(REFRESH_JOB_ID)["trigger_args"] == {"seconds": 7200}
        assert scheduler._scheduler.get_job(f"{REFRESH_JOB_ID}_startup") is not None
        assert scheduler._scheduler.get_job(f"{GENERATE_JOB_ID}_startup") is not None

    @pytest.mark.asyncio
    async def test_disabled_scheduler_does_nothing(self, test_settings):
        scheduler = SchedulerService(AsyncMock(), AsyncMock(), settings=test_settings)
        await scheduler.initialize()
        await scheduler.start()

        assert scheduler.get_status()["running"] is False
        assert scheduler.get_jobs() == []

    @pytest.mark.asyncio
    async def test_failed_job_is_recorded_not_raised(self, enabled_settings):
        refresh = AsyncMock(side_effect=RuntimeError("chrome crashed"))
        scheduler = SchedulerService(refresh, AsyncMock(), settings=enabled_settings)
        await scheduler.initialize()

        await scheduler.run_tracked(REFRESH_JOB_ID)

        job = scheduler.get_job(REFRESH_JOB_ID)
        assert job["last_status"] == JobStatus.FAILED.value
        assert job["error_count"] == 1
        assert job["last_error"] == "chrome crashed"

    @pytest.mark.asyncio
    async def test_successful_job_is_counted(self, enabled_settings):
        generate = AsyncMock()
        scheduler = SchedulerService(AsyncMock(), generate, settings=enabled_settings)
        await scheduler.initialize()

        await scheduler.run_tracked(GENERATE_JOB_ID)
        await scheduler.run_tracked(GENERATE_JOB_ID)

        job = scheduler.get_job(GENERATE_JOB_ID)
        assert job["run_count"] == 2
        assert job["last_status"] == JobStatus.COMPLETED.value
        assert generate.await_count == 2

    @pytest.mark.asyncio
    async def test_start_and_stop(self, enabled_settings):
        scheduler = SchedulerService(AsyncMock(), AsyncMock(), settings=enabled_settings)
        await scheduler.initialize()
        await scheduler.start()
        assert scheduler.get_status()["running"] is True
        assert scheduler.get_job(REFRESH_JOB_ID)["next_run"] is not None

        await scheduler.stop()
        assert scheduler.get_status()["running"] is False


class _RaisingScraper:
    async def scrape_url(self, url: str, label: str):
        raise RuntimeError("boom")


class TestRefreshJob:
    """Test that a refresh which keeps the old snapshot is recorded as failed."""

    @pytest.mark.asyncio
    async def test_degraded_refresh_marks_job_failed(self, enabled_settings, db, sample_matches):
        registry = SourceRegistry(db)
        await registry.set_urls(["https://a.example"])
        store = MatchCacheStore(db, scraper=_RaisingScraper(), registry=registry)
        await store.replace(sample_matches)
        scheduler = SchedulerService(store.refresh_job, AsyncMock(), settings=enabled_settings)
        await scheduler.initialize()

        await scheduler.run_tracked(REFRESH_JOB_ID)

        job = scheduler.get_job(REFRESH_JOB_ID)
        assert job["last_status"] == JobStatus.FAILED.value
        assert job["error_count"] == 1
        assert "All sources degraded" in job["last_error"]
        assert store.last_report.success is False
        assert await store.count() == len(sample_matches)

    @pytest.mark.asyncio
    async def test_successful_refresh_marks_job_completed(self, enabled_settings, db):
        registry = SourceRegistry(db)
        await registry.set_urls(["https://a.example"])
        scraper = MagicMock()
        scraper.scrape_url = AsyncMock(return_value=ScrapeResult(
            url="https://a.example", label="Лига 1", status=ScrapeStatus.EMPTY, matches=[]
        ))
        store = MatchCacheStore(db, scraper=scraper, registry=registry)
        scheduler = SchedulerService(store.refresh_job, AsyncMock(), settings=enabled_settings)
        await scheduler.initialize()

        await scheduler.run_tracked(REFRESH_JOB_ID)

        assert scheduler.get_job(REFRESH_JOB_ID)["last_status"] == JobStatus.COMPLETED.value
