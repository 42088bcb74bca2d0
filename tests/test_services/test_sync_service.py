"""Tests for the periodic sync service."""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest
import respx
from structlog.testing import capture_logs

from archv.ingestion.base_adapter import FetchParams
from archv.ingestion.categories import NEWSAPI_CATEGORIES
from archv.ingestion.errors import StoreError, UpstreamError
from archv.ingestion.http_client import RetryConfig
from archv.ingestion.newsapi_adapter import NewsAPIAdapter
from archv.ingestion.nytimes_adapter import NYTIMES_BASE_URL, NYTimesAdapter
from archv.services.sync_service import NYTIMES_SYNC_SECTIONS, SyncService


@pytest.fixture
def repository() -> AsyncMock:
    repo = AsyncMock()
    repo.create_many = AsyncMock(return_value=(1, 0))
    return repo


@pytest.fixture
def newsapi(make_article) -> NewsAPIAdapter:
    adapter = NewsAPIAdapter(api_key="news-key")

    async def fetch(params: FetchParams):
        if params.category == "business":
            raise UpstreamError("NewsAPI 500")
        return [make_article(f"NewsAPI {params.category}")]

    adapter.fetch = AsyncMock(side_effect=fetch)
    return adapter


@pytest.fixture
def nytimes(make_article) -> NYTimesAdapter:
    adapter = NYTimesAdapter(api_key="nyt-key")
    adapter.fetch = AsyncMock(side_effect=lambda params: [make_article(f"NYT {params.section}")])
    return adapter


class TestRunOnce:
    """Tests for a single sync cycle."""

    @pytest.mark.asyncio
    async def test_persists_every_job_and_isolates_failures(self, repository, newsapi, nytimes):
        service = SyncService(repository, newsapi=newsapi, nytimes=nytimes, per_category=4)

        with capture_logs() as logs:
            report = await service.run_once()

        assert report.failed_jobs == ["newsapi:business"]
        assert report.stored == len(NEWSAPI_CATEGORIES) - 1 + len(NYTIMES_SYNC_SECTIONS)
        assert report.skipped == 0
        assert report.per_source == {
            "newsapi": len(NEWSAPI_CATEGORIES) - 1,
            "nytimes": len(NYTIMES_SYNC_SECTIONS),
        }
        assert repository.create_many.await_count == report.stored

        newsapi.fetch.assert_any_await(FetchParams(category="technology", limit=4))
        nytimes.fetch.assert_any_await(FetchParams(section="home", limit=4))

        failures = [entry for entry in logs if entry["event"] == "Sync job failed"]
        assert len(failures) == 1
        assert failures[0]["job"] == "newsapi:business"

    @pytest.mark.asyncio
    async def test_skipped_slugs_counted(self, repository, nytimes):
        repository.create_many.return_value = (0, 1)
        service = SyncService(repository, newsapi=NewsAPIAdapter(), nytimes=nytimes)

        report = await service.run_once()

        assert report.stored == 0
        assert report.skipped == len(NYTIMES_SYNC_SECTIONS)

    @pytest.mark.asyncio
    async def test_unconfigured_sources_are_skipped(self, repository):
        service = SyncService(repository, newsapi=NewsAPIAdapter(), nytimes=NYTimesAdapter())

        with capture_logs() as logs:
            report = await service.run_once()

        assert report.stored == 0
        repository.create_many.assert_not_called()
        events = {entry["event"] for entry in logs}
        assert "NewsAPI key not found, skipping" in events
        assert "NYT key not found, skipping" in events

    @pytest.mark.asyncio
    async def test_store_error_aborts_cycle(self, repository, nytimes):
        repository.create_many.side_effect = StoreError("create", OSError("disk full"))
        service = SyncService(repository, newsapi=NewsAPIAdapter(), nytimes=nytimes)

        with pytest.raises(StoreError):
            await service.run_once()

    @pytest.mark.asyncio
    @respx.mock
    async def test_dropped_connection_is_a_failed_job(self, repository):
        respx.get(url__startswith=f"{NYTIMES_BASE_URL}/topstories/v2/").mock(
            side_effect=httpx.RemoteProtocolError("Server disconnected")
        )
        nytimes = NYTimesAdapter(api_key="nyt-key", retry_config=RetryConfig(max_retries=0))
        service = SyncService(repository, newsapi=NewsAPIAdapter(), nytimes=nytimes)

        report = await service.run_once()

        assert report.failed_jobs == [f"nytimes:{section}" for section in NYTIMES_SYNC_SECTIONS]
        repository.create_many.assert_not_called()

        assert repository.create_many.await_count == 1


class TestLoop:
    """Tests for the interval loop."""

    @staticmethod
    async def _wait_until_running(service: SyncService) -> None:
        while not service.is_running:
            await asyncio.sleep(0)

    @pytest.mark.asyncio
    async def test_stop_ends_loop(self, repository):
        service = SyncService(repository, newsapi=NewsAPIAdapter(), nytimes=NYTimesAdapter(), interval_minutes=60)

        task = asyncio.create_task(service.start())
        await self._wait_until_running(service)
        await service.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert not service.is_running

    @pytest.mark.asyncio
    async def test_failed_cycle_is_logged_and_loop_survives(self, repository, nytimes):
        repository.create_many.side_effect = StoreError("create", OSError("disk full"))
        service = SyncService(repository, newsapi=NewsAPIAdapter(), nytimes=nytimes, interval_minutes=60)

        with capture_logs() as logs:
            task = asyncio.create_task(service.start())
            while repository.create_many.await_count == 0:
                await asyncio.sleep(0)
            await asyncio.sleep(0)
            assert service.is_running
            await service.stop()
            await asyncio.wait_for(task, timeout=1.0)

        errors = [entry for entry in logs if entry["log_level"] == "error"]
        assert errors[0]["event"] == "Sync cycle failed"
        assert errors[0]["operation"] == "create"
