"""
Sync service - periodically persists fresh articles.

Each cycle pulls NewsAPI headlines per category and NYT top stories per
section, then stores every article whose slug is not yet in the
database. Existing slugs are skipped, never overwritten.

Features:
- Per-job failure isolation (one failing category never stops the run)
- Interruptible interval loop with graceful stop
- Metrics for stored/skipped articles
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import partial

import structlog

from archv.config.settings import get_settings
from archv.ingestion.base_adapter import BaseAdapter, FetchParams
from archv.ingestion.categories import NEWSAPI_CATEGORIES
from archv.ingestion.errors import ArchvError, ConfigurationError, StoreError, UpstreamError
from archv.ingestion.newsapi_adapter import NewsAPIAdapter
from archv.ingestion.nytimes_adapter import NYTimesAdapter
from archv.ingestion.schemas import Article
from archv.observability.logging import bind_context, clear_context
from archv.observability.metrics import get_metrics
from archv.storage.repository import ArticleRepository

logger = structlog.get_logger(__name__)

NYTIMES_SYNC_SECTIONS = ("home", "world", "technology", "business", "science", "health", "sports")


@dataclass
class SyncReport:
    """Outcome of one sync cycle."""

    stored: int = 0
    skipped: int = 0
    fetched: int = 0
    failed_jobs: list[str] = field(default_factory=list)
    per_source: dict[str, int] = field(default_factory=dict)
    elapsed_seconds: float = 0.0


class SyncService:
    """
    Persist newly published articles on a fixed interval.

    Usage:
        service = SyncService(ArticleRepository(db))
        report = await service.run_once()
        await service.start()  # loops until stop()
    """

    def __init__(
        self,
        repository: ArticleRepository,
        newsapi: NewsAPIAdapter | None = None,
        nytimes: NYTimesAdapter | None = None,
        interval_minutes: int | None = None,
        per_category: int | None = None,
    ):
        """
        Initialize sync service.

        Args:
            repository: Article repository to persist into
            newsapi: NewsAPI adapter (default: created from settings)
            nytimes: NYT adapter (default: created from settings)
            interval_minutes: Minutes between cycles
            per_category: Articles requested per category/section
        """
        settings = get_settings()

        self._repository = repository
        self._newsapi = newsapi or NewsAPIAdapter()
        self._nytimes = nytimes or NYTimesAdapter()
        self._interval_seconds = 60 * (interval_minutes or settings.sync_interval_minutes)
        self._per_category = per_category or settings.sync_articles_per_category

        self._metrics = get_metrics()
        self._running = False
        self._stop_event = asyncio.Event()
        self._runs = 0

        logger.info(
            "Sync service initialized",
            interval_minutes=self._interval_seconds // 60,
            per_category=self._per_category,
            newsapi=self._newsapi.is_configured,
            nytimes=self._nytimes.is_configured,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    def _jobs(self) -> list[tuple[str, BaseAdapter, Callable[[], Awaitable[list[Article]]]]]:
        """(job name, adapter, fetch factory) for every configured source."""
        jobs = []

        if self._newsapi.is_configured:
            for code in NEWSAPI_CATEGORIES:
                params = FetchParams(category=code, limit=self._per_category)
                jobs.append((f"newsapi:{code}", self._newsapi, partial(self._newsapi.fetch, params)))
        else:
            logger.warning("NewsAPI key not found, skipping")

        if self._nytimes.is_configured:
            for section in NYTIMES_SYNC_SECTIONS:
                params = FetchParams(section=section, limit=self._per_category)
                jobs.append((f"nytimes:{section}", self._nytimes, partial(self._nytimes.fetch, params)))
        else:
            logger.warning("NYT key not found, skipping")

        return jobs

    async def run_once(self) -> SyncReport:
        """
        Run one sync cycle.

        Fetch failures are logged per job and skipped. Store failures
        abort the cycle with StoreError.
        """
        self._runs += 1
        bind_context(sync_run=self._runs)
        started = time.monotonic()
        report = SyncReport()

        try:
            for name, adapter, fetch in self._jobs():
                try:
                    articles = await fetch()
                except (ConfigurationError, UpstreamError) as e:
                    logger.warning("Sync job failed", job=name, error=str(e), error_type=type(e).__name__)
                    self._metrics.record_error(adapter.source_key, type(e).__name__)
                    report.failed_jobs.append(name)
                    continue

                created, skipped = await self._repository.create_many(articles)
                self._metrics.record_sync(adapter.source_key, created, skipped)

                report.fetched += len(articles)
                report.stored += created
                report.skipped += skipped
                report.per_source[adapter.source_key] = report.per_source.get(adapter.source_key, 0) + created

                logger.debug("Sync job completed", job=name, fetched=len(articles), stored=created, skipped=skipped)

            report.elapsed_seconds = round(time.monotonic() - started, 2)
            logger.info(
                "Sync completed",
                fetched=report.fetched,
                stored=report.stored,
                skipped=report.skipped,
                failed_jobs=report.failed_jobs,
                elapsed_seconds=report.elapsed_seconds,
            )
            return report
        finally:
            clear_context()

    async def start(self) -> None:
        """
        Run sync cycles until stop() is called.

        A failing cycle is logged and retried on the next interval.
        """
        self._running = True
        self._stop_event.clear()
        logger.info("Starting sync service", interval_seconds=self._interval_seconds)

        try:
            while self._running:
                try:
                    await self.run_once()
                except StoreError as e:
                    logger.error("Sync cycle failed", operation=e.operation, error=str(e))
                    self._metrics.record_store_error(e.operation)
                except ArchvError as e:
                    logger.error("Sync cycle failed", error=str(e), error_type=type(e).__name__)

                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval_seconds)
                except asyncio.TimeoutError:
                    continue
        except asyncio.CancelledError:
            logger.info("Sync service cancelled")
        finally:
            self._running = False
            logger.info("Sync service stopped")

    async def stop(self) -> None:
        """Stop the loop after the current cycle."""
        logger.info("Stopping sync service")
        self._running = False
        self._stop_event.set()
