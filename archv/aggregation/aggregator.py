"""
Fallback aggregator - merges every live source into one ranked feed.

Runs all configured adapters concurrently, tolerates any subset failing,
deduplicates by normalized title and ranks by recency. When nothing at
all comes back the static placeholder dataset is served instead, so the
feed is never empty.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial

import structlog

from archv.aggregation.fallback_data import fallback_articles, fallback_for_category
from archv.aggregation.isolation import Outcome, run_isolated
from archv.config.settings import Settings, get_settings
from archv.ingestion.base_adapter import BaseAdapter, FetchParams
from archv.ingestion.hackernews_adapter import HackerNewsAdapter
from archv.ingestion.newsapi_adapter import NewsAPIAdapter
from archv.ingestion.nytimes_adapter import NYTimesAdapter
from archv.ingestion.rss_adapter import RSSAdapter
from archv.ingestion.schemas import Article
from archv.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)

# Per-source parameters for the combined feed
DEFAULT_FETCH_PARAMS: dict[str, FetchParams] = {
    "nytimes": FetchParams(period=7),
    "hackernews": FetchParams(limit=15),
    "rss": FetchParams(limit=3),
}

# Sources asked directly for a category before falling back to filtering
CATEGORY_SOURCES = ("nytimes", "rss")


@dataclass
class SourceReport:
    """What one source contributed to an aggregation pass."""

    source: str
    count: int = 0
    error: str | None = None
    error_type: str | None = None
    elapsed_seconds: float = 0.0

    @property
    def contributed(self) -> bool:
        return self.error is None and self.count > 0


@dataclass
class AggregationReport:
    """Summary of the most recent aggregation pass."""

    sources: list[SourceReport] = field(default_factory=list)
    total: int = 0
    used_fallback: bool = False
    finished_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def contributing(self) -> list[str]:
        return [s.source for s in self.sources if s.contributed]

    @property
    def failed(self) -> list[str]:
        return [s.source for s in self.sources if s.error is not None]


def build_adapters(settings: Settings | None = None) -> list[BaseAdapter]:
    """Create adapters for every source that has the configuration it needs."""
    settings = settings or get_settings()
    adapters: list[BaseAdapter] = []

    if settings.nytimes_configured:
        adapters.append(NYTimesAdapter(api_key=settings.nytimes_api_key))
    else:
        logger.info("NYT adapter disabled", reason="no API key")

    if settings.newsapi_configured:
        adapters.append(NewsAPIAdapter(api_key=settings.newsapi_api_key))
    else:
        logger.info("NewsAPI adapter disabled", reason="no API key")

    # Keyless
    adapters.append(HackerNewsAdapter())

    if settings.rss_enabled:
        adapters.append(RSSAdapter())

    return adapters


class FallbackAggregator:
    """
    Combine articles from every adapter, with graceful degradation.

    Usage:
        aggregator = FallbackAggregator()
        articles = await aggregator.fetch_all()
        tech = await aggregator.fetch_category("Technology")
    """

    def __init__(
        self,
        adapters: Sequence[BaseAdapter] | None = None,
        timeout: float | None = None,
        fetch_params: dict[str, FetchParams] | None = None,
        category_sources: Iterable[str] = CATEGORY_SOURCES,
        fallback: Callable[[], list[Article]] = fallback_articles,
    ):
        """
        Initialize the aggregator.

        Args:
            adapters: Source adapters (default: every configured source)
            timeout: Per-adapter timeout in seconds (default from settings)
            fetch_params: FetchParams per source_key for fetch_all()
            category_sources: source_keys queried directly by fetch_category()
            fallback: Factory for the placeholder dataset
        """
        settings = get_settings()
        self._adapters = list(adapters) if adapters is not None else build_adapters(settings)
        self._timeout = timeout if timeout is not None else settings.adapter_timeout_seconds
        self._fetch_params = {**DEFAULT_FETCH_PARAMS, **(fetch_params or {})}
        self._category_sources = frozenset(category_sources)
        self._fallback = fallback
        self._metrics = get_metrics()
        self._last_report = AggregationReport()

    @property
    def adapters(self) -> list[BaseAdapter]:
        return list(self._adapters)

    @property
    def last_report(self) -> AggregationReport:
        return self._last_report

    async def fetch_all(self) -> list[Article]:
        """
        Fetch every source, merge, deduplicate and rank.

        Never raises for a source failure. Returns the placeholder dataset
        when no source produced anything.
        """
        outcomes = await run_isolated(
            [
                (adapter.source_key, partial(adapter.fetch, self._params_for(adapter)))
                for adapter in self._adapters
            ],
            timeout=self._timeout,
        )
        merged, reports = self._collect(outcomes)
        articles = self.sort_by_recency(self.deduplicate(merged))

        self._last_report = AggregationReport(sources=reports, total=len(articles))

        if not articles:
            logger.warning("All sources failed or were empty, serving placeholder articles")
            self._metrics.record_fallback("all")
            articles = self._fallback()
            self._last_report.used_fallback = True
            self._last_report.total = len(articles)
            return articles

        logger.info(
            "Combined articles from sources",
            total=len(articles),
            merged=len(merged),
            contributing=self._last_report.contributing,
            failed=self._last_report.failed,
        )
        return articles

    async def fetch_category(self, category: str) -> list[Article]:
        """
        Articles for one category.

        Order of preference: category-capable sources queried directly,
        then the full feed filtered by category, then placeholders.
        """
        direct = [a for a in self._adapters if a.source_key in self._category_sources]
        outcomes = await run_isolated(
            [(a.source_key, partial(a.fetch_category, category)) for a in direct],
            timeout=self._timeout,
        )
        merged, _ = self._collect(outcomes, category=category)
        if merged:
            return self.sort_by_recency(self.deduplicate(merged))

        wanted = category.strip().lower()
        filtered = [a for a in await self.fetch_all() if a.category.value.lower() == wanted]
        if filtered:
            return filtered

        logger.warning("No articles for category, serving placeholders", category=category)
        self._metrics.record_fallback("category")
        return fallback_for_category(category)

    async def search(self, query: str, limit: int = 20) -> list[Article]:
        """Search every search-capable source. Empty when nothing matches."""
        searchable = [a for a in self._adapters if a.supports_search]
        outcomes = await run_isolated(
            [(a.source_key, partial(a.search, query, limit)) for a in searchable],
            timeout=self._timeout,
        )
        merged, _ = self._collect(outcomes, query=query)
        return self.sort_by_recency(self.deduplicate(merged))[:limit]

    async def health_check(self) -> dict[str, bool]:
        """Configuration health per source."""
        health = {}
        for adapter in self._adapters:
            healthy = await adapter.health_check()
            self._metrics.set_adapter_health(adapter.source_key, healthy)
            health[adapter.source_key] = healthy
        return health

    def _params_for(self, adapter: BaseAdapter) -> FetchParams:
        return self._fetch_params.get(adapter.source_key, FetchParams())

    def _collect(
        self,
        outcomes: list[Outcome[list[Article]]],
        **context: str,
    ) -> tuple[list[Article], list[SourceReport]]:
        """Concatenate successful results in adapter order, logging each failure."""
        merged: list[Article] = []
        reports: list[SourceReport] = []

        for outcome in outcomes:
            report = SourceReport(source=outcome.name, elapsed_seconds=outcome.elapsed_seconds)
            if outcome.ok:
                batch = outcome.value or []
                report.count = len(batch)
                merged.extend(batch)
                self._metrics.record_fetch(outcome.name, len(batch), outcome.elapsed_seconds)
            else:
                report.error = str(outcome.error)
                report.error_type = type(outcome.error).__name__
                logger.warning(
                    "Source failed",
                    source=outcome.name,
                    error=report.error,
                    error_type=report.error_type,
                    **context,
                )
                self._metrics.record_error(outcome.name, report.error_type)
            reports.append(report)

        return merged, reports

    @staticmethod
    def deduplicate(articles: Iterable[Article]) -> list[Article]:
        """
        Drop articles whose normalized title was already seen.

        The later record wins but keeps the position where its title was
        first seen.
        """
        unique: dict[str, Article] = {}
        for article in articles:
            unique[article.dedup_key] = article
        return list(unique.values())

    @staticmethod
    def sort_by_recency(articles: Iterable[Article]) -> list[Article]:
        """Stable sort, newest first."""
        return sorted(articles, key=lambda a: a.published_at, reverse=True)
