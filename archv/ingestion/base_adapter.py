"""
Base adapter interface and shared functionality for source adapters.

Each source adapter implements _fetch_raw() (network I/O, returns raw
upstream records) and _transform() (one raw record to an Article). The
base class provides:
- Credential checks before any network call (ConfigurationError)
- A retrying HTTP client per fetch
- Record-level rejection accounting
- Logging of every run
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from archv.config.settings import get_settings
from archv.ingestion.errors import ConfigurationError, ValidationError
from archv.ingestion.http_client import HTTPClient, RetryConfig
from archv.ingestion.schemas import Article

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchParams:
    """Upstream query parameters. Each adapter reads the fields it supports."""

    category: str | None = None
    limit: int = 20
    period: int = 7
    query: str | None = None
    section: str | None = None


@dataclass(frozen=True)
class TransformContext:
    """Per-record context handed to transform()."""

    index: int
    params: FetchParams = field(default_factory=FetchParams)
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class AdapterStats:
    """Statistics for an adapter run."""

    articles_fetched: int = 0
    articles_rejected: int = 0
    start_time: float = field(default_factory=time.monotonic)

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.start_time


class BaseAdapter(ABC):
    """
    Abstract base class for source adapters.

    Subclasses must implement:
        - source_key: short identifier used in IDs, logs and metrics
        - display_name: publication name shown to readers
        - _fetch_raw(): fetch raw upstream records for the given params
        - _transform(): convert one raw record to an Article

    Subclasses that need credentials set requires_api_key = True and
    return the key from _api_key_value().

    Errors:
        - ConfigurationError before any request when a key is missing
        - UpstreamError (from HTTPClient or payload checks) on failure
        - Rejected records are dropped and counted, never raised
    """

    requires_api_key: bool = False
    supports_category: bool = False
    supports_search: bool = False

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self._retry_config = retry_config or RetryConfig(
            max_retries=settings.max_http_retries,
            max_backoff_seconds=settings.max_backoff_seconds,
        )
        self._timeout = timeout or settings.http_timeout_seconds
        self._stats = AdapterStats()

    @property
    @abstractmethod
    def source_key(self) -> str:
        """Short identifier, e.g. 'newsapi'."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable source name."""
        ...

    @property
    def stats(self) -> AdapterStats:
        """Statistics of the most recent fetch."""
        return self._stats

    def _api_key_value(self) -> str | None:
        return None

    @property
    def is_configured(self) -> bool:
        return not self.requires_api_key or bool(self._api_key_value())

    def ensure_configured(self) -> None:
        """Raise ConfigurationError when a required key is absent."""
        if not self.is_configured:
            raise ConfigurationError(self.display_name)

    def _open_client(self) -> HTTPClient:
        return HTTPClient(retry_config=self._retry_config, timeout=self._timeout)

    @abstractmethod
    async def _fetch_raw(
        self,
        client: HTTPClient,
        params: FetchParams,
    ) -> list[dict[str, Any]]:
        """
        Fetch raw records from the upstream.

        Returns:
            Raw records in upstream order

        Raises:
            UpstreamError: On HTTP failure or a malformed payload
        """
        ...

    @abstractmethod
    def _transform(self, raw: dict[str, Any], context: TransformContext) -> Article | None:
        """
        Transform one raw record to an Article.

        Return None (or raise ValidationError) for records missing
        required fields.
        """
        ...

    def transform(self, raw: dict[str, Any], context: TransformContext) -> Article | None:
        """Transform a raw record, converting any rejection into None."""
        try:
            return self._transform(raw, context)
        except (ValidationError, PydanticValidationError, KeyError, TypeError, ValueError) as e:
            logger.debug(f"{self.source_key} rejected record {context.index}: {e}")
            return None

    async def fetch(self, params: FetchParams | None = None) -> list[Article]:
        """
        Fetch and transform articles from the upstream.

        This is the main entry point called by the aggregator.

        Raises:
            ConfigurationError: Missing credentials (no request attempted)
            UpstreamError: Upstream failure
        """
        params = params or FetchParams()
        self.ensure_configured()
        self._stats = AdapterStats()

        logger.info(f"Starting fetch for {self.source_key}")

        async with self._open_client() as client:
            raw_items = await self._fetch_raw(client, params)

        articles = self.transform_batch(raw_items, params)

        logger.info(
            f"{self.source_key} completed: "
            f"fetched={self._stats.articles_fetched}, "
            f"rejected={self._stats.articles_rejected}, "
            f"elapsed={self._stats.elapsed_seconds:.2f}s"
        )
        return articles

    def transform_batch(
        self,
        raw_items: list[dict[str, Any]],
        params: FetchParams,
    ) -> list[Article]:
        """Transform raw records in order, counting rejections."""
        articles: list[Article] = []
        for index, raw in enumerate(raw_items):
            article = self.transform(raw, TransformContext(index=index, params=params))
            if article is None:
                self._stats.articles_rejected += 1
                continue
            articles.append(article)
            self._stats.articles_fetched += 1
        return articles

    async def fetch_category(self, category: str, limit: int = 20) -> list[Article]:
        """Fetch articles for one canonical category. Adapters without support return []."""
        return []

    async def search(self, query: str, limit: int = 20) -> list[Article]:
        """Search the upstream. Adapters without support return []."""
        return []

    async def health_check(self) -> bool:
        """Check if the adapter can run. Override for network checks."""
        return self.is_configured
