"""
NewsAPI adapter for general headlines.

Fetches top headlines per NewsAPI category and supports keyword search
through the 'everything' endpoint.

Handles:
- Category fan-out with per-category failure isolation
- Payload status checks ('ok' expected)
- API key rotation for comma-separated keys
"""

import logging
from functools import partial
from typing import Any

from archv.aggregation.isolation import run_isolated
from archv.config.settings import get_settings
from archv.ingestion.base_adapter import AdapterStats, BaseAdapter, FetchParams, TransformContext
from archv.ingestion.categories import NEWSAPI_CATEGORIES, NEWSAPI_CATEGORY_MAP, map_newsapi_category
from archv.ingestion.errors import UpstreamError
from archv.ingestion.http_client import APIKeyRotator, HTTPClient
from archv.ingestion.schemas import Article, Category
from archv.ingestion.text import (
    extract_domain,
    generate_slug,
    generate_tags,
    make_article_id,
    make_excerpt,
    make_preview,
    parse_iso_timestamp,
)

logger = logging.getLogger(__name__)

NEWSAPI_BASE_URL = "https://newsapi.org/v2"
NEWSAPI_TOP_HEADLINES_URL = f"{NEWSAPI_BASE_URL}/top-headlines"
NEWSAPI_EVERYTHING_URL = f"{NEWSAPI_BASE_URL}/everything"

DEFAULT_AUTHOR = "Staff Writer"
FEATURED_COUNT = 3
MAX_PAGE_SIZE = 100

# NewsAPI replaces taken-down articles with this literal
REMOVED_MARKER = "[Removed]"


class NewsAPIAdapter(BaseAdapter):
    """
    NewsAPI headlines adapter.

    A plain fetch() fans out over every NewsAPI category; fetch() with a
    category or query hits a single endpoint. The first three articles of
    each batch are featured.
    """

    requires_api_key = True
    supports_category = True
    supports_search = True

    def __init__(
        self,
        api_key: str | None = None,
        country: str = "us",
        per_category: int | None = None,
        **kwargs: Any,
    ):
        """
        Initialize NewsAPI adapter.

        Args:
            api_key: NewsAPI key(s), comma-separated for rotation
            country: Country code for top headlines
            per_category: Articles per category when fanning out
        """
        super().__init__(**kwargs)
        settings = get_settings()
        self._key_rotator = APIKeyRotator.from_env_var(api_key or settings.newsapi_api_key)
        self._country = country
        self._per_category = per_category or settings.sync_articles_per_category

    @property
    def source_key(self) -> str:
        return "newsapi"

    @property
    def display_name(self) -> str:
        return "NewsAPI"

    def _api_key_value(self) -> str | None:
        return self._key_rotator.keys[0] if self._key_rotator else None

    async def fetch(self, params: FetchParams | None = None) -> list[Article]:
        params = params or FetchParams()
        if params.category is None and params.query is None:
            return await self.fetch_all_categories(per_category=self._per_category)
        return await super().fetch(params)

    async def fetch_all_categories(self, per_category: int = 5) -> list[Article]:
        """
        Fetch headlines for every NewsAPI category concurrently.

        A failed category is logged and skipped. Only when every category
        fails is the first failure raised, so the caller can tell a broken
        source from an empty one.
        """
        self.ensure_configured()
        self._stats = AdapterStats()

        async with self._open_client() as client:
            outcomes = await run_isolated([
                (code, partial(self._fetch_raw, client, FetchParams(category=code, limit=per_category)))
                for code in NEWSAPI_CATEGORIES
            ])

        articles: list[Article] = []
        failures: list[BaseException] = []
        for outcome in outcomes:
            if not outcome.ok:
                logger.warning(f"Failed to fetch NewsAPI {outcome.name} articles: {outcome.error}")
                failures.append(outcome.error)
                continue
            articles.extend(
                self.transform_batch(
                    outcome.value or [],
                    FetchParams(category=outcome.name, limit=per_category),
                )
            )

        if failures and len(failures) == len(outcomes):
            raise failures[0]

        articles.sort(key=lambda a: a.published_at, reverse=True)
        logger.info(
            f"newsapi completed: fetched={self._stats.articles_fetched}, "
            f"rejected={self._stats.articles_rejected}, failed_categories={len(failures)}"
        )
        return articles

    async def fetch_category(self, category: str, limit: int = 20) -> list[Article]:
        code = self._category_code(category)
        if code is None:
            return []
        return await super().fetch(FetchParams(category=code, limit=limit))

    async def search(self, query: str, limit: int = 20) -> list[Article]:
        return await super().fetch(FetchParams(query=query, limit=limit))

    @staticmethod
    def _category_code(category: str) -> str | None:
        """Reverse-map a canonical category name to a NewsAPI code."""
        canonical = Category.from_name(category)
        if canonical is None:
            return category.lower() if category.lower() in NEWSAPI_CATEGORY_MAP else None
        for code, mapped in NEWSAPI_CATEGORY_MAP.items():
            if mapped is canonical:
                return code
        return None

    async def _fetch_raw(
        self,
        client: HTTPClient,
        params: FetchParams,
    ) -> list[dict[str, Any]]:
        page_size = max(1, min(params.limit, MAX_PAGE_SIZE))

        if params.query:
            url = NEWSAPI_EVERYTHING_URL
            query_params: dict[str, Any] = {
                "q": params.query,
                "language": "en",
                "sortBy": "publishedAt",
                "pageSize": page_size,
            }
        else:
            url = NEWSAPI_TOP_HEADLINES_URL
            query_params = {
                "country": self._country,
                "category": params.category or "general",
                "pageSize": page_size,
            }

        logger.debug(f"Fetching NewsAPI {url} with {query_params}")
        data = await client.get_json(
            url,
            params=query_params,
            api_key_rotator=self._key_rotator,
            api_key_param="apiKey",
        )
        return self._extract_articles(data)

    @staticmethod
    def _extract_articles(data: Any) -> list[dict[str, Any]]:
        if not isinstance(data, dict):
            raise UpstreamError("NewsAPI returned a non-object payload")
        if data.get("status") != "ok":
            raise UpstreamError(
                f"NewsAPI returned status {data.get('status')!r}: {data.get('message', '')}"
            )
        articles = data.get("articles")
        if not isinstance(articles, list):
            raise UpstreamError("NewsAPI payload has no 'articles' list")
        return articles

    def _transform(self, raw: dict[str, Any], context: TransformContext) -> Article | None:
        title = (raw.get("title") or "").strip()
        description = (raw.get("description") or "").strip()
        url = (raw.get("url") or "").strip()

        if not title or not description or not url or title == REMOVED_MARKER:
            return None

        category_code = context.params.category or "general"
        published_at = parse_iso_timestamp(raw.get("publishedAt"))
        domain = extract_domain(url)
        source_name = (raw.get("source") or {}).get("name") or domain or self.display_name

        return Article(
            id=make_article_id(f"newsapi-{category_code}", url, context.index),
            title=title,
            slug=generate_slug(title) or make_article_id("newsapi", url),
            excerpt=make_excerpt(description),
            content=make_preview(raw.get("content") or description),
            author=(raw.get("author") or "").strip() or DEFAULT_AUTHOR,
            category=map_newsapi_category(category_code),
            tags=generate_tags(title, description),
            image_url=raw.get("urlToImage") or None,
            published_at=published_at,
            updated_at=published_at,
            featured=context.index < FEATURED_COUNT,
            source=source_name,
            source_url=url,
            source_domain=domain,
        )
