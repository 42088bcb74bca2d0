"""
New York Times adapter.

Covers three endpoints of the NYT developer APIs:
- Most Popular (viewed over 1, 7 or 30 days) - default fetch
- Top Stories by section - category fetches
- Article Search - keyword search

NYT never ships article bodies through these APIs; content is the abstract.
"""

import logging
from typing import Any

from archv.config.settings import get_settings
from archv.ingestion.base_adapter import BaseAdapter, FetchParams, TransformContext
from archv.ingestion.categories import NYTIMES_CATEGORY_SECTIONS, NYTIMES_SECTION_MAP, map_nytimes_section
from archv.ingestion.errors import UpstreamError
from archv.ingestion.http_client import APIKeyRotator, HTTPClient
from archv.ingestion.schemas import Article, Category
from archv.ingestion.text import (
    extract_author,
    generate_slug,
    generate_tags,
    make_article_id,
    make_excerpt,
    make_preview,
    parse_iso_timestamp,
    split_keywords,
)

logger = logging.getLogger(__name__)

NYTIMES_BASE_URL = "https://api.nytimes.com/svc"
NYTIMES_SITE_URL = "https://www.nytimes.com"

SOURCE_NAME = "The New York Times"
SOURCE_DOMAIN = "nytimes.com"
FEATURED_COUNT = 2
TOP_STORIES_LIMIT = 20
VALID_PERIODS = (1, 7, 30)


class NYTimesAdapter(BaseAdapter):
    """
    New York Times adapter.

    fetch() routing:
        - params.query set: article search
        - params.section set: top stories for that section
        - otherwise: most popular for params.period days
    """

    requires_api_key = True
    supports_category = True
    supports_search = True

    def __init__(self, api_key: str | None = None, **kwargs: Any):
        super().__init__(**kwargs)
        self._key_rotator = APIKeyRotator.from_env_var(api_key or get_settings().nytimes_api_key)

    @property
    def source_key(self) -> str:
        return "nytimes"

    @property
    def display_name(self) -> str:
        return SOURCE_NAME

    def _api_key_value(self) -> str | None:
        return self._key_rotator.keys[0] if self._key_rotator else None

    async def fetch_most_popular(self, period: int = 7) -> list[Article]:
        return await self.fetch(FetchParams(period=period))

    async def fetch_top_stories(self, section: str = "home") -> list[Article]:
        return await self.fetch(FetchParams(section=section, limit=TOP_STORIES_LIMIT))

    async def fetch_category(self, category: str, limit: int = 20) -> list[Article]:
        section = self._section_for(category)
        if section is None:
            return []
        articles = await self.fetch_top_stories(section)
        return articles[:limit]

    async def search(self, query: str, limit: int = 20) -> list[Article]:
        articles = await self.fetch(FetchParams(query=query, limit=limit))
        return articles[:limit]

    @staticmethod
    def _section_for(category: str) -> str | None:
        """Top stories section for a canonical category or raw section name."""
        canonical = Category.from_name(category)
        if canonical is not None:
            return NYTIMES_CATEGORY_SECTIONS.get(canonical)
        section = category.strip().lower()
        return section if section.isalpha() and section in NYTIMES_SECTION_MAP else None

    async def _fetch_raw(
        self,
        client: HTTPClient,
        params: FetchParams,
    ) -> list[dict[str, Any]]:
        if params.query:
            data = await self._get(
                client,
                f"{NYTIMES_BASE_URL}/search/v2/articlesearch.json",
                {"q": params.query, "page": 0},
            )
            docs = (data.get("response") or {}).get("docs")
            return docs if isinstance(docs, list) else []

        if params.section:
            data = await self._get(client, f"{NYTIMES_BASE_URL}/topstories/v2/{params.section}.json")
            return self._results(data)[: min(params.limit, TOP_STORIES_LIMIT)]

        if params.period not in VALID_PERIODS:
            raise ValueError(f"NYT most popular period must be one of {VALID_PERIODS}")
        data = await self._get(client, f"{NYTIMES_BASE_URL}/mostpopular/v2/viewed/{params.period}.json")
        return self._results(data)

    async def _get(
        self,
        client: HTTPClient,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        data = await client.get_json(
            url,
            params=params,
            api_key_rotator=self._key_rotator,
            api_key_param="api-key",
        )
        if not isinstance(data, dict):
            raise UpstreamError("NYT returned a non-object payload")
        if data.get("status") != "OK":
            raise UpstreamError(f"NYT returned status {data.get('status')!r}")
        return data

    @staticmethod
    def _results(data: dict[str, Any]) -> list[dict[str, Any]]:
        results = data.get("results")
        if not isinstance(results, list):
            raise UpstreamError("NYT payload has no 'results' list")
        return results

    def _transform(self, raw: dict[str, Any], context: TransformContext) -> Article | None:
        if context.params.query:
            return self._transform_search_doc(raw, context)
        return self._transform_story(raw, context)

    def _transform_story(self, raw: dict[str, Any], context: TransformContext) -> Article | None:
        """Most popular / top stories record."""
        title = (raw.get("title") or "").strip()
        abstract = (raw.get("abstract") or "").strip()
        url = (raw.get("url") or "").strip()

        if not title or not abstract or not url:
            return None

        published_at = parse_iso_timestamp(raw.get("published_date"))
        updated_raw = raw.get("updated") or raw.get("updated_date")
        updated_at = parse_iso_timestamp(updated_raw) if updated_raw else published_at

        identifier = str(raw.get("id") or raw.get("asset_id") or raw.get("uri") or url)

        tags = split_keywords(raw.get("adx_keywords"))
        if not tags and raw.get("des_facet"):
            tags = [str(t).lower() for t in raw["des_facet"]][:5]
        if not tags:
            tags = generate_tags(title, abstract)

        return Article(
            id=make_article_id("nyt", identifier, context.index),
            title=title,
            slug=generate_slug(title) or make_article_id("nyt", identifier),
            excerpt=make_excerpt(abstract),
            content=make_preview(abstract),
            author=extract_author(raw.get("byline"), SOURCE_NAME),
            category=map_nytimes_section(raw.get("section")),
            tags=tags,
            image_url=self._pick_image(raw),
            published_at=published_at,
            updated_at=updated_at,
            featured=context.index < FEATURED_COUNT,
            source=SOURCE_NAME,
            source_url=url,
            source_domain=SOURCE_DOMAIN,
        )

    def _transform_search_doc(self, raw: dict[str, Any], context: TransformContext) -> Article | None:
        """Article Search document."""
        title = ((raw.get("headline") or {}).get("main") or "").strip()
        summary = (raw.get("abstract") or raw.get("snippet") or "").strip()
        url = (raw.get("web_url") or "").strip()

        if not title or not summary or not url:
            return None

        published_at = parse_iso_timestamp(raw.get("pub_date"))
        identifier = str(raw.get("_id") or url)
        byline = (raw.get("byline") or {}).get("original")

        keywords = raw.get("keywords") or []
        tags = [str(k.get("value", "")).lower() for k in keywords if isinstance(k, dict)]

        image_url = None
        multimedia = raw.get("multimedia")
        if isinstance(multimedia, list) and multimedia and multimedia[0].get("url"):
            image_url = self._absolute_url(multimedia[0]["url"])

        return Article(
            id=make_article_id("nyt-search", identifier, context.index),
            title=title,
            slug=generate_slug(title) or make_article_id("nyt-search", identifier),
            excerpt=make_excerpt(summary),
            content=make_preview(raw.get("lead_paragraph") or summary),
            author=extract_author(byline, SOURCE_NAME),
            category=map_nytimes_section(raw.get("section_name")),
            tags=tags or generate_tags(title, summary),
            image_url=image_url,
            published_at=published_at,
            updated_at=published_at,
            featured=False,
            source=SOURCE_NAME,
            source_url=url,
            source_domain=SOURCE_DOMAIN,
        )

    def _pick_image(self, raw: dict[str, Any]) -> str | None:
        """Widest image from 'media' (most popular) or 'multimedia' (top stories)."""
        candidates: list[dict[str, Any]] = []

        media = raw.get("media")
        if isinstance(media, list) and media:
            candidates = media[0].get("media-metadata") or []
        elif isinstance(raw.get("multimedia"), list):
            candidates = raw["multimedia"]

        candidates = [c for c in candidates if isinstance(c, dict) and c.get("url")]
        if not candidates:
            return None

        widest = max(candidates, key=lambda c: c.get("width") or 0)
        return self._absolute_url(widest["url"])

    @staticmethod
    def _absolute_url(url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return f"{NYTIMES_SITE_URL}/{url.lstrip('/')}"
