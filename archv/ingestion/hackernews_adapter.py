"""
Hacker News adapter backed by the Algolia search API.

No API key is required. Only self-posts with a link and a substantial
story text are kept, so the adapter over-fetches (2x the limit) and
filters down.
"""

import logging
from typing import Any

from archv.ingestion.base_adapter import BaseAdapter, FetchParams, TransformContext
from archv.ingestion.errors import UpstreamError, ValidationError
from archv.ingestion.http_client import HTTPClient
from archv.ingestion.schemas import Article, Category
from archv.ingestion.text import (
    extract_domain,
    generate_slug,
    make_article_id,
    make_excerpt,
    make_preview,
    parse_iso_timestamp,
    parse_unix_timestamp,
    strip_html,
)

logger = logging.getLogger(__name__)

HN_SEARCH_URL = "https://hn.algolia.com/api/v1/search"

SOURCE_NAME = "Hacker News"
DEFAULT_AUTHOR = "HN User"
HN_TAGS = ("hacker-news", "tech")
MIN_STORY_TEXT_LENGTH = 50
OVERFETCH_FACTOR = 2


class HackerNewsAdapter(BaseAdapter):
    """
    Hacker News front page and story search.

    Every article is Technology; only the first of a batch is featured.
    """

    supports_search = True

    @property
    def source_key(self) -> str:
        return "hackernews"

    @property
    def display_name(self) -> str:
        return SOURCE_NAME

    async def fetch_front_page(self, limit: int = 20) -> list[Article]:
        return await self.fetch(FetchParams(limit=limit))

    async def search(self, query: str, limit: int = 20) -> list[Article]:
        return await self.fetch(FetchParams(query=query, limit=limit))

    async def _fetch_raw(
        self,
        client: HTTPClient,
        params: FetchParams,
    ) -> list[dict[str, Any]]:
        query_params: dict[str, Any] = {"hitsPerPage": params.limit * OVERFETCH_FACTOR}
        if params.query:
            query_params["query"] = params.query
            query_params["tags"] = "story"
        else:
            query_params["tags"] = "front_page"

        data = await client.get_json(HN_SEARCH_URL, params=query_params)
        if not isinstance(data, dict) or not isinstance(data.get("hits"), list):
            raise UpstreamError("Algolia payload has no 'hits' list")

        hits = [h for h in data["hits"] if isinstance(h, dict) and self._is_usable(h)]
        dropped = len(data["hits"]) - len(hits)
        if dropped:
            logger.debug(f"Dropped {dropped} HN hits without url or story text")
        return hits[: params.limit]

    @staticmethod
    def _is_usable(hit: dict[str, Any]) -> bool:
        story_text = hit.get("story_text") or ""
        return bool(hit.get("url") and hit.get("title") and len(story_text) > MIN_STORY_TEXT_LENGTH)

    def _transform(self, raw: dict[str, Any], context: TransformContext) -> Article | None:
        title = (raw.get("title") or "").strip()
        url = (raw.get("url") or "").strip()
        object_id = str(raw.get("objectID") or "")

        if not title or not url or not object_id:
            return None

        text = strip_html(raw.get("story_text") or "")
        if not text:
            return None

        if raw.get("created_at"):
            published_at = parse_iso_timestamp(raw["created_at"])
        elif raw.get("created_at_i"):
            published_at = parse_unix_timestamp(raw["created_at_i"])
        else:
            raise ValidationError(f"HN hit {object_id} has no timestamp")

        return Article(
            id=make_article_id("hn", object_id, context.index),
            title=title,
            slug=generate_slug(title) or make_article_id("hn", object_id),
            excerpt=make_excerpt(text),
            content=make_preview(text),
            author=(raw.get("author") or "").strip() or DEFAULT_AUTHOR,
            category=Category.TECHNOLOGY,
            tags=HN_TAGS,
            image_url=None,
            published_at=published_at,
            updated_at=published_at,
            featured=context.index == 0,
            source=SOURCE_NAME,
            source_url=url,
            source_domain=extract_domain(url),
        )
