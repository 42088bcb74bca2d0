"""
RSS adapter for free, keyless news feeds.

Pulls a static list of public feeds (BBC, NPR, TechCrunch, Ars Technica,
The Verge) concurrently. One failing feed never takes down the others;
only when every selected feed fails does the fetch raise.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import Any

import feedparser

from archv.aggregation.isolation import run_isolated
from archv.ingestion.base_adapter import BaseAdapter, FetchParams, TransformContext
from archv.ingestion.categories import RSS_CATEGORY_MAP, map_rss_category
from archv.ingestion.errors import UpstreamError
from archv.ingestion.http_client import HTTPClient
from archv.ingestion.schemas import Article, Category
from archv.ingestion.text import (
    extract_domain,
    generate_slug,
    generate_tags,
    make_article_id,
    make_excerpt,
    make_preview,
    parse_unix_timestamp,
    strip_html,
)

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = "Staff"
DEFAULT_PER_FEED = 5


@dataclass(frozen=True)
class RSSFeed:
    """A public feed and the category its items are filed under."""

    url: str
    source: str
    category: str

    @property
    def canonical_category(self) -> Category:
        return map_rss_category(self.category)

    @property
    def id_prefix(self) -> str:
        return "rss-" + generate_slug(self.source)


RSS_FEEDS: tuple[RSSFeed, ...] = (
    # BBC
    RSSFeed("http://feeds.bbci.co.uk/news/world/rss.xml", "BBC News", "World"),
    RSSFeed("http://feeds.bbci.co.uk/news/business/rss.xml", "BBC News", "Business"),
    RSSFeed("http://feeds.bbci.co.uk/news/technology/rss.xml", "BBC News", "Technology"),
    RSSFeed("http://feeds.bbci.co.uk/news/entertainment_and_arts/rss.xml", "BBC News", "Entertainment"),
    RSSFeed("http://feeds.bbci.co.uk/sport/rss.xml", "BBC Sport", "Sports"),
    # NPR
    RSSFeed("https://feeds.npr.org/1001/rss.xml", "NPR", "General"),
    RSSFeed("https://feeds.npr.org/1003/rss.xml", "NPR", "World"),
    RSSFeed("https://feeds.npr.org/1006/rss.xml", "NPR", "Business"),
    RSSFeed("https://feeds.npr.org/1019/rss.xml", "NPR", "Technology"),
    # Tech
    RSSFeed("https://techcrunch.com/feed/", "TechCrunch", "Technology"),
    RSSFeed("https://feeds.arstechnica.com/arstechnica/index", "Ars Technica", "Technology"),
    RSSFeed("https://www.theverge.com/rss/index.xml", "The Verge", "Technology"),
)


class RSSAdapter(BaseAdapter):
    """
    Multi-feed RSS adapter.

    fetch() pulls every feed, or only the feeds of params.category. The
    first item of each feed is featured.
    """

    supports_category = True
    supports_search = True

    def __init__(
        self,
        feeds: tuple[RSSFeed, ...] | list[RSSFeed] | None = None,
        per_feed: int = DEFAULT_PER_FEED,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self._feeds = tuple(feeds) if feeds is not None else RSS_FEEDS
        self._per_feed = per_feed

    @property
    def source_key(self) -> str:
        return "rss"

    @property
    def display_name(self) -> str:
        return "RSS Feeds"

    @property
    def feeds(self) -> tuple[RSSFeed, ...]:
        return self._feeds

    def feeds_for(self, category: str | None) -> list[RSSFeed]:
        """Feeds whose canonical category matches (all feeds for None)."""
        if not category:
            return list(self._feeds)
        wanted = Category.from_name(category) or RSS_CATEGORY_MAP.get(category.strip().lower())
        if wanted is None:
            return []
        return [f for f in self._feeds if f.canonical_category is wanted]

    async def fetch_category(self, category: str, limit: int = 20) -> list[Article]:
        if not self.feeds_for(category):
            return []
        articles = await self.fetch(FetchParams(category=category, limit=limit))
        return articles[:limit]

    async def search(self, query: str, limit: int = 20) -> list[Article]:
        """Substring search over freshly fetched feed items."""
        needle = query.strip().lower()
        if not needle:
            return []
        articles = await self.fetch(FetchParams(limit=10))
        matches = [
            a for a in articles
            if needle in a.title.lower()
            or needle in a.excerpt.lower()
            or needle in a.content.lower()
        ]
        return matches[:limit]

    async def _fetch_raw(
        self,
        client: HTTPClient,
        params: FetchParams,
    ) -> list[dict[str, Any]]:
        feeds = self.feeds_for(params.category)
        if not feeds:
            return []

        per_feed = min(params.limit, self._per_feed) if params.category is None else params.limit
        outcomes = await run_isolated([
            (feed.url, partial(self._fetch_feed, client, feed, per_feed))
            for feed in feeds
        ])

        records: list[dict[str, Any]] = []
        failures: list[BaseException] = []
        for feed, outcome in zip(feeds, outcomes):
            if not outcome.ok:
                logger.warning(f"RSS feed {feed.source} ({feed.url}) failed: {outcome.error}")
                failures.append(outcome.error)
                continue
            records.extend(outcome.value or [])

        if failures and len(failures) == len(outcomes):
            raise failures[0]

        logger.info(f"Fetched {len(records)} RSS items from {len(feeds) - len(failures)}/{len(feeds)} feeds")
        return records

    async def _fetch_feed(
        self,
        client: HTTPClient,
        feed: RSSFeed,
        limit: int,
    ) -> list[dict[str, Any]]:
        """Download and parse one feed, tagging each entry with its feed and position."""
        body = await client.get_text(feed.url)
        parsed = feedparser.parse(body)

        entries = parsed.get("entries", [])
        if parsed.get("bozo") and not entries:
            raise UpstreamError(f"Malformed feed {feed.url}: {parsed.get('bozo_exception')}")

        return [
            {"feed": feed, "position": position, "entry": entry}
            for position, entry in enumerate(entries[:limit])
        ]

    def _transform(self, raw: dict[str, Any], context: TransformContext) -> Article | None:
        feed: RSSFeed = raw["feed"]
        entry = raw["entry"]

        title = strip_html(entry.get("title") or "")
        link = (entry.get("link") or "").strip()
        if not title or not link:
            return None

        summary = strip_html(entry.get("summary") or "")
        body = ""
        if entry.get("content"):
            body = strip_html(entry["content"][0].get("value") or "")

        identifier = str(entry.get("id") or entry.get("guid") or link)
        published_at = self._parse_timestamp(entry)
        tags = [t.get("term") for t in entry.get("tags") or [] if t.get("term")]

        return Article(
            id=make_article_id(feed.id_prefix, identifier, context.index),
            title=title,
            slug=generate_slug(title) or make_article_id(feed.id_prefix, identifier),
            excerpt=make_excerpt(summary or body or title),
            content=make_preview(body or summary),
            author=(entry.get("author") or "").strip() or DEFAULT_AUTHOR,
            category=feed.canonical_category,
            tags=tags or generate_tags(title, summary),
            image_url=self._pick_image(entry),
            published_at=published_at,
            updated_at=published_at,
            featured=raw["position"] == 0,
            source=feed.source,
            source_url=link,
            source_domain=extract_domain(link),
        )

    @staticmethod
    def _parse_timestamp(entry: dict[str, Any]) -> datetime:
        """feedparser normalizes dates to UTC struct_time; fall back to now."""
        for field_name in ("published_parsed", "updated_parsed"):
            value = entry.get(field_name)
            if value:
                return parse_unix_timestamp(calendar.timegm(value))
        return datetime.now(timezone.utc)

    @staticmethod
    def _pick_image(entry: dict[str, Any]) -> str | None:
        for field_name in ("media_content", "media_thumbnail"):
            media = entry.get(field_name)
            if media and media[0].get("url"):
                return media[0]["url"]
        return None
