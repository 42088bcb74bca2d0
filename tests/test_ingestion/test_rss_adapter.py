"""Tests for the RSS adapter."""

from datetime import datetime, timezone

import httpx
import pytest
import respx

from archv.ingestion.base_adapter import FetchParams
from archv.ingestion.errors import UpstreamError
from archv.ingestion.http_client import RetryConfig
from archv.ingestion.rss_adapter import RSS_FEEDS, RSSAdapter, RSSFeed
from archv.ingestion.schemas import Category

NO_RETRY = RetryConfig(max_retries=0)

TECH_FEED = RSSFeed("https://tech.example.test/feed", "Gadget Daily", "Technology")
WORLD_FEED = RSSFeed("https://world.example.test/rss.xml", "Globe Wire", "General")


def _rss(*items: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">'
        "<channel><title>Feed</title><link>https://example.test/</link><description>d</description>"
        + "".join(items)
        + "</channel></rss>"
    )


def _item(title: str, link: str, description: str = "A <b>short</b> summary.", extra: str = "") -> str:
    return (
        "<item>"
        f"<title>{title}</title>"
        f"<link>{link}</link>"
        f"<guid>{link}</guid>"
        f"<description><![CDATA[{description}]]></description>"
        "<pubDate>Mon, 10 Mar 2025 08:00:00 GMT</pubDate>"
        f"{extra}"
        "</item>"
    )


@pytest.fixture
def adapter() -> RSSAdapter:
    return RSSAdapter(feeds=[TECH_FEED, WORLD_FEED], retry_config=NO_RETRY)


class TestFeedSelection:
    """Tests for the static feed list."""

    def test_default_feeds(self):
        sources = {feed.source for feed in RSS_FEEDS}
        assert {"BBC News", "NPR", "TechCrunch", "Ars Technica", "The Verge"} <= sources

    def test_feeds_for_category(self, adapter: RSSAdapter):
        assert adapter.feeds_for("technology") == [TECH_FEED]
        assert adapter.feeds_for("World") == [WORLD_FEED]
        assert adapter.feeds_for(None) == [TECH_FEED, WORLD_FEED]
        assert adapter.feeds_for("Health") == []

    def test_id_prefix(self):
        assert TECH_FEED.id_prefix == "rss-gadget-daily"

    @pytest.mark.asyncio
    async def test_category_without_feeds(self, adapter: RSSAdapter):
        assert await adapter.fetch_category("Health") == []

    def test_unknown_category_selects_no_feeds(self, adapter: RSSAdapter):
        assert adapter.feeds_for("Gaming") == []
        assert adapter.feeds_for("general") == [WORLD_FEED]

    @pytest.mark.asyncio
    @respx.mock
    async def test_unknown_category_fetches_nothing(self, adapter: RSSAdapter):
        assert await adapter.fetch_category("Gaming") == []
        assert not respx.calls


class TestFetch:
    """Tests for fetching and transforming feed items."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_transforms_items(self, adapter: RSSAdapter):
        respx.get(TECH_FEED.url).mock(
            return_value=httpx.Response(
                200,
                text=_rss(
                    _item(
                        "New Phone Launches",
                        "https://www.gadget.example.test/phone",
                        extra="<category>Phones</category>"
                        '<media:thumbnail url="https://img.example.test/phone.jpg" />',
                    ),
                    _item("Laptop Review", "https://www.gadget.example.test/laptop"),
                ),
            )
        )

        articles = await adapter.fetch_category("Technology")

        first, second = articles
        assert first.id.startswith("rss-gadget-daily-")
        assert first.title == "New Phone Launches"
        assert first.excerpt == "A short summary."
        assert first.category is Category.TECHNOLOGY
        assert first.tags == ("phones",)
        assert first.image_url == "https://img.example.test/phone.jpg"
        assert first.published_at == datetime(2025, 3, 10, 8, tzinfo=timezone.utc)
        assert first.source == "Gadget Daily"
        assert first.source_domain == "gadget.example.test"
        assert first.author == "Staff"
        assert first.featured is True
        assert second.featured is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_one_failing_feed_is_isolated(self, adapter: RSSAdapter):
        respx.get(TECH_FEED.url).mock(return_value=httpx.Response(500))
        respx.get(WORLD_FEED.url).mock(
            return_value=httpx.Response(200, text=_rss(_item("Summit Opens", "https://globe.example.test/summit")))
        )

        articles = await adapter.fetch()

        assert [a.title for a in articles] == ["Summit Opens"]
        assert articles[0].category is Category.WORLD

    @pytest.mark.asyncio
    @respx.mock
    async def test_all_feeds_failing_raises(self, adapter: RSSAdapter):
        respx.get(TECH_FEED.url).mock(return_value=httpx.Response(500))
        respx.get(WORLD_FEED.url).mock(return_value=httpx.Response(404))

        with pytest.raises(UpstreamError):
            await adapter.fetch()

    @pytest.mark.asyncio
    @respx.mock
    async def test_per_feed_limit(self):
        adapter = RSSAdapter(feeds=[TECH_FEED], per_feed=2, retry_config=NO_RETRY)
        respx.get(TECH_FEED.url).mock(
            return_value=httpx.Response(
                200,
                text=_rss(*(_item(f"Item {i}", f"https://gadget.example.test/{i}") for i in range(6))),
            )
        )

        articles = await adapter.fetch(FetchParams(limit=10))

        assert len(articles) == 2


class TestSearch:
    """Tests for substring search over feed items."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_matches_title_or_summary(self, adapter: RSSAdapter):
        respx.get(TECH_FEED.url).mock(
            return_value=httpx.Response(
                200,
                text=_rss(
                    _item("Quantum Chip Unveiled", "https://gadget.example.test/q"),
                    _item("Battery Breakthrough", "https://gadget.example.test/b", description="Uses QUANTUM dots"),
                    _item("Unrelated", "https://gadget.example.test/u"),
                ),
            )
        )
        respx.get(WORLD_FEED.url).mock(return_value=httpx.Response(200, text=_rss()))

        articles = await adapter.search("quantum")

        assert {a.title for a in articles} == {"Quantum Chip Unveiled", "Battery Breakthrough"}

    @pytest.mark.asyncio
    async def test_blank_query(self, adapter: RSSAdapter):
        assert await adapter.search("  ") == []
