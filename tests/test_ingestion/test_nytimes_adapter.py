"""Tests for the New York Times adapter."""

from datetime import datetime, timezone

import httpx
import pytest
import respx

from archv.ingestion.base_adapter import FetchParams
from archv.ingestion.errors import UpstreamError
from archv.ingestion.http_client import RetryConfig
from archv.ingestion.nytimes_adapter import NYTIMES_BASE_URL, NYTimesAdapter
from archv.ingestion.schemas import Category

NO_RETRY = RetryConfig(max_retries=0)

MOST_POPULAR_URL = f"{NYTIMES_BASE_URL}/mostpopular/v2/viewed/7.json"
SEARCH_URL = f"{NYTIMES_BASE_URL}/search/v2/articlesearch.json"


def _popular(title: str, **overrides) -> dict:
    raw = {
        "id": 100000009,
        "url": "https://www.nytimes.com/2025/03/10/us/politics/vote.html",
        "section": "U.S.",
        "byline": "By Maggie Haberman",
        "title": title,
        "abstract": f"Abstract of {title}",
        "published_date": "2025-03-10",
        "updated": "2025-03-10 08:00:00",
        "adx_keywords": "Elections;Voting;Congress",
        "media": [
            {
                "media-metadata": [
                    {"url": "https://static01.nyt.com/thumb.jpg", "width": 75},
                    {"url": "https://static01.nyt.com/large.jpg", "width": 440},
                ]
            }
        ],
    }
    raw.update(overrides)
    return raw


def _top_story(title: str) -> dict:
    return {
        "section": "technology",
        "title": title,
        "abstract": f"Abstract of {title}",
        "url": f"https://www.nytimes.com/2025/03/10/technology/{title.lower().replace(' ', '-')}.html",
        "uri": f"nyt://article/{title}",
        "byline": "",
        "published_date": "2025-03-10T05:00:00-04:00",
        "updated_date": "2025-03-10T07:00:00-04:00",
        "des_facet": ["Artificial Intelligence"],
        "multimedia": [{"url": "https://static01.nyt.com/tech.jpg", "width": 2048}],
    }


@pytest.fixture
def adapter() -> NYTimesAdapter:
    return NYTimesAdapter(api_key="nyt-key", retry_config=NO_RETRY)


class TestMostPopular:
    """Tests for the default most-popular fetch."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_transforms_most_popular(self, adapter: NYTimesAdapter):
        route = respx.get(MOST_POPULAR_URL).mock(
            return_value=httpx.Response(
                200,
                json={"status": "OK", "results": [_popular("Senate Passes Bill"), _popular("Second"), _popular("Third")]},
            )
        )

        articles = await adapter.fetch_most_popular()

        assert route.calls.last.request.url.params["api-key"] == "nyt-key"
        first = articles[0]
        assert first.id.startswith("nyt-")
        assert first.author == "Maggie Haberman"
        assert first.category is Category.WORLD
        assert first.tags == ("elections", "voting", "congress")
        assert first.image_url == "https://static01.nyt.com/large.jpg"
        assert first.published_at == datetime(2025, 3, 10, tzinfo=timezone.utc)
        assert first.updated_at == datetime(2025, 3, 10, 8, tzinfo=timezone.utc)
        assert first.source == "The New York Times"
        assert first.source_domain == "nytimes.com"
        assert [a.featured for a in articles] == [True, True, False]

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_abstract_rejected(self, adapter: NYTimesAdapter):
        respx.get(MOST_POPULAR_URL).mock(
            return_value=httpx.Response(200, json={"status": "OK", "results": [_popular("Bare", abstract="")]})
        )

        assert await adapter.fetch_most_popular() == []

    @pytest.mark.asyncio
    async def test_invalid_period(self, adapter: NYTimesAdapter):
        with pytest.raises(ValueError):
            await adapter.fetch(FetchParams(period=3))

    @pytest.mark.asyncio
    @respx.mock
    async def test_bad_status(self, adapter: NYTimesAdapter):
        respx.get(MOST_POPULAR_URL).mock(return_value=httpx.Response(200, json={"status": "ERROR"}))

        with pytest.raises(UpstreamError):
            await adapter.fetch_most_popular()


class TestTopStories:
    """Tests for section and category fetches."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_category_maps_to_section(self, adapter: NYTimesAdapter):
        route = respx.get(f"{NYTIMES_BASE_URL}/topstories/v2/arts.json").mock(
            return_value=httpx.Response(200, json={"status": "OK", "results": [_top_story("Gallery Opens")]})
        )

        articles = await adapter.fetch_category("Entertainment")

        assert route.called
        assert len(articles) == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_raw_section_name(self, adapter: NYTimesAdapter):
        route = respx.get(f"{NYTIMES_BASE_URL}/topstories/v2/movies.json").mock(
            return_value=httpx.Response(200, json={"status": "OK", "results": [_top_story("New Release")]})
        )

        assert len(await adapter.fetch_category("Movies")) == 1
        assert route.called

    @pytest.mark.asyncio
    @pytest.mark.parametrize("category", ["Gaming", "u.s.", "../home"])
    async def test_unknown_category_makes_no_request(self, adapter: NYTimesAdapter, category: str):
        with respx.mock() as router:
            assert await adapter.fetch_category(category) == []

        assert not router.calls

    @pytest.mark.asyncio
    @respx.mock
    async def test_top_story_fields(self, adapter: NYTimesAdapter):
        respx.get(f"{NYTIMES_BASE_URL}/topstories/v2/technology.json").mock(
            return_value=httpx.Response(
                200,
                json={"status": "OK", "results": [_top_story(f"Story {i}") for i in range(30)]},
            )
        )

        articles = await adapter.fetch_top_stories("technology")

        assert len(articles) == 20
        first = articles[0]
        assert first.category is Category.TECHNOLOGY
        assert first.author == "The New York Times"
        assert first.tags == ("artificial intelligence",)
        assert first.image_url == "https://static01.nyt.com/tech.jpg"
        assert first.published_at == datetime(2025, 3, 10, 9, tzinfo=timezone.utc)
        assert first.updated_at == datetime(2025, 3, 10, 11, tzinfo=timezone.utc)


class TestSearch:
    """Tests for article search."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_search_docs(self, adapter: NYTimesAdapter):
        doc = {
            "_id": "nyt://article/abc",
            "web_url": "https://www.nytimes.com/2025/03/09/science/mars.html",
            "headline": {"main": "Ice Found on Mars"},
            "abstract": "",
            "snippet": "Rover data reveals ice.",
            "lead_paragraph": "Scientists announced on Sunday...",
            "byline": {"original": "By Kenneth Chang"},
            "section_name": "Science",
            "pub_date": "2025-03-09T14:00:00+0000",
            "keywords": [{"name": "subject", "value": "Mars (Planet)"}],
            "multimedia": [{"url": "images/2025/03/09/mars.jpg"}],
        }
        route = respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(200, json={"status": "OK", "response": {"docs": [doc]}})
        )

        articles = await adapter.search("mars")

        assert route.calls.last.request.url.params["q"] == "mars"
        article = articles[0]
        assert article.id.startswith("nyt-search-")
        assert article.excerpt == "Rover data reveals ice."
        assert article.content == "Scientists announced on Sunday..."
        assert article.author == "Kenneth Chang"
        assert article.category is Category.SCIENCE
        assert article.tags == ("mars (planet)",)
        assert article.image_url == "https://www.nytimes.com/images/2025/03/09/mars.jpg"
        assert article.featured is False
