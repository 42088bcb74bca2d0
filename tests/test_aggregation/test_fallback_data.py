"""Tests for the placeholder dataset."""

from datetime import datetime, timezone

from archv.aggregation.fallback_data import (
    SAMPLE_SOURCE,
    SAMPLE_URL_HOST,
    fallback_articles,
    fallback_for_category,
)
from archv.ingestion.schemas import Category

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class TestFallbackArticles:
    """Tests for fallback_articles."""

    def test_covers_every_category(self):
        categories = {a.category for a in fallback_articles(NOW)}
        assert categories == set(Category)

    def test_sorted_newest_first_and_relative_to_now(self):
        articles = fallback_articles(NOW)
        timestamps = [a.published_at for a in articles]
        assert timestamps == sorted(timestamps, reverse=True)
        assert all(ts < NOW for ts in timestamps)

    def test_attributed_to_sample_source(self):
        for article in fallback_articles(NOW):
            assert article.source == SAMPLE_SOURCE
            assert SAMPLE_URL_HOST in article.source_url
            assert article.id.startswith("sample-")

    def test_unique_slugs(self):
        slugs = [a.slug for a in fallback_articles(NOW)]
        assert len(slugs) == len(set(slugs))

    def test_has_featured_articles(self):
        assert any(a.featured for a in fallback_articles(NOW))


class TestFallbackForCategory:
    """Tests for fallback_for_category."""

    def test_case_insensitive(self):
        articles = fallback_for_category("technology", NOW)
        assert articles
        assert all(a.category is Category.TECHNOLOGY for a in articles)

    def test_unknown_category(self):
        assert fallback_for_category("Weather", NOW) == []
