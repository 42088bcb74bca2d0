"""Tests for ArticleRepository."""

from unittest.mock import AsyncMock

import asyncpg
import pytest

from archv.ingestion.errors import StoreError
from archv.ingestion.schemas import Article, Category
from archv.query.schemas import ArticleFilters, SortOption
from archv.storage.repository import ArticleRepository, tag_slug


class TestSchema:
    """Tests for table creation and seeding."""

    @pytest.mark.asyncio
    async def test_create_tables(self, mock_database: AsyncMock) -> None:
        await ArticleRepository(mock_database).create_tables()

        sql = mock_database.execute.call_args[0][0]
        for table in ("categories", "tags", "articles", "article_tags"):
            assert f"CREATE TABLE IF NOT EXISTS {table}" in sql
        assert "slug TEXT NOT NULL UNIQUE" in sql

    @pytest.mark.asyncio
    async def test_seed_categories(self, mock_database: AsyncMock) -> None:
        await ArticleRepository(mock_database).seed_categories()

        args = mock_database.execute.call_args[0]
        assert "ON CONFLICT (slug) DO NOTHING" in args[0]
        assert args[1] == [c.value for c in Category]
        assert args[2] == [c.slug for c in Category]
        assert len(args[3]) == len(Category)


class TestFindMany:
    """Tests for filtered listing queries."""

    @pytest.mark.asyncio
    async def test_no_filters(self, mock_database: AsyncMock) -> None:
        await ArticleRepository(mock_database).find_many(ArticleFilters(), SortOption.NEWEST, skip=24, take=12)

        args = mock_database.fetch.call_args[0]
        sql = args[0]
        assert "WHERE TRUE" in sql
        assert "ORDER BY a.published_at DESC" in sql
        assert "LIMIT $1 OFFSET $2" in sql
        assert args[1:] == (12, 24)

    @pytest.mark.asyncio
    async def test_all_filters(self, mock_database: AsyncMock) -> None:
        filters = ArticleFilters(category="Technology", featured=True, tags=["Machine Learning"], search="50%_off")

        await ArticleRepository(mock_database).find_many(filters, SortOption.TITLE)

        args = mock_database.fetch.call_args[0]
        sql = args[0]
        assert "c.slug = $1" in sql
        assert "a.featured = $2" in sql
        assert "ftag.slug = ANY($3::text[])" in sql
        assert "a.title ILIKE $4" in sql
        assert "ORDER BY a.title ASC" in sql
        assert "LIMIT $5 OFFSET $6" in sql
        assert args[1] == "technology"
        assert args[2] is True
        assert args[3] == ["machine-learning"]
        assert args[4] == "%50\\%\\_off%"

    @pytest.mark.asyncio
    async def test_rows_converted(self, mock_database: AsyncMock, sample_db_row: dict) -> None:
        mock_database.fetch.return_value = [sample_db_row]

        articles = await ArticleRepository(mock_database).find_many(ArticleFilters())

        article = articles[0]
        assert isinstance(article, Article)
        assert article.category is Category.POLITICS
        assert article.tags == ("budget", "city council")
        assert article.featured is True

    @pytest.mark.asyncio
    async def test_tags_read_back_by_name(self, mock_database: AsyncMock) -> None:
        await ArticleRepository(mock_database).find_many(ArticleFilters())

        sql = mock_database.fetch.call_args[0][0]
        assert "ARRAY_AGG(t.name ORDER BY t.name)" in sql
        assert "ARRAY_AGG(t.slug" not in sql

    @pytest.mark.asyncio
    async def test_count_uses_same_filters(self, mock_database: AsyncMock) -> None:
        mock_database.fetchval.return_value = 7

        total = await ArticleRepository(mock_database).count(ArticleFilters(category="Sports"))

        args = mock_database.fetchval.call_args[0]
        assert "SELECT COUNT(*)" in args[0]
        assert "c.slug = $1" in args[0]
        assert args[1] == "sports"
        assert total == 7

    @pytest.mark.asyncio
    async def test_driver_error_becomes_store_error(self, mock_database: AsyncMock) -> None:
        mock_database.fetch.side_effect = asyncpg.PostgresError("relation does not exist")

        with pytest.raises(StoreError) as exc_info:
            await ArticleRepository(mock_database).find_many(ArticleFilters())

        assert exc_info.value.operation == "find_many"

    @pytest.mark.asyncio
    async def test_connection_error_becomes_store_error(self, mock_database: AsyncMock) -> None:
        mock_database.fetchval.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(StoreError):
            await ArticleRepository(mock_database).count(ArticleFilters())


class TestFindUnique:
    """Tests for single-row lookups."""

    @pytest.mark.asyncio
    async def test_by_slug(self, mock_database: AsyncMock, sample_db_row: dict) -> None:
        mock_database.fetchrow.return_value = sample_db_row

        article = await ArticleRepository(mock_database).find_unique(slug="city-council-approves-budget")

        args = mock_database.fetchrow.call_args[0]
        assert "a.slug = $1" in args[0]
        assert args[1] == "city-council-approves-budget"
        assert article.id == "nyt-abc123-0"

    @pytest.mark.asyncio
    async def test_not_found(self, mock_database: AsyncMock) -> None:
        assert await ArticleRepository(mock_database).find_unique(id="missing") is None

    @pytest.mark.asyncio
    async def test_requires_exactly_one_key(self, mock_database: AsyncMock) -> None:
        with pytest.raises(ValueError):
            await ArticleRepository(mock_database).find_unique(id="a", slug="b")


class TestCreate:
    """Tests for the write path."""

    @pytest.mark.asyncio
    async def test_create_passes_article_fields(self, mock_database: AsyncMock, sample_article: Article) -> None:
        mock_database.fetchval.return_value = sample_article.id

        created = await ArticleRepository(mock_database).create(sample_article)

        args = mock_database.fetchval.call_args[0]
        sql = args[0]
        assert "INSERT INTO articles" in sql
        assert "ON CONFLICT DO NOTHING" in sql
        assert args[1] == sample_article.id
        assert args[3] == sample_article.slug
        assert args[12] == "Business"
        assert args[13] == "business"
        assert args[17] == ["markets", "rates"]
        assert args[18] == ["markets", "rates"]
        assert created == sample_article.id

    @pytest.mark.asyncio
    async def test_duplicate_slug_skipped(self, mock_database: AsyncMock, sample_article: Article) -> None:
        mock_database.fetchval.return_value = None

        assert await ArticleRepository(mock_database).create(sample_article) is None

    @pytest.mark.asyncio
    async def test_create_many_counts(self, mock_database: AsyncMock, make_article) -> None:
        mock_database.fetchval.side_effect = ["a", None, "c"]
        articles = [make_article("One"), make_article("Two"), make_article("Three")]

        assert await ArticleRepository(mock_database).create_many(articles) == (2, 1)

    def test_tag_slug(self):
        assert tag_slug("  Machine   Learning ") == "machine-learning"


class TestUpdateDelete:
    """Tests for update, delete and sample cleanup."""

    @pytest.mark.asyncio
    async def test_update_columns_and_category(self, mock_database: AsyncMock, sample_db_row: dict) -> None:
        mock_database.fetchval.return_value = "nyt-abc123-0"
        mock_database.fetchrow.return_value = sample_db_row

        article = await ArticleRepository(mock_database).update(
            "nyt-abc123-0", {"featured": False, "category": "politics"}
        )

        args = mock_database.fetchval.call_args[0]
        assert args[0].startswith("UPDATE articles SET featured = $1, category_id =")
        assert args[1:] == (False, "politics", "nyt-abc123-0")
        assert article is not None

    @pytest.mark.asyncio
    async def test_update_missing_article(self, mock_database: AsyncMock) -> None:
        assert await ArticleRepository(mock_database).update("missing", {"title": "New"}) is None

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_columns(self, mock_database: AsyncMock) -> None:
        with pytest.raises(ValueError):
            await ArticleRepository(mock_database).update("x", {"slug": "other"})

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_category(self, mock_database: AsyncMock) -> None:
        with pytest.raises(ValueError):
            await ArticleRepository(mock_database).update("x", {"category": "Weather"})

    @pytest.mark.asyncio
    async def test_delete(self, mock_database: AsyncMock) -> None:
        mock_database.execute.return_value = "DELETE 1"

        assert await ArticleRepository(mock_database).delete("x") is True

        mock_database.execute.return_value = "DELETE 0"
        assert await ArticleRepository(mock_database).delete("x") is False

    @pytest.mark.asyncio
    async def test_delete_samples(self, mock_database: AsyncMock) -> None:
        mock_database.execute.return_value = "DELETE 14"

        deleted = await ArticleRepository(mock_database).delete_samples()

        args = mock_database.execute.call_args[0]
        assert args[1:] == ("News Network", "newsnetwork.com", "%example.com%")
        assert deleted == 14

    @pytest.mark.asyncio
    async def test_count_by_source(self, mock_database: AsyncMock) -> None:
        mock_database.fetch.return_value = [{"source": "NPR", "n": 4}, {"source": "BBC News", "n": 2}]

        assert await ArticleRepository(mock_database).count_by_source() == {"NPR": 4, "BBC News": 2}
