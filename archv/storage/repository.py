"""
Article repository for CRUD operations.

The sole writer of persisted articles. Articles are keyed by slug: a
create whose slug (or id) already exists is skipped, never overwritten.
Every asyncpg or connection failure surfaces as StoreError.

Tables:
    - categories: The fixed display categories
    - tags: Lowercase tag vocabulary, keyed by slug
    - articles: One row per persisted article
    - article_tags: Many-to-many between articles and tags
"""

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import Any

import asyncpg

from archv.aggregation.fallback_data import SAMPLE_DOMAIN, SAMPLE_SOURCE, SAMPLE_URL_HOST
from archv.ingestion.categories import CATEGORY_DESCRIPTIONS
from archv.ingestion.errors import StoreError
from archv.ingestion.schemas import Article, Category
from archv.query.schemas import ArticleFilters, SortOption
from archv.storage.database import Database

logger = logging.getLogger(__name__)

ORDER_BY: dict[SortOption, str] = {
    SortOption.NEWEST: "a.published_at DESC, a.id",
    SortOption.OLDEST: "a.published_at ASC, a.id",
    SortOption.TITLE: "a.title ASC, a.id",
}

# Columns update() may touch
UPDATABLE_COLUMNS = (
    "title",
    "excerpt",
    "content",
    "author",
    "image_url",
    "featured",
    "updated_at",
    "source",
    "source_url",
    "source_domain",
)

_SELECT_ARTICLES = """
    SELECT a.id, a.title, a.slug, a.excerpt, a.content, a.author,
           a.image_url, a.published_at, a.updated_at, a.featured,
           a.source, a.source_url, a.source_domain,
           c.name AS category_name,
           COALESCE(
               ARRAY_AGG(t.name ORDER BY t.name) FILTER (WHERE t.name IS NOT NULL),
               '{}'
           ) AS tags
    FROM articles a
    JOIN categories c ON c.id = a.category_id
    LEFT JOIN article_tags at ON at.article_id = a.id
    LEFT JOIN tags t ON t.id = at.tag_id
"""


def tag_slug(tag: str) -> str:
    """Tag slug: lowercase with spaces replaced by '-'."""
    return "-".join(tag.strip().lower().split())


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _rows_affected(status: str) -> int:
    """Parse the row count from a status string like 'DELETE 3'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError, IndexError):
        return 0


class ArticleRepository:
    """
    Repository for article storage and retrieval.

    Implements the ArticleStore surface used by ArticleQueryService
    (find_many, count, find_unique) plus the write path used by the
    sync job and CLI.
    """

    def __init__(self, database: Database):
        """
        Initialize repository.

        Args:
            database: Connected Database instance
        """
        self._db = database

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        """Translate driver and connection failures into StoreError."""
        try:
            yield
        except StoreError:
            raise
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"Article store operation {operation} failed: {e}")
            raise StoreError(operation, e) from e

    async def create_tables(self) -> None:
        """Create tables and indexes if they don't exist."""
        create_sql = """
        CREATE TABLE IF NOT EXISTS categories (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            slug TEXT NOT NULL UNIQUE,
            description TEXT
        );

        CREATE TABLE IF NOT EXISTS tags (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            slug TEXT NOT NULL UNIQUE
        );

        CREATE TABLE IF NOT EXISTS articles (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            slug TEXT NOT NULL UNIQUE,
            excerpt TEXT NOT NULL,
            content TEXT NOT NULL DEFAULT '',
            author TEXT NOT NULL,
            category_id INTEGER NOT NULL REFERENCES categories(id),
            image_url TEXT,
            published_at TIMESTAMPTZ NOT NULL,
            updated_at TIMESTAMPTZ NOT NULL,
            featured BOOLEAN NOT NULL DEFAULT FALSE,
            source TEXT NOT NULL,
            source_url TEXT NOT NULL,
            source_domain TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        );

        CREATE TABLE IF NOT EXISTS article_tags (
            article_id TEXT NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
            tag_id INTEGER NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
            PRIMARY KEY (article_id, tag_id)
        );

        CREATE INDEX IF NOT EXISTS idx_articles_published_at
            ON articles(published_at DESC);
        CREATE INDEX IF NOT EXISTS idx_articles_category
            ON articles(category_id);
        CREATE INDEX IF NOT EXISTS idx_articles_featured
            ON articles(featured) WHERE featured;
        CREATE INDEX IF NOT EXISTS idx_articles_source
            ON articles(source);
        """
        async with self._guard("create_tables"):
            await self._db.execute(create_sql)
        logger.info("Article tables created/verified")

    async def seed_categories(self) -> None:
        """Insert the fixed categories (existing rows are left alone)."""
        categories = list(Category)
        sql = """
        INSERT INTO categories (name, slug, description)
        SELECT * FROM unnest($1::text[], $2::text[], $3::text[])
        ON CONFLICT (slug) DO NOTHING
        """
        async with self._guard("seed_categories"):
            await self._db.execute(
                sql,
                [c.value for c in categories],
                [c.slug for c in categories],
                [CATEGORY_DESCRIPTIONS.get(c, "") for c in categories],
            )

    def _build_filters(
        self,
        filters: ArticleFilters,
        param_idx: int = 1,
    ) -> tuple[str, list[Any], int]:
        """
        Build WHERE clause from article filters.

        Returns (where_clause, params, next_param_idx). Shared by
        find_many and count.
        """
        conditions: list[str] = []
        params: list[Any] = []

        if filters.category:
            conditions.append(f"c.slug = ${param_idx}")
            params.append(filters.category.lower())
            param_idx += 1

        if filters.featured is not None:
            conditions.append(f"a.featured = ${param_idx}")
            params.append(filters.featured)
            param_idx += 1

        if filters.tags:
            conditions.append(
                "EXISTS ("
                "SELECT 1 FROM article_tags ft JOIN tags ftag ON ftag.id = ft.tag_id "
                f"WHERE ft.article_id = a.id AND ftag.slug = ANY(${param_idx}::text[])"
                ")"
            )
            params.append([tag_slug(t) for t in filters.tags])
            param_idx += 1

        if filters.search:
            conditions.append(
                f"(a.title ILIKE ${param_idx} OR a.excerpt ILIKE ${param_idx} "
                f"OR a.content ILIKE ${param_idx})"
            )
            params.append(f"%{_escape_like(filters.search)}%")
            param_idx += 1

        where_clause = " AND ".join(conditions) if conditions else "TRUE"
        return where_clause, params, param_idx

    async def find_many(
        self,
        filters: ArticleFilters,
        sort: SortOption = SortOption.NEWEST,
        skip: int = 0,
        take: int = 12,
    ) -> list[Article]:
        """Filtered, sorted page of articles."""
        where_clause, params, idx = self._build_filters(filters)
        sql = f"""
            {_SELECT_ARTICLES}
            WHERE {where_clause}
            GROUP BY a.id, c.name
            ORDER BY {ORDER_BY[sort]}
            LIMIT ${idx} OFFSET ${idx + 1}
        """
        params.extend([take, skip])
        async with self._guard("find_many"):
            rows = await self._db.fetch(sql, *params)
        return [self._row_to_article(row) for row in rows]

    async def count(self, filters: ArticleFilters) -> int:
        """Count articles matching the same filters as find_many."""
        where_clause, params, _idx = self._build_filters(filters)
        sql = f"""
            SELECT COUNT(*) FROM articles a
            JOIN categories c ON c.id = a.category_id
            WHERE {where_clause}
        """
        async with self._guard("count"):
            return await self._db.fetchval(sql, *params) or 0

    async def find_unique(self, *, id: str | None = None, slug: str | None = None) -> Article | None:
        """Look up one article by id or by slug."""
        if (id is None) == (slug is None):
            raise ValueError("find_unique needs exactly one of id or slug")

        column, value = ("a.id", id) if id is not None else ("a.slug", slug)
        sql = f"""
            {_SELECT_ARTICLES}
            WHERE {column} = $1
            GROUP BY a.id, c.name
        """
        async with self._guard("find_unique"):
            row = await self._db.fetchrow(sql, value)
        return self._row_to_article(row) if row else None

    async def create(self, article: Article) -> str | None:
        """
        Persist an article with its category and tags.

        Runs as a single statement. Category and tags are upserted by
        slug. When an article with the same slug or id already exists
        nothing is written and None is returned.

        Returns:
            The new article id, or None when skipped as a duplicate
        """
        tag_names = list(article.tags)
        sql = """
        WITH category AS (
            INSERT INTO categories (name, slug, description)
            VALUES ($12, $13, $14)
            ON CONFLICT (slug) DO UPDATE SET name = EXCLUDED.name
            RETURNING id
        ), inserted AS (
            INSERT INTO articles (
                id, title, slug, excerpt, content, author, category_id,
                image_url, published_at, updated_at, featured,
                source, source_url, source_domain
            )
            SELECT $1, $2, $3, $4, $5, $6, category.id,
                   $7, $8, $9, $10, $11, $15, $16
            FROM category
            ON CONFLICT DO NOTHING
            RETURNING id
        ), tag_rows AS (
            INSERT INTO tags (name, slug)
            SELECT t.name, t.slug FROM unnest($17::text[], $18::text[]) AS t(name, slug)
            WHERE EXISTS (SELECT 1 FROM inserted)
            ON CONFLICT (slug) DO UPDATE SET name = tags.name
            RETURNING id
        ), links AS (
            INSERT INTO article_tags (article_id, tag_id)
            SELECT inserted.id, tag_rows.id FROM inserted CROSS JOIN tag_rows
            ON CONFLICT DO NOTHING
        )
        SELECT id FROM inserted
        """
        async with self._guard("create"):
            created_id = await self._db.fetchval(
                sql,
                article.id,
                article.title,
                article.slug,
                article.excerpt,
                article.content,
                article.author,
                article.image_url,
                article.published_at,
                article.updated_at,
                article.featured,
                article.source,
                article.category.value,
                article.category.slug,
                CATEGORY_DESCRIPTIONS.get(article.category, ""),
                article.source_url,
                article.source_domain,
                tag_names,
                [tag_slug(t) for t in tag_names],
            )

        if created_id is None:
            logger.debug(f"Skipped duplicate article slug={article.slug}")
        return created_id

    async def create_many(self, articles: Iterable[Article]) -> tuple[int, int]:
        """
        Persist articles one by one, skipping duplicates.

        Returns:
            (created, skipped)
        """
        created = skipped = 0
        for article in articles:
            if await self.create(article) is None:
                skipped += 1
            else:
                created += 1
        return created, skipped

    async def update(self, article_id: str, changes: dict[str, Any]) -> Article | None:
        """
        Update scalar columns (and optionally the category) of one article.

        Args:
            article_id: Article to change
            changes: Column values; 'category' takes a category name

        Returns:
            The updated article, or None if it does not exist
        """
        assignments: list[str] = []
        params: list[Any] = []
        idx = 1

        for column in UPDATABLE_COLUMNS:
            if column in changes:
                assignments.append(f"{column} = ${idx}")
                params.append(changes[column])
                idx += 1

        if "category" in changes:
            category = Category.from_name(str(changes["category"]))
            if category is None:
                raise ValueError(f"Unknown category {changes['category']!r}")
            assignments.append(f"category_id = (SELECT id FROM categories WHERE slug = ${idx})")
            params.append(category.slug)
            idx += 1

        unknown = set(changes) - set(UPDATABLE_COLUMNS) - {"category"}
        if unknown:
            raise ValueError(f"Cannot update columns: {sorted(unknown)}")
        if not assignments:
            return await self.find_unique(id=article_id)

        sql = f"UPDATE articles SET {', '.join(assignments)} WHERE id = ${idx} RETURNING id"
        params.append(article_id)

        async with self._guard("update"):
            updated = await self._db.fetchval(sql, *params)
        if updated is None:
            return None
        return await self.find_unique(id=article_id)

    async def delete(self, article_id: str) -> bool:
        """Delete one article (its tag links cascade)."""
        async with self._guard("delete"):
            status = await self._db.execute("DELETE FROM articles WHERE id = $1", article_id)
        return _rows_affected(status) > 0

    async def delete_samples(self) -> int:
        """
        Delete placeholder/sample articles.

        Matches the sample source name, the sample domain, or any
        source URL on the sample host.

        Returns:
            Number of articles deleted
        """
        sql = """
        DELETE FROM articles
        WHERE source = $1 OR source_domain = $2 OR source_url LIKE $3
        """
        async with self._guard("delete_samples"):
            status = await self._db.execute(
                sql,
                SAMPLE_SOURCE,
                SAMPLE_DOMAIN,
                f"%{SAMPLE_URL_HOST}%",
            )
        deleted = _rows_affected(status)
        logger.info(f"Deleted {deleted} sample articles")
        return deleted

    async def count_by_source(self) -> dict[str, int]:
        """Article counts per source, for health reporting."""
        async with self._guard("count_by_source"):
            rows = await self._db.fetch(
                "SELECT source, COUNT(*) AS n FROM articles GROUP BY source ORDER BY n DESC"
            )
        return {row["source"]: row["n"] for row in rows}

    def _row_to_article(self, row: asyncpg.Record) -> Article:
        """Convert database row to Article."""
        return Article(
            id=row["id"],
            title=row["title"],
            slug=row["slug"],
            excerpt=row["excerpt"],
            content=row["content"] or "",
            author=row["author"],
            category=Category.from_name(row["category_name"]) or Category.WORLD,
            tags=list(row["tags"] or []),
            image_url=row["image_url"],
            published_at=row["published_at"],
            updated_at=row["updated_at"],
            featured=row["featured"],
            source=row["source"],
            source_url=row["source_url"],
            source_domain=row["source_domain"],
        )
