"""
Article query service - filtered, sorted, paginated article listings.

Sits between the presentation layer and a backing store. Store failures
never propagate: listings degrade to a well-formed empty page and
lookups to None, with the failure logged.
"""

from typing import Protocol

import structlog

from archv.config.settings import get_settings
from archv.ingestion.errors import StoreError
from archv.ingestion.schemas import Article
from archv.observability.metrics import get_metrics
from archv.query import pagination
from archv.query.schemas import (
    ArticleFilters,
    ArticleListResult,
    PaginationOptions,
    SortOption,
)

logger = structlog.get_logger(__name__)

ALL_ARTICLES_LIMIT = 100
DEFAULT_FEATURED_LIMIT = 5


class ArticleStore(Protocol):
    """Filter/sort/paginate capability the query service relies on."""

    async def find_many(
        self,
        filters: ArticleFilters,
        sort: SortOption = SortOption.NEWEST,
        skip: int = 0,
        take: int = 12,
    ) -> list[Article]: ...

    async def count(self, filters: ArticleFilters) -> int: ...

    async def find_unique(self, *, id: str | None = None, slug: str | None = None) -> Article | None: ...


class ArticleQueryService:
    """
    Article listings over any ArticleStore.

    Usage:
        service = ArticleQueryService(ArticleRepository(db))
        result = await service.list_articles(
            ArticleFilters(category="Technology"),
            SortOption.NEWEST,
            PaginationOptions(page=2, limit=12),
        )
    """

    def __init__(self, store: ArticleStore):
        self._store = store
        self._metrics = get_metrics()

    async def list_articles(
        self,
        filters: ArticleFilters | None = None,
        sort: SortOption = SortOption.NEWEST,
        page_options: PaginationOptions | None = None,
    ) -> ArticleListResult:
        """
        One page of matching articles.

        Filtering and sorting happen before the page is cut. On a store
        failure returns ArticleListResult.empty(requested page).
        """
        filters = filters or ArticleFilters()
        page_options = page_options or PaginationOptions(limit=get_settings().items_per_page)
        requested_page = page_options.page
        limit = page_options.limit

        try:
            total = await self._store.count(filters)
            articles = await self._store.find_many(
                filters,
                sort,
                skip=pagination.skip_value(requested_page, limit),
                take=limit,
            )
        except StoreError as e:
            logger.error(
                "Article listing failed",
                operation=e.operation,
                error=str(e),
                filters=filters.model_dump(),
                sort=sort.value,
                page=requested_page,
                limit=limit,
            )
            self._metrics.record_store_error(e.operation)
            return ArticleListResult.empty(requested_page)

        total_pages = pagination.total_pages_for(total, limit)
        return ArticleListResult(
            articles=articles,
            total=total,
            page=requested_page,
            total_pages=total_pages,
            has_more=requested_page < total_pages,
        )

    async def get_by_id(self, article_id: str) -> Article | None:
        return await self._find_unique(id=article_id)

    async def get_by_slug(self, slug: str) -> Article | None:
        return await self._find_unique(slug=slug)

    async def _find_unique(self, **key: str) -> Article | None:
        try:
            article = await self._store.find_unique(**key)
        except StoreError as e:
            logger.error("Article lookup failed", error=str(e), **key)
            self._metrics.record_store_error(e.operation)
            return None
        logger.debug("Article lookup", found=article is not None, **key)
        return article

    async def featured(self, limit: int = DEFAULT_FEATURED_LIMIT) -> list[Article]:
        """Newest featured articles."""
        result = await self.list_articles(
            ArticleFilters(featured=True),
            SortOption.NEWEST,
            PaginationOptions(page=1, limit=limit),
        )
        return result.articles

    async def by_category(
        self,
        category: str,
        page: int = 1,
        limit: int | None = None,
        sort: SortOption = SortOption.NEWEST,
    ) -> ArticleListResult:
        return await self.list_articles(
            ArticleFilters(category=category),
            sort,
            PaginationOptions(page=page, limit=limit or get_settings().items_per_page),
        )

    async def search(
        self,
        query: str,
        page: int = 1,
        limit: int | None = None,
        sort: SortOption = SortOption.NEWEST,
    ) -> ArticleListResult:
        return await self.list_articles(
            ArticleFilters(search=query),
            sort,
            PaginationOptions(page=page, limit=limit or get_settings().items_per_page),
        )

    async def all_articles(self) -> list[Article]:
        """First 100 articles, newest first."""
        result = await self.list_articles(
            ArticleFilters(),
            SortOption.NEWEST,
            PaginationOptions(page=1, limit=ALL_ARTICLES_LIMIT),
        )
        return result.articles
