"""Query layer - filtered, sorted and paginated article listings."""

from archv.query.memory_store import InMemoryArticleStore
from archv.query.schemas import ArticleFilters, ArticleListResult, PaginationOptions, SortOption
from archv.query.service import ArticleQueryService, ArticleStore

__all__ = [
    "ArticleFilters",
    "ArticleListResult",
    "ArticleQueryService",
    "ArticleStore",
    "InMemoryArticleStore",
    "PaginationOptions",
    "SortOption",
]
