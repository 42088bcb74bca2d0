"""
In-memory article store.

Serves listings straight from a live-fetched article list (for example
the aggregator's output) with the same find_many/count/find_unique
surface as the PostgreSQL repository.
"""

from collections.abc import Iterable

from archv.ingestion.schemas import Article
from archv.query.schemas import ArticleFilters, SortOption


def sort_articles(articles: Iterable[Article], sort: SortOption) -> list[Article]:
    """Stable sort by one key."""
    if sort is SortOption.TITLE:
        return sorted(articles, key=lambda a: a.title)
    return sorted(articles, key=lambda a: a.published_at, reverse=sort is SortOption.NEWEST)


class InMemoryArticleStore:
    """Read-only store over a fixed article list."""

    def __init__(self, articles: Iterable[Article] = ()):
        self._articles = list(articles)

    def replace(self, articles: Iterable[Article]) -> None:
        """Swap in a freshly fetched article list."""
        self._articles = list(articles)

    def __len__(self) -> int:
        return len(self._articles)

    async def find_many(
        self,
        filters: ArticleFilters,
        sort: SortOption = SortOption.NEWEST,
        skip: int = 0,
        take: int = 12,
    ) -> list[Article]:
        matched = [a for a in self._articles if filters.matches(a)]
        return sort_articles(matched, sort)[skip : skip + take]

    async def count(self, filters: ArticleFilters) -> int:
        return sum(1 for a in self._articles if filters.matches(a))

    async def find_unique(self, *, id: str | None = None, slug: str | None = None) -> Article | None:
        if (id is None) == (slug is None):
            raise ValueError("find_unique needs exactly one of id or slug")
        for article in self._articles:
            if (id is not None and article.id == id) or (slug is not None and article.slug == slug):
                return article
        return None
