"""Query-side request and result schemas."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from archv.ingestion.schemas import Article
from archv.query.pagination import MAX_LIMIT


class SortOption(str, Enum):
    """Exactly one active sort key."""

    NEWEST = "newest"  # published_at desc
    OLDEST = "oldest"  # published_at asc
    TITLE = "title"  # title asc


class ArticleFilters(BaseModel):
    """
    Optional, independently composable article filters.

    All set filters must match (AND). Within tags any overlap matches;
    search is a case-insensitive substring over title, excerpt or content.
    """

    model_config = ConfigDict(frozen=True)

    category: str | None = None
    tags: tuple[str, ...] = ()
    featured: bool | None = None
    search: str | None = None

    @field_validator("category", "search")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v) -> tuple[str, ...]:
        return tuple(t.strip().lower() for t in v or () if t and t.strip())

    @property
    def is_empty(self) -> bool:
        return not (self.category or self.tags or self.featured is not None or self.search)

    def matches(self, article: Article) -> bool:
        if self.category and article.category.value.lower() != self.category.lower():
            return False
        if self.featured is not None and article.featured != self.featured:
            return False
        if self.tags and not set(self.tags) & set(article.tags):
            return False
        if self.search:
            needle = self.search.lower()
            haystacks = (article.title, article.excerpt, article.content)
            if not any(needle in h.lower() for h in haystacks):
                return False
        return True


class PaginationOptions(BaseModel):
    """1-indexed page request."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=12, ge=1, le=MAX_LIMIT)


class ArticleListResult(BaseModel):
    """One page of a filtered, sorted article listing."""

    articles: list[Article] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    total_pages: int = 0
    has_more: bool = False

    @classmethod
    def empty(cls, page: int) -> "ArticleListResult":
        """Well-formed empty page, returned when the store is unavailable."""
        return cls(articles=[], total=0, page=page, total_pages=0, has_more=False)
