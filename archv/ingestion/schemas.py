"""
Canonical article schema for the archv pipeline.

CRITICAL: Every source adapter MUST output this exact structure. The
aggregator, query service, repository and presentation layer all depend on
these field names. Articles are frozen once constructed.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Attribution boundary: previews never carry the full upstream body.
EXCERPT_MAX_LENGTH = 300
CONTENT_MAX_LENGTH = 500
MAX_TAGS = 5


class Category(str, Enum):
    """Fixed set of display categories."""

    WORLD = "World"
    POLITICS = "Politics"
    BUSINESS = "Business"
    TECHNOLOGY = "Technology"
    SPORTS = "Sports"
    ENTERTAINMENT = "Entertainment"
    SCIENCE = "Science"
    HEALTH = "Health"

    @property
    def slug(self) -> str:
        return self.value.lower()

    @classmethod
    def from_name(cls, name: str) -> "Category | None":
        """Resolve a category by case-insensitive name, or None."""
        needle = (name or "").strip().lower()
        for member in cls:
            if member.value.lower() == needle:
                return member
        return None


DEFAULT_CATEGORY = Category.WORLD


class Article(BaseModel):
    """
    CANONICAL ARTICLE SCHEMA

    Built fresh on every fetch cycle. Persisted copies are owned by the
    repository and keyed by slug.
    """

    model_config = ConfigDict(frozen=True)

    # Identity
    id: str = Field(
        ...,
        min_length=1,
        description="Source-prefixed unique ID",
        examples=["newsapi-business-3f9a1c2b4d5e6f70-0", "nyt-100000009-1"],
    )
    title: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1, description="URL-safe slug derived from title")

    # Content
    excerpt: str = Field(..., min_length=1, max_length=EXCERPT_MAX_LENGTH)
    content: str = Field(default="", description="Bounded preview, never the full body")
    author: str = Field(..., min_length=1)
    category: Category = DEFAULT_CATEGORY
    tags: tuple[str, ...] = Field(default_factory=tuple)
    image_url: str | None = None

    # Timestamps
    published_at: datetime
    updated_at: datetime | None = None

    featured: bool = False

    # Attribution
    source: str = Field(..., min_length=1, description="Publication display name")
    source_url: str = Field(..., min_length=1, description="Link to the original article")
    source_domain: str | None = None

    @field_validator("title", "author", "source", "source_url")
    @classmethod
    def strip_required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> tuple[str, ...]:
        """Lowercase, drop blanks and duplicates, cap at MAX_TAGS."""
        normalized: list[str] = []
        for tag in v or ():
            t = str(tag).strip().lower()
            if t and t not in normalized:
                normalized.append(t)
        return tuple(normalized[:MAX_TAGS])

    @field_validator("published_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        if v is None:
            return v
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode="after")
    def default_updated_at(self) -> "Article":
        if self.updated_at is None:
            # Frozen model: bypass __setattr__ during construction only.
            object.__setattr__(self, "updated_at", self.published_at)
        return self

    @property
    def dedup_key(self) -> str:
        """Normalized title used for cross-source deduplication."""
        return self.title.strip().lower()

    def to_storage_dict(self) -> dict[str, Any]:
        """Convert to a dict of column values for the repository."""
        data = self.model_dump()
        data["category"] = self.category.value
        data["tags"] = list(self.tags)
        return data
