"""
Deterministic derivation helpers shared by all source adapters.

Slugs, IDs, excerpts, tags and domains are all pure functions of their
inputs so the same upstream record always yields the same Article fields.
"""

import hashlib
import html
import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from archv.ingestion.schemas import CONTENT_MAX_LENGTH, EXCERPT_MAX_LENGTH, MAX_TAGS

SLUG_MAX_LENGTH = 100
MIN_TAG_WORD_LENGTH = 4
TRUNCATION_MARKER = "..."

STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "this", "that", "these", "those", "have", "has",
    "will", "would", "could", "should", "been", "were", "their", "there",
    "what", "when", "where", "which", "while", "about", "after", "before",
    "into", "over", "than", "then", "them", "they", "your", "more", "most",
    "says", "said", "just", "also", "like", "only", "some", "such", "very",
})

_SLUG_SEPARATOR_RE = re.compile(r"[^a-z0-9]+")
_TAG_WORD_RE = re.compile(rf"\b[a-z]{{{MIN_TAG_WORD_LENGTH},}}\b")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_BYLINE_PREFIX_RE = re.compile(r"^by\b\s*", re.IGNORECASE)
_COMPACT_OFFSET_RE = re.compile(r"([+-]\d{2})(\d{2})$")


def generate_slug(title: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """
    Build a URL-safe slug from a title.

    Lowercases, collapses every run of non-alphanumeric characters into a
    single '-', trims separators from both ends and caps the length.

    Args:
        title: Article title
        max_length: Maximum slug length

    Returns:
        Slug string (may be empty for titles without any [a-z0-9])
    """
    slug = _SLUG_SEPARATOR_RE.sub("-", title.lower()).strip("-")
    return slug[:max_length].rstrip("-")


def stable_hash(value: str) -> str:
    """
    Generate a stable, deterministic hash from a string.

    SHA256 truncated to 16 hex characters. Unlike hash(), this is
    deterministic across process restarts.
    """
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:16]


def make_article_id(prefix: str, identifier: str, index: int | None = None) -> str:
    """
    Build a source-prefixed article ID.

    The positional index keeps two records of one batch apart even when
    their canonical identifiers hash identically.
    """
    parts = [prefix, stable_hash(identifier)]
    if index is not None:
        parts.append(str(index))
    return "-".join(parts)


def extract_domain(url: str) -> str | None:
    """Return the hostname of a URL without a leading 'www.', or None."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def truncate(text: str, max_length: int, marker: str = TRUNCATION_MARKER) -> str:
    """Cap text at max_length characters, ending with marker when cut."""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(marker)].rstrip() + marker


def make_excerpt(text: str, max_length: int = EXCERPT_MAX_LENGTH) -> str:
    """Excerpt capped at 300 chars: first 297 characters plus '...'."""
    return truncate(clean_text(text), max_length)


def make_preview(text: str, max_length: int = CONTENT_MAX_LENGTH) -> str:
    """Content preview hard-capped at max_length (no marker)."""
    return clean_text(text)[:max_length]


def clean_text(text: str) -> str:
    """Collapse whitespace and strip control characters."""
    text = " ".join((text or "").split())
    text = _CONTROL_CHARS_RE.sub("", text)
    return text.strip()


def strip_html(markup: str) -> str:
    """
    Extract clean text from an HTML fragment.

    Used for Hacker News story text and RSS item bodies, which both
    arrive as HTML with escaped entities.
    """
    if not markup:
        return ""

    soup = BeautifulSoup(markup, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()

    text = html.unescape(soup.get_text(separator=" "))
    return clean_text(text)


def generate_tags(title: str, description: str | None = None) -> list[str]:
    """
    Derive up to five lowercase tags from free text.

    Takes alphabetic tokens of at least four letters from title and
    description, keeps first-seen order, drops stopwords.
    """
    text = f"{title} {description or ''}".lower()

    tags: list[str] = []
    for word in _TAG_WORD_RE.findall(text):
        if word in STOPWORDS or word in tags:
            continue
        tags.append(word)
        if len(tags) == MAX_TAGS:
            break
    return tags


def split_keywords(keywords: str | None, separator: str = ";") -> list[str]:
    """Split a delimited keyword string into lowercase tags (max five)."""
    if not keywords:
        return []
    tags = [k.strip().lower() for k in keywords.split(separator)]
    return [t for t in tags if t][:MAX_TAGS]


def parse_iso_timestamp(value: str | None) -> datetime:
    """Parse an ISO 8601 timestamp (Z suffix or +HHMM offset) to an aware UTC datetime."""
    if not value:
        return datetime.now(timezone.utc)
    normalized = _COMPACT_OFFSET_RE.sub(r"\1:\2", value.strip().replace("Z", "+00:00"))
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_unix_timestamp(value: Any) -> datetime:
    """Parse Unix seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(int(value or 0), tz=timezone.utc)


def extract_author(byline: str | None, default: str) -> str:
    """Strip a leading 'By ' from a byline, falling back to default."""
    if not byline:
        return default
    author = _BYLINE_PREFIX_RE.sub("", byline.strip()).strip()
    return author or default
