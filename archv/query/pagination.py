"""
Pagination utilities.

Pure functions: no I/O and no state. Every function is safe to call
with untrusted page/limit values; out-of-range input is clamped rather
than rejected (use validate_params() to report problems instead).
"""

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

MIN_LIMIT = 1
MAX_LIMIT = 100
DEFAULT_LIMIT = 10
DEFAULT_MAX_VISIBLE = 7

ELLIPSIS = "ellipsis"

PageItem = int | Literal["ellipsis"]


class PaginationInfo(BaseModel):
    """Clamped pagination state for one result set."""

    model_config = ConfigDict(frozen=True)

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_previous: bool
    start_index: int
    end_index: int


class PaginationLinks(BaseModel):
    """Page numbers for first/previous/next/last navigation."""

    model_config = ConfigDict(frozen=True)

    first: int
    previous: int | None
    next: int | None
    last: int


def clamp_limit(limit: int) -> int:
    return max(MIN_LIMIT, min(MAX_LIMIT, limit))


def total_pages_for(total: int, limit: int) -> int:
    """ceil(total / limit); 0 for an empty result."""
    return math.ceil(max(0, total) / clamp_limit(limit))


def calculate(total: int, page: int = 1, limit: int = DEFAULT_LIMIT) -> PaginationInfo:
    """
    Calculate pagination info from a total count and requested page.

    limit is clamped to [1, 100]; page is clamped to [1, total_pages]
    (1 when there are no pages). start_index is inclusive, end_index
    exclusive.

    Example:
        >>> calculate(25, 3, 10).model_dump()
        {'page': 3, 'limit': 10, 'total': 25, 'total_pages': 3, 'has_next': False,
         'has_previous': True, 'start_index': 20, 'end_index': 25}
    """
    total = max(0, total)
    safe_limit = clamp_limit(limit)
    total_pages = total_pages_for(total, safe_limit)
    actual_page = min(max(1, page), max(1, total_pages))

    start_index = (actual_page - 1) * safe_limit
    end_index = min(start_index + safe_limit, total)

    return PaginationInfo(
        page=actual_page,
        limit=safe_limit,
        total=total,
        total_pages=total_pages,
        has_next=actual_page < total_pages,
        has_previous=actual_page > 1,
        start_index=start_index,
        end_index=max(start_index, end_index),
    )


def links(info: PaginationInfo) -> PaginationLinks:
    """Navigation targets; previous/next are None at the edges."""
    return PaginationLinks(
        first=1,
        previous=info.page - 1 if info.has_previous else None,
        next=info.page + 1 if info.has_next else None,
        last=max(1, info.total_pages),
    )


def skip_value(page: int, limit: int) -> int:
    """Row offset for a store query."""
    return (max(1, page) - 1) * max(1, limit)


def _parse_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_params(page: Any = None, limit: Any = None) -> tuple[int, int]:
    """
    Parse page/limit from query-string values.

    Unparseable values fall back to page 1 and a limit of 10; parsed
    values are clamped (page >= 1, limit in [1, 100]).
    """
    parsed_page = _parse_int(page)
    parsed_limit = _parse_int(limit)

    safe_page = 1 if parsed_page is None else max(1, parsed_page)
    safe_limit = DEFAULT_LIMIT if parsed_limit is None else clamp_limit(parsed_limit)
    return safe_page, safe_limit


def validate_params(page: int, limit: int) -> list[str]:
    """Return human-readable problems with page/limit (empty when valid)."""
    errors = []
    if page < 1:
        errors.append("Page must be greater than 0")
    if limit < MIN_LIMIT:
        errors.append("Limit must be greater than 0")
    if limit > MAX_LIMIT:
        errors.append(f"Limit cannot exceed {MAX_LIMIT}")
    return errors


def page_window(
    current_page: int,
    total_pages: int,
    max_visible: int = DEFAULT_MAX_VISIBLE,
) -> list[PageItem]:
    """
    Page numbers to render, with "ellipsis" markers for gaps.

    Always includes page 1 and the last page, plus one contiguous window
    around current_page. When everything fits, returns 1..total_pages.

    Example:
        >>> page_window(5, 20, 5)
        [1, 'ellipsis', 4, 5, 6, 'ellipsis', 20]
    """
    if total_pages <= max_visible:
        return list(range(1, total_pages + 1))

    half_visible = max_visible // 2

    if current_page <= half_visible + 1:
        start_page, end_page = 2, max_visible - 1
    elif current_page >= total_pages - half_visible:
        start_page, end_page = total_pages - max_visible + 2, total_pages - 1
    else:
        start_page = current_page - half_visible + 1
        end_page = current_page + half_visible - 1

    pages: list[PageItem] = [1]
    if start_page > 2:
        pages.append(ELLIPSIS)
    pages.extend(range(start_page, end_page + 1))
    if end_page < total_pages - 1:
        pages.append(ELLIPSIS)
    if total_pages > 1:
        pages.append(total_pages)
    return pages


def pagination_meta(
    total: int,
    page: int,
    limit: int,
    base_url: str | None = None,
) -> dict[str, Any]:
    """
    Pagination block for API-style responses.

    With base_url, adds url_links of the form '{base_url}?page=N&limit=L'.
    """
    info = calculate(total, page, limit)
    nav = links(info)

    meta: dict[str, Any] = {**info.model_dump(), "links": nav.model_dump()}

    if base_url:
        def url(target: int | None) -> str | None:
            return f"{base_url}?page={target}&limit={info.limit}" if target else None

        meta["url_links"] = {
            "first": url(nav.first),
            "previous": url(nav.previous),
            "next": url(nav.next),
            "last": url(nav.last),
        }

    return {"pagination": meta}
