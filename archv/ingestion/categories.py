"""
Static category mapping tables for every upstream.

Lookups are total: any input, including None or an unknown code, resolves
to a member of Category. Unknown keys fall back to DEFAULT_CATEGORY.
"""

from archv.ingestion.schemas import DEFAULT_CATEGORY, Category

# NewsAPI top-headlines category codes
NEWSAPI_CATEGORY_MAP: dict[str, Category] = {
    "general": Category.WORLD,
    "business": Category.BUSINESS,
    "entertainment": Category.ENTERTAINMENT,
    "health": Category.HEALTH,
    "science": Category.SCIENCE,
    "sports": Category.SPORTS,
    "technology": Category.TECHNOLOGY,
}

NEWSAPI_CATEGORIES = tuple(NEWSAPI_CATEGORY_MAP)

# New York Times section names
NYTIMES_SECTION_MAP: dict[str, Category] = {
    "world": Category.WORLD,
    "us": Category.WORLD,
    "u.s.": Category.WORLD,
    "politics": Category.POLITICS,
    "business": Category.BUSINESS,
    "business day": Category.BUSINESS,
    "technology": Category.TECHNOLOGY,
    "sports": Category.SPORTS,
    "arts": Category.ENTERTAINMENT,
    "movies": Category.ENTERTAINMENT,
    "theater": Category.ENTERTAINMENT,
    "science": Category.SCIENCE,
    "climate": Category.SCIENCE,
    "health": Category.HEALTH,
    "well": Category.HEALTH,
    "opinion": Category.WORLD,
}

# Top stories sections worth requesting per category
NYTIMES_CATEGORY_SECTIONS: dict[Category, str] = {
    Category.WORLD: "world",
    Category.POLITICS: "politics",
    Category.BUSINESS: "business",
    Category.TECHNOLOGY: "technology",
    Category.SPORTS: "sports",
    Category.ENTERTAINMENT: "arts",
    Category.SCIENCE: "science",
    Category.HEALTH: "health",
}

# Descriptions stored with the categories table
CATEGORY_DESCRIPTIONS: dict[Category, str] = {
    Category.WORLD: "International news and global events",
    Category.POLITICS: "Political news and analysis",
    Category.BUSINESS: "Business, finance, and economy",
    Category.TECHNOLOGY: "Tech news and innovation",
    Category.SPORTS: "Sports news and updates",
    Category.ENTERTAINMENT: "Entertainment and culture",
    Category.SCIENCE: "Science and research",
    Category.HEALTH: "Health and wellness news",
}

# RSS feeds use a few labels outside the canonical set
RSS_CATEGORY_MAP: dict[str, Category] = {
    "general": Category.WORLD,
    "arts": Category.ENTERTAINMENT,
    "tech": Category.TECHNOLOGY,
}


def map_category(value: str | None, table: dict[str, Category] | None = None) -> Category:
    """
    Map an upstream category/section code onto the canonical set.

    Checks the source table first, then the canonical names themselves.

    Args:
        value: Upstream code (any case, may be None)
        table: Source-specific lookup table

    Returns:
        A Category member, DEFAULT_CATEGORY when nothing matches
    """
    if not value:
        return DEFAULT_CATEGORY

    key = str(value).strip().lower()
    if table and key in table:
        return table[key]

    return Category.from_name(key) or DEFAULT_CATEGORY


def map_newsapi_category(code: str | None) -> Category:
    return map_category(code, NEWSAPI_CATEGORY_MAP)


def map_nytimes_section(section: str | None) -> Category:
    return map_category(section, NYTIMES_SECTION_MAP)


def map_rss_category(label: str | None) -> Category:
    return map_category(label, RSS_CATEGORY_MAP)
