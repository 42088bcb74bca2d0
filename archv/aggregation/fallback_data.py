"""
Static placeholder articles served when every live source fails.

Timestamps are relative to the moment the dataset is built so the feed
never looks stale. Every placeholder is attributed to the sample source
'News Network' so the cleanup command can find and remove them if they
ever reach the database.
"""

from datetime import datetime, timedelta, timezone
from typing import NamedTuple

from archv.ingestion.schemas import Article, Category
from archv.ingestion.text import generate_slug

SAMPLE_SOURCE = "News Network"
SAMPLE_DOMAIN = "newsnetwork.com"
SAMPLE_URL_HOST = "example.com"


class _Sample(NamedTuple):
    title: str
    category: Category
    excerpt: str
    content: str
    author: str
    tags: tuple[str, ...]
    featured: bool
    days_ago: int


_SAMPLES: tuple[_Sample, ...] = (
    _Sample(
        "Breakthrough in Quantum Computing Announced",
        Category.TECHNOLOGY,
        "Scientists achieve stable qubits at room temperature, marking major milestone.",
        "Researchers have successfully demonstrated quantum computing operations at room "
        "temperature, eliminating the need for extreme cooling.",
        "Dr. James Wilson",
        ("breaking-news", "featured"),
        True,
        1,
    ),
    _Sample(
        "Electric Vehicle Sales Surge Past Traditional Cars",
        Category.BUSINESS,
        "EVs outsell gas-powered vehicles for the first time in major markets.",
        "Electric vehicle sales have overtaken traditional combustion engines in several key "
        "markets, signaling a historic shift in the automotive industry.",
        "Alex Kim",
        ("breaking-news",),
        True,
        1,
    ),
    _Sample(
        "Premier League: Dramatic Final Day Decides Champion",
        Category.SPORTS,
        "Title race goes down to the wire with last-minute goals deciding the winner.",
        "Three teams separated by just two points went into the final matchday. A stunning "
        "comeback victory secured the championship.",
        "Tom Harrison",
        ("breaking-news",),
        False,
        1,
    ),
    _Sample(
        "Global Climate Summit Reaches Historic Agreement",
        Category.WORLD,
        "World leaders commit to ambitious carbon reduction targets at landmark climate conference.",
        "Representatives from 195 countries have reached a groundbreaking agreement on climate "
        "action, including binding commitments to reduce carbon emissions.",
        "Michael Chen",
        ("breaking-news", "featured"),
        True,
        2,
    ),
    _Sample(
        "NASA Confirms Water Ice Deposits on Mars",
        Category.SCIENCE,
        "Latest Mars rover findings reveal vast underground ice reserves.",
        "The rover has discovered extensive water ice deposits beneath the Martian surface, "
        "potentially providing resources for future human missions.",
        "Jennifer Park",
        ("breaking-news", "featured"),
        True,
        2,
    ),
    _Sample(
        "Breakthrough Gene Therapy Approved for Rare Disease",
        Category.HEALTH,
        "FDA approves revolutionary treatment offering hope to thousands.",
        "A gene therapy has received approval for treating a previously incurable genetic "
        "disorder. The one-time treatment shows promise in halting disease progression.",
        "Dr. Lisa Chen",
        ("breaking-news", "analysis"),
        True,
        2,
    ),
    _Sample(
        "Senate Passes Bipartisan Infrastructure Package",
        Category.POLITICS,
        "Lawmakers approve long-debated spending on roads, bridges and broadband.",
        "After months of negotiation the Senate approved an infrastructure package with "
        "support from both parties. The bill now moves to the House.",
        "Olivia Bennett",
        ("breaking-news", "analysis"),
        False,
        2,
    ),
    _Sample(
        "AI Revolution: How Machine Learning is Transforming Industries",
        Category.TECHNOLOGY,
        "Artificial intelligence and machine learning are reshaping how businesses operate across all sectors.",
        "Companies are leveraging AI to automate processes, gain insights from data, and "
        "create innovative products across many sectors.",
        "Sarah Johnson",
        ("breaking-news", "analysis"),
        True,
        3,
    ),
    _Sample(
        "Streaming Wars: Major Platform Announces Merger",
        Category.ENTERTAINMENT,
        "Industry consolidation continues as two major players join forces.",
        "Two leading platforms have announced plans to merge, creating a service with over "
        "200 million subscribers worldwide.",
        "Rachel Green",
        ("breaking-news",),
        False,
        3,
    ),
    _Sample(
        "New Study Links Mediterranean Diet to Longevity",
        Category.HEALTH,
        "Comprehensive 20-year study shows significant health benefits from traditional diet.",
        "A study following 100,000 participants over two decades reveals that a Mediterranean "
        "diet pattern reduces mortality risk.",
        "Dr. Maria Gonzalez",
        ("analysis",),
        False,
        4,
    ),
    _Sample(
        "Historic Peace Accord Signed in Middle East",
        Category.WORLD,
        "Long-standing conflict moves toward resolution with landmark agreement.",
        "Regional powers have signed a comprehensive peace agreement addressing territorial "
        "disputes and establishing frameworks for economic cooperation.",
        "Fatima Abbas",
        ("breaking-news", "featured"),
        True,
        4,
    ),
    _Sample(
        "Oscar Nominations Announced Amid Controversy",
        Category.ENTERTAINMENT,
        "Award season begins with unexpected snubs and surprises.",
        "This year's nominations include several surprise inclusions and notable omissions "
        "that sparked industry debate.",
        "Jessica Martinez",
        ("breaking-news",),
        False,
        4,
    ),
    _Sample(
        "The Future of Remote Work: Trends Shaping the Office",
        Category.BUSINESS,
        "As hybrid work becomes the norm, companies are reimagining office spaces and collaboration.",
        "Companies are investing in technology to support distributed teams while maintaining "
        "culture and productivity.",
        "Emily Rodriguez",
        ("analysis",),
        False,
        5,
    ),
    _Sample(
        "Renewable Energy Surpasses Fossil Fuels Globally",
        Category.SCIENCE,
        "Solar and wind power generation reaches historic milestone.",
        "For the first time renewable sources have generated more electricity than fossil "
        "fuels on a global scale.",
        "Dr. Anna Schmidt",
        ("breaking-news", "featured"),
        True,
        5,
    ),
)


def fallback_articles(now: datetime | None = None) -> list[Article]:
    """
    Build the placeholder dataset, newest first.

    Args:
        now: Reference time for relative timestamps (defaults to current UTC)
    """
    now = now or datetime.now(timezone.utc)

    articles = []
    for index, sample in enumerate(_SAMPLES):
        slug = generate_slug(sample.title)
        published_at = now - timedelta(days=sample.days_ago)
        articles.append(
            Article(
                id=f"sample-{index + 1}",
                title=sample.title,
                slug=slug,
                excerpt=sample.excerpt,
                content=sample.content,
                author=sample.author,
                category=sample.category,
                tags=sample.tags,
                published_at=published_at,
                updated_at=published_at,
                featured=sample.featured,
                source=SAMPLE_SOURCE,
                source_url=f"https://{SAMPLE_URL_HOST}/articles/{slug}",
                source_domain=SAMPLE_DOMAIN,
            )
        )

    articles.sort(key=lambda a: a.published_at, reverse=True)
    return articles


def fallback_for_category(category: str, now: datetime | None = None) -> list[Article]:
    """Placeholder articles in one category (case-insensitive name)."""
    wanted = category.strip().lower()
    return [a for a in fallback_articles(now) if a.category.value.lower() == wanted]
