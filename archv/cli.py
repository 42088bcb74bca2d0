"""
Command-line interface for archv.

Provides commands to fetch the live aggregated feed, run the sync job,
initialize the database, query stored articles and run diagnostic checks.

Usage:
    archv fetch            # Live feed from every configured source
    archv sync             # Run the periodic sync job
    archv sync --once      # Run a single sync cycle
    archv articles         # Query stored articles
    archv init-db          # Initialize database
    archv cleanup-samples  # Remove placeholder articles
    archv health           # Check service health
"""

import asyncio
import signal
import sys

import click

from archv.config.settings import get_settings
from archv.ingestion.errors import StoreError
from archv.observability.logging import setup_logging
from archv.observability.metrics import get_metrics
from archv.query.pagination import ELLIPSIS, page_window
from archv.query.schemas import ArticleListResult, SortOption

SORT_CHOICES = [option.value for option in SortOption]


def _print_listing(result: ArticleListResult) -> None:
    """Render one page of articles plus a page indicator."""
    if not result.articles:
        click.echo("No articles found.")
        return

    for article in result.articles:
        marker = click.style("*", fg="yellow") if article.featured else " "
        published = article.published_at.strftime("%Y-%m-%d %H:%M")
        click.echo(f"{marker} [{article.category.value}] {article.title}")
        click.echo(f"    {article.source} | {article.author} | {published}")
        click.echo(f"    {article.source_url}")

    pages = " ".join(
        "..." if item == ELLIPSIS else (f"[{item}]" if item == result.page else str(item))
        for item in page_window(result.page, result.total_pages)
    )
    click.echo("-" * 40)
    click.echo(f"Page {result.page} of {result.total_pages} ({result.total} articles)  {pages}")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """archv - multi-source news aggregation."""
    setup_logging("DEBUG" if debug else None)


@main.command()
@click.option("--category", default=None, help="Only this category (e.g. Technology)")
@click.option("--query", "-q", default=None, help="Search the upstream sources")
@click.option("--page", default=1, type=int, help="Page number")
@click.option("--limit", default=None, type=int, help="Articles per page")
@click.option("--sort", type=click.Choice(SORT_CHOICES), default=SortOption.NEWEST.value)
def fetch(category: str | None, query: str | None, page: int, limit: int | None, sort: str) -> None:
    """Fetch the live feed from every configured source."""
    from archv.aggregation.aggregator import FallbackAggregator
    from archv.query.memory_store import InMemoryArticleStore
    from archv.query.pagination import clamp_limit
    from archv.query.schemas import PaginationOptions
    from archv.query.service import ArticleQueryService

    async def run():
        aggregator = FallbackAggregator()

        if query:
            articles = await aggregator.search(query)
        elif category:
            articles = await aggregator.fetch_category(category)
        else:
            articles = await aggregator.fetch_all()

        service = ArticleQueryService(InMemoryArticleStore(articles))
        result = await service.list_articles(
            sort=SortOption(sort),
            page_options=PaginationOptions(
                page=max(page, 1),
                limit=clamp_limit(limit or get_settings().items_per_page),
            ),
        )
        _print_listing(result)

        report = aggregator.last_report
        if report.used_fallback:
            click.echo(click.style("No live sources responded; showing sample articles.", fg="yellow"))
        elif report.failed:
            click.echo(click.style(f"Failed sources: {', '.join(report.failed)}", fg="red"))

    asyncio.run(run())


@main.command()
@click.option("--category", default=None, help="Category name")
@click.option("--search", "-s", default=None, help="Substring in title, excerpt or content")
@click.option("--tag", "tags", multiple=True, help="Tag filter (repeatable, any match)")
@click.option("--featured/--not-featured", default=None, help="Featured flag filter")
@click.option("--page", default=1, type=int, help="Page number")
@click.option("--limit", default=None, type=int, help="Articles per page")
@click.option("--sort", type=click.Choice(SORT_CHOICES), default=SortOption.NEWEST.value)
def articles(
    category: str | None,
    search: str | None,
    tags: tuple[str, ...],
    featured: bool | None,
    page: int,
    limit: int | None,
    sort: str,
) -> None:
    """Query stored articles."""
    from archv.query.pagination import clamp_limit
    from archv.query.schemas import ArticleFilters, PaginationOptions
    from archv.query.service import ArticleQueryService
    from archv.storage.database import Database
    from archv.storage.repository import ArticleRepository

    async def run():
        db = Database()
        await db.connect()

        try:
            service = ArticleQueryService(ArticleRepository(db))
            result = await service.list_articles(
                ArticleFilters(category=category, tags=tags, featured=featured, search=search),
                SortOption(sort),
                PaginationOptions(
                    page=max(page, 1),
                    limit=clamp_limit(limit or get_settings().items_per_page),
                ),
            )
            _print_listing(result)
        finally:
            await db.close()

    asyncio.run(run())


@main.command()
@click.option("--once", is_flag=True, help="Run a single cycle and exit")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def sync(once: bool, metrics: bool) -> None:
    """Persist new articles from NewsAPI and the NYT."""
    from archv.services.sync_service import SyncService
    from archv.storage.database import Database
    from archv.storage.repository import ArticleRepository

    async def run():
        db = Database()
        await db.connect()

        try:
            service = SyncService(ArticleRepository(db))

            if once:
                report = await service.run_once()
                click.echo(
                    f"Stored {report.stored} new articles, skipped {report.skipped} existing"
                )
                if report.failed_jobs:
                    click.echo(click.style(f"Failed jobs: {', '.join(report.failed_jobs)}", fg="red"))
                return

            if metrics:
                get_metrics().start_server()

            # Handle shutdown signals
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, lambda: asyncio.create_task(service.stop()))

            await service.start()
        finally:
            await db.close()

    asyncio.run(run())


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema and seed categories."""
    from archv.storage.database import Database
    from archv.storage.repository import ArticleRepository

    async def run():
        db = Database()
        await db.connect()

        try:
            repo = ArticleRepository(db)
            await repo.create_tables()
            await repo.seed_categories()
            click.echo("Database initialized successfully")
        finally:
            await db.close()

    asyncio.run(run())


@main.command("cleanup-samples")
def cleanup_samples() -> None:
    """Remove placeholder articles left in the database."""
    from archv.storage.database import Database
    from archv.storage.repository import ArticleRepository

    async def run():
        db = Database()
        await db.connect()

        try:
            deleted = await ArticleRepository(db).delete_samples()
            click.echo(f"Deleted {deleted} sample articles")
        finally:
            await db.close()

    asyncio.run(run())


@main.command()
def health() -> None:
    """Check health of the database and every source."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        from archv.aggregation.aggregator import FallbackAggregator, build_adapters
        from archv.storage.database import Database
        from archv.storage.repository import ArticleRepository

        settings = get_settings()
        results: dict[str, bool] = {}
        per_source: dict[str, int] = {}

        # Check PostgreSQL
        db = Database()
        try:
            await db.connect()
            results["postgres"] = await db.health_check()
            if results["postgres"]:
                per_source = await ArticleRepository(db).count_by_source()
        except StoreError as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))
        finally:
            await db.close()

        # Check adapters
        aggregator = FallbackAggregator(adapters=build_adapters(settings))
        for source, healthy in (await aggregator.health_check()).items():
            results[f"{source}_configured"] = healthy
        results["newsapi_configured"] = settings.newsapi_configured
        results["nytimes_configured"] = settings.nytimes_configured

        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))

        click.echo("-" * 40)

        if per_source:
            click.echo("Stored articles:")
            for source, count in per_source.items():
                click.echo(f"  {source}: {count}")
            click.echo("-" * 40)

        if results["postgres"]:
            click.echo(click.style("All core services healthy!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Some services unhealthy!", fg="red"))
            sys.exit(1)

    asyncio.run(check())


if __name__ == "__main__":
    main()
