"""
Command-line interface for curation.

Provides commands to initialize the database, seed feed definitions,
run an intake cycle from a file, and inspect moderation history.

Usage:
    curation init-db                        # Create tables
    curation seed-feeds feeds.json          # Upsert feed definitions
    curation ingest ethereum items.json     # Run one intake cycle
    curation moderation-history 1234567890  # Show the audit trail
    curation health                         # Check database connectivity
"""

import asyncio
import json
import sys
from pathlib import Path

import click

from curation.config.settings import get_settings
from curation.observability.logging import setup_logging
from curation.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Curation - inbound intake and moderation."""
    if debug:
        import os
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from curation.feeds.repository import FeedRepository
    from curation.storage.database import Database
    from curation.submissions.repository import SubmissionRepository

    async def run():
        db = Database()
        await db.connect()
        try:
            # submission_feeds references submissions
            await SubmissionRepository(db).create_tables()
            await FeedRepository(db).create_tables()
            click.echo("Database initialized successfully")
        finally:
            await db.close()

    asyncio.run(run())


@main.command("seed-feeds")
@click.argument("path", required=False, type=click.Path(dir_okay=False, path_type=Path))
def seed_feeds(path: Path | None) -> None:
    """Load feed definitions from PATH (default: FEEDS_CONFIG_PATH) into the database."""
    from curation.errors import FeedConfigError
    from curation.feeds.repository import FeedRepository
    from curation.feeds.service import FeedsService
    from curation.storage.database import Database

    path = path or Path(get_settings().feeds_config_path)

    async def run():
        db = Database()
        await db.connect()
        try:
            count = await FeedsService(FeedRepository(db)).seed_from_json(path)
            click.echo(f"Seeded {count} feeds from {path}")
        finally:
            await db.close()

    try:
        asyncio.run(run())
    except FeedConfigError as e:
        raise click.ClickException(str(e)) from e


@main.command()
@click.argument("feed_id")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--platform", default="file", help="Platform key for items without sourcePlugin")
@click.option("--metrics/--no-metrics", default=False, help="Enable metrics server")
def ingest(feed_id: str, file: Path, platform: str, metrics: bool) -> None:
    """Run one intake cycle for FEED_ID over the items in FILE."""
    from curation.feeds.repository import FeedRepository
    from curation.intake.classifier import IntentClassifier
    from curation.intake.resolver import BatchResolver
    from curation.intake.sources import JsonFileSource
    from curation.processing.processor import LoggingProcessor
    from curation.services.intake_service import IntakeService
    from curation.storage.database import Database
    from curation.storage.unit_of_work import UnitOfWork
    from curation.submissions.config import SubmissionConfig
    from curation.submissions.service import SubmissionService

    if metrics:
        get_metrics().start_server()

    async def run():
        db = Database()
        await db.connect()
        try:
            feed = await FeedRepository(db).get_feed_config(feed_id)
            if feed is None:
                click.echo(click.style(f"Feed {feed_id!r} not found", fg="red"))
                return 1

            submission_config = SubmissionConfig()
            submission_service = SubmissionService(
                UnitOfWork(db), LoggingProcessor(), config=submission_config
            )
            service = IntakeService(
                IntentClassifier(bot_id=submission_config.bot_id),
                BatchResolver(),
                submission_service,
            )
            report = await service.run_once(feed, [JsonFileSource(file, platform)])
        finally:
            await db.close()

        click.echo("\nIntake Results:")
        click.echo(json.dumps(report.to_dict(), indent=2))

        if report.errors or report.failed_sources:
            click.echo(click.style("Intake completed with errors", fg="red"))
            return 1
        click.echo(click.style("Intake completed", fg="green"))
        return 0

    result = asyncio.run(run())
    if result != 0:
        sys.exit(result)


@main.command("moderation-history")
@click.argument("external_id")
@click.option("--feed", "feed_id", default=None, help="Only show decisions for this feed")
def moderation_history(external_id: str, feed_id: str | None) -> None:
    """Show the moderation trail of a submission."""
    from curation.errors import SubmissionServiceError
    from curation.processing.processor import LoggingProcessor
    from curation.storage.database import Database
    from curation.storage.unit_of_work import UnitOfWork
    from curation.submissions.service import SubmissionService

    async def run():
        db = Database()
        await db.connect()
        try:
            service = SubmissionService(UnitOfWork(db), LoggingProcessor())
            return await service.get_moderation_history(external_id, feed_id)
        finally:
            await db.close()

    try:
        entries = asyncio.run(run())
    except SubmissionServiceError as e:
        raise click.ClickException(str(e)) from e

    if not entries:
        click.echo(f"No moderation history for {external_id}")
        return

    click.echo(f"\nModeration history for {external_id}:")
    click.echo("-" * 60)
    for entry in entries:
        color = "green" if entry.action.value == "approve" else "red"
        line = (
            f"  {entry.timestamp.isoformat()}  {entry.feed_id:<16} "
            f"{entry.action.value:<8} by {entry.moderator_account_id}"
        )
        click.echo(click.style(line, fg=color))
        if entry.note:
            click.echo(f"      note: {entry.note}")


@main.command()
def health() -> None:
    """Check database connectivity."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        from curation.errors import DATABASE_ERRORS
        from curation.storage.database import Database

        try:
            db = Database()
            await db.connect()
            healthy = await db.health_check()
            await db.close()
        except DATABASE_ERRORS as e:
            healthy = False
            logger.error("Postgres health check failed", error=str(e))

        icon = "✓" if healthy else "✗"
        color = "green" if healthy else "red"
        click.echo(click.style(f"  {icon} postgres: {healthy}", fg=color))
        return healthy

    if not asyncio.run(check()):
        sys.exit(1)


if __name__ == "__main__":
    main()
