"""Feed definitions: load from JSON and seed into the database."""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from curation.errors import FeedConfigError
from curation.feeds.repository import FeedRepository
from curation.feeds.schemas import FeedConfig

logger = logging.getLogger(__name__)


def load_feed_configs(path: Path) -> list[FeedConfig]:
    """Read and validate a JSON file of feed definitions.

    The file holds either a list of feeds or an object with a ``feeds`` list.

    Raises:
        FeedConfigError: If the file is missing, not JSON, or invalid.
    """
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise FeedConfigError(f"Cannot read feed definitions from {path}: {e}") from e

    entries = data.get("feeds", []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise FeedConfigError(f"Expected a list of feeds in {path}")

    try:
        feeds = [FeedConfig.model_validate(entry) for entry in entries]
    except ValidationError as e:
        raise FeedConfigError(f"Invalid feed definition in {path}: {e}") from e

    seen: set[str] = set()
    for feed in feeds:
        key = feed.id.lower()
        if key in seen:
            raise FeedConfigError(f"Duplicate feed id {feed.id!r} in {path}")
        seen.add(key)

    return feeds


class FeedsService:
    """Seeds feed definitions into the feeds table."""

    def __init__(self, repository: FeedRepository) -> None:
        self._repo = repository

    async def seed_from_json(self, path: Path) -> int:
        """Load feeds from a JSON file into the database.

        Returns the number of feeds upserted.
        """
        feeds = load_feed_configs(path)
        count = await self._repo.upsert_feeds(feeds)
        logger.info("Seeded %d feeds from %s", count, path)
        return count

