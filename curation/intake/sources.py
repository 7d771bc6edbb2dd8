"""Source plugin that replays items from a JSON file.

Useful for backfills and local runs: the file holds a JSON array of items in
the same camelCase shape plugins emit.
"""

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter

from curation.feeds.schemas import FeedConfig
from curation.intake.schemas import SourceItem

logger = logging.getLogger(__name__)

_ITEMS_ADAPTER = TypeAdapter(list[SourceItem])


class JsonFileSource:
    """
    Reads ``SourceItem``s from a JSON file.

    Items without ``metadata.sourcePlugin`` are attributed to ``platform``.
    """

    def __init__(self, path: str | Path, platform: str = "file") -> None:
        self.path = Path(path)
        self.platform = platform
        self.name = f"file:{self.path.name}"

    async def fetch(self, feed_config: FeedConfig) -> list[SourceItem]:
        raw = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError(f"{self.path} must contain a JSON array of items")

        for entry in raw:
            if isinstance(entry, dict):
                metadata = entry.setdefault("metadata", {})
                if isinstance(metadata, dict) and not (
                    metadata.get("sourcePlugin") or metadata.get("source_plugin")
                ):
                    metadata["sourcePlugin"] = self.platform

        items = _ITEMS_ADAPTER.validate_python(raw)
        logger.info(
            "Loaded %d items from %s for feed %s", len(items), self.path, feed_config.id
        )
        return items
