"""Database repository for feed configuration and submission-feed links."""

import json
import logging
from typing import Any

from curation.errors import RecordDecodeError
from curation.feeds.schemas import FeedConfig
from curation.submissions.schemas import SubmissionFeedLink, SubmissionStatus

logger = logging.getLogger(__name__)

# submission_feeds references submissions, so SubmissionRepository.create_tables
# must run first.
_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS feeds (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    config      JSONB NOT NULL,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_feeds_id_lower
    ON feeds(lower(id));

CREATE TABLE IF NOT EXISTS submission_feeds (
    submission_id                   TEXT NOT NULL REFERENCES submissions(external_id),
    feed_id                         TEXT NOT NULL REFERENCES feeds(id),
    status                          TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'approved', 'rejected')),
    moderation_response_external_id TEXT,
    created_at                      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at                      TIMESTAMPTZ,
    PRIMARY KEY (submission_id, feed_id)
);

CREATE INDEX IF NOT EXISTS idx_submission_feeds_feed_status
    ON submission_feeds(feed_id, status);
"""

_BULK_UPSERT_FEEDS_SQL = """
INSERT INTO feeds (id, name, description, config)
SELECT * FROM unnest($1::text[], $2::text[], $3::text[], $4::jsonb[])
ON CONFLICT (id) DO UPDATE SET
    name = EXCLUDED.name,
    description = EXCLUDED.description,
    config = EXCLUDED.config,
    updated_at = NOW()
"""

_INSERT_LINK_SQL = """
INSERT INTO submission_feeds (submission_id, feed_id, status)
VALUES ($1, $2, $3)
ON CONFLICT (submission_id, feed_id) DO NOTHING
"""

# Terminal statuses never change: the guard makes the write a compare-and-set.
_UPDATE_LINK_STATUS_SQL = """
UPDATE submission_feeds
SET status = $3, moderation_response_external_id = $4, updated_at = NOW()
WHERE submission_id = $1 AND feed_id = $2 AND status = 'pending'
"""


def _record_to_feed_config(record) -> FeedConfig:
    config: Any = record["config"]
    try:
        if isinstance(config, str):
            config = json.loads(config)
        return FeedConfig.model_validate(config)
    except ValueError as e:
        raise RecordDecodeError("feeds", record.get("id"), e) from e


def _record_to_link(record) -> SubmissionFeedLink:
    """Convert an asyncpg Record to a SubmissionFeedLink dataclass."""
    try:
        status = SubmissionStatus(record["status"])
    except ValueError as e:
        key = f"{record['submission_id']}/{record['feed_id']}"
        raise RecordDecodeError("submission_feeds", key, e) from e
    return SubmissionFeedLink(
        submission_id=record["submission_id"],
        feed_id=record["feed_id"],
        status=status,
        moderation_response_external_id=record["moderation_response_external_id"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class FeedRepository:
    """Feed configuration lookups and per-feed submission status."""

    def __init__(self, database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the feed tables and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Feed tables ensured")

    async def upsert_feeds(self, feeds: list[FeedConfig]) -> int:
        """Insert or update feed definitions in one statement.

        Returns the number of feeds processed.
        """
        if not feeds:
            return 0

        await self._db.execute(
            _BULK_UPSERT_FEEDS_SQL,
            [f.id for f in feeds],
            [f.name for f in feeds],
            [f.description for f in feeds],
            [f.model_dump_json() for f in feeds],
        )
        logger.info("Upserted %d feeds", len(feeds))
        return len(feeds)

    async def get_feed_config(self, feed_id: str) -> FeedConfig | None:
        """Fetch a feed configuration; feed ids match case-insensitively."""
        row = await self._db.fetchrow(
            "SELECT id, config FROM feeds WHERE lower(id) = lower($1)",
            feed_id,
        )
        return _record_to_feed_config(row) if row else None

    async def get_all_feed_configs(self) -> list[FeedConfig]:
        rows = await self._db.fetch("SELECT id, config FROM feeds ORDER BY id")
        return [_record_to_feed_config(r) for r in rows]

    async def save_submission_to_feed(
        self,
        submission_id: str,
        feed_id: str,
        status: SubmissionStatus = SubmissionStatus.PENDING,
    ) -> bool:
        """Route a submission into a feed. Returns False if already linked."""
        result = await self._db.execute(
            _INSERT_LINK_SQL, submission_id, feed_id, status.value
        )
        return result.endswith("1")

    async def get_submission_feed(
        self,
        submission_id: str,
        feed_id: str,
        *,
        for_update: bool = False,
    ) -> SubmissionFeedLink | None:
        """Fetch the link of a submission to a feed.

        With ``for_update`` the row stays locked until the surrounding
        transaction ends.
        """
        sql = "SELECT * FROM submission_feeds WHERE submission_id = $1 AND feed_id = $2"
        if for_update:
            sql += " FOR UPDATE"
        row = await self._db.fetchrow(sql, submission_id, feed_id)
        return _record_to_link(row) if row else None

    async def update_submission_feed_status(
        self,
        submission_id: str,
        feed_id: str,
        status: SubmissionStatus,
        moderation_response_external_id: str | None,
    ) -> bool:
        """Move a pending link to ``status``.

        Returns True if the link was pending and has been updated; False if it
        does not exist or was already moderated.
        """
        result = await self._db.execute(
            _UPDATE_LINK_STATUS_SQL,
            submission_id,
            feed_id,
            status.value,
            moderation_response_external_id,
        )
        return result.endswith("1")
