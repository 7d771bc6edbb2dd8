"""Database repository for submissions, moderation history and daily quotas.

The repository only needs ``execute``/``fetch``/``fetchrow``/``fetchval``, so
it works on both a pooled ``Database`` and a single transactional
``asyncpg.Connection`` handed out by the unit of work.
"""

import json
import logging
from typing import Any

from curation.errors import RecordDecodeError
from curation.submissions.schemas import (
    ModerationAction,
    ModerationEntry,
    Submission,
)

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS submissions (
    external_id                TEXT PRIMARY KEY,
    author_platform_id         TEXT NOT NULL,
    author_username            TEXT NOT NULL,
    content                    TEXT NOT NULL,
    media                      JSONB NOT NULL DEFAULT '[]',
    created_at                 TIMESTAMPTZ NOT NULL,
    submitted_at               TIMESTAMPTZ NOT NULL,
    curator_id                 TEXT NOT NULL,
    curator_username           TEXT NOT NULL,
    curator_platform_id        TEXT,
    curator_action_external_id TEXT NOT NULL,
    curator_notes              TEXT
);

CREATE INDEX IF NOT EXISTS idx_submissions_curator_action
    ON submissions(curator_action_external_id);
CREATE INDEX IF NOT EXISTS idx_submissions_curator
    ON submissions(curator_id);

CREATE TABLE IF NOT EXISTS moderation_history (
    id                   BIGSERIAL PRIMARY KEY,
    submission_id        TEXT NOT NULL REFERENCES submissions(external_id),
    feed_id              TEXT NOT NULL,
    moderator_account_id TEXT NOT NULL,
    action               TEXT NOT NULL CHECK (action IN ('approve', 'reject')),
    note                 TEXT,
    response_external_id TEXT,
    created_at           TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_moderation_history_submission
    ON moderation_history(submission_id, feed_id);

CREATE TABLE IF NOT EXISTS submission_counts (
    curator_id      TEXT PRIMARY KEY,
    count           INTEGER NOT NULL DEFAULT 0 CHECK (count >= 0),
    last_reset_date DATE NOT NULL
);
"""

_INSERT_SUBMISSION_SQL = """
INSERT INTO submissions (
    external_id, author_platform_id, author_username, content, media,
    created_at, submitted_at, curator_id, curator_username,
    curator_platform_id, curator_action_external_id, curator_notes
) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
ON CONFLICT (external_id) DO NOTHING
RETURNING external_id
"""

_INSERT_MODERATION_SQL = """
INSERT INTO moderation_history (
    submission_id, feed_id, moderator_account_id, action,
    note, response_external_id, created_at
) VALUES ($1, $2, $3, $4, $5, $6, $7)
"""

_UTC_TODAY = "(NOW() AT TIME ZONE 'UTC')::date"

# The counter row must exist before it can be locked
_SEED_DAILY_COUNT_SQL = f"""
INSERT INTO submission_counts (curator_id, count, last_reset_date)
VALUES ($1, 0, {_UTC_TODAY})
ON CONFLICT (curator_id) DO NOTHING
"""

_LOCK_DAILY_COUNT_SQL = f"""
SELECT CASE WHEN last_reset_date = {_UTC_TODAY} THEN count ELSE 0 END
FROM submission_counts
WHERE curator_id = $1
FOR UPDATE
"""

# Reset-if-stale-then-increment in a single statement
_INCREMENT_DAILY_COUNT_SQL = f"""
INSERT INTO submission_counts (curator_id, count, last_reset_date)
VALUES ($1, 1, {_UTC_TODAY})
ON CONFLICT (curator_id) DO UPDATE SET
    count = CASE
        WHEN submission_counts.last_reset_date < EXCLUDED.last_reset_date THEN 1
        ELSE submission_counts.count + 1
    END,
    last_reset_date = EXCLUDED.last_reset_date
RETURNING count
"""


def _decode_json(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value


def _record_to_submission(record) -> Submission:
    """Convert an asyncpg Record to a Submission dataclass."""
    try:
        media = list(_decode_json(record["media"], []))
    except (ValueError, TypeError) as e:
        raise RecordDecodeError("submissions", record["external_id"], e) from e
    return Submission(
        external_id=record["external_id"],
        author_platform_id=record["author_platform_id"],
        author_username=record["author_username"],
        content=record["content"],
        media=media,
        created_at=record["created_at"],
        submitted_at=record["submitted_at"],
        curator_id=record["curator_id"],
        curator_username=record["curator_username"],
        curator_platform_id=record["curator_platform_id"],
        curator_action_external_id=record["curator_action_external_id"],
        curator_notes=record["curator_notes"],
    )


def _record_to_moderation(record) -> ModerationEntry:
    """Convert an asyncpg Record to a ModerationEntry dataclass."""
    try:
        action = ModerationAction(record["action"])
    except ValueError as e:
        raise RecordDecodeError("moderation_history", record["submission_id"], e) from e
    return ModerationEntry(
        submission_id=record["submission_id"],
        feed_id=record["feed_id"],
        moderator_account_id=record["moderator_account_id"],
        action=action,
        note=record["note"],
        response_external_id=record["response_external_id"],
        timestamp=record["created_at"],
    )


class SubmissionRepository:
    """Persistence for submissions, their moderation trail and curator quotas."""

    def __init__(self, database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the submission tables and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Submission tables ensured")

    async def get_submission(self, external_id: str) -> Submission | None:
        """Fetch a submission by the external id of its content."""
        row = await self._db.fetchrow(
            "SELECT * FROM submissions WHERE external_id = $1",
            external_id,
        )
        return _record_to_submission(row) if row else None

    async def get_submission_by_curator_action(
        self, curator_action_external_id: str
    ) -> Submission | None:
        """Fetch the submission created by a given submit command item."""
        row = await self._db.fetchrow(
            "SELECT * FROM submissions WHERE curator_action_external_id = $1 "
            "ORDER BY submitted_at LIMIT 1",
            curator_action_external_id,
        )
        return _record_to_submission(row) if row else None

    async def save_submission(self, submission: Submission) -> bool:
        """Insert a submission unless one with the same external id exists.

        Returns True if this call created the row.
        """
        inserted = await self._db.fetchval(
            _INSERT_SUBMISSION_SQL,
            submission.external_id,
            submission.author_platform_id,
            submission.author_username,
            submission.content,
            json.dumps(submission.media),
            submission.created_at,
            submission.submitted_at,
            submission.curator_id,
            submission.curator_username,
            submission.curator_platform_id,
            submission.curator_action_external_id,
            submission.curator_notes,
        )
        if inserted is None:
            logger.debug("Submission %s already exists", submission.external_id)
            return False
        return True

    async def save_moderation_action(self, entry: ModerationEntry) -> None:
        """Append a moderation decision to the audit trail."""
        await self._db.execute(
            _INSERT_MODERATION_SQL,
            entry.submission_id,
            entry.feed_id,
            entry.moderator_account_id,
            entry.action.value,
            entry.note,
            entry.response_external_id,
            entry.timestamp,
        )

    async def get_moderation_history(
        self,
        submission_id: str,
        feed_id: str | None = None,
    ) -> list[ModerationEntry]:
        """Moderation trail of a submission, oldest first."""
        if feed_id is None:
            rows = await self._db.fetch(
                "SELECT * FROM moderation_history WHERE submission_id = $1 "
                "ORDER BY created_at, id",
                submission_id,
            )
        else:
            rows = await self._db.fetch(
                "SELECT * FROM moderation_history WHERE submission_id = $1 "
                "AND feed_id = $2 ORDER BY created_at, id",
                submission_id,
                feed_id,
            )
        return [_record_to_moderation(r) for r in rows]

    async def get_daily_submission_count(self, curator_id: str) -> int:
        """Submissions counted against the curator today (UTC); 0 if stale.

        Locks the curator's counter row until the surrounding transaction
        ends, so a concurrent submission by the same curator waits here and
        then sees the count this transaction leaves behind.
        """
        await self._db.execute(_SEED_DAILY_COUNT_SQL, curator_id)
        count = await self._db.fetchval(_LOCK_DAILY_COUNT_SQL, curator_id)
        return count or 0

    async def increment_daily_submission_count(self, curator_id: str) -> int:
        """Bump today's counter, resetting it first if it is from a past day.

        Returns the new count.
        """
        return await self._db.fetchval(_INCREMENT_DAILY_COUNT_SQL, curator_id)
