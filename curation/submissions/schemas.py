"""Schema definitions for submissions, feed links and moderation history.

Maps 1:1 to the ``submissions``, ``submission_feeds`` and
``moderation_history`` tables. A submission is created once per external id;
its per-feed moderation state lives on the feed link.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class SubmissionStatus(str, Enum):
    """Moderation status of a submission within one feed."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not SubmissionStatus.PENDING


class ModerationAction(str, Enum):
    """Decision recorded by a moderator."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def resulting_status(self) -> SubmissionStatus:
        if self is ModerationAction.APPROVE:
            return SubmissionStatus.APPROVED
        return SubmissionStatus.REJECTED


def can_transition(current: SubmissionStatus, new: SubmissionStatus) -> bool:
    """Only pending links move, and only to a terminal status."""
    return current is SubmissionStatus.PENDING and new.is_terminal


@dataclass
class Submission:
    """Canonical curated-content record keyed by its origin platform id.

    Attributes:
        external_id: Id of the content on its origin platform (primary key).
        author_platform_id: Platform id of the content author.
        author_username: Username of the content author.
        content: Text of the content.
        media: Media attachments as delivered by the source plugin.
        created_at: When the content was created on its platform.
        submitted_at: When the content was curated.
        curator_id: Id of the curating account.
        curator_username: Username of the curating account.
        curator_platform_id: Platform id of the curator; daily quotas are
            counted against it. None for system-ingested content.
        curator_action_external_id: Id of the item that carried the command.
        curator_notes: Free text the curator attached, if any.
    """

    external_id: str
    author_platform_id: str
    author_username: str
    content: str
    curator_id: str
    curator_username: str
    curator_action_external_id: str
    created_at: datetime = field(default_factory=_utc_now)
    submitted_at: datetime = field(default_factory=_utc_now)
    curator_platform_id: str | None = None
    curator_notes: str | None = None
    media: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class SubmissionFeedLink:
    """Per-feed moderation state of a submission."""

    submission_id: str
    feed_id: str
    status: SubmissionStatus = SubmissionStatus.PENDING
    moderation_response_external_id: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime | None = None


@dataclass
class ModerationEntry:
    """Append-only audit record of an approve/reject decision."""

    submission_id: str
    feed_id: str
    moderator_account_id: str
    action: ModerationAction
    note: str | None = None
    response_external_id: str | None = None
    timestamp: datetime = field(default_factory=_utc_now)
