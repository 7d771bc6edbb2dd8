"""
Inbound item and intent schemas.

``SourceItem`` is what source plugins return. The classifier turns each item
into exactly one ``Intent``; the batch resolver turns intents into
``ResolvedAction``s for the submission service.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from curation.submissions.schemas import ModerationAction, Submission


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    # Plugins emit camelCase JSON; snake_case names work as well.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SourceAuthor(_CamelModel):
    id: str | None = None
    username: str | None = None
    display_name: str | None = None

    @property
    def handle(self) -> str | None:
        """Username, falling back to the display name."""
        return self.username or self.display_name


class SourceItemMetadata(_CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    source_plugin: str = Field(..., description="Plugin that fetched the item")
    search_id: str | None = None
    in_reply_to_id: str | None = Field(
        default=None,
        description="External id of the item this one replies to",
    )


class SourceItem(_CamelModel):
    """One raw item fetched by a source plugin."""

    id: str = Field(..., description="Plugin-internal item id")
    external_id: str | None = Field(
        default=None,
        description="Id of the item on its origin platform",
    )
    content: str = ""
    author: SourceAuthor | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    media: list[dict[str, Any]] = Field(default_factory=list)
    metadata: SourceItemMetadata

    @property
    def key(self) -> str:
        """External id, or the plugin id when the platform gave none."""
        return self.external_id or self.id

    @property
    def platform_key(self) -> str:
        return self.metadata.source_plugin


@dataclass(frozen=True)
class ModerationCommandData:
    """An approve/reject command addressed at a submission."""

    target_external_id: str
    action: ModerationAction
    moderator_username: str
    command_external_id: str
    command_timestamp: datetime
    moderator_platform_id: str | None = None
    notes: str | None = None


# ── Intents ─────────────────────────────────────────────────


@dataclass(frozen=True)
class _IntentBase:
    item: SourceItem
    feed_id: str

    intent_type: ClassVar[str]

    @property
    def platform_key(self) -> str:
        return self.item.platform_key


@dataclass(frozen=True)
class PendingSubmissionCommandIntent(_IntentBase):
    """``!submit`` replying to another item, which holds the content."""

    intent_type: ClassVar[str] = "pending_submission_command"

    target_external_id: str = ""
    curator_id: str = ""
    curator_username: str = ""
    curator_action_external_id: str = ""
    submitted_at: datetime = field(default_factory=_utc_now)
    curator_platform_id: str | None = None
    curator_notes: str | None = None
    potential_target_feed_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class DirectSubmissionIntent(_IntentBase):
    """``!submit`` whose own item is both command and content."""

    intent_type: ClassVar[str] = "direct_submission"

    submission: Submission | None = None
    potential_target_feed_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class ContentItemIntent(_IntentBase):
    """Plain content, curated by the system placeholder."""

    intent_type: ClassVar[str] = "content_item"

    submission: Submission | None = None


@dataclass(frozen=True)
class ModerationCommandIntent(_IntentBase):
    intent_type: ClassVar[str] = "moderation_command"

    command: ModerationCommandData | None = None


@dataclass(frozen=True)
class UnknownIntent(_IntentBase):
    intent_type: ClassVar[str] = "unknown"

    error: str = "unrecognized item"


Intent = Union[
    DirectSubmissionIntent,
    ContentItemIntent,
    PendingSubmissionCommandIntent,
    ModerationCommandIntent,
    UnknownIntent,
]


# ── Resolved actions ────────────────────────────────────────

SubmissionOrigin = Literal["direct", "content", "stitched"]


@dataclass(frozen=True)
class ResolvedSubmission:
    """A complete submission ready for ``SubmissionService.handle_submission``."""

    submission: Submission
    feed_id: str
    platform_key: str
    origin: SubmissionOrigin


@dataclass(frozen=True)
class ResolvedModeration:
    """A moderation command ready for ``SubmissionService.handle_moderation``."""

    command: ModerationCommandData
    feed_id: str
    platform_key: str


ResolvedAction = Union[ResolvedSubmission, ResolvedModeration]
