"""Feed configuration models.

Feed definitions are authored as JSON and validated with pydantic before
being stored in the ``feeds`` table. Approver and blacklist lists are keyed by
platform; the ``"all"`` blacklist key applies to every platform.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

ALL_PLATFORMS = "all"


class StreamConfig(BaseModel):
    """Stream output of a feed, handed to the downstream processor."""

    enabled: bool = False
    transform: list[dict[str, Any]] = Field(default_factory=list)
    distribute: list[dict[str, Any]] = Field(default_factory=list)


class FeedOutputs(BaseModel):
    stream: StreamConfig | None = None


class ModerationConfig(BaseModel):
    """Who may approve submissions in a feed, and whose content is refused."""

    approvers: dict[str, list[str]] = Field(default_factory=dict)
    blacklist: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("approvers", "blacklist")
    @classmethod
    def strip_at_signs(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        return {
            platform: [name.strip().lstrip("@") for name in names if name.strip()]
            for platform, names in v.items()
        }


class FeedConfig(BaseModel):
    """Configuration of a single curated feed."""

    id: str = Field(..., min_length=1)
    name: str = ""
    description: str = ""
    moderation: ModerationConfig = Field(default_factory=ModerationConfig)
    outputs: FeedOutputs = Field(default_factory=FeedOutputs)

    def is_approver(self, username: str | None, platform: str) -> bool:
        """Case-insensitive check against ``approvers[platform]``."""
        if not username:
            return False
        wanted = username.lstrip("@").lower()
        return any(
            approver.lower() == wanted
            for approver in self.moderation.approvers.get(platform, [])
        )

    def blacklisted_usernames(self, platform: str) -> set[str]:
        """Lower-cased union of the platform blacklist and the ``all`` list."""
        names = self.moderation.blacklist.get(platform, []) + self.moderation.blacklist.get(
            ALL_PLATFORMS, []
        )
        return {name.lower() for name in names}

    def is_blacklisted(self, username: str | None, platform: str) -> bool:
        if not username:
            return False
        return username.lstrip("@").lower() in self.blacklisted_usernames(platform)

    @property
    def stream_enabled(self) -> bool:
        return self.outputs.stream is not None and self.outputs.stream.enabled
