"""Feeds: configuration, moderation rules and submission links."""

from curation.feeds.repository import FeedRepository
from curation.feeds.schemas import FeedConfig, ModerationConfig, StreamConfig
from curation.feeds.service import FeedsService

__all__ = [
    "FeedConfig",
    "FeedRepository",
    "FeedsService",
    "ModerationConfig",
    "StreamConfig",
]
