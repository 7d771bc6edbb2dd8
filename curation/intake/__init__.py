"""Inbound intake: item schemas, intent classification and batch resolution."""

from curation.intake.classifier import (
    IntentClassifier,
    extract_curator_notes,
    extract_hashtags,
)
from curation.intake.config import IntakeConfig
from curation.intake.resolver import BatchResolver, Resolution
from curation.intake.schemas import (
    ContentItemIntent,
    DirectSubmissionIntent,
    Intent,
    ModerationCommandData,
    ModerationCommandIntent,
    PendingSubmissionCommandIntent,
    ResolvedAction,
    ResolvedModeration,
    ResolvedSubmission,
    SourceAuthor,
    SourceItem,
    SourceItemMetadata,
    UnknownIntent,
)
from curation.intake.sources import JsonFileSource

__all__ = [
    "BatchResolver",
    "ContentItemIntent",
    "DirectSubmissionIntent",
    "IntakeConfig",
    "Intent",
    "IntentClassifier",
    "JsonFileSource",
    "ModerationCommandData",
    "ModerationCommandIntent",
    "PendingSubmissionCommandIntent",
    "Resolution",
    "ResolvedAction",
    "ResolvedModeration",
    "ResolvedSubmission",
    "SourceAuthor",
    "SourceItem",
    "SourceItemMetadata",
    "UnknownIntent",
    "extract_curator_notes",
    "extract_hashtags",
]
