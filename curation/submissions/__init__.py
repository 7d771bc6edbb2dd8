"""Submissions: canonical content records and the per-feed moderation workflow.

Components:
- Submission / SubmissionFeedLink / ModerationEntry: table records
- SubmissionRepository: persistence, moderation trail and daily quotas
- SubmissionService: transactional submission and moderation handling
"""

from curation.submissions.config import SubmissionConfig
from curation.submissions.repository import SubmissionRepository
from curation.submissions.schemas import (
    ModerationAction,
    ModerationEntry,
    Submission,
    SubmissionFeedLink,
    SubmissionStatus,
)
from curation.submissions.service import (
    ModerationOutcome,
    SubmissionOutcome,
    SubmissionService,
)

__all__ = [
    "ModerationAction",
    "ModerationEntry",
    "ModerationOutcome",
    "Submission",
    "SubmissionConfig",
    "SubmissionFeedLink",
    "SubmissionOutcome",
    "SubmissionRepository",
    "SubmissionService",
    "SubmissionStatus",
]
