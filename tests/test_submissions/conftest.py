"""Shared fixtures for submission tests."""

from collections.abc import Callable
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from curation.intake.schemas import ModerationCommandData
from curation.submissions.config import SubmissionConfig
from curation.submissions.schemas import ModerationAction
from curation.submissions.service import SubmissionService


@pytest.fixture
def config() -> SubmissionConfig:
    return SubmissionConfig(max_daily_submissions=10, bot_id="curatedotfun")


@pytest.fixture
def service(uow, processor, config: SubmissionConfig, metrics: MagicMock) -> SubmissionService:
    return SubmissionService(uow, processor, config=config, metrics=metrics)


@pytest.fixture
def make_command() -> Callable[..., ModerationCommandData]:
    """Factory for moderation commands."""

    def _make(
        target: str = "cmd-T1",
        action: ModerationAction = ModerationAction.APPROVE,
        moderator: str = "bob",
        command_id: str = "mod-1",
        notes: str | None = None,
    ) -> ModerationCommandData:
        return ModerationCommandData(
            target_external_id=target,
            action=action,
            moderator_username=moderator,
            moderator_platform_id=f"id-{moderator}",
            command_external_id=command_id,
            command_timestamp=datetime(2025, 3, 1, 13, 0, tzinfo=timezone.utc),
            notes=notes,
        )

    return _make
