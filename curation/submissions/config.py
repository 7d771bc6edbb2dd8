"""Submission handling configuration.

All settings can be overridden via ``SUBMISSIONS_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SubmissionConfig(BaseSettings):
    """Settings for the submission and moderation workflow."""

    model_config = SettingsConfigDict(
        env_prefix="SUBMISSIONS_",
        case_sensitive=False,
        extra="ignore",
    )

    max_daily_submissions: int = Field(
        default=10,
        ge=0,
        description="New submissions a curator may create per UTC day",
    )
    bot_id: str | None = Field(
        default=None,
        description="Handle of the curation bot; never accepted as a curator",
    )
