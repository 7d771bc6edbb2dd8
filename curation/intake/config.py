"""Intake configuration: command grammar and placeholder identities.

All settings can be overridden via ``INTAKE_*`` environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IntakeConfig(BaseSettings):
    """Configuration for classifying inbound items."""

    model_config = SettingsConfigDict(
        env_prefix="INTAKE_",
        case_sensitive=False,
        extra="ignore",
    )

    submit_command: str = Field(default="!submit", min_length=1)
    approve_command: str = Field(default="!approve", min_length=1)
    reject_command: str = Field(default="!reject", min_length=1)

    system_curator: str = Field(
        default="system",
        description="Curator id/username recorded for plain content items",
    )
    unknown_author: str = Field(
        default="unknown",
        description="Author id/username recorded when a content item has none",
    )
