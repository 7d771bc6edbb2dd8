"""Hand-off point to the downstream transform/distribution pipeline.

The processor receives each submission once it is approved in a feed whose
stream output is enabled. Delivery and retries belong to the processor; the
moderation decision is committed before it is called.
"""

from typing import Protocol

import structlog

from curation.feeds.schemas import StreamConfig
from curation.submissions.schemas import Submission

logger = structlog.get_logger(__name__)


class Processor(Protocol):
    """Downstream collaborator invoked with approved submissions."""

    async def process(self, submission: Submission, stream_config: StreamConfig) -> None:
        ...


class LoggingProcessor:
    """Processor that only logs the hand-off.

    Used when no distribution pipeline is wired in (CLI, local runs).
    """

    async def process(self, submission: Submission, stream_config: StreamConfig) -> None:
        logger.info(
            "Submission ready for distribution",
            external_id=submission.external_id,
            transforms=len(stream_config.transform),
            distributors=len(stream_config.distribute),
        )
