"""
Batch resolver: stitches two-phase submit commands to their content.

A pending submit command ("!submit" posted as a reply) carries the curator
but not the content. The content is the item it replies to, which must have
been fetched in the same batch. Resolution runs once per fetch cycle, over
intents in source order.
"""

from dataclasses import dataclass, field

import structlog

from curation.intake.config import IntakeConfig
from curation.intake.schemas import (
    ContentItemIntent,
    DirectSubmissionIntent,
    Intent,
    ModerationCommandIntent,
    PendingSubmissionCommandIntent,
    ResolvedAction,
    ResolvedModeration,
    ResolvedSubmission,
    SourceItem,
    UnknownIntent,
)
from curation.observability.metrics import MetricsCollector, get_metrics
from curation.submissions.schemas import Submission

logger = structlog.get_logger(__name__)

_STITCHABLE = (ContentItemIntent, DirectSubmissionIntent, PendingSubmissionCommandIntent)


@dataclass
class Resolution:
    """Outcome of resolving one batch."""

    actions: list[ResolvedAction] = field(default_factory=list)
    orphaned: list[PendingSubmissionCommandIntent] = field(default_factory=list)
    dropped: list[UnknownIntent] = field(default_factory=list)


class BatchResolver:
    """
    Turns a batch of intents into actions for the submission service.

    - Pending commands are stitched to their target item when it is in the
      batch; the stitched target is not routed again as plain content.
    - Pending commands whose target is missing are dropped with a warning.
    - Unknown intents are dropped.
    - Everything else passes through in order.
    """

    def __init__(
        self,
        config: IntakeConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._config = config or IntakeConfig()
        self._metrics = metrics or get_metrics()

    def resolve(self, intents: list[Intent]) -> list[ResolvedAction]:
        return self.resolve_batch(intents).actions

    def resolve_batch(self, intents: list[Intent]) -> Resolution:
        """
        Resolve intents, keeping the returned orphans and dropped unknowns.

        Args:
            intents: Intents in source order

        Returns:
            Resolution with actions in source order
        """
        # Only items that carry content can be stitch targets
        index: dict[str, SourceItem] = {}
        for intent in intents:
            if isinstance(intent, _STITCHABLE):
                index.setdefault(intent.item.key, intent.item)

        stitched_targets = {
            intent.target_external_id
            for intent in intents
            if isinstance(intent, PendingSubmissionCommandIntent)
            and intent.target_external_id in index
        }

        result = Resolution()
        for intent in intents:
            if isinstance(intent, PendingSubmissionCommandIntent):
                target = index.get(intent.target_external_id)
                if target is None or not target.content.strip():
                    logger.warning(
                        "Orphaned submit command, target not in batch",
                        command_external_id=intent.curator_action_external_id,
                        target_external_id=intent.target_external_id,
                        feed_id=intent.feed_id,
                    )
                    result.orphaned.append(intent)
                    continue
                result.actions.append(
                    ResolvedSubmission(
                        submission=self._stitch(intent, target),
                        feed_id=intent.feed_id,
                        platform_key=intent.platform_key,
                        origin="stitched",
                    )
                )

            elif isinstance(intent, DirectSubmissionIntent):
                result.actions.append(
                    ResolvedSubmission(
                        submission=intent.submission,
                        feed_id=intent.feed_id,
                        platform_key=intent.platform_key,
                        origin="direct",
                    )
                )

            elif isinstance(intent, ContentItemIntent):
                if intent.item.key in stitched_targets:
                    logger.debug(
                        "Content consumed by submit command",
                        external_id=intent.item.key,
                    )
                    continue
                result.actions.append(
                    ResolvedSubmission(
                        submission=intent.submission,
                        feed_id=intent.feed_id,
                        platform_key=intent.platform_key,
                        origin="content",
                    )
                )

            elif isinstance(intent, ModerationCommandIntent):
                result.actions.append(
                    ResolvedModeration(
                        command=intent.command,
                        feed_id=intent.feed_id,
                        platform_key=intent.platform_key,
                    )
                )

            else:
                logger.info(
                    "Dropping unrecognized item",
                    item_id=intent.item.id,
                    error=intent.error,
                )
                result.dropped.append(intent)

        if result.orphaned:
            self._metrics.record_orphaned_command(len(result.orphaned))

        return result

    def _stitch(
        self, intent: PendingSubmissionCommandIntent, target: SourceItem
    ) -> Submission:
        """Content fields from the target item, curator fields from the command."""
        author = target.author
        unknown = self._config.unknown_author
        return Submission(
            external_id=target.key,
            author_platform_id=(author.id if author else None) or unknown,
            author_username=(author.handle if author else None) or unknown,
            content=target.content,
            media=list(target.media),
            created_at=target.created_at,
            submitted_at=intent.submitted_at,
            curator_id=intent.curator_id,
            curator_username=intent.curator_username,
            curator_platform_id=intent.curator_platform_id,
            curator_action_external_id=intent.curator_action_external_id,
            curator_notes=intent.curator_notes,
        )
