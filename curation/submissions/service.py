"""
Submission service - the moderation state machine.

Owns the transactional bookkeeping for curated content:

- Dedup of submissions by external id (conflict-safe insert)
- Daily quota per curator
- Per-feed blacklist and approver checks
- Feed links and their pending -> approved/rejected transitions
- Auto-approval of submissions made by a feed's own approvers
- Hand-off of approved submissions to the downstream processor

Each ``handle_submission`` / ``handle_moderation`` call runs in one
transaction. Expected outcomes (quota exceeded, blacklisted, unauthorized,
...) are logged and returned as outcome values; only store failures (database
errors, corrupt rows) are raised, wrapped in ``SubmissionServiceError``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from curation.errors import REPOSITORY_ERRORS, SubmissionServiceError
from curation.feeds.schemas import FeedConfig
from curation.observability.metrics import MetricsCollector, get_metrics
from curation.processing.processor import Processor
from curation.submissions.config import SubmissionConfig
from curation.submissions.schemas import (
    ModerationAction,
    ModerationEntry,
    Submission,
    SubmissionStatus,
    can_transition,
)

if TYPE_CHECKING:
    from curation.intake.schemas import ModerationCommandData
    from curation.storage.unit_of_work import TransactionScope, UnitOfWork

logger = structlog.get_logger(__name__)


class SubmissionOutcome(str, Enum):
    """Branch taken by ``handle_submission``."""

    CREATED = "created"  # new submission, pending in the feed
    LINKED = "linked"  # known submission, newly pending in the feed
    AUTO_APPROVED = "auto_approved"
    ALREADY_LINKED = "already_linked"
    QUOTA_EXCEEDED = "quota_exceeded"
    BLACKLISTED = "blacklisted"
    FEED_NOT_FOUND = "feed_not_found"
    REJECTED_BOT = "rejected_bot"

    @property
    def is_soft_failure(self) -> bool:
        return self in _SUBMISSION_SOFT_FAILURES


_SUBMISSION_SOFT_FAILURES = frozenset(
    {
        SubmissionOutcome.QUOTA_EXCEEDED,
        SubmissionOutcome.BLACKLISTED,
        SubmissionOutcome.FEED_NOT_FOUND,
        SubmissionOutcome.REJECTED_BOT,
    }
)


class ModerationOutcome(str, Enum):
    """Branch taken by ``handle_moderation``."""

    APPROVED = "approved"
    REJECTED = "rejected"
    UNAUTHORIZED = "unauthorized"
    TARGET_NOT_FOUND = "target_not_found"
    FEED_NOT_FOUND = "feed_not_found"
    NOT_PENDING = "not_pending"

    @property
    def is_soft_failure(self) -> bool:
        return self not in (ModerationOutcome.APPROVED, ModerationOutcome.REJECTED)


@dataclass
class _Decision:
    """What a transaction decided; acted upon after commit."""

    outcome: Enum
    submission: Submission | None = None
    feed: FeedConfig | None = None
    created: bool = False
    linked: bool = False
    approved: bool = False


class SubmissionService:
    """
    Handles submissions and moderation commands.

    Usage:
        service = SubmissionService(UnitOfWork(db), LoggingProcessor())

        outcome = await service.handle_submission(submission, "ethereum", "twitter")
        outcome = await service.handle_moderation(command, "ethereum", "twitter")
    """

    def __init__(
        self,
        unit_of_work: "UnitOfWork",
        processor: Processor,
        config: SubmissionConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize submission service.

        Args:
            unit_of_work: Opens the transaction for each call
            processor: Downstream collaborator for approved submissions
            config: Quota and bot settings (or load from environment)
            metrics: Metrics collector (or the process-wide one)
        """
        self._uow = unit_of_work
        self._processor = processor
        self._config = config or SubmissionConfig()
        self._metrics = metrics or get_metrics()
        self._bot_id = (
            self._config.bot_id.lstrip("@").lower() if self._config.bot_id else None
        )

    # ── Submissions ─────────────────────────────────────────

    async def handle_submission(
        self,
        submission: Submission,
        target_feed_id: str,
        platform_key: str,
    ) -> SubmissionOutcome:
        """
        Create (or reuse) a submission and route it into a feed.

        Args:
            submission: Submission built from the inbound item(s)
            target_feed_id: Feed to route into
            platform_key: Platform the curator acted on (approver/blacklist key)

        Returns:
            The branch taken

        Raises:
            SubmissionServiceError: If the store failed; nothing was committed
        """
        log = logger.bind(
            external_id=submission.external_id,
            feed_id=target_feed_id,
            platform=platform_key,
            curator=submission.curator_username,
        )

        if self._is_bot(submission.curator_username):
            log.info("Ignoring submission curated by the bot account")
            self._metrics.record_soft_failure(SubmissionOutcome.REJECTED_BOT.value)
            return SubmissionOutcome.REJECTED_BOT

        try:
            async with self._uow.transaction() as tx:
                decision = await self._route_submission(
                    tx, submission, target_feed_id, platform_key
                )
        except REPOSITORY_ERRORS as e:
            log.error("Submission transaction failed", error=str(e))
            self._metrics.record_service_error("handle_submission")
            raise SubmissionServiceError(
                "handle_submission", submission.external_id, target_feed_id, e
            ) from e

        outcome = decision.outcome
        if decision.created:
            self._metrics.record_submission_created()
        if decision.linked:
            self._metrics.record_feed_link(decision.feed.id)
        if outcome.is_soft_failure:
            self._metrics.record_soft_failure(outcome.value)
            log.info("Submission not routed", reason=outcome.value)
        else:
            log.info("Submission handled", outcome=outcome.value)

        if decision.approved:
            self._metrics.record_moderation(ModerationAction.APPROVE.value, "auto")
            await self._dispatch(decision.submission, decision.feed)

        return outcome

    async def _route_submission(
        self,
        tx: "TransactionScope",
        submission: Submission,
        target_feed_id: str,
        platform_key: str,
    ) -> _Decision:
        """Steps of ``handle_submission`` that run inside the transaction."""
        external_id = submission.external_id
        created = False

        stored = await tx.submissions.get_submission(external_id)
        if stored is None:
            curator_key = submission.curator_platform_id
            if curator_key:
                # Locks the counter row until commit
                count = await tx.submissions.get_daily_submission_count(curator_key)
                if count >= self._config.max_daily_submissions:
                    logger.info(
                        "Daily submission quota exceeded",
                        external_id=external_id,
                        curator_platform_id=curator_key,
                        count=count,
                        limit=self._config.max_daily_submissions,
                    )
                    return _Decision(SubmissionOutcome.QUOTA_EXCEEDED)

            created = await tx.submissions.save_submission(submission)
            if created:
                if curator_key:
                    used = await tx.submissions.increment_daily_submission_count(
                        curator_key
                    )
                    logger.debug(
                        "Daily submission quota charged",
                        curator_platform_id=curator_key,
                        used=used,
                        limit=self._config.max_daily_submissions,
                    )
                stored = submission
            else:
                # Lost an insert race; use the row that won
                stored = await tx.submissions.get_submission(external_id) or submission

        feed = await tx.feeds.get_feed_config(target_feed_id)
        if feed is None:
            logger.warning("Feed not found", feed_id=target_feed_id, external_id=external_id)
            return _Decision(SubmissionOutcome.FEED_NOT_FOUND, stored, created=created)

        for role, username in (
            ("author", stored.author_username),
            ("curator", submission.curator_username),
        ):
            if feed.is_blacklisted(username, platform_key):
                logger.info(
                    "Blacklisted user, skipping feed",
                    role=role,
                    username=username,
                    feed_id=feed.id,
                    external_id=external_id,
                )
                return _Decision(
                    SubmissionOutcome.BLACKLISTED, stored, feed, created=created
                )

        link = await tx.feeds.get_submission_feed(external_id, feed.id, for_update=True)
        linked = False
        if link is None:
            linked = await tx.feeds.save_submission_to_feed(
                external_id, feed.id, SubmissionStatus.PENDING
            )
            if not linked:
                link = await tx.feeds.get_submission_feed(
                    external_id, feed.id, for_update=True
                )

        status = SubmissionStatus.PENDING if linked else link.status
        is_approver = feed.is_approver(submission.curator_username, platform_key)

        if is_approver and can_transition(status, SubmissionStatus.APPROVED):
            approved = await self._apply_decision(
                tx,
                submission_id=external_id,
                feed_id=feed.id,
                action=ModerationAction.APPROVE,
                moderator=submission.curator_username,
                note=submission.curator_notes,
                response_external_id=submission.curator_action_external_id,
                timestamp=submission.submitted_at,
            )
            if approved:
                return _Decision(
                    SubmissionOutcome.AUTO_APPROVED,
                    stored,
                    feed,
                    created=created,
                    linked=linked,
                    approved=True,
                )

        if linked:
            outcome = SubmissionOutcome.CREATED if created else SubmissionOutcome.LINKED
        else:
            outcome = SubmissionOutcome.ALREADY_LINKED
        return _Decision(outcome, stored, feed, created=created, linked=linked)

    # ── Moderation ──────────────────────────────────────────

    async def handle_moderation(
        self,
        command: "ModerationCommandData",
        target_feed_id: str,
        platform_key: str,
    ) -> ModerationOutcome:
        """
        Apply an approve/reject command to a submission's link in a feed.

        Args:
            command: Parsed moderation command
            target_feed_id: Feed the command was received for
            platform_key: Platform the moderator acted on

        Returns:
            The branch taken

        Raises:
            SubmissionServiceError: If the store failed; nothing was committed
        """
        log = logger.bind(
            target_external_id=command.target_external_id,
            feed_id=target_feed_id,
            platform=platform_key,
            moderator=command.moderator_username,
            action=command.action.value,
        )

        try:
            async with self._uow.transaction() as tx:
                decision = await self._moderate(tx, command, target_feed_id, platform_key)
        except REPOSITORY_ERRORS as e:
            log.error("Moderation transaction failed", error=str(e))
            self._metrics.record_service_error("handle_moderation")
            raise SubmissionServiceError(
                "handle_moderation", command.target_external_id, target_feed_id, e
            ) from e

        outcome = decision.outcome
        if outcome.is_soft_failure:
            self._metrics.record_soft_failure(outcome.value)
            log.info("Moderation command not applied", reason=outcome.value)
            return outcome

        self._metrics.record_moderation(command.action.value, "command")
        log.info(
            "Moderation applied",
            external_id=decision.submission.external_id,
            status=command.action.resulting_status.value,
        )
        if decision.approved:
            await self._dispatch(decision.submission, decision.feed)

        return outcome

    async def _moderate(
        self,
        tx: "TransactionScope",
        command: "ModerationCommandData",
        target_feed_id: str,
        platform_key: str,
    ) -> _Decision:
        """Steps of ``handle_moderation`` that run inside the transaction."""
        moderator = command.moderator_username

        feeds = await tx.feeds.get_all_feed_configs()
        if not any(feed.is_approver(moderator, platform_key) for feed in feeds):
            return _Decision(ModerationOutcome.UNAUTHORIZED)

        submission = await tx.submissions.get_submission(command.target_external_id)
        if submission is None:
            submission = await tx.submissions.get_submission_by_curator_action(
                command.target_external_id
            )
        if submission is None:
            return _Decision(ModerationOutcome.TARGET_NOT_FOUND)

        feed = await tx.feeds.get_feed_config(target_feed_id)
        if feed is None:
            return _Decision(ModerationOutcome.FEED_NOT_FOUND, submission)
        if not feed.is_approver(moderator, platform_key):
            return _Decision(ModerationOutcome.UNAUTHORIZED, submission, feed)

        link = await tx.feeds.get_submission_feed(
            submission.external_id, feed.id, for_update=True
        )
        if link is None or not can_transition(link.status, command.action.resulting_status):
            return _Decision(ModerationOutcome.NOT_PENDING, submission, feed)

        applied = await self._apply_decision(
            tx,
            submission_id=submission.external_id,
            feed_id=feed.id,
            action=command.action,
            moderator=moderator,
            note=command.notes,
            response_external_id=command.command_external_id,
            timestamp=command.command_timestamp,
        )
        if not applied:
            return _Decision(ModerationOutcome.NOT_PENDING, submission, feed)

        if command.action is ModerationAction.APPROVE:
            return _Decision(ModerationOutcome.APPROVED, submission, feed, approved=True)
        return _Decision(ModerationOutcome.REJECTED, submission, feed)

    async def get_moderation_history(
        self,
        external_id: str,
        feed_id: str | None = None,
    ) -> list[ModerationEntry]:
        """Moderation trail of a submission, oldest first.

        Raises:
            SubmissionServiceError: If the store failed
        """
        try:
            async with self._uow.transaction() as tx:
                return await tx.submissions.get_moderation_history(external_id, feed_id)
        except REPOSITORY_ERRORS as e:
            logger.error(
                "Moderation history lookup failed", external_id=external_id, error=str(e)
            )
            raise SubmissionServiceError(
                "get_moderation_history", external_id, feed_id, e
            ) from e

    # ── Helpers ─────────────────────────────────────────────

    async def _apply_decision(
        self,
        tx: "TransactionScope",
        *,
        submission_id: str,
        feed_id: str,
        action: ModerationAction,
        moderator: str,
        note: str | None,
        response_external_id: str | None,
        timestamp,
    ) -> bool:
        """
        Move a pending link to the action's status and record the decision.

        The status write only matches pending links, so a link that was
        moderated concurrently is left alone and no entry is appended.
        """
        changed = await tx.feeds.update_submission_feed_status(
            submission_id, feed_id, action.resulting_status, response_external_id
        )
        if not changed:
            return False

        await tx.submissions.save_moderation_action(
            ModerationEntry(
                submission_id=submission_id,
                feed_id=feed_id,
                moderator_account_id=moderator,
                action=action,
                note=note,
                response_external_id=response_external_id,
                timestamp=timestamp,
            )
        )
        return True

    async def _dispatch(self, submission: Submission, feed: FeedConfig) -> None:
        """Hand an approved submission to the processor. Never raises."""
        if not feed.stream_enabled:
            return
        try:
            await self._processor.process(submission, feed.outputs.stream)
        except Exception as e:
            logger.error(
                "Processor failed for approved submission",
                external_id=submission.external_id,
                feed_id=feed.id,
                error=str(e),
            )
            self._metrics.record_processor_error(feed.id)

    def _is_bot(self, username: str | None) -> bool:
        return bool(
            self._bot_id and username and username.lstrip("@").lower() == self._bot_id
        )
