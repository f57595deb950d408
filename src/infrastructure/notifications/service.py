# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification service for orchestrating notification delivery.

This service handles the complete notification flow:
1. Expanding school events into candidates through stored rules
2. Classifying priority and running the admission gates
3. Persisting admitted notifications
4. Sending through the requested and enabled channels

The service is assembled explicitly with build_notification_service();
there is no module-level instance.
"""

import asyncio
import logging
import weakref
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager, nullcontext
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Callable

from src.core.config.settings import Settings
from src.core.notifications.admission import AdmissionDecision, AdmissionPipeline
from src.core.notifications.classifier import PriorityClassifier
from src.core.notifications.exceptions import NotificationPersistenceError
from src.core.notifications.policy import NotificationPolicy
from src.core.notifications.rules import RuleEvaluator
from src.core.notifications.stores import (
    EmailSender,
    MessageSender,
    NotificationStore,
    PreferenceStore,
    RecipientDirectory,
    RuleStore,
)
from src.core.notifications.types import (
    DeliveryResult,
    NotificationCandidate,
    NotificationFilter,
    NotificationPage,
    NotificationStats,
    SchoolEvent,
    StoredNotification,
)
from src.infrastructure.notifications.channels import (
    EmailChannel,
    FcmPushSender,
    InAppChannel,
    PushChannel,
    SmsChannel,
    SmtpEmailSender,
    UnconfiguredPushSender,
    UnconfiguredSmsSender,
)
from src.infrastructure.notifications.delivery import DeliveryOrchestrator
from src.infrastructure.notifications.digest import DigestBatcher
from src.utils.datetime import utc_now
from src.utils.logging import log_context

logger = logging.getLogger(__name__)


@dataclass
class SendOutcome:
    """Result of sending one candidate.

    Attributes:
        decision: The admission decision.
        notification: The stored notification, None when rejected.
        delivery: Per-channel outcome, None when rejected.
    """

    decision: AdmissionDecision
    notification: StoredNotification | None = None
    delivery: DeliveryResult | None = None

    @property
    def sent(self) -> bool:
        return self.notification is not None


@dataclass
class BulkSendResult:
    """Result of sending one notification to many users.

    Attributes:
        sent: Outcomes of admitted and delivered notifications, by user.
        rejected: Admission decisions of rejected candidates, by user.
        failed: Persistence errors, by user.
    """

    sent: dict[str, SendOutcome] = field(default_factory=dict)
    rejected: dict[str, AdmissionDecision] = field(default_factory=dict)
    failed: dict[str, NotificationPersistenceError] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.sent) + len(self.rejected) + len(self.failed)


class UserLockRegistry:
    """Per-user asyncio locks, created on demand and dropped when unused.

    Serializes admission and persistence for one user inside one process,
    which keeps concurrent sends from overshooting the daily cap or
    slipping past deduplication. Sends in other processes are not covered.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        lock = self.lock_for(user_id)
        async with lock:
            yield


class NotificationService:
    """Entry point for sending notifications.

    Args:
        pipeline: Admission pipeline.
        orchestrator: Persistence and channel delivery.
        rule_evaluator: Event to candidate expansion.
        notification_store: Used for statistics, listings and read receipts.
        locks: Per-user serialization; None disables it.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        pipeline: AdmissionPipeline,
        orchestrator: DeliveryOrchestrator,
        rule_evaluator: RuleEvaluator,
        notification_store: NotificationStore,
        locks: UserLockRegistry | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._pipeline = pipeline
        self._orchestrator = orchestrator
        self._rule_evaluator = rule_evaluator
        self._notification_store = notification_store
        self._locks = locks
        self._clock = clock

    def _serialized(self, user_id: str):
        if self._locks is None:
            return nullcontext()
        return self._locks.hold(user_id)

    async def send(self, candidate: NotificationCandidate) -> SendOutcome:
        """Admit, persist and deliver one candidate.

        Args:
            candidate: The notification to send.

        Returns:
            SendOutcome; rejected candidates carry only the decision.

        Raises:
            NotificationPersistenceError: If an admitted notification could
                not be stored.
        """
        with log_context(user_id=candidate.user_id, notification_type=candidate.type):
            async with self._serialized(candidate.user_id):
                decision = await self._pipeline.should_send(candidate)
                if not decision:
                    return SendOutcome(decision=decision)
                notification = await self._orchestrator.persist(candidate, decision.priority)

            if decision.preferences is not None:
                delivery = await self._orchestrator.dispatch(notification, decision.preferences)
            else:
                delivery = await self._orchestrator.dispatch(notification)
            return SendOutcome(decision=decision, notification=notification, delivery=delivery)

    async def process_event(self, event: SchoolEvent) -> list[SendOutcome]:
        """Expand a school event through its rules and send each candidate.

        Raises:
            NotificationPersistenceError: If an admitted notification could
                not be stored. Candidates after it are not attempted.
        """
        candidates = await self._rule_evaluator.expand(event)
        outcomes = []
        for candidate in candidates:
            outcomes.append(await self.send(candidate))
        return outcomes

    async def send_to_users(
        self, user_ids: Iterable[str], template: NotificationCandidate
    ) -> BulkSendResult:
        """Send the same notification to several users.

        Each user is admitted independently. A persistence failure for one
        user is recorded and the others still go out.

        Args:
            user_ids: Recipients.
            template: Candidate whose user_id is replaced per recipient.

        Returns:
            BulkSendResult grouped by outcome.
        """
        result = BulkSendResult()
        for user_id in dict.fromkeys(user_ids):
            candidate = replace(template, user_id=user_id, metadata=dict(template.metadata))
            try:
                outcome = await self.send(candidate)
            except NotificationPersistenceError as e:
                result.failed[user_id] = e
                continue
            if outcome.sent:
                result.sent[user_id] = outcome
            else:
                result.rejected[user_id] = outcome.decision

        logger.info(
            "Bulk %s send: %d sent, %d rejected, %d failed",
            template.type,
            len(result.sent),
            len(result.rejected),
            len(result.failed),
        )
        return result

    async def get_stats(self, user_id: str, days: int = 30) -> NotificationStats:
        """Notification statistics for a user over the last N days.

        Raises:
            StoreUnavailableError: If the store cannot be read.
        """
        since = self._clock() - timedelta(days=days)
        return await self._notification_store.get_stats(user_id, since)

    async def list_notifications(
        self, user_id: str, filters: NotificationFilter | None = None
    ) -> NotificationPage:
        """One page of a user's notifications, newest first.

        Raises:
            StoreUnavailableError: If the store cannot be read.
        """
        return await self._notification_store.list_for_user(
            user_id, filters or NotificationFilter()
        )

    async def mark_as_read(self, notification_id: str, user_id: str) -> bool:
        """Record a read receipt for one notification.

        Only the owner can mark a notification read. A read notification no
        longer goes into the user's digest.

        Returns:
            False if the notification does not exist or is not the user's.

        Raises:
            StoreUnavailableError: If the store cannot be written.
        """
        updated = await self._notification_store.mark_read_for_user(
            notification_id, user_id, self._clock()
        )
        if not updated:
            logger.info("Notification %s not found for user %s", notification_id, user_id)
        return updated

    async def mark_all_as_read(self, user_id: str) -> int:
        """Mark every unread notification of a user read.

        Returns:
            Number of notifications that changed.

        Raises:
            StoreUnavailableError: If the store cannot be written.
        """
        count = await self._notification_store.mark_all_read(user_id, self._clock())
        logger.info("Marked %d notifications as read for user %s", count, user_id)
        return count


def _default_senders(
    settings: Settings,
    email_sender: EmailSender | None,
    sms_sender: MessageSender | None,
    push_sender: MessageSender | None,
) -> tuple[EmailSender, MessageSender, MessageSender]:
    if email_sender is None:
        email_sender = SmtpEmailSender(settings.smtp)
    if sms_sender is None:
        sms_sender = UnconfiguredSmsSender()
    if push_sender is None:
        if settings.firebase.is_configured:
            push_sender = FcmPushSender(settings.firebase)
        else:
            push_sender = UnconfiguredPushSender()
    return email_sender, sms_sender, push_sender


def build_notification_service(
    settings: Settings,
    notification_store: NotificationStore,
    preference_store: PreferenceStore,
    rule_store: RuleStore,
    recipients: RecipientDirectory,
    email_sender: EmailSender | None = None,
    sms_sender: MessageSender | None = None,
    push_sender: MessageSender | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> NotificationService:
    """Wire the notification service from settings and injected stores.

    Senders default to SMTP email, FCM push when Firebase is configured,
    and the unconfigured SMS stub.
    """
    config = settings.notifications
    policy = NotificationPolicy.from_settings(config)
    classifier = PriorityClassifier()
    email_sender, sms_sender, push_sender = _default_senders(
        settings, email_sender, sms_sender, push_sender
    )

    pipeline = AdmissionPipeline(
        preference_store,
        notification_store,
        policy,
        classifier=classifier,
        clock=clock,
    )
    orchestrator = DeliveryOrchestrator(
        notification_store,
        preference_store,
        recipients,
        channels=[
            InAppChannel(),
            EmailChannel(email_sender, app_name=config.app_name),
            SmsChannel(sms_sender),
            PushChannel(push_sender),
        ],
        channel_timeout=config.channel_timeout_seconds,
        clock=clock,
    )
    service = NotificationService(
        pipeline,
        orchestrator,
        RuleEvaluator(rule_store, classifier),
        notification_store,
        locks=UserLockRegistry() if config.serialize_per_user else None,
        clock=clock,
    )
    logger.info(
        "NotificationService initialized (serialize_per_user=%s)", config.serialize_per_user
    )
    return service


def build_digest_batcher(
    settings: Settings,
    notification_store: NotificationStore,
    recipients: RecipientDirectory,
    email_sender: EmailSender | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> DigestBatcher:
    """Wire a digest batcher from settings and injected stores."""
    return DigestBatcher(
        notification_store,
        recipients,
        email_sender or SmtpEmailSender(settings.smtp),
        NotificationPolicy.from_settings(settings.notifications),
        app_name=settings.notifications.app_name,
        clock=clock,
    )
