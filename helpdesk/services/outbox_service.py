"""
Notification Outbox Service.

WHAT: Enqueues notification rows inside business transactions and drains
them in the background.

WHY: Sending email inline would tie request latency and success to the mail
provider. Writing an outbox row in the same transaction as the ticket or
comment means a committed change always gets its notification, and a
rolled-back change never does.

HOW:
1. Services call OutboxService.enqueue() with the request session
2. The APScheduler job calls NotificationProcessor.run_tick()
3. Each tick sends a bounded, oldest-first batch through EmailService
4. Failures bump attempts; rows at OUTBOX_MAX_ATTEMPTS are parked

Delivery is at-least-once. A crash between the provider accepting a message
and delivered_at being committed causes a resend on the next tick.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.config import settings
from helpdesk.core.exceptions import EmailServiceError
from helpdesk.dao.outbox import OutboxDAO
from helpdesk.dao.user import UserDAO
from helpdesk.db.session import AsyncSessionLocal
from helpdesk.models.outbox import NotificationOutbox, OutboxTopic
from helpdesk.services.email import EmailService, get_email_service


logger = logging.getLogger(__name__)


class OutboxService:
    """
    Writes notifications into the caller's transaction.

    Example:
        outbox = OutboxService(session)
        await outbox.enqueue(OutboxTopic.TICKET_CREATED, ticket.id, user_id, payload)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.dao = OutboxDAO(session)

    async def enqueue(
        self,
        topic: OutboxTopic,
        ticket_id: Optional[int],
        recipient_user_id: Optional[int],
        payload: Dict[str, Any],
    ) -> NotificationOutbox:
        """Append one notification row; never commits."""
        return await self.dao.enqueue(
            topic=topic.value,
            ticket_id=ticket_id,
            recipient_user_id=recipient_user_id,
            payload=payload,
        )

    async def list_pending(
        self, org_id: int, limit: int, include_parked: bool = True
    ) -> List[NotificationOutbox]:
        """
        Undelivered rows for tickets of one organization.

        Parked rows (attempts at the cap) are included by default so admins
        can see what will never be retried.
        """
        return await self.dao.list_pending(
            limit=limit,
            max_attempts=None if include_parked else settings.OUTBOX_MAX_ATTEMPTS,
            org_id=org_id,
        )


class NotificationProcessor:
    """
    Drains the notification outbox.

    WHAT: Sends pending rows and records the outcome of each.

    WHY: APScheduler's max_instances=1 keeps one job instance per scheduler,
    but an admin can also trigger processing over HTTP. The asyncio.Lock
    makes every entry point single-flight within the process.

    HOW: run_tick() owns its own session and transaction;
    process_pending() works on a session supplied by the caller.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        email_service: Optional[EmailService] = None,
    ):
        """
        Args:
            session_factory: Factory for job sessions (defaults to
                AsyncSessionLocal)
            email_service: Sender (defaults to get_email_service())
        """
        self._session_factory = session_factory or AsyncSessionLocal
        self._email_service = email_service
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def _get_email_service(self) -> EmailService:
        if self._email_service is None:
            self._email_service = get_email_service()
        return self._email_service

    async def run_tick(self) -> Optional[Dict[str, int]]:
        """
        Scheduled job entry point.

        Returns:
            Dict with processed/failed counts, or None when skipped because
            another tick is still running
        """
        if self._lock.locked():
            logger.info("Outbox tick skipped: previous tick still running")
            return None

        async with self._lock:
            start_time = datetime.utcnow()
            async with self._session_factory() as session:
                try:
                    stats = await self._process(session, settings.OUTBOX_BATCH_SIZE)
                    await session.commit()
                except Exception:
                    await session.rollback()
                    logger.exception("Outbox tick failed")
                    raise

        elapsed = (datetime.utcnow() - start_time).total_seconds()
        if stats["processed"] or stats["failed"]:
            logger.info(
                f"Outbox tick completed in {elapsed:.2f}s. "
                f"Processed: {stats['processed']}, Failed: {stats['failed']}"
            )
        return stats

    async def process_pending(
        self, session: AsyncSession, limit: Optional[int] = None
    ) -> Optional[Dict[str, int]]:
        """
        Process one batch on the caller's session.

        The caller commits. Returns None when a tick is already running.
        """
        if self._lock.locked():
            return None

        async with self._lock:
            return await self._process(session, limit or settings.OUTBOX_BATCH_SIZE)

    async def _process(self, session: AsyncSession, limit: int) -> Dict[str, int]:
        dao = OutboxDAO(session)
        users = UserDAO(session)
        email_service = self._get_email_service()

        stats = {"processed": 0, "failed": 0}
        rows = await dao.list_pending(limit=limit, max_attempts=settings.OUTBOX_MAX_ATTEMPTS)

        for row in rows:
            recipient = None
            if row.recipient_user_id is not None:
                recipient = await users.get_by_id(row.recipient_user_id)

            if recipient is None or not recipient.is_active:
                # Nobody to notify; settle the row so it is not retried
                await dao.mark_delivered(row)
                stats["processed"] += 1
                continue

            try:
                await email_service.send_notification_email(
                    recipient.email, row.topic, row.payload or {}
                )
            except EmailServiceError as e:
                await dao.mark_failed(row, e.message)
                stats["failed"] += 1
                logger.warning(
                    f"Outbox row {row.id} delivery failed "
                    f"(attempt {row.attempts}/{settings.OUTBOX_MAX_ATTEMPTS})"
                )
                continue

            await dao.mark_delivered(row)
            stats["processed"] += 1

        return stats


_processor: Optional[NotificationProcessor] = None


def get_notification_processor() -> NotificationProcessor:
    """Get the process-wide NotificationProcessor."""
    global _processor
    if _processor is None:
        _processor = NotificationProcessor()
    return _processor
