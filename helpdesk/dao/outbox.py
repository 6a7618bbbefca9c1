"""
Notification outbox Data Access Object.

WHAT: Enqueue, fetch and settle notification rows.

WHY: enqueue() only flushes, so the row commits or rolls back together with
the ticket/comment write that produced it.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.dao.base import BaseDAO
from helpdesk.models.base import utcnow
from helpdesk.models.organization import Client
from helpdesk.models.outbox import NotificationOutbox
from helpdesk.models.project import Project
from helpdesk.models.ticket import Ticket


class OutboxDAO(BaseDAO[NotificationOutbox]):
    """Data Access Object for the notification outbox."""

    def __init__(self, session: AsyncSession):
        super().__init__(NotificationOutbox, session)

    async def enqueue(
        self,
        topic: str,
        ticket_id: Optional[int],
        recipient_user_id: Optional[int],
        payload: Dict[str, Any],
    ) -> NotificationOutbox:
        """Append one pending notification in the current transaction."""
        return await self.create(
            topic=topic,
            ticket_id=ticket_id,
            recipient_user_id=recipient_user_id,
            payload=payload,
            attempts=0,
        )

    async def list_pending(
        self,
        limit: int,
        max_attempts: Optional[int] = None,
        org_id: Optional[int] = None,
    ) -> List[NotificationOutbox]:
        """
        Oldest undelivered rows.

        No row locks are taken; the poller is single-flight per process.

        Args:
            limit: Maximum rows
            max_attempts: Leave out rows parked at the retry cap
            org_id: Only rows whose ticket belongs to this organization
        """
        query = select(NotificationOutbox).where(NotificationOutbox.delivered_at.is_(None))

        if max_attempts is not None:
            query = query.where(NotificationOutbox.attempts < max_attempts)

        if org_id is not None:
            query = query.where(
                NotificationOutbox.ticket_id.in_(
                    select(Ticket.id)
                    .join(Project, Project.id == Ticket.project_id)
                    .join(Client, Client.id == Project.client_id)
                    .where(Client.org_id == org_id)
                )
            )

        result = await self.session.execute(
            query.order_by(NotificationOutbox.created_at.asc(), NotificationOutbox.id.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def mark_delivered(self, row: NotificationOutbox) -> None:
        row.delivered_at = utcnow()
        row.last_error = None
        await self.session.flush()

    async def mark_failed(self, row: NotificationOutbox, error: str) -> None:
        row.attempts = row.attempts + 1
        row.last_error = error[:2000]
        await self.session.flush()
