"""
Ticket comment Data Access Object.

WHY: Comment reads are always layered on ticket visibility: a query joins
the parent ticket under Scope.ticket_clause() and then applies
Scope.comment_clause() (PUBLIC only for CLIENT callers).
"""

from typing import Optional, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.scope import Scope
from helpdesk.dao.base import BaseDAO
from helpdesk.models.ticket import Ticket, TicketComment


class TicketCommentDAO(BaseDAO[TicketComment]):
    """Data Access Object for ticket comments."""

    def __init__(self, session: AsyncSession):
        super().__init__(TicketComment, session)

    async def list_for_ticket(self, scope: Scope, ticket_id: int) -> List[TicketComment]:
        """
        List comments of a ticket in thread order (oldest first).

        The ticket itself must already have been checked with
        TicketDAO.get_visible(); the ticket clause is repeated here so the
        query is safe on its own.
        """
        result = await self.session.execute(
            select(TicketComment)
            .join(Ticket, Ticket.id == TicketComment.ticket_id)
            .where(
                TicketComment.ticket_id == ticket_id,
                scope.ticket_clause(),
                scope.comment_clause(),
            )
            .order_by(TicketComment.created_at.asc(), TicketComment.id.asc())
        )
        return list(result.scalars().all())

    async def get_visible(self, scope: Scope, comment_id: int) -> Optional[TicketComment]:
        """Get a single comment if both it and its ticket are visible."""
        result = await self.session.execute(
            select(TicketComment)
            .join(Ticket, Ticket.id == TicketComment.ticket_id)
            .where(
                TicketComment.id == comment_id,
                scope.ticket_clause(),
                scope.comment_clause(),
            )
        )
        return result.scalar_one_or_none()
