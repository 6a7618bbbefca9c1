"""
Ticket event Data Access Object.

WHAT: Append and read the immutable ticket audit trail.

WHY: list_for_ticket is a direct lookup by ticket id with no scope applied.
Events stay queryable after a ticket is soft-deleted; callers decide who
may reach this lookup (ticket visibility check, or the admin audit route).
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_, not_
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.dao.base import BaseDAO
from helpdesk.models.ticket import (
    CommentVisibility,
    TicketComment,
    TicketEvent,
    TicketEventType,
)


class TicketEventDAO(BaseDAO[TicketEvent]):
    """Data Access Object for ticket events."""

    def __init__(self, session: AsyncSession):
        super().__init__(TicketEvent, session)

    async def record(
        self,
        ticket_id: int,
        event_type: TicketEventType,
        actor_user_id: int,
        old_value: Optional[Dict[str, Any]] = None,
        new_value: Optional[Dict[str, Any]] = None,
    ) -> TicketEvent:
        """Append one event in the current transaction."""
        return await self.create(
            ticket_id=ticket_id,
            event_type=event_type,
            actor_user_id=actor_user_id,
            old_value=old_value,
            new_value=new_value,
        )

    async def list_for_ticket(
        self,
        ticket_id: int,
        public_comments_only: bool = False,
    ) -> List[TicketEvent]:
        """
        List events of a ticket, oldest first.

        Args:
            ticket_id: Ticket id
            public_comments_only: Drop COMMENT_ADDED events that point at
                INTERNAL comments (for CLIENT callers)
        """
        query = select(TicketEvent).where(TicketEvent.ticket_id == ticket_id)

        if public_comments_only:
            internal_comment_ids = select(TicketComment.id).where(
                TicketComment.ticket_id == ticket_id,
                TicketComment.visibility == CommentVisibility.INTERNAL,
            )
            # COMMENT_ADDED events name their comment in new_value.comment_id
            query = query.where(
                not_(
                    and_(
                        TicketEvent.event_type == TicketEventType.COMMENT_ADDED,
                        TicketEvent.new_value["comment_id"].as_integer().in_(
                            internal_comment_ids
                        ),
                    )
                )
            )

        result = await self.session.execute(
            query.order_by(TicketEvent.created_at.asc(), TicketEvent.id.asc())
        )
        return list(result.scalars().all())
