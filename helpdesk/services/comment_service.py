"""
Comment Service.

WHAT: Reading and writing comments on tickets.

WHY: Comments are where INTERNAL staff notes and PUBLIC replies meet. CLIENT
callers must never read or write INTERNAL comments, and an INTERNAL comment
must not be announced to a client user through a notification.

HOW: Reads go through TicketCommentDAO, which applies both the ticket and
the comment visibility predicates. A new comment, its COMMENT_ADDED event
and its outbox row are flushed into the request transaction together.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.exceptions import (
    AuthorizationError,
    CommentNotFoundError,
    TicketNotFoundError,
)
from helpdesk.core.scope import Scope
from helpdesk.dao.comment import TicketCommentDAO
from helpdesk.dao.ticket import TicketDAO
from helpdesk.dao.ticket_event import TicketEventDAO
from helpdesk.dao.user import UserDAO
from helpdesk.models.base import utcnow
from helpdesk.models.outbox import OutboxTopic
from helpdesk.models.ticket import (
    CommentVisibility,
    Ticket,
    TicketComment,
    TicketEventType,
)
from helpdesk.models.user import UserRole
from helpdesk.services.outbox_service import OutboxService


logger = logging.getLogger(__name__)


class CommentService:
    """Service for ticket comments."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.comments = TicketCommentDAO(session)
        self.tickets = TicketDAO(session)
        self.events = TicketEventDAO(session)
        self.outbox = OutboxService(session)

    async def list_comments(self, scope: Scope, ticket_id: int) -> List[TicketComment]:
        """
        Thread of a visible ticket, oldest first.

        Raises:
            TicketNotFoundError: Ticket missing, deleted or out of scope
        """
        await self._get_ticket(scope, ticket_id)
        return await self.comments.list_for_ticket(scope, ticket_id)

    async def get_comment(self, scope: Scope, comment_id: int) -> TicketComment:
        """
        Single comment.

        Raises:
            CommentNotFoundError: Missing, on an invisible ticket, or
                INTERNAL and requested by a CLIENT caller
        """
        comment = await self.comments.get_visible(scope, comment_id)
        if comment is None:
            raise CommentNotFoundError(comment_id=comment_id)
        return comment

    async def create_comment(
        self,
        scope: Scope,
        ticket_id: int,
        body_md: str,
        visibility: CommentVisibility = CommentVisibility.PUBLIC,
    ) -> TicketComment:
        """
        Add a comment authored by the caller.

        Raises:
            TicketNotFoundError: Ticket missing, deleted or out of scope
            AuthorizationError: CLIENT caller posting an INTERNAL comment
        """
        ticket = await self._get_ticket(scope, ticket_id)

        if visibility == CommentVisibility.INTERNAL and not scope.includes_internal_comments:
            raise AuthorizationError(
                message="Clients cannot post internal comments",
                ticket_id=ticket_id,
            )

        comment = await self.comments.create(
            ticket_id=ticket.id,
            author_user_id=scope.user_id,
            visibility=visibility,
            body_md=body_md,
            created_at=utcnow(),
        )

        await self.events.record(
            ticket.id,
            TicketEventType.COMMENT_ADDED,
            scope.user_id,
            new_value={"comment_id": comment.id, "visibility": visibility.value},
        )

        recipient_id = await self._comment_recipient(ticket, visibility, scope.user_id)
        await self.outbox.enqueue(
            OutboxTopic.COMMENT_ADDED,
            ticket.id,
            recipient_id,
            {
                "ticket_id": ticket.id,
                "ticket_number": ticket.client_ticket_number,
                "title": ticket.title,
                "comment_id": comment.id,
                "visibility": visibility.value,
            },
        )

        logger.info(
            f"Comment {comment.id} ({visibility.value}) added to ticket {ticket.id} "
            f"by user {scope.user_id}"
        )
        return comment

    async def _get_ticket(self, scope: Scope, ticket_id: int) -> Ticket:
        ticket = await self.tickets.get_visible(scope, ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return ticket

    async def _comment_recipient(
        self, ticket: Ticket, visibility: CommentVisibility, author_id: int
    ) -> Optional[int]:
        """
        Who hears about a new comment.

        The raiser, else the assignee, skipping the author. INTERNAL
        comments are never announced to CLIENT users.
        """
        users = UserDAO(self.session)
        for user_id in (ticket.raised_by_user_id, ticket.assigned_to_user_id):
            if user_id is None or user_id == author_id:
                continue
            if visibility == CommentVisibility.INTERNAL:
                user = await users.get_by_id(user_id)
                if user is None or user.role == UserRole.CLIENT:
                    continue
            return user_id
        return None
