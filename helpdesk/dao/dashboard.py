"""
Dashboard Data Access Object.

WHAT: Aggregate queries behind the dashboard metrics and activity feed.

WHY: Every ticket aggregate here is built on Scope.ticket_clause(), the same
predicate TicketDAO.list() uses, so a dashboard total always equals the
ticket list total for the same caller.

HOW: Status and priority breakdowns start from the organization's lookup
rows and outer-join visible tickets, so statuses with no tickets still show
up with a zero count and the breakdown sums to the total.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, and_, case, or_
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.scope import Scope
from helpdesk.models.organization import Client
from helpdesk.models.project import Project
from helpdesk.models.taxonomy import Priority, Status
from helpdesk.models.ticket import Ticket, TicketComment, TicketEvent, TicketEventType
from helpdesk.models.user import User


class DashboardDAO:
    """
    Data Access Object for dashboard aggregates.

    HOW: Stateless apart from the session; every method takes the Scope.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # =========================================================================
    # Ticket aggregates
    # =========================================================================

    async def ticket_counts(self, scope: Scope) -> Dict[str, int]:
        """
        Total, open and closed ticket counts.

        Open/closed follow Status.is_closed of each ticket's current status.
        """
        query = (
            select(
                func.count(Ticket.id),
                func.coalesce(func.sum(case((Status.is_closed.is_(True), 1), else_=0)), 0),
            )
            .select_from(Ticket)
            .join(Status, Status.id == Ticket.status_id)
            .where(scope.ticket_clause())
        )
        total, closed = (await self.session.execute(query)).one()
        return {"total": total, "open": total - closed, "closed": closed}

    async def tickets_by_status(self, scope: Scope) -> List[Dict[str, Any]]:
        """Visible ticket counts per status, in workflow sequence."""
        query = (
            select(Status.id, Status.name, Status.is_closed, func.count(Ticket.id))
            .select_from(Status)
            .outerjoin(
                Ticket,
                and_(Ticket.status_id == Status.id, scope.ticket_clause()),
            )
            .where(Status.org_id == scope.org_id)
            .group_by(Status.id, Status.name, Status.is_closed, Status.sequence)
            .order_by(Status.sequence, Status.id)
        )
        result = await self.session.execute(query)
        return [
            {"status_id": row[0], "name": row[1], "is_closed": row[2], "count": row[3]}
            for row in result.all()
        ]

    async def tickets_by_priority(self, scope: Scope) -> List[Dict[str, Any]]:
        """Visible ticket counts per priority, most urgent first."""
        query = (
            select(Priority.id, Priority.name, func.count(Ticket.id))
            .select_from(Priority)
            .outerjoin(
                Ticket,
                and_(Ticket.priority_id == Priority.id, scope.ticket_clause()),
            )
            .where(Priority.org_id == scope.org_id)
            .group_by(Priority.id, Priority.name, Priority.rank)
            .order_by(Priority.rank, Priority.id)
        )
        result = await self.session.execute(query)
        return [
            {"priority_id": row[0], "name": row[1], "count": row[2]}
            for row in result.all()
        ]

    async def tickets_assigned_to(self, scope: Scope, user_id: int) -> int:
        """Visible tickets currently assigned to a user."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Ticket)
            .where(scope.ticket_clause(), Ticket.assigned_to_user_id == user_id)
        )
        return result.scalar_one()

    # =========================================================================
    # Other aggregates
    # =========================================================================

    async def project_counts(self, scope: Scope) -> Dict[str, int]:
        """Total and active projects visible to the scope."""
        query = select(
            func.count(Project.id),
            func.coalesce(func.sum(case((Project.active.is_(True), 1), else_=0)), 0),
        ).where(scope.project_clause())
        total, active = (await self.session.execute(query)).one()
        return {"total": total, "active": active}

    async def client_counts(self, org_id: int) -> Dict[str, int]:
        """Total and active clients of an organization."""
        query = select(
            func.count(Client.id),
            func.coalesce(func.sum(case((Client.active.is_(True), 1), else_=0)), 0),
        ).where(Client.org_id == org_id)
        total, active = (await self.session.execute(query)).one()
        return {"total": total, "active": active}

    async def user_counts(self, org_id: int) -> Dict[str, int]:
        """Total and active users of an organization."""
        query = select(
            func.count(User.id),
            func.coalesce(func.sum(case((User.is_active.is_(True), 1), else_=0)), 0),
        ).where(User.org_id == org_id)
        total, active = (await self.session.execute(query)).one()
        return {"total": total, "active": active}

    # =========================================================================
    # Activity feed
    # =========================================================================

    async def recent_events(
        self, scope: Scope, limit: int
    ) -> List[Tuple[TicketEvent, Dict[str, Any]]]:
        """
        Newest ticket events on visible tickets.

        COMMENT_ADDED events are left out: the feed shows the comments
        themselves, already filtered by comment visibility.

        Returns:
            List of (event, feed context) where the context holds the ticket
            title and number, project and client names, and the actor's name
        """
        query = (
            select(TicketEvent, *_FEED_COLUMNS)
            .join(Ticket, Ticket.id == TicketEvent.ticket_id)
            .join(Project, Project.id == Ticket.project_id)
            .join(Client, Client.id == Ticket.client_id)
            .join(User, User.id == TicketEvent.actor_user_id)
            .where(
                scope.ticket_clause(),
                TicketEvent.event_type != TicketEventType.COMMENT_ADDED,
            )
            .order_by(TicketEvent.created_at.desc(), TicketEvent.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [(row[0], _feed_context(row)) for row in result.all()]

    async def recent_comments(
        self, scope: Scope, limit: int
    ) -> List[Tuple[TicketComment, Dict[str, Any]]]:
        """
        Newest visible comments on visible tickets.

        Returns:
            List of (comment, feed context), see recent_events()
        """
        query = (
            select(TicketComment, *_FEED_COLUMNS)
            .join(Ticket, Ticket.id == TicketComment.ticket_id)
            .join(Project, Project.id == Ticket.project_id)
            .join(Client, Client.id == Ticket.client_id)
            .join(User, User.id == TicketComment.author_user_id)
            .where(scope.ticket_clause(), scope.comment_clause())
            .order_by(TicketComment.created_at.desc(), TicketComment.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [(row[0], _feed_context(row)) for row in result.all()]

    # =========================================================================
    # Per-user activity
    # =========================================================================

    async def user_ticket_counts(self, scope: Scope, user_id: int) -> Dict[str, int]:
        """
        Visible tickets a user raised or is assigned to.

        `total` counts each ticket once even when the user both raised it
        and is assigned to it.
        """
        assigned = Ticket.assigned_to_user_id == user_id
        query = (
            select(
                func.count(Ticket.id),
                _count_where(Ticket.raised_by_user_id == user_id),
                _count_where(assigned),
                _count_where(and_(assigned, Status.is_closed.is_(True))),
            )
            .select_from(Ticket)
            .join(Status, Status.id == Ticket.status_id)
            .where(scope.ticket_clause(), _involves(user_id))
        )
        total, raised, assigned_total, assigned_closed = (
            await self.session.execute(query)
        ).one()
        return {
            "total": total,
            "raised": raised,
            "assigned": assigned_total,
            "assigned_open": assigned_total - assigned_closed,
            "assigned_closed": assigned_closed,
        }

    async def user_tickets_by_status(
        self, scope: Scope, user_id: int
    ) -> List[Dict[str, Any]]:
        """Statuses of the tickets a user raised or is assigned to."""
        query = (
            select(Status.id, Status.name, Status.is_closed, func.count(Ticket.id))
            .select_from(Ticket)
            .join(Status, Status.id == Ticket.status_id)
            .where(scope.ticket_clause(), _involves(user_id))
            .group_by(Status.id, Status.name, Status.is_closed, Status.sequence)
            .order_by(Status.sequence, Status.id)
        )
        result = await self.session.execute(query)
        return [
            {"status_id": row[0], "name": row[1], "is_closed": row[2], "count": row[3]}
            for row in result.all()
        ]

    async def user_tickets_by_priority(
        self, scope: Scope, user_id: int
    ) -> List[Dict[str, Any]]:
        """Priorities of the tickets a user raised or is assigned to."""
        query = (
            select(Priority.id, Priority.name, func.count(Ticket.id))
            .select_from(Ticket)
            .join(Priority, Priority.id == Ticket.priority_id)
            .where(scope.ticket_clause(), _involves(user_id))
            .group_by(Priority.id, Priority.name, Priority.rank)
            .order_by(Priority.rank, Priority.id)
        )
        result = await self.session.execute(query)
        return [
            {"priority_id": row[0], "name": row[1], "count": row[2]}
            for row in result.all()
        ]

    async def user_events_by_type(
        self, scope: Scope, user_id: int
    ) -> List[Dict[str, Any]]:
        """Events a user caused on visible tickets, grouped by type."""
        count = func.count(TicketEvent.id)
        query = (
            select(TicketEvent.event_type, count)
            .join(Ticket, Ticket.id == TicketEvent.ticket_id)
            .where(scope.ticket_clause(), TicketEvent.actor_user_id == user_id)
            .group_by(TicketEvent.event_type)
            .order_by(count.desc(), TicketEvent.event_type)
        )
        result = await self.session.execute(query)
        return [
            {"event_type": row[0].value, "count": row[1]} for row in result.all()
        ]

    async def user_comment_count(
        self, scope: Scope, user_id: int, since: Optional[datetime] = None
    ) -> int:
        """Comments a user wrote on visible tickets, optionally since a time."""
        query = (
            select(func.count(TicketComment.id))
            .join(Ticket, Ticket.id == TicketComment.ticket_id)
            .where(
                scope.ticket_clause(),
                scope.comment_clause(),
                TicketComment.author_user_id == user_id,
            )
        )
        if since is not None:
            query = query.where(TicketComment.created_at >= since)
        return (await self.session.execute(query)).scalar_one()

    async def user_last_activity(
        self, scope: Scope, user_id: int
    ) -> Optional[datetime]:
        """Newest event or comment by a user on a visible ticket."""
        last_event = await self.session.execute(
            select(func.max(TicketEvent.created_at))
            .join(Ticket, Ticket.id == TicketEvent.ticket_id)
            .where(scope.ticket_clause(), TicketEvent.actor_user_id == user_id)
        )
        last_comment = await self.session.execute(
            select(func.max(TicketComment.created_at))
            .join(Ticket, Ticket.id == TicketComment.ticket_id)
            .where(
                scope.ticket_clause(),
                scope.comment_clause(),
                TicketComment.author_user_id == user_id,
            )
        )
        stamps = [
            stamp
            for stamp in (last_event.scalar_one(), last_comment.scalar_one())
            if stamp is not None
        ]
        return max(stamps) if stamps else None

    async def user_tickets_raised_since(
        self, scope: Scope, user_id: int, since: datetime
    ) -> int:
        result = await self.session.execute(
            select(func.count(Ticket.id)).where(
                scope.ticket_clause(),
                Ticket.raised_by_user_id == user_id,
                Ticket.created_at >= since,
            )
        )
        return result.scalar_one()

    async def user_closed_since(
        self, scope: Scope, user_id: int, since: datetime
    ) -> List[Tuple[datetime, datetime]]:
        """
        Tickets assigned to a user and closed since a time.

        Returns:
            List of (created_at, closed_at), for resolution time averages
        """
        result = await self.session.execute(
            select(Ticket.created_at, Ticket.closed_at).where(
                scope.ticket_clause(),
                Ticket.assigned_to_user_id == user_id,
                Ticket.closed_at.is_not(None),
                Ticket.closed_at >= since,
            )
        )
        return [(row[0], row[1]) for row in result.all()]


_FEED_COLUMNS = (
    Ticket.title,
    Ticket.client_ticket_number,
    Ticket.project_id,
    Project.name,
    Ticket.client_id,
    Client.name,
    User.name,
)


def _feed_context(row) -> Dict[str, Any]:
    return {
        "ticket_title": row[1],
        "ticket_number": row[2],
        "project_id": row[3],
        "project_name": row[4],
        "client_id": row[5],
        "client_name": row[6],
        "actor_name": row[7],
    }


def _involves(user_id: int) -> ColumnElement[bool]:
    return or_(Ticket.raised_by_user_id == user_id, Ticket.assigned_to_user_id == user_id)


def _count_where(condition: ColumnElement[bool]):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)
