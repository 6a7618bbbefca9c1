"""
Ticket Data Access Object.

WHAT: DAO for ticket reads and writes under a visibility Scope.

WHY: Encapsulates all ticket database operations with:
1. Scope predicates applied to every read (no unscoped read path for callers)
2. Soft-deleted rows hidden from all reads except the admin audit lookup
3. Search, filtering and offset pagination
4. Per-client ticket number allocation

HOW: Uses SQLAlchemy 2.0 async with proper session management. Filters
only ever narrow the scope predicate; they are ANDed onto it.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List, Tuple

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.scope import Scope
from helpdesk.dao.base import LIKE_ESCAPE, BaseDAO, contains_pattern
from helpdesk.models.ticket import Ticket, ClientTicketCounter


@dataclass
class TicketFilters:
    """Caller-supplied ticket list filters. None means "don't filter"."""

    project_id: Optional[int] = None
    status_id: Optional[int] = None
    priority_id: Optional[int] = None
    assigned_to_user_id: Optional[int] = None
    raised_by_user_id: Optional[int] = None
    stream_id: Optional[int] = None
    subject_id: Optional[int] = None
    search: Optional[str] = None
    created_from: Optional[datetime] = None
    created_to: Optional[datetime] = None


class TicketDAO(BaseDAO[Ticket]):
    """
    Data Access Object for Ticket operations.

    HOW: All methods are async and use the injected session; nothing here
    commits.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Ticket, session)

    def visible_query(self, scope: Scope, include_deleted: bool = False):
        """Base select of tickets visible to the scope."""
        return select(Ticket).where(scope.ticket_clause(include_deleted=include_deleted))

    async def list(
        self,
        scope: Scope,
        filters: Optional[TicketFilters] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Ticket], int]:
        """
        List tickets visible to the scope with filtering and pagination.

        Ordered most recently updated first, id breaking ties.

        Args:
            scope: Caller visibility
            filters: Optional narrowing filters
            skip: Number of records to skip
            limit: Maximum records to return

        Returns:
            Tuple of (tickets list, total count)
        """
        filters = filters or TicketFilters()
        base_query = self.visible_query(scope)

        if filters.project_id is not None:
            base_query = base_query.where(Ticket.project_id == filters.project_id)

        if filters.status_id is not None:
            base_query = base_query.where(Ticket.status_id == filters.status_id)

        if filters.priority_id is not None:
            base_query = base_query.where(Ticket.priority_id == filters.priority_id)

        if filters.assigned_to_user_id is not None:
            base_query = base_query.where(
                Ticket.assigned_to_user_id == filters.assigned_to_user_id
            )

        if filters.raised_by_user_id is not None:
            base_query = base_query.where(
                Ticket.raised_by_user_id == filters.raised_by_user_id
            )

        if filters.stream_id is not None:
            base_query = base_query.where(Ticket.stream_id == filters.stream_id)

        if filters.subject_id is not None:
            base_query = base_query.where(Ticket.subject_id == filters.subject_id)

        if filters.search:
            search_pattern = contains_pattern(filters.search)
            base_query = base_query.where(
                or_(
                    Ticket.title.ilike(search_pattern, escape=LIKE_ESCAPE),
                    Ticket.client_ticket_number.ilike(search_pattern, escape=LIKE_ESCAPE),
                    Ticket.description_md.ilike(search_pattern, escape=LIKE_ESCAPE),
                )
            )

        if filters.created_from is not None:
            base_query = base_query.where(Ticket.created_at >= filters.created_from)

        if filters.created_to is not None:
            base_query = base_query.where(Ticket.created_at <= filters.created_to)

        return await self.paginate(
            base_query, (Ticket.updated_at.desc(), Ticket.id.desc()), skip, limit
        )

    async def get_visible(
        self,
        scope: Scope,
        ticket_id: int,
        include_deleted: bool = False,
    ) -> Optional[Ticket]:
        """
        Get a ticket by id if the scope can see it.

        Returns:
            Ticket, or None when missing, soft-deleted or out of scope.
            Callers must not try to tell these cases apart.
        """
        result = await self.session.execute(
            self.visible_query(scope, include_deleted=include_deleted).where(
                Ticket.id == ticket_id
            )
        )
        return result.scalar_one_or_none()

    async def count_visible(self, scope: Scope) -> int:
        """Number of tickets the scope can see (no filters)."""
        result = await self.session.execute(
            select(func.count()).select_from(Ticket).where(scope.ticket_clause())
        )
        return result.scalar_one()

    async def next_ticket_sequence(self, client_id: int) -> int:
        """
        Allocate the next ticket sequence number for a client.

        WHY: The counter row is locked FOR UPDATE so concurrent ticket
        creation for the same client serializes on PostgreSQL. The
        increment is part of the caller's transaction, so a rolled back
        ticket also gives its number back.
        """
        result = await self.session.execute(
            select(ClientTicketCounter)
            .where(ClientTicketCounter.client_id == client_id)
            .with_for_update()
        )
        counter = result.scalar_one_or_none()

        if counter is None:
            counter = ClientTicketCounter(client_id=client_id, last_number=1)
            self.session.add(counter)
        else:
            counter.last_number += 1

        await self.session.flush()
        return counter.last_number
