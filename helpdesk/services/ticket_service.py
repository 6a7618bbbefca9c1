"""
Ticket Service.

WHAT: Business operations on tickets: scoped listing and lookup, creation,
updates with per-field audit events, soft delete, and event history.

WHY: Every operation goes through the caller's Scope. A ticket that is
missing, soft-deleted or outside the scope raises the same
TicketNotFoundError, so callers can never learn that a ticket exists in
another organization or client.

HOW: The service works on the request's AsyncSession and never commits.
Ticket rows, their events and their outbox rows are flushed into the same
transaction, which get_db commits or rolls back as a unit.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.exceptions import (
    AuthorizationError,
    ProjectNotFoundError,
    TicketNotFoundError,
    ValidationError,
)
from helpdesk.core.pagination import Pagination
from helpdesk.core.scope import Scope
from helpdesk.dao.project import ProjectDAO, ProjectMemberDAO
from helpdesk.dao.taxonomy import PriorityDAO, StatusDAO, StreamDAO, SubjectDAO
from helpdesk.dao.ticket import TicketDAO, TicketFilters
from helpdesk.dao.ticket_event import TicketEventDAO
from helpdesk.models.base import utcnow
from helpdesk.models.outbox import OutboxTopic
from helpdesk.models.ticket import Ticket, TicketEvent, TicketEventType
from helpdesk.services.outbox_service import OutboxService


logger = logging.getLogger(__name__)


# Fields a ticket update may carry
UPDATABLE_FIELDS = (
    "status_id",
    "priority_id",
    "assigned_to_user_id",
    "title",
    "description_md",
)


def ticket_number_prefix(client_name: str) -> str:
    """
    Three letter prefix for a client's ticket numbers.

    First three alphanumeric characters of the name, upper-cased and padded
    with "X" (e.g. "Acme Corp" -> "ACM", "3M" -> "3MX").
    """
    cleaned = re.sub(r"[^A-Za-z0-9]", "", client_name or "").upper()
    return (cleaned[:3]).ljust(3, "X")


def format_ticket_number(client_name: str, sequence: int) -> str:
    """Format a client ticket number such as ACM0042."""
    return f"{ticket_number_prefix(client_name)}{sequence:04d}"


class TicketService:
    """
    Service for ticket business operations.

    Example:
        service = TicketService(session)
        tickets, total = await service.list_tickets(scope, TicketFilters(), page)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.tickets = TicketDAO(session)
        self.events = TicketEventDAO(session)
        self.projects = ProjectDAO(session)
        self.members = ProjectMemberDAO(session)
        self.outbox = OutboxService(session)

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_tickets(
        self,
        scope: Scope,
        filters: Optional[TicketFilters],
        pagination: Pagination,
    ) -> Tuple[List[Ticket], int]:
        """List visible tickets, most recently updated first."""
        return await self.tickets.list(
            scope,
            filters=filters,
            skip=pagination.offset,
            limit=pagination.limit,
        )

    async def get_ticket(self, scope: Scope, ticket_id: int) -> Ticket:
        """
        Get one visible ticket.

        Raises:
            TicketNotFoundError: Missing, soft-deleted or out of scope
        """
        ticket = await self.tickets.get_visible(scope, ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return ticket

    async def list_events(self, scope: Scope, ticket_id: int) -> List[TicketEvent]:
        """
        Event history of a visible ticket.

        CLIENT callers do not see COMMENT_ADDED events of INTERNAL comments.
        """
        await self.get_ticket(scope, ticket_id)
        return await self.events.list_for_ticket(
            ticket_id, public_comments_only=not scope.includes_internal_comments
        )

    async def list_audit_events(self, scope: Scope, ticket_id: int) -> List[TicketEvent]:
        """
        Admin audit lookup that still works after a soft delete.

        Raises:
            AuthorizationError: Caller is not ADMIN
            TicketNotFoundError: Missing or in another organization
        """
        if not scope.is_admin:
            raise AuthorizationError(message="Admin access required")

        ticket = await self.tickets.get_visible(scope, ticket_id, include_deleted=True)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        return await self.events.list_for_ticket(ticket_id)

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_ticket(
        self,
        scope: Scope,
        project_id: int,
        title: str,
        priority_id: int,
        status_id: int,
        description_md: str = "",
        stream_id: Optional[int] = None,
        subject_id: Optional[int] = None,
        assigned_to_user_id: Optional[int] = None,
    ) -> Ticket:
        """
        Raise a ticket in a project.

        Raises:
            ProjectNotFoundError: Project not in the caller's org (or client)
            AuthorizationError: Caller may not raise here, assignee may not
                be assigned, or a CLIENT tries to assign
            ValidationError: Lookup ids don't belong to the org/project
        """
        project = None
        if not scope.is_empty:
            project = await self.projects.get_in_org(project_id, scope.org_id)
        if project is None or (scope.is_client and project.client_id != scope.client_id):
            raise ProjectNotFoundError(project_id=project_id)

        membership = await self.members.get(project.id, scope.user_id)
        if membership is None or not membership.can_raise:
            raise AuthorizationError(
                message="You do not have permission to raise tickets in this project",
                project_id=project.id,
            )

        if assigned_to_user_id is not None:
            if scope.is_client:
                raise AuthorizationError(message="Clients cannot assign tickets")
            await self._check_assignable(project.id, assigned_to_user_id)

        await self._check_lookups(
            scope,
            project.id,
            status_id=status_id,
            priority_id=priority_id,
            stream_id=stream_id,
            subject_id=subject_id,
        )

        _, client = await self.projects.get_with_client(project.id)
        sequence = await self.tickets.next_ticket_sequence(client.id)

        now = utcnow()
        ticket = await self.tickets.create(
            project_id=project.id,
            client_id=client.id,
            client_ticket_number=format_ticket_number(client.name, sequence),
            title=title,
            description_md=description_md or "",
            status_id=status_id,
            priority_id=priority_id,
            stream_id=stream_id,
            subject_id=subject_id,
            raised_by_user_id=scope.user_id,
            assigned_to_user_id=assigned_to_user_id,
            is_deleted=False,
            closed_at=now if await self._is_closed_status(status_id) else None,
            created_at=now,
            updated_at=now,
        )

        await self.events.record(
            ticket.id,
            TicketEventType.TICKET_CREATED,
            scope.user_id,
            new_value={"title": ticket.title, "status_id": status_id, "priority_id": priority_id},
        )
        await self.outbox.enqueue(
            OutboxTopic.TICKET_CREATED,
            ticket.id,
            assigned_to_user_id or scope.user_id,
            self._payload(ticket),
        )

        logger.info(
            f"Ticket {ticket.id} ({ticket.client_ticket_number}) created "
            f"in project {project.id} by user {scope.user_id}"
        )
        return ticket

    async def update_ticket(
        self,
        scope: Scope,
        ticket_id: int,
        patch: Dict[str, Any],
    ) -> Ticket:
        """
        Apply a partial update to a visible ticket.

        Each changed field writes one TicketEvent. Status changes set or
        clear closed_at from Status.is_closed. Status and assignee changes
        notify the raiser and the (new) assignee through the outbox.

        Raises:
            TicketNotFoundError: Missing, soft-deleted or out of scope
            AuthorizationError: CLIENT changes status or assignee, or the
                new assignee may not be assigned in this project
            ValidationError: Empty patch or invalid lookup ids
        """
        patch = {k: v for k, v in patch.items() if k in UPDATABLE_FIELDS}

        ticket = await self.get_ticket(scope, ticket_id)

        if not patch:
            raise ValidationError(message="No fields to update", ticket_id=ticket_id)

        if scope.is_client and "status_id" in patch:
            raise AuthorizationError(
                message="Clients cannot change ticket status", ticket_id=ticket_id
            )
        if scope.is_client and "assigned_to_user_id" in patch:
            raise AuthorizationError(
                message="Clients cannot change ticket assignee", ticket_id=ticket_id
            )

        changes: Dict[str, Any] = {}
        events: List[Tuple[TicketEventType, Dict[str, Any], Dict[str, Any]]] = []

        if "status_id" in patch and patch["status_id"] != ticket.status_id:
            await self._check_lookups(scope, ticket.project_id, status_id=patch["status_id"])
            changes["status_id"] = patch["status_id"]
            changes["closed_at"] = (
                utcnow() if await self._is_closed_status(patch["status_id"]) else None
            )
            events.append(
                (
                    TicketEventType.STATUS_CHANGED,
                    {"status_id": ticket.status_id},
                    {"status_id": patch["status_id"]},
                )
            )

        if "priority_id" in patch and patch["priority_id"] != ticket.priority_id:
            await self._check_lookups(scope, ticket.project_id, priority_id=patch["priority_id"])
            changes["priority_id"] = patch["priority_id"]
            events.append(
                (
                    TicketEventType.PRIORITY_CHANGED,
                    {"priority_id": ticket.priority_id},
                    {"priority_id": patch["priority_id"]},
                )
            )

        if (
            "assigned_to_user_id" in patch
            and patch["assigned_to_user_id"] != ticket.assigned_to_user_id
        ):
            if patch["assigned_to_user_id"] is not None:
                await self._check_assignable(ticket.project_id, patch["assigned_to_user_id"])
            changes["assigned_to_user_id"] = patch["assigned_to_user_id"]
            events.append(
                (
                    TicketEventType.ASSIGNEE_CHANGED,
                    {"assigned_to_user_id": ticket.assigned_to_user_id},
                    {"assigned_to_user_id": patch["assigned_to_user_id"]},
                )
            )

        if "title" in patch and patch["title"] != ticket.title:
            changes["title"] = patch["title"]
            events.append(
                (
                    TicketEventType.TITLE_UPDATED,
                    {"title": ticket.title},
                    {"title": patch["title"]},
                )
            )

        if "description_md" in patch and patch["description_md"] != ticket.description_md:
            changes["description_md"] = patch["description_md"] or ""
            events.append(
                (
                    TicketEventType.DESCRIPTION_UPDATED,
                    {"description_md": ticket.description_md},
                    {"description_md": patch["description_md"]},
                )
            )

        if not changes:
            return ticket

        changes["updated_at"] = utcnow()
        ticket = await self.tickets.update(ticket, **changes)

        for event_type, old_value, new_value in events:
            await self.events.record(
                ticket.id, event_type, scope.user_id, old_value=old_value, new_value=new_value
            )

        if "status_id" in changes or "assigned_to_user_id" in changes:
            payload = self._payload(ticket, changes=[e[0].value for e in events])
            for recipient in self._update_recipients(ticket, scope.user_id):
                await self.outbox.enqueue(OutboxTopic.TICKET_UPDATED, ticket.id, recipient, payload)

        logger.info(
            f"Ticket {ticket.id} updated by user {scope.user_id}: "
            f"{', '.join(e[0].value for e in events)}"
        )
        return ticket

    async def delete_ticket(self, scope: Scope, ticket_id: int) -> None:
        """
        Soft-delete a ticket (ADMIN only).

        Comments and events are kept for the audit trail.

        Raises:
            TicketNotFoundError: Missing, already deleted or out of scope
            AuthorizationError: Caller is not ADMIN
        """
        ticket = await self.get_ticket(scope, ticket_id)

        if not scope.is_admin:
            raise AuthorizationError(message="Admin access required", ticket_id=ticket_id)

        await self.tickets.update(ticket, is_deleted=True, updated_at=utcnow())
        await self.events.record(
            ticket.id,
            TicketEventType.TICKET_DELETED,
            scope.user_id,
            old_value={"is_deleted": False},
            new_value={"is_deleted": True},
        )
        logger.info(f"Ticket {ticket.id} soft-deleted by user {scope.user_id}")

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _check_assignable(self, project_id: int, user_id: int) -> None:
        membership = await self.members.get(project_id, user_id)
        if membership is None or not membership.can_be_assigned:
            raise AuthorizationError(
                message="User cannot be assigned tickets in this project",
                project_id=project_id,
                assignee_id=user_id,
            )

    async def _check_lookups(
        self,
        scope: Scope,
        project_id: int,
        status_id: Optional[int] = None,
        priority_id: Optional[int] = None,
        stream_id: Optional[int] = None,
        subject_id: Optional[int] = None,
    ) -> None:
        """Validate that lookup ids belong to the organization/project."""
        if status_id is not None:
            if await StatusDAO(self.session).get_by_id_and_org(status_id, scope.org_id) is None:
                raise ValidationError(message="Invalid status", status_id=status_id)

        if priority_id is not None:
            if await PriorityDAO(self.session).get_by_id_and_org(priority_id, scope.org_id) is None:
                raise ValidationError(message="Invalid priority", priority_id=priority_id)

        if stream_id is not None:
            if await StreamDAO(self.session).get_in_project(stream_id, project_id) is None:
                raise ValidationError(message="Invalid stream", stream_id=stream_id)

        if subject_id is not None:
            if await SubjectDAO(self.session).get_in_project(subject_id, project_id) is None:
                raise ValidationError(message="Invalid subject", subject_id=subject_id)

    async def _is_closed_status(self, status_id: int) -> bool:
        status = await StatusDAO(self.session).get_by_id(status_id)
        return bool(status and status.is_closed)

    @staticmethod
    def _update_recipients(ticket: Ticket, actor_id: int) -> List[int]:
        recipients: List[int] = []
        for user_id in (ticket.raised_by_user_id, ticket.assigned_to_user_id):
            if user_id is not None and user_id != actor_id and user_id not in recipients:
                recipients.append(user_id)
        return recipients

    @staticmethod
    def _payload(ticket: Ticket, changes: Optional[List[str]] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "ticket_id": ticket.id,
            "ticket_number": ticket.client_ticket_number,
            "title": ticket.title,
        }
        if changes:
            payload["changes"] = changes
        return payload
