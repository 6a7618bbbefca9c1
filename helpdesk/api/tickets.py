"""
Ticket API endpoints.

WHAT: RESTful API for tickets, their comment threads and their event
history.

WHY: Tickets are the core of the helpdesk. Each endpoint resolves the
caller's Scope first, so:
1. ADMIN sees every ticket of the organization
2. EMPLOYEE sees tickets they raised or are assigned
3. CLIENT sees tickets of their own client, and PUBLIC comments only

HOW: FastAPI router delegating to TicketService and CommentService.
A ticket outside the caller's scope answers 404 exactly like a missing
one.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.deps import get_scope
from helpdesk.core.pagination import clamp_pagination
from helpdesk.core.scope import Scope
from helpdesk.dao.ticket import TicketFilters
from helpdesk.db.session import get_db
from helpdesk.schemas.comment import CommentCreate, CommentResponse
from helpdesk.schemas.ticket import (
    TicketCreate,
    TicketEventResponse,
    TicketListResponse,
    TicketResponse,
    TicketUpdate,
)
from helpdesk.services.comment_service import CommentService
from helpdesk.services.ticket_service import TicketService


router = APIRouter(prefix="/tickets", tags=["tickets"])


# ============================================================================
# Tickets
# ============================================================================


@router.get(
    "",
    response_model=TicketListResponse,
    summary="List tickets",
    description="List tickets visible to the caller, most recently updated first",
)
async def list_tickets(
    project_id: Optional[int] = Query(None, description="Filter by project"),
    status_id: Optional[int] = Query(None, description="Filter by status"),
    priority_id: Optional[int] = Query(None, description="Filter by priority"),
    assigned_to_user_id: Optional[int] = Query(None, description="Filter by assignee"),
    raised_by_user_id: Optional[int] = Query(None, description="Filter by raiser"),
    stream_id: Optional[int] = Query(None, description="Filter by stream"),
    subject_id: Optional[int] = Query(None, description="Filter by subject"),
    search: Optional[str] = Query(None, max_length=100, description="Title, number or description contains"),
    created_from: Optional[datetime] = Query(None, description="Created at or after"),
    created_to: Optional[datetime] = Query(None, description="Created at or before"),
    limit: Optional[int] = Query(None, description="Page size (default 50, max 200)"),
    offset: Optional[int] = Query(None, description="Items to skip"),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> TicketListResponse:
    page = clamp_pagination(limit, offset)
    filters = TicketFilters(
        project_id=project_id,
        status_id=status_id,
        priority_id=priority_id,
        assigned_to_user_id=assigned_to_user_id,
        raised_by_user_id=raised_by_user_id,
        stream_id=stream_id,
        subject_id=subject_id,
        search=search,
        created_from=created_from,
        created_to=created_to,
    )
    tickets, total = await TicketService(db).list_tickets(scope, filters, page)
    return TicketListResponse(
        items=[TicketResponse.model_validate(t) for t in tickets],
        total=total,
        limit=page.limit,
        offset=page.offset,
    )


@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create ticket",
    description="Raise a ticket in a project the caller may raise tickets in",
)
async def create_ticket(
    data: TicketCreate,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> TicketResponse:
    ticket = await TicketService(db).create_ticket(
        scope,
        project_id=data.project_id,
        title=data.title,
        description_md=data.description_md,
        priority_id=data.priority_id,
        status_id=data.status_id,
        stream_id=data.stream_id,
        subject_id=data.subject_id,
        assigned_to_user_id=data.assigned_to_user_id,
    )
    return TicketResponse.model_validate(ticket)


@router.get(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Get ticket",
)
async def get_ticket(
    ticket_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> TicketResponse:
    ticket = await TicketService(db).get_ticket(scope, ticket_id)
    return TicketResponse.model_validate(ticket)


@router.patch(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Update ticket",
    description="Partially update a ticket. Clients cannot change status or assignee.",
)
async def update_ticket(
    ticket_id: int,
    data: TicketUpdate,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> TicketResponse:
    ticket = await TicketService(db).update_ticket(
        scope, ticket_id, data.model_dump(exclude_unset=True)
    )
    return TicketResponse.model_validate(ticket)


@router.delete(
    "/{ticket_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete ticket",
    description="Soft-delete a ticket (ADMIN only). History is kept.",
)
async def delete_ticket(
    ticket_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> None:
    await TicketService(db).delete_ticket(scope, ticket_id)


@router.get(
    "/{ticket_id}/events",
    response_model=List[TicketEventResponse],
    summary="Ticket history",
)
async def list_ticket_events(
    ticket_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> List[TicketEventResponse]:
    events = await TicketService(db).list_events(scope, ticket_id)
    return [TicketEventResponse.model_validate(e) for e in events]


# ============================================================================
# Comments
# ============================================================================


@router.get(
    "/{ticket_id}/comments",
    response_model=List[CommentResponse],
    summary="List comments",
    description="Comment thread, oldest first. Clients only see PUBLIC comments.",
)
async def list_comments(
    ticket_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> List[CommentResponse]:
    comments = await CommentService(db).list_comments(scope, ticket_id)
    return [CommentResponse.model_validate(c) for c in comments]


@router.post(
    "/{ticket_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add comment",
)
async def create_comment(
    ticket_id: int,
    data: CommentCreate,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> CommentResponse:
    comment = await CommentService(db).create_comment(
        scope, ticket_id, data.body_md, data.visibility
    )
    return CommentResponse.model_validate(comment)
