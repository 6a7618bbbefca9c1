"""
Admin API endpoints.

WHAT: ADMIN-only audit lookups.

WHY: Soft-deleted tickets disappear from every normal read path, but their
history must stay reachable for audits. This lookup ignores is_deleted and
is still bounded by the admin's organization.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.deps import get_scope, require_admin
from helpdesk.core.scope import Scope
from helpdesk.db.session import get_db
from helpdesk.schemas.ticket import TicketEventResponse
from helpdesk.services.ticket_service import TicketService


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.get(
    "/tickets/{ticket_id}/events",
    response_model=List[TicketEventResponse],
    summary="Ticket audit trail",
    description="Full event history of a ticket, including soft-deleted tickets",
)
async def get_ticket_audit_trail(
    ticket_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> List[TicketEventResponse]:
    events = await TicketService(db).list_audit_events(scope, ticket_id)
    return [TicketEventResponse.model_validate(e) for e in events]
