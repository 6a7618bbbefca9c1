"""
Notification outbox API endpoints.

WHAT: ADMIN views of pending notifications and a manual processing trigger.

WHY: Lets operators see stuck or parked rows and drain the queue without
waiting for the next poller tick (e.g. after fixing email credentials).
The manual trigger shares the poller's lock, so it never overlaps a tick.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.config import settings
from helpdesk.core.deps import require_admin
from helpdesk.core.pagination import clamp_pagination
from helpdesk.db.session import get_db
from helpdesk.models.user import User
from helpdesk.schemas.outbox import (
    OutboxItemResponse,
    OutboxPendingResponse,
    OutboxProcessRequest,
    OutboxProcessResponse,
)
from helpdesk.services.outbox_service import OutboxService, get_notification_processor


router = APIRouter(prefix="/outbox", tags=["outbox"])


@router.get(
    "/pending",
    response_model=OutboxPendingResponse,
    summary="Pending notifications",
    description="Undelivered notifications for tickets of the organization, oldest first",
)
async def list_pending(
    limit: Optional[int] = Query(None, description="Rows (default 50, max 200)"),
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> OutboxPendingResponse:
    page = clamp_pagination(limit)
    rows = await OutboxService(db).list_pending(current_user.org_id, page.limit)
    return OutboxPendingResponse(
        items=[
            OutboxItemResponse(
                id=row.id,
                topic=row.topic,
                ticket_id=row.ticket_id,
                recipient_user_id=row.recipient_user_id,
                payload=row.payload or {},
                attempts=row.attempts,
                last_error=row.last_error,
                parked=row.attempts >= settings.OUTBOX_MAX_ATTEMPTS,
                created_at=row.created_at,
            )
            for row in rows
        ],
        limit=page.limit,
    )


@router.post(
    "/process",
    response_model=OutboxProcessResponse,
    summary="Process notifications now",
)
async def process_pending(
    data: Optional[OutboxProcessRequest] = None,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> OutboxProcessResponse:
    limit = data.limit if data is not None else None
    stats = await get_notification_processor().process_pending(db, limit)
    if stats is None:
        return OutboxProcessResponse(processed=0, failed=0, skipped=True)
    return OutboxProcessResponse(**stats)
