"""
Dashboard API endpoints.

WHAT: Role-aware metrics, the recent activity feed and per-user activity
for admins.

WHY: Every endpoint uses the caller's Scope, so the numbers always match
what the same caller gets from GET /api/tickets.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.deps import get_scope
from helpdesk.core.pagination import clamp_pagination
from helpdesk.core.scope import Scope
from helpdesk.db.session import get_db
from helpdesk.schemas.dashboard import (
    ActivityItem,
    ActivityResponse,
    DashboardMetrics,
    UserActivityMetrics,
)
from helpdesk.services.dashboard_service import (
    ACTIVITY_DEFAULT_LIMIT,
    ACTIVITY_MAX_LIMIT,
    DashboardService,
)


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get(
    "/metrics",
    response_model=DashboardMetrics,
    response_model_exclude_none=True,
    summary="Dashboard metrics",
)
async def get_metrics(
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> DashboardMetrics:
    metrics = await DashboardService(db).get_metrics(scope)
    return DashboardMetrics.model_validate(metrics)


@router.get(
    "/activity",
    response_model=ActivityResponse,
    summary="Recent activity",
    description="Newest ticket events and comments on visible tickets",
)
async def get_recent_activity(
    limit: Optional[int] = Query(None, description="Items (default 20, max 100)"),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> ActivityResponse:
    limit = clamp_pagination(
        limit, default_limit=ACTIVITY_DEFAULT_LIMIT, max_limit=ACTIVITY_MAX_LIMIT
    ).limit
    items = await DashboardService(db).get_recent_activity(scope, limit)
    return ActivityResponse(
        items=[ActivityItem.model_validate(item) for item in items],
        limit=limit,
    )


@router.get(
    "/users/{user_id}/activity",
    response_model=UserActivityMetrics,
    summary="User activity metrics",
    description="Ticket involvement and recent work of one user (ADMIN only)",
)
async def get_user_activity(
    user_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> UserActivityMetrics:
    metrics = await DashboardService(db).get_user_activity(scope, user_id)
    return UserActivityMetrics.model_validate(metrics)
