"""
Dashboard Service.

WHAT: Role-aware dashboard metrics and the recent activity feed.

WHY: The dashboard is the place where visibility mistakes are easiest to
make. Totals here are computed with the same Scope predicates as the ticket
list, so an EMPLOYEE sees counts for exactly the tickets they can open, and
a CLIENT sees counts for their own client only.

HOW: DashboardDAO runs the aggregates; this service decides which sections
a role gets and merges events and comments into a single feed.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.exceptions import AuthorizationError, UserNotFoundError
from helpdesk.core.pagination import clamp_pagination
from helpdesk.core.scope import Scope
from helpdesk.dao.client import ClientDAO
from helpdesk.dao.dashboard import DashboardDAO
from helpdesk.dao.user import UserDAO
from helpdesk.models.base import utcnow


logger = logging.getLogger(__name__)


ACTIVITY_DEFAULT_LIMIT = 20
ACTIVITY_MAX_LIMIT = 100
COMMENT_PREVIEW_LENGTH = 200
USER_ACTIVITY_WINDOW_DAYS = 30


class DashboardService:
    """Service for dashboard metrics and activity."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.dao = DashboardDAO(session)

    async def get_metrics(self, scope: Scope) -> Dict[str, Any]:
        """
        Metrics for the caller's dashboard.

        Sections:
        - tickets: total/open/closed plus status and priority breakdowns
          (EMPLOYEE also gets assigned_to_me)
        - projects: visible project totals
        - clients, users: ADMIN only
        """
        tickets: Dict[str, Any] = await self.dao.ticket_counts(scope)
        tickets["by_status"] = await self.dao.tickets_by_status(scope)
        tickets["by_priority"] = await self.dao.tickets_by_priority(scope)

        if scope.is_employee:
            tickets["assigned_to_me"] = await self.dao.tickets_assigned_to(
                scope, scope.user_id
            )

        metrics: Dict[str, Any] = {
            "tickets": tickets,
            "projects": await self.dao.project_counts(scope),
        }

        if scope.is_admin:
            metrics["clients"] = await self.dao.client_counts(scope.org_id)
            metrics["users"] = await self.dao.user_counts(scope.org_id)

        return metrics

    async def get_recent_activity(
        self, scope: Scope, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Newest-first feed of ticket events and comments.

        Both sources are limited in SQL and merged here, so the result holds
        the newest `limit` items across the two.
        """
        limit = clamp_pagination(
            limit, default_limit=ACTIVITY_DEFAULT_LIMIT, max_limit=ACTIVITY_MAX_LIMIT
        ).limit

        items: List[Dict[str, Any]] = []

        for event, context in await self.dao.recent_events(scope, limit):
            items.append(
                {
                    "type": "event",
                    "id": event.id,
                    "ticket_id": event.ticket_id,
                    "actor_user_id": event.actor_user_id,
                    "event_type": event.event_type.value,
                    "old_value": event.old_value,
                    "new_value": event.new_value,
                    "created_at": event.created_at,
                    **context,
                }
            )

        for comment, context in await self.dao.recent_comments(scope, limit):
            items.append(
                {
                    "type": "comment",
                    "id": comment.id,
                    "ticket_id": comment.ticket_id,
                    "actor_user_id": comment.author_user_id,
                    "visibility": comment.visibility.value,
                    "body_preview": comment.body_md[:COMMENT_PREVIEW_LENGTH],
                    "created_at": comment.created_at,
                    **context,
                }
            )

        items.sort(key=lambda item: (item["created_at"], item["id"]), reverse=True)
        return items[:limit]

    async def get_user_activity(self, scope: Scope, user_id: int) -> Dict[str, Any]:
        """
        Activity metrics for one user of the caller's organization.

        WHAT: Tickets the user raised or is assigned to (with status and
        priority breakdowns), the events and comments they produced, and a
        rolling window of recent work including average resolution time.

        Raises:
            AuthorizationError (403): Caller is not an ADMIN
            UserNotFoundError (404): User missing or in another organization
        """
        if not scope.is_admin:
            raise AuthorizationError("Only admins can view user activity")

        user = await UserDAO(self.session).get_by_id_and_org(user_id, scope.org_id)
        if not user:
            raise UserNotFoundError(user_id=user_id)

        client_name = None
        if user.client_id is not None:
            client = await ClientDAO(self.session).get_by_id(user.client_id)
            client_name = client.name if client else None

        since = utcnow() - timedelta(days=USER_ACTIVITY_WINDOW_DAYS)
        closed = await self.dao.user_closed_since(scope, user_id, since)
        resolution_hours = [
            (closed_at - created_at).total_seconds() / 3600
            for created_at, closed_at in closed
        ]

        tickets: Dict[str, Any] = await self.dao.user_ticket_counts(scope, user_id)
        tickets["by_status"] = await self.dao.user_tickets_by_status(scope, user_id)
        tickets["by_priority"] = await self.dao.user_tickets_by_priority(scope, user_id)

        return {
            "user": {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "role": user.role.value,
                "client_id": user.client_id,
                "client_name": client_name,
                "is_active": user.is_active,
                "created_at": user.created_at,
            },
            "tickets": tickets,
            "activity": {
                "comments": await self.dao.user_comment_count(scope, user_id),
                "events_by_type": await self.dao.user_events_by_type(scope, user_id),
                "last_activity_at": await self.dao.user_last_activity(scope, user_id),
            },
            "recent": {
                "days": USER_ACTIVITY_WINDOW_DAYS,
                "tickets_raised": await self.dao.user_tickets_raised_since(
                    scope, user_id, since
                ),
                "tickets_closed": len(closed),
                "comments": await self.dao.user_comment_count(scope, user_id, since),
                "avg_resolution_hours": (
                    round(sum(resolution_hours) / len(resolution_hours), 2)
                    if resolution_hours
                    else None
                ),
            },
        }
