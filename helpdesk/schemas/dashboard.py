"""
Pydantic schemas for dashboard endpoints.

WHAT: Response shapes for role-aware metrics and the activity feed.

WHY: Optional sections (assigned_to_me, clients, users) are left out of
the JSON entirely when the role does not get them, rather than sent as
zero, so a CLIENT never learns organization-wide figures.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class StatusCount(BaseModel):
    status_id: int
    name: str
    is_closed: bool
    count: int


class PriorityCount(BaseModel):
    priority_id: int
    name: str
    count: int


class TicketMetrics(BaseModel):
    total: int = Field(..., description="Visible tickets")
    open: int = Field(..., description="Visible tickets in a non-closed status")
    closed: int = Field(..., description="Visible tickets in a closed status")
    by_status: List[StatusCount] = Field(default_factory=list)
    by_priority: List[PriorityCount] = Field(default_factory=list)
    assigned_to_me: Optional[int] = Field(None, description="EMPLOYEE only")


class CountPair(BaseModel):
    total: int
    active: int


class DashboardMetrics(BaseModel):
    tickets: TicketMetrics
    projects: CountPair
    clients: Optional[CountPair] = Field(None, description="ADMIN only")
    users: Optional[CountPair] = Field(None, description="ADMIN only")


class ActivityItem(BaseModel):
    """
    One entry of the activity feed.

    WHAT: Either a ticket event (event_type, old/new values) or a comment
    (visibility, body_preview), named with its project, client and actor so
    the feed renders without extra lookups.
    """

    type: Literal["event", "comment"]
    id: int
    ticket_id: int
    ticket_number: str
    ticket_title: str
    project_id: int
    project_name: str
    client_id: int
    client_name: str
    actor_user_id: int
    actor_name: str
    created_at: datetime
    event_type: Optional[str] = None
    old_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None
    visibility: Optional[str] = None
    body_preview: Optional[str] = None


class ActivityResponse(BaseModel):
    items: List[ActivityItem]
    limit: int


class ActivityUser(BaseModel):
    id: int
    name: str
    email: str
    role: str
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    is_active: bool
    created_at: datetime


class UserTicketMetrics(BaseModel):
    total: int = Field(..., description="Tickets the user raised or is assigned to")
    raised: int
    assigned: int
    assigned_open: int
    assigned_closed: int
    by_status: List[StatusCount] = Field(default_factory=list)
    by_priority: List[PriorityCount] = Field(default_factory=list)


class EventTypeCount(BaseModel):
    event_type: str
    count: int


class UserActivitySummary(BaseModel):
    comments: int
    events_by_type: List[EventTypeCount] = Field(default_factory=list)
    last_activity_at: Optional[datetime] = None


class UserRecentWork(BaseModel):
    days: int
    tickets_raised: int
    tickets_closed: int = Field(..., description="Assigned tickets closed in the window")
    comments: int
    avg_resolution_hours: Optional[float] = Field(
        None, description="Mean hours from creation to close, None without closed tickets"
    )


class UserActivityMetrics(BaseModel):
    """
    Per-user activity, ADMIN only.

    WHAT: Ticket involvement, authored events and comments, and a rolling
    window of recent work for one user.
    """

    user: ActivityUser
    tickets: UserTicketMetrics
    activity: UserActivitySummary
    recent: UserRecentWork
