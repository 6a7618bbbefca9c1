"""
Pydantic schemas for ticket endpoints.

WHAT: Request/response schemas for tickets and their event history.

WHY: Schemas define API contracts for ticket operations:
1. Validate incoming request data
2. Document API for OpenAPI/Swagger
3. Separate "field omitted" from "field set to null" on updates, so an
   assignee can be cleared explicitly

HOW: Uses Pydantic v2 with Field validators and ORM mode for SQLAlchemy
integration. Updates are read with model_dump(exclude_unset=True).
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from helpdesk.models.ticket import TicketEventType


# ============================================================================
# Ticket Schemas
# ============================================================================


class TicketCreate(BaseModel):
    """
    Ticket creation request.

    WHAT: The raiser is always the caller; CLIENT callers may not set an
    assignee.
    """

    project_id: int = Field(..., description="Project to raise the ticket in")
    title: str = Field(..., min_length=1, max_length=500, description="Short summary")
    description_md: str = Field("", max_length=50000, description="Markdown description")
    priority_id: int = Field(..., description="Priority of the organization")
    status_id: int = Field(..., description="Initial status of the organization")
    stream_id: Optional[int] = Field(None, description="Stream of the project")
    subject_id: Optional[int] = Field(None, description="Subject of the project")
    assigned_to_user_id: Optional[int] = Field(None, description="Assignee (staff only)")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be blank")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "project_id": 1,
                "title": "Login page returns 500",
                "description_md": "Since this morning the login page fails.",
                "priority_id": 1,
                "status_id": 1,
            }
        }


class TicketUpdate(BaseModel):
    """
    Partial ticket update.

    WHAT: Omitted fields are left alone. assigned_to_user_id may be sent as
    null to unassign; title, status and priority may not be null.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description_md: Optional[str] = Field(None, max_length=50000)
    status_id: Optional[int] = None
    priority_id: Optional[int] = None
    assigned_to_user_id: Optional[int] = None

    @field_validator("title", "status_id", "priority_id")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("description_md")
    @classmethod
    def null_description_to_empty(cls, v: Optional[str]) -> str:
        return v or ""


class TicketResponse(BaseModel):
    id: int = Field(..., description="Ticket ID")
    project_id: int = Field(..., description="Project ID")
    client_id: int = Field(..., description="Client that owns the project")
    client_ticket_number: str = Field(..., description="Per-client number, e.g. ACM0042")
    title: str
    description_md: str
    status_id: int
    priority_id: int
    stream_id: Optional[int] = None
    subject_id: Optional[int] = None
    raised_by_user_id: int
    assigned_to_user_id: Optional[int] = None
    closed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TicketListResponse(BaseModel):
    """Paginated ticket list, most recently updated first."""

    items: list[TicketResponse] = Field(..., description="Tickets on this page")
    total: int = Field(..., description="Total visible tickets matching filters")
    limit: int = Field(..., description="Maximum items per page")
    offset: int = Field(..., description="Number of items skipped")


# ============================================================================
# Event Schemas
# ============================================================================


class TicketEventResponse(BaseModel):
    id: int
    ticket_id: int
    event_type: TicketEventType
    old_value: Optional[Dict[str, Any]] = None
    new_value: Optional[Dict[str, Any]] = None
    actor_user_id: int
    created_at: datetime

    class Config:
        from_attributes = True
