"""
Pydantic schemas for project endpoints.

WHAT: Request/response schemas for projects and project memberships.

WHY: Schemas define API contracts for project operations:
1. Validate incoming request data
2. Document API for OpenAPI/Swagger
3. Control which fields are exposed in responses

HOW: Uses Pydantic v2 with ORM mode for SQLAlchemy.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from helpdesk.models.project import ProjectMemberRole


# ============================================================================
# Projects
# ============================================================================


class ProjectCreate(BaseModel):
    """
    Project creation request schema (ADMIN only).

    WHY: The client must belong to the caller's organization; that is
    checked by the service, not here.
    """

    client_id: int = Field(..., description="Client that owns the project")
    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Project name, unique per client",
    )
    description: Optional[str] = Field(None, max_length=5000)

    class Config:
        json_schema_extra = {
            "example": {
                "client_id": 1,
                "name": "Website Support",
                "description": "Support desk for the public website",
            }
        }


class ProjectUpdate(BaseModel):
    """Project update request. Only provided fields are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    active: Optional[bool] = None


class ProjectResponse(BaseModel):
    id: int = Field(..., description="Project ID")
    client_id: int = Field(..., description="Owning client ID")
    name: str = Field(..., description="Project name")
    description: Optional[str] = Field(None, description="Project description")
    active: bool = Field(..., description="Whether the project is active")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    class Config:
        from_attributes = True


class ProjectListResponse(BaseModel):
    """Paginated project list response schema."""

    items: list[ProjectResponse] = Field(..., description="List of projects")
    total: int = Field(..., description="Total number of projects matching filters")
    limit: int = Field(..., description="Maximum items per page")
    offset: int = Field(..., description="Number of items skipped")


# ============================================================================
# Members
# ============================================================================


class ProjectMemberCreate(BaseModel):
    """
    Add a user to a project.

    WHAT: can_raise lets the member raise tickets in the project;
    can_be_assigned lets tickets be assigned to them.
    """

    user_id: int = Field(..., description="User to add")
    role: ProjectMemberRole = Field(ProjectMemberRole.MEMBER, description="Role in the project")
    can_raise: bool = Field(False, description="May raise tickets")
    can_be_assigned: bool = Field(False, description="May be assigned tickets")


class ProjectMemberUpdate(BaseModel):
    role: Optional[ProjectMemberRole] = None
    can_raise: Optional[bool] = None
    can_be_assigned: Optional[bool] = None


class ProjectMemberResponse(BaseModel):
    id: int = Field(..., description="Membership ID")
    project_id: int = Field(..., description="Project ID")
    user_id: int = Field(..., description="Member user ID")
    role: ProjectMemberRole = Field(..., description="Role in the project")
    can_raise: bool = Field(..., description="May raise tickets")
    can_be_assigned: bool = Field(..., description="May be assigned tickets")
    created_at: datetime = Field(..., description="When the user joined")

    class Config:
        from_attributes = True
