"""
Pydantic schemas for client endpoints.

WHAT: Request/response schemas for customer accounts.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ClientCreate(BaseModel):
    """Client creation request (ADMIN only)."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Client name, unique within the organization",
    )

    class Config:
        json_schema_extra = {"example": {"name": "Acme Corp"}}


class ClientUpdate(BaseModel):
    """Client update request. Only provided fields are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    active: Optional[bool] = Field(None, description="Deactivate instead of deleting")


class ClientResponse(BaseModel):
    id: int = Field(..., description="Client ID")
    org_id: int = Field(..., description="Organization ID")
    name: str = Field(..., description="Client name")
    active: bool = Field(..., description="Whether the client is active")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    class Config:
        from_attributes = True


class ClientListResponse(BaseModel):
    items: list[ClientResponse] = Field(..., description="Clients on this page")
    total: int = Field(..., description="Total clients matching filters")
    limit: int = Field(..., description="Maximum items per page")
    offset: int = Field(..., description="Number of items skipped")
