"""
Pydantic schemas for user endpoints.

WHAT: Request/response schemas for the organization user directory.

WHY: The role/client pairing (CLIENT users need a client, staff must not
have one) is checked here first so a bad request fails with 400 before it
reaches the database check constraint.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from helpdesk.models.user import UserRole


class UserCreate(BaseModel):
    """User creation request (ADMIN only)."""

    name: str = Field(..., min_length=1, max_length=255, description="Full name")
    email: EmailStr = Field(..., description="Unique email address")
    password: str = Field(..., min_length=8, max_length=100, description="Initial password")
    role: UserRole = Field(..., description="ADMIN, EMPLOYEE or CLIENT")
    client_id: Optional[int] = Field(None, description="Client for CLIENT-role users")

    @model_validator(mode="after")
    def check_client_role(self) -> "UserCreate":
        if self.role == UserRole.CLIENT and self.client_id is None:
            raise ValueError("client_id is required for CLIENT users")
        if self.role != UserRole.CLIENT and self.client_id is not None:
            raise ValueError("client_id is only allowed for CLIENT users")
        return self


class UserUpdate(BaseModel):
    """
    User update request (ADMIN only).

    Role and client are not updatable; create a new user instead.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    is_active: Optional[bool] = Field(None, description="Enable or disable the account")


class UserResponse(BaseModel):
    """User data without credentials."""

    id: int = Field(..., description="User ID")
    email: str = Field(..., description="User's email address")
    name: str = Field(..., description="User's full name")
    role: UserRole = Field(..., description="User role")
    org_id: int = Field(..., description="Organization ID")
    client_id: Optional[int] = Field(None, description="Client ID for CLIENT users")
    is_active: bool = Field(..., description="Whether user account is active")
    created_at: datetime = Field(..., description="Account creation timestamp")

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    items: list[UserResponse] = Field(..., description="Users on this page")
    total: int = Field(..., description="Total users matching filters")
    limit: int = Field(..., description="Maximum items per page")
    offset: int = Field(..., description="Number of items skipped")


class PasswordChange(BaseModel):
    """
    Self-service password change.

    WHY: The current password is required so a stolen bearer token alone
    cannot be turned into a permanent account takeover.
    """

    current_password: str = Field(..., min_length=1, max_length=100)
    new_password: str = Field(..., min_length=8, max_length=100, description="New password")
