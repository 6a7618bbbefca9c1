"""
Pydantic schemas for the login and signup endpoints.

WHY: Only the shape of login credentials is validated. Password rules are
not checked at login, so a wrong password and a too-short one fail with
the same 401. Signup does enforce them.
"""

from pydantic import BaseModel, EmailStr, Field

from helpdesk.schemas.user import UserResponse


class LoginRequest(BaseModel):
    email: EmailStr = Field(..., description="Account email (case-insensitive)")
    password: str = Field(..., min_length=1, max_length=100)

    class Config:
        json_schema_extra = {
            "example": {"email": "agent@helpdesk.io", "password": "CorrectHorse42!"}
        }


class TokenResponse(BaseModel):
    """Bearer token for the Authorization header of later requests."""

    access_token: str = Field(..., description="Signed JWT")
    token_type: str = Field("bearer", description="Always 'bearer'")
    expires_in: int = Field(..., description="Seconds until the token expires")


class SignupRequest(BaseModel):
    """
    New organization with its first ADMIN account.

    WHY: This is the only way to create an organization, so a fresh
    deployment starts here.
    """

    organization_name: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255, description="Admin's full name")
    email: EmailStr = Field(..., description="Admin email (must be unique)")
    password: str = Field(..., min_length=8, max_length=100)

    class Config:
        json_schema_extra = {
            "example": {
                "organization_name": "Helpdesk Co",
                "name": "Ada Admin",
                "email": "ada@helpdesk.io",
                "password": "CorrectHorse42!",
            }
        }


class SignupResponse(TokenResponse):
    """Token for the new admin, so signup also logs in."""

    user: UserResponse
