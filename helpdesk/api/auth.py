"""
Authentication API endpoints.

WHY: Login exchanges an email and password for a JWT bearer token, and
signup creates a new organization with its first ADMIN. Every other
endpoint resolves the caller (and their visibility scope) from that token
through helpdesk.core.deps.

Security:
- Passwords are compared using constant-time comparison (bcrypt)
- One generic error message for unknown email, wrong password and
  inactive account prevents user enumeration
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.auth import (
    create_access_token,
    hash_password,
    token_claims_for,
    verify_password,
)
from helpdesk.core.config import settings
from helpdesk.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DuplicateResourceError,
)
from helpdesk.db.session import get_db
from helpdesk.dao.base import BaseDAO
from helpdesk.dao.user import UserDAO
from helpdesk.models.organization import Organization
from helpdesk.models.user import UserRole
from helpdesk.schemas.auth import (
    LoginRequest,
    SignupRequest,
    SignupResponse,
    TokenResponse,
)
from helpdesk.schemas.user import UserResponse


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Login user",
    description="Authenticate user with email and password, returns JWT token",
)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """
    Authenticate user and return JWT access token.

    Raises:
        AuthenticationError (401): If credentials are invalid
    """
    user = await UserDAO(db).get_by_email(credentials.email)

    # WHY: Same message for every failure so registered emails cannot be discovered
    if (
        user is None
        or not user.is_active
        or not verify_password(credentials.password, user.hashed_password)
    ):
        logger.info("Failed login attempt")
        raise AuthenticationError(message="Invalid email or password")

    access_token = create_access_token(token_claims_for(user))

    logger.info(f"User {user.id} logged in")

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.JWT_EXPIRATION_MINUTES * 60,
    )


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign up organization",
    description="Create a new organization and its first ADMIN user, returns JWT token",
)
async def signup(
    data: SignupRequest,
    db: AsyncSession = Depends(get_db),
) -> SignupResponse:
    """
    Create an organization together with its first ADMIN.

    WHY: Every other user is created by an ADMIN of an existing
    organization, so signup is how a deployment gets its first account.
    Organization and user are written in the request's single transaction.

    Raises:
        AuthorizationError (403): Signup is disabled
        DuplicateResourceError (400): Email already registered
    """
    if not settings.SIGNUP_ENABLED:
        raise AuthorizationError(message="Signup is disabled")

    user_dao = UserDAO(db)
    if await user_dao.email_exists(data.email):
        raise DuplicateResourceError(
            message="Email already registered",
            resource_type="user",
        )

    organization = await BaseDAO(Organization, db).create(
        name=data.organization_name,
        is_active=True,
    )
    user = await user_dao.create(
        name=data.name,
        email=data.email.lower(),
        hashed_password=hash_password(data.password),
        role=UserRole.ADMIN,
        org_id=organization.id,
        client_id=None,
        is_active=True,
    )

    logger.info(f"Organization {organization.id} created with admin user {user.id}")

    return SignupResponse(
        access_token=create_access_token(token_claims_for(user)),
        token_type="bearer",
        expires_in=settings.JWT_EXPIRATION_MINUTES * 60,
        user=UserResponse.model_validate(user),
    )
