"""
FastAPI dependencies for authentication and authorization.

WHY: Dependencies provide reusable authentication and authorization logic
that can be injected into route handlers. get_scope is the single place
where a request's caller identity becomes a visibility Scope.
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.auth import verify_token
from helpdesk.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    TokenExpiredError,
    TokenInvalidError,
)
from helpdesk.core.scope import Scope, resolve_scope
from helpdesk.db.session import get_db
from helpdesk.models.user import User, UserRole
from helpdesk.dao.user import UserDAO


# HTTP Bearer token security scheme
# Format: "Authorization: Bearer <token>"
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from JWT token.

    WHY: This dependency:
    1. Extracts token from Authorization header
    2. Verifies token signature and expiration
    3. Fetches user from database
    4. Ensures user still exists and is active

    Raises:
        AuthenticationError: If token is invalid, expired, or user not found
    """
    token = credentials.credentials

    try:
        payload = verify_token(token)
    except (TokenExpiredError, TokenInvalidError) as e:
        raise AuthenticationError(
            message=str(e),
            status_code=e.status_code,
        )

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError(
            message="Invalid token: missing user_id",
        )

    # WHY: Role, organization and client in the token might be stale;
    # the scope is always resolved from the current user row.
    user_dao = UserDAO(db)
    user = await user_dao.get_by_id(user_id)

    if not user:
        raise AuthenticationError(
            message="User not found",
            user_id=user_id,
        )

    if not user.is_active:
        raise AuthenticationError(
            message="User account is inactive",
            user_id=user_id,
        )

    return user


async def get_scope(
    current_user: User = Depends(get_current_user),
) -> Scope:
    """Resolve the visibility scope of the authenticated caller."""
    return resolve_scope(
        current_user.role,
        current_user.org_id,
        current_user.id,
        current_user.client_id,
    )


async def require_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Require user to have ADMIN role.

    Raises:
        AuthorizationError: If user is not ADMIN
    """
    if current_user.role != UserRole.ADMIN:
        raise AuthorizationError(
            message="Admin access required",
            user_id=current_user.id,
            user_role=current_user.role.value,
            required_role=UserRole.ADMIN.value,
        )

    return current_user


async def require_staff(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Require an ADMIN or EMPLOYEE caller.

    WHY: Some reads (user directory, outbox) are meaningful to organization
    staff but never to external client users.
    """
    if current_user.role not in (UserRole.ADMIN, UserRole.EMPLOYEE):
        raise AuthorizationError(
            message="Staff access required",
            user_id=current_user.id,
            user_role=current_user.role.value,
        )

    return current_user
