"""
User directory API endpoints.

WHAT: The caller's own profile, and ADMIN management of the users of one
organization.

WHY: Users are the principals the visibility scope is derived from, so
creating them enforces the role/client pairing and keeps CLIENT users tied
to a client of the same organization.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.auth import hash_password, verify_password
from helpdesk.core.deps import get_current_user, require_admin, require_staff
from helpdesk.core.exceptions import (
    AuthorizationError,
    ClientNotFoundError,
    DuplicateResourceError,
    UserNotFoundError,
    ValidationError,
)
from helpdesk.core.pagination import clamp_pagination
from helpdesk.dao.client import ClientDAO
from helpdesk.dao.user import UserDAO
from helpdesk.db.session import get_db
from helpdesk.models.user import User, UserRole
from helpdesk.schemas.user import (
    PasswordChange,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user",
)
async def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.get(
    "",
    response_model=UserListResponse,
    summary="List users",
    description="List users of the caller's organization (ADMIN and EMPLOYEE)",
)
async def list_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    client_id: Optional[int] = Query(None, description="Filter by client"),
    search: Optional[str] = Query(None, max_length=100, description="Name or email contains"),
    limit: Optional[int] = Query(None, description="Page size"),
    offset: Optional[int] = Query(None, description="Items to skip"),
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    page = clamp_pagination(limit, offset)
    users, total = await UserDAO(db).list_for_org(
        current_user.org_id,
        skip=page.offset,
        limit=page.limit,
        role=role,
        client_id=client_id,
        search=search,
    )
    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        limit=page.limit,
        offset=page.offset,
    )


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user",
    description="Staff may read any user of their organization; CLIENT users only themselves",
)
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """
    Raises:
        UserNotFoundError (404): Missing, another organization, or (for
            CLIENT callers) anyone but themselves
    """
    if current_user.role == UserRole.CLIENT and user_id != current_user.id:
        raise UserNotFoundError(user_id=user_id)

    user = await UserDAO(db).get_by_id_and_org(user_id, current_user.org_id)
    if user is None:
        raise UserNotFoundError(user_id=user_id)
    return UserResponse.model_validate(user)


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create a user in the caller's organization (ADMIN only)",
)
async def create_user(
    data: UserCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """
    Raises:
        DuplicateResourceError (400): Email already registered
        ClientNotFoundError (404): client_id not in the organization
    """
    user_dao = UserDAO(db)

    if await user_dao.email_exists(data.email):
        raise DuplicateResourceError(
            message="Email already registered",
            resource_type="user",
        )

    if data.client_id is not None:
        client = await ClientDAO(db).get_by_id_and_org(data.client_id, current_user.org_id)
        if client is None:
            raise ClientNotFoundError(client_id=data.client_id)

    user = await user_dao.create(
        name=data.name,
        email=data.email.lower(),
        hashed_password=hash_password(data.password),
        role=data.role,
        org_id=current_user.org_id,
        client_id=data.client_id,
        is_active=True,
    )
    logger.info(f"User {user.id} ({user.role.value}) created by user {current_user.id}")
    return UserResponse.model_validate(user)


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update user",
    description="Rename or (de)activate a user (ADMIN only)",
)
async def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    user_dao = UserDAO(db)
    user = await user_dao.get_by_id_and_org(user_id, current_user.org_id)
    if user is None:
        raise UserNotFoundError(user_id=user_id)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError(message="No fields to update", user_id=user_id)

    if changes.get("is_active") is False and user.id == current_user.id:
        raise ValidationError(message="You cannot deactivate your own account")

    user = await user_dao.update(user, **changes)
    return UserResponse.model_validate(user)


@router.post(
    "/{user_id}/password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Change password",
    description="Change the caller's own password",
)
async def change_password(
    user_id: int,
    data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Raises:
        AuthorizationError (403): user_id is not the caller
        ValidationError (400): Current password is wrong
    """
    if user_id != current_user.id:
        raise AuthorizationError(message="You can only change your own password")

    if not verify_password(data.current_password, current_user.hashed_password):
        raise ValidationError(message="Current password is incorrect")

    await UserDAO(db).update(current_user, hashed_password=hash_password(data.new_password))
    logger.info(f"User {current_user.id} changed their password")
