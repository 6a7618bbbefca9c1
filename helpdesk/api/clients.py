"""
Client management API endpoints.

WHAT: CRUD for the customer accounts of an organization.

WHY: Clients are the second visibility boundary after the organization.
ADMINs manage them; CLIENT users can only read their own client row,
because listing goes through Scope.client_clause().
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.deps import get_scope, require_admin
from helpdesk.core.exceptions import (
    ClientNotFoundError,
    DuplicateResourceError,
    ValidationError,
)
from helpdesk.core.pagination import clamp_pagination
from helpdesk.core.scope import Scope
from helpdesk.dao.client import ClientDAO
from helpdesk.db.session import get_db
from helpdesk.models.user import User
from helpdesk.schemas.client import (
    ClientCreate,
    ClientListResponse,
    ClientResponse,
    ClientUpdate,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["clients"])


@router.get(
    "",
    response_model=ClientListResponse,
    summary="List clients",
)
async def list_clients(
    search: Optional[str] = Query(None, max_length=100, description="Name contains"),
    active: Optional[bool] = Query(None, description="Filter by active flag"),
    limit: Optional[int] = Query(None, description="Page size"),
    offset: Optional[int] = Query(None, description="Items to skip"),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> ClientListResponse:
    page = clamp_pagination(limit, offset)
    clients, total = await ClientDAO(db).list(
        scope, skip=page.offset, limit=page.limit, search=search, active=active
    )
    return ClientListResponse(
        items=[ClientResponse.model_validate(c) for c in clients],
        total=total,
        limit=page.limit,
        offset=page.offset,
    )


@router.get(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Get client",
)
async def get_client(
    client_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> ClientResponse:
    client = await ClientDAO(db).get_visible(scope, client_id)
    if client is None:
        raise ClientNotFoundError(client_id=client_id)
    return ClientResponse.model_validate(client)


@router.post(
    "",
    response_model=ClientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create client",
    description="Create a client in the caller's organization (ADMIN only)",
)
async def create_client(
    data: ClientCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ClientResponse:
    client_dao = ClientDAO(db)

    if await client_dao.name_exists(current_user.org_id, data.name):
        raise DuplicateResourceError(
            message="A client with this name already exists",
            resource_type="client",
        )

    client = await client_dao.create(org_id=current_user.org_id, name=data.name, active=True)
    logger.info(f"Client {client.id} created by user {current_user.id}")
    return ClientResponse.model_validate(client)


@router.patch(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Update client",
    description="Rename or (de)activate a client (ADMIN only)",
)
async def update_client(
    client_id: int,
    data: ClientUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ClientResponse:
    client_dao = ClientDAO(db)
    client = await client_dao.get_by_id_and_org(client_id, current_user.org_id)
    if client is None:
        raise ClientNotFoundError(client_id=client_id)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError(message="No fields to update", client_id=client_id)

    if "name" in changes and await client_dao.name_exists(
        current_user.org_id, changes["name"], exclude_id=client.id
    ):
        raise DuplicateResourceError(
            message="A client with this name already exists",
            resource_type="client",
        )

    client = await client_dao.update(client, **changes)
    return ClientResponse.model_validate(client)
