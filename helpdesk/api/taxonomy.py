"""
Organization lookup API endpoints.

WHAT: Priorities and statuses of the caller's organization, and direct
access to single streams and subjects by id.

WHY: Every ticket references one of each. Any authenticated user of the
organization may read them (ticket forms need them); only ADMINs add new
values. Streams and subjects are visible exactly when their project is.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.deps import get_current_user, get_scope, require_admin
from helpdesk.core.exceptions import DuplicateResourceError
from helpdesk.core.scope import Scope
from helpdesk.dao.taxonomy import PriorityDAO, StatusDAO
from helpdesk.db.session import get_db
from helpdesk.models.user import User
from helpdesk.schemas.taxonomy import (
    PriorityCreate,
    PriorityResponse,
    StatusCreate,
    StatusResponse,
    StreamResponse,
    StreamUpdate,
    SubjectResponse,
    SubjectUpdate,
)
from helpdesk.services.project_service import ProjectService


router = APIRouter(tags=["taxonomy"])


@router.get(
    "/priorities",
    response_model=List[PriorityResponse],
    summary="List priorities",
)
async def list_priorities(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[PriorityResponse]:
    priorities = await PriorityDAO(db).list_for_org(current_user.org_id)
    return [PriorityResponse.model_validate(p) for p in priorities]


@router.post(
    "/priorities",
    response_model=PriorityResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create priority",
)
async def create_priority(
    data: PriorityCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> PriorityResponse:
    dao = PriorityDAO(db)
    if await dao.name_exists(current_user.org_id, data.name):
        raise DuplicateResourceError(
            message="A priority with this name already exists",
            resource_type="priority",
        )
    priority = await dao.create(
        org_id=current_user.org_id, name=data.name, rank=data.rank, active=True
    )
    return PriorityResponse.model_validate(priority)


@router.get(
    "/statuses",
    response_model=List[StatusResponse],
    summary="List statuses",
)
async def list_statuses(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[StatusResponse]:
    statuses = await StatusDAO(db).list_for_org(current_user.org_id)
    return [StatusResponse.model_validate(s) for s in statuses]


@router.post(
    "/statuses",
    response_model=StatusResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create status",
)
async def create_status(
    data: StatusCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> StatusResponse:
    dao = StatusDAO(db)
    if await dao.name_exists(current_user.org_id, data.name):
        raise DuplicateResourceError(
            message="A status with this name already exists",
            resource_type="status",
        )
    created = await dao.create(
        org_id=current_user.org_id,
        name=data.name,
        is_closed=data.is_closed,
        sequence=data.sequence,
        active=True,
    )
    return StatusResponse.model_validate(created)


# ============================================================================
# Streams and subjects by id
# ============================================================================


@router.get(
    "/streams/{stream_id}",
    response_model=StreamResponse,
    summary="Get stream",
)
async def get_stream(
    stream_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> StreamResponse:
    stream = await ProjectService(db).get_stream(scope, stream_id)
    return StreamResponse.model_validate(stream)


@router.get(
    "/streams/{stream_id}/children",
    response_model=List[StreamResponse],
    summary="List child streams",
)
async def list_child_streams(
    stream_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> List[StreamResponse]:
    children = await ProjectService(db).list_child_streams(scope, stream_id)
    return [StreamResponse.model_validate(s) for s in children]


@router.patch(
    "/streams/{stream_id}",
    response_model=StreamResponse,
    summary="Update stream",
    description="Rename, (de)activate or re-parent a stream (ADMIN only)",
)
async def update_stream(
    stream_id: int,
    data: StreamUpdate,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> StreamResponse:
    stream = await ProjectService(db).update_stream(
        scope, stream_id, data.model_dump(exclude_unset=True)
    )
    return StreamResponse.model_validate(stream)


@router.get(
    "/subjects/{subject_id}",
    response_model=SubjectResponse,
    summary="Get subject",
)
async def get_subject(
    subject_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> SubjectResponse:
    subject = await ProjectService(db).get_subject(scope, subject_id)
    return SubjectResponse.model_validate(subject)


@router.patch(
    "/subjects/{subject_id}",
    response_model=SubjectResponse,
    summary="Update subject",
    description="Rename or (de)activate a subject (ADMIN only)",
)
async def update_subject(
    subject_id: int,
    data: SubjectUpdate,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> SubjectResponse:
    subject = await ProjectService(db).update_subject(
        scope, subject_id, name=data.name, active=data.active
    )
    return SubjectResponse.model_validate(subject)
