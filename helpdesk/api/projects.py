"""
Project management API endpoints.

WHAT: RESTful API for projects, project memberships, and the streams and
subjects that classify a project's tickets.

WHY: Projects connect a client to the people who work its tickets.
Membership flags decide who may raise tickets in a project and who may be
assigned them.

HOW: FastAPI router with:
- Scope-filtered reads (ADMIN: organization, EMPLOYEE: member projects,
  CLIENT: own client's projects)
- ADMIN-only writes, validated in ProjectService
- Pagination for the project list
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.deps import get_scope
from helpdesk.core.pagination import clamp_pagination
from helpdesk.core.scope import Scope
from helpdesk.dao.taxonomy import StreamDAO, SubjectDAO
from helpdesk.db.session import get_db
from helpdesk.schemas.project import (
    ProjectCreate,
    ProjectListResponse,
    ProjectMemberCreate,
    ProjectMemberResponse,
    ProjectMemberUpdate,
    ProjectResponse,
    ProjectUpdate,
)
from helpdesk.schemas.taxonomy import (
    StreamCreate,
    StreamResponse,
    SubjectCreate,
    SubjectResponse,
)
from helpdesk.services.project_service import ProjectService


router = APIRouter(prefix="/projects", tags=["projects"])


# ============================================================================
# Projects
# ============================================================================


@router.get(
    "",
    response_model=ProjectListResponse,
    summary="List projects",
    description="List projects visible to the caller",
)
async def list_projects(
    client_id: Optional[int] = Query(None, description="Filter by client"),
    search: Optional[str] = Query(None, max_length=100, description="Name contains"),
    active: Optional[bool] = Query(None, description="Filter by active flag"),
    limit: Optional[int] = Query(None, description="Page size"),
    offset: Optional[int] = Query(None, description="Items to skip"),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> ProjectListResponse:
    page = clamp_pagination(limit, offset)
    projects, total = await ProjectService(db).list_projects(
        scope, page, client_id=client_id, search=search, active=active
    )
    return ProjectListResponse(
        items=[ProjectResponse.model_validate(p) for p in projects],
        total=total,
        limit=page.limit,
        offset=page.offset,
    )


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create project",
    description="Create a project for a client of the organization (ADMIN only)",
)
async def create_project(
    data: ProjectCreate,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    project = await ProjectService(db).create_project(
        scope, data.client_id, data.name, data.description
    )
    return ProjectResponse.model_validate(project)


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Get project",
)
async def get_project(
    project_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    project = await ProjectService(db).get_project(scope, project_id)
    return ProjectResponse.model_validate(project)


@router.patch(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Update project",
    description="Update name, description or active flag (ADMIN only)",
)
async def update_project(
    project_id: int,
    data: ProjectUpdate,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    project = await ProjectService(db).update_project(
        scope, project_id, **data.model_dump(exclude_unset=True)
    )
    return ProjectResponse.model_validate(project)


# ============================================================================
# Members
# ============================================================================


@router.get(
    "/{project_id}/members",
    response_model=List[ProjectMemberResponse],
    summary="List project members",
)
async def list_members(
    project_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> List[ProjectMemberResponse]:
    members = await ProjectService(db).list_members(scope, project_id)
    return [ProjectMemberResponse.model_validate(m) for m in members]


@router.post(
    "/{project_id}/members",
    response_model=ProjectMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add project member",
    description="Add a user of the organization to the project (ADMIN only)",
)
async def add_member(
    project_id: int,
    data: ProjectMemberCreate,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> ProjectMemberResponse:
    member = await ProjectService(db).add_member(
        scope,
        project_id,
        data.user_id,
        role=data.role,
        can_raise=data.can_raise,
        can_be_assigned=data.can_be_assigned,
    )
    return ProjectMemberResponse.model_validate(member)


@router.patch(
    "/{project_id}/members/{user_id}",
    response_model=ProjectMemberResponse,
    summary="Update project member",
)
async def update_member(
    project_id: int,
    user_id: int,
    data: ProjectMemberUpdate,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> ProjectMemberResponse:
    member = await ProjectService(db).update_member(
        scope, project_id, user_id, **data.model_dump(exclude_unset=True)
    )
    return ProjectMemberResponse.model_validate(member)


@router.delete(
    "/{project_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove project member",
)
async def remove_member(
    project_id: int,
    user_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> None:
    await ProjectService(db).remove_member(scope, project_id, user_id)


# ============================================================================
# Streams and subjects
# ============================================================================


@router.get(
    "/{project_id}/streams",
    response_model=List[StreamResponse],
    summary="List streams",
)
async def list_streams(
    project_id: int,
    active: Optional[bool] = Query(None, description="Filter by active flag"),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> List[StreamResponse]:
    project = await ProjectService(db).get_project(scope, project_id)
    streams = await StreamDAO(db).list_for_project(project.id, active=active)
    return [StreamResponse.model_validate(s) for s in streams]


@router.get(
    "/{project_id}/streams/parents",
    response_model=List[StreamResponse],
    summary="List top-level streams",
)
async def list_parent_streams(
    project_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> List[StreamResponse]:
    streams = await ProjectService(db).list_parent_streams(scope, project_id)
    return [StreamResponse.model_validate(s) for s in streams]


@router.post(
    "/{project_id}/streams",
    response_model=StreamResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create stream",
)
async def create_stream(
    project_id: int,
    data: StreamCreate,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> StreamResponse:
    stream = await ProjectService(db).create_stream(
        scope, project_id, data.name, data.parent_stream_id
    )
    return StreamResponse.model_validate(stream)


@router.get(
    "/{project_id}/subjects",
    response_model=List[SubjectResponse],
    summary="List subjects",
)
async def list_subjects(
    project_id: int,
    active: Optional[bool] = Query(None, description="Filter by active flag"),
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> List[SubjectResponse]:
    project = await ProjectService(db).get_project(scope, project_id)
    subjects = await SubjectDAO(db).list_for_project(project.id, active=active)
    return [SubjectResponse.model_validate(s) for s in subjects]


@router.post(
    "/{project_id}/subjects",
    response_model=SubjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create subject",
)
async def create_subject(
    project_id: int,
    data: SubjectCreate,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> SubjectResponse:
    subject = await ProjectService(db).create_subject(
        scope, project_id, data.name, data.stream_id
    )
    return SubjectResponse.model_validate(subject)
