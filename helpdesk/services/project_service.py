"""
Project Service.

WHAT: Project writes and project membership management.

WHY: Membership flags decide who may raise tickets in a project and who may
be assigned them. Adding the wrong user (another organization, or a client
user of a different client) would silently widen who can write tickets, so
every membership change is validated here.

HOW: Works on the request session; ADMIN checks are made by the caller
(require_admin) and repeated here through the Scope.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.exceptions import (
    AuthorizationError,
    ClientNotFoundError,
    DuplicateResourceError,
    ProjectNotFoundError,
    ResourceNotFoundError,
    StreamNotFoundError,
    SubjectNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from helpdesk.core.pagination import Pagination
from helpdesk.core.scope import Scope
from helpdesk.dao.client import ClientDAO
from helpdesk.dao.project import ProjectDAO, ProjectMemberDAO
from helpdesk.dao.taxonomy import StreamDAO, SubjectDAO
from helpdesk.dao.user import UserDAO
from helpdesk.models.project import Project, ProjectMember, ProjectMemberRole
from helpdesk.models.taxonomy import Stream, Subject
from helpdesk.models.user import UserRole


logger = logging.getLogger(__name__)


class ProjectService:
    """Service for projects, memberships and project taxonomy."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.projects = ProjectDAO(session)
        self.members = ProjectMemberDAO(session)

    # =========================================================================
    # Projects
    # =========================================================================

    async def list_projects(
        self,
        scope: Scope,
        pagination: Pagination,
        client_id: Optional[int] = None,
        search: Optional[str] = None,
        active: Optional[bool] = None,
    ) -> Tuple[List[Project], int]:
        return await self.projects.list(
            scope,
            skip=pagination.offset,
            limit=pagination.limit,
            client_id=client_id,
            search=search,
            active=active,
        )

    async def get_project(self, scope: Scope, project_id: int) -> Project:
        """
        Raises:
            ProjectNotFoundError: Missing or not visible to the scope
        """
        project = await self.projects.get_visible(scope, project_id)
        if project is None:
            raise ProjectNotFoundError(project_id=project_id)
        return project

    async def create_project(
        self,
        scope: Scope,
        client_id: int,
        name: str,
        description: Optional[str] = None,
    ) -> Project:
        """
        Create a project for a client of the caller's organization.

        Raises:
            AuthorizationError: Caller is not ADMIN
            ClientNotFoundError: Client not in the organization
            DuplicateResourceError: Name already used by this client
        """
        self._require_admin(scope)

        client = await ClientDAO(self.session).get_visible(scope, client_id)
        if client is None:
            raise ClientNotFoundError(client_id=client_id)

        if await self.projects.name_exists(client.id, name):
            raise DuplicateResourceError(
                message="A project with this name already exists for this client",
                resource_type="project",
            )

        project = await self.projects.create(
            client_id=client.id,
            name=name,
            description=description,
            active=True,
        )
        logger.info(f"Project {project.id} created for client {client.id} by user {scope.user_id}")
        return project

    async def update_project(self, scope: Scope, project_id: int, **changes) -> Project:
        """
        Update name, description or active flag.

        Raises:
            AuthorizationError: Caller is not ADMIN
            ProjectNotFoundError: Missing or in another organization
            ValidationError: Nothing to update
            DuplicateResourceError: New name already used by this client
        """
        self._require_admin(scope)
        project = await self.get_project(scope, project_id)

        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            raise ValidationError(message="No fields to update", project_id=project_id)

        if "name" in changes and await self.projects.name_exists(
            project.client_id, changes["name"], exclude_id=project.id
        ):
            raise DuplicateResourceError(
                message="A project with this name already exists for this client",
                resource_type="project",
            )

        return await self.projects.update(project, **changes)

    # =========================================================================
    # Members
    # =========================================================================

    async def list_members(self, scope: Scope, project_id: int) -> List[ProjectMember]:
        project = await self.get_project(scope, project_id)
        return await self.members.list_for_project(project.id)

    async def add_member(
        self,
        scope: Scope,
        project_id: int,
        user_id: int,
        role: ProjectMemberRole = ProjectMemberRole.MEMBER,
        can_raise: bool = False,
        can_be_assigned: bool = False,
    ) -> ProjectMember:
        """
        Add a user to a project.

        Raises:
            AuthorizationError: Caller is not ADMIN
            ProjectNotFoundError: Project not in the organization
            UserNotFoundError: User not in the organization
            ValidationError: CLIENT user of a different client
            DuplicateResourceError: User is already a member
        """
        self._require_admin(scope)
        project = await self.get_project(scope, project_id)

        user = await UserDAO(self.session).get_by_id_and_org(user_id, scope.org_id)
        if user is None:
            raise UserNotFoundError(user_id=user_id)

        if user.role == UserRole.CLIENT and user.client_id != project.client_id:
            raise ValidationError(
                message="Client users can only join projects of their own client",
                user_id=user_id,
                project_id=project.id,
            )

        if await self.members.get(project.id, user.id) is not None:
            raise DuplicateResourceError(
                message="User is already a member of this project",
                resource_type="project_member",
            )

        member = await self.members.create(
            project_id=project.id,
            user_id=user.id,
            role=role,
            can_raise=can_raise,
            can_be_assigned=can_be_assigned,
        )
        logger.info(f"User {user.id} added to project {project.id} by user {scope.user_id}")
        return member

    async def update_member(
        self, scope: Scope, project_id: int, user_id: int, **changes
    ) -> ProjectMember:
        """
        Change a member's role or flags.

        Raises:
            AuthorizationError: Caller is not ADMIN
            ProjectNotFoundError: Project not in the organization
            ResourceNotFoundError: User is not a member
            ValidationError: Nothing to update
        """
        self._require_admin(scope)
        member = await self._get_member(scope, project_id, user_id)

        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            raise ValidationError(message="No fields to update", project_id=project_id)

        return await self.members.update(member, **changes)

    async def remove_member(self, scope: Scope, project_id: int, user_id: int) -> None:
        """
        Remove a member. Tickets they raised or were assigned stay as they are.
        """
        self._require_admin(scope)
        member = await self._get_member(scope, project_id, user_id)
        await self.members.remove(member.project_id, member.user_id)
        logger.info(f"User {user_id} removed from project {project_id} by user {scope.user_id}")

    # =========================================================================
    # Streams and subjects
    # =========================================================================

    async def create_stream(
        self,
        scope: Scope,
        project_id: int,
        name: str,
        parent_stream_id: Optional[int] = None,
    ) -> Stream:
        """
        Create a stream, optionally under a top-level parent stream.

        Raises:
            ValidationError: Parent not in this project or itself nested
            DuplicateResourceError: Name already used in this project
        """
        self._require_admin(scope)
        project = await self.get_project(scope, project_id)
        streams = StreamDAO(self.session)

        if parent_stream_id is not None:
            await self._check_parent_stream(project.id, parent_stream_id)

        if await streams.name_exists(project.id, name):
            raise DuplicateResourceError(
                message="A stream with this name already exists in this project",
                resource_type="stream",
            )

        return await streams.create(
            project_id=project.id,
            parent_stream_id=parent_stream_id,
            name=name,
            active=True,
        )

    async def create_subject(
        self,
        scope: Scope,
        project_id: int,
        name: str,
        stream_id: Optional[int] = None,
    ) -> Subject:
        """
        Create a subject, optionally tied to a stream of the same project.
        """
        self._require_admin(scope)
        project = await self.get_project(scope, project_id)
        subjects = SubjectDAO(self.session)

        if stream_id is not None:
            if await StreamDAO(self.session).get_in_project(stream_id, project.id) is None:
                raise ValidationError(
                    message="Stream must belong to the same project",
                    stream_id=stream_id,
                )

        if await subjects.name_exists(project.id, name):
            raise DuplicateResourceError(
                message="A subject with this name already exists in this project",
                resource_type="subject",
            )

        return await subjects.create(
            project_id=project.id,
            stream_id=stream_id,
            name=name,
            active=True,
        )

    async def get_stream(self, scope: Scope, stream_id: int) -> Stream:
        """
        Raises:
            StreamNotFoundError: Missing, or its project is not visible
        """
        stream = await StreamDAO(self.session).get_visible(scope, stream_id)
        if stream is None:
            raise StreamNotFoundError(stream_id=stream_id)
        return stream

    async def list_parent_streams(self, scope: Scope, project_id: int) -> List[Stream]:
        project = await self.get_project(scope, project_id)
        return await StreamDAO(self.session).list_parents(project.id)

    async def list_child_streams(self, scope: Scope, stream_id: int) -> List[Stream]:
        stream = await self.get_stream(scope, stream_id)
        return await StreamDAO(self.session).list_children(stream.id)

    async def update_stream(self, scope: Scope, stream_id: int, changes: Dict[str, Any]) -> Stream:
        """
        Rename, (de)activate or re-parent a stream.

        `changes` holds only the fields the caller sent; an explicit None
        parent_stream_id moves the stream to the top level.

        Raises:
            AuthorizationError: Caller is not ADMIN
            StreamNotFoundError: Missing or not visible
            ValidationError: Nothing to update, or the new parent would
                nest streams more than one level deep
            DuplicateResourceError: New name already used in this project
        """
        self._require_admin(scope)
        stream = await self.get_stream(scope, stream_id)
        streams = StreamDAO(self.session)

        if changes.get("name") is None:
            changes.pop("name", None)
        if changes.get("active") is None:
            changes.pop("active", None)
        if not changes:
            raise ValidationError(message="No fields to update", stream_id=stream_id)

        parent_stream_id = changes.get("parent_stream_id")
        if parent_stream_id is not None:
            if parent_stream_id == stream.id:
                raise ValidationError(
                    message="A stream cannot be its own parent", stream_id=stream_id
                )
            await self._check_parent_stream(stream.project_id, parent_stream_id)
            if await streams.has_children(stream.id):
                raise ValidationError(
                    message="Streams can only be nested one level deep",
                    stream_id=stream_id,
                )

        if "name" in changes and await streams.name_exists(
            stream.project_id, changes["name"], exclude_id=stream.id
        ):
            raise DuplicateResourceError(
                message="A stream with this name already exists in this project",
                resource_type="stream",
            )

        return await streams.update(stream, **changes)

    async def get_subject(self, scope: Scope, subject_id: int) -> Subject:
        """
        Raises:
            SubjectNotFoundError: Missing, or its project is not visible
        """
        subject = await SubjectDAO(self.session).get_visible(scope, subject_id)
        if subject is None:
            raise SubjectNotFoundError(subject_id=subject_id)
        return subject

    async def update_subject(self, scope: Scope, subject_id: int, **changes) -> Subject:
        """
        Rename or (de)activate a subject.

        Raises:
            AuthorizationError: Caller is not ADMIN
            SubjectNotFoundError: Missing or not visible
            ValidationError: Nothing to update
            DuplicateResourceError: New name already used in this project
        """
        self._require_admin(scope)
        subject = await self.get_subject(scope, subject_id)
        subjects = SubjectDAO(self.session)

        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            raise ValidationError(message="No fields to update", subject_id=subject_id)

        if "name" in changes and await subjects.name_exists(
            subject.project_id, changes["name"], exclude_id=subject.id
        ):
            raise DuplicateResourceError(
                message="A subject with this name already exists in this project",
                resource_type="subject",
            )

        return await subjects.update(subject, **changes)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _require_admin(scope: Scope) -> None:
        if not scope.is_admin:
            raise AuthorizationError(message="Admin access required")

    async def _get_member(self, scope: Scope, project_id: int, user_id: int) -> ProjectMember:
        project = await self.get_project(scope, project_id)
        member = await self.members.get(project.id, user_id)
        if member is None:
            raise ResourceNotFoundError(
                message="Project member not found",
                project_id=project_id,
                user_id=user_id,
            )
        return member

    async def _check_parent_stream(self, project_id: int, parent_stream_id: int) -> None:
        """A parent must be a top-level stream of the same project."""
        parent = await StreamDAO(self.session).get_in_project(parent_stream_id, project_id)
        if parent is None:
            raise ValidationError(
                message="Parent stream must belong to the same project",
                parent_stream_id=parent_stream_id,
            )
        if parent.parent_stream_id is not None:
            raise ValidationError(
                message="Streams can only be nested one level deep",
                parent_stream_id=parent_stream_id,
            )
