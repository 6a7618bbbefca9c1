"""
Project Data Access Object.

WHAT: DAO for projects and project memberships.

WHY: Project listings follow Scope.project_clause(); membership lookups back
the raise/assign eligibility checks made when tickets are written.
"""

from typing import Optional, List, Tuple

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.scope import Scope
from helpdesk.dao.base import LIKE_ESCAPE, BaseDAO, contains_pattern
from helpdesk.models.organization import Client
from helpdesk.models.project import Project, ProjectMember


class ProjectDAO(BaseDAO[Project]):
    """Data Access Object for Project operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Project, session)

    async def list(
        self,
        scope: Scope,
        skip: int = 0,
        limit: int = 50,
        client_id: Optional[int] = None,
        search: Optional[str] = None,
        active: Optional[bool] = None,
    ) -> Tuple[List[Project], int]:
        """
        List projects visible to the scope.

        Returns:
            Tuple of (projects, total count)
        """
        base_query = select(Project).where(scope.project_clause())

        if client_id is not None:
            base_query = base_query.where(Project.client_id == client_id)

        if search:
            base_query = base_query.where(
                Project.name.ilike(contains_pattern(search), escape=LIKE_ESCAPE)
            )

        if active is not None:
            base_query = base_query.where(Project.active.is_(active))

        return await self.paginate(base_query, (Project.name, Project.id), skip, limit)

    async def get_visible(self, scope: Scope, project_id: int) -> Optional[Project]:
        """Get a project if the scope can see it."""
        result = await self.session.execute(
            select(Project).where(Project.id == project_id, scope.project_clause())
        )
        return result.scalar_one_or_none()

    async def get_in_org(self, project_id: int, org_id: int) -> Optional[Project]:
        """
        Get a project of the organization regardless of membership.

        WHY: Write paths (raising a ticket) check eligibility through
        membership flags, not through project read visibility.
        """
        result = await self.session.execute(
            select(Project)
            .join(Client, Client.id == Project.client_id)
            .where(Project.id == project_id, Client.org_id == org_id)
        )
        return result.scalar_one_or_none()

    async def get_with_client(self, project_id: int) -> Optional[Tuple[Project, Client]]:
        """Load a project together with its client row."""
        result = await self.session.execute(
            select(Project, Client)
            .join(Client, Client.id == Project.client_id)
            .where(Project.id == project_id)
        )
        row = result.first()
        return (row[0], row[1]) if row else None

    async def name_exists(
        self, client_id: int, name: str, exclude_id: Optional[int] = None
    ) -> bool:
        """Case-insensitive name check within one client."""
        query = select(Project.id).where(
            Project.client_id == client_id,
            func.lower(Project.name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.where(Project.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None


class ProjectMemberDAO(BaseDAO[ProjectMember]):
    """Data Access Object for project memberships."""

    def __init__(self, session: AsyncSession):
        super().__init__(ProjectMember, session)

    async def get(self, project_id: int, user_id: int) -> Optional[ProjectMember]:
        """Get the membership of one user in one project."""
        result = await self.session.execute(
            select(ProjectMember).where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: int) -> List[ProjectMember]:
        """List memberships of a project, oldest first."""
        result = await self.session.execute(
            select(ProjectMember)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.id)
        )
        return list(result.scalars().all())

    async def remove(self, project_id: int, user_id: int) -> bool:
        """
        Delete a membership.

        Returns:
            True if a membership was removed
        """
        result = await self.session.execute(
            delete(ProjectMember).where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
        )
        return result.rowcount > 0
