"""
Taxonomy Data Access Objects.

WHAT: DAOs for streams and subjects (per project) and for priorities and
statuses (per organization).

WHY: Streams and subjects have no org_id of their own. Single-row reads
join their project and apply the project visibility predicate, so a stream
of another organization or client looks exactly like a missing one.
"""

from typing import Optional, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.scope import Scope
from helpdesk.dao.base import BaseDAO
from helpdesk.models.project import Project
from helpdesk.models.taxonomy import Stream, Subject, Priority, Status


class _ProjectScopedDAO(BaseDAO):
    """Shared queries for models keyed by project_id."""

    async def list_for_project(
        self, project_id: int, active: Optional[bool] = None
    ) -> List:
        query = select(self.model).where(self.model.project_id == project_id)
        if active is not None:
            query = query.where(self.model.active.is_(active))
        result = await self.session.execute(query.order_by(self.model.name, self.model.id))
        return list(result.scalars().all())

    async def get_in_project(self, id: int, project_id: int):
        result = await self.session.execute(
            select(self.model).where(
                self.model.id == id, self.model.project_id == project_id
            )
        )
        return result.scalar_one_or_none()

    async def get_visible(self, scope: Scope, id: int):
        """Get a row whose project the scope can see, else None."""
        result = await self.session.execute(
            select(self.model)
            .join(Project, Project.id == self.model.project_id)
            .where(self.model.id == id, scope.project_clause())
        )
        return result.scalar_one_or_none()

    async def name_exists(
        self, project_id: int, name: str, exclude_id: Optional[int] = None
    ) -> bool:
        query = select(self.model.id).where(
            self.model.project_id == project_id,
            func.lower(self.model.name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.where(self.model.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None


class StreamDAO(_ProjectScopedDAO):
    def __init__(self, session: AsyncSession):
        super().__init__(Stream, session)

    async def list_parents(self, project_id: int) -> List[Stream]:
        """Top-level streams of a project."""
        result = await self.session.execute(
            select(Stream)
            .where(Stream.project_id == project_id, Stream.parent_stream_id.is_(None))
            .order_by(Stream.name, Stream.id)
        )
        return list(result.scalars().all())

    async def list_children(self, parent_stream_id: int) -> List[Stream]:
        result = await self.session.execute(
            select(Stream)
            .where(Stream.parent_stream_id == parent_stream_id)
            .order_by(Stream.name, Stream.id)
        )
        return list(result.scalars().all())

    async def has_children(self, stream_id: int) -> bool:
        result = await self.session.execute(
            select(Stream.id).where(Stream.parent_stream_id == stream_id).limit(1)
        )
        return result.scalar_one_or_none() is not None


class SubjectDAO(_ProjectScopedDAO):
    def __init__(self, session: AsyncSession):
        super().__init__(Subject, session)


class _OrgLookupDAO(BaseDAO):
    """Shared queries for organization lookup tables."""

    order_column: str = "id"

    async def list_for_org(self, org_id: int) -> List:
        result = await self.session.execute(
            select(self.model)
            .where(self.model.org_id == org_id)
            .order_by(getattr(self.model, self.order_column), self.model.id)
        )
        return list(result.scalars().all())

    async def name_exists(self, org_id: int, name: str) -> bool:
        result = await self.session.execute(
            select(self.model.id)
            .where(
                self.model.org_id == org_id,
                func.lower(self.model.name) == name.lower(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None


class PriorityDAO(_OrgLookupDAO):
    order_column = "rank"

    def __init__(self, session: AsyncSession):
        super().__init__(Priority, session)


class StatusDAO(_OrgLookupDAO):
    order_column = "sequence"

    def __init__(self, session: AsyncSession):
        super().__init__(Status, session)
