"""
Client Data Access Object.

WHAT: Queries for customer accounts, always bounded by a Scope or an
organization id.
"""

from typing import Optional, List, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.scope import Scope
from helpdesk.dao.base import LIKE_ESCAPE, BaseDAO, contains_pattern
from helpdesk.models.organization import Client


class ClientDAO(BaseDAO[Client]):
    """Data Access Object for Client model."""

    def __init__(self, session: AsyncSession):
        super().__init__(Client, session)

    async def list(
        self,
        scope: Scope,
        skip: int = 0,
        limit: int = 50,
        search: Optional[str] = None,
        active: Optional[bool] = None,
    ) -> Tuple[List[Client], int]:
        """
        List clients visible to the scope.

        Returns:
            Tuple of (clients, total count)
        """
        base_query = select(Client).where(scope.client_clause())

        if search:
            base_query = base_query.where(
                Client.name.ilike(contains_pattern(search), escape=LIKE_ESCAPE)
            )

        if active is not None:
            base_query = base_query.where(Client.active.is_(active))

        return await self.paginate(base_query, (Client.name, Client.id), skip, limit)

    async def get_visible(self, scope: Scope, client_id: int) -> Optional[Client]:
        """Get a client if the scope can see it."""
        result = await self.session.execute(
            select(Client).where(Client.id == client_id, scope.client_clause())
        )
        return result.scalar_one_or_none()

    async def name_exists(
        self, org_id: int, name: str, exclude_id: Optional[int] = None
    ) -> bool:
        """Case-insensitive name check within one organization."""
        query = select(Client.id).where(
            Client.org_id == org_id,
            func.lower(Client.name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.where(Client.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None
