"""
User Data Access Object.

WHY: UserDAO provides database operations for the User model, following
the DAO pattern for separation of concerns and testability.
"""

from typing import Optional, List, Tuple
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.dao.base import LIKE_ESCAPE, BaseDAO, contains_pattern
from helpdesk.models.user import User, UserRole


class UserDAO(BaseDAO[User]):
    """Data Access Object for User model."""

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Retrieve user by email address.

        WHY: Email is the unique identifier for authentication.
        Case-insensitive comparison prevents duplicate accounts with
        different casing (user@example.com vs USER@EXAMPLE.COM).
        """
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        """Check if email already exists in database."""
        result = await self.session.execute(
            select(User.id).where(func.lower(User.email) == email.lower()).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def list_for_org(
        self,
        org_id: int,
        skip: int = 0,
        limit: int = 50,
        role: Optional[UserRole] = None,
        client_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[User], int]:
        """
        List users of one organization with optional filters.

        Returns:
            Tuple of (users, total count)
        """
        base_query = select(User).where(User.org_id == org_id)

        if role is not None:
            base_query = base_query.where(User.role == role)

        if client_id is not None:
            base_query = base_query.where(User.client_id == client_id)

        if search:
            pattern = contains_pattern(search)
            base_query = base_query.where(
                or_(
                    User.name.ilike(pattern, escape=LIKE_ESCAPE),
                    User.email.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )

        return await self.paginate(base_query, (User.name, User.id), skip, limit)
