"""
Base Data Access Object (DAO) class.

WHY: The DAO pattern separates database operations from business logic,
making the codebase more testable and maintainable. Every DAO receives the
request's AsyncSession explicitly; none of them opens sessions or commits.
Committing is the caller's job (get_db for requests, the poller for jobs).
"""

from typing import Any, Generic, List, Optional, Tuple, Type, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.models.base import Base

# Type variable for model class
ModelType = TypeVar("ModelType", bound=Base)

LIKE_ESCAPE = "\\"


def contains_pattern(text: str) -> str:
    """
    ILIKE pattern matching `text` anywhere, with its own % and _ taken literally.

    Use with `column.ilike(pattern, escape=LIKE_ESCAPE)`.
    """
    escaped = (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


class BaseDAO(Generic[ModelType]):
    """
    Shared create/update/lookup plumbing for the helpdesk DAOs.

    Type Parameters:
        ModelType: The SQLAlchemy model class this DAO manages
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def create(self, **kwargs: Any) -> ModelType:
        """
        Add a row and flush it so ids and server defaults are populated.

        Raises:
            IntegrityError: If a unique or check constraint is violated
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update(self, instance: ModelType, **kwargs: Any) -> ModelType:
        """
        Apply field changes to a loaded instance and flush them.

        WHY: Updating through the instance lets services compare old and new
        values first (ticket events record both).
        """
        for field, value in kwargs.items():
            setattr(instance, field, value)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def get_by_id(self, id: int) -> Optional[ModelType]:
        """
        Retrieve a single record by primary key.

        WHY: Unscoped. Only use for rows whose visibility was already
        established, or for internal lookups (auth, background jobs).
        """
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def get_by_id_and_org(self, id: int, org_id: int) -> Optional[ModelType]:
        """
        Retrieve a record by id only if it belongs to the organization.

        Used for org-owned rows (users, clients, priorities, statuses).

        Raises:
            AttributeError: If the model has no org_id column
        """
        if not hasattr(self.model, "org_id"):
            raise AttributeError(
                f"{self.model.__name__} is not a multi-tenant model (no org_id field)"
            )

        result = await self.session.execute(
            select(self.model).where(
                self.model.id == id,
                self.model.org_id == org_id,
            )
        )
        return result.scalar_one_or_none()

    async def paginate(
        self,
        query: Select,
        order_by: Tuple[Any, ...],
        skip: int,
        limit: int,
    ) -> Tuple[List[ModelType], int]:
        """
        Run a filtered query as one page plus the total row count.

        The total is counted over the same filtered query, so it always
        agrees with what the pages contain.
        """
        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.session.execute(count_query)).scalar_one()

        result = await self.session.execute(
            query.order_by(*order_by).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total
