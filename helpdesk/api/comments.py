"""
Comment API endpoints.

WHAT: Direct lookup of a single comment by id.

WHY: An INTERNAL comment requested by a CLIENT caller answers 404, the same
as a comment on a ticket the caller cannot see.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.deps import get_scope
from helpdesk.core.scope import Scope
from helpdesk.db.session import get_db
from helpdesk.schemas.comment import CommentResponse
from helpdesk.services.comment_service import CommentService


router = APIRouter(prefix="/comments", tags=["comments"])


@router.get(
    "/{comment_id}",
    response_model=CommentResponse,
    summary="Get comment",
)
async def get_comment(
    comment_id: int,
    scope: Scope = Depends(get_scope),
    db: AsyncSession = Depends(get_db),
) -> CommentResponse:
    comment = await CommentService(db).get_comment(scope, comment_id)
    return CommentResponse.model_validate(comment)
