"""
Pydantic schemas for ticket comments.

WHY: visibility defaults to PUBLIC so a client-facing reply is the normal
case and an INTERNAL note must be asked for explicitly.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from helpdesk.models.ticket import CommentVisibility


class CommentCreate(BaseModel):
    """
    Comment creation request.

    WHAT: CLIENT callers may only post PUBLIC comments.
    """

    body_md: str = Field(..., min_length=1, max_length=10000, description="Markdown body")
    visibility: CommentVisibility = Field(
        CommentVisibility.PUBLIC,
        description="PUBLIC (visible to the client) or INTERNAL (staff only)",
    )

    @field_validator("body_md")
    @classmethod
    def reject_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Comment cannot be blank")
        return v


class CommentResponse(BaseModel):
    id: int = Field(..., description="Comment ID")
    ticket_id: int = Field(..., description="Parent ticket ID")
    author_user_id: int = Field(..., description="Author user ID")
    visibility: CommentVisibility
    body_md: str
    created_at: datetime

    class Config:
        from_attributes = True
