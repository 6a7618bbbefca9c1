"""
Pydantic schemas for ticket classification endpoints.

WHAT: Streams and subjects (per project), priorities and statuses (per
organization).
"""

from typing import Optional

from pydantic import BaseModel, Field


class StreamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Stream name")
    parent_stream_id: Optional[int] = Field(
        None, description="Top-level stream of the same project to nest under"
    )


class StreamUpdate(BaseModel):
    """
    Stream update request. Only provided fields are changed.

    Sending parent_stream_id as null moves the stream to the top level.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    active: Optional[bool] = None
    parent_stream_id: Optional[int] = Field(
        None, description="Top-level stream of the same project to nest under"
    )


class StreamResponse(BaseModel):
    id: int
    project_id: int
    parent_stream_id: Optional[int] = None
    name: str
    active: bool

    class Config:
        from_attributes = True


class SubjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Subject name")
    stream_id: Optional[int] = Field(None, description="Stream of the same project")


class SubjectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    active: Optional[bool] = None


class SubjectResponse(BaseModel):
    id: int
    project_id: int
    stream_id: Optional[int] = None
    name: str
    active: bool

    class Config:
        from_attributes = True


class PriorityCreate(BaseModel):
    """Priority lookup value. Lower rank sorts first (more urgent)."""

    name: str = Field(..., min_length=1, max_length=100)
    rank: int = Field(0, ge=0, description="Sort order, most urgent first")


class PriorityResponse(BaseModel):
    id: int
    org_id: int
    name: str
    rank: int
    active: bool

    class Config:
        from_attributes = True


class StatusCreate(BaseModel):
    """
    Status lookup value.

    WHAT: is_closed decides whether tickets in this status count as closed
    and get closed_at set.
    """

    name: str = Field(..., min_length=1, max_length=100)
    is_closed: bool = Field(False, description="Tickets in this status are closed")
    sequence: int = Field(0, ge=0, description="Workflow order")


class StatusResponse(BaseModel):
    id: int
    org_id: int
    name: str
    is_closed: bool
    sequence: int
    active: bool

    class Config:
        from_attributes = True
