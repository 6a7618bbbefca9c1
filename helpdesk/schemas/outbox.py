"""
Pydantic schemas for the notification outbox admin endpoints.

WHY: Payloads are exposed as stored. They carry ids, ticket number and
title only, never comment bodies.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class OutboxItemResponse(BaseModel):
    id: int
    topic: str
    ticket_id: Optional[int] = None
    recipient_user_id: Optional[int] = None
    payload: Dict[str, Any]
    attempts: int = Field(..., description="Failed delivery attempts so far")
    last_error: Optional[str] = None
    parked: bool = Field(False, description="Reached the retry cap; no more retries")
    created_at: datetime

    class Config:
        from_attributes = True


class OutboxPendingResponse(BaseModel):
    items: List[OutboxItemResponse]
    limit: int


class OutboxProcessRequest(BaseModel):
    limit: Optional[int] = Field(None, ge=1, le=500, description="Rows to process")


class OutboxProcessResponse(BaseModel):
    processed: int = Field(..., description="Rows delivered (or settled without a recipient)")
    failed: int = Field(..., description="Rows whose delivery failed this run")
    skipped: bool = Field(False, description="Another run was in progress")
