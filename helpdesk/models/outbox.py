"""
Notification outbox model.

WHAT: Durable queue of notifications written in the same transaction as the
ticket or comment that caused them.

WHY: Writing the row with the business change means a notification is never
lost when the request commits, and never sent for a change that rolled back.
Delivery happens later in the background poller.

Delivery is at-least-once: a send that succeeds but fails to record
delivered_at is retried on the next tick.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Any

from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.models.base import Base, utcnow


class OutboxTopic(str, Enum):
    """Notification topics written by the ticket and comment services."""

    TICKET_CREATED = "TICKET_CREATED"
    TICKET_UPDATED = "TICKET_UPDATED"
    COMMENT_ADDED = "COMMENT_ADDED"


class NotificationOutbox(Base):
    """Pending or delivered notification."""

    __tablename__ = "notification_outbox"
    __table_args__ = (
        Index("ix_notification_outbox_pending", "delivered_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    topic: Mapped[str] = mapped_column(String(64), nullable=False)
    ticket_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("tickets.id"), nullable=True
    )
    recipient_user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<NotificationOutbox(id={self.id}, topic={self.topic}, attempts={self.attempts})>"
