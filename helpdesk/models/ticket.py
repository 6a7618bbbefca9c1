"""
Ticket models for the helpdesk.

WHAT: SQLAlchemy models for tickets, comments, ticket events and the
per-client ticket number counter.

WHY: Provides structured support request management with:
1. Soft delete (is_deleted) so the audit trail survives removal
2. Comment threads mixing PUBLIC replies and INTERNAL staff notes
3. An append-only event log of every ticket mutation
4. Human-friendly per-client ticket numbers (e.g. ACM0042)

HOW: Uses SQLAlchemy 2.0 with:
- Enums for comment visibility and event types
- Foreign keys to projects, users and lookup tables
- Indexes backing the three ticket visibility predicates and the
  comment visibility filter
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Any

from sqlalchemy import (
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.models.base import Base, utcnow


# ============================================================================
# Enums
# ============================================================================


class CommentVisibility(str, Enum):
    """
    Comment visibility values.

    WHY: INTERNAL notes are staff-only. CLIENT users never read them and
    can never author them.
    """

    PUBLIC = "PUBLIC"
    INTERNAL = "INTERNAL"


class TicketEventType(str, Enum):
    """
    Ticket event types.

    WHAT: One value per kind of ticket mutation recorded in ticket_events.
    """

    TICKET_CREATED = "TICKET_CREATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    PRIORITY_CHANGED = "PRIORITY_CHANGED"
    ASSIGNEE_CHANGED = "ASSIGNEE_CHANGED"
    TITLE_UPDATED = "TITLE_UPDATED"
    DESCRIPTION_UPDATED = "DESCRIPTION_UPDATED"
    COMMENT_ADDED = "COMMENT_ADDED"
    TICKET_DELETED = "TICKET_DELETED"


# ============================================================================
# Ticket Model
# ============================================================================


class Ticket(Base):
    """
    Support ticket raised inside a project.

    Security: tickets carry no org_id of their own; the organization is
    always reached through project -> client. client_id is copied from the
    project at creation (a project never changes client) and keys the
    per-client ticket number.
    """

    __tablename__ = "tickets"
    __table_args__ = (
        Index("ix_tickets_project_id", "project_id"),
        Index("ix_tickets_raised_by_user_id", "raised_by_user_id"),
        Index("ix_tickets_assigned_to_user_id", "assigned_to_user_id"),
        Index("ix_tickets_updated_at", "updated_at"),
        UniqueConstraint(
            "client_id", "client_ticket_number", name="uq_tickets_client_number"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id"), nullable=False
    )
    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clients.id"), nullable=False
    )
    client_ticket_number: Mapped[str] = mapped_column(String(32), nullable=False)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description_md: Mapped[str] = mapped_column(Text, nullable=False, default="")

    status_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("statuses.id"), nullable=False
    )
    priority_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("priorities.id"), nullable=False
    )
    stream_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("streams.id"), nullable=True
    )
    subject_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("subjects.id"), nullable=True
    )

    raised_by_user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    assigned_to_user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, number={self.client_ticket_number})>"


# ============================================================================
# Comment Model
# ============================================================================


class TicketComment(Base):
    """
    Comment on a ticket.

    WHAT: Immutable once written; there is no edit or delete path.
    """

    __tablename__ = "ticket_comments"
    __table_args__ = (
        Index("ix_ticket_comments_ticket_visibility", "ticket_id", "visibility"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tickets.id"), nullable=False
    )
    author_user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    visibility: Mapped[CommentVisibility] = mapped_column(
        SQLEnum(CommentVisibility, name="commentvisibility"),
        nullable=False,
        default=CommentVisibility.PUBLIC,
    )
    body_md: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return (
            f"<TicketComment(id={self.id}, ticket_id={self.ticket_id}, "
            f"visibility={self.visibility})>"
        )


# ============================================================================
# Event Model
# ============================================================================


class TicketEvent(Base):
    """
    Append-only audit record of a ticket mutation.

    WHAT: old_value/new_value hold small JSON documents describing the change
    (ids, not names, so renaming a status does not rewrite history).
    """

    __tablename__ = "ticket_events"
    __table_args__ = (
        Index("ix_ticket_events_ticket_created", "ticket_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tickets.id"), nullable=False
    )
    event_type: Mapped[TicketEventType] = mapped_column(
        SQLEnum(TicketEventType, name="ticketeventtype"), nullable=False
    )
    old_value: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    new_value: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    actor_user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<TicketEvent(id={self.id}, type={self.event_type})>"


# ============================================================================
# Ticket Number Counter
# ============================================================================


class ClientTicketCounter(Base):
    """
    Next ticket sequence number per client.

    WHY: A row per client lets ticket numbering be allocated inside the
    ticket-creation transaction with a row lock on PostgreSQL.
    """

    __tablename__ = "client_ticket_counters"

    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clients.id"), primary_key=True
    )
    last_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
