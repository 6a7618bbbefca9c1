"""
Ticket classification models.

WHAT: Streams and subjects classify tickets inside a project; priorities and
statuses are per-organization lookup tables.

WHY: Statuses carry is_closed so that "open" and "closed" counts, and the
ticket closed_at timestamp, come from data rather than hardcoded names.
Priorities carry a rank so breakdowns can be ordered by urgency.
"""

from typing import Optional

from sqlalchemy import Integer, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.models.base import Base, TimestampMixin


class Stream(Base, TimestampMixin):
    """Work stream inside a project, optionally nested one level."""

    __tablename__ = "streams"
    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_streams_project_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id"), nullable=False, index=True
    )
    parent_stream_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("streams.id"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Subject(Base, TimestampMixin):
    """Subject (topic) inside a project, optionally tied to a stream."""

    __tablename__ = "subjects"
    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_subjects_project_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id"), nullable=False, index=True
    )
    stream_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("streams.id"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Priority(Base, TimestampMixin):
    """Ticket priority. Lower rank is more urgent."""

    __tablename__ = "priorities"
    __table_args__ = (
        UniqueConstraint("org_id", "name", name="uq_priorities_org_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Status(Base, TimestampMixin):
    """Ticket status. sequence orders the workflow columns."""

    __tablename__ = "statuses"
    __table_args__ = (
        UniqueConstraint("org_id", "name", name="uq_statuses_org_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
