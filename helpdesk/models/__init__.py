"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and makes it easier to import models elsewhere.
"""

from helpdesk.models.base import Base, TimestampMixin, PrimaryKeyMixin, utcnow
from helpdesk.models.organization import Organization, Client
from helpdesk.models.user import User, UserRole
from helpdesk.models.project import Project, ProjectMember, ProjectMemberRole
from helpdesk.models.taxonomy import Stream, Subject, Priority, Status
from helpdesk.models.ticket import (
    Ticket,
    TicketComment,
    TicketEvent,
    TicketEventType,
    CommentVisibility,
    ClientTicketCounter,
)
from helpdesk.models.outbox import NotificationOutbox, OutboxTopic

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "utcnow",
    # Tenancy
    "Organization",
    "Client",
    "User",
    "UserRole",
    # Projects
    "Project",
    "ProjectMember",
    "ProjectMemberRole",
    # Taxonomy
    "Stream",
    "Subject",
    "Priority",
    "Status",
    # Tickets
    "Ticket",
    "TicketComment",
    "TicketEvent",
    "TicketEventType",
    "CommentVisibility",
    "ClientTicketCounter",
    # Outbox
    "NotificationOutbox",
    "OutboxTopic",
]
