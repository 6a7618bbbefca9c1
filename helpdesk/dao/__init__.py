"""
Data Access Object (DAO) package.

WHY: DAOs provide a clean separation between business logic and database
operations. Scoped reads take a Scope so visibility is applied at the
query, never filtered afterwards in Python.
"""

from helpdesk.dao.base import BaseDAO
from helpdesk.dao.user import UserDAO
from helpdesk.dao.client import ClientDAO
from helpdesk.dao.project import ProjectDAO, ProjectMemberDAO
from helpdesk.dao.taxonomy import StreamDAO, SubjectDAO, PriorityDAO, StatusDAO
from helpdesk.dao.ticket import TicketDAO, TicketFilters
from helpdesk.dao.comment import TicketCommentDAO
from helpdesk.dao.ticket_event import TicketEventDAO
from helpdesk.dao.dashboard import DashboardDAO
from helpdesk.dao.outbox import OutboxDAO

__all__ = [
    "BaseDAO",
    "UserDAO",
    "ClientDAO",
    "ProjectDAO",
    "ProjectMemberDAO",
    "StreamDAO",
    "SubjectDAO",
    "PriorityDAO",
    "StatusDAO",
    "TicketDAO",
    "TicketFilters",
    "TicketCommentDAO",
    "TicketEventDAO",
    "DashboardDAO",
    "OutboxDAO",
]
