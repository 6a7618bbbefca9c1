"""
Role-based row visibility.

WHAT: Turns a caller identity (role, org_id, user_id, client_id) into a
Scope, a set of SQLAlchemy predicates every ticket, comment, project and
dashboard query applies.

WHY: One resolver consumed everywhere guarantees that listings, single-row
lookups, updates and dashboard aggregates agree on which rows a caller can
see. Dashboard totals can never contradict the ticket list.

HOW:
| role     | tickets                                          | comments          |
|----------|--------------------------------------------------|-------------------|
| ADMIN    | every ticket in the organization                 | PUBLIC + INTERNAL |
| EMPLOYEE | raised by OR assigned to the caller, in the org  | PUBLIC + INTERNAL |
| CLIENT   | tickets of the caller's client, in the org       | PUBLIC only       |

Soft-deleted tickets are excluded for every role. Anything that does not fit
the table (CLIENT without a client, staff with a client, unknown role,
missing ids) resolves to an empty scope whose predicates match nothing.

resolve_scope is pure: it builds expressions and never touches the database.
"""

from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy import and_, exists, false, or_, select, true
from sqlalchemy.sql.elements import ColumnElement

from helpdesk.models.organization import Client
from helpdesk.models.project import Project, ProjectMember
from helpdesk.models.ticket import Ticket, TicketComment, CommentVisibility
from helpdesk.models.user import UserRole


@dataclass(frozen=True)
class Scope:
    """
    Resolved visibility for one caller.

    Build through resolve_scope(); an instance with empty=True matches no rows.
    """

    role: Optional[UserRole]
    org_id: Optional[int]
    user_id: Optional[int]
    client_id: Optional[int] = None
    empty: bool = False

    @property
    def is_empty(self) -> bool:
        return self.empty

    @property
    def is_admin(self) -> bool:
        return not self.empty and self.role == UserRole.ADMIN

    @property
    def is_employee(self) -> bool:
        return not self.empty and self.role == UserRole.EMPLOYEE

    @property
    def is_client(self) -> bool:
        return not self.empty and self.role == UserRole.CLIENT

    @property
    def includes_internal_comments(self) -> bool:
        """Whether INTERNAL comments are readable under this scope."""
        return self.is_admin or self.is_employee

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def org_project_ids(self):
        """Subquery of project ids belonging to the caller's organization."""
        return (
            select(Project.id)
            .join(Client, Client.id == Project.client_id)
            .where(Client.org_id == self.org_id)
        )

    def ticket_clause(self, include_deleted: bool = False) -> ColumnElement[bool]:
        """
        Row filter for the tickets table.

        Args:
            include_deleted: Keep soft-deleted rows. Only the admin audit
                lookup passes True.
        """
        if self.empty:
            return false()

        clauses = [Ticket.project_id.in_(self.org_project_ids())]
        if not include_deleted:
            clauses.append(Ticket.is_deleted.is_(False))

        if self.role == UserRole.EMPLOYEE:
            clauses.append(
                or_(
                    Ticket.raised_by_user_id == self.user_id,
                    Ticket.assigned_to_user_id == self.user_id,
                )
            )
        elif self.role == UserRole.CLIENT:
            clauses.append(
                Ticket.project_id.in_(
                    select(Project.id).where(Project.client_id == self.client_id)
                )
            )

        return and_(*clauses)

    def comment_clause(self) -> ColumnElement[bool]:
        """
        Extra filter for ticket_comments, applied on top of ticket_clause.
        """
        if self.empty:
            return false()
        if self.role == UserRole.CLIENT:
            return TicketComment.visibility == CommentVisibility.PUBLIC
        return true()

    def project_clause(self) -> ColumnElement[bool]:
        """
        Row filter for the projects table.

        EMPLOYEE project visibility follows membership; their ticket
        visibility does not.
        """
        if self.empty:
            return false()

        in_org = Project.client_id.in_(
            select(Client.id).where(Client.org_id == self.org_id)
        )
        if self.role == UserRole.EMPLOYEE:
            return and_(
                in_org,
                exists().where(
                    ProjectMember.project_id == Project.id,
                    ProjectMember.user_id == self.user_id,
                ),
            )
        if self.role == UserRole.CLIENT:
            return and_(in_org, Project.client_id == self.client_id)
        return in_org

    def client_clause(self) -> ColumnElement[bool]:
        """Row filter for the clients table."""
        if self.empty:
            return false()
        if self.role == UserRole.CLIENT:
            return and_(Client.org_id == self.org_id, Client.id == self.client_id)
        return Client.org_id == self.org_id


def _empty(role: Optional[UserRole], org_id, user_id, client_id) -> Scope:
    return Scope(role=role, org_id=org_id, user_id=user_id, client_id=client_id, empty=True)


def resolve_scope(
    role: Union[UserRole, str, None],
    org_id: Optional[int],
    user_id: Optional[int],
    client_id: Optional[int] = None,
) -> Scope:
    """
    Derive the visibility scope for a caller.

    Args:
        role: Caller role (enum member or its string value)
        org_id: Caller's organization
        user_id: Caller's user id
        client_id: Caller's client, required for CLIENT and forbidden otherwise

    Returns:
        Scope; empty when the inputs violate the role/client invariant
    """
    if not isinstance(role, UserRole):
        try:
            role = UserRole(role)
        except ValueError:
            return _empty(None, org_id, user_id, client_id)

    if org_id is None or user_id is None:
        return _empty(role, org_id, user_id, client_id)

    if role == UserRole.CLIENT:
        if client_id is None:
            return _empty(role, org_id, user_id, client_id)
    elif client_id is not None:
        return _empty(role, org_id, user_id, client_id)

    return Scope(role=role, org_id=org_id, user_id=user_id, client_id=client_id)
