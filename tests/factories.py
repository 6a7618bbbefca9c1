"""
Test factories for creating test data.

WHY: Factories provide a consistent, reusable way to create test objects,
reducing duplication and making tests more maintainable. Using factories
instead of manual object creation ensures tests stay consistent when models change.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.core.auth import create_access_token, hash_password, token_claims_for
from helpdesk.core.scope import Scope, resolve_scope
from helpdesk.models.base import utcnow
from helpdesk.models.organization import Organization, Client
from helpdesk.models.project import Project, ProjectMember, ProjectMemberRole
from helpdesk.models.taxonomy import Priority, Status, Stream, Subject
from helpdesk.models.ticket import Ticket, TicketComment, CommentVisibility
from helpdesk.models.user import User, UserRole


DEFAULT_PASSWORD = "TestPassword123!"


class OrganizationFactory:
    """Factory for creating Organization test instances."""

    @staticmethod
    async def create(
        session: AsyncSession,
        name: str = "Test Organization",
        is_active: bool = True,
    ) -> Organization:
        org = Organization(name=name, is_active=is_active)
        session.add(org)
        await session.commit()
        await session.refresh(org)
        return org


class ClientFactory:
    """Factory for creating Client (customer account) test instances."""

    @staticmethod
    async def create(
        session: AsyncSession,
        org: Organization,
        name: str = "Acme Corp",
        active: bool = True,
    ) -> Client:
        client = Client(org_id=org.id, name=name, active=active)
        session.add(client)
        await session.commit()
        await session.refresh(client)
        return client


class UserFactory:
    """
    Factory for creating User test instances.

    WHY: Provides consistent user creation with proper password hashing.
    CLIENT users must be given their client; staff must not.
    """

    @staticmethod
    async def create(
        session: AsyncSession,
        org: Organization,
        email: str = "test@example.com",
        role: UserRole = UserRole.EMPLOYEE,
        client: Optional[Client] = None,
        name: Optional[str] = None,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
    ) -> User:
        user = User(
            name=name or email.split("@")[0].title(),
            email=email,
            hashed_password=hash_password(password),
            role=role,
            org_id=org.id,
            client_id=client.id if client is not None else None,
            is_active=is_active,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    @staticmethod
    async def create_admin(session: AsyncSession, org: Organization, email: str = "admin@example.com", **kwargs) -> User:
        return await UserFactory.create(session, org, email=email, role=UserRole.ADMIN, **kwargs)

    @staticmethod
    async def create_employee(session: AsyncSession, org: Organization, email: str = "employee@example.com", **kwargs) -> User:
        return await UserFactory.create(session, org, email=email, role=UserRole.EMPLOYEE, **kwargs)

    @staticmethod
    async def create_client_user(
        session: AsyncSession, org: Organization, client: Client, email: str = "client@example.com", **kwargs
    ) -> User:
        return await UserFactory.create(
            session, org, email=email, role=UserRole.CLIENT, client=client, **kwargs
        )


class ProjectFactory:
    """Factory for creating Project and ProjectMember test instances."""

    @staticmethod
    async def create(
        session: AsyncSession,
        client: Client,
        name: str = "Website",
        description: Optional[str] = None,
        active: bool = True,
    ) -> Project:
        project = Project(
            client_id=client.id, name=name, description=description, active=active
        )
        session.add(project)
        await session.commit()
        await session.refresh(project)
        return project

    @staticmethod
    async def add_member(
        session: AsyncSession,
        project: Project,
        user: User,
        role: ProjectMemberRole = ProjectMemberRole.MEMBER,
        can_raise: bool = True,
        can_be_assigned: bool = False,
    ) -> ProjectMember:
        member = ProjectMember(
            project_id=project.id,
            user_id=user.id,
            role=role,
            can_raise=can_raise,
            can_be_assigned=can_be_assigned,
        )
        session.add(member)
        await session.commit()
        await session.refresh(member)
        return member


class LookupFactory:
    """Factory for organization priorities/statuses and project streams/subjects."""

    @staticmethod
    async def priority(session: AsyncSession, org: Organization, name: str = "High", rank: int = 1) -> Priority:
        priority = Priority(org_id=org.id, name=name, rank=rank)
        session.add(priority)
        await session.commit()
        await session.refresh(priority)
        return priority

    @staticmethod
    async def status(
        session: AsyncSession,
        org: Organization,
        name: str = "Open",
        is_closed: bool = False,
        sequence: int = 1,
    ) -> Status:
        status = Status(org_id=org.id, name=name, is_closed=is_closed, sequence=sequence)
        session.add(status)
        await session.commit()
        await session.refresh(status)
        return status

    @staticmethod
    async def stream(session: AsyncSession, project: Project, name: str = "Frontend") -> Stream:
        stream = Stream(project_id=project.id, name=name)
        session.add(stream)
        await session.commit()
        await session.refresh(stream)
        return stream

    @staticmethod
    async def subject(
        session: AsyncSession, project: Project, name: str = "Login", stream: Optional[Stream] = None
    ) -> Subject:
        subject = Subject(
            project_id=project.id, name=name, stream_id=stream.id if stream else None
        )
        session.add(subject)
        await session.commit()
        await session.refresh(subject)
        return subject


class TicketFactory:
    """
    Factory for creating Ticket test instances directly.

    WHY: Bypasses TicketService so visibility tests can place tickets
    anywhere (including where the raiser would not be allowed to raise).
    """

    _sequence = 0

    @staticmethod
    async def create(
        session: AsyncSession,
        project: Project,
        raised_by: User,
        status: Status,
        priority: Priority,
        title: str = "Printer on fire",
        description_md: str = "",
        assigned_to: Optional[User] = None,
        is_deleted: bool = False,
    ) -> Ticket:
        TicketFactory._sequence += 1
        now = utcnow()
        ticket = Ticket(
            project_id=project.id,
            client_id=project.client_id,
            client_ticket_number=f"TST{TicketFactory._sequence:05d}",
            title=title,
            description_md=description_md,
            status_id=status.id,
            priority_id=priority.id,
            raised_by_user_id=raised_by.id,
            assigned_to_user_id=assigned_to.id if assigned_to else None,
            is_deleted=is_deleted,
            created_at=now,
            updated_at=now,
        )
        session.add(ticket)
        await session.commit()
        await session.refresh(ticket)
        return ticket


class CommentFactory:
    """Factory for creating TicketComment test instances."""

    @staticmethod
    async def create(
        session: AsyncSession,
        ticket: Ticket,
        author: User,
        body_md: str = "Looking into it",
        visibility: CommentVisibility = CommentVisibility.PUBLIC,
    ) -> TicketComment:
        comment = TicketComment(
            ticket_id=ticket.id,
            author_user_id=author.id,
            body_md=body_md,
            visibility=visibility,
            created_at=utcnow(),
        )
        session.add(comment)
        await session.commit()
        await session.refresh(comment)
        return comment


# ============================================================================
# Auth helpers
# ============================================================================


def auth_headers(user: User) -> Dict[str, str]:
    """Bearer header for a user, without going through /auth/login."""
    token = create_access_token(token_claims_for(user))
    return {"Authorization": f"Bearer {token}"}


def scope_for(user: User) -> Scope:
    return resolve_scope(user.role, user.org_id, user.id, user.client_id)


# ============================================================================
# Seeded tenant
# ============================================================================


@dataclass
class Tenant:
    """
    Standard cast for visibility tests.

    Organization `org`:
    - admin, employee, other_employee (staff)
    - acme (client) with acme_user, globex (client) with globex_user
    - acme_project (acme), globex_project (globex)
    - open_status, closed_status, high priority

    Organization `other_org`:
    - other_admin, other_client, other_project, other_ticket
    """

    org: Organization
    admin: User
    employee: User
    other_employee: User
    acme: Client
    acme_user: User
    globex: Client
    globex_user: User
    acme_project: Project
    globex_project: Project
    open_status: Status
    closed_status: Status
    high: Priority
    other_org: Organization
    other_admin: User
    other_client: Client
    other_project: Project
    other_status: Status
    other_priority: Priority
    other_ticket: Ticket


async def build_tenant(session: AsyncSession) -> Tenant:
    """Create the standard two-organization cast."""
    org = await OrganizationFactory.create(session, name="Helpdesk Co")
    admin = await UserFactory.create_admin(session, org, email="admin@helpdesk.io")
    employee = await UserFactory.create_employee(session, org, email="emp@helpdesk.io")
    other_employee = await UserFactory.create_employee(session, org, email="emp2@helpdesk.io")

    acme = await ClientFactory.create(session, org, name="Acme Corp")
    globex = await ClientFactory.create(session, org, name="Globex")
    acme_user = await UserFactory.create_client_user(session, org, acme, email="user@acme.com")
    globex_user = await UserFactory.create_client_user(session, org, globex, email="user@globex.com")

    acme_project = await ProjectFactory.create(session, acme, name="Acme Website")
    globex_project = await ProjectFactory.create(session, globex, name="Globex Portal")

    # Everyone who works on a project may raise; staff may also be assigned
    for user, can_be_assigned in (
        (admin, True),
        (employee, True),
        (other_employee, True),
        (acme_user, False),
    ):
        await ProjectFactory.add_member(
            session, acme_project, user, can_raise=True, can_be_assigned=can_be_assigned
        )
    await ProjectFactory.add_member(session, globex_project, globex_user, can_raise=True)
    await ProjectFactory.add_member(session, globex_project, admin, can_raise=True, can_be_assigned=True)

    open_status = await LookupFactory.status(session, org, name="Open", sequence=1)
    closed_status = await LookupFactory.status(session, org, name="Closed", is_closed=True, sequence=2)
    high = await LookupFactory.priority(session, org, name="High", rank=1)

    other_org = await OrganizationFactory.create(session, name="Other Co")
    other_admin = await UserFactory.create_admin(session, other_org, email="admin@other.io")
    other_client = await ClientFactory.create(session, other_org, name="Acme Corp")
    other_project = await ProjectFactory.create(session, other_client, name="Acme Website")
    other_status = await LookupFactory.status(session, other_org, name="Open")
    other_priority = await LookupFactory.priority(session, other_org, name="High")
    other_ticket = await TicketFactory.create(
        session, other_project, other_admin, other_status, other_priority, title="Other org ticket"
    )

    return Tenant(
        org=org,
        admin=admin,
        employee=employee,
        other_employee=other_employee,
        acme=acme,
        acme_user=acme_user,
        globex=globex,
        globex_user=globex_user,
        acme_project=acme_project,
        globex_project=globex_project,
        open_status=open_status,
        closed_status=closed_status,
        high=high,
        other_org=other_org,
        other_admin=other_admin,
        other_client=other_client,
        other_project=other_project,
        other_status=other_status,
        other_priority=other_priority,
        other_ticket=other_ticket,
    )
