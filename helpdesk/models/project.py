"""
Project and project membership models.

WHAT: Projects group tickets for one client. Memberships record which users
work on a project and with which permissions.

WHY: Membership is an eligibility gate at write time (who may raise a
ticket, who may be assigned one). It is NOT how EMPLOYEE ticket visibility
is decided; that follows authorship and assignment only. It does decide
which projects an EMPLOYEE sees in project listings.
"""

from enum import Enum
from typing import Optional

from sqlalchemy import (
    Integer,
    String,
    Text,
    Boolean,
    ForeignKey,
    Enum as SQLEnum,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk.models.base import Base, TimestampMixin


class ProjectMemberRole(str, Enum):
    """Role of a user inside one project."""

    MANAGER = "MANAGER"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


class Project(Base, TimestampMixin):
    """
    Project belonging to a client.

    Security: the organization is reached through the client; a project
    never changes client.
    """

    __tablename__ = "projects"
    __table_args__ = (
        UniqueConstraint("client_id", "name", name="uq_projects_client_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clients.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, client_id={self.client_id}, name={self.name})>"


class ProjectMember(Base, TimestampMixin):
    """
    Membership of one user in one project.

    WHAT: Carries the per-member flags checked when tickets are raised
    (can_raise) and assigned (can_be_assigned).
    """

    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    role: Mapped[ProjectMemberRole] = mapped_column(
        SQLEnum(ProjectMemberRole, name="projectmemberrole"),
        nullable=False,
        default=ProjectMemberRole.MEMBER,
    )
    can_raise: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_be_assigned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return (
            f"<ProjectMember(project_id={self.project_id}, user_id={self.user_id}, "
            f"role={self.role})>"
        )
