"""
User model.

WHY: Users represent individuals who interact with the helpdesk. The role
decides which visibility scope they get, org_id bounds every query, and
client_id ties CLIENT-role users to their customer account.
"""

import enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Enum,
    ForeignKey,
    Boolean,
    CheckConstraint,
)

from helpdesk.models.base import Base, TimestampMixin, PrimaryKeyMixin


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    WHY: The role set is closed. Scope resolution branches on exactly these
    three members, and anything else resolves to an empty scope.
    """

    ADMIN = "ADMIN"  # Organization staff with full access inside the org
    EMPLOYEE = "EMPLOYEE"  # Staff who see tickets they raised or are assigned
    CLIENT = "CLIENT"  # External user restricted to their own client


class User(Base, PrimaryKeyMixin, TimestampMixin):
    """
    User model representing individuals who use the platform.

    Invariant (enforced by ck_users_client_role): role = CLIENT exactly when
    client_id is set.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "(role = 'CLIENT' AND client_id IS NOT NULL) OR "
            "(role <> 'CLIENT' AND client_id IS NULL)",
            name="ck_users_client_role",
        ),
    )

    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=True)

    role = Column(Enum(UserRole, name="userrole"), nullable=False, default=UserRole.CLIENT)

    org_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True, index=True)

    # WHY: is_active allows disabling users without losing their tickets
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
