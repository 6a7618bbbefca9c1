"""
Organization and Client models.

WHY: Organizations are the tenant boundary. Clients are the external
customer accounts an organization serves; every project, ticket and
CLIENT-role user traces back to exactly one client and therefore to
exactly one organization.
"""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, UniqueConstraint

from helpdesk.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Organization(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Organization model representing a tenant in the multi-tenant system.

    WHY: The org_id is used throughout the system to bound every visibility
    predicate, so no query ever crosses organizations.
    """

    __tablename__ = "organizations"

    name = Column(String(255), nullable=False, index=True)

    # WHY: is_active allows disabling a tenant while preserving audit trails
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name})>"


class Client(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Customer account under an organization.

    WHY: CLIENT-role users see exactly the projects and tickets of their own
    client. The client name also seeds the ticket number prefix.
    """

    __tablename__ = "clients"
    __table_args__ = (
        UniqueConstraint("org_id", "name", name="uq_clients_org_name"),
    )

    org_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, org_id={self.org_id}, name={self.name})>"
