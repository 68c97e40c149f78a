"""
Organization model.

Organizations are the tenants of the system. Every tenant-scoped row
references one through a required ``organization_id``.
"""

from sqlalchemy import Boolean, Column, String, Text

from practice_api.models.base import Base, PrimaryKeyMixin, TimestampMixin


class Organization(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Organization model representing a tenant.

    ``external_org_id`` is the organization id issued by the identity
    provider; tokens carry it in their organization claim and the identity
    resolver maps it back to this row.
    """

    __tablename__ = "organizations"

    external_org_id = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True, unique=True)
    description = Column(Text, nullable=True)
    logo_url = Column(String(500), nullable=True)

    # Inactive organizations no longer resolve principals
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name})>"
