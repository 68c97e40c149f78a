"""
Client model.

Clients are the billing counterparties of sales.
"""

from sqlalchemy import JSON, Column, String, Text

from practice_api.models.base import Base, PrimaryKeyMixin, TenantScopedMixin


class Client(Base, PrimaryKeyMixin, TenantScopedMixin):
    """Tenant-scoped client record."""

    __tablename__ = "clients"

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    company = Column(String(255), nullable=True)
    tax_id = Column(String(100), nullable=True)
    # Opaque per-jurisdiction compliance data
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name})>"
