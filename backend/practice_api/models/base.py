"""
Base model classes for all SQLAlchemy models.

Provides the declarative base plus the mixins every table is assembled from:
UUID primary keys, created/updated timestamps, and the tenant-scoped shape
(organization, active flag, soft-delete and audit columns).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import DeclarativeBase, declared_attr


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the ``DateTime`` columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.
    """

    pass


class PrimaryKeyMixin:
    """
    Mixin to add a UUID primary key to models.
    """

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.
    """

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class TenantScopedMixin(TimestampMixin):
    """
    Shape shared by every organization-owned entity.

    - organization_id: owning tenant; set at creation, never changed
    - is_active / deleted_at / deleted_by: soft-delete state. A non-null
      deleted_at hides the row from default reads.
    - created_by / updated_by: internal user ids of the acting principal
    """

    @declared_attr
    def organization_id(cls):
        return Column(
            Uuid,
            ForeignKey("organizations.id"),
            nullable=False,
            index=True,
        )

    is_active = Column(Boolean, nullable=False, default=True)
    deleted_at = Column(DateTime, nullable=True, index=True)

    @declared_attr
    def created_by(cls):
        return Column(Uuid, ForeignKey("users.id"), nullable=True)

    @declared_attr
    def updated_by(cls):
        return Column(Uuid, ForeignKey("users.id"), nullable=True)

    @declared_attr
    def deleted_by(cls):
        return Column(Uuid, ForeignKey("users.id"), nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


# Columns callers may never set directly on a tenant-scoped row
PROTECTED_COLUMNS = frozenset(
    {
        "id",
        "organization_id",
        "created_at",
        "updated_at",
        "created_by",
        "updated_by",
        "deleted_at",
        "deleted_by",
    }
)
