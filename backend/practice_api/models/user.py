"""
User and membership models.

A user is a local record for an identity managed by the external provider.
Users join organizations through memberships, and the role lives on the
membership: the same user may be an admin in one organization and a
receptionist in another.
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    Enum,
    ForeignKey,
    String,
    UniqueConstraint,
    Uuid,
)

from practice_api.models.base import Base, PrimaryKeyMixin, TimestampMixin


class UserType(str, enum.Enum):
    """
    Platform-level user type.

    SUPERADMIN users may act across tenants; everyone else is REGULAR.
    """

    REGULAR = "regular"
    SUPERADMIN = "superadmin"


class UserRole(str, enum.Enum):
    """
    Role of a user inside one organization.
    """

    ADMIN = "admin"
    MEMBER = "member"
    HEALTH_PROFESSIONAL = "health_professional"
    RECEPTIONIST = "receptionist"
    PATIENT = "patient"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base, PrimaryKeyMixin, TimestampMixin):
    """
    User model.

    ``external_user_id`` is the provider's subject id (the token ``sub``).
    Audit columns across the schema reference ``users.id``, never the
    external id.
    """

    __tablename__ = "users"

    external_user_id = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    type = Column(
        Enum(UserType, name="user_type", values_callable=_enum_values),
        nullable=False,
        default=UserType.REGULAR,
    )
    is_active = Column(Boolean, nullable=False, default=True)
    image_url = Column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, type={self.type})>"


class Membership(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Membership of a user in an organization.

    At most one row exists per (user_id, organization_id); this is a
    database constraint, so a second insert raises IntegrityError.
    """

    __tablename__ = "user_organizations"
    __table_args__ = (
        UniqueConstraint("user_id", "organization_id", name="uq_user_organization"),
    )

    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    organization_id = Column(
        Uuid,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = Column(
        Enum(UserRole, name="user_role", values_callable=_enum_values),
        nullable=False,
        default=UserRole.MEMBER,
    )
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    updated_by = Column(Uuid, ForeignKey("users.id"), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Membership(user_id={self.user_id}, "
            f"organization_id={self.organization_id}, role={self.role})>"
        )
