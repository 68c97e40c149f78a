"""
Database models package.

Importing this package registers every table on ``Base.metadata``.
"""

from practice_api.models.base import (
    PROTECTED_COLUMNS,
    Base,
    PrimaryKeyMixin,
    TenantScopedMixin,
    TimestampMixin,
)
from practice_api.models.organization import Organization
from practice_api.models.user import Membership, User, UserRole, UserType
from practice_api.models.client import Client
from practice_api.models.patient import BloodType, Patient, PatientSex
from practice_api.models.item import (
    InventoryMovement,
    Item,
    ItemType,
    MovementType,
    ProductType,
)
from practice_api.models.sale import (
    SALE_STATUS_TRANSITIONS,
    Sale,
    SaleItem,
    SaleStatus,
)

__all__ = [
    "Base",
    "PrimaryKeyMixin",
    "TimestampMixin",
    "TenantScopedMixin",
    "PROTECTED_COLUMNS",
    "Organization",
    "User",
    "UserRole",
    "UserType",
    "Membership",
    "Client",
    "Patient",
    "PatientSex",
    "BloodType",
    "Item",
    "ItemType",
    "ProductType",
    "InventoryMovement",
    "MovementType",
    "Sale",
    "SaleItem",
    "SaleStatus",
    "SALE_STATUS_TRANSITIONS",
]
