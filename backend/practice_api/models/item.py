"""
Catalog item and inventory movement models.

Items are the products and services an organization sells. Quantities and
prices carry 6 fractional digits; stock movements record every change to a
stock-tracked product's stock level.
"""

import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)

from practice_api.models.base import Base, PrimaryKeyMixin, TenantScopedMixin, utcnow


class ItemType(str, enum.Enum):
    PRODUCT = "product"
    SERVICE = "service"


class ProductType(str, enum.Enum):
    PHYSICAL = "physical"
    DIGITAL = "digital"
    SERVICE = "service"
    MISC = "misc"


class MovementType(str, enum.Enum):
    SALE_OUT = "sale_out"
    RETURN_IN = "return_in"
    ADJUSTMENT = "adjustment"
    MANUAL = "manual"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# Shared by items and sale lines
PRODUCT_TYPE_ENUM = Enum(ProductType, name="product_type", values_callable=_enum_values)


class Item(Base, PrimaryKeyMixin, TenantScopedMixin):
    """
    Tenant-scoped catalog item.

    Products may track stock; services carry a duration in minutes instead.
    """

    __tablename__ = "items"
    __table_args__ = (UniqueConstraint("organization_id", "sku", name="uq_item_org_sku"),)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    sku = Column(String(100), nullable=True)

    price = Column(Numeric(18, 6), nullable=False)
    cost = Column(Numeric(18, 6), nullable=True)
    currency = Column(String(3), nullable=True, default="COP")

    type = Column(Enum(ItemType, name="item_type", values_callable=_enum_values), nullable=False)
    product_type = Column(
        PRODUCT_TYPE_ENUM,
        nullable=False,
        default=ProductType.PHYSICAL,
    )

    is_stock_tracked = Column(Boolean, nullable=False, default=True)
    stock = Column(Numeric(18, 6), nullable=True)

    # Minutes; services only
    duration = Column(Integer, nullable=True)
    category = Column(String(100), nullable=True)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)

    @property
    def tracks_stock(self) -> bool:
        return self.type == ItemType.PRODUCT and bool(self.is_stock_tracked)

    def snapshot(self) -> dict:
        """Point-in-time copy stored on sale lines."""
        return {
            "id": str(self.id),
            "name": self.name,
            "sku": self.sku,
            "type": self.type.value if self.type else None,
            "product_type": self.product_type.value if self.product_type else None,
            "price": str(self.price) if self.price is not None else None,
            "currency": self.currency,
            "category": self.category,
        }

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, name={self.name}, type={self.type})>"


class InventoryMovement(Base, PrimaryKeyMixin):
    """
    Append-only stock movement.

    Quantity is signed: sale_out rows are negative.
    """

    __tablename__ = "inventory_movements"

    product_id = Column(Uuid, ForeignKey("items.id"), nullable=False, index=True)
    product_sku = Column(String(100), nullable=True)
    quantity = Column(Numeric(18, 6), nullable=False)
    movement_type = Column(
        Enum(MovementType, name="movement_type", values_callable=_enum_values),
        nullable=False,
    )
    related_sale_id = Column(Uuid, ForeignKey("sales.id"), nullable=True, index=True)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    organization_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
