"""
Sale aggregate models.

WHAT: A sale header owning zero or more sale lines.

HOW: Header and lines are written together by
``practice_api.services.sale_service.SaleService`` in one unit of work.
Money columns use scale 2, quantity and unit price scale 6. Invariants:
- each line: total == subtotal + tax
- header: total == sum(line totals)
Lines are immutable once written.
"""

import enum

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from practice_api.models.base import Base, PrimaryKeyMixin, TenantScopedMixin, utcnow
from practice_api.models.item import PRODUCT_TYPE_ENUM, ProductType


class SaleStatus(str, enum.Enum):
    """
    Sale document lifecycle: draft -> issued -> accepted | cancelled.
    """

    DRAFT = "draft"
    ISSUED = "issued"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"


# Allowed status changes, keyed by current status
SALE_STATUS_TRANSITIONS = {
    SaleStatus.DRAFT: frozenset({SaleStatus.ISSUED, SaleStatus.CANCELLED}),
    SaleStatus.ISSUED: frozenset({SaleStatus.ACCEPTED, SaleStatus.CANCELLED}),
    SaleStatus.ACCEPTED: frozenset(),
    SaleStatus.CANCELLED: frozenset(),
}


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Sale(Base, PrimaryKeyMixin, TenantScopedMixin):
    """Tenant-scoped sale header."""

    __tablename__ = "sales"

    sale_number = Column(String(100), nullable=True, index=True)

    jurisdiction_id = Column(String(50), nullable=False, default="CO")
    currency = Column(String(3), nullable=False, default="COP")

    sale_date = Column(Date, nullable=False)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)

    subtotal = Column(Numeric(18, 2), nullable=False, default=0)
    tax = Column(Numeric(18, 2), nullable=False, default=0)
    total = Column(Numeric(18, 2), nullable=False, default=0)

    status = Column(
        Enum(SaleStatus, name="sale_status", values_callable=_enum_values),
        nullable=False,
        default=SaleStatus.DRAFT,
        index=True,
    )

    client_id = Column(Uuid, ForeignKey("clients.id"), nullable=True, index=True)
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)

    items = relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.position",
        lazy="selectin",
    )

    def can_transition_to(self, status: SaleStatus) -> bool:
        return status in SALE_STATUS_TRANSITIONS.get(self.status, frozenset())

    def __repr__(self) -> str:
        return f"<Sale(id={self.id}, number={self.sale_number}, status={self.status})>"


class SaleItem(Base, PrimaryKeyMixin):
    """
    Sale line.

    Not tenant-scoped on its own: lines are reachable only through their
    sale, which is.
    """

    __tablename__ = "sale_items"

    sale_id = Column(Uuid, ForeignKey("sales.id"), nullable=False, index=True)
    item_id = Column(Uuid, ForeignKey("items.id"), nullable=True, index=True)
    position = Column(Integer, nullable=False, default=0)

    # Copy of the catalog item at the time of sale
    product_snapshot = Column(JSON, nullable=True)
    description = Column(Text, nullable=True)
    product_type = Column(
        PRODUCT_TYPE_ENUM,
        nullable=False,
        default=ProductType.PHYSICAL,
    )

    quantity = Column(Numeric(18, 6), nullable=False, default=1)
    unit_price = Column(Numeric(18, 6), nullable=False)

    subtotal = Column(Numeric(18, 2), nullable=False, default=0)
    tax = Column(Numeric(18, 2), nullable=False, default=0)
    total = Column(Numeric(18, 2), nullable=False, default=0)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    sale = relationship("Sale", back_populates="items")

    def __repr__(self) -> str:
        return f"<SaleItem(id={self.id}, sale_id={self.sale_id}, total={self.total})>"
