"""
Pydantic schemas for sale endpoints.

WHAT: Request/response contracts for the sale aggregate: a header with its
lines.

WHY: Amount fields are optional on input. Omitted amounts are derived
(line subtotal = quantity * unit price, totals = sums); supplied amounts are
checked by the sale service, which rejects totals that do not reconcile.
Decimals serialize as strings.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from practice_api.models.item import ProductType
from practice_api.models.sale import SaleStatus
from practice_api.schemas.common import TenantScopedResponse, metadata_field


# Statuses a sale may be created with; later states go through transitions
CREATABLE_STATUSES = (SaleStatus.DRAFT, SaleStatus.ISSUED)


class SaleItemInput(BaseModel):
    """
    One sale line on input.

    ``item_id`` references the organization's catalog; without it the line is
    free-form and needs a ``unit_price``.
    """

    item_id: Optional[uuid.UUID] = None
    product_snapshot: Optional[Dict[str, Any]] = None
    description: Optional[str] = None
    product_type: Optional[ProductType] = None
    quantity: Optional[Decimal] = Field(default=None, gt=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    subtotal: Optional[Decimal] = Field(default=None, ge=0)
    tax: Optional[Decimal] = Field(default=None, ge=0)
    total: Optional[Decimal] = Field(default=None, ge=0)


class SaleHeaderInput(BaseModel):
    """Sale header fields accepted on creation."""

    client_id: Optional[uuid.UUID] = None
    sale_number: Optional[str] = Field(default=None, max_length=100)
    jurisdiction_id: Optional[str] = Field(default=None, max_length=50)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    sale_date: Optional[date] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    subtotal: Optional[Decimal] = Field(default=None, ge=0)
    tax: Optional[Decimal] = Field(default=None, ge=0)
    total: Optional[Decimal] = Field(default=None, ge=0)
    status: SaleStatus = SaleStatus.DRAFT
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SaleCreate(SaleHeaderInput):
    """
    Sale creation request: header fields plus lines.

    A sale without lines is valid.
    """

    items: List[SaleItemInput] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total": "25.00",
                "items": [
                    {"unit_price": "10.00", "tax": "1.90", "total": "11.90"},
                    {"unit_price": "10.00", "tax": "1.90", "total": "11.90"},
                ],
            }
        }
    )

    def header(self) -> SaleHeaderInput:
        return SaleHeaderInput(**self.model_dump(exclude={"items"}, exclude_unset=True))


class SaleUpdate(BaseModel):
    """
    Sale header update. Lines cannot be changed after creation; status
    changes go through the status endpoint.
    """

    model_config = ConfigDict(extra="forbid")

    client_id: Optional[uuid.UUID] = None
    sale_number: Optional[str] = Field(default=None, max_length=100)
    jurisdiction_id: Optional[str] = Field(default=None, max_length=50)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    sale_date: Optional[date] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    subtotal: Optional[Decimal] = Field(default=None, ge=0)
    tax: Optional[Decimal] = Field(default=None, ge=0)
    total: Optional[Decimal] = Field(default=None, ge=0)
    metadata: Optional[Dict[str, Any]] = None


class SaleStatusUpdate(BaseModel):
    status: SaleStatus = Field(..., description="New sale status")


class SaleItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sale_id: uuid.UUID
    item_id: Optional[uuid.UUID] = None
    position: int
    product_snapshot: Optional[Dict[str, Any]] = None
    description: Optional[str] = None
    product_type: ProductType
    quantity: Decimal
    unit_price: Decimal
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    created_at: datetime


class SaleResponse(TenantScopedResponse):
    sale_number: Optional[str] = None
    jurisdiction_id: str
    currency: str
    sale_date: date
    issue_date: date
    due_date: Optional[date] = None
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    status: SaleStatus
    client_id: Optional[uuid.UUID] = None
    metadata: Dict[str, Any] = metadata_field()
    items: List[SaleItemResponse] = Field(default_factory=list)
