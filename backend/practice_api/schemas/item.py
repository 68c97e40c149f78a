"""
Pydantic schemas for catalog item endpoints.

Prices and stock are decimals with up to 6 fractional digits. They are
serialized as strings so no precision is lost in JSON.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from practice_api.models.item import ItemType, ProductType
from practice_api.schemas.common import TenantScopedResponse, metadata_field


class ItemCreate(BaseModel):
    """
    Item creation request schema.

    Services must carry a ``duration`` in minutes; products may track stock.
    """

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    sku: Optional[str] = Field(default=None, max_length=100)
    price: Decimal = Field(..., ge=0, description="Unit price")
    cost: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    type: ItemType
    product_type: ProductType = ProductType.PHYSICAL
    is_stock_tracked: bool = True
    stock: Optional[Decimal] = Field(default=None, ge=0)
    duration: Optional[int] = Field(default=None, gt=0, description="Minutes, services only")
    category: Optional[str] = Field(default=None, max_length=100)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Consulta general",
                "price": "80000",
                "type": "service",
                "product_type": "service",
                "duration": 30,
            }
        }
    )


class ItemUpdate(BaseModel):
    """Item update request schema. Stock changes go through the stock endpoint."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    sku: Optional[str] = Field(default=None, max_length=100)
    price: Optional[Decimal] = Field(default=None, ge=0)
    cost: Optional[Decimal] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    type: Optional[ItemType] = None
    product_type: Optional[ProductType] = None
    is_stock_tracked: Optional[bool] = None
    duration: Optional[int] = Field(default=None, gt=0)
    category: Optional[str] = Field(default=None, max_length=100)
    metadata: Optional[Dict[str, Any]] = None


class StockUpdate(BaseModel):
    """Set the absolute stock level of a product."""

    stock: Decimal = Field(..., ge=0)
    reason: Optional[str] = Field(default=None, max_length=255)


class ItemResponse(TenantScopedResponse):
    name: str
    description: Optional[str] = None
    sku: Optional[str] = None
    price: Decimal
    cost: Optional[Decimal] = None
    currency: Optional[str] = None
    type: ItemType
    product_type: ProductType
    is_stock_tracked: bool
    stock: Optional[Decimal] = None
    duration: Optional[int] = None
    category: Optional[str] = None
    metadata: Dict[str, Any] = metadata_field()
