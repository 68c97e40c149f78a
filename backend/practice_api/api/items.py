"""
Catalog item API endpoints.

CRUD for products and services, plus stock management for products.
"""

import uuid
from decimal import Decimal
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.deps import list_filter_params, make_filter, require_roles
from practice_api.core.guard import TenantContext
from practice_api.db.session import get_db
from practice_api.models.item import ItemType, ProductType
from practice_api.schemas.common import PageResponse, list_response
from practice_api.schemas.filters import ItemFilter, ListFilter
from practice_api.schemas.item import ItemCreate, ItemResponse, ItemUpdate, StockUpdate
from practice_api.services.item_service import DEFAULT_LOW_STOCK_THRESHOLD, ItemService


router = APIRouter(prefix="/items", tags=["items"])

staff = require_roles("manager", "healthcare_staff")
managers = require_roles("manager", "healthcare_admin")


@router.get(
    "",
    response_model=Union[List[ItemResponse], PageResponse[ItemResponse]],
)
async def list_items(
    type: Optional[ItemType] = Query(default=None, description="product or service"),
    product_type: Optional[ProductType] = Query(default=None),
    category: Optional[str] = Query(default=None),
    is_stock_tracked: Optional[bool] = Query(default=None),
    common: ListFilter = Depends(list_filter_params),
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    """List catalog items, optionally narrowed by type and category."""
    filters = make_filter(
        ItemFilter,
        common,
        type=type,
        product_type=product_type,
        category=category,
        is_stock_tracked=is_stock_tracked,
    )
    result = await ItemService(db).items.list(context.organization_id, filters=filters)
    return list_response(result, ItemResponse)


@router.get("/low-stock", response_model=List[ItemResponse])
async def low_stock_items(
    threshold: Decimal = Query(default=DEFAULT_LOW_STOCK_THRESHOLD, ge=0),
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    """Stock-tracked products at or below ``threshold`` units."""
    items = await ItemService(db).low_stock(context.organization_id, threshold)
    return [ItemResponse.model_validate(item) for item in items]


@router.get("/{item_id}", response_model=ItemResponse)
async def get_item(
    item_id: uuid.UUID,
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    item = await ItemService(db).items.get_by_id(item_id, context.organization_id)
    return ItemResponse.model_validate(item)


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    item_data: ItemCreate,
    context: TenantContext = Depends(managers),
    db: AsyncSession = Depends(get_db),
):
    """Create a catalog item. Services require ``duration``."""
    item = await ItemService(db).create_item(
        item_data.model_dump(), context.organization_id, context.user_id
    )
    return ItemResponse.model_validate(item)


@router.put("/{item_id}", response_model=ItemResponse)
async def update_item(
    item_id: uuid.UUID,
    item_data: ItemUpdate,
    context: TenantContext = Depends(managers),
    db: AsyncSession = Depends(get_db),
):
    item = await ItemService(db).update_item(
        item_id,
        item_data.model_dump(exclude_unset=True),
        context.organization_id,
        context.user_id,
    )
    return ItemResponse.model_validate(item)


@router.patch("/{item_id}/stock", response_model=ItemResponse)
async def update_item_stock(
    item_id: uuid.UUID,
    stock_data: StockUpdate,
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    """Set a product's stock level. The change is recorded as a manual movement."""
    item = await ItemService(db).update_stock(
        item_id,
        stock_data.stock,
        context.organization_id,
        context.user_id,
        reason=stock_data.reason,
    )
    return ItemResponse.model_validate(item)


@router.delete("/{item_id}", response_model=ItemResponse)
async def delete_item(
    item_id: uuid.UUID,
    context: TenantContext = Depends(managers),
    db: AsyncSession = Depends(get_db),
):
    item = await ItemService(db).items.soft_delete(item_id, context.organization_id, context.user_id)
    return ItemResponse.model_validate(item)


@router.post("/{item_id}/restore", response_model=ItemResponse)
async def restore_item(
    item_id: uuid.UUID,
    context: TenantContext = Depends(managers),
    db: AsyncSession = Depends(get_db),
):
    item = await ItemService(db).items.restore(item_id, context.organization_id, context.user_id)
    return ItemResponse.model_validate(item)
