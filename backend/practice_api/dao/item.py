"""
Catalog item Data Access Object.

Besides the scoped CRUD this module holds the stock helpers: low-stock
lookup and the movement ledger written whenever a product's stock changes.
"""

import uuid
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.dao.base import ScopedDAO
from practice_api.models.item import InventoryMovement, Item, ItemType, MovementType
from practice_api.schemas.filters import ItemFilter, ListFilter


ITEM_SEARCH_COLUMNS = ("name", "description", "sku", "category")


def item_filters(model: Any, filters: ListFilter) -> List[Any]:
    conditions = []
    if isinstance(filters, ItemFilter):
        if filters.type is not None:
            conditions.append(model.type == filters.type)
        if filters.product_type is not None:
            conditions.append(model.product_type == filters.product_type)
        if filters.category:
            conditions.append(model.category == filters.category)
        if filters.is_stock_tracked is not None:
            conditions.append(model.is_stock_tracked.is_(filters.is_stock_tracked))
    return conditions


def item_dao(session: AsyncSession) -> ScopedDAO[Item]:
    return ScopedDAO(
        Item,
        session,
        filter_builder=item_filters,
        search_columns=ITEM_SEARCH_COLUMNS,
    )


async def list_low_stock(
    dao: ScopedDAO[Item],
    organization_id: Optional[uuid.UUID],
    threshold: Decimal,
) -> List[Item]:
    """Stock-tracked products whose stock is at or below ``threshold``."""
    conditions = dao.scope_conditions(organization_id)
    conditions.extend(
        [
            Item.type == ItemType.PRODUCT,
            Item.is_stock_tracked.is_(True),
            Item.stock <= threshold,
        ]
    )
    result = await dao.execute(
        select(Item).where(*conditions).order_by(Item.stock.asc(), Item.id.asc())
    )
    return list(result.scalars().all())


def record_movement(
    session: AsyncSession,
    item: Item,
    quantity: Decimal,
    movement_type: MovementType,
    user_id: Optional[uuid.UUID] = None,
    related_sale_id: Optional[uuid.UUID] = None,
    metadata: Optional[dict] = None,
) -> InventoryMovement:
    """
    Apply a signed stock change to ``item`` and stage its ledger row.

    Nothing is flushed; the change is written with the caller's unit of work.
    """
    item.stock = (item.stock or Decimal("0")) + quantity
    item.updated_by = user_id

    movement = InventoryMovement(
        product_id=item.id,
        product_sku=item.sku,
        quantity=quantity,
        movement_type=movement_type,
        related_sale_id=related_sale_id,
        metadata_=metadata or {},
        organization_id=item.organization_id,
        created_by=user_id,
    )
    session.add(movement)
    return movement
