"""
Catalog item service.

Type rules on top of the scoped DAO: services need a duration and never
track stock; product stock changes are recorded as inventory movements.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.exceptions import BusinessRuleViolation, ValidationError
from practice_api.core.money import quantity
from practice_api.dao.base import ScopedDAO
from practice_api.dao.item import item_dao, list_low_stock, record_movement
from practice_api.models.item import Item, ItemType, MovementType


logger = logging.getLogger(__name__)

DEFAULT_LOW_STOCK_THRESHOLD = Decimal("10")


class ItemService:
    """Catalog operations for one request."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.items: ScopedDAO[Item] = item_dao(session)

    async def create_item(
        self,
        data: Dict[str, Any],
        organization_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID] = None,
    ) -> Item:
        """
        Create a catalog item.

        Raises:
            ValidationError: A service without duration
        """
        values = dict(data)
        if values.get("type") == ItemType.SERVICE:
            if values.get("duration") is None:
                raise ValidationError("Duration is required for services", field="duration")
            values["is_stock_tracked"] = False
            values["stock"] = None
        elif values.get("stock") is None:
            values["stock"] = Decimal("0")

        return await self.items.create(values, organization_id, user_id)

    async def update_item(
        self,
        id: uuid.UUID,
        data: Dict[str, Any],
        organization_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID] = None,
    ) -> Item:
        """
        Update a catalog item.

        Raises:
            ValidationError: Changing a product into a service without a duration
        """
        item = await self.items.get_by_id(id, organization_id)
        values = dict(data)

        if values.get("type") == ItemType.SERVICE and item.type != ItemType.SERVICE:
            if not values.get("duration"):
                raise ValidationError(
                    "Duration is required when changing to service type", field="duration"
                )
            values["is_stock_tracked"] = False
        if values.get("type") == ItemType.PRODUCT and item.stock is None:
            values["stock"] = Decimal("0")

        return await self.items.update(id, values, organization_id, user_id)

    async def update_stock(
        self,
        id: uuid.UUID,
        stock: Decimal,
        organization_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
    ) -> Item:
        """
        Set a product's stock level, recording the difference as a manual
        movement.

        Raises:
            BusinessRuleViolation: The item is not a product
        """
        item = await self.items.get_by_id(id, organization_id)
        if item.type != ItemType.PRODUCT:
            raise BusinessRuleViolation("Stock can only be updated for products", item_id=str(id))

        delta = quantity(stock, "stock") - (item.stock or Decimal("0"))
        if delta != 0:
            metadata = {"reason": reason} if reason else {}
            record_movement(
                self.session, item, delta, MovementType.MANUAL, user_id=user_id, metadata=metadata
            )
        logger.info("Stock of item %s set to %s by %s", id, stock, user_id)
        return await self.items.update(id, {}, organization_id, user_id)

    async def low_stock(
        self,
        organization_id: Optional[uuid.UUID],
        threshold: Decimal = DEFAULT_LOW_STOCK_THRESHOLD,
    ) -> List[Item]:
        return await list_low_stock(self.items, organization_id, threshold)
