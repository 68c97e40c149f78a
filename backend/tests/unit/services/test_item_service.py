"""
Tests for the catalog item service.

WHY: Products and services follow different rules: only products carry
stock, and every stock change must leave a movement behind.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.exceptions import BusinessRuleViolation, ValidationError
from practice_api.models.item import InventoryMovement, Item, ItemType, MovementType
from practice_api.services.item_service import ItemService
from tests.factories import ItemFactory, OrganizationFactory, UserFactory


@pytest.fixture
async def tenant(db_session: AsyncSession):
    org = await OrganizationFactory.create(db_session)
    user = await UserFactory.create(db_session)
    return org, user


class TestCreate:
    @pytest.mark.asyncio
    async def test_product_stock_defaults_to_zero(self, db_session, tenant):
        org, user = tenant

        item = await ItemService(db_session).create_item(
            {"name": "Syringe", "price": Decimal("1.20"), "type": ItemType.PRODUCT},
            org.id,
            user.id,
        )

        assert item.stock == Decimal("0")
        assert item.tracks_stock

    @pytest.mark.asyncio
    async def test_service_needs_duration(self, db_session, tenant):
        org, user = tenant

        with pytest.raises(ValidationError):
            await ItemService(db_session).create_item(
                {"name": "Checkup", "price": Decimal("40"), "type": ItemType.SERVICE},
                org.id,
                user.id,
            )

    @pytest.mark.asyncio
    async def test_service_never_tracks_stock(self, db_session, tenant):
        org, user = tenant

        item = await ItemService(db_session).create_item(
            {
                "name": "Checkup",
                "price": Decimal("40"),
                "type": ItemType.SERVICE,
                "duration": 30,
                "is_stock_tracked": True,
                "stock": Decimal("5"),
            },
            org.id,
            user.id,
        )

        assert item.is_stock_tracked is False
        assert item.stock is None
        stored = await db_session.execute(select(Item.stock).where(Item.id == item.id))
        assert stored.scalar_one() is None

    @pytest.mark.asyncio
    async def test_switching_to_service_needs_duration(self, db_session, tenant):
        org, user = tenant
        product = await ItemFactory.create_product(db_session, org)

        with pytest.raises(ValidationError):
            await ItemService(db_session).update_item(
                product.id, {"type": ItemType.SERVICE}, org.id, user.id
            )


class TestStock:
    @pytest.mark.asyncio
    async def test_update_stock_records_delta(self, db_session, tenant):
        org, user = tenant
        product = await ItemFactory.create_product(db_session, org, stock=Decimal("20"))

        item = await ItemService(db_session).update_stock(
            product.id, Decimal("5"), org.id, user.id, reason="count"
        )

        assert item.stock == Decimal("5")
        movement = (await db_session.execute(select(InventoryMovement))).scalar_one()
        assert movement.movement_type == MovementType.MANUAL
        assert movement.quantity == Decimal("-15")
        assert movement.metadata_ == {"reason": "count"}
        assert movement.created_by == user.id

    @pytest.mark.asyncio
    async def test_unchanged_stock_records_nothing(self, db_session, tenant):
        org, user = tenant
        product = await ItemFactory.create_product(db_session, org, stock=Decimal("20"))

        await ItemService(db_session).update_stock(product.id, Decimal("20"), org.id, user.id)

        result = await db_session.execute(select(InventoryMovement))
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_services_have_no_stock(self, db_session, tenant):
        org, user = tenant
        consultation = await ItemFactory.create_service(db_session, org)

        with pytest.raises(BusinessRuleViolation):
            await ItemService(db_session).update_stock(
                consultation.id, Decimal("3"), org.id, user.id
            )

    @pytest.mark.asyncio
    async def test_low_stock(self, db_session, tenant):
        org, _ = tenant
        other = await OrganizationFactory.create(db_session, name="Other")
        low = await ItemFactory.create_product(db_session, org, name="Low", stock=Decimal("2"))
        await ItemFactory.create_product(db_session, org, name="Plenty", stock=Decimal("50"))
        await ItemFactory.create_product(
            db_session, org, name="Untracked", stock=Decimal("0"), is_stock_tracked=False
        )
        await ItemFactory.create_service(db_session, org)
        await ItemFactory.create_product(db_session, other, name="Foreign", stock=Decimal("1"))

        items = await ItemService(db_session).low_stock(org.id, Decimal("10"))

        assert [i.id for i in items] == [low.id]
