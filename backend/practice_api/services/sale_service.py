"""
Sale aggregate service.

WHAT: Creates a sale header together with its lines, and manages the sale
afterwards (header updates, status lifecycle, reads).

WHY: A sale is only meaningful as a whole. Amounts must reconcile exactly,
lines must never exist without their header, and the stock of sold
products must move with the sale. Validation therefore runs completely
before the first write, and the writes run as one unit of work.

HOW:
1. Resolve references (client, catalog items) inside the caller's tenant
2. Price every line in Decimal: quantity and unit price at 6 places,
   money at 2, ROUND_HALF_UP
3. Reconcile: line total == subtotal + tax; header total == sum of line
   totals. Any mismatch raises AmountMismatchError with nothing written
4. Insert header and lines, then apply inventory effects; on any failure
   the savepoint around these writes is rolled back before the error
   propagates; earlier work in the request session is kept

Status lifecycle: draft -> issued -> accepted, with cancellation allowed
from draft and issued.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.config import Settings
from practice_api.core.exceptions import (
    AmountMismatchError,
    AppException,
    ConflictError,
    InvalidStateTransitionError,
    NoOrganizationContextError,
    StorageError,
    ValidationError,
)
from practice_api.core.money import ZERO, money, money_sum, optional_money, quantity
from practice_api.dao.base import Page, ScopedDAO
from practice_api.dao.client import client_dao
from practice_api.dao.item import item_dao, record_movement
from practice_api.dao.sale import list_sale_items, sale_dao
from practice_api.models.item import Item, MovementType, ProductType
from practice_api.models.sale import Sale, SaleItem, SaleStatus
from practice_api.schemas.filters import ListFilter, SaleFilter
from practice_api.schemas.sale import CREATABLE_STATUSES, SaleHeaderInput, SaleItemInput


logger = logging.getLogger(__name__)

AMOUNT_FIELDS = ("subtotal", "tax", "total")


@dataclass(frozen=True)
class SaleWithItems:
    """A persisted sale header and its lines, in line order."""

    sale: Sale
    items: List[SaleItem]


@dataclass(frozen=True)
class PricedLine:
    """A sale line with every amount resolved and quantized."""

    position: int
    item: Optional[Item]
    description: Optional[str]
    product_type: ProductType
    product_snapshot: Optional[Dict[str, Any]]
    quantity: Decimal
    unit_price: Decimal
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def generate_sale_number(jurisdiction_id: str) -> str:
    """
    Sale number from the jurisdiction and the last 6 digits of the current
    time in milliseconds, e.g. ``CO-482913``.
    """
    suffix = str(int(time.time() * 1000))[-6:]
    return f"{jurisdiction_id.upper()}-{suffix}"


def price_line(position: int, line: SaleItemInput, item: Optional[Item]) -> PricedLine:
    """
    Resolve the amounts of one line.

    Defaults: quantity 1, unit price from the catalog item, subtotal
    quantity * unit price, tax 0, total subtotal + tax.

    Raises:
        ValidationError: Free-form line without a unit price
        AmountMismatchError: Supplied total differs from subtotal + tax
    """
    number = position + 1

    qty = quantity(line.quantity if line.quantity is not None else 1, "quantity")
    if line.unit_price is not None:
        unit_price = quantity(line.unit_price, "unit_price")
    elif item is not None:
        unit_price = quantity(item.price, "unit_price")
    else:
        raise ValidationError(
            f"Line {number}: unit_price is required when item_id is not given",
            line=number,
        )

    subtotal = money(line.subtotal if line.subtotal is not None else qty * unit_price)
    tax = money(line.tax if line.tax is not None else ZERO)
    expected_total = subtotal + tax
    total = money(line.total) if line.total is not None else expected_total

    if total != expected_total:
        raise AmountMismatchError(
            f"Line {number}: total {total} does not equal subtotal {subtotal} + tax {tax}",
            line=number,
            expected=str(expected_total),
            actual=str(total),
        )

    product_type = line.product_type
    if product_type is None:
        product_type = item.product_type if item is not None else ProductType.PHYSICAL

    snapshot = line.product_snapshot
    if snapshot is None and item is not None:
        snapshot = item.snapshot()

    return PricedLine(
        position=position,
        item=item,
        description=line.description if line.description is not None else (item.name if item else None),
        product_type=product_type,
        product_snapshot=snapshot,
        quantity=qty,
        unit_price=unit_price,
        subtotal=subtotal,
        tax=tax,
        total=total,
    )


def reconcile_header(
    header_total: Optional[Decimal], lines: Sequence[PricedLine]
) -> Decimal:
    """
    Return the header total, checking it against the line totals.

    Without lines the header total stands as given (0 when omitted).

    Raises:
        AmountMismatchError: Header total differs from the sum of line totals
    """
    if not lines:
        return money(header_total) if header_total is not None else money(ZERO)

    expected = money_sum(line.total for line in lines)
    if header_total is None:
        return expected

    total = money(header_total)
    if total != expected:
        raise AmountMismatchError(
            f"Sale total {total} does not equal the sum of line totals {expected}",
            expected=str(expected),
            actual=str(total),
        )
    return total


class SaleService:
    """
    Sale aggregate operations for one request.

    Args:
        session: Async database session; the unit of work for writes
        settings: Application settings (jurisdiction and currency defaults)
    """

    def __init__(self, session: AsyncSession, settings: Settings):
        self.session = session
        self.settings = settings
        self.sales: ScopedDAO[Sale] = sale_dao(session)
        self.clients = client_dao(session)
        self.items: ScopedDAO[Item] = item_dao(session)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_sale(
        self,
        header: SaleHeaderInput,
        items: Sequence[SaleItemInput],
        organization_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID] = None,
    ) -> SaleWithItems:
        """
        Create a sale and its lines atomically.

        Args:
            header: Header fields; omitted amounts default to the line sums
            items: Lines, possibly empty
            organization_id: Owning organization
            user_id: Acting user, stamped as creator

        Returns:
            SaleWithItems with the persisted header and lines

        Raises:
            NoOrganizationContextError: organization_id is None
            ResourceNotFoundError: client or catalog item not in this tenant
            AmountMismatchError: amounts do not reconcile (nothing written)
            ConflictError / StorageError: the write failed (rolled back)
        """
        if organization_id is None:
            raise NoOrganizationContextError("Cannot create a sale without an organization")
        if header.status not in CREATABLE_STATUSES:
            raise InvalidStateTransitionError(
                f"A sale cannot be created with status {header.status.value}",
                status=header.status.value,
            )

        # References and validation: reads only
        if header.client_id is not None:
            await self.clients.get_by_id(header.client_id, organization_id)

        catalog: Dict[uuid.UUID, Item] = {}
        for line in items:
            if line.item_id is not None and line.item_id not in catalog:
                catalog[line.item_id] = await self.items.get_by_id(line.item_id, organization_id)

        priced = [
            price_line(position, line, catalog.get(line.item_id) if line.item_id else None)
            for position, line in enumerate(items)
        ]
        total = reconcile_header(header.total, priced)
        subtotal = optional_money(header.subtotal, "subtotal")
        tax = optional_money(header.tax, "tax")
        if subtotal is None:
            subtotal = money_sum(line.subtotal for line in priced)
        if tax is None:
            tax = money_sum(line.tax for line in priced)

        jurisdiction_id = (header.jurisdiction_id or self.settings.DEFAULT_JURISDICTION_ID).upper()
        today = date.today()

        sale = Sale(
            id=uuid.uuid4(),
            organization_id=organization_id,
            sale_number=header.sale_number or generate_sale_number(jurisdiction_id),
            jurisdiction_id=jurisdiction_id,
            currency=(header.currency or self.settings.DEFAULT_CURRENCY).upper(),
            sale_date=header.sale_date or today,
            issue_date=header.issue_date or today,
            due_date=header.due_date,
            subtotal=subtotal,
            tax=tax,
            total=total,
            status=header.status,
            client_id=header.client_id,
            metadata_=dict(header.metadata),
            is_active=True,
            created_by=user_id,
            updated_by=user_id,
        )
        sale.items = [
            SaleItem(
                id=uuid.uuid4(),
                item_id=line.item.id if line.item is not None else None,
                position=line.position,
                product_snapshot=line.product_snapshot,
                description=line.description,
                product_type=line.product_type,
                quantity=line.quantity,
                unit_price=line.unit_price,
                subtotal=line.subtotal,
                tax=line.tax,
                total=line.total,
            )
            for line in priced
        ]

        # Unit of work: header, lines, inventory. The savepoint undoes only
        # these writes; the request transaction belongs to get_db.
        try:
            async with self.session.begin_nested():
                self.session.add(sale)
                await self.session.flush()
                self._apply_inventory(sale, priced, MovementType.SALE_OUT, user_id)
                await self.session.flush()
        except Exception as e:
            raise self._write_failure(e, "create")

        logger.info(
            "Sale %s created in organization %s with %d line(s), total %s %s",
            sale.id,
            organization_id,
            len(priced),
            sale.total,
            sale.currency,
        )
        return SaleWithItems(sale=sale, items=list(sale.items))

    def _apply_inventory(
        self,
        sale: Sale,
        lines: Sequence[PricedLine],
        movement_type: MovementType,
        user_id: Optional[uuid.UUID],
    ) -> None:
        # sale_out removes stock, return_in puts it back
        sign = Decimal("-1") if movement_type == MovementType.SALE_OUT else Decimal("1")
        for line in lines:
            if line.item is None or not line.item.tracks_stock:
                continue
            record_movement(
                self.session,
                line.item,
                sign * line.quantity,
                movement_type,
                user_id=user_id,
                related_sale_id=sale.id,
            )

    @staticmethod
    def _write_failure(error: Exception, operation: str) -> AppException:
        if isinstance(error, AppException):
            return error
        if isinstance(error, IntegrityError):
            logger.warning("Sale %s violated a constraint: %s", operation, error)
            return ConflictError("Sale conflicts with existing data", resource_type="Sale")
        logger.exception("Sale %s failed; unit of work rolled back", operation)
        return StorageError(f"Storage error during Sale {operation}", resource_type="Sale")

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    async def update_sale(
        self,
        id: uuid.UUID,
        data: Dict[str, Any],
        organization_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID] = None,
    ) -> Sale:
        """
        Update header fields of a sale.

        Amounts are quantized and, when any of them changes on a sale with
        lines, the new total is reconciled against the stored line totals.

        Raises:
            ValidationError: The update tries to change lines or status
            AmountMismatchError: New total does not match the lines
        """
        if "items" in data:
            raise ValidationError("Sale lines cannot be changed after creation", field="items")
        if "status" in data:
            raise ValidationError("Use the status endpoint to change status", field="status")

        sale = await self.sales.get_by_id(id, organization_id)

        values = dict(data)
        for name in AMOUNT_FIELDS:
            if values.get(name) is not None:
                values[name] = money(values[name], name)
        for name in ("jurisdiction_id", "currency"):
            if values.get(name):
                values[name] = values[name].upper()
        if values.get("client_id") is not None:
            await self.clients.get_by_id(values["client_id"], sale.organization_id)

        if any(values.get(name) is not None for name in AMOUNT_FIELDS):
            lines = await list_sale_items(self.sales, id, organization_id)
            if lines:
                new_total = values.get("total") if values.get("total") is not None else sale.total
                expected = money_sum(line.total for line in lines)
                if money(new_total) != expected:
                    raise AmountMismatchError(
                        f"Sale total {money(new_total)} does not equal the sum of line totals {expected}",
                        expected=str(expected),
                        actual=str(money(new_total)),
                    )

        return await self.sales.update(id, values, organization_id, user_id)

    async def update_status(
        self,
        id: uuid.UUID,
        status: SaleStatus,
        organization_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID] = None,
    ) -> Sale:
        """
        Move a sale along its lifecycle.

        Cancelling a sale returns the stock its tracked products took.

        Raises:
            InvalidStateTransitionError: Transition not allowed from the
                current status
        """
        sale = await self.sales.get_by_id(id, organization_id)
        current = SaleStatus(sale.status)
        if not sale.can_transition_to(status):
            raise InvalidStateTransitionError(
                f"Cannot change sale status from {current.value} to {status.value}",
                current=current.value,
                requested=status.value,
            )

        if status == SaleStatus.CANCELLED:
            await self._restock(sale, user_id)

        updated = await self.sales.update(id, {"status": status}, organization_id, user_id)
        logger.info("Sale %s status %s -> %s", id, current.value, status.value)
        return updated

    async def _restock(self, sale: Sale, user_id: Optional[uuid.UUID]) -> None:
        lines = await list_sale_items(self.sales, sale.id, sale.organization_id)
        priced = []
        for line in lines:
            if line.item_id is None:
                continue
            item = await self.items.get_by_id(line.item_id, sale.organization_id, include_deleted=True)
            priced.append(
                PricedLine(
                    position=line.position,
                    item=item,
                    description=line.description,
                    product_type=line.product_type,
                    product_snapshot=line.product_snapshot,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    subtotal=line.subtotal,
                    tax=line.tax,
                    total=line.total,
                )
            )
        self._apply_inventory(sale, priced, MovementType.RETURN_IN, user_id)

    async def delete_sale(
        self,
        id: uuid.UUID,
        organization_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID] = None,
    ) -> Sale:
        """Soft-delete a sale header; its lines stay reachable through it."""
        return await self.sales.soft_delete(id, organization_id, user_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_sale(
        self, id: uuid.UUID, organization_id: Optional[uuid.UUID]
    ) -> SaleWithItems:
        sale = await self.sales.get_by_id(id, organization_id)
        items = await list_sale_items(self.sales, id, organization_id)
        return SaleWithItems(sale=sale, items=items)

    async def get_sale_items(
        self, id: uuid.UUID, organization_id: Optional[uuid.UUID]
    ) -> List[SaleItem]:
        """Lines of a sale; NotFound when the sale is not in this tenant."""
        await self.sales.get_by_id(id, organization_id)
        return await list_sale_items(self.sales, id, organization_id)

    async def list_sales(
        self,
        organization_id: Optional[uuid.UUID],
        filters: Optional[ListFilter] = None,
        include_deleted: bool = False,
    ) -> Union[List[Sale], Page[Sale]]:
        return await self.sales.list(organization_id, include_deleted, filters)

    async def list_by_item(
        self, item_id: uuid.UUID, organization_id: Optional[uuid.UUID]
    ) -> List[Sale]:
        return await self.sales.list(organization_id, filters=SaleFilter(item_id=item_id))

    async def list_by_jurisdiction(
        self, jurisdiction_id: str, organization_id: Optional[uuid.UUID]
    ) -> List[Sale]:
        return await self.sales.list(
            organization_id, filters=SaleFilter(jurisdiction_id=jurisdiction_id.upper())
        )

    async def list_by_status(
        self, status: SaleStatus, organization_id: Optional[uuid.UUID]
    ) -> List[Sale]:
        return await self.sales.list(organization_id, filters=SaleFilter(status=status.value))

    async def list_by_currency(
        self, currency: str, organization_id: Optional[uuid.UUID]
    ) -> List[Sale]:
        return await self.sales.list(organization_id, filters=SaleFilter(currency=currency))
