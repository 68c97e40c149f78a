"""
Sale Data Access Object.

Sale headers are tenant-scoped through ``ScopedDAO``. Sale lines have no
organization of their own, so every line query joins through its header and
filters on the header's organization.
"""

import uuid
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.dao.base import ScopedDAO
from practice_api.models.sale import Sale, SaleItem
from practice_api.schemas.filters import ListFilter, SaleFilter


SALE_SEARCH_COLUMNS = ("sale_number",)


def sale_filters(model: Any, filters: ListFilter) -> List[Any]:
    conditions = []
    if isinstance(filters, SaleFilter):
        if filters.client_id is not None:
            conditions.append(model.client_id == filters.client_id)
        if filters.jurisdiction_id:
            conditions.append(model.jurisdiction_id == filters.jurisdiction_id)
        if filters.currency:
            conditions.append(model.currency == filters.currency.upper())
        if filters.item_id is not None:
            conditions.append(
                model.id.in_(
                    select(SaleItem.sale_id).where(SaleItem.item_id == filters.item_id)
                )
            )
    return conditions


def sale_dao(session: AsyncSession) -> ScopedDAO[Sale]:
    return ScopedDAO(
        Sale,
        session,
        filter_builder=sale_filters,
        search_columns=SALE_SEARCH_COLUMNS,
    )


async def list_sale_items(
    dao: ScopedDAO[Sale],
    sale_id: uuid.UUID,
    organization_id: Optional[uuid.UUID],
) -> List[SaleItem]:
    """Lines of one sale, through a tenant-filtered join on the header."""
    conditions = dao.scope_conditions(organization_id)
    query = (
        select(SaleItem)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .where(SaleItem.sale_id == sale_id, *conditions)
        .order_by(SaleItem.position.asc(), SaleItem.id.asc())
    )
    result = await dao.execute(query)
    return list(result.scalars().all())
