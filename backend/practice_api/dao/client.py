"""
Client Data Access Object.
"""

from typing import Any, List

from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.dao.base import ScopedDAO
from practice_api.models.client import Client
from practice_api.schemas.filters import ClientFilter, ListFilter


CLIENT_SEARCH_COLUMNS = ("name", "email", "company", "tax_id")


def client_filters(model: Any, filters: ListFilter) -> List[Any]:
    conditions = []
    if isinstance(filters, ClientFilter):
        if filters.company:
            conditions.append(model.company.ilike(f"%{filters.company}%"))
        if filters.email:
            conditions.append(model.email == filters.email)
    return conditions


def client_dao(session: AsyncSession) -> ScopedDAO[Client]:
    return ScopedDAO(
        Client,
        session,
        filter_builder=client_filters,
        search_columns=CLIENT_SEARCH_COLUMNS,
    )
