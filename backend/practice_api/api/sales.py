"""
Sale API endpoints.

WHAT: Sale creation (header and lines in one request), header updates,
status transitions, soft delete and reads.

HOW: Handlers delegate to ``SaleService``; amounts are validated there, so
a mismatched total is rejected with 422 before anything is written.
"""

import uuid
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.config import settings
from practice_api.core.deps import list_filter_params, make_filter, require_roles
from practice_api.core.guard import TenantContext
from practice_api.db.session import get_db
from practice_api.schemas.common import PageResponse, list_response
from practice_api.schemas.filters import ListFilter, SaleFilter
from practice_api.schemas.sale import (
    SaleCreate,
    SaleItemResponse,
    SaleResponse,
    SaleStatusUpdate,
    SaleUpdate,
)
from practice_api.services.sale_service import SaleService


router = APIRouter(prefix="/sales", tags=["sales"])

staff = require_roles("manager", "healthcare_staff")
managers = require_roles("manager", "healthcare_admin")


def _sale_response(sale, items=None) -> SaleResponse:
    response = SaleResponse.model_validate(sale)
    if items is not None:
        response.items = [SaleItemResponse.model_validate(item) for item in items]
    return response


@router.get(
    "",
    response_model=Union[List[SaleResponse], PageResponse[SaleResponse]],
)
async def list_sales(
    client_id: Optional[uuid.UUID] = Query(default=None),
    item_id: Optional[uuid.UUID] = Query(default=None, description="Sales containing this item"),
    jurisdiction_id: Optional[str] = Query(default=None),
    currency: Optional[str] = Query(default=None),
    common: ListFilter = Depends(list_filter_params),
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    """
    List sales of the caller's organization.

    ``status`` (draft, issued, accepted, cancelled), ``client_id``,
    ``item_id``, ``jurisdiction_id`` and ``currency`` narrow the list.
    """
    filters = make_filter(
        SaleFilter,
        common,
        client_id=client_id,
        item_id=item_id,
        jurisdiction_id=jurisdiction_id,
        currency=currency,
    )
    result = await SaleService(db, settings).list_sales(context.organization_id, filters)
    return list_response(result, SaleResponse)


@router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(
    sale_id: uuid.UUID,
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    """Get a sale with its lines."""
    found = await SaleService(db, settings).get_sale(sale_id, context.organization_id)
    return _sale_response(found.sale, found.items)


@router.get("/{sale_id}/items", response_model=List[SaleItemResponse])
async def get_sale_items(
    sale_id: uuid.UUID,
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    items = await SaleService(db, settings).get_sale_items(sale_id, context.organization_id)
    return [SaleItemResponse.model_validate(item) for item in items]


@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
async def create_sale(
    sale_data: SaleCreate,
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a sale with its lines.

    Omitted amounts are derived; supplied amounts must reconcile
    (line total = subtotal + tax, sale total = sum of line totals) or the
    request fails with 422 and nothing is stored.
    """
    created = await SaleService(db, settings).create_sale(
        sale_data.header(),
        sale_data.items,
        context.organization_id,
        context.user_id,
    )
    return _sale_response(created.sale, created.items)


@router.put("/{sale_id}", response_model=SaleResponse)
async def update_sale(
    sale_id: uuid.UUID,
    sale_data: SaleUpdate,
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    """Update header fields. Lines cannot be changed."""
    service = SaleService(db, settings)
    await service.update_sale(
        sale_id,
        sale_data.model_dump(exclude_unset=True),
        context.organization_id,
        context.user_id,
    )
    found = await service.get_sale(sale_id, context.organization_id)
    return _sale_response(found.sale, found.items)


@router.patch("/{sale_id}/status", response_model=SaleResponse)
async def update_sale_status(
    sale_id: uuid.UUID,
    status_data: SaleStatusUpdate,
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    """
    Change the sale status.

    Allowed: draft -> issued, draft -> cancelled, issued -> accepted,
    issued -> cancelled.
    """
    service = SaleService(db, settings)
    await service.update_status(
        sale_id, status_data.status, context.organization_id, context.user_id
    )
    found = await service.get_sale(sale_id, context.organization_id)
    return _sale_response(found.sale, found.items)


@router.delete("/{sale_id}", response_model=SaleResponse)
async def delete_sale(
    sale_id: uuid.UUID,
    context: TenantContext = Depends(managers),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete a sale."""
    sale = await SaleService(db, settings).delete_sale(
        sale_id, context.organization_id, context.user_id
    )
    return _sale_response(sale)
