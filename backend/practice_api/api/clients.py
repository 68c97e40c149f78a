"""
Client API endpoints.

WHAT: CRUD for the organization's clients, with soft delete and restore.

HOW: Every handler receives the caller's ``TenantContext`` and passes its
organization and user ids to the scoped DAO. No handler accepts an
organization id from the request.
"""

import uuid
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.deps import list_filter_params, make_filter, require_roles
from practice_api.core.guard import TenantContext
from practice_api.dao.client import client_dao
from practice_api.db.session import get_db
from practice_api.schemas.client import ClientCreate, ClientResponse, ClientUpdate
from practice_api.schemas.common import PageResponse, list_response
from practice_api.schemas.filters import ClientFilter, ListFilter


router = APIRouter(prefix="/clients", tags=["clients"])

staff = require_roles("manager", "healthcare_staff")
managers = require_roles("manager", "healthcare_admin")


@router.get(
    "",
    response_model=Union[List[ClientResponse], PageResponse[ClientResponse]],
)
async def list_clients(
    company: Optional[str] = Query(default=None),
    email: Optional[str] = Query(default=None),
    common: ListFilter = Depends(list_filter_params),
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    """
    List clients of the caller's organization.

    Returns a plain list, or a page when ``paginated=true``.
    """
    filters = make_filter(ClientFilter, common, company=company, email=email)
    result = await client_dao(db).list(context.organization_id, filters=filters)
    return list_response(result, ClientResponse)


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: uuid.UUID,
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    """Get a client. A client of another organization is reported as not found."""
    client = await client_dao(db).get_by_id(client_id, context.organization_id)
    return ClientResponse.model_validate(client)


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    client_data: ClientCreate,
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    """Create a client owned by the caller's organization."""
    client = await client_dao(db).create(
        client_data.model_dump(), context.organization_id, context.user_id
    )
    return ClientResponse.model_validate(client)


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: uuid.UUID,
    client_data: ClientUpdate,
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    """Update a client. Only fields present in the body change."""
    client = await client_dao(db).update(
        client_id,
        client_data.model_dump(exclude_unset=True),
        context.organization_id,
        context.user_id,
    )
    return ClientResponse.model_validate(client)


@router.delete("/{client_id}", response_model=ClientResponse)
async def delete_client(
    client_id: uuid.UUID,
    context: TenantContext = Depends(managers),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete a client."""
    client = await client_dao(db).soft_delete(client_id, context.organization_id, context.user_id)
    return ClientResponse.model_validate(client)


@router.post("/{client_id}/restore", response_model=ClientResponse)
async def restore_client(
    client_id: uuid.UUID,
    context: TenantContext = Depends(managers),
    db: AsyncSession = Depends(get_db),
):
    """Restore a soft-deleted client."""
    client = await client_dao(db).restore(client_id, context.organization_id, context.user_id)
    return ClientResponse.model_validate(client)
