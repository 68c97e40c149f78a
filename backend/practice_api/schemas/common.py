"""
Schemas shared by every tenant-scoped resource.
"""

import uuid
from datetime import datetime
from typing import Any, Generic, List, Optional, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


T = TypeVar("T")


class TenantScopedResponse(BaseModel):
    """
    Tenant, audit and soft-delete fields present on every tenant-scoped row.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    organization_id: uuid.UUID
    is_active: bool
    created_at: datetime
    updated_at: datetime
    created_by: Optional[uuid.UUID] = None
    updated_by: Optional[uuid.UUID] = None
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[uuid.UUID] = None


def metadata_field():
    """Response field reading the model's ``metadata_`` attribute."""
    return Field(
        default_factory=dict,
        validation_alias=AliasChoices("metadata_", "metadata"),
        description="Opaque per-jurisdiction data",
    )


class PageResponse(BaseModel, Generic[T]):
    """
    Paginated list response.

    Returned instead of a bare list when the request sets ``paginated=true``.
    """

    items: List[T] = Field(..., description="Items on this page")
    total: int = Field(..., description="Total number of items matching filters")
    page: int = Field(..., description="Page number, starting at 1")
    limit: int = Field(..., description="Maximum items per page")
    pages: int = Field(..., description="Total number of pages")


class MessageResponse(BaseModel):
    message: str


def list_response(result: Any, schema: Type[BaseModel]):
    """
    Convert a DAO list result (a list, or a page when paginated) into the
    matching response body.
    """
    if isinstance(result, list):
        return [schema.model_validate(row) for row in result]
    return PageResponse[schema](
        items=[schema.model_validate(row) for row in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        pages=result.pages,
    )
