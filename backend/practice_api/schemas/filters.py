"""
List filter schemas.

``ListFilter`` carries the options every list endpoint understands; resource
filters add their own fields. The scoped DAO applies the common fields and
hands the rest to the resource's filter builder.
"""

import uuid
from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from practice_api.models.item import ItemType, ProductType
from practice_api.models.patient import PatientSex
from practice_api.models.sale import SaleStatus


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ListFilter(BaseModel):
    """
    Common list options.

    Pagination is opt-in: with ``paginated`` false every matching row is
    returned and ``page``/``limit`` are ignored.
    """

    model_config = ConfigDict(frozen=True)

    search: Optional[str] = Field(default=None, max_length=255)
    date_from: Optional[date] = Field(default=None, description="Created on or after")
    date_to: Optional[date] = Field(default=None, description="Created on or before")
    status: Optional[str] = Field(default=None, description="Applies to models with a status")
    paginated: bool = False
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    sort_by: Optional[str] = Field(default=None, description="Column name")
    sort_order: SortOrder = SortOrder.DESC
    include_deleted: bool = False

    @model_validator(mode="after")
    def date_range_is_ordered(self):
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ClientFilter(ListFilter):
    company: Optional[str] = None
    email: Optional[str] = None


class PatientFilter(ListFilter):
    sex: Optional[PatientSex] = None
    user_id: Optional[uuid.UUID] = None


class ItemFilter(ListFilter):
    type: Optional[ItemType] = None
    product_type: Optional[ProductType] = None
    category: Optional[str] = None
    is_stock_tracked: Optional[bool] = None


class SaleFilter(ListFilter):
    client_id: Optional[uuid.UUID] = None
    jurisdiction_id: Optional[str] = None
    currency: Optional[str] = None
    item_id: Optional[uuid.UUID] = None

    @model_validator(mode="after")
    def status_is_known(self):
        if self.status is not None:
            SaleStatus(self.status)
        return self
