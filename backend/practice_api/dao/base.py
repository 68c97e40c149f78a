"""
Tenant-scoped Data Access Object.

WHAT: ``ScopedDAO`` is the only way tenant data is read or written. Every
query it builds is the conjunction of:
1. organization_id = caller's organization (unless the caller explicitly
   passes None for a cross-tenant read)
2. deleted_at IS NULL (unless deleted rows are requested)
3. the common list filters (search, created_at range, status)
4. the resource's own predicates

WHY: Tenant isolation, soft delete and audit stamping are invariants of the
data, so they live below the services. No method here can bypass the tenant
filter and there is no hard delete.

HOW: Composition. A resource DAO is a ``ScopedDAO`` built with a model, a
filter builder function and the columns free-text search applies to; see
``practice_api.dao.client`` for the smallest example.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    List,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
)

from sqlalchemy import func, inspect, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.exceptions import (
    ConflictError,
    ImmutableFieldError,
    NoOrganizationContextError,
    ResourceNotFoundError,
    StorageError,
    ValidationError,
)
from practice_api.models.base import PROTECTED_COLUMNS, Base, utcnow
from practice_api.schemas.filters import ListFilter, SortOrder


logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)

# Builds extra WHERE clauses from a resource filter
FilterBuilder = Callable[[Any, ListFilter], List[Any]]

# Input keys whose model attribute has a different name
ATTRIBUTE_ALIASES = {"metadata": "metadata_"}

# Fields that may appear in an update only with their current value
IMMUTABLE_FIELDS = ("organization_id", "created_by")


@dataclass(frozen=True)
class Page(Generic[ModelType]):
    """One page of a paginated list."""

    items: List[ModelType]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


def _same_value(current: Any, proposed: Any) -> bool:
    if current is None or proposed is None:
        return current is proposed
    return str(current) == str(proposed)


class ScopedDAO(Generic[ModelType]):
    """
    Tenant-filtered, soft-deleting, audit-stamping data access for one model.

    Args:
        model: Model class mixing in ``TenantScopedMixin``
        session: Async database session
        filter_builder: Function returning extra predicates for a filter
        search_columns: Attribute names ``filters.search`` matches against

    Example:
        >>> dao = ScopedDAO(Client, session, search_columns=("name", "email"))
        >>> clients = await dao.list(org_id, filters=ListFilter(search="acme"))
    """

    def __init__(
        self,
        model: Type[ModelType],
        session: AsyncSession,
        filter_builder: Optional[FilterBuilder] = None,
        search_columns: Sequence[str] = (),
    ):
        self.model = model
        self.session = session
        self.filter_builder = filter_builder
        self.search_columns = tuple(search_columns)
        columns = inspect(model).columns
        self._columns = frozenset(columns.keys())
        self._required = frozenset(
            name for name, column in columns.items() if not column.nullable
        )

    # ------------------------------------------------------------------
    # Query building
    # ------------------------------------------------------------------

    def scope_conditions(
        self,
        organization_id: Optional[uuid.UUID],
        include_deleted: bool = False,
        filters: Optional[ListFilter] = None,
    ) -> List[Any]:
        """WHERE clauses shared by every read: tenant and soft-delete clauses plus list filters."""
        conditions: List[Any] = []

        if organization_id is not None:
            conditions.append(self.model.organization_id == organization_id)

        if not (include_deleted or (filters is not None and filters.include_deleted)):
            conditions.append(self.model.deleted_at.is_(None))

        if filters is None:
            return conditions

        if filters.search and self.search_columns:
            pattern = f"%{filters.search.strip()}%"
            conditions.append(
                or_(*(getattr(self.model, name).ilike(pattern) for name in self.search_columns))
            )
        if filters.date_from is not None:
            conditions.append(
                self.model.created_at >= datetime.combine(filters.date_from, time.min)
            )
        if filters.date_to is not None:
            end = datetime.combine(filters.date_to + timedelta(days=1), time.min)
            conditions.append(self.model.created_at < end)
        if filters.status is not None and "status" in self._columns:
            conditions.append(self.model.status == filters.status)

        if self.filter_builder is not None:
            conditions.extend(self.filter_builder(self.model, filters))

        return conditions

    def _ordering(self, filters: Optional[ListFilter]) -> List[Any]:
        sort_by = filters.sort_by if filters is not None else None
        descending = filters is None or filters.sort_order == SortOrder.DESC

        if sort_by is None:
            column = self.model.created_at
        elif sort_by in self._columns:
            column = getattr(self.model, sort_by)
        else:
            raise ValidationError(f"Cannot sort by '{sort_by}'", field="sort_by")

        # id breaks ties so pages never overlap
        if descending:
            return [column.desc(), self.model.id.desc()]
        return [column.asc(), self.model.id.asc()]

    # ------------------------------------------------------------------
    # Storage error classification
    # ------------------------------------------------------------------

    async def execute(self, statement):
        """Run a statement, mapping driver errors to ConflictError/StorageError."""
        try:
            return await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise self._classify(e, "query")

    async def _flush(self, operation: str) -> None:
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise self._classify(e, operation)

    def _classify(self, error: SQLAlchemyError, operation: str):
        resource = self.model.__name__
        if isinstance(error, IntegrityError):
            logger.warning("%s %s violated a constraint: %s", resource, operation, error.orig)
            return ConflictError(
                f"{resource} conflicts with existing data", resource_type=resource
            )
        logger.exception("Storage error during %s %s", resource, operation)
        return StorageError(f"Storage error during {resource} {operation}", resource_type=resource)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list(
        self,
        organization_id: Optional[uuid.UUID],
        include_deleted: bool = False,
        filters: Optional[ListFilter] = None,
    ) -> Union[List[ModelType], Page[ModelType]]:
        """
        List rows of one organization.

        Args:
            organization_id: Owning organization; None is an explicit
                cross-tenant read and must only come from an admin context
            include_deleted: Include soft-deleted rows
            filters: Common and resource-specific list options

        Returns:
            A list, or a ``Page`` when ``filters.paginated`` is set
        """
        conditions = self.scope_conditions(organization_id, include_deleted, filters)
        query = select(self.model).where(*conditions).order_by(*self._ordering(filters))

        if filters is None or not filters.paginated:
            result = await self.execute(query)
            return list(result.scalars().all())

        total = await self._count_where(conditions)
        result = await self.execute(query.offset(filters.offset).limit(filters.limit))
        return Page(
            items=list(result.scalars().all()),
            total=total,
            page=filters.page,
            limit=filters.limit,
        )

    async def count(
        self,
        organization_id: Optional[uuid.UUID],
        include_deleted: bool = False,
        filters: Optional[ListFilter] = None,
    ) -> int:
        """Count rows matching the same conditions ``list`` applies."""
        conditions = self.scope_conditions(organization_id, include_deleted, filters)
        return await self._count_where(conditions)

    async def _count_where(self, conditions: List[Any]) -> int:
        query = select(func.count()).select_from(self.model).where(*conditions)
        result = await self.execute(query)
        return int(result.scalar_one())

    async def get_by_id(
        self,
        id: uuid.UUID,
        organization_id: Optional[uuid.UUID],
        include_deleted: bool = False,
    ) -> ModelType:
        """
        Fetch one row of the organization.

        A row that does not exist and a row that belongs to another
        organization raise the same error with the same message.

        Raises:
            ResourceNotFoundError: No matching row for this organization
        """
        conditions = [self.model.id == id]
        conditions.extend(self.scope_conditions(organization_id, include_deleted))

        result = await self.execute(select(self.model).where(*conditions))
        instance = result.scalar_one_or_none()
        if instance is None:
            raise ResourceNotFoundError(
                f"{self.model.__name__} not found",
                resource_type=self.model.__name__,
                resource_id=str(id),
            )
        return instance

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _attributes(self, data: Dict[str, Any]) -> Dict[str, Any]:
        values = {}
        for key, value in data.items():
            attribute = ATTRIBUTE_ALIASES.get(key, key)
            if attribute not in self._columns:
                raise ValidationError(f"Unknown field '{key}'", field=key)
            if value is None and attribute in self._required:
                raise ValidationError(f"Field '{key}' cannot be null", field=key)
            values[attribute] = value
        return values

    async def create(
        self,
        data: Dict[str, Any],
        organization_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID] = None,
    ) -> ModelType:
        """
        Insert a row owned by ``organization_id``.

        Caller-supplied tenant, audit and soft-delete fields are discarded and
        replaced with stamps derived from the arguments.

        Raises:
            NoOrganizationContextError: organization_id is None
            ConflictError: A uniqueness constraint was violated
        """
        if organization_id is None:
            raise NoOrganizationContextError(
                f"Cannot create {self.model.__name__} without an organization"
            )

        values = self._attributes(
            {k: v for k, v in data.items() if k not in PROTECTED_COLUMNS}
        )
        values.setdefault("is_active", True)
        values.update(
            organization_id=organization_id,
            created_by=user_id,
            updated_by=user_id,
            deleted_at=None,
            deleted_by=None,
        )

        instance = self.model(**values)
        self.session.add(instance)
        await self._flush("create")
        return instance

    async def update(
        self,
        id: uuid.UUID,
        data: Dict[str, Any],
        organization_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID] = None,
    ) -> ModelType:
        """
        Update a row of the organization.

        ``organization_id`` and ``created_by`` may be present only with their
        current value; other protected fields are ignored.

        Raises:
            ResourceNotFoundError: No matching row for this organization
            ImmutableFieldError: Attempt to change organization_id/created_by
        """
        instance = await self.get_by_id(id, organization_id)

        for name in IMMUTABLE_FIELDS:
            if name in data and not _same_value(getattr(instance, name), data[name]):
                raise ImmutableFieldError(f"{name} cannot be changed", field=name)

        values = self._attributes(
            {k: v for k, v in data.items() if k not in PROTECTED_COLUMNS}
        )
        for attribute, value in values.items():
            setattr(instance, attribute, value)
        instance.updated_by = user_id
        instance.updated_at = utcnow()

        await self._flush("update")
        return instance

    async def soft_delete(
        self,
        id: uuid.UUID,
        organization_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID] = None,
    ) -> ModelType:
        """
        Mark a row deleted. Deleting an already deleted row is NotFound.
        """
        instance = await self.get_by_id(id, organization_id)

        now = utcnow()
        instance.is_active = False
        instance.deleted_at = now
        instance.deleted_by = user_id
        instance.updated_by = user_id
        instance.updated_at = now

        await self._flush("delete")
        logger.info("%s %s soft-deleted by %s", self.model.__name__, id, user_id)
        return instance

    async def restore(
        self,
        id: uuid.UUID,
        organization_id: Optional[uuid.UUID],
        user_id: Optional[uuid.UUID] = None,
    ) -> ModelType:
        """Clear the soft-delete stamps of a row. Restoring a live row is a no-op."""
        instance = await self.get_by_id(id, organization_id, include_deleted=True)
        if not instance.is_deleted:
            return instance

        instance.is_active = True
        instance.deleted_at = None
        instance.deleted_by = None
        instance.updated_by = user_id
        instance.updated_at = utcnow()

        await self._flush("restore")
        logger.info("%s %s restored by %s", self.model.__name__, id, user_id)
        return instance
