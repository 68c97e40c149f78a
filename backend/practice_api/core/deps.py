"""
FastAPI dependencies for authentication, tenant scoping and authorization.

WHY: The tenant guard runs as app-level dependencies, so every route passes
through it before its handler runs, and handlers receive the resulting
``TenantContext`` explicitly instead of reading identity from shared state.

Usage:
    app = FastAPI(dependencies=[Depends(get_tenant_context)])

    @router.get("/clients")
    async def list_clients(context: TenantContext = Depends(require_tenant)):
        ...

FastAPI caches dependencies per request, so the app-level guard and the
route-level ``require_tenant`` share one verification and one session.
"""

from datetime import date
from functools import lru_cache
from typing import Any, Optional, Type, TypeVar

from fastapi import Depends, Query, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.auth import TokenVerifier
from practice_api.core.config import settings
from practice_api.core.exceptions import MissingTokenError, ValidationError
from practice_api.core.guard import (
    Principal,
    TenantContext,
    TenantGuard,
    check_role,
    expand_roles,
)
from practice_api.db.session import get_db
from practice_api.schemas.filters import ListFilter, SortOrder
from practice_api.services.identity import IdentityResolver


FilterType = TypeVar("FilterType", bound=ListFilter)


@lru_cache
def get_token_verifier() -> TokenVerifier:
    """
    Process-wide verifier built from settings.

    Cached so the JWKS cache survives across requests.
    """
    return TokenVerifier.from_settings(settings)


def get_tenant_guard(verifier: TokenVerifier = Depends(get_token_verifier)) -> TenantGuard:
    return TenantGuard(verifier, settings.PUBLIC_ROUTES)


async def get_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
    guard: TenantGuard = Depends(get_tenant_guard),
) -> Optional[Principal]:
    """
    Layer one of the guard: authenticate the request.

    Returns:
        The resolved principal, or None on a public route

    Raises:
        MissingTokenError / InvalidTokenError / PrincipalNotResolvedError (401)
        ConfigurationError (500)
    """
    if guard.is_public(request.method, request.url.path):
        return None
    return await guard.authenticate(request.headers.get("Authorization"), IdentityResolver(db))


async def get_tenant_context(
    principal: Optional[Principal] = Depends(get_principal),
    guard: TenantGuard = Depends(get_tenant_guard),
) -> Optional[TenantContext]:
    """
    Layer two of the guard: scope the request to an organization.

    Raises:
        NoOrganizationContextError (403): non-admin without organization
    """
    if principal is None:
        return None
    return guard.scope(principal)


async def require_tenant(
    context: Optional[TenantContext] = Depends(get_tenant_context),
) -> TenantContext:
    """
    Tenant context for handlers that need one.

    Raises:
        MissingTokenError: The route is public and no context exists
    """
    if context is None:
        raise MissingTokenError()
    return context


def require_roles(*roles: Any):
    """
    Factory for a dependency allowing only the given roles or role groups.

    Superadmins always pass. Groups: ``manager``, ``healthcare_staff``,
    ``healthcare_admin``.

    Usage:
        @router.delete("/{id}")
        async def delete(context: TenantContext = Depends(require_roles("manager"))):
            ...
    """
    allowed = expand_roles(*roles)

    async def role_checker(context: TenantContext = Depends(require_tenant)) -> TenantContext:
        check_role(context.principal, allowed)
        return context

    return role_checker


def make_filter(
    filter_cls: Type[FilterType], base: Optional[ListFilter] = None, **fields: Any
) -> FilterType:
    """
    Build a resource filter from the common options plus its own fields.

    Raises:
        ValidationError: The combined options are inconsistent
    """
    data = base.model_dump() if base is not None else {}
    data.update(fields)
    try:
        return filter_cls(**data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid list filters",
            errors=[
                {"field": ".".join(str(loc) for loc in error["loc"]), "message": error["msg"]}
                for error in e.errors()
            ],
        )


def list_filter_params(
    search: Optional[str] = Query(default=None, max_length=255, description="Free-text search"),
    date_from: Optional[date] = Query(default=None, description="Created on or after"),
    date_to: Optional[date] = Query(default=None, description="Created on or before"),
    status: Optional[str] = Query(default=None),
    paginated: bool = Query(default=False),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    sort_by: Optional[str] = Query(default=None),
    sort_order: SortOrder = Query(default=SortOrder.DESC),
    include_deleted: bool = Query(default=False),
) -> ListFilter:
    """Common list options from the query string."""
    return make_filter(
        ListFilter,
        search=search,
        date_from=date_from,
        date_to=date_to,
        status=status,
        paginated=paginated,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        include_deleted=include_deleted,
    )
