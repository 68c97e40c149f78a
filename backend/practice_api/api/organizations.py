"""
Organization API endpoints.

Organizations are managed in the identity provider; this API only exposes
the organization the request is scoped to.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.deps import require_tenant
from practice_api.core.exceptions import NoOrganizationContextError
from practice_api.core.guard import TenantContext
from practice_api.dao.organization import OrganizationDAO
from practice_api.db.session import get_db
from practice_api.schemas.auth import OrganizationResponse


router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.get("/current", response_model=OrganizationResponse)
async def get_current_organization(
    context: TenantContext = Depends(require_tenant),
    db: AsyncSession = Depends(get_db),
) -> OrganizationResponse:
    """
    Get the caller's organization.

    Raises:
        NoOrganizationContextError (403): Cross-tenant administrator context
        ResourceNotFoundError (404): Organization inactive or removed
    """
    if context.is_cross_tenant:
        raise NoOrganizationContextError("Cross-tenant context has no current organization")
    organization = await OrganizationDAO(db).get_by_id(context.organization_id)
    return OrganizationResponse.model_validate(organization)
