"""
Authentication API endpoints.

WHY: Users sign in with the identity provider, not with this API. The
frontend calls ``POST /session`` right after sign-in to learn whether the
token resolves to a local principal and which organizations the user can
act in. The route is on the public allow-list because a freshly issued token
may not name an organization yet.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.auth import TokenVerifier, extract_bearer_token
from practice_api.core.deps import get_token_verifier, require_tenant
from practice_api.core.guard import Principal, TenantContext
from practice_api.dao.user import UserDAO
from practice_api.db.session import get_db
from practice_api.schemas.auth import MembershipSummary, PrincipalResponse, SessionResponse
from practice_api.services.identity import IdentityResolver


router = APIRouter(prefix="/auth", tags=["authentication"])


def _principal_response(principal: Principal) -> PrincipalResponse:
    return PrincipalResponse(
        user_id=principal.internal_user_id,
        external_subject_id=principal.external_subject_id,
        email=principal.email,
        first_name=principal.first_name,
        last_name=principal.last_name,
        image_url=principal.image_url,
        organization_id=principal.organization_id,
        role=principal.role,
        user_type=principal.user_type,
    )


@router.post("/session", response_model=SessionResponse)
async def create_session(
    request: Request,
    verifier: TokenVerifier = Depends(get_token_verifier),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """
    Verify the caller's token and describe the session it opens.

    Returns:
        The token subject, the resolved principal (None when the token does
        not resolve in the organization it names) and the user's active
        memberships

    Raises:
        MissingTokenError / InvalidTokenError (401): Token absent or invalid
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    claims = await verifier.verify(token)

    resolver = IdentityResolver(db)
    principal: Optional[Principal] = await resolver.resolve(claims)

    memberships: List[MembershipSummary] = []
    user = await UserDAO(db).get_by_external_id(claims.subject)
    if user is not None and user.is_active:
        memberships = [
            MembershipSummary(
                organization_id=organization.id,
                external_org_id=organization.external_org_id,
                organization_name=organization.name,
                role=membership.role,
            )
            for membership, organization in await resolver.list_memberships(user.id)
        ]

    return SessionResponse(
        subject=claims.subject,
        organization_id=claims.organization_id,
        principal=_principal_response(principal) if principal is not None else None,
        memberships=memberships,
    )


@router.get("/me", response_model=PrincipalResponse)
async def get_me(context: TenantContext = Depends(require_tenant)) -> PrincipalResponse:
    """The principal the request was authenticated as."""
    return _principal_response(context.principal)
