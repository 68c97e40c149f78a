"""
Identity resolution: verified claims -> local principal.

WHAT: Maps the provider's subject and organization ids to the local user,
organization and membership, and from those to a ``Principal``.

WHY: The token says who the caller is at the provider; only local storage
says which organization they act in and with what role. A token whose
subject or organization is unknown locally, or whose membership is
inactive, must not authenticate.

HOW: One joined read for the normal case. Tokens without an organization
claim resolve only for superadmin users, as cross-tenant administrators.
Nothing is written.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.auth import VerifiedClaims
from practice_api.core.guard import Principal
from practice_api.dao.membership import MembershipDAO
from practice_api.dao.user import UserDAO
from practice_api.models.organization import Organization
from practice_api.models.user import Membership, User, UserRole, UserType


logger = logging.getLogger(__name__)


class IdentityResolver:
    """
    Resolves verified claims to a principal.

    Args:
        session: Async database session (read-only use)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.memberships = MembershipDAO(session)
        self.users = UserDAO(session)

    async def resolve(self, claims: VerifiedClaims) -> Optional[Principal]:
        """
        Resolve claims to a principal.

        Returns:
            Principal, or None when the user, organization or membership is
            missing or inactive
        """
        if claims.organization_id is None:
            return await self._resolve_without_organization(claims)

        found = await self.memberships.find_active_identity(
            claims.subject, claims.organization_id
        )
        if found is None:
            logger.info(
                "No active membership for subject %s in organization %s",
                claims.subject,
                claims.organization_id,
            )
            return None

        user, organization, membership = found
        return _build_principal(
            claims, user, organization_id=organization.id, role=membership.role
        )

    async def _resolve_without_organization(
        self, claims: VerifiedClaims
    ) -> Optional[Principal]:
        user = await self.users.get_by_external_id(claims.subject)
        if user is None or not user.is_active:
            logger.info("No active user for subject %s", claims.subject)
            return None
        if user.type != UserType.SUPERADMIN:
            logger.info("Token for subject %s carries no organization", claims.subject)
            return None
        return _build_principal(claims, user, organization_id=None, role=UserRole.ADMIN)

    async def list_memberships(
        self, user_id: uuid.UUID
    ) -> List[Tuple[Membership, Organization]]:
        """Active memberships of a user, used by the session bootstrap."""
        return await self.memberships.list_active_for_user(user_id)


def _build_principal(
    claims: VerifiedClaims,
    user: User,
    organization_id: Optional[uuid.UUID],
    role: UserRole,
) -> Principal:
    # ids and role come from storage; profile fields prefer the token
    return Principal(
        internal_user_id=user.id,
        external_subject_id=claims.subject,
        email=claims.email or user.email,
        first_name=claims.first_name,
        last_name=claims.last_name,
        image_url=claims.image_url or user.image_url,
        organization_id=organization_id,
        role=role,
        is_active=bool(user.is_active),
        user_type=user.type,
        extra=claims.extra,
    )
