"""
Membership lookups used by identity resolution.
"""

import uuid
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.models.organization import Organization
from practice_api.models.user import Membership, User


class MembershipDAO:
    """Read helpers joining users, organizations and memberships."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_active_identity(
        self, external_user_id: str, external_org_id: str
    ) -> Optional[Tuple[User, Organization, Membership]]:
        """
        Resolve a (subject, organization) pair in one query.

        All three rows must exist and be active; anything less returns None.
        """
        query = (
            select(User, Organization, Membership)
            .join(Membership, Membership.user_id == User.id)
            .join(Organization, Organization.id == Membership.organization_id)
            .where(
                User.external_user_id == external_user_id,
                Organization.external_org_id == external_org_id,
                User.is_active.is_(True),
                Organization.is_active.is_(True),
                Membership.is_active.is_(True),
            )
            .limit(1)
        )
        result = await self.session.execute(query)
        row = result.first()
        if row is None:
            return None
        return row[0], row[1], row[2]

    async def list_active_for_user(
        self, user_id: uuid.UUID
    ) -> List[Tuple[Membership, Organization]]:
        """Active memberships of a user in active organizations, by organization name."""
        query = (
            select(Membership, Organization)
            .join(Organization, Organization.id == Membership.organization_id)
            .where(
                Membership.user_id == user_id,
                Membership.is_active.is_(True),
                Organization.is_active.is_(True),
            )
            .order_by(Organization.name.asc())
        )
        result = await self.session.execute(query)
        return [(membership, organization) for membership, organization in result.all()]
