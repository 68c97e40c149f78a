"""
Organization lookups.

Organizations are not tenant-scoped rows themselves, so they are read
directly by id or by the identity provider's organization id.
"""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.exceptions import ResourceNotFoundError
from practice_api.models.organization import Organization


class OrganizationDAO:
    """Read helpers for organizations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, organization_id: uuid.UUID) -> Organization:
        """
        Raises:
            ResourceNotFoundError: Unknown or inactive organization
        """
        result = await self.session.execute(
            select(Organization).where(
                Organization.id == organization_id,
                Organization.is_active.is_(True),
            )
        )
        organization = result.scalar_one_or_none()
        if organization is None:
            raise ResourceNotFoundError(
                "Organization not found",
                resource_type="Organization",
                resource_id=str(organization_id),
            )
        return organization

    async def get_by_external_id(self, external_org_id: str) -> Optional[Organization]:
        result = await self.session.execute(
            select(Organization).where(Organization.external_org_id == external_org_id)
        )
        return result.scalar_one_or_none()
