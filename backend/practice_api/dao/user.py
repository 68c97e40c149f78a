"""
User lookups.

Users are created by the identity provider's sync, not through this API, so
this DAO only reads.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.models.user import User


class UserDAO:
    """Read helpers for users."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_external_id(self, external_user_id: str) -> Optional[User]:
        """
        Retrieve a user by the provider's subject id (the token ``sub``).

        Args:
            external_user_id: Provider subject id

        Returns:
            User instance if found, None otherwise
        """
        result = await self.session.execute(
            select(User).where(User.external_user_id == external_user_id)
        )
        return result.scalar_one_or_none()

