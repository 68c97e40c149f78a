"""
Pydantic schemas for session and principal endpoints.
"""

import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from practice_api.models.user import UserRole, UserType


class PrincipalResponse(BaseModel):
    """The resolved caller, as seen by the API."""

    user_id: uuid.UUID
    external_subject_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    organization_id: Optional[uuid.UUID] = Field(
        None, description="None for cross-tenant administrators"
    )
    role: UserRole
    user_type: UserType


class MembershipSummary(BaseModel):
    organization_id: uuid.UUID
    external_org_id: str
    organization_name: str
    role: UserRole


class SessionResponse(BaseModel):
    """
    Session bootstrap response.

    ``principal`` is None when the token is valid but does not resolve in the
    organization it names (for example a user who has not picked an
    organization yet); ``memberships`` then tells the client which
    organizations are available.
    """

    subject: str
    organization_id: Optional[str] = Field(
        None, description="Organization claim of the token, if any"
    )
    principal: Optional[PrincipalResponse] = None
    memberships: List[MembershipSummary] = Field(default_factory=list)


class OrganizationResponse(BaseModel):
    id: uuid.UUID
    external_org_id: str
    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
