"""
Pydantic schemas for client endpoints.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from practice_api.schemas.common import TenantScopedResponse, metadata_field


class ClientCreate(BaseModel):
    """
    Client creation request schema.

    Tenant and audit fields are not part of the contract; they are derived
    from the caller's token.
    """

    name: str = Field(..., min_length=1, max_length=255, description="Client name")
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = None
    company: Optional[str] = Field(default=None, max_length=255)
    tax_id: Optional[str] = Field(default=None, max_length=100, description="Tax identifier")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Acme Clinic",
                "email": "billing@acme.example",
                "company": "Acme S.A.S.",
                "tax_id": "900123456-7",
            }
        }
    )


class ClientUpdate(BaseModel):
    """Client update request schema. Only provided fields change."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = None
    company: Optional[str] = Field(default=None, max_length=255)
    tax_id: Optional[str] = Field(default=None, max_length=100)
    metadata: Optional[Dict[str, Any]] = None


class ClientResponse(TenantScopedResponse):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    company: Optional[str] = None
    tax_id: Optional[str] = None
    metadata: Dict[str, Any] = metadata_field()
