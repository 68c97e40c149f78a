"""
Pydantic schemas for patient endpoints.
"""

import uuid
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from practice_api.models.patient import BloodType, PatientSex
from practice_api.schemas.common import TenantScopedResponse


class PatientBase(BaseModel):
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    zip_code: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=100)
    emergency_contact_name: Optional[str] = Field(default=None, max_length=200)
    emergency_contact_phone: Optional[str] = Field(default=None, max_length=20)
    emergency_contact_relationship: Optional[str] = Field(default=None, max_length=100)
    blood_type: Optional[BloodType] = None
    allergies: Optional[str] = None
    current_medications: Optional[str] = None
    insurance_provider: Optional[str] = Field(default=None, max_length=200)
    insurance_number: Optional[str] = Field(default=None, max_length=100)


class PatientCreate(PatientBase):
    """
    Patient creation request schema.

    ``user_id`` links the patient to a portal login and is optional.
    """

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    sex: PatientSex
    user_id: Optional[uuid.UUID] = None

    @field_validator("date_of_birth")
    @classmethod
    def not_in_future(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("date_of_birth cannot be in the future")
        return v


class PatientUpdate(PatientBase):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    sex: Optional[PatientSex] = None


class PatientResponse(TenantScopedResponse, PatientBase):
    first_name: str
    last_name: str
    date_of_birth: date
    sex: PatientSex
    user_id: Optional[uuid.UUID] = None
