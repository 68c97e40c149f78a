"""
Patient model.
"""

import enum

from sqlalchemy import Column, Date, Enum, ForeignKey, String, Text, Uuid

from practice_api.models.base import Base, PrimaryKeyMixin, TenantScopedMixin


class PatientSex(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"


class BloodType(str, enum.Enum):
    A_POSITIVE = "A+"
    A_NEGATIVE = "A-"
    B_POSITIVE = "B+"
    B_NEGATIVE = "B-"
    AB_POSITIVE = "AB+"
    AB_NEGATIVE = "AB-"
    O_POSITIVE = "O+"
    O_NEGATIVE = "O-"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Patient(Base, PrimaryKeyMixin, TenantScopedMixin):
    """
    Tenant-scoped patient record.

    ``user_id`` optionally links the patient to a platform user (a patient
    portal login); one user maps to at most one patient.
    """

    __tablename__ = "patients"

    user_id = Column(Uuid, ForeignKey("users.id"), nullable=True, unique=True)

    # Personal information
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    sex = Column(Enum(PatientSex, name="patient_sex", values_callable=_enum_values), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)

    # Address
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    zip_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)

    # Emergency contact
    emergency_contact_name = Column(String(200), nullable=True)
    emergency_contact_phone = Column(String(20), nullable=True)
    emergency_contact_relationship = Column(String(100), nullable=True)

    # Medical information
    blood_type = Column(
        Enum(BloodType, name="blood_type", values_callable=_enum_values), nullable=True
    )
    allergies = Column(Text, nullable=True)
    current_medications = Column(Text, nullable=True)
    insurance_provider = Column(String(200), nullable=True)
    insurance_number = Column(String(100), nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, name={self.full_name})>"
