"""
Patient API endpoints.

CRUD for the organization's patients, restricted to healthcare staff.
"""

import uuid
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.core.deps import list_filter_params, make_filter, require_roles
from practice_api.core.guard import TenantContext
from practice_api.dao.patient import patient_dao
from practice_api.db.session import get_db
from practice_api.models.patient import PatientSex
from practice_api.schemas.common import PageResponse, list_response
from practice_api.schemas.filters import ListFilter, PatientFilter
from practice_api.schemas.patient import PatientCreate, PatientResponse, PatientUpdate


router = APIRouter(prefix="/patients", tags=["patients"])

staff = require_roles("healthcare_staff")
clinicians = require_roles("healthcare_admin")


@router.get(
    "",
    response_model=Union[List[PatientResponse], PageResponse[PatientResponse]],
)
async def list_patients(
    sex: Optional[PatientSex] = Query(default=None),
    common: ListFilter = Depends(list_filter_params),
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    """List patients; ``search`` matches names, email and phone."""
    filters = make_filter(PatientFilter, common, sex=sex)
    result = await patient_dao(db).list(context.organization_id, filters=filters)
    return list_response(result, PatientResponse)


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(
    patient_id: uuid.UUID,
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    patient = await patient_dao(db).get_by_id(patient_id, context.organization_id)
    return PatientResponse.model_validate(patient)


@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(
    patient_data: PatientCreate,
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    patient = await patient_dao(db).create(
        patient_data.model_dump(), context.organization_id, context.user_id
    )
    return PatientResponse.model_validate(patient)


@router.put("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    patient_id: uuid.UUID,
    patient_data: PatientUpdate,
    context: TenantContext = Depends(staff),
    db: AsyncSession = Depends(get_db),
):
    patient = await patient_dao(db).update(
        patient_id,
        patient_data.model_dump(exclude_unset=True),
        context.organization_id,
        context.user_id,
    )
    return PatientResponse.model_validate(patient)


@router.delete("/{patient_id}", response_model=PatientResponse)
async def delete_patient(
    patient_id: uuid.UUID,
    context: TenantContext = Depends(clinicians),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete a patient. Medical history stays in storage."""
    patient = await patient_dao(db).soft_delete(patient_id, context.organization_id, context.user_id)
    return PatientResponse.model_validate(patient)


@router.post("/{patient_id}/restore", response_model=PatientResponse)
async def restore_patient(
    patient_id: uuid.UUID,
    context: TenantContext = Depends(clinicians),
    db: AsyncSession = Depends(get_db),
):
    patient = await patient_dao(db).restore(patient_id, context.organization_id, context.user_id)
    return PatientResponse.model_validate(patient)
