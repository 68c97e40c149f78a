"""
Patient Data Access Object.
"""

from typing import Any, List

from sqlalchemy.ext.asyncio import AsyncSession

from practice_api.dao.base import ScopedDAO
from practice_api.models.patient import Patient
from practice_api.schemas.filters import ListFilter, PatientFilter


PATIENT_SEARCH_COLUMNS = ("first_name", "last_name", "email", "phone")


def patient_filters(model: Any, filters: ListFilter) -> List[Any]:
    conditions = []
    if isinstance(filters, PatientFilter):
        if filters.sex is not None:
            conditions.append(model.sex == filters.sex)
        if filters.user_id is not None:
            conditions.append(model.user_id == filters.user_id)
    return conditions


def patient_dao(session: AsyncSession) -> ScopedDAO[Patient]:
    return ScopedDAO(
        Patient,
        session,
        filter_builder=patient_filters,
        search_columns=PATIENT_SEARCH_COLUMNS,
    )
