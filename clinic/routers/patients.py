"""Patient API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.database import get_session
from clinic.models.schemas import (
    ErrorResponse,
    PatientCreate,
    PatientResponse,
    PatientSummary,
    PatientUpdate,
)
from clinic.services.patient_service import (
    create_patient,
    get_all_patients,
    get_patient_by_id,
    update_patient,
)

router = APIRouter(prefix="/patients", tags=["patients"])

NOT_FOUND = {404: {"model": ErrorResponse}}


@router.get("", response_model=list[PatientSummary])
async def list_patients(
    session: AsyncSession = Depends(get_session),
) -> list[PatientSummary]:
    return await get_all_patients(session)


@router.post("", response_model=PatientResponse, status_code=201)
async def add_patient(
    body: PatientCreate,
    session: AsyncSession = Depends(get_session),
) -> PatientResponse:
    patient = await create_patient(session, body.model_dump())
    return PatientResponse.model_validate(patient)


@router.get("/{patient_id}", response_model=PatientResponse, responses=NOT_FOUND)
async def get_patient(
    patient_id: str,
    session: AsyncSession = Depends(get_session),
) -> PatientResponse:
    patient = await get_patient_by_id(session, patient_id)
    return PatientResponse.model_validate(patient)


@router.put(
    "/{patient_id}",
    response_model=PatientResponse,
    responses={400: {"model": ErrorResponse}, **NOT_FOUND},
)
async def edit_patient(
    patient_id: str,
    body: PatientUpdate,
    session: AsyncSession = Depends(get_session),
) -> PatientResponse:
    patient = await update_patient(session, patient_id, body.name, body.age)
    return PatientResponse.model_validate(patient)
