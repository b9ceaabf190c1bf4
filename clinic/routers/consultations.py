"""Consultation history endpoints, nested under a patient."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.database import get_session
from clinic.models.schemas import ConsultationCreate, ConsultationResponse
from clinic.services.consultation_service import (
    create_consultation,
    get_consultations_for_patient,
)

router = APIRouter(prefix="/patients/{patient_id}/consultations", tags=["consultations"])


@router.get("", response_model=list[ConsultationResponse])
async def list_consultations(
    patient_id: str,
    session: AsyncSession = Depends(get_session),
) -> list[ConsultationResponse]:
    consultations = await get_consultations_for_patient(session, patient_id)
    return [ConsultationResponse.model_validate(c) for c in consultations]


@router.post("", response_model=ConsultationResponse, status_code=201)
async def add_consultation(
    patient_id: str,
    body: ConsultationCreate,
    session: AsyncSession = Depends(get_session),
) -> ConsultationResponse:
    consultation = await create_consultation(session, patient_id, body.model_dump())
    return ConsultationResponse.model_validate(consultation)
