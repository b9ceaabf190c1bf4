"""Patient data access service."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.models.orm import Consultation, Patient, utcnow
from clinic.models.schemas import MAX_AGE, PatientSummary
from clinic.services.aggregation import attach_last_visits, last_visit_index
from clinic.services.errors import (
    InvalidIdentifierError,
    NotFoundError,
    ValidationError,
    store_operation,
)

logger = logging.getLogger(__name__)


def parse_identifier(raw: str) -> str:
    """Normalize a record identifier to its stored form (32 lowercase hex chars)."""
    try:
        return uuid.UUID(raw).hex
    except (ValueError, TypeError, AttributeError):
        raise InvalidIdentifierError(f"Invalid identifier: {raw!r}")


async def get_all_patients(session: AsyncSession) -> list[PatientSummary]:
    """All patients with lastVisit, in two queries regardless of patient count."""
    with store_operation("Failed to fetch patients"):
        patients = (
            await session.execute(
                select(Patient).order_by(Patient.created_at, Patient.id)
            )
        ).scalars().all()
        rows = (
            await session.execute(select(Consultation.patient_id, Consultation.date))
        ).tuples().all()
    logger.debug("Joining %d consultations onto %d patients", len(rows), len(patients))
    return attach_last_visits(patients, last_visit_index(rows))


async def get_patient_by_id(session: AsyncSession, patient_id: str) -> Patient:
    key = parse_identifier(patient_id)
    with store_operation("Failed to fetch patient"):
        patient = await session.get(Patient, key)
    if patient is None:
        raise NotFoundError("Patient not found")
    return patient


async def count_patients(session: AsyncSession) -> int:
    with store_operation("Failed to count patients"):
        result = await session.execute(select(func.count()).select_from(Patient))
    return result.scalar_one()


async def create_patient(session: AsyncSession, fields: dict[str, Any]) -> Patient:
    """Insert a patient. Field shape is validated by the caller, not here."""
    now = utcnow()
    patient = Patient(**fields, created_at=now, updated_at=now)
    with store_operation("Failed to create patient"):
        session.add(patient)
        await session.commit()
        await session.refresh(patient)
    logger.info("Created patient %s", patient.id)
    return patient


def _validate_update(name: Any, age: Any) -> None:
    invalid = []
    if not isinstance(name, str) or not name.strip():
        invalid.append("name")
    if isinstance(age, bool) or not isinstance(age, int):
        invalid.append("age")
    elif not 0 <= age <= MAX_AGE:
        invalid.append("age")
    if invalid:
        raise ValidationError(
            "Invalid input: name and age are required",
            details=f"Invalid field(s): {', '.join(invalid)}",
        )


async def update_patient(
    session: AsyncSession, patient_id: str, name: Any, age: Any
) -> Patient:
    """Set name and age, refreshing updated_at. No other field is touched."""
    _validate_update(name, age)
    patient = await get_patient_by_id(session, patient_id)
    with store_operation("Failed to update patient", expose_details=True):
        patient.name = name.strip()
        patient.age = age
        patient.updated_at = utcnow()
        await session.commit()
        await session.refresh(patient)
    logger.info("Updated patient %s", patient.id)
    return patient
