"""Consultation data access service."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.models.orm import Consultation, utcnow
from clinic.services.errors import InvalidIdentifierError, store_operation
from clinic.services.patient_service import parse_identifier

logger = logging.getLogger(__name__)


def _patient_key(patient_id: str) -> str:
    # Consultations never validate their parent, so a malformed id is kept
    # verbatim and still round-trips between create and list.
    try:
        return parse_identifier(patient_id)
    except InvalidIdentifierError:
        return patient_id


async def get_consultations_for_patient(
    session: AsyncSession, patient_id: str
) -> Sequence[Consultation]:
    """Consultations for a patient, most recent date first. Unknown ids yield []."""
    with store_operation("Failed to fetch consultations"):
        result = await session.execute(
            select(Consultation)
            .where(Consultation.patient_id == _patient_key(patient_id))
            .order_by(Consultation.date.desc(), Consultation.created_at.desc())
        )
    return result.scalars().all()


async def create_consultation(
    session: AsyncSession, patient_id: str, fields: dict[str, Any]
) -> Consultation:
    """Insert a consultation. The parent patient is not required to exist."""
    consultation = Consultation(
        **fields, patient_id=_patient_key(patient_id), created_at=utcnow()
    )
    with store_operation("Failed to create consultation"):
        session.add(consultation)
        await session.commit()
        await session.refresh(consultation)
    logger.info(
        "Created consultation %s for patient %s", consultation.id, consultation.patient_id
    )
    return consultation
