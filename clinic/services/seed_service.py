"""Fixture loader: 10 patients with their consultation history."""

from __future__ import annotations

import asyncio
import datetime
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from clinic.models.orm import Consultation, Patient, utcnow
from clinic.models.schemas import SeedResponse
from clinic.services.errors import store_operation
from clinic.services.patient_service import count_patients

logger = logging.getLogger(__name__)

ANA = "Dr. Ana Silva"
CARLOS = "Dr. Carlos Mendes"

PATIENTS = [
    {
        "name": "João Silva",
        "age": 45,
        "email": "joao.silva@email.com",
        "phone": "(11) 98765-4321",
        "consultations": [
            ("2024-01-15", ANA, "Hypertension", "Blood pressure controlled. Continue medication."),
            ("2024-02-20", ANA, "General check-up", "Routine tests performed. Everything normal."),
            ("2024-03-10", CARLOS, "Back pain", "Physical therapy prescribed."),
        ],
    },
    {
        "name": "Maria Santos",
        "age": 32,
        "email": "maria.santos@email.com",
        "phone": "(11) 98765-4322",
        "consultations": [
            ("2024-01-10", ANA, "Flu", "Mild symptoms. Rest recommended."),
            ("2024-02-05", CARLOS, "Check-up", "Blood tests normal."),
        ],
    },
    {
        "name": "Pedro Oliveira",
        "age": 28,
        "email": "pedro.oliveira@email.com",
        "phone": "(11) 98765-4323",
        "consultations": [
            ("2024-01-20", CARLOS, "Sports injury", "Ankle sprain. Rest and ice."),
            ("2024-02-15", CARLOS, "Follow-up", "Significant improvement. Continue physical therapy."),
        ],
    },
    {
        "name": "Ana Costa",
        "age": 55,
        "email": "ana.costa@email.com",
        "phone": "(11) 98765-4324",
        "consultations": [
            ("2024-01-05", ANA, "Type 2 diabetes", "Blood sugar controlled. Maintain diet."),
            ("2024-02-12", ANA, "Follow-up", "Glucose tests within normal range."),
            ("2024-03-18", ANA, "Check-up", "Everything stable."),
        ],
    },
    {
        "name": "Carlos Ferreira",
        "age": 38,
        "email": "carlos.ferreira@email.com",
        "phone": "(11) 98765-4325",
        "consultations": [
            ("2024-01-25", CARLOS, "Headache", "Migraine. Medication prescribed."),
            ("2024-02-28", CARLOS, "Follow-up", "Symptoms improved."),
        ],
    },
    {
        "name": "Juliana Alves",
        "age": 29,
        "email": "juliana.alves@email.com",
        "phone": "(11) 98765-4326",
        "consultations": [
            ("2024-01-12", ANA, "Annual check-up", "Complete tests. Everything normal."),
        ],
    },
    {
        "name": "Roberto Lima",
        "age": 62,
        "email": "roberto.lima@email.com",
        "phone": "(11) 98765-4327",
        "consultations": [
            ("2024-01-08", CARLOS, "Arthritis", "Anti-inflammatory medication prescribed."),
            ("2024-02-10", CARLOS, "Follow-up", "Pain reduced. Continue treatment."),
            ("2024-03-20", ANA, "Check-up", "Condition stable."),
        ],
    },
    {
        "name": "Fernanda Rocha",
        "age": 41,
        "email": "fernanda.rocha@email.com",
        "phone": "(11) 98765-4328",
        "consultations": [
            ("2024-01-18", ANA, "Anxiety", "Referred to psychologist."),
            ("2024-02-22", ANA, "Follow-up", "Overall condition improved."),
        ],
    },
    {
        "name": "Lucas Martins",
        "age": 35,
        "email": "lucas.martins@email.com",
        "phone": "(11) 98765-4329",
        "consultations": [
            ("2024-01-30", CARLOS, "Knee injury", "Imaging exam requested."),
            ("2024-02-25", CARLOS, "Test result", "Minor injury. Conservative treatment."),
        ],
    },
    {
        "name": "Patricia Souza",
        "age": 48,
        "email": "patricia.souza@email.com",
        "phone": "(11) 98765-4330",
        "consultations": [
            ("2024-01-14", ANA, "Hypertension", "High blood pressure. Start medication."),
            ("2024-02-18", ANA, "Follow-up", "Blood pressure improved. Continue medication."),
            ("2024-03-15", ANA, "Check-up", "Blood pressure controlled."),
        ],
    },
]


_seed_lock = asyncio.Lock()


async def seed_database(session: AsyncSession) -> SeedResponse:
    """Insert the fixture set once. A non-empty patients table makes this a no-op.

    The count-then-insert sequence is serialized per process, so concurrent
    requests cannot both insert. Separate worker processes are not coordinated;
    run seeding from one process (e.g. `seed.py`) in multi-worker deployments.
    """
    async with _seed_lock:
        return await _seed(session)


async def _seed(session: AsyncSession) -> SeedResponse:
    existing = await count_patients(session)
    if existing > 0:
        logger.info("Seed skipped: %d patients already present", existing)
        return SeedResponse(message="Database already seeded", patients_inserted=0)

    now = utcnow()
    with store_operation("Failed to seed database"):
        patients = []
        for entry in PATIENTS:
            fields = {k: v for k, v in entry.items() if k != "consultations"}
            patient = Patient(**fields, created_at=now, updated_at=now)
            session.add(patient)
            patients.append((patient, entry["consultations"]))
        # Flush so store-assigned ids are available for the back-references.
        await session.flush()

        for patient, visits in patients:
            for visit_date, doctor, diagnosis, notes in visits:
                session.add(
                    Consultation(
                        patient_id=patient.id,
                        date=datetime.date.fromisoformat(visit_date),
                        doctor=doctor,
                        diagnosis=diagnosis,
                        notes=notes,
                        created_at=now,
                    )
                )
        await session.commit()

    logger.info("Seeded %d patients", len(patients))
    return SeedResponse(
        message="Database seeded successfully", patients_inserted=len(patients)
    )
