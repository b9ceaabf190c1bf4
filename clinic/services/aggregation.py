"""Join consultation history onto patients to derive lastVisit."""

from __future__ import annotations

import datetime
from collections.abc import Iterable, Sequence

from clinic.models.orm import Patient
from clinic.models.schemas import PatientSummary


def last_visit_index(
    rows: Iterable[tuple[str, datetime.date]],
) -> dict[str, datetime.date]:
    """Group (patient_id, date) pairs in a single pass, keeping the latest date."""
    latest: dict[str, datetime.date] = {}
    for patient_id, visit_date in rows:
        current = latest.get(patient_id)
        if current is None or visit_date > current:
            latest[patient_id] = visit_date
    return latest


def attach_last_visits(
    patients: Sequence[Patient], index: dict[str, datetime.date]
) -> list[PatientSummary]:
    """Left join: patients without consultations get last_visit=None.

    Index entries with no matching patient (orphans) are ignored.
    """
    summaries = []
    for patient in patients:
        summary = PatientSummary.model_validate(patient)
        summary.last_visit = index.get(patient.id)
        summaries.append(summary)
    return summaries
