"""Display derivations for patient and consultation views.

Everything here is pure: no I/O, no clock reads. Callers pass ``today``
explicitly so results are reproducible.
"""

from __future__ import annotations

import datetime
from collections.abc import Sequence
from typing import Literal, Protocol, TypeVar

from pydantic import BaseModel

from clinic.models.schemas import ConsultationResponse, PatientResponse

PLACEHOLDER = "—"

AVATAR_PALETTE = (
    "bg-amber-100 text-amber-700",
    "bg-emerald-100 text-emerald-700",
    "bg-sky-100 text-sky-700",
    "bg-violet-100 text-violet-700",
    "bg-rose-100 text-rose-700",
    "bg-cyan-100 text-cyan-700",
)

_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

BadgeCategory = Literal["active", "ongoing", "overdue", "completed"]


class Badge(BaseModel):
    category: BadgeCategory
    label: str
    css_class: str


_BADGES: dict[str, Badge] = {
    "active": Badge(category="active", label="Active", css_class="bg-green-100 text-green-700"),
    "ongoing": Badge(category="ongoing", label="Ongoing", css_class="bg-blue-100 text-blue-700"),
    "overdue": Badge(category="overdue", label="Overdue", css_class="bg-red-100 text-red-700"),
    "completed": Badge(
        category="completed", label="Completed", css_class="bg-slate-100 text-slate-700"
    ),
}


class Dated(Protocol):
    date: datetime.date


D = TypeVar("D", bound=Dated)


def initials(name: str) -> str:
    """Up to two uppercase letters from the first two whitespace-separated words."""
    parts = name.split()
    return "".join(part[0] for part in parts[:2]).upper()


def color_for_name(name: str) -> str:
    """Deterministic palette entry: sum of code points modulo palette size."""
    return AVATAR_PALETTE[sum(ord(c) for c in name) % len(AVATAR_PALETTE)]


def status_badge(status: str | None) -> Badge:
    """Badge for a patient status; absent or unknown statuses show as completed."""
    return _BADGES.get(status or "completed", _BADGES["completed"])


def _as_date(value: object) -> datetime.date | None:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return datetime.date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


def format_date(raw: object) -> str:
    """Format as ``15 Jan 2024``; anything missing or unreadable becomes a dash."""
    day = _as_date(raw)
    if day is None:
        return PLACEHOLDER
    return f"{day.day:02d} {_MONTHS[day.month - 1]} {day.year}"


def partition_by_date(
    consultations: Sequence[D], reference: datetime.date | datetime.datetime
) -> tuple[list[D], list[D]]:
    """Split into (past, future). Past is strictly before the reference day.

    Both lists keep the input order. An entry whose date cannot be read
    lands in future so the split stays total.
    """
    today = _as_date(reference)
    past: list[D] = []
    future: list[D] = []
    for consultation in consultations:
        day = _as_date(consultation.date)
        if day is not None and day < today:
            past.append(consultation)
        else:
            future.append(consultation)
    return past, future


# --- Profile view ---


class VisitView(BaseModel):
    id: str
    date: str
    doctor: str
    diagnosis: str
    notes: str


class PatientProfile(BaseModel):
    name: str
    age: int
    email: str
    phone: str
    birth_year: int
    initials: str
    avatar_color: str
    badge: Badge
    registered_on: str
    last_visit: str
    past_visits: list[VisitView]
    future_visits: list[VisitView]


def _visit_view(consultation: ConsultationResponse) -> VisitView:
    return VisitView(
        id=consultation.id,
        date=format_date(consultation.date),
        doctor=consultation.doctor,
        diagnosis=consultation.diagnosis,
        notes=consultation.notes,
    )


def build_profile(
    patient: PatientResponse,
    consultations: Sequence[ConsultationResponse],
    today: datetime.date,
) -> PatientProfile:
    past, future = partition_by_date(consultations, today)
    latest = max((c.date for c in consultations), default=None)
    return PatientProfile(
        name=patient.name,
        age=patient.age,
        email=patient.email,
        phone=patient.phone,
        # Only age is stored, so the year is an estimate.
        birth_year=today.year - patient.age,
        initials=initials(patient.name),
        avatar_color=color_for_name(patient.name),
        badge=status_badge(patient.status),
        registered_on=format_date(patient.created_at),
        last_visit=format_date(latest),
        past_visits=[_visit_view(c) for c in past],
        future_visits=[_visit_view(c) for c in future],
    )
