"""Pydantic request/response/error schemas."""

from __future__ import annotations

import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator
from pydantic.alias_generators import to_camel

MAX_AGE = 150

PatientStatus = Literal["active", "ongoing", "overdue", "completed"]


class CamelModel(BaseModel):
    """Base for API payloads: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- Patient API schemas ---


class PatientCreate(CamelModel):
    name: str = Field(min_length=1)
    age: StrictInt = Field(ge=0, le=MAX_AGE)
    email: str = ""
    phone: str = ""
    status: PatientStatus | None = None


class PatientUpdate(CamelModel):
    """Only name and age are user-editable."""

    name: str
    age: StrictInt = Field(ge=0, le=MAX_AGE)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value


class PatientResponse(CamelModel):
    id: str
    name: str
    age: int
    email: str
    phone: str
    status: PatientStatus | None = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


class PatientSummary(PatientResponse):
    """List entry: a patient plus its most recent consultation date."""

    last_visit: datetime.date | None = None


# --- Consultation API schemas ---


class ConsultationCreate(CamelModel):
    date: datetime.date
    doctor: str = ""
    diagnosis: str = ""
    notes: str = ""


class ConsultationResponse(CamelModel):
    id: str
    patient_id: str
    date: datetime.date
    doctor: str
    diagnosis: str
    notes: str
    created_at: datetime.datetime


# --- Seeding ---


class SeedResponse(CamelModel):
    message: str
    patients_inserted: int


# --- Error schema ---


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None
