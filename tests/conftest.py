"""Test fixtures and configuration."""

from __future__ import annotations

import datetime
from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from clinic.database import get_session
from clinic.main import app
from clinic.models.orm import Base, Consultation, Patient
from clinic.ui.client import ClinicClient

test_engine = create_async_engine("sqlite+aiosqlite://", echo=False)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


async def override_get_session() -> AsyncIterator[AsyncSession]:
    async with test_session_factory() as session:
        yield session


app.dependency_overrides[get_session] = override_get_session


@pytest.fixture(autouse=True)
async def setup_database() -> AsyncIterator[None]:
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def clinic_client() -> AsyncIterator[ClinicClient]:
    async with ClinicClient("http://test", transport=ASGITransport(app=app)) as cc:
        yield cc


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    return test_session_factory


@pytest.fixture
async def session() -> AsyncIterator[AsyncSession]:
    async with test_session_factory() as s:
        yield s


@pytest.fixture
async def seed_patient() -> Patient:
    async with test_session_factory() as session:
        patient = Patient(
            name="Ana Costa",
            age=55,
            email="ana.costa@email.com",
            phone="(11) 98765-4324",
        )
        session.add(patient)
        await session.commit()
        await session.refresh(patient)
        return patient


@pytest.fixture
async def patient_with_history(seed_patient: Patient) -> Patient:
    """Ana Costa with three consultations inserted out of date order."""
    async with test_session_factory() as session:
        for day, diagnosis in [
            ("2024-01-05", "Type 2 diabetes"),
            ("2024-03-18", "Check-up"),
            ("2024-02-12", "Follow-up"),
        ]:
            session.add(
                Consultation(
                    patient_id=seed_patient.id,
                    date=datetime.date.fromisoformat(day),
                    doctor="Dr. Ana Silva",
                    diagnosis=diagnosis,
                    notes="",
                )
            )
        await session.commit()
    return seed_patient
