"""Fixture seeding endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.database import get_session
from clinic.models.schemas import SeedResponse
from clinic.services.seed_service import seed_database

router = APIRouter(tags=["seed"])


@router.post("/seed", response_model=SeedResponse)
async def seed(session: AsyncSession = Depends(get_session)) -> SeedResponse:
    return await seed_database(session)
