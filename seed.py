"""Seed the database with 10 patients and their consultations. No-op when already seeded."""

from __future__ import annotations

import asyncio

from clinic.database import async_session, engine
from clinic.models.orm import Base
from clinic.services.seed_service import seed_database


async def main() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        result = await seed_database(session)

    print(f"{result.message} ({result.patients_inserted} patients inserted).")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
