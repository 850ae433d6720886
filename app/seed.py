"""
Seed script: populates the database with sample donors for development / demo.

Usage:
    python -m app.seed

Idempotent: a donor whose phone number already exists is skipped.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from app.core.logging import setup_logging
from app.db.session import AsyncSessionLocal, engine
from app.models.donor import Donor
from app.repositories.donor_repo import DonorRepository

logger = logging.getLogger(__name__)


def sample_donors() -> List[Donor]:
    """Fresh, unsaved sample donors spread over a few signup days."""
    return [
        Donor(
            full_name="Ada Lovelace",
            phone="5551234567",
            email="ada@example.org",
            blood_group="O+",
            address="12 St James's Square, London",
            segment="individual",
            category="recurring",
            created_at=datetime(2026, 1, 5, 9, 15, tzinfo=timezone.utc),
        ),
        Donor(
            full_name="Analytical Engines Ltd",
            phone="5559876543",
            email="giving@analytical-engines.example.com",
            segment="corporate",
            category="major",
            created_at=datetime(2026, 1, 5, 16, 40, tzinfo=timezone.utc),
        ),
        Donor(
            full_name="Babbage Foundation",
            phone="5550001111",
            email="grants@babbage-foundation.example.org",
            address="1 Dorset Street, London",
            segment="foundation",
            category="VIP",
            created_at=datetime(2026, 1, 12, 11, 0, tzinfo=timezone.utc),
        ),
        Donor(
            full_name="Mary Somerville",
            phone="5552223333",
            blood_group="A-",
            segment="individual",
            created_at=datetime(2026, 1, 20, 8, 30, tzinfo=timezone.utc),
        ),
        Donor(
            full_name="Grace Hopper",
            phone="5554445555",
            email="grace@example.org",
            blood_group="B+",
            created_at=datetime(2026, 2, 2, 14, 5, tzinfo=timezone.utc),
        ),
    ]


async def seed_donors(session: AsyncSession) -> int:
    """Insert every sample donor whose phone is not taken yet.  Returns the number inserted."""
    repo = DonorRepository(Donor, session)
    inserted = 0
    for donor in sample_donors():
        if donor.phone and await repo.find_by_phone(donor.phone):
            logger.info("Skipping %s, phone %s already present", donor.full_name, donor.phone)
            continue
        session.add(donor)
        inserted += 1
    await session.commit()
    return inserted


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    async with AsyncSessionLocal() as session:
        inserted = await seed_donors(session)

    logger.info("Seed complete: %d donor(s) inserted", inserted)
    await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed())
