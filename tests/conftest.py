"""
Shared pytest fixtures.

Unit tests run with mocked sessions / repositories.  Repository and
end-to-end tests get a fresh in-memory SQLite database per test, so they
exercise real SQL without any external service.
"""

import os

# Must be set before ``app.core.config`` is imported anywhere.
os.environ["USE_SQLITE"] = "true"
os.environ["LOG_TO_FILE"] = "false"

from datetime import datetime, timezone  # noqa: E402
from typing import Optional  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from app.db.session import build_engine, build_session_factory  # noqa: E402
from app.models.donor import Donor  # noqa: E402

# ────────────────────────────────────────────────────────────────────────────
# Factory helpers
# ────────────────────────────────────────────────────────────────────────────

DONOR_ID = 1
CREATED_AT = datetime(2026, 1, 5, 9, 15, tzinfo=timezone.utc)


def make_donor(
    *,
    id: Optional[int] = DONOR_ID,
    full_name: str = "Ada Lovelace",
    phone: Optional[str] = "5551234567",
    email: Optional[str] = "ada@example.org",
    blood_group: Optional[str] = "O+",
    address: Optional[str] = None,
    segment: Optional[str] = "individual",
    category: Optional[str] = "recurring",
    created_at: Optional[datetime] = None,
    updated_at: Optional[datetime] = None,
) -> Donor:
    """Create a Donor domain object with sensible test defaults."""
    return Donor(
        id=id,
        full_name=full_name,
        phone=phone,
        email=email,
        blood_group=blood_group,
        address=address,
        segment=segment,
        category=category,
        created_at=created_at or CREATED_AT,
        updated_at=updated_at or created_at or CREATED_AT,
    )


# ────────────────────────────────────────────────────────────────────────────
# Pytest fixtures
# ────────────────────────────────────────────────────────────────────────────


@pytest.fixture()
def mock_db():
    """A mocked AsyncSession that tracks add/commit/refresh/rollback calls."""
    session = AsyncMock()
    session.add = MagicMock()
    session.commit = AsyncMock()
    session.refresh = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.merge = AsyncMock()
    session.delete = AsyncMock()
    return session


@pytest.fixture()
def donor_repo():
    """Mocked DonorRepository; uniqueness look-ups find nothing by default."""
    repo = AsyncMock()
    repo.db = AsyncMock()
    repo.find_by_phone.return_value = None
    repo.find_by_email.return_value = None
    return repo


@pytest_asyncio.fixture()
async def sqlite_session_factory():
    """Session factory bound to a brand-new in-memory SQLite database."""
    engine = build_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture()
async def sqlite_session(sqlite_session_factory):
    async with sqlite_session_factory() as session:
        yield session
