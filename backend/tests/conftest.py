"""Shared fixtures for the ViolationLedger test suite."""

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from violation_ledger.database import Base
import violation_ledger.models  # noqa: F401
from violation_ledger.models.enums import UserRole
from violation_ledger.services.identity import Actor
from violation_ledger.services.subscriptions import ChangeFeed


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    """Session factory bound to a fresh SQLite database file with all tables."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/ledger.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def guard():
    return Actor(uid="guard-1", role=UserRole.GUARD)


@pytest.fixture
def fixed_now():
    return datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_record():
    """Factory for plain stand-ins of loaded violations, for pure-logic tests."""

    def _make(**overrides):
        values = {
            "id": uuid.uuid4(),
            "plate_number": "KDA 123A",
            "location": "Gate A",
            "status": "pending",
            "detected_at": datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc) - timedelta(minutes=5),
            "warning_sent_at": None,
            "escalated_at": None,
            "resolved_at": None,
            "host_name": None,
        }
        values.update(overrides)
        return SimpleNamespace(**values)

    return _make
