"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Minimal environment so Settings() validates during import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RPC_URL", "http://localhost:8545")
os.environ.setdefault("LOG_FILE", "")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402

from app.config.database import create_session_maker  # noqa: E402
from app.models import Base  # noqa: E402
from app.services.event_sync import build_event_sources  # noqa: E402
from app.services.notifier import RealtimeNotifier  # noqa: E402
from tests.factories import CONTENT_ADDRESS, MARKETPLACE_ADDRESS  # noqa: E402


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Temp-file SQLite engine with all tables created.

    A file database on the default pool gives each concurrent session its own
    connection (a shared StaticPool connection lets sessions clobber each other).
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session factory bound to the test engine."""
    return create_session_maker(engine)


@pytest.fixture
def notifier():
    """Notifier with no subscribers."""
    return RealtimeNotifier()


@pytest.fixture
def sources():
    """Tracked event types."""
    return build_event_sources(CONTENT_ADDRESS, MARKETPLACE_ADDRESS)


@pytest.fixture
def mock_chain():
    """Mock ChainClient with no logs, head at block 0 and derived block times."""
    chain = MagicMock()
    chain.get_block_number = AsyncMock(return_value=0)
    chain.get_event_logs = AsyncMock(return_value=[])
    chain.get_block_timestamp = AsyncMock(side_effect=lambda number: 1_600_000_000 + number)
    chain.read_contract = AsyncMock()
    return chain
