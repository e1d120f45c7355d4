"""Service test fixtures — file-backed SQLite session manager and ledger engine.

Invariants:
    - Every test gets a fresh database file under tmp_path
    - Sessions use separate connections, so concurrent operations really
      contend for the SQLite write lock (BEGIN IMMEDIATE)

Design Decisions:
    - File DB over :memory:: an in-memory database is a single shared
      connection, which would hide the isolation the engine relies on
"""

import uuid

import pytest

from balance_service.core.domain_types import OwnerId
from balance_service.infrastructure.database import DatabaseSessionManager
from balance_service.services.ledger_engine import LedgerEngine


@pytest.fixture
async def db_manager(tmp_path):
    manager = DatabaseSessionManager(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        session_timeout_seconds=10.0,
        lock_timeout_ms=10_000,
        retry_base_delay_ms=1,
        retry_max_delay_ms=5,
    )
    await manager.create_schema()
    yield manager
    await manager.dispose()


@pytest.fixture
def ledger(db_manager):
    return LedgerEngine(db_manager)


@pytest.fixture
def owner():
    return OwnerId(uuid.uuid4())


@pytest.fixture
def other_owner():
    return OwnerId(uuid.uuid4())
