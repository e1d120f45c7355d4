"""API test fixtures — FastAPI app wired to a per-test SQLite session manager.

Invariants:
    - app.state.db_manager replaced for each test and removed afterwards
    - Lifespan is not run by ASGITransport, so no real database is touched
"""

import pytest
from httpx import ASGITransport, AsyncClient

from balance_service.infrastructure.database import DatabaseSessionManager
from balance_service.main import app


@pytest.fixture
async def db_manager(tmp_path):
    manager = DatabaseSessionManager(
        f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        retry_base_delay_ms=1,
    )
    await manager.create_schema()
    yield manager
    await manager.dispose()


@pytest.fixture
async def client(db_manager):
    """FastAPI test client with the session manager overridden."""
    app.state.db_manager = db_manager
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as c:
        yield c
    del app.state.db_manager
