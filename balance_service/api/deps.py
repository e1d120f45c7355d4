"""Request Dependencies — hand the app-owned session manager and engine to routes.

Invariants:
    - No module-level database singleton: everything hangs off app.state,
      set by the lifespan (or by tests)
"""

from fastapi import Request

from balance_service.infrastructure.database import DatabaseSessionManager
from balance_service.services.ledger_engine import LedgerEngine


def get_db_manager(request: Request) -> DatabaseSessionManager | None:
    return getattr(request.app.state, "db_manager", None)


def get_ledger_engine(request: Request) -> LedgerEngine:
    """FastAPI dependency for the ledger engine."""
    manager = get_db_manager(request)
    if manager is None:
        raise RuntimeError("Database not initialized")
    return LedgerEngine(manager)
