"""Root conftest — shared test configuration."""

import os

# Keep imports of balance_service.main from pointing at a real database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("LOG_FORMAT", "text")
