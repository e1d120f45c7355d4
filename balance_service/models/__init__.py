"""ORM Models — SQLAlchemy declarative models for the three ledger collections.

Invariants:
    - All models inherit from Base (db/base.py)
    - accounts, holds, revenue_records is the complete durable state

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all
      or Alembic autogenerate runs
"""

from balance_service.models.account import AccountRow  # noqa: F401
from balance_service.models.hold import HoldRow  # noqa: F401
from balance_service.models.revenue_record import RevenueRecordRow  # noqa: F401
