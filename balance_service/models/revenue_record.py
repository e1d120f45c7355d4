"""RevenueRecord ORM — append-only realized revenue per settled order.

Invariants:
    - (service_id, order_id) is unique: an order is settled at most once
    - Rows are never updated or deleted by the service

Design Decisions:
    - The unique constraint is a second idempotency guard, independent of the
      engine's own exists() check
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from balance_service.db.base import Base


class RevenueRecordRow(Base):
    """Revenue entity — one settled order."""
    __tablename__ = "revenue_records"
    __table_args__ = (
        UniqueConstraint(
            "service_id", "order_id", name="uq_revenue_records_service_order",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    service_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    order_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    settled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
