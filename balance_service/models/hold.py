"""Hold ORM — persists a reservation placed against an owner's account.

Invariants:
    - hold_id is unique: it is the token handed back to the caller
    - amount > 0 (CHECK), in minor units
    - Rows exist only while the hold is PLACED; settle and cancel delete them

Design Decisions:
    - No foreign key to accounts: holds reference owners, and an owner's account is
      locked (not joined) when a hold is settled
    - Composite index on the settlement lookup key (owner, service, order, amount)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from balance_service.db.base import Base


class HoldRow(Base):
    """Hold entity — soft authorization of an amount for an order."""
    __tablename__ = "holds"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_holds_amount_positive"),
        Index(
            "ix_holds_settlement_key",
            "owner_id", "service_id", "order_id", "amount",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    hold_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, nullable=False, unique=True,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    service_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    order_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
