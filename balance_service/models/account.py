"""Account ORM — persists one balance per owner.

Invariants:
    - owner_id is unique: at most one account per owner
    - balance is a count of minor units, BigInteger, CHECK balance >= 0
    - updated_at refreshed on every balance write

Design Decisions:
    - Separate surrogate id and owner_id: owner ids are opaque caller tokens
    - CHECK constraint mirrors the engine rule so a bug cannot commit a negative balance
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from balance_service.db.base import Base


class AccountRow(Base):
    """Account entity — current balance of an owner."""
    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, nullable=False, unique=True, index=True,
    )
    balance: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
