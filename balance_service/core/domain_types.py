"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - OwnerId, ServiceId, OrderId, HoldId wrap UUIDs — never use bare UUID in domain logic
    - All valid states encoded as Enums — no raw string matching
    - Account, Hold, RevenueRecord are immutable snapshots; stores return fresh ones

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and to SQL session options without custom encoders
    - Entities as frozen dataclasses, not ORM rows: the engine never holds a live
      ORM object, so nothing it returns can lazily hit a closed session
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NewType
from uuid import UUID

from balance_service.core.money import MoneyAmount


# ─── Identity Types ──────────────────────────────────────────────

OwnerId = NewType("OwnerId", UUID)
ServiceId = NewType("ServiceId", UUID)
OrderId = NewType("OrderId", UUID)
HoldId = NewType("HoldId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class HoldState(str, Enum):
    """Hold lifecycle states. PLACED is the only initial state."""
    PLACED = "placed"
    SETTLED = "settled"
    CANCELLED = "cancelled"


class SessionMode(str, Enum):
    """Access mode requested when opening an atomic session."""
    READ_ONLY = "read_only"
    READ_WRITE = "read_write"


class IsolationLevel(str, Enum):
    """Transaction isolation levels accepted by the session provider."""
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"


# ─── Entities ────────────────────────────────────────────────────

@dataclass(frozen=True)
class Account:
    """Balance of one owner at the moment it was read."""
    id: UUID
    owner_id: OwnerId
    balance: MoneyAmount
    updated_at: datetime


@dataclass(frozen=True)
class Hold:
    """Authorization that `amount` will be available at settlement time."""
    id: UUID
    hold_id: HoldId
    owner_id: OwnerId
    service_id: ServiceId
    order_id: OrderId
    amount: MoneyAmount
    created_at: datetime
    state: HoldState = HoldState.PLACED


@dataclass(frozen=True)
class RevenueRecord:
    """Realized revenue for one settled order. Append-only."""
    id: UUID
    owner_id: OwnerId
    service_id: ServiceId
    order_id: OrderId
    amount: MoneyAmount
    settled_at: datetime


@dataclass(frozen=True)
class TransferResult:
    """Both sides of a committed transfer."""
    source: Account
    destination: Account
    amount: MoneyAmount
