"""Boundary Protocols — contracts between the ledger engine and the store layer.

Invariants:
    - Core NEVER imports from the shell — dependency arrows point inward only
    - Every store call runs inside an AtomicSession handed out by a SessionProvider
    - Stores return immutable domain entities (core/domain_types.py), never ORM rows

Design Decisions:
    - Protocol over ABC: structural subtyping, the SQLAlchemy stores and test
      doubles satisfy the contract without inheriting from it
    - Stores hang off the session (session.accounts, ...): a store can never be
      used outside the transaction that guards it
    - begin() is an async context manager: commit on clean exit, abort on any
      exception or cancellation, so no caller manages commit/rollback by hand
"""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Protocol

from balance_service.core.domain_types import (
    Account, Hold, HoldId, IsolationLevel, OrderId, OwnerId, RevenueRecord,
    ServiceId, SessionMode,
)
from balance_service.core.money import MoneyAmount


class AccountStore(Protocol):
    """Contract for account persistence."""
    async def get(self, owner_id: OwnerId) -> Account | None: ...
    async def get_for_update(self, owner_id: OwnerId) -> Account | None: ...
    async def create(self, account: Account) -> Account: ...
    async def update_balance(
        self, owner_id: OwnerId, new_balance: MoneyAmount,
    ) -> Account: ...
    async def delete(self, owner_id: OwnerId) -> None: ...


class HoldStore(Protocol):
    """Contract for hold persistence."""
    async def create(self, hold: Hold) -> Hold: ...
    async def get(self, hold_id: HoldId) -> Hold | None: ...
    async def find_matching(
        self,
        owner_id: OwnerId,
        service_id: ServiceId,
        order_id: OrderId,
        amount: MoneyAmount,
    ) -> list[Hold]: ...
    async def delete_by_id(self, hold_id: HoldId) -> None: ...


class RevenueStore(Protocol):
    """Contract for append-only revenue persistence."""
    async def create(self, record: RevenueRecord) -> RevenueRecord: ...
    async def exists(self, service_id: ServiceId, order_id: OrderId) -> bool: ...
    async def list_for_owner(self, owner_id: OwnerId) -> list[RevenueRecord]: ...


class AtomicSession(Protocol):
    """Unit of work: every write through its stores commits or aborts together."""
    accounts: AccountStore
    holds: HoldStore
    revenue: RevenueStore

    def now(self) -> datetime: ...
    async def commit(self) -> None: ...
    async def abort(self) -> None: ...


class SessionProvider(Protocol):
    """Factory for atomic sessions — implemented by infrastructure/database.py."""
    def begin(
        self,
        isolation: IsolationLevel | None = None,
        mode: SessionMode = SessionMode.READ_WRITE,
        operation: str = "unknown",
    ) -> AbstractAsyncContextManager[AtomicSession]: ...
