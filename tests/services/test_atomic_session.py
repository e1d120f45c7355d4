"""Atomic Session — commit/abort guarantees, timeouts, and error mapping.

Tests cover:
    - Writes commit together on clean exit
    - Any exception in the body rolls back every write
    - Uncommitted writes are invisible to other sessions
    - A session exceeding its bound raises LedgerTimeoutError and writes nothing
    - A failing second transfer leg rolls back the first
    - Unreachable databases surface StoreUnavailableError after bounded retries
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone

import pytest

from balance_service.core.domain_types import Account, OwnerId, SessionMode
from balance_service.core.errors import (
    ConflictError, LedgerTimeoutError, StoreUnavailableError,
)
from balance_service.core.money import MoneyAmount
from balance_service.infrastructure.account_store import SqlAlchemyAccountStore
from balance_service.infrastructure.database import DatabaseSessionManager


def _account(owner_id: OwnerId, minor: int) -> Account:
    return Account(
        id=uuid.uuid4(),
        owner_id=owner_id,
        balance=MoneyAmount(minor),
        updated_at=datetime.now(timezone.utc),
    )


async def _read(db_manager, owner_id):
    async with db_manager.begin(mode=SessionMode.READ_ONLY) as tx:
        return await tx.accounts.get(owner_id)


async def test_clean_exit_commits(db_manager, owner, other_owner):
    async with db_manager.begin(operation="test") as tx:
        await tx.accounts.create(_account(owner, 100))
        await tx.accounts.create(_account(other_owner, 200))

    assert (await _read(db_manager, owner)).balance.minor_units == 100
    assert (await _read(db_manager, other_owner)).balance.minor_units == 200


async def test_exception_rolls_back_all_writes(db_manager, owner, other_owner):
    with pytest.raises(RuntimeError):
        async with db_manager.begin(operation="test") as tx:
            await tx.accounts.create(_account(owner, 100))
            await tx.accounts.create(_account(other_owner, 200))
            raise RuntimeError("boom")

    assert await _read(db_manager, owner) is None
    assert await _read(db_manager, other_owner) is None


async def test_uncommitted_writes_not_visible(db_manager, owner):
    async with db_manager.begin(operation="writer") as tx:
        await tx.accounts.create(_account(owner, 100))
        assert await _read(db_manager, owner) is None

    assert await _read(db_manager, owner) is not None


async def test_duplicate_account_raises_conflict_and_rolls_back(db_manager, owner):
    async with db_manager.begin() as tx:
        await tx.accounts.create(_account(owner, 100))

    with pytest.raises(ConflictError):
        async with db_manager.begin() as tx:
            await tx.accounts.update_balance(owner, MoneyAmount(999))
            await tx.accounts.create(_account(owner, 5))

    assert (await _read(db_manager, owner)).balance.minor_units == 100


async def test_session_timeout_aborts(tmp_path, owner):
    manager = DatabaseSessionManager(
        f"sqlite+aiosqlite:///{tmp_path / 'timeout.db'}",
        session_timeout_seconds=0.2,
    )
    await manager.create_schema()
    try:
        with pytest.raises(LedgerTimeoutError) as exc:
            async with manager.begin(operation="slow") as tx:
                await tx.accounts.create(_account(owner, 100))
                await asyncio.sleep(5)
        assert exc.value.operation == "slow"
        assert exc.value.http_status == 504
        assert await _read(manager, owner) is None
    finally:
        await manager.dispose()


async def test_failed_credit_leg_rolls_back_debit(ledger, db_manager, owner, other_owner, monkeypatch):
    await ledger.deposit(owner, MoneyAmount(7000))
    await ledger.deposit(other_owner, MoneyAmount(100))

    original = SqlAlchemyAccountStore.update_balance

    async def failing_update(self, owner_id, new_balance):
        if owner_id == other_owner:
            raise StoreUnavailableError("connection lost", "execute")
        return await original(self, owner_id, new_balance)

    monkeypatch.setattr(SqlAlchemyAccountStore, "update_balance", failing_update)

    with pytest.raises(StoreUnavailableError):
        await ledger.transfer(owner, other_owner, MoneyAmount(2000))

    monkeypatch.undo()
    assert (await ledger.get_balance(owner)).balance.minor_units == 7000
    assert (await ledger.get_balance(other_owner)).balance.minor_units == 100


async def test_unreachable_database_retries_then_fails(tmp_path, caplog):
    manager = DatabaseSessionManager(
        f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'ledger.db'}",
        acquire_retries=2,
        retry_base_delay_ms=1,
        retry_max_delay_ms=2,
    )
    try:
        with caplog.at_level(logging.WARNING, logger="balance_service.infrastructure.database"):
            with pytest.raises(StoreUnavailableError) as exc:
                async with manager.begin(operation="deposit"):
                    pass
        assert exc.value.operation == "acquire"
        retries = [r for r in caplog.records if "retry after" in r.getMessage()]
        assert len(retries) == 2
    finally:
        await manager.dispose()


async def test_health_check(db_manager, tmp_path):
    assert await db_manager.health_check() is True

    broken = DatabaseSessionManager(
        f"sqlite+aiosqlite:///{tmp_path / 'nope' / 'x.db'}",
        acquire_retries=0,
    )
    try:
        assert await broken.health_check() is False
    finally:
        await broken.dispose()
