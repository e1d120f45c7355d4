"""Account Store — SQLAlchemy implementation of the AccountStore protocol.

Invariants:
    - get_for_update takes the row lock (FOR UPDATE) held until the session ends
    - create raises ConflictError when the owner already has an account
    - update_balance refreshes updated_at and returns the new snapshot

Design Decisions:
    - FOR UPDATE is a no-op on SQLite; there the session's BEGIN IMMEDIATE
      already serializes writers
    - Rows never leave this module: _to_entity copies them into frozen Accounts
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from balance_service.core.domain_types import Account, OwnerId
from balance_service.core.errors import (
    ConflictError, ErrorContext, ResourceNotFoundError,
)
from balance_service.core.money import MoneyAmount
from balance_service.models.account import AccountRow

logger = logging.getLogger(__name__)


def _to_entity(row: AccountRow) -> Account:
    return Account(
        id=row.id,
        owner_id=OwnerId(row.owner_id),
        balance=MoneyAmount(row.balance),
        updated_at=row.updated_at,
    )


class SqlAlchemyAccountStore:
    """Accounts table access bound to one AsyncSession."""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def get(self, owner_id: OwnerId) -> Account | None:
        row = await self._select(owner_id, lock=False)
        return _to_entity(row) if row else None

    async def get_for_update(self, owner_id: OwnerId) -> Account | None:
        row = await self._select(owner_id, lock=True)
        return _to_entity(row) if row else None

    async def create(self, account: Account) -> Account:
        row = AccountRow(
            id=account.id,
            owner_id=account.owner_id,
            balance=account.balance.minor_units,
            updated_at=account.updated_at,
        )
        self._db.add(row)
        try:
            await self._db.flush()
        except IntegrityError:
            logger.warning(
                "Account already exists", extra={"owner_id": str(account.owner_id)},
            )
            raise ConflictError(
                f"Account for owner '{account.owner_id}' already exists",
                ErrorContext(owner_id=str(account.owner_id), operation="create_account"),
            )
        return _to_entity(row)

    async def update_balance(
        self, owner_id: OwnerId, new_balance: MoneyAmount,
    ) -> Account:
        row = await self._select(owner_id, lock=True)
        if row is None:
            raise ResourceNotFoundError("Account", str(owner_id))
        row.balance = new_balance.minor_units
        row.updated_at = datetime.now(timezone.utc)
        await self._db.flush()
        return _to_entity(row)

    async def delete(self, owner_id: OwnerId) -> None:
        result = await self._db.execute(
            delete(AccountRow).where(AccountRow.owner_id == owner_id),
        )
        if result.rowcount == 0:
            raise ResourceNotFoundError("Account", str(owner_id))

    async def _select(self, owner_id: OwnerId, lock: bool) -> AccountRow | None:
        query = (
            select(AccountRow)
            .where(AccountRow.owner_id == owner_id)
            .execution_options(populate_existing=True)
        )
        if lock:
            query = query.with_for_update()
        result = await self._db.execute(query)
        return result.scalar_one_or_none()
