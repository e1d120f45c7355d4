"""Ledger Engine — deposit, debit, holds, settlement, and transfer over atomic sessions.

Invariants:
    - Every public operation runs inside exactly ONE atomic session; multi-leg
      operations (transfer, multi-hold settlement) never commit partially
    - Balances are read with get_for_update before they are written, so the
      read-modify-write sequence is serialized per account
    - Balance arithmetic delegates to core/enforce_balance.py (pure)
    - The engine never retries a financial mutation; errors propagate typed
    - Stateless between calls: all state lives in the stores

Design Decisions:
    - Soft holds: place_hold checks the balance but moves no funds; the debit
      happens at settlement against the live balance (see DESIGN.md)
    - Settlement drains every hold matching (owner, service, order, amount), debits
      and records revenue for the oldest only — revenue is one record per order
    - Transfer locks both accounts in owner-id order to avoid lock-order deadlocks
"""

import dataclasses
import logging
import uuid

from balance_service.core.domain_types import (
    Account, Hold, HoldId, HoldState, OrderId, OwnerId, RevenueRecord,
    ServiceId, SessionMode, TransferResult,
)
from balance_service.core.enforce_balance import authorize_hold, credit, debit
from balance_service.core.errors import (
    ConflictError, ErrorContext, InvalidAmountError, ResourceNotFoundError,
)
from balance_service.core.hold_lifecycle import INITIAL_STATE, transition
from balance_service.core.money import MoneyAmount
from balance_service.core.repository_protocols import AtomicSession, SessionProvider

logger = logging.getLogger(__name__)


def _require_positive(amount: MoneyAmount, context: ErrorContext) -> None:
    if not isinstance(amount, MoneyAmount) or amount.is_zero():
        raise InvalidAmountError(amount, "amount must be greater than zero", context)


class LedgerEngine:
    """Business operations of the balance service."""

    def __init__(self, sessions: SessionProvider):
        self._sessions = sessions

    # ─── Reads ───────────────────────────────────────────────────

    async def get_balance(self, owner_id: OwnerId) -> Account:
        """Current account of owner_id, or ResourceNotFoundError."""
        async with self._sessions.begin(
            mode=SessionMode.READ_ONLY, operation="get_balance",
        ) as tx:
            account = await tx.accounts.get(owner_id)
        if account is None:
            raise ResourceNotFoundError("Account", str(owner_id))
        return account

    async def list_revenue(self, owner_id: OwnerId) -> list[RevenueRecord]:
        async with self._sessions.begin(
            mode=SessionMode.READ_ONLY, operation="list_revenue",
        ) as tx:
            return await tx.revenue.list_for_owner(owner_id)

    # ─── Balance mutations ───────────────────────────────────────

    async def deposit(self, owner_id: OwnerId, amount: MoneyAmount) -> Account:
        """Credit owner_id, creating the account on first deposit.

        Not idempotent: a retried call credits twice.
        """
        context = ErrorContext(owner_id=str(owner_id), operation="deposit")
        _require_positive(amount, context)
        async with self._sessions.begin(operation="deposit") as tx:
            account = await self._credit(tx, owner_id, amount, create_missing=True)
        logger.info(
            "Deposit committed",
            extra={
                "owner_id": str(owner_id), "operation": "deposit",
                "amount_minor": amount.minor_units,
            },
        )
        return account

    async def debit(self, owner_id: OwnerId, amount: MoneyAmount) -> Account:
        """Withdraw amount from owner_id; the balance never goes negative."""
        context = ErrorContext(owner_id=str(owner_id), operation="debit")
        _require_positive(amount, context)
        async with self._sessions.begin(operation="debit") as tx:
            account = await self._debit(tx, owner_id, amount, context)
        logger.info(
            "Debit committed",
            extra={
                "owner_id": str(owner_id), "operation": "debit",
                "amount_minor": amount.minor_units,
            },
        )
        return account

    async def transfer(
        self, from_owner_id: OwnerId, to_owner_id: OwnerId, amount: MoneyAmount,
    ) -> TransferResult:
        """Move amount between two existing accounts in one session.

        The destination is never auto-created. If either leg fails the whole
        session aborts and neither balance changes.
        """
        context = ErrorContext(owner_id=str(from_owner_id), operation="transfer")
        _require_positive(amount, context)
        async with self._sessions.begin(operation="transfer") as tx:
            locked: dict[OwnerId, Account | None] = {}
            for owner_id in sorted({from_owner_id, to_owner_id}):
                locked[owner_id] = await tx.accounts.get_for_update(owner_id)
            if locked[to_owner_id] is None:
                raise ResourceNotFoundError("Account", str(to_owner_id), context)
            if locked[from_owner_id] is None:
                raise ResourceNotFoundError("Account", str(from_owner_id), context)

            source = await self._debit(tx, from_owner_id, amount, context)
            destination = await self._credit(tx, to_owner_id, amount, create_missing=False)
        if from_owner_id == to_owner_id:
            source = destination
        logger.info(
            f"Transfer committed to {to_owner_id}",
            extra={
                "owner_id": str(from_owner_id), "operation": "transfer",
                "amount_minor": amount.minor_units,
            },
        )
        return TransferResult(source=source, destination=destination, amount=amount)

    # ─── Holds ───────────────────────────────────────────────────

    async def place_hold(
        self,
        owner_id: OwnerId,
        service_id: ServiceId,
        order_id: OrderId,
        amount: MoneyAmount,
    ) -> Hold:
        """Authorize amount for an order. Checks the balance, moves no funds."""
        context = ErrorContext(owner_id=str(owner_id), operation="place_hold")
        _require_positive(amount, context)
        async with self._sessions.begin(operation="place_hold") as tx:
            account = await tx.accounts.get_for_update(owner_id)
            if account is None:
                raise ResourceNotFoundError("Account", str(owner_id), context)
            authorize_hold(account.balance, amount, context)
            hold = await tx.holds.create(Hold(
                id=uuid.uuid4(),
                hold_id=HoldId(uuid.uuid4()),
                owner_id=owner_id,
                service_id=service_id,
                order_id=order_id,
                amount=amount,
                created_at=tx.now(),
                state=INITIAL_STATE,
            ))
        logger.info(
            f"Hold {hold.state.value}",
            extra={
                "owner_id": str(owner_id), "hold_id": str(hold.hold_id),
                "order_id": str(order_id), "amount_minor": amount.minor_units,
            },
        )
        return hold

    async def settle_hold(
        self,
        owner_id: OwnerId,
        service_id: ServiceId,
        order_id: OrderId,
        amount: MoneyAmount,
    ) -> RevenueRecord:
        """Turn the oldest matching hold into a debit plus one revenue record.

        Other holds with the same (owner, service, order, amount) are drained in
        the same session without producing revenue.
        """
        context = ErrorContext(owner_id=str(owner_id), operation="settle_hold")
        _require_positive(amount, context)
        async with self._sessions.begin(operation="settle_hold") as tx:
            account = await tx.accounts.get_for_update(owner_id)
            if account is None:
                raise ResourceNotFoundError("Account", str(owner_id), context)
            holds = await tx.holds.find_matching(owner_id, service_id, order_id, amount)
            if not holds:
                raise ResourceNotFoundError("Hold", f"{service_id}/{order_id}", context)
            if await tx.revenue.exists(service_id, order_id):
                raise ConflictError(
                    f"Order '{order_id}' of service '{service_id}' is already settled",
                    context,
                )

            settled, *drained = holds
            settled_state = transition(settled.state, HoldState.SETTLED)
            await tx.accounts.update_balance(
                owner_id, debit(account.balance, settled.amount, context),
            )
            await tx.holds.delete_by_id(settled.hold_id)
            for extra in drained:
                transition(extra.state, HoldState.CANCELLED)
                await tx.holds.delete_by_id(extra.hold_id)
            record = await tx.revenue.create(RevenueRecord(
                id=uuid.uuid4(),
                owner_id=owner_id,
                service_id=service_id,
                order_id=order_id,
                amount=settled.amount,
                settled_at=tx.now(),
            ))
        if drained:
            logger.warning(
                f"Settlement drained {len(drained)} duplicate hold(s) without revenue",
                extra={"owner_id": str(owner_id), "order_id": str(order_id)},
            )
        logger.info(
            f"Hold {settled_state.value}",
            extra={
                "owner_id": str(owner_id), "hold_id": str(settled.hold_id),
                "order_id": str(order_id), "amount_minor": settled.amount.minor_units,
            },
        )
        return record

    async def cancel_hold(self, hold_id: HoldId) -> Hold:
        """Discard a hold by its own id. No balance effect."""
        async with self._sessions.begin(operation="cancel_hold") as tx:
            hold = await tx.holds.get(hold_id)
            if hold is None:
                raise ResourceNotFoundError(
                    "Hold", str(hold_id), ErrorContext(operation="cancel_hold"),
                )
            cancelled = dataclasses.replace(
                hold, state=transition(hold.state, HoldState.CANCELLED),
            )
            await tx.holds.delete_by_id(hold_id)
        logger.info(
            f"Hold {cancelled.state.value}",
            extra={"owner_id": str(hold.owner_id), "hold_id": str(hold_id)},
        )
        return cancelled

    # ─── Legs shared by the operations above ─────────────────────

    async def _credit(
        self,
        tx: AtomicSession,
        owner_id: OwnerId,
        amount: MoneyAmount,
        create_missing: bool,
    ) -> Account:
        account = await tx.accounts.get_for_update(owner_id)
        if account is None:
            if not create_missing:
                raise ResourceNotFoundError("Account", str(owner_id))
            return await tx.accounts.create(Account(
                id=uuid.uuid4(),
                owner_id=owner_id,
                balance=amount,
                updated_at=tx.now(),
            ))
        return await tx.accounts.update_balance(owner_id, credit(account.balance, amount))

    async def _debit(
        self,
        tx: AtomicSession,
        owner_id: OwnerId,
        amount: MoneyAmount,
        context: ErrorContext,
    ) -> Account:
        account = await tx.accounts.get_for_update(owner_id)
        if account is None:
            raise ResourceNotFoundError("Account", str(owner_id), context)
        return await tx.accounts.update_balance(
            owner_id, debit(account.balance, amount, context),
        )
