"""Ledger Engine — end-to-end scenarios against a real SQLite database.

Tests cover:
    - Deposit creates an account on first use, then credits it
    - Debit never drives a balance negative
    - PlaceHold authorizes without moving funds
    - SettleHold debits once, records revenue once, drains duplicate holds
    - Repeated settlement fails without a second debit or revenue record
    - CancelHold deletes the hold and leaves the balance alone
    - Transfer conserves money and never auto-creates the destination
    - Non-positive amounts are rejected before any session opens
"""

import dataclasses
import uuid

import pytest

from balance_service.core.domain_types import HoldId, HoldState, OrderId, ServiceId
from balance_service.core.errors import (
    ConflictError, InsufficientFundsError, InvalidAmountError,
    InvalidHoldTransitionError, ResourceNotFoundError,
)
from balance_service.core.money import MoneyAmount
from balance_service.infrastructure.hold_store import SqlAlchemyHoldStore


def money(display: str) -> MoneyAmount:
    return MoneyAmount.from_display(display)


@pytest.fixture
def service():
    return ServiceId(uuid.uuid4())


@pytest.fixture
def order():
    return OrderId(uuid.uuid4())


async def _balance(ledger, owner_id) -> int:
    return (await ledger.get_balance(owner_id)).balance.minor_units


# ─── Deposit / Debit ─────────────────────────────────────────────

async def test_deposit_creates_missing_account(ledger, owner):
    account = await ledger.deposit(owner, money("100.00"))
    assert account.owner_id == owner
    assert account.balance.minor_units == 10000
    assert await _balance(ledger, owner) == 10000


async def test_deposit_credits_existing_account(ledger, owner):
    await ledger.deposit(owner, money("100.00"))
    account = await ledger.deposit(owner, money("0.50"))
    assert account.balance.minor_units == 10050


async def test_deposit_is_not_idempotent(ledger, owner):
    await ledger.deposit(owner, money("10.00"))
    await ledger.deposit(owner, money("10.00"))
    assert await _balance(ledger, owner) == 2000


async def test_debit_then_insufficient_funds_leaves_balance(ledger, owner):
    await ledger.deposit(owner, money("100.00"))
    account = await ledger.debit(owner, money("30.00"))
    assert account.balance.minor_units == 7000

    with pytest.raises(InsufficientFundsError):
        await ledger.debit(owner, money("100.00"))
    assert await _balance(ledger, owner) == 7000


async def test_debit_to_exactly_zero(ledger, owner):
    await ledger.deposit(owner, money("5.00"))
    account = await ledger.debit(owner, money("5.00"))
    assert account.balance.is_zero()


async def test_debit_unknown_account_not_found(ledger, owner):
    with pytest.raises(ResourceNotFoundError):
        await ledger.debit(owner, money("1.00"))


async def test_get_balance_unknown_account_not_found(ledger, owner):
    with pytest.raises(ResourceNotFoundError) as exc:
        await ledger.get_balance(owner)
    assert exc.value.resource_type == "Account"


@pytest.mark.parametrize("operation", ["deposit", "debit"])
async def test_zero_amount_rejected(ledger, owner, operation):
    with pytest.raises(InvalidAmountError):
        await getattr(ledger, operation)(owner, MoneyAmount.zero())


# ─── Holds ───────────────────────────────────────────────────────

async def test_place_hold_does_not_move_funds(ledger, owner, service, order):
    await ledger.deposit(owner, money("70.00"))
    hold = await ledger.place_hold(owner, service, order, money("50.00"))

    assert hold.owner_id == owner
    assert hold.service_id == service
    assert hold.order_id == order
    assert hold.amount.minor_units == 5000
    assert hold.hold_id != hold.id
    assert await _balance(ledger, owner) == 7000


async def test_place_hold_exceeding_balance_rejected(ledger, owner, service, order):
    await ledger.deposit(owner, money("10.00"))
    with pytest.raises(InsufficientFundsError):
        await ledger.place_hold(owner, service, order, money("10.01"))


async def test_place_hold_unknown_account_not_found(ledger, owner, service, order):
    with pytest.raises(ResourceNotFoundError):
        await ledger.place_hold(owner, service, order, money("1.00"))


async def test_soft_holds_may_jointly_exceed_balance(ledger, owner, service):
    await ledger.deposit(owner, money("70.00"))
    await ledger.place_hold(owner, service, OrderId(uuid.uuid4()), money("50.00"))
    await ledger.place_hold(owner, service, OrderId(uuid.uuid4()), money("50.00"))
    assert await _balance(ledger, owner) == 7000


async def test_settle_hold_debits_and_records_revenue(ledger, owner, service, order):
    await ledger.deposit(owner, money("100.00"))
    await ledger.debit(owner, money("30.00"))
    await ledger.place_hold(owner, service, order, money("50.00"))

    record = await ledger.settle_hold(owner, service, order, money("50.00"))

    assert record.owner_id == owner
    assert record.service_id == service
    assert record.order_id == order
    assert record.amount.minor_units == 5000
    assert await _balance(ledger, owner) == 2000


async def test_repeated_settlement_fails_without_second_debit(ledger, owner, service, order):
    await ledger.deposit(owner, money("70.00"))
    await ledger.place_hold(owner, service, order, money("50.00"))
    await ledger.settle_hold(owner, service, order, money("50.00"))

    with pytest.raises(ResourceNotFoundError):
        await ledger.settle_hold(owner, service, order, money("50.00"))

    assert await _balance(ledger, owner) == 2000
    assert len(await ledger.list_revenue(owner)) == 1


async def test_settlement_of_already_settled_order_conflicts(ledger, owner, service, order):
    await ledger.deposit(owner, money("100.00"))
    await ledger.place_hold(owner, service, order, money("10.00"))
    await ledger.settle_hold(owner, service, order, money("10.00"))
    await ledger.place_hold(owner, service, order, money("10.00"))

    with pytest.raises(ConflictError):
        await ledger.settle_hold(owner, service, order, money("10.00"))

    assert await _balance(ledger, owner) == 9000
    assert len(await ledger.list_revenue(owner)) == 1


async def test_settlement_drains_duplicate_holds_with_one_revenue(ledger, owner, service, order):
    await ledger.deposit(owner, money("100.00"))
    first = await ledger.place_hold(owner, service, order, money("25.00"))
    second = await ledger.place_hold(owner, service, order, money("25.00"))

    await ledger.settle_hold(owner, service, order, money("25.00"))

    assert await _balance(ledger, owner) == 7500
    assert len(await ledger.list_revenue(owner)) == 1
    for hold in (first, second):
        with pytest.raises(ResourceNotFoundError):
            await ledger.cancel_hold(hold.hold_id)


async def test_settlement_ignores_holds_with_other_amount(ledger, owner, service, order):
    await ledger.deposit(owner, money("100.00"))
    other = await ledger.place_hold(owner, service, order, money("30.00"))
    await ledger.place_hold(owner, service, order, money("20.00"))

    await ledger.settle_hold(owner, service, order, money("20.00"))

    assert await _balance(ledger, owner) == 8000
    cancelled = await ledger.cancel_hold(other.hold_id)
    assert cancelled.amount.minor_units == 3000


async def test_settlement_fails_when_balance_moved_below_hold(ledger, owner, service, order):
    await ledger.deposit(owner, money("50.00"))
    hold = await ledger.place_hold(owner, service, order, money("50.00"))
    await ledger.debit(owner, money("10.00"))

    with pytest.raises(InsufficientFundsError):
        await ledger.settle_hold(owner, service, order, money("50.00"))

    assert await _balance(ledger, owner) == 4000
    assert await ledger.list_revenue(owner) == []
    # the hold survived the aborted settlement
    assert (await ledger.cancel_hold(hold.hold_id)).hold_id == hold.hold_id


async def test_settle_without_hold_not_found(ledger, owner, service, order):
    await ledger.deposit(owner, money("50.00"))
    with pytest.raises(ResourceNotFoundError) as exc:
        await ledger.settle_hold(owner, service, order, money("5.00"))
    assert exc.value.resource_type == "Hold"


async def test_cancel_hold_has_no_balance_effect(ledger, owner, service, order):
    await ledger.deposit(owner, money("70.00"))
    hold = await ledger.place_hold(owner, service, order, money("50.00"))

    cancelled = await ledger.cancel_hold(hold.hold_id)

    assert cancelled.hold_id == hold.hold_id
    assert hold.state is HoldState.PLACED
    assert cancelled.state is HoldState.CANCELLED
    assert await _balance(ledger, owner) == 7000
    with pytest.raises(ResourceNotFoundError):
        await ledger.settle_hold(owner, service, order, money("50.00"))


async def test_cancel_unknown_hold_not_found(ledger):
    with pytest.raises(ResourceNotFoundError):
        await ledger.cancel_hold(HoldId(uuid.uuid4()))


# ─── Transfer ────────────────────────────────────────────────────

async def test_transfer_moves_funds_and_conserves_total(ledger, owner, other_owner):
    await ledger.deposit(owner, money("70.00"))
    await ledger.deposit(other_owner, money("1.00"))

    result = await ledger.transfer(owner, other_owner, money("20.00"))

    assert result.source.balance.minor_units == 5000
    assert result.destination.balance.minor_units == 2100
    assert await _balance(ledger, owner) + await _balance(ledger, other_owner) == 7100


async def test_transfer_to_missing_destination_changes_nothing(ledger, owner, other_owner):
    await ledger.deposit(owner, money("70.00"))

    with pytest.raises(ResourceNotFoundError) as exc:
        await ledger.transfer(owner, other_owner, money("20.00"))

    assert exc.value.resource_id == str(other_owner)
    assert await _balance(ledger, owner) == 7000
    with pytest.raises(ResourceNotFoundError):
        await ledger.get_balance(other_owner)


async def test_transfer_with_insufficient_funds_changes_nothing(ledger, owner, other_owner):
    await ledger.deposit(owner, money("10.00"))
    await ledger.deposit(other_owner, money("10.00"))

    with pytest.raises(InsufficientFundsError):
        await ledger.transfer(owner, other_owner, money("10.01"))

    assert await _balance(ledger, owner) == 1000
    assert await _balance(ledger, other_owner) == 1000


async def test_transfer_from_missing_source_not_found(ledger, owner, other_owner):
    await ledger.deposit(other_owner, money("10.00"))
    with pytest.raises(ResourceNotFoundError):
        await ledger.transfer(owner, other_owner, money("1.00"))
    assert await _balance(ledger, other_owner) == 1000


async def test_transfer_to_self_leaves_balance(ledger, owner):
    await ledger.deposit(owner, money("10.00"))
    result = await ledger.transfer(owner, owner, money("4.00"))
    assert result.source.balance.minor_units == 1000
    assert await _balance(ledger, owner) == 1000


async def test_transfer_zero_amount_rejected(ledger, owner, other_owner):
    with pytest.raises(InvalidAmountError):
        await ledger.transfer(owner, other_owner, MoneyAmount.zero())


# ─── Hold state machine ──────────────────────────────────────────

@pytest.fixture
def holds_loaded_as(monkeypatch):
    """Make the hold store hand back holds already in the given state."""
    def patch(state):
        get, find_matching = SqlAlchemyHoldStore.get, SqlAlchemyHoldStore.find_matching

        async def get_in_state(self, hold_id):
            hold = await get(self, hold_id)
            return hold and dataclasses.replace(hold, state=state)

        async def find_in_state(self, *args):
            return [dataclasses.replace(h, state=state) for h in await find_matching(self, *args)]

        monkeypatch.setattr(SqlAlchemyHoldStore, "get", get_in_state)
        monkeypatch.setattr(SqlAlchemyHoldStore, "find_matching", find_in_state)
    return patch


@pytest.mark.parametrize("state", [HoldState.SETTLED, HoldState.CANCELLED])
async def test_cancel_rejects_terminal_hold(ledger, owner, service, order, holds_loaded_as, state):
    await ledger.deposit(owner, money("20.00"))
    hold = await ledger.place_hold(owner, service, order, money("20.00"))
    holds_loaded_as(state)

    with pytest.raises(InvalidHoldTransitionError) as exc:
        await ledger.cancel_hold(hold.hold_id)

    assert exc.value.code == "INVALID_HOLD_TRANSITION"
    assert await _balance(ledger, owner) == 2000


async def test_settle_rejects_terminal_hold_without_side_effects(
    ledger, owner, service, order, holds_loaded_as,
):
    await ledger.deposit(owner, money("20.00"))
    hold = await ledger.place_hold(owner, service, order, money("20.00"))
    holds_loaded_as(HoldState.SETTLED)

    with pytest.raises(InvalidHoldTransitionError):
        await ledger.settle_hold(owner, service, order, money("20.00"))

    assert await _balance(ledger, owner) == 2000
    assert await ledger.list_revenue(owner) == []
    # the aborted session left the hold in place
    holds_loaded_as(HoldState.PLACED)
    assert (await ledger.cancel_hold(hold.hold_id)).hold_id == hold.hold_id
