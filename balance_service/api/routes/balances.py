"""Balance Routes — read a balance, deposit to it, or debit from it.

Invariants:
    - POST /balances applies exactly one of deposit / debit (schema-enforced)
    - Amounts parsed once with MoneyAmount.from_display
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from balance_service.api.deps import get_ledger_engine
from balance_service.core.domain_types import OwnerId
from balance_service.core.money import MoneyAmount
from balance_service.schemas.balance import (
    BalanceChange, BalanceResponse, RevenueResponse,
)
from balance_service.services.ledger_engine import LedgerEngine

router = APIRouter(prefix="/api/v1/balances", tags=["balances"])


@router.get("/{owner_id}", response_model=BalanceResponse)
async def get_balance(
    owner_id: UUID, engine: LedgerEngine = Depends(get_ledger_engine),
):
    """Current balance of an owner."""
    account = await engine.get_balance(OwnerId(owner_id))
    return BalanceResponse.from_account(account)


@router.post("", response_model=BalanceResponse)
async def change_balance(
    body: BalanceChange, engine: LedgerEngine = Depends(get_ledger_engine),
):
    """Deposit to or debit from an owner's balance."""
    owner_id = OwnerId(body.owner_id)
    if body.deposit is not None:
        account = await engine.deposit(owner_id, MoneyAmount.from_display(body.deposit))
    else:
        account = await engine.debit(owner_id, MoneyAmount.from_display(body.debit))
    return BalanceResponse.from_account(account)


@router.get("/{owner_id}/revenue", response_model=list[RevenueResponse])
async def list_revenue(
    owner_id: UUID, engine: LedgerEngine = Depends(get_ledger_engine),
):
    """Revenue records settled against an owner, oldest first."""
    records = await engine.list_revenue(OwnerId(owner_id))
    return [RevenueResponse.from_record(r) for r in records]
