"""Transfer Routes — move funds between two existing accounts."""

from fastapi import APIRouter, Depends

from balance_service.api.deps import get_ledger_engine
from balance_service.core.domain_types import OwnerId
from balance_service.core.money import MoneyAmount
from balance_service.schemas.balance import (
    BalanceResponse, TransferCreate, TransferResponse,
)
from balance_service.services.ledger_engine import LedgerEngine

router = APIRouter(prefix="/api/v1/transfers", tags=["transfers"])


@router.post("", response_model=TransferResponse)
async def transfer(
    body: TransferCreate, engine: LedgerEngine = Depends(get_ledger_engine),
):
    """Debit the source and credit the destination atomically."""
    result = await engine.transfer(
        OwnerId(body.from_owner_id),
        OwnerId(body.to_owner_id),
        MoneyAmount.from_display(body.amount),
    )
    return TransferResponse(
        amount=result.amount.to_display(),
        source=BalanceResponse.from_account(result.source),
        destination=BalanceResponse.from_account(result.destination),
    )
