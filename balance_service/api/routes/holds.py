"""Hold Routes — place, cancel, and settle holds.

Invariants:
    - POST /holds returns the hold_id the caller needs for cancellation
    - POST /revenue settles by (owner, service, order, sum), not by hold_id
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from balance_service.api.deps import get_ledger_engine
from balance_service.core.domain_types import HoldId, OrderId, OwnerId, ServiceId
from balance_service.core.money import MoneyAmount
from balance_service.schemas.balance import (
    HoldCreate, HoldResponse, RevenueCreate, RevenueResponse,
)
from balance_service.services.ledger_engine import LedgerEngine

router = APIRouter(prefix="/api/v1", tags=["holds"])


@router.post(
    "/holds", response_model=HoldResponse, status_code=status.HTTP_201_CREATED,
)
async def place_hold(
    body: HoldCreate, engine: LedgerEngine = Depends(get_ledger_engine),
):
    """Reserve a price against an owner's balance for an order."""
    hold = await engine.place_hold(
        OwnerId(body.owner_id),
        ServiceId(body.service_id),
        OrderId(body.order_id),
        MoneyAmount.from_display(body.price),
    )
    return HoldResponse.from_hold(hold)


@router.delete("/holds/{hold_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_hold(
    hold_id: UUID, engine: LedgerEngine = Depends(get_ledger_engine),
):
    """Discard a hold without touching the balance."""
    await engine.cancel_hold(HoldId(hold_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/revenue", response_model=RevenueResponse, status_code=status.HTTP_201_CREATED,
)
async def settle_hold(
    body: RevenueCreate, engine: LedgerEngine = Depends(get_ledger_engine),
):
    """Settle the matching hold: debit the owner and record revenue."""
    record = await engine.settle_hold(
        OwnerId(body.owner_id),
        ServiceId(body.service_id),
        OrderId(body.order_id),
        MoneyAmount.from_display(body.sum),
    )
    return RevenueResponse.from_record(record)
