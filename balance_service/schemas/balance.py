"""Balance Schemas — Pydantic models for the HTTP boundary.

Invariants:
    - Monetary fields arrive as display values and are parsed exactly once,
      by MoneyAmount.from_display, into minor units
    - BalanceChange carries exactly one of deposit / debit
    - Responses render amounts with to_display() (two decimal places, as strings)

Design Decisions:
    - Amount fields typed as Decimal | str: JSON numbers keep their textual
      precision instead of passing through float
    - Parsing errors raise InvalidAmountError (400 INVALID_AMOUNT) from the route,
      not a generic validation error, so callers see one error code for bad money
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, model_validator

from balance_service.core.domain_types import Account, Hold, RevenueRecord


DisplayAmount = Decimal | str


class BalanceChange(BaseModel):
    """Deposit xor debit against one owner."""
    owner_id: UUID
    deposit: DisplayAmount | None = None
    debit: DisplayAmount | None = None

    @model_validator(mode="after")
    def check_exactly_one_change(self) -> "BalanceChange":
        if (self.deposit is None) == (self.debit is None):
            raise ValueError("provide exactly one of 'deposit' or 'debit'")
        return self


class HoldCreate(BaseModel):
    owner_id: UUID
    service_id: UUID
    order_id: UUID
    price: DisplayAmount


class RevenueCreate(BaseModel):
    owner_id: UUID
    service_id: UUID
    order_id: UUID
    sum: DisplayAmount


class TransferCreate(BaseModel):
    from_owner_id: UUID
    to_owner_id: UUID
    amount: DisplayAmount


class BalanceResponse(BaseModel):
    owner_id: UUID
    balance: str
    updated_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> "BalanceResponse":
        return cls(
            owner_id=account.owner_id,
            balance=account.balance.to_display(),
            updated_at=account.updated_at,
        )


class HoldResponse(BaseModel):
    hold_id: UUID
    owner_id: UUID
    service_id: UUID
    order_id: UUID
    price: str
    created_at: datetime
    state: str

    @classmethod
    def from_hold(cls, hold: Hold) -> "HoldResponse":
        return cls(
            hold_id=hold.hold_id,
            owner_id=hold.owner_id,
            service_id=hold.service_id,
            order_id=hold.order_id,
            price=hold.amount.to_display(),
            created_at=hold.created_at,
            state=hold.state.value,
        )


class RevenueResponse(BaseModel):
    id: UUID
    owner_id: UUID
    service_id: UUID
    order_id: UUID
    sum: str
    settled_at: datetime

    @classmethod
    def from_record(cls, record: RevenueRecord) -> "RevenueResponse":
        return cls(
            id=record.id,
            owner_id=record.owner_id,
            service_id=record.service_id,
            order_id=record.order_id,
            sum=record.amount.to_display(),
            settled_at=record.settled_at,
        )


class TransferResponse(BaseModel):
    status: str = "ok"
    amount: str
    source: BalanceResponse
    destination: BalanceResponse
