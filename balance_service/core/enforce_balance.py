"""Balance Enforcement — pure rules for crediting, debiting, and authorizing holds.

Invariants:
    - No function here returns a negative balance
    - credit/debit are PURE: they compute the new balance, the shell persists it
    - Holds are soft: authorize_hold checks the balance but moves no funds

Design Decisions:
    - InsufficientFundsError carries available/requested in minor units so the
      boundary can report them without re-reading the account
"""

from balance_service.core.errors import (
    ErrorContext, InsufficientFundsError, InvalidAmountError,
)
from balance_service.core.money import MAX_MINOR_UNITS, MoneyAmount


def credit(balance: MoneyAmount, amount: MoneyAmount) -> MoneyAmount:
    """Return balance + amount, refusing to overflow the storage range."""
    if balance.minor_units + amount.minor_units > MAX_MINOR_UNITS:
        raise InvalidAmountError(
            amount.minor_units, "resulting balance exceeds the supported range",
        )
    return balance + amount


def debit(
    balance: MoneyAmount, amount: MoneyAmount, context: ErrorContext | None = None,
) -> MoneyAmount:
    """Return balance - amount, or raise InsufficientFundsError if negative."""
    if amount > balance:
        raise InsufficientFundsError(
            balance.minor_units, amount.minor_units, context,
        )
    return balance - amount


def authorize_hold(
    balance: MoneyAmount, amount: MoneyAmount, context: ErrorContext | None = None,
) -> None:
    """A hold is authorized when the current balance covers its amount."""
    if balance < amount:
        raise InsufficientFundsError(
            balance.minor_units, amount.minor_units, context,
        )
