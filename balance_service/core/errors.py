"""Error Hierarchy — typed, categorized exceptions for every ledger failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (4xx) are caller-recoverable; infrastructure errors (5xx) are not
    - to_response() produces the REST envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with LedgerError base: FastAPI global handler catches all
    - InsufficientFunds and Conflict use distinct status codes (422 / 409) so callers
      can tell "retry later with another amount" from "retry with a fresh read"
    - ErrorContext as dataclass: rich observability without coupling to logging
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    owner_id: str | None = None
    operation: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class LedgerError(Exception):
    """Base exception for all balance service errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "owner_id": self.context.owner_id,
                    "operation": self.context.operation,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class InvalidAmountError(LedgerError):
    """Monetary value is non-positive, unparseable, or out of range."""
    def __init__(self, value: object, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid amount {value!r}: {reason}",
            "INVALID_AMOUNT", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.value = value
        self.reason = reason


class ResourceNotFoundError(LedgerError):
    """Account, hold, or transfer destination does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class InsufficientFundsError(LedgerError):
    """Operation would drive a balance negative or a hold exceeds the balance."""
    def __init__(
        self, available: int, requested: int, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Insufficient funds: {requested} requested, {available} available (minor units)",
            "INSUFFICIENT_FUNDS", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 422,
        )
        self.available = available
        self.requested = requested


class ConflictError(LedgerError):
    """Duplicate record or concurrent modification detected."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class InvalidHoldTransitionError(LedgerError):
    """Hold asked to leave a terminal state."""
    def __init__(self, current: str, target: str, context: ErrorContext | None = None):
        super().__init__(
            f"Hold cannot move from {current} to {target}",
            "INVALID_HOLD_TRANSITION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.current = current
        self.target = target


# ─── Infrastructure Errors (500-level) ──────────────────────────

class LedgerTimeoutError(LedgerError):
    """Atomic session exceeded its time bound (lock wait or total duration)."""
    def __init__(self, operation: str, timeout_seconds: float, context: ErrorContext | None = None):
        super().__init__(
            f"{operation} exceeded {timeout_seconds}s",
            "TIMEOUT", ErrorCategory.TIMEOUT,
            ErrorSeverity.CRITICAL, context, 504,
        )
        self.operation = operation
        self.timeout_seconds = timeout_seconds


class StoreUnavailableError(LedgerError):
    """Database operation failed for infrastructure reasons."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "STORE_UNAVAILABLE", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
