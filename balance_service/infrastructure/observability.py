"""Ledger Logging — one JSON line per ledger event, keyed by owner, hold, and order.

Invariants:
    - Every line carries timestamp, level, logger name, and message
    - Ledger identifiers (owner_id, hold_id, order_id), the session operation,
      retry attempt, error_code, and amount_minor are emitted only when set
    - Amounts are logged in minor units, never as display strings or floats
    - Driver loggers (sqlalchemy.engine, aiosqlite, asyncpg) stay at WARNING
      so balances never leak through SQL parameter echo

Design Decisions:
    - stdlib logging end to end; JSON in deployments, plain text for local runs
      and tests (LOG_FORMAT=text)
    - setup_logging runs once from the application lifespan
"""

import logging
import json
from datetime import datetime, timezone


LEDGER_FIELDS = (
    "owner_id", "hold_id", "order_id", "operation", "error_code",
    "attempt", "amount_minor", "path",
)

_DRIVER_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncpg")


class JSONFormatter(logging.Formatter):
    """Render a record and its ledger fields as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log.update({
            key: getattr(record, key)
            for key in LEDGER_FIELDS
            if getattr(record, key, None) is not None
        })
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Install the ledger handler on the root logger."""
    handler = logging.StreamHandler()
    handler.setFormatter(
        JSONFormatter() if fmt == "json"
        else logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    logging.root.handlers = [handler]
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in _DRIVER_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
