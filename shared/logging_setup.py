"""
Logging configuration.

Every component logs through a named module logger. Records may carry
correlation fields (order, tenant, receipt, admin user) passed via `extra`;
the formatter appends whichever are present so failures can be filtered by
order or tenant.
"""

import logging
from typing import Any

CORRELATION_FIELDS = ("order_id", "tenant_id", "receipt_number", "user_id")

LOG_FORMAT = "%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s%(correlation)s"


class CorrelationFilter(logging.Filter):
    """Render correlation fields from `extra` into a `correlation` attribute."""

    def filter(self, record: logging.LogRecord) -> bool:
        parts = [
            f"{name}={getattr(record, name)}"
            for name in CORRELATION_FIELDS
            if getattr(record, name, None)
        ]
        record.correlation = f" [{' '.join(parts)}]" if parts else ""
        return True


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    root = logging.getLogger()
    for handler in root.handlers:
        if getattr(handler, "_pressflow", False):
            root.setLevel(level.upper())
            return

    handler = logging.StreamHandler()
    handler._pressflow = True
    handler.addFilter(CorrelationFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(level.upper())


def order_logger(logger: logging.Logger, order: Any) -> logging.LoggerAdapter:
    """Logger adapter carrying an order's correlation fields."""
    return logging.LoggerAdapter(logger, {
        "order_id": getattr(order, "id", None),
        "tenant_id": getattr(order, "tenant_id", None),
        "receipt_number": getattr(order, "receipt_number", None),
    })
