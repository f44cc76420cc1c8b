"""
Customer notification dispatch.

Picks WhatsApp or email for an order notification according to tenant
preference and customer contact details, and reports a single outcome.
"""

from dispatch.dispatcher import (
    DispatchMethod,
    DispatchResult,
    NotificationDispatcher,
    build_variables,
)

__all__ = [
    "DispatchMethod",
    "DispatchResult",
    "NotificationDispatcher",
    "build_variables",
]
