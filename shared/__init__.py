"""
Shared infrastructure for order notifications.

This package contains code used by the dispatcher, the order services and
the overdue scanner:
- Domain models (Order, Customer, TenantSettings, AdminNotification, ...)
- Data store for JSON-backed persistence
- Notification channels (Email, WhatsApp)
- Message templates and the token renderer
- Configuration and logging setup
"""

from shared.models import (
    AdminNotification,
    Customer,
    NotificationMethod,
    Order,
    OrderStatus,
    PreferredChannel,
    TenantSettings,
)
from shared.data_store import DataStore
from shared.channels import DeliveryResult, EmailChannel, WhatsAppChannel
from shared.templates import NotificationScenario, render_template

__all__ = [
    "AdminNotification",
    "Customer",
    "NotificationMethod",
    "Order",
    "OrderStatus",
    "PreferredChannel",
    "TenantSettings",
    "DataStore",
    "DeliveryResult",
    "EmailChannel",
    "WhatsAppChannel",
    "NotificationScenario",
    "render_template",
]
