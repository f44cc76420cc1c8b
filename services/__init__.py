"""
Order-side services that call into the notification core.

- OrderingService: status changes and manual reminders (customer notifications)
- AdminNotificationService: admin inbox for scanner alerts
"""

from services.admin_notifications import AdminNotificationService
from services.ordering import OrderingService, generate_receipt_number

__all__ = [
    "AdminNotificationService",
    "OrderingService",
    "generate_receipt_number",
]
