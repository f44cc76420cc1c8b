"""
Ordering service: order intake and the status changes that notify customers.

This is the call site for the notification dispatcher. Moving an order to
"Ready for Pickup" sends the automatic notification once; staff can send a
manual reminder at any time.

Notification state written back onto the order:
- sent:       notified=True, notification_method=<channel>
- not sent:   notification_method=failed-auto (customer had a contact) or
              no-contact-auto (customer has no phone or email); notified
              stays False so staff can retry manually
- opted out:  nothing changes, the business has notifications turned off
"""

import logging
import random
from datetime import datetime
from typing import Callable, Optional

from dispatch.dispatcher import DispatchResult, NotificationDispatcher
from shared.data_store import DataStore
from shared.logging_setup import order_logger
from shared.models import (
    DiscountType,
    NotificationMethod,
    Order,
    OrderItem,
    OrderStatus,
)
from shared.templates import NotificationScenario

logger = logging.getLogger("ordering_service")

RECEIPT_PREFIX = "PMS"
MAX_RECEIPT_ATTEMPTS = 10


def generate_receipt_number(
    exists: Callable[[str], bool],
    now: Optional[datetime] = None,
) -> str:
    """
    Generate a receipt number of the form PMS-YYYYMMDD-NNNN.

    The 4-digit suffix is random and retried until `exists` reports it free.
    After repeated collisions a timestamp-based number is used instead.
    """
    now = now or datetime.utcnow()
    for _ in range(MAX_RECEIPT_ATTEMPTS):
        candidate = f"{RECEIPT_PREFIX}-{now:%Y%m%d}-{random.randint(1000, 9999)}"
        if not exists(candidate):
            return candidate

    logger.warning("Failed to generate a unique receipt number via random suffix, using timestamp fallback")
    return f"{RECEIPT_PREFIX}-TS-{int(now.timestamp() * 1000)}"


class OrderingService:
    """
    Order mutations that involve customer notifications.

    Example:
        service = OrderingService(data_store, dispatcher)
        order = service.update_status("ord-001", OrderStatus.READY_FOR_PICKUP)
        order.notification_method  # "whatsapp", "email", "failed-auto", ...
    """

    def __init__(self, data_store: DataStore, dispatcher: NotificationDispatcher):
        self.data_store = data_store
        self.dispatcher = dispatcher

    def create_order(
        self,
        tenant_id: str,
        customer_id: str,
        expected_pickup_date: datetime,
        sub_total_amount: float,
        items: Optional[list[OrderItem]] = None,
        discount_type: DiscountType = DiscountType.NONE,
        discount_value: float = 0,
        amount_paid: float = 0,
        notes: Optional[str] = None,
    ) -> Order:
        """Create an order with a fresh receipt number and derived totals."""
        order = Order(
            tenant_id=tenant_id,
            receipt_number=generate_receipt_number(self.data_store.receipt_number_exists),
            customer_id=customer_id,
            items=items or [],
            sub_total_amount=sub_total_amount,
            discount_type=discount_type,
            discount_value=discount_value,
            amount_paid=amount_paid,
            expected_pickup_date=expected_pickup_date,
            notes=notes,
        )
        self.data_store.save_order(order)
        order_logger(logger, order).info(f"Order {order.receipt_number} created, total {order.total_amount:.2f}")
        return order

    def record_payment(self, order_id: str, amount: float) -> Optional[Order]:
        """Add a payment to an order and refresh the paid flag."""
        order = self.data_store.get_order(order_id)
        if not order:
            logger.error(f"Order not found: {order_id}")
            return None
        if amount <= 0:
            raise ValueError("Payment amount must be positive")

        order.amount_paid = round(order.amount_paid + amount, 2)
        self.data_store.save_order(order)
        order_logger(logger, order).info(
            f"Payment of {amount:.2f} recorded, paid {order.amount_paid:.2f} of {order.total_amount:.2f}"
        )
        return order

    def update_status(self, order_id: str, status: OrderStatus) -> Optional[Order]:
        """
        Change an order's status.

        Completing an order stamps the actual pickup date. Moving it to
        "Ready for Pickup" sends the automatic notification unless the
        customer was already notified.
        """
        order = self.data_store.get_order(order_id)
        if not order:
            logger.error(f"Order not found: {order_id}")
            return None

        log = order_logger(logger, order)
        if status == order.status:
            return order

        previous = order.status
        order.status = status
        log.info(f"Order {order.receipt_number} status {previous.value} -> {status.value}")

        if status == OrderStatus.COMPLETED and order.actual_pickup_date is None:
            order.actual_pickup_date = datetime.utcnow()

        if status == OrderStatus.READY_FOR_PICKUP and not order.notified:
            self.notify_ready_for_pickup(order)

        return self.data_store.save_order(order)

    def notify_ready_for_pickup(self, order: Order) -> DispatchResult:
        """Send the automatic ready-for-pickup notification and record the outcome."""
        log = order_logger(logger, order)
        customer = self.data_store.get_customer(order.customer_id)
        if customer is None:
            log.warning(f"Cannot notify for order {order.receipt_number}: customer {order.customer_id} not found")
            order.notification_method = NotificationMethod.NO_CONTACT_AUTO
            return DispatchResult(sent=False, error=f"Customer not found: {order.customer_id}")

        log.info(f"Attempting automatic 'Ready for Pickup' notification for {customer.name}")
        result = self.dispatcher.dispatch(customer, NotificationScenario.READY_FOR_PICKUP, order)

        if result.sent:
            order.notified = True
            order.notification_method = NotificationMethod(result.method.value)
        elif result.opted_out:
            log.info("Automatic notification skipped, notifications are disabled")
        elif customer.has_contact:
            order.notification_method = NotificationMethod.FAILED_AUTO
            log.warning(f"Automatic 'Ready for Pickup' notification FAILED: {result.error}")
        else:
            order.notification_method = NotificationMethod.NO_CONTACT_AUTO
            log.warning(f"Customer {customer.name} has no email or phone, automatic notification not sent")
        return result

    def send_manual_reminder(self, order_id: str) -> Optional[DispatchResult]:
        """
        Send a reminder on staff request.

        Always permitted, whatever the order's previous notification state.
        Returns None for an unknown order; otherwise the dispatch result, whose
        error string is meant to be shown to the operator.
        """
        order = self.data_store.get_order(order_id)
        if not order:
            logger.error(f"Order not found: {order_id}")
            return None

        log = order_logger(logger, order)
        customer = self.data_store.get_customer(order.customer_id)
        log.info(f"Attempting manual notification for order {order.receipt_number}")
        result = self.dispatcher.dispatch(customer, NotificationScenario.MANUAL_REMINDER, order)

        if result.sent:
            order.notified = True
            order.notification_method = NotificationMethod.manual(result.method.value)
            self.data_store.save_order(order)
        else:
            log.error(f"Manual notification FAILED: {result.error}")
        return result
