"""
Periodic overdue-order scanner.

Every run looks for two kinds of orders that are not completed or cancelled:
- impending overdue: expected pickup falls in a window ending two hours
  from now. The window is 5 minutes by default and is widened to the scan
  interval when that is longer, so consecutive runs leave no gaps
- actually overdue: expected pickup is already in the past

For each match, every admin user gets an AdminNotification unless they
already have an unread one of the same type for that order. That unread
check is the only deduplication: once an admin marks an alert read, a later
scan raises it again while the order is still overdue.

The scanner never contacts customers. A failing run is logged and the next
scheduled run proceeds normally.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from pydantic import BaseModel, Field

from shared.data_store import DataStore
from shared.logging_setup import order_logger
from shared.models import AdminNotification, AdminNotificationType, Order

logger = logging.getLogger("overdue_scanner")

DEFAULT_INTERVAL_SECONDS = 15 * 60
DEFAULT_WARNING_LEAD = timedelta(hours=2)
DEFAULT_WARNING_WINDOW = timedelta(minutes=5)


class ScanReport(BaseModel):
    """Summary of one scanner run."""
    started_at: datetime
    impending_orders: int = 0
    overdue_orders: int = 0
    warnings_created: int = 0
    alerts_created: int = 0
    error: Optional[str] = Field(default=None, description="Set when the run aborted")


class OverdueScanner:
    """
    Raises admin alerts for orders that are nearly or actually overdue.

    Example:
        scanner = OverdueScanner(data_store)
        report = scanner.run_once()

        # Or on a timer inside a running event loop
        scanner.start()
        ...
        await scanner.stop()
    """

    def __init__(
        self,
        data_store: DataStore,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        warning_lead: timedelta = DEFAULT_WARNING_LEAD,
        warning_window: timedelta = DEFAULT_WARNING_WINDOW,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.data_store = data_store
        self.interval_seconds = interval_seconds
        self.warning_lead = warning_lead
        self.warning_window = max(warning_window, timedelta(seconds=interval_seconds))
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

        if self.warning_window != warning_window:
            logger.info(f"Warning window widened from {warning_window} to the scan interval ({self.warning_window})")

    # =========================================================================
    # Queries
    # =========================================================================

    def find_impending_overdue(self, now: datetime) -> list[Order]:
        """Active orders due in (now + lead - window, now + lead]."""
        window_end = now + self.warning_lead
        window_start = window_end - self.warning_window
        return self.data_store.find_active_orders_due_between(window_start, window_end)

    def find_actually_overdue(self, now: datetime) -> list[Order]:
        """Active orders whose expected pickup is strictly in the past."""
        return self.data_store.find_active_orders_due_before(now)

    # =========================================================================
    # Alert Creation
    # =========================================================================

    def notify_admins(
        self,
        admin_ids: list[str],
        notification_type: AdminNotificationType,
        message: str,
        order: Order,
    ) -> int:
        """
        Create one alert per admin, skipping admins with an unread duplicate.

        Returns:
            Number of alerts created.
        """
        created = 0
        for admin_id in admin_ids:
            if self.data_store.exists_unread_admin_notification(admin_id, order.id, notification_type):
                continue
            try:
                self.data_store.create_admin_notification(AdminNotification(
                    user_id=admin_id,
                    type=notification_type,
                    message=message,
                    link=f"/orders/{order.id}",
                    entity_id=order.id,
                    entity_type="Order",
                ))
            except Exception:
                order_logger(logger, order).exception(
                    f"Error creating '{notification_type.value}' notification for admin {admin_id}"
                )
                continue
            created += 1
            order_logger(logger, order).info(
                f"Created '{notification_type.value}' notification for admin {admin_id}"
            )
        return created

    def run_once(self, now: Optional[datetime] = None) -> ScanReport:
        """
        Run one scan. Never raises; failures are logged and reported.
        """
        now = now or self.clock()
        report = ScanReport(started_at=now)
        logger.info(f"Running scheduled order checks at {now.isoformat()}")

        try:
            admin_ids = self.data_store.list_admin_user_ids()
            if not admin_ids:
                logger.info("No admin users found to notify")
                return report

            impending = self.find_impending_overdue(now)
            report.impending_orders = len(impending)
            for order in impending:
                message = (
                    f"Order #{order.receipt_number} ({self._customer_name(order)}) is due for pickup "
                    f"at {order.expected_pickup_date:%b %d, %I:%M %p}."
                )
                created = self.notify_admins(admin_ids, AdminNotificationType.OVERDUE_WARNING, message, order)
                if created:
                    report.warnings_created += created
                    self.data_store.update_order_fields(order.id, admin_notified_impending_overdue=True)

            overdue = self.find_actually_overdue(now)
            report.overdue_orders = len(overdue)
            for order in overdue:
                message = (
                    f"ALERT: Order #{order.receipt_number} ({self._customer_name(order)}) is NOW OVERDUE! "
                    f"Expected: {order.expected_pickup_date:%b %d, %Y, %I:%M %p}."
                )
                created = self.notify_admins(admin_ids, AdminNotificationType.OVERDUE_ALERT, message, order)
                if created:
                    report.alerts_created += created
                    self.data_store.update_order_fields(order.id, admin_notified_actual_overdue=True)
        except Exception as e:
            logger.exception("Critical error during scheduled order checks")
            report.error = str(e) or e.__class__.__name__

        logger.info(
            f"Order checks done: {report.impending_orders} impending ({report.warnings_created} new warnings), "
            f"{report.overdue_orders} overdue ({report.alerts_created} new alerts)"
        )
        return report

    def _customer_name(self, order: Order) -> str:
        customer = self.data_store.get_customer(order.customer_id)
        return customer.name if customer and customer.name else "N/A"

    # =========================================================================
    # Timer
    # =========================================================================

    async def run_forever(self) -> None:
        """Run a scan every interval until cancelled."""
        logger.info(f"Order check scheduler started (every {self.interval_seconds}s)")
        while True:
            await asyncio.to_thread(self.run_once)
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        """Schedule `run_forever` on the running event loop."""
        if self._task is not None and not self._task.done():
            logger.warning("OverdueScanner already started")
            return
        self._task = asyncio.get_running_loop().create_task(self.run_forever())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Order check scheduler stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
