"""
FastAPI application for order notifications.

This application is the composition root: it reads configuration, builds the
provider-backed channels once, and wires them into the dispatcher, the order
services and the overdue scanner. The endpoints are the call sites that
trigger the notification core:

1. Order status changes and manual "notify now" actions (`/orders/...`)
2. The admin inbox for overdue alerts (`/admin-notifications/...`)
3. An on-demand scanner run (`/scanner/run`)

Run with:
    uv run uvicorn api.main:app --reload

Then visit http://localhost:8000/docs for interactive API documentation.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from dispatch.dispatcher import NotificationDispatcher
from scheduler.overdue_scanner import OverdueScanner, ScanReport
from services.admin_notifications import AdminInbox, AdminNotificationService
from services.ordering import OrderingService
from shared.channels import (
    EmailChannel,
    WhatsAppChannel,
    build_email_channel,
    build_whatsapp_channel,
)
from shared.config import AppConfig
from shared.data_store import DataStore
from shared.logging_setup import configure_logging
from shared.models import AdminNotification, Order, OrderStatus

logger = logging.getLogger("notification_api")


# =============================================================================
# Composition Root
# =============================================================================

@dataclass
class Container:
    """Process-wide collaborators, built once at startup."""
    config: AppConfig
    data_store: DataStore
    email_channel: EmailChannel
    whatsapp_channel: WhatsAppChannel
    dispatcher: NotificationDispatcher
    ordering: OrderingService
    admin_notifications: AdminNotificationService
    scanner: OverdueScanner


def build_container(
    config: AppConfig,
    data_store: Optional[DataStore] = None,
    email_channel: Optional[EmailChannel] = None,
    whatsapp_channel: Optional[WhatsAppChannel] = None,
) -> Container:
    """
    Wire all services from configuration.

    Any collaborator can be passed in to replace the configured one, which is
    how tests substitute fake providers.
    """
    data_store = data_store or DataStore(config.data_dir)
    email_channel = email_channel or build_email_channel(config.email)
    whatsapp_channel = whatsapp_channel or build_whatsapp_channel(config.whatsapp)
    dispatcher = NotificationDispatcher(data_store, email_channel, whatsapp_channel)
    return Container(
        config=config,
        data_store=data_store,
        email_channel=email_channel,
        whatsapp_channel=whatsapp_channel,
        dispatcher=dispatcher,
        ordering=OrderingService(data_store, dispatcher),
        admin_notifications=AdminNotificationService(data_store),
        scanner=OverdueScanner(data_store, interval_seconds=config.scheduler.interval_seconds),
    )


# =============================================================================
# Request / Response Models
# =============================================================================

class StatusUpdate(BaseModel):
    status: OrderStatus


class PaymentRequest(BaseModel):
    amount: float = Field(..., gt=0)


class ManualNotifyResponse(BaseModel):
    message: str
    order: Order


class MarkReadResponse(BaseModel):
    notification: AdminNotification
    unread_count: int


class MarkAllReadResponse(BaseModel):
    message: str
    unread_count: int = 0


# =============================================================================
# Application
# =============================================================================

def create_app(container: Optional[Container] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Without a container, one is built from environment configuration when
    the app starts, and the overdue scanner runs for the app's lifetime.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "container", None) is None:
            config = AppConfig.from_env()
            configure_logging(config.log_level)
            app.state.container = build_container(config)

        current: Container = app.state.container
        logger.info("Starting order notification service")
        if current.config.scheduler.enabled:
            current.scanner.start()
        yield
        await current.scanner.stop()
        logger.info("Shutting down")

    app = FastAPI(
        title="PressFlow Order Notifications",
        description="Customer pickup notifications and overdue-order alerts for laundry businesses.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.container = container
    _register_routes(app)
    return app


def get_container(request: Request) -> Container:
    return request.app.state.container


def _register_routes(app: FastAPI) -> None:

    @app.get("/health", tags=["Health"])
    def health_check(container: Container = Depends(get_container)):
        """Health check endpoint, with channel availability."""
        return {
            "status": "healthy",
            "email_configured": container.email_channel.is_configured,
            "whatsapp_configured": container.whatsapp_channel.is_configured,
            "scanner_running": container.scanner.running,
        }

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    @app.post("/orders/{order_id}/status", response_model=Order, tags=["Orders"])
    def update_order_status(
        order_id: str,
        update: StatusUpdate,
        container: Container = Depends(get_container),
    ) -> Order:
        """
        Change an order's status.

        Moving an order to "Ready for Pickup" notifies the customer; the
        outcome is recorded in `notified` / `notification_method`.
        """
        order = container.ordering.update_status(order_id, update.status)
        if order is None:
            raise HTTPException(status_code=404, detail="Order not found")
        return order

    @app.post("/orders/{order_id}/payments", response_model=Order, tags=["Orders"])
    def record_payment(
        order_id: str,
        payment: PaymentRequest,
        container: Container = Depends(get_container),
    ) -> Order:
        order = container.ordering.record_payment(order_id, payment.amount)
        if order is None:
            raise HTTPException(status_code=404, detail="Order not found")
        return order

    @app.post("/orders/{order_id}/notify", response_model=ManualNotifyResponse, tags=["Orders"])
    def notify_customer(
        order_id: str,
        container: Container = Depends(get_container),
    ) -> ManualNotifyResponse:
        """Send a manual reminder to the order's customer."""
        order = container.data_store.get_order(order_id)
        if order is None:
            raise HTTPException(status_code=404, detail="Order not found")
        customer = container.data_store.get_customer(order.customer_id)
        if customer is None:
            raise HTTPException(status_code=400, detail="Customer details not found for this order.")
        if not customer.has_contact:
            raise HTTPException(status_code=400, detail="Customer has no email or phone number on file.")

        result = container.ordering.send_manual_reminder(order_id)
        if result.opted_out:
            raise HTTPException(status_code=409, detail=result.error)
        if not result.sent:
            raise HTTPException(
                status_code=502,
                detail=result.error or "Failed to send manual notification. Check customer contact details.",
            )
        return ManualNotifyResponse(
            message=f"Notification successfully sent via {result.method.value}.",
            order=container.data_store.get_order(order_id),
        )

    # -------------------------------------------------------------------------
    # Admin Notifications
    # -------------------------------------------------------------------------

    @app.get("/admin-notifications", response_model=AdminInbox, tags=["Admin Notifications"])
    def list_admin_notifications(
        user_id: str,
        container: Container = Depends(get_container),
    ) -> AdminInbox:
        return container.admin_notifications.list_for_user(user_id)

    @app.put("/admin-notifications/read-all", response_model=MarkAllReadResponse, tags=["Admin Notifications"])
    def mark_all_admin_notifications_read(
        user_id: str,
        container: Container = Depends(get_container),
    ) -> MarkAllReadResponse:
        container.admin_notifications.mark_all_read(user_id)
        return MarkAllReadResponse(message="All notifications marked as read.")

    @app.put("/admin-notifications/{notification_id}/read", response_model=MarkReadResponse, tags=["Admin Notifications"])
    def mark_admin_notification_read(
        notification_id: str,
        user_id: str,
        container: Container = Depends(get_container),
    ) -> MarkReadResponse:
        notification = container.admin_notifications.mark_read(notification_id, user_id)
        if notification is None:
            raise HTTPException(status_code=404, detail="Notification not found or not authorized to update.")
        return MarkReadResponse(
            notification=notification,
            unread_count=container.admin_notifications.unread_count(user_id),
        )

    # -------------------------------------------------------------------------
    # Scanner
    # -------------------------------------------------------------------------

    @app.post("/scanner/run", response_model=ScanReport, tags=["Scanner"])
    def run_scanner(container: Container = Depends(get_container)) -> ScanReport:
        """Run one overdue scan now, outside the regular schedule."""
        return container.scanner.run_once()


app = create_app()
