"""
JSON-backed data store for orders, customers, tenant settings, users and
admin notifications.

This module stands in for the platform's document store. It loads fixture
documents from a data directory and keeps all writes in memory.

Design decisions:
- Lazy loading per collection, with `reload()` to start over
- Returned models are the stored instances; writes go through `save_*`
  or the targeted update helpers so `updated_at` stays correct
- Query helpers mirror the filters the real store would run (status not in
  closed set, pickup date ranges, unread alert lookups)
- Settings lookups always succeed: a tenant with no document gets defaults
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from shared.models import (
    AdminNotification,
    AdminNotificationType,
    Customer,
    Order,
    TenantSettings,
    User,
    UserRole,
)

logger = logging.getLogger("data_store")


class DataStore:
    """
    Central data store that loads and manages JSON fixtures.

    Collections:
    - customers.json, orders.json, settings.json, users.json,
      admin_notifications.json
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """
        Initialize the data store.

        Args:
            data_dir: Directory containing JSON fixtures. Defaults to ./data
                      relative to the project root. A missing directory or
                      file simply means an empty collection.
        """
        if data_dir is None:
            data_dir = Path(__file__).parent.parent / "data"

        self.data_dir = Path(data_dir)

        self._customers: Optional[dict[str, Customer]] = None
        self._orders: Optional[dict[str, Order]] = None
        self._settings: Optional[dict[str, TenantSettings]] = None  # keyed by tenant_id
        self._users: Optional[dict[str, User]] = None
        self._admin_notifications: Optional[dict[str, AdminNotification]] = None

    # =========================================================================
    # Data Loading (lazy)
    # =========================================================================

    def _load_json(self, filename: str) -> list[dict]:
        filepath = self.data_dir / filename
        if not filepath.exists():
            return []
        with open(filepath, "r") as f:
            return json.load(f)

    def _ensure_customers_loaded(self):
        if self._customers is None:
            self._customers = {c.id: c for c in map(Customer.model_validate, self._load_json("customers.json"))}

    def _ensure_orders_loaded(self):
        if self._orders is None:
            self._orders = {o.id: o for o in map(Order.model_validate, self._load_json("orders.json"))}

    def _ensure_settings_loaded(self):
        if self._settings is None:
            data = self._load_json("settings.json")
            self._settings = {s.tenant_id: s for s in map(TenantSettings.model_validate, data)}

    def _ensure_users_loaded(self):
        if self._users is None:
            self._users = {u.id: u for u in map(User.model_validate, self._load_json("users.json"))}

    def _ensure_admin_notifications_loaded(self):
        if self._admin_notifications is None:
            data = self._load_json("admin_notifications.json")
            self._admin_notifications = {n.id: n for n in map(AdminNotification.model_validate, data)}

    # =========================================================================
    # Customer Operations
    # =========================================================================

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        self._ensure_customers_loaded()
        return self._customers.get(customer_id)

    def get_customers(self) -> list[Customer]:
        self._ensure_customers_loaded()
        return list(self._customers.values())

    def save_customer(self, customer: Customer) -> Customer:
        self._ensure_customers_loaded()
        self._customers[customer.id] = customer
        return customer

    # =========================================================================
    # Order Operations
    # =========================================================================

    def get_order(self, order_id: str) -> Optional[Order]:
        self._ensure_orders_loaded()
        return self._orders.get(order_id)

    def get_orders(self) -> list[Order]:
        self._ensure_orders_loaded()
        return list(self._orders.values())

    def receipt_number_exists(self, receipt_number: str) -> bool:
        self._ensure_orders_loaded()
        return any(o.receipt_number == receipt_number for o in self._orders.values())

    def save_order(self, order: Order) -> Order:
        """Insert or replace an order, re-deriving its financial fields."""
        self._ensure_orders_loaded()
        order.recalculate_totals()
        order.updated_at = datetime.utcnow()
        self._orders[order.id] = order
        return order

    def update_order_fields(self, order_id: str, **fields: Any) -> Optional[Order]:
        """
        Set individual fields on a stored order (single-document update).

        Used by the scanner for the admin-overdue flags so it never rewrites
        fields owned by order management.
        """
        self._ensure_orders_loaded()
        order = self._orders.get(order_id)
        if not order:
            return None
        for name, value in fields.items():
            setattr(order, name, value)
        order.updated_at = datetime.utcnow()
        return order

    def find_active_orders_due_between(self, start: datetime, end: datetime) -> list[Order]:
        """Orders not completed/cancelled with start < expected pickup <= end."""
        self._ensure_orders_loaded()
        return [
            o for o in self._orders.values()
            if o.is_active and start < o.expected_pickup_date <= end
        ]

    def find_active_orders_due_before(self, moment: datetime) -> list[Order]:
        """Orders not completed/cancelled whose expected pickup is before `moment`."""
        self._ensure_orders_loaded()
        return [
            o for o in self._orders.values()
            if o.is_active and o.expected_pickup_date < moment
        ]

    # =========================================================================
    # Settings Operations
    # =========================================================================

    def get_settings_for_tenant(self, tenant_id: str) -> TenantSettings:
        """
        Get a tenant's settings, creating a default document if none exists.
        """
        self._ensure_settings_loaded()
        settings = self._settings.get(tenant_id)
        if settings is None:
            logger.info(f"No settings found for tenant {tenant_id}, creating defaults")
            settings = TenantSettings(tenant_id=tenant_id)
            self._settings[tenant_id] = settings
        return settings

    def save_settings(self, settings: TenantSettings) -> TenantSettings:
        self._ensure_settings_loaded()
        self._settings[settings.tenant_id] = settings
        return settings

    # =========================================================================
    # User Directory
    # =========================================================================

    def save_user(self, user: User) -> User:
        self._ensure_users_loaded()
        self._users[user.id] = user
        return user

    def list_admin_user_ids(self) -> list[str]:
        """Ids of every admin user in the system, across tenants."""
        self._ensure_users_loaded()
        return [u.id for u in self._users.values() if u.role == UserRole.ADMIN]

    # =========================================================================
    # Admin Notification Operations
    # =========================================================================

    def exists_unread_admin_notification(
        self,
        user_id: str,
        entity_id: str,
        notification_type: AdminNotificationType,
    ) -> bool:
        """True if the admin already has an unread alert of this type for the entity."""
        self._ensure_admin_notifications_loaded()
        return any(
            n.user_id == user_id
            and n.entity_id == entity_id
            and n.type == notification_type
            and not n.read
            for n in self._admin_notifications.values()
        )

    def create_admin_notification(self, notification: AdminNotification) -> AdminNotification:
        self._ensure_admin_notifications_loaded()
        self._admin_notifications[notification.id] = notification
        return notification

    def get_admin_notification(self, notification_id: str) -> Optional[AdminNotification]:
        self._ensure_admin_notifications_loaded()
        return self._admin_notifications.get(notification_id)

    def get_admin_notifications_for_user(self, user_id: str) -> list[AdminNotification]:
        """All alerts owned by an admin, newest first."""
        self._ensure_admin_notifications_loaded()
        return sorted(
            (n for n in self._admin_notifications.values() if n.user_id == user_id),
            key=lambda n: n.created_at,
            reverse=True,
        )

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def reload(self):
        """Drop all in-memory state and reload from the fixture files."""
        self._customers = None
        self._orders = None
        self._settings = None
        self._users = None
        self._admin_notifications = None
