"""
Tests for the data store.

These tests verify fixture loading, the scanner's order queries and the
admin notification lookups.
"""

from datetime import datetime, timedelta

from shared.data_store import DataStore
from shared.models import (
    AdminNotification,
    AdminNotificationType,
    Order,
    OrderStatus,
    PreferredChannel,
)


def add_order(store: DataStore, order_id: str, pickup: datetime, status=OrderStatus.PROCESSING) -> Order:
    return store.save_order(Order(
        id=order_id,
        tenant_id="tenant-001",
        receipt_number=f"PMS-20310101-{order_id[-4:]}",
        customer_id="cust-001",
        status=status,
        expected_pickup_date=pickup,
    ))


class TestFixtureLoading:
    def test_loads_customers(self, data_store: DataStore):
        customer = data_store.get_customer("cust-001")

        assert customer is not None
        assert customer.name == "Ama Mensah"
        assert customer.has_email and customer.has_phone
        assert len(data_store.get_customers()) == 5

    def test_loads_orders_with_derived_totals(self, data_store: DataStore):
        order = data_store.get_order("ord-1001")

        assert order.discount_amount == 4.5
        assert order.total_amount == 40.5
        assert order.is_fully_paid is False

    def test_missing_directory_is_empty(self, tmp_path):
        store = DataStore(data_dir=tmp_path / "nowhere")

        assert store.get_orders() == []
        assert store.list_admin_user_ids() == []

    def test_reload_discards_writes(self, data_store: DataStore):
        data_store.update_order_fields("ord-1001", notified=True)

        data_store.reload()

        assert data_store.get_order("ord-1001").notified is False


class TestSettings:
    def test_configured_tenant(self, data_store: DataStore):
        settings = data_store.get_settings_for_tenant("tenant-002")

        assert settings.preferred_notification_channel == PreferredChannel.EMAIL
        assert settings.company_info.name == "Fresh Fold Laundry"

    def test_unknown_tenant_gets_defaults(self, data_store: DataStore):
        settings = data_store.get_settings_for_tenant("tenant-new")

        assert settings.tenant_id == "tenant-new"
        assert settings.company_info.name == "PressFlow Inc."
        assert data_store.get_settings_for_tenant("tenant-new") is settings


class TestOrderQueries:
    def test_due_between_is_open_closed(self, empty_store: DataStore):
        start = datetime(2031, 1, 1, 10, 0)
        end = start + timedelta(minutes=5)
        add_order(empty_store, "ord-0001", start)
        add_order(empty_store, "ord-0002", start + timedelta(minutes=1))
        add_order(empty_store, "ord-0003", end)
        add_order(empty_store, "ord-0004", end + timedelta(seconds=1))

        ids = {o.id for o in empty_store.find_active_orders_due_between(start, end)}

        assert ids == {"ord-0002", "ord-0003"}

    def test_closed_orders_excluded(self, empty_store: DataStore):
        now = datetime(2031, 1, 1, 10, 0)
        add_order(empty_store, "ord-0001", now - timedelta(hours=1), OrderStatus.COMPLETED)
        add_order(empty_store, "ord-0002", now - timedelta(hours=1), OrderStatus.CANCELLED)
        add_order(empty_store, "ord-0003", now - timedelta(hours=1), OrderStatus.READY_FOR_PICKUP)

        ids = {o.id for o in empty_store.find_active_orders_due_before(now)}

        assert ids == {"ord-0003"}

    def test_due_before_is_strict(self, empty_store: DataStore):
        now = datetime(2031, 1, 1, 10, 0)
        add_order(empty_store, "ord-0001", now)

        assert empty_store.find_active_orders_due_before(now) == []

    def test_update_order_fields(self, data_store: DataStore):
        order = data_store.update_order_fields("ord-1002", admin_notified_actual_overdue=True)

        assert order.admin_notified_actual_overdue is True
        assert order.updated_at is not None
        assert data_store.update_order_fields("missing", notified=True) is None

    def test_receipt_number_exists(self, data_store: DataStore):
        assert data_store.receipt_number_exists("PMS-20310110-1001") is True
        assert data_store.receipt_number_exists("PMS-20310110-9999") is False


class TestUsersAndAdminNotifications:
    def test_admin_ids(self, data_store: DataStore):
        assert sorted(data_store.list_admin_user_ids()) == ["admin-001", "admin-002"]

    def test_exists_unread(self, data_store: DataStore):
        notification = data_store.create_admin_notification(AdminNotification(
            user_id="admin-001",
            type=AdminNotificationType.OVERDUE_ALERT,
            message="late",
            entity_id="ord-1001",
        ))

        assert data_store.exists_unread_admin_notification("admin-001", "ord-1001", AdminNotificationType.OVERDUE_ALERT)
        assert not data_store.exists_unread_admin_notification("admin-002", "ord-1001", AdminNotificationType.OVERDUE_ALERT)
        assert not data_store.exists_unread_admin_notification("admin-001", "ord-1001", AdminNotificationType.OVERDUE_WARNING)

        notification.read = True
        assert not data_store.exists_unread_admin_notification("admin-001", "ord-1001", AdminNotificationType.OVERDUE_ALERT)

    def test_notifications_for_user_newest_first(self, data_store: DataStore):
        for minutes in (5, 1, 10):
            data_store.create_admin_notification(AdminNotification(
                user_id="admin-001",
                type=AdminNotificationType.NEW_ORDER,
                message=str(minutes),
                created_at=datetime(2031, 1, 1) + timedelta(minutes=minutes),
            ))

        messages = [n.message for n in data_store.get_admin_notifications_for_user("admin-001")]

        assert messages == ["10", "5", "1"]
