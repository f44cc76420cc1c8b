"""
Tests for domain models.

These tests verify order financial derivation, contact helpers and enum
mappings.
"""

from datetime import datetime, timedelta, timezone

import pytest

from shared.models import (
    Customer,
    DiscountType,
    NotificationMethod,
    Order,
    OrderStatus,
    TenantSettings,
    PreferredChannel,
)


def make_order(**overrides) -> Order:
    fields = dict(
        tenant_id="tenant-001",
        receipt_number="PMS-20310101-1234",
        customer_id="cust-001",
        expected_pickup_date=datetime(2031, 1, 1, 12, 0),
    )
    fields.update(overrides)
    return Order(**fields)


class TestOrderTotals:
    """Tests for discount, total and paid-flag derivation."""

    @pytest.mark.parametrize(
        "subtotal, discount_type, value, paid",
        [
            (0, DiscountType.NONE, 0, 0),
            (50, DiscountType.NONE, 7, 10),
            (50, DiscountType.PERCENTAGE, 10, 45),
            (50, DiscountType.PERCENTAGE, 150, 0),
            (19.99, DiscountType.PERCENTAGE, 33, 13.39),
            (30, DiscountType.FIXED, 12.5, 17.5),
            (30, DiscountType.FIXED, 45, 0),
            (0, DiscountType.PERCENTAGE, 20, 5),
            (100, DiscountType.FIXED, 0, 100),
            (12.34, DiscountType.FIXED, 0.34, 11.99),
        ],
    )
    def test_total_and_paid_invariant(self, subtotal, discount_type, value, paid):
        """total = max(0, subtotal - discount) and fully paid iff paid >= total or total == 0."""
        order = make_order(
            sub_total_amount=subtotal,
            discount_type=discount_type,
            discount_value=value,
            amount_paid=paid,
        )

        assert order.total_amount == max(0, round(subtotal - order.discount_amount, 2))
        assert 0 <= order.discount_amount <= subtotal
        assert order.is_fully_paid == (paid >= order.total_amount or order.total_amount == 0)

    def test_percentage_discount(self):
        order = make_order(sub_total_amount=80, discount_type=DiscountType.PERCENTAGE, discount_value=25)

        assert order.discount_amount == 20
        assert order.total_amount == 60

    def test_fixed_discount_capped_at_subtotal(self):
        order = make_order(sub_total_amount=10, discount_type=DiscountType.FIXED, discount_value=15)

        assert order.discount_amount == 10
        assert order.total_amount == 0
        assert order.is_fully_paid is True

    def test_none_discount_resets_value(self):
        order = make_order(sub_total_amount=10, discount_type=DiscountType.NONE, discount_value=4)

        assert order.discount_value == 0
        assert order.discount_amount == 0

    def test_recalculate_after_payment(self):
        order = make_order(sub_total_amount=40, amount_paid=10)
        assert order.is_fully_paid is False

        order.amount_paid = 40
        order.recalculate_totals()

        assert order.is_fully_paid is True
        assert order.amount_due == 0

    def test_incoming_totals_are_ignored(self):
        """Stored totals are always re-derived from the inputs."""
        order = make_order(sub_total_amount=40, total_amount=999, is_fully_paid=True)

        assert order.total_amount == 40
        assert order.is_fully_paid is False


class TestOrderState:
    def test_defaults(self):
        order = make_order()

        assert order.status == OrderStatus.PENDING
        assert order.notified is False
        assert order.notification_method == NotificationMethod.NONE
        assert order.admin_notified_impending_overdue is False
        assert order.admin_notified_actual_overdue is False

    @pytest.mark.parametrize("status, active", [
        (OrderStatus.PENDING, True),
        (OrderStatus.PROCESSING, True),
        (OrderStatus.READY_FOR_PICKUP, True),
        (OrderStatus.COMPLETED, False),
        (OrderStatus.CANCELLED, False),
    ])
    def test_is_active(self, status, active):
        assert make_order(status=status).is_active is active

    def test_status_parses_display_value(self):
        order = make_order(status="Ready for Pickup")

        assert order.status == OrderStatus.READY_FOR_PICKUP

    def test_aware_pickup_date_stored_as_naive_utc(self):
        pickup = datetime(2031, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

        order = make_order(expected_pickup_date=pickup)

        assert order.expected_pickup_date == datetime(2031, 1, 1, 12, 0)
        assert order.expected_pickup_date.tzinfo is None


class TestCustomer:
    def test_blank_contacts_count_as_missing(self):
        customer = Customer(tenant_id="t", name="X", phone="   ", email="")

        assert customer.has_phone is False
        assert customer.has_email is False
        assert customer.has_contact is False

    def test_phone_only(self):
        customer = Customer(tenant_id="t", name="X", phone="555-0100")

        assert customer.has_contact is True
        assert customer.has_email is False


class TestEnums:
    @pytest.mark.parametrize("channel, expected", [
        ("email", NotificationMethod.MANUAL_EMAIL),
        ("whatsapp", NotificationMethod.MANUAL_WHATSAPP),
        ("sms", NotificationMethod.MANUAL_SMS),
    ])
    def test_manual_method(self, channel, expected):
        assert NotificationMethod.manual(channel) == expected

    def test_manual_method_rejects_unknown_channel(self):
        with pytest.raises(ValueError):
            NotificationMethod.manual("none")

    def test_settings_defaults(self):
        settings = TenantSettings(tenant_id="t")

        assert settings.preferred_notification_channel == PreferredChannel.WHATSAPP
        assert settings.default_currency_symbol == "$"
        assert settings.company_info.name == "PressFlow Inc."
