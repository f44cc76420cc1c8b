"""
Domain models for laundry/pressing order notifications.

These models mirror the documents owned by the order-management side of the
platform. The notification core only reads most of these fields and writes a
small subset (notification state and admin-overdue flags).

Design decisions:
- Using Pydantic for validation and serialization
- Order financial fields are derived, never trusted from input
- Blank contact strings are treated the same as missing ones
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4
from pydantic import BaseModel, Field, field_validator, model_validator


def _new_id() -> str:
    return uuid4().hex


# =============================================================================
# Enums - Status values used across the domain
# =============================================================================

class OrderStatus(str, Enum):
    """Order lifecycle states."""
    PENDING = "Pending"
    PROCESSING = "Processing"
    READY_FOR_PICKUP = "Ready for Pickup"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


# Orders in these states are finished and never alerted on
CLOSED_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


class DiscountType(str, Enum):
    NONE = "none"
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ServiceType(str, Enum):
    WASH = "wash"
    DRY_CLEAN = "dry clean"
    IRON = "iron"
    WASH_AND_IRON = "wash & iron"
    SPECIAL_CARE = "special care"
    OTHER = "other"


class NotificationMethod(str, Enum):
    """
    How (or why not) a customer was told about their order.

    The `*-auto` values record automatic attempts that did not reach the
    customer, so later scans and status changes never send twice.
    """
    NONE = "none"
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    SMS = "sms"
    MANUAL_EMAIL = "manual-email"
    MANUAL_WHATSAPP = "manual-whatsapp"
    MANUAL_SMS = "manual-sms"
    FAILED_AUTO = "failed-auto"
    NO_CONTACT_AUTO = "no-contact-auto"

    @classmethod
    def manual(cls, channel: str) -> "NotificationMethod":
        """Map a channel name to its manual variant, e.g. "email" -> manual-email."""
        return cls(f"manual-{channel}")


class PreferredChannel(str, Enum):
    """Tenant-level choice of customer notification channel."""
    WHATSAPP = "whatsapp"
    EMAIL = "email"
    NONE = "none"


class AdminNotificationType(str, Enum):
    OVERDUE_WARNING = "overdue_warning"
    OVERDUE_ALERT = "overdue_alert"
    NEW_ORDER = "new_order"
    LOW_STOCK = "low_stock"


class UserRole(str, Enum):
    ADMIN = "admin"
    STAFF = "staff"


# =============================================================================
# Customers and Orders
# =============================================================================

class Customer(BaseModel):
    """
    Customer entity - the recipient of notifications.

    Phone is the primary contact key. At least one of phone/email must be
    present for any notification to be possible.
    """
    id: str = Field(default_factory=_new_id, description="Unique customer identifier")
    tenant_id: str = Field(..., description="Owning tenant")
    name: str = Field(default="", description="Customer display name")
    phone: Optional[str] = Field(default=None, description="Primary phone number")
    email: Optional[str] = Field(default=None, description="Optional email address")
    address: Optional[str] = Field(default=None)

    @property
    def has_phone(self) -> bool:
        return bool(self.phone and self.phone.strip())

    @property
    def has_email(self) -> bool:
        return bool(self.email and self.email.strip())

    @property
    def has_contact(self) -> bool:
        """True if the customer can be reached on at least one channel."""
        return self.has_phone or self.has_email


class OrderItem(BaseModel):
    """A single garment line on an order."""
    item_type: str = Field(..., description="Garment type, e.g. Shirt")
    service_type: ServiceType = Field(..., description="Requested service")
    quantity: int = Field(..., ge=1)
    special_instructions: Optional[str] = Field(default=None)


class Order(BaseModel):
    """
    Order entity.

    The financial fields (discount_amount, total_amount, is_fully_paid) are
    recomputed from subtotal, discount and amount paid whenever the model is
    validated or `recalculate_totals()` is called.
    """
    id: str = Field(default_factory=_new_id, description="Unique order identifier")
    tenant_id: str = Field(..., description="Owning tenant")
    receipt_number: str = Field(..., description="Receipt number, PREFIX-YYYYMMDD-NNNN")
    customer_id: str = Field(..., description="Reference to customer")
    items: list[OrderItem] = Field(default_factory=list)

    sub_total_amount: float = Field(default=0, ge=0)
    discount_type: DiscountType = Field(default=DiscountType.NONE)
    discount_value: float = Field(default=0, ge=0)
    discount_amount: float = Field(default=0, ge=0)
    total_amount: float = Field(default=0, ge=0)
    amount_paid: float = Field(default=0, ge=0)
    is_fully_paid: bool = Field(default=False)

    status: OrderStatus = Field(default=OrderStatus.PENDING)
    drop_off_date: datetime = Field(default_factory=datetime.utcnow)
    expected_pickup_date: datetime = Field(..., description="When the customer should collect")
    actual_pickup_date: Optional[datetime] = Field(default=None, description="Set on Completed")
    notes: Optional[str] = Field(default=None)

    notified: bool = Field(default=False, description="Customer has been told the order is ready")
    notification_method: NotificationMethod = Field(default=NotificationMethod.NONE)
    admin_notified_impending_overdue: bool = Field(default=False)
    admin_notified_actual_overdue: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default=None)

    @field_validator("drop_off_date", "expected_pickup_date", "actual_pickup_date")
    @classmethod
    def _as_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # All timestamps are stored as naive UTC
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    @model_validator(mode="after")
    def _derive_totals(self) -> "Order":
        self.recalculate_totals()
        return self

    def recalculate_totals(self) -> None:
        """
        Derive discount, total and paid flag.

        total = max(0, subtotal - discount); fully paid when amount paid covers
        the total, or when there is nothing to pay.
        """
        subtotal = self.sub_total_amount
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 0 and subtotal > 0:
            discount = subtotal * self.discount_value / 100
        elif self.discount_type == DiscountType.FIXED and self.discount_value > 0:
            discount = self.discount_value
        else:
            discount = 0.0
            if self.discount_type == DiscountType.NONE:
                self.discount_value = 0

        discount = min(discount, subtotal)
        self.discount_amount = round(discount, 2)
        self.total_amount = max(0.0, round(subtotal - self.discount_amount, 2))
        self.is_fully_paid = self.total_amount == 0 or self.amount_paid >= self.total_amount

    @property
    def is_active(self) -> bool:
        """Not completed or cancelled."""
        return self.status not in CLOSED_STATUSES

    @property
    def amount_due(self) -> float:
        return max(0.0, round(self.total_amount - self.amount_paid, 2))


# =============================================================================
# Tenant Settings
# =============================================================================

class CompanyInfo(BaseModel):
    """Company display information shown in customer messages."""
    name: str = Field(default="PressFlow Inc.")
    address: str = Field(default="")
    phone: str = Field(default="")
    logo_url: str = Field(default="")


class NotificationTemplates(BaseModel):
    """
    Per-tenant message templates.

    Email subjects/bodies use `{{token}}` placeholders. WhatsApp entries are
    provider template identifiers, not free text. Blank means not configured.
    """
    subject: str = Field(default="Your Order Update from {{companyName}}")
    ready_for_pickup_subject: str = Field(default="")
    ready_for_pickup_body: str = Field(
        default=(
            "Dear {{customerName}},\n\nYour order #{{receiptNumber}} is now ready for pickup.\n\n"
            "Please collect it at your earliest convenience.\n\nThank you,\n{{companyName}}"
        )
    )
    manual_reminder_subject: str = Field(default="")
    manual_reminder_body: str = Field(default="")
    whatsapp_ready_for_pickup_template: str = Field(default="")
    whatsapp_manual_reminder_template: str = Field(default="")


class TenantSettings(BaseModel):
    """Settings document, one per tenant."""
    tenant_id: str = Field(..., description="Owning tenant")
    company_info: CompanyInfo = Field(default_factory=CompanyInfo)
    notification_templates: NotificationTemplates = Field(default_factory=NotificationTemplates)
    default_currency_symbol: str = Field(default="$")
    preferred_notification_channel: PreferredChannel = Field(default=PreferredChannel.WHATSAPP)


# =============================================================================
# Staff and Admin Alerts
# =============================================================================

class User(BaseModel):
    """Staff or admin account. Only the role matters to the scanner."""
    id: str = Field(default_factory=_new_id)
    username: str = Field(...)
    role: UserRole = Field(default=UserRole.STAFF)
    tenant_id: Optional[str] = Field(default=None)


class AdminNotification(BaseModel):
    """
    Internal alert shown to an admin user.

    Created by the overdue scanner, marked read from the admin inbox. Never
    touched by the customer notification dispatcher.
    """
    id: str = Field(default_factory=_new_id)
    user_id: str = Field(..., description="Admin who owns this alert")
    type: AdminNotificationType = Field(...)
    message: str = Field(...)
    link: Optional[str] = Field(default=None)
    read: bool = Field(default=False)
    entity_id: Optional[str] = Field(default=None, description="Triggering entity, usually an order id")
    entity_type: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
