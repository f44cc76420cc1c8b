"""
Customer notification dispatcher.

Decides which channel to use for a customer notification, invokes the
channel(s) and folds the attempts into a single outcome that the order
services write back onto the order.

Channel precedence:
1. WhatsApp is tried first when it is the tenant's preference, or when the
   preference is email but the customer only has a phone number.
2. Email is tried when WhatsApp did not deliver and either email is the
   preference, or WhatsApp is the preference and the customer has an email.

A delivery on any channel is a success overall. Only when nothing was
delivered does the result carry an error, built from every reason collected
along the way.
"""

import logging
from enum import Enum
from typing import Any, Mapping, Optional, Protocol

from pydantic import BaseModel, Field

from shared.channels import ChannelType, DeliveryResult, EmailChannel, WhatsAppChannel
from shared.logging_setup import order_logger
from shared.models import Customer, NotificationTemplates, Order, PreferredChannel, TenantSettings
from shared.templates import NotificationScenario

logger = logging.getLogger("dispatcher")

DEFAULT_CUSTOMER_NAME = "Valued Customer"
DEFAULT_COMPANY_NAME = "PressFlow"
PICKUP_DATE_FORMAT = "%b %d, %Y %I:%M %p"


class SettingsProvider(Protocol):
    def get_settings_for_tenant(self, tenant_id: str) -> TenantSettings: ...


class Channel(Protocol):
    def send(
        self,
        recipient: Optional[str],
        scenario: NotificationScenario,
        variables: Mapping[str, Any],
        templates: Optional[NotificationTemplates] = None,
    ) -> DeliveryResult: ...


class DispatchMethod(str, Enum):
    WHATSAPP = "whatsapp"
    EMAIL = "email"
    NONE = "none"


class DispatchResult(BaseModel):
    """Outcome of one dispatch call."""
    sent: bool = Field(..., description="A channel delivered the message")
    method: DispatchMethod = Field(default=DispatchMethod.NONE)
    error: Optional[str] = Field(default=None, description="Why nothing was delivered")
    opted_out: bool = Field(default=False, description="Tenant has notifications turned off")


class NotificationDispatcher:
    """
    Orchestrates channel selection for customer notifications.

    Example:
        dispatcher = NotificationDispatcher(data_store, email_channel, whatsapp_channel)
        result = dispatcher.dispatch(customer, NotificationScenario.READY_FOR_PICKUP, order)
        if result.sent:
            ...
    """

    def __init__(
        self,
        settings_provider: SettingsProvider,
        email_channel: EmailChannel,
        whatsapp_channel: WhatsAppChannel,
    ):
        self.settings_provider = settings_provider
        self.email_channel = email_channel
        self.whatsapp_channel = whatsapp_channel

    def dispatch(
        self,
        customer: Optional[Customer],
        scenario: NotificationScenario,
        order: Optional[Order],
        extra_variables: Optional[Mapping[str, Any]] = None,
    ) -> DispatchResult:
        """
        Notify a customer about an order.

        Never raises: every failure mode ends in a returned error string.
        """
        if customer is None or order is None:
            logger.error(f"Dispatch for '{scenario.value}' called without a customer or order")
            return DispatchResult(sent=False, error="Customer and order are required to send a notification")

        log = order_logger(logger, order)

        try:
            settings = self.settings_provider.get_settings_for_tenant(order.tenant_id)
        except Exception as e:
            log.exception("Could not load tenant settings")
            return DispatchResult(sent=False, error=f"Could not load notification settings: {e}")

        preference = settings.preferred_notification_channel
        if preference == PreferredChannel.NONE:
            log.info(f"Notifications disabled for tenant, skipping '{scenario.value}'")
            return DispatchResult(
                sent=False,
                error="Customer notifications are disabled for this business",
                opted_out=True,
            )

        variables = build_variables(customer, order, settings, extra_variables)
        templates = settings.notification_templates
        errors: list[str] = []

        try_whatsapp = preference == PreferredChannel.WHATSAPP or (
            preference == PreferredChannel.EMAIL and not customer.has_email and customer.has_phone
        )
        if try_whatsapp:
            if not customer.has_phone:
                errors.append("WhatsApp: customer has no phone number on file")
            else:
                result = self._attempt(
                    log, ChannelType.WHATSAPP, self.whatsapp_channel, customer.phone, scenario, variables, templates
                )
                if result.delivered:
                    return self._sent(log, scenario, DispatchMethod.WHATSAPP, result)
                errors.append(f"WhatsApp: {result.error}")

        try_email = preference == PreferredChannel.EMAIL or (
            preference == PreferredChannel.WHATSAPP and customer.has_email
        )
        if try_email:
            if not customer.has_email:
                errors.append("Email: customer has no email address on file")
            else:
                result = self._attempt(
                    log, ChannelType.EMAIL, self.email_channel, customer.email, scenario, variables, templates
                )
                if result.delivered:
                    return self._sent(log, scenario, DispatchMethod.EMAIL, result)
                errors.append(f"Email: {result.error}")

        if not customer.has_contact:
            error = "No contact information on file: customer has neither a phone number nor an email address"
        elif errors:
            error = "; ".join(errors)
        else:
            error = "No suitable contact method is configured for this business and customer"

        log.warning(f"'{scenario.value}' notification not delivered: {error}")
        return DispatchResult(sent=False, error=error)

    def _attempt(
        self,
        log: logging.LoggerAdapter,
        channel_type: ChannelType,
        channel: Channel,
        recipient: str,
        scenario: NotificationScenario,
        variables: Mapping[str, Any],
        templates: NotificationTemplates,
    ) -> DeliveryResult:
        """Call a channel, turning anything it raises into an undelivered result."""
        try:
            return channel.send(recipient, scenario, variables, templates)
        except Exception as e:
            log.exception(f"{channel_type.value} channel raised while sending '{scenario.value}'")
            return DeliveryResult(
                delivered=False,
                channel=channel_type,
                recipient=recipient,
                error=f"Unexpected channel error: {e}",
            )

    def _sent(
        self,
        log: logging.LoggerAdapter,
        scenario: NotificationScenario,
        method: DispatchMethod,
        result: DeliveryResult,
    ) -> DispatchResult:
        log.info(f"'{scenario.value}' notification delivered via {method.value} to {result.recipient}")
        return DispatchResult(sent=True, method=method)


def build_variables(
    customer: Customer,
    order: Order,
    settings: TenantSettings,
    extra_variables: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Template token values shared by every scenario and channel."""
    company = settings.company_info
    symbol = settings.default_currency_symbol or ""
    pickup = order.expected_pickup_date

    variables: dict[str, Any] = {
        "customerName": (customer.name or "").strip() or DEFAULT_CUSTOMER_NAME,
        "receiptNumber": order.receipt_number,
        "companyName": company.name or DEFAULT_COMPANY_NAME,
        "companyAddress": company.address,
        "companyPhone": company.phone,
        "orderStatus": order.status.value,
        "expectedPickupDate": pickup.strftime(PICKUP_DATE_FORMAT) if pickup else "",
        "totalAmount": f"{symbol}{order.total_amount:.2f}",
        "amountDue": f"{symbol}{order.amount_due:.2f}",
    }
    if extra_variables:
        variables.update(extra_variables)
    return variables
