"""
Customer notification channels: transactional email and WhatsApp.

Each channel wraps a third-party provider:
- Email: any SMTP relay, via smtplib
- WhatsApp: Twilio approved message templates, via the twilio SDK

Design decisions:
- Both channels share one failure-tolerant contract: `send()` never raises,
  it returns a DeliveryResult with `delivered=False` and a reason instead
- A channel built without provider config is still usable, every send just
  reports the configuration error
- Channels track attempts for test assertions and operator debugging
- Provider clients are passed in, so tests substitute fakes directly
"""

import json
import logging
import re
import smtplib
from dataclasses import dataclass, field
from datetime import datetime
from email.message import EmailMessage
from enum import Enum
from typing import Any, Mapping, Optional, Protocol

from twilio.rest import Client as TwilioClient

from shared.config import EmailConfig, WhatsAppConfig
from shared.models import NotificationTemplates
from shared.templates import (
    NotificationScenario,
    render_template,
    resolve_email_templates,
    whatsapp_template_for,
)

email_logger = logging.getLogger("channels.email")
whatsapp_logger = logging.getLogger("channels.whatsapp")


class ChannelType(str, Enum):
    """Supported customer notification channels."""
    EMAIL = "email"
    WHATSAPP = "whatsapp"


@dataclass
class DeliveryResult:
    """
    Result of a single channel send attempt.

    Captures success/failure and metadata for debugging and testing.
    """
    delivered: bool
    channel: ChannelType
    recipient: str
    body: str = ""
    subject: Optional[str] = None  # Email only
    error: Optional[str] = None
    provider_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def __str__(self) -> str:
        status = "✓" if self.delivered else "✗"
        if self.channel == ChannelType.EMAIL:
            return f"{status} EMAIL to {self.recipient}: {self.subject}"
        return f"{status} WHATSAPP to {self.recipient}: {self.error or self.body}"


class _HistoryMixin:
    sent_messages: list[DeliveryResult]

    def _record(self, result: DeliveryResult) -> DeliveryResult:
        self.sent_messages.append(result)
        return result

    def get_sent_count(self) -> int:
        """Number of send attempts, successful or not."""
        return len(self.sent_messages)

    def get_successful_sends(self) -> list[DeliveryResult]:
        return [m for m in self.sent_messages if m.delivered]

    def clear_history(self):
        self.sent_messages.clear()


# =============================================================================
# Phone Number Normalization
# =============================================================================

class PhoneNumberError(ValueError):
    """Raised when a phone number cannot be put into international format."""


MIN_E164_DIGITS = 8
MAX_E164_DIGITS = 15
# National numbers at most this long get the default country code prepended
MAX_NATIONAL_DIGITS = 10


def normalize_phone_number(phone: Optional[str], default_country_code: str) -> str:
    """
    Normalize a phone number to international format (+<country><number>).

    Rules:
    - Everything except digits is stripped
    - A leading "+" or "00" means the number is already international
    - A single leading trunk "0" is dropped and the country code prepended
    - Numbers of up to 10 digits are national and get the country code
    - The result must have 8-15 digits

    Raises:
        PhoneNumberError: If the number cannot be normalized.
    """
    raw = (phone or "").strip()
    digits = re.sub(r"\D", "", raw)
    if not digits:
        raise PhoneNumberError(f"Phone number '{raw}' contains no digits")

    country_code = re.sub(r"\D", "", default_country_code or "")

    if raw.startswith("+"):
        international = digits
    elif digits.startswith("00"):
        international = digits[2:]
    elif digits.startswith("0"):
        if not country_code:
            raise PhoneNumberError(f"Phone number '{raw}' needs a default country code")
        international = country_code + digits[1:]
    elif len(digits) <= MAX_NATIONAL_DIGITS:
        if not country_code:
            raise PhoneNumberError(f"Phone number '{raw}' needs a default country code")
        international = country_code + digits
    else:
        international = digits

    if not MIN_E164_DIGITS <= len(international) <= MAX_E164_DIGITS:
        raise PhoneNumberError(
            f"Phone number '{raw}' has {len(international)} digits after normalization, "
            f"expected {MIN_E164_DIGITS}-{MAX_E164_DIGITS}"
        )
    return f"+{international}"


# =============================================================================
# Email
# =============================================================================

class MailTransport(Protocol):
    def send(self, message: EmailMessage) -> None: ...


class SMTPTransport:
    """Sends EmailMessages through an SMTP relay, one connection per message."""

    def __init__(self, config: EmailConfig):
        self.config = config

    def send(self, message: EmailMessage) -> None:
        cfg = self.config
        smtp_class = smtplib.SMTP_SSL if cfg.secure else smtplib.SMTP
        with smtp_class(cfg.host, cfg.port, timeout=cfg.timeout) as smtp:
            if not cfg.secure:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls()
                    smtp.ehlo()
            if cfg.user:
                smtp.login(cfg.user, cfg.password)
            smtp.send_message(message)


class EmailChannel(_HistoryMixin):
    """
    Transactional email channel.

    Resolves the tenant's subject/body templates for the scenario, renders
    them and hands the message to the transport.
    """

    def __init__(self, transport: Optional[MailTransport] = None, from_address: str = ""):
        self.transport = transport
        self.from_address = from_address
        self.sent_messages: list[DeliveryResult] = []

    @property
    def is_configured(self) -> bool:
        return self.transport is not None and bool(self.from_address)

    def send(
        self,
        recipient: Optional[str],
        scenario: NotificationScenario,
        variables: Mapping[str, Any],
        templates: Optional[NotificationTemplates] = None,
    ) -> DeliveryResult:
        """
        Send a scenario email.

        Args:
            recipient: Customer email address
            scenario: Which template set to use
            variables: Token values for the templates
            templates: Tenant templates (built-in defaults when None)

        Returns:
            DeliveryResult, never raises
        """
        to = (recipient or "").strip()
        if not self.is_configured:
            return self._failed(to, "Email transport is not configured")
        if not to:
            return self._failed(to, "Customer has no email address on file")

        subject_template, body_template = resolve_email_templates(templates, scenario)
        subject = render_template(subject_template, variables)
        body = render_template(body_template, variables)
        if not body.strip():
            return self._failed(to, f"No email body template configured for '{scenario.value}'", subject)

        try:
            message = EmailMessage()
            message["From"] = self.from_address
            message["To"] = to
            message["Subject"] = subject
            message.set_content(body)
        except ValueError as e:
            return self._failed(to, f"Could not build email message: {e}", subject, body)

        try:
            self.transport.send(message)
        except Exception as e:
            return self._failed(to, f"Email delivery failed: {e}", subject, body)

        email_logger.info(f"[EMAIL] '{scenario.value}' to {to} | Subject: {subject}")
        email_logger.debug(f"[EMAIL BODY] {body}")
        return self._record(DeliveryResult(
            delivered=True,
            channel=ChannelType.EMAIL,
            recipient=to,
            subject=subject,
            body=body,
        ))

    def _failed(self, to: str, error: str, subject: Optional[str] = None, body: str = "") -> DeliveryResult:
        email_logger.error(f"[EMAIL FAILED] To: {to or '-'} | Error: {error}")
        return self._record(DeliveryResult(
            delivered=False,
            channel=ChannelType.EMAIL,
            recipient=to,
            subject=subject,
            body=body,
            error=error,
        ))


# =============================================================================
# WhatsApp
# =============================================================================

class WhatsAppChannel(_HistoryMixin):
    """
    WhatsApp channel backed by Twilio content templates.

    WhatsApp only allows business-initiated messages from pre-approved
    templates, so this channel sends a template identifier plus a small
    positional variable set rather than free text:
        1 = customer name, 2 = receipt number, 3 = company name
    """

    def __init__(
        self,
        client: Optional[TwilioClient] = None,
        from_number: str = "",
        default_country_code: str = "1",
        fallback_templates: Optional[Mapping[NotificationScenario, str]] = None,
    ):
        self.client = client
        self.from_number = from_number
        self.default_country_code = default_country_code
        self.fallback_templates = dict(fallback_templates or {})
        self.sent_messages: list[DeliveryResult] = []

    @property
    def is_configured(self) -> bool:
        return self.client is not None and bool(self.from_number)

    def send(
        self,
        recipient: Optional[str],
        scenario: NotificationScenario,
        variables: Mapping[str, Any],
        templates: Optional[NotificationTemplates] = None,
    ) -> DeliveryResult:
        """
        Send a scenario WhatsApp template message.

        Returns:
            DeliveryResult, never raises
        """
        raw = (recipient or "").strip()
        if not self.is_configured:
            return self._failed(raw, "WhatsApp client is not configured")

        try:
            to = normalize_phone_number(raw, self.default_country_code)
            sender = normalize_phone_number(self.from_number, self.default_country_code)
        except PhoneNumberError as e:
            return self._failed(raw, f"Invalid phone number: {e}")

        template_id = whatsapp_template_for(templates, scenario) or self.fallback_templates.get(scenario, "")
        if not template_id:
            return self._failed(to, f"WhatsApp template not configured for '{scenario.value}'")

        content_variables = {
            "1": _text(variables.get("customerName")),
            "2": _text(variables.get("receiptNumber")),
            "3": _text(variables.get("companyName")),
        }

        try:
            message = self.client.messages.create(
                from_=f"whatsapp:{sender}",
                to=f"whatsapp:{to}",
                content_sid=template_id,
                content_variables=json.dumps(content_variables),
            )
        except Exception as e:
            return self._failed(to, f"WhatsApp delivery failed: {e}")

        provider_id = getattr(message, "sid", None)
        whatsapp_logger.info(f"[WHATSAPP] '{scenario.value}' to {to} | Template: {template_id} | SID: {provider_id}")
        return self._record(DeliveryResult(
            delivered=True,
            channel=ChannelType.WHATSAPP,
            recipient=to,
            body=json.dumps(content_variables),
            provider_id=provider_id,
        ))

    def _failed(self, to: str, error: str) -> DeliveryResult:
        whatsapp_logger.error(f"[WHATSAPP FAILED] To: {to or '-'} | Error: {error}")
        return self._record(DeliveryResult(
            delivered=False,
            channel=ChannelType.WHATSAPP,
            recipient=to,
            error=error,
        ))


def _text(value: Any) -> str:
    return "" if value is None else str(value)


# =============================================================================
# Builders
# =============================================================================

def build_email_channel(config: EmailConfig) -> EmailChannel:
    """Email channel from config; unconfigured (but usable) when incomplete."""
    if not config.is_configured:
        email_logger.warning("Email transport not configured (EMAIL_HOST/EMAIL_FROM); email channel disabled")
        return EmailChannel()
    return EmailChannel(transport=SMTPTransport(config), from_address=config.from_address)


def build_whatsapp_channel(config: WhatsAppConfig) -> WhatsAppChannel:
    """WhatsApp channel from config; unconfigured (but usable) when incomplete."""
    fallback = {
        NotificationScenario.READY_FOR_PICKUP: config.ready_for_pickup_template,
        NotificationScenario.MANUAL_REMINDER: config.manual_reminder_template,
    }
    if not config.is_configured:
        whatsapp_logger.warning("Twilio WhatsApp not configured; WhatsApp channel disabled")
        return WhatsAppChannel(default_country_code=config.default_country_code, fallback_templates=fallback)
    return WhatsAppChannel(
        client=TwilioClient(config.account_sid, config.auth_token),
        from_number=config.from_number,
        default_country_code=config.default_country_code,
        fallback_templates=fallback,
    )
