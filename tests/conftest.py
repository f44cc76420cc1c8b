"""
Shared pytest fixtures for the order notification tests.

These fixtures provide consistent test data, fake providers and fresh
service instances so tests don't interfere with each other.
"""

import smtplib
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pytest

from dispatch.dispatcher import NotificationDispatcher
from shared.channels import ChannelType, DeliveryResult, EmailChannel, WhatsAppChannel
from shared.data_store import DataStore
from shared.models import Customer, Order, TenantSettings
from shared.templates import NotificationScenario


# =============================================================================
# Fake Providers
# =============================================================================

@dataclass
class FakeMessage:
    sid: str


class FakeMessages:
    """Stands in for `twilio.rest.Client().messages`."""

    def __init__(self):
        self.calls: list[dict[str, Any]] = []
        self.error: Optional[Exception] = None

    def create(self, **kwargs) -> FakeMessage:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return FakeMessage(sid=f"SM{len(self.calls):04d}")


class FakeTwilioClient:
    def __init__(self):
        self.messages = FakeMessages()


class FakeTransport:
    """Records EmailMessages instead of talking to an SMTP server."""

    def __init__(self, error: Optional[Exception] = None):
        self.sent = []
        self.error = error

    def send(self, message) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(message)


@dataclass
class StubChannel:
    """
    Channel double for dispatcher tests.

    Returns a fixed outcome and counts calls. Set `raises` to make it blow up.
    """
    channel: ChannelType
    delivered: bool = True
    error: Optional[str] = None
    raises: Optional[Exception] = None
    calls: list[tuple] = field(default_factory=list)

    def send(self, recipient, scenario, variables, templates=None) -> DeliveryResult:
        self.calls.append((recipient, scenario, dict(variables), templates))
        if self.raises is not None:
            raise self.raises
        return DeliveryResult(
            delivered=self.delivered,
            channel=self.channel,
            recipient=recipient or "",
            error=None if self.delivered else (self.error or "stub failure"),
        )

    @property
    def call_count(self) -> int:
        return len(self.calls)


class StaticSettings:
    """Settings provider returning one settings document for every tenant."""

    def __init__(self, settings: TenantSettings):
        self.settings = settings

    def get_settings_for_tenant(self, tenant_id: str) -> TenantSettings:
        return self.settings


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def data_dir() -> Path:
    """Path to the fixture data directory."""
    return Path(__file__).parent.parent / "data"


@pytest.fixture
def data_store(data_dir: Path) -> DataStore:
    """
    Fresh DataStore instance for each test.

    Uses the real JSON fixtures but creates a new instance
    so tests don't interfere with each other.
    """
    return DataStore(data_dir=data_dir)


@pytest.fixture
def empty_store(tmp_path: Path) -> DataStore:
    """DataStore with no fixture documents at all."""
    return DataStore(data_dir=tmp_path)


@pytest.fixture
def customer() -> Customer:
    return Customer(
        id="cust-t1",
        tenant_id="tenant-t",
        name="Ama Mensah",
        phone="555-123-4567",
        email="ama@example.com",
    )


@pytest.fixture
def order() -> Order:
    return Order(
        id="ord-t1",
        tenant_id="tenant-t",
        receipt_number="PMS-20310115-4321",
        customer_id="cust-t1",
        sub_total_amount=40.0,
        expected_pickup_date=datetime(2031, 1, 15, 16, 30),
    )


# =============================================================================
# Channel Fixtures
# =============================================================================

@pytest.fixture
def twilio_client() -> FakeTwilioClient:
    return FakeTwilioClient()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def whatsapp_channel(twilio_client: FakeTwilioClient) -> WhatsAppChannel:
    """WhatsApp channel with a fake Twilio client and env-level templates."""
    return WhatsAppChannel(
        client=twilio_client,
        from_number="+14155238886",
        default_country_code="1",
        fallback_templates={
            NotificationScenario.READY_FOR_PICKUP: "HX-env-ready",
            NotificationScenario.MANUAL_REMINDER: "HX-env-reminder",
        },
    )


@pytest.fixture
def email_channel(transport: FakeTransport) -> EmailChannel:
    return EmailChannel(transport=transport, from_address="orders@pressflow.test")


@pytest.fixture
def dispatcher(data_store, email_channel, whatsapp_channel) -> NotificationDispatcher:
    """Dispatcher over the fixture data with fake providers."""
    return NotificationDispatcher(data_store, email_channel, whatsapp_channel)


@pytest.fixture
def stub_whatsapp() -> StubChannel:
    """WhatsApp channel double that delivers; set `.delivered = False` to fail."""
    return StubChannel(channel=ChannelType.WHATSAPP)


@pytest.fixture
def stub_email() -> StubChannel:
    """Email channel double that delivers; set `.delivered = False` to fail."""
    return StubChannel(channel=ChannelType.EMAIL)


@pytest.fixture
def make_dispatcher(stub_email, stub_whatsapp):
    """Build a dispatcher over the stub channels for a given settings document."""
    def _make(settings: TenantSettings) -> NotificationDispatcher:
        return NotificationDispatcher(StaticSettings(settings), stub_email, stub_whatsapp)
    return _make


@pytest.fixture
def smtp_error() -> Exception:
    return smtplib.SMTPServerDisconnected("Connection unexpectedly closed")
