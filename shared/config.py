"""Runtime configuration read from environment variables."""

import logging
import os
from pathlib import Path
from typing import Callable, Mapping, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger("config")


def _flag(value: Optional[str], default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _number(env: Mapping[str, str], name: str, cast: Callable[[str], float], default: float) -> Optional[float]:
    """Parse a positive number; None (and a warning) when the value is malformed."""
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        value = None
    if value is None or value <= 0:
        logger.warning(f"Ignoring invalid {name}={raw!r}")
        return None
    return value


class EmailConfig(BaseModel):
    """Outbound mail transport. Incomplete config disables the email channel."""

    host: str = ""
    port: int = 587
    secure: bool = False
    user: str = ""
    password: str = ""
    from_address: str = ""
    timeout: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.from_address)


class WhatsAppConfig(BaseModel):
    """Twilio WhatsApp settings. Incomplete config disables the WhatsApp channel."""

    account_sid: str = ""
    auth_token: str = ""
    from_number: str = ""
    ready_for_pickup_template: str = ""
    manual_reminder_template: str = ""
    default_country_code: str = "1"

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)


class SchedulerConfig(BaseModel):
    enabled: bool = True
    interval_seconds: int = Field(default=900, gt=0)


class AppConfig(BaseModel):
    """All runtime settings for the notification service."""

    email: EmailConfig = Field(default_factory=EmailConfig)
    whatsapp: WhatsAppConfig = Field(default_factory=WhatsAppConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    data_dir: Optional[Path] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        env = os.environ if environ is None else environ

        port = _number(env, "EMAIL_PORT", int, 587)
        timeout = _number(env, "EMAIL_TIMEOUT", float, 10.0)
        email_host = env.get("EMAIL_HOST", "")
        if email_host and (port is None or timeout is None):
            # Malformed transport settings disable the channel
            email_host = ""

        interval = _number(env, "ORDER_CHECK_INTERVAL_SECONDS", int, 900) or 900

        return cls(
            email=EmailConfig(
                host=email_host,
                port=port or 587,
                secure=_flag(env.get("EMAIL_SECURE")),
                user=env.get("EMAIL_USER", ""),
                password=env.get("EMAIL_PASS", ""),
                from_address=env.get("EMAIL_FROM", ""),
                timeout=timeout or 10.0,
            ),
            whatsapp=WhatsAppConfig(
                account_sid=env.get("TWILIO_ACCOUNT_SID", ""),
                auth_token=env.get("TWILIO_AUTH_TOKEN", ""),
                from_number=env.get("TWILIO_WHATSAPP_NUMBER", ""),
                ready_for_pickup_template=env.get("TWILIO_TEMPLATE_READY_FOR_PICKUP", ""),
                manual_reminder_template=env.get("TWILIO_TEMPLATE_MANUAL_REMINDER", ""),
                default_country_code=env.get("DEFAULT_COUNTRY_CODE") or "1",
            ),
            scheduler=SchedulerConfig(
                enabled=_flag(env.get("ORDER_CHECK_ENABLED"), default=True),
                interval_seconds=interval,
            ),
            data_dir=Path(env["DATA_DIR"]) if env.get("DATA_DIR") else None,
            log_level=env.get("LOG_LEVEL") or "INFO",
        )
