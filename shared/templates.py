"""
Notification message templates.

Tenants edit their own email subject/body templates from the admin settings
screen. Templates use `{{tokenName}}` placeholders which are filled from the
order, customer and company data at send time.

Design decisions:
- Substitution is literal: only tokens we have a value for are replaced,
  anything else (including typos) is left in the text as-is
- Missing values render as an empty string, never "None"
- Built-in fallbacks cover tenants who left a scenario blank
"""

import re
from enum import Enum
from typing import Any, Mapping, Optional

from shared.models import NotificationTemplates


class NotificationScenario(str, Enum):
    """Why we are contacting the customer."""
    READY_FOR_PICKUP = "readyForPickup"
    MANUAL_REMINDER = "manualReminder"


# =============================================================================
# Built-in Fallbacks
# =============================================================================

GENERIC_SUBJECT = "Your Order Update from {{companyName}}"
GENERIC_BODY = "Your order #{{receiptNumber}} status has been updated."

DEFAULT_BODIES: dict[NotificationScenario, str] = {
    NotificationScenario.READY_FOR_PICKUP: (
        "Dear {{customerName}},\n\nYour order #{{receiptNumber}} is ready for pickup.\n\n"
        "Thank you,\n{{companyName}}"
    ),
    NotificationScenario.MANUAL_REMINDER: (
        "Dear {{customerName}},\n\nThis is a reminder for your order #{{receiptNumber}}.\n\n"
        "Thank you,\n{{companyName}}"
    ),
}


# =============================================================================
# Rendering
# =============================================================================

def render_template(template: Optional[str], variables: Mapping[str, Any]) -> str:
    """
    Substitute `{{name}}` tokens in a template.

    Args:
        template: Text containing `{{name}}` placeholders. None renders as "".
        variables: Token name (without braces) to value. None values render
                   as an empty string.

    Returns:
        The rendered text. Tokens with no entry in `variables` are untouched.
    """
    if not template:
        return ""

    result = template
    for name, value in variables.items():
        pattern = re.compile(re.escape("{{" + str(name) + "}}"))
        replacement = "" if value is None else str(value)
        # A callable replacement keeps backslashes in values literal
        result = pattern.sub(lambda _match: replacement, result)
    return result


def resolve_email_templates(
    templates: Optional[NotificationTemplates],
    scenario: NotificationScenario,
) -> tuple[str, str]:
    """
    Pick the subject and body templates for a scenario.

    Falls back from the scenario-specific template, to the tenant's generic
    subject, to the built-in defaults.

    Returns:
        Tuple of (subject_template, body_template), not yet rendered.
    """
    templates = templates or NotificationTemplates()
    generic_subject = _first_filled(templates.subject, GENERIC_SUBJECT)

    if scenario == NotificationScenario.READY_FOR_PICKUP:
        subject = _first_filled(templates.ready_for_pickup_subject, generic_subject)
        body = _first_filled(templates.ready_for_pickup_body, DEFAULT_BODIES[scenario])
    elif scenario == NotificationScenario.MANUAL_REMINDER:
        subject = _first_filled(templates.manual_reminder_subject, generic_subject)
        body = _first_filled(templates.manual_reminder_body, DEFAULT_BODIES[scenario])
    else:
        subject, body = generic_subject, GENERIC_BODY

    return subject, body


def whatsapp_template_for(
    templates: Optional[NotificationTemplates],
    scenario: NotificationScenario,
) -> str:
    """Tenant's provider template identifier for a scenario ("" if unset)."""
    if templates is None:
        return ""
    if scenario == NotificationScenario.READY_FOR_PICKUP:
        return templates.whatsapp_ready_for_pickup_template.strip()
    if scenario == NotificationScenario.MANUAL_REMINDER:
        return templates.whatsapp_manual_reminder_template.strip()
    return ""


def _first_filled(*candidates: Optional[str]) -> str:
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate
    return ""
