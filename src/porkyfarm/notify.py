"""Templated transactional email.

Each send_* function renders a small HTML/text pair and delivers it through
the Resend client with retry. Sends never raise: the outcome is reported as
an EmailResult and logged.
"""

import logging
from dataclasses import dataclass
from datetime import date
from html import escape

from porkyfarm.core.client import EmailAPIError, RetryableError, send_email_with_retry
from porkyfarm.core.config import get_farm_today, settings
from porkyfarm.core.units import format_currency, format_quantity

logger = logging.getLogger(__name__)

ALERT_ICONS = {"critical": "🔴", "high": "🟠", "medium": "🟡", "low": "🔵"}


@dataclass
class EmailResult:
    success: bool
    message_id: str | None = None
    error: str | None = None
    error_kind: str | None = None
    attempts: int = 1


def _attempts() -> int:
    return send_email_with_retry.statistics.get("attempt_number", 1)


async def deliver(to: str, subject: str, html: str, text: str, action: str) -> EmailResult:
    """Send one message and turn the outcome into an EmailResult."""
    try:
        response = await send_email_with_retry(to, subject, html, text=text, tags={"action": action})
    except RetryableError as e:
        logger.error("Email %s to %s failed after %s attempts: %s", action, to, _attempts(), e)
        return EmailResult(False, error=str(e), error_kind=e.kind.value, attempts=_attempts())
    except EmailAPIError as e:
        logger.error("Email %s to %s rejected: %s", action, to, e)
        return EmailResult(False, error=str(e), error_kind=e.kind.value, attempts=_attempts())

    message_id = response.get("id")
    logger.info("Email %s sent to %s (id %s)", action, to, message_id)
    return EmailResult(True, message_id=message_id, attempts=_attempts())


def _layout(title: str, body: str) -> str:
    return (
        '<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto; padding: 24px;">'
        '<h2 style="color: #16a34a;">🐷 PorkyFarm</h2>'
        f"<h3>{escape(title)}</h3>"
        f"{body}"
        f'<p><a href="{escape(settings.app_url)}/dashboard">Open PorkyFarm</a></p>'
        "</div>"
    )


# =============================================================================
# Messages
# =============================================================================


async def send_welcome_email(to: str, user_name: str) -> EmailResult:
    title = f"Welcome to PorkyFarm, {user_name}!"
    text = (
        f"Hello {user_name},\n\n"
        "Your PorkyFarm account is ready. Start by registering your animals, "
        "then track health cases, gestations and feed from the dashboard.\n\n"
        f"{settings.app_url}/dashboard"
    )
    html = _layout(
        title,
        "<p>Your account is ready. Start by registering your animals, then track "
        "health cases, gestations and feed from the dashboard.</p>",
    )
    return await deliver(to, "Welcome to PorkyFarm!", html, text, "welcome")


async def send_password_reset_email(to: str, reset_url: str) -> EmailResult:
    text = (
        "We received a request to reset your PorkyFarm password.\n\n"
        f"Reset it here: {reset_url}\n\n"
        "If you did not ask for this, you can ignore this email."
    )
    html = _layout(
        "Reset your password",
        f'<p><a href="{escape(reset_url)}">Choose a new password</a></p>'
        "<p>If you did not ask for this, you can ignore this email.</p>",
    )
    return await deliver(to, "Reset your PorkyFarm password", html, text, "password-reset")


def render_alert_lines(alerts: list[dict]) -> list[str]:
    return [f"{ALERT_ICONS.get(a['priority'], '')} {a['title']}: {a['description']}".strip() for a in alerts]


async def send_alert_email(to: str, user_name: str, alerts: list[dict]) -> EmailResult:
    """Digest of current dashboard alerts. A single alert uses its own title as subject."""
    if not alerts:
        return EmailResult(False, error="no alerts to send", error_kind="validation", attempts=0)

    subject = f"[PorkyFarm] {alerts[0]['title']}" if len(alerts) == 1 else f"[PorkyFarm] {len(alerts)} alerts"
    lines = render_alert_lines(alerts)
    text = f"Hello {user_name},\n\n" + "\n".join(f"- {line}" for line in lines)
    html = _layout(
        "Alerts for your farm",
        "<ul>" + "".join(f"<li>{escape(line)}</li>" for line in lines) + "</ul>",
    )
    return await deliver(to, subject, html, text, "alert")


def render_weekly_report(stats: dict, alerts: list[dict], farm_name: str, today: date) -> tuple[str, str]:
    """Build the (text, html) bodies of the weekly report."""
    rows = [
        ("Animals", str(stats["total_animals"])),
        ("Active gestations", str(stats["active_gestations"])),
        ("Births in the next 14 days", str(stats["upcoming_births"])),
        ("Open health cases", str(stats["active_health_cases"])),
        ("Feed cost this month", format_currency(stats["monthly_feeding_cost"])),
        ("Feed in stock", format_quantity(stats["total_feed_stock"])),
        ("Days of feed left", str(stats["days_of_stock"])),
    ]
    lines = render_alert_lines(alerts)

    text = f"{farm_name}, week of {today.isoformat()}\n\n"
    text += "\n".join(f"{label}: {value}" for label, value in rows)
    if lines:
        text += "\n\nAlerts:\n" + "\n".join(f"- {line}" for line in lines)

    table = "".join(f"<tr><td>{escape(label)}</td><td><b>{escape(value)}</b></td></tr>" for label, value in rows)
    body = f"<table>{table}</table>"
    if lines:
        body += "<h4>Alerts</h4><ul>" + "".join(f"<li>{escape(line)}</li>" for line in lines) + "</ul>"
    html = _layout(f"{farm_name}, week of {today.isoformat()}", body)
    return text, html


async def send_weekly_report(
    to: str,
    stats: dict,
    alerts: list[dict],
    farm_name: str = "My farm",
    today: date | None = None,
) -> EmailResult:
    today = today or get_farm_today()
    text, html = render_weekly_report(stats, alerts, farm_name, today)
    return await deliver(to, f"PorkyFarm weekly report - {today.isoformat()}", html, text, "weekly-report")
