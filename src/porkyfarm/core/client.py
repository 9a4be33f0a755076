"""Resend email API client - core functions only."""

import logging
from enum import Enum

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from porkyfarm.core.config import settings

API_URL = "https://api.resend.com"

logger = logging.getLogger(__name__)

# =============================================================================
# Retry Configuration
# =============================================================================

MAX_RETRIES = 3
MIN_WAIT_SECONDS = 1
MAX_WAIT_SECONDS = 10


# =============================================================================
# Exceptions
# =============================================================================


class EmailErrorKind(Enum):
    """Why a send failed, decided from status codes and exception types."""

    AUTH = "auth"  # 401/403 - bad or revoked API key
    VALIDATION = "validation"  # 400/422 - bad recipient, template, payload
    RATE_LIMITED = "rate_limited"  # 429
    SERVER = "server"  # 5xx
    NETWORK = "network"  # timeouts, connection errors
    NOT_CONFIGURED = "not_configured"  # no API key in settings


class RetryableError(Exception):
    """Transient error that should be retried (timeouts, connection errors, 429, 5xx)."""

    def __init__(self, message: str, kind: EmailErrorKind):
        self.kind = kind
        super().__init__(message)


class EmailAPIError(Exception):
    """Non-retryable error from the email provider."""

    def __init__(self, message: str, kind: EmailErrorKind, status_code: int | None = None):
        self.kind = kind
        self.status_code = status_code
        super().__init__(message)


def classify_status(status_code: int) -> EmailErrorKind:
    """Map an HTTP status code from the provider to an error kind."""
    if status_code in (401, 403):
        return EmailErrorKind.AUTH
    if status_code == 429:
        return EmailErrorKind.RATE_LIMITED
    if status_code >= 500:
        return EmailErrorKind.SERVER
    return EmailErrorKind.VALIDATION


# =============================================================================
# Client Functions
# =============================================================================


async def send_email(
    to: str | list[str],
    subject: str,
    html: str,
    text: str | None = None,
    tags: dict[str, str] | None = None,
) -> dict:
    """Send a single email through Resend.

    This is the low-level function that makes a single request without retry.
    For most use cases, prefer `send_email_with_retry()` which handles transient errors.

    Args:
        to: Recipient address or list of addresses
        subject: Subject line
        html: HTML body
        text: Optional plain-text body
        tags: Optional provider tags (name -> value)

    Returns:
        Parsed JSON response from the API (contains the message "id")

    Raises:
        EmailAPIError: If no API key is configured
        httpx.HTTPStatusError: If the HTTP request fails
    """
    if not settings.resend_api_key:
        raise EmailAPIError("RESEND_API_KEY is not configured", EmailErrorKind.NOT_CONFIGURED)

    payload: dict = {
        "from": settings.email_from,
        "to": [to] if isinstance(to, str) else to,
        "subject": subject,
        "html": html,
    }
    if text:
        payload["text"] = text
    if tags:
        payload["tags"] = [{"name": k, "value": v} for k, v in tags.items()]

    async with httpx.AsyncClient() as client:
        response = await client.post(
            f"{API_URL}/emails",
            headers={
                "Authorization": f"Bearer {settings.resend_api_key}",
                "Content-Type": "application/json",
            },
            json=payload,
            timeout=30,
        )
        response.raise_for_status()
        return response.json()


@retry(
    retry=retry_if_exception_type(RetryableError),
    stop=stop_after_attempt(MAX_RETRIES),
    wait=wait_exponential_jitter(initial=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS, jitter=2),
    reraise=True,
)
async def send_email_with_retry(
    to: str | list[str],
    subject: str,
    html: str,
    text: str | None = None,
    tags: dict[str, str] | None = None,
) -> dict:
    """Send an email with automatic retry on transient errors.

    Retries on:
    - Timeouts
    - Connection errors
    - HTTP 429 (provider rate limit)
    - HTTP 5xx errors

    Auth and validation failures (401/403/400/422) are raised immediately.
    After MAX_RETRIES failures the last RetryableError is re-raised.

    Raises:
        RetryableError: If every attempt failed transiently
        EmailAPIError: If a non-retryable error occurs
    """
    try:
        return await send_email(to, subject, html, text=text, tags=tags)
    except httpx.TimeoutException as e:
        logger.warning("Email send to %s timed out, retrying", to)
        raise RetryableError(f"Request timed out: {e}", EmailErrorKind.NETWORK) from e
    except httpx.ConnectError as e:
        logger.warning("Email send to %s could not connect, retrying", to)
        raise RetryableError(f"Connection failed: {e}", EmailErrorKind.NETWORK) from e
    except httpx.HTTPStatusError as e:
        # Try to get the response body for better error messages
        try:
            body = e.response.text
        except Exception:
            body = "(unable to read response body)"

        status = e.response.status_code
        kind = classify_status(status)
        if kind in (EmailErrorKind.RATE_LIMITED, EmailErrorKind.SERVER):
            logger.warning("Email send to %s failed with HTTP %s, retrying", to, status)
            raise RetryableError(f"HTTP {status}: {body}", kind) from e
        raise EmailAPIError(f"HTTP {status}: {body}", kind, status_code=status) from e
