"""
Sentry error reporting for the paymaster relay.

Every relay error, fatal or not, is reported here before it propagates:
handler construction failures and readiness events, dispatcher failures,
and administrative workflow aborts.

Reference: https://docs.sentry.io/platforms/python/integrations/fastapi/
"""
from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

logger = logging.getLogger(__name__)

# 32-byte hex blobs look like private keys; never ship them
_KEY_LIKE = re.compile(r"(0x)?[0-9a-fA-F]{64}")


def init_sentry(
    dsn: Optional[str] = None,
    environment: str = "dev",
    release: Optional[str] = None,
    traces_sample_rate: float = 0.1,
) -> bool:
    """
    Initialize the Sentry SDK.

    Args:
        dsn: Sentry DSN. Falls back to SENTRY_DSN; reporting is disabled when empty.
        environment: Environment name reported with every event
        release: Release identifier
        traces_sample_rate: Percentage of transactions to sample (0.0 to 1.0)

    Returns:
        True if Sentry was initialized
    """
    if dsn is None:
        dsn = os.getenv("SENTRY_DSN")

    if not dsn:
        logger.warning("Sentry DSN not configured. Error reporting disabled.")
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        integrations=[
            FastApiIntegration(transaction_style="url"),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=traces_sample_rate,
        send_default_pii=False,
        attach_stacktrace=True,
        before_send=before_send_event,
        max_breadcrumbs=50,
    )
    logger.info(f"Sentry initialized: environment={environment}, release={release}")
    return True


def scrub(text: str) -> str:
    """Mask key-like hex strings."""
    return _KEY_LIKE.sub("[REDACTED]", text)


def before_send_event(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Drop health checks and scrub key material before events leave the process."""
    if event.get("request", {}).get("url", "").endswith("/ping"):
        return None

    for exc in event.get("exception", {}).get("values", []):
        if isinstance(exc.get("value"), str):
            exc["value"] = scrub(exc["value"])
    if isinstance(event.get("message"), str):
        event["message"] = scrub(event["message"])

    event.setdefault("tags", {})
    event["tags"]["service"] = "paymaster-relay"
    return event


def capture_exception(
    exception: BaseException,
    tags: Optional[Dict[str, str]] = None,
    context: Optional[Dict[str, Any]] = None,
    level: str = "error",
) -> Optional[str]:
    """
    Send an exception to Sentry.

    Returns:
        Event ID if sent, None otherwise
    """
    with sentry_sdk.new_scope() as scope:
        scope.level = level
        for key, value in (tags or {}).items():
            scope.set_tag(key, value)
        for key, value in (context or {}).items():
            scope.set_context(key, value)
        event_id = sentry_sdk.capture_exception(exception)
    logger.debug(f"Exception captured in Sentry: event_id={event_id}")
    return event_id


def capture_message(
    message: str,
    level: str = "info",
    tags: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """
    Send a message to Sentry.

    Returns:
        Event ID if sent, None otherwise
    """
    with sentry_sdk.new_scope() as scope:
        for key, value in (tags or {}).items():
            scope.set_tag(key, value)
        event_id = sentry_sdk.capture_message(message, level=level)
    logger.debug(f"Message captured in Sentry: event_id={event_id}")
    return event_id
