"""Carrier status vocabularies and webhook body helpers."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qsl

from outbound.errors import WebhookParseError
from outbound.types import NormalizedStatus

logger = logging.getLogger(__name__)

_TWILIO_STATUS_MAP: dict[str, NormalizedStatus] = {
    "sent": NormalizedStatus.SENT,
    "delivered": NormalizedStatus.DELIVERED,
    "read": NormalizedStatus.READ,
    "failed": NormalizedStatus.FAILED,
    "undelivered": NormalizedStatus.FAILED,
}

# Click approximates read intent; there is no separate clicked state.
_SES_EVENT_MAP: dict[str, NormalizedStatus] = {
    "Send": NormalizedStatus.SENT,
    "Delivery": NormalizedStatus.DELIVERED,
    "Bounce": NormalizedStatus.FAILED,
    "Complaint": NormalizedStatus.FAILED,
    "Open": NormalizedStatus.READ,
    "Click": NormalizedStatus.READ,
}


def map_twilio_status(twilio_status: str | None) -> NormalizedStatus:
    """Map a Twilio ``MessageStatus`` value onto the normalized set."""
    if not twilio_status:
        return NormalizedStatus.UNKNOWN
    status = _TWILIO_STATUS_MAP.get(twilio_status.strip().lower())
    if status is None:
        logger.debug("Unmapped Twilio message status: %s", twilio_status)
        return NormalizedStatus.UNKNOWN
    return status


def map_ses_event(event_type: str | None) -> NormalizedStatus:
    """Map an SES ``eventType`` discriminator onto the normalized set."""
    if not event_type:
        return NormalizedStatus.UNKNOWN
    return _SES_EVENT_MAP.get(event_type, NormalizedStatus.UNKNOWN)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string, a datetime, or epoch milliseconds into aware UTC.

    Returns None when ``value`` is empty.

    Raises:
        WebhookParseError: the value is present but unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        raise WebhookParseError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise WebhookParseError(f"Invalid timestamp: {value!r}") from exc
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise WebhookParseError(f"Invalid timestamp: {value!r}")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def load_json_body(raw_body: Any) -> dict[str, Any]:
    """Accept a mapping or JSON text/bytes and return a dict."""
    if isinstance(raw_body, Mapping):
        return dict(raw_body)
    if isinstance(raw_body, (bytes, bytearray)):
        raw_body = raw_body.decode("utf-8")
    if not isinstance(raw_body, str):
        raise WebhookParseError(f"Unsupported webhook body type: {type(raw_body).__name__}")
    try:
        data = json.loads(raw_body)
    except ValueError as exc:
        raise WebhookParseError(f"Webhook body is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise WebhookParseError("Webhook body must be a JSON object")
    return data


def load_form_body(raw_body: Any) -> dict[str, str]:
    """Accept a mapping or form-encoded text/bytes and return the posted params."""
    if isinstance(raw_body, Mapping):
        return {str(key): str(value) for key, value in raw_body.items()}
    if isinstance(raw_body, (bytes, bytearray)):
        raw_body = raw_body.decode("utf-8")
    if not isinstance(raw_body, str):
        raise WebhookParseError(f"Unsupported webhook body type: {type(raw_body).__name__}")
    return dict(parse_qsl(raw_body, keep_blank_values=True))
