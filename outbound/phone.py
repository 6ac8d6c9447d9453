"""Address helpers for phone-based channels."""

from __future__ import annotations

import re

WHATSAPP_PREFIX = "whatsapp:"


def strip_whatsapp_prefix(value: str) -> str:
    """Drop a leading ``whatsapp:`` marker, case-insensitively."""
    value = value.strip()
    if value.lower().startswith(WHATSAPP_PREFIX):
        return value[len(WHATSAPP_PREFIX):]
    return value


def format_whatsapp_address(number: str | None) -> str | None:
    """Format a phone number as ``whatsapp:+E.164``.

    Accepts punctuation and an existing ``whatsapp:`` prefix. A number
    written with a leading ``+`` already carries its country code and is
    kept as is; bare ten-digit national numbers are assumed to be US.

    Returns:
        The formatted address, or None if the input has no digits.
    """
    if not number:
        return None

    address = strip_whatsapp_prefix(number)
    digits = re.sub(r"\D", "", address)
    if not digits:
        return None

    if len(digits) == 10 and not address.startswith("+"):
        digits = "1" + digits

    return f"{WHATSAPP_PREFIX}+{digits}"
