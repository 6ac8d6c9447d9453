"""Error taxonomy for resolution, sending and webhook handling.

Resolution errors propagate to the caller. Send and webhook errors are raised
inside adapters and converted to result values at the adapter boundary.
"""

from __future__ import annotations


class MessagingError(RuntimeError):
    """Base class for all errors raised by this package."""

    code = "messaging_error"


class TenantNotFoundError(MessagingError):
    code = "tenant_not_found"

    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"Tenant not found: {tenant_id}")
        self.tenant_id = tenant_id


class ChannelNotConfiguredError(MessagingError):
    code = "channel_not_configured"

    def __init__(self, tenant_id: str, channel: str) -> None:
        super().__init__(f"No provider configured for tenant {tenant_id}, channel {channel}")
        self.tenant_id = tenant_id
        self.channel = channel


class InvalidCredentialsError(MessagingError):
    """Credentials could not be decrypted or were rejected by the carrier."""

    code = "invalid_credentials"


class UnsupportedCarrierForChannelError(MessagingError):
    code = "unsupported_carrier_for_channel"

    def __init__(self, carrier: str, channel: str) -> None:
        super().__init__(f"Carrier {carrier!r} does not support channel {channel!r}")
        self.carrier = carrier
        self.channel = channel


class MessageValidationError(MessagingError):
    """The message is missing a field its channel requires."""

    code = "validation_error"


class CarrierTransportError(MessagingError):
    """The carrier API call failed (network error or API rejection)."""

    code = "carrier_transport_error"

    def __init__(self, message: str, *, carrier_code: str | None = None) -> None:
        super().__init__(message)
        self.carrier_code = carrier_code


class WebhookAuthError(MessagingError):
    code = "webhook_auth_error"


class WebhookParseError(MessagingError):
    code = "webhook_parse_error"


class LedgerConflictError(MessagingError):
    """A mapping write would break a ledger uniqueness constraint."""

    code = "ledger_conflict"
