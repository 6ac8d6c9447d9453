"""Core types for the outbound carrier layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union


class Channel(str, Enum):
    """A messaging mode with its own credential and config shape."""

    SMS = "sms"
    WHATSAPP = "whatsapp"
    EMAIL = "email"


class CarrierName(str, Enum):
    """Carrier identifiers as stored in the credential and mapping tables."""

    TWILIO = "twilio"
    AWS_SES = "aws_ses"
    DEMO = "demo"


class NormalizedStatus(str, Enum):
    """Channel-agnostic delivery status that every carrier status maps onto."""

    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value: str | None) -> NormalizedStatus:
        """Return the member named by ``value`` or UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


# ── Results ───────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class SendResult:
    """Result of a single send attempt through a carrier adapter."""

    status: NormalizedStatus
    carrier: CarrierName
    carrier_message_id: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    demo: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status not in {NormalizedStatus.FAILED, NormalizedStatus.UNKNOWN}

    @classmethod
    def ok(
        cls,
        carrier: CarrierName,
        *,
        carrier_message_id: str | None,
        status: NormalizedStatus = NormalizedStatus.SENT,
        demo: bool = False,
    ) -> SendResult:
        return cls(status=status, carrier=carrier, carrier_message_id=carrier_message_id, demo=demo)

    @classmethod
    def fail(
        cls,
        carrier: CarrierName,
        error_message: str,
        *,
        error_code: str | None = None,
        carrier_message_id: str | None = None,
        demo: bool = False,
    ) -> SendResult:
        return cls(
            status=NormalizedStatus.FAILED,
            carrier=carrier,
            carrier_message_id=carrier_message_id,
            error_code=error_code,
            error_message=error_message,
            demo=demo,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape handed back to the sending pipeline."""
        result: dict[str, Any] = {
            "success": self.succeeded,
            "status": self.status.value,
            "provider": self.carrier.value,
        }
        if self.carrier_message_id is not None:
            result["provider_message_id"] = self.carrier_message_id
        if self.error_message is not None:
            result["error"] = self.error_message
        if self.error_code is not None:
            result["error_code"] = self.error_code
        if self.demo:
            result["demo"] = True
        return result


@dataclass(frozen=True, slots=True)
class WebhookEvent:
    """A carrier status callback after authentication and normalization.

    A failed parse carries ``error`` and ``status=UNKNOWN``; callers log and
    drop it rather than raising.
    """

    status: NormalizedStatus
    carrier_message_id: str | None = None
    timestamp: datetime | None = None
    event_type: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    demo: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.carrier_message_id is not None

    @classmethod
    def fail(cls, error: str, *, demo: bool = False) -> WebhookEvent:
        return cls(status=NormalizedStatus.UNKNOWN, error=error, demo=demo)


@dataclass(frozen=True, slots=True)
class VerifyResult:
    """Outcome of a read-only credential check against a carrier."""

    success: bool
    details: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


@dataclass(frozen=True, slots=True)
class CarrierHealth:
    """Carrier-level health, e.g. account state or send quota."""

    status: str
    metrics: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


# ── Message types ─────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class SMSMessage:
    """A plain SMS. ``from_number`` overrides the configured sender."""

    id: str
    to: str
    body: str
    from_number: str | None = None


@dataclass(frozen=True, slots=True)
class WhatsAppMessage:
    """A WhatsApp text. Addresses are plain E.164; the adapter adds the channel prefix."""

    id: str
    to: str
    body: str
    from_number: str | None = None


@dataclass(frozen=True, slots=True)
class EmailMessage:
    """An HTML email with optional plain-text alternative."""

    id: str
    to: str
    subject: str
    html_body: str
    text_body: str | None = None
    from_email: str | None = None
    from_name: str | None = None


OutboundMessage = Union[SMSMessage, WhatsAppMessage, EmailMessage]


# ── Tenants, credentials, ledger rows ─────────────────────────────────


@dataclass(frozen=True, slots=True)
class Tenant:
    id: str
    is_demo: bool = False


@dataclass(frozen=True, slots=True)
class StoredCredential:
    """A credential row as persisted, secrets still encrypted."""

    tenant_id: str
    channel: Channel
    carrier: str
    secret_blob: str | None
    config: dict[str, Any] = field(default_factory=dict)
    enabled: bool = False
    verified: bool = False
    verification_error: str | None = None
    verified_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class ChannelCredentials:
    """Decrypted credentials for one (tenant, channel)."""

    tenant_id: str
    channel: Channel
    carrier: str
    secrets: dict[str, Any]
    config: dict[str, Any] = field(default_factory=dict)
    enabled: bool = False
    verified: bool = False


@dataclass(frozen=True, slots=True)
class ProviderMapping:
    """Join row between an internal message and a carrier-assigned id."""

    message_id: str
    channel: Channel
    carrier: CarrierName
    carrier_message_id: str
    carrier_status: NormalizedStatus | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class StatusEvent:
    """A normalized status event tied back to the originating message."""

    message_id: str
    carrier_message_id: str
    carrier: CarrierName
    channel: Channel
    status: NormalizedStatus
    timestamp: datetime
    event_type: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)
