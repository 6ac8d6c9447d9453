"""Capability contract shared by every carrier adapter."""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Protocol

from outbound.errors import CarrierTransportError, MessagingError
from outbound.store.base import MappingLedger
from outbound.types import (
    CarrierHealth,
    CarrierName,
    Channel,
    EmailMessage,
    NormalizedStatus,
    OutboundMessage,
    ProviderMapping,
    SendResult,
    SMSMessage,
    VerifyResult,
    WebhookEvent,
    WhatsAppMessage,
)

logger = logging.getLogger(__name__)

# Message shape each channel accepts.
MESSAGE_TYPES: dict[Channel, type] = {
    Channel.SMS: SMSMessage,
    Channel.WHATSAPP: WhatsAppMessage,
    Channel.EMAIL: EmailMessage,
}


class CarrierAdapter(Protocol):
    """Interface that all carrier adapters must implement.

    ``send`` and ``parse_webhook`` never raise; failures come back as
    ``SendResult.fail`` and ``WebhookEvent.fail`` values.
    """

    carrier: ClassVar[CarrierName]
    supported_channels: ClassVar[frozenset[Channel]]
    tenant_id: str
    channel: Channel

    def send(self, message: OutboundMessage) -> SendResult:
        """Send a message and record its carrier id in the mapping ledger."""
        ...

    async def send_async(self, message: OutboundMessage) -> SendResult:
        """Send a message asynchronously."""
        ...

    def verify(self) -> VerifyResult:
        """Confirm the credentials work with a lightweight read-only call."""
        ...

    def parse_webhook(self, raw_body: Any, signature: str | None = None) -> WebhookEvent:
        """Authenticate and normalize an inbound status callback."""
        ...

    def get_status(self) -> CarrierHealth:
        """Carrier-level health, not message-level."""
        ...


def check_message_type(message: Any, channel: Channel) -> str | None:
    """Return an error string if ``message`` is the wrong shape for ``channel``."""
    expected = MESSAGE_TYPES[channel]
    if isinstance(message, expected):
        return None
    return f"Unsupported message type for {channel.value}: {type(message).__name__}"


def error_code_for(exc: MessagingError) -> str:
    """Prefer the carrier's own error code when the carrier supplied one."""
    if isinstance(exc, CarrierTransportError) and exc.carrier_code:
        return exc.carrier_code
    return exc.code


def record_send(
    ledger: MappingLedger,
    *,
    message_id: str,
    channel: Channel,
    carrier: CarrierName,
    carrier_message_id: str,
    demo: bool = False,
) -> SendResult:
    """Persist the mapping row for an accepted send, then build the result.

    The row must exist before the result is returned so that a callback
    arriving right after the send can already be reconciled.
    """
    try:
        ledger.record(
            ProviderMapping(
                message_id=message_id,
                channel=channel,
                carrier=carrier,
                carrier_message_id=carrier_message_id,
                carrier_status=NormalizedStatus.SENT,
            )
        )
    except Exception:
        logger.exception(
            "Carrier accepted message %s as %s but the mapping was not recorded",
            message_id,
            carrier_message_id,
        )
        return SendResult.fail(
            carrier,
            "Message accepted by carrier but mapping was not recorded",
            error_code="ledger_write_failed",
            carrier_message_id=carrier_message_id,
            demo=demo,
        )
    return SendResult.ok(carrier, carrier_message_id=carrier_message_id, demo=demo)
