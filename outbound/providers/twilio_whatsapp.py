"""Twilio WhatsApp adapter.

Uses the same Twilio account, credential check and webhook authentication as
SMS, through a shared :class:`TwilioAccount`. Only the payload differs:
addresses carry the ``whatsapp:`` channel marker and the sender must be the
tenant's WhatsApp Business number, never the plain SMS number.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, ClassVar

from outbound.errors import MessageValidationError, MessagingError
from outbound.phone import format_whatsapp_address
from outbound.providers.base import check_message_type, error_code_for, record_send
from outbound.providers.twilio_account import TwilioAccount
from outbound.settings import MessagingSettings
from outbound.store.base import MappingLedger
from outbound.types import (
    CarrierHealth,
    CarrierName,
    Channel,
    ChannelCredentials,
    OutboundMessage,
    SendResult,
    VerifyResult,
    WebhookEvent,
    WhatsAppMessage,
)

logger = logging.getLogger(__name__)

MAX_BODY_CHARS = 1532


class TwilioWhatsAppProvider:
    """Sends WhatsApp messages through a tenant's Twilio account."""

    carrier: ClassVar[CarrierName] = CarrierName.TWILIO
    supported_channels: ClassVar[frozenset[Channel]] = frozenset({Channel.WHATSAPP})

    def __init__(
        self,
        credentials: ChannelCredentials,
        *,
        ledger: MappingLedger,
        settings: MessagingSettings,
    ) -> None:
        self.tenant_id = credentials.tenant_id
        self.channel = Channel.WHATSAPP
        self._config = credentials.config
        self._ledger = ledger
        self._account = TwilioAccount(credentials, timeout=settings.twilio_timeout_seconds)

    def send(self, message: OutboundMessage) -> SendResult:
        """Send a WhatsApp message synchronously."""
        type_error = check_message_type(message, self.channel)
        if type_error:
            return SendResult.fail(self.carrier, type_error, error_code=MessageValidationError.code)
        assert isinstance(message, WhatsAppMessage)

        try:
            params = self._build_params(message)
            sid = self._account.create_message(params)
        except MessagingError as exc:
            logger.error("WhatsApp send failed for message %s to %s: %s", message.id, message.to, exc)
            return SendResult.fail(self.carrier, str(exc), error_code=error_code_for(exc))

        logger.info("WhatsApp message %s accepted by Twilio as %s", message.id, sid)
        return record_send(
            self._ledger,
            message_id=message.id,
            channel=self.channel,
            carrier=self.carrier,
            carrier_message_id=sid,
        )

    async def send_async(self, message: OutboundMessage) -> SendResult:
        """Send a WhatsApp message asynchronously (runs sync send in a thread)."""
        return await asyncio.to_thread(self.send, message)

    def verify(self) -> VerifyResult:
        return self._account.verify()

    def parse_webhook(self, raw_body: Any, signature: str | None = None) -> WebhookEvent:
        return self._account.parse_status_callback(raw_body, signature)

    def get_status(self) -> CarrierHealth:
        return self._account.health()

    def _build_params(self, message: WhatsAppMessage) -> dict[str, Any]:
        sender = format_whatsapp_address(message.from_number or self._config.get("whatsapp_number"))
        if not sender:
            raise MessageValidationError("No WhatsApp Business Account number configured for tenant")

        to = format_whatsapp_address(message.to)
        if not to:
            raise MessageValidationError("Recipient phone number missing")

        body = (message.body or "").strip()
        if not body:
            raise MessageValidationError("No message body provided")
        if len(body) > MAX_BODY_CHARS:
            body = body[:MAX_BODY_CHARS]

        params: dict[str, Any] = {"to": to, "from_": sender, "body": body}
        if self._account.webhook_url:
            params["status_callback"] = self._account.webhook_url
        return params
