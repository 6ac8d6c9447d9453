"""Twilio SMS adapter."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, ClassVar

from outbound.errors import MessageValidationError, MessagingError
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
    SMSMessage,
    VerifyResult,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

MAX_SMS_CHARS = 1600


class TwilioSMSProvider:
    """Sends SMS through a tenant's Twilio account.

    The sender is resolved in order: the message's ``from_number``, the
    tenant's pooled ``messaging_service_sid`` (or the process default), then
    the tenant's configured ``phone_number``.
    """

    carrier: ClassVar[CarrierName] = CarrierName.TWILIO
    supported_channels: ClassVar[frozenset[Channel]] = frozenset({Channel.SMS})

    def __init__(
        self,
        credentials: ChannelCredentials,
        *,
        ledger: MappingLedger,
        settings: MessagingSettings,
    ) -> None:
        self.tenant_id = credentials.tenant_id
        self.channel = Channel.SMS
        self._config = credentials.config
        self._ledger = ledger
        self._default_service_sid = settings.twilio_messaging_service_sid
        self._account = TwilioAccount(credentials, timeout=settings.twilio_timeout_seconds)

    def send(self, message: OutboundMessage) -> SendResult:
        """Send an SMS synchronously."""
        type_error = check_message_type(message, self.channel)
        if type_error:
            return SendResult.fail(self.carrier, type_error, error_code=MessageValidationError.code)
        assert isinstance(message, SMSMessage)

        try:
            params = self._build_params(message)
            sid = self._account.create_message(params)
        except MessagingError as exc:
            logger.error("SMS send failed for message %s to %s: %s", message.id, message.to, exc)
            return SendResult.fail(self.carrier, str(exc), error_code=error_code_for(exc))

        logger.info("SMS %s accepted by Twilio as %s", message.id, sid)
        return record_send(
            self._ledger,
            message_id=message.id,
            channel=self.channel,
            carrier=self.carrier,
            carrier_message_id=sid,
        )

    async def send_async(self, message: OutboundMessage) -> SendResult:
        """Send an SMS asynchronously (runs sync send in a thread)."""
        return await asyncio.to_thread(self.send, message)

    def verify(self) -> VerifyResult:
        return self._account.verify()

    def parse_webhook(self, raw_body: Any, signature: str | None = None) -> WebhookEvent:
        return self._account.parse_status_callback(raw_body, signature)

    def get_status(self) -> CarrierHealth:
        return self._account.health()

    def _build_params(self, message: SMSMessage) -> dict[str, Any]:
        to = (message.to or "").strip()
        if not to:
            raise MessageValidationError("Recipient phone number missing")

        body = (message.body or "").strip()
        if not body:
            raise MessageValidationError("No message body provided")
        if len(body) > MAX_SMS_CHARS:
            body = body[:MAX_SMS_CHARS]

        params: dict[str, Any] = {"to": to, "body": body}

        service_sid = self._config.get("messaging_service_sid") or self._default_service_sid
        if message.from_number:
            params["from_"] = message.from_number
        elif service_sid:
            params["messaging_service_sid"] = service_sid
        elif self._config.get("phone_number"):
            params["from_"] = self._config["phone_number"]
        else:
            raise MessageValidationError("No messaging service SID or sender phone number configured for tenant")

        if self._account.webhook_url:
            params["status_callback"] = self._account.webhook_url
        return params
