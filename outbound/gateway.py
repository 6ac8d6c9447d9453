"""Messaging gateway: the main entry point for sends and status callbacks.

The gateway wraps the resolver with the two halves of the data flow: sending
through the right adapter, and reconciling carrier callbacks back onto the
originating message through the mapping ledger.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .resolver import ProviderResolver
from .status import utcnow
from .store.base import MappingLedger
from .timeline import StatusEventSink
from .types import CarrierName, Channel, OutboundMessage, SendResult, StatusEvent, VerifyResult, WebhookEvent

logger = logging.getLogger(__name__)


class MessagingGateway:
    """Sends messages and turns carrier callbacks into status events.

    Usage::

        gateway = MessagingGateway(resolver, ledger, timeline)
        result = gateway.send("tenant-1", Channel.SMS, SMSMessage(id="m1", to="+15550002222", body="hi"))

        # later, from the webhook route
        event = gateway.handle_webhook("tenant-1", Channel.SMS, request_form, request.headers["X-Twilio-Signature"])
    """

    def __init__(self, resolver: ProviderResolver, ledger: MappingLedger, sink: StatusEventSink) -> None:
        self.resolver = resolver
        self.ledger = ledger
        self.sink = sink

    def send(self, tenant_id: str, channel: Channel | str, message: OutboundMessage) -> SendResult:
        """Resolve the tenant's adapter and send once.

        Resolution errors propagate; send failures come back as a failed
        ``SendResult`` so the caller can decide whether to retry.
        """
        adapter = self.resolver.resolve(tenant_id, channel)
        return adapter.send(message)

    async def send_async(self, tenant_id: str, channel: Channel | str, message: OutboundMessage) -> SendResult:
        return await asyncio.to_thread(self.send, tenant_id, channel, message)

    def verify(self, tenant_id: str, channel: Channel | str) -> VerifyResult:
        return self.resolver.verify(tenant_id, channel)

    def handle_webhook(
        self,
        tenant_id: str,
        channel: Channel | str,
        raw_body: Any,
        signature: str | None = None,
    ) -> StatusEvent | None:
        """Authenticate, normalize and reconcile one carrier callback.

        Returns the appended status event, or None when the callback was
        dropped (bad signature, malformed body, or no ledger mapping).
        Dropping is safe: carriers retry callbacks.
        """
        adapter = self.resolver.resolve(tenant_id, channel)
        parsed = adapter.parse_webhook(raw_body, signature)
        if not parsed.ok:
            logger.warning(
                "Dropping %s webhook for tenant %s: %s",
                adapter.channel.value,
                tenant_id,
                parsed.error or "no carrier message id",
            )
            return None
        return self.reconcile(parsed, carrier=adapter.carrier, channel=adapter.channel)

    def reconcile(
        self,
        parsed: WebhookEvent,
        *,
        carrier: CarrierName | None = None,
        channel: Channel | None = None,
    ) -> StatusEvent | None:
        """Match a parsed callback to its message and append the status event.

        When ``carrier`` and ``channel`` are given, the mapping must have been
        recorded by that carrier on that channel; a callback naming another
        carrier's message id is dropped.
        """
        assert parsed.carrier_message_id is not None
        mapping = self.ledger.find_by_carrier_id(parsed.carrier_message_id)
        if mapping is None:
            logger.warning("No message mapping for carrier message id %s; dropping", parsed.carrier_message_id)
            return None
        if (carrier is not None and mapping.carrier != carrier) or (channel is not None and mapping.channel != channel):
            logger.warning(
                "Carrier message id %s belongs to %s/%s, not %s/%s; dropping",
                parsed.carrier_message_id,
                mapping.carrier.value,
                mapping.channel.value,
                carrier.value if carrier else "*",
                channel.value if channel else "*",
            )
            return None

        self.ledger.update_status(parsed.carrier_message_id, parsed.status)

        event = StatusEvent(
            message_id=mapping.message_id,
            carrier_message_id=parsed.carrier_message_id,
            carrier=mapping.carrier,
            channel=mapping.channel,
            status=parsed.status,
            timestamp=parsed.timestamp or utcnow(),
            event_type=parsed.event_type,
            raw=parsed.raw,
        )
        if not self.sink.append(event):
            logger.info("Duplicate %s event for message %s ignored", event.status.value, event.message_id)
        return event
