"""Demo adapter for non-billable tenants.

Never touches the network. ``send`` returns ``sent`` immediately with a
carrier id tagged ``demo-``; the later ``delivered`` and ``read`` callbacks
are posted by an external scheduler using :meth:`DemoProvider.simulated_callbacks`
and come back through :meth:`DemoProvider.parse_webhook` like any carrier
callback.

Usage::

    provider = DemoProvider("tenant-1", Channel.SMS, ledger=ledger, settings=settings)
    result = provider.send(SMSMessage(id="m1", to="+15550002222", body="hi"))
    for callback in provider.simulated_callbacks(result.carrier_message_id):
        scheduler.post_at(callback["timestamp"], callback)
"""

from __future__ import annotations

import logging
import random
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, ClassVar

from outbound.errors import MessageValidationError, MessagingError, WebhookParseError
from outbound.providers.base import check_message_type, record_send
from outbound.settings import MessagingSettings
from outbound.status import load_json_body, parse_timestamp, utcnow
from outbound.store.base import MappingLedger
from outbound.types import (
    CarrierHealth,
    CarrierName,
    Channel,
    NormalizedStatus,
    OutboundMessage,
    SendResult,
    VerifyResult,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

DEMO_ID_PREFIX = "demo-"


@dataclass(frozen=True, slots=True)
class DemoDelays:
    """Seconds after send at which each simulated status fires."""

    delivered: float
    read: float


class DemoProvider:
    """Simulates a carrier for every channel."""

    carrier: ClassVar[CarrierName] = CarrierName.DEMO
    supported_channels: ClassVar[frozenset[Channel]] = frozenset(Channel)

    def __init__(
        self,
        tenant_id: str,
        channel: Channel,
        *,
        ledger: MappingLedger,
        settings: MessagingSettings,
        rng: random.Random | None = None,
    ) -> None:
        self.tenant_id = tenant_id
        self.channel = Channel(channel)
        self._ledger = ledger
        self._settings = settings
        self._rng = rng or random.Random()  # noqa: S311

    def send(self, message: OutboundMessage) -> SendResult:
        type_error = check_message_type(message, self.channel)
        if type_error:
            return SendResult.fail(self.carrier, type_error, error_code=MessageValidationError.code, demo=True)
        if not message.id:
            return SendResult.fail(
                self.carrier, "Message id missing", error_code=MessageValidationError.code, demo=True
            )

        demo_id = generate_demo_message_id(message.id)
        logger.info("[demo] Message sent (simulated): %s -> %s", message.id, demo_id)
        return record_send(
            self._ledger,
            message_id=message.id,
            channel=self.channel,
            carrier=self.carrier,
            carrier_message_id=demo_id,
            demo=True,
        )

    async def send_async(self, message: OutboundMessage) -> SendResult:
        return self.send(message)

    def verify(self) -> VerifyResult:
        return VerifyResult(success=True, details={"message": "Demo provider - no credentials needed"})

    def get_status(self) -> CarrierHealth:
        return CarrierHealth(
            status="active",
            metrics={"message": "Demo provider - ready to simulate messages", "demo": True},
        )

    def parse_webhook(self, raw_body: Any, signature: str | None = None) -> WebhookEvent:
        """Parse a simulated callback. Demo callbacks are trusted; no signature."""
        try:
            body = load_json_body(raw_body)
            carrier_message_id = (
                body.get("carrier_message_id")
                or body.get("carrierMessageId")
                or body.get("provider_message_id")
            )
            if not carrier_message_id:
                raise WebhookParseError("carrier_message_id missing from demo webhook")

            return WebhookEvent(
                status=NormalizedStatus.coerce(body.get("status")),
                carrier_message_id=carrier_message_id,
                timestamp=parse_timestamp(body.get("timestamp")) or utcnow(),
                event_type=body.get("status"),
                raw=body,
                demo=True,
            )
        except MessagingError as exc:
            logger.warning("[demo] Webhook parsing failed: %s", exc)
            return WebhookEvent.fail(str(exc), demo=True)
        except Exception as exc:
            logger.exception("[demo] Unexpected error parsing webhook")
            return WebhookEvent.fail(str(exc), demo=True)

    # ── Simulation ────────────────────────────────────────────────

    def delays(self) -> DemoDelays:
        """Draw randomized delivered/read delays from the configured ranges."""
        s = self._settings
        delivered = self._rng.uniform(s.demo_delivered_delay_min, s.demo_delivered_delay_max)
        read = self._rng.uniform(s.demo_read_delay_min, s.demo_read_delay_max)
        # read never precedes delivered
        return DemoDelays(delivered=delivered, read=max(read, delivered))

    def simulated_callbacks(
        self,
        carrier_message_id: str,
        sent_at: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Build the delivered and read callback bodies for a simulated send."""
        sent_at = sent_at or utcnow()
        delays = self.delays()
        return [
            _demo_callback(carrier_message_id, NormalizedStatus.DELIVERED, sent_at + timedelta(seconds=delays.delivered)),
            _demo_callback(carrier_message_id, NormalizedStatus.READ, sent_at + timedelta(seconds=delays.read)),
        ]


def generate_demo_message_id(message_id: str) -> str:
    """Return a unique carrier id visibly tagged as simulated.

    Example: ``demo-msg-123-1703081234567-9f2c1a7b``
    """
    return f"{DEMO_ID_PREFIX}{message_id}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def is_demo_message_id(carrier_message_id: str) -> bool:
    return carrier_message_id.startswith(DEMO_ID_PREFIX)


def _demo_callback(carrier_message_id: str, status: NormalizedStatus, at: datetime) -> dict[str, Any]:
    return {
        "carrier_message_id": carrier_message_id,
        "status": status.value,
        "timestamp": at.isoformat(),
    }
