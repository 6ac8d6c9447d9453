"""AWS SES email adapter.

SES publishes Send, Delivery, Bounce, Complaint, Open and Click events to
SNS. Callbacks arrive either as the bare SES event or wrapped in an SNS
``Notification`` envelope whose ``Message`` is the event as a JSON string.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, ClassVar

import boto3  # type: ignore[import-untyped]
from botocore.exceptions import BotoCoreError, ClientError  # type: ignore[import-untyped]

from outbound.errors import (
    CarrierTransportError,
    InvalidCredentialsError,
    MessageValidationError,
    MessagingError,
    WebhookAuthError,
    WebhookParseError,
)
from outbound.providers.base import check_message_type, error_code_for, record_send
from outbound.settings import MessagingSettings
from outbound.status import load_json_body, map_ses_event, parse_timestamp, utcnow
from outbound.store.base import MappingLedger
from outbound.types import (
    CarrierHealth,
    CarrierName,
    Channel,
    ChannelCredentials,
    EmailMessage,
    OutboundMessage,
    SendResult,
    VerifyResult,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

CHARSET = "UTF-8"

# Most specific sub-object first.
_TIMESTAMP_SOURCES = ("delivery", "bounce", "complaint")


class SESEmailProvider:
    """Sends email through a tenant's AWS SES account."""

    carrier: ClassVar[CarrierName] = CarrierName.AWS_SES
    supported_channels: ClassVar[frozenset[Channel]] = frozenset({Channel.EMAIL})

    def __init__(
        self,
        credentials: ChannelCredentials,
        *,
        ledger: MappingLedger,
        settings: MessagingSettings,
    ) -> None:
        secrets = credentials.secrets
        if not all(secrets.get(key) for key in ("accessKeyId", "secretAccessKey", "region")):
            raise InvalidCredentialsError(
                "AWS SES: Missing required credentials (accessKeyId, secretAccessKey, region)"
            )

        self.tenant_id = credentials.tenant_id
        self.channel = Channel.EMAIL
        self._ledger = ledger
        self._default_from = credentials.config.get("from_email")
        self._configuration_set = credentials.config.get("configuration_set") or settings.ses_configuration_set
        self._topic_arn = credentials.config.get("sns_topic_arn")
        self._client = boto3.client(
            "ses",
            region_name=secrets["region"],
            aws_access_key_id=secrets["accessKeyId"],
            aws_secret_access_key=secrets["secretAccessKey"],
        )

    # ── Public API ────────────────────────────────────────────────

    def send(self, message: OutboundMessage) -> SendResult:
        """Send an email via SES."""
        type_error = check_message_type(message, self.channel)
        if type_error:
            return SendResult.fail(self.carrier, type_error, error_code=MessageValidationError.code)
        assert isinstance(message, EmailMessage)

        try:
            request = self._build_request(message)
            message_id = self._send_email(request)
        except MessagingError as exc:
            logger.error("Email send failed for message %s to %s: %s", message.id, message.to, exc)
            return SendResult.fail(self.carrier, str(exc), error_code=error_code_for(exc))

        logger.info("Email %s accepted by SES as %s", message.id, message_id)
        return record_send(
            self._ledger,
            message_id=message.id,
            channel=self.channel,
            carrier=self.carrier,
            carrier_message_id=message_id,
        )

    async def send_async(self, message: OutboundMessage) -> SendResult:
        """Send an email asynchronously (runs sync send in a thread)."""
        return await asyncio.to_thread(self.send, message)

    def verify(self) -> VerifyResult:
        """Succeeds when the account has at least one verified sender address."""
        try:
            response = self._client.list_verified_email_addresses()
        except (ClientError, BotoCoreError) as exc:
            logger.error("SES credential verification failed: %s", exc)
            return VerifyResult(success=False, error=str(exc))

        verified = list(response.get("VerifiedEmailAddresses") or [])
        return VerifyResult(
            success=bool(verified),
            details={"verified_emails": verified, "count": len(verified)},
            error=None if verified else "No verified sender addresses",
        )

    def get_status(self) -> CarrierHealth:
        try:
            quota = self._client.get_send_quota()
        except (ClientError, BotoCoreError) as exc:
            logger.error("SES status check failed: %s", exc)
            return CarrierHealth(status="error", error=str(exc))
        return CarrierHealth(
            status="active",
            metrics={
                "daily_quota": quota.get("Max24HourSend"),
                "daily_sent": quota.get("SentLast24Hour"),
                "max_rate": quota.get("MaxSendRate"),
            },
        )

    def parse_webhook(self, raw_body: Any, signature: str | None = None) -> WebhookEvent:
        """Normalize an SES event, unwrapping an SNS envelope if present.

        ``signature`` is unused; when the tenant config names an
        ``sns_topic_arn``, wrapped notifications from any other topic are
        rejected.
        """
        try:
            event = self._unwrap(load_json_body(raw_body))

            mail = event.get("mail")
            message_id = mail.get("messageId") if isinstance(mail, dict) else None
            if not message_id:
                raise WebhookParseError("Invalid SES event structure: mail.messageId missing")

            event_type = event.get("eventType") or event.get("notificationType")
            return WebhookEvent(
                status=map_ses_event(event_type),
                carrier_message_id=message_id,
                timestamp=_event_timestamp(event) or utcnow(),
                event_type=event_type,
                raw=event,
            )
        except MessagingError as exc:
            logger.warning("SES webhook rejected: %s", exc)
            return WebhookEvent.fail(str(exc))
        except Exception as exc:
            logger.exception("Unexpected error parsing SES webhook")
            return WebhookEvent.fail(str(exc))

    # ── Private helpers ───────────────────────────────────────────

    def _build_request(self, message: EmailMessage) -> dict[str, Any]:
        from_email = message.from_email or self._default_from
        missing = [
            name
            for name, value in (
                ("to", message.to),
                ("subject", message.subject),
                ("html_body", message.html_body),
                ("from_email", from_email),
            )
            if not value or not str(value).strip()
        ]
        if missing:
            raise MessageValidationError(f"Missing required email fields: {', '.join(missing)}")

        body: dict[str, Any] = {"Html": {"Data": message.html_body, "Charset": CHARSET}}
        if message.text_body:
            body["Text"] = {"Data": message.text_body, "Charset": CHARSET}

        source = f"{message.from_name} <{from_email}>" if message.from_name else from_email
        return {
            "Source": source,
            "Destination": {"ToAddresses": [message.to]},
            "Message": {
                "Subject": {"Data": message.subject, "Charset": CHARSET},
                "Body": body,
            },
            "ConfigurationSetName": self._configuration_set,
            "Tags": [
                {"Name": "tenant_id", "Value": self.tenant_id},
                {"Name": "message_id", "Value": message.id},
            ],
        }

    def _send_email(self, request: dict[str, Any]) -> str:
        try:
            response = self._client.send_email(**request)
        except ClientError as exc:
            error = exc.response.get("Error", {})
            logger.error("SES API error: code=%s msg=%s", error.get("Code"), error.get("Message"))
            raise CarrierTransportError(
                error.get("Message") or str(exc),
                carrier_code=error.get("Code"),
            ) from exc
        except BotoCoreError as exc:
            logger.error("SES send failed: %s", exc)
            raise CarrierTransportError(str(exc)) from exc

        message_id = response.get("MessageId")
        if not message_id:
            raise CarrierTransportError("SES returned no MessageId")
        return message_id

    def _unwrap(self, body: dict[str, Any]) -> dict[str, Any]:
        envelope_type = body.get("Type") or body.get("type")
        inner = body.get("Message") or body.get("message")
        if envelope_type != "Notification" or not inner:
            return body

        topic_arn = body.get("TopicArn") or body.get("topicArn")
        if self._topic_arn and topic_arn != self._topic_arn:
            raise WebhookAuthError(f"Notification from unexpected topic: {topic_arn}")
        return load_json_body(inner)


def _event_timestamp(event: dict[str, Any]) -> datetime | None:
    for key in _TIMESTAMP_SOURCES:
        section = event.get(key)
        if isinstance(section, dict) and section.get("timestamp"):
            return parse_timestamp(section["timestamp"])
    return None
