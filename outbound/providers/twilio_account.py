"""Twilio account access shared by the SMS and WhatsApp adapters.

Both adapters compose one :class:`TwilioAccount`, which owns the REST client,
credential checks, account status and status-callback authentication. Each
adapter builds its own ``messages.create`` payload.
"""

from __future__ import annotations

import logging
from typing import Any

from twilio.base.exceptions import TwilioRestException  # type: ignore[import-untyped]
from twilio.http.http_client import TwilioHttpClient  # type: ignore[import-untyped]
from twilio.request_validator import RequestValidator  # type: ignore[import-untyped]
from twilio.rest import Client  # type: ignore[import-untyped]

from outbound.errors import (
    CarrierTransportError,
    InvalidCredentialsError,
    MessagingError,
    WebhookAuthError,
    WebhookParseError,
)
from outbound.status import load_form_body, map_twilio_status, utcnow
from outbound.types import CarrierHealth, ChannelCredentials, VerifyResult, WebhookEvent

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class TwilioAccount:
    """One tenant's Twilio account: client, credentials and webhook URL."""

    def __init__(self, credentials: ChannelCredentials, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        account_sid = credentials.secrets.get("accountSid")
        auth_token = credentials.secrets.get("authToken")
        if not account_sid or not auth_token:
            raise InvalidCredentialsError("Twilio: Missing required credentials (accountSid, authToken)")

        self.account_sid: str = account_sid
        self.webhook_url: str | None = credentials.config.get("webhook_url") or None
        self._validator = RequestValidator(auth_token)
        http_client = TwilioHttpClient(timeout=timeout)
        self.client = Client(account_sid, auth_token, http_client=http_client)

    # ── Outbound ──────────────────────────────────────────────────

    def create_message(self, params: dict[str, Any]) -> str:
        """Create a message and return its SID.

        Raises:
            CarrierTransportError: the API rejected the request or the call failed.
        """
        try:
            msg = self.client.messages.create(**params)
        except TwilioRestException as exc:
            logger.error("Twilio API error: code=%s msg=%s", exc.code, exc.msg)
            raise CarrierTransportError(str(exc.msg), carrier_code=str(exc.code) if exc.code else None) from exc
        except Exception as exc:
            logger.error("Twilio send failed: %s", exc)
            raise CarrierTransportError(str(exc)) from exc

        sid = getattr(msg, "sid", None)
        if not sid:
            raise CarrierTransportError("Twilio returned no message SID")
        return sid

    def verify(self) -> VerifyResult:
        """Fetch the account record to prove the credentials work."""
        try:
            account = self.client.api.accounts(self.account_sid).fetch()
        except TwilioRestException as exc:
            logger.error("Twilio credential verification failed: code=%s msg=%s", exc.code, exc.msg)
            return VerifyResult(success=False, error=str(exc.msg), details={"error_code": exc.code})
        except Exception as exc:
            logger.error("Twilio credential verification failed: %s", exc)
            return VerifyResult(success=False, error=str(exc))
        return VerifyResult(
            success=True,
            details={"account_type": account.type, "status": account.status},
        )

    def health(self) -> CarrierHealth:
        try:
            account = self.client.api.accounts(self.account_sid).fetch()
        except Exception as exc:
            logger.error("Twilio status check failed: %s", exc)
            return CarrierHealth(status="error", error=str(exc))
        return CarrierHealth(status=account.status, metrics={"account_type": account.type})

    # ── Inbound ───────────────────────────────────────────────────

    def parse_status_callback(self, raw_body: Any, signature: str | None) -> WebhookEvent:
        """Authenticate a status callback, then extract the SID and status."""
        try:
            params = load_form_body(raw_body)
            self._authenticate(params, signature)

            message_sid = params.get("MessageSid")
            if not message_sid:
                raise WebhookParseError("MessageSid missing from webhook")

            raw_status = params.get("MessageStatus")
            return WebhookEvent(
                status=map_twilio_status(raw_status),
                carrier_message_id=message_sid,
                timestamp=utcnow(),
                event_type=raw_status,
                raw=params,
            )
        except MessagingError as exc:
            logger.warning("Twilio webhook rejected: %s", exc)
            return WebhookEvent.fail(str(exc))
        except Exception as exc:
            logger.exception("Unexpected error parsing Twilio webhook")
            return WebhookEvent.fail(str(exc))

    def _authenticate(self, params: dict[str, str], signature: str | None) -> None:
        # Signed over the configured callback URL plus params sorted by key.
        if not self.webhook_url:
            raise WebhookAuthError("No webhook_url configured; cannot verify signature")
        if not signature:
            raise WebhookAuthError("Missing X-Twilio-Signature header")
        if not self._validator.validate(self.webhook_url, params, signature):
            raise WebhookAuthError("Invalid webhook signature")
