"""Tests for core types."""

import pytest

from outbound import (
    CarrierName,
    NormalizedStatus,
    SendResult,
    WebhookEvent,
)
from outbound.errors import (
    CarrierTransportError,
    ChannelNotConfiguredError,
    MessagingError,
    TenantNotFoundError,
    UnsupportedCarrierForChannelError,
)
from outbound.providers.base import error_code_for


class TestNormalizedStatus:
    @pytest.mark.parametrize("value", ["sent", "delivered", "read", "failed", "unknown"])
    def test_known_values(self, value):
        assert NormalizedStatus.coerce(value).value == value

    def test_case_and_whitespace(self):
        assert NormalizedStatus.coerce(" Delivered ") == NormalizedStatus.DELIVERED

    @pytest.mark.parametrize("value", [None, "", "queued", "bogus"])
    def test_unrecognized_is_unknown(self, value):
        assert NormalizedStatus.coerce(value) == NormalizedStatus.UNKNOWN


class TestSendResult:
    def test_ok(self):
        result = SendResult.ok(CarrierName.TWILIO, carrier_message_id="SM123")
        assert result.succeeded
        assert result.status == NormalizedStatus.SENT
        assert result.error_message is None

    def test_fail(self):
        result = SendResult.fail(CarrierName.AWS_SES, "boom", error_code="Throttling")
        assert not result.succeeded
        assert result.status == NormalizedStatus.FAILED
        assert result.carrier_message_id is None

    def test_unknown_is_not_success(self):
        result = SendResult(status=NormalizedStatus.UNKNOWN, carrier=CarrierName.TWILIO)
        assert not result.succeeded

    def test_to_dict_success(self):
        result = SendResult.ok(CarrierName.DEMO, carrier_message_id="demo-m1-1", demo=True)
        assert result.to_dict() == {
            "success": True,
            "status": "sent",
            "provider": "demo",
            "provider_message_id": "demo-m1-1",
            "demo": True,
        }

    def test_to_dict_failure(self):
        result = SendResult.fail(CarrierName.TWILIO, "Invalid number", error_code="21211")
        assert result.to_dict() == {
            "success": False,
            "status": "failed",
            "provider": "twilio",
            "error": "Invalid number",
            "error_code": "21211",
        }

    def test_frozen(self):
        result = SendResult.ok(CarrierName.TWILIO, carrier_message_id="SM1")
        with pytest.raises(AttributeError):
            result.status = NormalizedStatus.FAILED  # type: ignore[misc]


class TestWebhookEvent:
    def test_fail_is_not_ok(self):
        event = WebhookEvent.fail("bad signature")
        assert not event.ok
        assert event.status == NormalizedStatus.UNKNOWN

    def test_missing_id_is_not_ok(self):
        assert not WebhookEvent(status=NormalizedStatus.SENT).ok


class TestErrors:
    def test_hierarchy(self):
        for exc in (
            TenantNotFoundError("t1"),
            ChannelNotConfiguredError("t1", "sms"),
            UnsupportedCarrierForChannelError("twilio", "email"),
        ):
            assert isinstance(exc, MessagingError)

    def test_messages_name_the_inputs(self):
        assert "t1" in str(TenantNotFoundError("t1"))
        exc = UnsupportedCarrierForChannelError("twilio", "email")
        assert exc.carrier == "twilio"
        assert exc.channel == "email"

    def test_error_code_prefers_carrier_code(self):
        assert error_code_for(CarrierTransportError("x", carrier_code="21211")) == "21211"
        assert error_code_for(CarrierTransportError("x")) == "carrier_transport_error"
