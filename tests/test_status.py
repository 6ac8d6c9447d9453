"""Tests for status vocabularies, webhook body helpers and address formatting."""

from datetime import datetime, timezone

import pytest

from outbound import MessagingSettings, NormalizedStatus, format_whatsapp_address
from outbound.errors import WebhookParseError
from outbound.phone import strip_whatsapp_prefix
from outbound.status import (
    load_form_body,
    load_json_body,
    map_ses_event,
    map_twilio_status,
    parse_timestamp,
)


class TestStatusMapping:
    def test_twilio_case_insensitive(self):
        assert map_twilio_status("Delivered") == NormalizedStatus.DELIVERED

    @pytest.mark.parametrize("value", [None, "", "queued", "sending", "receiving"])
    def test_twilio_unmapped(self, value):
        assert map_twilio_status(value) == NormalizedStatus.UNKNOWN

    def test_ses_is_case_sensitive(self):
        assert map_ses_event("Delivery") == NormalizedStatus.DELIVERED
        assert map_ses_event("delivery") == NormalizedStatus.UNKNOWN
        assert map_ses_event(None) == NormalizedStatus.UNKNOWN


class TestParseTimestamp:
    def test_iso_with_z(self):
        assert parse_timestamp("2024-01-01T00:00:00Z") == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_naive_iso_is_utc(self):
        assert parse_timestamp("2024-01-01T00:00:00").tzinfo == timezone.utc

    def test_epoch_millis(self):
        assert parse_timestamp(1704067200000) == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_datetime_passthrough(self):
        value = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert parse_timestamp(value) is value

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty(self, value):
        assert parse_timestamp(value) is None

    @pytest.mark.parametrize("value", ["tomorrow", True, ["2024"]])
    def test_invalid(self, value):
        with pytest.raises(WebhookParseError):
            parse_timestamp(value)


class TestBodyLoaders:
    def test_json_from_bytes(self):
        assert load_json_body(b'{"a": 1}') == {"a": 1}

    def test_json_array_rejected(self):
        with pytest.raises(WebhookParseError):
            load_json_body("[1, 2]")

    def test_json_unsupported_type(self):
        with pytest.raises(WebhookParseError):
            load_json_body(42)

    def test_form_keeps_blank_values(self):
        assert load_form_body(b"MessageSid=SM1&ErrorCode=") == {"MessageSid": "SM1", "ErrorCode": ""}

    def test_form_from_mapping(self):
        assert load_form_body({"MessageSid": "SM1"}) == {"MessageSid": "SM1"}


class TestWhatsAppAddress:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("+5511999999999", "whatsapp:+5511999999999"),
            ("whatsapp:+14155238886", "whatsapp:+14155238886"),
            ("WhatsApp:+14155238886", "whatsapp:+14155238886"),
            ("(415) 523-8886", "whatsapp:+14155238886"),
            ("44 20 7946 0958", "whatsapp:+442079460958"),
            ("+6591234567", "whatsapp:+6591234567"),
            ("4155238886", "whatsapp:+14155238886"),
        ],
    )
    def test_format(self, raw, expected):
        assert format_whatsapp_address(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "whatsapp:", "n/a"])
    def test_no_digits(self, raw):
        assert format_whatsapp_address(raw) is None

    def test_strip_prefix(self):
        assert strip_whatsapp_prefix(" whatsapp:+1555 ") == "+1555"
        assert strip_whatsapp_prefix("+1555") == "+1555"


class TestSettings:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("ENCRYPTION_KEY", "from-env")
        monkeypatch.setenv("TWILIO_MESSAGING_SERVICE_SID", "MGenv")
        monkeypatch.setenv("DEMO_READ_DELAY_MAX", "12")

        settings = MessagingSettings(_env_file=None)

        assert settings.encryption_key.get_secret_value() == "from-env"
        assert settings.twilio_messaging_service_sid == "MGenv"
        assert settings.demo_read_delay_max == 12.0
        assert settings.ses_configuration_set == "engageninja-email-events"

    def test_encryption_key_required(self, monkeypatch):
        monkeypatch.delenv("ENCRYPTION_KEY", raising=False)
        with pytest.raises(ValueError):
            MessagingSettings(_env_file=None)

    def test_delay_range_validated(self):
        with pytest.raises(ValueError):
            MessagingSettings(encryption_key="k", demo_delivered_delay_min=6, demo_delivered_delay_max=5)

    def test_key_not_in_repr(self):
        assert "secret-value" not in repr(MessagingSettings(encryption_key="secret-value"))
