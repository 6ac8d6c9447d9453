"""Tests for the demo provider."""

import asyncio
import random
from datetime import datetime, timedelta, timezone

import pytest

from outbound import (
    CarrierName,
    Channel,
    DemoProvider,
    EmailMessage,
    NormalizedStatus,
    SMSMessage,
    WhatsAppMessage,
)
from outbound.providers.demo import generate_demo_message_id, is_demo_message_id


@pytest.fixture
def provider(ledger, settings) -> DemoProvider:
    return DemoProvider("demo-tenant", Channel.SMS, ledger=ledger, settings=settings, rng=random.Random(7))


class TestDemoSend:
    def test_send_is_simulated(self, provider: DemoProvider, ledger):
        result = provider.send(SMSMessage(id="m1", to="+15550002222", body="hi"))

        assert result.succeeded
        assert result.demo
        assert result.status == NormalizedStatus.SENT
        assert result.carrier == CarrierName.DEMO
        assert result.carrier_message_id.startswith("demo-m1-")
        assert is_demo_message_id(result.carrier_message_id)

        mapping = ledger.find_by_carrier_id(result.carrier_message_id)
        assert mapping.message_id == "m1"
        assert mapping.carrier == CarrierName.DEMO

    def test_ids_are_unique(self, provider: DemoProvider):
        first = provider.send(SMSMessage(id="m1", to="+1", body="a"))
        second = provider.send(SMSMessage(id="m2", to="+1", body="b"))
        assert first.carrier_message_id != second.carrier_message_id

    @pytest.mark.parametrize(
        "channel,message",
        [
            (Channel.WHATSAPP, WhatsAppMessage(id="m1", to="+1", body="hi")),
            (Channel.EMAIL, EmailMessage(id="m1", to="a@example.com", subject="s", html_body="<p/>")),
        ],
    )
    def test_every_channel(self, ledger, settings, channel, message):
        provider = DemoProvider("demo-tenant", channel, ledger=ledger, settings=settings)
        result = provider.send(message)
        assert result.succeeded
        assert ledger.find_by_carrier_id(result.carrier_message_id).channel == channel

    def test_wrong_message_type(self, provider: DemoProvider):
        result = provider.send(EmailMessage(id="m1", to="a@example.com", subject="s", html_body="<p/>"))
        assert not result.succeeded
        assert result.demo

    def test_send_async(self, provider: DemoProvider):
        result = asyncio.run(provider.send_async(SMSMessage(id="m1", to="+1", body="hi")))
        assert result.succeeded


class TestDemoVerifyAndStatus:
    def test_verify(self, provider: DemoProvider):
        assert provider.verify().success

    def test_get_status(self, provider: DemoProvider):
        health = provider.get_status()
        assert health.status == "active"
        assert health.metrics["demo"] is True


class TestDemoWebhook:
    def test_parse_callback(self, provider: DemoProvider):
        event = provider.parse_webhook(
            {"carrier_message_id": "demo-m1-1", "status": "delivered", "timestamp": "2024-01-01T00:00:04Z"}
        )

        assert event.ok
        assert event.demo
        assert event.status == NormalizedStatus.DELIVERED
        assert event.timestamp == datetime(2024, 1, 1, 0, 0, 4, tzinfo=timezone.utc)

    def test_provider_message_id_alias(self, provider: DemoProvider):
        event = provider.parse_webhook('{"provider_message_id": "demo-m1-1", "status": "read"}')
        assert event.ok
        assert event.status == NormalizedStatus.READ
        assert event.timestamp is not None

    def test_camel_case_id_accepted(self, provider: DemoProvider):
        event = provider.parse_webhook('{"carrierMessageId": "demo-m1-1", "status": "delivered"}')
        assert event.ok
        assert event.carrier_message_id == "demo-m1-1"
        assert event.status == NormalizedStatus.DELIVERED

    def test_missing_id(self, provider: DemoProvider):
        event = provider.parse_webhook({"status": "delivered"})
        assert not event.ok

    def test_bad_timestamp(self, provider: DemoProvider):
        event = provider.parse_webhook({"carrier_message_id": "demo-1", "status": "read", "timestamp": "soon"})
        assert not event.ok


class TestDemoSimulation:
    def test_delays_within_configured_ranges(self, provider: DemoProvider):
        for _ in range(50):
            delays = provider.delays()
            assert 3.0 <= delays.delivered <= 5.0
            assert 5.0 <= delays.read <= 10.0
            assert delays.read >= delays.delivered

    def test_read_never_before_delivered(self, ledger, settings):
        overlapping = settings.model_copy(
            update={
                "demo_delivered_delay_min": 4.0,
                "demo_delivered_delay_max": 8.0,
                "demo_read_delay_min": 1.0,
                "demo_read_delay_max": 5.0,
            }
        )
        provider = DemoProvider("t", Channel.SMS, ledger=ledger, settings=overlapping, rng=random.Random(1))
        for _ in range(50):
            delays = provider.delays()
            assert delays.read >= delays.delivered

    def test_simulated_callbacks(self, provider: DemoProvider):
        sent_at = datetime(2024, 1, 1, tzinfo=timezone.utc)

        delivered, read = provider.simulated_callbacks("demo-m1-1", sent_at=sent_at)

        assert delivered["carrier_message_id"] == "demo-m1-1"
        assert delivered["status"] == "delivered"
        assert read["status"] == "read"
        delivered_at = datetime.fromisoformat(delivered["timestamp"])
        read_at = datetime.fromisoformat(read["timestamp"])
        assert sent_at + timedelta(seconds=3) <= delivered_at <= sent_at + timedelta(seconds=5)
        assert delivered_at <= read_at

    def test_callbacks_parse_back(self, provider: DemoProvider):
        for callback in provider.simulated_callbacks("demo-m1-1"):
            assert provider.parse_webhook(callback).ok


class TestDemoIds:
    def test_format(self):
        carrier_id = generate_demo_message_id("msg-123")
        prefix, _, rest = carrier_id.partition("msg-123-")
        assert prefix == "demo-"
        millis, suffix = rest.split("-")
        assert millis.isdigit()
        assert len(suffix) == 8

    def test_is_demo_message_id(self):
        assert is_demo_message_id("demo-x")
        assert not is_demo_message_id("SM123")
