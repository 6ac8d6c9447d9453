"""Shared test fixtures for the outbound carrier library."""

from unittest.mock import patch

import pytest

from outbound import (
    Channel,
    ChannelCredentials,
    CredentialCipher,
    CredentialStoreAccessor,
    InMemoryCredentialStore,
    InMemoryMappingLedger,
    InMemoryTenantDirectory,
    MessagingSettings,
    ProviderResolver,
    StatusTimeline,
    StoredCredential,
    Tenant,
)

ENCRYPTION_KEY = "test-encryption-key"
WEBHOOK_URL = "https://example.com/webhooks/twilio/status"


@pytest.fixture
def settings() -> MessagingSettings:
    return MessagingSettings(
        encryption_key=ENCRYPTION_KEY,
        twilio_messaging_service_sid=None,
        ses_configuration_set="engageninja-email-events",
    )


@pytest.fixture
def cipher() -> CredentialCipher:
    return CredentialCipher(ENCRYPTION_KEY)


@pytest.fixture
def ledger() -> InMemoryMappingLedger:
    return InMemoryMappingLedger()


@pytest.fixture
def timeline() -> StatusTimeline:
    return StatusTimeline()


@pytest.fixture
def tenants() -> InMemoryTenantDirectory:
    return InMemoryTenantDirectory(
        [
            Tenant(id="tenant-1"),
            Tenant(id="demo-tenant", is_demo=True),
        ]
    )


@pytest.fixture
def twilio_secrets() -> dict:
    return {"accountSid": "ACtest123", "authToken": "test_token_456"}


@pytest.fixture
def ses_secrets() -> dict:
    return {"accessKeyId": "AKIATEST", "secretAccessKey": "secret", "region": "us-east-1"}


@pytest.fixture
def sms_credentials(twilio_secrets: dict) -> ChannelCredentials:
    return ChannelCredentials(
        tenant_id="tenant-1",
        channel=Channel.SMS,
        carrier="twilio",
        secrets=twilio_secrets,
        config={"phone_number": "+15550001111", "webhook_url": WEBHOOK_URL},
        enabled=True,
        verified=True,
    )


@pytest.fixture
def whatsapp_credentials(twilio_secrets: dict) -> ChannelCredentials:
    return ChannelCredentials(
        tenant_id="tenant-1",
        channel=Channel.WHATSAPP,
        carrier="twilio",
        secrets=twilio_secrets,
        config={
            "phone_number": "+15550001111",
            "whatsapp_number": "+14155238886",
            "webhook_url": WEBHOOK_URL,
        },
        enabled=True,
    )


@pytest.fixture
def email_credentials(ses_secrets: dict) -> ChannelCredentials:
    return ChannelCredentials(
        tenant_id="tenant-1",
        channel=Channel.EMAIL,
        carrier="aws_ses",
        secrets=ses_secrets,
        config={"from_email": "noreply@example.com"},
        enabled=True,
    )


@pytest.fixture
def credential_store(
    cipher: CredentialCipher,
    sms_credentials: ChannelCredentials,
    whatsapp_credentials: ChannelCredentials,
) -> InMemoryCredentialStore:
    """SMS stored as legacy blob, WhatsApp as v2. Email is not configured."""
    return InMemoryCredentialStore(
        [
            StoredCredential(
                tenant_id="tenant-1",
                channel=Channel.SMS,
                carrier="twilio",
                secret_blob=cipher.encrypt_legacy(sms_credentials.secrets),
                config=sms_credentials.config,
                enabled=True,
                verified=True,
            ),
            StoredCredential(
                tenant_id="tenant-1",
                channel=Channel.WHATSAPP,
                carrier="twilio",
                secret_blob=cipher.encrypt(whatsapp_credentials.secrets),
                config=whatsapp_credentials.config,
                enabled=True,
            ),
        ]
    )


@pytest.fixture
def resolver(
    tenants: InMemoryTenantDirectory,
    credential_store: InMemoryCredentialStore,
    cipher: CredentialCipher,
    ledger: InMemoryMappingLedger,
    settings: MessagingSettings,
) -> ProviderResolver:
    return ProviderResolver(tenants, CredentialStoreAccessor(credential_store, cipher), ledger, settings)


@pytest.fixture
def twilio_client():
    """Patch the Twilio REST client for every adapter built inside the test."""
    with patch("outbound.providers.twilio_account.Client") as client_cls, \
         patch("outbound.providers.twilio_account.TwilioHttpClient"):
        yield client_cls.return_value
