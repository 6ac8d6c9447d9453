"""
outbound — Multi-tenant carrier abstraction and delivery-status reconciliation.

Resolves which carrier a tenant should use on a channel, sends through a
uniform adapter contract, and turns each carrier's status callbacks into one
normalized status timeline tied back to the originating message.

Quick start — resolve and send::

    from outbound import (
        Channel, CredentialCipher, CredentialStoreAccessor, InMemoryMappingLedger,
        MessagingSettings, ProviderResolver, SMSMessage,
    )

    settings = MessagingSettings()  # reads ENCRYPTION_KEY etc. from the environment
    accessor = CredentialStoreAccessor(credential_store, CredentialCipher(settings.encryption_key.get_secret_value()))
    resolver = ProviderResolver(tenant_directory, accessor, ledger, settings)

    adapter = resolver.resolve("tenant-1", Channel.SMS)
    result = adapter.send(SMSMessage(id="m1", to="+15550002222", body="hi"))
    if result.succeeded:
        print(f"Carrier id: {result.carrier_message_id}")

Quick start — reconcile a status callback::

    from outbound import MessagingGateway, StatusTimeline

    timeline = StatusTimeline()
    gateway = MessagingGateway(resolver, ledger, timeline)
    event = gateway.handle_webhook("tenant-1", Channel.SMS, form_body, signature_header)
    if event is not None:
        print(event.message_id, event.status)
    print([e.status for e in timeline.for_message("m1")])

Demo tenants::

    # Tenants flagged is_demo always resolve to DemoProvider; no carrier is called.
    adapter = resolver.resolve("demo-tenant", Channel.EMAIL)
    result = adapter.send(EmailMessage(id="m2", to="a@example.com", subject="Hi",
                                       html_body="<p>Hi</p>", from_email="noreply@example.com"))
    assert result.demo and result.carrier_message_id.startswith("demo-")

Module overview
---------------
- ``types``         — Channels, carriers, normalized statuses, messages, results
- ``errors``        — Error taxonomy
- ``settings``      — MessagingSettings (environment configuration)
- ``crypto``        — CredentialCipher (legacy AES-CBC and v2 AES-GCM blobs)
- ``credentials``   — CredentialStoreAccessor, re-keying migration
- ``resolver``      — ProviderResolver and the (carrier, channel) registry
- ``providers/``    — Twilio SMS/WhatsApp, AWS SES, Demo adapters
- ``status``        — Carrier status vocabularies and webhook body helpers
- ``store/``        — Tenant, credential and mapping-ledger stores (memory, SQL)
- ``timeline``      — Status event log ordered by event time
- ``gateway``       — MessagingGateway tying send and callbacks together
- ``phone``         — whatsapp: address formatting

What this library does NOT own:
- The HTTP route that receives callbacks
- Retry and backoff policy for failed sends
- Scheduling of demo progression callbacks
- Creating tenants and credential rows (channel setup)
"""

from .credentials import CredentialStoreAccessor, rekey_legacy_credentials
from .crypto import CredentialCipher
from .errors import (
    CarrierTransportError,
    ChannelNotConfiguredError,
    InvalidCredentialsError,
    LedgerConflictError,
    MessageValidationError,
    MessagingError,
    TenantNotFoundError,
    UnsupportedCarrierForChannelError,
    WebhookAuthError,
    WebhookParseError,
)
from .gateway import MessagingGateway
from .phone import format_whatsapp_address
from .providers import (
    CarrierAdapter,
    DemoProvider,
    SESEmailProvider,
    TwilioAccount,
    TwilioSMSProvider,
    TwilioWhatsAppProvider,
)
from .resolver import ADAPTER_REGISTRY, CARRIER_CHANNELS, ProviderResolver
from .settings import MessagingSettings
from .store import (
    CredentialStore,
    InMemoryCredentialStore,
    InMemoryMappingLedger,
    InMemoryTenantDirectory,
    MappingLedger,
    TenantDirectory,
)
from .timeline import StatusEventSink, StatusTimeline
from .types import (
    CarrierHealth,
    CarrierName,
    Channel,
    ChannelCredentials,
    EmailMessage,
    NormalizedStatus,
    OutboundMessage,
    ProviderMapping,
    SendResult,
    SMSMessage,
    StatusEvent,
    StoredCredential,
    Tenant,
    VerifyResult,
    WebhookEvent,
    WhatsAppMessage,
)

__all__ = [
    # Gateway
    "MessagingGateway",
    # Resolution
    "ADAPTER_REGISTRY",
    "CARRIER_CHANNELS",
    "ProviderResolver",
    # Adapters
    "CarrierAdapter",
    "DemoProvider",
    "SESEmailProvider",
    "TwilioAccount",
    "TwilioSMSProvider",
    "TwilioWhatsAppProvider",
    # Credentials
    "CredentialCipher",
    "CredentialStoreAccessor",
    "rekey_legacy_credentials",
    # Stores
    "CredentialStore",
    "InMemoryCredentialStore",
    "InMemoryMappingLedger",
    "InMemoryTenantDirectory",
    "MappingLedger",
    "StatusEventSink",
    "StatusTimeline",
    "TenantDirectory",
    # Settings
    "MessagingSettings",
    # Types
    "CarrierHealth",
    "CarrierName",
    "Channel",
    "ChannelCredentials",
    "EmailMessage",
    "NormalizedStatus",
    "OutboundMessage",
    "ProviderMapping",
    "SendResult",
    "SMSMessage",
    "StatusEvent",
    "StoredCredential",
    "Tenant",
    "VerifyResult",
    "WebhookEvent",
    "WhatsAppMessage",
    # Errors
    "CarrierTransportError",
    "ChannelNotConfiguredError",
    "InvalidCredentialsError",
    "LedgerConflictError",
    "MessageValidationError",
    "MessagingError",
    "TenantNotFoundError",
    "UnsupportedCarrierForChannelError",
    "WebhookAuthError",
    "WebhookParseError",
    # Phone
    "format_whatsapp_address",
]
