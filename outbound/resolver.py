"""Provider resolver: picks and builds the adapter for a (tenant, channel).

Resolution order:

1. Unknown tenant → ``TenantNotFoundError``.
2. Demo tenant → :class:`DemoProvider`; stored credentials are ignored.
3. No credential row → ``ChannelNotConfiguredError``.
4. Undecryptable row → ``InvalidCredentialsError``.
5. (carrier, channel) not in :data:`ADAPTER_REGISTRY` →
   ``UnsupportedCarrierForChannelError``, before any adapter is built.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from outbound.credentials import CredentialStoreAccessor
from outbound.errors import (
    ChannelNotConfiguredError,
    MessagingError,
    TenantNotFoundError,
    UnsupportedCarrierForChannelError,
)
from outbound.providers.base import CarrierAdapter
from outbound.providers.demo import DemoProvider
from outbound.providers.ses import SESEmailProvider
from outbound.providers.twilio_sms import TwilioSMSProvider
from outbound.providers.twilio_whatsapp import TwilioWhatsAppProvider
from outbound.settings import MessagingSettings
from outbound.store.base import MappingLedger, TenantDirectory
from outbound.types import CarrierName, Channel, ChannelCredentials, VerifyResult

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[ChannelCredentials, MappingLedger, MessagingSettings], CarrierAdapter]


def _demo_factory(credentials: ChannelCredentials, ledger: MappingLedger, settings: MessagingSettings) -> CarrierAdapter:
    return DemoProvider(credentials.tenant_id, credentials.channel, ledger=ledger, settings=settings)


def _build_registry() -> dict[tuple[CarrierName, Channel], AdapterFactory]:
    per_carrier: dict[CarrierName, dict[Channel, type]] = {
        CarrierName.TWILIO: {
            Channel.SMS: TwilioSMSProvider,
            Channel.WHATSAPP: TwilioWhatsAppProvider,
        },
        CarrierName.AWS_SES: {Channel.EMAIL: SESEmailProvider},
        CarrierName.DEMO: {channel: DemoProvider for channel in Channel},
    }
    registry: dict[tuple[CarrierName, Channel], AdapterFactory] = {}
    for carrier, adapters in per_carrier.items():
        for channel, adapter_cls in adapters.items():
            if channel not in adapter_cls.supported_channels:
                raise RuntimeError(f"{adapter_cls.__name__} does not declare support for {channel.value}")
            if adapter_cls is DemoProvider:
                registry[(carrier, channel)] = _demo_factory
            else:
                registry[(carrier, channel)] = (
                    lambda creds, ledger, settings, cls=adapter_cls: cls(creds, ledger=ledger, settings=settings)
                )
    return registry


ADAPTER_REGISTRY: dict[tuple[CarrierName, Channel], AdapterFactory] = _build_registry()

# Static compatibility table: which channels each carrier can serve.
CARRIER_CHANNELS: dict[CarrierName, frozenset[Channel]] = {
    carrier: frozenset(channel for (c, channel) in ADAPTER_REGISTRY if c is carrier) for carrier in CarrierName
}


class ProviderResolver:
    """Resolves the adapter a tenant should use on a channel.

    Usage::

        resolver = ProviderResolver(tenants, CredentialStoreAccessor(store, cipher), ledger, settings)
        adapter = resolver.resolve("tenant-1", Channel.SMS)
        result = adapter.send(SMSMessage(id="m1", to="+15550002222", body="hi"))
    """

    def __init__(
        self,
        tenants: TenantDirectory,
        credentials: CredentialStoreAccessor,
        ledger: MappingLedger,
        settings: MessagingSettings,
    ) -> None:
        self._tenants = tenants
        self._credentials = credentials
        self._ledger = ledger
        self._settings = settings

    def resolve(self, tenant_id: str, channel: Channel | str) -> CarrierAdapter:
        """Return the adapter for ``(tenant_id, channel)``.

        Raises:
            TenantNotFoundError, ChannelNotConfiguredError,
            InvalidCredentialsError, UnsupportedCarrierForChannelError
        """
        channel = _coerce_channel(channel)

        tenant = self._tenants.get(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)

        if tenant.is_demo:
            return DemoProvider(tenant_id, channel, ledger=self._ledger, settings=self._settings)

        creds = self._credentials.load(tenant_id, channel)
        if creds is None:
            raise ChannelNotConfiguredError(tenant_id, channel.value)

        factory = self._lookup(creds.carrier, channel)
        return factory(creds, self._ledger, self._settings)

    def resolve_all(self, tenant_id: str) -> dict[Channel, CarrierAdapter]:
        """Resolve every channel, omitting the ones that fail.

        A partial result is expected: most tenants configure only some channels.
        """
        adapters: dict[Channel, CarrierAdapter] = {}
        for channel in Channel:
            try:
                adapters[channel] = self.resolve(tenant_id, channel)
            except MessagingError as exc:
                logger.debug("Skipping %s for tenant %s: %s", channel.value, tenant_id, exc)
        return adapters

    def verify(self, tenant_id: str, channel: Channel | str) -> VerifyResult:
        """Resolve, then run the adapter's credential check."""
        return self.resolve(tenant_id, channel).verify()

    @staticmethod
    def _lookup(carrier: str, channel: Channel) -> AdapterFactory:
        try:
            carrier_name = CarrierName(carrier)
        except ValueError:
            raise UnsupportedCarrierForChannelError(carrier, channel.value) from None
        factory = ADAPTER_REGISTRY.get((carrier_name, channel))
        if factory is None:
            raise UnsupportedCarrierForChannelError(carrier_name.value, channel.value)
        return factory


def _coerce_channel(channel: Channel | str) -> Channel:
    try:
        return Channel(channel)
    except ValueError:
        raise UnsupportedCarrierForChannelError("*", str(channel)) from None
