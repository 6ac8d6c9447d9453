"""Protocols for the stores this package reads and writes."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol

from outbound.types import Channel, NormalizedStatus, ProviderMapping, StoredCredential, Tenant


class TenantDirectory(Protocol):
    """Read access to tenants."""

    def get(self, tenant_id: str) -> Tenant | None:
        ...


class CredentialStore(Protocol):
    """Point reads of channel credentials, unique per (tenant, channel)."""

    def get(self, tenant_id: str, channel: Channel) -> StoredCredential | None:
        ...

    def all(self) -> Iterator[StoredCredential]:
        """Iterate every stored row. Used by the re-keying migration only."""
        ...

    def update_secret(self, tenant_id: str, channel: Channel, secret_blob: str) -> None:
        """Replace the encrypted secret blob of one row."""
        ...


class MappingLedger(Protocol):
    """Join table from (message, carrier) to carrier message id.

    Implementations enforce two uniqueness rules: one row per
    (message id, carrier), and a carrier message id is globally unique.
    Violations raise ``LedgerConflictError``.
    """

    def record(self, mapping: ProviderMapping) -> ProviderMapping:
        """Insert a mapping row. Re-recording an identical row is a no-op."""
        ...

    def find_by_carrier_id(self, carrier_message_id: str) -> ProviderMapping | None:
        ...

    def find_for_message(self, message_id: str) -> list[ProviderMapping]:
        ...

    def update_status(self, carrier_message_id: str, status: NormalizedStatus) -> ProviderMapping | None:
        """Set the last known carrier status. Returns None for unknown ids."""
        ...
