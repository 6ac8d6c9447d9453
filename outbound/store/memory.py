"""In-memory stores for tests, demos and single-process use.

Usage::

    tenants = InMemoryTenantDirectory([Tenant(id="t1")])
    ledger = InMemoryMappingLedger()
    ledger.record(ProviderMapping(...))
"""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Iterable, Iterator
from datetime import datetime, timezone

from outbound.errors import LedgerConflictError
from outbound.types import (
    CarrierName,
    Channel,
    NormalizedStatus,
    ProviderMapping,
    StoredCredential,
    Tenant,
)


class InMemoryTenantDirectory:
    def __init__(self, tenants: Iterable[Tenant] = ()) -> None:
        self._tenants = {tenant.id: tenant for tenant in tenants}

    def add(self, tenant: Tenant) -> None:
        self._tenants[tenant.id] = tenant

    def get(self, tenant_id: str) -> Tenant | None:
        return self._tenants.get(tenant_id)


class InMemoryCredentialStore:
    def __init__(self, rows: Iterable[StoredCredential] = ()) -> None:
        self._rows: dict[tuple[str, Channel], StoredCredential] = {}
        for row in rows:
            self.put(row)

    def put(self, row: StoredCredential) -> None:
        """Insert or replace the row for (tenant, channel)."""
        self._rows[(row.tenant_id, Channel(row.channel))] = row

    def get(self, tenant_id: str, channel: Channel) -> StoredCredential | None:
        return self._rows.get((tenant_id, Channel(channel)))

    def all(self) -> Iterator[StoredCredential]:
        return iter(list(self._rows.values()))

    def update_secret(self, tenant_id: str, channel: Channel, secret_blob: str) -> None:
        key = (tenant_id, Channel(channel))
        row = self._rows.get(key)
        if row is None:
            raise KeyError(f"No credential row for tenant {tenant_id}, channel {channel}")
        self._rows[key] = dataclasses.replace(row, secret_blob=secret_blob)


class InMemoryMappingLedger:
    """Thread-safe ledger enforcing the same constraints as the SQL table."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_carrier_id: dict[str, ProviderMapping] = {}
        self._by_message: dict[tuple[str, CarrierName], str] = {}

    def record(self, mapping: ProviderMapping) -> ProviderMapping:
        key = (mapping.message_id, mapping.carrier)
        with self._lock:
            existing_id = self._by_message.get(key)
            if existing_id is not None:
                if existing_id == mapping.carrier_message_id:
                    return self._by_carrier_id[existing_id]
                raise LedgerConflictError(
                    f"Message {mapping.message_id} already mapped to {existing_id} on {mapping.carrier.value}"
                )
            if mapping.carrier_message_id in self._by_carrier_id:
                raise LedgerConflictError(
                    f"Carrier message id {mapping.carrier_message_id} is already mapped"
                )

            now = _utcnow()
            stored = dataclasses.replace(mapping, created_at=now, updated_at=now)
            self._by_carrier_id[mapping.carrier_message_id] = stored
            self._by_message[key] = mapping.carrier_message_id
            return stored

    def find_by_carrier_id(self, carrier_message_id: str) -> ProviderMapping | None:
        return self._by_carrier_id.get(carrier_message_id)

    def find_for_message(self, message_id: str) -> list[ProviderMapping]:
        return [m for m in self._by_carrier_id.values() if m.message_id == message_id]

    def update_status(self, carrier_message_id: str, status: NormalizedStatus) -> ProviderMapping | None:
        with self._lock:
            mapping = self._by_carrier_id.get(carrier_message_id)
            if mapping is None:
                return None
            updated = dataclasses.replace(mapping, carrier_status=status, updated_at=_utcnow())
            self._by_carrier_id[carrier_message_id] = updated
            return updated


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
