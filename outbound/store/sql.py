"""SQLAlchemy Core implementation of the stores.

Table layout follows the platform's migrations for
``tenant_channel_credentials_v2`` and ``message_provider_mappings``. Every
operation is a single-row read or write in its own transaction.

Usage::

    engine = create_engine("postgresql+psycopg://...")
    ledger = SqlMappingLedger(engine)
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import IntegrityError

from outbound.errors import InvalidCredentialsError, LedgerConflictError
from outbound.types import (
    CarrierName,
    Channel,
    NormalizedStatus,
    ProviderMapping,
    StoredCredential,
    Tenant,
)

logger = logging.getLogger(__name__)

metadata = MetaData()

tenants = Table(
    "tenants",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("is_demo", Boolean, nullable=False, default=False),
)

channel_credentials = Table(
    "tenant_channel_credentials_v2",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("tenant_id", String(64), nullable=False, index=True),
    Column("channel", String(16), nullable=False, index=True),
    Column("provider", String(32), nullable=False),
    Column("credentials_json_encrypted", Text),
    Column("provider_config_json", Text),
    Column("webhook_url", Text),
    Column("is_enabled", Boolean, nullable=False, default=False, index=True),
    Column("is_verified", Boolean, nullable=False, default=False),
    Column("verification_error", Text),
    Column("verified_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("tenant_id", "channel", name="uq_channel_credentials_tenant_channel"),
)

provider_mappings = Table(
    "message_provider_mappings",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("message_id", String(64), nullable=False, index=True),
    Column("channel", String(16), nullable=False),
    Column("provider", String(32), nullable=False, index=True),
    Column("provider_message_id", String(255), unique=True, index=True),
    Column("provider_status", String(16)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("message_id", "provider", name="uq_provider_mappings_message_provider"),
)


class SqlTenantDirectory:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get(self, tenant_id: str) -> Tenant | None:
        with self._engine.connect() as conn:
            row = conn.execute(select(tenants).where(tenants.c.id == tenant_id)).first()
        if row is None:
            return None
        return Tenant(id=row.id, is_demo=bool(row.is_demo))


class SqlCredentialStore:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get(self, tenant_id: str, channel: Channel) -> StoredCredential | None:
        stmt = select(channel_credentials).where(
            channel_credentials.c.tenant_id == tenant_id,
            channel_credentials.c.channel == Channel(channel).value,
        )
        with self._engine.connect() as conn:
            row = conn.execute(stmt).first()
        return _credential_from_row(row) if row is not None else None

    def all(self) -> Iterator[StoredCredential]:
        with self._engine.connect() as conn:
            rows = conn.execute(select(channel_credentials)).fetchall()
        return (_credential_from_row(row, strict=False) for row in rows)

    def update_secret(self, tenant_id: str, channel: Channel, secret_blob: str) -> None:
        stmt = (
            update(channel_credentials)
            .where(
                channel_credentials.c.tenant_id == tenant_id,
                channel_credentials.c.channel == Channel(channel).value,
            )
            .values(credentials_json_encrypted=secret_blob, updated_at=_utcnow())
        )
        with self._engine.begin() as conn:
            result = conn.execute(stmt)
        if result.rowcount == 0:
            raise KeyError(f"No credential row for tenant {tenant_id}, channel {channel}")

    def put(self, row: StoredCredential) -> None:
        """Insert a credential row. The channel-setup flow owns this in production."""
        now = _utcnow()
        values: dict[str, Any] = {
            "id": str(uuid.uuid4()),
            "tenant_id": row.tenant_id,
            "channel": Channel(row.channel).value,
            "provider": row.carrier,
            "credentials_json_encrypted": row.secret_blob,
            "provider_config_json": json.dumps(row.config) if row.config else None,
            "webhook_url": row.config.get("webhook_url"),
            "is_enabled": row.enabled,
            "is_verified": row.verified,
            "verification_error": row.verification_error,
            "verified_at": row.verified_at,
            "created_at": now,
            "updated_at": now,
        }
        with self._engine.begin() as conn:
            conn.execute(insert(channel_credentials).values(**values))


class SqlMappingLedger:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def record(self, mapping: ProviderMapping) -> ProviderMapping:
        carrier = CarrierName(mapping.carrier).value
        with self._engine.begin() as conn:
            existing = conn.execute(
                select(provider_mappings).where(
                    provider_mappings.c.message_id == mapping.message_id,
                    provider_mappings.c.provider == carrier,
                )
            ).first()
            if existing is not None:
                if existing.provider_message_id == mapping.carrier_message_id:
                    return _mapping_from_row(existing)
                raise LedgerConflictError(
                    f"Message {mapping.message_id} already mapped to "
                    f"{existing.provider_message_id} on {carrier}"
                )

            now = _utcnow()
            values = {
                "id": str(uuid.uuid4()),
                "message_id": mapping.message_id,
                "channel": Channel(mapping.channel).value,
                "provider": carrier,
                "provider_message_id": mapping.carrier_message_id,
                "provider_status": mapping.carrier_status.value if mapping.carrier_status else None,
                "created_at": now,
                "updated_at": now,
            }
            try:
                conn.execute(insert(provider_mappings).values(**values))
            except IntegrityError as exc:
                raise LedgerConflictError(
                    f"Carrier message id {mapping.carrier_message_id} is already mapped"
                ) from exc

        logger.debug("Recorded mapping %s -> %s (%s)", mapping.message_id, mapping.carrier_message_id, carrier)
        return ProviderMapping(
            message_id=mapping.message_id,
            channel=Channel(mapping.channel),
            carrier=CarrierName(carrier),
            carrier_message_id=mapping.carrier_message_id,
            carrier_status=mapping.carrier_status,
            created_at=now,
            updated_at=now,
        )

    def find_by_carrier_id(self, carrier_message_id: str) -> ProviderMapping | None:
        stmt = select(provider_mappings).where(provider_mappings.c.provider_message_id == carrier_message_id)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).first()
        return _mapping_from_row(row) if row is not None else None

    def find_for_message(self, message_id: str) -> list[ProviderMapping]:
        stmt = select(provider_mappings).where(provider_mappings.c.message_id == message_id)
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_mapping_from_row(row) for row in rows]

    def update_status(self, carrier_message_id: str, status: NormalizedStatus) -> ProviderMapping | None:
        stmt = (
            update(provider_mappings)
            .where(provider_mappings.c.provider_message_id == carrier_message_id)
            .values(provider_status=NormalizedStatus(status).value, updated_at=_utcnow())
        )
        with self._engine.begin() as conn:
            result = conn.execute(stmt)
        if result.rowcount == 0:
            return None
        return self.find_by_carrier_id(carrier_message_id)


# ── Row mapping ───────────────────────────────────────────────────────


def _config_from_row(row: Row[Any]) -> dict[str, Any]:
    if not row.provider_config_json:
        return {}
    try:
        config = json.loads(row.provider_config_json)
    except ValueError as exc:
        raise InvalidCredentialsError(
            f"provider_config_json for tenant {row.tenant_id}, channel {row.channel} is not valid JSON"
        ) from exc
    if not isinstance(config, dict):
        raise InvalidCredentialsError(
            f"provider_config_json for tenant {row.tenant_id}, channel {row.channel} is not an object"
        )
    return config


def _credential_from_row(row: Row[Any], strict: bool = True) -> StoredCredential:
    """Build a credential from a row.

    With ``strict`` off, a malformed ``provider_config_json`` is logged and
    read as an empty config so bulk passes over the table still see the row.
    """
    try:
        config = _config_from_row(row)
    except InvalidCredentialsError as exc:
        if strict:
            raise
        logger.warning("Ignoring provider config: %s", exc)
        config = {}
    if row.webhook_url and "webhook_url" not in config:
        config["webhook_url"] = row.webhook_url

    return StoredCredential(
        tenant_id=row.tenant_id,
        channel=Channel(row.channel),
        carrier=row.provider,
        secret_blob=row.credentials_json_encrypted,
        config=config,
        enabled=bool(row.is_enabled),
        verified=bool(row.is_verified),
        verification_error=row.verification_error,
        verified_at=row.verified_at,
    )


def _mapping_from_row(row: Row[Any]) -> ProviderMapping:
    return ProviderMapping(
        message_id=row.message_id,
        channel=Channel(row.channel),
        carrier=CarrierName(row.provider),
        carrier_message_id=row.provider_message_id,
        carrier_status=NormalizedStatus.coerce(row.provider_status) if row.provider_status else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
