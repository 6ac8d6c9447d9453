"""Credential store accessor: point reads plus decryption."""

from __future__ import annotations

import logging

from outbound.crypto import CredentialCipher, is_v2
from outbound.errors import InvalidCredentialsError
from outbound.store.base import CredentialStore
from outbound.types import Channel, ChannelCredentials

logger = logging.getLogger(__name__)


class CredentialStoreAccessor:
    """Loads one (tenant, channel) credential row and decrypts its secrets."""

    def __init__(self, store: CredentialStore, cipher: CredentialCipher) -> None:
        self._store = store
        self._cipher = cipher

    def load(self, tenant_id: str, channel: Channel) -> ChannelCredentials | None:
        """Return decrypted credentials, or None when the channel is not configured.

        Raises:
            InvalidCredentialsError: the stored blob cannot be decrypted or the
                non-secret config is not a JSON object.
        """
        row = self._store.get(tenant_id, channel)
        if row is None:
            return None

        if not isinstance(row.config, dict):
            raise InvalidCredentialsError(
                f"Provider config for tenant {tenant_id}, channel {channel} is not an object"
            )

        secrets = self._cipher.decrypt(row.secret_blob) if row.secret_blob else {}
        return ChannelCredentials(
            tenant_id=row.tenant_id,
            channel=Channel(row.channel),
            carrier=row.carrier,
            secrets=secrets,
            config=dict(row.config),
            enabled=row.enabled,
            verified=row.verified,
        )


def rekey_legacy_credentials(store: CredentialStore, cipher: CredentialCipher) -> int:
    """Re-encrypt every legacy-format secret blob in ``store`` as v2.

    Rows already in v2 format are left untouched. A row that cannot be
    decrypted aborts the migration with ``InvalidCredentialsError`` so no
    blob is silently lost.

    Returns:
        Number of rows rewritten.
    """
    migrated = 0
    for row in store.all():
        if not row.secret_blob or is_v2(row.secret_blob):
            continue
        try:
            new_blob = cipher.reencrypt(row.secret_blob)
        except InvalidCredentialsError:
            logger.error("Cannot re-key credentials for tenant %s, channel %s", row.tenant_id, row.channel)
            raise
        store.update_secret(row.tenant_id, row.channel, new_blob)
        migrated += 1
    logger.info("Re-keyed %d credential rows", migrated)
    return migrated
