"""Symmetric encryption for stored carrier secrets.

Two blob formats are understood:

- **legacy**: hex-encoded AES-192-CBC with a fixed all-zero IV. The key is
  SHA-256 of the configured key string truncated to 24 bytes. Existing rows
  use this format and must stay readable.
- **v2**: ``"v2:" + base64(nonce || ciphertext || tag)`` using AES-256-GCM
  with a random 12-byte nonce and the full SHA-256 digest as key.

New blobs are written as v2; :meth:`CredentialCipher.reencrypt` converts a
legacy blob during the re-keying migration.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import os
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from outbound.errors import InvalidCredentialsError

V2_PREFIX = "v2:"
LEGACY_KEY_BYTES = 24
LEGACY_IV = bytes(16)
NONCE_BYTES = 12


class CredentialCipher:
    """Encrypts and decrypts credential JSON objects with a process-wide key."""

    def __init__(self, key: str) -> None:
        if not key:
            raise ValueError("encryption key is required")
        digest = hashlib.sha256(key.encode("utf-8")).digest()
        self._legacy_key = digest[:LEGACY_KEY_BYTES]
        self._aead = AESGCM(digest)

    # ── Public API ────────────────────────────────────────────────

    def encrypt(self, secrets: dict[str, Any]) -> str:
        """Encrypt a JSON object into a v2 blob."""
        nonce = os.urandom(NONCE_BYTES)
        sealed = self._aead.encrypt(nonce, _dump(secrets), None)
        return V2_PREFIX + base64.b64encode(nonce + sealed).decode("ascii")

    def encrypt_legacy(self, secrets: dict[str, Any]) -> str:
        """Encrypt a JSON object into the legacy hex CBC format."""
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(_dump(secrets)) + padder.finalize()
        encryptor = self._legacy_cipher().encryptor()
        return (encryptor.update(padded) + encryptor.finalize()).hex()

    def decrypt(self, blob: str) -> dict[str, Any]:
        """Decrypt a blob in either format.

        Raises:
            InvalidCredentialsError: the blob is corrupt, was sealed with a
                different key, or does not hold a JSON object.
        """
        if not blob:
            raise InvalidCredentialsError("Invalid credentials - empty secret blob")
        try:
            if is_v2(blob):
                plaintext = self._decrypt_v2(blob)
            else:
                plaintext = self._decrypt_legacy(blob)
            secrets = json.loads(plaintext.decode("utf-8"))
        except (InvalidTag, ValueError) as exc:
            raise InvalidCredentialsError("Invalid credentials - decryption failed") from exc

        if not isinstance(secrets, dict):
            raise InvalidCredentialsError("Invalid credentials - decrypted payload is not an object")
        return secrets

    def reencrypt(self, blob: str) -> str:
        """Return ``blob`` sealed in the v2 format."""
        if is_v2(blob):
            return blob
        return self.encrypt(self.decrypt(blob))

    # ── Private helpers ───────────────────────────────────────────

    def _legacy_cipher(self) -> Cipher:
        return Cipher(algorithms.AES(self._legacy_key), modes.CBC(LEGACY_IV))

    def _decrypt_legacy(self, blob: str) -> bytes:
        decryptor = self._legacy_cipher().decryptor()
        padded = decryptor.update(bytes.fromhex(blob)) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()

    def _decrypt_v2(self, blob: str) -> bytes:
        try:
            raw = base64.b64decode(blob[len(V2_PREFIX):], validate=True)
        except binascii.Error as exc:
            raise ValueError(f"Invalid base64 payload: {exc}") from exc
        if len(raw) <= NONCE_BYTES:
            raise ValueError("v2 blob is too short")
        return self._aead.decrypt(raw[:NONCE_BYTES], raw[NONCE_BYTES:], None)


def is_v2(blob: str) -> bool:
    return blob.startswith(V2_PREFIX)


def _dump(secrets: dict[str, Any]) -> bytes:
    return json.dumps(secrets, separators=(",", ":")).encode("utf-8")
