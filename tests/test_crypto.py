"""Tests for credential encryption."""

import hashlib
import json

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from outbound import CredentialCipher, InvalidCredentialsError
from outbound.crypto import V2_PREFIX, is_v2

SECRETS = {"accountSid": "AC123", "authToken": "tok"}


def _legacy_blob(key: str, payload: dict) -> str:
    """Encrypt the way existing rows were written: AES-192-CBC, zero IV, hex."""
    derived = hashlib.sha256(key.encode()).digest()[:24]
    padder = padding.PKCS7(128).padder()
    data = padder.update(json.dumps(payload).encode()) + padder.finalize()
    encryptor = Cipher(algorithms.AES(derived), modes.CBC(bytes(16))).encryptor()
    return (encryptor.update(data) + encryptor.finalize()).hex()


class TestLegacyFormat:
    def test_decrypts_existing_rows(self):
        cipher = CredentialCipher("platform-key")
        assert cipher.decrypt(_legacy_blob("platform-key", SECRETS)) == SECRETS

    def test_encrypt_legacy_matches_existing_rows(self):
        cipher = CredentialCipher("platform-key")
        blob = cipher.encrypt_legacy(SECRETS)
        assert not is_v2(blob)
        assert cipher.decrypt(blob) == SECRETS

    def test_wrong_key_fails(self):
        blob = CredentialCipher("right").encrypt_legacy(SECRETS)
        with pytest.raises(InvalidCredentialsError):
            CredentialCipher("wrong").decrypt(blob)

    def test_not_hex(self):
        with pytest.raises(InvalidCredentialsError):
            CredentialCipher("k").decrypt("not-hex-at-all")


class TestV2Format:
    def test_roundtrip(self, cipher: CredentialCipher):
        blob = cipher.encrypt(SECRETS)
        assert blob.startswith(V2_PREFIX)
        assert cipher.decrypt(blob) == SECRETS

    def test_nonce_is_random(self, cipher: CredentialCipher):
        assert cipher.encrypt(SECRETS) != cipher.encrypt(SECRETS)

    def test_wrong_key_fails(self):
        blob = CredentialCipher("right").encrypt(SECRETS)
        with pytest.raises(InvalidCredentialsError):
            CredentialCipher("wrong").decrypt(blob)

    def test_tampered_blob_fails(self, cipher: CredentialCipher):
        blob = cipher.encrypt(SECRETS)
        tampered = blob[:-4] + ("AAAA" if not blob.endswith("AAAA") else "BBBB")
        with pytest.raises(InvalidCredentialsError):
            cipher.decrypt(tampered)

    def test_truncated_blob_fails(self, cipher: CredentialCipher):
        with pytest.raises(InvalidCredentialsError):
            cipher.decrypt(V2_PREFIX + "AAAA")

    def test_bad_base64_fails(self, cipher: CredentialCipher):
        with pytest.raises(InvalidCredentialsError):
            cipher.decrypt(V2_PREFIX + "!!!")


class TestDecryptEdgeCases:
    def test_empty_blob(self, cipher: CredentialCipher):
        with pytest.raises(InvalidCredentialsError):
            cipher.decrypt("")

    def test_non_object_payload(self):
        key = "k"
        derived = hashlib.sha256(key.encode()).digest()[:24]
        padder = padding.PKCS7(128).padder()
        data = padder.update(b"[1, 2]") + padder.finalize()
        encryptor = Cipher(algorithms.AES(derived), modes.CBC(bytes(16))).encryptor()
        blob = (encryptor.update(data) + encryptor.finalize()).hex()
        with pytest.raises(InvalidCredentialsError, match="not an object"):
            CredentialCipher(key).decrypt(blob)

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            CredentialCipher("")


class TestReencrypt:
    def test_legacy_becomes_v2(self, cipher: CredentialCipher):
        legacy = cipher.encrypt_legacy(SECRETS)
        new_blob = cipher.reencrypt(legacy)
        assert is_v2(new_blob)
        assert cipher.decrypt(new_blob) == SECRETS

    def test_v2_unchanged(self, cipher: CredentialCipher):
        blob = cipher.encrypt(SECRETS)
        assert cipher.reencrypt(blob) == blob
