"""
Tests for EncryptionService.

Tests cover:
- Provider selection and construction errors
- Encrypt/decrypt round trips with fixed and keyring providers
- Envelope format and nonce randomness
- Decryption error taxonomy
- Key export and rotation helpers
"""
import base64
from concurrent.futures import ThreadPoolExecutor

import pytest

from famstack_encryption import (
    AmbiguousProviderError,
    AuthenticationFailedError,
    EncryptionService,
    EncryptionSettings,
    FixedKeyConfig,
    FixedKeyProvider,
    InvalidConfigError,
    KeyringConfig,
    KeyringProvider,
    MalformedEnvelopeError,
    MemoryKeyStore,
    NoProviderError,
    RevokedKeyError,
    TruncatedCiphertextError,
    UnknownKeyError,
)
from famstack_encryption.crypto import NONCE_SIZE, TAG_SIZE

from conftest import FIXED_HEX, OTHER_HEX, SERVICE

PLAINTEXTS = [
    "Hello, World!",
    "Short",
    "This is a much longer string that contains various characters: "
    "!@#$%^&*()_+{}|:<>?[]\\;',./\"",
    "🔐 Unicode string with emojis! 🚀🎉",
    "Grüße, 東京, ключ",
    "",
]


# --- Construction ---

class TestServiceConstruction:

    def test_fixed_provider(self, fixed_service):
        assert isinstance(fixed_service.provider, FixedKeyProvider)
        assert fixed_service.provider_name == "fixed_key"

    def test_keyring_provider(self, keyring_service):
        assert isinstance(keyring_service.provider, KeyringProvider)
        assert keyring_service.provider_name == "keyring"

    def test_multiple_providers(self, keystore):
        settings = EncryptionSettings(
            fixed_key=FixedKeyConfig(value=FIXED_HEX),
            keyring=KeyringConfig(service="test", keys={"test-key": "active"}),
        )
        with pytest.raises(
            AmbiguousProviderError, match="multiple encryption providers configured"
        ):
            EncryptionService(settings, keystore=keystore)

    def test_no_provider(self):
        with pytest.raises(NoProviderError, match="no encryption provider configured"):
            EncryptionService(EncryptionSettings())

    def test_fixed_provider_error_is_wrapped(self):
        settings = EncryptionSettings(fixed_key=FixedKeyConfig(value="abcd"))
        with pytest.raises(InvalidConfigError) as exc:
            EncryptionService(settings)
        assert "failed to create fixed key provider" in str(exc.value)
        assert "key must be exactly 32 bytes" in str(exc.value)
        assert isinstance(exc.value.__cause__, InvalidConfigError)

    def test_keyring_provider_error_is_wrapped(self, keystore):
        settings = EncryptionSettings(
            keyring=KeyringConfig(service=SERVICE, keys={"a": "active", "b": "active"})
        )
        with pytest.raises(InvalidConfigError, match="failed to create keyring provider"):
            EncryptionService(settings, keystore=keystore)

    def test_from_env(self, clean_env):
        clean_env.setenv("FAMSTACK_FIXED_KEY_VALUE", FIXED_HEX)
        service = EncryptionService.from_env()
        assert service.export_active_key() == FIXED_HEX

    def test_from_provider(self):
        provider = FixedKeyProvider(FixedKeyConfig(value=FIXED_HEX))
        service = EncryptionService.from_provider(provider)
        assert service.provider is provider
        assert service.decrypt(service.encrypt("x")) == "x"

    def test_provider_keyword(self):
        provider = FixedKeyProvider(FixedKeyConfig(value=FIXED_HEX))
        service = EncryptionService(provider=provider)
        assert service.provider is provider
        assert service.provider_name == "FixedKeyProvider"
        assert service.export_active_key() == FIXED_HEX

    def test_settings_and_provider_are_exclusive(self, fixed_settings):
        provider = FixedKeyProvider(FixedKeyConfig(value=FIXED_HEX))
        with pytest.raises(ValueError, match="exactly one"):
            EncryptionService(fixed_settings, provider=provider)
        with pytest.raises(ValueError, match="exactly one"):
            EncryptionService()


# --- Encryption ---

class TestEncryptDecrypt:

    @pytest.mark.parametrize("plaintext", PLAINTEXTS)
    def test_fixed_round_trip(self, fixed_service, plaintext):
        envelope = fixed_service.encrypt(plaintext)
        key_id, _, payload = envelope.partition(":")
        assert key_id == "fixed"
        assert payload
        assert fixed_service.decrypt(envelope) == plaintext

    @pytest.mark.parametrize("plaintext", PLAINTEXTS)
    def test_keyring_round_trip(self, keyring_service, plaintext):
        envelope = keyring_service.encrypt(plaintext)
        assert envelope.startswith("key-2024-06:")
        assert keyring_service.decrypt(envelope) == plaintext

    def test_envelope_layout(self, fixed_service):
        envelope = fixed_service.encrypt("abc")
        sealed = base64.b64decode(envelope.split(":", 1)[1], validate=True)
        assert len(sealed) == NONCE_SIZE + len(b"abc") + TAG_SIZE

    def test_randomness(self, fixed_service):
        plaintext = "Randomness test"
        envelopes = [fixed_service.encrypt(plaintext) for _ in range(5)]
        assert len(set(envelopes)) == 5
        for envelope in envelopes:
            assert fixed_service.decrypt(envelope) == plaintext

    def test_cross_instance(self, fixed_settings):
        """Two independently built services sharing a fixed key interoperate."""
        first = EncryptionService(fixed_settings)
        second = EncryptionService(
            EncryptionSettings(fixed_key=FixedKeyConfig(value=FIXED_HEX))
        )
        assert second.decrypt(first.encrypt("Hello, World!")) == "Hello, World!"

    def test_different_fixed_key_fails(self, fixed_service):
        other = EncryptionService(
            EncryptionSettings(fixed_key=FixedKeyConfig(value=OTHER_HEX))
        )
        with pytest.raises(AuthenticationFailedError):
            other.decrypt(fixed_service.encrypt("secret"))

    def test_keyring_shared_backend(self, keyring_config, keystore):
        """Services sharing a custody backend share keys."""
        a = EncryptionService(EncryptionSettings(keyring=keyring_config), keystore=keystore)
        b = EncryptionService(EncryptionSettings(keyring=keyring_config), keystore=keystore)
        assert b.decrypt(a.encrypt("oauth-token")) == "oauth-token"


# --- Decryption errors ---

class TestDecryptionErrors:

    def test_no_separator(self, fixed_service):
        with pytest.raises(MalformedEnvelopeError, match="missing key identifier"):
            fixed_service.decrypt("noseparator")

    def test_empty_key_id(self, fixed_service):
        # fixed provider accepts any identifier, so the payload is inspected
        with pytest.raises(TruncatedCiphertextError, match="ciphertext too short"):
            fixed_service.decrypt(":somedata")

    def test_invalid_base64(self, fixed_service):
        with pytest.raises(MalformedEnvelopeError, match="failed to decode base64"):
            fixed_service.decrypt("fixed:invalid-base64!")

    def test_truncated(self, fixed_service):
        with pytest.raises(TruncatedCiphertextError, match="ciphertext too short"):
            fixed_service.decrypt("fixed:dGVzdA==")

    def test_nonce_without_tag(self, fixed_service):
        envelope = "fixed:" + base64.b64encode(b"\x00" * 20).decode()
        with pytest.raises(AuthenticationFailedError):
            fixed_service.decrypt(envelope)

    def test_tampered(self, fixed_service):
        envelope = fixed_service.encrypt("secret")
        key_id, payload = envelope.split(":", 1)
        sealed = bytearray(base64.b64decode(payload))
        sealed[NONCE_SIZE] ^= 0x01
        tampered = f"{key_id}:{base64.b64encode(bytes(sealed)).decode()}"
        with pytest.raises(AuthenticationFailedError) as exc:
            fixed_service.decrypt(tampered)
        assert exc.value.key_id == "fixed"
        assert "secret" not in str(exc.value)

    def test_unknown_keyring_key(self, keyring_service):
        envelope = keyring_service.encrypt("x").replace("key-2024-06", "key-1999-01", 1)
        with pytest.raises(UnknownKeyError):
            keyring_service.decrypt(envelope)

    def test_unknown_key_checked_before_payload(self, keyring_service):
        with pytest.raises(UnknownKeyError):
            keyring_service.decrypt("nope:invalid-base64!")

    def test_invalid_utf8_payload(self, fixed_service):
        from famstack_encryption.crypto import encode_envelope, seal

        envelope = encode_envelope("fixed", seal(bytes.fromhex(FIXED_HEX), b"\xff\xfe"))
        with pytest.raises(MalformedEnvelopeError, match="not valid UTF-8"):
            fixed_service.decrypt(envelope)


# --- Key rotation across configuration changes ---

class TestRotation:

    def _service(self, keystore, keys):
        return EncryptionService(
            EncryptionSettings(keyring=KeyringConfig(service=SERVICE, keys=keys)),
            keystore=keystore,
        )

    def test_deprecated_key_data_stays_readable(self):
        store = MemoryKeyStore()
        before = self._service(store, {"k1": "active"})
        envelope = before.encrypt("refresh-token")

        after = self._service(store, {"k1": "deprecated", "k2": "active"})
        assert after.decrypt(envelope) == "refresh-token"
        assert after.encrypt("new").startswith("k2:")

    def test_revoked_key_data_is_refused(self):
        store = MemoryKeyStore()
        envelope = self._service(store, {"k1": "active"}).encrypt("token")
        revoked = self._service(store, {"k1": "revoked", "k2": "active"})
        with pytest.raises(RevokedKeyError):
            revoked.decrypt(envelope)

    def test_rotate(self):
        store = MemoryKeyStore()
        envelope = self._service(store, {"k1": "active"}).encrypt("token")
        service = self._service(store, {"k1": "deprecated", "k2": "active"})

        assert service.key_id_of(envelope) == "k1"
        assert service.needs_rotation(envelope)
        rotated = service.rotate(envelope)
        assert rotated.startswith("k2:")
        assert not service.needs_rotation(rotated)
        assert service.decrypt(rotated) == "token"

    def test_rotate_current_envelope_is_unchanged(self, keyring_service):
        envelope = keyring_service.encrypt("token")
        assert keyring_service.rotate(envelope) == envelope

    def test_active_key_id(self, fixed_service, keyring_service):
        assert fixed_service.active_key_id() == "fixed"
        assert keyring_service.active_key_id() == "key-2024-06"


class TestExportActiveKey:

    def test_fixed(self, fixed_service):
        assert fixed_service.export_active_key() == FIXED_HEX

    def test_keyring_matches_encryption_key(self, keyring_service):
        key, _ = keyring_service.provider.get_encryption_key()
        assert keyring_service.export_active_key() == key.hex()

    def test_follows_backend_changes(self, keyring_service, keystore):
        keyring_service.export_active_key()
        keystore.set(SERVICE, "key-2024-06", base64.b64encode(bytes(32)).decode())
        assert keyring_service.export_active_key() == "00" * 32


class TestConcurrentUse:
    """A single shared service is safe for concurrent callers."""

    def _round_trips(self, service, count=200):
        def round_trip(i):
            plaintext = f"oauth-token-{i}-ключ"
            envelope = service.encrypt(plaintext)
            return envelope, service.decrypt(envelope) == plaintext

        with ThreadPoolExecutor(max_workers=16) as pool:
            return list(pool.map(round_trip, range(count)))

    def test_fixed_service(self, fixed_service):
        results = self._round_trips(fixed_service)
        assert all(ok for _, ok in results)
        assert len({envelope for envelope, _ in results}) == len(results)

    def test_keyring_service(self, keyring_service, keystore):
        keyring_service.active_key_id()  # provision before fanning out
        results = self._round_trips(keyring_service)
        assert all(ok for _, ok in results)
        assert len({envelope for envelope, _ in results}) == len(results)
        assert all(envelope.startswith("key-2024-06:") for envelope, _ in results)
        assert len(keystore) == 1
