"""
EncryptionService — Envelope encryption for secret strings.

Provides the public API used by the rest of the application:
- ``encrypt(plaintext)`` — seal a string under the active key
- ``decrypt(envelope)`` — open an envelope with the key it names
- ``export_active_key()`` — hex of the active key, for operator backup
- ``rotate(envelope)`` / ``needs_rotation(envelope)`` — move data onto
  the active key

The service is stateless after construction and safe to share between
threads; all key state lives in the provider and its custody backend.

Security Note:
    Never log plaintext or ciphertext values. Only log key identifiers
    and provider names.
"""
import logging
from typing import Optional

from .conf import LOGGER_NAME
from .config import EncryptionSettings, load_settings
from .crypto import (
    decode_payload,
    encode_envelope,
    open_sealed,
    seal,
    split_envelope,
)
from .exceptions import MalformedEnvelopeError
from .keystore import KeyStore
from .providers import KeyProvider, create_provider

logger = logging.getLogger(LOGGER_NAME)


class EncryptionService:
    """AES-256-GCM envelope encryption over a pluggable key provider.

    Envelopes look like ``<key_id>:<base64(nonce || ciphertext || tag)>``;
    the identifier lets data written under a retired key be decrypted after
    the active key has been rotated.
    """

    def __init__(
        self,
        settings: Optional[EncryptionSettings] = None,
        keystore: Optional[KeyStore] = None,
        *,
        provider: Optional[KeyProvider] = None,
    ):
        """Build the service from settings, or around a ready provider.

        Args:
            settings: Encryption settings naming exactly one provider.
            keystore: Custody backend for the keyring provider.
            provider: Already built provider; excludes ``settings``.

        Raises:
            ValueError: If both or neither of ``settings`` and ``provider``
                are given.
        """
        if (settings is None) == (provider is None):
            raise ValueError("pass exactly one of settings or provider")
        if provider is not None:
            self._provider_name = type(provider).__name__
            self._provider = provider
        else:
            self._provider_name = settings.active_provider()
            self._provider = create_provider(settings, keystore=keystore)

    @classmethod
    def from_provider(cls, provider: KeyProvider) -> "EncryptionService":
        """Wrap an already built provider (e.g. a custom KMS-backed one)."""
        return cls(provider=provider)

    @classmethod
    def from_env(cls, keystore: Optional[KeyStore] = None) -> "EncryptionService":
        """Build a service from ``load_settings()`` resolution."""
        return cls(load_settings(), keystore=keystore)

    @property
    def provider(self) -> KeyProvider:
        return self._provider

    @property
    def provider_name(self) -> str:
        return self._provider_name

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string under the provider's current key.

        Args:
            plaintext: Secret to encrypt (any unicode, including empty).

        Returns:
            Envelope string prefixed with the key identifier.
        """
        key, key_id = self._provider.get_encryption_key()
        sealed = seal(key, plaintext.encode("utf-8"), key_id=key_id)
        return encode_envelope(key_id, sealed)

    def decrypt(self, envelope: str) -> str:
        """Decrypt an envelope produced by :meth:`encrypt`.

        Raises:
            MalformedEnvelopeError: Missing separator or invalid base64.
            UnknownKeyError / RevokedKeyError: Key cannot be used.
            TruncatedCiphertextError: Payload shorter than the nonce.
            AuthenticationFailedError: Wrong key, tampered data or a
                missing tag.
        """
        key_id, encoded = split_envelope(envelope)
        key = self._provider.get_decryption_key(key_id)
        sealed = decode_payload(encoded, key_id=key_id)
        plaintext = open_sealed(key, sealed, key_id=key_id)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedEnvelopeError(
                "decrypted payload is not valid UTF-8",
                key_id=key_id,
                stage="decode",
            ) from None

    def export_active_key(self) -> str:
        """Return the hex encoding of the current encryption key.

        Resolved fresh on every call.
        """
        key, key_id = self._provider.get_encryption_key()
        logger.info("Exporting active key %s", key_id)
        return key.hex()

    # ------------------------------------------------------------------
    # Rotation helpers
    # ------------------------------------------------------------------

    def active_key_id(self) -> str:
        """Identifier new envelopes are stamped with."""
        return self._provider.get_encryption_key()[1]

    @staticmethod
    def key_id_of(envelope: str) -> str:
        """Return the key identifier embedded in an envelope."""
        return split_envelope(envelope)[0]

    def needs_rotation(self, envelope: str) -> bool:
        """True if the envelope was not written under the active key."""
        return self.key_id_of(envelope) != self.active_key_id()

    def rotate(self, envelope: str) -> str:
        """Re-encrypt an envelope under the active key.

        Envelopes already under the active key are returned unchanged.
        """
        if not self.needs_rotation(envelope):
            return envelope
        return self.encrypt(self.decrypt(envelope))

    def __repr__(self) -> str:
        return f"<EncryptionService provider={self._provider!r}>"
