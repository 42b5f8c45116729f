"""
Key provider capability.

A provider answers two questions for the encryption service:
- which key (and identifier) should new data be encrypted with?
- which key decrypts data stamped with identifier X?

Providers are composed into the service, not subclassed, so a new custody
backend (e.g. a cloud KMS) only needs these two methods.
"""
from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyProvider(Protocol):
    """Supplies encryption and decryption keys."""

    def get_encryption_key(self) -> tuple[bytes, str]:
        """Return ``(key, key_id)`` for new encryptions.

        Raises:
            ConfigurationError: If no key can be resolved.
        """
        ...

    def get_decryption_key(self, key_id: str) -> bytes:
        """Return the key for a previously embedded ``key_id``.

        Raises:
            UnknownKeyError: If ``key_id`` is not recognised.
            RevokedKeyError: If the key's status forbids its use.
        """
        ...
