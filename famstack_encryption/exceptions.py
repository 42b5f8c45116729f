"""
Encryption errors.

Every error may carry the key identifier and the stage that failed so
operators can locate the problem. Key material and plaintext never appear
in error text.
"""
from typing import Optional


class EncryptionError(Exception):
    """Base class for all encryption subsystem errors."""

    def __init__(
        self,
        message: str,
        *,
        key_id: Optional[str] = None,
        stage: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.key_id = key_id
        self.stage = stage


# --- Construction time -------------------------------------------------------

class ConfigurationError(EncryptionError):
    """No usable key can be resolved from the configuration."""


class InvalidConfigError(ConfigurationError):
    """Bad configuration input. Fatal to startup."""


class AmbiguousProviderError(ConfigurationError):
    """More than one key provider is configured."""


class NoProviderError(ConfigurationError):
    """No key provider is configured."""


# --- Key resolution ----------------------------------------------------------

class KeyResolutionError(EncryptionError):
    """A key identifier cannot be turned into key material."""


class UnknownKeyError(KeyResolutionError):
    """The identifier is not known to this provider."""


class RevokedKeyError(KeyResolutionError):
    """The identifier names a key whose status forbids its use."""


class CorruptKeyError(KeyResolutionError):
    """The custody backend holds a value that is not a valid 32-byte key."""


class KeyStoreError(EncryptionError):
    """Custody backend I/O failure. May be transient; callers decide on retry."""


# --- Envelope / ciphertext ---------------------------------------------------

class EnvelopeError(EncryptionError):
    """Input is not a valid ciphertext envelope."""


class MalformedEnvelopeError(EnvelopeError):
    """Missing separator, bad base64 or undecodable payload."""


class TruncatedCiphertextError(EnvelopeError):
    """Payload too short to hold a nonce and an authentication tag."""


class AuthenticationFailedError(EncryptionError):
    """AEAD tag did not verify.

    Raised for a wrong key and for tampered data alike; the two cases are
    deliberately indistinguishable.
    """
