"""FamStack Encryption — Envelope encryption for stored integration secrets.

Secrets (OAuth tokens, API credentials) are sealed with AES-256-GCM and
stored as ``<key_id>:<base64>`` envelopes, so they stay decryptable after
the active key is rotated.

Security Note (Threat Model):
    Keys are resolved into process memory for each operation. A memory dump
    of the application process could expose key material. Mitigation
    requires an HSM or cloud KMS provider, which plugs in as another
    KeyProvider.
"""

from .version import __version__
from .config import (
    EncryptionSettings,
    FixedKeyConfig,
    KeyringConfig,
    KeyStatus,
    load_settings,
)
from .crypto import generate_key, generate_key_hex
from .exceptions import (
    EncryptionError,
    ConfigurationError,
    InvalidConfigError,
    AmbiguousProviderError,
    NoProviderError,
    KeyResolutionError,
    UnknownKeyError,
    RevokedKeyError,
    CorruptKeyError,
    KeyStoreError,
    EnvelopeError,
    MalformedEnvelopeError,
    TruncatedCiphertextError,
    AuthenticationFailedError,
)
from .keystore import KeyStore, MemoryKeyStore, SystemKeyStore
from .providers import (
    KeyProvider,
    FixedKeyProvider,
    KeyringProvider,
    create_provider,
)
from .service import EncryptionService
from .key_rotation import rotate_envelopes

__all__ = [
    "__version__",
    "EncryptionService",
    "EncryptionSettings",
    "FixedKeyConfig",
    "KeyringConfig",
    "KeyStatus",
    "load_settings",
    "generate_key",
    "generate_key_hex",
    "KeyProvider",
    "FixedKeyProvider",
    "KeyringProvider",
    "create_provider",
    "KeyStore",
    "MemoryKeyStore",
    "SystemKeyStore",
    "rotate_envelopes",
    "EncryptionError",
    "ConfigurationError",
    "InvalidConfigError",
    "AmbiguousProviderError",
    "NoProviderError",
    "KeyResolutionError",
    "UnknownKeyError",
    "RevokedKeyError",
    "CorruptKeyError",
    "KeyStoreError",
    "EnvelopeError",
    "MalformedEnvelopeError",
    "TruncatedCiphertextError",
    "AuthenticationFailedError",
]
