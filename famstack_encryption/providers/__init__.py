"""
Key providers and provider selection.

Available providers:
- FixedKeyProvider: one static hex key from configuration
- KeyringProvider: named keys with lifecycle status in the OS keyring
"""
import logging
from typing import Optional

from ..conf import LOGGER_NAME
from ..config import FIXED_KEY_PROVIDER, KEYRING_PROVIDER, EncryptionSettings
from ..exceptions import InvalidConfigError
from ..keystore import KeyStore
from .base import KeyProvider
from .fixed import FixedKeyProvider
from .keyring import KeyringProvider

logger = logging.getLogger(LOGGER_NAME)


def create_provider(
    settings: EncryptionSettings,
    keystore: Optional[KeyStore] = None,
) -> KeyProvider:
    """Build the single provider named by ``settings``.

    Args:
        settings: Encryption settings naming exactly one provider.
        keystore: Custody backend for the keyring provider; defaults to
            the OS keyring. Ignored by the fixed provider.

    Raises:
        NoProviderError / AmbiguousProviderError: From provider selection.
        InvalidConfigError: If the chosen provider rejects its configuration.
    """
    name = settings.active_provider()
    if name == FIXED_KEY_PROVIDER:
        try:
            provider: KeyProvider = FixedKeyProvider(settings.fixed_key)
        except InvalidConfigError as err:
            raise InvalidConfigError(
                f"failed to create fixed key provider: {err}",
                key_id=err.key_id,
                stage=err.stage,
            ) from err
    elif name == KEYRING_PROVIDER:
        try:
            provider = KeyringProvider(settings.keyring, keystore=keystore)
        except InvalidConfigError as err:
            raise InvalidConfigError(
                f"failed to create keyring provider: {err}",
                key_id=err.key_id,
                stage=err.stage,
            ) from err
    else:
        raise InvalidConfigError(
            f"unsupported encryption provider: {name}", stage="config"
        )
    logger.info("Encryption provider selected: %s", name)
    return provider


__all__ = [
    "KeyProvider",
    "FixedKeyProvider",
    "KeyringProvider",
    "create_provider",
]
