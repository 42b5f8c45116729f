"""
Fixed key provider.

One static key from configuration, always stamped with the identifier
``fixed``. No rotation: every identifier decrypts with the same key, which
suits static or offline deployments where one long-lived key is acceptable.
"""
import binascii
import logging

from ..conf import FIXED_KEY_ID, LOGGER_NAME
from ..config import FixedKeyConfig
from ..crypto import KEY_LENGTH
from ..exceptions import InvalidConfigError

logger = logging.getLogger(LOGGER_NAME)


class FixedKeyProvider:
    """Key provider backed by a single hex-encoded 32-byte key."""

    key_id = FIXED_KEY_ID

    def __init__(self, config: FixedKeyConfig):
        if not config.value:
            raise InvalidConfigError(
                "fixed key value is required", key_id=FIXED_KEY_ID, stage="config"
            )
        try:
            key = binascii.unhexlify(config.value)
        except ValueError:
            # error text from unhexlify is safe but the input is not
            raise InvalidConfigError(
                "invalid hex key format", key_id=FIXED_KEY_ID, stage="config"
            ) from None
        if len(key) != KEY_LENGTH:
            raise InvalidConfigError(
                f"key must be exactly {KEY_LENGTH} bytes "
                f"({KEY_LENGTH * 2} hex characters), got {len(key)} bytes",
                key_id=FIXED_KEY_ID,
                stage="config",
            )
        self._key = key

    def get_encryption_key(self) -> tuple[bytes, str]:
        return self._key, FIXED_KEY_ID

    def get_decryption_key(self, key_id: str) -> bytes:
        # key_id is ignored: data stamped with any identifier uses this key
        return self._key

    def __repr__(self) -> str:
        return f"<FixedKeyProvider key_id={FIXED_KEY_ID}>"
