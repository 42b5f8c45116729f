"""
Keyring key provider.

Holds a configured map of key name -> status and keeps the key material in
a custody backend (the OS keyring by default). Exactly one key is
``active`` and encrypts new data; ``deprecated`` keys still decrypt data
written under them (a warning is logged on each use); ``inactive``, the
older name for the same state, is treated alike; ``revoked`` keys are
refused.

Key material is resolved from the backend on every call and never cached,
so keys rotated or revoked externally take effect without a restart.

A configured name with nothing stored yet is self-provisioning: the first
lookup generates a random 32-byte key and stores it. The backend has no
compare-and-set, so provisioning a brand-new name from several processes at
once can fragment data across two keys. Provision new names from one
process, or under an external lock.
"""
import base64
import binascii
import logging
from types import MappingProxyType
from typing import Mapping, Optional

from ..conf import LOGGER_NAME
from ..config import KeyringConfig, KeyStatus
from ..crypto import KEY_LENGTH, generate_key, is_valid_key_id
from ..exceptions import (
    ConfigurationError,
    CorruptKeyError,
    InvalidConfigError,
    RevokedKeyError,
    UnknownKeyError,
)
from ..keystore import KeyStore, SystemKeyStore

logger = logging.getLogger(LOGGER_NAME)


class KeyringProvider:
    """Key provider for named, rotatable keys kept in a custody backend."""

    def __init__(self, config: KeyringConfig, keystore: Optional[KeyStore] = None):
        if not config.service:
            raise InvalidConfigError(
                "keyring service name is required", stage="config"
            )
        if not config.keys:
            raise InvalidConfigError(
                "at least one key must be configured", stage="config"
            )
        invalid = sorted(name for name in config.keys if not is_valid_key_id(name))
        if invalid:
            raise InvalidConfigError(
                "key names may only contain letters, digits, '_' and '-': "
                f"{invalid}",
                stage="config",
            )
        active = [
            name for name, status in config.keys.items()
            if status == KeyStatus.ACTIVE
        ]
        if not active:
            raise InvalidConfigError(
                "no active key found in keyring configuration", stage="config"
            )
        if len(active) > 1:
            raise InvalidConfigError(
                "multiple active keys found in keyring configuration: "
                f"{sorted(active)}",
                stage="config",
            )
        self._service = config.service
        self._keys: Mapping[str, KeyStatus] = MappingProxyType(
            {name: KeyStatus(status) for name, status in config.keys.items()}
        )
        self._store = keystore if keystore is not None else SystemKeyStore()
        logger.info(
            "Keyring provider ready: service=%s active=%s keys=%d",
            self._service, active[0], len(self._keys),
        )

    @property
    def service(self) -> str:
        return self._service

    @property
    def keys(self) -> Mapping[str, KeyStatus]:
        """Read-only view of configured key names and their statuses."""
        return self._keys

    def get_encryption_key(self) -> tuple[bytes, str]:
        for name, status in self._keys.items():
            if status == KeyStatus.ACTIVE:
                return self._get_or_create_key(name), name
        raise ConfigurationError(
            "no active key found in keyring configuration", stage="encrypt"
        )

    def get_decryption_key(self, key_id: str) -> bytes:
        status = self._keys.get(key_id)
        if status is None:
            raise UnknownKeyError(
                f"key {key_id!r} is not configured", key_id=key_id, stage="resolve"
            )
        if status == KeyStatus.REVOKED:
            raise RevokedKeyError(
                f"key {key_id!r} is revoked and cannot be used for decryption",
                key_id=key_id,
                stage="resolve",
            )
        if status in (KeyStatus.DEPRECATED, KeyStatus.INACTIVE):
            logger.warning(
                "Decrypting with %s key %s; re-encrypt this data "
                "under the active key", status.value, key_id,
            )
        return self._get_or_create_key(key_id)

    def export_key(self, name: str) -> str:
        """Return the hex encoding of a configured key, for operator backup.

        Follows the same resolve-or-create path as encryption.
        """
        if name not in self._keys:
            raise UnknownKeyError(
                f"key {name!r} is not configured", key_id=name, stage="export"
            )
        return self._get_or_create_key(name).hex()

    # ------------------------------------------------------------------
    # Custody backend
    # ------------------------------------------------------------------

    def _get_or_create_key(self, name: str) -> bytes:
        stored = self._store.get(self._service, name)
        if stored is None:
            return self._create_key(name)
        try:
            key = base64.b64decode(stored, validate=True)
        except (binascii.Error, ValueError):
            raise CorruptKeyError(
                f"failed to decode key {name!r} from keyring",
                key_id=name,
                stage="resolve",
            ) from None
        if len(key) != KEY_LENGTH:
            raise CorruptKeyError(
                f"key {name!r} from keyring has invalid length: "
                f"expected {KEY_LENGTH} bytes, got {len(key)}",
                key_id=name,
                stage="resolve",
            )
        logger.debug("Resolved key %s from service %s", name, self._service)
        return key

    def _create_key(self, name: str) -> bytes:
        key = generate_key()
        self._store.set(
            self._service, name, base64.b64encode(key).decode("ascii")
        )
        logger.info(
            "Provisioned new key %s in service %s", name, self._service
        )
        return key

    def __repr__(self) -> str:
        return (
            f"<KeyringProvider service={self._service} "
            f"keys={dict((k, v.value) for k, v in self._keys.items())}>"
        )
