"""
Encryption Configuration — Provider settings and validated loading.

Settings select exactly one key provider:

    {"fixed_key": {"value": "<64 hex chars>"}}
    {"keyring": {"service": "famstack", "keys": {"key-2024-01": "deprecated",
                                                 "key-2024-06": "active"}}}

They can be read from a JSON file (optionally wrapped in an
``encryptionSettings`` object) or from environment variables:
    FAMSTACK_FIXED_KEY_VALUE = <hex-encoded 32-byte key>
    FAMSTACK_KEYRING_SERVICE = <service name>          (default: famstack)
    FAMSTACK_KEYRING_KEYS    = name=status[,name=status...]

Security Note:
    Never log key material. Only log key names and statuses.
"""
import os
import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .conf import (
    CONFIG_PATH_ENV,
    DEFAULT_KEY_NAME,
    DEFAULT_KEYRING_SERVICE,
    FIXED_KEY_ENV,
    KEYRING_KEYS_ENV,
    KEYRING_SERVICE_ENV,
    LOGGER_NAME,
    SETTINGS_SECTION,
)
from .exceptions import (
    AmbiguousProviderError,
    ConfigurationError,
    InvalidConfigError,
    NoProviderError,
)

logger = logging.getLogger(LOGGER_NAME)

FIXED_KEY_PROVIDER = "fixed_key"
KEYRING_PROVIDER = "keyring"


class KeyStatus(str, Enum):
    """Lifecycle status of a named keyring key.

    ``active`` keys encrypt new data (exactly one per keyring).
    ``deprecated`` keys only decrypt existing data.
    ``inactive`` is accepted from older configs and behaves like ``deprecated``.
    ``revoked`` keys are refused for any use.
    """

    ACTIVE = "active"
    DEPRECATED = "deprecated"
    INACTIVE = "inactive"
    REVOKED = "revoked"


class FixedKeyConfig(BaseModel):
    """Single static key for static/offline deployments."""

    value: str = Field(default="", repr=False)

    model_config = ConfigDict(hide_input_in_errors=True)


class KeyringConfig(BaseModel):
    """Named keys held in the OS keyring under ``service``."""

    service: str = ""
    keys: dict[str, KeyStatus] = Field(default_factory=dict)

    def active_key_name(self) -> str:
        """Return the name of the active key.

        Raises:
            ConfigurationError: If no key is marked active.
        """
        for name, status in self.keys.items():
            if status == KeyStatus.ACTIVE:
                return name
        raise ConfigurationError(
            "no active key found in keyring configuration", stage="config"
        )

    def available_keys(self) -> list[str]:
        """Key names that may be used to decrypt (all but revoked)."""
        return sorted(
            name for name, status in self.keys.items()
            if status != KeyStatus.REVOKED
        )


class EncryptionSettings(BaseModel):
    """Validated encryption configuration. At most one provider may be set."""

    fixed_key: Optional[FixedKeyConfig] = None
    keyring: Optional[KeyringConfig] = None

    model_config = ConfigDict(hide_input_in_errors=True)

    def configured_providers(self) -> list[str]:
        providers = []
        if self.fixed_key is not None:
            providers.append(FIXED_KEY_PROVIDER)
        if self.keyring is not None:
            providers.append(KEYRING_PROVIDER)
        return providers

    def active_provider(self) -> str:
        """Return which provider is configured.

        Raises:
            NoProviderError: If no provider section is present.
            AmbiguousProviderError: If more than one is present.
        """
        providers = self.configured_providers()
        if not providers:
            raise NoProviderError(
                "no encryption provider configured", stage="config"
            )
        if len(providers) > 1:
            raise AmbiguousProviderError(
                "multiple encryption providers configured: "
                f"{', '.join(providers)}",
                stage="config",
            )
        return providers[0]

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------

    @classmethod
    def default(cls) -> "EncryptionSettings":
        """Keyring provider with a single self-provisioning master key."""
        return cls(
            keyring=KeyringConfig(
                service=DEFAULT_KEYRING_SERVICE,
                keys={DEFAULT_KEY_NAME: KeyStatus.ACTIVE},
            )
        )

    @classmethod
    def from_mapping(cls, data: dict) -> "EncryptionSettings":
        """Validate a parsed settings mapping.

        Accepts the settings object itself or an app config holding it
        under ``encryptionSettings``.

        Raises:
            InvalidConfigError: If the mapping does not validate.
        """
        if not isinstance(data, dict):
            raise InvalidConfigError(
                "encryption settings must be a JSON object", stage="config"
            )
        section = data.get(SETTINGS_SECTION, data)
        try:
            return cls.model_validate(section)
        except ValidationError as err:
            raise InvalidConfigError(
                f"invalid encryption settings: {err}", stage="config"
            ) from err

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "EncryptionSettings":
        """Load settings from a JSON file.

        Raises:
            InvalidConfigError: If the file cannot be read or parsed.
        """
        path = Path(path)
        try:
            raw = path.read_bytes()
        except OSError as err:
            raise InvalidConfigError(
                f"failed to read config file {path}: {err.strerror}",
                stage="config",
            ) from err
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as err:
            raise InvalidConfigError(
                f"failed to parse config file {path}: {err}", stage="config"
            ) from err
        settings = cls.from_mapping(data)
        logger.debug(
            "Loaded encryption settings from %s (providers: %s)",
            path, settings.configured_providers(),
        )
        return settings

    @classmethod
    def from_env(cls) -> "EncryptionSettings":
        """Create settings from FAMSTACK_* environment variables.

        Sections whose variables are unset are left out, so an environment
        with nothing set yields settings with no provider. A service name
        without a key list gets the default single active key.
        """
        data: dict = {}
        fixed = os.environ.get(FIXED_KEY_ENV)
        if fixed is not None:
            data["fixed_key"] = {"value": fixed}
        service = os.environ.get(KEYRING_SERVICE_ENV)
        raw_keys = os.environ.get(KEYRING_KEYS_ENV)
        if service is not None or raw_keys is not None:
            if raw_keys is not None:
                keys = parse_key_statuses(raw_keys)
            else:
                keys = {DEFAULT_KEY_NAME: KeyStatus.ACTIVE.value}
            data["keyring"] = {
                "service": DEFAULT_KEYRING_SERVICE if service is None else service,
                "keys": keys,
            }
        return cls.from_mapping(data)


def parse_key_statuses(raw: str) -> dict[str, str]:
    """Parse ``name=status,name=status`` into a mapping.

    Raises:
        InvalidConfigError: If an entry is not ``name=status``.
    """
    keys: dict[str, str] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        name, sep, status = item.partition("=")
        name, status = name.strip(), status.strip()
        if not sep or not name or not status:
            raise InvalidConfigError(
                f"{KEYRING_KEYS_ENV} entries must look like name=status, "
                f"got {item!r}",
                stage="config",
            )
        keys[name] = status
    return keys


def load_settings(path: Union[str, Path, None] = None) -> EncryptionSettings:
    """Resolve settings: explicit path, FAMSTACK_ENCRYPTION_CONFIG,
    environment variables, then built-in defaults."""
    path = path or os.environ.get(CONFIG_PATH_ENV)
    if path:
        return EncryptionSettings.from_file(path)
    settings = EncryptionSettings.from_env()
    if settings.configured_providers():
        return settings
    logger.debug("No encryption settings in environment, using defaults")
    return EncryptionSettings.default()
