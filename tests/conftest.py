import pytest

from famstack_encryption import (
    EncryptionService,
    EncryptionSettings,
    FixedKeyConfig,
    KeyringConfig,
    MemoryKeyStore,
)

FIXED_HEX = "abcdef0123456789abcdef0123456789abcdef0123456789abcdef0123456789"
OTHER_HEX = "fedcba9876543210fedcba9876543210fedcba9876543210fedcba9876543210"
SERVICE = "famstack-test"


@pytest.fixture
def fixed_settings():
    return EncryptionSettings(fixed_key=FixedKeyConfig(value=FIXED_HEX))


@pytest.fixture
def fixed_service(fixed_settings):
    return EncryptionService(fixed_settings)


@pytest.fixture
def keystore():
    """Fresh in-memory custody backend."""
    return MemoryKeyStore()


@pytest.fixture
def keyring_config():
    return KeyringConfig(
        service=SERVICE,
        keys={"key-2024-01": "deprecated", "key-2024-06": "active"},
    )


@pytest.fixture
def keyring_service(keyring_config, keystore):
    return EncryptionService(
        EncryptionSettings(keyring=keyring_config), keystore=keystore
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Remove FAMSTACK_* variables so tests see a blank environment."""
    for name in (
        "FAMSTACK_FIXED_KEY_VALUE",
        "FAMSTACK_KEYRING_SERVICE",
        "FAMSTACK_KEYRING_KEYS",
        "FAMSTACK_ENCRYPTION_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
