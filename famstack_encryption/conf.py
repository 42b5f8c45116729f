"""Environment variable names and defaults for FamStack Encryption."""

FIXED_KEY_ENV = "FAMSTACK_FIXED_KEY_VALUE"
KEYRING_SERVICE_ENV = "FAMSTACK_KEYRING_SERVICE"
KEYRING_KEYS_ENV = "FAMSTACK_KEYRING_KEYS"
CONFIG_PATH_ENV = "FAMSTACK_ENCRYPTION_CONFIG"

DEFAULT_KEYRING_SERVICE = "famstack"
DEFAULT_KEY_NAME = "famstack-master-key"

# top-level object that wraps encryption settings inside an app config file
SETTINGS_SECTION = "encryptionSettings"

FIXED_KEY_ID = "fixed"

LOGGER_NAME = "famstack.encryption"
