"""
Key custody backends.

A keystore holds base64-encoded key material under ``(service, name)``.
The OS keyring (via the ``keyring`` library) is the production backend;
``MemoryKeyStore`` keeps values in process memory for tests and
single-process tooling.

Concurrency Note:
    Keystores offer plain get/set, not compare-and-set. Two processes that
    provision the same brand-new key name at the same moment can each store
    a different key, and the last write wins. Provision new key names from
    a single process (or under an external lock) before rolling them out.
"""
import logging
import threading
from typing import Optional, Protocol, runtime_checkable

import keyring
from keyring.errors import KeyringError

from .conf import LOGGER_NAME
from .exceptions import KeyStoreError

logger = logging.getLogger(LOGGER_NAME)


@runtime_checkable
class KeyStore(Protocol):
    """Custody capability consumed by the keyring provider."""

    def get(self, service: str, name: str) -> Optional[str]:
        """Return the stored value, or None when nothing is stored."""
        ...

    def set(self, service: str, name: str, value: str) -> None:
        """Store ``value``; raise KeyStoreError on failure."""
        ...


class SystemKeyStore:
    """OS secret store (Secret Service, macOS Keychain, Windows Credential
    Locker) through whichever ``keyring`` backend is active.

    Calls are bounded only by the timeouts of the backend itself.
    """

    def get(self, service: str, name: str) -> Optional[str]:
        try:
            return keyring.get_password(service, name)
        except KeyringError as err:
            raise KeyStoreError(
                f"failed to retrieve key from keyring: {err}",
                key_id=name,
                stage="keystore-get",
            ) from err

    def set(self, service: str, name: str, value: str) -> None:
        try:
            keyring.set_password(service, name, value)
        except KeyringError as err:
            raise KeyStoreError(
                f"failed to store key in keyring: {err}",
                key_id=name,
                stage="keystore-set",
            ) from err

    def __repr__(self) -> str:
        return f"<SystemKeyStore backend={keyring.get_keyring().__class__.__name__}>"


class MemoryKeyStore:
    """In-process keystore. Values are lost when the process exits."""

    def __init__(self, initial: Optional[dict[tuple[str, str], str]] = None):
        self._values: dict[tuple[str, str], str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, service: str, name: str) -> Optional[str]:
        with self._lock:
            return self._values.get((service, name))

    def set(self, service: str, name: str, value: str) -> None:
        with self._lock:
            self._values[(service, name)] = value

    def __contains__(self, item: object) -> bool:
        return item in self._values

    def __len__(self) -> int:
        return len(self._values)
