"""
FamStack Encryption key management CLI.

Usage:
    famstack-encryption status [--json]
    famstack-encryption export-key [--name KEY]
    famstack-encryption generate-key
    famstack-encryption --config /etc/famstack/config.json status
"""
import sys
import argparse
import logging
from typing import Optional, Sequence

import orjson

from .conf import FIXED_KEY_ENV, LOGGER_NAME, SETTINGS_SECTION
from .config import FIXED_KEY_PROVIDER, KEYRING_PROVIDER, EncryptionSettings, load_settings
from .crypto import generate_key_hex
from .exceptions import EncryptionError
from .keystore import KeyStore
from .providers import KeyringProvider
from .service import EncryptionService

logger = logging.getLogger(LOGGER_NAME)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="famstack-encryption", description="Encryption key management"
    )
    parser.add_argument(
        "--config", help="JSON config file holding encryption settings"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    status = subparsers.add_parser("status", help="Show encryption provider status")
    status.add_argument("--json", action="store_true", help="Print status as JSON")

    export = subparsers.add_parser(
        "export-key", help="Export the current master key for backup"
    )
    export.add_argument(
        "--name", help="Keyring key to export (default: the active key)"
    )

    subparsers.add_parser(
        "generate-key", help="Generate a new fixed key for development"
    )
    return parser


def _status(settings: EncryptionSettings, as_json: bool) -> int:
    provider = settings.active_provider()
    info: dict = {"provider": provider}
    if provider == KEYRING_PROVIDER:
        info["service"] = settings.keyring.service
        info["keys"] = {
            name: status.value for name, status in settings.keyring.keys.items()
        }
    if as_json:
        print(orjson.dumps(info, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS).decode())
        return 0
    print(f"Active Provider: {provider}")
    if provider == KEYRING_PROVIDER:
        print(f"   Service: {info['service']}")
        print("   Keys:")
        for name, status in sorted(info["keys"].items()):
            print(f"     {name} ({status})")
    elif provider == FIXED_KEY_PROVIDER:
        print("   Using fixed key (development only)")
    return 0


def _export_key(
    settings: EncryptionSettings, name: Optional[str], keystore: Optional[KeyStore]
) -> int:
    service = EncryptionService(settings, keystore=keystore)
    if name:
        if not isinstance(service.provider, KeyringProvider):
            print("--name is only supported with the keyring provider", file=sys.stderr)
            return 2
        key = service.provider.export_key(name)
    else:
        key = service.export_active_key()
    print(f"Master Key (SAVE SECURELY): {key}")
    print("Anyone with this key can decrypt your data!")
    print("Store this in a secure password manager or safe location")
    return 0


def _generate_key() -> int:
    key_hex = generate_key_hex()
    snippet = {SETTINGS_SECTION: {"fixed_key": {"value": key_hex}}}
    print("Generated Fixed Key:")
    print(f"   {key_hex}")
    print()
    print("Config Example:")
    print(orjson.dumps(snippet, option=orjson.OPT_INDENT_2).decode())
    print()
    print("Or set environment variable:")
    print(f"   export {FIXED_KEY_ENV}={key_hex}")
    return 0


def main(
    argv: Optional[Sequence[str]] = None, keystore: Optional[KeyStore] = None
) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    if args.command == "generate-key":
        return _generate_key()
    try:
        settings = load_settings(args.config)
        if args.command == "status":
            return _status(settings, args.json)
        return _export_key(settings, args.name, keystore)
    except EncryptionError as err:
        logger.debug("Command %s failed at stage %s", args.command, err.stage)
        print(f"Error: {err}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
