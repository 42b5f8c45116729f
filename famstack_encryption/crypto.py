"""
Crypto Core — AES-256-GCM sealing and the ciphertext envelope codec.

Envelope wire format (stable across versions):

    <key_id>:<base64(nonce 12B || ciphertext || GCM tag 16B)>

``key_id`` is plain metadata naming the key; it is never encrypted.
Base64 is the standard, padded alphabet.

Security Note:
    Never log plaintext, ciphertext or key bytes.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import re
import base64
import binascii
import secrets
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import (
    AuthenticationFailedError,
    ConfigurationError,
    MalformedEnvelopeError,
    TruncatedCiphertextError,
)

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16
KEY_LENGTH = 32  # AES-256

ENVELOPE_SEPARATOR = ":"
KEY_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def generate_key() -> bytes:
    """Return 32 cryptographically random bytes suitable as an AES-256 key."""
    return secrets.token_bytes(KEY_LENGTH)


def generate_key_hex() -> str:
    """Generate a random key and return it hex encoded (fixed key config format)."""
    return generate_key().hex()


def is_valid_key_id(key_id: str) -> bool:
    return KEY_ID_PATTERN.fullmatch(key_id) is not None


def _cipher(key: bytes, key_id: Optional[str]) -> AESGCM:
    try:
        return AESGCM(key)
    except ValueError as err:
        # only reachable with a key of the wrong size
        raise ConfigurationError(
            f"failed to create cipher: {err}", key_id=key_id, stage="cipher"
        ) from err


# ---------------------------------------------------------------------------
# AEAD
# ---------------------------------------------------------------------------

def seal(key: bytes, plaintext: bytes, key_id: Optional[str] = None) -> bytes:
    """Encrypt plaintext under AES-256-GCM with a fresh random nonce.

    Format: [nonce 12B][encrypted_payload + GCM_tag 16B]

    Args:
        key: Raw 32-byte key.
        plaintext: Data to encrypt.
        key_id: Identifier of ``key``, used only for error context.

    Returns:
        nonce || ciphertext bytes.
    """
    cipher = _cipher(key, key_id)
    nonce = os.urandom(NONCE_SIZE)
    return nonce + cipher.encrypt(nonce, plaintext, None)


def open_sealed(key: bytes, sealed: bytes, key_id: Optional[str] = None) -> bytes:
    """Decrypt bytes produced by :func:`seal`.

    Raises:
        TruncatedCiphertextError: If ``sealed`` cannot hold a nonce.
        AuthenticationFailedError: If the tag does not verify, including
            payloads too short to carry a tag.
    """
    if len(sealed) < NONCE_SIZE:
        raise TruncatedCiphertextError(
            f"ciphertext too short: {len(sealed)} bytes (minimum {NONCE_SIZE})",
            key_id=key_id,
            stage="decrypt",
        )
    cipher = _cipher(key, key_id)
    nonce = sealed[:NONCE_SIZE]
    ct = sealed[NONCE_SIZE:]
    try:
        return cipher.decrypt(nonce, ct, None)
    except InvalidTag:
        raise AuthenticationFailedError(
            "decryption failed: message authentication failed",
            key_id=key_id,
            stage="decrypt",
        ) from None


# ---------------------------------------------------------------------------
# Envelope codec
# ---------------------------------------------------------------------------

def encode_envelope(key_id: str, sealed: bytes) -> str:
    """Build ``key_id:base64(sealed)``."""
    encoded = base64.b64encode(sealed).decode("ascii")
    return f"{key_id}{ENVELOPE_SEPARATOR}{encoded}"


def split_envelope(envelope: str) -> tuple[str, str]:
    """Split an envelope on its first separator into (key_id, encoded payload).

    Raises:
        MalformedEnvelopeError: If there is no separator.
    """
    key_id, sep, encoded = envelope.partition(ENVELOPE_SEPARATOR)
    if not sep:
        raise MalformedEnvelopeError(
            "invalid ciphertext format: missing key identifier",
            stage="parse",
        )
    return key_id, encoded


def decode_payload(encoded: str, key_id: Optional[str] = None) -> bytes:
    """Strictly decode the standard base64 part of an envelope."""
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as err:
        raise MalformedEnvelopeError(
            f"failed to decode base64: {err}", key_id=key_id, stage="decode"
        ) from err
