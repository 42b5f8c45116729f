"""
Key Rotation — Re-encryption of stored envelopes onto the active key.

After a new key is marked active (and the old one deprecated), existing
envelopes still name the old key. ``rotate_envelopes`` walks stored records,
re-encrypts those not yet on the active key and hands the new envelope to a
caller-supplied ``store`` callback. The operation is idempotent: records
already on the active key are skipped.

Security Note:
    Plaintext exists in memory only during re-encryption of each record.
    Never log plaintext or ciphertext values.
"""
import logging
from typing import Any, Callable, Iterable

from .conf import LOGGER_NAME
from .exceptions import EncryptionError, KeyStoreError
from .service import EncryptionService

logger = logging.getLogger(LOGGER_NAME)


def rotate_envelopes(
    service: EncryptionService,
    records: Iterable[tuple[Any, str]],
    store: Callable[[Any, str], None],
) -> dict:
    """Re-encrypt every record not already under the active key.

    Args:
        service: Encryption service whose provider knows old and new keys.
        records: ``(record_id, envelope)`` pairs.
        store: Called as ``store(record_id, new_envelope)`` for each
            rotated record.

    Returns:
        Stats dict with keys: total, rotated, skipped, errors.

    Raises:
        KeyStoreError: Custody backend failures abort the run.
    """
    active = service.active_key_id()
    stats = {"total": 0, "rotated": 0, "skipped": 0, "errors": 0}

    logger.info("Starting envelope rotation onto key %s", active)

    for record_id, envelope in records:
        stats["total"] += 1
        try:
            if service.key_id_of(envelope) == active:
                stats["skipped"] += 1
                continue
            new_envelope = service.encrypt(service.decrypt(envelope))
        except KeyStoreError:
            raise
        except EncryptionError as err:
            logger.error(
                "Error rotating record id=%s key=%s: %s",
                record_id, err.key_id, err,
            )
            stats["errors"] += 1
            continue
        store(record_id, new_envelope)
        stats["rotated"] += 1

    logger.info("Envelope rotation complete: %s", stats)
    return stats
