"""
Value-level encryption.

A value is encoded with the snapshot codec, then encrypted; the ciphertext
travels inside an EncryptedBlob that can be stored like any other entry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from filestore.codec import decode, encode
from filestore.errors import DecryptionFailed, StorageError
from filestore.gate import STRUCTURAL_TYPES, TypeGate, TypeLike
from filestore.models import EncryptedBlob

from .crypto import decrypt, encrypt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecryptOutcome:
    """Result of try_decrypt_value: either a value or a DecryptionFailed."""
    value: Any = None
    error: Optional[DecryptionFailed] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def encrypt_value(value: Any, password: str) -> EncryptedBlob:
    return EncryptedBlob(ciphertext=encrypt(encode(value), password))


def decrypt_value(blob: EncryptedBlob, password: str, allowed_types: Iterable[TypeLike] = ()) -> Any:
    """
    Decrypt a blob and decode the value inside it.

    The payload is decoded through the allow-list (structural types plus
    allowed_types). A payload that decrypts but does not decode is reported
    exactly like a wrong password.

    Raises:
        DecryptionFailed: wrong password, corrupted ciphertext or payload
    """
    plaintext = decrypt(blob.ciphertext, password)
    gate = TypeGate(STRUCTURAL_TYPES)
    gate.allow(*allowed_types)
    try:
        return decode(plaintext, gate.permitted)
    except StorageError as e:
        logger.debug(f"Decrypted payload failed to decode: {type(e).__name__}")
        raise DecryptionFailed() from e


def try_decrypt_value(
    blob: EncryptedBlob,
    password: str,
    allowed_types: Iterable[TypeLike] = (),
) -> DecryptOutcome:
    """decrypt_value returning a DecryptOutcome instead of raising."""
    try:
        return DecryptOutcome(value=decrypt_value(blob, password, allowed_types))
    except DecryptionFailed as e:
        return DecryptOutcome(error=e)
