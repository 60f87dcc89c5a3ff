from __future__ import annotations

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from filestore.errors import DecryptionFailed

KEY_CHARS = 16  # AES-128


def derive_key(password: str) -> bytes:
    """
    Derive a 128-bit AES key from a password.

    Scheme: legacy-aes128-v1
    - Password doubled until it has at least 16 characters
    - Truncated to its first 16 characters, UTF-8 encoded
    - Passwords agreeing on those 16 characters share a key (kept for
      compatibility with existing ciphertexts)
    """
    if not password:
        raise ValueError("password must not be empty")
    key = password
    while len(key) < KEY_CHARS:
        key += key
    raw = key[:KEY_CHARS].encode("utf-8")
    if len(raw) != KEY_CHARS:
        raise ValueError(
            f"password prefix encodes to {len(raw)} bytes, AES-128 needs {KEY_CHARS}"
        )
    return raw


def _cipher(password: str) -> Cipher:
    return Cipher(algorithms.AES(derive_key(password)), modes.ECB())


def encrypt(data: bytes, password: str) -> bytes:
    """Encrypt with AES-128/ECB/PKCS7 under the derived key. Returns raw ciphertext."""
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(data) + padder.finalize()
    enc = _cipher(password).encryptor()
    return enc.update(padded) + enc.finalize()


def decrypt(ciphertext: bytes, password: str) -> bytes:
    """Decrypt AES-128/ECB/PKCS7. Every failure surfaces as DecryptionFailed."""
    try:
        dec = _cipher(password).decryptor()
        padded = dec.update(ciphertext) + dec.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()
    except Exception as e:
        raise DecryptionFailed() from e
