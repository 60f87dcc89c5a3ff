from __future__ import annotations

from typing import Optional


class StorageError(Exception):
    """Base class for every failure raised by filestore and vault."""
    pass


class InvalidTarget(StorageError, ValueError):
    """Raised when the backing path names a directory."""
    pass


class IOFailure(StorageError, OSError):
    """Raised when the backing file cannot be read or written."""
    pass


class EncodingFailed(IOFailure):
    """Raised when a stored value cannot be serialized."""
    pass


class CorruptedData(StorageError):
    """Raised when snapshot bytes are not a valid encoded value graph."""
    pass


class DeserializationRejected(StorageError):
    """Raised when decoding meets a type outside the allow-list."""

    def __init__(self, descriptor: Optional[str]):
        self.descriptor = descriptor
        super().__init__(f"Type not allowed for deserialization: {descriptor}")


class EmptyAllowList(StorageError):
    """Raised when a decode is attempted with no permitted types configured."""

    def __init__(self) -> None:
        super().__init__("No permitted types configured; refusing to deserialize")


class DecryptionFailed(StorageError):
    """
    Raised when a ciphertext cannot be turned back into a value.

    Wrong password, corrupted ciphertext and undecodable payloads all
    collapse into this one kind with the same message.
    """

    def __init__(self) -> None:
        super().__init__("Decryption failed. Is the password correct?")
