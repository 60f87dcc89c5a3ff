from __future__ import annotations

import io
import logging
import pickle
from typing import AbstractSet, Any, Dict

from filestore import SNAPSHOT_PROTOCOL
from filestore.errors import (
    CorruptedData,
    DeserializationRejected,
    EmptyAllowList,
    EncodingFailed,
    StorageError,
)
from filestore.gate import FilterStatus, check_type

logger = logging.getLogger(__name__)


class GatedUnpickler(pickle.Unpickler):
    """Unpickler that resolves a global only when the allow-list admits it."""

    def __init__(self, file: io.BytesIO, permitted: AbstractSet[str]):
        super().__init__(file)
        self.permitted = frozenset(permitted)

    def find_class(self, module: str, name: str) -> Any:
        descriptor = f"{module}.{name}"
        status = check_type(descriptor, self.permitted)
        if status is not FilterStatus.ALLOWED:
            logger.warning(f"Rejected type during decode: {descriptor} ({status.value})")
            raise DeserializationRejected(descriptor)
        return super().find_class(module, name)


def encode(value: Any) -> bytes:
    """Serialize a value graph to bytes."""
    try:
        return pickle.dumps(value, protocol=SNAPSHOT_PROTOCOL)
    except Exception as e:
        raise EncodingFailed(f"Cannot encode value of type {type(value).__name__}: {e}") from e


def decode(data: bytes, permitted: AbstractSet[str]) -> Any:
    """
    Reconstruct a value graph with the allow-list active.

    Raises:
        EmptyAllowList: permitted is empty (checked before reading any byte)
        DeserializationRejected: a type outside the allow-list was met
        CorruptedData: bytes are not a valid encoding
    """
    if not permitted:
        raise EmptyAllowList()
    try:
        return GatedUnpickler(io.BytesIO(data), permitted).load()
    except StorageError:
        raise
    except Exception as e:
        raise CorruptedData(f"Malformed snapshot ({len(data)} bytes): {e}") from e


def decode_entries(data: bytes, permitted: AbstractSet[str]) -> Dict[str, Any]:
    """Decode a store snapshot; the outer value must be a str-keyed dict."""
    snapshot = decode(data, permitted)
    if not isinstance(snapshot, dict):
        raise CorruptedData(f"Snapshot is a {type(snapshot).__name__}, expected dict")
    bad = [k for k in snapshot if not isinstance(k, str)]
    if bad:
        raise CorruptedData(f"Snapshot has non-string keys: {bad[:3]!r}")
    return snapshot
