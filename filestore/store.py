from __future__ import annotations

import contextlib
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple, Union

from filestore.codec import decode_entries, encode
from filestore.errors import (
    DeserializationRejected,
    InvalidTarget,
    IOFailure,
    StorageError,
)
from filestore.gate import STRUCTURAL_TYPES, TypeGate, TypeLike
from filestore.metrics import StoreMetrics
from filestore.models import EncryptedBlob
from filestore.settings import Settings

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


class FileStore:
    """
    Persistent key-value store backed by a single snapshot file.

    - Entries live in a private dict; the whole dict is the unit of persistence
    - Saves are atomic: temp file in the same directory, then os.replace
    - Loads go through the store's TypeGate and only replace the entries
      once the whole snapshot decoded
    - With autosave, put/remove save before returning; a failing autosave is
      handed to on_exception and the in-memory change is kept

    Usage:
        store = FileStore("state/data.db", allowed_types=[MyRecord])
        store.put("k", MyRecord(...))
        store.get("k")
    """

    def __init__(
        self,
        path: PathLike,
        autosave: bool = True,
        allowed_types: Iterable[TypeLike] = (),
        *,
        fsync: bool = True,
        metrics: Optional[StoreMetrics] = None,
    ):
        self._path = Path(path).expanduser().resolve()
        self._autosave = autosave
        self._fsync = fsync
        self._entries: Dict[str, Any] = {}
        self._gate = TypeGate(STRUCTURAL_TYPES)
        self._gate.allow(*allowed_types)
        self.metrics = metrics if metrics is not None else StoreMetrics()

        if self._path.is_dir():
            raise InvalidTarget(f"FileStore target must not be a directory: {self._path}")

        try:
            empty = not self._path.exists() or self._path.stat().st_size == 0
        except OSError as e:
            raise IOFailure(f"Cannot stat {self._path}: {e}") from e

        if empty:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise IOFailure(f"Cannot create directory {self._path.parent}: {e}") from e
            self.save()
            logger.info(f"FileStore created: {self._path}")
        else:
            self.load()
            logger.info(f"FileStore loaded: {self._path} ({len(self._entries)} entries)")

    @classmethod
    def from_settings(
        cls,
        path: PathLike,
        settings: Optional[Settings] = None,
        allowed_types: Iterable[TypeLike] = (),
    ) -> FileStore:
        """Open a store using environment-driven defaults."""
        s = settings if settings is not None else Settings.load()
        return cls(
            path,
            autosave=s.AUTOSAVE,
            allowed_types=[*s.ALLOW, *allowed_types],
            fsync=s.FSYNC,
        )

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def put(self, key: str, value: Any) -> Any:
        """
        Insert or overwrite an entry.

        Returns:
            The previous value under key, or None
        """
        self._check_key(key)
        previous = self._entries.get(key)
        self._entries[key] = value
        self._autosave_now()
        return previous

    def remove(self, key: str) -> Any:
        """Delete an entry if present. Returns the removed value, or None."""
        previous = self._entries.pop(key, None)
        self._autosave_now()
        return previous

    def get(self, key: str, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def put_encrypted(self, key: str, value: Any, password: str) -> Any:
        """Encrypt value under password and store the resulting EncryptedBlob."""
        from vault.blob import encrypt_value

        return self.put(key, encrypt_value(value, password))

    def get_decrypted(self, key: str, password: str, default: Any = None) -> Any:
        """
        Read an entry, decrypting it when it is an EncryptedBlob.

        Plain entries are returned unchanged. The payload is decoded with this
        store's permitted types.

        Raises:
            DecryptionFailed: wrong password or corrupted blob
        """
        from vault.blob import decrypt_value

        value = self._entries.get(key, default)
        if isinstance(value, EncryptedBlob):
            return decrypt_value(value, password, self._gate.permitted)
        return value

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> None:
        """
        Rewrite the backing file with the current entries.

        Raises:
            EncodingFailed: an entry cannot be serialized (file untouched)
            IOFailure: the snapshot could not be written (file untouched)

        An existing backing file keeps its permission bits; a new one is
        created with mode 0600.
        """
        try:
            data = encode(dict(self._entries))
            self._write_atomic(data)
        except IOFailure:
            self.metrics.save_failed()
            raise
        self.metrics.saved(len(self._entries))
        logger.debug(f"Saved {len(self._entries)} entries to {self._path} ({len(data)} bytes)")

    def load(self) -> None:
        """
        Replace the entries with the contents of the backing file.

        The in-memory entries are left untouched unless the whole snapshot
        decoded successfully.

        Raises:
            IOFailure: the file could not be read
            EmptyAllowList: no permitted types configured
            DeserializationRejected: the snapshot holds a type outside the allow-list
            CorruptedData: the file is not a valid snapshot
        """
        try:
            data = self._path.read_bytes()
        except OSError as e:
            self.metrics.load_failed()
            raise IOFailure(f"Cannot read {self._path}: {e}") from e

        try:
            loaded = decode_entries(data, self._gate.permitted)
        except DeserializationRejected as e:
            self.metrics.load_failed(rejected=True)
            logger.warning(f"Load of {self._path} rejected: {e.descriptor}")
            raise
        except StorageError:
            self.metrics.load_failed()
            raise

        self._entries.clear()
        self._entries.update(loaded)
        self.metrics.loaded(len(self._entries))

    def _write_atomic(self, data: bytes) -> None:
        tmp = None
        try:
            fd, tmp = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                if self._fsync:
                    os.fsync(f.fileno())
            with contextlib.suppress(FileNotFoundError):
                os.chmod(tmp, stat.S_IMODE(self._path.stat().st_mode))
            os.replace(tmp, self._path)
        except OSError as e:
            if tmp is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp)
            raise IOFailure(f"Cannot write {self._path}: {e}") from e

    def _autosave_now(self) -> None:
        if not self._autosave:
            return
        try:
            self.save()
        except StorageError as e:
            self.on_exception(e)

    def on_exception(self, error: Exception) -> None:
        """
        Called when an autosave fails. Default: log it.

        Subclasses override this to route failures elsewhere; put/remove
        still return normally.
        """
        logger.error(f"Autosave of {self._path} failed: {error}", exc_info=error)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def autosave(self) -> bool:
        return self._autosave

    @autosave.setter
    def autosave(self, enabled: bool) -> None:
        self._autosave = bool(enabled)

    def is_autosave(self) -> bool:
        return self._autosave

    def set_autosave(self, enabled: bool) -> None:
        self.autosave = enabled

    def allow(self, *types: TypeLike) -> None:
        self._gate.allow(*types)

    def disallow(self, *types: TypeLike) -> None:
        self._gate.disallow(*types)

    @property
    def allowed_types(self) -> FrozenSet[str]:
        return self._gate.permitted

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def has_key(self, key: str) -> bool:
        return key in self._entries

    def has_value(self, value: Any) -> bool:
        return any(v == value for v in self._entries.values())

    def keys(self) -> List[str]:
        return list(self._entries)

    def values(self) -> List[Any]:
        return list(self._entries.values())

    def items(self) -> List[Tuple[str, Any]]:
        return list(self._entries.items())

    def snapshot(self) -> Dict[str, Any]:
        """Shallow copy of the entries; mutating it does not touch the store."""
        return dict(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __str__(self) -> str:
        lines = [f"FileStore @ {self._path}"]
        for key, value in self._entries.items():
            lines.append(f"{key} :: {value}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"FileStore(path={str(self._path)!r}, entries={len(self._entries)}, autosave={self._autosave})"

    @staticmethod
    def _check_key(key: Any) -> None:
        if not isinstance(key, str):
            raise TypeError(f"FileStore keys must be str, got {type(key).__name__}")


def open_store(
    path: PathLike,
    autosave: bool = True,
    allowed_types: Iterable[TypeLike] = (),
    **kwargs: Any,
) -> FileStore:
    """Open (or create) the store at path."""
    return FileStore(path, autosave=autosave, allowed_types=allowed_types, **kwargs)
