"""
Type allow-list gate for deserialization.

Loading pickled bytes can reconstruct arbitrary objects, so the gate is a
positive (default deny) boundary: a global is only resolved when its type
descriptor is permitted, or when it is a scalar or array type.

Descriptors are the "<module>.<qualname>" strings pickle records for a class.
"""

from __future__ import annotations

import pathlib
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Set, Union

from filestore.models import EncryptedBlob

TypeLike = Union[type, str]


class FilterStatus(str, Enum):
    """Verdict of the allow-list for a single type descriptor."""
    ALLOWED = "allowed"
    REJECTED = "rejected"
    UNDECIDED = "undecided"


def type_descriptor(t: TypeLike) -> str:
    """Return the allow-list descriptor for a class or pass a descriptor string through."""
    if isinstance(t, str):
        descriptor = t.strip()
        if not descriptor:
            raise ValueError("type descriptor must not be empty")
        return descriptor
    if isinstance(t, type):
        return f"{t.__module__}.{t.__qualname__}"
    raise TypeError(f"expected a class or a descriptor string, got {type(t).__name__}")


# Scalars and arrays are never a code-execution vector on their own
SCALAR_TYPES: FrozenSet[str] = frozenset(
    type_descriptor(t)
    for t in (bool, int, float, complex, str, bytes, bytearray, tuple, type(None), range, slice)
)
ARRAY_TYPES: FrozenSet[str] = frozenset({
    "array.array",
    "array._array_reconstructor",
})

# Types a store needs to reload its own snapshot
STRUCTURAL_TYPES: FrozenSet[str] = frozenset(
    type_descriptor(t)
    for t in (
        dict,
        list,
        set,
        frozenset,
        pathlib.PurePath,
        pathlib.PurePosixPath,
        pathlib.PureWindowsPath,
        pathlib.Path,
        pathlib.PosixPath,
        pathlib.WindowsPath,
        EncryptedBlob,
    )
)


def check_type(descriptor: Optional[str], permitted: Iterable[str]) -> FilterStatus:
    """
    Decide whether a type may be reconstructed.

    Args:
        descriptor: "<module>.<qualname>" of the type being resolved
        permitted: current permitted descriptors

    Returns:
        UNDECIDED when there is no descriptor to judge, ALLOWED for scalars,
        arrays and permitted types, REJECTED for everything else.
    """
    if not descriptor:
        return FilterStatus.UNDECIDED
    if descriptor in SCALAR_TYPES or descriptor in ARRAY_TYPES:
        return FilterStatus.ALLOWED
    if descriptor in permitted:
        return FilterStatus.ALLOWED
    return FilterStatus.REJECTED


class TypeGate:
    """
    Mutable set of permitted type descriptors.

    Each store owns its own gate; the decoder only ever sees a frozen
    snapshot taken through `permitted`.
    """

    def __init__(self, types: Iterable[TypeLike] = ()):
        self._permitted: Set[str] = set()
        self.allow(*types)

    def allow(self, *types: TypeLike) -> None:
        for t in types:
            self._permitted.add(type_descriptor(t))

    def disallow(self, *types: TypeLike) -> None:
        for t in types:
            self._permitted.discard(type_descriptor(t))

    @property
    def permitted(self) -> FrozenSet[str]:
        return frozenset(self._permitted)

    def check(self, t: Optional[TypeLike]) -> FilterStatus:
        descriptor = type_descriptor(t) if t is not None else None
        return check_type(descriptor, self._permitted)

    def __contains__(self, t: object) -> bool:
        if not isinstance(t, (type, str)):
            return False
        return type_descriptor(t) in self._permitted

    def __len__(self) -> int:
        return len(self._permitted)

    def __repr__(self) -> str:
        return f"TypeGate({sorted(self._permitted)!r})"
