"""
Allow-list gate and codec tests.

Verifies:
- check_type verdicts (scalars, arrays, permitted, rejected, undecided)
- TypeGate set semantics
- decode consults the gate for nested values, not only the outer container
- empty allow-list fails before decoding
"""

import pathlib
import pickle
from dataclasses import dataclass, field
from enum import Enum
from typing import List

import pytest

from filestore.codec import decode, decode_entries, encode
from filestore.errors import (
    CorruptedData,
    DeserializationRejected,
    EmptyAllowList,
    EncodingFailed,
)
from filestore.gate import (
    STRUCTURAL_TYPES,
    FilterStatus,
    TypeGate,
    check_type,
    type_descriptor,
)
from filestore.models import EncryptedBlob


@dataclass
class Sample:
    name: str
    score: int


@dataclass
class Holder:
    label: str
    items: List[Sample] = field(default_factory=list)


class Color(Enum):
    RED = 1
    BLUE = 2


class TestCheckType:
    """Pure filter function."""

    def test_scalars_always_allowed(self):
        for t in (int, str, bytes, float, complex, bool, tuple, bytearray):
            assert check_type(type_descriptor(t), frozenset()) == FilterStatus.ALLOWED

    def test_arrays_always_allowed(self):
        assert check_type("array.array", frozenset()) == FilterStatus.ALLOWED

    def test_permitted_descriptor_allowed(self):
        d = type_descriptor(Sample)
        assert check_type(d, {d}) == FilterStatus.ALLOWED

    def test_unknown_descriptor_rejected(self):
        assert check_type("os.system", {"builtins.dict"}) == FilterStatus.REJECTED

    def test_missing_descriptor_undecided(self):
        assert check_type(None, {"builtins.dict"}) == FilterStatus.UNDECIDED
        assert check_type("", {"builtins.dict"}) == FilterStatus.UNDECIDED

    def test_descriptor_format(self):
        assert type_descriptor(dict) == "builtins.dict"
        assert type_descriptor(Sample).endswith(".Sample")
        assert type_descriptor("  pkg.Mod  ") == "pkg.Mod"

    def test_descriptor_rejects_bad_input(self):
        with pytest.raises(TypeError):
            type_descriptor(42)
        with pytest.raises(ValueError):
            type_descriptor("   ")


class TestTypeGate:
    """Mutable permitted set."""

    def test_allow_is_idempotent(self):
        gate = TypeGate()
        gate.allow(Sample, Sample, type_descriptor(Sample))
        assert len(gate) == 1
        assert Sample in gate

    def test_disallow_removes_and_ignores_absent(self):
        gate = TypeGate([Sample, Holder])
        gate.disallow(Sample, Color)
        assert Sample not in gate
        assert Holder in gate
        assert gate.check(Sample) == FilterStatus.REJECTED

    def test_order_insensitive(self):
        a = TypeGate([Sample, Holder])
        b = TypeGate([Holder, Sample])
        assert a.permitted == b.permitted

    def test_permitted_is_a_snapshot(self):
        gate = TypeGate([Sample])
        snap = gate.permitted
        gate.allow(Holder)
        assert type_descriptor(Holder) not in snap

    def test_structural_types_cover_store_containers(self):
        for t in (dict, list, pathlib.Path, EncryptedBlob):
            assert type_descriptor(t) in STRUCTURAL_TYPES


class TestGatedDecode:
    """Codec with the gate active."""

    def test_round_trip_builtin_shapes(self):
        value = {
            "s": "text",
            "b": b"\x00\x01",
            "l": [1, 2.5, None],
            "t": (1, "two"),
            "m": {"nested": {"deep": [b"x"]}},
            "empty_l": [],
            "empty_m": {},
            "set": {1, 2},
        }
        assert decode(encode(value), STRUCTURAL_TYPES) == value

    def test_records_need_permission(self):
        data = encode({"a": Sample("x", 1)})
        with pytest.raises(DeserializationRejected) as exc:
            decode(data, STRUCTURAL_TYPES)
        assert exc.value.descriptor == type_descriptor(Sample)

        permitted = STRUCTURAL_TYPES | {type_descriptor(Sample)}
        assert decode(data, permitted) == {"a": Sample("x", 1)}

    def test_nested_type_is_checked(self):
        """Outer record allowed, inner record not: whole decode fails."""
        data = encode({"h": Holder("outer", [Sample("inner", 2)])})
        permitted = STRUCTURAL_TYPES | {type_descriptor(Holder)}
        with pytest.raises(DeserializationRejected) as exc:
            decode(data, permitted)
        assert exc.value.descriptor == type_descriptor(Sample)

    def test_enum_needs_permission(self):
        data = encode([Color.RED])
        with pytest.raises(DeserializationRejected):
            decode(data, STRUCTURAL_TYPES)
        assert decode(data, STRUCTURAL_TYPES | {type_descriptor(Color)}) == [Color.RED]

    def test_code_execution_gadget_rejected(self):
        class Exploit:
            def __reduce__(self):
                import os
                return (os.getcwd, ())

        data = pickle.dumps(Exploit())
        with pytest.raises(DeserializationRejected):
            decode(data, STRUCTURAL_TYPES)

    def test_embedded_blob_round_trip(self):
        blob = EncryptedBlob(ciphertext=b"\x10" * 32)
        assert decode(encode({"k": [blob]}), STRUCTURAL_TYPES) == {"k": [blob]}

    def test_empty_allow_list_fails_fast(self):
        with pytest.raises(EmptyAllowList):
            decode(b"definitely not a pickle", frozenset())

    def test_malformed_bytes(self):
        with pytest.raises(CorruptedData):
            decode(b"\x80\x05garbage", STRUCTURAL_TYPES)
        with pytest.raises(CorruptedData):
            decode(b"", STRUCTURAL_TYPES)

    def test_decode_entries_requires_str_keyed_dict(self):
        with pytest.raises(CorruptedData):
            decode_entries(encode([1, 2]), STRUCTURAL_TYPES)
        with pytest.raises(CorruptedData):
            decode_entries(encode({1: "x"}), STRUCTURAL_TYPES)
        assert decode_entries(encode({}), STRUCTURAL_TYPES) == {}

    def test_unencodable_value(self):
        with pytest.raises(EncodingFailed):
            encode({"f": lambda: None})
