from __future__ import annotations

import pytest

from sensible_txo.script import (
    OP_PUSHDATA1,
    OP_PUSHDATA2,
    has_sensible_flag,
    hash160,
    push_data,
    ser_compact_size,
    varint_len,
)


def test_hash160_known_vectors() -> None:
    assert hash160(b"").hex() == "b472a266d0bd89c13706a4132ccfb16f7c3b9fcb"
    generator_pubkey = bytes.fromhex(
        "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
    )
    assert hash160(generator_pubkey).hex() == "751e76e8199196d454941c45d1b3a323f1433bd6"


def test_hash160_accepts_memoryview() -> None:
    data = b"sensible" * 10

    assert hash160(memoryview(data)) == hash160(data)
    assert len(hash160(data)) == 20


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, 1),
        (0xFC, 1),
        (0xFD, 3),
        (0xFFFF, 3),
        (0x10000, 5),
        (0xFFFFFFFF, 5),
        (0x100000000, 9),
    ],
)
def test_varint_len_boundaries(value: int, expected: int) -> None:
    assert varint_len(value) == expected
    assert len(ser_compact_size(value)) == expected


def test_varint_len_rejects_negative() -> None:
    with pytest.raises(ValueError):
        varint_len(-1)


def test_ser_compact_size_prefixes() -> None:
    assert ser_compact_size(0xFC) == b"\xfc"
    assert ser_compact_size(0xFD) == b"\xfd\xfd\x00"
    assert ser_compact_size(0x10000) == b"\xfe\x00\x00\x01\x00"


def test_push_data_small_literal() -> None:
    data = b"x" * 10

    assert push_data(data) == b"\x0a" + data


def test_push_data_op_pushdata1() -> None:
    data = b"x" * 100

    encoded = push_data(data)

    assert encoded[:2] == bytes([OP_PUSHDATA1, 100])
    assert len(encoded) == 2 + len(data)


def test_push_data_op_pushdata2() -> None:
    data = b"x" * 300

    encoded = push_data(data)

    assert encoded[0] == OP_PUSHDATA2
    assert encoded[1:3] == len(data).to_bytes(2, "little")
    assert len(encoded) == 1 + 2 + len(data)


def test_push_data_too_large() -> None:
    with pytest.raises(ValueError):
        push_data(b"x" * 521)


@pytest.mark.parametrize(
    "script, expected",
    [
        (b"\x00" * 10 + b"sensible", True),
        (b"\x00" * 10 + b"oraclesv", True),
        (b"sensible", True),
        (b"sensible\x00", False),
        (b"ensible", False),
        (b"", False),
    ],
)
def test_has_sensible_flag(script: bytes, expected: bool) -> None:
    assert has_sensible_flag(script) is expected
