"""Script vocabulary and hashing helpers shared by the Sensible codecs.

Only the handful of opcodes the token layouts rely on are defined here; the
package never interprets arbitrary script.
"""

from __future__ import annotations

import hashlib

OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_RETURN = 0x6A

SENSIBLE_FLAG = b"sensible"
ORACLESV_FLAG = b"oraclesv"
SENSIBLE_FLAGS = (SENSIBLE_FLAG, ORACLESV_FLAG)

MAX_PUSH_DATA = 520


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def ripemd160(data: bytes) -> bytes:
    return hashlib.new("ripemd160", data).digest()


def hash160(data: bytes) -> bytes:
    """Return RIPEMD-160(SHA-256(data)), the 20-byte script/code digest."""

    return ripemd160(sha256(bytes(data)))


def varint_len(n: int) -> int:
    """Return the byte length of the canonical compact-size encoding of ``n``."""

    if n < 0:
        raise ValueError("varint value must be non-negative")
    if n < 0xFD:
        return 1
    if n <= 0xFFFF:
        return 3
    if n <= 0xFFFFFFFF:
        return 5
    return 9


def ser_compact_size(n: int) -> bytes:
    """Serialize an integer as a Bitcoin compact size."""

    if n < 0:
        raise ValueError("compact size must be non-negative")
    if n < 0xFD:
        return bytes([n])
    elif n <= 0xFFFF:
        return b"\xfd" + n.to_bytes(2, "little")
    elif n <= 0xFFFFFFFF:
        return b"\xfe" + n.to_bytes(4, "little")
    else:
        return b"\xff" + n.to_bytes(8, "little")


def push_data(data: bytes) -> bytes:
    """Return the minimal script push for ``data``."""

    length = len(data)
    if length < OP_PUSHDATA1:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= MAX_PUSH_DATA:
        return bytes([OP_PUSHDATA2]) + length.to_bytes(2, "little") + data
    raise ValueError(f"push data of {length} bytes exceeds {MAX_PUSH_DATA} byte limit")


def has_sensible_flag(script: bytes) -> bool:
    """Return True when ``script`` ends with one of the Sensible protocol flags."""

    return bytes(script[-8:]) in SENSIBLE_FLAGS
