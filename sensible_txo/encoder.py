"""Builders producing Sensible locking scripts.

These are the inverse of :mod:`sensible_txo.decoder` and exist for fixtures,
tooling, and experiments. They do not produce spendable contracts: the
contract code preceding the protocol data is whatever ``prefix`` the caller
supplies, zero-padded up to the decoder's minimum script length.
"""

from __future__ import annotations

from .decoder import (
    ADDRESS_LEN,
    FT_LAYOUTS,
    META_TX_ID_LEN,
    MIN_SCRIPT_LEN,
    NAME_LEN,
    NFT_GENESIS_ID_LEN,
    PROTO_TYPE_FT,
    PROTO_TYPE_UNIQUE,
    SYMBOL_LEN,
    UNIQUE_GENESIS_ID_LEN,
    FTLayout,
)
from .script import OP_PUSHDATA1, OP_RETURN, SENSIBLE_FLAG, SENSIBLE_FLAGS, ser_compact_size

FT_V1_RESERVED_LEN = 20
FT_V2_RESERVED_LEN = 8
NFT_ISSUE_RESERVED_LEN = 8

_U32_MAX = 2**32 - 1


class ScriptEncodingError(ValueError):
    """Raised when a Sensible script cannot be built from the given fields."""


def _layout_for(version: int) -> FTLayout:
    for layout in FT_LAYOUTS:
        if layout.version == version:
            return layout
    raise ScriptEncodingError(f"unknown FT layout version: {version}")


def _fixed(value: bytes, width: int, field_name: str) -> bytes:
    value = bytes(value)
    if len(value) != width:
        raise ScriptEncodingError(f"{field_name} must be {width} bytes, got {len(value)}")
    return value


def _padded_text(value: str, width: int, field_name: str) -> bytes:
    raw = value.encode("utf-8")
    if len(raw) > width:
        raise ScriptEncodingError(f"{field_name} must encode to at most {width} bytes")
    return raw.ljust(width, b"\x00")


def _uint(value: int, width: int, field_name: str) -> bytes:
    limit = 2 ** (8 * width) - 1
    if not 0 <= value <= limit:
        raise ScriptEncodingError(f"{field_name} must be between 0 and {limit}")
    return value.to_bytes(width, "little")


def _flag(flag: bytes) -> bytes:
    if bytes(flag) not in SENSIBLE_FLAGS:
        raise ScriptEncodingError(f"unsupported protocol flag: {flag!r}")
    return bytes(flag)


def _with_prefix(prefix: bytes, data: bytes, pad: bool) -> bytes:
    code = bytes(prefix)
    if pad:
        shortfall = MIN_SCRIPT_LEN - len(code) - len(data)
        if shortfall > 0:
            code += bytes(shortfall)
    return code + data


def build_ft_script(
    version: int,
    *,
    address_pkh: bytes,
    amount: int,
    genesis_id: bytes,
    name: str = "",
    symbol: str = "",
    decimal: int = 0,
    is_genesis: int = 0,
    proto_type: int = PROTO_TYPE_FT,
    flag: bytes = SENSIBLE_FLAG,
    prefix: bytes = b"",
    pad: bool = True,
) -> bytes:
    """Build a fungible-token locking script for layout ``version`` (1-5).

    For version 5 ``genesis_id`` is the full 76-byte region
    (genesis hash, rabin public key hash array hash, sensible id); the
    decoder reports its hash160 as the genesis id.
    """

    layout = _layout_for(version)
    genesis = _fixed(genesis_id, layout.genesis_id_len, "genesis_id")
    tail = (
        _uint(is_genesis, 1, "is_genesis")
        + _uint(decimal, 1, "decimal")
        + _fixed(address_pkh, ADDRESS_LEN, "address_pkh")
        + _uint(amount, 8, "amount")
    )

    if layout.version == 2:
        if name or symbol:
            raise ScriptEncodingError("FT v2 layout has no room for name or symbol")
        fields = bytes(FT_V2_RESERVED_LEN) + tail
    else:
        fields = (
            _padded_text(name, NAME_LEN, "name")
            + _padded_text(symbol, SYMBOL_LEN, "symbol")
            + tail
        )
        if layout.version == 1:
            fields = bytes(FT_V1_RESERVED_LEN) + fields

    body = fields + genesis + _uint(proto_type, 4, "proto_type") + _flag(flag)
    data = bytes([OP_RETURN, OP_PUSHDATA1, layout.push_len]) + body
    return _with_prefix(prefix, data, pad)


def build_unique_script(
    *,
    genesis_id: bytes,
    custom_data: bytes = b"",
    reserved: int = 0,
    proto_type: int = PROTO_TYPE_UNIQUE,
    flag: bytes = SENSIBLE_FLAG,
    prefix: bytes = b"",
    pad: bool = True,
) -> bytes:
    """Build the "unique" companion output of an FT genesis."""

    custom_data = bytes(custom_data)
    if len(custom_data) > _U32_MAX:
        raise ScriptEncodingError("custom_data is too large")
    data = (
        bytes([OP_RETURN, OP_PUSHDATA1])
        + ser_compact_size(len(custom_data))
        + custom_data
        + _uint(len(custom_data), 4, "custom_data_size")
        + _uint(reserved, 1, "reserved")
        + _fixed(genesis_id, UNIQUE_GENESIS_ID_LEN, "genesis_id")
        + _uint(proto_type, 4, "proto_type")
        + _flag(flag)
    )
    return _with_prefix(prefix, data, pad)


def _nft_data(genesis_id: bytes, payload: bytes) -> bytes:
    return (
        bytes([OP_RETURN, NFT_GENESIS_ID_LEN])
        + _fixed(genesis_id, NFT_GENESIS_ID_LEN, "genesis_id")
        + bytes([len(payload)])
        + payload
    )


def build_nft_issue_script(
    *,
    genesis_id: bytes,
    address_pkh: bytes,
    token_idx: int,
    issue_data: bytes = bytes(NFT_ISSUE_RESERVED_LEN),
    flag: int = 0,
    prefix: bytes = b"",
    pad: bool = True,
) -> bytes:
    """Build an NFT issuance output.

    ``issue_data`` fills the 8 bytes between the address and the token index,
    which the decoder does not interpret.
    """

    if flag not in (0, 1):
        raise ScriptEncodingError("NFT issue flag must be 0 or 1")
    payload = (
        _fixed(address_pkh, ADDRESS_LEN, "address_pkh")
        + _fixed(issue_data, NFT_ISSUE_RESERVED_LEN, "issue_data")
        + _uint(token_idx, 8, "token_idx")
        + bytes([flag])
    )
    return _with_prefix(prefix, _nft_data(genesis_id, payload), pad)


def build_nft_transfer_script(
    *,
    genesis_id: bytes,
    address_pkh: bytes,
    token_idx: int,
    meta_tx_id: bytes,
    prefix: bytes = b"",
    pad: bool = True,
) -> bytes:
    """Build an NFT transfer output."""

    payload = (
        _fixed(address_pkh, ADDRESS_LEN, "address_pkh")
        + _uint(token_idx, 8, "token_idx")
        + _fixed(meta_tx_id, META_TX_ID_LEN, "meta_tx_id")
        + b"\x01"
    )
    return _with_prefix(prefix, _nft_data(genesis_id, payload), pad)
