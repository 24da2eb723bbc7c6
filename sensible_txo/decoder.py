"""Decoder mapping Sensible locking scripts back to token metadata.

Every layout is recognised purely from the tail of the script: the protocol
data sits after the contract code, so all offsets below are measured from the
end. The single entry point :func:`decode_sensible_txo` returns ``False`` for
anything it does not recognise and never raises on untrusted bytes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from .model import CodeType, TxoData
from .script import OP_PUSHDATA1, OP_RETURN, has_sensible_flag, hash160, varint_len

logger = logging.getLogger(__name__)

ScriptBytes = Union[bytes, bytearray, memoryview]

MIN_SCRIPT_LEN = 1024

PROTO_HEADER_LEN = 4 + 8  # <type:4><flag:8>
PROTO_TYPE_FT = 1
PROTO_TYPE_UNIQUE = 2

UNIQUE_GENESIS_ID_LEN = 36
UNIQUE_FIXED_LEN = 17  # custom_data_size:4 + reserved:1 + proto header:12

NFT_GENESIS_ID_LEN = 40
NFT_ISSUE_DATA_LEN = 37
NFT_TRANSFER_DATA_LEN = 61

NAME_LEN = 20
SYMBOL_LEN = 10
ADDRESS_LEN = 20
AMOUNT_LEN = 8
TOKEN_IDX_LEN = 8
META_TX_ID_LEN = 32


@dataclass(frozen=True)
class FTLayout:
    """One fungible-token layout version."""

    version: int
    body_len: int
    genesis_id_len: int
    sensible_id_len: int = 0

    @property
    def push_len(self) -> int:
        return self.body_len + self.genesis_id_len

    @property
    def data_len(self) -> int:
        # OP_RETURN + OP_PUSHDATA1 + length byte + pushed data
        return 1 + 1 + 1 + self.push_len

    @property
    def hashes_genesis(self) -> bool:
        return self.sensible_id_len > 0


# Probe order matters: the first matching layout wins.
FT_LAYOUTS = (
    FTLayout(version=5, body_len=72, genesis_id_len=76, sensible_id_len=36),
    FTLayout(version=4, body_len=72, genesis_id_len=36),
    FTLayout(version=3, body_len=72, genesis_id_len=20),
    FTLayout(version=2, body_len=50, genesis_id_len=36),
    FTLayout(version=1, body_len=92, genesis_id_len=20),
)


def _check_script(script_pk: ScriptBytes) -> bytes:
    if not isinstance(script_pk, (bytes, bytearray, memoryview)):
        raise TypeError(f"script must be bytes-like, not {type(script_pk).__name__}")
    return bytes(script_pk)


def _u64_le(script: bytes, offset: int) -> int:
    return int.from_bytes(script[offset : offset + 8], "little")


def _text(raw: bytes) -> str:
    return raw.rstrip(b"\x00").decode("utf-8", errors="replace")


def _match_ft_layout(script: bytes) -> FTLayout | None:
    script_len = len(script)
    for layout in FT_LAYOUTS:
        length_offset = script_len - layout.push_len - 1
        opcode_offset = length_offset - 1
        if opcode_offset < 0:
            continue
        if script[opcode_offset] == OP_PUSHDATA1 and script[length_offset] == layout.push_len:
            return layout
    return None


def decode_ft(script: bytes, txo: TxoData) -> bool:
    """Decode a fungible-token output, probing layouts v5 down to v1."""

    layout = _match_ft_layout(script)
    if layout is None:
        logger.debug("No FT layout matched a %d byte script", len(script))
        return False

    script_len = len(script)
    proto_type_offset = script_len - PROTO_HEADER_LEN
    sensible_offset = proto_type_offset - layout.sensible_id_len
    genesis_offset = proto_type_offset - layout.genesis_id_len

    amount_offset = genesis_offset - AMOUNT_LEN
    address_offset = amount_offset - ADDRESS_LEN
    decimal_offset = address_offset - 1
    symbol_offset = decimal_offset - 1 - SYMBOL_LEN  # skips is_genesis
    name_offset = symbol_offset - NAME_LEN

    txo.code_type = CodeType.FT
    txo.version = layout.version
    txo.decimal = script[decimal_offset]
    txo.symbol = _text(script[symbol_offset : symbol_offset + SYMBOL_LEN])
    txo.name = _text(script[name_offset : name_offset + NAME_LEN])
    txo.amount = _u64_le(script, amount_offset)
    txo.address_pkh = script[address_offset : address_offset + ADDRESS_LEN]
    txo.code_hash = hash160(script[: script_len - layout.data_len])

    genesis = script[genesis_offset : genesis_offset + layout.genesis_id_len]
    if layout.hashes_genesis:
        txo.genesis_id = hash160(genesis)
        txo.sensible_id = script[sensible_offset : sensible_offset + layout.sensible_id_len]
    else:
        txo.genesis_id = genesis
        txo.sensible_id = genesis

    logger.debug("Decoded FT v%d output %s", layout.version, txo.symbol or "<no symbol>")
    return True


def decode_unique(script: bytes, txo: TxoData) -> bool:
    """Decode the auxiliary "unique" output that accompanies an FT genesis.

    The reserved byte between ``custom_data_size`` and the genesis field is
    not read.
    """

    script_len = len(script)
    proto_type_offset = script_len - PROTO_HEADER_LEN
    genesis_offset = proto_type_offset - UNIQUE_GENESIS_ID_LEN
    custom_data_size_offset = genesis_offset - 1 - 4
    custom_data_size = int.from_bytes(
        script[custom_data_size_offset : custom_data_size_offset + 4], "little"
    )
    data_len = (
        1
        + 1
        + varint_len(custom_data_size)
        + custom_data_size
        + UNIQUE_FIXED_LEN
        + UNIQUE_GENESIS_ID_LEN
    )

    if data_len >= script_len:
        logger.debug("Unique custom data size %d overruns the script", custom_data_size)
        return False
    if script[script_len - data_len] != OP_RETURN:
        logger.debug("Unique output missing OP_RETURN at -%d", data_len)
        return False

    txo.code_type = CodeType.UNIQUE
    txo.address_pkh = bytes(ADDRESS_LEN)
    txo.code_hash = hash160(script[: script_len - data_len])
    txo.genesis_id = script[genesis_offset : genesis_offset + UNIQUE_GENESIS_ID_LEN]
    return True


def decode_nft_issue(script: bytes, txo: TxoData) -> bool:
    """Decode an NFT issuance output. Marker bytes are checked by the caller."""

    script_len = len(script)
    genesis_offset = script_len - NFT_ISSUE_DATA_LEN - 1 - NFT_GENESIS_ID_LEN
    token_idx_offset = script_len - 1 - TOKEN_IDX_LEN
    address_offset = token_idx_offset - 8 - ADDRESS_LEN
    data_len = 1 + 1 + NFT_GENESIS_ID_LEN + 1 + NFT_ISSUE_DATA_LEN

    txo.code_type = CodeType.NFT
    txo.code_hash = hash160(script[: script_len - data_len])
    txo.genesis_id = script[genesis_offset : genesis_offset + NFT_GENESIS_ID_LEN]
    txo.token_idx = _u64_le(script, token_idx_offset)
    txo.address_pkh = script[address_offset : address_offset + ADDRESS_LEN]
    return True


def decode_nft_transfer(script: bytes, txo: TxoData) -> bool:
    """Decode an NFT transfer output. Marker bytes are checked by the caller."""

    script_len = len(script)
    genesis_offset = script_len - NFT_TRANSFER_DATA_LEN - 1 - NFT_GENESIS_ID_LEN
    meta_tx_id_offset = script_len - 1 - META_TX_ID_LEN
    token_idx_offset = meta_tx_id_offset - TOKEN_IDX_LEN
    address_offset = token_idx_offset - ADDRESS_LEN
    data_len = 1 + 1 + NFT_GENESIS_ID_LEN + 1 + NFT_TRANSFER_DATA_LEN

    txo.code_type = CodeType.NFT
    txo.code_hash = hash160(script[: script_len - data_len])
    txo.genesis_id = script[genesis_offset : genesis_offset + NFT_GENESIS_ID_LEN]
    txo.meta_tx_id = script[meta_tx_id_offset : meta_tx_id_offset + META_TX_ID_LEN]
    txo.token_idx = _u64_le(script, token_idx_offset)
    txo.address_pkh = script[address_offset : address_offset + ADDRESS_LEN]
    return True


def _is_nft_marker(script: bytes, data_len: int) -> bool:
    # <OP_RETURN><40><genesis:40><data_len><data:data_len>
    script_len = len(script)
    length_offset = script_len - data_len - 1
    genesis_push_offset = length_offset - NFT_GENESIS_ID_LEN - 1
    op_return_offset = genesis_push_offset - 1
    if op_return_offset < 0:
        return False
    return (
        script[length_offset] == data_len
        and script[genesis_push_offset] == NFT_GENESIS_ID_LEN
        and script[op_return_offset] == OP_RETURN
    )


def decode_sensible_txo(script_pk: ScriptBytes, txo: TxoData) -> bool:
    """Decode ``script_pk`` into ``txo`` when it is a Sensible token output.

    Returns ``True`` when the script was recognised and ``txo`` populated. On
    ``False`` the record may have been partially written and should be
    discarded.
    """

    script = _check_script(script_pk)
    script_len = len(script)
    if script_len < MIN_SCRIPT_LEN:
        return False

    if has_sensible_flag(script):
        proto_type = script[script_len - PROTO_HEADER_LEN]
        if proto_type == PROTO_TYPE_FT:
            return decode_ft(script, txo)
        if proto_type == PROTO_TYPE_UNIQUE:
            return decode_unique(script, txo)
        logger.debug("Unsupported Sensible protocol type %d", proto_type)
        return False

    # Issue is tested first; a flag of 1 only reaches transfer when the issue
    # markers do not match.
    flag = script[-1]
    if flag < 2 and _is_nft_marker(script, NFT_ISSUE_DATA_LEN):
        return decode_nft_issue(script, txo)
    if flag == 1 and _is_nft_marker(script, NFT_TRANSFER_DATA_LEN):
        return decode_nft_transfer(script, txo)
    return False


def decode_script(script_pk: ScriptBytes) -> TxoData | None:
    """Convenience wrapper returning a fresh :class:`TxoData` or ``None``."""

    txo = TxoData()
    if decode_sensible_txo(script_pk, txo):
        return txo
    return None
