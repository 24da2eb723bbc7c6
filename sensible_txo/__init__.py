"""Decoder for Sensible token locking scripts."""

from .decoder import (
    FT_LAYOUTS,
    MIN_SCRIPT_LEN,
    FTLayout,
    decode_ft,
    decode_nft_issue,
    decode_nft_transfer,
    decode_script,
    decode_sensible_txo,
    decode_unique,
)
from .encoder import (
    ScriptEncodingError,
    build_ft_script,
    build_nft_issue_script,
    build_nft_transfer_script,
    build_unique_script,
)
from .model import CodeType, TxoData
from .script import OP_PUSHDATA1, OP_RETURN, has_sensible_flag, hash160, varint_len

__all__ = [
    "CodeType",
    "TxoData",
    "FTLayout",
    "FT_LAYOUTS",
    "MIN_SCRIPT_LEN",
    "decode_sensible_txo",
    "decode_script",
    "decode_ft",
    "decode_unique",
    "decode_nft_issue",
    "decode_nft_transfer",
    "ScriptEncodingError",
    "build_ft_script",
    "build_unique_script",
    "build_nft_issue_script",
    "build_nft_transfer_script",
    "OP_PUSHDATA1",
    "OP_RETURN",
    "has_sensible_flag",
    "hash160",
    "varint_len",
]
