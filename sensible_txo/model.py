"""Domain models for decoded Sensible token outputs.

:class:`TxoData` is the record the decoder fills in. It is caller-owned and
mutated in place so a scanner can reuse one instance per output; the decoder
never keeps a reference to it after returning.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import IntEnum
from typing import Any


class CodeType(IntEnum):
    """Kind of token contract carried by an output."""

    NONE = 0
    FT = 1
    UNIQUE = 2
    NFT = 3


@dataclass
class TxoData:
    """Token metadata extracted from a Sensible locking script.

    Fields a decoder does not write keep their defaults. ``version`` is only
    set for fungible tokens and records which of the five FT layouts matched.
    """

    code_type: CodeType = CodeType.NONE
    code_hash: bytes = b""
    genesis_id: bytes = b""
    sensible_id: bytes = b""
    name: str = ""
    symbol: str = ""
    decimal: int = 0
    amount: int = 0
    address_pkh: bytes = b""
    token_idx: int = 0
    meta_tx_id: bytes = b""
    version: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Render the record with hex strings for bytes and the code type name."""

        data: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, CodeType):
                value = value.name
            elif isinstance(value, (bytes, bytearray)):
                value = bytes(value).hex()
            data[item.name] = value
        return data

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "TxoData":
        """Inverse of :meth:`to_dict`."""

        txo = cls()
        for item in fields(cls):
            if item.name not in payload or payload[item.name] is None:
                continue
            value = payload[item.name]
            default = getattr(txo, item.name)
            if item.name == "code_type":
                value = CodeType[value] if isinstance(value, str) else CodeType(value)
            elif isinstance(default, bytes):
                value = bytes.fromhex(value)
            setattr(txo, item.name, value)
        return txo
