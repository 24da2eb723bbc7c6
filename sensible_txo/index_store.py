"""Opt-in, lightweight persistence for decoded Sensible outputs."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterable

from .model import CodeType, TxoData
from .scanner import SensibleLocation

_COLUMNS = (
    "txid, vout, height, code_type, version, code_hash, genesis_id, sensible_id, name, symbol, "
    "decimal, amount, address_pkh, token_idx, meta_tx_id"
)


class TxoStore:
    """Interface for storing and retrieving decoded outputs."""

    def add(self, location: SensibleLocation) -> None:
        raise NotImplementedError

    def get_by_txid(self, txid: str) -> list[SensibleLocation]:
        raise NotImplementedError

    def by_genesis(self, genesis_id: bytes, limit: int | None = None) -> list[SensibleLocation]:
        raise NotImplementedError

    def by_address(self, address_pkh: bytes, limit: int | None = None) -> list[SensibleLocation]:
        raise NotImplementedError

    def all(self, limit: int | None = None) -> list[SensibleLocation]:
        raise NotImplementedError


class SQLiteTxoStore(TxoStore):
    """Persist decoded outputs to a local SQLite database."""

    DEFAULT_DB_PATH = Path.home() / ".sensible-txo" / "txo.sqlite"

    def __init__(self, db_path: str | Path | None = None) -> None:
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        cursor = self.conn.cursor()
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS txos (
                txid TEXT NOT NULL,
                vout INTEGER NOT NULL,
                height INTEGER,
                code_type INTEGER NOT NULL,
                version INTEGER,
                code_hash BLOB,
                genesis_id BLOB,
                sensible_id BLOB,
                name TEXT,
                symbol TEXT,
                decimal INTEGER,
                amount TEXT,
                address_pkh BLOB,
                token_idx TEXT,
                meta_tx_id BLOB,
                PRIMARY KEY (txid, vout)
            )
            """
        )
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_txos_genesis ON txos(genesis_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_txos_address ON txos(address_pkh)")
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "SQLiteTxoStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - convenience
        self.close()

    def add(self, location: SensibleLocation) -> None:
        txo = location.txo
        cursor = self.conn.cursor()
        cursor.execute(
            f"""
            INSERT OR REPLACE INTO txos ({_COLUMNS})
            VALUES (:txid, :vout, :height, :code_type, :version, :code_hash, :genesis_id, :sensible_id,
                    :name, :symbol, :decimal, :amount, :address_pkh, :token_idx, :meta_tx_id)
            """,
            {
                "txid": location.txid,
                "vout": location.vout,
                "height": location.height,
                "code_type": int(txo.code_type),
                "version": txo.version,
                "code_hash": txo.code_hash,
                "genesis_id": txo.genesis_id,
                "sensible_id": txo.sensible_id,
                "name": txo.name,
                "symbol": txo.symbol,
                "decimal": txo.decimal,
                # u64 values can exceed SQLite's signed INTEGER range
                "amount": str(txo.amount),
                "address_pkh": txo.address_pkh,
                "token_idx": str(txo.token_idx),
                "meta_tx_id": txo.meta_tx_id,
            },
        )
        self.conn.commit()

    def add_many(self, locations: Iterable[SensibleLocation]) -> int:
        count = 0
        for location in locations:
            self.add(location)
            count += 1
        return count

    def get_by_txid(self, txid: str) -> list[SensibleLocation]:
        cursor = self.conn.cursor()
        cursor.execute(f"SELECT {_COLUMNS} FROM txos WHERE txid = ? ORDER BY vout", (txid,))
        return [self._row_to_location(row) for row in cursor.fetchall()]

    def by_genesis(self, genesis_id: bytes, limit: int | None = None) -> list[SensibleLocation]:
        return self._select_where("genesis_id = ?", (bytes(genesis_id),), limit)

    def by_address(self, address_pkh: bytes, limit: int | None = None) -> list[SensibleLocation]:
        return self._select_where("address_pkh = ?", (bytes(address_pkh),), limit)

    def all(self, limit: int | None = None) -> list[SensibleLocation]:
        return self._select_where(None, (), limit)

    def _select_where(
        self, clause: str | None, params: tuple[object, ...], limit: int | None
    ) -> list[SensibleLocation]:
        sql = f"SELECT {_COLUMNS} FROM txos "
        if clause:
            sql += f"WHERE {clause} "
        sql += "ORDER BY (height IS NULL), height DESC, txid, vout"
        if limit is not None:
            sql += " LIMIT ?"
            params = params + (limit,)
        cursor = self.conn.cursor()
        cursor.execute(sql, params)
        return [self._row_to_location(row) for row in cursor.fetchall()]

    def _row_to_location(self, row: sqlite3.Row) -> SensibleLocation:
        txo = TxoData(
            code_type=CodeType(row["code_type"]),
            code_hash=bytes(row["code_hash"] or b""),
            genesis_id=bytes(row["genesis_id"] or b""),
            sensible_id=bytes(row["sensible_id"] or b""),
            name=row["name"] or "",
            symbol=row["symbol"] or "",
            decimal=row["decimal"] or 0,
            amount=int(row["amount"] or 0),
            address_pkh=bytes(row["address_pkh"] or b""),
            token_idx=int(row["token_idx"] or 0),
            meta_tx_id=bytes(row["meta_tx_id"] or b""),
            version=row["version"],
        )
        return SensibleLocation(txid=row["txid"], vout=row["vout"], height=row["height"], txo=txo)


__all__ = ["TxoStore", "SQLiteTxoStore"]
