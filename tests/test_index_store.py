from __future__ import annotations

from pathlib import Path

from sensible_txo.decoder import decode_script
from sensible_txo.encoder import build_ft_script, build_nft_transfer_script
from sensible_txo.index_store import SQLiteTxoStore
from sensible_txo.scanner import SensibleLocation

OWNER = b"\x0a" * 20


def _ft_location(txid: str, vout: int, height: int | None) -> SensibleLocation:
    script = build_ft_script(
        5,
        name="Big",
        symbol="BIG",
        decimal=18,
        address_pkh=OWNER,
        amount=2**64 - 1,
        genesis_id=b"\x0b" * 76,
    )
    txo = decode_script(script)
    assert txo is not None
    return SensibleLocation(txid=txid, vout=vout, height=height, txo=txo)


def _nft_location(txid: str, vout: int, height: int | None) -> SensibleLocation:
    script = build_nft_transfer_script(
        genesis_id=b"\x0c" * 40,
        address_pkh=b"\x0d" * 20,
        token_idx=2**64 - 1,
        meta_tx_id=b"\x0e" * 32,
    )
    txo = decode_script(script)
    assert txo is not None
    return SensibleLocation(txid=txid, vout=vout, height=height, txo=txo)


def test_store_round_trips_decoded_outputs(tmp_path: Path) -> None:
    ft = _ft_location("tx-ft", 0, 100)
    nft = _nft_location("tx-nft", 1, 101)

    with SQLiteTxoStore(tmp_path / "txo.sqlite") as store:
        assert store.add_many([ft, nft]) == 2

        assert store.get_by_txid("tx-ft") == [ft]
        assert store.get_by_txid("tx-nft") == [nft]
        assert store.get_by_txid("missing") == []


def test_store_queries_by_genesis_and_address(tmp_path: Path) -> None:
    with SQLiteTxoStore(tmp_path / "nested" / "txo.sqlite") as store:
        first = _ft_location("tx-a", 0, 5)
        second = _ft_location("tx-b", 3, 6)
        other = _nft_location("tx-c", 0, None)
        store.add_many([first, second, other])

        by_genesis = store.by_genesis(first.txo.genesis_id)
        assert [location.txid for location in by_genesis] == ["tx-b", "tx-a"]
        assert [location.txid for location in store.by_address(OWNER, limit=1)] == ["tx-b"]
        assert [location.txid for location in store.all()] == ["tx-b", "tx-a", "tx-c"]


def test_store_replaces_existing_output(tmp_path: Path) -> None:
    with SQLiteTxoStore(tmp_path / "txo.sqlite") as store:
        store.add(_ft_location("tx", 0, None))
        store.add(_ft_location("tx", 0, 42))

        stored = store.all()
        assert len(stored) == 1
        assert stored[0].height == 42


def test_store_schema_holds_only_decoded_fields(tmp_path: Path) -> None:
    with SQLiteTxoStore(tmp_path / "txo.sqlite") as store:
        columns = [row["name"] for row in store.conn.execute("PRAGMA table_info(txos)")]

    assert columns == [
        "txid",
        "vout",
        "height",
        "code_type",
        "version",
        "code_hash",
        "genesis_id",
        "sensible_id",
        "name",
        "symbol",
        "decimal",
        "amount",
        "address_pkh",
        "token_idx",
        "meta_tx_id",
    ]
