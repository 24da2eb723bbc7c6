"""Walk transactions and blocks, decoding every output script.

The scanner only needs ``getrawtransaction``-style verbose JSON: each
``vout`` entry's ``scriptPubKey.hex`` is fed through
:func:`~sensible_txo.decoder.decode_sensible_txo`. Outputs that are not
Sensible tokens are silently skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Collection, Dict, Iterable, List, Optional

from .decoder import decode_sensible_txo
from .model import CodeType, TxoData

logger = logging.getLogger(__name__)


@dataclass
class SensibleLocation:
    """A decoded Sensible output within a transaction."""

    txid: str
    vout: int
    height: Optional[int]
    txo: TxoData

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"txid": self.txid, "vout": self.vout, "height": self.height}
        data.update(self.txo.to_dict())
        return data


@dataclass
class ScanConfig:
    """Block range and filters for :meth:`TxoScanner.scan_range`."""

    start_height: Optional[int] = None
    end_height: Optional[int] = None
    limit: Optional[int] = None
    code_types: Optional[Collection[CodeType]] = None

    def accepts(self, txo: TxoData) -> bool:
        return not self.code_types or txo.code_type in self.code_types


def _script_bytes(vout: Dict[str, Any]) -> bytes | None:
    script_pub_key = vout.get("scriptPubKey")
    if not isinstance(script_pub_key, dict):
        return None
    script_hex = script_pub_key.get("hex")
    if not isinstance(script_hex, str):
        return None
    try:
        return bytes.fromhex(script_hex)
    except ValueError:
        return None


class TxoScanner:
    """Decode Sensible outputs from transactions fetched over RPC."""

    def __init__(self, rpc_client) -> None:
        """Initialize the scanner.

        Args:
            rpc_client: A :class:`~sensible_txo.rpc_client.NodeRPCClient` or any
                object exposing ``get_raw_transaction``, ``getblock_by_height``
                and ``get_best_height``.
        """

        self.rpc_client = rpc_client

    def decode_tx_json(
        self,
        tx_json: Dict[str, Any],
        height: Optional[int] = None,
        config: Optional[ScanConfig] = None,
    ) -> List[SensibleLocation]:
        """Decode every output of a verbose transaction JSON payload."""

        txid = tx_json.get("txid") or tx_json.get("hash")
        if txid is None:
            logger.debug("Skipping transaction without txid")
            return []
        if height is None:
            height = tx_json.get("height")

        locations: List[SensibleLocation] = []
        for position, vout in enumerate(tx_json.get("vout") or []):
            if not isinstance(vout, dict):
                logger.debug("Skipping malformed vout entry %s:%s", txid, position)
                continue
            vout_index = vout.get("n", position)
            script = _script_bytes(vout)
            if script is None:
                logger.debug("No usable scriptPubKey hex for %s:%s", txid, vout_index)
                continue

            txo = TxoData()
            if not decode_sensible_txo(script, txo):
                continue
            if config is not None and not config.accepts(txo):
                continue
            logger.debug("Found %s output at %s:%s", txo.code_type.name, txid, vout_index)
            locations.append(SensibleLocation(txid=txid, vout=vout_index, height=height, txo=txo))
        return locations

    def scan_tx(self, txid: str) -> List[SensibleLocation]:
        """Fetch a single transaction and decode its Sensible outputs."""

        verbose_tx = self.rpc_client.get_raw_transaction(txid, verbose=True)
        return self.decode_tx_json(verbose_tx)

    def scan_block(self, block_json: Dict[str, Any], config: Optional[ScanConfig] = None) -> List[SensibleLocation]:
        """Decode every transaction of a verbosity=2 block payload."""

        block_height = block_json.get("height")
        limit = config.limit if config is not None else None
        locations: List[SensibleLocation] = []
        for tx in block_json.get("tx", []):
            if not isinstance(tx, dict):
                # verbosity=1 blocks only list txids
                continue
            locations.extend(self.decode_tx_json(tx, height=block_height, config=config))
            if limit is not None and len(locations) >= limit:
                return locations[:limit]
        return locations

    def _iter_heights(self, config: ScanConfig) -> Iterable[int]:
        start_height = config.start_height if config.start_height is not None else 0
        if config.end_height is not None:
            end_height = config.end_height
        else:
            end_height = self.rpc_client.get_best_height()
        return range(start_height, end_height + 1)

    def scan_range(self, config: ScanConfig) -> List[SensibleLocation]:
        """Scan a block range for Sensible outputs.

        ``config.limit`` caps the number of returned locations, not the number
        of blocks visited.
        """

        locations: List[SensibleLocation] = []
        for height in self._iter_heights(config):
            if config.limit is not None and len(locations) >= config.limit:
                break
            block_json = self.rpc_client.getblock_by_height(height)
            locations.extend(self.scan_block(block_json, config))
            logger.info("Scanned block %d, %d Sensible output(s) so far", height, len(locations))

        if config.limit is not None:
            locations = locations[: config.limit]
        return locations
