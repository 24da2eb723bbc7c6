"""Command-line interface for decoding and scanning Sensible token outputs.

The CLI is a thin layer over the decoder, scanner and optional SQLite store
so operators can inspect scripts and transactions without writing Python.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Sequence

from .config import ConfigurationError, load_rpc_config, set_default_config_path
from .decoder import decode_script
from .index_store import SQLiteTxoStore
from .model import CodeType, TxoData
from .rpc_client import NodeRPCClient, RPCError, RPCTransportError, format_rpc_hint
from .scanner import ScanConfig, SensibleLocation, TxoScanner

logger = logging.getLogger(__name__)


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def _add_output_flags(parser: argparse.ArgumentParser, *, store: bool) -> None:
    parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Emit JSON instead of a human-readable summary",
    )
    if store:
        parser.add_argument(
            "--store",
            default=None,
            help="Optional SQLite database path where decoded outputs are saved",
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sensible token output decoder")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    decode_parser = subparsers.add_parser(
        "decode", help="decode a locking script given as hex"
    )
    decode_parser.add_argument("script_hex", help="Hex-encoded locking script")
    _add_output_flags(decode_parser, store=False)

    scan_tx_parser = subparsers.add_parser(
        "scan-tx", help="fetch a transaction over RPC and decode its outputs"
    )
    scan_tx_parser.add_argument("txid", help="Transaction id to inspect")
    _add_output_flags(scan_tx_parser, store=True)

    scan_blocks_parser = subparsers.add_parser(
        "scan-blocks", help="scan a block range for Sensible outputs"
    )
    scan_blocks_parser.add_argument("--start-height", type=int, default=None)
    scan_blocks_parser.add_argument(
        "--end-height",
        type=int,
        default=None,
        help="Last height to scan (default: node best height)",
    )
    scan_blocks_parser.add_argument(
        "--limit", type=int, default=None, help="Maximum number of outputs to report"
    )
    scan_blocks_parser.add_argument(
        "--code-type",
        action="append",
        choices=[code_type.name for code_type in CodeType if code_type is not CodeType.NONE],
        default=None,
        help="Only report outputs of this kind (repeatable)",
    )
    _add_output_flags(scan_blocks_parser, store=True)

    return parser


def _parse_script_hex(raw: str) -> bytes:
    value = raw.strip().lower()
    if value.startswith("0x"):
        value = value[2:]
    try:
        return bytes.fromhex(value)
    except ValueError as exc:
        raise CLIError(f"script is not valid hex: {raw[:32]}") from exc


def _format_txo(txo: TxoData) -> list[str]:
    lines = [f"  code_type: {txo.code_type.name}"]
    if txo.version is not None:
        lines.append(f"  version: v{txo.version}")
    lines.append(f"  code_hash: {txo.code_hash.hex()}")
    lines.append(f"  genesis_id: {txo.genesis_id.hex()}")
    if txo.code_type is CodeType.FT:
        lines.append(f"  sensible_id: {txo.sensible_id.hex()}")
        lines.append(f"  name: {txo.name!r}  symbol: {txo.symbol!r}  decimal: {txo.decimal}")
        lines.append(f"  amount: {txo.amount}")
    if txo.code_type is CodeType.NFT:
        lines.append(f"  token_idx: {txo.token_idx}")
        if txo.meta_tx_id:
            lines.append(f"  meta_tx_id: {txo.meta_tx_id.hex()}")
    lines.append(f"  address_pkh: {txo.address_pkh.hex()}")
    return lines


def _print_locations(locations: Sequence[SensibleLocation], as_json: bool) -> None:
    if as_json:
        print(json.dumps([location.to_dict() for location in locations], indent=2))
        return
    if not locations:
        print("No Sensible outputs found.")
        return
    for location in locations:
        height = location.height if location.height is not None else "-"
        print(f"txid {location.txid} vout {location.vout} | height {height}")
        print("\n".join(_format_txo(location.txo)))


def _store_locations(path: str | None, locations: Sequence[SensibleLocation]) -> None:
    if not path:
        return
    with SQLiteTxoStore(path) as store:
        saved = store.add_many(locations)
    logger.info("Saved %d output(s) to %s", saved, path)


def _rpc_client() -> NodeRPCClient:
    return NodeRPCClient(load_rpc_config())


def cmd_decode(args: argparse.Namespace) -> int:
    script = _parse_script_hex(args.script_hex)
    txo = decode_script(script)
    if txo is None:
        if args.as_json:
            print("null")
        else:
            print("Not a Sensible output.")
        return 0
    if args.as_json:
        print(json.dumps(txo.to_dict(), indent=2))
    else:
        print(f"Sensible output ({len(script)} byte script)")
        print("\n".join(_format_txo(txo)))
    return 0


def cmd_scan_tx(args: argparse.Namespace) -> int:
    scanner = TxoScanner(_rpc_client())
    locations = scanner.scan_tx(args.txid)
    _print_locations(locations, args.as_json)
    _store_locations(args.store, locations)
    return 0


def cmd_scan_blocks(args: argparse.Namespace) -> int:
    if args.limit is not None and args.limit <= 0:
        raise CLIError("--limit must be positive")
    if (
        args.start_height is not None
        and args.end_height is not None
        and args.end_height < args.start_height
    ):
        raise CLIError("--end-height must not be below --start-height")
    code_types = [CodeType[name] for name in args.code_type] if args.code_type else None
    config = ScanConfig(
        start_height=args.start_height,
        end_height=args.end_height,
        limit=args.limit,
        code_types=code_types,
    )
    scanner = TxoScanner(_rpc_client())
    locations = scanner.scan_range(config)
    _print_locations(locations, args.as_json)
    _store_locations(args.store, locations)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    if args.config:
        set_default_config_path(args.config)

    try:
        if args.command == "decode":
            return cmd_decode(args)
        elif args.command == "scan-tx":
            return cmd_scan_tx(args)
        elif args.command == "scan-blocks":
            return cmd_scan_blocks(args)
        else:  # pragma: no cover - argparse enforces choices
            raise CLIError(f"Unknown command: {args.command}")
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
        return 130
    except (RPCError, RPCTransportError) as exc:
        hint = format_rpc_hint(exc)
        message = f"error: {exc}\n"
        if hint:
            message += f"Hint: {hint}\n"
        parser.exit(1, message)
    except (CLIError, ConfigurationError) as exc:
        parser.exit(1, f"error: {exc}\n")
    return 1  # pragma: no cover - parser.exit raises


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
