"""Read-only JSON-RPC access to a Bitcoin SV style node.

Only the calls the scanner needs are wrapped: block lookup by height, chain
tip, and verbose transactions.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, Optional

import requests
from requests import RequestException, Response

from .config import RPCConfig, load_rpc_config

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30

# (error code, lower-case message fragment or None, hint)
_RPC_HINTS = (
    (-5, "transaction", "The node does not know this transaction; it needs txindex=1 for non-wallet txids."),
    (-8, "out of range", "The requested height is above the node's best block."),
    (-28, None, "The node is still loading or verifying blocks. Retry shortly."),
)
_HTTP_HINTS = {
    401: "The node rejected the credentials. Check SENSIBLE_RPC_USER and SENSIBLE_RPC_PASSWORD.",
    403: "The node refused the connection. Check rpcallowip on the node.",
}


class RPCError(RuntimeError):
    """Raised when the node answers with a JSON-RPC error object."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message


class RPCTransportError(RuntimeError):
    """Raised when the node cannot be reached or its reply is not JSON-RPC."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def format_rpc_hint(error_obj: dict[str, Any] | RPCError | RPCTransportError | None) -> str | None:
    """Return a one-line remedy for errors commonly hit while scanning, if known."""

    if isinstance(error_obj, RPCTransportError):
        return _HTTP_HINTS.get(error_obj.status_code)
    if isinstance(error_obj, RPCError):
        code, message = error_obj.code, error_obj.message
    elif isinstance(error_obj, dict):
        code, message = error_obj.get("code"), str(error_obj.get("message", ""))
    else:
        return None

    for hint_code, fragment, hint in _RPC_HINTS:
        if code == hint_code and (fragment is None or fragment in message.lower()):
            return hint
    return None


class NodeRPCClient:
    """Minimal JSON-RPC client; one method per node call the scanner uses."""

    def __init__(self, config: RPCConfig, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.config = config
        self.timeout = timeout
        self._session = requests.Session()
        self._ids = itertools.count(1)

    @classmethod
    def from_env(cls) -> "NodeRPCClient":
        return cls(load_rpc_config())

    def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """Invoke ``method`` and return its ``result`` member."""

        request_id = next(self._ids)
        logger.debug("RPC #%d %s %s", request_id, method, params or [])
        response = self._post(
            {"jsonrpc": "1.0", "id": request_id, "method": method, "params": params or []}
        )
        return self._result(method, response)

    def _post(self, payload: Dict[str, Any]) -> Response:
        try:
            return self._session.post(
                self.config.base_url,
                json=payload,
                auth=(self.config.user, self.config.password),
                timeout=self.timeout,
            )
        except RequestException as exc:
            logger.error("Cannot reach node at %s: %s", self.config.base_url, exc)
            raise RPCTransportError(f"Cannot reach node at {self.config.base_url}: {exc}") from exc

    def _result(self, method: str, response: Response) -> Any:
        # bitcoind-style nodes send JSON-RPC errors with HTTP 500, so the body
        # is inspected before the status code.
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("error"):
            error = body["error"]
            raise RPCError(error.get("code", -1), error.get("message", "unknown error"))
        if not response.ok:
            logger.error("%s failed with HTTP %s", method, response.status_code)
            raise RPCTransportError(
                f"Node returned HTTP {response.status_code} for {method}",
                status_code=response.status_code,
            )
        if not isinstance(body, dict) or "result" not in body:
            logger.debug("Unparseable reply to %s: %.200s", method, response.text)
            raise RPCTransportError(f"Node returned a malformed reply to {method}")
        return body["result"]

    def getblockcount(self) -> int:
        return int(self.call("getblockcount"))

    def getblockhash(self, height: int) -> str:
        return self.call("getblockhash", [height])

    def getblock(self, block_hash: str, verbosity: int = 1) -> Dict[str, Any]:
        return self.call("getblock", [block_hash, verbosity])

    def getrawtransaction(self, txid: str, verbose: bool = False) -> Any:
        return self.call("getrawtransaction", [txid, int(verbose)])

    get_raw_transaction = getrawtransaction

    def decoderawtransaction(self, raw_tx: str) -> Dict[str, Any]:
        return self.call("decoderawtransaction", [raw_tx])

    def getblock_by_height(self, height: int) -> Dict[str, Any]:
        """Fetch the block at ``height`` with full transaction JSON (verbosity 2)."""

        return self.getblock(self.getblockhash(height), verbosity=2)

    def get_best_height(self) -> int:
        return self.getblockcount()
