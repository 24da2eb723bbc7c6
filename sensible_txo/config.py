"""Node connection settings for the scanner and CLI.

Settings are merged field by field from three layers, lowest first:

1. the ``rpc`` section of a YAML file (``~/.sensible-txo.yaml`` by default),
2. ``SENSIBLE_RPC_*`` environment variables,
3. explicit overrides passed by the caller.

Any layer may give an ``endpoint`` URL instead of separate host, port and
scheme. Inside one layer, explicit ``host``/``port``/``use_https`` keys win
over that layer's endpoint.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".sensible-txo.yaml"
DEFAULT_RPC_HOST = "127.0.0.1"
DEFAULT_RPC_PORT = 8332
ENV_PREFIX = "SENSIBLE_RPC_"
_SETTINGS = ("user", "password", "host", "port", "use_https", "endpoint")
_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})
_CONFIG_PATH_OVERRIDE: Path | None = None


@dataclass
class RPCConfig:
    """Connection details for a Bitcoin SV style JSON-RPC node."""

    user: str
    password: str
    host: str = DEFAULT_RPC_HOST
    port: int = DEFAULT_RPC_PORT
    use_https: bool = False

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_https else "http"
        return f"{scheme}://{self.host}:{self.port}"


def set_default_config_path(path: str | Path | None) -> None:
    """Make ``path`` the config file every later load must read."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


def _file_layer(config_path: str | Path | None) -> tuple[str, Mapping[str, Any]]:
    if config_path is not None:
        path, required = Path(config_path).expanduser(), True
    elif _CONFIG_PATH_OVERRIDE is not None:
        path, required = _CONFIG_PATH_OVERRIDE, True
    else:
        path, required = DEFAULT_CONFIG_PATH, False

    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return str(path), {}

    try:
        document = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if document is None:
        return str(path), {}
    if not isinstance(document, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML mapping")
    section = document.get("rpc") or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected 'rpc' in {path} to be a mapping")
    return str(path), section


def _env_layer(env: Mapping[str, str]) -> Mapping[str, Any]:
    layer = {name: env.get(ENV_PREFIX + name.upper()) for name in _SETTINGS}
    if not layer["endpoint"]:
        layer["endpoint"] = env.get(ENV_PREFIX + "URL")
    return layer


def _as_bool(value: Any, source: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Invalid use_https in {source}: {value!r}")


def _as_port(value: Any, source: str) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid port in {source}: {value!r}") from exc
    if not 0 < port < 65536:
        raise ConfigurationError(f"Port out of range in {source}: {port}")
    return port


def _endpoint_settings(url: str, source: str) -> dict[str, Any]:
    parsed = urlparse(str(url))
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ConfigurationError(f"Invalid RPC endpoint URL in {source}: {url}")
    try:
        port = parsed.port
    except ValueError as exc:
        raise ConfigurationError(f"Invalid port in RPC endpoint URL in {source}: {url}") from exc

    settings: dict[str, Any] = {"host": parsed.hostname, "use_https": parsed.scheme == "https"}
    if port is not None:
        settings["port"] = port
    return settings


def _normalize(layer: Mapping[str, Any], source: str) -> dict[str, Any]:
    """Reduce one layer to the typed settings it actually sets."""

    given = {name: layer.get(name) for name in _SETTINGS if layer.get(name) not in (None, "")}
    endpoint = given.pop("endpoint", None)
    settings = _endpoint_settings(endpoint, source) if endpoint else {}
    settings.update(given)
    if "port" in settings:
        settings["port"] = _as_port(settings["port"], source)
    if "use_https" in settings:
        settings["use_https"] = _as_bool(settings["use_https"], source)
    return settings


def load_rpc_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RPCConfig:
    """Resolve the node connection from config file, environment and overrides."""

    file_source, file_settings = _file_layer(config_path)
    layers = (
        (file_source, file_settings),
        ("environment", _env_layer(os.environ if env is None else env)),
        ("overrides", overrides or {}),
    )

    merged: dict[str, Any] = {}
    for source, layer in layers:
        merged.update(_normalize(layer, source))

    missing = [name for name in ("user", "password") if not merged.get(name)]
    if missing:
        raise ConfigurationError(
            f"Missing RPC {' and '.join(missing)}; set {ENV_PREFIX}USER/{ENV_PREFIX}PASSWORD "
            "or add them to the config file"
        )

    return RPCConfig(
        user=str(merged["user"]),
        password=str(merged["password"]),
        host=str(merged.get("host", DEFAULT_RPC_HOST)),
        port=merged.get("port", DEFAULT_RPC_PORT),
        use_https=merged.get("use_https", False),
    )
