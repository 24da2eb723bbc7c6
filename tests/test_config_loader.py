from pathlib import Path

import pytest

from sensible_txo import config as config_module
from sensible_txo.config import ConfigurationError, RPCConfig, load_rpc_config

CREDENTIALS = {"SENSIBLE_RPC_USER": "alice", "SENSIBLE_RPC_PASSWORD": "s3cret"}


@pytest.fixture(autouse=True)
def no_home_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")
    monkeypatch.setattr(config_module, "_CONFIG_PATH_OVERRIDE", None)


@pytest.fixture
def node_yaml(tmp_path: Path) -> Path:
    path = tmp_path / "node.yaml"
    path.write_text(
        "rpc:\n"
        "  user: bob\n"
        "  password: hunter2\n"
        "  endpoint: https://archive.example:18332\n"
    )
    return path


def test_credentials_from_environment_use_local_defaults() -> None:
    config = load_rpc_config(env=CREDENTIALS)

    assert config == RPCConfig(user="alice", password="s3cret")
    assert config.base_url == "http://127.0.0.1:8332"


def test_yaml_endpoint_supplies_host_port_and_scheme(node_yaml: Path) -> None:
    config = load_rpc_config(config_path=node_yaml, env={})

    assert (config.user, config.password) == ("bob", "hunter2")
    assert config.base_url == "https://archive.example:18332"


def test_home_config_is_read_when_present(node_yaml: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", node_yaml)

    assert load_rpc_config(env={}).host == "archive.example"


def test_environment_layers_over_file_field_by_field(node_yaml: Path) -> None:
    env = {"SENSIBLE_RPC_USER": "carol", "SENSIBLE_RPC_PORT": "9000"}

    config = load_rpc_config(config_path=node_yaml, env=env)

    assert config.user == "carol"
    assert config.password == "hunter2"
    assert config.host == "archive.example"
    assert config.port == 9000
    assert config.use_https is True


def test_environment_url_alias_replaces_file_endpoint(node_yaml: Path) -> None:
    config = load_rpc_config(
        config_path=node_yaml, env={"SENSIBLE_RPC_URL": "http://10.0.0.5:8332"}
    )

    assert config.base_url == "http://10.0.0.5:8332"


def test_explicit_keys_beat_endpoint_in_same_layer() -> None:
    env = {
        **CREDENTIALS,
        "SENSIBLE_RPC_ENDPOINT": "https://node.example:443",
        "SENSIBLE_RPC_HOST": "override.example",
        "SENSIBLE_RPC_USE_HTTPS": "off",
    }

    config = load_rpc_config(env=env)

    assert config.base_url == "http://override.example:443"


def test_overrides_win_over_every_other_layer(node_yaml: Path) -> None:
    config = load_rpc_config(
        config_path=node_yaml,
        env={**CREDENTIALS, "SENSIBLE_RPC_PORT": "9000"},
        overrides={"password": "from-cli", "port": 7000, "use_https": False, "user": None},
    )

    assert config.user == "alice"
    assert config.password == "from-cli"
    assert config.port == 7000
    assert config.use_https is False


def test_missing_password_is_reported() -> None:
    with pytest.raises(ConfigurationError, match="password"):
        load_rpc_config(env={"SENSIBLE_RPC_USER": "alice"})


@pytest.mark.parametrize(
    "extra",
    [
        {"SENSIBLE_RPC_PORT": "eighty"},
        {"SENSIBLE_RPC_PORT": "70000"},
        {"SENSIBLE_RPC_USE_HTTPS": "maybe"},
        {"SENSIBLE_RPC_ENDPOINT": "ftp://node.example"},
        {"SENSIBLE_RPC_ENDPOINT": "http://node.example:notaport"},
    ],
)
def test_malformed_environment_values_are_rejected(extra: dict) -> None:
    with pytest.raises(ConfigurationError):
        load_rpc_config(env={**CREDENTIALS, **extra})


@pytest.mark.parametrize(
    "document",
    ["- a\n- list\n", "rpc: [1, 2]\n", "rpc: {user: [unclosed\n"],
)
def test_malformed_config_documents_are_rejected(tmp_path: Path, document: str) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(document)

    with pytest.raises(ConfigurationError):
        load_rpc_config(config_path=path, env=CREDENTIALS)


def test_empty_config_document_is_allowed(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert load_rpc_config(config_path=path, env=CREDENTIALS).user == "alice"


def test_named_config_file_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_rpc_config(config_path=tmp_path / "nope.yaml", env=CREDENTIALS)

    config_module.set_default_config_path(tmp_path / "also-missing.yaml")
    with pytest.raises(ConfigurationError, match="not found"):
        load_rpc_config(env=CREDENTIALS)
