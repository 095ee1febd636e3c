"""Tests for connection configuration models and loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from rsdialect import config as config_module
from rsdialect.config import ConfigurationError, ConnectionConfig, TunnelConfig, load_connection_config


def _details(**overrides: object) -> dict[str, object]:
    details: dict[str, object] = {
        "host": "cluster.example.com",
        "port": 5439,
        "database": "dev",
        "user": "admin",
        "password": "secret",
    }
    details.update(overrides)
    return details


def test_port_defaults_when_missing() -> None:
    details = _details()
    details.pop("port")

    config = ConnectionConfig.from_details(details)

    assert config.port == 5439


def test_blank_port_from_form_uses_default() -> None:
    config = ConnectionConfig.from_details(_details(port=None))

    assert config.port == 5439


@pytest.mark.parametrize("field", ["host", "database", "user"])
def test_empty_required_fields_are_rejected(field: str) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        ConnectionConfig.from_details(_details(**{field: "  "}))

    assert field in str(excinfo.value)


def test_missing_required_field_is_rejected() -> None:
    details = _details()
    details.pop("database")

    with pytest.raises(ConfigurationError):
        ConnectionConfig.from_details(details)


def test_non_positive_port_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        ConnectionConfig.from_details(_details(port=0))


def test_extra_driver_options_are_kept_as_passthrough() -> None:
    config = ConnectionConfig.from_details(_details(application_name="sync", connect_timeout=30))

    passthrough = config.passthrough()

    assert passthrough["application_name"] == "sync"
    assert passthrough["connect_timeout"] == 30
    assert passthrough["user"] == "admin"
    assert passthrough["password"] == "secret"
    assert "host" not in passthrough
    assert "port" not in passthrough
    assert "database" not in passthrough


def test_flat_tunnel_fields_are_folded_into_tunnel_settings() -> None:
    config = ConnectionConfig.from_details(
        _details(**{"tunnel-enabled": True, "tunnel-host": "bastion", "tunnel-user": "ops"})
    )

    assert config.tunnel == TunnelConfig(enabled=True, host="bastion", user="ops")
    assert config.tunnel_enabled is True
    assert config.tunnel is not None and config.tunnel.port == 22


def test_config_is_immutable() -> None:
    config = ConnectionConfig.from_details(_details())

    with pytest.raises(ValidationError):
        config.host = "elsewhere"  # type: ignore[misc]


def test_load_connection_config_reads_toml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "connection.toml"
    config_path.write_text(
        """
[connection]
host = "cluster.example.com"
database = "analytics"
user = "loader"
password = "hunter2"

[connection.tunnel]
enabled = true
host = "bastion.example.com"
"""
    )
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_connection_config()

    assert result.host == "cluster.example.com"
    assert result.port == 5439
    assert result.database == "analytics"
    assert result.tunnel is not None
    assert result.tunnel.host == "bastion.example.com"


def test_load_connection_config_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_connection_config(tmp_path / "absent.toml")


def test_load_connection_config_handles_toml_errors(tmp_path: Path) -> None:
    config_path = tmp_path / "connection.toml"
    config_path.write_text("host = [unterminated")

    with pytest.raises(ConfigurationError):
        load_connection_config(config_path)


def test_load_connection_config_requires_connection_table(tmp_path: Path) -> None:
    config_path = tmp_path / "connection.toml"
    config_path.write_text('theme = "dark"\n')

    with pytest.raises(ConfigurationError):
        load_connection_config(config_path)


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("host", "a:1/b"),
        ("host", "cluster.example.com/dev"),
        ("host", "cluster.example.com?ssl=false"),
        ("host", "admin@cluster.example.com"),
        ("host", "cluster.example.com:5439"),
        ("database", "b:2/c"),
        ("database", "dev?ssl=false"),
        ("database", "dev#fragment"),
    ],
)
def test_address_separators_are_rejected(field: str, value: str) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        ConnectionConfig.from_details(_details(**{field: value}))

    assert field in str(excinfo.value)


@pytest.mark.parametrize("host", ["::1", "[::1]"])
def test_ipv6_hosts_are_accepted_without_brackets(host: str) -> None:
    config = ConnectionConfig.from_details(_details(host=host))

    assert config.host == "::1"


def test_database_names_may_contain_colons_and_spaces() -> None:
    config = ConnectionConfig.from_details(_details(database="sales: 2024 q1"))

    assert config.database == "sales: 2024 q1"


def test_none_valued_driver_options_are_passed_through() -> None:
    config = ConnectionConfig.from_details(_details(sslrootcert=None, application_name="sync"))

    passthrough = config.passthrough()

    assert "sslrootcert" in passthrough
    assert passthrough["sslrootcert"] is None
    assert passthrough["application_name"] == "sync"
    assert "tunnel" not in passthrough


def test_tunnel_settings_are_passed_through_when_present() -> None:
    config = ConnectionConfig.from_details(_details(**{"tunnel-enabled": True, "tunnel-host": "bastion"}))

    passthrough = config.passthrough()

    assert passthrough["tunnel"]["enabled"] is True
    assert passthrough["tunnel"]["host"] == "bastion"
    assert passthrough["tunnel"]["port"] == 22
