"""Connection configuration models and loading helpers."""

from __future__ import annotations

import ipaddress
from pathlib import Path
from typing import Any, Mapping

import tomllib

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

CONFIG_FILE = Path.home() / ".config" / "rsdialect" / "connection.toml"

DEFAULT_PORT = 5439
DEFAULT_TUNNEL_PORT = 22


class ConfigurationError(ValueError):
    """Raised when connection details are missing or malformed."""


class TunnelConfig(BaseModel):
    """SSH tunnel settings collected alongside the connection details."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    host: str | None = None
    port: int = DEFAULT_TUNNEL_PORT
    user: str | None = None
    password: str | None = None


class ConnectionConfig(BaseModel):
    """Connection details for a Redshift cluster.

    Unknown keys are kept as passthrough driver options.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    host: str
    port: int = DEFAULT_PORT
    database: str
    user: str
    password: str
    tunnel: TunnelConfig | None = None

    @field_validator("host", "database", "user")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("host")
    @classmethod
    def _plain_host(cls, value: str) -> str:
        if any(char in value for char in "/?#@"):
            raise ValueError("must be a bare host name without path, query or credentials")
        if ":" in value:
            # Only IPv6 literals may carry colons; the port has its own field.
            address = value.removeprefix("[").removesuffix("]")
            try:
                ipaddress.IPv6Address(address)
            except ValueError:
                raise ValueError("must not contain ':' unless it is an IPv6 address") from None
            return address
        return value

    @field_validator("database")
    @classmethod
    def _plain_database(cls, value: str) -> str:
        if any(char in value for char in "/?#"):
            raise ValueError("must not contain '/', '?' or '#'")
        return value

    @field_validator("port")
    @classmethod
    def _positive_port(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @classmethod
    def from_details(cls, details: Mapping[str, Any]) -> ConnectionConfig:
        """Build a config from a raw details mapping (UI form or TOML table)."""

        data = dict(details)
        tunnel = _tunnel_from_flat_keys(data)
        if tunnel is not None:
            data["tunnel"] = tunnel
        if data.get("port") is None:
            data.pop("port", None)
        try:
            return cls(**data)
        except ValidationError as exc:
            raise ConfigurationError(_describe_validation_error(exc)) from exc

    def passthrough(self) -> dict[str, Any]:
        """Every field except the ones encoded into the connection address.

        Extra driver options are passed on as given, ``None`` included; only
        the unset optional ``tunnel`` section is left out.
        """

        extras = dict(self.model_extra or {})
        options = self.model_dump(exclude={"host", "port", "database", "tunnel", *extras})
        if self.tunnel is not None:
            options["tunnel"] = self.tunnel.model_dump()
        options.update(extras)
        return options

    @property
    def tunnel_enabled(self) -> bool:
        return self.tunnel is not None and self.tunnel.enabled


def load_connection_config(path: Path | None = None) -> ConnectionConfig:
    """Load the ``[connection]`` table from a TOML file."""

    config_path = path or CONFIG_FILE
    try:
        with config_path.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Connection config not found: {config_path}") from exc
    except (tomllib.TOMLDecodeError, OSError) as exc:
        raise ConfigurationError(f"Could not read connection config {config_path}: {exc}") from exc

    section = raw.get("connection")
    if not isinstance(section, dict):
        raise ConfigurationError(f"{config_path} has no [connection] table")
    return ConnectionConfig.from_details(section)


_TUNNEL_KEYS = {
    "tunnel-enabled": "enabled",
    "tunnel-host": "host",
    "tunnel-port": "port",
    "tunnel-user": "user",
    "tunnel-pass": "password",
}


def _tunnel_from_flat_keys(data: dict[str, Any]) -> dict[str, Any] | None:
    """Fold the flat ``tunnel-*`` form fields into a nested tunnel mapping."""

    flat = {target: data.pop(key) for key, target in _TUNNEL_KEYS.items() if key in data}
    if not flat:
        return None
    nested = data.get("tunnel")
    merged: dict[str, Any] = dict(nested) if isinstance(nested, Mapping) else {}
    merged.update({key: value for key, value in flat.items() if value is not None})
    return merged


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "connection"
        problems.append(f"{location}: {error['msg']}")
    return "Invalid connection details: " + "; ".join(problems)


__all__ = [
    "CONFIG_FILE",
    "ConfigurationError",
    "ConnectionConfig",
    "DEFAULT_PORT",
    "TunnelConfig",
    "load_connection_config",
]
