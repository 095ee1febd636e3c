"""Connection descriptors and the asyncpg-backed catalog backend."""

from __future__ import annotations

import logging
import time
from typing import Any, Mapping

import asyncpg

from .catalog import CatalogAccessError, CatalogIntrospector
from .config import ConfigurationError, ConnectionConfig
from .models import ColumnInfo, ConnectionDescriptor, ForeignKeyEdge, SchemaSnapshot, TableRef

LOG = logging.getLogger(__name__)

DRIVER_CLASSNAME = "com.amazon.redshift.jdbc.Driver"
SUBPROTOCOL = "redshift"

# Keeps the driver from falling back to the open-source sub-protocol handshake.
_SUBNAME_FLAGS = "OpenSourceSubProtocolOverride=false"

_COMPUTED_KEYS = frozenset({"classname", "subprotocol", "subname", "ssl"})


class ConnectionProviderError(RuntimeError):
    """Raised when a connection to the cluster cannot be opened."""


def format_address(config: ConnectionConfig) -> str:
    """Render ``//host:port/database``, bracketing IPv6 hosts."""

    host = f"[{config.host}]" if ":" in config.host else config.host
    return f"//{host}:{config.port}/{config.database}"


def passthrough_options(config: ConnectionConfig) -> dict[str, Any]:
    """Passthrough options minus any key that would shadow a computed descriptor field."""

    return {key: value for key, value in config.passthrough().items() if key not in _COMPUTED_KEYS}


def connection_details_to_spec(config: ConnectionConfig | Mapping[str, Any]) -> ConnectionDescriptor:
    """Create a Redshift connection descriptor from connection details.

    Host, port and database are folded into the subname; every other field is
    carried over as a passthrough option. Passthrough keys never replace the
    computed driver fields.
    """

    if not isinstance(config, ConnectionConfig):
        config = ConnectionConfig.from_details(config)
    return ConnectionDescriptor(
        classname=DRIVER_CLASSNAME,
        subprotocol=SUBPROTOCOL,
        subname=f"{format_address(config)}?{_SUBNAME_FLAGS}",
        ssl=True,
        options=passthrough_options(config),
    )


class AsyncpgConnectionProvider:
    """Opens asyncpg connections for connection descriptors."""

    def __init__(self, *, connect_timeout: float = 10.0) -> None:
        self._connect_timeout = connect_timeout

    async def connect(self, descriptor: ConnectionDescriptor) -> asyncpg.Connection:
        tunnel = descriptor.options.get("tunnel")
        if isinstance(tunnel, Mapping) and tunnel.get("enabled"):
            raise ConfigurationError("SSH tunnels must be opened by the caller before connecting")
        try:
            return await asyncpg.connect(**self._connect_kwargs(descriptor))
        except Exception as exc:
            raise ConnectionProviderError(f"Failed to connect to '{descriptor.uri}': {exc}") from exc

    def _connect_kwargs(self, descriptor: ConnectionDescriptor) -> dict[str, object]:
        kwargs: dict[str, object] = {"dsn": descriptor.dsn()}
        user = descriptor.options.get("user")
        if user:
            kwargs["user"] = user
        password = descriptor.options.get("password")
        if password is not None:
            kwargs["password"] = password
        if descriptor.ssl:
            kwargs["ssl"] = "require"
        kwargs.setdefault("timeout", self._connect_timeout)
        return kwargs


class AsyncpgCatalogBackend:
    """Runs a full discovery pass: tables, their columns and their foreign keys."""

    def __init__(
        self,
        introspector: CatalogIntrospector | None = None,
        provider: AsyncpgConnectionProvider | None = None,
    ) -> None:
        self._introspector = introspector or CatalogIntrospector()
        self._provider = provider or AsyncpgConnectionProvider()

    async def describe(self, config: ConnectionConfig | Mapping[str, Any]) -> SchemaSnapshot:
        """Connect and snapshot the catalogs; a failed query aborts the whole pass."""

        descriptor = connection_details_to_spec(config)
        started = time.perf_counter()
        conn = await self._provider.connect(descriptor)
        try:
            snapshot = await self._snapshot(conn)
        except CatalogAccessError:
            LOG.exception("Schema discovery aborted", extra={"uri": descriptor.uri})
            raise
        finally:
            try:
                await conn.close()
            except Exception:  # pragma: no cover - best effort cleanup
                LOG.debug("Ignoring error while closing catalog connection", exc_info=True)
        LOG.debug(
            "Schema discovery finished",
            extra={
                "uri": descriptor.uri,
                "tables": len(snapshot.tables),
                "elapsed_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return snapshot

    async def _snapshot(self, conn: Any) -> SchemaSnapshot:
        tables = await self._introspector.list_tables(conn)
        columns: dict[TableRef, tuple[ColumnInfo, ...]] = {}
        foreign_keys: dict[TableRef, frozenset[ForeignKeyEdge]] = {}
        for table in sorted(tables, key=lambda ref: (ref.schema, ref.name)):
            columns[table] = await self._introspector.list_columns(conn, table)
            foreign_keys[table] = await self._introspector.list_foreign_keys(conn, table)
        return SchemaSnapshot(tables=tables, columns=columns, foreign_keys=foreign_keys)


__all__ = [
    "AsyncpgCatalogBackend",
    "AsyncpgConnectionProvider",
    "ConnectionProviderError",
    "DRIVER_CLASSNAME",
    "SUBPROTOCOL",
    "connection_details_to_spec",
    "format_address",
    "passthrough_options",
]
