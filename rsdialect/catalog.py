"""Table, column and foreign-key discovery against the Redshift system catalogs."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, Sequence

from .models import ColumnInfo, ForeignKeyEdge, TableRef
from .typemap import TypeMapper

LOG = logging.getLogger(__name__)

EXCLUDED_SCHEMAS: tuple[str, ...] = ("pg_internal", "pg_catalog", "information_schema")
_EXCLUDED_SCHEMA_LIST = ", ".join(f"'{schema}'" for schema in EXCLUDED_SCHEMAS)


class CatalogAccessError(RuntimeError):
    """Raised when a catalog query fails; callers must abort the sync pass."""


class CatalogConnection(Protocol):
    """The slice of an asyncpg connection the introspector relies on."""

    async def fetch(self, query: str, *args: object) -> Sequence[Mapping[str, Any]]: ...


class CatalogIntrospector:
    """Read-only queries that rebuild catalog topology for one database.

    The driver's imported-keys metadata does not work against Redshift and
    ``information_schema.constraint_column_usage`` is off limits, so foreign
    keys are joined out of ``pg_constraint``/``pg_class``/``pg_attribute``.
    """

    _TABLES_QUERY = f"""
        SELECT DISTINCT table_name, table_schema
        FROM svv_columns
        WHERE table_schema NOT IN ({_EXCLUDED_SCHEMA_LIST})
    """

    _COLUMNS_QUERY = """
        SELECT column_name, data_type, ordinal_position
        FROM svv_columns
        WHERE table_schema = $1 AND table_name = $2
        ORDER BY ordinal_position
    """

    # conkey/confkey are parallel arrays; pairing on the same position keeps
    # composite keys from producing a cross product of column pairs.
    _FOREIGN_KEYS_QUERY = """
        SELECT source_column.attname AS fk_column_name,
               dest_table.relname    AS dest_table_name,
               dest_table_ns.nspname AS dest_table_schema,
               dest_column.attname   AS dest_column_name
        FROM pg_constraint c
               JOIN pg_namespace n             ON c.connamespace          = n.oid
               JOIN pg_class source_table      ON c.conrelid              = source_table.oid
               JOIN pg_attribute source_column ON c.conrelid              = source_column.attrelid
               JOIN pg_class dest_table        ON c.confrelid             = dest_table.oid
               JOIN pg_namespace dest_table_ns ON dest_table.relnamespace = dest_table_ns.oid
               JOIN pg_attribute dest_column   ON c.confrelid             = dest_column.attrelid
               CROSS JOIN generate_series(1, 32) AS key_position(i)
        WHERE c.contype                 = 'f'::char
               AND source_table.relname = $1
               AND n.nspname            = $2
               AND source_column.attnum = ANY(c.conkey)
               AND dest_column.attnum   = ANY(c.confkey)
               AND source_column.attnum = c.conkey[key_position.i]
               AND dest_column.attnum   = c.confkey[key_position.i]
    """

    def __init__(self, type_mapper: TypeMapper | None = None) -> None:
        self._type_mapper = type_mapper or TypeMapper.default()

    async def list_tables(self, conn: CatalogConnection) -> frozenset[TableRef]:
        """Return every user table that has at least one registered column."""

        rows = await self._fetch(conn, self._TABLES_QUERY, operation="list_tables")
        return frozenset(
            TableRef(name=str(row["table_name"]), schema=str(row["table_schema"]))
            for row in rows
            if row["table_schema"] not in EXCLUDED_SCHEMAS
        )

    async def list_columns(self, conn: CatalogConnection, table: TableRef) -> tuple[ColumnInfo, ...]:
        """Return the columns of ``table`` in ordinal order with canonical types."""

        rows = await self._fetch(
            conn,
            self._COLUMNS_QUERY,
            table.schema,
            table.name,
            operation="list_columns",
        )
        columns: list[ColumnInfo] = []
        for row in rows:
            database_type = str(row["data_type"])
            position = row["ordinal_position"]
            columns.append(
                ColumnInfo(
                    name=str(row["column_name"]),
                    database_type=database_type,
                    base_type=self._type_mapper.map(database_type),
                    position=int(position) if position is not None else None,
                )
            )
        return tuple(columns)

    async def list_foreign_keys(self, conn: CatalogConnection, table: TableRef) -> frozenset[ForeignKeyEdge]:
        """Return one edge per (source column, destination column) pair of each FK on ``table``.

        Destinations are not filtered by schema; a key pointing into an
        excluded schema is still reported.
        """

        rows = await self._fetch(
            conn,
            self._FOREIGN_KEYS_QUERY,
            table.name,
            table.schema,
            operation="list_foreign_keys",
        )
        return frozenset(
            ForeignKeyEdge(
                source_column=str(row["fk_column_name"]),
                destination_table=TableRef(
                    name=str(row["dest_table_name"]),
                    schema=str(row["dest_table_schema"]),
                ),
                destination_column=str(row["dest_column_name"]),
            )
            for row in rows
        )

    async def _fetch(
        self,
        conn: CatalogConnection,
        query: str,
        *args: object,
        operation: str,
    ) -> Sequence[Mapping[str, Any]]:
        LOG.debug("Running catalog query", extra={"operation": operation, "params": args})
        try:
            return await conn.fetch(query, *args)
        except Exception as exc:
            raise CatalogAccessError(f"Catalog query '{operation}' failed: {exc}") from exc


__all__ = [
    "CatalogAccessError",
    "CatalogConnection",
    "CatalogIntrospector",
    "EXCLUDED_SCHEMAS",
]
