"""Tests for catalog-based table and foreign-key discovery."""

from __future__ import annotations

from typing import Any

import pytest

from rsdialect.catalog import EXCLUDED_SCHEMAS, CatalogAccessError, CatalogIntrospector
from rsdialect.models import CanonicalType, ForeignKeyEdge, TableRef


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _FakeConnection:
    def __init__(self, rows: list[dict[str, Any]] | None = None, error: Exception | None = None) -> None:
        self.rows = rows or []
        self.error = error
        self.calls: list[tuple[str, tuple[object, ...]]] = []

    async def fetch(self, query: str, *args: object) -> list[dict[str, Any]]:
        self.calls.append((query, args))
        if self.error is not None:
            raise self.error
        return self.rows


@pytest.mark.anyio
async def test_list_tables_excludes_system_schemas() -> None:
    conn = _FakeConnection(
        [
            {"table_name": "orders", "table_schema": "public"},
            {"table_name": "customers", "table_schema": "public"},
            {"table_name": "internal_stuff", "table_schema": "pg_catalog"},
        ]
    )

    tables = await CatalogIntrospector().list_tables(conn)

    assert tables == {TableRef("orders", "public"), TableRef("customers", "public")}
    query, _ = conn.calls[0]
    assert "svv_columns" in query
    for schema in EXCLUDED_SCHEMAS:
        assert f"'{schema}'" in query


@pytest.mark.anyio
async def test_list_tables_deduplicates_rows() -> None:
    conn = _FakeConnection(
        [
            {"table_name": "orders", "table_schema": "public"},
            {"table_name": "orders", "table_schema": "public"},
            {"table_name": "orders", "table_schema": "sales"},
        ]
    )

    tables = await CatalogIntrospector().list_tables(conn)

    assert tables == {TableRef("orders", "public"), TableRef("orders", "sales")}


@pytest.mark.anyio
async def test_list_tables_returns_empty_set_for_empty_database() -> None:
    tables = await CatalogIntrospector().list_tables(_FakeConnection([]))

    assert tables == frozenset()


@pytest.mark.anyio
async def test_composite_foreign_key_yields_one_edge_per_column_pair() -> None:
    customers = TableRef("customers", "public")
    conn = _FakeConnection(
        [
            {
                "fk_column_name": "customer_id",
                "dest_table_name": "customers",
                "dest_table_schema": "public",
                "dest_column_name": "id",
            },
            {
                "fk_column_name": "customer_region",
                "dest_table_name": "customers",
                "dest_table_schema": "public",
                "dest_column_name": "region",
            },
        ]
    )

    edges = await CatalogIntrospector().list_foreign_keys(conn, TableRef("orders", "public"))

    assert edges == {
        ForeignKeyEdge("customer_id", customers, "id"),
        ForeignKeyEdge("customer_region", customers, "region"),
    }
    assert all(edge.destination_table == customers for edge in edges)


@pytest.mark.anyio
async def test_foreign_key_query_is_parameterised_by_table_and_schema() -> None:
    conn = _FakeConnection([])

    edges = await CatalogIntrospector().list_foreign_keys(conn, TableRef("orders", "sales"))

    assert edges == frozenset()
    query, args = conn.calls[0]
    assert args == ("orders", "sales")
    assert "contype" in query
    assert "ANY(c.conkey)" in query
    assert "ANY(c.confkey)" in query
    assert "c.conkey[key_position.i]" in query
    assert "c.confkey[key_position.i]" in query


@pytest.mark.anyio
async def test_foreign_keys_into_excluded_schemas_are_still_reported() -> None:
    conn = _FakeConnection(
        [
            {
                "fk_column_name": "owner_oid",
                "dest_table_name": "pg_user_info",
                "dest_table_schema": "pg_catalog",
                "dest_column_name": "usesysid",
            }
        ]
    )

    edges = await CatalogIntrospector().list_foreign_keys(conn, TableRef("audit", "public"))

    assert {edge.destination_table for edge in edges} == {TableRef("pg_user_info", "pg_catalog")}


@pytest.mark.anyio
async def test_list_columns_resolves_canonical_types() -> None:
    conn = _FakeConnection(
        [
            {"column_name": "id", "data_type": "integer", "ordinal_position": 1},
            {"column_name": "email", "data_type": "character varying(256)", "ordinal_position": 2},
            {"column_name": "shape", "data_type": "geometry", "ordinal_position": 3},
        ]
    )

    columns = await CatalogIntrospector().list_columns(conn, TableRef("accounts", "public"))

    assert [column.name for column in columns] == ["id", "email", "shape"]
    assert [column.base_type for column in columns] == [
        CanonicalType.INTEGER,
        CanonicalType.TEXT,
        CanonicalType.OPAQUE,
    ]
    assert columns[1].database_type == "character varying(256)"
    assert conn.calls[0][1] == ("public", "accounts")


@pytest.mark.anyio
@pytest.mark.parametrize("operation", ["list_tables", "list_foreign_keys", "list_columns"])
async def test_query_failures_surface_as_catalog_access_errors(operation: str) -> None:
    failure = PermissionError("permission denied for relation pg_constraint")
    conn = _FakeConnection(error=failure)
    introspector = CatalogIntrospector()

    with pytest.raises(CatalogAccessError) as excinfo:
        if operation == "list_tables":
            await introspector.list_tables(conn)
        elif operation == "list_foreign_keys":
            await introspector.list_foreign_keys(conn, TableRef("orders", "public"))
        else:
            await introspector.list_columns(conn, TableRef("orders", "public"))

    assert excinfo.value.__cause__ is failure
    assert operation in str(excinfo.value)
