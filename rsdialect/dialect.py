"""Dialect descriptors: the capability set the host engine sees for each database."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, ClassVar, Mapping, Protocol, Sequence, runtime_checkable

from sqlglot import exp

from . import temporal
from .catalog import CatalogAccessError, CatalogConnection, CatalogIntrospector
from .config import DEFAULT_PORT, DEFAULT_TUNNEL_PORT, ConnectionConfig
from .connections import connection_details_to_spec, format_address, passthrough_options
from .models import CanonicalType, ColumnInfo, ConnectionDescriptor, DetailsField, ForeignKeyEdge, TableRef
from .temporal import DateTimeExpression, IntervalUnit, TimestampUnit
from .typemap import TypeMapper

POSTGRES_CLASSNAME = "org.postgresql.Driver"
POSTGRES_SUBPROTOCOL = "postgresql"

_SHORT_OFFSET = re.compile(r"([+-]\d{2})$")


@runtime_checkable
class Dialect(Protocol):
    """Operations every dialect adapter exposes to the host engine."""

    name: str
    display_name: str
    details_fields: Sequence[DetailsField]
    db_time_query: str
    db_time_format: str
    set_timezone_template: str

    def connection_spec(self, config: ConnectionConfig | Mapping[str, Any]) -> ConnectionDescriptor: ...

    def column_to_base_type(self, column_type: str) -> CanonicalType: ...

    def unix_timestamp_to_timestamp(self, value: Any, unit: TimestampUnit | str) -> DateTimeExpression: ...

    def date_interval(self, unit: IntervalUnit | str, amount: int) -> DateTimeExpression: ...

    def set_timezone_sql(self, zone: str) -> str: ...

    async def describe_database(self, conn: CatalogConnection) -> frozenset[TableRef]: ...

    async def describe_table_fks(self, conn: CatalogConnection, table: TableRef) -> frozenset[ForeignKeyEdge]: ...


class BaseDialect:
    """Generic PostgreSQL-family defaults; subclasses override what differs."""

    name: ClassVar[str] = "postgres"
    display_name: ClassVar[str] = "PostgreSQL"
    details_fields: ClassVar[tuple[DetailsField, ...]] = ()
    db_time_query: ClassVar[str] = "SELECT to_char(current_timestamp, 'YYYY-MM-DD HH24:MI:SS.MS TZ')"
    db_time_format: ClassVar[str] = "%Y-%m-%d %H:%M:%S.%f %Z"
    set_timezone_template: ClassVar[str] = "SET SESSION TIMEZONE TO %s;"

    def __init__(
        self,
        type_mapper: TypeMapper | None = None,
        introspector: CatalogIntrospector | None = None,
    ) -> None:
        self.type_mapper = type_mapper or TypeMapper.default()
        self.introspector = introspector or CatalogIntrospector(self.type_mapper)

    def connection_spec(self, config: ConnectionConfig | Mapping[str, Any]) -> ConnectionDescriptor:
        """Plain PostgreSQL JDBC descriptor; dialects with their own driver override this."""

        if not isinstance(config, ConnectionConfig):
            config = ConnectionConfig.from_details(config)
        return ConnectionDescriptor(
            classname=POSTGRES_CLASSNAME,
            subprotocol=POSTGRES_SUBPROTOCOL,
            subname=format_address(config),
            ssl=False,
            options=passthrough_options(config),
        )

    def column_to_base_type(self, column_type: str) -> CanonicalType:
        return self.type_mapper.map(column_type)

    def current_datetime(self) -> DateTimeExpression:
        return exp.CurrentTimestamp()

    def unix_timestamp_to_timestamp(self, value: Any, unit: TimestampUnit | str) -> DateTimeExpression:
        unit = TimestampUnit(unit)
        scale = 3 if unit is TimestampUnit.MILLISECONDS else 0
        column = value if isinstance(value, exp.Expression) else exp.convert(value)
        return exp.UnixToTime(this=column, scale=exp.Literal.number(scale))

    def date_interval(self, unit: IntervalUnit | str, amount: int) -> DateTimeExpression:
        unit = IntervalUnit(unit)
        interval = exp.Interval(this=exp.Literal.string(str(int(amount))), unit=exp.var(unit.value.upper()))
        return exp.Add(this=self.current_datetime(), expression=interval)

    def format_custom_field_name(self, name: str) -> str:
        return name

    def set_timezone_sql(self, zone: str) -> str:
        """Fill the session timezone template with ``zone`` as a quoted literal."""

        literal = "'" + zone.replace("'", "''") + "'"
        return self.set_timezone_template % literal

    def parse_db_time(self, value: str) -> datetime:
        """Parse the text returned by ``db_time_query``; results without a zone are UTC.

        The zone may come back as a name (``UTC``), a numeric offset
        (``+00``, ``+05:30``) or not at all.
        """

        text = _SHORT_OFFSET.sub(r"\g<1>00", value.strip())
        without_zone = self.db_time_format.removesuffix(" %Z")
        # Redshift may leave the TZ field empty.
        for fmt in (self.db_time_format, without_zone + " %z", without_zone):
            try:
                parsed = datetime.strptime(text, fmt)
            except ValueError:
                continue
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
        raise ValueError(f"Unrecognised database time {value!r}; expected format {self.db_time_format!r}")

    async def current_db_time(self, conn: Any) -> datetime:
        """Ask the database for its current time."""

        try:
            value = await conn.fetchval(self.db_time_query)
        except Exception as exc:
            raise CatalogAccessError(f"Failed to fetch database time: {exc}") from exc
        if value is None:
            raise CatalogAccessError("Database time query returned no value")
        try:
            return self.parse_db_time(str(value))
        except ValueError as exc:
            raise CatalogAccessError(f"Failed to parse database time: {exc}") from exc

    async def describe_database(self, conn: CatalogConnection) -> frozenset[TableRef]:
        return await self.introspector.list_tables(conn)

    async def describe_table(self, conn: CatalogConnection, table: TableRef) -> tuple[ColumnInfo, ...]:
        return await self.introspector.list_columns(conn, table)

    async def describe_table_fks(self, conn: CatalogConnection, table: TableRef) -> frozenset[ForeignKeyEdge]:
        return await self.introspector.list_foreign_keys(conn, table)


def with_tunnel_fields(fields: Sequence[DetailsField]) -> tuple[DetailsField, ...]:
    """Append the SSH tunnel fields to a connection form."""

    return tuple(fields) + (
        DetailsField(name="tunnel-enabled", display_name="Use SSH tunnel", type="boolean", default=False),
        DetailsField(name="tunnel-host", display_name="SSH tunnel host", placeholder="hostname"),
        DetailsField(name="tunnel-port", display_name="SSH tunnel port", type="integer", default=DEFAULT_TUNNEL_PORT),
        DetailsField(name="tunnel-user", display_name="SSH tunnel username", placeholder="ssh-user"),
        DetailsField(name="tunnel-pass", display_name="SSH tunnel password", type="password", placeholder="******"),
    )


REDSHIFT_DETAILS_FIELDS: tuple[DetailsField, ...] = with_tunnel_fields(
    (
        DetailsField(
            name="host",
            display_name="Host",
            placeholder="my-cluster-name.abcd1234.us-east-1.redshift.amazonaws.com",
            required=True,
        ),
        DetailsField(name="port", display_name="Port", type="integer", default=DEFAULT_PORT),
        DetailsField(name="database", display_name="Database name", placeholder="toucan_sightings", required=True),
        DetailsField(name="user", display_name="Database username", placeholder="cam", required=True),
        DetailsField(
            name="password",
            display_name="Database user password",
            type="password",
            placeholder="*******",
            required=True,
        ),
    )
)


class RedshiftDialect(BaseDialect):
    """Amazon Redshift: PostgreSQL catalogs with Redshift's own time and type quirks."""

    name: ClassVar[str] = "redshift"
    display_name: ClassVar[str] = "Amazon Redshift"
    details_fields: ClassVar[tuple[DetailsField, ...]] = REDSHIFT_DETAILS_FIELDS
    # Redshift ignores a zone in the format string and always answers in UTC.
    db_time_query: ClassVar[str] = "select to_char(current_timestamp, 'YYYY-MM-DD HH24:MI:SS.MS TZ')"
    set_timezone_template: ClassVar[str] = "SET TIMEZONE TO %s;"

    def connection_spec(self, config: ConnectionConfig | Mapping[str, Any]) -> ConnectionDescriptor:
        return connection_details_to_spec(config)

    def current_datetime(self) -> DateTimeExpression:
        return temporal.CURRENT_DATETIME.copy()

    def unix_timestamp_to_timestamp(self, value: Any, unit: TimestampUnit | str) -> DateTimeExpression:
        return temporal.unix_timestamp_to_timestamp(value, unit)

    def date_interval(self, unit: IntervalUnit | str, amount: int) -> DateTimeExpression:
        return temporal.date_interval(unit, amount)

    def format_custom_field_name(self, name: str) -> str:
        return name.lower()


REDSHIFT = RedshiftDialect()


__all__ = [
    "BaseDialect",
    "Dialect",
    "REDSHIFT",
    "POSTGRES_CLASSNAME",
    "POSTGRES_SUBPROTOCOL",
    "REDSHIFT_DETAILS_FIELDS",
    "RedshiftDialect",
    "with_tunnel_fields",
]
