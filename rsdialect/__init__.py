"""Amazon Redshift dialect adapter: type mapping and catalog introspection."""

from __future__ import annotations

from .catalog import CatalogAccessError, CatalogIntrospector, EXCLUDED_SCHEMAS
from .config import ConfigurationError, ConnectionConfig, TunnelConfig, load_connection_config
from .connections import (
    AsyncpgCatalogBackend,
    AsyncpgConnectionProvider,
    ConnectionProviderError,
    connection_details_to_spec,
)
from .dialect import REDSHIFT, BaseDialect, Dialect, RedshiftDialect
from .models import (
    CanonicalType,
    ColumnInfo,
    ConnectionDescriptor,
    DetailsField,
    ForeignKeyEdge,
    SchemaSnapshot,
    TableRef,
)
from .temporal import IntervalUnit, TimestampUnit, date_interval, to_sql, unix_timestamp_to_timestamp
from .typemap import TypeMapper, column_to_base_type

__version__ = "0.1.0"

__all__ = [
    "AsyncpgCatalogBackend",
    "AsyncpgConnectionProvider",
    "BaseDialect",
    "CanonicalType",
    "CatalogAccessError",
    "CatalogIntrospector",
    "ColumnInfo",
    "ConfigurationError",
    "ConnectionConfig",
    "ConnectionDescriptor",
    "ConnectionProviderError",
    "DetailsField",
    "Dialect",
    "EXCLUDED_SCHEMAS",
    "ForeignKeyEdge",
    "IntervalUnit",
    "REDSHIFT",
    "RedshiftDialect",
    "SchemaSnapshot",
    "TableRef",
    "TimestampUnit",
    "TunnelConfig",
    "TypeMapper",
    "column_to_base_type",
    "connection_details_to_spec",
    "date_interval",
    "load_connection_config",
    "to_sql",
    "unix_timestamp_to_timestamp",
]
