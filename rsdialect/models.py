"""Value objects shared by the type mapper, catalog introspector and dialect."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from urllib.parse import quote


class CanonicalType(str, Enum):
    """Product-agnostic column types understood by the host engine."""

    INTEGER = "integer"
    BIG_INTEGER = "big_integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    TEXT = "text"
    DATE = "date"
    TIME = "time"
    DATE_TIME = "date_time"
    UUID = "uuid"
    IP_ADDRESS = "ip_address"
    OPAQUE = "opaque"


@dataclass(frozen=True, slots=True)
class TableRef:
    """A table discovered in the catalogs."""

    name: str
    schema: str

    def __str__(self) -> str:
        return f"{self.schema}.{self.name}"


@dataclass(frozen=True, slots=True)
class ForeignKeyEdge:
    """One column pair of a foreign-key constraint owned by a source table."""

    source_column: str
    destination_table: TableRef
    destination_column: str


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    """Column metadata with its native and canonical types."""

    name: str
    database_type: str
    base_type: CanonicalType
    position: int | None = None


@dataclass(frozen=True, slots=True)
class ConnectionDescriptor:
    """Fully-qualified connection spec handed to a connection provider."""

    classname: str
    subprotocol: str
    subname: str
    ssl: bool = True
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", _freeze(self.options))

    @property
    def uri(self) -> str:
        return f"{self.subprotocol}:{self.subname}"

    def dsn(self) -> str:
        """Return a libpq-style URL without the driver-only query flags."""

        address = self.subname.split("?", 1)[0]
        authority, _, database = address.rpartition("/")
        return f"postgresql:{authority}/{quote(database, safe='')}"


@dataclass(frozen=True, slots=True)
class DetailsField:
    """A connection form field the UI must collect."""

    name: str
    display_name: str
    type: str = "string"
    required: bool = False
    default: Any = None
    placeholder: str | None = None


@dataclass(frozen=True, slots=True)
class SchemaSnapshot:
    """Tables, columns and foreign keys gathered in one discovery pass."""

    tables: frozenset[TableRef]
    columns: Mapping[TableRef, tuple[ColumnInfo, ...]]
    foreign_keys: Mapping[TableRef, frozenset[ForeignKeyEdge]]


def _freeze(value: Any) -> Any:
    """Return a read-only copy of nested option mappings and sequences."""

    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(value)
    return value


__all__ = [
    "CanonicalType",
    "ColumnInfo",
    "ConnectionDescriptor",
    "DetailsField",
    "ForeignKeyEdge",
    "SchemaSnapshot",
    "TableRef",
]
