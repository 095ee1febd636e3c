"""Native Redshift column types mapped onto the canonical type vocabulary.

Covers the PostgreSQL types Redshift inherits plus the extra spellings that
Redshift Spectrum reports for external tables.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping

from .models import CanonicalType

_QUALIFIER = re.compile(r"\s*\(\s*\d+\s*(?:,\s*\d+\s*)*\)")
_WHITESPACE = re.compile(r"\s+")


def normalize_type_name(column_type: str) -> str:
    """Lowercase, drop ``(n)``/``(p,s)`` qualifiers and collapse whitespace."""

    stripped = _QUALIFIER.sub("", column_type.lower())
    return _WHITESPACE.sub(" ", stripped).strip()


class TypeMapper:
    """Closed lookup table with a single fallback to ``CanonicalType.OPAQUE``."""

    def __init__(self, mapping: Mapping[str, CanonicalType]) -> None:
        self._mapping = MappingProxyType(
            {normalize_type_name(name): base_type for name, base_type in mapping.items()}
        )

    @classmethod
    def default(cls) -> "TypeMapper":
        return _DEFAULT_MAPPER

    @property
    def known_types(self) -> Mapping[str, CanonicalType]:
        return self._mapping

    def map(self, column_type: str) -> CanonicalType:
        return self._mapping.get(normalize_type_name(column_type), CanonicalType.OPAQUE)


_INTEGER = CanonicalType.INTEGER
_BIG_INTEGER = CanonicalType.BIG_INTEGER
_FLOAT = CanonicalType.FLOAT
_DECIMAL = CanonicalType.DECIMAL
_TEXT = CanonicalType.TEXT
_TIME = CanonicalType.TIME
_DATE_TIME = CanonicalType.DATE_TIME
_OPAQUE = CanonicalType.OPAQUE

REDSHIFT_TYPES: Mapping[str, CanonicalType] = MappingProxyType(
    {
        # integers
        "smallint": _INTEGER,
        "int": _INTEGER,
        "integer": _INTEGER,  # Redshift Spectrum
        "int2": _INTEGER,
        "int4": _INTEGER,
        "tinyint": _INTEGER,  # Redshift Spectrum
        "serial": _INTEGER,
        "serial2": _INTEGER,
        "serial4": _INTEGER,
        "smallserial": _INTEGER,
        "pg_lsn": _INTEGER,  # log sequence number
        "bigint": _BIG_INTEGER,
        "int8": _BIG_INTEGER,
        "bigserial": _BIG_INTEGER,
        "serial8": _BIG_INTEGER,
        # floating and fixed point
        "real": _FLOAT,
        "float": _FLOAT,
        "float4": _FLOAT,
        "float8": _FLOAT,
        "double precision": _FLOAT,
        "double": _DECIMAL,  # Redshift Spectrum
        "decimal": _DECIMAL,
        "numeric": _DECIMAL,
        "money": _DECIMAL,
        # boolean
        "bool": CanonicalType.BOOLEAN,
        "boolean": CanonicalType.BOOLEAN,
        # text
        "char": _TEXT,
        "character": _TEXT,
        "nchar": _TEXT,
        "bpchar": _TEXT,  # blank-padded char
        "varchar": _TEXT,
        "character varying": _TEXT,
        "nvarchar": _TEXT,
        "text": _TEXT,
        "string": _TEXT,  # Redshift Spectrum
        "citext": _TEXT,
        "json": _TEXT,
        "jsonb": _TEXT,
        "xml": _TEXT,
        "cidr": _TEXT,
        "macaddr": _TEXT,
        # temporal
        "date": CanonicalType.DATE,
        "time": _TIME,
        "timetz": _TIME,
        "time with time zone": _TIME,
        "time without time zone": _TIME,
        "timestamp": _DATE_TIME,
        "timestamptz": _DATE_TIME,
        "timestamp with time zone": _DATE_TIME,
        "timestamp without time zone": _DATE_TIME,
        "timestamp with timezone": _DATE_TIME,
        "timestamp without timezone": _DATE_TIME,
        # identifiers and network
        "uuid": CanonicalType.UUID,
        "inet": CanonicalType.IP_ADDRESS,
        # listed so they stay opaque even if the fallback changes
        "bit": _OPAQUE,
        "bit varying": _OPAQUE,
        "varbit": _OPAQUE,
        "bytea": _OPAQUE,
        "varbyte": _OPAQUE,
        "varbinary": _OPAQUE,
        "binary varying": _OPAQUE,
        "box": _OPAQUE,
        "circle": _OPAQUE,
        "line": _OPAQUE,
        "lseg": _OPAQUE,
        "path": _OPAQUE,
        "point": _OPAQUE,
        "polygon": _OPAQUE,
        "geometry": _OPAQUE,
        "geography": _OPAQUE,
        "interval": _OPAQUE,
        "tsquery": _OPAQUE,
        "tsvector": _OPAQUE,
        "txid_snapshot": _OPAQUE,
        "super": _OPAQUE,
        "hllsketch": _OPAQUE,
    }
)

_DEFAULT_MAPPER = TypeMapper(REDSHIFT_TYPES)


def column_to_base_type(column_type: str) -> CanonicalType:
    """Map a native column type name with the default Redshift table."""

    return _DEFAULT_MAPPER.map(column_type)


__all__ = ["REDSHIFT_TYPES", "TypeMapper", "column_to_base_type", "normalize_type_name"]
