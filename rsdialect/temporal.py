"""Redshift date/time expression builders for the query compiler."""

from __future__ import annotations

from enum import Enum
from numbers import Real

from sqlglot import exp, parse_one

DIALECT = "redshift"

DateTimeExpression = exp.Expression


class TimestampUnit(str, Enum):
    """Resolution of an epoch-based numeric timestamp."""

    SECONDS = "seconds"
    MILLISECONDS = "milliseconds"


class IntervalUnit(str, Enum):
    """Calendar units accepted inside a Redshift interval literal."""

    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


EPOCH_LITERAL = "1970-01-01T00:00:00Z"

# Redshift is always UTC; the epoch anchor carries the zone explicitly.
_EPOCH = parse_one(f"TIMESTAMP '{EPOCH_LITERAL}'", read=DIALECT)
_ONE_SECOND = exp.Interval(this=exp.Literal.string("1 second"))

CURRENT_DATETIME: DateTimeExpression = exp.Anonymous(this="GETDATE", expressions=[])


def unix_timestamp_to_timestamp(
    value: exp.Expression | Real,
    unit: TimestampUnit | str = TimestampUnit.SECONDS,
) -> DateTimeExpression:
    """Convert an epoch offset (column or number) into a timestamp expression.

    Milliseconds are scaled down to seconds first so only the seconds branch
    knows about the epoch anchor.
    """

    unit = TimestampUnit(unit)
    if unit is TimestampUnit.MILLISECONDS:
        if isinstance(value, exp.Expression):
            scaled: exp.Expression | Real = exp.paren(exp.Div(this=value.copy(), expression=exp.Literal.number(1000)))
        else:
            scaled = value / 1000
        return unix_timestamp_to_timestamp(scaled, TimestampUnit.SECONDS)

    offset = value.copy() if isinstance(value, exp.Expression) else exp.convert(value)
    return exp.Add(
        this=_EPOCH.copy(),
        expression=exp.Mul(this=offset, expression=_ONE_SECOND.copy()),
    )


def date_interval(unit: IntervalUnit | str, amount: int | float) -> DateTimeExpression:
    """Return ``GETDATE() + INTERVAL '<amount> <unit>'``; negative amounts subtract."""

    unit = IntervalUnit(unit)
    # Single-string literal: the unit is rendered exactly as named.
    interval = exp.Interval(this=exp.Literal.string(f"{int(amount)} {unit.value}"))
    return exp.Add(this=CURRENT_DATETIME.copy(), expression=interval)


def to_sql(expression: DateTimeExpression) -> str:
    """Render an expression as Redshift SQL text."""

    return expression.sql(dialect=DIALECT)


__all__ = [
    "CURRENT_DATETIME",
    "DateTimeExpression",
    "EPOCH_LITERAL",
    "IntervalUnit",
    "TimestampUnit",
    "date_interval",
    "to_sql",
    "unix_timestamp_to_timestamp",
]
