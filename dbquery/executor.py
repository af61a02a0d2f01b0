"""
Query Executor

Runs one validated statement, materializes every row and normalizes driver
values into a dialect-neutral form:

- None stays None
- datetimes and dates become RFC 3339 strings (nanosecond form, UTC as "Z")
- raw bytes and Decimals are parsed as int, then float, then bool, falling
  back to the decoded text
- bool, int, float and str pass through unchanged
- anything else is stringified
"""

import datetime
import decimal
import logging
import math
import re
from typing import Any

from dbquery.connectors.base import BaseConnector, ConnectorError, QueryTimeoutError
from dbquery.errors import ExecutionError
from dbquery.models import ResultSet

logger = logging.getLogger(__name__)

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_INT_PATTERN = re.compile(r"[+-]?\d+", re.ASCII)
_FLOAT_PATTERN = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf|infinity|nan)",
    re.IGNORECASE | re.ASCII,
)
_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def _parse_int(text: str) -> int | None:
    if not _INT_PATTERN.fullmatch(text):
        return None
    value = int(text)
    if INT64_MIN <= value <= INT64_MAX:
        return value
    return None


def _parse_float(text: str) -> float | None:
    if not _FLOAT_PATTERN.fullmatch(text):
        return None
    value = float(text)
    # Finite text that overflows to infinity is a range error, not a value.
    if math.isinf(value) and "inf" not in text.lower():
        return None
    return value


def _parse_bool(text: str) -> bool | None:
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    return None


def coerce_text(text: str) -> int | float | bool | str:
    """Parse textual driver output as int, then float, then bool."""
    for parse in (_parse_int, _parse_float, _parse_bool):
        parsed = parse(text)
        if parsed is not None:
            return parsed
    return text


def format_rfc3339_nano(value: datetime.datetime | datetime.date) -> str:
    """
    Format a timestamp as RFC 3339 with trailing fraction zeros trimmed.

    Naive datetimes are taken as UTC and bare dates as midnight UTC.
    """
    if not isinstance(value, datetime.datetime):
        value = datetime.datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)

    text = value.strftime("%Y-%m-%dT%H:%M:%S")
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")

    offset = value.utcoffset() or datetime.timedelta(0)
    if not offset:
        return text + "Z"

    sign = "-" if offset < datetime.timedelta(0) else "+"
    minutes = int(abs(offset).total_seconds()) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_value(value: Any) -> Any:
    """Convert one driver value into None, int, float, bool or str."""
    if value is None:
        return None
    if isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime.datetime, datetime.date)):
        return format_rfc3339_nano(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return coerce_text(bytes(value).decode("utf-8", errors="replace"))
    if isinstance(value, decimal.Decimal):
        return coerce_text(str(value))
    if isinstance(value, datetime.time):
        return value.isoformat()
    return str(value)


async def execute(
    connector: BaseConnector,
    sql: str,
    timeout: float | None = None,
) -> ResultSet:
    """
    Run a statement and return its normalized result set.

    Args:
        connector: Connected connector
        sql: Statement that already passed the safety guard
        timeout: Deadline in seconds (None = connector default)

    Returns:
        ResultSet with row mappings in column order

    Raises:
        ExecutionError: If the driver rejects the statement
        QueryTimeoutError: If the deadline elapses
    """
    try:
        result = await connector.fetch(sql, timeout=timeout)
    except QueryTimeoutError:
        raise
    except ConnectorError as e:
        logger.error(f"Query execution failed: {e}")
        raise ExecutionError(sql, e) from e

    columns = list(result.columns)
    rows = [
        {column: normalize_value(raw) for column, raw in zip(columns, raw_row)}
        for raw_row in result.rows
    ]

    logger.info(f"Query returned {len(rows)} rows in {result.execution_time_ms:.1f}ms")
    return ResultSet(
        columns=columns,
        rows=rows,
        execution_time_ms=result.execution_time_ms,
    )
