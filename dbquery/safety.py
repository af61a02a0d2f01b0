"""
SQL Safety Guard

Keyword-based read-only validation and row-limit injection for generated SQL.
This is a gate against accidental writes, not a SQL parser: statements are
checked by prefix and by whole-word keyword matches.
"""

import logging
import re
from abc import ABC, abstractmethod

from dbquery.errors import NotReadOnlyError

logger = logging.getLogger(__name__)

WRITE_KEYWORD_PATTERN = re.compile(
    r"\b(insert|update|delete|drop|alter|truncate|create|grant|revoke|merge|call|replace)\b",
    re.IGNORECASE | re.ASCII,
)
LIMIT_PATTERN = re.compile(r"\blimit\s+\d+", re.IGNORECASE | re.ASCII)

READ_ONLY_PREFIXES = ("select", "with", "explain select")

NOT_READ_ONLY_MESSAGE = (
    "generated SQL is not read-only; use --allow-write to permit non-SELECT statements"
)
WRITE_KEYWORD_MESSAGE = (
    "generated SQL contains write/DDL keywords; use --allow-write if intentional"
)


def strip_leading_comments(sql: str) -> str:
    """
    Remove leading ``--`` line comments and ``/* */`` block comments.

    An unterminated leading comment consumes the rest of the text.
    """
    text = sql.strip()
    while True:
        if text.startswith("--"):
            newline = text.find("\n")
            if newline < 0:
                return ""
            text = text[newline + 1 :].strip()
            continue
        if text.startswith("/*"):
            end = text.find("*/")
            if end < 0:
                return ""
            text = text[end + 2 :].strip()
            continue
        return text


def ensure_read_only(sql: str) -> None:
    """
    Reject anything that is not a plain read query.

    Raises:
        NotReadOnlyError: If the statement does not start with SELECT, WITH or
            EXPLAIN SELECT, or mentions a write/DDL keyword anywhere
    """
    stripped = strip_leading_comments(sql).lower()
    if not stripped.startswith(READ_ONLY_PREFIXES):
        raise NotReadOnlyError(NOT_READ_ONLY_MESSAGE, sql=sql)

    match = WRITE_KEYWORD_PATTERN.search(stripped)
    if match:
        raise NotReadOnlyError(WRITE_KEYWORD_MESSAGE, sql=sql, keyword=match.group(1).lower())


def ensure_limit(sql: str, limit: int) -> str:
    """Append ``LIMIT n`` to a SELECT/WITH statement that has none."""
    if limit <= 0:
        return sql

    stripped = strip_leading_comments(sql)
    if not stripped.lower().startswith(("select", "with")):
        return sql
    if LIMIT_PATTERN.search(stripped):
        return sql

    statement = sql.strip()
    if statement.endswith(";"):
        statement = statement[:-1]
    return f"{statement} LIMIT {limit};"


class ReadOnlyGuard(ABC):
    """Validator deciding whether generated SQL may run."""

    @abstractmethod
    def check(self, sql: str) -> None:
        """Raise NotReadOnlyError when the statement must not run."""
        pass  # pragma: no cover - abstract method


class KeywordReadOnlyGuard(ReadOnlyGuard):
    """Default guard: prefix check plus write/DDL keyword scan."""

    def check(self, sql: str) -> None:
        try:
            ensure_read_only(sql)
        except NotReadOnlyError as e:
            logger.warning(f"Rejected generated SQL: {e}")
            raise
