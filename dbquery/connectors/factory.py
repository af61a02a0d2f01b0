"""Connector factory and dialect helpers."""

from __future__ import annotations

from urllib.parse import urlparse

from dbquery.connectors.base import BaseConnector
from dbquery.connectors.mysql import MySQLConnector
from dbquery.connectors.postgres import PostgresConnector
from dbquery.connectors.sqlite import SQLiteConnector
from dbquery.errors import UnsupportedDialectError

SUPPORTED_DIALECTS = ("sqlite", "postgres", "mysql")

_DIALECT_ALIASES = {
    "sqlite": "sqlite",
    "postgres": "postgres",
    "postgresql": "postgres",
    "pg": "postgres",
    "mysql": "mysql",
}

_SQLITE_SUFFIXES = (".db", ".sqlite", ".sqlite3")
_PATH_PREFIXES = ("./", "../", "/", "~")


def normalize_dialect(value: str) -> str:
    """Map a user-supplied database type onto sqlite, postgres or mysql."""
    dialect = _DIALECT_ALIASES.get(value.strip().lower())
    if dialect is None:
        raise UnsupportedDialectError(value)
    return dialect


def detect_dialect(location: str) -> str:
    """
    Guess the dialect from a connection URL or file path.

    Raises:
        UnsupportedDialectError: If nothing about the location identifies a dialect
    """
    raw = location.strip()
    if not raw:
        raise UnsupportedDialectError(location, "db url/path cannot be empty")

    lower = raw.lower()
    if lower.startswith(("postgres://", "postgresql://")):
        return "postgres"
    if lower.startswith("mysql://"):
        return "mysql"
    if lower.startswith(("sqlite://", "sqlite3://", "file:")):
        return "sqlite"

    if "@tcp(" in lower or "@unix(" in lower:
        return "mysql"

    if lower == ":memory:" or lower.endswith(_SQLITE_SUFFIXES):
        return "sqlite"
    if raw.startswith(_PATH_PREFIXES):
        return "sqlite"

    if "host=" in lower and "user=" in lower:
        return "postgres"

    scheme = urlparse(raw).scheme.lower()
    if scheme in ("postgres", "postgresql"):
        return "postgres"
    if scheme == "mysql":
        return "mysql"
    if scheme in ("sqlite", "sqlite3", "file"):
        return "sqlite"

    raise UnsupportedDialectError(
        location,
        f"unable to detect db type from {location!r}; use explicit type: "
        "dbquery set db <sqlite|postgres|mysql> <db-url-or-path>",
    )


def create_connector(
    dialect: str,
    dsn: str,
    *,
    pool_size: int = 4,
    timeout: float = 30,
    **kwargs,
) -> BaseConnector:
    """Create an unconnected connector for the dialect."""
    target = normalize_dialect(dialect)

    if target == "sqlite":
        return SQLiteConnector(dsn.strip(), timeout=timeout, **kwargs)

    if target == "postgres":
        return PostgresConnector(dsn.strip(), pool_size=pool_size, timeout=timeout, **kwargs)

    return MySQLConnector(dsn.strip(), timeout=timeout, **kwargs)
