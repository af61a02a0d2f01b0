"""
SQLite Connector

Async-compatible SQLite connector using the standard library sqlite3 driver.

The driver is synchronous, so every call runs in a worker thread via
asyncio.to_thread. A single connection is held for the connector's lifetime
(SQLite allows one writer, and in-memory databases live on one connection).
"""

from __future__ import annotations

import asyncio
import logging
import os
import sqlite3
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, unquote, urlsplit

from dbquery.connectors.base import BaseConnector, ConnectionError, QueryError

logger = logging.getLogger(__name__)

_URL_PREFIXES = ("sqlite3://", "sqlite://")


def strip_sqlite_scheme(dsn: str) -> str:
    """Drop a sqlite:// or sqlite3:// prefix, leaving a path or file: URI."""
    raw = dsn.strip()
    lower = raw.lower()
    for prefix in _URL_PREFIXES:
        if lower.startswith(prefix):
            return raw[len(prefix):]
    return raw


def sqlite_path_from_dsn(dsn: str) -> tuple[str, bool]:
    """
    Extract the database file path from a SQLite DSN.

    Returns:
        (path, True) for file-backed databases, ("", False) for in-memory
        databases or an empty DSN.
    """
    raw = dsn.strip()
    if not raw:
        return "", False

    lower = raw.lower()
    if lower == ":memory:" or lower.startswith("file::memory:"):
        return "", False

    if lower.startswith("file:"):
        parsed = urlsplit(raw)
        mode = parse_qs(parsed.query).get("mode", [""])[0]
        if mode.strip().lower() == "memory":
            return "", False
        path = parsed.path.strip() or raw[len("file:"):].split("?", 1)[0]
        path = unquote(path).strip()
        if not path or path == ":memory:":
            return "", False
        return path, True

    query_start = raw.find("?")
    if query_start > 0:
        return raw[:query_start].strip(), True

    return raw, True


def validate_sqlite_location(dsn: str) -> None:
    """
    Refuse to open a SQLite path that does not already exist.

    sqlite3 silently creates missing files, which turns a typo into an empty
    database and a confusing "no tables" schema.

    Raises:
        ConnectionError: If the file, or its directory, is missing, or the
            path is a directory
    """
    path, ok = sqlite_path_from_dsn(dsn)
    if not ok or not path.strip():
        return

    target = Path(os.path.expanduser(path))
    if target.is_dir():
        raise ConnectionError(f"sqlite path points to a directory: {target}")
    if target.exists():
        return

    parent = target.parent
    if str(parent) not in ("", ".") and not parent.exists():
        raise ConnectionError(f"sqlite database directory does not exist: {parent}")
    raise ConnectionError(f"sqlite database file does not exist: {target}")


class SQLiteConnector(BaseConnector):
    """SQLite database connector using the sqlite3 standard library module."""

    dialect = "sqlite"

    def __init__(
        self,
        dsn: str,
        pool_size: int = 1,
        timeout: float = 30,
        **kwargs,
    ) -> None:
        super().__init__(
            dsn=strip_sqlite_scheme(dsn),
            pool_size=1,
            timeout=timeout,
            **kwargs,
        )
        self._conn: sqlite3.Connection | None = None

    async def connect(self) -> None:
        """Open the database file and ping it."""
        if self._connected and self._conn is not None:
            logger.debug("Already connected, skipping connection")
            return

        validate_sqlite_location(self.dsn)
        try:
            self._conn = await asyncio.to_thread(self._open_sync)
            version = await asyncio.to_thread(self._ping_sync)
            logger.info(f"Connected to SQLite {version}")
            self._connected = True
        except sqlite3.Error as exc:
            path, ok = sqlite_path_from_dsn(self.dsn)
            logger.error(f"SQLite connection failed: {exc}")
            if self._conn is not None:
                self._conn.close()
                self._conn = None
            if ok and "unable to open database file" in str(exc).lower():
                raise ConnectionError(
                    f"unable to open sqlite database file {path!r}: {exc}"
                ) from exc
            raise ConnectionError(f"Failed to connect to SQLite: {exc}") from exc

    async def _fetch(
        self,
        query: str,
        params: Sequence[Any] | None,
        timeout: float,
    ) -> tuple[list[str], list[tuple[Any, ...]]]:
        try:
            return await asyncio.to_thread(self._fetch_sync, query, params)
        except sqlite3.Error as exc:
            logger.error(f"SQLite query failed: {exc}\nQuery: {query[:200]}...")
            raise QueryError(str(exc)) from exc

    async def _on_timeout(self) -> None:
        if self._conn is not None:
            self._conn.interrupt()

    async def close(self) -> None:
        """Close the database handle."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
        self._connected = False

    def _connect_target(self) -> tuple[str, bool]:
        raw = self.dsn.strip()
        lower = raw.lower()
        if lower.startswith("file:"):
            return raw, True
        if lower == ":memory:":
            return raw, False
        path, _ = sqlite_path_from_dsn(raw)
        return os.path.expanduser(path), False

    def _open_sync(self) -> sqlite3.Connection:
        target, uri = self._connect_target()
        return sqlite3.connect(
            target,
            uri=uri,
            timeout=self.timeout,
            isolation_level=None,
            check_same_thread=False,
            **self.kwargs,
        )

    def _ping_sync(self) -> str:
        cursor = self._conn.cursor()
        try:
            cursor.execute("SELECT sqlite_version()")
            return str(cursor.fetchone()[0])
        finally:
            cursor.close()

    def _fetch_sync(
        self,
        query: str,
        params: Sequence[Any] | None,
    ) -> tuple[list[str], list[tuple[Any, ...]]]:
        cursor = self._conn.cursor()
        try:
            cursor.execute(query, tuple(params or ()))
            if cursor.description is None:
                return [], []
            columns = [str(col[0]) for col in cursor.description]
            rows = [tuple(row) for row in cursor.fetchall()]
            return columns, rows
        finally:
            cursor.close()
