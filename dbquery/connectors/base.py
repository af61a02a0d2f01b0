"""
Base Database Connector

Abstract base class for all database connectors. Provides a consistent
async interface for connecting to and querying databases.

All connectors must implement:
- connect(): Establish and ping the connection
- _fetch(): Run one statement and return column names plus raw row tuples
- close(): Release the connection

The base class applies the per-call deadline: fetch() cancels the in-flight
call and raises QueryTimeoutError once the timeout elapses.
"""

import asyncio
import logging
import re
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_PASSWORD_PATTERN = re.compile(r"(://[^:/@]+:)([^@]*)(@)")
_KEYWORD_PASSWORD_PATTERN = re.compile(
    r"(\bpassword\s*=\s*)('(?:[^'\\]|\\.)*'|\S*)", re.IGNORECASE
)


# ============================================================================
# Data Models
# ============================================================================


class QueryResult(BaseModel):
    """Raw result from the driver, before value normalization."""

    columns: list[str] = Field(..., description="Column names in driver order")
    rows: list[tuple[Any, ...]] = Field(..., description="Raw row tuples")
    execution_time_ms: float = Field(..., description="Query execution time in ms")


class ConnectorError(Exception):
    """Base exception for connector errors."""

    pass


class ConnectionError(ConnectorError):
    """Error establishing or managing database connection."""

    pass


class QueryError(ConnectorError):
    """Error executing database query."""

    pass


class QueryTimeoutError(QueryError):
    """Query exceeded its deadline and was aborted."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Query timeout ({timeout:g}s)")


def mask_dsn(dsn: str) -> str:
    """Hide the password in a URL-style or keyword DSN."""
    masked = _PASSWORD_PATTERN.sub(r"\1***\3", dsn)
    return _KEYWORD_PASSWORD_PATTERN.sub(r"\1***", masked)


# ============================================================================
# Base Connector
# ============================================================================


class BaseConnector(ABC):
    """
    Abstract base class for database connectors.

    The query pipeline treats a connector as an opaque query-issuing
    capability: it only ever calls fetch() and never inspects the driver.

    Usage:
        async with create_connector("sqlite", "./app.db") as connector:
            result = await connector.fetch("SELECT * FROM users")
            print(result.columns, len(result.rows))
    """

    dialect: str = ""

    def __init__(
        self,
        dsn: str,
        pool_size: int = 4,
        timeout: float = 30,
        **kwargs,
    ):
        """
        Initialize connector.

        Args:
            dsn: Connection URL or file path
            pool_size: Upper bound on open connections (default: 4)
            timeout: Default per-call deadline in seconds (default: 30)
            **kwargs: Additional driver-specific parameters
        """
        self.dsn = dsn
        self.pool_size = pool_size
        self.timeout = timeout
        self.kwargs = kwargs

        self._connected = False

        logger.info(f"Initialized {self.__class__.__name__} for {mask_dsn(dsn)}")

    @abstractmethod
    async def connect(self) -> None:
        """
        Open and ping the connection.

        Should be idempotent.

        Raises:
            ConnectionError: If connection fails
        """
        pass

    @abstractmethod
    async def _fetch(
        self,
        query: str,
        params: Sequence[Any] | None,
        timeout: float,
    ) -> tuple[list[str], list[tuple[Any, ...]]]:
        """
        Run one statement and return (columns, rows).

        Statements that produce no result set return ([], []).

        Raises:
            QueryError: If the driver rejects the statement
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """
        Close the connection.

        Should be idempotent - safe to call multiple times.
        """
        pass

    async def _on_timeout(self) -> None:
        """Hook for drivers that can interrupt a running statement."""
        return None

    async def fetch(
        self,
        query: str,
        params: Sequence[Any] | None = None,
        timeout: float | None = None,
    ) -> QueryResult:
        """
        Execute a SQL statement and materialize every row.

        Args:
            query: SQL text in the driver's parameter style
            params: Positional query parameters (optional)
            timeout: Deadline in seconds (overrides default)

        Returns:
            QueryResult with columns and raw rows

        Raises:
            ConnectionError: If not connected
            QueryTimeoutError: If the deadline elapses
            QueryError: If the statement fails
        """
        if not self._connected:
            raise ConnectionError("Not connected to database. Call connect() first.")

        deadline = timeout or self.timeout
        start_time = time.perf_counter()
        try:
            columns, rows = await asyncio.wait_for(
                self._fetch(query, params, deadline), timeout=deadline
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Query timed out after {deadline}s: {query[:100]}...")
            await self._on_timeout()
            raise QueryTimeoutError(deadline) from e

        execution_time_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            f"Query executed in {execution_time_ms:.2f}ms, returned {len(rows)} rows"
        )
        return QueryResult(
            columns=columns,
            rows=rows,
            execution_time_ms=execution_time_ms,
        )

    @property
    def is_connected(self) -> bool:
        """Check if connector is connected."""
        return self._connected

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
        return False

    def __repr__(self) -> str:
        """String representation."""
        status = "connected" if self._connected else "disconnected"
        return f"<{self.__class__.__name__} {mask_dsn(self.dsn)} ({status})>"
