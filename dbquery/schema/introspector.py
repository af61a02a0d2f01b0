"""
Schema Introspection

Discovers tables and column shapes for the prompt given to the language
model. One Introspector variant exists per dialect; each knows its own
catalog queries and parameter style, while the shared walk in
Introspector.introspect() applies the table scope and the table cap.

Policy:
- The scope filter runs on the (qualified) table name before any column
  lookup, so excluded tables cost no round trip.
- Enumeration stops as soon as max_tables descriptors exist; the remaining
  candidates are never looked up.
- Any catalog or column failure aborts with IntrospectionError naming the
  step. A partial schema is never returned.

Usage:
    tables = await introspect(connector, "postgres", ["users"], max_tables=40)
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from dbquery.connectors.base import BaseConnector, ConnectorError, QueryTimeoutError
from dbquery.errors import IntrospectionError, UnsupportedDialectError
from dbquery.models import TableDescriptor
from dbquery.schema.filters import TableFilter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableRef:
    """Catalog entry for one candidate table."""

    name: str
    schema: str | None = None

    @property
    def qualified_name(self) -> str:
        if self.schema:
            return f"{self.schema}.{self.name}"
        return self.name


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return "" if value is None else str(value)


def _column_entry(name: Any, data_type: Any) -> str:
    return f"{_text(name)} {_text(data_type)}".strip()


class Introspector(ABC):
    """Dialect-specific schema discovery."""

    dialect: str = ""

    @abstractmethod
    async def list_tables(
        self, connector: BaseConnector, timeout: float | None = None
    ) -> list[TableRef]:
        """Return candidate tables in catalog order."""
        pass  # pragma: no cover - abstract method

    @abstractmethod
    async def list_columns(
        self, connector: BaseConnector, table: TableRef, timeout: float | None = None
    ) -> list[str]:
        """Return "<name> <type>" entries for one table in ordinal order."""
        pass  # pragma: no cover - abstract method

    async def introspect(
        self,
        connector: BaseConnector,
        table_filter: TableFilter,
        max_tables: int,
        timeout: float | None = None,
    ) -> list[TableDescriptor]:
        """
        Walk the catalog and describe up to max_tables matching tables.

        Raises:
            IntrospectionError: If a catalog or column query fails
            QueryTimeoutError: If a catalog or column query exceeds its deadline
        """
        if max_tables < 1:
            raise ValueError("max_tables must be > 0")

        try:
            candidates = await self.list_tables(connector, timeout)
        except QueryTimeoutError:
            raise
        except ConnectorError as e:
            logger.error(f"[{self.dialect}] Table enumeration failed: {e}")
            raise IntrospectionError(self.dialect, "list tables", e) from e

        descriptors: list[TableDescriptor] = []
        for table in candidates:
            name = table.qualified_name
            if not table_filter.matches(name):
                continue

            try:
                columns = await self.list_columns(connector, table, timeout)
            except QueryTimeoutError:
                raise
            except ConnectorError as e:
                logger.error(f"[{self.dialect}] Column lookup failed for {name}: {e}")
                raise IntrospectionError(self.dialect, f"columns for {name}", e) from e

            descriptors.append(TableDescriptor(name=name, columns=tuple(columns)))
            if len(descriptors) >= max_tables:
                break

        logger.info(
            f"[{self.dialect}] Introspected {len(descriptors)} of {len(candidates)} tables"
        )
        return descriptors


class SQLiteIntrospector(Introspector):
    """Reads sqlite_master, then runs a zero-row SELECT against each table."""

    dialect = "sqlite"

    TABLES_QUERY = """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table' AND name NOT LIKE 'sqlite_%'
        ORDER BY name
    """

    async def list_tables(self, connector, timeout=None):
        result = await connector.fetch(self.TABLES_QUERY, timeout=timeout)
        return [TableRef(name=_text(row[0])) for row in result.rows]

    async def list_columns(self, connector, table, timeout=None):
        escaped = table.name.replace('"', '""')
        shape = await connector.fetch(f'SELECT * FROM "{escaped}" LIMIT 0', timeout=timeout)
        # sqlite3 reports no column types, so declared types come from table_xinfo
        # rows: (cid, name, type, notnull, dflt_value, pk, hidden)
        info = await connector.fetch(f'PRAGMA table_xinfo("{escaped}")', timeout=timeout)
        declared = {_text(row[1]): row[2] for row in info.rows}
        return [_column_entry(name, declared.get(name, "")) for name in shape.columns]


class PostgresIntrospector(Introspector):
    """Reads information_schema, skipping the system schemas."""

    dialect = "postgres"

    TABLES_QUERY = """
        SELECT table_schema, table_name
        FROM information_schema.tables
        WHERE table_type = 'BASE TABLE'
          AND table_schema NOT IN ('pg_catalog', 'information_schema')
        ORDER BY table_schema, table_name
    """

    COLUMNS_QUERY = """
        SELECT column_name, data_type
        FROM information_schema.columns
        WHERE table_schema = $1 AND table_name = $2
        ORDER BY ordinal_position
    """

    async def list_tables(self, connector, timeout=None):
        result = await connector.fetch(self.TABLES_QUERY, timeout=timeout)
        return [TableRef(name=_text(row[1]), schema=_text(row[0])) for row in result.rows]

    async def list_columns(self, connector, table, timeout=None):
        result = await connector.fetch(
            self.COLUMNS_QUERY, params=[table.schema, table.name], timeout=timeout
        )
        return [_column_entry(row[0], row[1]) for row in result.rows]


class MySQLIntrospector(Introspector):
    """Reads information_schema for the current database."""

    dialect = "mysql"

    TABLES_QUERY = """
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = DATABASE()
        ORDER BY table_name
    """

    COLUMNS_QUERY = """
        SELECT column_name, data_type
        FROM information_schema.columns
        WHERE table_schema = DATABASE()
          AND table_name = %s
        ORDER BY ordinal_position
    """

    async def list_tables(self, connector, timeout=None):
        result = await connector.fetch(self.TABLES_QUERY, timeout=timeout)
        return [TableRef(name=_text(row[0])) for row in result.rows]

    async def list_columns(self, connector, table, timeout=None):
        result = await connector.fetch(
            self.COLUMNS_QUERY, params=[table.name], timeout=timeout
        )
        return [_column_entry(row[0], row[1]) for row in result.rows]


_INTROSPECTORS: dict[str, type[Introspector]] = {
    "sqlite": SQLiteIntrospector,
    "postgres": PostgresIntrospector,
    "mysql": MySQLIntrospector,
}


def get_introspector(dialect: str) -> Introspector:
    """Select the introspector variant for a dialect tag."""
    introspector_class = _INTROSPECTORS.get(dialect)
    if introspector_class is None:
        raise UnsupportedDialectError(dialect)
    return introspector_class()


async def introspect(
    connector: BaseConnector,
    dialect: str,
    table_scope: Sequence[str] | None,
    max_tables: int,
    timeout: float | None = None,
) -> list[TableDescriptor]:
    """
    Discover tables and columns for one dialect.

    Args:
        connector: Connected connector for the database
        dialect: sqlite, postgres or mysql
        table_scope: Table names to keep (empty = all tables)
        max_tables: Maximum descriptors to return
        timeout: Per-query deadline in seconds (None = connector default)

    Returns:
        TableDescriptors in catalog order

    Raises:
        UnsupportedDialectError: If the dialect has no introspector
        IntrospectionError: If a catalog or column query fails
    """
    introspector = get_introspector(dialect)
    return await introspector.introspect(
        connector, TableFilter(table_scope), max_tables, timeout=timeout
    )
