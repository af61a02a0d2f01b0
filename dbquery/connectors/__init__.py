"""
Database Connectors Module

Provides async database connectors for the supported dialects.

Available Connectors:
    - BaseConnector: Abstract base class
    - SQLiteConnector: SQLite connector (sqlite3)
    - PostgresConnector: PostgreSQL connector (asyncpg)
    - MySQLConnector: MySQL connector (mysql-connector-python)

Usage:
    from dbquery.connectors import create_connector

    async with create_connector("postgres", "postgresql://localhost/app") as connector:
        result = await connector.fetch("SELECT * FROM users")
"""

from dbquery.connectors.base import (
    BaseConnector,
    ConnectionError,
    ConnectorError,
    QueryError,
    QueryResult,
    QueryTimeoutError,
)
from dbquery.connectors.factory import (
    SUPPORTED_DIALECTS,
    create_connector,
    detect_dialect,
    normalize_dialect,
)
from dbquery.connectors.mysql import MySQLConnector
from dbquery.connectors.postgres import PostgresConnector
from dbquery.connectors.sqlite import SQLiteConnector

__all__ = [
    "BaseConnector",
    "SQLiteConnector",
    "PostgresConnector",
    "MySQLConnector",
    "SUPPORTED_DIALECTS",
    "create_connector",
    "detect_dialect",
    "normalize_dialect",
    "QueryResult",
    "ConnectorError",
    "ConnectionError",
    "QueryError",
    "QueryTimeoutError",
]
