"""
Schema Module

Table discovery and prompt context.

Usage:
    from dbquery.schema import build_schema_context, introspect

    tables = await introspect(connector, "sqlite", ["users"], max_tables=40)
    context = build_schema_context(tables)
"""

from dbquery.schema.context import build_schema_context
from dbquery.schema.filters import TableFilter
from dbquery.schema.introspector import (
    Introspector,
    MySQLIntrospector,
    PostgresIntrospector,
    SQLiteIntrospector,
    TableRef,
    get_introspector,
    introspect,
)

__all__ = [
    "Introspector",
    "SQLiteIntrospector",
    "PostgresIntrospector",
    "MySQLIntrospector",
    "TableFilter",
    "TableRef",
    "build_schema_context",
    "get_introspector",
    "introspect",
]
