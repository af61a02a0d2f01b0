"""
Pipeline Errors

Error taxonomy for the query pipeline. Every error carries enough context
(dialect, failing step, or rejected SQL) for the caller to report a precise
message.

Hierarchy:
    DBQueryError
    ├── UnsupportedDialectError   - unknown database type (fatal)
    ├── IntrospectionError        - catalog or column lookup failed
    ├── NotReadOnlyError          - generated SQL rejected by the read-only guard
    ├── ExecutionError            - driver error while running the statement
    ├── RenderError               - result could not be rendered
    │   └── UnsupportedFormatError
    ├── SQLGenerationError        - language model call failed or returned nothing
    └── ConfigurationError        - invalid options, settings, profiles or history files
"""


class DBQueryError(Exception):
    """Base exception for pipeline errors."""

    pass


class UnsupportedDialectError(DBQueryError):
    """Database type is not one of sqlite, postgres, mysql."""

    def __init__(self, dialect: str, message: str | None = None):
        self.dialect = dialect
        super().__init__(
            message
            or f"unsupported db type {dialect!r} (expected sqlite|postgres|postgresql|mysql)"
        )


class IntrospectionError(DBQueryError):
    """Schema discovery failed at a dialect-specific step."""

    def __init__(self, dialect: str, step: str, cause: Exception):
        self.dialect = dialect
        self.step = step
        self.cause = cause
        super().__init__(f"{dialect} introspection failed ({step}): {cause}")


class NotReadOnlyError(DBQueryError):
    """Generated SQL does not look read-only."""

    def __init__(self, message: str, sql: str, keyword: str | None = None):
        self.sql = sql
        self.keyword = keyword
        super().__init__(message)


class ExecutionError(DBQueryError):
    """Statement failed in the database driver."""

    def __init__(self, sql: str, cause: Exception):
        self.sql = sql
        self.cause = cause
        super().__init__(str(cause))


class RenderError(DBQueryError):
    """Result set could not be rendered."""

    pass


class UnsupportedFormatError(RenderError):
    """Output format is not table or json."""

    def __init__(self, format: str):
        self.format = format
        super().__init__(f"unsupported output format {format!r}")


class SQLGenerationError(DBQueryError):
    """Language model failed to produce SQL."""

    pass


class ConfigurationError(DBQueryError):
    """Invalid run options or on-disk configuration."""

    pass
