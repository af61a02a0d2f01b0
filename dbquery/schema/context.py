"""Schema context text handed to the language model."""

from collections.abc import Sequence
from pathlib import Path

from dbquery.errors import ConfigurationError
from dbquery.models import TableDescriptor


def build_schema_context(
    tables: Sequence[TableDescriptor],
    schema_file: str | Path | None = None,
) -> str:
    """
    Render discovered tables, plus an optional hand-written schema file.

    Raises:
        ConfigurationError: If the schema file cannot be read
    """
    lines = ["Discovered schema:"]
    if tables:
        lines.extend(f"- {table.describe()}" for table in tables)
    else:
        lines.append("(no tables discovered)")
    context = "\n".join(lines) + "\n"

    if schema_file:
        try:
            content = Path(schema_file).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"read --schema-file: {exc}") from exc
        context += "\nExtra schema context from file:\n" + content
        if not content.endswith("\n"):
            context += "\n"

    return context
