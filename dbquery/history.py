"""
Query History

Append-only JSONL audit log of every natural-language request, written
best-effort after each run. A failed history write never replaces the
run's own result or error.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_serializer

from dbquery.errors import ConfigurationError
from dbquery.executor import format_rfc3339_nano

logger = logging.getLogger(__name__)


class HistoryEntry(BaseModel):
    """One recorded request."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    mode: str
    db_type: str
    profile: str = ""
    natural_query: str
    sql: str = ""
    rows: int = 0
    duration_ms: int = 0
    error: str = ""

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return format_rfc3339_nano(value)

    def to_json_dict(self) -> dict:
        payload = self.model_dump(mode="json")
        for key in ("profile", "sql", "error"):
            if not payload[key]:
                payload.pop(key)
        return payload


def append_history_entry(path: str | Path, entry: HistoryEntry) -> None:
    """
    Append one entry as a JSON line, creating the parent directory.

    Raises:
        OSError: If the file cannot be written
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "a", encoding="utf-8") as handle:
        handle.write(json.dumps(entry.to_json_dict(), ensure_ascii=False) + "\n")


def record_history_best_effort(
    path: str | Path | None,
    entry: HistoryEntry,
    enabled: bool = True,
) -> None:
    """Append an entry, logging instead of raising when the write fails."""
    if not enabled or not path:
        return
    try:
        append_history_entry(path, entry)
    except OSError as e:
        logger.warning(f"Failed to write history: {e}")


def read_history_entries(path: str | Path) -> list[HistoryEntry]:
    """
    Read every entry in file order; a missing file yields an empty list.

    Raises:
        ConfigurationError: If the file cannot be read or a line is malformed
    """
    try:
        with open(path, encoding="utf-8") as handle:
            lines = handle.readlines()
    except FileNotFoundError:
        return []
    except OSError as e:
        raise ConfigurationError(f"open history file: {e}") from e

    entries = []
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            entries.append(HistoryEntry.model_validate_json(line))
        except ValidationError as e:
            raise ConfigurationError(f"parse history entry: {e}") from e
    return entries


def history_rows(entries: list[HistoryEntry], full: bool = False) -> tuple[list[str], list[dict]]:
    """Columns and rows for the tabular history view."""
    columns = ["timestamp", "mode", "db", "rows", "ms", "query", "error"]
    if full:
        columns.insert(6, "sql")

    rows = []
    for entry in entries:
        row = {
            "timestamp": format_rfc3339_nano(entry.timestamp.replace(microsecond=0)),
            "mode": entry.mode,
            "db": entry.db_type,
            "rows": entry.rows,
            "ms": entry.duration_ms,
            "query": entry.natural_query,
            "error": entry.error,
        }
        if full:
            row["sql"] = entry.sql
        rows.append(row)
    return columns, rows
