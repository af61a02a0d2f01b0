"""Unit tests for the query history log."""

import json
from datetime import datetime, timezone

import pytest

from dbquery.errors import ConfigurationError
from dbquery.history import (
    HistoryEntry,
    append_history_entry,
    history_rows,
    read_history_entries,
    record_history_best_effort,
)


def _entry(**overrides) -> HistoryEntry:
    values = {
        "timestamp": datetime(2024, 5, 1, 12, 0, 0, 250000, tzinfo=timezone.utc),
        "mode": "query",
        "db_type": "sqlite",
        "natural_query": "how many users?",
        "sql": "SELECT count(*) FROM users LIMIT 10;",
        "rows": 1,
        "duration_ms": 12,
    }
    values.update(overrides)
    return HistoryEntry(**values)


def test_json_omits_empty_fields():
    payload = _entry(sql="").to_json_dict()

    assert payload == {
        "timestamp": "2024-05-01T12:00:00.25Z",
        "mode": "query",
        "db_type": "sqlite",
        "natural_query": "how many users?",
        "rows": 1,
        "duration_ms": 12,
    }


def test_append_and_read(tmp_path):
    path = tmp_path / "state" / "history.jsonl"

    append_history_entry(path, _entry())
    append_history_entry(path, _entry(mode="chat", profile="dev", error="boom"))

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert json.loads(lines[1])["profile"] == "dev"

    entries = read_history_entries(path)
    assert [entry.mode for entry in entries] == ["query", "chat"]
    assert entries[1].error == "boom"
    assert entries[0].timestamp == _entry().timestamp


def test_read_missing_file(tmp_path):
    assert read_history_entries(tmp_path / "history.jsonl") == []


def test_read_skips_blank_lines(tmp_path):
    path = tmp_path / "history.jsonl"
    path.write_text(json.dumps(_entry().to_json_dict()) + "\n\n", encoding="utf-8")

    assert len(read_history_entries(path)) == 1


def test_read_malformed_line(tmp_path):
    path = tmp_path / "history.jsonl"
    path.write_text("{oops\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="parse history entry"):
        read_history_entries(path)


def test_best_effort_logs_failures(tmp_path, caplog):
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")

    record_history_best_effort(blocker / "history.jsonl", _entry())

    assert "Failed to write history" in caplog.text


def test_best_effort_disabled(tmp_path):
    path = tmp_path / "history.jsonl"

    record_history_best_effort(path, _entry(), enabled=False)
    record_history_best_effort(None, _entry())

    assert not path.exists()


def test_history_rows():
    columns, rows = history_rows([_entry(error="timeout")])

    assert columns == ["timestamp", "mode", "db", "rows", "ms", "query", "error"]
    assert rows == [
        {
            "timestamp": "2024-05-01T12:00:00Z",
            "mode": "query",
            "db": "sqlite",
            "rows": 1,
            "ms": 12,
            "query": "how many users?",
            "error": "timeout",
        }
    ]


def test_history_rows_full():
    columns, rows = history_rows([_entry()], full=True)

    assert columns == ["timestamp", "mode", "db", "rows", "ms", "query", "sql", "error"]
    assert rows[0]["sql"] == "SELECT count(*) FROM users LIMIT 10;"
