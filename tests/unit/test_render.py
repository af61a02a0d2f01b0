"""Unit tests for result rendering."""

import json

import pytest

from dbquery.errors import RenderError, UnsupportedFormatError
from dbquery.render import format_cell, render, render_table

COLUMNS = ["id", "email", "active"]
ROWS = [
    {"id": 1, "email": "a@example.com", "active": True},
    {"id": 22, "email": None, "active": False},
]


def test_table_layout():
    assert render("table", COLUMNS, ROWS) == "\n".join(
        [
            "+----+---------------+--------+",
            "| id | email         | active |",
            "+----+---------------+--------+",
            "| 1  | a@example.com | true   |",
            "| 22 | NULL          | false  |",
            "+----+---------------+--------+",
        ]
    )


def test_table_without_rows():
    assert render_table(["id"], []) == "+----+\n| id |\n+----+\n+----+\n(0 rows)"


def test_table_without_columns():
    assert render_table([], []) == "No rows returned."


def test_cells_are_single_line():
    assert format_cell("a\nb\rc") == "a b c"


@pytest.mark.parametrize(
    "value, expected",
    [
        (100.0, "100"),
        (-3.0, "-3"),
        (2.5, "2.5"),
        (1e20, "100000000000000000000"),
        (1e21, "1e+21"),
        (0.00001, "1e-05"),
        (float("nan"), "NaN"),
        (float("inf"), "+Inf"),
        (float("-inf"), "-Inf"),
    ],
)
def test_float_cells(value, expected):
    assert format_cell(value) == expected


def test_whole_float_in_table():
    output = render_table(["total"], [{"total": 100.0}])

    assert "| 100   |" in output


def test_json_keeps_column_order():
    output = render(" JSON ", ["z", "a"], [{"a": 1, "z": "é"}])

    assert output == '[\n  {\n    "z": "é",\n    "a": 1\n  }\n]'
    assert json.loads(output) == [{"z": "é", "a": 1}]


def test_json_empty():
    assert render("json", ["id"], []) == "[]"


def test_json_rejects_nan():
    with pytest.raises(RenderError, match="marshal json output"):
        render("json", ["x"], [{"x": float("nan")}])


def test_unknown_format():
    with pytest.raises(UnsupportedFormatError, match="unsupported output format 'csv'"):
        render("csv", COLUMNS, ROWS)
