"""Result rendering as a bordered text table or indented JSON."""

import json
import math
from collections.abc import Mapping, Sequence
from typing import Any

from dbquery.errors import RenderError, UnsupportedFormatError

OUTPUT_FORMATS = ("table", "json")


def render(format: str, columns: Sequence[str], rows: Sequence[Mapping[str, Any]]) -> str:
    """
    Render a result set.

    Args:
        format: "table" or "json" (case-insensitive)
        columns: Column names in display order
        rows: Row mappings keyed by column name

    Raises:
        UnsupportedFormatError: If the format is unknown
        RenderError: If a value cannot be represented in JSON
    """
    name = (format or "").strip().lower()
    if name == "json":
        return render_json(columns, rows)
    if name == "table":
        return render_table(columns, rows)
    raise UnsupportedFormatError(format)


def render_json(columns: Sequence[str], rows: Sequence[Mapping[str, Any]]) -> str:
    payload = [{column: row.get(column) for column in columns if column in row} for row in rows]
    try:
        return json.dumps(payload, indent=2, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise RenderError(f"marshal json output: {e}") from e


def _format_float(value: float) -> str:
    # whole numbers print without a fraction until the exponent form takes over at 1e21
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def format_cell(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    return str(value).replace("\n", " ").replace("\r", " ")


def _border(widths: list[int]) -> str:
    return "+" + "+".join("-" * (width + 2) for width in widths) + "+"


def _row(values: Sequence[str], widths: list[int]) -> str:
    cells = (f" {value.ljust(width)} " for value, width in zip(values, widths))
    return "|" + "|".join(cells) + "|"


def render_table(columns: Sequence[str], rows: Sequence[Mapping[str, Any]]) -> str:
    if not columns:
        return "No rows returned."

    widths = [len(column) for column in columns]
    lines = []
    for row in rows:
        line = [format_cell(row.get(column)) for column in columns]
        for i, value in enumerate(line):
            widths[i] = max(widths[i], len(value))
        lines.append(line)

    border = _border(widths)
    output = [border, _row(columns, widths), border]
    output.extend(_row(line, widths) for line in lines)
    output.append(border)

    text = "\n".join(output)
    if not rows:
        text += "\n(0 rows)"
    return text
