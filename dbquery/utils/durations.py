"""
Duration Strings

Timeouts are written the way Go formats durations ("30s", "1m30s", "500ms")
so profile files stay interchangeable with other dbquery builds. Plain
numbers are read as seconds.
"""

import re

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT_PATTERN = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_NUMBER_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")


def parse_duration(value: str | int | float) -> float:
    """
    Parse a duration into seconds.

    Accepts numbers (seconds) and unit strings such as "45s", "2m" or
    "1h15m".

    Raises:
        ValueError: If the text is not a duration
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    text = value.strip()
    if _NUMBER_PATTERN.fullmatch(text):
        return float(text)

    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0

    total = 0.0
    position = 0
    while position < len(text):
        match = _COMPONENT_PATTERN.match(text, position)
        if not match:
            raise ValueError(f"invalid duration {value!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()

    if position == 0:
        raise ValueError(f"invalid duration {value!r}")
    return sign * total


def _fraction(value: int, unit: int) -> str:
    whole, remainder = divmod(value, unit)
    if not remainder:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}." + f"{remainder:0{digits}d}".rstrip("0")


def format_duration(seconds: float) -> str:
    """Format seconds the way Go's time.Duration.String() does."""
    nanos = round(seconds * 1_000_000_000)
    if nanos == 0:
        return "0s"

    sign = "-" if nanos < 0 else ""
    nanos = abs(nanos)

    if nanos < 1_000:
        return f"{sign}{nanos}ns"
    if nanos < 1_000_000:
        return f"{sign}{_fraction(nanos, 1_000)}µs"
    if nanos < 1_000_000_000:
        return f"{sign}{_fraction(nanos, 1_000_000)}ms"

    hours, nanos = divmod(nanos, 3_600_000_000_000)
    minutes, nanos = divmod(nanos, 60_000_000_000)
    secs = _fraction(nanos, 1_000_000_000) + "s"
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}"
    if minutes:
        return f"{sign}{minutes}m{secs}"
    return f"{sign}{secs}"
