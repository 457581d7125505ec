"""Normalize raw form input: scores, ids, option lists, booleans and dates."""

import json
import math
import re
from datetime import UTC, datetime
from typing import Any, List, Optional

TRUTHY_STRINGS: frozenset[str] = frozenset({"true", "1", "yes", "on"})
FALSY_STRINGS: frozenset[str] = frozenset({"false", "0", "no", "off", ""})

_LEADING_INT = re.compile(r"^[+-]?\d+")


def coerce_score(value: Any) -> int:
    """Coerce score input to a non-negative integer.

    Negative, non-numeric, NaN and infinite input all become 0. Fractional
    input is truncated, so "2.9" becomes 2.
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return 0
        return max(0, int(value))

    s = str(value).strip()
    try:
        number = float(s)
    except ValueError:
        match = _LEADING_INT.match(s)
        return max(0, int(match.group())) if match else 0

    if math.isnan(number) or math.isinf(number):
        return 0
    return max(0, int(number))


def coerce_optional_int(value: Any) -> Optional[int]:
    """Parse an id or duration. Returns None for empty or unparseable input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value) or not value.is_integer():
            return None
        return int(value)

    s = str(value).strip()
    if not s:
        return None
    try:
        number = float(s)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number) or not number.is_integer():
        return None
    return int(number)


def coerce_bool(value: Any) -> bool:
    """Interpret checkbox-style input. Unknown strings raise ValueError."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return bool(value)

    s = str(value).strip().lower()
    if s in TRUTHY_STRINGS:
        return True
    if s in FALSY_STRINGS:
        return False
    raise ValueError(f"Not a boolean value: {value!r}")


def parse_options(value: Any) -> List[str]:
    """Turn an option list in any accepted representation into a list of strings.

    Accepts a list (of strings or {"text": ...} objects), a JSON array text
    blob such as '["A", "B"]', or newline-delimited text. Blank entries are
    dropped and surrounding whitespace stripped; order is preserved.
    """
    if value is None:
        return []

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                decoded = None
            if isinstance(decoded, list):
                return parse_options(decoded)
        return [line.strip() for line in text.splitlines() if line.strip()]

    if isinstance(value, (list, tuple)):
        options: List[str] = []
        for item in value:
            if isinstance(item, dict):
                item = item.get("text", "")
            if item is None:
                continue
            text = str(item).strip()
            if text:
                options.append(text)
        return options

    raise ValueError(f"Unsupported options value: {type(value).__name__}")


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 datetime, including the trailing 'Z' form.

    Returns None for empty or unparseable input.
    """
    if not value or not str(value).strip():
        return None
    s = str(value).strip()
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None


def to_utc_iso(value: datetime) -> str:
    """Format as UTC with millisecond precision and a trailing 'Z'.

    Naive datetimes are taken to already be in UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


def normalize_datetime(value: Optional[str]) -> Optional[str]:
    """Return the UTC ISO-8601 ('...Z') form of a datetime string, or None."""
    parsed = parse_datetime(value)
    return to_utc_iso(parsed) if parsed else None
