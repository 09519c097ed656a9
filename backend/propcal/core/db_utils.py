from datetime import date, datetime, timezone
from typing import Any

Row = dict[str, Any]


def first_row(data: Any) -> Row | None:
    if isinstance(data, list) and len(data) > 0 and isinstance(data[0], dict):
        return data[0]
    if isinstance(data, dict):
        return data
    return None


def all_rows(data: Any) -> list[Row]:
    if isinstance(data, list):
        return [r for r in data if isinstance(r, dict)]
    return []


def related(row: Row, *path: str) -> Row:
    """Walk embedded relations of a row, tolerating missing or null links."""
    current: Any = row
    for key in path:
        current = current.get(key) if isinstance(current, dict) else None
        if isinstance(current, list):
            current = first_row(current)
    return current if isinstance(current, dict) else {}


def parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).replace("Z", "+00:00")
        if len(text) == 10:
            parsed = datetime.strptime(text, "%Y-%m-%d")
        else:
            parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
