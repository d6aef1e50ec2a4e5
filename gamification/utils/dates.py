"""
Datetime helpers.

All stored datetimes are naive UTC, matching `datetime.utcnow` defaults
on the models.
"""
from datetime import date, datetime, timezone
from typing import Any, Optional


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 value into a naive UTC datetime.

    Accepts datetime, date, or ISO strings (a trailing 'Z' is allowed).
    Returns None for None/empty input.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f'Unsupported datetime value: {value!r}')

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
