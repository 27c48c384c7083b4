"""Date parsing shared by feeds, the sitemap and the datefmt filter."""

from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional, Tuple

DATE_FIELDS = ('date', 'published', 'created', 'pubDate')

DATE_FORMATS = [
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%Y-%m-%d',
    '%b %d, %Y',
    '%B %d, %Y',
]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_date(value: Any) -> Optional[datetime]:
    """Parse a frontmatter date value into an aware datetime.

    Naive values are taken as UTC. Returns None when the value can't be
    understood as a date.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            parsed = None
            for date_format in DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, date_format)
                    break
                except ValueError:
                    continue
            if parsed is None:
                return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def find_date(fields: Mapping[str, Any]) -> Tuple[Optional[str], Any]:
    """Return (field name, raw value) for the first present date field."""
    for name in DATE_FIELDS:
        value = fields.get(name)
        if value is not None and value != '':
            return name, value
    return None, None
