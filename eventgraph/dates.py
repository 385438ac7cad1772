"""Parsing and formatting of German date ranges."""
import re
from datetime import date, datetime
from typing import Optional, Tuple

from eventgraph.models import TimeRange

WEEKDAYS = ['Mo.', 'Di.', 'Mi.', 'Do.', 'Fr.', 'Sa.', 'So.']

_WEEKDAY_PREFIX = re.compile(r'^[A-Za-z]{2,10}\.?,?\s+')
# 12.04.2025
_SINGLE = re.compile(r'^(\d{1,2})\.(\d{1,2})\.(\d{4})$')
# 12.04.2025 - 13.04.2025
_FULL_RANGE = re.compile(r'^(\d{1,2})\.(\d{1,2})\.(\d{4})\s*-\s*(\d{1,2})\.(\d{1,2})\.(\d{4})$')
# 12.04.-13.04.2025
_MONTH_RANGE = re.compile(r'^(\d{1,2})\.(\d{1,2})\.\s*-\s*(\d{1,2})\.(\d{1,2})\.(\d{4})$')
# 12.-13.04.2025
_DAY_RANGE = re.compile(r'^(\d{1,2})\.\s*-\s*(\d{1,2})\.(\d{1,2})\.(\d{4})$')


def parse_date(text: str) -> date:
    """
    Parse a single date in German notation or ISO 8601.

    Args:
        text: Date like "12.04.2025" or "2025-04-12"

    Returns:
        Parsed date

    Raises:
        ValueError: If the text is not a date
    """
    text = _strip_weekday(text.strip())
    for fmt in ('%d.%m.%Y', '%Y-%m-%d'):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"cannot parse date '{text}'")


def format_date(day: date) -> str:
    return f"{WEEKDAYS[day.weekday()]} {day.strftime('%d.%m.%Y')}"


def _strip_weekday(text: str) -> str:
    return _WEEKDAY_PREFIX.sub('', text)


def _strip_range_weekdays(text: str) -> str:
    if '-' not in text:
        return _strip_weekday(text)
    first, second = text.split('-', 1)
    return f"{_strip_weekday(first.strip())}-{_strip_weekday(second.strip())}"


def _make(y: str, m: str, d: str) -> date:
    return date(int(y), int(m), int(d))


def parse_date_range(text: str) -> Tuple[date, date]:
    """
    Parse a date or date range.

    Args:
        text: "12.04.2025", "Sa. 12.04.2025", "12.04.2025 - 13.04.2025",
            "12.04.-13.04.2025" or "12.-13.04.2025"

    Returns:
        Tuple (start, end)

    Raises:
        ValueError: If the text is neither a date nor a range
    """
    s = _strip_range_weekdays(text.strip())

    m = _SINGLE.match(s)
    if m:
        d = _make(m.group(3), m.group(2), m.group(1))
        return d, d

    m = _FULL_RANGE.match(s)
    if m:
        start = _make(m.group(3), m.group(2), m.group(1))
        end = _make(m.group(6), m.group(5), m.group(4))
    else:
        m = _MONTH_RANGE.match(s)
        if m:
            start = _make(m.group(5), m.group(2), m.group(1))
            end = _make(m.group(5), m.group(4), m.group(3))
        else:
            m = _DAY_RANGE.match(s)
            if not m:
                try:
                    d = parse_date(s)
                except ValueError:
                    raise ValueError(f"cannot parse date range '{text}'") from None
                return d, d
            start = _make(m.group(4), m.group(3), m.group(1))
            end = _make(m.group(4), m.group(3), m.group(2))

    if end < start:
        raise ValueError(f"date range '{text}' ends before it starts")
    return start, end


def format_date_range(start: Optional[date], end: Optional[date]) -> str:
    if start is None:
        return ''
    if end is None or end == start:
        return format_date(start)
    return f"{format_date(start)} - {format_date(end)}"


def create_time_range(text: str) -> TimeRange:
    """
    Build a TimeRange from a DATE cell.

    An empty cell gives an unset range.

    Raises:
        ValueError: If the cell is not empty but holds no parsable date
    """
    text = text.strip()
    if not text:
        return TimeRange()
    start, end = parse_date_range(text)
    return TimeRange(start=start, end=end, original=text, formatted=format_date_range(start, end))
