"""Conversions between the DD/MM/YYYY display format and ISO storage dates."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

DISPLAY_FORMAT = '%d/%m/%Y'
TIME_FORMAT = '%I:%M %p'

DateLike = Union[date, datetime, str, None]


def _from_slashes(text: str) -> Optional[date]:
    parts = text.split('/')
    if len(parts) != 3:
        return None
    try:
        first, second, year = (int(part) for part in parts)
    except ValueError:
        return None
    # 03/25/2025 can only be month-first; anything else is read day-first.
    if first <= 12 and second > 12:
        month, day = first, second
    else:
        day, month = first, second
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(value: DateLike) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if 'T' in text:
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None
    if '/' in text:
        return _from_slashes(text)
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def format_date(value: DateLike) -> str:
    if value is None or value == '':
        return ''
    parsed = parse_date(value)
    if parsed is None:
        return value if isinstance(value, str) else ''
    return parsed.strftime(DISPLAY_FORMAT)


def to_storage(value: DateLike) -> Optional[str]:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def current_date() -> str:
    return format_date(date.today())


def current_time(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime(TIME_FORMAT)


def days_remaining(value: DateLike, today: Optional[date] = None) -> Optional[int]:
    target = parse_date(value)
    if target is None:
        return None
    return (target - (today or date.today())).days
