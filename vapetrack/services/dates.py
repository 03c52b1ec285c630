"""Timestamp helpers.

Every timestamp is stored as a UTC ISO-8601 string with second precision and a
trailing ``Z`` so that plain string comparison orders them chronologically.
Calendar filters (a day, a month) are interpreted in the shop's local timezone
and converted into UTC bounds before they reach a query.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from ..core.config import settings
from ..core.errors import DomainError


def _local_tz() -> ZoneInfo:
    return ZoneInfo(settings.TZ)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_iso(ts: str | None, tz: str | None = None) -> datetime | None:
    """Parse an ISO-8601 timestamp string.

    If naive, attach the provided tz (shop timezone by default). Returns None if ts is falsy.
    """
    if not ts:
        return None
    dt = datetime.fromisoformat(ts.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo(tz) if tz else _local_tz())
    return dt


def to_utc_iso(value: datetime | str) -> str:
    """Normalise a user supplied timestamp to the stored UTC format.

    Raises ``DomainError`` when the value cannot be parsed.
    """
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=_local_tz())
    else:
        try:
            dt = parse_iso(value)
        except ValueError:
            dt = None
        if dt is None:
            raise DomainError("Invalid date format. Use an ISO-8601 string.")
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_day(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError as exc:
        raise DomainError(f"Invalid date '{value}'. Use YYYY-MM-DD.") from exc


def _local_bounds(first: date, last: date) -> tuple[str, str]:
    tz = _local_tz()
    start = datetime.combine(first, time.min, tzinfo=tz)
    end = datetime.combine(last, time(23, 59, 59), tzinfo=tz)
    return to_utc_iso(start), to_utc_iso(end)


def day_bounds(value: date | str) -> tuple[str, str]:
    """Inclusive UTC bounds of one local calendar day."""

    day = parse_day(value)
    return _local_bounds(day, day)


def month_bounds(month_year: str) -> tuple[str, str]:
    """Inclusive UTC bounds of a ``YYYY-MM`` local calendar month."""

    try:
        year_text, month_text = month_year.strip().split("-", 1)
        year, month = int(year_text), int(month_text)
        last_day = calendar.monthrange(year, month)[1]
    except (ValueError, calendar.IllegalMonthError) as exc:
        raise DomainError(f"Invalid month '{month_year}'. Use YYYY-MM.") from exc
    return _local_bounds(date(year, month, 1), date(year, month, last_day))


def local_today() -> date:
    return datetime.now(_local_tz()).date()


def fmt_local(ts: str | None, fmt: str = "%b %d, %Y %H:%M") -> str:
    """Render a stored timestamp in the shop timezone for log messages."""

    dt = parse_iso(ts, "UTC") if ts else datetime.now(timezone.utc)
    return dt.astimezone(_local_tz()).strftime(fmt) if dt else ""
