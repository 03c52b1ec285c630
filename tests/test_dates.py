from datetime import date

import pytest

from vapetrack.core.errors import DomainError
from vapetrack.services.dates import month_bounds, parse_day, to_utc_iso


def test_parse_day_accepts_plain_dates():
    assert parse_day("2024-01-31") == date(2024, 1, 31)
    assert parse_day(" 2024-02-29 ") == date(2024, 2, 29)
    assert parse_day(date(2024, 5, 1)) == date(2024, 5, 1)


@pytest.mark.parametrize("value", ["2024-01-01xyz", "2024-01-01T10:00:00", "2024-13-01", "yesterday", ""])
def test_parse_day_rejects_anything_else(value):
    with pytest.raises(DomainError):
        parse_day(value)


def test_month_bounds_cover_the_whole_month():
    start, end = month_bounds("2024-02")
    assert start < end
    assert to_utc_iso("2024-02-29T12:00:00") <= end
    with pytest.raises(DomainError):
        month_bounds("2024-13")
