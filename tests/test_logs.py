from datetime import datetime, timedelta

import pytest

from vapetrack.crud.logs import add_log_entry, list_log_entries
from vapetrack.models.log_entry import LogEntry
from vapetrack.services.dates import day_bounds

STAMP = "%Y-%m-%dT%H:%M:%SZ"


def _shift(ts, seconds):
    return (datetime.strptime(ts, STAMP) + timedelta(seconds=seconds)).strftime(STAMP)


@pytest.fixture()
def dated_entries(db_session):
    """Entries straddling the local days 2024-03-10 and 2024-03-11."""

    first_start, _ = day_bounds("2024-03-10")
    _, second_end = day_bounds("2024-03-11")
    stamps = {
        "before": _shift(first_start, -1),
        "first_start": first_start,
        "second_end": second_end,
        "after": _shift(second_end, 1),
    }
    for label, ts in stamps.items():
        db_session.add(LogEntry(timestamp=ts, user="Owner", action=f"Entry {label}", details=""))
    db_session.commit()
    return stamps


def _labels(entries):
    return [entry.action.removeprefix("Entry ") for entry in entries]


def test_start_date_only_is_inclusive(db_session, dated_entries):
    assert _labels(list_log_entries(db_session, start_date="2024-03-10")) == [
        "after",
        "second_end",
        "first_start",
    ]


def test_end_date_only_is_inclusive(db_session, dated_entries):
    assert _labels(list_log_entries(db_session, end_date="2024-03-11")) == [
        "second_end",
        "first_start",
        "before",
    ]


def test_date_range_keeps_both_boundary_days(db_session, dated_entries):
    entries = list_log_entries(db_session, start_date="2024-03-10", end_date="2024-03-11")
    assert _labels(entries) == ["second_end", "first_start"]
    assert list_log_entries(db_session, start_date="2024-03-12", end_date="2024-03-12") == []


def test_action_and_user_filters_are_case_insensitive(db_session):
    add_log_entry(db_session, "Sita", "Sale Created", "Sale #1")
    add_log_entry(db_session, "Owner", "Expense Recorded", "Rent")
    add_log_entry(db_session, None, "Product Damage", "auto")
    db_session.commit()

    assert [e.user for e in list_log_entries(db_session, action="sale")] == ["Sita"]
    assert [e.action for e in list_log_entries(db_session, user="OWN")] == ["Expense Recorded"]
    assert [e.user for e in list_log_entries(db_session, action="damage")] == ["System"]
