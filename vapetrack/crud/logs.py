"""Audit trail helpers."""

from __future__ import annotations

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..models.log_entry import LogEntry
from ..services.dates import day_bounds, utcnow_iso

SYSTEM_ACTOR = "System"


def add_log_entry(db: Session, actor: str | None, action: str, details: str = "") -> LogEntry:
    """Stage a log row on the session; the caller's commit persists it."""

    entry = LogEntry(
        timestamp=utcnow_iso(),
        user=(actor or "").strip() or SYSTEM_ACTOR,
        action=action,
        details=details,
    )
    db.add(entry)
    return entry


def list_log_entries(
    db: Session,
    *,
    start_date: str | None = None,
    end_date: str | None = None,
    action: str | None = None,
    user: str | None = None,
    limit: int | None = None,
) -> list[LogEntry]:
    """Newest-first audit trail narrowed by inclusive local days and substrings."""

    stmt = select(LogEntry)
    if start_date:
        stmt = stmt.where(LogEntry.timestamp >= day_bounds(start_date)[0])
    if end_date:
        stmt = stmt.where(LogEntry.timestamp <= day_bounds(end_date)[1])
    if action:
        stmt = stmt.where(func.lower(LogEntry.action).contains(action.strip().lower(), autoescape=True))
    if user:
        stmt = stmt.where(func.lower(LogEntry.user).contains(user.strip().lower(), autoescape=True))
    stmt = stmt.order_by(desc(LogEntry.timestamp), desc(LogEntry.id))
    if limit:
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars().all())


def latest_entry(db: Session, action_prefix: str, contains: str) -> LogEntry | None:
    """Most recent entry whose action starts with ``action_prefix`` and mentions ``contains``."""

    stmt = (
        select(LogEntry)
        .where(
            LogEntry.action.startswith(action_prefix, autoescape=True),
            LogEntry.details.contains(contains, autoescape=True),
        )
        .order_by(desc(LogEntry.timestamp), desc(LogEntry.id))
        .limit(1)
    )
    return db.execute(stmt).scalars().first()
