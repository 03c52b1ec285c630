from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base


class LogEntry(Base):
    """Append-only audit trail of user and system actions."""

    __tablename__ = "log_entries"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(Text, nullable=False, index=True)
    user = Column(Text, nullable=False)
    action = Column(Text, nullable=False)
    details = Column(Text, nullable=False, default="")
