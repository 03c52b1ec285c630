from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..crud.logs import list_log_entries
from ..db.session import get_db
from ..deps.auth import require_admin
from ..schemas.accounts import LogEntryOut

router = APIRouter(prefix="/api/logs", tags=["logs"], dependencies=[Depends(require_admin)])


@router.get("", response_model=list[LogEntryOut])
def api_list_logs(
    start_date: str | None = None,
    end_date: str | None = None,
    action: str | None = None,
    user: str | None = None,
    limit: int | None = None,
    db: Session = Depends(get_db),
):
    return list_log_entries(
        db,
        start_date=start_date,
        end_date=end_date,
        action=action,
        user=user,
        limit=limit,
    )
