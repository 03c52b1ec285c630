from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..deps.auth import get_current_user, require_admin
from ..services.reporting import dashboard_summary, sales_analytics

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/dashboard", dependencies=[Depends(get_current_user)])
def api_dashboard(db: Session = Depends(get_db)):
    return dashboard_summary(db)


@router.get("/analytics", dependencies=[Depends(require_admin)])
def api_analytics(month_year: str | None = None, db: Session = Depends(get_db)):
    return sales_analytics(db, month_year=month_year)
