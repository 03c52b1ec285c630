from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..crud.capital import get_capital, set_cash_in_hand, set_digital_balance
from ..db.session import get_db
from ..deps.auth import require_admin
from ..models.user import ManagedUser
from ..schemas.accounts import CapitalOut, CapitalUpdate

router = APIRouter(prefix="/api/capital", tags=["capital"], dependencies=[Depends(require_admin)])


@router.get("", response_model=CapitalOut)
def api_get_capital(db: Session = Depends(get_db)):
    return get_capital(db)


@router.post("", response_model=CapitalOut)
def api_set_cash(
    payload: CapitalUpdate,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(require_admin),
):
    return set_cash_in_hand(db, payload.amount, actor=user.name)


@router.post("/digital", response_model=CapitalOut)
def api_set_digital(
    payload: CapitalUpdate,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(require_admin),
):
    return set_digital_balance(db, payload.amount, actor=user.name)
