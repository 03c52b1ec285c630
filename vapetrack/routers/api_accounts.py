from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud.accounts import (
    get_batch,
    payable_summary,
    receivable_summary,
    settle_batch_due,
    settle_expense_due,
    supplier_overview,
)
from ..crud.expenses import get_expense
from ..db.session import get_db
from ..deps.auth import require_admin
from ..models.user import ManagedUser
from ..schemas.accounts import PayableSummary, ReceivableSummary, SettleRequest, SupplierOverview
from ..schemas.expense import ExpenseOut
from ..schemas.product import AcquisitionBatchOut

router = APIRouter(prefix="/api/accounts", tags=["accounts"], dependencies=[Depends(require_admin)])


@router.get("/payable-summary", response_model=PayableSummary)
def api_payable_summary(db: Session = Depends(get_db)):
    return payable_summary(db)


@router.post("/payables/batches/{batch_id}/settle", response_model=AcquisitionBatchOut)
def api_settle_batch(
    batch_id: int,
    payload: SettleRequest,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(require_admin),
):
    batch = get_batch(db, batch_id)
    if not batch:
        raise HTTPException(status_code=404, detail="Acquisition batch not found")
    return settle_batch_due(db, batch, payload.amount, payload.method.value, actor=user.name)


@router.post("/payables/expenses/{expense_id}/settle", response_model=ExpenseOut)
def api_settle_expense(
    expense_id: int,
    payload: SettleRequest,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(require_admin),
):
    expense = get_expense(db, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return settle_expense_due(db, expense, payload.amount, payload.method.value, actor=user.name)


@router.get("/receivable-summary", response_model=ReceivableSummary)
def api_receivable_summary(db: Session = Depends(get_db)):
    return receivable_summary(db)


@router.get("/suppliers", response_model=list[SupplierOverview])
def api_suppliers(db: Session = Depends(get_db)):
    return supplier_overview(db)
