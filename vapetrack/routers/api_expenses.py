from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..crud.expenses import create_expense, delete_expense, get_expense, list_expenses, update_expense
from ..db.session import get_db
from ..deps.auth import get_current_user, require_admin
from ..models.expense import Expense
from ..models.user import ManagedUser
from ..schemas.expense import ExpenseCreate, ExpenseOut, ExpenseUpdate

router = APIRouter(prefix="/api/expenses", tags=["expenses"], dependencies=[Depends(get_current_user)])


def _expense_or_404(db: Session, expense_id: int) -> Expense:
    expense = get_expense(db, expense_id)
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return expense


@router.get("", response_model=list[ExpenseOut])
def api_list_expenses(
    date: str | None = None,
    category: str | None = None,
    recorded_by: str | None = None,
    db: Session = Depends(get_db),
):
    return list_expenses(db, date=date, category=category, recorded_by=recorded_by)


@router.post("", response_model=ExpenseOut, status_code=201)
def api_create_expense(
    payload: ExpenseCreate,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(get_current_user),
):
    return create_expense(db, payload.model_dump(), actor=user.name)


@router.get("/{expense_id}", response_model=ExpenseOut)
def api_get_expense(expense_id: int, db: Session = Depends(get_db)):
    return _expense_or_404(db, expense_id)


@router.put("/{expense_id}", response_model=ExpenseOut)
def api_update_expense(
    expense_id: int,
    payload: ExpenseUpdate,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(require_admin),
):
    expense = _expense_or_404(db, expense_id)
    return update_expense(db, expense, payload.model_dump(exclude_unset=True), actor=user.name)


@router.delete("/{expense_id}")
def api_delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    user: ManagedUser = Depends(require_admin),
):
    expense = _expense_or_404(db, expense_id)
    delete_expense(db, expense, actor=user.name)
    return {"message": f"Expense {expense_id} deleted successfully."}
