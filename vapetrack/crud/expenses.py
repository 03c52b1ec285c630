"""Expense CRUD helpers."""

from __future__ import annotations

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..core.errors import DomainError
from ..models.expense import SYSTEM_CATEGORIES, Expense
from ..services.dates import day_bounds, to_utc_iso, utcnow_iso
from ..services.payments import PaymentMethod, describe_split, fmt_money, resolve_split
from .logs import SYSTEM_ACTOR, add_log_entry


def _check_category(category: str | None) -> str:
    value = (category or "").strip()
    if not value:
        raise DomainError("Category is required.")
    if value.casefold() in {c.casefold() for c in SYSTEM_CATEGORIES}:
        raise DomainError(
            f"Categories {', '.join(repr(c) for c in SYSTEM_CATEGORIES)} are reserved for system entries."
        )
    return value


def _ensure_editable(expense: Expense) -> None:
    if expense.is_system or expense.category in SYSTEM_CATEGORIES:
        raise DomainError(f"System-generated expenses like '{expense.category}' cannot be changed directly.")


def list_expenses(
    db: Session,
    *,
    date: str | None = None,
    category: str | None = None,
    recorded_by: str | None = None,
) -> list[Expense]:
    stmt = select(Expense)
    if date:
        start, end = day_bounds(date)
        stmt = stmt.where(Expense.date >= start, Expense.date <= end)
    if category:
        stmt = stmt.where(func.lower(Expense.category).contains(category.strip().lower(), autoescape=True))
    if recorded_by:
        stmt = stmt.where(func.lower(Expense.recorded_by).contains(recorded_by.strip().lower(), autoescape=True))
    stmt = stmt.order_by(desc(Expense.date), desc(Expense.id))
    return list(db.execute(stmt).scalars().all())


def get_expense(db: Session, expense_id: int) -> Expense | None:
    return db.get(Expense, expense_id)


def create_expense(db: Session, payload: dict, actor: str) -> Expense:
    description = (payload.get("description") or "").strip()
    if not description:
        raise DomainError("Description is required.")
    category = _check_category(payload.get("category"))
    amount = float(payload.get("amount") or 0)
    if amount <= 0:
        raise DomainError("Amount must be a positive number.")
    split = resolve_split(
        payload.get("payment_method") or PaymentMethod.CASH,
        amount,
        payload.get("cash_paid"),
        payload.get("digital_paid"),
    )
    expense = Expense(
        date=to_utc_iso(payload.get("date") or utcnow_iso()),
        description=description,
        category=category,
        amount=split.total,
        recorded_by=actor,
        payment_method=split.method.value,
        cash_paid=split.cash,
        digital_paid=split.digital,
        amount_due=split.due,
        is_system=False,
    )
    db.add(expense)
    add_log_entry(
        db,
        actor,
        "Expense Recorded",
        f"Expense for '{description}' (Category: {category}), Amount: {fmt_money(split.total)}. "
        f"Paid via {describe_split(split)}.",
    )
    db.commit()
    db.refresh(expense)
    return expense


def add_system_expense(db: Session, *, description: str, category: str, amount: float, actor: str | None = None) -> Expense:
    """Stage an automatic write-off expense (tester allocation, damage).

    Recorded as fully paid digitally. The caller commits.
    """
    actor = actor or SYSTEM_ACTOR
    expense = Expense(
        date=utcnow_iso(),
        description=description,
        category=category,
        amount=round(amount, 2),
        recorded_by=actor,
        payment_method=PaymentMethod.DIGITAL.value,
        cash_paid=0.0,
        digital_paid=round(amount, 2),
        amount_due=0.0,
        is_system=True,
    )
    db.add(expense)
    add_log_entry(
        db,
        actor,
        "System Expense Recorded",
        f"Expense Category: {category}, Amount: {fmt_money(amount)}. Desc: {description}",
    )
    return expense


def update_expense(db: Session, expense: Expense, payload: dict, actor: str) -> Expense:
    _ensure_editable(expense)
    changes: list[str] = []

    if "description" in payload and payload["description"] is not None:
        description = payload["description"].strip()
        if not description:
            raise DomainError("Description is required.")
        if description != expense.description:
            changes.append(f"Description: '{expense.description}' -> '{description}'")
            expense.description = description
    if "category" in payload and payload["category"] is not None:
        category = _check_category(payload["category"])
        if category != expense.category:
            changes.append(f"Category: {expense.category} -> {category}")
            expense.category = category
    if payload.get("date"):
        expense.date = to_utc_iso(payload["date"])

    money_keys = ("amount", "payment_method", "cash_paid", "digital_paid")
    if any(payload.get(key) is not None for key in money_keys):
        amount = float(payload["amount"]) if payload.get("amount") is not None else expense.amount
        if amount <= 0:
            raise DomainError("Amount must be a positive number.")
        method = payload.get("payment_method") or expense.payment_method
        split = resolve_split(
            method,
            amount,
            payload.get("cash_paid", expense.cash_paid),
            payload.get("digital_paid", expense.digital_paid),
        )
        if split.total != expense.amount:
            changes.append(f"Amount: {fmt_money(expense.amount)} -> {fmt_money(split.total)}")
        expense.amount = split.total
        expense.payment_method = split.method.value
        expense.cash_paid = split.cash
        expense.digital_paid = split.digital
        expense.amount_due = split.due
        changes.append(f"Payment: {describe_split(split)}")

    add_log_entry(
        db,
        actor,
        "Expense Edited",
        f"Expense ID {expense.id} edited by {actor}. " + ("; ".join(changes) or "No field changes."),
    )
    db.commit()
    db.refresh(expense)
    return expense


def delete_expense(db: Session, expense: Expense, actor: str) -> None:
    _ensure_editable(expense)
    add_log_entry(
        db,
        actor,
        "Expense Deleted",
        f"Expense '{expense.description}' (Amount: {fmt_money(expense.amount)}) deleted by {actor}.",
    )
    db.delete(expense)
    db.commit()
