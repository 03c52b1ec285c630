"""Accounts payable and receivable."""

from __future__ import annotations

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..models.expense import Expense
from ..models.product import AcquisitionBatch
from ..models.sale import Sale
from ..services.payments import EPSILON, fmt_money, method_from_parts, round_money, settle
from .logs import add_log_entry


def payable_summary(db: Session) -> dict[str, object]:
    """Outstanding supplier batch dues and unpaid expenses."""

    batches = (
        db.execute(
            select(AcquisitionBatch)
            .where(AcquisitionBatch.due_to_supplier > EPSILON)
            .order_by(desc(AcquisitionBatch.date), desc(AcquisitionBatch.id))
        )
        .scalars()
        .all()
    )
    expenses = (
        db.execute(
            select(Expense)
            .where(Expense.amount_due > EPSILON)
            .order_by(desc(Expense.date), desc(Expense.id))
        )
        .scalars()
        .all()
    )
    supplier_dues = [
        {
            "batch_id": batch.id,
            "product_id": batch.product_id,
            "product_name": batch.product_name,
            "supplier_name": batch.supplier_name,
            "date": batch.date,
            "total_batch_cost": round_money(batch.total_batch_cost),
            "cash_paid": round_money(batch.cash_paid),
            "digital_paid": round_money(batch.digital_paid),
            "due": round_money(batch.due_to_supplier),
        }
        for batch in batches
    ]
    expense_dues = [
        {
            "expense_id": expense.id,
            "description": expense.description,
            "category": expense.category,
            "date": expense.date,
            "amount": round_money(expense.amount),
            "cash_paid": round_money(expense.cash_paid),
            "digital_paid": round_money(expense.digital_paid),
            "due": round_money(expense.amount_due),
        }
        for expense in expenses
    ]
    supplier_total = round_money(sum(row["due"] for row in supplier_dues))
    expense_total = round_money(sum(row["due"] for row in expense_dues))
    return {
        "supplier_dues": supplier_dues,
        "expense_dues": expense_dues,
        "total_supplier_due": supplier_total,
        "total_expense_due": expense_total,
        "total_payable": round_money(supplier_total + expense_total),
    }


def get_batch(db: Session, batch_id: int) -> AcquisitionBatch | None:
    return db.get(AcquisitionBatch, batch_id)


def settle_batch_due(db: Session, batch: AcquisitionBatch, amount: float, method: str, actor: str) -> AcquisitionBatch:
    result = settle(batch.due_to_supplier, amount, method)
    batch.cash_paid = round_money(batch.cash_paid + result.cash)
    batch.digital_paid = round_money(batch.digital_paid + result.digital)
    batch.due_to_supplier = result.remaining_due
    batch.payment_method = method_from_parts(batch.cash_paid, batch.digital_paid, batch.due_to_supplier).value
    add_log_entry(
        db,
        actor,
        "Supplier Payable Settled",
        f"Batch {batch.id} of '{batch.product_name}' (Supplier: {batch.supplier_name or 'N/A'}): paid "
        f"{fmt_money(result.cash + result.digital)} via {method}. Remaining due: {fmt_money(result.remaining_due)}.",
    )
    db.commit()
    db.refresh(batch)
    return batch


def settle_expense_due(db: Session, expense: Expense, amount: float, method: str, actor: str) -> Expense:
    result = settle(expense.amount_due, amount, method)
    expense.cash_paid = round_money(expense.cash_paid + result.cash)
    expense.digital_paid = round_money(expense.digital_paid + result.digital)
    expense.amount_due = result.remaining_due
    expense.payment_method = method_from_parts(expense.cash_paid, expense.digital_paid, expense.amount_due).value
    add_log_entry(
        db,
        actor,
        "Expense Payable Settled",
        f"Expense {expense.id} '{expense.description}': paid {fmt_money(result.cash + result.digital)} "
        f"via {method}. Remaining due: {fmt_money(result.remaining_due)}.",
    )
    db.commit()
    db.refresh(expense)
    return expense


def receivable_summary(db: Session) -> dict[str, object]:
    sales = (
        db.execute(select(Sale).where(Sale.amount_due > EPSILON).order_by(desc(Sale.date), desc(Sale.id)))
        .scalars()
        .all()
    )
    rows = [
        {
            "sale_id": sale.id,
            "customer_name": sale.customer_name,
            "customer_contact": sale.customer_contact,
            "date": sale.date,
            "total_amount": round_money(sale.total_amount),
            "amount_due": round_money(sale.amount_due),
        }
        for sale in sales
    ]
    return {"sales": rows, "total_receivable": round_money(sum(row["amount_due"] for row in rows))}


def supplier_overview(db: Session) -> list[dict[str, object]]:
    """Per supplier: batch count, spend, paid and still owed."""

    stmt = (
        select(
            AcquisitionBatch.supplier_name,
            func.count(AcquisitionBatch.id),
            func.coalesce(func.sum(AcquisitionBatch.total_batch_cost), 0.0),
            func.coalesce(func.sum(AcquisitionBatch.cash_paid + AcquisitionBatch.digital_paid), 0.0),
            func.coalesce(func.sum(AcquisitionBatch.due_to_supplier), 0.0),
            func.max(AcquisitionBatch.date),
        )
        .where(AcquisitionBatch.supplier_name.is_not(None), AcquisitionBatch.supplier_name != "")
        .group_by(AcquisitionBatch.supplier_name)
        .order_by(AcquisitionBatch.supplier_name)
    )
    return [
        {
            "supplier_name": name,
            "batch_count": int(count),
            "total_cost": round_money(cost),
            "total_paid": round_money(paid),
            "total_due": round_money(due),
            "last_supplied": last,
        }
        for name, count, cost, paid, due, last in db.execute(stmt).all()
    ]
