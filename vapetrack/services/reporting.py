from __future__ import annotations

from collections import defaultdict
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable

from sqlalchemy import select, true
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.expense import Expense
from ..models.product import AcquisitionBatch, Product
from ..models.sale import Sale
from .dates import day_bounds, local_today, month_bounds
from .payments import EPSILON
from .stock import stock_levels

TWOPLACES = Decimal("0.01")


def _to_decimal(value: Any) -> Decimal:
    """Best-effort conversion of stored floats to Decimal for currency math."""

    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            return Decimal("0")
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return Decimal("0")
    return Decimal("0")


def _quantize_currency(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP) if value else Decimal("0.00")


def _between(column, bounds: tuple[str, str] | None):
    if bounds is None:
        return true()
    return column.between(*bounds)


def dashboard_summary(db: Session) -> Dict[str, Any]:
    """Headline numbers for the shop dashboard."""

    today = day_bounds(local_today())
    todays_sales: Iterable[Sale] = (
        db.execute(select(Sale).where(Sale.date.between(*today))).scalars().all()
    )
    today_total = sum((_to_decimal(sale.total_amount) for sale in todays_sales), Decimal("0"))

    due_sales = db.execute(select(Sale).where(Sale.amount_due > EPSILON)).scalars().all()
    receivable = sum((_to_decimal(sale.amount_due) for sale in due_sales), Decimal("0"))
    flagged_count = len(db.execute(select(Sale.id).where(Sale.is_flagged.is_(True))).all())

    batch_dues = db.execute(
        select(AcquisitionBatch.due_to_supplier).where(AcquisitionBatch.due_to_supplier > EPSILON)
    ).scalars().all()
    expense_dues = db.execute(select(Expense.amount_due).where(Expense.amount_due > EPSILON)).scalars().all()
    payable = sum((_to_decimal(value) for value in [*batch_dues, *expense_dues]), Decimal("0"))

    products = db.execute(select(Product)).scalars().all()
    levels = stock_levels(db, products)
    inventory_value = Decimal("0")
    low_stock = []
    for product in products:
        stock = levels.get(product.id, 0)
        if stock > 0:
            inventory_value += _to_decimal(product.current_cost_price) * Decimal(stock)
        if stock <= settings.LOW_STOCK_THRESHOLD:
            low_stock.append(
                {
                    "id": product.id,
                    "name": product.display_name,
                    "category": product.category,
                    "current_stock": stock,
                }
            )
    low_stock.sort(key=lambda row: (row["current_stock"], row["name"].lower()))

    return {
        "today_sales_count": len(todays_sales),
        "today_sales_total": _quantize_currency(today_total),
        "due_sales_count": len(due_sales),
        "total_receivable": _quantize_currency(receivable),
        "total_payable": _quantize_currency(payable),
        "flagged_sales_count": flagged_count,
        "inventory_value": _quantize_currency(inventory_value),
        "low_stock_threshold": settings.LOW_STOCK_THRESHOLD,
        "low_stock_products": low_stock,
    }


def sales_analytics(db: Session, month_year: str | None = None) -> Dict[str, Any]:
    """Revenue, cost of goods, expenses and profit for a month, or all time."""

    bounds = month_bounds(month_year) if month_year else None
    sales: Iterable[Sale] = db.execute(select(Sale).where(_between(Sale.date, bounds))).scalars().all()
    expenses: Iterable[Expense] = (
        db.execute(select(Expense).where(_between(Expense.date, bounds))).scalars().all()
    )

    revenue = Decimal("0")
    cogs = Decimal("0")
    payment_totals = {"cash": Decimal("0"), "digital": Decimal("0"), "due": Decimal("0")}
    method_counts: Dict[str, int] = defaultdict(int)
    products: Dict[int, Dict[str, Any]] = defaultdict(
        lambda: {"product_name": "", "quantity": 0, "revenue": Decimal("0"), "profit": Decimal("0")}
    )
    sale_count = 0

    for sale in sales:
        sale_count += 1
        revenue += _to_decimal(sale.total_amount)
        payment_totals["cash"] += _to_decimal(sale.cash_paid)
        payment_totals["digital"] += _to_decimal(sale.digital_paid)
        payment_totals["due"] += _to_decimal(sale.amount_due)
        method_counts[sale.payment_method] += 1
        for item in sale.items:
            line_revenue = _to_decimal(item.total_price)
            line_cost = _to_decimal(item.unit_cost) * Decimal(item.quantity)
            cogs += line_cost
            row = products[item.product_id]
            row["product_name"] = item.product_name
            row["quantity"] += item.quantity
            row["revenue"] += line_revenue
            row["profit"] += line_revenue - line_cost

    expense_total = Decimal("0")
    by_category: Dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for expense in expenses:
        amount = _to_decimal(expense.amount)
        expense_total += amount
        by_category[expense.category] += amount

    gross_profit = revenue - cogs
    top_products = [
        {
            "product_id": product_id,
            "product_name": row["product_name"],
            "quantity": row["quantity"],
            "revenue": _quantize_currency(row["revenue"]),
            "profit": _quantize_currency(row["profit"]),
        }
        for product_id, row in products.items()
    ]
    top_products.sort(key=lambda row: (row["quantity"], row["revenue"]), reverse=True)
    categories = [
        {"category": name, "amount": _quantize_currency(amount)} for name, amount in by_category.items()
    ]
    categories.sort(key=lambda row: row["amount"], reverse=True)

    return {
        "month_year": month_year,
        "sales_count": sale_count,
        "revenue": _quantize_currency(revenue),
        "cost_of_goods_sold": _quantize_currency(cogs),
        "gross_profit": _quantize_currency(gross_profit),
        "expenses": _quantize_currency(expense_total),
        "net_profit": _quantize_currency(gross_profit - expense_total),
        "payment_totals": {key: _quantize_currency(value) for key, value in payment_totals.items()},
        "payment_method_counts": dict(method_counts),
        "expenses_by_category": categories,
        "top_products": top_products[:10],
    }


__all__ = ["dashboard_summary", "sales_analytics"]
