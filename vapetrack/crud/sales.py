"""Sale CRUD helpers: entry, adjustment, flags, receivable settlement."""

from __future__ import annotations

from collections import OrderedDict

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from ..core.errors import DomainError, InsufficientStockError
from ..models.product import Product
from ..models.sale import Sale, SaleItem
from ..services.dates import day_bounds, fmt_local, month_bounds, utcnow_iso
from ..services.payments import (
    EPSILON,
    PaymentMethod,
    describe_split,
    fmt_money,
    method_from_parts,
    resolve_split,
    round_money,
    settle,
)
from ..services.stock import current_stock
from .logs import add_log_entry
from .products import mark_damaged

STATUS_PAID = "Paid"
STATUS_DUE = "Due"
FLAG_STATUSES = ("flagged", "resolvedFlagged")
SALE_STATUSES = (STATUS_PAID, STATUS_DUE) + FLAG_STATUSES
SALE_ORIGINS = ("store", "online")


def status_for_due(amount_due: float) -> str:
    return STATUS_DUE if amount_due > EPSILON else STATUS_PAID


def short_id(sale: Sale) -> str:
    return f"#{sale.id}"


def _combine_lines(items: list[dict]) -> "OrderedDict[int, int]":
    """Sum quantities per product, keeping first-seen order."""

    combined: OrderedDict[int, int] = OrderedDict()
    for item in items:
        product_id = int(item["product_id"])
        combined[product_id] = combined.get(product_id, 0) + int(item.get("quantity") or 0)
    return combined


def _build_items(
    db: Session,
    lines: "OrderedDict[int, int]",
    exclude_sale_id: int | None = None,
) -> list[SaleItem]:
    """Check stock for each combined line and snapshot current prices."""

    built: list[SaleItem] = []
    for product_id, quantity in lines.items():
        if quantity < 0:
            raise DomainError("Quantity cannot be negative.")
        product = db.get(Product, product_id)
        if not product:
            raise DomainError(f"Product ID {product_id} not found.")
        if quantity == 0:
            continue
        available = current_stock(db, product, exclude_sale_id=exclude_sale_id)
        if quantity > available:
            raise InsufficientStockError(
                f"Not enough stock for {product.display_name}. Available: {available}, Requested: {quantity}"
            )
        built.append(
            SaleItem(
                product_id=product.id,
                product_name=product.display_name,
                quantity=quantity,
                unit_price=product.current_selling_price,
                unit_cost=product.current_cost_price,
                total_price=round_money(quantity * product.current_selling_price),
                is_flagged_for_damage_exchange=False,
            )
        )
    return built


def list_sales(
    db: Session,
    *,
    date: str | None = None,
    month_year: str | None = None,
    status: str | None = None,
    flagged_comment_text: str | None = None,
    customer: str | None = None,
) -> list[Sale]:
    stmt = select(Sale)
    if date:
        start, end = day_bounds(date)
        stmt = stmt.where(Sale.date >= start, Sale.date <= end)
    elif month_year:
        start, end = month_bounds(month_year)
        stmt = stmt.where(Sale.date >= start, Sale.date <= end)

    if status:
        if status not in SALE_STATUSES:
            raise DomainError(f"Status must be one of: {', '.join(SALE_STATUSES)}.")
        if status == "flagged":
            stmt = stmt.where(Sale.is_flagged.is_(True))
        elif status == "resolvedFlagged":
            stmt = stmt.where(Sale.is_flagged.is_(False), Sale.flagged_comment != "")
        else:
            stmt = stmt.where(Sale.status == status)
        if flagged_comment_text and status in FLAG_STATUSES:
            stmt = stmt.where(
                func.lower(Sale.flagged_comment).contains(flagged_comment_text.strip().lower(), autoescape=True)
            )
    if customer:
        stmt = stmt.where(func.lower(Sale.customer_name).contains(customer.strip().lower(), autoescape=True))
    stmt = stmt.order_by(desc(Sale.date), desc(Sale.id))
    return list(db.execute(stmt).scalars().all())


def get_sale(db: Session, sale_id: int) -> Sale | None:
    return db.get(Sale, sale_id)


def create_sale(db: Session, payload: dict, actor: str) -> Sale:
    customer_name = (payload.get("customer_name") or "").strip()
    if not customer_name:
        raise DomainError("Customer name is required.")
    items = payload.get("items") or []
    if not items:
        raise DomainError("Sale must have at least one item.")
    if any(int(item.get("quantity") or 0) < 1 for item in items):
        raise DomainError("Each item quantity must be at least 1.")
    origin = payload.get("sale_origin") or "store"
    if origin not in SALE_ORIGINS:
        raise DomainError(f"Sale origin must be one of: {', '.join(SALE_ORIGINS)}.")

    lines = _build_items(db, _combine_lines(items))
    total = round_money(sum(line.total_price for line in lines))
    if total <= 0:
        raise DomainError("Total amount must be positive.")
    split = resolve_split(
        payload.get("payment_method") or PaymentMethod.CASH,
        total,
        payload.get("cash_paid"),
        payload.get("digital_paid"),
    )

    sale = Sale(
        customer_name=customer_name,
        customer_contact=(payload.get("customer_contact") or "").strip() or None,
        total_amount=split.total,
        cash_paid=split.cash,
        digital_paid=split.digital,
        amount_due=split.due,
        payment_method=split.method.value,
        status=status_for_due(split.due),
        date=utcnow_iso(),
        created_by=actor,
        sale_origin=origin,
        is_flagged=False,
        flagged_comment="",
    )
    sale.items = lines
    db.add(sale)
    db.flush()
    add_log_entry(
        db,
        actor,
        "Sale Created",
        f"Sale {short_id(sale)} for {customer_name}, Total: {fmt_money(split.total)}. "
        f"Payment: {describe_split(split)}. Items: "
        + ", ".join(f"{line.product_name} x{line.quantity}" for line in lines),
    )
    db.commit()
    db.refresh(sale)
    return sale


def adjust_sale(db: Session, sale: Sale, payload: dict, actor: str) -> Sale:
    """Replace a sale's lines and payment.

    A quantity of 0 drops the line. Stock held by this sale counts as
    available. An open flag is resolved with the adjustment comment.
    """
    comment = (payload.get("adjustment_comment") or "").strip()
    if not comment:
        raise DomainError("Adjustment comment is required.")
    items = payload.get("items") or []
    if not items:
        raise DomainError("Sale must have at least one item.")

    lines = _build_items(db, _combine_lines(items), exclude_sale_id=sale.id)
    if not lines:
        raise DomainError("At least one item must remain in the sale.")
    exchanged = {item.product_id: item for item in sale.items if item.is_flagged_for_damage_exchange}
    for line in lines:
        previous = exchanged.get(line.product_id)
        if previous is not None:
            line.is_flagged_for_damage_exchange = True
            line.damage_exchange_comment = previous.damage_exchange_comment
    total = round_money(sum(line.total_price for line in lines))
    if total <= 0:
        raise DomainError("Total amount must be positive if items are present.")
    split = resolve_split(
        payload.get("payment_method") or sale.payment_method,
        total,
        payload.get("cash_paid"),
        payload.get("digital_paid"),
    )

    new_name = None
    if payload.get("customer_name") is not None:
        new_name = payload["customer_name"].strip()
        if not new_name:
            raise DomainError("Customer name is required.")

    old_total = sale.total_amount
    was_flagged = bool(sale.is_flagged)
    stamp = fmt_local(None)
    if was_flagged:
        sale.flagged_comment = (
            f"Original Flag: {sale.flagged_comment or 'N/A'}\n"
            f"Resolved by {actor} on {stamp}: {comment}"
        )
        sale.is_flagged = False
    else:
        note = f"Adjusted by {actor} on {stamp}: {comment}"
        sale.flagged_comment = f"{sale.flagged_comment}\n{note}" if sale.flagged_comment else note

    if new_name:
        sale.customer_name = new_name
    if "customer_contact" in payload:
        sale.customer_contact = (payload.get("customer_contact") or "").strip() or None

    sale.items = lines
    sale.total_amount = split.total
    sale.cash_paid = split.cash
    sale.digital_paid = split.digital
    sale.amount_due = split.due
    sale.payment_method = split.method.value
    sale.status = status_for_due(split.due)

    action = "Sale Flag Resolved & Adjusted" if was_flagged else "Sale Adjusted"
    add_log_entry(
        db,
        actor,
        action,
        f"Sale {short_id(sale)} updated. Total: {fmt_money(old_total)} -> {fmt_money(split.total)}. "
        f"Payment: {describe_split(split)}. Comment: {comment}",
    )
    db.commit()
    db.refresh(sale)
    return sale


def flag_sale(db: Session, sale: Sale, payload: dict, actor: str) -> Sale:
    """Flag a sale for review, optionally exchanging damaged items.

    Each item flagged with ``damage_exchanged`` moves its sold quantity into
    the product's damaged count, which needs that much sellable stock for the
    replacement units.
    """
    comment = (payload.get("comment") or "").strip()
    if not comment:
        raise DomainError("Please provide a reason for flagging this sale.")
    item_flags = {int(flag["item_id"]): flag for flag in payload.get("items") or []}
    by_id = {item.id: item for item in sale.items}
    unknown = sorted(set(item_flags) - set(by_id))
    if unknown:
        raise DomainError(f"Sale items not found on this sale: {', '.join(str(i) for i in unknown)}.")

    exchanged: list[str] = []
    for item_id, flag in item_flags.items():
        item = by_id[item_id]
        if not flag.get("damage_exchanged"):
            continue
        if item.is_flagged_for_damage_exchange:
            raise DomainError(f"'{item.product_name}' was already exchanged for damage.")
        product = db.get(Product, item.product_id)
        if not product:
            raise DomainError(f"Product ID {item.product_id} not found.")
        item_comment = (flag.get("comment") or "").strip() or None
        mark_damaged(
            db,
            product,
            item.quantity,
            actor,
            comment=item_comment,
            action="Product Damage & Stock Update (Exchange)",
            reference=f"Sale {short_id(sale)}",
            commit=False,
        )
        item.is_flagged_for_damage_exchange = True
        item.damage_exchange_comment = item_comment
        exchanged.append(f"{item.product_name} x{item.quantity}")

    sale.is_flagged = True
    sale.flagged_comment = (
        f"{sale.flagged_comment}\n{comment}" if sale.flagged_comment else comment
    )
    details = f"Sale {short_id(sale)} flagged. Reason: {comment}"
    if exchanged:
        details += f" Damage exchange: {', '.join(exchanged)}."
    add_log_entry(db, actor, "Sale Flagged", details)
    db.commit()
    db.refresh(sale)
    return sale


def resolve_flag(db: Session, sale: Sale, comment: str, actor: str) -> Sale:
    comment = (comment or "").strip()
    if not comment:
        raise DomainError("Resolution comment is required.")
    if not sale.is_flagged:
        raise DomainError("Sale is not flagged.")
    sale.flagged_comment = (
        f"Original Flag: {sale.flagged_comment or 'N/A'}\n"
        f"Resolved by {actor} on {fmt_local(None)}: {comment}"
    )
    sale.is_flagged = False
    add_log_entry(db, actor, "Sale Flag Resolved", f"Sale {short_id(sale)} flag resolved. Comment: {comment}")
    db.commit()
    db.refresh(sale)
    return sale


def settle_sale_due(db: Session, sale: Sale, amount: float, method: str, actor: str) -> Sale:
    """Record a customer payment against the sale's outstanding due."""

    result = settle(sale.amount_due, amount, method)
    sale.cash_paid = round_money(sale.cash_paid + result.cash)
    sale.digital_paid = round_money(sale.digital_paid + result.digital)
    sale.amount_due = result.remaining_due
    sale.payment_method = method_from_parts(sale.cash_paid, sale.digital_paid, sale.amount_due).value
    sale.status = status_for_due(sale.amount_due)
    add_log_entry(
        db,
        actor,
        "Receivable Settled",
        f"Sale {short_id(sale)} ({sale.customer_name}): received {fmt_money(result.cash + result.digital)} "
        f"via {method}. Remaining due: {fmt_money(result.remaining_due)}.",
    )
    db.commit()
    db.refresh(sale)
    return sale


def delete_sale(db: Session, sale: Sale, reason: str | None, actor: str) -> None:
    reason = (reason or "").strip()
    if not reason:
        raise DomainError("Reason for deletion is required.")
    add_log_entry(
        db,
        actor,
        "Sale Deleted",
        f"Sale {short_id(sale)} (Customer: {sale.customer_name}, Amount: {fmt_money(sale.total_amount)}) "
        f"deleted. Reason: {reason}",
    )
    db.delete(sale)
    db.commit()


def customer_summary(db: Session) -> list[dict[str, object]]:
    """Per-customer totals, biggest spenders first."""

    key = func.lower(Sale.customer_name)
    stmt = (
        select(
            func.min(Sale.customer_name),
            func.max(Sale.customer_contact),
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_amount), 0.0),
            func.coalesce(func.sum(Sale.amount_due), 0.0),
            func.max(Sale.date),
        )
        .group_by(key)
    )
    rows = [
        {
            "customer_name": name,
            "customer_contact": contact,
            "sales_count": int(count),
            "total_spent": round_money(spent),
            "total_due": round_money(due),
            "last_purchase": last,
        }
        for name, contact, count, spent, due, last in db.execute(stmt).all()
    ]
    rows.sort(key=lambda row: (-row["total_spent"], str(row["customer_name"]).lower()))
    return rows
