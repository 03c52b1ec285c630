"""Product, restock, tester and damage helpers."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.errors import ConflictError, DomainError, InsufficientStockError
from ..models.expense import PRODUCT_DAMAGE, TESTER_ALLOCATION
from ..models.product import PRODUCT_TYPES, AcquisitionBatch, Product
from ..services.dates import utcnow_iso
from ..services.payments import (
    EPSILON,
    PaymentMethod,
    PaymentSplit,
    describe_split,
    ensure_split_matches,
    fmt_money,
    resolve_split,
    round_money,
)
from ..services.stock import current_stock, stock_levels
from .expenses import add_system_expense
from .logs import add_log_entry, latest_entry

CONDITION_PRODUCT_ADDED = "Product Added"
RESTOCK_CONDITIONS = {
    "condition1": "Restock (Same Supplier/Price)",
    "condition2": "Restock (Same Supplier, New Price)",
    "condition3": "Restock (New Supplier)",
}
DAMAGE_ACTION = "Product Damage & Stock Update"


def _clean(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


def _check_category(category: str | None) -> str:
    value = (category or "").strip()
    if value not in PRODUCT_TYPES:
        raise DomainError(f"Category must be one of: {', '.join(PRODUCT_TYPES)}.")
    return value


def _check_prices(cost: float, selling: float) -> None:
    if cost <= 0 or selling <= 0:
        raise DomainError("Cost and selling prices must be positive.")
    if cost > selling + EPSILON:
        raise DomainError("Cost price cannot be greater than selling price.")


def _acquisition_split(details: dict | None, quantity: int, unit_cost: float) -> PaymentSplit:
    """Resolve how a batch was paid, checking any explicit due against the method."""

    details = details or {}
    total = float(details.get("total_acquisition_cost") or 0)
    if quantity > 0 and unit_cost > 0 and total <= 0:
        raise DomainError("Total acquisition cost must be positive if stock is being added and cost price is positive.")
    split = resolve_split(
        details.get("method") or PaymentMethod.CASH,
        total,
        details.get("cash_paid"),
        details.get("digital_paid"),
    )
    if details.get("due_amount") is not None:
        ensure_split_matches(split.total, split.cash, split.digital, float(details["due_amount"]))
    return split


def _variant_split(overall: PaymentSplit, variant_cost: float) -> PaymentSplit:
    """Proportional share of ``overall`` for one variant; due takes the rounding remainder."""

    share = variant_cost / overall.total if overall.total > 0 else 0.0
    cash = round_money(overall.cash * share)
    digital = round_money(overall.digital * share)
    due = round_money(variant_cost - cash - digital)
    if due < 0:
        # cash and digital both rounded up past the variant cost
        if digital >= -due:
            digital = round_money(digital + due)
        else:
            cash = round_money(cash + due)
        due = 0.0
    return PaymentSplit(method=overall.method, total=variant_cost, cash=cash, digital=digital, due=due)


def _new_batch(
    *,
    condition: str,
    quantity: int,
    unit_cost: float,
    selling_price: float | None,
    supplier: str | None,
    split: PaymentSplit,
    actor: str,
) -> AcquisitionBatch:
    return AcquisitionBatch(
        date=utcnow_iso(),
        condition=condition,
        supplier_name=supplier,
        quantity_added=quantity,
        cost_price_per_unit=unit_cost,
        selling_price_at_acquisition=selling_price,
        payment_method=split.method.value,
        total_batch_cost=split.total,
        cash_paid=split.cash,
        digital_paid=split.digital,
        due_to_supplier=split.due,
        added_by=actor,
    )


def _batch_payment_note(batch: AcquisitionBatch) -> str:
    if not batch.total_batch_cost:
        return ""
    note = f" Batch Cost: {fmt_money(batch.total_batch_cost)} via {batch.payment_method}."
    if batch.payment_method == PaymentMethod.HYBRID.value:
        note += (
            f" (Cash: {batch.cash_paid:.2f}, Digital: {batch.digital_paid:.2f},"
            f" Due: {batch.due_to_supplier:.2f})"
        )
    elif batch.payment_method == PaymentMethod.DUE.value:
        note += f" (Due: {batch.due_to_supplier:.2f})"
    return note


def attach_stock(db: Session, products: list[Product]) -> list[Product]:
    """Set a transient ``current_stock`` attribute on each product."""

    levels = stock_levels(db, products)
    for product in products:
        setattr(product, "current_stock", levels.get(product.id, 0))
    return products


def list_products(db: Session, category: str | None = None) -> list[Product]:
    stmt = select(Product).order_by(Product.name, Product.model_name, Product.flavor_name, Product.id)
    if category:
        stmt = stmt.where(Product.category == category)
    return attach_stock(db, list(db.execute(stmt).scalars().all()))


def get_product(db: Session, product_id: int) -> Product | None:
    product = db.get(Product, product_id)
    if not product:
        return None
    attach_stock(db, [product])
    return product


def find_variant(
    db: Session,
    name: str,
    model_name: str | None = None,
    flavor_name: str | None = None,
    exclude_id: int | None = None,
) -> Product | None:
    """Case-insensitive lookup on the (name, model, flavor) identity."""

    stmt = select(Product).where(
        func.lower(Product.name) == name.strip().lower(),
        func.lower(func.coalesce(Product.model_name, "")) == (model_name or "").strip().lower(),
        func.lower(func.coalesce(Product.flavor_name, "")) == (flavor_name or "").strip().lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    return db.execute(stmt).scalars().first()


def create_product(db: Session, payload: dict, actor: str) -> Product:
    name = _clean(payload.get("name"))
    if not name:
        raise DomainError("Product name cannot be empty.")
    model_name = _clean(payload.get("model_name"))
    flavor_name = _clean(payload.get("flavor_name"))
    category = _check_category(payload.get("category"))
    cost = float(payload.get("cost_price") or 0)
    selling = float(payload.get("selling_price") or 0)
    _check_prices(cost, selling)
    quantity = int(payload.get("total_acquired_stock") or 0)
    if quantity < 0:
        raise DomainError("Initial stock cannot be negative.")

    if find_variant(db, name, model_name, flavor_name):
        label = Product(name=name, model_name=model_name, flavor_name=flavor_name).display_name
        raise ConflictError(f'Product with name "{label}" already exists.')

    split = _acquisition_split(payload.get("acquisition_payment"), quantity, cost)
    supplier = _clean(payload.get("supplier_name"))
    product = Product(
        name=name,
        model_name=model_name,
        flavor_name=flavor_name,
        category=category,
        current_cost_price=cost,
        current_selling_price=selling,
        damaged_quantity=0,
        tester_quantity=0,
        created_at=utcnow_iso(),
    )
    batch = _new_batch(
        condition=CONDITION_PRODUCT_ADDED,
        quantity=quantity,
        unit_cost=cost,
        selling_price=selling,
        supplier=supplier,
        split=split,
        actor=actor,
    )
    product.acquisition_batches.append(batch)
    db.add(product)

    details = (
        f"Product '{product.display_name}' added. Current Cost: {fmt_money(cost)}, "
        f"Current MRP: {fmt_money(selling)}. Initial Batch Qty: {quantity}."
    )
    if supplier:
        details += f" Supplier: {supplier}."
    details += _batch_payment_note(batch)
    add_log_entry(db, actor, "Product Added", details)
    db.commit()
    db.refresh(product)
    attach_stock(db, [product])
    return product


def create_variants(db: Session, payload: dict, actor: str) -> list[Product]:
    """Add several flavors of one product, splitting the payment proportionally."""

    name = _clean(payload.get("name"))
    if not name:
        raise DomainError("Product name cannot be empty.")
    model_name = _clean(payload.get("model_name"))
    category = _check_category(payload.get("category"))
    cost = float(payload.get("cost_price") or 0)
    selling = float(payload.get("selling_price") or 0)
    _check_prices(cost, selling)
    flavors = payload.get("flavors") or []
    if not flavors:
        raise DomainError("At least one variant is required.")

    seen: set[str] = set()
    for flavor in flavors:
        flavor_name = _clean(flavor.get("flavor_name"))
        key = (flavor_name or "").lower()
        if key in seen:
            raise DomainError(f"Variant '{flavor_name or 'N/A'}' is listed more than once.")
        seen.add(key)
        if int(flavor.get("total_acquired_stock") or 0) < 0:
            raise DomainError("Initial stock cannot be negative.")
        if find_variant(db, name, model_name, flavor_name):
            label = Product(name=name, model_name=model_name, flavor_name=flavor_name).display_name
            raise ConflictError(
                f"The variant '{label}' already exists. When adding multiple variants, all must be new."
            )

    total_quantity = sum(int(f.get("total_acquired_stock") or 0) for f in flavors)
    overall = _acquisition_split(payload.get("acquisition_payment"), total_quantity, cost)
    supplier = _clean(payload.get("supplier_name"))
    created: list[Product] = []
    added_notes: list[str] = []
    for flavor in flavors:
        flavor_name = _clean(flavor.get("flavor_name"))
        quantity = int(flavor.get("total_acquired_stock") or 0)
        split = _variant_split(overall, round_money(cost * quantity))
        product = Product(
            name=name,
            model_name=model_name,
            flavor_name=flavor_name,
            category=category,
            current_cost_price=cost,
            current_selling_price=selling,
            damaged_quantity=0,
            tester_quantity=0,
            created_at=utcnow_iso(),
        )
        product.acquisition_batches.append(
            _new_batch(
                condition=CONDITION_PRODUCT_ADDED,
                quantity=quantity,
                unit_cost=cost,
                selling_price=selling,
                supplier=supplier,
                split=split,
                actor=actor,
            )
        )
        db.add(product)
        created.append(product)
        added_notes.append(f"{flavor_name or 'N/A'} (Qty: {quantity})")

    base_label = Product(name=name, model_name=model_name).display_name
    add_log_entry(
        db,
        actor,
        "Product Batch Added",
        f"Batch product add for '{base_label}' by {actor}. Variants: {'; '.join(added_notes)}. "
        f"Cost/Unit: {fmt_money(cost)}, MRP/Unit: {fmt_money(selling)}. Payment: {describe_split(overall)}.",
    )
    db.commit()
    for product in created:
        db.refresh(product)
    return attach_stock(db, created)


def update_product(db: Session, product: Product, payload: dict, actor: str) -> tuple[Product, bool]:
    """Apply detail edits. Returns the product and whether anything changed."""

    cost = payload.get("cost_price")
    selling = payload.get("selling_price")
    final_cost = float(cost) if cost is not None else product.current_cost_price
    final_selling = float(selling) if selling is not None else product.current_selling_price
    _check_prices(final_cost, final_selling)

    name = _clean(payload["name"]) if "name" in payload and payload["name"] is not None else product.name
    if not name:
        raise DomainError("Product name cannot be empty.")
    model_name = _clean(payload["model_name"]) if "model_name" in payload else product.model_name
    flavor_name = _clean(payload["flavor_name"]) if "flavor_name" in payload else product.flavor_name
    category = _check_category(payload["category"]) if payload.get("category") else product.category

    identity_changed = (
        name.lower() != product.name.lower()
        or (model_name or "").lower() != (product.model_name or "").lower()
        or (flavor_name or "").lower() != (product.flavor_name or "").lower()
    )
    if identity_changed and find_variant(db, name, model_name, flavor_name, exclude_id=product.id):
        raise ConflictError(
            f"Another product already exists with the name '{name}'. Please choose a different name."
        )

    changes: list[str] = []
    original_label = product.display_name
    if name != product.name:
        changes.append(f"Name: {product.name} -> {name}")
        product.name = name
    if model_name != product.model_name:
        changes.append(f"Model: {product.model_name or 'N/A'} -> {model_name or 'N/A'}")
        product.model_name = model_name
    if flavor_name != product.flavor_name:
        changes.append(f"Flavor: {product.flavor_name or 'N/A'} -> {flavor_name or 'N/A'}")
        product.flavor_name = flavor_name
    if category != product.category:
        changes.append(f"Category: {product.category} -> {category}")
        product.category = category
    if abs(final_selling - product.current_selling_price) > EPSILON:
        changes.append(f"MRP: {product.current_selling_price:.2f} -> {final_selling:.2f}")
        product.current_selling_price = final_selling
    if abs(final_cost - product.current_cost_price) > EPSILON:
        changes.append(f"Cost: {product.current_cost_price:.2f} -> {final_cost:.2f}")
        product.current_cost_price = final_cost

    if not changes:
        attach_stock(db, [product])
        return product, False

    add_log_entry(
        db,
        actor,
        "Product Details Updated",
        f"Details for product '{original_label}' (ID: {product.id}) updated. " + ". ".join(changes) + ".",
    )
    db.commit()
    db.refresh(product)
    attach_stock(db, [product])
    return product, True


def restock_product(db: Session, product: Product, payload: dict, actor: str) -> Product:
    """Append an acquisition batch according to the restock condition.

    * ``condition1``: same supplier and prices.
    * ``condition2``: same supplier, new cost and selling prices (both required).
    * ``condition3``: new supplier (required), prices optionally updated.
    """
    condition = payload.get("condition")
    if condition not in RESTOCK_CONDITIONS:
        raise DomainError("Condition must be one of condition1, condition2 or condition3.")
    quantity = int(payload.get("quantity_added") or 0)
    if quantity <= 0:
        raise DomainError("Quantity to add must be positive.")
    new_cost = payload.get("new_cost_price")
    new_selling = payload.get("new_selling_price")
    new_supplier = _clean(payload.get("new_supplier_name"))

    if condition == "condition2" and (new_cost is None or new_selling is None):
        raise DomainError("New cost and selling prices are required for condition2 (Restock with new price).")
    if condition == "condition3" and not new_supplier:
        raise DomainError("New supplier name is required for condition3 (Restock with new supplier).")
    update_prices = condition in ("condition2", "condition3") and new_cost is not None and new_selling is not None
    if update_prices:
        _check_prices(float(new_cost), float(new_selling))

    unit_cost = float(new_cost) if update_prices else product.current_cost_price
    selling_at_acquisition = float(new_selling) if update_prices else product.current_selling_price
    split = _acquisition_split(payload.get("payment"), quantity, unit_cost)

    action = RESTOCK_CONDITIONS[condition]
    details = f"Product '{product.display_name}' (ID: {product.id}) restocked. Qty Added: {quantity}."
    if condition == "condition1":
        details += f" Using existing cost: {fmt_money(unit_cost)}."
    if condition == "condition3":
        details += f" New Supplier: {new_supplier}."
    if update_prices:
        product.current_cost_price = unit_cost
        product.current_selling_price = selling_at_acquisition
        details += (
            f" Prices updated - New Current Cost: {fmt_money(unit_cost)},"
            f" New Current MRP: {fmt_money(selling_at_acquisition)}."
        )
    elif condition == "condition3":
        details += " Main product prices remain unchanged."
    details += f" Batch Cost/Unit: {fmt_money(unit_cost)}."

    previous = product.latest_batch
    supplier = new_supplier if condition == "condition3" else (previous.supplier_name if previous else None)
    batch = _new_batch(
        condition=action,
        quantity=quantity,
        unit_cost=unit_cost,
        selling_price=selling_at_acquisition,
        supplier=supplier,
        split=split,
        actor=actor,
    )
    product.acquisition_batches.append(batch)
    details += _batch_payment_note(batch)
    add_log_entry(db, actor, action, details)
    db.commit()
    db.refresh(product)
    attach_stock(db, [product])
    return product


def set_tester_quantity(db: Session, product: Product, new_quantity: int, actor: str) -> tuple[Product, bool]:
    """Move units between sellable stock and testers.

    Allocating more testers needs sellable stock and records a
    "Tester Allocation" expense at current cost. Returns whether anything changed.
    """
    if new_quantity < 0:
        raise DomainError("Tester quantity cannot be negative.")
    old_quantity = product.tester_quantity or 0
    old_stock = current_stock(db, product)
    if new_quantity == old_quantity:
        setattr(product, "current_stock", old_stock)
        return product, False

    delta = new_quantity - old_quantity
    if delta > 0:
        if old_stock < delta:
            raise InsufficientStockError(
                "Insufficient stock to convert to testers.",
                details=(
                    f"Requested {delta} new tester(s), but only {old_stock} sellable units available. "
                    f"Max new total testers: {old_quantity + old_stock}."
                ),
            )
        add_system_expense(
            db,
            description=f"Tester Allocation: {delta}x {product.display_name}",
            category=TESTER_ALLOCATION,
            amount=delta * product.current_cost_price,
            actor=actor,
        )

    product.tester_quantity = new_quantity
    new_stock = old_stock - delta
    add_log_entry(
        db,
        actor,
        "Tester Quantity Updated",
        f"Tester quantity for '{product.display_name}' (ID: {product.id}) changed from {old_quantity} "
        f"to {new_quantity}. Sellable stock changed from {old_stock} to {new_stock}.",
    )
    db.commit()
    db.refresh(product)
    attach_stock(db, [product])
    return product, True


def mark_damaged(
    db: Session,
    product: Product,
    quantity: int,
    actor: str,
    *,
    comment: str | None = None,
    action: str = DAMAGE_ACTION,
    reference: str | None = None,
    commit: bool = True,
) -> Product:
    """Write sellable units off as damaged and record the matching expense."""

    if quantity <= 0:
        raise DomainError("Damaged quantity must be positive.")
    stock_before = current_stock(db, product)
    if stock_before < quantity:
        raise InsufficientStockError(
            f"Not enough stock for {product.display_name}. Available: {stock_before}, Requested: {quantity}"
        )
    damaged_before = product.damaged_quantity or 0
    product.damaged_quantity = damaged_before + quantity
    add_system_expense(
        db,
        description=f"Product Damage: {quantity}x {product.display_name}" + (f" ({reference})" if reference else ""),
        category=PRODUCT_DAMAGE,
        amount=quantity * product.current_cost_price,
        actor=actor,
    )
    details = (
        f"Item '{product.display_name}' (Qty: {quantity}) marked damaged by {actor}."
        f" Prev Stock: {stock_before}, New Stock: {stock_before - quantity}."
        f" Prev Dmg: {damaged_before}, New Dmg: {product.damaged_quantity}."
    )
    if reference:
        details += f" Ref: {reference}."
    if comment:
        details += f" Comment: {comment}"
    add_log_entry(db, actor, action, details)
    if commit:
        db.commit()
        db.refresh(product)
        attach_stock(db, [product])
    return product


def list_tester_products(db: Session) -> list[dict[str, object]]:
    products = db.execute(select(Product).where(Product.tester_quantity > 0)).scalars().all()
    levels = stock_levels(db, products)
    rows = [
        {
            "id": product.id,
            "name": product.name,
            "model_name": product.model_name,
            "flavor_name": product.flavor_name,
            "category": product.category,
            "tester_quantity": product.tester_quantity,
            "current_stock": levels.get(product.id, 0),
        }
        for product in products
    ]
    return sorted(rows, key=lambda row: (str(row["name"]).lower(), row["id"]))


def list_damaged_products(db: Session) -> list[dict[str, object]]:
    """Damaged products, most recently damaged first, then by name."""

    products = db.execute(select(Product).where(Product.damaged_quantity > 0)).scalars().all()
    levels = stock_levels(db, products)
    rows = []
    for product in products:
        last_log = latest_entry(db, DAMAGE_ACTION, f"'{product.display_name}'")
        last_batch = max(product.acquisition_batches, key=lambda b: b.date, default=None)
        rows.append(
            {
                "id": product.id,
                "name": product.name,
                "model_name": product.model_name,
                "flavor_name": product.flavor_name,
                "category": product.category,
                "damaged_quantity": product.damaged_quantity,
                "sellable_stock": levels.get(product.id, 0),
                "total_damage_cost": round_money(product.damaged_quantity * product.current_cost_price),
                "date_of_damage_logged": last_log.timestamp if last_log else None,
                "last_acquisition_date": last_batch.date if last_batch else None,
            }
        )
    rows.sort(key=lambda row: (str(row["name"]).lower(), row["id"]))
    # Stable sort: dated rows newest first, undated rows keep name order at the end.
    rows.sort(key=lambda row: row["date_of_damage_logged"] or "", reverse=True)
    return rows
