"""Sellable stock derivation.

Stock is never stored. It is always::

    acquired (sum of batch quantities) - sold - damaged - tester
"""

from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models.product import Product
from ..models.sale import SaleItem


def _quantity(value: Any) -> int | float:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    return 0


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def calculate_current_stock(product: Any, sales: Iterable[Any]) -> int | float:
    """Derive sellable stock for ``product`` from its batches and every sale.

    Works on ORM rows or plain dicts. Missing or non-numeric quantities count
    as zero and a missing product has no stock.
    """
    if product is None:
        return 0
    batches = _field(product, "acquisition_batches") or []
    acquired = sum(_quantity(_field(batch, "quantity_added")) for batch in batches)

    product_id = _field(product, "id")
    sold = 0
    for sale in sales or []:
        for item in _field(sale, "items") or []:
            if item is not None and _field(item, "product_id") == product_id:
                sold += _quantity(_field(item, "quantity"))

    damaged = _quantity(_field(product, "damaged_quantity"))
    testers = _quantity(_field(product, "tester_quantity"))
    return acquired - sold - damaged - testers


def sold_quantities(
    db: Session,
    product_ids: Iterable[int] | None = None,
    exclude_sale_id: int | None = None,
) -> dict[int, int]:
    """Total units sold per product across all recorded sales."""

    stmt = select(SaleItem.product_id, func.coalesce(func.sum(SaleItem.quantity), 0)).group_by(SaleItem.product_id)
    if product_ids is not None:
        stmt = stmt.where(SaleItem.product_id.in_(tuple(product_ids)))
    if exclude_sale_id is not None:
        stmt = stmt.where(SaleItem.sale_id != exclude_sale_id)
    return {product_id: int(total or 0) for product_id, total in db.execute(stmt).all()}


def stock_from_sold(product: Product, sold: int) -> int:
    return (
        product.total_acquired
        - int(sold or 0)
        - int(product.damaged_quantity or 0)
        - int(product.tester_quantity or 0)
    )


def current_stock(db: Session, product: Product, exclude_sale_id: int | None = None) -> int:
    """Stock of one product; ``exclude_sale_id`` ignores that sale's own lines."""

    sold = sold_quantities(db, [product.id], exclude_sale_id=exclude_sale_id).get(product.id, 0)
    return stock_from_sold(product, sold)


def stock_levels(db: Session, products: Iterable[Product] | None = None) -> dict[int, int]:
    """Stock for many products with a single aggregate query."""

    if products is None:
        products = db.execute(select(Product)).scalars().all()
    products = list(products)
    sold = sold_quantities(db, [p.id for p in products]) if products else {}
    return {product.id: stock_from_sold(product, sold.get(product.id, 0)) for product in products}
