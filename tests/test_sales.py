import pytest

from vapetrack.core.errors import DomainError, InsufficientStockError, PaymentError
from vapetrack.crud.sales import (
    adjust_sale,
    create_sale,
    customer_summary,
    delete_sale,
    flag_sale,
    list_sales,
    resolve_flag,
    settle_sale_due,
)
from vapetrack.models.expense import Expense
from vapetrack.services.dates import local_today
from vapetrack.services.stock import current_stock

from conftest import add_product


def _sale(db, product, quantity=1, **extra):
    payload = {"customer_name": "Ram", "items": [{"product_id": product.id, "quantity": quantity}]}
    payload.update(extra)
    return create_sale(db, payload, actor="Sita")


def test_create_sale_snapshots_prices_and_reduces_stock(db_session):
    product = add_product(db_session, stock=10, cost=100, price=150)
    sale = _sale(db_session, product, quantity=3, payment_method="Cash")

    assert sale.total_amount == 450
    assert sale.status == "Paid"
    assert sale.created_by == "Sita"
    [item] = sale.items
    assert item.unit_price == 150
    assert item.unit_cost == 100
    assert item.product_name == "Elf Bar (BC5000) - Mango"
    assert item.profit_total == 150
    assert current_stock(db_session, product) == 7

    product.current_selling_price = 200
    db_session.commit()
    assert sale.items[0].unit_price == 150


def test_repeated_products_are_combined_for_the_stock_check(db_session):
    product = add_product(db_session, stock=4)
    with pytest.raises(InsufficientStockError):
        create_sale(
            db_session,
            {
                "customer_name": "Ram",
                "items": [
                    {"product_id": product.id, "quantity": 3},
                    {"product_id": product.id, "quantity": 2},
                ],
            },
            actor="Sita",
        )
    sale = create_sale(
        db_session,
        {
            "customer_name": "Ram",
            "items": [
                {"product_id": product.id, "quantity": 2},
                {"product_id": product.id, "quantity": 2},
            ],
        },
        actor="Sita",
    )
    assert [(i.product_id, i.quantity) for i in sale.items] == [(product.id, 4)]


def test_create_sale_validation(db_session):
    product = add_product(db_session)
    with pytest.raises(DomainError):
        create_sale(db_session, {"customer_name": "Ram", "items": []}, actor="Sita")
    with pytest.raises(DomainError):
        create_sale(db_session, {"customer_name": "Ram", "items": [{"product_id": 999, "quantity": 1}]}, actor="Sita")
    with pytest.raises(DomainError):
        _sale(db_session, product, quantity=0)
    with pytest.raises(PaymentError):
        _sale(db_session, product, payment_method="Hybrid", cash_paid=200, digital_paid=0)


def test_hybrid_sale_is_due_until_settled(db_session):
    product = add_product(db_session, price=150)
    sale = _sale(db_session, product, quantity=2, payment_method="Hybrid", cash_paid=100, digital_paid=50)
    assert sale.amount_due == 150
    assert sale.status == "Due"

    settle_sale_due(db_session, sale, 100, "Digital", actor="Owner")
    assert sale.amount_due == 50
    assert sale.digital_paid == 150
    assert sale.status == "Due"

    with pytest.raises(PaymentError):
        settle_sale_due(db_session, sale, 60, "Cash", actor="Owner")

    settle_sale_due(db_session, sale, 50, "Cash", actor="Owner")
    assert sale.status == "Paid"
    assert sale.amount_due == 0
    assert sale.cash_paid + sale.digital_paid == pytest.approx(sale.total_amount)


def test_adjust_sale_uses_own_items_as_available(db_session):
    product = add_product(db_session, stock=5, price=100)
    other = add_product(db_session, flavor_name="Grape", stock=5, price=120)
    sale = _sale(db_session, product, quantity=5)

    adjusted = adjust_sale(
        db_session,
        sale,
        {
            "items": [{"product_id": product.id, "quantity": 4}, {"product_id": other.id, "quantity": 1}],
            "payment_method": "Due",
            "adjustment_comment": "Customer swapped one",
        },
        actor="Owner",
    )
    assert adjusted.total_amount == 520
    assert adjusted.amount_due == 520
    assert adjusted.status == "Due"
    assert "Customer swapped one" in adjusted.flagged_comment
    assert current_stock(db_session, product) == 1
    assert current_stock(db_session, other) == 4

    with pytest.raises(InsufficientStockError):
        adjust_sale(
            db_session,
            sale,
            {"items": [{"product_id": product.id, "quantity": 6}], "payment_method": "Cash", "adjustment_comment": "x"},
            actor="Owner",
        )


def test_adjust_sale_requires_comment_and_one_line(db_session):
    product = add_product(db_session)
    sale = _sale(db_session, product)
    with pytest.raises(DomainError):
        adjust_sale(
            db_session,
            sale,
            {"items": [{"product_id": product.id, "quantity": 1}], "payment_method": "Cash", "adjustment_comment": " "},
            actor="Owner",
        )
    with pytest.raises(DomainError):
        adjust_sale(
            db_session,
            sale,
            {"items": [{"product_id": product.id, "quantity": 0}], "payment_method": "Cash", "adjustment_comment": "empty"},
            actor="Owner",
        )


def test_flag_with_damage_exchange_and_resolution(db_session):
    product = add_product(db_session, stock=5, cost=100)
    sale = _sale(db_session, product, quantity=2)
    item = sale.items[0]

    flag_sale(
        db_session,
        sale,
        {"comment": "Devices leaking", "items": [{"item_id": item.id, "damage_exchanged": True, "comment": "leak"}]},
        actor="Sita",
    )
    assert sale.is_flagged
    assert item.is_flagged_for_damage_exchange
    db_session.refresh(product)
    assert product.damaged_quantity == 2
    assert current_stock(db_session, product) == 1
    expense = db_session.query(Expense).filter(Expense.category == "Product Damage").one()
    assert expense.amount == 200

    assert [s.id for s in list_sales(db_session, status="flagged")] == [sale.id]
    assert list_sales(db_session, status="flagged", flagged_comment_text="LEAKING")
    assert not list_sales(db_session, status="flagged", flagged_comment_text="broken")

    resolve_flag(db_session, sale, "Replaced both", actor="Owner")
    assert not sale.is_flagged
    assert sale.flagged_comment.startswith("Original Flag: Devices leaking")
    assert [s.id for s in list_sales(db_session, status="resolvedFlagged")] == [sale.id]
    assert not list_sales(db_session, status="flagged")

    with pytest.raises(DomainError):
        resolve_flag(db_session, sale, "again", actor="Owner")


def test_adjusting_a_flagged_sale_resolves_the_flag(db_session):
    product = add_product(db_session)
    sale = _sale(db_session, product)
    flag_sale(db_session, sale, {"comment": "Wrong price"}, actor="Sita")
    adjust_sale(
        db_session,
        sale,
        {"items": [{"product_id": product.id, "quantity": 1}], "payment_method": "Cash", "adjustment_comment": "Fixed"},
        actor="Owner",
    )
    assert not sale.is_flagged
    assert "Resolved by Owner" in sale.flagged_comment


def test_adjustment_keeps_damage_exchange_on_the_line(db_session):
    product = add_product(db_session, stock=6, cost=100)
    sale = _sale(db_session, product, quantity=2)
    flag_sale(
        db_session,
        sale,
        {"comment": "Dead battery", "items": [{"item_id": sale.items[0].id, "damage_exchanged": True, "comment": "swap"}]},
        actor="Sita",
    )
    adjust_sale(
        db_session,
        sale,
        {"items": [{"product_id": product.id, "quantity": 2}], "payment_method": "Cash", "adjustment_comment": "Checked"},
        actor="Owner",
    )
    [item] = sale.items
    assert item.is_flagged_for_damage_exchange
    assert item.damage_exchange_comment == "swap"

    with pytest.raises(DomainError):
        flag_sale(
            db_session,
            sale,
            {"comment": "Again", "items": [{"item_id": item.id, "damage_exchanged": True}]},
            actor="Sita",
        )
    db_session.rollback()
    db_session.refresh(product)
    assert product.damaged_quantity == 2
    assert db_session.query(Expense).filter(Expense.category == "Product Damage").count() == 1


def test_list_sales_filters(db_session):
    product = add_product(db_session, stock=20)
    paid = _sale(db_session, product)
    due = _sale(db_session, product, payment_method="Due")

    assert [s.id for s in list_sales(db_session)] == [due.id, paid.id]
    assert [s.id for s in list_sales(db_session, status="Due")] == [due.id]
    assert [s.id for s in list_sales(db_session, status="Paid")] == [paid.id]
    assert len(list_sales(db_session, date=local_today().isoformat())) == 2
    assert list_sales(db_session, month_year="1999-01") == []
    with pytest.raises(DomainError):
        list_sales(db_session, status="Unknown")
    with pytest.raises(DomainError):
        list_sales(db_session, month_year="2024-13")


def test_delete_sale_needs_reason_and_returns_stock(db_session):
    product = add_product(db_session, stock=3)
    sale = _sale(db_session, product, quantity=3)
    with pytest.raises(DomainError):
        delete_sale(db_session, sale, "  ", actor="Owner")
    delete_sale(db_session, sale, "Entered twice", actor="Owner")
    assert current_stock(db_session, product) == 3
    assert list_sales(db_session) == []


def test_customer_summary(db_session):
    product = add_product(db_session, stock=20, price=100)
    _sale(db_session, product, quantity=2)
    _sale(db_session, product, quantity=1, customer_name="ram", payment_method="Due")
    _sale(db_session, product, quantity=5, customer_name="Gita")

    rows = customer_summary(db_session)
    assert [row["customer_name"].lower() for row in rows] == ["gita", "ram"]
    ram = rows[1]
    assert ram["sales_count"] == 2
    assert ram["total_spent"] == 300
    assert ram["total_due"] == 100
