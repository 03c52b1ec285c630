import pytest

from vapetrack.core.errors import ConflictError, DomainError, InsufficientStockError, PaymentError
from vapetrack.crud.logs import list_log_entries
from vapetrack.crud.products import (
    create_variants,
    list_damaged_products,
    list_products,
    list_tester_products,
    mark_damaged,
    restock_product,
    set_tester_quantity,
    update_product,
)
from vapetrack.models.expense import Expense

from conftest import add_product


def test_create_product_records_first_batch(db_session):
    product = add_product(db_session, stock=10, cost=100, price=150, supplier_name="Himal Traders")

    assert product.current_stock == 10
    assert product.display_name == "Elf Bar (BC5000) - Mango"
    [batch] = product.acquisition_batches
    assert batch.condition == "Product Added"
    assert batch.supplier_name == "Himal Traders"
    assert batch.total_batch_cost == 1000
    assert batch.cash_paid == 1000
    assert batch.due_to_supplier == 0
    assert list_log_entries(db_session, action="Product Added")


def test_duplicate_variant_is_case_insensitive(db_session):
    add_product(db_session)
    with pytest.raises(ConflictError):
        add_product(db_session, name="elf bar", model_name="bc5000", flavor_name="MANGO")
    # A different flavor is a different variant.
    add_product(db_session, flavor_name="Grape")


def test_create_product_requires_total_cost_when_adding_stock(db_session):
    with pytest.raises(DomainError):
        add_product(db_session, acquisition_payment={"method": "Cash", "total_acquisition_cost": 0})


def test_create_product_checks_explicit_due(db_session):
    with pytest.raises(PaymentError):
        add_product(
            db_session,
            acquisition_payment={
                "method": "Hybrid",
                "cash_paid": 300,
                "digital_paid": 200,
                "due_amount": 100,
                "total_acquisition_cost": 1000,
            },
        )
    product = add_product(
        db_session,
        acquisition_payment={
            "method": "Hybrid",
            "cash_paid": 300,
            "digital_paid": 200,
            "due_amount": 500,
            "total_acquisition_cost": 1000,
        },
    )
    assert product.latest_batch.due_to_supplier == 500


def test_cost_cannot_exceed_selling_price(db_session):
    with pytest.raises(DomainError):
        add_product(db_session, cost=200, price=150)


def test_create_variants_splits_payment_proportionally(db_session):
    products = create_variants(
        db_session,
        {
            "name": "Lost Mary",
            "model_name": "OS5000",
            "category": "Disposables",
            "cost_price": 100,
            "selling_price": 160,
            "flavors": [
                {"flavor_name": "Mint", "total_acquired_stock": 3},
                {"flavor_name": "Peach", "total_acquired_stock": 1},
            ],
            "acquisition_payment": {
                "method": "Hybrid",
                "cash_paid": 200,
                "digital_paid": 0,
                "total_acquisition_cost": 400,
            },
        },
        actor="Owner",
    )
    mint, peach = products
    assert mint.latest_batch.total_batch_cost == 300
    assert mint.latest_batch.cash_paid == 150
    assert mint.latest_batch.due_to_supplier == 150
    assert peach.latest_batch.total_batch_cost == 100
    assert peach.latest_batch.due_to_supplier == 50
    assert [p.current_stock for p in products] == [3, 1]


def test_create_variants_batch_splits_add_up_after_rounding(db_session):
    products = create_variants(
        db_session,
        {
            "name": "Geek Bar",
            "model_name": "Pulse",
            "category": "Disposables",
            "cost_price": 1,
            "selling_price": 2,
            "flavors": [
                {"flavor_name": "Lime", "total_acquired_stock": 1},
                {"flavor_name": "Berry", "total_acquired_stock": 1},
                {"flavor_name": "Cola", "total_acquired_stock": 1},
            ],
            "acquisition_payment": {
                "method": "Hybrid",
                "cash_paid": 1,
                "digital_paid": 1,
                "total_acquisition_cost": 3,
            },
        },
        actor="Owner",
    )
    batches = [p.latest_batch for p in products]
    for batch in batches:
        assert batch.total_batch_cost == 1
        assert batch.cash_paid == 0.33
        assert batch.digital_paid == 0.33
        assert batch.due_to_supplier == 0.34
        assert batch.cash_paid + batch.digital_paid + batch.due_to_supplier == pytest.approx(1)


def test_create_variants_rejects_existing_flavor(db_session):
    add_product(db_session, name="Lost Mary", model_name="OS5000", flavor_name="Mint")
    with pytest.raises(ConflictError):
        create_variants(
            db_session,
            {
                "name": "Lost Mary",
                "model_name": "OS5000",
                "category": "Disposables",
                "cost_price": 100,
                "selling_price": 160,
                "flavors": [{"flavor_name": "Mint", "total_acquired_stock": 1}],
                "acquisition_payment": {"method": "Cash", "total_acquisition_cost": 100},
            },
            actor="Owner",
        )


def test_update_product_reports_changes(db_session):
    product = add_product(db_session)
    same, changed = update_product(db_session, product, {"selling_price": 150}, actor="Owner")
    assert not changed

    updated, changed = update_product(db_session, product, {"selling_price": 180, "flavor_name": "Ice"}, actor="Owner")
    assert changed
    assert updated.current_selling_price == 180
    assert updated.flavor_name == "Ice"

    with pytest.raises(DomainError):
        update_product(db_session, product, {"cost_price": 500}, actor="Owner")


def test_rename_into_existing_variant_conflicts(db_session):
    add_product(db_session, flavor_name="Grape")
    product = add_product(db_session, flavor_name="Mango")
    with pytest.raises(ConflictError):
        update_product(db_session, product, {"flavor_name": "grape"}, actor="Owner")


def test_restock_conditions(db_session):
    product = add_product(db_session, stock=5, supplier_name="Old Supplier")

    restock_product(
        db_session,
        product,
        {"condition": "condition1", "quantity_added": 5, "payment": {"method": "Cash", "total_acquisition_cost": 500}},
        actor="Owner",
    )
    assert product.latest_batch.condition == "Restock (Same Supplier/Price)"
    assert product.latest_batch.supplier_name == "Old Supplier"
    assert product.current_stock == 10

    restock_product(
        db_session,
        product,
        {
            "condition": "condition2",
            "quantity_added": 2,
            "new_cost_price": 120,
            "new_selling_price": 170,
            "payment": {"method": "Due", "total_acquisition_cost": 240},
        },
        actor="Owner",
    )
    assert product.current_cost_price == 120
    assert product.current_selling_price == 170
    assert product.latest_batch.due_to_supplier == 240

    restock_product(
        db_session,
        product,
        {
            "condition": "condition3",
            "quantity_added": 1,
            "new_supplier_name": "New Supplier",
            "payment": {"method": "Digital", "total_acquisition_cost": 120},
        },
        actor="Owner",
    )
    assert product.latest_batch.supplier_name == "New Supplier"
    assert product.latest_batch.cost_price_per_unit == 120
    assert product.current_stock == 13


def test_restock_validates_condition_requirements(db_session):
    product = add_product(db_session)
    with pytest.raises(DomainError):
        restock_product(db_session, product, {"condition": "condition2", "quantity_added": 1}, actor="Owner")
    with pytest.raises(DomainError):
        restock_product(db_session, product, {"condition": "condition3", "quantity_added": 1}, actor="Owner")
    with pytest.raises(DomainError):
        restock_product(db_session, product, {"condition": "condition1", "quantity_added": 0}, actor="Owner")


def test_tester_allocation_moves_stock_and_records_expense(db_session):
    product = add_product(db_session, stock=4, cost=100)

    product, changed = set_tester_quantity(db_session, product, 3, actor="Owner")
    assert changed
    assert product.current_stock == 1
    expense = db_session.query(Expense).one()
    assert expense.category == "Tester Allocation"
    assert expense.amount == 300
    assert expense.is_system

    with pytest.raises(InsufficientStockError):
        set_tester_quantity(db_session, product, 5, actor="Owner")

    product, changed = set_tester_quantity(db_session, product, 1, actor="Owner")
    assert product.current_stock == 3
    assert db_session.query(Expense).count() == 1

    _, changed = set_tester_quantity(db_session, product, 1, actor="Owner")
    assert not changed
    assert [row["id"] for row in list_tester_products(db_session)] == [product.id]


def test_mark_damaged_and_damaged_listing(db_session):
    first = add_product(db_session, flavor_name="Apple", stock=5, cost=100)
    second = add_product(db_session, flavor_name="Berry", stock=5, cost=50)

    mark_damaged(db_session, first, 2, actor="Owner", comment="Leaking")
    mark_damaged(db_session, second, 1, actor="Owner")
    assert first.current_stock == 3
    assert first.damaged_quantity == 2

    with pytest.raises(InsufficientStockError):
        mark_damaged(db_session, first, 10, actor="Owner")

    rows = list_damaged_products(db_session)
    assert {row["id"] for row in rows} == {first.id, second.id}
    by_id = {row["id"]: row for row in rows}
    assert by_id[first.id]["total_damage_cost"] == 200
    assert by_id[first.id]["date_of_damage_logged"] is not None
    assert by_id[first.id]["last_acquisition_date"] is not None
    damage_expenses = db_session.query(Expense).filter(Expense.category == "Product Damage").all()
    assert sorted(e.amount for e in damage_expenses) == [50, 200]


def test_list_products_filters_by_category(db_session):
    add_product(db_session)
    add_product(db_session, name="Coil Pack", model_name=None, flavor_name=None, category="Coils")
    assert [p.name for p in list_products(db_session, category="Coils")] == ["Coil Pack"]
    assert len(list_products(db_session)) == 2
