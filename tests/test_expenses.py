import pytest

from vapetrack.core.errors import DomainError, PaymentError
from vapetrack.crud.expenses import (
    add_system_expense,
    create_expense,
    delete_expense,
    list_expenses,
    update_expense,
)
from vapetrack.crud.logs import list_log_entries
from vapetrack.schemas.expense import ExpenseCreate


def _expense(db, **extra):
    payload = {"description": "Shop rent", "category": "Rent", "amount": 15000, "payment_method": "Cash"}
    payload.update(extra)
    return create_expense(db, payload, actor="Owner")


def test_create_expense_resolves_payment(db_session):
    expense = _expense(db_session, payment_method="Hybrid", cash_paid=5000, digital_paid=5000)
    assert expense.amount_due == 5000
    assert expense.recorded_by == "Owner"
    assert not expense.is_system
    assert list_log_entries(db_session, action="expense recorded")


@pytest.mark.parametrize("category", ["Product Damage", "tester allocation"])
def test_reserved_categories_are_rejected(db_session, category):
    with pytest.raises(DomainError):
        _expense(db_session, category=category)


def test_create_expense_validation(db_session):
    with pytest.raises(DomainError):
        _expense(db_session, amount=0)
    with pytest.raises(DomainError):
        _expense(db_session, description="   ")
    with pytest.raises(DomainError):
        _expense(db_session, date="yesterday")
    with pytest.raises(PaymentError):
        _expense(db_session, payment_method="Hybrid", cash_paid=20000)


def test_date_is_stored_as_utc(db_session):
    expense = _expense(db_session, date="2024-05-01T10:00:00+05:45")
    assert expense.date == "2024-05-01T04:15:00Z"
    assert [e.id for e in list_expenses(db_session, date="2024-05-01")] == [expense.id]
    assert list_expenses(db_session, date="2024-05-02") == []


def test_list_expenses_substring_filters(db_session):
    _expense(db_session)
    _expense(db_session, description="Electricity", category="Utilities")
    assert [e.description for e in list_expenses(db_session, category="util")] == ["Electricity"]
    assert len(list_expenses(db_session, recorded_by="own")) == 2
    assert list_expenses(db_session, recorded_by="sita") == []


def test_update_and_delete_expense(db_session):
    expense = _expense(db_session)
    update_expense(db_session, expense, {"amount": 12000, "payment_method": "Due"}, actor="Owner")
    assert expense.amount == 12000
    assert expense.amount_due == 12000
    assert expense.cash_paid == 0

    with pytest.raises(DomainError):
        update_expense(db_session, expense, {"category": "Product Damage"}, actor="Owner")

    delete_expense(db_session, expense, actor="Owner")
    assert list_expenses(db_session) == []
    assert list_log_entries(db_session, action="Expense Deleted")


def test_system_expenses_are_immutable(db_session):
    expense = add_system_expense(
        db_session, description="Tester Allocation: 1x Pod", category="Tester Allocation", amount=250, actor="Owner"
    )
    db_session.commit()
    assert expense.payment_method == "Digital"
    assert expense.digital_paid == 250
    with pytest.raises(DomainError):
        update_expense(db_session, expense, {"description": "edited"}, actor="Owner")
    with pytest.raises(DomainError):
        delete_expense(db_session, expense, actor="Owner")


def test_expense_schema_suggests_user_categories():
    examples = ExpenseCreate.model_json_schema()["properties"]["category"]["examples"]
    assert examples[0] == "Rent"
    assert "Product Damage" not in examples
