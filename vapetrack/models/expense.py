from __future__ import annotations

from sqlalchemy import Boolean, Column, Float, Integer, Text

from ..db.session import Base

EXPENSE_CATEGORIES = (
    "Rent",
    "Utilities",
    "Office Supplies and Equipment",
    "Professional Services",
    "Marketing and Advertising",
    "Maintenance and Repairs",
    "Other Operating Expenses",
    "Salaries and Benefits",
    "Government Fees",
)

# Only created by the system when stock is written off.
PRODUCT_DAMAGE = "Product Damage"
TESTER_ALLOCATION = "Tester Allocation"
SYSTEM_CATEGORIES = (PRODUCT_DAMAGE, TESTER_ALLOCATION)


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Text, nullable=False, index=True)
    description = Column(Text, nullable=False)
    category = Column(Text, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    recorded_by = Column(Text, nullable=False)
    payment_method = Column(Text, nullable=False)
    cash_paid = Column(Float, nullable=False, default=0.0)
    digital_paid = Column(Float, nullable=False, default=0.0)
    amount_due = Column(Float, nullable=False, default=0.0)
    is_system = Column(Boolean, nullable=False, default=False)
