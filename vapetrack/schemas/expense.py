from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..models.expense import EXPENSE_CATEGORIES, SYSTEM_CATEGORIES
from ..services.payments import PaymentMethod


def _reject_reserved(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if value.casefold() in {c.casefold() for c in SYSTEM_CATEGORIES}:
        raise ValueError(f"'{value}' is reserved for system-generated expenses.")
    return value


class ExpenseCreate(BaseModel):
    date: Optional[str] = None
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, examples=list(EXPENSE_CATEGORIES))
    amount: float = Field(..., gt=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    cash_paid: float = Field(default=0.0, ge=0)
    digital_paid: float = Field(default=0.0, ge=0)

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: str) -> str:
        return _reject_reserved(value)


class ExpenseUpdate(BaseModel):
    date: Optional[str] = None
    description: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1, examples=list(EXPENSE_CATEGORIES))
    amount: Optional[float] = Field(default=None, gt=0)
    payment_method: Optional[PaymentMethod] = None
    cash_paid: Optional[float] = Field(default=None, ge=0)
    digital_paid: Optional[float] = Field(default=None, ge=0)

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: Optional[str]) -> Optional[str]:
        return _reject_reserved(value)


class ExpenseOut(BaseModel):
    id: int
    date: str
    description: str
    category: str
    amount: float
    recorded_by: str
    payment_method: str
    cash_paid: float
    digital_paid: float
    amount_due: float
    is_system: bool

    class Config:
        from_attributes = True
