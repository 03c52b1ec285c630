from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..services.payments import SettlementMethod


class SettleRequest(BaseModel):
    amount: float = Field(..., gt=0)
    method: SettlementMethod

    model_config = {
        "json_schema_extra": {"example": {"amount": 2500, "method": "Cash"}}
    }


class SupplierDue(BaseModel):
    batch_id: int
    product_id: int
    product_name: Optional[str]
    supplier_name: Optional[str]
    date: str
    total_batch_cost: float
    cash_paid: float
    digital_paid: float
    due: float


class ExpenseDue(BaseModel):
    expense_id: int
    description: str
    category: str
    date: str
    amount: float
    cash_paid: float
    digital_paid: float
    due: float


class PayableSummary(BaseModel):
    supplier_dues: List[SupplierDue]
    expense_dues: List[ExpenseDue]
    total_supplier_due: float
    total_expense_due: float
    total_payable: float


class ReceivableSale(BaseModel):
    sale_id: int
    customer_name: str
    customer_contact: Optional[str]
    date: str
    total_amount: float
    amount_due: float


class ReceivableSummary(BaseModel):
    sales: List[ReceivableSale]
    total_receivable: float


class SupplierOverview(BaseModel):
    supplier_name: str
    batch_count: int
    total_cost: float
    total_paid: float
    total_due: float
    last_supplied: Optional[str]


class CapitalUpdate(BaseModel):
    amount: float = Field(..., ge=0)


class CapitalOut(BaseModel):
    cash_in_hand: float
    digital_balance: float
    last_updated: str

    class Config:
        from_attributes = True


class LogEntryOut(BaseModel):
    id: int
    timestamp: str
    user: str
    action: str
    details: str

    class Config:
        from_attributes = True
