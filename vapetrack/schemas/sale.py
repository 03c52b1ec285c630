from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from ..services.payments import PaymentMethod, SettlementMethod


class SaleItemIn(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)


class SaleCreate(BaseModel):
    customer_name: str = Field(..., min_length=1)
    customer_contact: Optional[str] = None
    items: List[SaleItemIn] = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.CASH
    cash_paid: float = Field(default=0.0, ge=0)
    digital_paid: float = Field(default=0.0, ge=0)
    sale_origin: Literal["store", "online"] = "store"

    model_config = {
        "json_schema_extra": {
            "example": {
                "customer_name": "Walk-in",
                "items": [{"product_id": 1, "quantity": 2}],
                "payment_method": "Hybrid",
                "cash_paid": 1000,
                "digital_paid": 500,
            }
        }
    }


class SaleAdjustItem(BaseModel):
    product_id: int
    # 0 drops the line
    quantity: int = Field(..., ge=0)


class SaleAdjust(BaseModel):
    customer_name: Optional[str] = Field(default=None, min_length=1)
    customer_contact: Optional[str] = None
    items: List[SaleAdjustItem] = Field(..., min_length=1)
    payment_method: PaymentMethod
    cash_paid: float = Field(default=0.0, ge=0)
    digital_paid: float = Field(default=0.0, ge=0)
    adjustment_comment: str = Field(..., min_length=1)


class SaleItemFlag(BaseModel):
    item_id: int
    damage_exchanged: bool = False
    comment: Optional[str] = None


class SaleFlagRequest(BaseModel):
    comment: str = Field(..., min_length=1)
    items: List[SaleItemFlag] = Field(default_factory=list)


class ResolveFlagRequest(BaseModel):
    comment: str = Field(..., min_length=1)


class SettlePaymentRequest(BaseModel):
    amount: float = Field(..., gt=0)
    method: SettlementMethod


class SaleItemOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: int
    unit_price: float
    unit_cost: Optional[float]
    total_price: float
    profit_total: Optional[float] = None
    is_flagged_for_damage_exchange: bool
    damage_exchange_comment: Optional[str]

    class Config:
        from_attributes = True


class SaleOut(BaseModel):
    id: int
    customer_name: str
    customer_contact: Optional[str]
    items: List[SaleItemOut]
    total_amount: float
    cash_paid: float
    digital_paid: float
    amount_due: float
    payment_method: str
    status: str
    date: str
    created_by: str
    sale_origin: str
    is_flagged: bool
    flagged_comment: str

    class Config:
        from_attributes = True


class CustomerSummaryOut(BaseModel):
    customer_name: str
    customer_contact: Optional[str]
    sales_count: int
    total_spent: float
    total_due: float
    last_purchase: Optional[str]
