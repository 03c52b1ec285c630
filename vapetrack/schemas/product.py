from __future__ import annotations

from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field, model_validator

from ..models.product import PRODUCT_TYPES
from ..services.payments import EPSILON, PaymentMethod


def _check_category(value: str) -> str:
    value = value.strip()
    if value not in PRODUCT_TYPES:
        raise ValueError(f"Category must be one of: {', '.join(PRODUCT_TYPES)}")
    return value


Category = Annotated[str, AfterValidator(_check_category)]


class AcquisitionPayment(BaseModel):
    method: PaymentMethod = PaymentMethod.CASH
    cash_paid: float = Field(default=0.0, ge=0)
    digital_paid: float = Field(default=0.0, ge=0)
    due_amount: Optional[float] = Field(default=None, ge=0)
    total_acquisition_cost: float = Field(default=0.0, ge=0)


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    model_name: Optional[str] = None
    flavor_name: Optional[str] = None
    category: Category
    selling_price: float = Field(..., gt=0)
    cost_price: float = Field(..., gt=0)
    total_acquired_stock: int = Field(default=0, ge=0)
    supplier_name: Optional[str] = None
    acquisition_payment: AcquisitionPayment = Field(default_factory=AcquisitionPayment)

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Elf Bar",
                "model_name": "BC5000",
                "flavor_name": "Blue Razz",
                "category": "Disposables",
                "selling_price": 1800,
                "cost_price": 1200,
                "total_acquired_stock": 10,
                "supplier_name": "Himalayan Vapes",
                "acquisition_payment": {"method": "Cash", "total_acquisition_cost": 12000},
            }
        }
    }

    @model_validator(mode="after")
    def validate_prices(self) -> "ProductCreate":
        if self.cost_price > self.selling_price + EPSILON:
            raise ValueError("Cost price cannot be greater than selling price.")
        return self


class VariantFlavor(BaseModel):
    flavor_name: Optional[str] = None
    total_acquired_stock: int = Field(default=0, ge=0)


class ProductVariantsCreate(BaseModel):
    name: str = Field(..., min_length=1)
    model_name: Optional[str] = None
    category: Category
    selling_price: float = Field(..., gt=0)
    cost_price: float = Field(..., gt=0)
    supplier_name: Optional[str] = None
    flavors: List[VariantFlavor] = Field(..., min_length=1)
    acquisition_payment: AcquisitionPayment = Field(default_factory=AcquisitionPayment)

    @model_validator(mode="after")
    def validate_prices(self) -> "ProductVariantsCreate":
        if self.cost_price > self.selling_price + EPSILON:
            raise ValueError("Cost price cannot be greater than selling price.")
        return self


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    model_name: Optional[str] = None
    flavor_name: Optional[str] = None
    category: Optional[Category] = None
    selling_price: Optional[float] = Field(default=None, gt=0)
    cost_price: Optional[float] = Field(default=None, gt=0)


class RestockRequest(BaseModel):
    condition: Literal["condition1", "condition2", "condition3"]
    quantity_added: int = Field(..., gt=0)
    new_cost_price: Optional[float] = Field(default=None, gt=0)
    new_selling_price: Optional[float] = Field(default=None, gt=0)
    new_supplier_name: Optional[str] = None
    payment: AcquisitionPayment = Field(default_factory=AcquisitionPayment)

    @model_validator(mode="after")
    def validate_condition(self) -> "RestockRequest":
        if self.condition == "condition2" and (self.new_cost_price is None or self.new_selling_price is None):
            raise ValueError("New cost and selling prices are required for condition2.")
        if self.condition == "condition3" and not (self.new_supplier_name or "").strip():
            raise ValueError("New supplier name is required for condition3.")
        if (
            self.new_cost_price is not None
            and self.new_selling_price is not None
            and self.new_cost_price > self.new_selling_price + EPSILON
        ):
            raise ValueError("New cost price cannot be greater than new selling price.")
        return self


class TesterUpdate(BaseModel):
    tester_quantity: int = Field(..., ge=0)


class DamageRequest(BaseModel):
    quantity: int = Field(..., gt=0)
    comment: Optional[str] = None


class AcquisitionBatchOut(BaseModel):
    id: int
    product_id: int
    date: str
    condition: str
    supplier_name: Optional[str]
    quantity_added: int
    cost_price_per_unit: float
    selling_price_at_acquisition: Optional[float]
    payment_method: str
    total_batch_cost: float
    cash_paid: float
    digital_paid: float
    due_to_supplier: float
    added_by: Optional[str]

    class Config:
        from_attributes = True


class ProductOut(BaseModel):
    id: int
    name: str
    model_name: Optional[str]
    flavor_name: Optional[str]
    display_name: str
    category: str
    current_cost_price: float
    current_selling_price: float
    damaged_quantity: int
    tester_quantity: int
    total_acquired: int
    current_stock: int = 0
    created_at: str

    class Config:
        from_attributes = True


class ProductUpdateOut(BaseModel):
    message: str
    product: ProductOut


class TesterProductOut(BaseModel):
    id: int
    name: str
    model_name: Optional[str]
    flavor_name: Optional[str]
    category: str
    tester_quantity: int
    current_stock: int


class DamagedProductOut(BaseModel):
    id: int
    name: str
    model_name: Optional[str]
    flavor_name: Optional[str]
    category: str
    damaged_quantity: int
    sellable_stock: int
    total_damage_cost: float
    date_of_damage_logged: Optional[str]
    last_acquisition_date: Optional[str]
