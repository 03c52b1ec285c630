"""Products and the acquisition batches that bring stock into the shop."""

from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base

PRODUCT_TYPES = (
    "Disposables",
    "E-liquid Nic Salt",
    "E-liquid Free Base",
    "Coils",
    "POD/MOD Devices",
    "Cotton",
    "Coil Build & Maintenance",
)

class Product(Base):
    """A sellable variant (name + model + flavor).

    Sellable stock is never stored; see ``services.stock``.
    """

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, index=True)
    model_name = Column(Text, nullable=True)
    flavor_name = Column(Text, nullable=True)
    category = Column(Text, nullable=False, index=True)
    current_cost_price = Column(Float, nullable=False, default=0.0)
    current_selling_price = Column(Float, nullable=False, default=0.0)
    damaged_quantity = Column(Integer, nullable=False, default=0)
    tester_quantity = Column(Integer, nullable=False, default=0)
    created_at = Column(Text, nullable=False)

    acquisition_batches = relationship(
        "AcquisitionBatch",
        back_populates="product",
        order_by="AcquisitionBatch.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def display_name(self) -> str:
        label = self.name
        if self.model_name:
            label += f" ({self.model_name})"
        if self.flavor_name:
            label += f" - {self.flavor_name}"
        return label

    @property
    def total_acquired(self) -> int:
        return sum(batch.quantity_added or 0 for batch in self.acquisition_batches)

    @property
    def latest_batch(self) -> "AcquisitionBatch | None":
        return self.acquisition_batches[-1] if self.acquisition_batches else None


class AcquisitionBatch(Base):
    """One restock event: quantity, unit cost, supplier and how it was paid."""

    __tablename__ = "acquisition_batches"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    date = Column(Text, nullable=False)
    condition = Column(Text, nullable=False)
    supplier_name = Column(Text, nullable=True, index=True)
    quantity_added = Column(Integer, nullable=False, default=0)
    cost_price_per_unit = Column(Float, nullable=False, default=0.0)
    selling_price_at_acquisition = Column(Float, nullable=True)
    payment_method = Column(Text, nullable=False)
    total_batch_cost = Column(Float, nullable=False, default=0.0)
    cash_paid = Column(Float, nullable=False, default=0.0)
    digital_paid = Column(Float, nullable=False, default=0.0)
    due_to_supplier = Column(Float, nullable=False, default=0.0)
    added_by = Column(Text, nullable=True)

    product = relationship("Product", back_populates="acquisition_batches")

    @property
    def product_name(self) -> str | None:
        return self.product.display_name if self.product else None
