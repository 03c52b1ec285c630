from __future__ import annotations

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)
    customer_name = Column(Text, nullable=False, index=True)
    customer_contact = Column(Text, nullable=True)
    total_amount = Column(Float, nullable=False, default=0.0)
    cash_paid = Column(Float, nullable=False, default=0.0)
    digital_paid = Column(Float, nullable=False, default=0.0)
    amount_due = Column(Float, nullable=False, default=0.0)
    payment_method = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="Paid", index=True)
    date = Column(Text, nullable=False, index=True)
    created_by = Column(Text, nullable=False)
    sale_origin = Column(Text, nullable=False, default="store")
    is_flagged = Column(Boolean, nullable=False, default=False)
    flagged_comment = Column(Text, nullable=False, default="")

    items = relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class SaleItem(Base):
    """A line of a sale with the product's name and prices captured at sale time."""

    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    product_name = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    unit_cost = Column(Float, nullable=True)
    total_price = Column(Float, nullable=False)
    is_flagged_for_damage_exchange = Column(Boolean, nullable=False, default=False)
    damage_exchange_comment = Column(Text, nullable=True)

    sale = relationship("Sale", back_populates="items")

