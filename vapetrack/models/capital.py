"""Shop-wide singletons: the company profile and the capital balances."""

from __future__ import annotations

from sqlalchemy import Column, Float, Integer, Text

from ..db.session import Base


class CompanyProfile(Base):
    __tablename__ = "company_profile"

    id = Column(Integer, primary_key=True)
    company_name = Column(Text, nullable=False)
    initialized_at = Column(Text, nullable=False)


class CapitalAccount(Base):
    __tablename__ = "capital_accounts"

    id = Column(Integer, primary_key=True)
    cash_in_hand = Column(Float, nullable=False, default=0.0)
    digital_balance = Column(Float, nullable=False, default=0.0)
    last_updated = Column(Text, nullable=False)
