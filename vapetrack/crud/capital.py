from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.errors import DomainError
from ..models.capital import CapitalAccount
from ..services.dates import utcnow_iso
from ..services.payments import fmt_money, round_money
from .logs import add_log_entry


def get_capital(db: Session) -> CapitalAccount:
    """The single capital row, created at zero on first access."""

    account = db.execute(select(CapitalAccount).order_by(CapitalAccount.id)).scalars().first()
    if account is None:
        account = CapitalAccount(cash_in_hand=0.0, digital_balance=0.0, last_updated=utcnow_iso())
        db.add(account)
        db.commit()
        db.refresh(account)
    return account


def _set_balance(db: Session, field: str, label: str, amount: float, actor: str) -> CapitalAccount:
    if amount is None or amount < 0:
        raise DomainError(f"{label} cannot be negative.")
    account = get_capital(db)
    old = getattr(account, field)
    setattr(account, field, round_money(amount))
    account.last_updated = utcnow_iso()
    add_log_entry(
        db,
        actor,
        f"{label} Updated",
        f"{label} changed from {fmt_money(old)} to {fmt_money(amount)}.",
    )
    db.commit()
    db.refresh(account)
    return account


def set_cash_in_hand(db: Session, amount: float, actor: str) -> CapitalAccount:
    return _set_balance(db, "cash_in_hand", "Cash in Hand", amount, actor)


def set_digital_balance(db: Session, amount: float, actor: str) -> CapitalAccount:
    return _set_balance(db, "digital_balance", "Digital Balance", amount, actor)
