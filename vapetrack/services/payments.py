"""Payment split reconciliation shared by sales, restocks, expenses and settlements."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from ..core.config import settings
from ..core.errors import PaymentError

EPSILON = 0.001
TWOPLACES = Decimal("0.01")


class PaymentMethod(str, Enum):
    CASH = "Cash"
    DIGITAL = "Digital"
    DUE = "Due"
    HYBRID = "Hybrid"


class SettlementMethod(str, Enum):
    CASH = "Cash"
    DIGITAL = "Digital"


@dataclass(frozen=True)
class PaymentSplit:
    method: PaymentMethod
    total: float
    cash: float
    digital: float
    due: float

    @property
    def is_due(self) -> bool:
        return self.due > EPSILON


@dataclass(frozen=True)
class Settlement:
    cash: float
    digital: float
    remaining_due: float


def round_money(value: float | int | None) -> float:
    if not value:
        return 0.0
    return float(Decimal(str(value)).quantize(TWOPLACES, rounding=ROUND_HALF_UP))


def fmt_money(value: float | int | None) -> str:
    return f"{settings.CURRENCY_LABEL} {round_money(value):,.2f}"


def resolve_split(
    method: PaymentMethod | str,
    total: float,
    cash: float | None = 0.0,
    digital: float | None = 0.0,
) -> PaymentSplit:
    """Turn a payment method plus the entered amounts into a full split.

    Single-channel methods take the whole total; ``Hybrid`` keeps the entered
    cash/digital amounts and leaves the remainder due.
    """
    method = PaymentMethod(method)
    total = round_money(total)
    cash = round_money(cash)
    digital = round_money(digital)
    if total < 0:
        raise PaymentError("Total amount cannot be negative.")
    if cash < 0 or digital < 0:
        raise PaymentError("Paid amounts cannot be negative.")

    if method is PaymentMethod.CASH:
        return PaymentSplit(method, total, total, 0.0, 0.0)
    if method is PaymentMethod.DIGITAL:
        return PaymentSplit(method, total, 0.0, total, 0.0)
    if method is PaymentMethod.DUE:
        return PaymentSplit(method, total, 0.0, 0.0, total)

    due = total - cash - digital
    if due < -EPSILON:
        raise PaymentError(
            "Hybrid payment overpaid. Total paid exceeds the total amount.",
            details={"total": total, "paid": round_money(cash + digital)},
        )
    return PaymentSplit(method, total, cash, digital, max(round_money(due), 0.0))


def ensure_split_matches(total: float, cash: float, digital: float, due: float) -> None:
    """Verify an explicitly supplied cash/digital/due triple adds up to ``total``."""

    if min(cash, digital, due) < 0:
        raise PaymentError("Payment amounts cannot be negative.")
    paid = cash + digital + due
    if abs(paid - total) > EPSILON:
        raise PaymentError(
            "Payment split does not add up to the total amount.",
            details={"total": round_money(total), "split_sum": round_money(paid)},
        )


def settle(due: float, amount: float, method: SettlementMethod | str) -> Settlement:
    """Apply a (possibly partial) payment against an outstanding due."""

    method = SettlementMethod(method)
    if amount <= 0:
        raise PaymentError("Payment amount must be positive.")
    if due <= EPSILON:
        raise PaymentError("Nothing is due on this record.")
    if amount > due + EPSILON:
        raise PaymentError(
            f"Payment amount ({fmt_money(amount)}) cannot exceed the due amount of {fmt_money(due)}.",
        )
    applied = min(amount, due)
    remaining = round_money(due - applied)
    if remaining < EPSILON:
        remaining = 0.0
    if method is SettlementMethod.CASH:
        return Settlement(cash=round_money(applied), digital=0.0, remaining_due=remaining)
    return Settlement(cash=0.0, digital=round_money(applied), remaining_due=remaining)


def method_from_parts(cash: float, digital: float, due: float) -> PaymentMethod:
    """Payment method label that matches an existing cash/digital/due triple."""

    parts = ((PaymentMethod.CASH, cash), (PaymentMethod.DIGITAL, digital), (PaymentMethod.DUE, due))
    used = [method for method, value in parts if value > EPSILON]
    if len(used) == 1:
        return used[0]
    if not used:
        return PaymentMethod.CASH
    return PaymentMethod.HYBRID


def describe_split(split: PaymentSplit) -> str:
    if split.method is PaymentMethod.HYBRID:
        parts = []
        if split.cash > 0:
            parts.append(f"Cash: {fmt_money(split.cash)}")
        if split.digital > 0:
            parts.append(f"Digital: {fmt_money(split.digital)}")
        if split.due > 0:
            parts.append(f"Due: {fmt_money(split.due)}")
        return f"Hybrid ({', '.join(parts)})"
    if split.method is PaymentMethod.DUE:
        return f"Due ({fmt_money(split.due)})"
    return split.method.value
