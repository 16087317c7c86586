# sales/services/totals.py

"""
LINE & DOCUMENT TOTALS

Pure money math shared by invoices and POS checkout. No database access.

Per line:
    gross    = quantity × unit_price
    taxable  = gross - discount
    tax      = taxable × tax_percent / 100
    total    = taxable + tax

Per document:
    subtotal       = Σ gross
    discount_total = Σ discount
    tax_total      = Σ tax
    grand_total    = subtotal - discount_total + tax_total
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


class LineAmountError(ValueError):
    pass


def _money(v) -> Decimal:
    try:
        d = Decimal(str(v if v is not None else "0.00"))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise LineAmountError(f"Invalid amount: {v!r}") from exc
    if not d.is_finite():
        raise LineAmountError(f"Invalid amount: {v!r}")
    return d.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineAmounts:
    gross: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal

    @property
    def taxable(self) -> Decimal:
        return self.gross - self.discount


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Decimal
    discount_total: Decimal
    tax_total: Decimal
    grand_total: Decimal

    @property
    def revenue(self) -> Decimal:
        return self.subtotal - self.discount_total


def line_amounts(*, quantity: int, unit_price, discount=None, tax_percent=None) -> LineAmounts:
    price = _money(unit_price)
    disc = _money(discount)
    rate = Decimal(str(tax_percent or "0"))

    if price < ZERO:
        raise LineAmountError("unit_price cannot be negative")
    if disc < ZERO:
        raise LineAmountError("discount cannot be negative")
    if rate < 0 or rate > HUNDRED:
        raise LineAmountError("tax_percent must be between 0 and 100")

    gross = _money(price * int(quantity))
    if disc > gross:
        raise LineAmountError("discount cannot exceed the line amount")

    tax = _money((gross - disc) * rate / HUNDRED)
    return LineAmounts(gross=gross, discount=disc, tax=tax, total=gross - disc + tax)


def document_totals(lines) -> DocumentTotals:
    subtotal = sum((ln.gross for ln in lines), ZERO)
    discount_total = sum((ln.discount for ln in lines), ZERO)
    tax_total = sum((ln.tax for ln in lines), ZERO)
    return DocumentTotals(
        subtotal=subtotal,
        discount_total=discount_total,
        tax_total=tax_total,
        grand_total=subtotal - discount_total + tax_total,
    )
