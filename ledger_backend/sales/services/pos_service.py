# sales/services/pos_service.py

"""
POINT-OF-SALE CHECKOUT (APPLICATION SERVICE)

Purpose:
- Turn a basket + payment legs into a completed PosSale (atomic, auditable).
- Deduct stock through the costing engine (FIFO within the warehouse).
- Post the POS_SALE:<id> journal in the same unit of work.

Hard rules:
- Quantities are integer units.
- Money values are computed server-side from the basket.
- Σ payment legs must equal the sale total (2dp exact).
- Legs settle into CASH (cash) or BANK (card, bank transfer).

Accounting effect:
    Dr CASH / BANK (per leg)       leg amount
    Cr SALES_REVENUE               subtotal - discount
    Cr SALES_TAX_PAYABLE           tax
    Dr COGS / Cr INVENTORY_ASSET   FIFO cost

void_pos_sale() reverses the journal and puts the exact lots back.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from accounting.models.account import AccountRole
from accounting.services.exceptions import AccountingServiceError
from accounting.services.journal_entry_service import post_journal_entry
from accounting.services.reversal_service import reverse_journal_entries
from products.models import Product, StockMovement, Warehouse
from products.services.costing import consume, restore_consumption
from sales.models import PosPayment, PosSale, PosSaleItem
from sales.services.totals import LineAmountError, document_totals, line_amounts

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
POS_REFERENCE = "POS_SALE"

LEG_ROLES = {
    PosPayment.METHOD_CASH: AccountRole.CASH,
    PosPayment.METHOD_CARD: AccountRole.BANK,
    PosPayment.METHOD_BANK: AccountRole.BANK,
}


class PosCheckoutError(AccountingServiceError):
    code = "pos_checkout_failed"


class PosVoidError(AccountingServiceError):
    code = "pos_void_failed"


def _money(v) -> Decimal:
    if v is None or v == "":
        return ZERO
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise PosCheckoutError(f"Invalid amount: {v!r}") from exc


def _to_int_qty(value) -> int:
    if isinstance(value, bool):
        raise PosCheckoutError("quantity must be a whole integer unit")

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        s = value.strip()
        if s.isdigit():
            return int(s)

    raise PosCheckoutError("quantity must be a whole integer unit")


def _validate_and_normalize_legs(payments) -> list[dict]:
    """
    payments: list of dicts: {method, amount, reference?}
    Returns normalized list with Decimal 2dp amounts.
    """
    if not payments:
        raise PosCheckoutError("At least one payment leg is required")

    out = []
    for idx, leg in enumerate(payments):
        method = str(leg.get("method", "")).strip().lower()
        if method not in LEG_ROLES:
            raise PosCheckoutError(f"Invalid payment method at index {idx}: {method}")

        amt = _money(leg.get("amount"))
        if amt <= ZERO:
            raise PosCheckoutError(f"Invalid payment amount at index {idx}: {amt}")

        out.append(
            {
                "method": method,
                "amount": amt,
                "reference": str(leg.get("reference", "") or "").strip(),
            }
        )

    return out


@transaction.atomic
def checkout_pos_sale(
    *,
    business_id,
    items,
    payments,
    warehouse=None,
    sale_date=None,
    actor=None,
) -> PosSale:
    """
    items: [{"product", "quantity", "unit_price"?, "discount"?, "tax_percent"?}]
    payments: [{"method": "cash" | "card" | "bank", "amount", "reference"?}]
    """
    business_id = str(business_id or "").strip()
    if not business_id:
        raise PosCheckoutError("business_id is required")
    if not items:
        raise PosCheckoutError("Basket is empty")

    if warehouse is not None:
        if not isinstance(warehouse, Warehouse):
            warehouse = Warehouse.objects.filter(pk=warehouse).first()
        if warehouse is None or warehouse.business_id != business_id:
            raise PosCheckoutError("Warehouse not found for this business")

    basket = []
    for raw in items:
        product = raw.get("product")
        if not isinstance(product, Product):
            product = Product.objects.filter(business_id=business_id, pk=product).first()
        if product is None or product.business_id != business_id:
            raise PosCheckoutError("Product not found for this business")

        qty = _to_int_qty(raw.get("quantity"))
        if qty <= 0:
            raise PosCheckoutError("quantity must be greater than zero")

        unit_price = raw.get("unit_price")
        if unit_price is None:
            unit_price = product.unit_price

        try:
            amounts = line_amounts(
                quantity=qty,
                unit_price=unit_price,
                discount=raw.get("discount"),
                tax_percent=raw.get("tax_percent"),
            )
        except LineAmountError as exc:
            raise PosCheckoutError(f"{product.name}: {exc}") from exc

        basket.append((product, qty, _money(unit_price), Decimal(str(raw.get("tax_percent") or "0")), amounts))

    totals = document_totals([b[4] for b in basket])
    if totals.grand_total <= ZERO:
        raise PosCheckoutError("Sale total must be greater than zero")

    legs = _validate_and_normalize_legs(payments)
    paid = sum((leg["amount"] for leg in legs), ZERO)
    if paid != totals.grand_total:
        raise PosCheckoutError(
            f"Payment legs ({paid}) must equal the sale total ({totals.grand_total})"
        )

    sale = PosSale.objects.create(
        business_id=business_id,
        warehouse=warehouse,
        sale_date=sale_date or timezone.localdate(),
        subtotal_amount=totals.subtotal,
        discount_amount=totals.discount_total,
        tax_amount=totals.tax_total,
        total_amount=totals.grand_total,
        created_by=str(actor or ""),
    )

    cogs_total = ZERO
    for product, qty, unit_price, tax_percent, amounts in basket:
        result = consume(
            business_id=business_id,
            product=product,
            quantity=qty,
            warehouse=warehouse,
            reference_type=POS_REFERENCE,
            reference_id=sale.id,
            reason=StockMovement.Reason.SALE,
            actor=actor,
        )
        PosSaleItem.objects.create(
            sale=sale,
            product=product,
            quantity=qty,
            unit_price=unit_price,
            discount_amount=amounts.discount,
            tax_percent=tax_percent,
            tax_amount=amounts.tax,
            line_total=amounts.total,
            unit_cost=result.unit_cost_realized,
            cost_amount=result.total_cost,
        )
        cogs_total += result.total_cost

    PosPayment.objects.bulk_create(
        [PosPayment(sale=sale, method=leg["method"], amount=leg["amount"], reference=leg["reference"]) for leg in legs]
    )

    by_role: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for leg in legs:
        by_role[LEG_ROLES[leg["method"]]] += leg["amount"]

    lines = [{"role": role, "debit": amount, "credit": ZERO} for role, amount in by_role.items()]
    if totals.revenue > ZERO:
        lines.append({"role": AccountRole.SALES_REVENUE, "debit": ZERO, "credit": totals.revenue})
    if totals.tax_total > ZERO:
        lines.append({"role": AccountRole.SALES_TAX_PAYABLE, "debit": ZERO, "credit": totals.tax_total})
    if cogs_total > ZERO:
        lines.append({"role": AccountRole.COGS, "debit": cogs_total, "credit": ZERO})
        lines.append({"role": AccountRole.INVENTORY_ASSET, "debit": ZERO, "credit": cogs_total})

    post_journal_entry(
        business_id=business_id,
        entry_date=sale.sale_date,
        description=f"POS sale {sale.receipt_no}",
        reference_type=POS_REFERENCE,
        reference_id=sale.id,
        lines=lines,
        actor=actor,
    )

    sale.cogs_amount = _money(cogs_total)
    sale.save(update_fields=["cogs_amount"])

    logger.info(
        "POS sale completed",
        extra={
            "business_id": business_id,
            "sale_id": str(sale.id),
            "receipt_no": sale.receipt_no,
            "total": str(sale.total_amount),
            "cogs": str(sale.cogs_amount),
            "legs": len(legs),
        },
    )
    return sale


@transaction.atomic
def void_pos_sale(*, business_id, sale_id, actor=None) -> PosSale:
    business_id = str(business_id)
    sale = PosSale.objects.select_for_update().filter(business_id=business_id, pk=sale_id).first()
    if sale is None:
        raise PosVoidError("POS sale not found for this business")

    if sale.status != PosSale.STATUS_COMPLETED:
        raise PosVoidError(f"POS sale {sale.receipt_no} is already {sale.status}")

    reversal = reverse_journal_entries(
        business_id=business_id,
        reference_type=POS_REFERENCE,
        reference_id=sale.id,
    )
    restore_consumption(
        business_id=business_id,
        reference_type=POS_REFERENCE,
        reference_id=sale.id,
        actor=actor,
    )

    sale.status = PosSale.STATUS_VOIDED
    sale.voided_at = timezone.now()
    sale.save(update_fields=["status", "voided_at"])

    logger.info(
        "POS sale voided",
        extra={
            "business_id": business_id,
            "sale_id": str(sale.id),
            "journals_removed": reversal.journals_removed,
            "actor": str(actor or ""),
        },
    )
    return sale
