# products/services/stock_adjustments.py

"""
STOCK ADJUSTMENTS & WAREHOUSE TRANSFERS

adjust_stock_lot():
- quantity_change must be a non-zero integer
- +N: manual stock add, one new lot at unit_cost (defaults to the product's
  most recent lot cost), posted
      Dr INVENTORY_ASSET / Cr OTHER_INCOME
- -N: manual correction, drawn FIFO (or from lot_refs) at the lots' own cost,
  posted
      Dr COGS / Cr INVENTORY_ASSET
- Journal reference: ADJUSTMENT:<id>; zero-cost moves post nothing

transfer_stock_lot():
- Takes N units out of ONE lot and puts them into a new lot in the target
  warehouse with the same unit_cost, manufacturing_date and expiry
- Product.stock and inventory value are unchanged; no journal

Both run in ONE unit of work: any failure leaves lots, counters and the
ledger untouched.
"""

from __future__ import annotations

import logging
import re
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from accounting.models.account import AccountRole
from accounting.services.exceptions import AccountingServiceError
from accounting.services.journal_entry_service import post_journal_entry
from products.models import Product, StockAdjustment, StockBatch, StockMovement, StockTransfer, Warehouse
from products.services.costing import LotNotFoundError, consume, produce

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
ADJUSTMENT_REFERENCE = "ADJUSTMENT"
TRANSFER_REFERENCE = "TRANSFER"

_ADJUSTMENT_NUMBER_RE = re.compile(r"^ADJ-(\d+)$")
_TRANSFER_NUMBER_RE = re.compile(r"^TRF-(\d+)$")


class StockAdjustmentError(AccountingServiceError):
    code = "stock_adjustment_failed"


class StockTransferError(AccountingServiceError):
    code = "stock_transfer_failed"


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_int_delta(value) -> int:
    if value is None or value == "":
        raise StockAdjustmentError("quantity_change is required")

    if isinstance(value, bool):
        # bool is an int subclass
        raise StockAdjustmentError("quantity_change must be an integer")

    if isinstance(value, Decimal) and value != value.to_integral_value():
        raise StockAdjustmentError("quantity_change must be an integer")

    try:
        delta = int(value)
    except (TypeError, ValueError) as exc:
        raise StockAdjustmentError("quantity_change must be an integer") from exc

    if delta == 0:
        raise StockAdjustmentError("quantity_change cannot be 0")

    return delta


def _next_number(model, field_name: str, pattern, prefix: str, business_id: str) -> str:
    highest = 0
    for number in model.objects.filter(business_id=business_id).values_list(field_name, flat=True):
        match = pattern.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}-{highest + 1:06d}"


def _owned(model, *, business_id: str, value, label: str, error=StockAdjustmentError):
    if value is None:
        return None
    obj = value if isinstance(value, model) else model.objects.filter(pk=value).first()
    if obj is None or obj.business_id != business_id:
        raise error(f"{label} not found for this business")
    return obj


def _last_lot_cost(*, business_id: str, product: Product):
    return (
        StockBatch.objects.filter(business_id=business_id, product=product)
        .order_by("-created_at", "-id")
        .values_list("unit_cost", flat=True)
        .first()
    )


# ============================================================
# ADJUSTMENT
# ============================================================

@transaction.atomic
def adjust_stock_lot(
    *,
    business_id,
    product,
    quantity_change,
    unit_cost=None,
    warehouse=None,
    lot_refs=None,
    adjustment_date=None,
    reason: str = "",
    actor=None,
) -> StockAdjustment:
    business_id = str(business_id or "").strip()
    if not business_id:
        raise StockAdjustmentError("business_id is required")

    delta = _to_int_delta(quantity_change)
    product = _owned(Product, business_id=business_id, value=product, label="Product")
    if product is None:
        raise StockAdjustmentError("product is required")
    warehouse = _owned(Warehouse, business_id=business_id, value=warehouse, label="Warehouse")
    adjustment_date = adjustment_date or timezone.localdate()

    if delta > 0:
        if lot_refs:
            raise StockAdjustmentError("lot_refs only apply to stock reductions")
        if unit_cost is None:
            unit_cost = _last_lot_cost(business_id=business_id, product=product)
            if unit_cost is None:
                raise StockAdjustmentError(
                    f"unit_cost is required: {product.name} has no earlier lot to take a cost from"
                )

    adjustment = StockAdjustment(
        business_id=business_id,
        adjustment_number=_next_number(
            StockAdjustment, "adjustment_number", _ADJUSTMENT_NUMBER_RE, "ADJ", business_id
        ),
        product=product,
        warehouse=warehouse,
        quantity_change=delta,
        adjustment_date=adjustment_date,
        reason=(reason or "").strip(),
        created_by=str(actor or ""),
    )
    try:
        adjustment.save()
    except ValidationError as exc:
        raise StockAdjustmentError(str(exc)) from exc

    if delta > 0:
        batch = produce(
            business_id=business_id,
            product=product,
            quantity=delta,
            unit_cost=unit_cost,
            warehouse=warehouse,
            batch_number=adjustment.adjustment_number,
            manufacturing_date=adjustment_date,
            reference_type=ADJUSTMENT_REFERENCE,
            reference_id=adjustment.id,
            reason=StockMovement.Reason.ADJUSTMENT,
            actor=actor,
        )
        realized_unit_cost = batch.unit_cost
        amount = _money(batch.unit_cost * delta)
        debit_role, credit_role = AccountRole.INVENTORY_ASSET, AccountRole.OTHER_INCOME
    else:
        result = consume(
            business_id=business_id,
            product=product,
            quantity=-delta,
            warehouse=warehouse,
            lot_refs=lot_refs,
            reference_type=ADJUSTMENT_REFERENCE,
            reference_id=adjustment.id,
            reason=StockMovement.Reason.ADJUSTMENT,
            actor=actor,
        )
        realized_unit_cost = result.unit_cost_realized
        amount = result.total_cost
        debit_role, credit_role = AccountRole.COGS, AccountRole.INVENTORY_ASSET

    adjustment.unit_cost = realized_unit_cost
    adjustment.amount = amount
    adjustment.save(update_fields=["unit_cost", "amount"])

    journal_entry_id = None
    if amount > ZERO:
        je = post_journal_entry(
            business_id=business_id,
            entry_date=adjustment_date,
            description=f"Stock adjustment {adjustment.adjustment_number}: {adjustment.reason or product.name}",
            reference_type=ADJUSTMENT_REFERENCE,
            reference_id=adjustment.id,
            lines=[
                {"role": debit_role, "debit": amount, "credit": ZERO},
                {"role": credit_role, "debit": ZERO, "credit": amount},
            ],
            actor=actor,
        )
        journal_entry_id = je.id

    logger.info(
        "Stock adjusted",
        extra={
            "business_id": business_id,
            "adjustment_number": adjustment.adjustment_number,
            "product_id": str(product.pk),
            "quantity_change": delta,
            "amount": str(amount),
            "journal_entry_id": journal_entry_id,
        },
    )
    return adjustment


# ============================================================
# TRANSFER
# ============================================================

@transaction.atomic
def transfer_stock_lot(
    *,
    business_id,
    batch,
    quantity,
    to_warehouse,
    transfer_date=None,
    notes: str = "",
    actor=None,
) -> StockTransfer:
    business_id = str(business_id or "").strip()
    if not business_id:
        raise StockTransferError("business_id is required")

    batch_id = getattr(batch, "pk", batch)
    source = (
        StockBatch.objects.select_for_update()
        .select_related("product")
        .filter(business_id=business_id, pk=batch_id)
        .first()
    )
    if source is None:
        raise LotNotFoundError(f"Lot {batch_id} not found for this business")

    to_warehouse = _owned(
        Warehouse, business_id=business_id, value=to_warehouse, label="Warehouse", error=StockTransferError
    )
    if to_warehouse is None:
        raise StockTransferError("to_warehouse is required")
    if to_warehouse.pk == source.warehouse_id:
        raise StockTransferError("Lot is already in that warehouse")

    transfer = StockTransfer(
        business_id=business_id,
        transfer_number=_next_number(StockTransfer, "transfer_number", _TRANSFER_NUMBER_RE, "TRF", business_id),
        product=source.product,
        source_batch=source,
        from_warehouse_id=source.warehouse_id,
        to_warehouse=to_warehouse,
        quantity=quantity,
        transfer_date=transfer_date or timezone.localdate(),
        notes=(notes or "").strip(),
        created_by=str(actor or ""),
    )
    try:
        transfer.save()
    except (ValidationError, TypeError, ValueError) as exc:
        raise StockTransferError(str(exc)) from exc

    consume(
        business_id=business_id,
        product=source.product,
        quantity=transfer.quantity,
        lot_refs=[source.id],
        reference_type=TRANSFER_REFERENCE,
        reference_id=transfer.id,
        reason=StockMovement.Reason.TRANSFER,
        actor=actor,
    )
    destination = produce(
        business_id=business_id,
        product=source.product,
        quantity=transfer.quantity,
        unit_cost=source.unit_cost,
        warehouse=to_warehouse,
        batch_number=source.batch_number,
        manufacturing_date=source.manufacturing_date,
        expiry_date=source.expiry_date,
        reference_type=TRANSFER_REFERENCE,
        reference_id=transfer.id,
        reason=StockMovement.Reason.TRANSFER,
        actor=actor,
    )

    transfer.destination_batch = destination
    transfer.save(update_fields=["destination_batch"])

    logger.info(
        "Stock transferred",
        extra={
            "business_id": business_id,
            "transfer_number": transfer.transfer_number,
            "source_batch_id": str(source.id),
            "destination_batch_id": str(destination.id),
            "quantity": transfer.quantity,
        },
    )
    return transfer
