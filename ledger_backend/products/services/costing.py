# products/services/costing.py

"""
COSTING ENGINE (LOT-BASED, FIFO / EXPLICIT LOTS)

Purpose:
- consume(): resolve "take N units" into an exact historical cost by walking
  lots oldest-first (manufacturing_date, created_at, id) or in a caller-given
  lot order, and return the weighted ACTUAL cost (not an average/standard cost).
- produce(): create a new lot (purchase receipt, production output, manual add).
- restore_consumption(): put back exactly what a reference consumed, lot for lot.
- retire_produced_lots(): undo produce() for a reference, unless its units were
  already consumed.
- stock_valuation(): Σ quantity_remaining × unit_cost per product.

HARD RULES:
- Integer quantities only
- Lots are locked (select_for_update) BEFORE availability is evaluated
- InsufficientStockError is raised before any lot is touched; inside the
  caller's transaction.atomic() block it aborts the whole unit of work
- Explicit lot_refs are restricted to the requested warehouse when one is given
- Every lot mutation writes a StockMovement with the lot's unit cost and
  moves Product.stock through stock_counter in the same transaction
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone

from accounting.services.exceptions import AccountingServiceError
from products.models import Product, StockBatch, StockMovement
from products.services.stock_counter import adjust_stock

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
FOURPLACES = Decimal("0.0001")


# ============================================================
# DOMAIN ERRORS
# ============================================================

class CostingError(AccountingServiceError):
    code = "costing_error"


class InsufficientStockError(CostingError):
    code = "insufficient_stock"

    def __init__(self, message: str = "", *, requested: int = 0, available: int = 0):
        super().__init__(message)
        self.requested = requested
        self.available = available


class LotNotFoundError(CostingError):
    code = "lot_not_found"


class LotAlreadyConsumedError(CostingError):
    code = "lot_already_consumed"


# ============================================================
# RESULTS
# ============================================================

@dataclass(frozen=True)
class LotDraw:
    batch_id: str
    quantity: int
    unit_cost: Decimal

    @property
    def cost(self) -> Decimal:
        return self.unit_cost * self.quantity


@dataclass
class ConsumptionResult:
    total_cost: Decimal = Decimal("0.00")
    unit_cost_realized: Decimal = Decimal("0.0000")
    lots_touched: list[LotDraw] = field(default_factory=list)

    @property
    def quantity(self) -> int:
        return sum(d.quantity for d in self.lots_touched)


# ============================================================
# HELPERS
# ============================================================

def _to_int_qty(value) -> int:
    """
    Quantity normalizer.
    HARD RULE: quantities are integer units in this system.
    """
    if isinstance(value, bool):
        raise CostingError("quantity must be a whole integer unit")

    if isinstance(value, int):
        return value

    if isinstance(value, Decimal) and value == value.to_integral_value():
        return int(value)

    if isinstance(value, str):
        s = value.strip()
        if s.isdigit():
            return int(s)

    raise CostingError("quantity must be a whole integer unit")


def _unit_cost(value) -> Decimal:
    try:
        cost = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise CostingError(f"Invalid unit_cost: {value!r}") from exc
    if not cost.is_finite() or cost < 0:
        raise CostingError("unit_cost must be >= 0")
    return cost.quantize(FOURPLACES, rounding=ROUND_HALF_UP)


def _check_product(*, business_id: str, product) -> Product:
    if not isinstance(product, Product):
        product = Product.objects.filter(pk=product).first()
    if product is None or product.business_id != business_id:
        raise CostingError("Product not found for this business")
    return product


def _product_label(product: Product) -> str:
    return getattr(product, "name", None) or "product"


def _lot_ref(value) -> str:
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError, AttributeError) as exc:
        raise LotNotFoundError(f"Invalid lot reference: {value!r}") from exc


def _lock_lots(*, business_id: str, product: Product, warehouse=None, lot_refs=None) -> list[StockBatch]:
    base = StockBatch.objects.select_for_update().filter(
        business_id=business_id,
        product=product,
    )
    # Explicit lots must also sit in the requested warehouse
    if warehouse is not None:
        base = base.filter(warehouse_id=getattr(warehouse, "pk", warehouse))

    if lot_refs:
        refs = [_lot_ref(r) for r in lot_refs]
        if len(set(refs)) != len(refs):
            raise CostingError("lot_refs contains duplicates")

        by_id = {str(b.id): b for b in base.filter(id__in=refs)}
        missing = [r for r in refs if r not in by_id]
        if missing:
            raise LotNotFoundError(
                f"Lots not found for {_product_label(product)}: {', '.join(missing)}"
            )
        # Caller-supplied order
        return [by_id[r] for r in refs]

    qs = base.filter(quantity_remaining__gt=0)
    return list(qs.order_by("manufacturing_date", "created_at", "id"))


# ============================================================
# CONSUME
# ============================================================

@transaction.atomic
def consume(
    *,
    business_id,
    product,
    quantity,
    warehouse=None,
    lot_refs=None,
    reference_type: str,
    reference_id,
    reason: str = StockMovement.Reason.SALE,
    actor=None,
) -> ConsumptionResult:
    business_id = str(business_id)
    product = _check_product(business_id=business_id, product=product)

    qty = _to_int_qty(quantity)
    if qty <= 0:
        raise CostingError("quantity must be greater than zero")

    lots = _lock_lots(
        business_id=business_id,
        product=product,
        warehouse=warehouse,
        lot_refs=lot_refs,
    )

    total_available = sum(int(b.quantity_remaining or 0) for b in lots)
    if total_available < qty:
        raise InsufficientStockError(
            f"Insufficient stock for {_product_label(product)}. "
            f"Requested: {qty}, Available: {total_available}",
            requested=qty,
            available=total_available,
        )

    still_needed = qty
    total_cost = Decimal("0")
    draws: list[LotDraw] = []

    for batch in lots:
        if still_needed <= 0:
            break

        available = int(batch.quantity_remaining or 0)
        if available <= 0:
            continue

        taken = min(available, still_needed)

        batch.quantity_remaining = available - taken
        batch.save(update_fields=["quantity_remaining"])

        StockMovement.objects.create(
            business_id=business_id,
            product=product,
            batch=batch,
            movement_type=StockMovement.MovementType.OUT,
            reason=reason,
            quantity=taken,
            unit_cost_snapshot=batch.unit_cost,
            reference_type=reference_type,
            reference_id=str(reference_id),
            created_by=str(actor or ""),
        )

        draws.append(LotDraw(batch_id=str(batch.id), quantity=taken, unit_cost=batch.unit_cost))
        total_cost += batch.unit_cost * taken
        still_needed -= taken

    adjust_stock(product=product, delta=-qty)

    total_cost = total_cost.quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    result = ConsumptionResult(
        total_cost=total_cost,
        unit_cost_realized=(total_cost / qty).quantize(FOURPLACES, rounding=ROUND_HALF_UP),
        lots_touched=draws,
    )

    logger.debug(
        "Stock consumed",
        extra={
            "business_id": business_id,
            "product_id": str(product.pk),
            "quantity": qty,
            "total_cost": str(total_cost),
            "lots": len(draws),
            "reference": f"{reference_type}:{reference_id}",
        },
    )
    return result


# ============================================================
# PRODUCE
# ============================================================

@transaction.atomic
def produce(
    *,
    business_id,
    product,
    quantity,
    unit_cost,
    warehouse=None,
    batch_number: str | None = None,
    manufacturing_date=None,
    expiry_date=None,
    reference_type: str,
    reference_id,
    reason: str = StockMovement.Reason.RECEIPT,
    actor=None,
) -> StockBatch:
    business_id = str(business_id)
    product = _check_product(business_id=business_id, product=product)

    qty = _to_int_qty(quantity)
    if qty <= 0:
        raise CostingError("quantity must be greater than zero")

    cost = _unit_cost(unit_cost)

    batch = StockBatch(
        business_id=business_id,
        product=product,
        warehouse=warehouse,
        batch_number=(batch_number or "").strip() or f"{reference_type}-{reference_id}",
        manufacturing_date=manufacturing_date or timezone.localdate(),
        expiry_date=expiry_date,
        quantity_received=qty,
        quantity_remaining=qty,
        unit_cost=cost,
        source_reference_type=reference_type,
        source_reference_id=str(reference_id),
    )
    try:
        batch.save()
    except ValidationError as exc:
        raise CostingError(f"Invalid lot for {_product_label(product)}: {exc}") from exc

    StockMovement.objects.create(
        business_id=business_id,
        product=product,
        batch=batch,
        movement_type=StockMovement.MovementType.IN,
        reason=reason,
        quantity=qty,
        unit_cost_snapshot=cost,
        reference_type=reference_type,
        reference_id=str(reference_id),
        created_by=str(actor or ""),
    )

    adjust_stock(product=product, delta=qty)
    return batch


# ============================================================
# REVERSALS
# ============================================================

@transaction.atomic
def restore_consumption(*, business_id, reference_type: str, reference_id, actor=None) -> list[LotDraw]:
    """
    Put back exactly what OUT movements for the reference took, into the same
    lots. Already-restored quantities are netted out, so a second call is a no-op.
    """
    business_id = str(business_id)
    reference_id = str(reference_id)

    movements = (
        StockMovement.objects.filter(
            business_id=business_id,
            reference_type=reference_type,
            reference_id=reference_id,
        )
        .filter(
            Q(
                movement_type=StockMovement.MovementType.OUT,
                reason__in=[StockMovement.Reason.SALE, StockMovement.Reason.CONSUMPTION],
            )
            | Q(
                movement_type=StockMovement.MovementType.IN,
                reason=StockMovement.Reason.REVERSAL,
            )
        )
        .values("batch_id", "product_id", "movement_type")
        .annotate(total=Sum("quantity"))
    )

    outstanding: dict[tuple, int] = defaultdict(int)
    for row in movements:
        key = (row["batch_id"], row["product_id"])
        if row["movement_type"] == StockMovement.MovementType.OUT:
            outstanding[key] += int(row["total"] or 0)
        else:
            outstanding[key] -= int(row["total"] or 0)

    restored: list[LotDraw] = []
    by_product: dict = defaultdict(int)

    for (batch_id, product_id), qty in sorted(outstanding.items(), key=lambda kv: str(kv[0][0])):
        if qty <= 0:
            continue

        batch = StockBatch.objects.select_for_update().get(pk=batch_id)
        batch.quantity_remaining = int(batch.quantity_remaining or 0) + qty
        batch.save(update_fields=["quantity_remaining"])

        StockMovement.objects.create(
            business_id=business_id,
            product_id=product_id,
            batch=batch,
            movement_type=StockMovement.MovementType.IN,
            reason=StockMovement.Reason.REVERSAL,
            quantity=qty,
            unit_cost_snapshot=batch.unit_cost,
            reference_type=reference_type,
            reference_id=reference_id,
            created_by=str(actor or ""),
        )

        restored.append(LotDraw(batch_id=str(batch.id), quantity=qty, unit_cost=batch.unit_cost))
        by_product[product_id] += qty

    for product_id, qty in by_product.items():
        adjust_stock(product=product_id, delta=qty)

    return restored


@transaction.atomic
def retire_produced_lots(*, business_id, reference_type: str, reference_id, actor=None) -> list[LotDraw]:
    """
    Undo produce() for a reference: empty its lots (they stay as history).

    Raises LotAlreadyConsumedError if any unit of those lots is currently consumed.
    """
    business_id = str(business_id)
    reference_id = str(reference_id)

    lots = list(
        StockBatch.objects.select_for_update()
        .filter(
            business_id=business_id,
            source_reference_type=reference_type,
            source_reference_id=reference_id,
        )
        .order_by("created_at", "id")
    )

    retired_before = dict(
        StockMovement.objects.filter(
            batch__in=lots,
            movement_type=StockMovement.MovementType.OUT,
            reason=StockMovement.Reason.REVERSAL,
            reference_type=reference_type,
            reference_id=reference_id,
        )
        .values("batch_id")
        .annotate(total=Sum("quantity"))
        .values_list("batch_id", "total")
    )

    consumed = [
        b
        for b in lots
        if b.quantity_remaining + int(retired_before.get(b.id) or 0) < b.quantity_received
    ]
    if consumed:
        raise LotAlreadyConsumedError(
            f"Cannot reverse {reference_type}:{reference_id}: "
            f"{len(consumed)} lot(s) already consumed."
        )

    retired: list[LotDraw] = []
    for batch in lots:
        qty = int(batch.quantity_remaining)
        if qty <= 0:
            continue
        batch.quantity_remaining = 0
        batch.save(update_fields=["quantity_remaining"])

        StockMovement.objects.create(
            business_id=business_id,
            product_id=batch.product_id,
            batch=batch,
            movement_type=StockMovement.MovementType.OUT,
            reason=StockMovement.Reason.REVERSAL,
            quantity=qty,
            unit_cost_snapshot=batch.unit_cost,
            reference_type=reference_type,
            reference_id=reference_id,
            created_by=str(actor or ""),
        )
        adjust_stock(product=batch.product_id, delta=-qty)
        retired.append(LotDraw(batch_id=str(batch.id), quantity=qty, unit_cost=batch.unit_cost))

    return retired


# ============================================================
# VALUATION
# ============================================================

def stock_valuation(*, business_id, warehouse=None) -> dict:
    """
    Σ quantity_remaining × unit_cost per product, from the lots themselves.
    """
    business_id = str(business_id)
    qs = StockBatch.objects.filter(business_id=business_id, quantity_remaining__gt=0).select_related("product")
    if warehouse is not None:
        qs = qs.filter(warehouse_id=getattr(warehouse, "pk", warehouse))

    per_product: dict = {}
    for batch in qs.order_by("product__name", "manufacturing_date", "created_at"):
        row = per_product.setdefault(
            batch.product_id,
            {
                "product_id": str(batch.product_id),
                "sku": batch.product.sku,
                "name": batch.product.name,
                "quantity": 0,
                "value": Decimal("0"),
            },
        )
        row["quantity"] += int(batch.quantity_remaining)
        row["value"] += batch.total_remaining_value

    products = []
    total_value = Decimal("0.00")
    for row in per_product.values():
        row["value"] = row["value"].quantize(TWOPLACES, rounding=ROUND_HALF_UP)
        total_value += row["value"]
        products.append(row)

    return {
        "business_id": business_id,
        "products": products,
        "total_value": total_value.quantize(TWOPLACES, rounding=ROUND_HALF_UP),
    }
