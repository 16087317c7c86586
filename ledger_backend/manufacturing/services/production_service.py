# manufacturing/services/production_service.py

"""
======================================================
PATH: manufacturing/services/production_service.py
======================================================
PRODUCTION ORDER SERVICE

complete_production_order() runs ONE unit of work under the order's row lock:
1) consume quantity × BOM line of every material (FIFO, reason CONSUMPTION)
2) produce one finished lot at material_cost ÷ quantity (reason PRODUCTION)
3) post PRODUCTION:<id>
       Dr INVENTORY_ASSET      finished value (unit_cost × quantity)
       Cr INVENTORY_ASSET      material cost
       Dr/Cr MANUFACTURING_COST rounding variance (when unit cost does not divide evenly)

cancel_production_order() on a COMPLETED order retires the finished lot
(refused once any finished unit was consumed), puts the materials back into
their original lots and reverses the journal.
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
from accounting.services.reversal_service import reverse_journal_entries
from manufacturing.models import BillOfMaterials, ProductionOrder
from products.models import StockMovement, Warehouse
from products.services.costing import consume, produce, restore_consumption, retire_produced_lots

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
FOURPLACES = Decimal("0.0001")
ZERO = Decimal("0.00")
PRODUCTION_REFERENCE = "PRODUCTION"

ALLOWED_TRANSITIONS = {
    ProductionOrder.STATUS_PLANNED: {
        ProductionOrder.STATUS_IN_PROGRESS,
        ProductionOrder.STATUS_COMPLETED,
        ProductionOrder.STATUS_CANCELLED,
    },
    ProductionOrder.STATUS_IN_PROGRESS: {
        ProductionOrder.STATUS_COMPLETED,
        ProductionOrder.STATUS_CANCELLED,
    },
    ProductionOrder.STATUS_COMPLETED: {
        ProductionOrder.STATUS_CANCELLED,
    },
}

_NUMBER_RE = re.compile(r"^MO-(\d+)$")


class ProductionOrderError(AccountingServiceError):
    code = "production_failed"


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _validate_transition(order: ProductionOrder, target: str) -> None:
    if target not in ALLOWED_TRANSITIONS.get(order.status, set()):
        raise ProductionOrderError(
            f"Production order {order.order_number} cannot transition from "
            f"'{order.status}' to '{target}'"
        )


def _next_order_number(business_id: str) -> str:
    highest = 0
    for number in ProductionOrder.objects.filter(business_id=business_id).values_list("order_number", flat=True):
        match = _NUMBER_RE.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"MO-{highest + 1:06d}"


def _lock_order(*, business_id, order_id) -> ProductionOrder:
    order = (
        ProductionOrder.objects.select_for_update()
        .select_related("bom", "bom__product")
        .filter(business_id=str(business_id), pk=getattr(order_id, "pk", order_id))
        .first()
    )
    if order is None:
        raise ProductionOrderError("Production order not found for this business")
    return order


@transaction.atomic
def create_production_order(
    *,
    business_id,
    bom,
    quantity: int,
    warehouse=None,
    planned_date=None,
    actor=None,
) -> ProductionOrder:
    business_id = str(business_id or "").strip()
    if not business_id:
        raise ProductionOrderError("business_id is required")

    if not isinstance(bom, BillOfMaterials):
        bom = BillOfMaterials.objects.filter(business_id=business_id, pk=bom).first()
    if bom is None or bom.business_id != business_id:
        raise ProductionOrderError("Bill of materials not found for this business")
    if not bom.is_active:
        raise ProductionOrderError(f"Bill of materials '{bom.name}' is inactive")
    if not bom.lines.exists():
        raise ProductionOrderError(f"Bill of materials '{bom.name}' has no lines")

    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ProductionOrderError("quantity must be a whole number > 0")

    if warehouse is not None:
        if not isinstance(warehouse, Warehouse):
            warehouse = Warehouse.objects.filter(pk=warehouse).first()
        if warehouse is None or warehouse.business_id != business_id:
            raise ProductionOrderError("Warehouse not found for this business")

    order = ProductionOrder(
        business_id=business_id,
        order_number=_next_order_number(business_id),
        bom=bom,
        warehouse=warehouse,
        quantity=quantity,
        planned_date=planned_date or timezone.localdate(),
        created_by=str(actor or ""),
    )
    try:
        order.save()
    except ValidationError as exc:
        raise ProductionOrderError(str(exc)) from exc

    logger.info(
        "Production order created",
        extra={"business_id": business_id, "order_id": order.id, "order_number": order.order_number},
    )
    return order


@transaction.atomic
def start_production_order(*, business_id, order_id, actor=None) -> ProductionOrder:
    order = _lock_order(business_id=business_id, order_id=order_id)
    _validate_transition(order, ProductionOrder.STATUS_IN_PROGRESS)

    order.status = ProductionOrder.STATUS_IN_PROGRESS
    order.save(update_fields=["status"])
    return order


@transaction.atomic
def complete_production_order(*, business_id, order_id, completion_date=None, actor=None) -> dict:
    business_id = str(business_id)
    order = _lock_order(business_id=business_id, order_id=order_id)
    _validate_transition(order, ProductionOrder.STATUS_COMPLETED)

    completion_date = completion_date or timezone.localdate()
    bom = order.bom

    # 1) Materials
    material_cost = ZERO
    for line in bom.lines.select_related("material").order_by("id"):
        result = consume(
            business_id=business_id,
            product=line.material,
            quantity=line.quantity_per_unit * order.quantity,
            warehouse=order.warehouse,
            reference_type=PRODUCTION_REFERENCE,
            reference_id=order.id,
            reason=StockMovement.Reason.CONSUMPTION,
            actor=actor,
        )
        material_cost += result.total_cost

    material_cost = _money(material_cost)
    unit_cost = (material_cost / order.quantity).quantize(FOURPLACES, rounding=ROUND_HALF_UP)

    # 2) Finished lot
    batch = produce(
        business_id=business_id,
        product=bom.product,
        quantity=order.quantity,
        unit_cost=unit_cost,
        warehouse=order.warehouse,
        batch_number=order.order_number,
        manufacturing_date=completion_date,
        reference_type=PRODUCTION_REFERENCE,
        reference_id=order.id,
        reason=StockMovement.Reason.PRODUCTION,
        actor=actor,
    )

    # 3) Ledger
    finished_value = _money(unit_cost * order.quantity)
    variance = finished_value - material_cost

    lines = []
    if finished_value > ZERO:
        lines.append({"role": AccountRole.INVENTORY_ASSET, "debit": finished_value, "credit": ZERO})
    if material_cost > ZERO:
        lines.append({"role": AccountRole.INVENTORY_ASSET, "debit": ZERO, "credit": material_cost})
    if variance > ZERO:
        lines.append({"role": AccountRole.MANUFACTURING_COST, "debit": ZERO, "credit": variance})
    elif variance < ZERO:
        lines.append({"role": AccountRole.MANUFACTURING_COST, "debit": -variance, "credit": ZERO})

    journal_entry_id = None
    if len(lines) >= 2:
        je = post_journal_entry(
            business_id=business_id,
            entry_date=completion_date,
            description=f"Production {order.order_number}: {order.quantity} x {bom.product.name}",
            reference_type=PRODUCTION_REFERENCE,
            reference_id=order.id,
            lines=lines,
            actor=actor,
        )
        journal_entry_id = je.id

    order.material_cost = material_cost
    order.unit_cost = unit_cost
    order.status = ProductionOrder.STATUS_COMPLETED
    order.completed_at = timezone.now()
    order.save(update_fields=["material_cost", "unit_cost", "status", "completed_at"])

    logger.info(
        "Production order completed",
        extra={
            "business_id": business_id,
            "order_id": order.id,
            "order_number": order.order_number,
            "material_cost": str(material_cost),
            "unit_cost": str(unit_cost),
            "variance": str(variance),
        },
    )

    return {
        "order_id": order.id,
        "status": order.status,
        "material_cost": material_cost,
        "unit_cost": unit_cost,
        "finished_value": finished_value,
        "variance": variance,
        "batch_id": str(batch.id),
        "journal_entry_id": journal_entry_id,
    }


@transaction.atomic
def cancel_production_order(*, business_id, order_id, actor=None) -> ProductionOrder:
    business_id = str(business_id)
    order = _lock_order(business_id=business_id, order_id=order_id)
    _validate_transition(order, ProductionOrder.STATUS_CANCELLED)

    journals_removed = 0
    if order.status == ProductionOrder.STATUS_COMPLETED:
        retire_produced_lots(
            business_id=business_id,
            reference_type=PRODUCTION_REFERENCE,
            reference_id=order.id,
            actor=actor,
        )
        restore_consumption(
            business_id=business_id,
            reference_type=PRODUCTION_REFERENCE,
            reference_id=order.id,
            actor=actor,
        )
        reversal = reverse_journal_entries(
            business_id=business_id,
            reference_type=PRODUCTION_REFERENCE,
            reference_id=order.id,
        )
        journals_removed = reversal.journals_removed

    order.status = ProductionOrder.STATUS_CANCELLED
    order.save(update_fields=["status"])

    logger.info(
        "Production order cancelled",
        extra={
            "business_id": business_id,
            "order_id": order.id,
            "order_number": order.order_number,
            "journals_removed": journals_removed,
            "actor": str(actor or ""),
        },
    )
    return order
