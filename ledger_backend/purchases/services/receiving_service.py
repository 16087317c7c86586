# purchases/services/receiving_service.py


"""
======================================================
PATH: purchases/services/receiving_service.py
======================================================
PURCHASE RECEIVING SERVICE

Receive a PurchaseOrder atomically (cost-snapshot safe):

Canonical flow:
1) Lock order
2) Validate status + items
3) Produce one stock lot per item (unit_cost snapshot on the lot)
4) Post PURCHASE:<id>
       Dr INVENTORY_ASSET      subtotal
       Dr INPUT_TAX_CREDIT     tax
       Cr ACCOUNTS_PAYABLE     total
5) Vendor payable += total
6) Mark order RECEIVED

Receiving happens exactly once: the status check runs on the locked row, so a
concurrent second receive sees RECEIVED and fails.

Cancelling a received order retires its lots (refused if any unit was already
consumed), reverses the journal and undoes the vendor payable.
"""

from __future__ import annotations

import logging
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from accounting.models.account import AccountRole
from accounting.models.journal import JournalEntry
from accounting.services.exceptions import AccountingServiceError
from accounting.services.journal_entry_service import post_journal_entry
from accounting.services.reversal_service import reverse_journal_entries
from parties.models import Vendor
from parties.services.balances import adjust_vendor_balance, undo_reversed_balances
from products.models import Product, StockMovement, Warehouse
from products.services.costing import CostingError, produce, retire_produced_lots
from purchases.models import PurchaseOrder, PurchaseOrderItem

logger = logging.getLogger(__name__)


class PurchaseReceivingError(AccountingServiceError):
    code = "purchase_failed"


TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
PURCHASE_REFERENCE = "PURCHASE"

_NUMBER_RE = re.compile(r"^PO-(\d+)$")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _decimal(v, *, field_name: str) -> Decimal:
    try:
        d = Decimal(str(v if v is not None else "0"))
    except (InvalidOperation, ValueError) as exc:
        raise PurchaseReceivingError(f"Invalid {field_name}: {v!r}") from exc
    if not d.is_finite() or d < 0:
        raise PurchaseReceivingError(f"{field_name} cannot be negative")
    return d


def _next_po_number(business_id: str) -> str:
    highest = 0
    for number in PurchaseOrder.objects.filter(business_id=business_id).values_list("po_number", flat=True):
        match = _NUMBER_RE.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"PO-{highest + 1:06d}"


def _lock_order(*, business_id, order_id) -> PurchaseOrder:
    order = (
        PurchaseOrder.objects.select_for_update()
        .filter(business_id=str(business_id), pk=getattr(order_id, "pk", order_id))
        .first()
    )
    if order is None:
        raise PurchaseReceivingError("Purchase order not found for this business")
    return order


@transaction.atomic
def create_purchase_order(
    *,
    business_id,
    vendor,
    items,
    warehouse=None,
    order_date=None,
    notes: str = "",
    actor=None,
) -> PurchaseOrder:
    """
    items: [{"product", "quantity", "unit_cost", "tax_percent"?, "batch_number"?, "expiry_date"?}]
    """
    business_id = str(business_id or "").strip()
    if not business_id:
        raise PurchaseReceivingError("business_id is required")

    if not isinstance(vendor, Vendor):
        vendor = Vendor.objects.filter(business_id=business_id, pk=vendor).first()
    if vendor is None or vendor.business_id != business_id:
        raise PurchaseReceivingError("Vendor not found for this business")

    if warehouse is not None:
        if not isinstance(warehouse, Warehouse):
            warehouse = Warehouse.objects.filter(pk=warehouse).first()
        if warehouse is None or warehouse.business_id != business_id:
            raise PurchaseReceivingError("Warehouse not found for this business")

    if not items:
        raise PurchaseReceivingError("A purchase order needs at least one item")

    rows: list[PurchaseOrderItem] = []
    for raw in items:
        product = raw.get("product")
        if not isinstance(product, Product):
            product = Product.objects.filter(business_id=business_id, pk=product).first()
        if product is None or product.business_id != business_id:
            raise PurchaseReceivingError("Product not found for this business")

        qty = raw.get("quantity")
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise PurchaseReceivingError("Item quantity must be a whole number > 0")

        tax_percent = _decimal(raw.get("tax_percent"), field_name="tax_percent")
        if tax_percent > Decimal("100"):
            raise PurchaseReceivingError("tax_percent must be between 0 and 100")

        rows.append(
            PurchaseOrderItem(
                product=product,
                quantity=qty,
                unit_cost=_decimal(raw.get("unit_cost"), field_name="unit_cost"),
                tax_percent=tax_percent,
                batch_number=(raw.get("batch_number") or "").strip(),
                expiry_date=raw.get("expiry_date"),
            )
        )

    subtotal = sum((r.line_subtotal for r in rows), ZERO)
    tax = sum((r.line_tax for r in rows), ZERO)

    order = PurchaseOrder(
        business_id=business_id,
        vendor=vendor,
        warehouse=warehouse,
        po_number=_next_po_number(business_id),
        order_date=order_date or timezone.localdate(),
        subtotal_amount=subtotal,
        tax_amount=tax,
        total_amount=subtotal + tax,
        notes=(notes or "").strip(),
        created_by=str(actor or ""),
    )
    try:
        order.save()
    except ValidationError as exc:
        raise PurchaseReceivingError(str(exc)) from exc

    for r in rows:
        r.order = order
    PurchaseOrderItem.objects.bulk_create(rows)

    logger.info(
        "Purchase order created",
        extra={
            "business_id": business_id,
            "order_id": order.id,
            "po_number": order.po_number,
            "total": str(order.total_amount),
        },
    )
    return order


@transaction.atomic
def receive_purchase_order(*, business_id, order_id, received_date=None, actor=None) -> dict:
    """
    RECEIVE PURCHASE ORDER (atomic)
    """
    business_id = str(business_id)
    order = _lock_order(business_id=business_id, order_id=order_id)

    if order.status != PurchaseOrder.STATUS_DRAFT:
        raise PurchaseReceivingError(
            f"Only DRAFT orders can be received ({order.po_number} is {order.status})"
        )

    items = list(order.items.select_related("product").order_by("id"))
    if not items:
        raise PurchaseReceivingError("Purchase order has no items")

    received_date = received_date or timezone.localdate()

    # ------------------------------
    # Stock lots
    # ------------------------------
    subtotal = ZERO
    tax = ZERO
    lots = []
    for it in items:
        try:
            batch = produce(
                business_id=business_id,
                product=it.product,
                quantity=it.quantity,
                unit_cost=it.unit_cost,
                warehouse=order.warehouse,
                batch_number=it.batch_number or f"{order.po_number}-{it.id}",
                manufacturing_date=received_date,
                expiry_date=it.expiry_date,
                reference_type=PURCHASE_REFERENCE,
                reference_id=order.id,
                reason=StockMovement.Reason.RECEIPT,
                actor=actor,
            )
        except CostingError as exc:
            raise PurchaseReceivingError(f"Cannot receive {order.po_number} line {it.id}: {exc}") from exc
        lots.append(str(batch.id))
        subtotal += it.line_subtotal
        tax += it.line_tax

    subtotal = _money(subtotal)
    tax = _money(tax)
    total = subtotal + tax

    # ------------------------------
    # Ledger
    # ------------------------------
    lines = []
    if subtotal > ZERO:
        lines.append({"role": AccountRole.INVENTORY_ASSET, "debit": subtotal, "credit": ZERO})
    if tax > ZERO:
        lines.append({"role": AccountRole.INPUT_TAX_CREDIT, "debit": tax, "credit": ZERO})

    journal_entry_id = None
    if total > ZERO:
        lines.append({"role": AccountRole.ACCOUNTS_PAYABLE, "debit": ZERO, "credit": total})
        je = post_journal_entry(
            business_id=business_id,
            entry_date=received_date,
            description=f"Purchase receipt {order.po_number} ({order.vendor.name})",
            reference_type=PURCHASE_REFERENCE,
            reference_id=order.id,
            lines=lines,
            party_type=JournalEntry.PARTY_VENDOR,
            party_id=order.vendor_id,
            actor=actor,
        )
        journal_entry_id = je.id

        adjust_vendor_balance(business_id=business_id, vendor=order.vendor_id, delta=total)

    # ------------------------------
    # Mark order received
    # ------------------------------
    order.subtotal_amount = subtotal
    order.tax_amount = tax
    order.total_amount = total
    order.status = PurchaseOrder.STATUS_RECEIVED
    order.received_at = timezone.now()
    order.save(update_fields=["subtotal_amount", "tax_amount", "total_amount", "status", "received_at"])

    logger.info(
        "Purchase order received",
        extra={
            "business_id": business_id,
            "order_id": order.id,
            "po_number": order.po_number,
            "total": str(total),
            "lots": len(lots),
        },
    )

    return {
        "order_id": order.id,
        "status": order.status,
        "subtotal_amount": str(order.subtotal_amount),
        "tax_amount": str(order.tax_amount),
        "total_amount": str(order.total_amount),
        "journal_entry_id": journal_entry_id,
        "lot_ids": lots,
    }


@transaction.atomic
def cancel_purchase_order(*, business_id, order_id, actor=None) -> PurchaseOrder:
    business_id = str(business_id)
    order = _lock_order(business_id=business_id, order_id=order_id)

    if order.status == PurchaseOrder.STATUS_CANCELLED:
        raise PurchaseReceivingError(f"{order.po_number} is already cancelled")

    if order.status == PurchaseOrder.STATUS_PAID or order.payments.exists():
        raise PurchaseReceivingError(
            f"{order.po_number} has recorded payments; delete them before cancelling"
        )

    journals_removed = 0
    if order.status == PurchaseOrder.STATUS_RECEIVED:
        retire_produced_lots(
            business_id=business_id,
            reference_type=PURCHASE_REFERENCE,
            reference_id=order.id,
            actor=actor,
        )
        reversal = reverse_journal_entries(
            business_id=business_id,
            reference_type=PURCHASE_REFERENCE,
            reference_id=order.id,
        )
        undo_reversed_balances(business_id=business_id, reversal=reversal)
        journals_removed = reversal.journals_removed

    order.status = PurchaseOrder.STATUS_CANCELLED
    order.received_at = None
    order.save(update_fields=["status", "received_at"])

    logger.info(
        "Purchase order cancelled",
        extra={
            "business_id": business_id,
            "order_id": order.id,
            "po_number": order.po_number,
            "journals_removed": journals_removed,
            "actor": str(actor or ""),
        },
    )
    return order


@transaction.atomic
def apply_purchase_payment(*, business_id, order_id, delta) -> PurchaseOrder:
    """
    Move amount_paid by delta; the order is PAID once fully settled and
    drops back to RECEIVED when a payment is deleted.
    """
    order = _lock_order(business_id=business_id, order_id=order_id)

    if order.status not in (PurchaseOrder.STATUS_RECEIVED, PurchaseOrder.STATUS_PAID):
        raise PurchaseReceivingError(f"{order.po_number} is not open for payments ({order.status})")

    amount_paid = _money(order.amount_paid) + _money(delta)
    if amount_paid < ZERO:
        raise PurchaseReceivingError("amount_paid cannot go below zero")
    if amount_paid > order.total_amount:
        raise PurchaseReceivingError(
            f"Payment exceeds the balance due on {order.po_number} ({order.balance_due})"
        )

    order.amount_paid = amount_paid
    order.status = (
        PurchaseOrder.STATUS_PAID if amount_paid >= order.total_amount else PurchaseOrder.STATUS_RECEIVED
    )
    order.save(update_fields=["amount_paid", "status"])
    return order
