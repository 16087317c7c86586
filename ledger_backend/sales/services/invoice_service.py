# sales/services/invoice_service.py

"""
======================================================
PATH: sales/services/invoice_service.py
======================================================
INVOICE SERVICE (BUSINESS-EVENT ADAPTER)

Flow:
    create_invoice()  -> DRAFT (no stock, no ledger)
    post_invoice()    -> PENDING (credit) or PAID (paid on the spot)
    cancel_invoice()  -> CANCELLED (posted invoices are fully reversed)
    apply_invoice_payment() -> PARTIAL / PAID / PENDING (called by payments)

Posting (one unit of work, reference INVOICE:<id>):
    1) consume stock per item through the costing engine (FIFO or lot_refs)
    2) Dr ACCOUNTS_RECEIVABLE (or CASH / BANK)   grand_total
       Cr SALES_REVENUE                          subtotal - discount
       Cr SALES_TAX_PAYABLE                      tax
       Dr COGS / Cr INVENTORY_ASSET              FIFO cost
    3) customer receivable += grand_total (credit invoices only)

HARD RULES:
- Invoice row locked (select_for_update) before any status read-modify-write
- Any failure (stock, accounts, period lock) rolls back the whole posting
- Cancelling never leaves stock, ledger or receivable half-undone
"""

from __future__ import annotations

import logging
import re
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from accounting.models.account import AccountRole
from accounting.models.journal import JournalEntry
from accounting.services.exceptions import AccountingServiceError
from accounting.services.journal_entry_service import post_journal_entry
from accounting.services.reversal_service import reverse_journal_entries
from parties.models import Customer
from parties.services.balances import adjust_customer_balance, undo_reversed_balances
from products.models import Product, StockMovement, Warehouse
from products.services.costing import consume, restore_consumption
from sales.models import Invoice, InvoiceItem
from sales.services.invoice_lifecycle import status_for_amount_paid, validate_transition
from sales.services.totals import LineAmountError, document_totals, line_amounts

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")
INVOICE_REFERENCE = "INVOICE"

SETTLEMENT_ROLES = {
    Invoice.PAYMENT_CREDIT: AccountRole.ACCOUNTS_RECEIVABLE,
    Invoice.PAYMENT_CASH: AccountRole.CASH,
    Invoice.PAYMENT_BANK: AccountRole.BANK,
}

_NUMBER_RE = re.compile(r"^INV-(\d+)$")


# ============================================================
# DOMAIN ERRORS
# ============================================================

class InvoiceError(AccountingServiceError):
    code = "invoice_error"


# ============================================================
# HELPERS
# ============================================================

def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_int_qty(value) -> int:
    """
    Quantity normalizer.
    HARD RULE: quantities are integer units in this system.
    """
    if isinstance(value, bool):
        raise InvoiceError("quantity must be a whole integer unit")
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvoiceError("quantity must be a whole integer unit")


def _next_invoice_number(business_id: str) -> str:
    highest = 0
    for number in Invoice.objects.filter(business_id=business_id).values_list("invoice_number", flat=True):
        match = _NUMBER_RE.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"INV-{highest + 1:06d}"


def _owned(model, *, business_id: str, value, label: str):
    if value is None:
        return None
    obj = value if isinstance(value, model) else model.objects.filter(pk=value).first()
    if obj is None or obj.business_id != business_id:
        raise InvoiceError(f"{label} not found for this business")
    return obj


def _lock_invoice(*, business_id, invoice_id) -> Invoice:
    invoice = (
        Invoice.objects.select_for_update()
        .filter(business_id=str(business_id), pk=getattr(invoice_id, "pk", invoice_id))
        .first()
    )
    if invoice is None:
        raise InvoiceError("Invoice not found for this business")
    return invoice


# ============================================================
# CREATE (DRAFT)
# ============================================================

@transaction.atomic
def create_invoice(
    *,
    business_id,
    items,
    customer=None,
    payment_method: str = Invoice.PAYMENT_CREDIT,
    invoice_date=None,
    due_date=None,
    warehouse=None,
    notes: str = "",
    actor=None,
) -> Invoice:
    """
    Create a DRAFT invoice with server-computed totals.

    items: [{"product", "quantity", "unit_price"?, "discount"?, "tax_percent"?, "lot_refs"?}]
    unit_price defaults to the product's list price.
    """
    business_id = str(business_id or "").strip()
    if not business_id:
        raise InvoiceError("business_id is required")

    if not items:
        raise InvoiceError("An invoice needs at least one item")

    method = (payment_method or Invoice.PAYMENT_CREDIT).lower().strip()
    if method not in SETTLEMENT_ROLES:
        raise InvoiceError("Invalid payment_method. Use 'credit', 'cash', or 'bank'.")

    customer = _owned(Customer, business_id=business_id, value=customer, label="Customer")
    warehouse = _owned(Warehouse, business_id=business_id, value=warehouse, label="Warehouse")

    if method == Invoice.PAYMENT_CREDIT and customer is None:
        raise InvoiceError("Credit invoices require a customer")

    prepared = []
    for raw in items:
        product = _owned(Product, business_id=business_id, value=raw.get("product"), label="Product")
        if product is None:
            raise InvoiceError("Each item needs a product")

        qty = _to_int_qty(raw.get("quantity"))
        if qty <= 0:
            raise InvoiceError("quantity must be greater than zero")

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
            raise InvoiceError(f"{product.name}: {exc}") from exc

        prepared.append((product, qty, _money(unit_price), raw, amounts))

    totals = document_totals([p[4] for p in prepared])
    if totals.grand_total <= ZERO:
        raise InvoiceError("Invoice total must be greater than zero")

    invoice = Invoice(
        business_id=business_id,
        invoice_number=_next_invoice_number(business_id),
        customer=customer,
        warehouse=warehouse,
        invoice_date=invoice_date or timezone.localdate(),
        due_date=due_date,
        status=Invoice.STATUS_DRAFT,
        payment_method=method,
        subtotal=totals.subtotal,
        discount_total=totals.discount_total,
        tax_total=totals.tax_total,
        grand_total=totals.grand_total,
        notes=(notes or "").strip(),
        created_by=str(actor or ""),
    )
    try:
        invoice.save()
    except ValidationError as exc:
        raise InvoiceError(str(exc)) from exc

    InvoiceItem.objects.bulk_create(
        [
            InvoiceItem(
                invoice=invoice,
                product=product,
                quantity=qty,
                unit_price=unit_price,
                discount_amount=amounts.discount,
                tax_percent=Decimal(str(raw.get("tax_percent") or "0")),
                tax_amount=amounts.tax,
                line_total=amounts.total,
                lot_refs=[str(r) for r in (raw.get("lot_refs") or [])],
            )
            for product, qty, unit_price, raw, amounts in prepared
        ]
    )

    logger.info(
        "Invoice created",
        extra={
            "business_id": business_id,
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "grand_total": str(invoice.grand_total),
        },
    )
    return invoice


# ============================================================
# POST
# ============================================================

@transaction.atomic
def post_invoice(*, business_id, invoice_id, paid_immediately: bool = False, actor=None) -> Invoice:
    business_id = str(business_id)
    invoice = _lock_invoice(business_id=business_id, invoice_id=invoice_id)

    if invoice.status != Invoice.STATUS_DRAFT:
        raise InvoiceError(f"Only DRAFT invoices can be posted (status: {invoice.status})")

    if paid_immediately:
        if invoice.payment_method == Invoice.PAYMENT_CREDIT:
            raise InvoiceError("paid_immediately requires a cash or bank payment_method")
        target = Invoice.STATUS_PAID
        settlement_role = SETTLEMENT_ROLES[invoice.payment_method]
    else:
        if invoice.customer_id is None:
            raise InvoiceError("An unpaid invoice needs a customer to carry the receivable")
        target = Invoice.STATUS_PENDING
        settlement_role = AccountRole.ACCOUNTS_RECEIVABLE

    validate_transition(invoice=invoice, target_status=target)

    # 1) Stock
    cogs_total = ZERO
    for item in invoice.items.select_related("product").order_by("id"):
        result = consume(
            business_id=business_id,
            product=item.product,
            quantity=item.quantity,
            warehouse=invoice.warehouse,
            lot_refs=item.lot_refs or None,
            reference_type=INVOICE_REFERENCE,
            reference_id=invoice.id,
            reason=StockMovement.Reason.SALE,
            actor=actor,
        )
        item.unit_cost = result.unit_cost_realized
        item.cost_amount = result.total_cost
        item.save(update_fields=["unit_cost", "cost_amount"])
        cogs_total += result.total_cost

    # 2) Ledger
    revenue = _money(invoice.subtotal - invoice.discount_total)
    tax = _money(invoice.tax_total)

    lines = [{"role": settlement_role, "debit": invoice.grand_total, "credit": ZERO}]
    if revenue > ZERO:
        lines.append({"role": AccountRole.SALES_REVENUE, "debit": ZERO, "credit": revenue})
    if tax > ZERO:
        lines.append({"role": AccountRole.SALES_TAX_PAYABLE, "debit": ZERO, "credit": tax})
    if cogs_total > ZERO:
        lines.append({"role": AccountRole.COGS, "debit": cogs_total, "credit": ZERO})
        lines.append({"role": AccountRole.INVENTORY_ASSET, "debit": ZERO, "credit": cogs_total})

    on_credit = settlement_role == AccountRole.ACCOUNTS_RECEIVABLE

    post_journal_entry(
        business_id=business_id,
        entry_date=invoice.invoice_date,
        description=f"Sales invoice {invoice.invoice_number}",
        reference_type=INVOICE_REFERENCE,
        reference_id=invoice.id,
        lines=lines,
        party_type=JournalEntry.PARTY_CUSTOMER if on_credit else None,
        party_id=invoice.customer_id if on_credit else None,
        actor=actor,
    )

    # 3) Receivable
    if on_credit:
        adjust_customer_balance(
            business_id=business_id,
            customer=invoice.customer_id,
            delta=invoice.grand_total,
        )

    invoice.cogs_amount = _money(cogs_total)
    invoice.amount_paid = invoice.grand_total if paid_immediately else ZERO
    invoice.status = target
    invoice.posted_at = timezone.now()
    invoice.save(update_fields=["cogs_amount", "amount_paid", "status", "posted_at"])

    logger.info(
        "Invoice posted",
        extra={
            "business_id": business_id,
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "status": invoice.status,
            "grand_total": str(invoice.grand_total),
            "cogs": str(invoice.cogs_amount),
        },
    )
    return invoice


# ============================================================
# CANCEL
# ============================================================

@transaction.atomic
def cancel_invoice(*, business_id, invoice_id, actor=None) -> Invoice:
    business_id = str(business_id)
    invoice = _lock_invoice(business_id=business_id, invoice_id=invoice_id)

    if invoice.payments.exists():
        raise InvoiceError(
            f"Invoice {invoice.invoice_number} has recorded payments; delete them before cancelling"
        )

    validate_transition(invoice=invoice, target_status=Invoice.STATUS_CANCELLED)

    if invoice.is_posted:
        reversal = reverse_journal_entries(
            business_id=business_id,
            reference_type=INVOICE_REFERENCE,
            reference_id=invoice.id,
        )
        undo_reversed_balances(business_id=business_id, reversal=reversal)
        restore_consumption(
            business_id=business_id,
            reference_type=INVOICE_REFERENCE,
            reference_id=invoice.id,
            actor=actor,
        )
        journals_removed = reversal.journals_removed
    else:
        journals_removed = 0

    invoice.status = Invoice.STATUS_CANCELLED
    invoice.amount_paid = ZERO
    invoice.save(update_fields=["status", "amount_paid"])

    logger.info(
        "Invoice cancelled",
        extra={
            "business_id": business_id,
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "journals_removed": journals_removed,
            "actor": str(actor or ""),
        },
    )
    return invoice


# ============================================================
# PAYMENT STATUS
# ============================================================

@transaction.atomic
def apply_invoice_payment(*, business_id, invoice_id, delta) -> Invoice:
    """
    Move amount_paid by delta (negative when a receipt is deleted) and
    derive the payment status from it.
    """
    invoice = _lock_invoice(business_id=business_id, invoice_id=invoice_id)

    if not invoice.is_posted:
        raise InvoiceError(f"Invoice {invoice.invoice_number} is not open for payments")

    amount_paid = _money(invoice.amount_paid + _money(delta))
    if amount_paid < ZERO:
        raise InvoiceError("amount_paid cannot go below zero")
    if amount_paid > invoice.grand_total:
        raise InvoiceError(
            f"Payment exceeds the balance due on {invoice.invoice_number} ({invoice.balance_due})"
        )

    target = status_for_amount_paid(invoice, amount_paid)
    if target != invoice.status:
        validate_transition(invoice=invoice, target_status=target)

    invoice.amount_paid = amount_paid
    invoice.status = target
    invoice.save(update_fields=["amount_paid", "status"])
    return invoice
