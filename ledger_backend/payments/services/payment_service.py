# payments/services/payment_service.py

"""
======================================================
PATH: payments/services/payment_service.py
======================================================
CASH RECEIPTS & PAYMENTS (BUSINESS-EVENT ADAPTER)

record_payment():
    RECEIPT  Dr CASH / BANK      amount
             Cr ACCOUNTS_RECEIVABLE amount   (customer receivable -= amount)
    PAYMENT  Dr ACCOUNTS_PAYABLE amount
             Cr CASH / BANK      amount      (vendor payable -= amount)

    When linked to an invoice / purchase order the document's amount_paid and
    status follow (invoice PARTIAL / PAID, purchase order PAID).

delete_payment():
    Reverses PAYMENT:<id>, undoes the party counter, recomputes the document
    status and removes the row. All in one unit of work.
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
from parties.models import Customer, Vendor
from parties.services.balances import (
    adjust_customer_balance,
    adjust_vendor_balance,
    undo_reversed_balances,
)
from payments.models import Payment
from purchases.models import PurchaseOrder
from purchases.services.receiving_service import apply_purchase_payment
from sales.models import Invoice
from sales.services.invoice_service import apply_invoice_payment

logger = logging.getLogger(__name__)


class PaymentError(AccountingServiceError):
    code = "payment_failed"


TWOPLACES = Decimal("0.01")
PAYMENT_REFERENCE = "PAYMENT"

METHOD_ROLES = {
    Payment.METHOD_CASH: AccountRole.CASH,
    Payment.METHOD_BANK: AccountRole.BANK,
}

_NUMBER_RE = re.compile(r"^PMT-(\d+)$")


def _money(v) -> Decimal:
    try:
        return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise PaymentError(f"Invalid amount: {v!r}") from exc


def _next_payment_number(business_id: str) -> str:
    highest = 0
    for number in Payment.objects.filter(business_id=business_id).values_list("payment_number", flat=True):
        match = _NUMBER_RE.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"PMT-{highest + 1:06d}"


def _owned(model, *, business_id: str, value, label: str):
    if value is None:
        return None
    obj = value if isinstance(value, model) else model.objects.filter(pk=value).first()
    if obj is None or obj.business_id != business_id:
        logger.error(
            "Payment counterparty lookup failed",
            extra={"business_id": business_id, "model": model.__name__, "value": str(getattr(value, "pk", value))},
        )
        raise PaymentError(f"{label} not found for this business")
    return obj


@transaction.atomic
def record_payment(
    *,
    business_id,
    direction: str,
    amount,
    customer=None,
    vendor=None,
    invoice=None,
    purchase_order=None,
    payment_method: str = Payment.METHOD_CASH,
    payment_date=None,
    narration: str = "",
    actor=None,
) -> Payment:
    business_id = str(business_id or "").strip()
    if not business_id:
        raise PaymentError("business_id is required")

    direction = (direction or "").upper().strip()
    if direction not in (Payment.DIRECTION_RECEIPT, Payment.DIRECTION_PAYMENT):
        raise PaymentError("direction must be RECEIPT or PAYMENT")

    amt = _money(amount)
    if amt <= Decimal("0.00"):
        raise PaymentError("Amount must be > 0")

    method = (payment_method or Payment.METHOD_CASH).lower().strip()
    if method not in METHOD_ROLES:
        raise PaymentError("Invalid payment_method. Use 'cash' or 'bank'.")

    pay_date = payment_date or timezone.localdate()

    logger.info(
        "Recording payment",
        extra={
            "business_id": business_id,
            "direction": direction,
            "amount": str(amt),
            "payment_method": method,
        },
    )

    if direction == Payment.DIRECTION_RECEIPT:
        if vendor is not None or purchase_order is not None:
            raise PaymentError("A receipt cannot reference a vendor or purchase order")
        invoice = _owned(Invoice, business_id=business_id, value=invoice, label="Invoice")
        customer = _owned(Customer, business_id=business_id, value=customer, label="Customer")
        if invoice is not None:
            if invoice.customer_id is None:
                raise PaymentError(f"Invoice {invoice.invoice_number} has no customer receivable")
            if customer is None:
                customer = invoice.customer
            elif customer.pk != invoice.customer_id:
                raise PaymentError("Invoice belongs to another customer")
        if customer is None:
            raise PaymentError("A receipt needs a customer")
        party_type, party = JournalEntry.PARTY_CUSTOMER, customer
        lines = [
            {"role": METHOD_ROLES[method], "debit": amt, "credit": Decimal("0.00")},
            {"role": AccountRole.ACCOUNTS_RECEIVABLE, "debit": Decimal("0.00"), "credit": amt},
        ]
    else:
        if customer is not None or invoice is not None:
            raise PaymentError("A payment cannot reference a customer or invoice")
        purchase_order = _owned(PurchaseOrder, business_id=business_id, value=purchase_order, label="Purchase order")
        vendor = _owned(Vendor, business_id=business_id, value=vendor, label="Vendor")
        if purchase_order is not None:
            if vendor is None:
                vendor = purchase_order.vendor
            elif vendor.pk != purchase_order.vendor_id:
                raise PaymentError("Purchase order belongs to another vendor")
        if vendor is None:
            raise PaymentError("A payment needs a vendor")
        party_type, party = JournalEntry.PARTY_VENDOR, vendor
        lines = [
            {"role": AccountRole.ACCOUNTS_PAYABLE, "debit": amt, "credit": Decimal("0.00")},
            {"role": METHOD_ROLES[method], "debit": Decimal("0.00"), "credit": amt},
        ]

    payment = Payment(
        business_id=business_id,
        payment_number=_next_payment_number(business_id),
        direction=direction,
        customer=customer if direction == Payment.DIRECTION_RECEIPT else None,
        vendor=vendor if direction == Payment.DIRECTION_PAYMENT else None,
        invoice=invoice,
        purchase_order=purchase_order,
        payment_date=pay_date,
        amount=amt,
        payment_method=method,
        narration=narration or "",
        created_by=str(actor or ""),
    )
    try:
        payment.save()
    except ValidationError as exc:
        raise PaymentError(str(exc)) from exc

    # Raises on overpayment
    if invoice is not None:
        apply_invoice_payment(business_id=business_id, invoice_id=invoice.pk, delta=amt)
    if purchase_order is not None:
        apply_purchase_payment(business_id=business_id, order_id=purchase_order.pk, delta=amt)

    try:
        je = post_journal_entry(
            business_id=business_id,
            entry_date=pay_date,
            description=f"{payment.get_direction_display()} {payment.payment_number} ({party.name})",
            reference_type=PAYMENT_REFERENCE,
            reference_id=payment.id,
            lines=lines,
            party_type=party_type,
            party_id=party.pk,
            actor=actor,
        )
    except AccountingServiceError:
        logger.error(
            "Journal entry creation failed for payment",
            extra={"business_id": business_id, "payment_id": payment.id},
        )
        raise
    except Exception:
        logger.exception(
            "Unexpected failure posting payment to ledger",
            extra={"business_id": business_id, "payment_id": payment.id},
        )
        raise

    if direction == Payment.DIRECTION_RECEIPT:
        adjust_customer_balance(business_id=business_id, customer=party, delta=-amt)
    else:
        adjust_vendor_balance(business_id=business_id, vendor=party, delta=-amt)

    logger.info(
        "Payment recorded",
        extra={
            "business_id": business_id,
            "payment_id": payment.id,
            "payment_number": payment.payment_number,
            "journal_entry_id": je.id,
        },
    )
    return payment


@transaction.atomic
def delete_payment(*, business_id, payment_id, actor=None) -> dict:
    business_id = str(business_id)
    payment = Payment.objects.select_for_update().filter(business_id=business_id, pk=payment_id).first()
    if payment is None:
        raise PaymentError("Payment not found for this business")

    reversal = reverse_journal_entries(
        business_id=business_id,
        reference_type=PAYMENT_REFERENCE,
        reference_id=payment.id,
    )
    undo_reversed_balances(business_id=business_id, reversal=reversal)

    if payment.invoice_id:
        apply_invoice_payment(business_id=business_id, invoice_id=payment.invoice_id, delta=-payment.amount)
    if payment.purchase_order_id:
        apply_purchase_payment(business_id=business_id, order_id=payment.purchase_order_id, delta=-payment.amount)

    number = payment.payment_number
    payment.delete()

    logger.info(
        "Payment deleted",
        extra={
            "business_id": business_id,
            "payment_number": number,
            "journals_removed": reversal.journals_removed,
            "actor": str(actor or ""),
        },
    )
    return {"payment_number": number, "journals_removed": reversal.journals_removed}
