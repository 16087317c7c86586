"""
INVOICE LIFECYCLE DOMAIN RULES

This module defines the ONLY allowed lifecycle transitions
for Invoice entities.

DESIGN PRINCIPLES:
- No database writes
- No stock mutation
- No side effects
- Single source of truth
"""

from accounting.services.exceptions import AccountingServiceError
from sales.models import Invoice

# ============================================================
# DOMAIN ERRORS
# ============================================================


class InvalidInvoiceTransitionError(AccountingServiceError):
    code = "invalid_transition"


# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Invoice.STATUS_CANCELLED,
}

ALLOWED_TRANSITIONS = {
    Invoice.STATUS_DRAFT: {
        Invoice.STATUS_PENDING,
        Invoice.STATUS_PAID,
        Invoice.STATUS_CANCELLED,
    },
    Invoice.STATUS_PENDING: {
        Invoice.STATUS_PARTIAL,
        Invoice.STATUS_PAID,
        Invoice.STATUS_CANCELLED,
    },
    Invoice.STATUS_PARTIAL: {
        Invoice.STATUS_PENDING,
        Invoice.STATUS_PAID,
    },
    Invoice.STATUS_PAID: {
        Invoice.STATUS_PARTIAL,
        Invoice.STATUS_PENDING,
        Invoice.STATUS_CANCELLED,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, invoice: Invoice, target_status: str):
    if not can_transition(
        from_status=invoice.status,
        to_status=target_status,
    ):
        raise InvalidInvoiceTransitionError(
            f"Invoice {invoice.invoice_number} cannot transition from "
            f"'{invoice.status}' to '{target_status}'"
        )


def status_for_amount_paid(invoice: Invoice, amount_paid) -> str:
    """Payment-driven status of a posted invoice."""
    if amount_paid <= 0:
        return Invoice.STATUS_PENDING
    if amount_paid >= invoice.grand_total:
        return Invoice.STATUS_PAID
    return Invoice.STATUS_PARTIAL
