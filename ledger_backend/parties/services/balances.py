# parties/services/balances.py

"""
======================================================
PATH: parties/services/balances.py
======================================================
RUNNING COUNTER-BALANCES (CUSTOMER / VENDOR)

Customer.outstanding_balance and Vendor.outstanding_balance are derived
caches of the receivable / payable ledger. Rules:
- Changed ONLY through this module
- Always inside the caller's transaction, on a locked row, via F() expressions
- Reconcilable at any time: recompute_from_ledger() replays the party-tagged
  ACCOUNTS_RECEIVABLE / ACCOUNTS_PAYABLE lines and the inventory lots
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import F, Sum
from django.db.models.functions import Coalesce

from accounting.models.account import AccountRole
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.account_resolver import resolve_account
from accounting.services.exceptions import AccountingServiceError, AccountNotFoundError
from parties.models import Customer, Vendor
from products.models import Product
from products.services.stock_counter import recompute_stock

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


class PartyNotFoundError(AccountingServiceError):
    code = "party_not_found"


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _adjust(model, *, business_id, party, delta) -> None:
    delta = _money(delta)
    party_id = getattr(party, "pk", party)

    locked = model.objects.select_for_update().filter(business_id=str(business_id), pk=party_id).first()
    if locked is None:
        raise PartyNotFoundError(
            f"{model.__name__} id={party_id} not found for business_id={business_id}"
        )
    if delta == ZERO:
        return

    model.objects.filter(pk=locked.pk).update(outstanding_balance=F("outstanding_balance") + delta)


@transaction.atomic
def adjust_customer_balance(*, business_id, customer, delta) -> None:
    _adjust(Customer, business_id=business_id, party=customer, delta=delta)


@transaction.atomic
def adjust_vendor_balance(*, business_id, vendor, delta) -> None:
    _adjust(Vendor, business_id=business_id, party=vendor, delta=delta)


@transaction.atomic
def undo_reversed_balances(*, business_id, reversal) -> None:
    """
    Undo the counter effect of journals removed by the reversal handler.

    Each party is netted from its own journals' lines: a customer receivable
    moved by its AR net (debit-normal), a vendor payable by its AP net
    (credit-normal).
    """
    if not reversal.party_lines:
        return

    ar_code = resolve_account(business_id=business_id, role=AccountRole.ACCOUNTS_RECEIVABLE).code
    ap_code = resolve_account(business_id=business_id, role=AccountRole.ACCOUNTS_PAYABLE).code

    customer_net: dict[str, Decimal] = defaultdict(lambda: ZERO)
    vendor_net: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for party_type, party_id, code, debit, credit in reversal.party_lines:
        if party_type == JournalEntry.PARTY_CUSTOMER and code == ar_code:
            customer_net[party_id] += debit - credit
        elif party_type == JournalEntry.PARTY_VENDOR and code == ap_code:
            vendor_net[party_id] += credit - debit

    for party_id, net in customer_net.items():
        if net:
            adjust_customer_balance(business_id=business_id, customer=int(party_id), delta=-net)
    for party_id, net in vendor_net.items():
        if net:
            adjust_vendor_balance(business_id=business_id, vendor=int(party_id), delta=-net)


# ============================================================
# RECONCILIATION
# ============================================================

def _ledger_by_party(*, business_id: str, account, party_type: str) -> dict[str, tuple[Decimal, Decimal]]:
    rows = (
        LedgerEntry.objects.filter(
            account=account,
            journal_entry__business_id=business_id,
            journal_entry__party_type=party_type,
        )
        .values("journal_entry__party_id")
        .annotate(
            debit_total=Coalesce(Sum("debit"), ZERO),
            credit_total=Coalesce(Sum("credit"), ZERO),
        )
    )
    return {
        r["journal_entry__party_id"]: (_money(r["debit_total"]), _money(r["credit_total"]))
        for r in rows
    }


@transaction.atomic
def recompute_from_ledger(business_id, fix: bool = False) -> dict:
    """
    Replay the ledger (party-tagged AR/AP lines) and the lots, and compare
    with the stored counters.

    Returns:
        {
          "business_id": str,
          "customers": [{"id", "name", "stored", "computed", "drift"}],   # drift only
          "vendors":   [...],
          "products":  [{"product_id", "stored", "computed", "drift"}],
          "drift_count": int,
          "fixed": bool,
        }
    """
    business_id = str(business_id)

    try:
        ar = resolve_account(business_id=business_id, role=AccountRole.ACCOUNTS_RECEIVABLE)
        ap = resolve_account(business_id=business_id, role=AccountRole.ACCOUNTS_PAYABLE)
    except AccountNotFoundError:
        logger.warning("Reconciliation skipped: chart not initialized", extra={"business_id": business_id})
        raise

    ar_by_party = _ledger_by_party(business_id=business_id, account=ar, party_type=JournalEntry.PARTY_CUSTOMER)
    ap_by_party = _ledger_by_party(business_id=business_id, account=ap, party_type=JournalEntry.PARTY_VENDOR)

    customers = []
    for customer in Customer.objects.select_for_update().filter(business_id=business_id).order_by("id"):
        debit, credit = ar_by_party.get(str(customer.id), (ZERO, ZERO))
        computed = _money(debit - credit)
        stored = _money(customer.outstanding_balance)
        if computed != stored:
            customers.append(
                {"id": customer.id, "name": customer.name, "stored": stored, "computed": computed, "drift": computed - stored}
            )
            if fix:
                Customer.objects.filter(pk=customer.pk).update(outstanding_balance=computed)

    vendors = []
    for vendor in Vendor.objects.select_for_update().filter(business_id=business_id).order_by("id"):
        debit, credit = ap_by_party.get(str(vendor.id), (ZERO, ZERO))
        computed = _money(credit - debit)
        stored = _money(vendor.outstanding_balance)
        if computed != stored:
            vendors.append(
                {"id": vendor.id, "name": vendor.name, "stored": stored, "computed": computed, "drift": computed - stored}
            )
            if fix:
                Vendor.objects.filter(pk=vendor.pk).update(outstanding_balance=computed)

    products = []
    for product in Product.objects.filter(business_id=business_id).order_by("sku"):
        row = recompute_stock(product=product, fix=fix)
        if row["drift"]:
            products.append(row)

    drift_count = len(customers) + len(vendors) + len(products)
    if drift_count:
        logger.warning(
            "Counter-balance drift detected",
            extra={"business_id": business_id, "drift_count": drift_count, "fixed": fix},
        )

    return {
        "business_id": business_id,
        "customers": customers,
        "vendors": vendors,
        "products": products,
        "drift_count": drift_count,
        "fixed": bool(fix and drift_count),
    }
