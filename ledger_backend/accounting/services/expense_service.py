# PATH: accounting/services/expense_service.py

"""
EXPENSE POSTING SERVICE

Responsibilities:
- Validate expense payload
- Resolve accounts in the business's chart
- Create Expense business record (numbered EXP-000001, per business)
- Post the journal in the same unit of work
- Move the vendor payable for credit expenses

Accounting Effect:
- Dr Expense Account          net
- Dr INPUT_TAX_CREDIT         tax (when > 0)
- Cr Cash / Bank / AP         total

Deletion (delete_expense):
- Reverses the EXPENSE:<id> journals, undoes the vendor payable, deletes the row
"""

from __future__ import annotations

import logging
import re
from datetime import date as date_type
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from accounting.models.account import Account, AccountRole
from accounting.models.expense import Expense
from accounting.models.journal import JournalEntry
from accounting.services.account_resolver import resolve_account_by_code
from accounting.services.exceptions import ExpensePostingError
from accounting.services.journal_entry_service import post_journal_entry
from accounting.services.reversal_service import reverse_journal_entries
from parties.models import Vendor
from parties.services.balances import adjust_vendor_balance, undo_reversed_balances

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
EXPENSE_REFERENCE = "EXPENSE"

PAYMENT_ROLES = {
    Expense.PAYMENT_CASH: AccountRole.CASH,
    Expense.PAYMENT_BANK: AccountRole.BANK,
    Expense.PAYMENT_CREDIT: AccountRole.ACCOUNTS_PAYABLE,
}

_NUMBER_RE = re.compile(r"^EXP-(\d+)$")


def _money(v) -> Decimal:
    try:
        return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise ExpensePostingError(f"Invalid amount: {v!r}") from exc


def _normalize_expense_date(expense_date) -> date_type:
    if expense_date is None:
        return timezone.localdate()
    if isinstance(expense_date, date_type):
        return expense_date
    raise ExpensePostingError("expense_date must be a date")


def _next_expense_number(business_id: str) -> str:
    highest = 0
    for number in Expense.objects.filter(business_id=business_id).values_list("expense_number", flat=True):
        match = _NUMBER_RE.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"EXP-{highest + 1:06d}"


@transaction.atomic
def create_expense_and_post(
    *,
    business_id,
    expense_account_code: str,
    net_amount,
    tax_amount=None,
    payment_method: str = Expense.PAYMENT_CASH,
    vendor=None,
    expense_date=None,
    narration: str = "",
    actor=None,
) -> Expense:
    business_id = str(business_id or "").strip()
    if not business_id:
        raise ExpensePostingError("business_id is required")

    net = _money(net_amount)
    tax = _money(tax_amount)
    if net <= Decimal("0.00"):
        raise ExpensePostingError("Amount must be > 0")
    if tax < Decimal("0.00"):
        raise ExpensePostingError("Tax amount cannot be negative")
    total = net + tax

    method = (payment_method or Expense.PAYMENT_CASH).lower().strip()
    if method not in PAYMENT_ROLES:
        raise ExpensePostingError("Invalid payment_method. Use 'cash', 'bank', or 'credit'.")

    if vendor is not None and not isinstance(vendor, Vendor):
        vendor = Vendor.objects.filter(business_id=business_id, pk=vendor).first()
        if vendor is None:
            raise ExpensePostingError("Vendor not found for this business")
    elif vendor is not None and vendor.business_id != business_id:
        raise ExpensePostingError("Vendor not found for this business")

    if method == Expense.PAYMENT_CREDIT and vendor is None:
        raise ExpensePostingError("Credit expenses require a vendor")

    expense_date = _normalize_expense_date(expense_date)

    expense_account = resolve_account_by_code(business_id=business_id, code=expense_account_code)
    if expense_account.account_type != Account.EXPENSE:
        raise ExpensePostingError(f"Account {expense_account.code} is not an EXPENSE account")

    expense = Expense(
        business_id=business_id,
        expense_number=_next_expense_number(business_id),
        expense_date=expense_date,
        expense_account=expense_account,
        net_amount=net,
        tax_amount=tax,
        total_amount=total,
        payment_method=method,
        vendor=vendor,
        narration=(narration or "").strip(),
        created_by=str(actor or ""),
    )
    try:
        expense.save()
    except ValidationError as exc:
        raise ExpensePostingError(str(exc)) from exc

    lines = [{"account": expense_account, "debit": net, "credit": Decimal("0.00")}]
    if tax > 0:
        lines.append({"role": AccountRole.INPUT_TAX_CREDIT, "debit": tax, "credit": Decimal("0.00")})
    lines.append({"role": PAYMENT_ROLES[method], "debit": Decimal("0.00"), "credit": total})

    is_credit = method == Expense.PAYMENT_CREDIT

    post_journal_entry(
        business_id=business_id,
        entry_date=expense_date,
        description=f"Expense {expense.expense_number}: {expense.narration or expense_account.name}",
        reference_type=EXPENSE_REFERENCE,
        reference_id=expense.id,
        lines=lines,
        party_type=JournalEntry.PARTY_VENDOR if is_credit else None,
        party_id=vendor.id if is_credit else None,
        actor=actor,
    )

    if is_credit:
        adjust_vendor_balance(business_id=business_id, vendor=vendor, delta=total)

    logger.info(
        "Expense posted",
        extra={
            "business_id": business_id,
            "expense_id": expense.id,
            "expense_number": expense.expense_number,
            "total": str(total),
            "payment_method": method,
        },
    )
    return expense


@transaction.atomic
def delete_expense(*, business_id, expense_id, actor=None) -> dict:
    business_id = str(business_id)
    expense = Expense.objects.select_for_update().filter(business_id=business_id, pk=expense_id).first()
    if expense is None:
        raise ExpensePostingError("Expense not found for this business")

    result = reverse_journal_entries(
        business_id=business_id,
        reference_type=EXPENSE_REFERENCE,
        reference_id=expense.id,
    )
    undo_reversed_balances(business_id=business_id, reversal=result)

    number = expense.expense_number
    expense.delete()

    logger.info(
        "Expense deleted",
        extra={
            "business_id": business_id,
            "expense_number": number,
            "journals_removed": result.journals_removed,
            "actor": str(actor or ""),
        },
    )
    return {"expense_number": number, "journals_removed": result.journals_removed}
