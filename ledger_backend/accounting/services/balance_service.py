# accounting/services/balance_service.py

"""
BALANCE & REPORTING SERVICE (AUTHORITATIVE)

Read-only ledger aggregation helpers shared by the statement services.

RULES:
- READ-ONLY: no writes, ever
- LedgerEntry is the single source of truth
- Accounting timeline uses LedgerEntry.transaction_date (= journal entry_date)
- Business-scoped: never mix charts
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Sum
from django.db.models.functions import Coalesce

from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry
from accounting.services.account_resolver import resolve_account_by_code
from accounting.services.exceptions import AccountingServiceError

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def _q2(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_major_number(amount: Decimal) -> float:
    return float(_q2(amount))


def _to_minor_int(amount: Decimal) -> int:
    return int((_q2(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def parse_date(value, *, field_name: str = "date") -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise AccountingServiceError(f"Invalid {field_name} format (YYYY-MM-DD)") from exc


def normal_balance(account_type: str, debit: Decimal, credit: Decimal) -> Decimal:
    """
    Balance rule:
    - Assets & Expenses → Debit balance  (debits - credits)
    - Liabilities, Equity & Income → Credit balance (credits - debits)
    """
    if account_type in Account.DEBIT_NORMAL_TYPES:
        return _q2(debit - credit)
    return _q2(credit - debit)


def ledger_lines(
    *,
    business_id,
    start_date: date | None = None,
    end_date: date | None = None,
    exclude_reference_types=(),
):
    qs = LedgerEntry.objects.filter(account__chart__business_id=str(business_id))

    if start_date is not None:
        qs = qs.filter(transaction_date__gte=start_date)
    if end_date is not None:
        qs = qs.filter(transaction_date__lte=end_date)
    if exclude_reference_types:
        qs = qs.exclude(journal_entry__reference_type__in=list(exclude_reference_types))

    return qs


def totals_by_account(
    *,
    business_id,
    start_date: date | None = None,
    end_date: date | None = None,
    exclude_reference_types=(),
) -> dict[int, tuple[Decimal, Decimal]]:
    """Bulk {account_id: (Σdebit, Σcredit)} (no N+1)."""
    rows = (
        ledger_lines(
            business_id=business_id,
            start_date=start_date,
            end_date=end_date,
            exclude_reference_types=exclude_reference_types,
        )
        .values("account_id")
        .annotate(
            debit_total=Coalesce(Sum("debit"), ZERO),
            credit_total=Coalesce(Sum("credit"), ZERO),
        )
    )
    return {r["account_id"]: (_q2(r["debit_total"]), _q2(r["credit_total"])) for r in rows}


def get_account_balance(*, business_id, account_code: str, as_of=None) -> dict:
    account = resolve_account_by_code(business_id=business_id, code=account_code)
    cutoff = parse_date(as_of, field_name="as_of")

    qs = LedgerEntry.objects.filter(account=account)
    if cutoff is not None:
        qs = qs.filter(transaction_date__lte=cutoff)

    agg = qs.aggregate(
        debit_total=Coalesce(Sum("debit"), ZERO),
        credit_total=Coalesce(Sum("credit"), ZERO),
    )
    debit = _q2(agg["debit_total"])
    credit = _q2(agg["credit_total"])
    balance = normal_balance(account.account_type, debit, credit)

    return {
        "account_code": account.code,
        "account_name": account.name,
        "account_type": account.account_type,
        "as_of": cutoff.isoformat() if cutoff else None,
        "debit": _to_major_number(debit),
        "credit": _to_major_number(credit),
        "balance": _to_major_number(balance),
        "balance_minor": _to_minor_int(balance),
    }


def get_general_ledger(*, business_id, account_code: str, start_date=None, end_date=None) -> dict:
    """
    General ledger for one account: opening balance (everything before
    start_date) plus one row per line in range with a running balance on the
    account's normal side.
    """
    account = resolve_account_by_code(business_id=business_id, code=account_code)
    start = parse_date(start_date, field_name="start_date")
    end = parse_date(end_date, field_name="end_date")

    if start and end and start > end:
        raise AccountingServiceError("start_date cannot be after end_date")

    opening = ZERO
    if start is not None:
        agg = LedgerEntry.objects.filter(account=account, transaction_date__lt=start).aggregate(
            debit_total=Coalesce(Sum("debit"), ZERO),
            credit_total=Coalesce(Sum("credit"), ZERO),
        )
        opening = normal_balance(account.account_type, agg["debit_total"], agg["credit_total"])

    qs = LedgerEntry.objects.filter(account=account).select_related("journal_entry")
    if start is not None:
        qs = qs.filter(transaction_date__gte=start)
    if end is not None:
        qs = qs.filter(transaction_date__lte=end)

    running = opening
    rows = []
    for line in qs.order_by("transaction_date", "journal_entry_id", "id"):
        running = _q2(running + normal_balance(account.account_type, line.debit, line.credit))
        journal = line.journal_entry
        rows.append(
            {
                "journal_entry_id": journal.id,
                "date": line.transaction_date.isoformat(),
                "description": journal.description,
                "reference": journal.reference,
                "debit": _to_major_number(line.debit),
                "credit": _to_major_number(line.credit),
                "running_balance": _to_major_number(running),
                "running_balance_minor": _to_minor_int(running),
            }
        )

    return {
        "account_code": account.code,
        "account_name": account.name,
        "account_type": account.account_type,
        "start_date": start.isoformat() if start else None,
        "end_date": end.isoformat() if end else None,
        "opening_balance": _to_major_number(opening),
        "closing_balance": _to_major_number(running),
        "entries": rows,
    }
