# accounting/services/profit_and_loss_service.py

"""
PROFIT & LOSS SERVICE (INCOME STATEMENT)

Read-only aggregation over immutable ledger entries.

Contract-locked numbers (major floats + minor ints):
{
  "income", "cogs", "gross_profit", "other_expenses", "net_income",
  "income_minor", "cogs_minor", "gross_profit_minor",
  "other_expenses_minor", "net_income_minor"
}

Key rules:
- Uses LedgerEntry.transaction_date within [start_date, end_date]
- The COGS-role account is separated from other expenses
- PERIOD_CLOSE journals are excluded (closing a period must not zero its P&L)
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from accounting.models.account import Account, AccountRole
from accounting.services.account_resolver import resolve_account
from accounting.services.balance_service import normal_balance, parse_date, totals_by_account
from accounting.services.exceptions import AccountingServiceError, AccountNotFoundError

TWOPLACES = Decimal("0.01")

PERIOD_CLOSE_REFERENCE = "PERIOD_CLOSE"


def _q2(amount: Decimal) -> Decimal:
    return (amount or Decimal("0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_major_number(amount: Decimal) -> float:
    return float(_q2(amount))


def _to_minor_int(amount: Decimal) -> int:
    return int((_q2(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def _cogs_account_id(business_id) -> int | None:
    try:
        return resolve_account(business_id=business_id, role=AccountRole.COGS).id
    except AccountNotFoundError:
        return None


def get_profit_and_loss(*, business_id, start_date=None, end_date=None):
    start = parse_date(start_date, field_name="start_date")
    end = parse_date(end_date, field_name="end_date")
    if start and end and start > end:
        raise AccountingServiceError("start_date cannot be after end_date")

    business_id = str(business_id)

    totals = totals_by_account(
        business_id=business_id,
        start_date=start,
        end_date=end,
        exclude_reference_types=(PERIOD_CLOSE_REFERENCE,),
    )

    accounts = (
        Account.objects.filter(
            chart__business_id=business_id,
            id__in=list(totals),
            account_type__in=[Account.INCOME, Account.EXPENSE],
        )
        .only("id", "code", "name", "account_type")
        .order_by("code")
    )

    cogs_id = _cogs_account_id(business_id)

    income_rows = []
    expense_rows = []
    total_income = Decimal("0.00")
    total_cogs = Decimal("0.00")
    total_other = Decimal("0.00")

    for acc in accounts:
        debit, credit = totals[acc.id]
        amount = normal_balance(acc.account_type, debit, credit)
        row = {
            "account_code": acc.code,
            "account_name": acc.name,
            "amount": _to_major_number(amount),
            "amount_minor": _to_minor_int(amount),
        }

        if acc.account_type == Account.INCOME:
            income_rows.append(row)
            total_income += amount
        elif acc.id == cogs_id:
            total_cogs += amount
        else:
            expense_rows.append(row)
            total_other += amount

    total_income = _q2(total_income)
    total_cogs = _q2(total_cogs)
    total_other = _q2(total_other)
    gross_profit = _q2(total_income - total_cogs)
    net_income = _q2(gross_profit - total_other)

    return {
        "start_date": start.isoformat() if start else None,
        "end_date": end.isoformat() if end else None,
        "income_accounts": income_rows,
        "expense_accounts": expense_rows,
        "income": _to_major_number(total_income),
        "cogs": _to_major_number(total_cogs),
        "gross_profit": _to_major_number(gross_profit),
        "other_expenses": _to_major_number(total_other),
        "net_income": _to_major_number(net_income),
        "income_minor": _to_minor_int(total_income),
        "cogs_minor": _to_minor_int(total_cogs),
        "gross_profit_minor": _to_minor_int(gross_profit),
        "other_expenses_minor": _to_minor_int(total_other),
        "net_income_minor": _to_minor_int(net_income),
    }
