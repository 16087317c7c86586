# accounting/services/balance_sheet_service.py

"""
BALANCE SHEET SERVICE

Pure accounting read service.

Responsibilities:
- Compute balances per account as at a given date
- Classify balances into Assets, Liabilities, Equity
- Report whether Assets = Liabilities + Equity

Important:
- Income/Expense activity through as_of (lifetime, including closed periods)
  is represented as "Retained Earnings (computed)" in Equity. Closed periods
  already moved their result into RETAINED_EARNINGS and zeroed the income and
  expense accounts, so nothing is counted twice.
- An unbalanced sheet is RETURNED (balanced=False, discrepancy != 0), never raised.

Contract:
- Major-unit numbers (floats, 2dp) and minor-unit ints (exact)
- liabilities_plus_equity in totals for convenience
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from django.utils import timezone

from accounting.models.account import Account
from accounting.services.balance_service import normal_balance, parse_date, totals_by_account

TWOPLACES = Decimal("0.01")
BALANCE_TOLERANCE = Decimal("0.01")


def _q2(amount: Decimal) -> Decimal:
    return (amount or Decimal("0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _to_major_number(amount: Decimal) -> float:
    return float(_q2(amount))


def _to_minor_int(amount: Decimal) -> int:
    return int((_q2(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def generate_balance_sheet(*, business_id, as_of=None) -> dict:
    """
    Args:
        business_id: tenant whose chart is reported
        as_of: date or YYYY-MM-DD string (inclusive). Defaults to today.

    Returns:
        {
            "as_of": "YYYY-MM-DD",
            "assets": [{"code","name","balance","balance_minor"}...],
            "liabilities": [...],
            "equity": [...],
            "retained_earnings": 0.0,
            "retained_earnings_minor": 0,
            "totals": {
                "assets", "liabilities", "equity", "liabilities_plus_equity",
                "discrepancy", (+ *_minor), "balanced"
            }
        }
    """
    cutoff = parse_date(as_of, field_name="as_of") or timezone.localdate()
    business_id = str(business_id)

    totals_by_id = totals_by_account(business_id=business_id, end_date=cutoff)

    accounts = list(
        Account.objects.filter(chart__business_id=business_id, id__in=list(totals_by_id))
        .only("id", "code", "name", "account_type")
    )

    # Deterministic ordering
    accounts.sort(key=lambda a: (a.account_type, a.code))

    sections = {"assets": [], "liabilities": [], "equity": []}
    totals = {
        "assets": Decimal("0.00"),
        "liabilities": Decimal("0.00"),
        "equity": Decimal("0.00"),
    }

    income_total = Decimal("0.00")
    expense_total = Decimal("0.00")

    for acc in accounts:
        debit, credit = totals_by_id[acc.id]
        bal = normal_balance(acc.account_type, debit, credit)

        if acc.account_type == Account.INCOME:
            income_total += bal
            continue

        if acc.account_type == Account.EXPENSE:
            expense_total += bal
            continue

        if bal == Decimal("0.00"):
            continue

        entry = {
            "code": acc.code,
            "name": acc.name,
            "balance": _to_major_number(bal),
            "balance_minor": _to_minor_int(bal),
        }

        if acc.account_type == Account.ASSET:
            sections["assets"].append(entry)
            totals["assets"] += bal
        elif acc.account_type == Account.LIABILITY:
            sections["liabilities"].append(entry)
            totals["liabilities"] += bal
        elif acc.account_type == Account.EQUITY:
            sections["equity"].append(entry)
            totals["equity"] += bal

    retained_earnings = _q2(income_total - expense_total)
    if retained_earnings != Decimal("0.00"):
        sections["equity"].append(
            {
                "code": "RE-CALC",
                "name": "Retained Earnings (computed)",
                "balance": _to_major_number(retained_earnings),
                "balance_minor": _to_minor_int(retained_earnings),
            }
        )
        totals["equity"] += retained_earnings

    assets_q = _q2(totals["assets"])
    liabilities_plus_equity_q = _q2(totals["liabilities"] + totals["equity"])
    discrepancy = _q2(assets_q - liabilities_plus_equity_q)

    return {
        "as_of": cutoff.isoformat(),
        **sections,
        "retained_earnings": _to_major_number(retained_earnings),
        "retained_earnings_minor": _to_minor_int(retained_earnings),
        "totals": {
            "assets": _to_major_number(totals["assets"]),
            "liabilities": _to_major_number(totals["liabilities"]),
            "equity": _to_major_number(totals["equity"]),
            "liabilities_plus_equity": _to_major_number(liabilities_plus_equity_q),
            "discrepancy": _to_major_number(discrepancy),
            "assets_minor": _to_minor_int(totals["assets"]),
            "liabilities_minor": _to_minor_int(totals["liabilities"]),
            "equity_minor": _to_minor_int(totals["equity"]),
            "liabilities_plus_equity_minor": _to_minor_int(liabilities_plus_equity_q),
            "discrepancy_minor": _to_minor_int(discrepancy),
            "balanced": abs(discrepancy) < BALANCE_TOLERANCE,
        },
    }
