# accounting/services/trial_balance_service.py

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


class TrialBalanceService:
    """
    Trial Balance computation service.

    Guarantees:
    - Scopes to ONE business's chart
    - Counts lines with transaction_date <= as_of
    - Includes inactive accounts that still carry postings (so totals always tie out)
    - Avoids N+1 queries by aggregating in bulk
    - Returns JSON-safe numeric values (no Decimals)
    """

    def __init__(self, account_model=Account):
        self.Account = account_model

    def generate(self, *, business_id, as_of=None):
        cutoff = parse_date(as_of, field_name="as_of") or timezone.localdate()
        business_id = str(business_id)

        totals = totals_by_account(business_id=business_id, end_date=cutoff)

        accounts = list(
            self.Account.objects.filter(chart__business_id=business_id, id__in=list(totals))
            .only("id", "code", "name", "account_type")
            .order_by("code")
        )

        accounts_output = []
        total_debit = Decimal("0.00")
        total_credit = Decimal("0.00")

        for acc in accounts:
            debit, credit = totals[acc.id]

            if debit == Decimal("0.00") and credit == Decimal("0.00"):
                continue

            net = normal_balance(acc.account_type, debit, credit)

            accounts_output.append(
                {
                    "account_id": acc.id,
                    "account_code": acc.code,
                    "account_name": acc.name,
                    "account_type": acc.account_type,
                    "debit": _to_major_number(debit),
                    "credit": _to_major_number(credit),
                    "net_balance": _to_major_number(net),
                    "debit_minor": _to_minor_int(debit),
                    "credit_minor": _to_minor_int(credit),
                    "net_balance_minor": _to_minor_int(net),
                }
            )

            total_debit += debit
            total_credit += credit

        total_debit = _q2(total_debit)
        total_credit = _q2(total_credit)
        discrepancy = _q2(total_debit - total_credit)

        return {
            "as_of": cutoff.isoformat(),
            "accounts": accounts_output,
            "totals": {
                "debit": _to_major_number(total_debit),
                "credit": _to_major_number(total_credit),
                "discrepancy": _to_major_number(discrepancy),
                "debit_minor": _to_minor_int(total_debit),
                "credit_minor": _to_minor_int(total_credit),
                "discrepancy_minor": _to_minor_int(discrepancy),
                "balanced": abs(discrepancy) < BALANCE_TOLERANCE,
            },
        }


def generate_trial_balance(*, business_id, as_of=None) -> dict:
    return TrialBalanceService().generate(business_id=business_id, as_of=as_of)
