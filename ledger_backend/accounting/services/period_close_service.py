# PATH: accounting/services/period_close_service.py

"""
PERIOD CLOSE SERVICE

Closes an accounting period for ONE business by zeroing out:
- Income accounts
- Expense accounts

…into the RETAINED_EARNINGS (Equity) account, by creating ONE journal entry,
then locking the period against further posting and reversal.

Guarantees:
- Atomic: journal entry + PeriodClose record created together
- reference_type="PERIOD_CLOSE", reference_id="<start>:<end>"
- Prevents overlapping closes for the business
- Journal dated on end_date
- A period with no income/expense activity is still locked (no journal)
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import IntegrityError, transaction
from django.utils import timezone

from accounting.models.account import Account, AccountRole
from accounting.models.chart import ChartOfAccounts
from accounting.models.period_close import PeriodClose
from accounting.services.account_resolver import get_chart, resolve_account
from accounting.services.balance_service import parse_date, totals_by_account
from accounting.services.exceptions import PeriodCloseError
from accounting.services.journal_entry_service import post_journal_entry

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")

PERIOD_CLOSE_REFERENCE = "PERIOD_CLOSE"


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _validate_period_dates(*, start_date, end_date) -> None:
    if not start_date or not end_date:
        raise PeriodCloseError("start_date and end_date are required")
    if start_date > end_date:
        raise PeriodCloseError("start_date cannot be after end_date")

    today = timezone.localdate()
    if end_date > today:
        raise PeriodCloseError(
            f"Cannot close a future period. end_date={end_date} today={today}"
        )


def _ensure_no_overlap(*, chart, start_date, end_date) -> None:
    overlaps = PeriodClose.objects.filter(
        chart=chart,
        start_date__lte=end_date,
        end_date__gte=start_date,
    ).exists()
    if overlaps:
        raise PeriodCloseError(
            "This period overlaps an already-closed period. Choose a non-overlapping range."
        )


@transaction.atomic
def close_period(*, business_id, start_date, end_date, actor=None) -> dict:
    """
    CLOSE PERIOD (Income/Expense -> Retained Earnings)

    Returns:
        {"period_close", "journal_entry" (or None), "total_income",
         "total_expenses", "net_profit"}
    """
    start_date = parse_date(start_date, field_name="start_date")
    end_date = parse_date(end_date, field_name="end_date")
    _validate_period_dates(start_date=start_date, end_date=end_date)

    chart = get_chart(business_id=business_id)
    # Serialize closes per business.
    chart = ChartOfAccounts.objects.select_for_update().get(pk=chart.pk)

    _ensure_no_overlap(chart=chart, start_date=start_date, end_date=end_date)

    retained_earnings = resolve_account(
        business_id=chart.business_id, role=AccountRole.RETAINED_EARNINGS
    )

    totals = totals_by_account(
        business_id=chart.business_id,
        start_date=start_date,
        end_date=end_date,
    )
    accounts = Account.objects.filter(
        chart=chart,
        id__in=list(totals),
        account_type__in=[Account.INCOME, Account.EXPENSE],
    ).order_by("code")

    lines = []
    total_income = Decimal("0.00")
    total_expenses = Decimal("0.00")

    for account in accounts:
        debit, credit = totals[account.id]

        # Income normally has credit balances; we DEBIT to zero it out.
        if account.account_type == Account.INCOME:
            net = _money(credit - debit)
            total_income += net
            if net > 0:
                lines.append({"account": account, "debit": net, "credit": Decimal("0.00")})
            elif net < 0:
                lines.append({"account": account, "debit": Decimal("0.00"), "credit": -net})

        # Expense normally has debit balances; we CREDIT to zero it out.
        else:
            net = _money(debit - credit)
            total_expenses += net
            if net > 0:
                lines.append({"account": account, "debit": Decimal("0.00"), "credit": net})
            elif net < 0:
                lines.append({"account": account, "debit": -net, "credit": Decimal("0.00")})

    total_income = _money(total_income)
    total_expenses = _money(total_expenses)
    net_profit = _money(total_income - total_expenses)

    # Post net to retained earnings (profit => credit equity, loss => debit equity)
    if net_profit > 0:
        lines.append({"account": retained_earnings, "debit": Decimal("0.00"), "credit": net_profit})
    elif net_profit < 0:
        lines.append({"account": retained_earnings, "debit": -net_profit, "credit": Decimal("0.00")})

    journal_entry = None
    if lines:
        journal_entry = post_journal_entry(
            business_id=chart.business_id,
            entry_date=end_date,
            description=f"Period Close {start_date.isoformat()} → {end_date.isoformat()}",
            reference_type=PERIOD_CLOSE_REFERENCE,
            reference_id=f"{start_date.isoformat()}:{end_date.isoformat()}",
            lines=lines,
            actor=actor,
        )

    try:
        with transaction.atomic():
            period_close = PeriodClose.objects.create(
                chart=chart,
                start_date=start_date,
                end_date=end_date,
                journal_entry=journal_entry,
                created_by=str(actor or ""),
            )
    except IntegrityError as exc:
        raise PeriodCloseError(
            "Failed to create PeriodClose record (possible overlap/duplicate under concurrency)."
        ) from exc

    logger.info(
        "Period closed",
        extra={
            "business_id": chart.business_id,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "net_profit": str(net_profit),
        },
    )

    return {
        "period_close": period_close,
        "journal_entry": journal_entry,
        "total_income": total_income,
        "total_expenses": total_expenses,
        "net_profit": net_profit,
    }
