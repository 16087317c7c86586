# accounting/services/period_lock.py

"""
======================================================
PATH: accounting/services/period_lock.py
======================================================
PERIOD LOCK GUARD

Purpose:
- Prevent posting ANY journal entry whose entry_date falls within a
  closed period for the chart being posted to.
- Prevent the reversal handler from removing journals dated inside
  a closed period.

Design:
- Thin, reusable guard
- Called by the journal poster and the reversal handler
- Accepts chart explicitly (never guesses chart)
"""

from __future__ import annotations

from datetime import date, datetime

from django.utils import timezone

from accounting.models.period_close import PeriodClose
from accounting.services.exceptions import PeriodLockedError


def _to_date(dt: datetime | date | None) -> date | None:
    if dt is None:
        return None
    if isinstance(dt, datetime):
        if timezone.is_aware(dt):
            dt = timezone.localtime(dt)
        return dt.date()
    if isinstance(dt, date):
        return dt
    return None


def is_period_locked(*, chart, entry_date: datetime | date | None) -> bool:
    check_date = _to_date(entry_date)
    if check_date is None:
        return False

    return PeriodClose.objects.filter(
        chart=chart,
        start_date__lte=check_date,
        end_date__gte=check_date,
    ).exists()


def assert_period_open(*, chart, entry_date: datetime | date | None) -> None:
    """
    Assert that entry_date does NOT fall inside a closed period for the given chart.

    Raises:
        PeriodLockedError if the date is locked.
    """
    if is_period_locked(chart=chart, entry_date=entry_date):
        raise PeriodLockedError(
            f"Posting blocked: {_to_date(entry_date)} falls inside a closed period for this chart."
        )
