# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY SERVICE (JOURNAL POSTER)

This module is the ONLY place allowed to:
- Create JournalEntry
- Create LedgerEntry
- Enforce debit == credit
- Enforce period locks (no posting into closed periods)

Everything else (invoices, purchases, expenses, payments, production)
must pass through here.

Atomicity:
- post_journal_entry is @transaction.atomic. Inside an adapter's
  transaction.atomic() block it joins as a savepoint and never commits
  on its own; the adapter's block decides commit/rollback.

No idempotency:
- Posting the same (reference_type, reference_id) twice creates two journals.
  Adapters guard against double posting with document status under row lock.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.account_resolver import (
    get_chart,
    resolve_account,
    resolve_account_by_code,
)
from accounting.services.exceptions import (
    AccountNotFoundError,
    JournalEntryCreationError,
    UnbalancedEntryError,
)
from accounting.services.period_lock import assert_period_open

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
MIN_LINE_AMOUNT = Decimal("0.01")
BALANCE_TOLERANCE = Decimal("0.01")


def _money(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0.00")

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise JournalEntryCreationError(f"Invalid money value: {value!r}") from exc

    if not amt.is_finite():
        raise JournalEntryCreationError(f"Invalid money value: {value!r}")

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _as_date(value) -> date:
    if value is None:
        return timezone.localdate()
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise JournalEntryCreationError(f"Invalid entry_date: {value!r}") from exc


def _resolve_line_account(*, business_id: str, line: dict) -> Account:
    account = line.get("account")
    if account is not None:
        if not isinstance(account, Account):
            raise JournalEntryCreationError("Posting 'account' must be an Account instance")
        if account.chart.business_id != business_id:
            raise AccountNotFoundError(
                f"Account {account.code} does not belong to business_id={business_id}"
            )
        if not account.is_active:
            raise AccountNotFoundError(f"Account {account.code} is inactive")
        return account

    if line.get("account_code"):
        return resolve_account_by_code(business_id=business_id, code=line["account_code"])

    if line.get("role"):
        return resolve_account(business_id=business_id, role=line["role"])

    raise JournalEntryCreationError("Posting missing account (account, account_code or role)")


def normalize_lines(*, business_id: str, lines) -> list[dict]:
    """
    Validate posting lines and resolve their accounts.

    Returns [{"account", "debit", "credit"}] with quantized amounts. Raises
    JournalEntryCreationError / AccountNotFoundError / UnbalancedEntryError.
    """
    if not lines or len(lines) < 2:
        raise JournalEntryCreationError("Journal entry must contain at least two lines")

    total_debits = Decimal("0.00")
    total_credits = Decimal("0.00")
    normalized: list[dict] = []

    for line in lines:
        if not isinstance(line, dict):
            raise JournalEntryCreationError("Each posting must be an object/dict")

        debit = _money(line.get("debit"))
        credit = _money(line.get("credit"))

        if debit < 0 or credit < 0:
            raise JournalEntryCreationError("Debit or credit cannot be negative")

        if debit > 0 and credit > 0:
            raise JournalEntryCreationError("A posting cannot have both debit and credit")

        if debit == 0 and credit == 0:
            raise JournalEntryCreationError("A posting must have either debit or credit")

        if 0 < debit < MIN_LINE_AMOUNT or 0 < credit < MIN_LINE_AMOUNT:
            raise JournalEntryCreationError("Posting amount too small")

        account = _resolve_line_account(business_id=business_id, line=line)

        total_debits += debit
        total_credits += credit
        normalized.append({"account": account, "debit": debit, "credit": credit})

    if abs(total_debits - total_credits) >= BALANCE_TOLERANCE:
        raise UnbalancedEntryError(
            f"Journal entry not balanced: debits={total_debits} credits={total_credits}"
        )

    return normalized


@transaction.atomic
def post_journal_entry(
    *,
    business_id,
    entry_date,
    description: str,
    reference_type: str,
    reference_id,
    lines: list,
    party_type: str | None = None,
    party_id=None,
    actor=None,
) -> JournalEntry:
    """
    Post ONE balanced journal: header + N ledger lines.

    Each line: {"account" | "account_code" | "role": ..., "debit": x, "credit": y}

    Raises (before any row is written):
    - JournalEntryCreationError: < 2 lines, malformed amounts, empty description
    - AccountNotFoundError: a line's account cannot be resolved in the chart
    - UnbalancedEntryError: |Σdebit − Σcredit| >= 0.01
    - PeriodLockedError: entry_date falls inside a closed period
    """
    business_id = str(business_id or "").strip()
    if not business_id:
        raise JournalEntryCreationError("business_id is required")

    description = (description or "").strip()
    if not description:
        raise JournalEntryCreationError("Journal entry description is required")

    entry_date = _as_date(entry_date)
    normalized = normalize_lines(business_id=business_id, lines=lines)

    assert_period_open(chart=get_chart(business_id=business_id), entry_date=entry_date)

    journal_entry = JournalEntry(
        business_id=business_id,
        entry_date=entry_date,
        description=description,
        reference_type=(reference_type or "").strip(),
        reference_id=str(reference_id or "").strip(),
        party_type=party_type or "",
        party_id=str(party_id) if party_id not in (None, "") else "",
        created_by=str(actor or ""),
    )
    journal_entry.save()

    LedgerEntry.objects.bulk_create(
        [
            LedgerEntry(
                journal_entry=journal_entry,
                account=line["account"],
                debit=line["debit"],
                credit=line["credit"],
                transaction_date=entry_date,
            )
            for line in normalized
        ]
    )

    logger.info(
        "Journal posted",
        extra={
            "business_id": business_id,
            "journal_entry_id": journal_entry.id,
            "reference": journal_entry.reference,
            "lines": len(normalized),
        },
    )
    return journal_entry
