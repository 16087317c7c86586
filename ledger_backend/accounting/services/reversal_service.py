# accounting/services/reversal_service.py

"""
======================================================
PATH: accounting/services/reversal_service.py
======================================================
REVERSAL HANDLER

Exactly undoes the ledger effect of a source document by deleting every
journal (lines first, then headers) posted for (reference_type, reference_id).

Rules:
- Scoped to ONE business; never touches another tenant's journals
- Journals are locked (select_for_update) before deletion
- Zero journals found is not an error: an empty ReversalResult is returned
- Journals dated inside a closed period are never removed (PeriodLockedError)
- Counter-balances are NOT touched here; the calling adapter undoes them
  in the same transaction using ReversalResult.party_lines
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from django.db import transaction

from accounting.models.chart import ChartOfAccounts
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.period_lock import assert_period_open

logger = logging.getLogger(__name__)


@dataclass
class ReversalResult:
    journals_removed: int = 0
    # (account_code, net_debit, net_credit) per account touched
    lines: list[tuple[str, Decimal, Decimal]] = field(default_factory=list)
    # (party_type, party_id) tags carried by the removed journals
    parties: list[tuple[str, str]] = field(default_factory=list)
    # (party_type, party_id, account_code, debit, credit) from each tagged journal's own lines
    party_lines: list[tuple[str, str, str, Decimal, Decimal]] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.journals_removed > 0


@transaction.atomic
def reverse_journal_entries(*, business_id, reference_type: str, reference_id) -> ReversalResult:
    business_id = str(business_id or "").strip()
    reference_type = (reference_type or "").strip()
    reference_id = str(reference_id or "").strip()

    journals = list(
        JournalEntry.objects.select_for_update()
        .filter(
            business_id=business_id,
            reference_type=reference_type,
            reference_id=reference_id,
        )
        .order_by("id")
    )

    if not journals:
        logger.info(
            "No journals to reverse",
            extra={"business_id": business_id, "reference": f"{reference_type}:{reference_id}"},
        )
        return ReversalResult()

    chart = ChartOfAccounts.objects.filter(business_id=business_id).first()
    if chart is not None:
        for journal in journals:
            assert_period_open(chart=chart, entry_date=journal.entry_date)

    journal_ids = [j.id for j in journals]
    line_qs = LedgerEntry.objects.select_for_update().filter(journal_entry_id__in=journal_ids)

    party_of = {j.id: (j.party_type, j.party_id) for j in journals if j.party_type}

    totals: dict[str, list[Decimal]] = {}
    party_totals: dict[tuple[str, str, str], list[Decimal]] = {}
    for line in line_qs.select_related("account").order_by("id"):
        entry = totals.setdefault(line.account.code, [Decimal("0.00"), Decimal("0.00")])
        entry[0] += line.debit
        entry[1] += line.credit

        tag = party_of.get(line.journal_entry_id)
        if tag is not None:
            party_entry = party_totals.setdefault((*tag, line.account.code), [Decimal("0.00"), Decimal("0.00")])
            party_entry[0] += line.debit
            party_entry[1] += line.credit

    lines = []
    for code in sorted(totals):
        debit, credit = totals[code]
        net = debit - credit
        if net >= 0:
            lines.append((code, net, Decimal("0.00")))
        else:
            lines.append((code, Decimal("0.00"), -net))

    parties: list[tuple[str, str]] = []
    for journal in journals:
        tag = (journal.party_type, journal.party_id)
        if journal.party_type and tag not in parties:
            parties.append(tag)

    # Queryset deletes bypass the model-level delete() guards.
    LedgerEntry.objects.filter(journal_entry_id__in=journal_ids).delete()
    JournalEntry.objects.filter(id__in=journal_ids).delete()

    logger.info(
        "Journals reversed",
        extra={
            "business_id": business_id,
            "reference": f"{reference_type}:{reference_id}",
            "journals_removed": len(journal_ids),
        },
    )

    party_lines = [(*key, debit, credit) for key, (debit, credit) in sorted(party_totals.items())]

    return ReversalResult(
        journals_removed=len(journal_ids),
        lines=lines,
        parties=parties,
        party_lines=party_lines,
    )
