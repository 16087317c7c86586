# accounting/tests/test_journal_integrity.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models.account import AccountRole
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.chart_service import initialize_chart_of_accounts
from accounting.services.exceptions import (
    AccountNotFoundError,
    JournalEntryCreationError,
    UnbalancedEntryError,
)
from accounting.services.journal_entry_service import post_journal_entry

BUSINESS = "biz-journal"


class JournalPosterTests(TestCase):
    """
    Journal poster guarantees:
    - balanced entries are written as ONE header + N lines
    - rejected entries leave no rows behind
    - headers and lines are never edited or deleted directly
    """

    def setUp(self):
        initialize_chart_of_accounts(business_id=BUSINESS)

    def _post(self, lines, **kwargs):
        params = {
            "business_id": BUSINESS,
            "entry_date": date(2024, 3, 1),
            "description": "Owner investment",
            "reference_type": "MANUAL",
            "reference_id": "1",
            "lines": lines,
        }
        params.update(kwargs)
        return post_journal_entry(**params)

    def test_balanced_entry_creates_header_and_lines(self):
        je = self._post(
            [
                {"role": AccountRole.CASH, "debit": "1000.00", "credit": "0"},
                {"role": AccountRole.OWNER_EQUITY, "debit": "0", "credit": "1000.00"},
            ]
        )

        self.assertEqual(je.reference, "MANUAL:1")
        self.assertEqual(je.ledger_entries.count(), 2)

        debits = sum(le.debit for le in je.ledger_entries.all())
        credits = sum(le.credit for le in je.ledger_entries.all())
        self.assertEqual(debits, Decimal("1000.00"))
        self.assertEqual(debits, credits)

        for line in je.ledger_entries.all():
            self.assertEqual(line.transaction_date, date(2024, 3, 1))

    def test_lines_accept_account_code(self):
        je = self._post(
            [
                {"account_code": "1001", "debit": "50", "credit": "0"},
                {"account_code": "3000", "debit": "0", "credit": "50"},
            ]
        )
        codes = sorted(je.ledger_entries.values_list("account__code", flat=True))
        self.assertEqual(codes, ["1001", "3000"])

    def test_unbalanced_entry_is_rejected_without_rows(self):
        with self.assertRaises(UnbalancedEntryError) as ctx:
            self._post(
                [
                    {"role": AccountRole.CASH, "debit": "100.00", "credit": "0"},
                    {"role": AccountRole.OWNER_EQUITY, "debit": "0", "credit": "99.00"},
                ]
            )

        self.assertEqual(ctx.exception.code, "unbalanced_entry")
        self.assertEqual(JournalEntry.objects.count(), 0)
        self.assertEqual(LedgerEntry.objects.count(), 0)

    def test_single_line_entry_is_rejected(self):
        with self.assertRaises(JournalEntryCreationError):
            self._post([{"role": AccountRole.CASH, "debit": "10", "credit": "0"}])

    def test_line_with_both_sides_is_rejected(self):
        with self.assertRaises(JournalEntryCreationError):
            self._post(
                [
                    {"role": AccountRole.CASH, "debit": "10", "credit": "10"},
                    {"role": AccountRole.OWNER_EQUITY, "debit": "0", "credit": "0"},
                ]
            )

    def test_negative_amount_is_rejected(self):
        with self.assertRaises(JournalEntryCreationError):
            self._post(
                [
                    {"role": AccountRole.CASH, "debit": "-10", "credit": "0"},
                    {"role": AccountRole.OWNER_EQUITY, "debit": "0", "credit": "-10"},
                ]
            )
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_unknown_account_code_is_rejected(self):
        with self.assertRaises(AccountNotFoundError) as ctx:
            self._post(
                [
                    {"account_code": "9999", "debit": "10", "credit": "0"},
                    {"role": AccountRole.OWNER_EQUITY, "debit": "0", "credit": "10"},
                ]
            )
        self.assertEqual(ctx.exception.code, "account_not_found")
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_other_business_chart_is_not_visible(self):
        with self.assertRaises(AccountNotFoundError):
            self._post(
                [
                    {"role": AccountRole.CASH, "debit": "10", "credit": "0"},
                    {"role": AccountRole.OWNER_EQUITY, "debit": "0", "credit": "10"},
                ],
                business_id="biz-without-chart",
            )

    def test_same_reference_posted_twice_creates_two_journals(self):
        lines = [
            {"role": AccountRole.CASH, "debit": "10", "credit": "0"},
            {"role": AccountRole.OWNER_EQUITY, "debit": "0", "credit": "10"},
        ]
        self._post(lines)
        self._post(lines)

        self.assertEqual(
            JournalEntry.objects.filter(reference_type="MANUAL", reference_id="1").count(),
            2,
        )

    def test_party_tag_requires_both_fields(self):
        with self.assertRaises(ValidationError):
            self._post(
                [
                    {"role": AccountRole.ACCOUNTS_RECEIVABLE, "debit": "10", "credit": "0"},
                    {"role": AccountRole.SALES_REVENUE, "debit": "0", "credit": "10"},
                ],
                party_type=JournalEntry.PARTY_CUSTOMER,
            )


class JournalImmutabilityTests(TestCase):
    def setUp(self):
        initialize_chart_of_accounts(business_id=BUSINESS)
        self.je = post_journal_entry(
            business_id=BUSINESS,
            entry_date=date(2024, 3, 1),
            description="Opening cash",
            reference_type="MANUAL",
            reference_id="open",
            lines=[
                {"role": AccountRole.CASH, "debit": "500", "credit": "0"},
                {"role": AccountRole.OWNER_EQUITY, "debit": "0", "credit": "500"},
            ],
        )

    def test_journal_header_cannot_be_edited(self):
        self.je.description = "Changed"
        with self.assertRaises(ValidationError):
            self.je.save()

    def test_journal_header_cannot_be_deleted_directly(self):
        with self.assertRaises(ValidationError):
            self.je.delete()

    def test_ledger_line_cannot_be_edited_or_deleted(self):
        line = self.je.ledger_entries.first()

        line.debit = Decimal("1.00")
        with self.assertRaises(ValidationError):
            line.save()

        with self.assertRaises(ValidationError):
            line.delete()

        self.assertEqual(LedgerEntry.objects.count(), 2)
