# accounting/tests/test_reversal.py

from datetime import date
from decimal import Decimal

from django.test import TestCase

from accounting.models.account import AccountRole
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.chart_service import initialize_chart_of_accounts
from accounting.services.exceptions import PeriodLockedError
from accounting.services.journal_entry_service import post_journal_entry
from accounting.services.period_close_service import close_period
from accounting.services.reversal_service import reverse_journal_entries
from accounting.services.trial_balance_service import generate_trial_balance

BUSINESS = "biz-reversal"


class ReversalHandlerTests(TestCase):
    def setUp(self):
        initialize_chart_of_accounts(business_id=BUSINESS)

    def _post(self, *, reference_id, amount, entry_date=date(2024, 5, 10)):
        return post_journal_entry(
            business_id=BUSINESS,
            entry_date=entry_date,
            description=f"Sale {reference_id}",
            reference_type="INVOICE",
            reference_id=reference_id,
            lines=[
                {"role": AccountRole.CASH, "debit": amount, "credit": "0"},
                {"role": AccountRole.SALES_REVENUE, "debit": "0", "credit": amount},
            ],
        )

    def test_reverse_removes_headers_and_lines(self):
        self._post(reference_id="7", amount="100.00")
        self._post(reference_id="7", amount="20.00")
        self._post(reference_id="8", amount="5.00")

        result = reverse_journal_entries(business_id=BUSINESS, reference_type="INVOICE", reference_id=7)

        self.assertTrue(result.found)
        self.assertEqual(result.journals_removed, 2)
        self.assertIn(("1001", Decimal("120.00"), Decimal("0.00")), result.lines)
        self.assertIn(("4000", Decimal("0.00"), Decimal("120.00")), result.lines)

        self.assertFalse(JournalEntry.objects.filter(reference_id="7").exists())
        self.assertEqual(JournalEntry.objects.filter(reference_id="8").count(), 1)
        self.assertEqual(LedgerEntry.objects.count(), 2)

    def test_post_then_reverse_restores_trial_balance(self):
        self._post(reference_id="1", amount="40.00")
        before = generate_trial_balance(business_id=BUSINESS, as_of=date(2024, 12, 31))

        self._post(reference_id="2", amount="60.00")
        reverse_journal_entries(business_id=BUSINESS, reference_type="INVOICE", reference_id="2")
        after = generate_trial_balance(business_id=BUSINESS, as_of=date(2024, 12, 31))

        self.assertEqual(before["totals"], after["totals"])
        self.assertEqual(before["accounts"], after["accounts"])

    def test_unknown_reference_returns_empty_result(self):
        result = reverse_journal_entries(business_id=BUSINESS, reference_type="INVOICE", reference_id="404")

        self.assertFalse(result.found)
        self.assertEqual(result.journals_removed, 0)
        self.assertEqual(result.lines, [])

    def test_reversal_is_scoped_to_business(self):
        initialize_chart_of_accounts(business_id="biz-other")
        self._post(reference_id="9", amount="10.00")

        result = reverse_journal_entries(business_id="biz-other", reference_type="INVOICE", reference_id="9")

        self.assertFalse(result.found)
        self.assertEqual(JournalEntry.objects.filter(reference_id="9").count(), 1)

    def test_journal_inside_closed_period_cannot_be_reversed(self):
        self._post(reference_id="old", amount="10.00", entry_date=date(2024, 1, 15))
        close_period(business_id=BUSINESS, start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))

        with self.assertRaises(PeriodLockedError):
            reverse_journal_entries(business_id=BUSINESS, reference_type="INVOICE", reference_id="old")

        self.assertTrue(JournalEntry.objects.filter(reference_id="old").exists())
