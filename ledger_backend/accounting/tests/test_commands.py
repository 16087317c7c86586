# accounting/tests/test_commands.py

from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from accounting.models.account import Account, AccountRole
from accounting.models.chart import ChartOfAccounts
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.account_resolver import resolve_account
from accounting.services.chart_service import initialize_chart_of_accounts
from accounting.services.journal_entry_service import post_journal_entry
from parties.models import Customer

BUSINESS = "biz-commands"


def _call(*args, **kwargs):
    out, err = StringIO(), StringIO()
    call_command(*args, stdout=out, stderr=err, **kwargs)
    return out.getvalue(), err.getvalue()


class InitializeChartCommandTests(TestCase):
    def test_creates_chart_once(self):
        out, _ = _call("initialize_chart", BUSINESS, "--name", "Demo Books")
        self.assertIn("Demo Books", out)
        self.assertTrue(ChartOfAccounts.objects.filter(business_id=BUSINESS).exists())
        count = Account.objects.filter(chart__business_id=BUSINESS).count()

        out, _ = _call("initialize_chart", BUSINESS)
        self.assertIn("already initialized", out)
        self.assertEqual(Account.objects.filter(chart__business_id=BUSINESS).count(), count)


class VerifyBalanceCommandTests(TestCase):
    def setUp(self):
        initialize_chart_of_accounts(business_id=BUSINESS)
        post_journal_entry(
            business_id=BUSINESS,
            entry_date=date(2024, 3, 1),
            description="Cash sale",
            reference_type="MANUAL",
            reference_id="1",
            lines=[
                {"role": AccountRole.CASH, "debit": "75.00", "credit": "0"},
                {"role": AccountRole.SALES_REVENUE, "debit": "0", "credit": "75.00"},
            ],
        )

    def test_balanced_ledger_passes(self):
        out, _ = _call("verify_balance", BUSINESS, "2024-12-31", "--balance-sheet")
        self.assertIn("LEDGER BALANCED", out)

    def test_invalid_date_exits_with_error(self):
        with self.assertRaises(SystemExit) as ctx:
            _call("verify_balance", BUSINESS, "31/12/2024")
        self.assertEqual(ctx.exception.code, 1)

    def test_one_sided_line_fails(self):
        je = JournalEntry(business_id=BUSINESS, entry_date=date(2024, 3, 2), description="Broken import")
        je.save()
        LedgerEntry.objects.create(
            journal_entry=je,
            account=resolve_account(business_id=BUSINESS, role=AccountRole.CASH),
            debit=Decimal("10.00"),
            credit=Decimal("0.00"),
            transaction_date=date(2024, 3, 2),
        )

        with self.assertRaises(SystemExit) as ctx:
            _call("verify_balance", BUSINESS, "2024-12-31")
        self.assertEqual(ctx.exception.code, 1)


class ReconcileBalancesCommandTests(TestCase):
    def setUp(self):
        initialize_chart_of_accounts(business_id=BUSINESS)
        self.customer = Customer.objects.create(business_id=BUSINESS, name="Ada")

    def test_clean_books_pass(self):
        out, _ = _call("reconcile_balances", BUSINESS)
        self.assertIn("All counters match", out)

    def test_drift_fails_then_fix_rewrites(self):
        Customer.objects.filter(pk=self.customer.pk).update(outstanding_balance=Decimal("42.00"))

        with self.assertRaises(SystemExit) as ctx:
            _call("reconcile_balances", BUSINESS)
        self.assertEqual(ctx.exception.code, 1)

        out, _ = _call("reconcile_balances", BUSINESS, "--fix")
        self.assertIn("FIXED", out)

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.outstanding_balance, Decimal("0.00"))
