# parties/tests/test_balances.py

from datetime import date
from decimal import Decimal

from django.test import TestCase

from accounting.models.account import AccountRole
from accounting.models.journal import JournalEntry
from accounting.services.chart_service import initialize_chart_of_accounts
from accounting.services.journal_entry_service import post_journal_entry
from accounting.services.reversal_service import reverse_journal_entries
from parties.models import Customer, Vendor
from parties.services.balances import (
    PartyNotFoundError,
    adjust_customer_balance,
    adjust_vendor_balance,
    recompute_from_ledger,
    undo_reversed_balances,
)

BUSINESS = "biz-parties"


class CounterBalanceTests(TestCase):
    def setUp(self):
        initialize_chart_of_accounts(business_id=BUSINESS)
        self.customer = Customer.objects.create(business_id=BUSINESS, name="Acme Stores")
        self.vendor = Vendor.objects.create(business_id=BUSINESS, name="Bulk Supplies")

        post_journal_entry(
            business_id=BUSINESS,
            entry_date=date(2024, 3, 1),
            description="Credit sale",
            reference_type="MANUAL",
            reference_id="sale-1",
            lines=[
                {"role": AccountRole.ACCOUNTS_RECEIVABLE, "debit": "250.00", "credit": "0"},
                {"role": AccountRole.SALES_REVENUE, "debit": "0", "credit": "250.00"},
            ],
            party_type=JournalEntry.PARTY_CUSTOMER,
            party_id=self.customer.id,
        )
        adjust_customer_balance(business_id=BUSINESS, customer=self.customer, delta="250.00")

        post_journal_entry(
            business_id=BUSINESS,
            entry_date=date(2024, 3, 2),
            description="Stock on credit",
            reference_type="MANUAL",
            reference_id="buy-1",
            lines=[
                {"role": AccountRole.INVENTORY_ASSET, "debit": "90.00", "credit": "0"},
                {"role": AccountRole.ACCOUNTS_PAYABLE, "debit": "0", "credit": "90.00"},
            ],
            party_type=JournalEntry.PARTY_VENDOR,
            party_id=self.vendor.id,
        )
        adjust_vendor_balance(business_id=BUSINESS, vendor=self.vendor, delta="90.00")

    def _refresh(self):
        self.customer.refresh_from_db()
        self.vendor.refresh_from_db()

    def test_counters_match_ledger(self):
        report = recompute_from_ledger(BUSINESS)

        self.assertEqual(report["drift_count"], 0)
        self.assertFalse(report["fixed"])

    def test_drift_is_reported_then_fixed(self):
        Customer.objects.filter(pk=self.customer.pk).update(outstanding_balance=Decimal("10.00"))
        Vendor.objects.filter(pk=self.vendor.pk).update(outstanding_balance=Decimal("0.00"))

        report = recompute_from_ledger(BUSINESS)
        self.assertEqual(report["drift_count"], 2)
        self.assertEqual(report["customers"][0]["computed"], Decimal("250.00"))
        self.assertEqual(report["customers"][0]["drift"], Decimal("240.00"))
        self.assertEqual(report["vendors"][0]["computed"], Decimal("90.00"))

        self._refresh()
        self.assertEqual(self.customer.outstanding_balance, Decimal("10.00"))

        report = recompute_from_ledger(BUSINESS, fix=True)
        self.assertTrue(report["fixed"])

        self._refresh()
        self.assertEqual(self.customer.outstanding_balance, Decimal("250.00"))
        self.assertEqual(self.vendor.outstanding_balance, Decimal("90.00"))

    def test_undo_reversed_balances(self):
        reversal = reverse_journal_entries(business_id=BUSINESS, reference_type="MANUAL", reference_id="sale-1")

        undo_reversed_balances(business_id=BUSINESS, reversal=reversal)

        self._refresh()
        self.assertEqual(self.customer.outstanding_balance, Decimal("0.00"))
        self.assertEqual(self.vendor.outstanding_balance, Decimal("90.00"))
        self.assertEqual(recompute_from_ledger(BUSINESS)["drift_count"], 0)

    def test_undo_nets_each_party_separately(self):
        other = Customer.objects.create(business_id=BUSINESS, name="Corner Shop")
        for customer, amount in ((self.customer, "100.00"), (other, "40.00")):
            post_journal_entry(
                business_id=BUSINESS,
                entry_date=date(2024, 3, 5),
                description=f"Shared sale for {customer.name}",
                reference_type="MANUAL",
                reference_id="shared-1",
                lines=[
                    {"role": AccountRole.ACCOUNTS_RECEIVABLE, "debit": amount, "credit": "0"},
                    {"role": AccountRole.SALES_REVENUE, "debit": "0", "credit": amount},
                ],
                party_type=JournalEntry.PARTY_CUSTOMER,
                party_id=customer.id,
            )
            adjust_customer_balance(business_id=BUSINESS, customer=customer, delta=amount)

        reversal = reverse_journal_entries(business_id=BUSINESS, reference_type="MANUAL", reference_id="shared-1")
        undo_reversed_balances(business_id=BUSINESS, reversal=reversal)

        self._refresh()
        other.refresh_from_db()
        self.assertEqual(reversal.journals_removed, 2)
        self.assertEqual(self.customer.outstanding_balance, Decimal("250.00"))
        self.assertEqual(other.outstanding_balance, Decimal("0.00"))
        self.assertEqual(recompute_from_ledger(BUSINESS)["drift_count"], 0)

    def test_unknown_party(self):
        with self.assertRaises(PartyNotFoundError):
            adjust_customer_balance(business_id="another-business", customer=self.customer, delta="1")
