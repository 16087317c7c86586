# accounting/tests/test_expenses.py

from datetime import date
from decimal import Decimal

from django.test import TestCase

from accounting.models.expense import Expense
from accounting.models.journal import JournalEntry
from accounting.services.balance_service import get_account_balance
from accounting.services.chart_service import initialize_chart_of_accounts
from accounting.services.exceptions import ExpensePostingError
from accounting.services.expense_service import create_expense_and_post, delete_expense
from parties.models import Vendor

BUSINESS = "biz-expenses"


class ExpensePostingTests(TestCase):
    def setUp(self):
        initialize_chart_of_accounts(business_id=BUSINESS)
        self.vendor = Vendor.objects.create(business_id=BUSINESS, name="Landlord Ltd")

    def _lines(self, expense):
        je = JournalEntry.objects.get(business_id=BUSINESS, reference_type="EXPENSE", reference_id=str(expense.id))
        return sorted(
            (line.account.code, line.debit, line.credit)
            for line in je.ledger_entries.select_related("account")
        )

    def test_cash_expense_with_tax_posts_three_lines(self):
        expense = create_expense_and_post(
            business_id=BUSINESS,
            expense_account_code="5100",
            net_amount="100.00",
            tax_amount="18.00",
            expense_date=date(2024, 5, 1),
            narration="May rent",
        )

        self.assertEqual(expense.expense_number, "EXP-000001")
        self.assertEqual(expense.total_amount, Decimal("118.00"))
        self.assertEqual(
            self._lines(expense),
            [
                ("1001", Decimal("0.00"), Decimal("118.00")),
                ("1300", Decimal("18.00"), Decimal("0.00")),
                ("5100", Decimal("100.00"), Decimal("0.00")),
            ],
        )

    def test_zero_tax_posts_two_lines(self):
        expense = create_expense_and_post(
            business_id=BUSINESS,
            expense_account_code="5200",
            net_amount="40",
            payment_method="bank",
            expense_date=date(2024, 5, 2),
        )

        self.assertEqual(
            self._lines(expense),
            [
                ("1002", Decimal("0.00"), Decimal("40.00")),
                ("5200", Decimal("40.00"), Decimal("0.00")),
            ],
        )

    def test_numbers_are_sequential_per_business(self):
        first = create_expense_and_post(business_id=BUSINESS, expense_account_code="6000", net_amount="5")
        second = create_expense_and_post(business_id=BUSINESS, expense_account_code="6000", net_amount="6")

        self.assertEqual([first.expense_number, second.expense_number], ["EXP-000001", "EXP-000002"])

    def test_credit_expense_moves_vendor_payable(self):
        expense = create_expense_and_post(
            business_id=BUSINESS,
            expense_account_code="5100",
            net_amount="100.00",
            tax_amount="18.00",
            payment_method="credit",
            vendor=self.vendor,
            expense_date=date(2024, 5, 1),
        )

        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.outstanding_balance, Decimal("118.00"))

        je = JournalEntry.objects.get(reference_type="EXPENSE", reference_id=str(expense.id))
        self.assertEqual((je.party_type, je.party_id), ("vendor", str(self.vendor.id)))

        delete_expense(business_id=BUSINESS, expense_id=expense.id)

        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.outstanding_balance, Decimal("0.00"))

    def test_delete_removes_journal_and_record(self):
        expense = create_expense_and_post(
            business_id=BUSINESS,
            expense_account_code="5300",
            net_amount="250",
            expense_date=date(2024, 5, 3),
        )
        expense_id = expense.id

        result = delete_expense(business_id=BUSINESS, expense_id=expense_id)

        self.assertEqual(result["journals_removed"], 1)
        self.assertFalse(Expense.objects.filter(pk=expense_id).exists())
        self.assertFalse(JournalEntry.objects.filter(reference_type="EXPENSE", reference_id=str(expense_id)).exists())
        self.assertEqual(get_account_balance(business_id=BUSINESS, account_code="1001")["balance"], 0.0)

    def test_rejects_invalid_payloads(self):
        with self.assertRaises(ExpensePostingError):
            create_expense_and_post(business_id=BUSINESS, expense_account_code="5100", net_amount="0")

        with self.assertRaises(ExpensePostingError):
            create_expense_and_post(
                business_id=BUSINESS,
                expense_account_code="5100",
                net_amount="10",
                payment_method="credit",
            )

        # Not an expense account
        with self.assertRaises(ExpensePostingError):
            create_expense_and_post(business_id=BUSINESS, expense_account_code="4000", net_amount="10")

        self.assertFalse(Expense.objects.exists())
        self.assertFalse(JournalEntry.objects.exists())
