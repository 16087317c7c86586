# accounting/tests/test_chart.py

from django.test import TestCase

from accounting.models.account import Account, AccountRole
from accounting.models.chart import ChartOfAccounts
from accounting.services.account_resolver import resolve_account, resolve_account_by_code
from accounting.services.chart_service import STANDARD_ACCOUNTS, initialize_chart_of_accounts
from accounting.services.exceptions import AccountNotFoundError


class ChartInitializationTests(TestCase):
    def test_first_call_creates_standard_accounts(self):
        result = initialize_chart_of_accounts(business_id="biz-a")

        self.assertTrue(result["created"])
        self.assertFalse(result["already_initialized"])
        self.assertEqual(result["accounts_created"], len(STANDARD_ACCOUNTS))
        self.assertEqual(Account.objects.filter(chart__business_id="biz-a").count(), len(STANDARD_ACCOUNTS))

    def test_second_call_is_a_no_op(self):
        initialize_chart_of_accounts(business_id="biz-a")
        result = initialize_chart_of_accounts(business_id="biz-a")

        self.assertFalse(result["created"])
        self.assertTrue(result["already_initialized"])
        self.assertEqual(result["accounts_created"], 0)
        self.assertEqual(ChartOfAccounts.objects.filter(business_id="biz-a").count(), 1)
        self.assertEqual(Account.objects.filter(chart__business_id="biz-a").count(), len(STANDARD_ACCOUNTS))

    def test_each_business_gets_its_own_chart(self):
        initialize_chart_of_accounts(business_id="biz-a")
        initialize_chart_of_accounts(business_id="biz-b")

        cash_a = resolve_account(business_id="biz-a", role=AccountRole.CASH)
        cash_b = resolve_account(business_id="biz-b", role=AccountRole.CASH)

        self.assertEqual(cash_a.code, cash_b.code)
        self.assertNotEqual(cash_a.pk, cash_b.pk)


class AccountResolverTests(TestCase):
    def setUp(self):
        initialize_chart_of_accounts(business_id="biz-a")

    def test_roles_resolve_to_default_codes(self):
        self.assertEqual(resolve_account(business_id="biz-a", role=AccountRole.CASH).code, "1001")
        self.assertEqual(resolve_account(business_id="biz-a", role="ACCOUNTS_PAYABLE").code, "2001")
        self.assertEqual(resolve_account(business_id="biz-a", role=AccountRole.COGS).code, "5000")

    def test_role_falls_back_to_default_code_when_unflagged(self):
        Account.objects.filter(chart__business_id="biz-a", code="1001").update(role=None)

        account = resolve_account(business_id="biz-a", role=AccountRole.CASH)
        self.assertEqual(account.code, "1001")

    def test_inactive_account_is_not_resolved(self):
        Account.objects.filter(chart__business_id="biz-a", code="1002").update(is_active=False)

        with self.assertRaises(AccountNotFoundError):
            resolve_account_by_code(business_id="biz-a", code="1002")
        with self.assertRaises(AccountNotFoundError):
            resolve_account(business_id="biz-a", role=AccountRole.BANK)

    def test_unknown_role_is_rejected(self):
        with self.assertRaises(AccountNotFoundError):
            resolve_account(business_id="biz-a", role="PETTY_CASH")

    def test_missing_chart_is_reported(self):
        with self.assertRaises(AccountNotFoundError):
            resolve_account(business_id="biz-unknown", role=AccountRole.CASH)
