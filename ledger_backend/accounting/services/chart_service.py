# accounting/services/chart_service.py

"""
======================================================
PATH: accounting/services/chart_service.py
======================================================
CHART OF ACCOUNTS REGISTRY

initialize_chart_of_accounts(business_id=...) creates ONE chart per business
plus the standard account set.

Rules:
- Idempotent: a second call creates nothing and reports already_initialized
- Runs under a row lock on the chart so two concurrent initializations
  cannot both seed accounts
- Every standard account is flagged with its AccountRole
"""

from __future__ import annotations

import logging

from django.db import IntegrityError, transaction

from accounting.models.account import Account, AccountRole
from accounting.models.chart import ChartOfAccounts
from accounting.services.account_resolver import DEFAULT_ROLE_CODES
from accounting.services.exceptions import AccountNotFoundError

logger = logging.getLogger(__name__)

# (role, name, account_type)
STANDARD_ACCOUNTS = [
    (AccountRole.CASH, "Cash on Hand", Account.ASSET),
    (AccountRole.BANK, "Bank Accounts", Account.ASSET),
    (AccountRole.ACCOUNTS_RECEIVABLE, "Accounts Receivable", Account.ASSET),
    (AccountRole.INVENTORY_ASSET, "Inventory Asset", Account.ASSET),
    (AccountRole.INPUT_TAX_CREDIT, "Input Tax Credit", Account.ASSET),
    (AccountRole.ACCOUNTS_PAYABLE, "Accounts Payable", Account.LIABILITY),
    (AccountRole.SALES_TAX_PAYABLE, "Sales Tax Payable", Account.LIABILITY),
    (AccountRole.OWNER_EQUITY, "Owner Equity", Account.EQUITY),
    (AccountRole.RETAINED_EARNINGS, "Retained Earnings", Account.EQUITY),
    (AccountRole.SALES_REVENUE, "Sales Revenue", Account.INCOME),
    (AccountRole.SERVICE_REVENUE, "Service Revenue", Account.INCOME),
    (AccountRole.OTHER_INCOME, "Other Income", Account.INCOME),
    (AccountRole.COGS, "Cost of Goods Sold", Account.EXPENSE),
    (AccountRole.MANUFACTURING_COST, "Manufacturing Cost", Account.EXPENSE),
    (AccountRole.RENT_EXPENSE, "Rent Expense", Account.EXPENSE),
    (AccountRole.UTILITIES_EXPENSE, "Utilities", Account.EXPENSE),
    (AccountRole.SALARIES_EXPENSE, "Salaries", Account.EXPENSE),
    (AccountRole.OPERATING_EXPENSE, "Operating Expenses", Account.EXPENSE),
]


@transaction.atomic
def initialize_chart_of_accounts(*, business_id, name: str | None = None) -> dict:
    """
    Create the chart and the standard account set for a business, once.

    Returns:
        {
          "business_id": str,
          "chart": ChartOfAccounts,
          "created": bool,
          "already_initialized": bool,
          "accounts_created": int,
        }
    """
    business_id = str(business_id or "").strip()
    if not business_id:
        raise AccountNotFoundError("business_id is required")

    try:
        with transaction.atomic():
            chart, chart_created = ChartOfAccounts.objects.get_or_create(
                business_id=business_id,
                defaults={"name": (name or "Standard Chart").strip() or "Standard Chart"},
            )
    except IntegrityError:
        chart_created = False
        chart = ChartOfAccounts.objects.get(business_id=business_id)

    chart = ChartOfAccounts.objects.select_for_update().get(pk=chart.pk)

    if Account.objects.filter(chart=chart).exists():
        logger.info(
            "Chart of accounts already initialized",
            extra={"business_id": business_id, "chart_id": chart.id},
        )
        return {
            "business_id": business_id,
            "chart": chart,
            "created": False,
            "already_initialized": True,
            "accounts_created": 0,
        }

    accounts = []
    for role, account_name, account_type in STANDARD_ACCOUNTS:
        account = Account(
            chart=chart,
            code=DEFAULT_ROLE_CODES[role],
            name=account_name,
            account_type=account_type,
            role=role.value,
            is_active=True,
        )
        account.full_clean(validate_constraints=False)
        accounts.append(account)

    Account.objects.bulk_create(accounts)

    logger.info(
        "Chart of accounts initialized",
        extra={
            "business_id": business_id,
            "chart_id": chart.id,
            "chart_created": chart_created,
            "accounts_created": len(accounts),
        },
    )

    return {
        "business_id": business_id,
        "chart": chart,
        "created": True,
        "already_initialized": False,
        "accounts_created": len(accounts),
    }
