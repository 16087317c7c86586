# PATH: accounting/services/account_resolver.py

"""
PATH: accounting/services/account_resolver.py

ACCOUNT RESOLVER (AUTHORITATIVE)

This module answers ONE question:
"Which account should be used for this purpose, in THIS business's chart?"

Postings name an AccountRole (or a stable code), never a database id.
Each business maps a role to exactly one account:
- an active account flagged with that role, else
- the active account carrying the role's default code.

Design goals:
- deterministic
- tenant-safe (every lookup filters by business_id)
- hard-fail on missing setup (so we don't post to wrong accounts)
"""

from __future__ import annotations

import logging

from accounting.models.account import Account, AccountRole
from accounting.models.chart import ChartOfAccounts
from accounting.services.exceptions import AccountNotFoundError

logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# DEFAULT CODES BY ROLE
# ------------------------------------------------------------

DEFAULT_ROLE_CODES: dict[str, str] = {
    AccountRole.CASH: "1001",
    AccountRole.BANK: "1002",
    AccountRole.ACCOUNTS_RECEIVABLE: "1100",
    AccountRole.INVENTORY_ASSET: "1200",
    AccountRole.INPUT_TAX_CREDIT: "1300",
    AccountRole.ACCOUNTS_PAYABLE: "2001",
    AccountRole.SALES_TAX_PAYABLE: "2100",
    AccountRole.OWNER_EQUITY: "3000",
    AccountRole.RETAINED_EARNINGS: "3100",
    AccountRole.SALES_REVENUE: "4000",
    AccountRole.SERVICE_REVENUE: "4100",
    AccountRole.OTHER_INCOME: "4900",
    AccountRole.COGS: "5000",
    AccountRole.MANUFACTURING_COST: "5001",
    AccountRole.RENT_EXPENSE: "5100",
    AccountRole.UTILITIES_EXPENSE: "5200",
    AccountRole.SALARIES_EXPENSE: "5300",
    AccountRole.OPERATING_EXPENSE: "6000",
}


def _norm_business_id(business_id) -> str:
    business_id = str(business_id or "").strip()
    if not business_id:
        raise AccountNotFoundError("business_id is required")
    return business_id


def _norm_role(role) -> str:
    value = str(getattr(role, "value", role) or "").strip().upper()
    if value not in AccountRole.values:
        raise AccountNotFoundError(f"Unknown account role '{role}'")
    return value


def get_chart(*, business_id) -> ChartOfAccounts:
    business_id = _norm_business_id(business_id)
    try:
        return ChartOfAccounts.objects.get(business_id=business_id)
    except ChartOfAccounts.DoesNotExist as exc:
        raise AccountNotFoundError(
            f"No Chart of Accounts for business_id={business_id}. Run initialize_chart first."
        ) from exc


def resolve_account_by_code(*, business_id, code: str) -> Account:
    """
    Active account with `code` in the business's chart.

    Raises AccountNotFoundError if the code is absent or the account is inactive.
    """
    business_id = _norm_business_id(business_id)
    code = str(code or "").strip()
    if not code:
        raise AccountNotFoundError("Account code is required")

    account = (
        Account.objects.select_related("chart")
        .filter(chart__business_id=business_id, code=code, is_active=True)
        .first()
    )
    if account is None:
        raise AccountNotFoundError(
            f"Account with code={code} not found (or inactive) for business_id={business_id}. "
            "Run initialize_chart (or add the account manually) and ensure is_active=True."
        )
    return account


def resolve_account(*, business_id, role) -> Account:
    """
    Per-business role -> account lookup.

    Prefers an active account explicitly flagged with the role; falls back to the
    role's default code. Raises AccountNotFoundError when neither exists.
    """
    business_id = _norm_business_id(business_id)
    role = _norm_role(role)

    flagged = (
        Account.objects.select_related("chart")
        .filter(chart__business_id=business_id, role=role, is_active=True)
        .first()
    )
    if flagged is not None:
        return flagged

    default_code = DEFAULT_ROLE_CODES.get(role)
    if not default_code:
        raise AccountNotFoundError(f"No default code for role {role}")

    try:
        return resolve_account_by_code(business_id=business_id, code=default_code)
    except AccountNotFoundError as exc:
        raise AccountNotFoundError(
            f"No account mapped to role {role} for business_id={business_id} "
            f"(default code {default_code} missing)."
        ) from exc

