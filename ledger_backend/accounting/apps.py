# accounting/apps.py

"""
ACCOUNTING APP CONFIG

Double-entry ledger:
- Chart of accounts registry (per business)
- Journal poster + reversal handler
- Financial statements (trial balance, P&L, balance sheet)
"""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Accounting"
