"""
======================================================
PATH: accounting/migrations/0001_initial.py
======================================================
MIGRATION: CREATE ChartOfAccounts, Account, JournalEntry, LedgerEntry,
Expense, PeriodClose

Database-level guarantees:
- Account code unique per chart; a role maps to at most one account per chart
- LedgerEntry amounts are non-negative with exactly one side set
- PeriodClose end_date >= start_date
"""

from __future__ import annotations

from decimal import Decimal

import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("parties", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ChartOfAccounts",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("business_id", models.CharField(db_index=True, max_length=64, unique=True)),
                ("name", models.CharField(default="Standard Chart", max_length=100)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Chart of Accounts",
                "verbose_name_plural": "Charts of Accounts",
                "ordering": ["business_id"],
            },
        ),
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=10)),
                ("name", models.CharField(max_length=150)),
                (
                    "account_type",
                    models.CharField(
                        choices=[
                            ("ASSET", "Asset"),
                            ("LIABILITY", "Liability"),
                            ("EQUITY", "Equity"),
                            ("INCOME", "Income"),
                            ("EXPENSE", "Expense"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "role",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("CASH", "Cash on Hand"),
                            ("BANK", "Bank Accounts"),
                            ("ACCOUNTS_RECEIVABLE", "Accounts Receivable"),
                            ("INVENTORY_ASSET", "Inventory Asset"),
                            ("INPUT_TAX_CREDIT", "Input Tax Credit"),
                            ("ACCOUNTS_PAYABLE", "Accounts Payable"),
                            ("SALES_TAX_PAYABLE", "Sales Tax Payable"),
                            ("OWNER_EQUITY", "Owner Equity"),
                            ("RETAINED_EARNINGS", "Retained Earnings"),
                            ("SALES_REVENUE", "Sales Revenue"),
                            ("SERVICE_REVENUE", "Service Revenue"),
                            ("OTHER_INCOME", "Other Income"),
                            ("COGS", "Cost of Goods Sold"),
                            ("MANUFACTURING_COST", "Manufacturing Cost"),
                            ("RENT_EXPENSE", "Rent Expense"),
                            ("UTILITIES_EXPENSE", "Utilities"),
                            ("SALARIES_EXPENSE", "Salaries"),
                            ("OPERATING_EXPENSE", "Operating Expenses"),
                        ],
                        default=None,
                        max_length=32,
                        null=True,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "chart",
                    models.ForeignKey(
                        to="accounting.chartofaccounts",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="accounts",
                    ),
                ),
            ],
            options={
                "verbose_name": "Account",
                "verbose_name_plural": "Accounts",
                "ordering": ["code"],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("business_id", models.CharField(db_index=True, max_length=64)),
                (
                    "entry_date",
                    models.DateField(
                        default=django.utils.timezone.localdate,
                        help_text="Accounting effective date",
                    ),
                ),
                ("description", models.TextField(help_text="Narrative description of the journal entry")),
                ("reference_type", models.CharField(blank=True, default="", max_length=32)),
                ("reference_id", models.CharField(blank=True, default="", max_length=64)),
                (
                    "party_type",
                    models.CharField(
                        blank=True,
                        choices=[("customer", "Customer"), ("vendor", "Vendor")],
                        default="",
                        max_length=16,
                    ),
                ),
                ("party_id", models.CharField(blank=True, default="", max_length=64)),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        help_text="Timestamp when the journal entry was created",
                    ),
                ),
            ],
            options={
                "verbose_name": "Journal Entry",
                "verbose_name_plural": "Journal Entries",
                "ordering": ["-entry_date", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("debit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=16)),
                ("credit", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=16)),
                ("transaction_date", models.DateField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "account",
                    models.ForeignKey(
                        to="accounting.account",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                    ),
                ),
                (
                    "journal_entry",
                    models.ForeignKey(
                        to="accounting.journalentry",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ledger Entry",
                "verbose_name_plural": "Ledger Entries",
                "ordering": ["transaction_date", "id"],
            },
        ),
        migrations.CreateModel(
            name="Expense",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("business_id", models.CharField(db_index=True, max_length=64)),
                ("expense_number", models.CharField(max_length=20)),
                ("expense_date", models.DateField(default=django.utils.timezone.localdate)),
                (
                    "net_amount",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                    ),
                ),
                ("tax_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[("cash", "Cash"), ("bank", "Bank"), ("credit", "Credit (Payables)")],
                        default="cash",
                        max_length=10,
                    ),
                ),
                ("narration", models.CharField(blank=True, default="", max_length=255)),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "expense_account",
                    models.ForeignKey(
                        to="accounting.account",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="expenses",
                    ),
                ),
                (
                    "vendor",
                    models.ForeignKey(
                        to="parties.vendor",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="expenses",
                    ),
                ),
            ],
            options={
                "verbose_name": "Expense",
                "verbose_name_plural": "Expenses",
                "ordering": ["-expense_date", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PeriodClose",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "chart",
                    models.ForeignKey(
                        to="accounting.chartofaccounts",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="period_closes",
                    ),
                ),
                (
                    "journal_entry",
                    models.ForeignKey(
                        to="accounting.journalentry",
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="period_closes",
                        help_text="The journal entry that performed the close (Income/Expense -> Retained Earnings).",
                    ),
                ),
            ],
            options={
                "verbose_name": "Period Close",
                "verbose_name_plural": "Period Closes",
                "ordering": ["-end_date", "-created_at"],
            },
        ),
        # Account
        migrations.AddIndex(
            model_name="account",
            index=models.Index(fields=["chart", "code"], name="accounting__chart_i_8cd17b_idx"),
        ),
        migrations.AddIndex(
            model_name="account",
            index=models.Index(fields=["chart", "account_type"], name="accounting__chart_i_1aaeb5_idx"),
        ),
        migrations.AddIndex(
            model_name="account",
            index=models.Index(fields=["chart", "role"], name="accounting__chart_i_d7b5ff_idx"),
        ),
        migrations.AddConstraint(
            model_name="account",
            constraint=models.UniqueConstraint(fields=["chart", "code"], name="uniq_account_chart_code"),
        ),
        migrations.AddConstraint(
            model_name="account",
            constraint=models.UniqueConstraint(
                fields=["chart", "role"],
                condition=models.Q(role__isnull=False),
                name="uniq_account_chart_role",
            ),
        ),
        migrations.AddConstraint(
            model_name="account",
            constraint=models.CheckConstraint(condition=~models.Q(code=""), name="chk_account_code_not_blank"),
        ),
        migrations.AddConstraint(
            model_name="account",
            constraint=models.CheckConstraint(condition=~models.Q(name=""), name="chk_account_name_not_blank"),
        ),
        # JournalEntry
        migrations.AddIndex(
            model_name="journalentry",
            index=models.Index(fields=["business_id", "entry_date"], name="accounting__busines_4eadb9_idx"),
        ),
        migrations.AddIndex(
            model_name="journalentry",
            index=models.Index(
                fields=["business_id", "reference_type", "reference_id"],
                name="accounting__busines_c79ca9_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="journalentry",
            index=models.Index(
                fields=["business_id", "party_type", "party_id"],
                name="accounting__busines_cc17df_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="journalentry",
            index=models.Index(fields=["created_at"], name="accounting__created_daff7c_idx"),
        ),
        # LedgerEntry
        migrations.AddIndex(
            model_name="ledgerentry",
            index=models.Index(fields=["account", "transaction_date"], name="accounting__account_e053b0_idx"),
        ),
        migrations.AddIndex(
            model_name="ledgerentry",
            index=models.Index(fields=["journal_entry"], name="accounting__journal_f8c821_idx"),
        ),
        migrations.AddIndex(
            model_name="ledgerentry",
            index=models.Index(fields=["transaction_date"], name="accounting__transac_52297b_idx"),
        ),
        migrations.AddConstraint(
            model_name="ledgerentry",
            constraint=models.CheckConstraint(
                condition=models.Q(debit__gte=0) & models.Q(credit__gte=0),
                name="chk_ledger_entry_non_negative",
            ),
        ),
        migrations.AddConstraint(
            model_name="ledgerentry",
            constraint=models.CheckConstraint(
                condition=(models.Q(debit__gt=0) & models.Q(credit=0)) | (models.Q(debit=0) & models.Q(credit__gt=0)),
                name="chk_ledger_entry_one_side",
            ),
        ),
        # Expense
        migrations.AddIndex(
            model_name="expense",
            index=models.Index(fields=["business_id", "expense_date"], name="accounting__busines_4b0b6e_idx"),
        ),
        migrations.AddIndex(
            model_name="expense",
            index=models.Index(fields=["created_at"], name="accounting__created_b3703d_idx"),
        ),
        migrations.AddConstraint(
            model_name="expense",
            constraint=models.UniqueConstraint(
                fields=["business_id", "expense_number"],
                name="uniq_expense_business_number",
            ),
        ),
        migrations.AddConstraint(
            model_name="expense",
            constraint=models.CheckConstraint(
                condition=models.Q(tax_amount__gte=0),
                name="chk_expense_tax_non_negative",
            ),
        ),
        # PeriodClose
        migrations.AddIndex(
            model_name="periodclose",
            index=models.Index(fields=["chart", "start_date", "end_date"], name="accounting__chart_i_11d911_idx"),
        ),
        migrations.AddIndex(
            model_name="periodclose",
            index=models.Index(fields=["end_date"], name="accounting__end_dat_ed219f_idx"),
        ),
        migrations.AddConstraint(
            model_name="periodclose",
            constraint=models.UniqueConstraint(
                fields=["chart", "start_date", "end_date"],
                name="uniq_period_close_chart_start_end",
            ),
        ),
        migrations.AddConstraint(
            model_name="periodclose",
            constraint=models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F("start_date")),
                name="chk_period_close_end_gte_start",
            ),
        ),
    ]
