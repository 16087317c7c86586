# accounting/management/commands/verify_balance.py

from __future__ import annotations

from datetime import datetime

from django.core.management.base import BaseCommand

from accounting.services.balance_sheet_service import generate_balance_sheet
from accounting.services.exceptions import AccountingServiceError
from accounting.services.trial_balance_service import generate_trial_balance


def _parse_date(s: str | None):
    """
    Parse YYYY-MM-DD into a date, or None.
    """
    if not s:
        return None
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        return None


class Command(BaseCommand):
    help = "Verify that a business's ledger is balanced (trial balance, optionally balance sheet)."

    def add_arguments(self, parser):
        parser.add_argument("business_id", help="Business whose ledger is checked")
        parser.add_argument("as_of", help="Cut-off date YYYY-MM-DD")
        parser.add_argument(
            "--balance-sheet",
            action="store_true",
            help="Also check assets == liabilities + equity.",
        )

    def handle(self, *args, **options):
        business_id = options["business_id"]
        as_of = _parse_date(options.get("as_of"))

        if not as_of:
            self.stderr.write(self.style.ERROR("Invalid as_of date. Use YYYY-MM-DD"))
            return self._exit(True)

        self.stdout.write(self.style.MIGRATE_HEADING(f"Ledger verification: {business_id} as of {as_of}"))

        errors = 0

        try:
            tb = generate_trial_balance(business_id=business_id, as_of=as_of)
        except AccountingServiceError as exc:
            self.stderr.write(self.style.ERROR(f"[FAIL] {exc}"))
            return self._exit(True)

        totals = tb["totals"]
        line = (
            f"debits={totals['debit']:.2f} credits={totals['credit']:.2f} "
            f"discrepancy={totals['discrepancy']:.2f}"
        )
        if totals["balanced"]:
            self.stdout.write(self.style.SUCCESS(f"[OK] Trial balance balanced: {line}"))
        else:
            errors += 1
            self.stderr.write(self.style.ERROR(f"[FAIL] Trial balance NOT balanced: {line}"))

        if options.get("balance_sheet"):
            bs = generate_balance_sheet(business_id=business_id, as_of=as_of)
            bs_totals = bs["totals"]
            line = (
                f"assets={bs_totals['assets']:.2f} "
                f"liabilities+equity={bs_totals['liabilities_plus_equity']:.2f} "
                f"discrepancy={bs_totals['discrepancy']:.2f}"
            )
            if bs_totals["balanced"]:
                self.stdout.write(self.style.SUCCESS(f"[OK] Balance sheet balanced: {line}"))
            else:
                errors += 1
                self.stderr.write(self.style.ERROR(f"[FAIL] Balance sheet NOT balanced: {line}"))

        self.stdout.write("")
        if errors == 0:
            self.stdout.write(self.style.SUCCESS("✅ LEDGER BALANCED"))
        else:
            self.stderr.write(self.style.ERROR(f"❌ LEDGER CHECK FOUND ISSUES: {errors} problem(s)"))

        return self._exit(errors > 0)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None
