# accounting/management/commands/reconcile_balances.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from accounting.services.exceptions import AccountingServiceError
from parties.services.balances import recompute_from_ledger


class Command(BaseCommand):
    help = "Compare customer/vendor balances and product stock with the ledger and lots."

    def add_arguments(self, parser):
        parser.add_argument("business_id", help="Business to reconcile")
        parser.add_argument(
            "--fix",
            action="store_true",
            help="Overwrite drifted counters with the recomputed values.",
        )

    def handle(self, *args, **options):
        business_id = options["business_id"]
        fix = bool(options.get("fix"))

        self.stdout.write(self.style.MIGRATE_HEADING(f"Counter-balance reconciliation: {business_id}"))

        try:
            report = recompute_from_ledger(business_id, fix=fix)
        except AccountingServiceError as exc:
            self.stderr.write(self.style.ERROR(f"[FAIL] {exc}"))
            return self._exit(True)

        for label, key in (("Customer", "customers"), ("Vendor", "vendors")):
            for row in report[key]:
                self.stderr.write(
                    f"  {label} {row['id']} {row['name']}: stored={row['stored']} "
                    f"ledger={row['computed']} drift={row['drift']}"
                )

        for row in report["products"]:
            self.stderr.write(
                f"  Product {row['product_id']}: stored={row['stored']} "
                f"lots={row['computed']} drift={row['drift']}"
            )

        drift_count = report["drift_count"]
        if drift_count == 0:
            self.stdout.write(self.style.SUCCESS("[OK] All counters match the ledger"))
            return self._exit(False)

        if report["fixed"]:
            self.stdout.write(self.style.SUCCESS(f"[FIXED] {drift_count} drifted counter(s) rewritten"))
            return self._exit(False)

        self.stderr.write(self.style.ERROR(f"[FAIL] {drift_count} drifted counter(s); rerun with --fix"))
        return self._exit(True)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None
