# accounting/management/commands/initialize_chart.py

from django.core.management.base import BaseCommand

from accounting.services.chart_service import initialize_chart_of_accounts


class Command(BaseCommand):
    help = "Create the standard Chart of Accounts for a business (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("business_id", help="Business to initialize")
        parser.add_argument("--name", default=None, help="Chart name (defaults to the business id)")

    def handle(self, *args, **options):
        business_id = options["business_id"]
        self.stdout.write(f"Initializing Chart of Accounts for {business_id}...")

        result = initialize_chart_of_accounts(business_id=business_id, name=options.get("name"))

        if result["already_initialized"]:
            self.stdout.write(
                self.style.WARNING(f"Chart for {business_id} already initialized; nothing created.")
            )
            return

        self.stdout.write(
            self.style.SUCCESS(
                f"✅ Chart '{result['chart'].name}' ready: {result['accounts_created']} account(s) created."
            )
        )
