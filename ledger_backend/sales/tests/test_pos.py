# sales/tests/test_pos.py

from datetime import date
from decimal import Decimal

from django.test import TestCase

from accounting.models.journal import JournalEntry
from accounting.services.chart_service import initialize_chart_of_accounts
from products.models import Product
from products.services.costing import produce
from sales.models import PosSale
from sales.services.pos_service import PosCheckoutError, PosVoidError, checkout_pos_sale, void_pos_sale

BUSINESS = "biz-pos"


class PosCheckoutTests(TestCase):
    def setUp(self):
        initialize_chart_of_accounts(business_id=BUSINESS)
        self.product = Product.objects.create(
            business_id=BUSINESS,
            sku="MUG-1",
            name="Mug",
            unit_price=Decimal("20.00"),
        )
        produce(
            business_id=BUSINESS,
            product=self.product,
            quantity=20,
            unit_cost="8.00",
            manufacturing_date=date(2024, 1, 1),
            reference_type="PURCHASE",
            reference_id="1",
        )

    def _checkout(self, payments):
        return checkout_pos_sale(
            business_id=BUSINESS,
            items=[{"product": self.product, "quantity": 3}],
            payments=payments,
            sale_date=date(2024, 4, 1),
        )

    def _stock(self):
        self.product.refresh_from_db()
        return self.product.stock

    def test_split_payment_checkout(self):
        sale = self._checkout([{"method": "cash", "amount": "40.00"}, {"method": "card", "amount": "20.00"}])

        self.assertEqual(sale.status, PosSale.STATUS_COMPLETED)
        self.assertTrue(sale.receipt_no.startswith("POS"))
        self.assertEqual(sale.total_amount, Decimal("60.00"))
        self.assertEqual(sale.cogs_amount, Decimal("24.00"))
        self.assertEqual(sale.payments.count(), 2)
        self.assertEqual(self._stock(), 17)

        je = JournalEntry.objects.get(reference_type="POS_SALE", reference_id=str(sale.id))
        lines = sorted((le.account.code, le.debit, le.credit) for le in je.ledger_entries.select_related("account"))
        self.assertEqual(
            lines,
            [
                ("1001", Decimal("40.00"), Decimal("0.00")),
                ("1002", Decimal("20.00"), Decimal("0.00")),
                ("1200", Decimal("0.00"), Decimal("24.00")),
                ("4000", Decimal("0.00"), Decimal("60.00")),
                ("5000", Decimal("24.00"), Decimal("0.00")),
            ],
        )

    def test_legs_must_cover_total(self):
        with self.assertRaises(PosCheckoutError):
            self._checkout([{"method": "cash", "amount": "59.99"}])

        self.assertFalse(PosSale.objects.exists())
        self.assertEqual(self._stock(), 20)

    def test_invalid_leg_method(self):
        with self.assertRaises(PosCheckoutError):
            self._checkout([{"method": "voucher", "amount": "60.00"}])

    def test_void_restores_stock_and_removes_journal(self):
        sale = self._checkout([{"method": "cash", "amount": "60.00"}])

        void_pos_sale(business_id=BUSINESS, sale_id=sale.id)
        sale.refresh_from_db()

        self.assertEqual(sale.status, PosSale.STATUS_VOIDED)
        self.assertIsNotNone(sale.voided_at)
        self.assertEqual(self._stock(), 20)
        self.assertFalse(JournalEntry.objects.filter(reference_type="POS_SALE").exists())

        with self.assertRaises(PosVoidError):
            void_pos_sale(business_id=BUSINESS, sale_id=sale.id)
