# products/tests/test_stock_counter.py

from datetime import date
from decimal import Decimal

from django.test import TestCase

from products.models import Product
from products.services.costing import produce
from products.services.stock_counter import (
    StockCounterDriftError,
    adjust_stock,
    computed_stock,
    recompute_stock,
)

BUSINESS = "biz-counter"


class StockCounterTests(TestCase):
    def setUp(self):
        self.product = Product.objects.create(business_id=BUSINESS, sku="GAD-1", name="Gadget")
        produce(
            business_id=BUSINESS,
            product=self.product,
            quantity=7,
            unit_cost=Decimal("3.50"),
            manufacturing_date=date(2024, 1, 1),
            reference_type="PURCHASE",
            reference_id="1",
        )

    def test_counter_follows_lots(self):
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 7)
        self.assertEqual(computed_stock(product=self.product), 7)
        self.assertEqual(self.product.total_stock_db, 7)

    def test_recompute_reports_and_fixes_drift(self):
        Product.objects.filter(pk=self.product.pk).update(stock=2)

        report = recompute_stock(product=self.product)
        self.assertEqual((report["stored"], report["computed"], report["drift"]), (2, 7, 5))

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 2)

        recompute_stock(product=self.product, fix=True)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 7)

    def test_negative_counter_is_reported_not_rewritten(self):
        Product.objects.filter(pk=self.product.pk).update(stock=2)

        with self.assertRaises(StockCounterDriftError):
            adjust_stock(product=self.product, delta=-5)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 2)
        self.assertEqual(recompute_stock(product=self.product)["drift"], 5)
