# purchases/tests/test_receiving.py

from datetime import date
from decimal import Decimal

from django.test import TestCase

from accounting.models.journal import JournalEntry
from accounting.services.chart_service import initialize_chart_of_accounts
from parties.models import Vendor
from products.models import Product, StockBatch
from products.services.costing import LotAlreadyConsumedError, consume
from purchases.models import PurchaseOrder
from purchases.services.receiving_service import (
    PurchaseReceivingError,
    cancel_purchase_order,
    create_purchase_order,
    receive_purchase_order,
)

BUSINESS = "biz-purchases"


class PurchaseReceivingTests(TestCase):
    def setUp(self):
        initialize_chart_of_accounts(business_id=BUSINESS)
        self.vendor = Vendor.objects.create(business_id=BUSINESS, name="Bulk Supplies")
        self.product = Product.objects.create(business_id=BUSINESS, sku="BOLT-1", name="Bolt")

    def _order(self, **item):
        item.setdefault("product", self.product)
        item.setdefault("quantity", 100)
        item.setdefault("unit_cost", "50.00")
        return create_purchase_order(
            business_id=BUSINESS,
            vendor=self.vendor,
            items=[item],
            order_date=date(2024, 2, 1),
        )

    def _receive(self, order):
        return receive_purchase_order(business_id=BUSINESS, order_id=order.id, received_date=date(2024, 2, 5))

    def _lines(self, order):
        je = JournalEntry.objects.get(reference_type="PURCHASE", reference_id=str(order.id))
        return je, sorted(
            (line.account.code, line.debit, line.credit)
            for line in je.ledger_entries.select_related("account")
        )

    def test_create_is_draft_and_numbered(self):
        order = self._order()

        self.assertEqual(order.po_number, "PO-000001")
        self.assertEqual(order.status, PurchaseOrder.STATUS_DRAFT)
        self.assertEqual(order.total_amount, Decimal("5000.00"))
        self.assertFalse(StockBatch.objects.exists())

    def test_receive_creates_lot_journal_and_payable(self):
        order = self._order()

        result = self._receive(order)

        self.assertEqual(result["status"], PurchaseOrder.STATUS_RECEIVED)
        self.assertEqual(len(result["lot_ids"]), 1)

        lot = StockBatch.objects.get(pk=result["lot_ids"][0])
        self.assertEqual((lot.quantity_remaining, lot.unit_cost), (100, Decimal("50.0000")))
        self.assertEqual(lot.manufacturing_date, date(2024, 2, 5))

        je, lines = self._lines(order)
        self.assertEqual(
            lines,
            [
                ("1200", Decimal("5000.00"), Decimal("0.00")),
                ("2001", Decimal("0.00"), Decimal("5000.00")),
            ],
        )
        self.assertEqual((je.party_type, je.party_id), ("vendor", str(self.vendor.id)))

        self.vendor.refresh_from_db()
        self.product.refresh_from_db()
        self.assertEqual(self.vendor.outstanding_balance, Decimal("5000.00"))
        self.assertEqual(self.product.stock, 100)

    def test_input_tax_is_split_out(self):
        order = self._order(quantity=10, unit_cost="12.50", tax_percent="5")

        self._receive(order)

        _, lines = self._lines(order)
        self.assertEqual(
            lines,
            [
                ("1200", Decimal("125.00"), Decimal("0.00")),
                ("1300", Decimal("6.25"), Decimal("0.00")),
                ("2001", Decimal("0.00"), Decimal("131.25")),
            ],
        )

    def test_receiving_twice_is_rejected(self):
        order = self._order()
        self._receive(order)

        with self.assertRaises(PurchaseReceivingError):
            self._receive(order)

        self.assertEqual(StockBatch.objects.count(), 1)
        self.assertEqual(JournalEntry.objects.filter(reference_type="PURCHASE").count(), 1)

    def test_cancel_received_order(self):
        order = self._order()
        self._receive(order)

        cancel_purchase_order(business_id=BUSINESS, order_id=order.id)
        order.refresh_from_db()
        self.vendor.refresh_from_db()
        self.product.refresh_from_db()

        self.assertEqual(order.status, PurchaseOrder.STATUS_CANCELLED)
        self.assertEqual(self.vendor.outstanding_balance, Decimal("0.00"))
        self.assertEqual(self.product.stock, 0)
        self.assertFalse(JournalEntry.objects.filter(reference_type="PURCHASE").exists())

    def test_cancel_refused_once_stock_was_used(self):
        order = self._order()
        self._receive(order)
        consume(business_id=BUSINESS, product=self.product, quantity=1, reference_type="INVOICE", reference_id="1")

        with self.assertRaises(LotAlreadyConsumedError):
            cancel_purchase_order(business_id=BUSINESS, order_id=order.id)

        order.refresh_from_db()
        self.vendor.refresh_from_db()
        self.assertEqual(order.status, PurchaseOrder.STATUS_RECEIVED)
        self.assertEqual(self.vendor.outstanding_balance, Decimal("5000.00"))
        self.assertTrue(JournalEntry.objects.filter(reference_type="PURCHASE").exists())

    def test_lot_rejected_on_receipt_rolls_back(self):
        order = self._order(expiry_date=date(2024, 1, 1))

        with self.assertRaises(PurchaseReceivingError):
            self._receive(order)

        order.refresh_from_db()
        self.vendor.refresh_from_db()
        self.assertEqual(order.status, PurchaseOrder.STATUS_DRAFT)
        self.assertEqual(self.vendor.outstanding_balance, Decimal("0.00"))
        self.assertFalse(StockBatch.objects.exists())
        self.assertFalse(JournalEntry.objects.filter(reference_type="PURCHASE").exists())

    def test_invalid_items(self):
        with self.assertRaises(PurchaseReceivingError):
            self._order(quantity="5")
        with self.assertRaises(PurchaseReceivingError):
            self._order(unit_cost="-1")
        with self.assertRaises(PurchaseReceivingError):
            create_purchase_order(business_id=BUSINESS, vendor=self.vendor, items=[])
