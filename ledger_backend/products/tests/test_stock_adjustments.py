# products/tests/test_stock_adjustments.py

from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from accounting.models.account import AccountRole
from accounting.models.journal import JournalEntry
from accounting.services.chart_service import initialize_chart_of_accounts
from products.models import Product, StockAdjustment, StockBatch, StockMovement, StockTransfer, Warehouse
from products.services.costing import InsufficientStockError, LotNotFoundError, produce, stock_valuation
from products.services.stock_adjustments import (
    StockAdjustmentError,
    StockTransferError,
    adjust_stock_lot,
    transfer_stock_lot,
)

BUSINESS = "biz-adjust"


class StockAdjustmentTestMixin:
    def setUp(self):
        initialize_chart_of_accounts(business_id=BUSINESS)
        self.main = Warehouse.objects.create(business_id=BUSINESS, code="MAIN", name="Main")
        self.annex = Warehouse.objects.create(business_id=BUSINESS, code="ANX", name="Annex")
        self.product = Product.objects.create(business_id=BUSINESS, sku="BOLT", name="Bolt")
        self.lot_a = produce(
            business_id=BUSINESS,
            product=self.product,
            quantity=10,
            unit_cost="2.00",
            warehouse=self.main,
            manufacturing_date=date(2024, 1, 1),
            expiry_date=date(2026, 1, 1),
            batch_number="LOT-A",
            reference_type="PURCHASE",
            reference_id="1",
        )
        self.lot_b = produce(
            business_id=BUSINESS,
            product=self.product,
            quantity=10,
            unit_cost="3.00",
            warehouse=self.main,
            manufacturing_date=date(2024, 2, 1),
            reference_type="PURCHASE",
            reference_id="2",
        )

    def _stock(self):
        self.product.refresh_from_db()
        return self.product.stock

    def _lines(self, reference_id):
        je = JournalEntry.objects.get(reference_type="ADJUSTMENT", reference_id=str(reference_id))
        return {
            line.account.role: (line.debit, line.credit)
            for line in je.ledger_entries.select_related("account")
        }


class AdjustStockLotTests(StockAdjustmentTestMixin, TestCase):
    def test_increase_adds_a_lot_and_books_a_gain(self):
        adjustment = adjust_stock_lot(
            business_id=BUSINESS,
            product=self.product,
            quantity_change=4,
            unit_cost="2.50",
            warehouse=self.main,
            adjustment_date=date(2024, 3, 1),
            reason="Found in back room",
        )

        self.assertEqual(adjustment.adjustment_number, "ADJ-000001")
        self.assertEqual(adjustment.amount, Decimal("10.00"))
        self.assertEqual(self._stock(), 24)

        lot = StockBatch.objects.get(source_reference_type="ADJUSTMENT", source_reference_id=str(adjustment.id))
        self.assertEqual((lot.quantity_remaining, lot.unit_cost), (4, Decimal("2.5000")))
        self.assertEqual(lot.warehouse, self.main)
        self.assertTrue(
            StockMovement.objects.filter(batch=lot, reason=StockMovement.Reason.ADJUSTMENT).exists()
        )

        self.assertEqual(
            self._lines(adjustment.id),
            {
                AccountRole.INVENTORY_ASSET: (Decimal("10.00"), Decimal("0.00")),
                AccountRole.OTHER_INCOME: (Decimal("0.00"), Decimal("10.00")),
            },
        )

    def test_increase_defaults_to_latest_lot_cost(self):
        adjustment = adjust_stock_lot(business_id=BUSINESS, product=self.product, quantity_change=2)

        self.assertEqual(adjustment.unit_cost, Decimal("3.0000"))
        self.assertEqual(adjustment.amount, Decimal("6.00"))

    def test_increase_without_any_cost_is_rejected(self):
        fresh = Product.objects.create(business_id=BUSINESS, sku="NEW", name="New item")

        with self.assertRaisesMessage(StockAdjustmentError, "unit_cost is required"):
            adjust_stock_lot(business_id=BUSINESS, product=fresh, quantity_change=1)

        self.assertFalse(StockAdjustment.objects.exists())

    def test_decrease_draws_fifo_and_books_shrinkage(self):
        adjustment = adjust_stock_lot(
            business_id=BUSINESS,
            product=self.product,
            quantity_change=-12,
            adjustment_date=date(2024, 3, 1),
            reason="Damaged",
        )

        # 10 @ 2.00 + 2 @ 3.00
        self.assertEqual(adjustment.amount, Decimal("26.00"))
        self.assertEqual(adjustment.unit_cost, Decimal("2.1667"))
        self.assertEqual(self._stock(), 8)

        self.lot_a.refresh_from_db()
        self.lot_b.refresh_from_db()
        self.assertEqual((self.lot_a.quantity_remaining, self.lot_b.quantity_remaining), (0, 8))

        self.assertEqual(
            self._lines(adjustment.id),
            {
                AccountRole.COGS: (Decimal("26.00"), Decimal("0.00")),
                AccountRole.INVENTORY_ASSET: (Decimal("0.00"), Decimal("26.00")),
            },
        )

    def test_decrease_from_named_lot(self):
        adjust_stock_lot(
            business_id=BUSINESS,
            product=self.product,
            quantity_change=-3,
            lot_refs=[self.lot_b.id],
        )

        self.lot_a.refresh_from_db()
        self.lot_b.refresh_from_db()
        self.assertEqual((self.lot_a.quantity_remaining, self.lot_b.quantity_remaining), (10, 7))

    def test_decrease_beyond_stock_rolls_back(self):
        with self.assertRaises(InsufficientStockError):
            adjust_stock_lot(business_id=BUSINESS, product=self.product, quantity_change=-21)

        self.assertEqual(self._stock(), 20)
        self.assertFalse(StockAdjustment.objects.exists())
        self.assertFalse(JournalEntry.objects.filter(reference_type="ADJUSTMENT").exists())

    def test_zero_and_fractional_changes_are_rejected(self):
        for bad in (0, "1.5", Decimal("2.5"), True, None):
            with self.subTest(quantity_change=bad):
                with self.assertRaises(StockAdjustmentError):
                    adjust_stock_lot(business_id=BUSINESS, product=self.product, quantity_change=bad)

    def test_zero_cost_adjustment_posts_no_journal(self):
        adjustment = adjust_stock_lot(
            business_id=BUSINESS,
            product=self.product,
            quantity_change=5,
            unit_cost="0",
        )

        self.assertEqual(adjustment.amount, Decimal("0.00"))
        self.assertEqual(self._stock(), 25)
        self.assertFalse(JournalEntry.objects.filter(reference_type="ADJUSTMENT").exists())

    def test_other_business_product_is_rejected(self):
        stranger = Product.objects.create(business_id="biz-other", sku="BOLT", name="Bolt")

        with self.assertRaisesMessage(StockAdjustmentError, "Product not found"):
            adjust_stock_lot(business_id=BUSINESS, product=stranger, quantity_change=1, unit_cost="1.00")

    def test_adjustments_are_immutable(self):
        adjustment = adjust_stock_lot(business_id=BUSINESS, product=self.product, quantity_change=-1)
        adjustment.reason = "edited"

        with self.assertRaises(ValidationError):
            adjustment.save()


class TransferStockLotTests(StockAdjustmentTestMixin, TestCase):
    def test_transfer_keeps_cost_age_and_expiry(self):
        valuation_before = stock_valuation(business_id=BUSINESS)

        transfer = transfer_stock_lot(
            business_id=BUSINESS,
            batch=self.lot_a,
            quantity=4,
            to_warehouse=self.annex,
            transfer_date=date(2024, 3, 1),
        )

        self.assertEqual(transfer.transfer_number, "TRF-000001")
        self.assertEqual(transfer.from_warehouse, self.main)

        moved = transfer.destination_batch
        self.assertEqual(moved.warehouse, self.annex)
        self.assertEqual(moved.quantity_remaining, 4)
        self.assertEqual(moved.unit_cost, self.lot_a.unit_cost)
        self.assertEqual(moved.manufacturing_date, date(2024, 1, 1))
        self.assertEqual(moved.expiry_date, date(2026, 1, 1))
        self.assertEqual(moved.batch_number, "LOT-A")

        self.lot_a.refresh_from_db()
        self.assertEqual(self.lot_a.quantity_remaining, 6)

        self.assertEqual(self._stock(), 20)
        self.assertEqual(stock_valuation(business_id=BUSINESS)["total_value"], valuation_before["total_value"])
        self.assertFalse(JournalEntry.objects.filter(reference_type="TRANSFER").exists())

        reasons = set(
            StockMovement.objects.filter(reference_type="TRANSFER", reference_id=str(transfer.id))
            .values_list("movement_type", "reason")
        )
        self.assertEqual(
            reasons,
            {
                (StockMovement.MovementType.OUT, StockMovement.Reason.TRANSFER),
                (StockMovement.MovementType.IN, StockMovement.Reason.TRANSFER),
            },
        )

    def test_transferred_lot_is_drawn_from_the_new_warehouse(self):
        transfer_stock_lot(business_id=BUSINESS, batch=self.lot_a, quantity=4, to_warehouse=self.annex)

        adjustment = adjust_stock_lot(
            business_id=BUSINESS,
            product=self.product,
            quantity_change=-4,
            warehouse=self.annex,
        )

        self.assertEqual(adjustment.amount, Decimal("8.00"))

    def test_transfer_more_than_lot_holds_rolls_back(self):
        with self.assertRaises(InsufficientStockError):
            transfer_stock_lot(business_id=BUSINESS, batch=self.lot_a, quantity=11, to_warehouse=self.annex)

        self.lot_a.refresh_from_db()
        self.assertEqual(self.lot_a.quantity_remaining, 10)
        self.assertFalse(StockTransfer.objects.exists())

    def test_transfer_to_same_warehouse_is_rejected(self):
        with self.assertRaisesMessage(StockTransferError, "already in that warehouse"):
            transfer_stock_lot(business_id=BUSINESS, batch=self.lot_a, quantity=1, to_warehouse=self.main)

    def test_transfer_of_unknown_lot_is_rejected(self):
        with self.assertRaises(LotNotFoundError):
            transfer_stock_lot(
                business_id="biz-other",
                batch=self.lot_a,
                quantity=1,
                to_warehouse=self.annex,
            )

    def test_transfer_needs_positive_quantity(self):
        with self.assertRaises(StockTransferError):
            transfer_stock_lot(business_id=BUSINESS, batch=self.lot_a, quantity=0, to_warehouse=self.annex)
