# products/tests/test_costing.py

from datetime import date
from decimal import Decimal

from django.test import TestCase

from products.models import Product, StockBatch, StockMovement, Warehouse
from products.services.costing import (
    CostingError,
    InsufficientStockError,
    LotAlreadyConsumedError,
    LotNotFoundError,
    consume,
    produce,
    restore_consumption,
    retire_produced_lots,
    stock_valuation,
)

BUSINESS = "biz-costing"


class CostingTestMixin:
    def setUp(self):
        self.product = Product.objects.create(
            business_id=BUSINESS,
            sku="WID-1",
            name="Widget",
            unit_price=Decimal("20.00"),
        )
        self.lot_a = produce(
            business_id=BUSINESS,
            product=self.product,
            quantity=10,
            unit_cost="8.00",
            manufacturing_date=date(2024, 1, 1),
            reference_type="PURCHASE",
            reference_id="1",
        )
        self.lot_b = produce(
            business_id=BUSINESS,
            product=self.product,
            quantity=10,
            unit_cost="10.00",
            manufacturing_date=date(2024, 2, 1),
            reference_type="PURCHASE",
            reference_id="2",
        )

    def _remaining(self):
        self.lot_a.refresh_from_db()
        self.lot_b.refresh_from_db()
        return self.lot_a.quantity_remaining, self.lot_b.quantity_remaining

    def _stock(self):
        self.product.refresh_from_db()
        return self.product.stock


class ConsumeTests(CostingTestMixin, TestCase):
    def test_fifo_walks_oldest_lot_first(self):
        result = consume(
            business_id=BUSINESS,
            product=self.product,
            quantity=15,
            reference_type="INVOICE",
            reference_id="9",
        )

        self.assertEqual(result.total_cost, Decimal("130.00"))
        self.assertEqual(result.unit_cost_realized, Decimal("8.6667"))
        self.assertEqual(
            [(d.batch_id, d.quantity) for d in result.lots_touched],
            [(str(self.lot_a.id), 10), (str(self.lot_b.id), 5)],
        )
        self.assertEqual(self._remaining(), (0, 5))
        self.assertEqual(self._stock(), 5)

        movements = StockMovement.objects.filter(reference_type="INVOICE", reference_id="9")
        self.assertEqual(movements.count(), 2)
        self.assertEqual(
            sorted(m.unit_cost_snapshot for m in movements),
            [Decimal("8.0000"), Decimal("10.0000")],
        )

    def test_explicit_lot_order_is_respected(self):
        result = consume(
            business_id=BUSINESS,
            product=self.product,
            quantity=12,
            lot_refs=[self.lot_b.id, self.lot_a.id],
            reference_type="INVOICE",
            reference_id="10",
        )

        self.assertEqual(result.total_cost, Decimal("116.00"))
        self.assertEqual(self._remaining(), (8, 0))

    def test_insufficient_stock_touches_nothing(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            consume(
                business_id=BUSINESS,
                product=self.product,
                quantity=21,
                reference_type="INVOICE",
                reference_id="11",
            )

        self.assertEqual(ctx.exception.code, "insufficient_stock")
        self.assertEqual((ctx.exception.requested, ctx.exception.available), (21, 20))
        self.assertEqual(self._remaining(), (10, 10))
        self.assertEqual(self._stock(), 20)
        self.assertFalse(StockMovement.objects.filter(reference_type="INVOICE").exists())

    def test_warehouse_scopes_fifo(self):
        store = Warehouse.objects.create(business_id=BUSINESS, code="STORE", name="Store")
        lot_c = produce(
            business_id=BUSINESS,
            product=self.product,
            quantity=4,
            unit_cost="12.00",
            warehouse=store,
            manufacturing_date=date(2023, 12, 1),
            reference_type="PURCHASE",
            reference_id="3",
        )

        result = consume(
            business_id=BUSINESS,
            product=self.product,
            quantity=4,
            warehouse=store,
            reference_type="INVOICE",
            reference_id="12",
        )

        self.assertEqual(result.total_cost, Decimal("48.00"))
        lot_c.refresh_from_db()
        self.assertEqual(lot_c.quantity_remaining, 0)
        self.assertEqual(self._remaining(), (10, 10))

    def test_unknown_lot_ref(self):
        with self.assertRaises(LotNotFoundError):
            consume(
                business_id=BUSINESS,
                product=self.product,
                quantity=1,
                lot_refs=["00000000-0000-0000-0000-000000000000"],
                reference_type="INVOICE",
                reference_id="13",
            )

    def test_malformed_lot_ref_is_a_lot_error(self):
        with self.assertRaises(LotNotFoundError):
            consume(
                business_id=BUSINESS,
                product=self.product,
                quantity=1,
                lot_refs=["not-a-uuid"],
                reference_type="INVOICE",
                reference_id="16",
            )

        self.assertEqual(self._remaining(), (10, 10))

    def test_explicit_lots_stay_inside_the_requested_warehouse(self):
        store = Warehouse.objects.create(business_id=BUSINESS, code="STORE", name="Store")

        with self.assertRaises(LotNotFoundError):
            consume(
                business_id=BUSINESS,
                product=self.product,
                quantity=1,
                warehouse=store,
                lot_refs=[self.lot_a.id],
                reference_type="INVOICE",
                reference_id="17",
            )

        self.assertEqual(self._remaining(), (10, 10))
        self.assertEqual(self._stock(), 20)

    def test_rejects_fractional_and_non_positive_quantities(self):
        for bad in (0, -3, Decimal("1.5"), "2.5", True):
            with self.assertRaises(CostingError):
                consume(
                    business_id=BUSINESS,
                    product=self.product,
                    quantity=bad,
                    reference_type="INVOICE",
                    reference_id="14",
                )

    def test_other_business_product_is_rejected(self):
        with self.assertRaises(CostingError):
            consume(
                business_id="someone-else",
                product=self.product,
                quantity=1,
                reference_type="INVOICE",
                reference_id="15",
            )


class ProduceTests(CostingTestMixin, TestCase):
    def test_invalid_lot_is_a_costing_error(self):
        with self.assertRaises(CostingError):
            produce(
                business_id=BUSINESS,
                product=self.product,
                quantity=5,
                unit_cost="4.00",
                manufacturing_date=date(2024, 6, 1),
                expiry_date=date(2024, 1, 1),
                reference_type="PURCHASE",
                reference_id="4",
            )

        self.assertFalse(StockBatch.objects.filter(source_reference_id="4").exists())
        self.assertEqual(self._stock(), 20)


class ReversalTests(CostingTestMixin, TestCase):
    def test_restore_puts_units_back_into_the_same_lots(self):
        consume(business_id=BUSINESS, product=self.product, quantity=15, reference_type="INVOICE", reference_id="20")

        restored = restore_consumption(business_id=BUSINESS, reference_type="INVOICE", reference_id="20")

        self.assertEqual(sum(d.quantity for d in restored), 15)
        self.assertEqual(self._remaining(), (10, 10))
        self.assertEqual(self._stock(), 20)

        # Second call is a no-op
        self.assertEqual(restore_consumption(business_id=BUSINESS, reference_type="INVOICE", reference_id="20"), [])
        self.assertEqual(self._remaining(), (10, 10))

    def test_restore_after_refifo_keeps_original_lot_costs(self):
        consume(business_id=BUSINESS, product=self.product, quantity=10, reference_type="INVOICE", reference_id="21")
        restore_consumption(business_id=BUSINESS, reference_type="INVOICE", reference_id="21")

        again = consume(business_id=BUSINESS, product=self.product, quantity=10, reference_type="INVOICE", reference_id="22")

        self.assertEqual(again.total_cost, Decimal("80.00"))

    def test_retire_untouched_lot(self):
        retired = retire_produced_lots(business_id=BUSINESS, reference_type="PURCHASE", reference_id="2")

        self.assertEqual([(d.batch_id, d.quantity) for d in retired], [(str(self.lot_b.id), 10)])
        self.assertEqual(self._remaining(), (10, 0))
        self.assertEqual(self._stock(), 10)
        # Lot stays as history
        self.assertTrue(StockBatch.objects.filter(pk=self.lot_b.pk).exists())

    def test_retire_refuses_consumed_lot(self):
        consume(business_id=BUSINESS, product=self.product, quantity=3, reference_type="INVOICE", reference_id="23")

        with self.assertRaises(LotAlreadyConsumedError):
            retire_produced_lots(business_id=BUSINESS, reference_type="PURCHASE", reference_id="1")

        self.assertEqual(self._remaining(), (7, 10))

    def test_retire_refuses_fully_consumed_lot(self):
        consume(business_id=BUSINESS, product=self.product, quantity=10, reference_type="INVOICE", reference_id="24")

        with self.assertRaises(LotAlreadyConsumedError):
            retire_produced_lots(business_id=BUSINESS, reference_type="PURCHASE", reference_id="1")


class ValuationTests(CostingTestMixin, TestCase):
    def test_valuation_uses_lot_costs(self):
        consume(business_id=BUSINESS, product=self.product, quantity=15, reference_type="INVOICE", reference_id="30")

        valuation = stock_valuation(business_id=BUSINESS)

        self.assertEqual(valuation["total_value"], Decimal("50.00"))
        self.assertEqual(valuation["products"][0]["quantity"], 5)
        self.assertEqual(valuation["products"][0]["sku"], "WID-1")

    def test_empty_business(self):
        self.assertEqual(stock_valuation(business_id="nobody")["total_value"], Decimal("0.00"))
