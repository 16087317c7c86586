# sales/tests/test_invoices.py

from datetime import date
from decimal import Decimal

from django.test import TestCase

from accounting.models.journal import JournalEntry
from accounting.services.chart_service import initialize_chart_of_accounts
from parties.models import Customer
from products.models import Product, StockBatch
from products.services.costing import InsufficientStockError, produce
from sales.models import Invoice
from sales.services.invoice_lifecycle import InvalidInvoiceTransitionError
from sales.services.invoice_service import InvoiceError, cancel_invoice, create_invoice, post_invoice

BUSINESS = "biz-invoices"


def journal_lines(reference_type, reference_id):
    je = JournalEntry.objects.get(reference_type=reference_type, reference_id=str(reference_id))
    return je, sorted(
        (line.account.code, line.debit, line.credit)
        for line in je.ledger_entries.select_related("account")
    )


class InvoiceTestMixin:
    def setUp(self):
        initialize_chart_of_accounts(business_id=BUSINESS)
        self.customer = Customer.objects.create(business_id=BUSINESS, name="Acme Stores")
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

    def _invoice(self, quantity=15, **kwargs):
        kwargs.setdefault("customer", self.customer)
        kwargs.setdefault("invoice_date", date(2024, 3, 1))
        return create_invoice(
            business_id=BUSINESS,
            items=[{"product": self.product, "quantity": quantity, "tax_percent": "10"}],
            **kwargs,
        )

    def _stock(self):
        self.product.refresh_from_db()
        return self.product.stock


class InvoiceCreateTests(InvoiceTestMixin, TestCase):
    def test_draft_has_server_totals_and_moves_nothing(self):
        invoice = self._invoice()

        self.assertEqual(invoice.invoice_number, "INV-000001")
        self.assertEqual(invoice.status, Invoice.STATUS_DRAFT)
        self.assertEqual(invoice.subtotal, Decimal("300.00"))
        self.assertEqual(invoice.tax_total, Decimal("30.00"))
        self.assertEqual(invoice.grand_total, Decimal("330.00"))
        self.assertEqual(self._stock(), 20)
        self.assertFalse(JournalEntry.objects.exists())

    def test_credit_invoice_needs_customer(self):
        with self.assertRaises(InvoiceError):
            self._invoice(customer=None)

    def test_zero_quantity_is_rejected(self):
        with self.assertRaises(InvoiceError):
            self._invoice(quantity=0)


class InvoicePostTests(InvoiceTestMixin, TestCase):
    def test_credit_post_books_revenue_tax_cogs_and_receivable(self):
        invoice = self._invoice()

        post_invoice(business_id=BUSINESS, invoice_id=invoice.id)
        invoice.refresh_from_db()

        self.assertEqual(invoice.status, Invoice.STATUS_PENDING)
        self.assertEqual(invoice.cogs_amount, Decimal("130.00"))
        self.assertEqual(invoice.items.get().unit_cost, Decimal("8.6667"))
        self.assertEqual(self._stock(), 5)

        je, lines = journal_lines("INVOICE", invoice.id)
        self.assertEqual(
            lines,
            [
                ("1100", Decimal("330.00"), Decimal("0.00")),
                ("1200", Decimal("0.00"), Decimal("130.00")),
                ("2100", Decimal("0.00"), Decimal("30.00")),
                ("4000", Decimal("0.00"), Decimal("300.00")),
                ("5000", Decimal("130.00"), Decimal("0.00")),
            ],
        )
        self.assertEqual((je.party_type, je.party_id), ("customer", str(self.customer.id)))

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.outstanding_balance, Decimal("330.00"))

    def test_paid_immediately_settles_into_cash(self):
        invoice = self._invoice(quantity=2, customer=None, payment_method="cash")

        post_invoice(business_id=BUSINESS, invoice_id=invoice.id, paid_immediately=True)
        invoice.refresh_from_db()

        self.assertEqual(invoice.status, Invoice.STATUS_PAID)
        self.assertEqual(invoice.amount_paid, Decimal("44.00"))

        je, lines = journal_lines("INVOICE", invoice.id)
        self.assertIn(("1001", Decimal("44.00"), Decimal("0.00")), lines)
        self.assertEqual(je.party_type, "")

    def test_explicit_lots_override_fifo(self):
        invoice = create_invoice(
            business_id=BUSINESS,
            customer=self.customer,
            invoice_date=date(2024, 3, 1),
            items=[{"product": self.product, "quantity": 4, "lot_refs": [str(self.lot_b.id)]}],
        )

        post_invoice(business_id=BUSINESS, invoice_id=invoice.id)
        invoice.refresh_from_db()

        self.assertEqual(invoice.cogs_amount, Decimal("40.00"))
        self.assertEqual(StockBatch.objects.get(pk=self.lot_b.pk).quantity_remaining, 6)

    def test_insufficient_stock_rolls_back_everything(self):
        invoice = self._invoice(quantity=25)

        with self.assertRaises(InsufficientStockError):
            post_invoice(business_id=BUSINESS, invoice_id=invoice.id)

        invoice.refresh_from_db()
        self.customer.refresh_from_db()
        self.assertEqual(invoice.status, Invoice.STATUS_DRAFT)
        self.assertEqual(self._stock(), 20)
        self.assertEqual(self.customer.outstanding_balance, Decimal("0.00"))
        self.assertFalse(JournalEntry.objects.exists())

    def test_posting_twice_is_rejected(self):
        invoice = self._invoice()
        post_invoice(business_id=BUSINESS, invoice_id=invoice.id)

        with self.assertRaises(InvoiceError):
            post_invoice(business_id=BUSINESS, invoice_id=invoice.id)

        self.assertEqual(JournalEntry.objects.filter(reference_type="INVOICE").count(), 1)


class InvoiceCancelTests(InvoiceTestMixin, TestCase):
    def test_cancel_posted_invoice_undoes_stock_ledger_and_receivable(self):
        invoice = self._invoice()
        post_invoice(business_id=BUSINESS, invoice_id=invoice.id)

        cancel_invoice(business_id=BUSINESS, invoice_id=invoice.id)
        invoice.refresh_from_db()
        self.customer.refresh_from_db()

        self.assertEqual(invoice.status, Invoice.STATUS_CANCELLED)
        self.assertEqual(self._stock(), 20)
        self.assertEqual(StockBatch.objects.get(pk=self.lot_a.pk).quantity_remaining, 10)
        self.assertEqual(self.customer.outstanding_balance, Decimal("0.00"))
        self.assertFalse(JournalEntry.objects.filter(reference_type="INVOICE").exists())

    def test_cancel_draft_touches_nothing(self):
        invoice = self._invoice()

        cancel_invoice(business_id=BUSINESS, invoice_id=invoice.id)
        invoice.refresh_from_db()

        self.assertEqual(invoice.status, Invoice.STATUS_CANCELLED)
        self.assertEqual(self._stock(), 20)

    def test_cancelled_is_terminal(self):
        invoice = self._invoice()
        cancel_invoice(business_id=BUSINESS, invoice_id=invoice.id)

        with self.assertRaises(InvalidInvoiceTransitionError):
            cancel_invoice(business_id=BUSINESS, invoice_id=invoice.id)

        with self.assertRaises(InvoiceError):
            post_invoice(business_id=BUSINESS, invoice_id=invoice.id)
