# payments/tests/test_payments.py

from datetime import date
from decimal import Decimal

from django.test import TestCase

from accounting.models.journal import JournalEntry
from accounting.services.chart_service import initialize_chart_of_accounts
from parties.models import Customer, Vendor
from payments.models import Payment
from payments.services.payment_service import PaymentError, delete_payment, record_payment
from products.models import Product
from products.services.costing import produce
from purchases.models import PurchaseOrder
from purchases.services.receiving_service import create_purchase_order, receive_purchase_order
from sales.models import Invoice
from sales.services.invoice_service import InvoiceError, cancel_invoice, create_invoice, post_invoice

BUSINESS = "biz-payments"


class CustomerReceiptTests(TestCase):
    def setUp(self):
        initialize_chart_of_accounts(business_id=BUSINESS)
        self.customer = Customer.objects.create(business_id=BUSINESS, name="Acme Stores")
        self.product = Product.objects.create(
            business_id=BUSINESS,
            sku="WID-1",
            name="Widget",
            unit_price=Decimal("30.00"),
        )
        produce(
            business_id=BUSINESS,
            product=self.product,
            quantity=20,
            unit_cost="10.00",
            manufacturing_date=date(2024, 1, 1),
            reference_type="PURCHASE",
            reference_id="1",
        )
        invoice = create_invoice(
            business_id=BUSINESS,
            customer=self.customer,
            invoice_date=date(2024, 3, 1),
            items=[{"product": self.product, "quantity": 10}],
        )
        self.invoice = post_invoice(business_id=BUSINESS, invoice_id=invoice.id)

    def _receipt(self, amount, **kwargs):
        kwargs.setdefault("invoice", self.invoice)
        return record_payment(
            business_id=BUSINESS,
            direction="RECEIPT",
            amount=amount,
            payment_date=date(2024, 3, 10),
            **kwargs,
        )

    def _refresh(self):
        self.invoice.refresh_from_db()
        self.customer.refresh_from_db()

    def test_partial_then_full_receipt(self):
        first = self._receipt("100.00")
        self._refresh()

        self.assertEqual(first.payment_number, "PMT-000001")
        self.assertEqual(first.customer_id, self.customer.id)
        self.assertEqual(self.invoice.status, Invoice.STATUS_PARTIAL)
        self.assertEqual(self.invoice.amount_paid, Decimal("100.00"))
        self.assertEqual(self.customer.outstanding_balance, Decimal("200.00"))

        je = JournalEntry.objects.get(reference_type="PAYMENT", reference_id=str(first.id))
        lines = sorted((le.account.code, le.debit, le.credit) for le in je.ledger_entries.select_related("account"))
        self.assertEqual(
            lines,
            [
                ("1001", Decimal("100.00"), Decimal("0.00")),
                ("1100", Decimal("0.00"), Decimal("100.00")),
            ],
        )

        self._receipt("200.00", payment_method="bank")
        self._refresh()

        self.assertEqual(self.invoice.status, Invoice.STATUS_PAID)
        self.assertEqual(self.customer.outstanding_balance, Decimal("0.00"))

    def test_overpayment_is_rejected_atomically(self):
        with self.assertRaises(InvoiceError):
            self._receipt("300.01")

        self._refresh()
        self.assertFalse(Payment.objects.exists())
        self.assertFalse(JournalEntry.objects.filter(reference_type="PAYMENT").exists())
        self.assertEqual(self.invoice.status, Invoice.STATUS_PENDING)
        self.assertEqual(self.customer.outstanding_balance, Decimal("300.00"))

    def test_delete_receipt_restores_invoice_and_balance(self):
        self._receipt("100.00")
        second = self._receipt("200.00")

        result = delete_payment(business_id=BUSINESS, payment_id=second.id)
        self._refresh()

        self.assertEqual(result["journals_removed"], 1)
        self.assertEqual(self.invoice.status, Invoice.STATUS_PARTIAL)
        self.assertEqual(self.invoice.amount_paid, Decimal("100.00"))
        self.assertEqual(self.customer.outstanding_balance, Decimal("200.00"))
        self.assertFalse(Payment.objects.filter(pk=second.pk).exists())

    def test_invoice_with_payments_cannot_be_cancelled(self):
        receipt = self._receipt("50.00")
        self._refresh()
        self.assertEqual(self.invoice.status, Invoice.STATUS_PARTIAL)

        with self.assertRaisesMessage(InvoiceError, "delete them before cancelling"):
            cancel_invoice(business_id=BUSINESS, invoice_id=self.invoice.id)

        delete_payment(business_id=BUSINESS, payment_id=receipt.id)
        cancel_invoice(business_id=BUSINESS, invoice_id=self.invoice.id)
        self._refresh()

        self.assertEqual(self.invoice.status, Invoice.STATUS_CANCELLED)
        self.assertEqual(self.customer.outstanding_balance, Decimal("0.00"))

    def test_unlinked_receipt_on_account(self):
        self._receipt("40.00", invoice=None, customer=self.customer)
        self._refresh()

        self.assertEqual(self.customer.outstanding_balance, Decimal("260.00"))
        self.assertEqual(self.invoice.amount_paid, Decimal("0.00"))

    def test_direction_and_party_must_match(self):
        vendor = Vendor.objects.create(business_id=BUSINESS, name="Supplier")

        with self.assertRaises(PaymentError):
            self._receipt("10.00", invoice=None, vendor=vendor)
        with self.assertRaises(PaymentError):
            self._receipt("10.00", invoice=None)
        with self.assertRaises(PaymentError):
            self._receipt("0")


class VendorPaymentTests(TestCase):
    def setUp(self):
        initialize_chart_of_accounts(business_id=BUSINESS)
        self.vendor = Vendor.objects.create(business_id=BUSINESS, name="Bulk Supplies")
        product = Product.objects.create(business_id=BUSINESS, sku="BOLT-1", name="Bolt")
        self.order = create_purchase_order(
            business_id=BUSINESS,
            vendor=self.vendor,
            items=[{"product": product, "quantity": 100, "unit_cost": "50.00"}],
            order_date=date(2024, 2, 1),
        )
        receive_purchase_order(business_id=BUSINESS, order_id=self.order.id, received_date=date(2024, 2, 5))

    def test_full_payment_settles_order(self):
        payment = record_payment(
            business_id=BUSINESS,
            direction="PAYMENT",
            amount="5000.00",
            purchase_order=self.order,
            payment_method="bank",
            payment_date=date(2024, 2, 20),
        )
        self.order.refresh_from_db()
        self.vendor.refresh_from_db()

        self.assertEqual(payment.vendor_id, self.vendor.id)
        self.assertEqual(self.order.status, PurchaseOrder.STATUS_PAID)
        self.assertEqual(self.vendor.outstanding_balance, Decimal("0.00"))

        je = JournalEntry.objects.get(reference_type="PAYMENT", reference_id=str(payment.id))
        lines = sorted((le.account.code, le.debit, le.credit) for le in je.ledger_entries.select_related("account"))
        self.assertEqual(
            lines,
            [
                ("1002", Decimal("0.00"), Decimal("5000.00")),
                ("2001", Decimal("5000.00"), Decimal("0.00")),
            ],
        )

        delete_payment(business_id=BUSINESS, payment_id=payment.id)
        self.order.refresh_from_db()
        self.vendor.refresh_from_db()

        self.assertEqual(self.order.status, PurchaseOrder.STATUS_RECEIVED)
        self.assertEqual(self.vendor.outstanding_balance, Decimal("5000.00"))
