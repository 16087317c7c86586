# sales/models/__init__.py

"""
SALES MODELS PACKAGE EXPORTS

Purpose:
- Central export surface for sales app models.
"""

from .invoice import Invoice, InvoiceItem
from .pos_sale import PosPayment, PosSale, PosSaleItem

__all__ = [
    "Invoice",
    "InvoiceItem",
    "PosSale",
    "PosSaleItem",
    "PosPayment",
]
