"""
PATH: products/models/__init__.py

Products models export surface.
"""

from .product import Product
from .stock_adjustment import StockAdjustment, StockTransfer
from .stock_batch import StockBatch
from .stock_movement import StockMovement
from .warehouse import Warehouse

__all__ = [
    "Product",
    "Warehouse",
    "StockBatch",
    "StockMovement",
    "StockAdjustment",
    "StockTransfer",
]
