# products/services/stock_counter.py

"""
PRODUCT STOCK COUNTER

Product.stock is a cache of Σ StockBatch.quantity_remaining. It is changed
ONLY here, always inside the same transaction as the lot mutation, using
F() expressions on a locked row.

recompute_stock() rebuilds the cache from the lots (reconciliation). A move
that would take the counter below zero raises StockCounterDriftError and is
left for reconciliation to repair.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import F, Sum

from accounting.services.exceptions import AccountingServiceError
from products.models import Product, StockBatch

logger = logging.getLogger(__name__)


class StockCounterDriftError(AccountingServiceError):
    code = "stock_counter_drift"


@transaction.atomic
def adjust_stock(*, product, delta: int) -> None:
    delta = int(delta)
    if delta == 0:
        return

    product_id = getattr(product, "pk", product)
    locked = Product.objects.select_for_update().only("id", "stock").get(pk=product_id)
    if locked.stock + delta < 0:
        logger.error(
            "Product stock counter would go negative",
            extra={"product_id": str(product_id), "stock": locked.stock, "delta": delta},
        )
        raise StockCounterDriftError(
            f"Stock counter for product {product_id} is {locked.stock}, cannot apply {delta}; "
            "run reconcile_balances --fix"
        )

    Product.objects.filter(pk=product_id).update(stock=F("stock") + delta)


def computed_stock(*, product) -> int:
    product_id = getattr(product, "pk", product)
    return (
        StockBatch.objects.filter(product_id=product_id)
        .aggregate(total=Sum("quantity_remaining"))
        .get("total")
        or 0
    )


@transaction.atomic
def recompute_stock(*, product, fix: bool = False) -> dict:
    """
    Compare Product.stock with Σ lot quantity_remaining.

    Returns {"product_id", "stored", "computed", "drift"}; writes the computed
    value back when fix=True.
    """
    product_id = getattr(product, "pk", product)
    locked = Product.objects.select_for_update().only("id", "stock").get(pk=product_id)
    computed = computed_stock(product=product_id)
    drift = computed - locked.stock

    if drift and fix:
        Product.objects.filter(pk=product_id).update(stock=computed)

    return {
        "product_id": str(product_id),
        "stored": locked.stock,
        "computed": computed,
        "drift": drift,
    }
