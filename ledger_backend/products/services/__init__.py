from .costing import (
    ConsumptionResult,
    InsufficientStockError,
    LotAlreadyConsumedError,
    LotDraw,
    consume,
    produce,
    restore_consumption,
    retire_produced_lots,
    stock_valuation,
)

__all__ = [
    "ConsumptionResult",
    "InsufficientStockError",
    "LotAlreadyConsumedError",
    "LotDraw",
    "consume",
    "produce",
    "restore_consumption",
    "retire_produced_lots",
    "stock_valuation",
]
