from .bill_of_materials import BillOfMaterials, BillOfMaterialsLine
from .production_order import ProductionOrder

__all__ = [
    "BillOfMaterials",
    "BillOfMaterialsLine",
    "ProductionOrder",
]
