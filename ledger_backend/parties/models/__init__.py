from .customer import Customer
from .vendor import Vendor

__all__ = ["Customer", "Vendor"]
