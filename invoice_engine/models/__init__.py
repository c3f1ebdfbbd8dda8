"""
SQLAlchemy models of the invoice engine.

Importing this package registers every table on ``Base.metadata``.
"""

from .base import Base, IntPK
from .supplier import Supplier
from .product import Product, BASE_UOMS
from .invoice import Invoice
from .invoice_item import InvoiceItem, LINE_TYPES
from .price_history import PriceHistory
from .cost_allocation_setting import CostAllocationSetting, ALLOCATION_POLICIES

__all__ = [
    "Base",
    "IntPK",
    "Supplier",
    "Product",
    "Invoice",
    "InvoiceItem",
    "PriceHistory",
    "CostAllocationSetting",
    "BASE_UOMS",
    "LINE_TYPES",
    "ALLOCATION_POLICIES",
]
