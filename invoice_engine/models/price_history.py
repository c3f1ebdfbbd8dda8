"""
Purchase price history for the invoice engine.

One row per finalized product line: the net price per base unit with and
without the allocated surcharge.
"""

from __future__ import annotations
from typing import Optional, TYPE_CHECKING
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import IntPK

if TYPE_CHECKING:
    from .product import Product


class PriceHistory(IntPK):
    """
    Landed purchase price of a product at an invoice date.

    Attributes:
        product_id (int): Foreign key to product
        date_effective (date): Invoice date of the source line
        uom (str): Base unit the prices refer to
        qty_in_base_units (Decimal): Quantity of the source line in base units
        base_price_per_unit_net (Decimal): Net price per base unit
        surcharge_per_unit_net (Decimal): Allocated surcharge per base unit
        price_per_base_unit_net (Decimal): Base price plus surcharge
        source_item_id (Optional[int]): Invoice line the row was derived from
    """
    __tablename__ = "purchase_price_history"
    __table_args__ = (
        Index("purchase_price_history_product_date_idx", "product_id", "date_effective"),
    )

    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    date_effective: Mapped[date] = mapped_column(Date, nullable=False)
    uom: Mapped[str] = mapped_column(String(8), nullable=False)
    qty_in_base_units: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    base_price_per_unit_net: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    surcharge_per_unit_net: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False, default=0)
    price_per_base_unit_net: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    source_item_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("purchase_invoice_items.id", ondelete="SET NULL"), nullable=True
    )

    product: Mapped["Product"] = relationship("Product")

    def __str__(self) -> str:
        return f"{self.date_effective}: {self.price_per_base_unit_net}/{self.uom}"
