"""
InvoiceItem model for the invoice engine.

Line items are written once per payload item, in payload order, and are
never modified afterwards.
"""

from __future__ import annotations
from typing import Optional, TYPE_CHECKING
from decimal import Decimal

from sqlalchemy import ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from .base import IntPK

if TYPE_CHECKING:
    from .product import Product
    from .invoice import Invoice

LINE_TYPES = ("product", "surcharge", "shipping")


class InvoiceItem(IntPK):
    """
    InvoiceItem model representing lines of purchase invoices.

    Attributes:
        id (int): Primary key
        invoice_id (int): Foreign key to invoice
        invoice (Invoice): Related invoice
        product_id (Optional[int]): Foreign key to product, null for shipping
        product (Optional[Product]): Related product
        line_no (int): 1-based position in the payload
        line_type (str): ``product``, ``surcharge`` or ``shipping``
        qty (Decimal): Quantity in ``uom``
        uom (str): Unit of measure as printed on the invoice
        unit_price_net (Decimal): Net price per ``uom``
        tax_rate (Optional[Decimal]): Tax rate in percent
        discount_abs (Decimal): Absolute discount on the line
    """
    __tablename__ = "purchase_invoice_items"

    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("purchase_invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True
    )
    line_no: Mapped[int] = mapped_column(Integer, nullable=False)
    line_type: Mapped[str] = mapped_column(String(16), nullable=False)
    qty: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    uom: Mapped[str] = mapped_column(String(16), nullable=False)
    unit_price_net: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    tax_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 4), nullable=True)
    discount_abs: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False, default=0)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")
    product: Mapped[Optional["Product"]] = relationship("Product")

    @validates('line_type')
    def validate_line_type(self, key: str, value: str) -> str:
        """Validate line type."""
        if value not in LINE_TYPES:
            raise ValueError(f"Line type must be one of {LINE_TYPES}, got {value!r}")
        return value

    @validates('qty')
    def validate_qty(self, key: str, value: Decimal) -> Decimal:
        """Validate quantity."""
        if value is None or value <= 0:
            raise ValueError("Quantity must be positive")
        return value

    @validates('uom')
    def validate_uom(self, key: str, value: str) -> str:
        """Validate unit of measurement."""
        if not value or not value.strip():
            raise ValueError("Unit cannot be empty")
        return value.strip()

    @property
    def net_amount(self) -> float:
        """Line net after the absolute discount."""
        return float(self.qty) * float(self.unit_price_net) - float(self.discount_abs or 0)

    def __str__(self) -> str:
        return f"{self.line_type} {self.qty} {self.uom} @ {self.unit_price_net}"
