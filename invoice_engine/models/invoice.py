"""
Invoice model for the invoice engine.

This module defines the purchase invoice header. Totals and the
allocation policy are filled in by finalization.
"""

from __future__ import annotations
from typing import Optional, List, TYPE_CHECKING
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from .base import IntPK

if TYPE_CHECKING:
    from .supplier import Supplier
    from .invoice_item import InvoiceItem


class Invoice(IntPK):
    """
    Invoice model representing purchase invoices in the database.

    Attributes:
        id (int): Primary key
        supplier_id (int): Foreign key to supplier
        supplier (Supplier): Related supplier
        invoice_no (str): Supplier's invoice number
        invoice_date (date): Invoice date
        currency (str): ISO currency code
        net_amount (Decimal): Net total, set on finalization
        tax_amount (Decimal): Tax total, set on finalization
        gross_amount (Decimal): Gross total, set on finalization
        allocation_policy (Optional[str]): Policy used on finalization
        items (List[InvoiceItem]): Line items in payload order
    """
    __tablename__ = "purchase_invoices"
    __table_args__ = (
        UniqueConstraint("supplier_id", "invoice_no", name="purchase_invoices_supplier_invoice_unique"),
    )

    supplier_id: Mapped[int] = mapped_column(ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False)
    invoice_no: Mapped[str] = mapped_column(String(64), nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    net_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    gross_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=0)
    allocation_policy: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    supplier: Mapped["Supplier"] = relationship("Supplier", back_populates="invoices")
    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.line_no",
    )

    @validates('invoice_no')
    def validate_invoice_no(self, key: str, value: str) -> str:
        """Validate invoice number."""
        if not value or not value.strip():
            raise ValueError("Invoice number cannot be empty")
        return value.strip()

    @validates('invoice_date')
    def validate_invoice_date(self, key: str, value: date) -> date:
        """Validate invoice date."""
        if not value:
            raise ValueError("Invoice date is required")
        if isinstance(value, datetime):
            return value.date()
        return value

    @validates('currency')
    def validate_currency(self, key: str, value: str) -> str:
        """Validate currency code."""
        if not value or len(value.strip()) != 3:
            raise ValueError("Currency must be a 3-letter code")
        return value.strip().upper()

    def __str__(self) -> str:
        return f"Invoice {self.invoice_no} of {self.invoice_date}"
