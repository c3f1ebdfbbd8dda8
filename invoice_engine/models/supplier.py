"""
Supplier model for the invoice engine.

Suppliers are identified by their exact name and are only ever created,
never updated, by an ingestion.
"""

from __future__ import annotations
from typing import List, TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from .base import IntPK

if TYPE_CHECKING:
    from .invoice import Invoice
    from .cost_allocation_setting import CostAllocationSetting


class Supplier(IntPK):
    """
    Supplier model representing suppliers in the database.

    Attributes:
        id (int): Primary key
        name (str): Supplier name, unique and case-sensitive
        invoices (List[Invoice]): Purchase invoices of this supplier
        allocation_settings (List[CostAllocationSetting]): Allocation policies
    """
    __tablename__ = "suppliers"

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    invoices: Mapped[List["Invoice"]] = relationship("Invoice", back_populates="supplier")
    allocation_settings: Mapped[List["CostAllocationSetting"]] = relationship(
        "CostAllocationSetting", back_populates="supplier", cascade="all, delete-orphan"
    )

    @validates('name')
    def validate_name(self, key: str, value: str) -> str:
        """Validate supplier name."""
        if not value or not value.strip():
            raise ValueError("Supplier name cannot be empty")
        return value.strip()

    def __str__(self) -> str:
        return self.name
