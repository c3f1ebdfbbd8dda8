"""
Product model for the invoice engine.

This module defines the Product model. A product is identified by its SKU
and carries the base unit of measure used for cost allocation.
"""

from __future__ import annotations
from typing import Optional

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from .base import IntPK

BASE_UOMS = ("piece", "kg")


class Product(IntPK):
    """
    Product model representing products in the database.

    Attributes:
        id (int): Primary key
        sku (str): Stock keeping unit, unique
        name (str): Product name
        base_uom (str): ``piece`` or ``kg``
        pieces_per_transport_unit (Optional[int]): Pieces in one transport unit
        category (Optional[str]): Free-form category
        active (bool): Whether the product is still purchased
    """
    __tablename__ = "products"

    sku: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    base_uom: Mapped[str] = mapped_column(String(8), nullable=False, default="piece")
    pieces_per_transport_unit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @validates('sku')
    def validate_sku(self, key: str, value: str) -> str:
        """Validate product SKU."""
        if not value or not value.strip():
            raise ValueError("Product SKU cannot be empty")
        return value.strip()

    @validates('name')
    def validate_name(self, key: str, value: str) -> str:
        """Validate product name."""
        if not value or not value.strip():
            raise ValueError("Product name cannot be empty")
        return value.strip()

    @validates('base_uom')
    def validate_base_uom(self, key: str, value: str) -> str:
        """Validate base unit of measure."""
        if value not in BASE_UOMS:
            raise ValueError(f"Base unit must be one of {BASE_UOMS}, got {value!r}")
        if value == "kg" and self.pieces_per_transport_unit is not None:
            raise ValueError("Products measured in kg cannot have a piece conversion factor")
        return value

    @validates('pieces_per_transport_unit')
    def validate_pieces_per_transport_unit(self, key: str, value: Optional[int]) -> Optional[int]:
        """Validate the transport unit conversion factor."""
        if value is None:
            return None
        if value <= 0:
            raise ValueError("Pieces per transport unit must be positive")
        if self.base_uom == "kg":
            raise ValueError("Products measured in kg cannot have a piece conversion factor")
        return int(value)

    def __str__(self) -> str:
        return f"{self.name} ({self.sku})"
