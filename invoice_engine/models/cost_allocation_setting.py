"""
Supplier specific surcharge allocation policies.
"""

from __future__ import annotations
from typing import TYPE_CHECKING
from datetime import date

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from .base import IntPK

if TYPE_CHECKING:
    from .supplier import Supplier

ALLOCATION_POLICIES = ("none", "per_kg", "per_piece")


class CostAllocationSetting(IntPK):
    """
    Allocation policy of a supplier, valid from ``active_from`` on.

    Attributes:
        supplier_id (int): Foreign key to supplier
        active_from (date): First invoice date the policy applies to
        policy (str): ``none``, ``per_kg`` or ``per_piece``
    """
    __tablename__ = "settings_cost_allocation"
    __table_args__ = (
        Index("settings_cost_allocation_supplier_active_idx", "supplier_id", "active_from"),
    )

    supplier_id: Mapped[int] = mapped_column(ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False)
    active_from: Mapped[date] = mapped_column(Date, nullable=False)
    policy: Mapped[str] = mapped_column(String(16), nullable=False)

    supplier: Mapped["Supplier"] = relationship("Supplier", back_populates="allocation_settings")

    @validates('policy')
    def validate_policy(self, key: str, value: str) -> str:
        """Validate allocation policy."""
        if value not in ALLOCATION_POLICIES:
            raise ValueError(f"Policy must be one of {ALLOCATION_POLICIES}, got {value!r}")
        return value
