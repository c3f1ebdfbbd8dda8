"""
Surcharge allocation.

Spreads the net total of an invoice's surcharge lines over its product lines,
proportionally to their quantity in the chosen base unit. The result is a
surcharge per base unit that is added to each line's base price to get the
landed price.

Pure functions only: no I/O, the input is never mutated.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from invoice_engine.errors import AllocationError, ValidationError

BUCKET_BY_MODE: dict[str, Optional[str]] = {
    "per_kg": "kg",
    "per_piece": "piece",
    "none": None,
}

FALLBACKS = ("drop", "all_products", "error")


def bucket_unit(mode: str) -> Optional[str]:
    """Base unit a policy allocates over, ``None`` for ``none``."""
    try:
        return BUCKET_BY_MODE[mode]
    except KeyError:
        raise ValidationError(
            f"Unsupported allocation mode {mode!r}, expected one of {sorted(BUCKET_BY_MODE)}"
        ) from None


def allocate(
    items: Iterable[Mapping[str, Any]],
    total_surcharge_net: float,
    mode: str,
    fallback: str = "drop",
) -> list[dict[str, Any]]:
    """
    Compute ``surcharge_per_unit`` for every item.

    Args:
        items: Product lines with at least ``base_uom`` and ``qty_base``
        total_surcharge_net: Net sum of the surcharge lines
        mode: ``per_kg``, ``per_piece`` or ``none``
        fallback: What to do when no item is in the bucket unit:
            ``drop`` leaves the surcharge unallocated, ``all_products``
            spreads it over every item regardless of unit, ``error`` raises

    Returns:
        New dicts, in input order, with every original key plus
        ``surcharge_per_unit``

    Raises:
        ValidationError: Unknown mode or fallback
        AllocationError: Empty bucket with ``fallback="error"``
    """
    if fallback not in FALLBACKS:
        raise ValidationError(
            f"Unsupported empty-bucket fallback {fallback!r}, expected one of {FALLBACKS}"
        )

    bucket = bucket_unit(mode)
    items = [dict(it) for it in items]
    total = float(total_surcharge_net)

    if bucket is None or total == 0:
        return [{**it, "surcharge_per_unit": 0.0} for it in items]

    denom = sum(float(it["qty_base"]) for it in items if it["base_uom"] == bucket)

    if denom > 0:
        per_unit = total / denom
        return [
            {**it, "surcharge_per_unit": per_unit if it["base_uom"] == bucket else 0.0}
            for it in items
        ]

    # empty bucket
    if fallback == "error":
        raise AllocationError(
            f"Surcharge {total:.2f} cannot be allocated {mode}: no product line measured in {bucket}"
        )
    if fallback == "all_products":
        denom_all = sum(float(it["qty_base"]) for it in items)
        if denom_all > 0:
            per_unit = total / denom_all
            return [{**it, "surcharge_per_unit": per_unit} for it in items]

    return [{**it, "surcharge_per_unit": 0.0} for it in items]


def allocated_total(allocated: Iterable[Mapping[str, Any]]) -> float:
    """Sum of ``surcharge_per_unit * qty_base`` over allocated items."""
    return sum(float(it["surcharge_per_unit"]) * float(it["qty_base"]) for it in allocated)
