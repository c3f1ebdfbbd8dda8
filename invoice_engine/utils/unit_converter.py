"""
Unit conversion module for invoice ingestion.

This module reduces an invoice unit of measure and quantity to one of the two
base units used for cost allocation: ``piece`` or ``kg``. Supplier invoices
print units in many spellings (``KG``, ``Kilo``, ``TU``, ``STUECK``...); the
aliases below fold them into a canonical code first.

Unknown codes are treated as pieces. That is a documented heuristic, not an
error: the normalizer never raises.

Example:
    >>> from invoice_engine.utils.unit_converter import normalize
    >>> normalize("TU", 2, 100)
    NormalizedQuantity(base_uom='piece', qty_base=200.0)
    >>> normalize("kg", 12.5, None)
    NormalizedQuantity(base_uom='kg', qty_base=12.5)
"""

from __future__ import annotations

from typing import Dict, NamedTuple, Optional

TRANSPORT_UNIT = "TU"
KILOGRAM = "KG"
PIECE = "STUECK"

BASE_PIECE = "piece"
BASE_KG = "kg"

# Unit normalization dictionary (keys are upper-case)
UNIT_ALIASES: Dict[str, str] = {
    # Transport units
    "TU": TRANSPORT_UNIT, "TE": TRANSPORT_UNIT, "TRANSPORTEINHEIT": TRANSPORT_UNIT,

    # Weight
    "KG": KILOGRAM, "KGS": KILOGRAM, "KILO": KILOGRAM, "KILOGRAM": KILOGRAM,
    "KILOGRAMM": KILOGRAM,

    # Countable units
    "STUECK": PIECE, "STÜCK": PIECE, "STK": PIECE, "ST": PIECE, "STCK": PIECE,
    "STUEK": PIECE, "PCS": PIECE, "PC": PIECE, "PIECE": PIECE, "PIECES": PIECE,
    "EA": PIECE,
}


class NormalizedQuantity(NamedTuple):
    base_uom: str
    qty_base: float


def canonical_uom(uom: Optional[str]) -> str:
    """
    Fold an invoice unit into its canonical code.

    Unknown units are returned upper-cased and stripped.

    Example:
        >>> canonical_uom(" kilo ")
        'KG'
        >>> canonical_uom("Karton")
        'KARTON'
    """
    if not uom:
        return ""
    key = uom.strip().upper()
    return UNIT_ALIASES.get(key, key)


def is_transport_unit(uom: Optional[str]) -> bool:
    return canonical_uom(uom) == TRANSPORT_UNIT


def is_kilogram(uom: Optional[str]) -> bool:
    return canonical_uom(uom) == KILOGRAM


def normalize(
    uom: Optional[str],
    qty: float,
    pieces_per_transport_unit: Optional[float] = None,
) -> NormalizedQuantity:
    """
    Convert an invoice quantity into base units.

    Args:
        uom: Unit as printed on the invoice (case-insensitive)
        qty: Quantity in ``uom``
        pieces_per_transport_unit: Pieces in one transport unit, if known

    Returns:
        NormalizedQuantity with ``base_uom`` in {"piece", "kg"}
    """
    qty = float(qty)
    code = canonical_uom(uom)

    if code == TRANSPORT_UNIT and pieces_per_transport_unit:
        return NormalizedQuantity(BASE_PIECE, qty * float(pieces_per_transport_unit))

    if code == KILOGRAM:
        return NormalizedQuantity(BASE_KG, qty)

    return NormalizedQuantity(BASE_PIECE, qty)
