"""Tests for invoice_engine.utils.unit_converter."""

import pytest

from invoice_engine.utils.unit_converter import (
    NormalizedQuantity,
    canonical_uom,
    is_kilogram,
    is_transport_unit,
    normalize,
)


def test_transport_unit_with_factor_converts_to_pieces():
    """TU with a known factor becomes pieces."""
    assert normalize("TU", 3, 100) == NormalizedQuantity("piece", 300.0)


def test_transport_unit_is_case_insensitive():
    assert normalize("tu", 2, 24) == NormalizedQuantity("piece", 48.0)
    assert normalize(" Tu ", 2, 24).qty_base == 48.0


def test_transport_unit_without_factor_falls_back_to_pieces():
    """Without a factor the quantity is taken as pieces unchanged."""
    assert normalize("TU", 5, None) == NormalizedQuantity("piece", 5.0)


@pytest.mark.parametrize("uom", ["KG", "kg", "Kilo", "kilogramm"])
def test_kilogram_codes(uom):
    assert normalize(uom, 12.5, None) == NormalizedQuantity("kg", 12.5)


def test_kilogram_ignores_piece_factor():
    assert normalize("KG", 4, 100) == NormalizedQuantity("kg", 4.0)


@pytest.mark.parametrize("uom", ["STUECK", "Stk", "pcs", "KARTON", "", None])
def test_other_codes_default_to_pieces(uom):
    """Unknown and piece codes degrade to pieces without failing."""
    assert normalize(uom, 7, 100) == NormalizedQuantity("piece", 7.0)


def test_canonical_uom():
    assert canonical_uom(" kilo ") == "KG"
    assert canonical_uom("te") == "TU"
    assert canonical_uom("St") == "STUECK"
    assert canonical_uom("Eimer") == "EIMER"
    assert canonical_uom(None) == ""


def test_unit_predicates():
    assert is_transport_unit("tu")
    assert not is_transport_unit("KG")
    assert is_kilogram("Kilogram")
    assert not is_kilogram("STUECK")
