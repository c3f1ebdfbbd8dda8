"""Tests for payload validation."""

from datetime import date

import pytest

from invoice_engine.errors import ValidationError
from invoice_engine.schemas import ImportPayload, parse_payload
from tests.test_utils import make_item, make_payload


def test_parse_minimal_payload():
    payload = parse_payload(make_payload())

    assert payload.supplier == "Beyers Kaffee GmbH"
    assert payload.invoice_date == date(2024, 10, 24)
    assert payload.currency is None
    assert payload.options.allocate_surcharges is None
    assert payload.options.auto_create_products is None
    assert payload.items[0].discount_abs == 0.0
    assert payload.items[0].tax_rate_percent is None


def test_strings_are_normalized():
    payload = parse_payload(make_payload(
        supplier="  Beyers Kaffee GmbH ",
        currency="eur",
        items=[make_item(sku="  ", uom=" KG ", product_name="")],
    ))

    assert payload.supplier == "Beyers Kaffee GmbH"
    assert payload.currency == "EUR"
    assert payload.items[0].product_sku is None
    assert payload.items[0].product_name is None
    assert payload.items[0].uom == "KG"


def test_options_aliases():
    by_alias = parse_payload(make_payload(options={"autoCreateProducts": True, "allocate_surcharges": "per_piece"}))
    by_name = parse_payload(make_payload(options={"auto_create_products": True}))
    empty = parse_payload(make_payload(options=None))

    assert by_alias.options.auto_create_products is True
    assert by_alias.options.allocate_surcharges == "per_piece"
    assert by_name.options.auto_create_products is True
    assert empty.options.auto_create_products is None


def test_validated_payload_passes_through():
    payload = parse_payload(make_payload())

    assert parse_payload(payload) is payload
    assert isinstance(payload, ImportPayload)


def test_errors_are_collected_into_one_message():
    with pytest.raises(ValidationError) as exc_info:
        parse_payload(make_payload(supplier="", items=[make_item(qty=0, line_type="rebate")]))

    message = exc_info.value.message
    assert message.startswith("Invalid invoice payload: ")
    assert "supplier" in message
    assert "items.0.qty" in message
    assert "items.0.line_type" in message
    assert len(exc_info.value.errors) >= 3


@pytest.mark.parametrize("value", ["nan", "inf"])
def test_non_finite_numbers_rejected(value):
    with pytest.raises(ValidationError):
        parse_payload(make_payload(items=[make_item(unit_price_net=float(value))]))


@pytest.mark.parametrize("raw", [None, [], "invoice"])
def test_payload_must_be_an_object(raw):
    with pytest.raises(ValidationError, match="Payload must be an object"):
        parse_payload(raw)


@pytest.mark.parametrize(
    ("overrides", "item", "field"),
    [
        ({"supplier": "S" * 256}, {}, "supplier"),
        ({"invoice_no": "R" * 65}, {}, "invoice_no"),
        ({}, {"sku": "E" * 65}, "items.0.product_sku"),
        ({}, {"product_name": "N" * 256}, "items.0.product_name"),
        ({}, {"uom": "KARTON-MIT-DECKEL"}, "items.0.uom"),
        ({}, {"qty": 0.0000001}, "items.0.qty"),
        ({}, {"qty": 10 ** 12}, "items.0.qty"),
        ({}, {"unit_price_net": 10 ** 12}, "items.0.unit_price_net"),
        ({}, {"tax_rate_percent": 119}, "items.0.tax_rate_percent"),
        ({}, {"qty": 2_000_000, "unit_price_net": 600_000}, "items.0"),
    ],
)
def test_values_that_do_not_fit_the_columns_are_rejected(overrides, item, field):
    with pytest.raises(ValidationError) as exc_info:
        parse_payload(make_payload(items=[make_item(**item)], **overrides))

    assert f"{field}:" in exc_info.value.message


def test_values_at_column_limits_are_accepted():
    payload = parse_payload(make_payload(
        invoice_no="R" * 64,
        items=[make_item(sku="E" * 64, uom="U" * 16, qty=0.000001, unit_price_net=1.5)],
    ))

    assert payload.items[0].qty == pytest.approx(0.000001)
    assert payload.items[0].uom == "U" * 16
