"""Tests for invoice finalization."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from invoice_engine.errors import ValidationError
from invoice_engine.models import PriceHistory
from invoice_engine.services.finalization import finalize_invoice
from invoice_engine.store import InvoiceStore
from tests.test_utils import create_test_product, create_test_supplier


async def _stored_invoice(session, lines):
    """Store an invoice header and its lines, return (store, invoice_id)."""
    supplier = await create_test_supplier(session)
    store = InvoiceStore(session)
    invoice_id = await store.insert_invoice(
        supplier_id=supplier.id,
        invoice_no="RE-2024-2001",
        invoice_date=date(2024, 10, 24),
        currency="EUR",
    )
    for line_no, line in enumerate(lines, start=1):
        await store.insert_item(
            invoice_id=invoice_id,
            line_no=line_no,
            product_id=line.get("product_id"),
            line_type=line.get("line_type", "product"),
            qty=Decimal(str(line["qty"])),
            uom=line["uom"],
            unit_price_net=Decimal(str(line["price"])),
            tax_rate=Decimal(str(line["tax"])) if "tax" in line else None,
            discount_abs=Decimal(str(line.get("discount", 0))),
        )
    return store, invoice_id


@pytest.mark.asyncio
async def test_totals_include_every_line(test_db):
    """Test net, tax and gross totals over product, surcharge and shipping lines."""
    product = await create_test_product(test_db)
    store, invoice_id = await _stored_invoice(test_db, [
        {"product_id": product.id, "qty": 10, "uom": "KG", "price": 20, "tax": 7, "discount": 5},
        {"line_type": "surcharge", "qty": 1, "uom": "STUECK", "price": 15, "tax": 19},
        {"line_type": "shipping", "qty": 1, "uom": "STUECK", "price": 10},
    ])

    result = await finalize_invoice(store, invoice_id, "per_kg", fallback="drop", allocate_shipping=True)

    assert result.net_amount == pytest.approx(220.0)
    assert result.tax_amount == pytest.approx(16.5)
    assert result.gross_amount == pytest.approx(236.5)
    invoice = await store.get_invoice(invoice_id)
    assert invoice.net_amount == Decimal("220.00")
    assert invoice.tax_amount == Decimal("16.50")
    assert invoice.allocation_policy == "per_kg"


@pytest.mark.asyncio
async def test_shipping_counts_as_surcharge(test_db):
    product = await create_test_product(test_db)
    store, invoice_id = await _stored_invoice(test_db, [
        {"product_id": product.id, "qty": 10, "uom": "KG", "price": 20},
        {"line_type": "surcharge", "qty": 1, "uom": "STUECK", "price": 15},
        {"line_type": "shipping", "qty": 1, "uom": "STUECK", "price": 5},
    ])

    result = await finalize_invoice(store, invoice_id, "per_kg", fallback="drop", allocate_shipping=True)

    assert result.total_surcharge_net == pytest.approx(20.0)
    assert result.lines[0]["surcharge_per_unit"] == pytest.approx(2.0)
    assert result.allocated_surcharge == pytest.approx(20.0)


@pytest.mark.asyncio
async def test_shipping_can_be_excluded(test_db):
    product = await create_test_product(test_db)
    store, invoice_id = await _stored_invoice(test_db, [
        {"product_id": product.id, "qty": 10, "uom": "KG", "price": 20},
        {"line_type": "surcharge", "qty": 1, "uom": "STUECK", "price": 15},
        {"line_type": "shipping", "qty": 1, "uom": "STUECK", "price": 5},
    ])

    result = await finalize_invoice(store, invoice_id, "per_kg", fallback="drop", allocate_shipping=False)

    assert result.total_surcharge_net == pytest.approx(15.0)
    assert result.lines[0]["surcharge_per_unit"] == pytest.approx(1.5)
    assert result.net_amount == pytest.approx(220.0)


@pytest.mark.asyncio
async def test_price_history_rows(test_db):
    """Test one price-history row per product line with the landed price."""
    product = await create_test_product(test_db, sku="762100", base_uom="piece", pieces_per_transport_unit=50)
    store, invoice_id = await _stored_invoice(test_db, [
        {"product_id": product.id, "qty": 2, "uom": "TU", "price": 30, "discount": 10},
        {"line_type": "surcharge", "qty": 1, "uom": "STUECK", "price": 4},
    ])

    await finalize_invoice(store, invoice_id, "per_piece", fallback="drop", allocate_shipping=True)

    rows = (await test_db.execute(select(PriceHistory))).scalars().all()
    assert len(rows) == 1
    row = rows[0]
    assert row.product_id == product.id
    assert row.date_effective == date(2024, 10, 24)
    assert row.uom == "piece"
    assert float(row.qty_in_base_units) == pytest.approx(100.0)
    assert float(row.base_price_per_unit_net) == pytest.approx(0.5)
    assert float(row.surcharge_per_unit_net) == pytest.approx(0.04)
    assert float(row.price_per_base_unit_net) == pytest.approx(0.54)
    assert row.source_item_id is not None


@pytest.mark.asyncio
async def test_lines_without_product_get_no_history(test_db):
    store, invoice_id = await _stored_invoice(test_db, [
        {"qty": 5, "uom": "KG", "price": 10},
        {"line_type": "surcharge", "qty": 1, "uom": "STUECK", "price": 5},
    ])

    result = await finalize_invoice(store, invoice_id, "per_kg", fallback="drop", allocate_shipping=True)

    assert result.lines[0]["surcharge_per_unit"] == pytest.approx(1.0)
    rows = (await test_db.execute(select(PriceHistory))).scalars().all()
    assert rows == []


@pytest.mark.asyncio
async def test_transport_unit_without_factor_counts_pieces(test_db):
    product = await create_test_product(test_db, sku="762100", base_uom="piece")
    store, invoice_id = await _stored_invoice(test_db, [
        {"product_id": product.id, "qty": 3, "uom": "TU", "price": 30},
    ])

    result = await finalize_invoice(store, invoice_id, "per_piece", fallback="drop", allocate_shipping=True)

    assert result.lines[0]["base_uom"] == "piece"
    assert result.lines[0]["qty_base"] == pytest.approx(3.0)
    assert result.lines[0]["base_price_per_unit"] == pytest.approx(30.0)


@pytest.mark.asyncio
async def test_unknown_invoice(test_db):
    with pytest.raises(ValidationError):
        await finalize_invoice(InvoiceStore(test_db), 999, "per_kg")
