"""Tests for product resolution."""

import pytest
from sqlalchemy import select

from invoice_engine.errors import StoreConflictError, UnknownProductError
from invoice_engine.models import Product
from invoice_engine.services.product_resolver import (
    ProductDefinition,
    ProductResolver,
    guess_product_definition,
)
from invoice_engine.store import InvoiceStore
from tests.test_utils import create_test_product


async def _get(session, sku):
    return (await session.execute(select(Product).where(Product.sku == sku))).scalar_one_or_none()


def test_guess_definition_heuristic():
    assert guess_product_definition("TU", 100) == ProductDefinition("piece", 100)
    assert guess_product_definition("kg", 100) == ProductDefinition("kg", None)
    assert guess_product_definition("STUECK", 100) == ProductDefinition("piece", None)
    assert guess_product_definition("Karton", 100) == ProductDefinition("piece", None)


def test_guess_definition_uses_configured_factor():
    assert guess_product_definition("TU", 24) == ProductDefinition("piece", 24)


def test_guess_definition_accepts_unit_aliases():
    assert guess_product_definition("te", 12) == ProductDefinition("piece", 12)
    assert guess_product_definition(" Kilo ", 12) == ProductDefinition("kg", None)


@pytest.mark.asyncio
async def test_missing_sku_resolves_to_none(test_db):
    resolver = ProductResolver(InvoiceStore(test_db), auto_create=True)
    assert await resolver.resolve(None, "Fracht", "STUECK") is None
    assert await resolver.resolve("   ", "Fracht", "STUECK") is None


@pytest.mark.asyncio
async def test_existing_product_is_returned_unchanged(test_db):
    """Stored metadata wins over the unit of the current line."""
    product = await create_test_product(test_db, sku="762100", base_uom="piece", pieces_per_transport_unit=50)
    resolver = ProductResolver(InvoiceStore(test_db), auto_create=True)

    product_id = await resolver.resolve("762100", "EB Espresso", "KG")

    assert product_id == product.id
    stored = await _get(test_db, "762100")
    assert stored.base_uom == "piece"
    assert stored.pieces_per_transport_unit == 50


@pytest.mark.asyncio
async def test_unknown_sku_without_auto_create_fails(test_db):
    resolver = ProductResolver(InvoiceStore(test_db), auto_create=False)

    with pytest.raises(UnknownProductError) as exc_info:
        await resolver.resolve("NOPE-1", "Unknown", "KG")

    assert exc_info.value.sku == "NOPE-1"
    assert await _get(test_db, "NOPE-1") is None


@pytest.mark.asyncio
async def test_auto_create_transport_unit(test_db):
    resolver = ProductResolver(InvoiceStore(test_db), auto_create=True, default_pieces_per_transport_unit=100)

    product_id = await resolver.resolve("762101", "EB Lungo Homecoffee", "TU")

    product = await _get(test_db, "762101")
    assert product.id == product_id
    assert product.base_uom == "piece"
    assert product.pieces_per_transport_unit == 100
    assert product.name == "EB Lungo Homecoffee"


@pytest.mark.asyncio
async def test_auto_create_kilogram(test_db):
    resolver = ProductResolver(InvoiceStore(test_db), auto_create=True)

    await resolver.resolve("EBC-1043", None, "KG")

    product = await _get(test_db, "EBC-1043")
    assert product.base_uom == "kg"
    assert product.pieces_per_transport_unit is None
    assert product.name == "EBC-1043"


@pytest.mark.asyncio
async def test_auto_create_is_idempotent(test_db):
    resolver = ProductResolver(InvoiceStore(test_db), auto_create=True)

    first = await resolver.resolve("EBC-1044", "Bio Filter", "KG")
    second = await resolver.resolve("EBC-1044", "Bio Filter", "KG")

    assert first == second


class _RacingStore:
    """Store whose first insert loses a race against another ingestion."""

    def __init__(self, lose_times=1):
        self.products = {}
        self.lose_times = lose_times
        self.lookups = 0

    async def get_product_by_sku(self, sku):
        self.lookups += 1
        return self.products.get(sku)

    async def insert_product(self, sku, name, base_uom, pieces_per_transport_unit=None):
        if self.lose_times:
            self.lose_times -= 1
            self.products[sku] = Product(id=77, sku=sku, name="winner", base_uom=base_uom)
            raise StoreConflictError(f"Product {sku} was created concurrently")
        self.products[sku] = Product(id=78, sku=sku, name=name, base_uom=base_uom)
        return 78


@pytest.mark.asyncio
async def test_lost_creation_race_is_resolved_by_lookup():
    store = _RacingStore(lose_times=1)
    resolver = ProductResolver(store, auto_create=True)

    assert await resolver.resolve("762102", "EB Decaf", "TU") == 77
    assert store.lookups == 2


class _AlwaysConflictingStore(_RacingStore):
    async def get_product_by_sku(self, sku):
        self.lookups += 1
        return None

    async def insert_product(self, sku, name, base_uom, pieces_per_transport_unit=None):
        raise StoreConflictError(f"Product {sku} was created concurrently")


@pytest.mark.asyncio
async def test_conflict_is_surfaced_after_one_retry():
    store = _AlwaysConflictingStore()
    resolver = ProductResolver(store, auto_create=True)

    with pytest.raises(StoreConflictError):
        await resolver.resolve("762102", "EB Decaf", "TU")
    assert store.lookups == 2
