"""Helpers for building test data."""

from datetime import date
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_engine.models import (
    CostAllocationSetting,
    Invoice,
    InvoiceItem,
    PriceHistory,
    Product,
    Supplier,
)


async def create_test_supplier(session: AsyncSession, name: str = "Beyers Kaffee GmbH") -> Supplier:
    """Create and commit a supplier.

    Args:
        session: Database session
        name: Supplier name

    Returns:
        Supplier: The stored supplier
    """
    supplier = Supplier(name=name)
    session.add(supplier)
    await session.commit()
    await session.refresh(supplier)
    return supplier


async def create_test_product(
    session: AsyncSession,
    sku: str = "EBC-1042",
    name: str = "Bio Filterkaffee 250g gemahlen",
    base_uom: str = "kg",
    pieces_per_transport_unit: Optional[int] = None,
) -> Product:
    """Create and commit a catalog product.

    Returns:
        Product: The stored product
    """
    product = Product(
        sku=sku,
        name=name,
        base_uom=base_uom,
        pieces_per_transport_unit=pieces_per_transport_unit,
    )
    session.add(product)
    await session.commit()
    await session.refresh(product)
    return product


async def create_allocation_setting(
    session: AsyncSession,
    supplier_id: int,
    policy: str,
    active_from: date = date(2024, 1, 1),
) -> CostAllocationSetting:
    setting = CostAllocationSetting(supplier_id=supplier_id, policy=policy, active_from=active_from)
    session.add(setting)
    await session.commit()
    return setting


def make_item(
    line_type: str = "product",
    sku: Optional[str] = "EBC-1042",
    qty: float = 10,
    uom: str = "KG",
    unit_price_net: float = 20.0,
    **extra: Any,
) -> dict[str, Any]:
    item = {
        "line_type": line_type,
        "product_sku": sku,
        "qty": qty,
        "uom": uom,
        "unit_price_net": unit_price_net,
    }
    if sku is None:
        item.pop("product_sku")
    item.update(extra)
    return item


def make_payload(items: Optional[list[dict[str, Any]]] = None, **overrides: Any) -> dict[str, Any]:
    """Build a raw ingestion payload with sensible defaults."""
    payload: dict[str, Any] = {
        "supplier": "Beyers Kaffee GmbH",
        "invoice_no": "RE-2024-1001",
        "invoice_date": "2024-10-24",
        "items": items if items is not None else [make_item()],
    }
    payload.update(overrides)
    return payload


async def count_rows(session: AsyncSession, model) -> int:
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


async def count_all(session: AsyncSession) -> dict[str, int]:
    """Row counts of every table the ingestion writes to."""
    return {
        "suppliers": await count_rows(session, Supplier),
        "products": await count_rows(session, Product),
        "invoices": await count_rows(session, Invoice),
        "items": await count_rows(session, InvoiceItem),
        "price_history": await count_rows(session, PriceHistory),
    }
