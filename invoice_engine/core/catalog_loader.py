"""
Seeding the product catalog from CSV.

Used to preload products so that ingestion can run with
``autoCreateProducts=false``. Existing SKUs are left untouched.
"""

from __future__ import annotations

from pathlib import Path
from typing import IO, Any, Optional, Union

import pandas as pd
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_engine.errors import ValidationError
from invoice_engine.models import BASE_UOMS
from invoice_engine.store import InvoiceStore, translate_errors

logger = structlog.get_logger()

REQUIRED_COLUMNS = {"sku", "name", "base_uom"}


def _optional_int(value: Any) -> Optional[int]:
    if value is None or pd.isna(value) or str(value).strip() == "":
        return None
    return int(float(value))


def read_catalog(source: Union[str, Path, IO[str]]) -> list[dict[str, Any]]:
    """
    Parse a catalog CSV into product dicts.

    Raises:
        ValidationError: Missing columns or an unsupported base unit
    """
    df = pd.read_csv(source, dtype=str, keep_default_na=False, skipinitialspace=True)
    df.columns = [str(c).strip() for c in df.columns]

    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValidationError(f"Catalog is missing columns: {', '.join(sorted(missing))}")

    products = []
    for row_no, record in enumerate(df.to_dict(orient="records"), start=2):
        base_uom = str(record["base_uom"]).strip().lower()
        if base_uom not in BASE_UOMS:
            raise ValidationError(f"Row {row_no}: unsupported base_uom {record['base_uom']!r}")
        pieces = _optional_int(record.get("pieces_per_transport_unit"))
        products.append({
            "sku": str(record["sku"]).strip(),
            "name": str(record["name"]).strip() or str(record["sku"]).strip(),
            "base_uom": base_uom,
            "pieces_per_transport_unit": pieces if base_uom == "piece" else None,
            "category": (str(record.get("category") or "").strip() or None),
        })
    return products


async def load_catalog(session: AsyncSession, source: Union[str, Path, IO[str]]) -> int:
    """
    Insert catalog products that are not yet known.

    Returns:
        Number of products inserted
    """
    products = read_catalog(source)
    store = InvoiceStore(session)
    inserted = 0

    with translate_errors("load_catalog"):
        async with session.begin():
            for product in products:
                created = await store.insert_product_if_missing(**product)
                inserted += int(created)

    logger.info("Catalog loaded", rows=len(products), inserted=inserted)
    return inserted
