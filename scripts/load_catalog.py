#!/usr/bin/env python
"""Seed the product catalog from CSV.

Columns: sku, name, base_uom[, pieces_per_transport_unit, category]

Example:
    python -m scripts.load_catalog data/products.csv
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from invoice_engine.config import settings
from invoice_engine.core.catalog_loader import load_catalog
from invoice_engine.db import dispose_engine, get_session_factory
from invoice_engine.utils.logger import setup_logging


async def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("csv_path", type=Path)
    args = parser.parse_args()

    setup_logging(settings.log_level, json=settings.log_json)
    try:
        async with get_session_factory()() as session:
            inserted = await load_catalog(session, args.csv_path)
    finally:
        await dispose_engine()
    print(f"✓ inserted {inserted} products")


if __name__ == "__main__":
    asyncio.run(main())
