#!/usr/bin/env python3
"""
Create (or recreate) every table of the invoice engine.

Example:
    python -m scripts.create_tables
    python -m scripts.create_tables --drop
"""

import argparse
import asyncio

from invoice_engine.config import settings
from invoice_engine.db import create_tables, dispose_engine, drop_tables
from invoice_engine.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


async def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = parser.parse_args()

    setup_logging(settings.log_level, json=settings.log_json)
    try:
        if args.drop:
            await drop_tables()
            logger.info("Tables dropped")
        await create_tables()
        logger.info("Tables created", database_url=settings.db_url)
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
