#!/usr/bin/env python
"""Ingest one invoice from a JSON payload or a flat CSV export.

Example:
    python -m scripts.import_invoice invoices/2024-10-24.json
    python -m scripts.import_invoice invoices/beyers.csv --auto-create --policy per_piece
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional

from invoice_engine.config import settings
from invoice_engine.core.csv_import import payload_from_csv
from invoice_engine.db import create_tables, dispose_engine
from invoice_engine.errors import ValidationError
from invoice_engine.services.ingestion import ingest_payload
from invoice_engine.utils.logger import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ingest a purchase invoice")
    parser.add_argument("path", type=Path, help="payload .json or invoice .csv")
    parser.add_argument(
        "--policy",
        choices=["none", "per_kg", "per_piece"],
        help="surcharge allocation policy (overrides the payload)",
    )
    parser.add_argument(
        "--auto-create",
        action="store_true",
        help="create unknown products instead of failing",
    )
    parser.add_argument(
        "--sep",
        default=",",
        help="CSV field separator (default: ,)",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="create missing tables before ingesting",
    )
    return parser


def load_payload(
    path: Path,
    policy: Optional[str],
    auto_create: bool,
    sep: str = ",",
) -> dict[str, Any]:
    if path.suffix.lower() == ".csv":
        payload = payload_from_csv(path, sep=sep)
    else:
        with path.open(encoding="utf-8") as fh:
            payload = json.load(fh)
        if not isinstance(payload, dict):
            raise ValidationError("JSON payload must be an object")

    options = dict(payload.get("options") or {})
    if policy:
        options["allocate_surcharges"] = policy
    if auto_create:
        options["autoCreateProducts"] = True
    payload["options"] = options
    return payload


async def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(settings.log_level, json=settings.log_json)

    try:
        payload = load_payload(args.path, args.policy, args.auto_create, args.sep)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        result = {"status": "error", "message": str(exc)}
    else:
        if args.create_tables:
            await create_tables()
        result = await ingest_payload(payload)
    finally:
        await dispose_engine()

    print(json.dumps(result, ensure_ascii=False))
    return 0 if result["status"] == "ok" else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
