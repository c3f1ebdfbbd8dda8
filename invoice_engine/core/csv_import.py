"""
CSV invoice import.

Builds an ingestion payload from a flat CSV export: one row per invoice line,
with the invoice header fields repeated on every row. Supplier exports use
German number and date formats (``1.234,50``, ``24.10.2024``), both are
accepted.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Optional, Union

import pandas as pd
import structlog

from invoice_engine.errors import ValidationError

logger = structlog.get_logger()

HEADER_COLUMNS = ("supplier", "invoice_no", "invoice_date", "currency")
REQUIRED_COLUMNS = {"supplier", "invoice_no", "invoice_date", "qty", "uom", "unit_price_net"}

# English keywords are whole words ("fee" must not match "Kaffee"); German
# compounds carry the keyword as a prefix (Versandkosten) or suffix (Energiezuschlag).
_SHIPPING_RE = re.compile(r"\b(?:versand|fracht|shipping|lieferung|freight)")
_SURCHARGE_RE = re.compile(
    r"(?:zuschlag|aufschlag|gebühr|gebuehr)|\b(?:fees?|porto|surcharges?)\b|\bservice"
)
_THOUSANDS_RE = re.compile(r"(?<=\d)\.(?=\d{3}(?:\D|$))")
_DATE_RE = re.compile(r"^(\d{1,2})[./-](\d{1,2})[./-](\d{2,4})$")


def guess_line_type(name: Optional[str]) -> str:
    """Classify a line by its description: shipping, surcharge or product."""
    lower = (name or "").lower()
    if _SHIPPING_RE.search(lower):
        return "shipping"
    if _SURCHARGE_RE.search(lower):
        return "surcharge"
    return "product"


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a number written in English or German notation.

    Example:
        >>> parse_number("1.234,50")
        1234.5
        >>> parse_number("12.5")
        12.5
        >>> parse_number("") is None
        True
    """
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = re.sub(r"[\s €]", "", str(value))
    if not cleaned:
        return None
    cleaned = _THOUSANDS_RE.sub("", cleaned)
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    try:
        return float(cleaned)
    except ValueError:
        raise ValidationError(f"Not a number: {value!r}") from None


def parse_date(value: Any) -> str:
    """Return an ISO date for ``YYYY-MM-DD`` or ``DD.MM.YYYY`` input."""
    text = str(value).strip()
    match = _DATE_RE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        if year < 100:
            year += 2000
        try:
            return datetime(year, month, day).date().isoformat()
        except ValueError:
            raise ValidationError(f"Invalid invoice date: {value!r}") from None
    return text


def _clean(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    text = str(value).strip()
    return text or None


def payload_from_csv(
    source: Union[str, Path, IO[str]],
    options: Optional[dict[str, Any]] = None,
    sep: str = ",",
) -> dict[str, Any]:
    """
    Read a CSV file into an ingestion payload.

    Args:
        source: Path or text buffer
        options: ``options`` block of the payload (allocation policy, ...)
        sep: Field separator, ``";"`` for most German exports

    Raises:
        ValidationError: Missing columns, no rows, or rows of several invoices
    """
    df = pd.read_csv(source, sep=sep, dtype=str, keep_default_na=False, skipinitialspace=True)
    df.columns = [str(c).strip() for c in df.columns]

    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValidationError(f"CSV is missing columns: {', '.join(sorted(missing))}")
    if df.empty:
        raise ValidationError("CSV contains no invoice lines")

    header: dict[str, Any] = {}
    for column in HEADER_COLUMNS:
        if column not in df.columns:
            continue
        values = {v for v in (_clean(x) for x in df[column]) if v is not None}
        if len(values) > 1:
            raise ValidationError(f"CSV mixes several invoices: column {column} has {sorted(values)}")
        if values:
            header[column] = values.pop()

    if "invoice_date" in header:
        header["invoice_date"] = parse_date(header["invoice_date"])

    items = []
    for record in df.to_dict(orient="records"):
        name = _clean(record.get("product_name"))
        sku = _clean(record.get("product_sku"))
        item: dict[str, Any] = {
            "line_type": _clean(record.get("line_type")) or ("product" if sku else guess_line_type(name)),
            "product_sku": sku,
            "product_name": name,
            "qty": parse_number(record.get("qty")),
            "uom": _clean(record.get("uom")),
            "unit_price_net": parse_number(record.get("unit_price_net")),
        }
        tax = parse_number(record.get("tax_rate_percent"))
        if tax is not None:
            item["tax_rate_percent"] = tax
        discount = parse_number(record.get("discount_abs"))
        if discount is not None:
            item["discount_abs"] = discount
        items.append(item)

    payload = {**header, "items": items}
    if options:
        payload["options"] = dict(options)

    logger.info(
        "CSV parsed",
        supplier=header.get("supplier"),
        invoice_no=header.get("invoice_no"),
        lines=len(items),
    )
    return payload
