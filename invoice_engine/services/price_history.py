"""
Purchase price history queries.

Reads the landed prices recorded by finalization and smooths single-invoice
outliers (typos, wrong unit on one invoice) for charting and pricing.
"""

from __future__ import annotations

import math
import statistics
from datetime import date
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_engine.config import settings
from invoice_engine.errors import ValidationError
from invoice_engine.models import PriceHistory
from invoice_engine.store import translate_errors

# Scales the MAD so the modified z-score is comparable to a standard z-score.
MAD_SCALE = 0.6745


async def get_price_history(
    session: AsyncSession,
    product_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[dict[str, Any]]:
    """
    Price points of a product, oldest first.

    Args:
        session: Database session
        product_id: Product to read
        date_from: Inclusive lower bound on ``date_effective``
        date_to: Inclusive upper bound on ``date_effective``

    Returns:
        Dicts with ``date_effective``, ``uom``, ``price_per_base_unit_net``,
        ``base_price_per_unit_net`` and ``surcharge_per_unit_net``
    """
    if not product_id or product_id <= 0:
        raise ValidationError("product_id required")

    query = (
        select(PriceHistory)
        .where(PriceHistory.product_id == product_id)
        .order_by(PriceHistory.date_effective, PriceHistory.id)
    )
    if date_from:
        query = query.where(PriceHistory.date_effective >= date_from)
    if date_to:
        query = query.where(PriceHistory.date_effective <= date_to)

    with translate_errors("get_price_history"):
        rows = (await session.execute(query)).scalars().all()

    return [
        {
            "date_effective": row.date_effective,
            "uom": row.uom,
            "price_per_base_unit_net": float(row.price_per_base_unit_net),
            "base_price_per_unit_net": float(row.base_price_per_unit_net),
            "surcharge_per_unit_net": float(row.surcharge_per_unit_net),
        }
        for row in rows
    ]


def correct_price_outliers(
    history: Sequence[Mapping[str, Any]],
    threshold: Optional[float] = None,
    key: str = "price_per_base_unit_net",
) -> list[dict[str, Any]]:
    """
    Replace outlying prices with the mean of their nearest regular neighbours.

    A point is an outlier when its modified z-score
    ``0.6745 * (x - median) / MAD`` exceeds ``threshold`` in absolute value.
    Points at either edge take the value of their only regular neighbour.
    The input is not mutated.

    Example:
        >>> points = [{"price_per_base_unit_net": p} for p in (10, 10.2, 99, 10.1, 9.9)]
        >>> [p["price_per_base_unit_net"] for p in correct_price_outliers(points)]
        [10, 10.2, 10.15, 10.1, 9.9]
    """
    if threshold is None:
        threshold = settings.price_outlier_threshold

    copies = [dict(point) for point in history]
    if not copies:
        return []

    values = [float(point[key]) for point in copies]
    if all(v == values[0] for v in values):
        return copies

    median = statistics.median(values)
    mad = statistics.median(abs(v - median) for v in values)
    if not math.isfinite(mad) or mad == 0:
        return copies

    flagged = [abs(MAD_SCALE * (v - median) / mad) > threshold for v in values]
    if not any(flagged):
        return copies

    for index, is_outlier in enumerate(flagged):
        if not is_outlier:
            continue

        previous = next(
            (values[i] for i in range(index - 1, -1, -1) if not flagged[i]), None
        )
        following = next(
            (values[i] for i in range(index + 1, len(values)) if not flagged[i]), None
        )

        if previous is not None and following is not None:
            replacement = (previous + following) / 2
        elif previous is not None:
            replacement = previous
        elif following is not None:
            replacement = following
        else:
            replacement = median
        copies[index][key] = round(replacement, 6)

    return copies
