"""
Invoice finalization.

Runs after every line of an invoice is stored, inside the same unit of work:

* reduces each product line to base units and a base price per unit,
* sums the non-product cost (surcharge lines, and shipping lines unless
  disabled) and spreads it with :func:`allocate`,
* records one price-history row per product line with the landed price,
* writes the invoice net, tax and gross totals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

import structlog

from invoice_engine.config import settings
from invoice_engine.errors import ValidationError
from invoice_engine.services.allocator import allocate
from invoice_engine.store import InvoiceStore
from invoice_engine.utils.unit_converter import normalize

logger = structlog.get_logger()


def _dec(value: float, places: int) -> Decimal:
    return Decimal(str(round(value, places)))


@dataclass
class FinalizationResult:
    invoice_id: int
    policy: str
    total_surcharge_net: float
    net_amount: float
    tax_amount: float
    gross_amount: float
    lines: list[dict[str, Any]] = field(default_factory=list)

    @property
    def allocated_surcharge(self) -> float:
        return sum(line["surcharge_per_unit"] * line["qty_base"] for line in self.lines)


async def finalize_invoice(
    store: InvoiceStore,
    invoice_id: int,
    policy: str,
    fallback: Optional[str] = None,
    allocate_shipping: Optional[bool] = None,
) -> FinalizationResult:
    """
    Allocate surcharges of a stored invoice and update pricing history.

    Args:
        store: Store bound to the ingestion's unit of work
        invoice_id: Invoice to finalize
        policy: ``per_kg``, ``per_piece`` or ``none``
        fallback: Empty-bucket fallback, ``settings.empty_bucket_fallback`` if None
        allocate_shipping: Treat shipping lines as surcharge,
            ``settings.allocate_shipping`` if None

    Raises:
        ValidationError: Unknown invoice or policy
        AllocationError: Empty bucket with the ``error`` fallback
    """
    fallback = fallback or settings.empty_bucket_fallback
    if allocate_shipping is None:
        allocate_shipping = settings.allocate_shipping

    invoice = await store.get_invoice(invoice_id)
    if invoice is None:
        raise ValidationError(f"Invoice {invoice_id} does not exist")

    net_amount = 0.0
    tax_amount = 0.0
    total_surcharge = 0.0
    product_lines: list[dict[str, Any]] = []

    for item, product in await store.get_invoice_lines(invoice_id):
        line_net = item.net_amount
        net_amount += line_net
        if item.tax_rate is not None:
            tax_amount += line_net * float(item.tax_rate) / 100

        if item.line_type == "surcharge" or (item.line_type == "shipping" and allocate_shipping):
            total_surcharge += line_net
            continue
        if item.line_type != "product":
            continue

        factor = product.pieces_per_transport_unit if product is not None else None
        base_uom, qty_base = normalize(item.uom, item.qty, factor)
        if product is not None and base_uom != product.base_uom:
            logger.warning(
                "Invoice unit does not match product base unit",
                invoice_id=invoice_id,
                line_no=item.line_no,
                sku=product.sku,
                uom=item.uom,
                base_uom=product.base_uom,
            )

        product_lines.append({
            "item_id": item.id,
            "line_no": item.line_no,
            "product_id": item.product_id,
            "base_uom": base_uom,
            "qty_base": qty_base,
            "base_price_per_unit": line_net / qty_base if qty_base else 0.0,
        })

    allocated = allocate(product_lines, total_surcharge, policy, fallback=fallback)

    history = [
        {
            "product_id": line["product_id"],
            "date_effective": invoice.invoice_date,
            "uom": line["base_uom"],
            "qty_in_base_units": _dec(line["qty_base"], 6),
            "base_price_per_unit_net": _dec(line["base_price_per_unit"], 6),
            "surcharge_per_unit_net": _dec(line["surcharge_per_unit"], 6),
            "price_per_base_unit_net": _dec(
                line["base_price_per_unit"] + line["surcharge_per_unit"], 6
            ),
            "source_item_id": line["item_id"],
        }
        for line in allocated
        if line["product_id"] is not None
    ]
    if history:
        await store.add_price_history(history)

    invoice.net_amount = _dec(net_amount, 2)
    invoice.tax_amount = _dec(tax_amount, 2)
    invoice.gross_amount = _dec(net_amount + tax_amount, 2)
    invoice.allocation_policy = policy
    await store.flush()

    result = FinalizationResult(
        invoice_id=invoice_id,
        policy=policy,
        total_surcharge_net=total_surcharge,
        net_amount=round(net_amount, 2),
        tax_amount=round(tax_amount, 2),
        gross_amount=round(net_amount + tax_amount, 2),
        lines=allocated,
    )
    logger.info(
        "Invoice finalized",
        invoice_id=invoice_id,
        policy=policy,
        product_lines=len(allocated),
        surcharge=round(total_surcharge, 2),
        allocated=round(result.allocated_surcharge, 2),
    )
    return result
