"""
Product resolution for invoice lines.

Maps the SKU printed on an invoice line to a catalog product. Unknown SKUs
either abort the ingestion or, when auto-creation is enabled, become new
products whose base unit is guessed from the line's unit of measure.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

import structlog

from invoice_engine.config import settings
from invoice_engine.errors import UnknownProductError
from invoice_engine.store import InvoiceStore, retry_on_conflict
from invoice_engine.utils.unit_converter import (
    BASE_KG,
    BASE_PIECE,
    is_kilogram,
    is_transport_unit,
)

logger = structlog.get_logger()


class ProductDefinition(NamedTuple):
    base_uom: str
    pieces_per_transport_unit: Optional[int]


def guess_product_definition(
    uom: Optional[str],
    default_pieces_per_transport_unit: Optional[int] = None,
) -> ProductDefinition:
    """
    Derive the base unit of a new product from the unit it was invoiced in.

    ``TU`` becomes pieces with the default transport-unit factor, ``KG``
    becomes kilograms, anything else pieces without a factor.
    """
    if default_pieces_per_transport_unit is None:
        default_pieces_per_transport_unit = settings.default_pieces_per_transport_unit

    if is_transport_unit(uom):
        return ProductDefinition(BASE_PIECE, default_pieces_per_transport_unit)
    if is_kilogram(uom):
        return ProductDefinition(BASE_KG, None)
    return ProductDefinition(BASE_PIECE, None)


class ProductResolver:
    """Resolves SKUs against the store, creating products when allowed."""

    def __init__(
        self,
        store: InvoiceStore,
        auto_create: bool = False,
        default_pieces_per_transport_unit: Optional[int] = None,
    ) -> None:
        self.store = store
        self.auto_create = auto_create
        self.default_pieces_per_transport_unit = (
            default_pieces_per_transport_unit
            if default_pieces_per_transport_unit is not None
            else settings.default_pieces_per_transport_unit
        )

    async def resolve(
        self,
        sku: Optional[str],
        name: Optional[str],
        uom: Optional[str],
    ) -> Optional[int]:
        """
        Return the product id for ``sku``.

        Args:
            sku: SKU from the invoice line; blank means no product
            name: Product name used when a product is created
            uom: Invoice unit, only used to guess a new product's base unit

        Raises:
            UnknownProductError: SKU unknown and auto-creation disabled
            StoreConflictError: Creation raced twice with another ingestion
        """
        sku = (sku or "").strip()
        if not sku:
            return None

        async for attempt in retry_on_conflict():
            with attempt:
                product = await self.store.get_product_by_sku(sku)
                if product is not None:
                    return product.id

                if not self.auto_create:
                    raise UnknownProductError(sku)

                definition = guess_product_definition(uom, self.default_pieces_per_transport_unit)
                product_id = await self.store.insert_product(
                    sku=sku,
                    name=(name or "").strip() or sku,
                    base_uom=definition.base_uom,
                    pieces_per_transport_unit=definition.pieces_per_transport_unit,
                )
                logger.info(
                    "Product auto-created",
                    sku=sku,
                    product_id=product_id,
                    base_uom=definition.base_uom,
                    pieces_per_transport_unit=definition.pieces_per_transport_unit,
                )
                return product_id
        raise AssertionError("unreachable")
