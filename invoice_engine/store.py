"""
Record store used by the ingestion engine.

Thin async wrapper around an :class:`~sqlalchemy.ext.asyncio.AsyncSession`
that exposes exactly the operations the engine needs: upsert suppliers,
look up and insert products, insert invoices and lines, read an invoice
back for finalization.

Transactions are owned by the caller (``async with session.begin()``); the
store never commits. Database errors are translated into the engine's
``Store*Error`` types.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Any, Iterator, Optional, Type

import structlog
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from invoice_engine.errors import StoreConflictError, StoreUnavailableError
from invoice_engine.models import (
    Base,
    CostAllocationSetting,
    Invoice,
    InvoiceItem,
    PriceHistory,
    Product,
    Supplier,
)

logger = structlog.get_logger()

# One lookup retry after a lost insert race.
CONFLICT_ATTEMPTS = 2


def retry_on_conflict() -> AsyncRetrying:
    """Retry policy for insert-or-read operations racing on a unique key."""
    return AsyncRetrying(
        stop=stop_after_attempt(CONFLICT_ATTEMPTS),
        retry=retry_if_exception_type(StoreConflictError),
        reraise=True,
    )


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Map SQLAlchemy errors onto the engine's store errors."""
    try:
        yield
    except IntegrityError as exc:
        logger.warning("Store conflict", operation=operation, error=str(exc.orig))
        raise StoreConflictError(f"{operation}: uniqueness conflict") from exc
    except (OperationalError, InterfaceError) as exc:
        logger.error("Store unavailable", operation=operation, error=str(exc.orig))
        raise StoreUnavailableError(f"{operation}: store unavailable ({exc.orig})") from exc
    except DBAPIError as exc:
        logger.error("Store rejected write", operation=operation, error=str(exc.orig))
        raise StoreUnavailableError(f"{operation}: store rejected the request ({exc.orig})") from exc


class InvoiceStore:
    """Store operations bound to one session (one unit of work)."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ------------------------------------------------------------------ #
    #  helpers
    # ------------------------------------------------------------------ #
    @property
    def dialect(self) -> str:
        return self.session.get_bind().dialect.name

    async def _insert_ignoring_conflicts(
        self,
        model: Type[Base],
        values: dict[str, Any],
        index_elements: list[str],
    ) -> bool:
        """
        Insert a row unless it collides with an existing unique key.

        Returns:
            True if the row was inserted, False if the key already existed
        """
        if self.dialect in ("postgresql", "sqlite"):
            if self.dialect == "postgresql":
                from sqlalchemy.dialects.postgresql import insert
            else:
                from sqlalchemy.dialects.sqlite import insert
            stmt = (
                insert(model)
                .values(**values)
                .on_conflict_do_nothing(index_elements=index_elements)
            )
            result = await self.session.execute(stmt)
            return result.rowcount == 1

        # other backends: plain insert inside a savepoint
        try:
            async with self.session.begin_nested():
                self.session.add(model(**values))
                await self.session.flush()
        except IntegrityError:
            return False
        return True

    # ------------------------------------------------------------------ #
    #  suppliers
    # ------------------------------------------------------------------ #
    async def get_supplier_id(self, name: str) -> Optional[int]:
        with translate_errors("get_supplier"):
            res = await self.session.execute(select(Supplier.id).where(Supplier.name == name))
            return res.scalar_one_or_none()

    async def upsert_supplier(self, name: str) -> int:
        """Return the id of the supplier called ``name``, creating it if needed."""
        async for attempt in retry_on_conflict():
            with attempt:
                supplier_id = await self.get_supplier_id(name)
                if supplier_id is not None:
                    return supplier_id

                with translate_errors("upsert_supplier"):
                    inserted = await self._insert_ignoring_conflicts(
                        Supplier, {"name": name}, ["name"]
                    )
                supplier_id = await self.get_supplier_id(name)
                if supplier_id is None:
                    raise StoreConflictError(f"Supplier {name!r} vanished after upsert")
                if inserted:
                    logger.info("Supplier created", supplier=name, supplier_id=supplier_id)
                return supplier_id
        raise AssertionError("unreachable")

    async def get_supplier_policy(self, supplier_id: int, on_date: date) -> Optional[str]:
        """Allocation policy configured for a supplier at ``on_date``."""
        with translate_errors("get_supplier_policy"):
            res = await self.session.execute(
                select(CostAllocationSetting.policy)
                .where(
                    CostAllocationSetting.supplier_id == supplier_id,
                    CostAllocationSetting.active_from <= on_date,
                )
                .order_by(CostAllocationSetting.active_from.desc(), CostAllocationSetting.id.desc())
                .limit(1)
            )
            return res.scalar_one_or_none()

    # ------------------------------------------------------------------ #
    #  products
    # ------------------------------------------------------------------ #
    async def get_product_by_sku(self, sku: str) -> Optional[Product]:
        with translate_errors("get_product"):
            res = await self.session.execute(select(Product).where(Product.sku == sku))
            return res.scalar_one_or_none()

    async def insert_product_if_missing(
        self,
        sku: str,
        name: str,
        base_uom: str,
        pieces_per_transport_unit: Optional[int] = None,
        category: Optional[str] = None,
    ) -> bool:
        """Insert a product unless the SKU exists; True if it was inserted."""
        with translate_errors("insert_product"):
            return await self._insert_ignoring_conflicts(
                Product,
                {
                    "sku": sku,
                    "name": name,
                    "base_uom": base_uom,
                    "pieces_per_transport_unit": pieces_per_transport_unit,
                    "category": category,
                    "active": True,
                },
                ["sku"],
            )

    async def insert_product(
        self,
        sku: str,
        name: str,
        base_uom: str,
        pieces_per_transport_unit: Optional[int] = None,
    ) -> int:
        """
        Insert a product and return its id.

        Raises:
            StoreConflictError: Another transaction created the SKU first
        """
        inserted = await self.insert_product_if_missing(
            sku, name, base_uom, pieces_per_transport_unit
        )
        if not inserted:
            raise StoreConflictError(f"Product {sku} was created concurrently")

        product = await self.get_product_by_sku(sku)
        if product is None:
            raise StoreConflictError(f"Product {sku} vanished after insert")
        return product.id

    # ------------------------------------------------------------------ #
    #  invoices
    # ------------------------------------------------------------------ #
    async def find_invoice(self, supplier_id: int, invoice_no: str) -> Optional[int]:
        with translate_errors("find_invoice"):
            res = await self.session.execute(
                select(Invoice.id).where(
                    Invoice.supplier_id == supplier_id,
                    Invoice.invoice_no == invoice_no,
                )
            )
            return res.scalar_one_or_none()

    async def insert_invoice(
        self,
        supplier_id: int,
        invoice_no: str,
        invoice_date: date,
        currency: str,
    ) -> Optional[int]:
        """
        Insert an invoice header.

        Returns:
            The new id, or None if ``(supplier_id, invoice_no)`` already exists
        """
        with translate_errors("insert_invoice"):
            inserted = await self._insert_ignoring_conflicts(
                Invoice,
                {
                    "supplier_id": supplier_id,
                    "invoice_no": invoice_no,
                    "invoice_date": invoice_date,
                    "currency": currency,
                    "net_amount": 0,
                    "tax_amount": 0,
                    "gross_amount": 0,
                },
                ["supplier_id", "invoice_no"],
            )
        if not inserted:
            return None
        return await self.find_invoice(supplier_id, invoice_no)

    async def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        with translate_errors("get_invoice"):
            return await self.session.get(Invoice, invoice_id)

    async def insert_item(self, **values: Any) -> int:
        """Insert one invoice line and return its id."""
        item = InvoiceItem(**values)
        with translate_errors("insert_item"):
            self.session.add(item)
            await self.session.flush()
        return item.id

    async def get_invoice_lines(self, invoice_id: int) -> list[tuple[InvoiceItem, Optional[Product]]]:
        """Lines of an invoice with their products, in line order."""
        with translate_errors("get_invoice_lines"):
            res = await self.session.execute(
                select(InvoiceItem, Product)
                .outerjoin(Product, InvoiceItem.product_id == Product.id)
                .where(InvoiceItem.invoice_id == invoice_id)
                .order_by(InvoiceItem.line_no)
            )
            return [(item, product) for item, product in res.all()]

    # ------------------------------------------------------------------ #
    #  price history
    # ------------------------------------------------------------------ #
    async def add_price_history(self, rows: list[dict[str, Any]]) -> None:
        with translate_errors("add_price_history"):
            self.session.add_all(PriceHistory(**row) for row in rows)
            await self.session.flush()

    async def flush(self) -> None:
        with translate_errors("flush"):
            await self.session.flush()
