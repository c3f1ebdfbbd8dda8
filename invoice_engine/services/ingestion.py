"""
Invoice ingestion.

Turns a raw invoice payload into stored records in one unit of work:

1. validate the payload,
2. upsert the supplier by exact name,
3. create the invoice header (or short-circuit on a known invoice number),
4. resolve every line's product and store the line, in payload order,
5. finalize: allocate surcharges and update price history.

Everything runs inside a single ``session.begin()`` block: any failure rolls
the whole ingestion back, so readers never see a partial invoice.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from invoice_engine.config import Settings, settings as default_settings
from invoice_engine.db import get_session_factory
from invoice_engine.errors import DuplicateInvoiceError, IngestError
from invoice_engine.schemas import ImportPayload, parse_payload
from invoice_engine.services.finalization import finalize_invoice
from invoice_engine.services.product_resolver import ProductResolver
from invoice_engine.store import InvoiceStore, translate_errors

logger = structlog.get_logger()


def _dec(value: Optional[float]) -> Optional[Decimal]:
    return None if value is None else Decimal(str(value))


async def resolve_policy(
    store: InvoiceStore,
    payload: ImportPayload,
    supplier_id: int,
    cfg: Settings,
) -> str:
    """Payload option, else the supplier's configured policy, else the default."""
    if payload.options.allocate_surcharges:
        return payload.options.allocate_surcharges
    supplier_policy = await store.get_supplier_policy(supplier_id, payload.invoice_date)
    return supplier_policy or cfg.default_allocation_policy


async def ingest_into(store: InvoiceStore, payload: ImportPayload, cfg: Settings) -> int:
    """
    Run the ingestion steps against an open unit of work.

    The caller owns the transaction; this function only reads and writes.
    """
    log = logger.bind(supplier=payload.supplier, invoice_no=payload.invoice_no)

    supplier_id = await store.upsert_supplier(payload.supplier)

    existing_id = await store.find_invoice(supplier_id, payload.invoice_no)
    invoice_id = None
    if existing_id is None:
        invoice_id = await store.insert_invoice(
            supplier_id=supplier_id,
            invoice_no=payload.invoice_no,
            invoice_date=payload.invoice_date,
            currency=payload.currency or cfg.default_currency,
        )
        if invoice_id is None:
            # created by a concurrent ingestion after our lookup
            existing_id = await store.find_invoice(supplier_id, payload.invoice_no)

    if invoice_id is None:
        if cfg.duplicate_invoice_policy == "reject":
            raise DuplicateInvoiceError(payload.supplier, payload.invoice_no, existing_id)
        log.info("Invoice already ingested", invoice_id=existing_id)
        return existing_id

    log = log.bind(invoice_id=invoice_id)
    log.info("Invoice created", lines=len(payload.items))

    auto_create = payload.options.auto_create_products
    if auto_create is None:
        auto_create = cfg.auto_create_products
    resolver = ProductResolver(
        store,
        auto_create=auto_create,
        default_pieces_per_transport_unit=cfg.default_pieces_per_transport_unit,
    )

    for line_no, item in enumerate(payload.items, start=1):
        product_id = None
        if item.line_type != "shipping":
            product_id = await resolver.resolve(item.product_sku, item.product_name, item.uom)

        await store.insert_item(
            invoice_id=invoice_id,
            product_id=product_id,
            line_no=line_no,
            line_type=item.line_type,
            qty=_dec(item.qty),
            uom=item.uom,
            unit_price_net=_dec(item.unit_price_net),
            tax_rate=_dec(item.tax_rate_percent),
            discount_abs=_dec(item.discount_abs or 0),
        )

    policy = await resolve_policy(store, payload, supplier_id, cfg)
    await finalize_invoice(
        store,
        invoice_id,
        policy,
        fallback=cfg.empty_bucket_fallback,
        allocate_shipping=cfg.allocate_shipping,
    )
    log.info("Invoice ingested", policy=policy)
    return invoice_id


async def ingest(
    payload: Mapping[str, Any] | ImportPayload,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    settings: Optional[Settings] = None,
) -> int:
    """
    Ingest one invoice and return its id.

    Args:
        payload: Raw payload dict (or an already validated ImportPayload)
        session_factory: Session factory; if None, sessions are opened on
            ``settings.database_url``
        settings: Engine settings, the process settings if None

    Raises:
        ValidationError: Malformed payload, nothing written
        UnknownProductError: Unknown SKU with auto-creation disabled
        DuplicateInvoiceError: Known invoice under the ``reject`` policy
        AllocationError: Empty allocation bucket under the ``error`` fallback
        StoreConflictError, StoreUnavailableError: Store failures
    """
    cfg = settings or default_settings
    parsed = parse_payload(payload)
    session_factory = session_factory or get_session_factory(cfg.database_url)

    async with session_factory() as session:
        try:
            with translate_errors("ingest"):
                async with session.begin():
                    return await ingest_into(InvoiceStore(session), parsed, cfg)
        except IngestError as exc:
            logger.warning(
                "Ingestion rolled back",
                supplier=parsed.supplier,
                invoice_no=parsed.invoice_no,
                error_kind=exc.kind,
                error=exc.message,
            )
            raise


async def ingest_payload(
    payload: Mapping[str, Any],
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    settings: Optional[Settings] = None,
) -> dict[str, Any]:
    """
    Ingest an invoice and report the outcome as a result dict.

    Returns:
        ``{"status": "ok", "invoice_id": id}`` or
        ``{"status": "error", "message": str}``
    """
    try:
        invoice_id = await ingest(payload, session_factory=session_factory, settings=settings)
    except IngestError as exc:
        return {"status": "error", "message": exc.message}
    return {"status": "ok", "invoice_id": invoice_id}
