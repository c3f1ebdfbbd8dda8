"""
Error types raised by the invoice engine.

Every failure that aborts an ingestion derives from :class:`IngestError`
so callers can turn it into the ``{"status": "error"}`` result with a
single ``except`` clause.
"""

from __future__ import annotations

from typing import Optional


class IngestError(Exception):
    """Base class for all ingestion failures."""

    kind = "ingest_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(IngestError):
    """Malformed payload or argument, detected before any write."""

    kind = "validation_error"

    def __init__(self, message: str, errors: Optional[list[dict]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class UnknownProductError(IngestError):
    """SKU is not in the catalog and auto-creation is disabled."""

    kind = "unknown_product"

    def __init__(self, sku: str) -> None:
        super().__init__(f"Unknown SKU {sku} and autoCreateProducts=false")
        self.sku = sku


class DuplicateInvoiceError(IngestError):
    """An invoice with the same supplier and number already exists."""

    kind = "duplicate_invoice"

    def __init__(self, supplier: str, invoice_no: str, invoice_id: int) -> None:
        super().__init__(
            f"Invoice {invoice_no} from {supplier} already exists (id={invoice_id})"
        )
        self.supplier = supplier
        self.invoice_no = invoice_no
        self.invoice_id = invoice_id


class AllocationError(IngestError):
    """Surcharge could not be allocated under the configured fallback."""

    kind = "allocation_error"


class StoreConflictError(IngestError):
    """Uniqueness violation caused by a concurrent insert."""

    kind = "store_conflict"


class StoreUnavailableError(IngestError):
    """The record store cannot be reached or rejected the write."""

    kind = "store_unavailable"
