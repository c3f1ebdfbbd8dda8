"""
invoice_engine package init
───────────────────────────
* Short imports for the public surface: ``from invoice_engine import ingest, allocate``.
* Executes nothing at import time (important for pytest and alembic).
"""

from __future__ import annotations

from .config import settings  # noqa: F401
from .errors import (  # noqa: F401
    AllocationError,
    DuplicateInvoiceError,
    IngestError,
    StoreConflictError,
    StoreUnavailableError,
    UnknownProductError,
    ValidationError,
)
from .services.allocator import allocate  # noqa: F401
from .services.ingestion import ingest, ingest_payload  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "settings",
    "ingest",
    "ingest_payload",
    "allocate",
    # errors
    "IngestError",
    "ValidationError",
    "UnknownProductError",
    "DuplicateInvoiceError",
    "AllocationError",
    "StoreConflictError",
    "StoreUnavailableError",
]
