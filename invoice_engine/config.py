# invoice_engine/config.py
"""
Invoice Engine: central configuration
-------------------------------------

* Uses **pydantic-settings** (Pydantic v2).
* Values come from `.env` or environment variables.
* Safe defaults let the engine and the test-suite run without any
  external database (in-memory SQLite).

Business policies that used to be hard-coded (the 100 pieces per
transport unit guess, the per-kg default) live here so that each
deployment can tune them for its own catalog.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


AllocationPolicy = Literal["none", "per_kg", "per_piece"]
EmptyBucketFallback = Literal["drop", "all_products", "error"]
DuplicateInvoicePolicy = Literal["return_existing", "reject"]


class Settings(BaseSettings):
    # ───────────────────────── Database ────────────────────────────────
    database_url: str = Field(
        "sqlite+aiosqlite:///:memory:", alias="DATABASE_URL"
    )
    database_echo: bool = Field(False, alias="DATABASE_ECHO")

    # ───────────────────────── Invoices ────────────────────────────────
    default_currency: str = Field("EUR", alias="DEFAULT_CURRENCY")
    duplicate_invoice_policy: DuplicateInvoicePolicy = Field(
        "return_existing", alias="DUPLICATE_INVOICE_POLICY"
    )

    # ───────────────────────── Products ────────────────────────────────
    auto_create_products: bool = Field(False, alias="AUTO_CREATE_PRODUCTS")
    default_pieces_per_transport_unit: int = Field(
        100, alias="DEFAULT_PIECES_PER_TRANSPORT_UNIT", gt=0
    )

    # ───────────────────────── Allocation ──────────────────────────────
    default_allocation_policy: AllocationPolicy = Field(
        "per_kg", alias="DEFAULT_ALLOCATION_POLICY"
    )
    empty_bucket_fallback: EmptyBucketFallback = Field(
        "drop", alias="EMPTY_BUCKET_FALLBACK"
    )
    allocate_shipping: bool = Field(True, alias="ALLOCATE_SHIPPING")

    # ───────────────────────── Price history ───────────────────────────
    price_outlier_threshold: float = Field(
        3.5, alias="PRICE_OUTLIER_THRESHOLD", gt=0
    )

    # ───────────────────────── Logging ─────────────────────────────────
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(True, alias="LOG_JSON")

    # ─────────────────── pydantic-settings config ──────────────────────
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def db_url(self) -> str:
        return self.database_url


settings = Settings()
