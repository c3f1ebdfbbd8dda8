"""
Inbound invoice payload.

The payload is validated here, before the first write, so a malformed
invoice fails with a single :class:`~invoice_engine.errors.ValidationError`
instead of half-way through the ingestion.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from invoice_engine.errors import ValidationError

LineType = Literal["product", "surcharge", "shipping"]
AllocationPolicy = Literal["none", "per_kg", "per_piece"]

# Column limits of the invoice tables.
NAME_LENGTH = 255
CODE_LENGTH = 64
UOM_LENGTH = 16
# Numeric(18, 6): six decimals, twelve integer digits.
MIN_QTY = 0.000001
MAX_AMOUNT = 10 ** 12


def _strip_or_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class ImportOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    allocate_surcharges: Optional[AllocationPolicy] = None
    auto_create_products: Optional[bool] = Field(None, alias="autoCreateProducts")


class ImportItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    line_type: LineType
    product_sku: Optional[str] = Field(None, max_length=CODE_LENGTH)
    product_name: Optional[str] = Field(None, max_length=NAME_LENGTH)
    qty: float = Field(ge=MIN_QTY, lt=MAX_AMOUNT)
    uom: str = Field(min_length=1, max_length=UOM_LENGTH)
    unit_price_net: float = Field(gt=-MAX_AMOUNT, lt=MAX_AMOUNT)
    tax_rate_percent: Optional[float] = Field(None, ge=0, le=100)
    discount_abs: float = Field(0.0, gt=-MAX_AMOUNT, lt=MAX_AMOUNT)

    @field_validator("product_sku", "product_name", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        return _strip_or_none(value)

    @field_validator("uom", mode="before")
    @classmethod
    def _strip_uom(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("qty", "unit_price_net", "discount_abs", "tax_rate_percent")
    @classmethod
    def _finite(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and not math.isfinite(value):
            raise ValueError("must be a finite number")
        return value

    @model_validator(mode="after")
    def _line_net_fits(self) -> "ImportItem":
        if abs(self.qty * self.unit_price_net) >= MAX_AMOUNT:
            raise ValueError(f"line net must be below {MAX_AMOUNT:,}")
        return self


class ImportPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    supplier: str = Field(min_length=1, max_length=NAME_LENGTH)
    invoice_no: str = Field(min_length=1, max_length=CODE_LENGTH)
    invoice_date: date
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    options: ImportOptions = Field(default_factory=ImportOptions)
    items: list[ImportItem] = Field(min_length=1)

    @field_validator("supplier", "invoice_no", "currency", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return _strip_or_none(value)

    @field_validator("currency")
    @classmethod
    def _upper(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value

    @field_validator("options", mode="before")
    @classmethod
    def _none_options(cls, value: Any) -> Any:
        return {} if value is None else value


def parse_payload(raw: Mapping[str, Any] | ImportPayload) -> ImportPayload:
    """
    Validate a raw payload.

    Raises:
        ValidationError: With every schema violation joined into one message
    """
    if isinstance(raw, ImportPayload):
        return raw
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Payload must be an object, got {type(raw).__name__}")
    try:
        return ImportPayload.model_validate(raw)
    except PydanticValidationError as exc:
        errors = exc.errors(include_url=False)
        message = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in errors
        )
        raise ValidationError(f"Invalid invoice payload: {message}", errors=errors) from exc
