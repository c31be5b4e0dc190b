"""Product DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateProductDTO``: input for product creation.
- ``UpdateProductDTO``: input for partial product updates (price, flags).
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation requests.

    ``initial_stock`` is not a column: when positive it becomes the first
    ``RESTOCK`` movement in the ledger, priced at ``initial_unit_cost``.
    """

    model_config = ConfigDict(frozen=True)

    sku: str
    name: str
    price: Decimal
    description: str = ""
    disabled: bool = False
    out_of_stock: bool = False
    allow_sell_without_stock: bool = False
    initial_stock: int = 0
    initial_unit_cost: Decimal = Decimal("0")

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v

    @field_validator("initial_stock")
    @classmethod
    def initial_stock_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Initial stock cannot be negative.")
        return v

    @field_validator("initial_unit_cost")
    @classmethod
    def unit_cost_must_be_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Unit cost cannot be negative.")
        return v

    @field_validator("sku")
    @classmethod
    def sku_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("SKU must not be empty.")
        return v.strip().upper()


class UpdateProductDTO(BaseModel):
    """Immutable DTO for product update requests.

    All fields are optional; only supplied fields are updated.  Stock is
    not editable here, use a stock movement instead.
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    description: str | None = None
    price: Decimal | None = None
    disabled: bool | None = None
    out_of_stock: bool | None = None
    allow_sell_without_stock: bool | None = None

    @field_validator("price")
    @classmethod
    def price_must_be_positive(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v <= 0:
            raise ValueError("Price must be greater than zero.")
        return v
