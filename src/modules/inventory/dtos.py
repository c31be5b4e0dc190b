"""Stock ledger DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator


class RecordStockMovementDTO(BaseModel):
    """Manual restock or correction.

    Sales and restorations are written by the order core, so only
    ``RESTOCK`` and ``ADJUSTMENT`` can be recorded by hand.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    delta_quantity: int
    unit_cost: Decimal = Decimal("0")
    reason: Literal["RESTOCK", "ADJUSTMENT"] = "RESTOCK"
    note: str = ""

    @field_validator("delta_quantity")
    @classmethod
    def delta_must_be_non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("delta_quantity must not be zero.")
        return v

    @field_validator("unit_cost")
    @classmethod
    def unit_cost_must_be_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("unit_cost cannot be negative.")
        return v
