"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

Input DTOs check shape and types only.  Business checks (empty
order, non-positive quantities, payment requirements) belong to
``OrderService`` so that every caller gets the same typed domain error.
"""

from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """A requested line: which product and how many."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int


class ShippingAddressDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=255)
    address: str = Field(min_length=1)
    phone: str = Field(min_length=1, max_length=32)


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    ``user_id`` is the authenticated caller; ``unit_price`` is never taken
    from the client, the service reads it from the catalog.
    """

    model_config = ConfigDict(frozen=True)

    user_id: Any
    items: List[CreateOrderItemDTO]
    shipping_address: ShippingAddressDTO
    payment_type: str
    payment_method_ref: Optional[UUID] = None
    transaction_id: Optional[str] = None
    payment_screenshot_ref: Optional[str] = None
    notes: str = ""
    idempotency_key: Optional[str] = None


class UpdatePaymentInfoDTO(BaseModel):
    """Payment proof for an open online-transfer order."""

    model_config = ConfigDict(frozen=True)

    transaction_id: Optional[str] = Field(default=None, max_length=64)
    payment_screenshot_ref: Optional[str] = Field(default=None, max_length=255)
