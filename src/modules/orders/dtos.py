"""Order DTOs for the service layer.

Framework-agnostic, immutable (``frozen=True``) Pydantic v2 models: the
contract between the API layer (DRF serializers) and ``OrderService``.
DTOs check the *shape* of the data; business preconditions (non-empty
cart, shipping street and city, guest contact email) are enforced by the
service so every caller gets the same client-fault error.
"""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator


class PlaceOrderItemDTO(BaseModel):
    """A requested ``{product_id, quantity}`` line.

    The unit price is never taken from the client; the service captures
    it from the product at reservation time.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class PlaceOrderDTO(BaseModel):
    """Placement request for an authenticated user (``user_id``) or a guest.

    Items are reserved in the order given here.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    items: List[PlaceOrderItemDTO]
    user_id: Optional[int] = None
    payment_method: Optional[str] = None

    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None

    shipping_street: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    shipping_sector: Optional[str] = None
    shipping_address: Optional[str] = None

    notes: Optional[str] = None
    skip_notification: bool = False

    @field_validator("customer_email")
    @classmethod
    def normalise_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @property
    def joined_shipping_address(self) -> str:
        parts = [self.shipping_street, self.shipping_sector, self.shipping_city]
        return ", ".join(p for p in parts if p)


class GuestPlaceOrderDTO(PlaceOrderDTO):
    """Anonymous placement: a contact email is mandatory."""

    customer_email: str
    user_id: None = None
