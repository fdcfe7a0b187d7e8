"""
Pydantic models for request/response validation.

Request bodies are deliberately loose on the required order fields:
presence is checked by OrderService so a missing field yields the
400 "Missing required fields" response instead of a validation error.
Numbers posted for text fields (a phone typed as 712345678) are
accepted and turned into strings by to_payload().
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional, Union
from datetime import datetime

# Text field the form may post as a JSON number
TextOrNumber = Optional[Union[str, int]]


def _text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class ApiBase(BaseModel):
    """Shared base — allows construction by Python name or camelCase alias."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Requests ────────────────────────────────────────────────────────

class CreateOrderRequest(ApiBase):
    """Order form submission."""
    service: TextOrNumber = None
    price: Optional[Union[int, str]] = Field(
        default=None,
        description="Whole KSH; the form posts it as a string",
    )
    name: TextOrNumber = None
    phone: TextOrNumber = None
    address: TextOrNumber = None
    notes: TextOrNumber = None
    pickup_scheduled: bool = Field(default=False, alias="pickupScheduled")
    pickup_date: Optional[str] = Field(default=None, alias="pickupDate")
    delivery_date: Optional[str] = Field(default=None, alias="deliveryDate")

    def to_payload(self) -> dict:
        """Field names as OrderService.create_order expects them."""
        return {
            "service": _text(self.service),
            "price": self.price,
            "name": _text(self.name),
            "phone": _text(self.phone),
            "address": _text(self.address),
            "notes": _text(self.notes),
            "pickupScheduled": self.pickup_scheduled,
            "pickupDate": self.pickup_date,
            "deliveryDate": self.delivery_date,
        }


class ConfirmPaymentRequest(ApiBase):
    mpesa_code: Optional[str] = Field(
        default=None,
        alias="mpesaCode",
        description="M-Pesa transaction code, stored verbatim",
    )


class StatusUpdateRequest(ApiBase):
    # Checked against the allow-list by OrderService (400 invalid_status)
    status: Any = Field(default=None, description="One of the seven lifecycle statuses")
    admin_notes: Optional[str] = Field(default=None, alias="adminNotes")
    notify_customer: bool = Field(default=False, alias="notifyCustomer")


# ── Responses ───────────────────────────────────────────────────────

class MpesaInstructions(ApiBase):
    amount: int
    phone_number: str = Field(..., alias="phoneNumber")
    reference: str


class CreatedOrder(ApiBase):
    """Subset of the order returned to the customer after submission."""
    id: str
    service: str
    price: int
    status: str
    created_at: datetime = Field(..., alias="createdAt")
    mpesa_instructions: MpesaInstructions = Field(..., alias="mpesaInstructions")
