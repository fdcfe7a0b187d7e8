"""
The Order record shared by every layer.

Python code uses snake_case attributes; JSON (HTTP bodies and orders.json)
uses the camelCase aliases the web frontend and admin dashboard expect.
All timestamps are held as timezone-aware UTC datetimes.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.constants import PAYMENT_METHOD
from domain.enums import OrderStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Tag naive datetimes as UTC (SQLite drops tzinfo) and convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Order(BaseModel):
    """A customer order and its fulfilment state."""
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str
    service: str
    price: int = Field(..., ge=0, description="Whole KSH")
    customer_name: str = Field(..., alias="customerName")
    customer_phone: str = Field(..., alias="customerPhone")
    address: str
    notes: str = ""
    status: OrderStatus = OrderStatus.PENDING_PAYMENT
    payment_method: str = Field(PAYMENT_METHOD, alias="paymentMethod")
    mpesa_code: Optional[str] = Field(None, alias="mpesaCode")
    admin_notes: str = Field("", alias="adminNotes")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    paid_at: Optional[datetime] = Field(None, alias="paidAt")
    pickup_scheduled: bool = Field(False, alias="pickupScheduled")
    pickup_date: Optional[datetime] = Field(None, alias="pickupDate")
    delivery_date: Optional[datetime] = Field(None, alias="deliveryDate")

    @field_validator("created_at", "updated_at", "paid_at", "pickup_date", "delivery_date")
    @classmethod
    def _normalize_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @field_validator("notes", "admin_notes", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def with_changes(self, **changes: Any) -> "Order":
        """Return a validated copy with the given attributes replaced."""
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)

    def to_record(self) -> dict:
        """JSON-ready camelCase dict (used for HTTP responses and orders.json)."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: dict) -> "Order":
        return cls.model_validate(record)
