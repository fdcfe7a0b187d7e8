"""
Domain enums for the order lifecycle and notifications.
"""

from enum import Enum


class OrderStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    PICKUP_SCHEDULED = "pickup_scheduled"
    PICKED_UP = "picked_up"
    IN_PROGRESS = "in_progress"
    READY_FOR_DELIVERY = "ready_for_delivery"
    DELIVERED = "delivered"

    @property
    def label(self) -> str:
        """Human-readable form used in email subjects, e.g. 'PICKUP SCHEDULED'."""
        return self.value.replace("_", " ").upper()


class NotificationKind(str, Enum):
    NEW_ORDER_ADMIN = "new_order_admin"
    PAYMENT_CONFIRMED = "payment_confirmed"
    ORDER_STATUS_UPDATE = "order_status_update"
