"""
Domain constants used across services/routers.
"""
from domain.enums import OrderStatus

PAYMENT_METHOD = "manual_mpesa"
ORDER_COUNTER_NAME = "order_counter"
BACKUP_VERSION = "1.0"

ALLOWED_STATUSES = frozenset(s.value for s in OrderStatus)

# Summary buckets
IN_PROGRESS_STATUSES = (
    OrderStatus.PICKUP_SCHEDULED,
    OrderStatus.PICKED_UP,
    OrderStatus.IN_PROGRESS,
)
REVENUE_STATUSES = (OrderStatus.PAID, OrderStatus.DELIVERED)
