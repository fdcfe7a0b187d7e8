"""
Order summary counters for the dashboard and health endpoint.
"""
from typing import Iterable

from domain.constants import IN_PROGRESS_STATUSES, REVENUE_STATUSES
from domain.enums import OrderStatus
from domain.order import Order


def summarize(orders: Iterable[Order]) -> dict:
    orders = list(orders)
    return {
        "total": len(orders),
        "pending": sum(1 for o in orders if o.status == OrderStatus.PENDING_PAYMENT),
        "paid": sum(1 for o in orders if o.status == OrderStatus.PAID),
        "in_progress": sum(1 for o in orders if o.status in IN_PROGRESS_STATUSES),
        "completed": sum(1 for o in orders if o.status == OrderStatus.DELIVERED),
        "totalRevenue": sum(o.price for o in orders if o.status in REVENUE_STATUSES),
        "pendingRevenue": sum(o.price for o in orders if o.status == OrderStatus.PENDING_PAYMENT),
    }


def health_summary(orders: Iterable[Order]) -> dict:
    """Counts only; the health endpoint does not report revenue."""
    full = summarize(orders)
    return {k: full[k] for k in ("total", "pending", "paid", "in_progress", "completed")}
