"""
Export service — CSV dump and JSON backup of all orders.
"""
import csv
import io
from datetime import date
from typing import Iterable

from domain.constants import BACKUP_VERSION
from domain.order import Order, utcnow

CSV_HEADER = [
    "Order ID", "Customer Name", "Phone", "Service", "Amount", "Status",
    "Address", "Notes", "Admin Notes", "Created At", "Paid At", "Updated At",
]


def _iso(value) -> str:
    return value.isoformat() if value else ""


def orders_to_csv(orders: Iterable[Order]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for o in orders:
        writer.writerow([
            o.id,
            o.customer_name,
            o.customer_phone,
            o.service,
            o.price,
            o.status.value,
            o.address,
            o.notes,
            o.admin_notes,
            _iso(o.created_at),
            _iso(o.paid_at),
            _iso(o.updated_at),
        ])
    return buf.getvalue()


def backup_payload(orders: Iterable[Order], counter: int) -> dict:
    """Same shape as data/orders.json + counter.json, stamped and versioned."""
    return {
        "timestamp": utcnow().isoformat(),
        "counter": counter,
        "orders": {o.id: o.to_record() for o in orders},
        "version": BACKUP_VERSION,
    }


def dated_filename(prefix: str, extension: str, today: date | None = None) -> str:
    """ecospin_orders_2025-01-31.csv"""
    today = today or utcnow().date()
    return f"{prefix}_{today.isoformat()}.{extension}"
