"""
SQLAlchemy ORM models for the relational order store.

Tables:
    orders   — one row per customer order, keyed by the human-readable id
    counters — named integer seeds; the "order_counter" row mints order ids
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, Index,
)

from database import Base


class OrderRecord(Base):
    """A laundry order. Column names follow the JSON → DB migration script."""
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True)  # e.g. ECOSPIN-0001
    service = Column(Text, nullable=False)
    price = Column(Integer, nullable=False)  # whole KSH
    customer_name = Column(String(200), nullable=False)
    customer_phone = Column(String(50), nullable=False)
    address = Column(Text, nullable=False)
    notes = Column(Text, nullable=False, default="")
    status = Column(String(30), nullable=False, default="pending_payment", index=True)
    payment_method = Column(String(30), nullable=False, default="manual_mpesa")
    mpesa_code = Column(Text, nullable=True)  # stored verbatim, no length cap
    admin_notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    pickup_scheduled = Column(Boolean, nullable=False, default=False)
    pickup_date = Column(DateTime(timezone=True), nullable=True)
    delivery_date = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # For newest-first listing
        Index("ix_orders_created_id", "created_at", "id"),
    )


class Counter(Base):
    """
    Named counters.

    value holds the next number to issue, matching counter.json's
    {"counter": N} so migrated data continues the same sequence.
    """
    __tablename__ = "counters"

    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False, default=1)
