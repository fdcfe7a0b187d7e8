"""
Order service — the order lifecycle controller.

Owns the status state machine and the write path:

    validate → (allocate id) → store write → cache upsert → detached email

The store and cache are updated inside the same method, store first, so the
cache never shows a write the store rejected. Reads are served from the
cache only.

Lifecycle rules:
    - any of the seven statuses may follow any other, forwards or backwards
    - entering `paid` from `paid` is rejected (AlreadyPaidError)
    - paidAt is stamped the first time an order enters `paid` and kept after

Concurrent mutations of one order are not serialized: the later write wins.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from domain.constants import ALLOWED_STATUSES
from domain.enums import NotificationKind, OrderStatus
from domain.errors import (
    AlreadyPaidError,
    InvalidStatusError,
    MissingFieldsError,
    NotFoundError,
    ValidationError,
)
from domain.order import Order, utcnow
from domain.summary import summarize
from services.export_service import backup_payload
from services.id_allocator import IdentifierAllocator
from services.notification_service import NotificationDispatcher
from services.order_cache import OrderCache
from services.order_store import OrderStore

logger = logging.getLogger(__name__)

# Field names as posted by the order form
REQUIRED_FIELDS = ("service", "price", "name", "phone", "address")

_optional_datetime = TypeAdapter(Optional[datetime])


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_price(value: Any) -> int:
    """Whole, non-negative KSH amount. The web form posts it as a string."""
    if isinstance(value, bool):
        raise ValidationError("must be a whole number", field="price")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ValidationError("must be a whole number", field="price")
    if not isinstance(value, int):
        raise ValidationError("must be a whole number", field="price")
    if value < 0:
        raise ValidationError("must not be negative", field="price")
    return value


def parse_status(value: Any) -> OrderStatus:
    if not isinstance(value, str) or value not in ALLOWED_STATUSES:
        raise InvalidStatusError(value)
    return OrderStatus(value)


def _parse_optional_datetime(value: Any, field: str) -> Optional[datetime]:
    if _is_missing(value):
        return None
    try:
        return _optional_datetime.validate_python(value)
    except PydanticValidationError:
        raise ValidationError("must be an ISO 8601 date/time", field=field)


class OrderService:
    def __init__(
        self,
        *,
        store: OrderStore,
        cache: OrderCache,
        allocator: IdentifierAllocator,
        notifier: NotificationDispatcher,
        business_number: str = "",
    ) -> None:
        self.store = store
        self.cache = cache
        self.allocator = allocator
        self.notifier = notifier
        self.business_number = business_number
        self._pending_notifications: set[asyncio.Task] = set()

    # ── Reads (cache only) ──────────────────────────────────────────

    def get_order(self, order_id: str) -> Order:
        order = self.cache.get(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def list_orders(self) -> list[Order]:
        return self.cache.list_all()

    def summary(self) -> dict:
        return summarize(self.cache.list_all())

    def mpesa_instructions(self, order: Order) -> dict:
        return {
            "amount": order.price,
            "phoneNumber": self.business_number,
            "reference": order.id,
        }

    async def refresh_cache(self) -> int:
        return await self.cache.refresh_all(self.store)

    async def backup_snapshot(self) -> dict:
        """Every order plus the counter, in the orders.json/counter.json shape."""
        return backup_payload(self.list_orders(), counter=await self.store.get_counter())

    # ── Mutations ───────────────────────────────────────────────────

    async def create_order(self, payload: Mapping[str, Any]) -> Order:
        """
        Create a pending_payment order from order-form fields.

        Args:
            payload: service, price, name, phone, address, and optionally
                notes, pickupScheduled, pickupDate, deliveryDate.

        Raises:
            MissingFieldsError: a required field is absent or blank.
                Nothing is allocated or persisted.
            ValidationError: price or a date is malformed.
            StorageUnavailableError: the id or the order could not be written.
        """
        missing = [f for f in REQUIRED_FIELDS if _is_missing(payload.get(f))]
        if missing:
            raise MissingFieldsError(missing)

        price = parse_price(payload["price"])
        pickup_date = _parse_optional_datetime(payload.get("pickupDate"), "pickupDate")
        delivery_date = _parse_optional_datetime(payload.get("deliveryDate"), "deliveryDate")

        order_id = await self.allocator.allocate()
        now = utcnow()
        order = Order(
            id=order_id,
            service=str(payload["service"]),
            price=price,
            customer_name=str(payload["name"]),
            customer_phone=str(payload["phone"]),
            address=str(payload["address"]),
            notes=str(payload.get("notes") or ""),
            status=OrderStatus.PENDING_PAYMENT,
            created_at=now,
            updated_at=now,
            pickup_scheduled=bool(payload.get("pickupScheduled") or False),
            pickup_date=pickup_date,
            delivery_date=delivery_date,
        )

        await self.store.create(order)
        self.cache.upsert(order)

        logger.info(
            f"📦 New order created: {order.id} for {order.customer_name} - "
            f"{order.service} (KSH {order.price})"
        )
        self._dispatch(NotificationKind.NEW_ORDER_ADMIN, order)
        return order

    async def confirm_payment(self, order_id: str, mpesa_code: Optional[str] = None) -> Order:
        """Mark an order paid, recording the M-Pesa reference if given."""
        current = self.get_order(order_id)
        if current.status == OrderStatus.PAID:
            raise AlreadyPaidError(order_id)

        order = self._transition(current, OrderStatus.PAID, mpesa_code=mpesa_code)
        await self._save(order)

        logger.info(
            f"✅ Payment confirmed for order: {order_id} - {order.customer_name}, "
            f"Ref: {mpesa_code or 'N/A'}"
        )
        self._dispatch(NotificationKind.PAYMENT_CONFIRMED, order)
        return order

    async def update_status(
        self,
        order_id: str,
        status: Any,
        admin_notes: Optional[str] = None,
        notify: bool = False,
    ) -> Order:
        """
        Move an order to any allowed status.

        Non-empty admin_notes replace the previous notes. With notify=True an
        update email goes out, but only if the status actually changed.
        """
        current = self.get_order(order_id)
        target = parse_status(status)
        if target == OrderStatus.PAID and current.status == OrderStatus.PAID:
            raise AlreadyPaidError(order_id)

        old_status = current.status
        order = self._transition(current, target, admin_notes=admin_notes)
        await self._save(order)

        logger.info(f"📝 Order {order_id} status updated from {old_status.value} to: {target.value}")
        if notify and old_status != target:
            self._dispatch(NotificationKind.ORDER_STATUS_UPDATE, order, old_status)
        return order

    async def delete_order(self, order_id: str) -> None:
        """Permanently remove an order from the store and the cache."""
        try:
            await self.store.delete(order_id)
        except NotFoundError:
            self.cache.remove(order_id)
            raise
        self.cache.remove(order_id)
        logger.info(f"🗑️ Order deleted: {order_id}")

    # ── Internals ───────────────────────────────────────────────────

    @staticmethod
    def _transition(
        current: Order,
        target: OrderStatus,
        *,
        admin_notes: Optional[str] = None,
        mpesa_code: Optional[str] = None,
    ) -> Order:
        changes: dict[str, Any] = {"status": target, "updated_at": utcnow()}
        if target == OrderStatus.PAID and current.paid_at is None:
            changes["paid_at"] = changes["updated_at"]
        if mpesa_code:
            changes["mpesa_code"] = mpesa_code
        if admin_notes:
            changes["admin_notes"] = admin_notes
        return current.with_changes(**changes)

    async def _save(self, order: Order) -> None:
        try:
            await self.store.update(order)
        except NotFoundError:
            self.cache.remove(order.id)
            raise
        self.cache.upsert(order)

    def _dispatch(
        self,
        kind: NotificationKind,
        order: Order,
        old_status: Optional[OrderStatus] = None,
    ) -> None:
        """Hand the email to a detached task; the caller does not wait for it."""
        task = asyncio.create_task(self.notifier.notify_admin(kind, order, old_status))
        self._pending_notifications.add(task)
        task.add_done_callback(self._pending_notifications.discard)

    async def drain_notifications(self) -> None:
        """Wait for in-flight emails (shutdown and tests)."""
        if self._pending_notifications:
            await asyncio.gather(*list(self._pending_notifications), return_exceptions=True)
