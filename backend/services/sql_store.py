"""
Relational order store — one `orders` row per order, one `counters` row
per named counter, via async SQLAlchemy.

Id allocation is a single `UPDATE counters SET value = value + 1 ... RETURNING`
statement, so concurrent requests (and separate worker processes sharing
the database) never read the same counter value. SQLite needs 3.35+ for
RETURNING; PostgreSQL works through asyncpg.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database import create_engine, create_sessionmaker, init_db
from db_models import Counter, OrderRecord
from domain.constants import ORDER_COUNTER_NAME
from domain.errors import DuplicateIdError, NotFoundError, StorageUnavailableError
from domain.order import Order
from services.order_store import OrderStore

logger = logging.getLogger(__name__)

# Order attribute → orders column. Identical names today, kept explicit so the
# table layout can drift from the API model without touching call sites.
_COLUMNS = (
    "id", "service", "price", "customer_name", "customer_phone", "address",
    "notes", "status", "payment_method", "mpesa_code", "admin_notes",
    "created_at", "paid_at", "updated_at", "pickup_scheduled", "pickup_date",
    "delivery_date",
)


def _to_columns(order: Order) -> dict:
    values = {name: getattr(order, name) for name in _COLUMNS}
    values["status"] = order.status.value
    return values


def _from_row(row: OrderRecord) -> Order:
    return Order(**{name: getattr(row, name) for name in _COLUMNS})


class SqlOrderStore(OrderStore):
    """Order store backed by a relational database."""

    name = "database"

    def __init__(self, database_url: str, echo: bool = False, **engine_kwargs) -> None:
        self._engine = create_engine(database_url, echo=echo, **engine_kwargs)
        self._sessionmaker = create_sessionmaker(self._engine)

    @asynccontextmanager
    async def _session_scope(self) -> AsyncIterator[AsyncSession]:
        """Commit on success; driver errors become StorageUnavailableError."""
        async with self._sessionmaker() as db:
            try:
                yield db
                await db.commit()
            except (SQLAlchemyError, OSError) as e:
                logger.error(f"❌ Database error: {e}")
                raise StorageUnavailableError() from e

    async def load(self) -> None:
        try:
            await init_db(self._engine)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"❌ Database initialization failed: {e}")
            raise StorageUnavailableError() from e
        await self._ensure_counter()

    async def _ensure_counter(self) -> None:
        try:
            async with self._session_scope() as db:
                if await db.get(Counter, ORDER_COUNTER_NAME) is None:
                    db.add(Counter(name=ORDER_COUNTER_NAME, value=1))
                    await db.flush()
                    logger.info("🔢 Order counter initialized at 1")
        except StorageUnavailableError as e:
            # Another process inserted the row first.
            if not isinstance(e.__cause__, IntegrityError):
                raise

    async def close(self) -> None:
        await self._engine.dispose()

    # ── Contract ────────────────────────────────────────────────────

    async def create(self, order: Order) -> Order:
        async with self._session_scope() as db:
            if await db.get(OrderRecord, order.id) is not None:
                raise DuplicateIdError(order.id)
            db.add(OrderRecord(**_to_columns(order)))
            try:
                await db.flush()
            except IntegrityError as e:
                raise DuplicateIdError(order.id) from e
        return order

    async def get(self, order_id: str) -> Optional[Order]:
        async with self._session_scope() as db:
            row = await db.get(OrderRecord, order_id)
            return _from_row(row) if row is not None else None

    async def list_all(self) -> list[Order]:
        async with self._session_scope() as db:
            res = await db.execute(
                select(OrderRecord).order_by(OrderRecord.created_at.desc(), OrderRecord.id.desc())
            )
            return [_from_row(row) for row in res.scalars().all()]

    async def update(self, order: Order) -> Order:
        async with self._session_scope() as db:
            row = await db.get(OrderRecord, order.id)
            if row is None:
                raise NotFoundError("Order", order.id)
            for name, value in _to_columns(order).items():
                if name != "id":
                    setattr(row, name, value)
        return order

    async def delete(self, order_id: str) -> None:
        async with self._session_scope() as db:
            row = await db.get(OrderRecord, order_id)
            if row is None:
                raise NotFoundError("Order", order_id)
            await db.delete(row)

    async def increment_counter(self) -> int:
        for _ in range(2):
            async with self._session_scope() as db:
                res = await db.execute(
                    update(Counter)
                    .where(Counter.name == ORDER_COUNTER_NAME)
                    .values(value=Counter.value + 1)
                    .returning(Counter.value)
                    .execution_options(synchronize_session=False)
                )
                new_value = res.scalar_one_or_none()
            if new_value is not None:
                return new_value - 1
            # Counter row missing (fresh or externally cleared table)
            await self._ensure_counter()
        raise StorageUnavailableError()

    async def set_counter(self, value: int) -> None:
        """Overwrite the counter (one-shot JSON → database migration only)."""
        async with self._session_scope() as db:
            row = await db.get(Counter, ORDER_COUNTER_NAME)
            if row is None:
                db.add(Counter(name=ORDER_COUNTER_NAME, value=value))
            else:
                row.value = value

    async def get_counter(self) -> int:
        async with self._session_scope() as db:
            res = await db.execute(select(Counter.value).where(Counter.name == ORDER_COUNTER_NAME))
            value = res.scalar_one_or_none()
            return value if value is not None else 1

    def persistence_info(self) -> dict:
        return {
            "persistence": self.name,
            "database_backend": self._engine.url.get_backend_name(),
        }
