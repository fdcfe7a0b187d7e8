"""
Order Cache — in-process id → Order map serving every read path.

The cache is advisory: the store is the source of truth and the cache can be
rebuilt from it at any time. It is kept coherent two ways:
    - write-through: OrderService upserts/removes right after each store write
    - a periodic background refresh (safety net against drift)

A refresh may take a while on the database backend. Writes that land while
it is in flight are replayed over the freshly loaded snapshot, so a refresh
never brings back a deleted order or an older copy of an updated one.
"""
import asyncio
import logging
from typing import Optional

from domain.order import Order, utcnow
from services.order_store import OrderStore, newest_first

logger = logging.getLogger(__name__)


class OrderCache:
    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        # One log per in-flight refresh: id → Order (upsert) or None (remove)
        self._refresh_logs: list[dict[str, Optional[Order]]] = []
        self._refresh_task: Optional[asyncio.Task] = None
        self.last_refreshed_at = None

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: str) -> bool:
        return order_id in self._orders

    # ── Reads ───────────────────────────────────────────────────────

    def get(self, order_id: str) -> Optional[Order]:
        return self._orders.get(order_id)

    def list_all(self) -> list[Order]:
        return newest_first(self._orders.values())

    # ── Writes ──────────────────────────────────────────────────────

    def upsert(self, order: Order) -> None:
        self._orders[order.id] = order
        for log in self._refresh_logs:
            log[order.id] = order

    def remove(self, order_id: str) -> None:
        self._orders.pop(order_id, None)
        for log in self._refresh_logs:
            log[order_id] = None

    async def refresh_all(self, store: OrderStore) -> int:
        """Reload every order from the store. Returns the cached count."""
        log: dict[str, Optional[Order]] = {}
        self._refresh_logs.append(log)
        try:
            loaded = await store.list_all()
            fresh = {order.id: order for order in loaded}
            for order_id, order in log.items():
                if order is None:
                    fresh.pop(order_id, None)
                else:
                    fresh[order_id] = order
            self._orders = fresh
        finally:
            self._refresh_logs = [other for other in self._refresh_logs if other is not log]
        self.last_refreshed_at = utcnow()
        return len(self._orders)

    # ── Periodic refresh ────────────────────────────────────────────

    async def _refresh_loop(self, store: OrderStore, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                count = await self.refresh_all(store)
                logger.debug(f"Order cache refreshed ({count} orders)")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Order cache refresh failed: {e}")

    def start_refresher(self, store: OrderStore, interval: float) -> None:
        """Start the periodic full refresh as a background asyncio task."""
        if self._refresh_task and not self._refresh_task.done():
            logger.warning("Cache refresher already running")
            return
        self._refresh_task = asyncio.create_task(self._refresh_loop(store, interval))
        logger.info(f"Cache refresher created (every {interval}s)")

    async def stop_refresher(self) -> None:
        task = self._refresh_task
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._refresh_task = None
        logger.info("Cache refresher stopped")

    @property
    def refresher_running(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()
