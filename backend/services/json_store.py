"""
Flat-file order store — orders.json + counter.json under DATA_DIR.

Layout (same as the data/ folder of the earlier Node server):
    orders.json   {"ECOSPIN-0001": {<camelCase order record>}, ...}
    counter.json  {"counter": <next number to issue>}

Every mutation serializes the whole order set and writes both files
atomically (temp file + os.replace) on the shared thread pool. Snapshots
are numbered; a write never replaces the files with an older snapshot,
so interleaved writes from concurrent requests and the auto-save task
cannot roll the files back.

The counter lives in this process only. Running more than one worker
against the same data/ directory will mint duplicate ids.
"""
import asyncio
import json
import logging
import os
import threading
from pathlib import Path
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from domain.errors import DuplicateIdError, NotFoundError, StorageUnavailableError
from domain.order import Order
from services.async_executor import run_blocking
from services.order_store import OrderStore, newest_first

logger = logging.getLogger(__name__)

ORDERS_FILENAME = "orders.json"
COUNTER_FILENAME = "counter.json"


def _atomic_write_json(path: Path, data) -> None:
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp, path)


def _read_json(path: Path):
    """Return parsed JSON, or None if the file does not exist."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None


class JsonFileOrderStore(OrderStore):
    """Order store persisted as JSON files, with the working set in memory."""

    name = "JSON file storage"

    def __init__(self, data_dir: Path | str) -> None:
        self._data_dir = Path(data_dir)
        self._orders_file = self._data_dir / ORDERS_FILENAME
        self._counter_file = self._data_dir / COUNTER_FILENAME
        self._orders: dict[str, Order] = {}
        self._counter = 1

        self._generation = 0
        self._written_generation = 0
        self._file_lock = threading.Lock()  # held only inside worker threads

        self._autosave_task: Optional[asyncio.Task] = None

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    # ── Loading ─────────────────────────────────────────────────────

    async def load(self) -> None:
        """Read both files. Missing files mean a fresh start."""
        try:
            raw_orders, raw_counter = await run_blocking(self._read_files)
        except (OSError, ValueError) as e:  # includes JSONDecodeError, UnicodeDecodeError
            logger.error(f"❌ Error loading order files from {self._data_dir}: {e}")
            raise StorageUnavailableError() from e

        orders = self._parse_orders(raw_orders)
        counter = self._parse_counter(raw_counter)

        self._orders = orders
        self._counter = counter

    def _parse_orders(self, raw_orders) -> dict[str, Order]:
        if raw_orders is None:
            logger.info("📝 No existing orders file found, starting fresh")
            return {}

        orders: dict[str, Order] = {}
        key = None
        try:
            for key, record in raw_orders.items():
                record = dict(record)
                record.setdefault("id", key)
                record.setdefault("updatedAt", record.get("createdAt"))
                orders[key] = Order.from_record(record)
        except PydanticValidationError as e:
            logger.error(f"❌ Invalid order record {key} in {self._orders_file}: {e}")
            raise StorageUnavailableError() from e
        except (AttributeError, TypeError, ValueError) as e:
            logger.error(f"❌ Malformed {self._orders_file}: expected an object of order records ({e})")
            raise StorageUnavailableError() from e
        logger.info(f"📦 Loaded {len(orders)} orders from storage")
        return orders

    def _parse_counter(self, raw_counter) -> int:
        if raw_counter is None:
            logger.info("🔢 No existing counter file found, starting at 1")
            return 1
        try:
            value = raw_counter.get("counter")
            counter = 1 if value is None else int(value)
        except (AttributeError, TypeError, ValueError) as e:
            logger.error(f'❌ Malformed {self._counter_file}: expected {{"counter": N}} ({e})')
            raise StorageUnavailableError() from e
        if counter < 1:
            logger.error(f"❌ Malformed {self._counter_file}: counter must be at least 1, got {counter}")
            raise StorageUnavailableError()
        logger.info(f"🔢 Loaded order counter: {counter}")
        return counter

    def _read_files(self):
        self._data_dir.mkdir(parents=True, exist_ok=True)
        return _read_json(self._orders_file), _read_json(self._counter_file)

    # ── Persistence ─────────────────────────────────────────────────

    def _snapshot(self):
        self._generation += 1
        orders = {oid: order.to_record() for oid, order in self._orders.items()}
        return self._generation, orders, {"counter": self._counter}

    def _write_snapshot(self, generation: int, orders: dict, counter: dict) -> bool:
        with self._file_lock:
            if generation <= self._written_generation:
                return False
            self._data_dir.mkdir(parents=True, exist_ok=True)
            _atomic_write_json(self._orders_file, orders)
            _atomic_write_json(self._counter_file, counter)
            self._written_generation = generation
            return True

    async def save(self) -> None:
        """Write the current snapshot. Raises StorageUnavailableError on I/O failure."""
        generation, orders, counter = self._snapshot()
        try:
            await run_blocking(self._write_snapshot, generation, orders, counter)
        except OSError as e:
            logger.error(f"❌ Error saving orders to {self._data_dir}: {e}")
            raise StorageUnavailableError() from e

    # ── Contract ────────────────────────────────────────────────────

    async def create(self, order: Order) -> Order:
        if order.id in self._orders:
            raise DuplicateIdError(order.id)
        self._orders[order.id] = order
        try:
            await self.save()
        except StorageUnavailableError:
            if self._orders.get(order.id) is order:
                del self._orders[order.id]
            raise
        return order

    async def get(self, order_id: str) -> Optional[Order]:
        return self._orders.get(order_id)

    async def list_all(self) -> list[Order]:
        return newest_first(self._orders.values())

    async def update(self, order: Order) -> Order:
        previous = self._orders.get(order.id)
        if previous is None:
            raise NotFoundError("Order", order.id)
        self._orders[order.id] = order
        try:
            await self.save()
        except StorageUnavailableError:
            if self._orders.get(order.id) is order:
                self._orders[order.id] = previous
            raise
        return order

    async def delete(self, order_id: str) -> None:
        removed = self._orders.pop(order_id, None)
        if removed is None:
            raise NotFoundError("Order", order_id)
        try:
            await self.save()
        except StorageUnavailableError:
            self._orders.setdefault(order_id, removed)
            raise

    async def increment_counter(self) -> int:
        # No await between read and increment: atomic on the event loop.
        value = self._counter
        self._counter += 1
        await self.save()
        return value

    async def get_counter(self) -> int:
        return self._counter

    def persistence_info(self) -> dict:
        return {
            "persistence": self.name,
            "data_directory": str(self._data_dir.resolve()),
        }

    # ── Auto-save ───────────────────────────────────────────────────

    async def _autosave_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.save()
                logger.info("💾 Auto-save completed")
            except StorageUnavailableError:
                logger.error("❌ Auto-save failed")

    def start_autosave(self, interval: float) -> None:
        """Start the periodic backup save as a background asyncio task."""
        if self._autosave_task and not self._autosave_task.done():
            logger.warning("Auto-save already running")
            return
        self._autosave_task = asyncio.create_task(self._autosave_loop(interval))
        logger.info(f"Auto-save task created (every {interval}s)")

    async def stop_autosave(self) -> None:
        task = self._autosave_task
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._autosave_task = None

    async def close(self) -> None:
        """Stop auto-save and write a final snapshot."""
        await self.stop_autosave()
        await self.save()
        logger.info("💾 Data saved successfully")
