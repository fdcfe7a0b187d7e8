"""
Order Store — the durable owner of order records and the id counter.

Two interchangeable backends implement this contract:
    - JsonFileOrderStore: orders.json + counter.json, whole snapshot per write
    - SqlOrderStore:      `orders` and `counters` tables via async SQLAlchemy

The backend is chosen once at startup from settings.storage_backend.

Known limitation: update() is a full-record replace with no version token.
Two concurrent updates to the same order race and the later write wins.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from domain.order import Order


def newest_first(orders) -> list[Order]:
    """Sort by createdAt descending, ties broken by id descending."""
    return sorted(orders, key=lambda o: (o.created_at, o.id), reverse=True)


class OrderStore(ABC):
    """Async persistence contract shared by both backends."""

    name: str = "abstract"

    async def load(self) -> None:
        """Prepare the backend (read files / create tables)."""

    async def close(self) -> None:
        """Release resources on shutdown."""

    @abstractmethod
    async def create(self, order: Order) -> Order:
        """Insert a new order. Raises DuplicateIdError if the id exists."""

    @abstractmethod
    async def get(self, order_id: str) -> Optional[Order]:
        """Return the order or None."""

    @abstractmethod
    async def list_all(self) -> list[Order]:
        """All orders, newest createdAt first."""

    @abstractmethod
    async def update(self, order: Order) -> Order:
        """Replace the stored record. Raises NotFoundError if absent."""

    @abstractmethod
    async def delete(self, order_id: str) -> None:
        """Remove the order. Raises NotFoundError if absent."""

    @abstractmethod
    async def increment_counter(self) -> int:
        """Atomically claim the next counter value and return it."""

    @abstractmethod
    async def get_counter(self) -> int:
        """The next value increment_counter() would return."""

    def persistence_info(self) -> dict:
        """Backend description for the health endpoint."""
        return {"persistence": self.name}


def create_store(settings) -> OrderStore:
    """Build the store selected by settings.storage_backend."""
    backend = settings.storage_backend
    if backend == "json":
        from services.json_store import JsonFileOrderStore
        return JsonFileOrderStore(settings.data_path)
    if backend == "database":
        from services.sql_store import SqlOrderStore
        return SqlOrderStore(settings.database_url, echo=False)
    raise ValueError(f"Unknown storage backend: {backend!r}")
