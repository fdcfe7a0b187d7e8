"""
Identifier Allocator — mints human-readable order ids (ECOSPIN-0001, ...).

Uniqueness comes from the store's atomic increment-and-read; this class
never reads the counter and writes it back in separate steps.
"""
import logging

from services.order_store import OrderStore

logger = logging.getLogger(__name__)


def format_order_id(prefix: str, number: int) -> str:
    """Zero-pad to 4 digits; larger numbers simply grow wider."""
    return f"{prefix}-{number:04d}"


class IdentifierAllocator:
    def __init__(self, store: OrderStore, prefix: str) -> None:
        self._store = store
        self._prefix = prefix

    async def allocate(self) -> str:
        """
        Claim the next order id.

        Raises:
            StorageUnavailableError: the counter could not be incremented.
                No id is returned in that case.
        """
        number = await self._store.increment_counter()
        return format_order_id(self._prefix, number)
