"""
Thread pools for blocking file and SMTP work.

orders.json/counter.json snapshot writes and smtplib sends are synchronous;
they run here so the event loop keeps serving requests. Each kind of work
gets its own pool: a mail server stalling for the full SMTP timeout must not
hold up the order writes queued behind it.
"""
import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

FILES_POOL = "files"
SMTP_POOL = "smtp"

# pool name → max worker threads
_POOL_SIZES = {
    FILES_POOL: 2,
    SMTP_POOL: 4,
}
_executors: dict[str, ThreadPoolExecutor] = {}

T = TypeVar("T")


def get_executor(pool: str = FILES_POOL) -> ThreadPoolExecutor:
    """Lazily create the named pool."""
    executor = _executors.get(pool)
    if executor is None:
        workers = _POOL_SIZES[pool]
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"ecospin_{pool}_")
        _executors[pool] = executor
        logger.info(f"Thread pool '{pool}' initialized (max_workers={workers})")
    return executor


async def run_blocking(func: Callable[..., T], *args: Any, pool: str = FILES_POOL, **kwargs: Any) -> T:
    """Await a synchronous call running on one of the pools."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_executor(pool), functools.partial(func, *args, **kwargs))


def shutdown_executor() -> None:
    """Wait for queued work and close every pool (app shutdown)."""
    for pool, executor in list(_executors.items()):
        executor.shutdown(wait=True)
        del _executors[pool]
        logger.info(f"Thread pool '{pool}' shut down")
