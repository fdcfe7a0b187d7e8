"""
Database engine and session helpers for the relational order store.

Uses SQLAlchemy async engine with aiosqlite for non-blocking DB operations
inside FastAPI. The engine is owned by SqlOrderStore (one per process) rather
than created at import time, so the JSON backend never opens a database.
"""
import logging
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


# ── Engine ──────────────────────────────────────────────────────────

def to_async_url(url: str) -> str:
    """Convert sqlite:///... → sqlite+aiosqlite:///... for the async driver."""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def ensure_sqlite_directory(url: str) -> None:
    """Create the parent folder of a file-backed SQLite database."""
    if url.startswith("sqlite") and ":memory:" not in url and ":///" in url:
        db_path = url.split(":///", 1)[-1]
        Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def create_engine(url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    ensure_sqlite_directory(url)
    return create_async_engine(to_async_url(url), echo=echo, future=True, **kwargs)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# ── Helpers ─────────────────────────────────────────────────────────

async def init_db(engine: AsyncEngine) -> None:
    """Create all tables. Called once on store load."""
    # Import models so Base.metadata knows about them
    import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created (or already exist)")
