"""
Migration: copy data/orders.json + data/counter.json into the database.

One-shot move from the flat-file backend to STORAGE_BACKEND=database.
Skipped entirely when the database already holds orders, so it is safe
to run twice. The JSON files are copied to data/backup/ afterwards.

Run from the backend/ directory:
    python scripts/migrate_to_db.py
"""
import asyncio
import os
import shutil
import sys
from datetime import date
from pathlib import Path

# Add backend/ to path so we can import config
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from config import settings
from domain.errors import DuplicateIdError, StorageUnavailableError
from services.json_store import COUNTER_FILENAME, ORDERS_FILENAME, JsonFileOrderStore
from services.sql_store import SqlOrderStore


def backup_json_files(data_dir: Path, today: date | None = None) -> list[Path]:
    """Copy orders.json/counter.json into data/backup/ with a dated name."""
    stamp = (today or date.today()).isoformat()
    backup_dir = data_dir / "backup"
    backup_dir.mkdir(parents=True, exist_ok=True)

    copied = []
    for filename, prefix in ((ORDERS_FILENAME, "orders"), (COUNTER_FILENAME, "counter")):
        source = data_dir / filename
        if not source.exists():
            print(f"⚠️  Could not create backup of {filename}")
            continue
        target = backup_dir / f"{prefix}_backup_{stamp}.json"
        shutil.copyfile(source, target)
        copied.append(target)
        print(f"💾 Created backup of {filename}")
    return copied


async def migrate(json_store: JsonFileOrderStore, sql_store: SqlOrderStore) -> int:
    """Copy every order and the counter. Returns the number of orders migrated."""
    print("🔄 Starting migration from JSON to database...")

    await json_store.load()
    orders = await json_store.list_all()
    counter = await json_store.get_counter()
    print(f"📦 Found {len(orders)} orders in JSON file")
    print(f"🔢 Found counter: {counter}")

    await sql_store.load()
    existing = await sql_store.list_all()
    if existing:
        print(f"⚠️  Database already contains {len(existing)} orders")
        print("Migration skipped to prevent duplicates")
        return 0

    await sql_store.set_counter(counter)
    print(f"✅ Counter migrated: {counter}")

    migrated = 0
    # Oldest first so insertion order follows creation order
    for order in reversed(orders):
        try:
            await sql_store.create(order)
            migrated += 1
        except (DuplicateIdError, StorageUnavailableError) as e:
            print(f"❌ Error migrating order {order.id}: {e.detail}")

    print(f"✅ Migration completed: {migrated} orders migrated")
    total = len(await sql_store.list_all())
    print(f"📊 Database now contains {total} orders")
    return migrated


async def main() -> int:
    data_dir = settings.data_path
    print(f"📂 Data directory: {data_dir.resolve()}")

    json_store = JsonFileOrderStore(data_dir)
    sql_store = SqlOrderStore(settings.database_url)
    try:
        migrated = await migrate(json_store, sql_store)
    except StorageUnavailableError as e:
        print(f"❌ Migration failed: {e.detail}")
        return 1
    finally:
        await sql_store.close()

    if migrated:
        backup_json_files(data_dir)
        print("🎉 Migration completed successfully!")
        print("📝 JSON backups created in data/backup/ folder")
        print("🚀 Set STORAGE_BACKEND=database to run on the database")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
