"""
Tests for the relational backend: table layout, counter row, timezones.
"""
import pytest
from sqlalchemy import select

from db_models import Counter, OrderRecord
from domain.constants import ORDER_COUNTER_NAME
from services.sql_store import SqlOrderStore
from tests.conftest import make_order


class TestTables:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_one_row_per_order(self, sql_store):
        await sql_store.create(make_order("ECOSPIN-0001"))
        await sql_store.create(make_order("ECOSPIN-0002", minutes=1))

        async with sql_store._sessionmaker() as db:
            rows = (await db.execute(select(OrderRecord))).scalars().all()
        assert sorted(r.id for r in rows) == ["ECOSPIN-0001", "ECOSPIN-0002"]
        assert rows[0].customer_name == "Jane Wanjiku"
        assert rows[0].status == "pending_payment"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_counter_row_created_on_load(self, sql_store):
        async with sql_store._sessionmaker() as db:
            row = await db.get(Counter, ORDER_COUNTER_NAME)
        assert row is not None
        assert row.value == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_load_twice_keeps_counter(self, sql_store, tmp_path):
        await sql_store.increment_counter()

        again = SqlOrderStore(f"sqlite:///{tmp_path / 'orders.db'}")
        await again.load()
        try:
            assert await again.get_counter() == 2
        finally:
            await again.close()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_set_counter(self, sql_store):
        await sql_store.set_counter(42)
        assert await sql_store.increment_counter() == 42


class TestRecovery:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_counter_row_is_recreated(self, sql_store):
        async with sql_store._sessionmaker() as db:
            await db.delete(await db.get(Counter, ORDER_COUNTER_NAME))
            await db.commit()

        assert await sql_store.increment_counter() == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_persistence_info_hides_url(self, sql_store):
        info = sql_store.persistence_info()
        assert info == {"persistence": "database", "database_backend": "sqlite"}
