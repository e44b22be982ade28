"""
UnitOfWork 통합 테스트

트랜잭션 롤백, 커밋 이후 이벤트 발행, 중첩 합류, 이벤트 저장
"""

from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.domain.events import DomainEvent, EventBus, EventTypes
from core.ledger.schema import init_schema
from core.storage.unit_of_work import UnitOfWork


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> SQLiteAdapter:
    adapter = SQLiteAdapter(tmp_path / "uow_test.db")
    await adapter.connect()
    await init_schema(adapter)
    yield adapter
    await adapter.close()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


class TestUnitOfWork:
    """UnitOfWork 테스트"""

    @pytest.mark.asyncio
    async def test_events_published_after_commit(self, db: SQLiteAdapter, bus: EventBus) -> None:
        uow = UnitOfWork(db, "acme", bus)
        seen: list[tuple[str, bool]] = []

        def handler(event: DomainEvent) -> None:
            # 발행 시점에는 트랜잭션이 이미 끝나 있어야 함
            seen.append((event.event_type, db.in_transaction))

        bus.subscribe("*", handler)

        async with uow.begin() as txn:
            txn.emit(EventTypes.RATE_SET, "EXCHANGE_RATE", "rate-1", {"rate": "1500"})
            assert seen == []

        assert seen == [("RateSet", False)]
        assert len(await uow.event_store.get_since("acme", 0)) == 1

    @pytest.mark.asyncio
    async def test_rollback_discards_events(self, db: SQLiteAdapter, bus: EventBus) -> None:
        """예외 시 롤백, 이벤트는 저장/발행되지 않음"""
        uow = UnitOfWork(db, "acme", bus)
        seen: list[str] = []
        bus.subscribe("*", lambda event: seen.append(event.event_type))

        with pytest.raises(RuntimeError):
            async with uow.begin() as txn:
                txn.emit(EventTypes.RATE_SET, "EXCHANGE_RATE", "rate-1", {})
                raise RuntimeError("fail")

        assert seen == []
        assert await uow.event_store.get_since("acme", 0) == []
        assert uow.active is None

    @pytest.mark.asyncio
    async def test_nested_begin_joins_outer(self, db: SQLiteAdapter, bus: EventBus) -> None:
        uow = UnitOfWork(db, "acme", bus)

        async with uow.begin() as outer:
            async with uow.begin() as inner:
                assert inner is outer
                inner.emit(EventTypes.RATE_SET, "EXCHANGE_RATE", "rate-1", {})
            # 안쪽 블록 종료는 커밋이 아님
            assert db.in_transaction

        assert len(outer.events) == 1
        assert not db.in_transaction

    @pytest.mark.asyncio
    async def test_event_store_queries(self, db: SQLiteAdapter, bus: EventBus) -> None:
        uow = UnitOfWork(db, "acme", bus)
        other = UnitOfWork(db, "globex", bus)

        async with uow.begin() as txn:
            txn.emit(EventTypes.INVOICE_CREATED, "INVOICE", "inv-1", {"n": 1})
            txn.emit(EventTypes.INVOICE_SENT, "INVOICE", "inv-1", {"n": 2})
        async with other.begin() as txn:
            txn.emit(EventTypes.INVOICE_CREATED, "INVOICE", "inv-9", {})

        store = uow.event_store
        by_entity = await store.get_by_entity("acme", "INVOICE", "inv-1")
        assert [e.event_type for e in by_entity] == ["InvoiceCreated", "InvoiceSent"]

        since = await store.get_since("acme", by_entity[0].seq)
        assert [e.event_type for e in since] == ["InvoiceSent"]

        created = await store.get_by_type("acme", EventTypes.INVOICE_CREATED)
        assert len(created) == 1
        assert len(await store.get_since("globex", 0)) == 1

        fetched = await store.get_by_id(by_entity[1].event_id)
        assert fetched is not None
        assert fetched.payload == {"n": 2}
