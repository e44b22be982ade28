"""
UnitOfWork - 회사 단위 쓰기 직렬화

한 회사의 모든 상태 변경은 하나의 UnitOfWork를 거침.
- asyncio.Lock: 같은 프로세스 내 동시 쓰기 직렬화
- BEGIN IMMEDIATE: 다른 프로세스의 쓰기와 직렬화
- 도메인 이벤트는 트랜잭션 안에서 기록, 커밋 이후에만 발행

같은 Task 안에서 중첩 호출(Invoice Bridge → Journal Engine)하면
바깥 트랜잭션에 합류함 (ContextVar로 추적).
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.domain.events import DomainEvent, EventBus
from core.storage.event_store import EventStore

logger = logging.getLogger(__name__)


class Transaction:
    """진행 중인 쓰기 트랜잭션

    Args:
        db: 쓰기 연결
        company_id: 회사 ID
    """

    def __init__(self, db: SQLiteAdapter, company_id: str):
        self.db = db
        self.company_id = company_id
        self.events: list[DomainEvent] = []

    def emit(
        self,
        event_type: str,
        entity_kind: str,
        entity_id: str,
        payload: dict[str, Any] | None = None,
    ) -> DomainEvent:
        """도메인 이벤트 등록 (커밋 시 저장 + 발행)"""
        event = DomainEvent.create(
            event_type=event_type,
            company_id=self.company_id,
            entity_kind=entity_kind,
            entity_id=entity_id,
            payload=payload,
        )
        self.events.append(event)
        return event


class UnitOfWork:
    """회사 단위 쓰기 트랜잭션 관리자

    Args:
        db: 쓰기 연결 (회사 전용)
        company_id: 회사 ID
        event_bus: 커밋 후 이벤트를 발행할 EventBus

    사용 예시:
    ```python
    async with uow.begin() as txn:
        await txn.db.execute("INSERT INTO ...")
        txn.emit(EventTypes.JOURNAL_POSTED, "JOURNAL_ENTRY", entry_id, {...})
    # 여기서 커밋 완료 + 이벤트 발행
    ```
    """

    def __init__(self, db: SQLiteAdapter, company_id: str, event_bus: EventBus):
        self.db = db
        self.company_id = company_id
        self.event_bus = event_bus
        self.event_store = EventStore(db)
        self._lock = asyncio.Lock()
        self._current: ContextVar[Transaction | None] = ContextVar(
            f"uow_{company_id}", default=None
        )

    @property
    def active(self) -> Transaction | None:
        """현재 Task에서 진행 중인 트랜잭션"""
        return self._current.get()

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[Transaction]:
        """쓰기 트랜잭션 시작 (중첩 시 바깥 트랜잭션 합류)

        예외 발생 시 롤백되고 이벤트는 저장/발행되지 않음.
        """
        current = self._current.get()
        if current is not None:
            yield current
            return

        async with self._lock:
            txn = Transaction(self.db, self.company_id)
            token = self._current.set(txn)
            try:
                async with self.db.transaction(immediate=True):
                    yield txn
                    for event in txn.events:
                        await self.event_store.append(event)
            finally:
                self._current.reset(token)

        if txn.events:
            logger.debug(f"[{self.company_id}] 커밋 완료, 이벤트 {len(txn.events)}건 발행")
        await self.event_bus.publish_all(txn.events)
