"""
EventStore - 도메인 이벤트 저장소 (감사 로그)

Ledger의 모든 상태 변경은 DomainEvent로 기록됨.
append-only 방식으로 저장하고, 호출자의 트랜잭션 안에서만 기록함
(커밋/롤백은 UnitOfWork 책임).
"""

import json
import logging
from datetime import datetime
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.domain.events import DomainEvent

logger = logging.getLogger(__name__)


_SELECT_COLUMNS = """
    seq, event_id, company_id, event_type, ts,
    entity_kind, entity_id, payload_json
"""


class EventStore:
    """도메인 이벤트 저장소

    Args:
        db: SQLiteAdapter 인스턴스 (append는 쓰기 연결 필요)

    사용 예시:
    ```python
    async with uow.begin() as txn:
        ...
        await event_store.append(event)   # UnitOfWork가 자동 호출

    events = await EventStore(reader).get_by_entity("company-a", "INVOICE", invoice_id)
    ```
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    async def append(self, event: DomainEvent) -> None:
        """이벤트 저장 (커밋하지 않음)

        Args:
            event: 저장할 DomainEvent 인스턴스
        """
        payload_json = json.dumps(event.payload, ensure_ascii=False, default=str)

        await self.db.execute(
            """
            INSERT INTO domain_event (
                event_id, company_id, event_type, ts,
                entity_kind, entity_id, payload_json
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.company_id,
                event.event_type,
                event.ts.isoformat(),
                event.entity_kind,
                event.entity_id,
                payload_json,
            ),
        )
        logger.debug(f"이벤트 기록: {event.event_type} {event.entity_kind}:{event.entity_id}")

    async def get_by_id(self, event_id: str) -> DomainEvent | None:
        """ID로 이벤트 조회"""
        row = await self.db.fetchone(
            f"SELECT {_SELECT_COLUMNS} FROM domain_event WHERE event_id = ?",
            (event_id,),
        )
        if row is None:
            return None
        return self._row_to_event(row)

    async def get_since(
        self,
        company_id: str,
        last_seq: int,
        limit: int = 1000,
    ) -> list[DomainEvent]:
        """특정 seq 이후 이벤트 조회

        Args:
            company_id: 회사 ID
            last_seq: 마지막으로 처리한 seq (이 값보다 큰 seq의 이벤트 조회)
            limit: 최대 조회 개수 (기본 1000)

        Returns:
            DomainEvent 리스트 (seq 순서로 정렬)
        """
        rows = await self.db.fetchall(
            f"""
            SELECT {_SELECT_COLUMNS}
            FROM domain_event
            WHERE company_id = ? AND seq > ?
            ORDER BY seq ASC
            LIMIT ?
            """,
            (company_id, last_seq, limit),
        )
        return [self._row_to_event(row) for row in rows]

    async def get_by_entity(
        self,
        company_id: str,
        entity_kind: str,
        entity_id: str,
        limit: int = 100,
    ) -> list[DomainEvent]:
        """엔티티별 이벤트 조회 (발생 순서)"""
        rows = await self.db.fetchall(
            f"""
            SELECT {_SELECT_COLUMNS}
            FROM domain_event
            WHERE company_id = ? AND entity_kind = ? AND entity_id = ?
            ORDER BY seq ASC
            LIMIT ?
            """,
            (company_id, entity_kind, entity_id, limit),
        )
        return [self._row_to_event(row) for row in rows]

    async def get_by_type(
        self,
        company_id: str,
        event_type: str,
        limit: int = 100,
    ) -> list[DomainEvent]:
        """이벤트 타입별 조회 (최신순)"""
        rows = await self.db.fetchall(
            f"""
            SELECT {_SELECT_COLUMNS}
            FROM domain_event
            WHERE company_id = ? AND event_type = ?
            ORDER BY seq DESC
            LIMIT ?
            """,
            (company_id, event_type, limit),
        )
        return [self._row_to_event(row) for row in rows]

    def _row_to_event(self, row: tuple[Any, ...]) -> DomainEvent:
        """DB 행을 DomainEvent 객체로 변환

        컬럼 순서:
        0: seq, 1: event_id, 2: company_id, 3: event_type, 4: ts,
        5: entity_kind, 6: entity_id, 7: payload_json
        """
        ts = row[4]
        if isinstance(ts, str):
            ts = datetime.fromisoformat(ts)

        payload = row[7]
        if isinstance(payload, str):
            payload = json.loads(payload)

        return DomainEvent(
            event_id=row[1],
            company_id=row[2],
            event_type=row[3],
            ts=ts,
            entity_kind=row[5],
            entity_id=row[6],
            payload=payload,
            seq=row[0],
        )
