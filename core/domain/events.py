"""
Domain Event 모델

Ledger의 모든 상태 변경은 DomainEvent로 기록됨 (감사 로그).
이벤트는 트랜잭션 안에서 저장되고, 커밋 이후에만 구독자에게 발행됨.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable
from uuid import uuid4

from core.utils.clock import now_utc

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """도메인 이벤트

    Args:
        event_id: 이벤트 ID (UUID)
        event_type: 이벤트 타입 (EventTypes 상수)
        ts: 발생 시각 (UTC)
        company_id: 회사 ID
        entity_kind: 엔티티 종류 (JOURNAL_ENTRY, INVOICE 등)
        entity_id: 엔티티 ID
        payload: 상세 데이터 (JSON 직렬화 가능)
    """

    event_id: str
    event_type: str
    ts: datetime
    company_id: str
    entity_kind: str
    entity_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    seq: int | None = None  # DB에서 조회 시 자동 할당되는 시퀀스 번호

    @staticmethod
    def create(
        event_type: str,
        company_id: str,
        entity_kind: str,
        entity_id: str,
        payload: dict[str, Any] | None = None,
    ) -> "DomainEvent":
        """새 이벤트 생성

        Args:
            event_type: 이벤트 타입 (예: JournalPosted)
            company_id: 회사 ID
            entity_kind: 엔티티 종류
            entity_id: 엔티티 ID
            payload: 이벤트 상세 데이터

        Returns:
            새 DomainEvent 인스턴스
        """
        return DomainEvent(
            event_id=str(uuid4()),
            event_type=event_type,
            ts=now_utc(),
            company_id=company_id,
            entity_kind=entity_kind,
            entity_id=entity_id,
            payload=payload or {},
        )

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환 (직렬화용)"""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "ts": self.ts.isoformat(),
            "company_id": self.company_id,
            "entity_kind": self.entity_kind,
            "entity_id": self.entity_id,
            "payload": self.payload,
            "seq": self.seq,
        }


class EventTypes:
    """Event Type 상수"""

    # Journal
    JOURNAL_POSTED: str = "JournalPosted"
    JOURNAL_REVERSED: str = "JournalReversed"

    # Invoice
    INVOICE_CREATED: str = "InvoiceCreated"
    INVOICE_SENT: str = "InvoiceSent"
    PAYMENT_RECORDED: str = "PaymentRecorded"
    INVOICE_PAID: str = "InvoicePaid"
    INVOICE_CANCELLED: str = "InvoiceCancelled"

    # FX
    RATE_SET: str = "RateSet"

    # Chart of accounts
    ACCOUNT_CREATED: str = "AccountCreated"
    ACCOUNT_UPDATED: str = "AccountUpdated"
    ACCOUNT_DEACTIVATED: str = "AccountDeactivated"
    ACCOUNT_REACTIVATED: str = "AccountReactivated"

    @classmethod
    def all_types(cls) -> list[str]:
        """모든 이벤트 타입 목록 반환"""
        return [
            value
            for name, value in vars(cls).items()
            if not name.startswith("_") and isinstance(value, str) and name.isupper()
        ]

    @classmethod
    def is_valid_type(cls, event_type: str) -> bool:
        """유효한 이벤트 타입인지 확인"""
        return event_type in cls.all_types()


EventHandler = Callable[[DomainEvent], Awaitable[None] | None]


class EventBus:
    """프로세스 내 이벤트 발행/구독

    UnitOfWork가 커밋 이후에 publish()를 호출.
    구독자 예외는 로그만 남기고 다른 구독자 호출을 계속함
    (이미 커밋된 상태 변경을 되돌릴 수 없으므로).
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """이벤트 타입 구독

        Args:
            event_type: 이벤트 타입 ("*"이면 전체)
            handler: 동기 또는 async 핸들러
        """
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        """구독 해제"""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: DomainEvent) -> None:
        """이벤트 발행"""
        handlers = [*self._handlers.get(event.event_type, []), *self._handlers.get("*", [])]
        for handler in handlers:
            try:
                result = handler(event)
                if result is not None:
                    await result
            except Exception as e:
                name = getattr(handler, "__qualname__", repr(handler))
                logger.error(
                    f"Event handler failed: {name} on {event.event_type} ({event.entity_id}): {e}",
                    exc_info=True,
                )

    async def publish_all(self, events: list[DomainEvent]) -> None:
        """여러 이벤트 순서대로 발행"""
        for event in events:
            await self.publish(event)
