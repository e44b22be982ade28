"""
ReportCache - 시산표 캐시

as-of 날짜별 시산표를 보관하고, 분개 전기/역분개 이벤트가 발행되면
해당 분개일 이후(같은 날 포함)의 캐시를 무효화.
모듈 전역 상태가 아니라 Books가 생성해서 주입하는 컴포넌트.
"""

import logging
from collections import OrderedDict
from datetime import date
from typing import Any

from core.domain.events import DomainEvent, EventBus, EventTypes

logger = logging.getLogger(__name__)


class ReportCache:
    """as-of 날짜 키 LRU 캐시

    Args:
        max_entries: 최대 보관 개수 (초과 시 가장 오래 사용하지 않은 항목 제거)
    """

    def __init__(self, max_entries: int = 64):
        self.max_entries = max_entries
        self._items: OrderedDict[date, Any] = OrderedDict()
        # 무효화 세대. 계산 시작 후 바뀌었으면 결과를 보관하지 않음
        self.generation = 0
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._items)

    def get(self, as_of: date) -> Any | None:
        value = self._items.get(as_of)
        if value is None:
            self.misses += 1
            return None
        self._items.move_to_end(as_of)
        self.hits += 1
        return value

    def put(self, as_of: date, value: Any, generation: int | None = None) -> bool:
        """시산표 보관

        generation: 계산 시작 시점의 self.generation. 그 사이 무효화가 있었으면
        커밋 이전 스냅샷 결과이므로 버림.

        Returns:
            보관 여부
        """
        if generation is not None and generation != self.generation:
            logger.debug(f"시산표 캐시 보관 생략: {as_of} (계산 중 무효화)")
            return False
        self._items[as_of] = value
        self._items.move_to_end(as_of)
        while len(self._items) > self.max_entries:
            self._items.popitem(last=False)
        return True

    def invalidate_from(self, from_date: date) -> int:
        """from_date 이후 키 제거

        Returns:
            제거된 항목 수
        """
        self.generation += 1
        stale = [key for key in self._items if key >= from_date]
        for key in stale:
            del self._items[key]
        if stale:
            logger.debug(f"시산표 캐시 무효화: {from_date} 이후 {len(stale)}건")
        return len(stale)

    def clear(self) -> None:
        self.generation += 1
        self._items.clear()

    def attach(self, bus: EventBus) -> None:
        """EventBus 구독 (커밋 이후 무효화)"""
        bus.subscribe(EventTypes.JOURNAL_POSTED, self._on_journal_event)
        bus.subscribe(EventTypes.JOURNAL_REVERSED, self._on_journal_event)
        # 계정명/유형 변경은 모든 시산표 행에 영향
        bus.subscribe(EventTypes.ACCOUNT_UPDATED, self._on_account_event)

    def detach(self, bus: EventBus) -> None:
        bus.unsubscribe(EventTypes.JOURNAL_POSTED, self._on_journal_event)
        bus.unsubscribe(EventTypes.JOURNAL_REVERSED, self._on_journal_event)
        bus.unsubscribe(EventTypes.ACCOUNT_UPDATED, self._on_account_event)

    def _on_journal_event(self, event: DomainEvent) -> None:
        entry_date = event.payload.get("entry_date")
        try:
            from_date = date.fromisoformat(entry_date)
        except (TypeError, ValueError):
            # 분개일을 알 수 없으면 전체 무효화
            logger.warning(f"시산표 캐시 전체 무효화: entry_date={entry_date!r} ({event.event_id})")
            self.clear()
            return
        self.invalidate_from(from_date)

    def _on_account_event(self, event: DomainEvent) -> None:
        self.clear()
