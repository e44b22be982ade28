"""
시계 유틸리티

내부 저장: UTC 원칙.
"오늘" 비교(연체 판정, 기본 전기일)는 주입된 Clock을 통해서만 수행.
테스트에서는 FixedClock으로 날짜를 고정.
"""

from datetime import date, datetime, timezone
from typing import Protocol


def now_utc() -> datetime:
    """현재 UTC 시간 반환 (타임존 명시)"""
    return datetime.now(timezone.utc)


class Clock(Protocol):
    """시계 인터페이스"""

    def now(self) -> datetime:
        ...

    def today(self) -> date:
        ...


class SystemClock:
    """시스템 시계 (UTC 기준)"""

    def now(self) -> datetime:
        return now_utc()

    def today(self) -> date:
        return now_utc().date()


class FixedClock:
    """고정 시계 (테스트/재계산용)

    set()으로 날짜를 앞뒤로 옮길 수 있음 (시계 보정 시나리오).
    """

    def __init__(self, current: date | datetime):
        self._current = self._to_datetime(current)

    @staticmethod
    def _to_datetime(value: date | datetime) -> datetime:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    def set(self, current: date | datetime) -> None:
        self._current = self._to_datetime(current)

    def now(self) -> datetime:
        return self._current

    def today(self) -> date:
        return self._current.date()
