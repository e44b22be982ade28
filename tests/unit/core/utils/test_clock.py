"""
core/utils/clock.py 테스트
"""

from datetime import date, datetime, timezone

from core.utils.clock import FixedClock, SystemClock, now_utc


class TestNowUtc:
    """now_utc 테스트"""

    def test_timezone_aware(self) -> None:
        assert now_utc().tzinfo == timezone.utc


class TestSystemClock:
    """SystemClock 테스트"""

    def test_today_is_utc_date(self) -> None:
        clock = SystemClock()
        assert clock.today() == clock.now().date()


class TestFixedClock:
    """FixedClock 테스트"""

    def test_from_date(self) -> None:
        clock = FixedClock(date(2024, 1, 31))

        assert clock.today() == date(2024, 1, 31)
        assert clock.now() == datetime(2024, 1, 31, tzinfo=timezone.utc)

    def test_naive_datetime_treated_as_utc(self) -> None:
        clock = FixedClock(datetime(2024, 1, 31, 23, 59))

        assert clock.now().tzinfo == timezone.utc

    def test_set_moves_backwards(self) -> None:
        """시계 보정으로 날짜가 뒤로 갈 수 있음"""
        clock = FixedClock(date(2024, 3, 1))
        clock.set(date(2024, 2, 1))

        assert clock.today() == date(2024, 2, 1)
