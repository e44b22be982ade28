"""
FxRateStore 통합 테스트

최근 유효 환율 조회, 역방향 환산, 같은 날짜 대체, 환율 없음
"""

from datetime import date
from decimal import Decimal

import pytest

from core.books import Books
from core.errors import NoRateAvailableError, ValidationError


class TestConvert:
    """환산 테스트"""

    @pytest.mark.asyncio
    async def test_uses_latest_rate_on_or_before(self, books: Books) -> None:
        """1/15 환산은 2/1이 아니라 1/1 환율 사용"""
        await books.fx.set_rate("USD", "NGN", "1500", date(2024, 1, 1))
        await books.fx.set_rate("USD", "NGN", "1600", date(2024, 2, 1))

        jan = await books.fx.convert("100", "USD", "NGN", date(2024, 1, 15))
        feb = await books.fx.convert("100", "USD", "NGN", date(2024, 2, 1))

        assert jan.converted == Decimal("150000.00")
        assert jan.rate == Decimal("1500")
        assert feb.converted == Decimal("160000.00")

    @pytest.mark.asyncio
    async def test_inverse_rate_divides(self, books: Books) -> None:
        await books.fx.set_rate("USD", "NGN", "1500", date(2024, 1, 1))

        conversion = await books.fx.convert("150000.00", "NGN", "USD", date(2024, 1, 15))

        assert conversion.inverse
        assert conversion.converted == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_inverse_rounds_half_up(self, books: Books) -> None:
        await books.fx.set_rate("USD", "NGN", "1500", date(2024, 1, 1))

        conversion = await books.fx.convert("1000.00", "NGN", "USD", date(2024, 1, 15))

        # 1000 / 1500 = 0.6666...
        assert conversion.converted == Decimal("0.67")

    @pytest.mark.asyncio
    async def test_same_currency(self, books: Books) -> None:
        conversion = await books.fx.convert("12.34", "usd", "USD", date(2024, 1, 1))

        assert conversion.converted == Decimal("12.34")
        assert conversion.rate == Decimal(1)
        assert await books.fx.get_rate("EUR", "EUR", date(2024, 1, 1)) == Decimal(1)

    @pytest.mark.asyncio
    async def test_no_rate_before_date(self, books: Books) -> None:
        """요청일 이전 환율이 없으면 1:1로 대체하지 않고 오류"""
        await books.fx.set_rate("USD", "NGN", "1500", date(2024, 1, 1))

        with pytest.raises(NoRateAvailableError):
            await books.fx.convert("100", "USD", "NGN", date(2023, 12, 31))
        with pytest.raises(NoRateAvailableError):
            await books.fx.get_rate("USD", "EUR", date(2024, 1, 15))

    @pytest.mark.asyncio
    async def test_no_triangulation(self, books: Books) -> None:
        await books.fx.set_rate("USD", "NGN", "1500", date(2024, 1, 1))
        await books.fx.set_rate("USD", "EUR", "0.9", date(2024, 1, 1))

        with pytest.raises(NoRateAvailableError):
            await books.fx.convert("100", "EUR", "NGN", date(2024, 1, 15))

    @pytest.mark.asyncio
    async def test_source_precision_enforced(self, books: Books) -> None:
        await books.fx.set_rate("USD", "NGN", "1500", date(2024, 1, 1))

        with pytest.raises(ValidationError):
            await books.fx.convert("1.001", "USD", "NGN", date(2024, 1, 15))


class TestSetRate:
    """환율 등록 테스트"""

    @pytest.mark.asyncio
    async def test_same_date_supersedes(self, books: Books) -> None:
        first = await books.fx.set_rate("USD", "NGN", "1500", date(2024, 1, 1))
        await books.fx.set_rate("USD", "NGN", "1550", date(2024, 1, 1), source="cbn")

        assert await books.fx.get_rate("USD", "NGN", date(2024, 1, 1)) == Decimal("1550")

        active = await books.fx.list_rates("USD", "NGN")
        history = await books.fx.list_rates("USD", "NGN", include_inactive=True)
        assert len(active) == 1
        assert active[0].source == "CBN"
        assert len(history) == 2
        assert first.rate_id in {r.rate_id for r in history if not r.is_active}

    @pytest.mark.asyncio
    async def test_new_rate_does_not_change_past(self, books: Books) -> None:
        await books.fx.set_rate("USD", "NGN", "1500", date(2024, 1, 1))
        before = await books.fx.convert("100", "USD", "NGN", date(2024, 1, 15))

        await books.fx.set_rate("USD", "NGN", "1700", date(2024, 3, 1))
        after = await books.fx.convert("100", "USD", "NGN", date(2024, 1, 15))

        assert before.converted == after.converted

    @pytest.mark.parametrize("rate", ["0", "-1", 1.5, "abc"])
    @pytest.mark.asyncio
    async def test_invalid_rate(self, books: Books, rate: object) -> None:
        with pytest.raises(ValidationError):
            await books.fx.set_rate("USD", "NGN", rate, date(2024, 1, 1))

    @pytest.mark.asyncio
    async def test_same_currency_rejected(self, books: Books) -> None:
        with pytest.raises(ValidationError):
            await books.fx.set_rate("USD", "usd", "1", date(2024, 1, 1))
