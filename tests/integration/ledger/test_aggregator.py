"""
LedgerAggregator 통합 테스트

키셋 페이지 재생, 기간 발생액, 계정 원장, 캐시 무효화, 불균형 감지
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from core.books import Books
from core.config.loader import Settings
from core.errors import LedgerImbalanceError, ValidationError
from core.utils.clock import FixedClock


def _lines(debit: str, credit: str, amount: str) -> list[dict[str, str]]:
    return [
        {"account_code": debit, "side": "DEBIT", "amount": amount},
        {"account_code": credit, "side": "CREDIT", "amount": amount},
    ]


@pytest_asyncio.fixture
async def small_page_books(settings: Settings, clock: FixedClock) -> Books:
    """페이지 크기 2인 장부 (여러 페이지 재생 확인용)"""
    books = await Books.open(settings.with_overrides(report_page_size=2), clock=clock)
    yield books
    await books.close()


class TestTrialBalance:
    """시산표 테스트"""

    @pytest.mark.asyncio
    async def test_replay_across_pages(self, small_page_books: Books) -> None:
        books = small_page_books
        await books.journal.post_lines(_lines("1000", "3000", "1000.00"), entry_date=date(2024, 1, 1))
        for day in range(2, 9):
            await books.journal.post_lines(_lines("1000", "4000", "10.00"), entry_date=date(2024, 1, day))
        # 같은 날짜 여러 건도 누락 없이
        await books.journal.post_lines(_lines("6000", "1000", "5.00"), entry_date=date(2024, 1, 8))
        await books.journal.post_lines(_lines("6000", "1000", "5.00"), entry_date=date(2024, 1, 8))

        tb = await books.aggregator.trial_balance(date(2024, 1, 31))

        assert tb.entry_count == 10
        assert tb.row("1000").debit_balance == Decimal("1060.00")
        assert tb.row("4000").credit_balance == Decimal("70.00")
        assert tb.row("6000").debit_balance == Decimal("10.00")
        assert tb.is_balanced

    @pytest.mark.asyncio
    async def test_as_of_excludes_later_entries(self, books: Books) -> None:
        await books.journal.post_lines(_lines("1000", "4000", "100.00"), entry_date=date(2024, 1, 10))
        await books.journal.post_lines(_lines("1000", "4000", "50.00"), entry_date=date(2024, 2, 10))

        tb = await books.aggregator.trial_balance(date(2024, 1, 31))

        assert tb.row("1000").debit_balance == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_anomalous_balance_kept_on_its_side(self, books: Books) -> None:
        """정상 방향과 반대인 잔액은 뒤집지 않고 표시"""
        await books.journal.post_lines(_lines("6000", "1000", "20.00"), entry_date=date(2024, 1, 10))

        tb = await books.aggregator.trial_balance(date(2024, 1, 31))
        cash = tb.row("1000")

        assert cash.credit_balance == Decimal("20.00")
        assert cash.debit_balance == Decimal("0.00")
        assert cash.anomalous
        assert tb.is_balanced

    @pytest.mark.asyncio
    async def test_corrupted_entry_detected(self, books: Books) -> None:
        """저장된 전기 분개가 불균형이면 LedgerImbalanceError"""
        entry = await books.journal.post_lines(_lines("1000", "4000", "100.00"), entry_date=date(2024, 1, 10))
        await books.uow.db.execute(
            "UPDATE journal_line SET amount_minor = 9999 WHERE entry_id = ? AND side = 'DEBIT'",
            (entry.entry_id,),
        )
        await books.uow.db.commit()

        with pytest.raises(LedgerImbalanceError):
            await books.aggregator.trial_balance(date(2024, 1, 31))


class TestReportCache:
    """시산표 캐시 연동 테스트"""

    @pytest.mark.asyncio
    async def test_cached_until_posting(self, books: Books) -> None:
        await books.journal.post_lines(_lines("1000", "4000", "100.00"), entry_date=date(2024, 1, 10))

        first = await books.aggregator.trial_balance(date(2024, 1, 31))
        second = await books.aggregator.trial_balance(date(2024, 1, 31))
        assert second is first

        # 이전 날짜로 소급 전기하면 이후 as-of 캐시가 무효화됨
        await books.journal.post_lines(_lines("1000", "4000", "50.00"), entry_date=date(2024, 1, 5))
        third = await books.aggregator.trial_balance(date(2024, 1, 31))

        assert third is not first
        assert third.row("1000").debit_balance == Decimal("150.00")

    @pytest.mark.asyncio
    async def test_read_overlapping_post_not_cached(
        self, books: Books, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """전기 커밋 전 스냅샷으로 계산 중인 시산표는 캐시에 남지 않음"""
        draft = await books.journal.create_draft(
            _lines("1000", "4000", "500.00"), entry_date=date(2024, 1, 10)
        )
        reached = asyncio.Event()
        release = asyncio.Event()
        account_map = books.aggregator._account_map

        async def paused_account_map():
            reached.set()
            await release.wait()
            return await account_map()

        monkeypatch.setattr(books.aggregator, "_account_map", paused_account_map)

        in_flight = asyncio.create_task(books.aggregator.trial_balance(date(2024, 1, 31)))
        await reached.wait()
        await books.journal.post(draft.entry_id)
        release.set()
        stale = await in_flight

        assert stale.entry_count == 0
        fresh = await books.aggregator.trial_balance(date(2024, 1, 31))
        assert fresh is not stale
        assert fresh.row("1000").debit_balance == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_earlier_as_of_survives_later_posting(self, books: Books) -> None:
        early = await books.aggregator.trial_balance(date(2024, 1, 5))

        await books.journal.post_lines(_lines("1000", "4000", "50.00"), entry_date=date(2024, 1, 10))

        assert await books.aggregator.trial_balance(date(2024, 1, 5)) is early

    @pytest.mark.asyncio
    async def test_reversal_invalidates(self, books: Books) -> None:
        entry = await books.journal.post_lines(_lines("1000", "4000", "100.00"), entry_date=date(2024, 1, 10))
        await books.aggregator.trial_balance(date(2024, 1, 31))

        await books.journal.reverse(entry.entry_id, "error")
        tb = await books.aggregator.trial_balance(date(2024, 1, 31))

        assert tb.row("1000").balance == Decimal("0.00")


class TestPeriodActivity:
    """기간 발생액 테스트"""

    @pytest.mark.asyncio
    async def test_period_window(self, books: Books) -> None:
        await books.journal.post_lines(_lines("1000", "4000", "100.00"), entry_date=date(2023, 12, 31))
        await books.journal.post_lines(_lines("1000", "4000", "40.00"), entry_date=date(2024, 1, 1))
        await books.journal.post_lines(_lines("6000", "1000", "15.00"), entry_date=date(2024, 1, 31))

        activity = {a.code: a for a in await books.aggregator.period_activity(date(2024, 1, 1), date(2024, 1, 31))}

        assert activity["4000"].net == Decimal("40.00")
        assert activity["6000"].net == Decimal("15.00")
        assert activity["1000"].net == Decimal("25.00")

    @pytest.mark.asyncio
    async def test_inverted_period(self, books: Books) -> None:
        with pytest.raises(ValidationError):
            await books.aggregator.period_activity(date(2024, 2, 1), date(2024, 1, 1))


class TestAccountLedger:
    """계정 원장 테스트"""

    @pytest.mark.asyncio
    async def test_opening_and_running_balance(self, books: Books) -> None:
        await books.journal.post_lines(_lines("1000", "3000", "1000.00"), entry_date=date(2023, 12, 1))
        await books.journal.post_lines(_lines("1000", "4000", "200.00"), entry_date=date(2024, 1, 5))
        await books.journal.post_lines(_lines("6000", "1000", "50.00"), entry_date=date(2024, 1, 20))

        ledger = await books.aggregator.account_ledger("1000", date(2024, 1, 1), date(2024, 1, 31))

        assert ledger.opening_balance == Decimal("1000.00")
        assert [p.running_balance for p in ledger.postings] == [Decimal("1200.00"), Decimal("1150.00")]
        assert ledger.closing_balance == Decimal("1150.00")
        assert ledger.to_dict()["postings"][1]["side"] == "CREDIT"
