"""
JournalEngine 통합 테스트

DRAFT → POSTED → REVERSED, 균형 검증, 번호 채번, 이벤트
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from core.books import Books
from core.domain.events import DomainEvent, EventTypes
from core.errors import (
    AccountNotFoundError,
    AlreadyPostedError,
    EntryNotFoundError,
    ImbalancedEntryError,
    InvalidStateTransitionError,
    ValidationError,
)

CASH_SALE = [
    {"account_code": "1000", "side": "DEBIT", "amount": "500.00"},
    {"account_code": "4000", "side": "CREDIT", "amount": "500.00"},
]


class TestPosting:
    """전기 테스트"""

    @pytest.mark.asyncio
    async def test_cash_sale_trial_balance(self, books: Books) -> None:
        """현금 매출 500.00 → 시산표 현금 차변 500.00, 매출 대변 500.00"""
        draft = await books.journal.create_draft(
            CASH_SALE, entry_date=date(2024, 1, 10), description="Cash sale"
        )
        assert draft.status == "DRAFT"
        assert draft.entry_number == "JE-2024-000001"

        posted = await books.journal.post(draft.entry_id)
        assert posted.status == "POSTED"
        assert posted.posted_at is not None

        tb = await books.aggregator.trial_balance(date(2024, 1, 31))
        assert tb.row("1000").debit_balance == Decimal("500.00")
        assert tb.row("4000").credit_balance == Decimal("500.00")
        assert tb.total_debit_balance == tb.total_credit_balance == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_draft_does_not_affect_balances(self, books: Books) -> None:
        await books.journal.create_draft(CASH_SALE, entry_date=date(2024, 1, 10))

        tb = await books.aggregator.trial_balance(date(2024, 1, 31))
        assert tb.rows == ()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["1e30", "100000000000000000000.00"])
    async def test_oversized_amount_rejected(self, books: Books, amount: str) -> None:
        """저장 범위를 넘는 금액은 ValidationError, 분개 생성 안 됨"""
        with pytest.raises(ValidationError, match="out of range"):
            await books.journal.create_draft(
                [
                    {"account_code": "1000", "side": "DEBIT", "amount": amount},
                    {"account_code": "4000", "side": "CREDIT", "amount": amount},
                ],
                entry_date=date(2024, 1, 10),
            )

        assert await books.journal.list_entries() == []

    @pytest.mark.asyncio
    async def test_imbalanced_rejected(self, books: Books) -> None:
        """불균형 분개는 DRAFT로 남고 잔액 변화 없음"""
        draft = await books.journal.create_draft(
            [
                {"account_code": "1000", "side": "DEBIT", "amount": "500.00"},
                {"account_code": "4000", "side": "CREDIT", "amount": "499.99"},
            ],
            entry_date=date(2024, 1, 10),
        )

        with pytest.raises(ImbalancedEntryError):
            await books.journal.post(draft.entry_id)

        reloaded = await books.journal.get_entry(draft.entry_id)
        assert reloaded.status == "DRAFT"
        tb = await books.aggregator.trial_balance(date(2024, 1, 31))
        assert tb.rows == ()

    @pytest.mark.asyncio
    async def test_post_twice(self, books: Books) -> None:
        entry = await books.journal.post_lines(CASH_SALE, entry_date=date(2024, 1, 10))

        with pytest.raises(AlreadyPostedError):
            await books.journal.post(entry.entry_id)

    @pytest.mark.asyncio
    async def test_unknown_account(self, books: Books) -> None:
        with pytest.raises(AccountNotFoundError):
            await books.journal.create_draft(
                [
                    {"account_code": "1000", "side": "DEBIT", "amount": "1.00"},
                    {"account_code": "9999", "side": "CREDIT", "amount": "1.00"},
                ],
                entry_date=date(2024, 1, 10),
            )

    @pytest.mark.asyncio
    async def test_default_entry_date_from_clock(self, books: Books) -> None:
        draft = await books.journal.create_draft(CASH_SALE)

        assert draft.entry_date == date(2024, 1, 31)

    @pytest.mark.asyncio
    async def test_entry_numbers_increase(self, books: Books) -> None:
        first = await books.journal.post_lines(CASH_SALE, entry_date=date(2024, 1, 10))
        second = await books.journal.post_lines(CASH_SALE, entry_date=date(2024, 1, 5))
        next_year = await books.journal.post_lines(CASH_SALE, entry_date=date(2025, 1, 5))

        assert first.entry_number == "JE-2024-000001"
        assert second.entry_number == "JE-2024-000002"
        assert next_year.entry_number == "JE-2025-000001"

    @pytest.mark.asyncio
    async def test_posted_event(self, books: Books) -> None:
        events: list[DomainEvent] = []
        books.event_bus.subscribe(EventTypes.JOURNAL_POSTED, events.append)

        entry = await books.journal.post_lines(CASH_SALE, entry_date=date(2024, 1, 10))

        assert len(events) == 1
        assert events[0].entity_id == entry.entry_id
        assert events[0].payload["entry_date"] == "2024-01-10"
        assert events[0].payload["amount"] == "500.00"

    @pytest.mark.asyncio
    async def test_concurrent_post_once(self, books: Books) -> None:
        """같은 DRAFT 동시 전기 → 1건만 성공, JournalPosted 1건"""
        draft = await books.journal.create_draft(CASH_SALE, entry_date=date(2024, 1, 10))

        results = await asyncio.gather(
            *[books.journal.post(draft.entry_id) for _ in range(3)],
            return_exceptions=True,
        )

        assert sum(not isinstance(r, Exception) for r in results) == 1
        assert sum(isinstance(r, AlreadyPostedError) for r in results) == 2
        posted_events = await books.events.get_by_type(books.company_id, EventTypes.JOURNAL_POSTED)
        assert len(posted_events) == 1
        tb = await books.aggregator.trial_balance(date(2024, 1, 31))
        assert tb.row("1000").debit_balance == Decimal("500.00")


class TestDraftEditing:
    """DRAFT 수정 테스트"""

    @pytest.mark.asyncio
    async def test_update_draft(self, books: Books) -> None:
        draft = await books.journal.create_draft(
            [
                {"account_code": "1000", "side": "DEBIT", "amount": "500.00"},
                {"account_code": "4000", "side": "CREDIT", "amount": "450.00"},
            ],
            entry_date=date(2024, 1, 10),
        )

        updated = await books.journal.update_draft(
            draft.entry_id, lines=CASH_SALE, description="fixed", entry_date=date(2024, 1, 11)
        )
        assert updated.is_balanced()

        posted = await books.journal.post(draft.entry_id)
        assert posted.description == "fixed"
        assert posted.entry_date == date(2024, 1, 11)
        assert posted.total_credit == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_update_posted_rejected(self, books: Books) -> None:
        entry = await books.journal.post_lines(CASH_SALE, entry_date=date(2024, 1, 10))

        with pytest.raises(AlreadyPostedError):
            await books.journal.update_draft(entry.entry_id, description="late edit")


class TestReversal:
    """역분개 테스트"""

    @pytest.mark.asyncio
    async def test_reverse_restores_balances(self, books: Books) -> None:
        entry = await books.journal.post_lines(CASH_SALE, entry_date=date(2024, 1, 10))

        reversal = await books.journal.reverse(entry.entry_id, "duplicate")

        assert reversal.status == "POSTED"
        assert reversal.entry_date == date(2024, 1, 10)
        assert reversal.reverses_entry_id == entry.entry_id
        assert [line.side.value for line in reversal.lines] == ["CREDIT", "DEBIT"]

        original = await books.journal.get_entry(entry.entry_id)
        assert original.status == "REVERSED"
        assert original.reversed_by_entry_id == reversal.entry_id
        # 원분개 라인은 그대로
        assert original.lines == entry.lines

        tb = await books.aggregator.trial_balance(date(2024, 1, 31))
        assert tb.row("1000").balance == Decimal("0.00")
        assert tb.row("4000").balance == Decimal("0.00")
        assert tb.entry_count == 2

    @pytest.mark.asyncio
    async def test_reverse_later_date(self, books: Books) -> None:
        """다른 날짜로 역분개하면 그 사이 잔액은 유지"""
        entry = await books.journal.post_lines(CASH_SALE, entry_date=date(2024, 1, 10))
        await books.journal.reverse(entry.entry_id, "error", reversal_date=date(2024, 1, 20))

        mid = await books.aggregator.trial_balance(date(2024, 1, 15))
        end = await books.aggregator.trial_balance(date(2024, 1, 31))

        assert mid.row("1000").balance == Decimal("500.00")
        assert end.row("1000").balance == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_reverse_twice(self, books: Books) -> None:
        entry = await books.journal.post_lines(CASH_SALE, entry_date=date(2024, 1, 10))
        await books.journal.reverse(entry.entry_id, "duplicate")

        with pytest.raises(InvalidStateTransitionError):
            await books.journal.reverse(entry.entry_id, "again")

    @pytest.mark.asyncio
    async def test_reverse_draft(self, books: Books) -> None:
        draft = await books.journal.create_draft(CASH_SALE, entry_date=date(2024, 1, 10))

        with pytest.raises(InvalidStateTransitionError):
            await books.journal.reverse(draft.entry_id, "nope")

    @pytest.mark.asyncio
    async def test_reason_required(self, books: Books) -> None:
        entry = await books.journal.post_lines(CASH_SALE, entry_date=date(2024, 1, 10))

        with pytest.raises(ValidationError):
            await books.journal.reverse(entry.entry_id, "  ")

    @pytest.mark.asyncio
    async def test_reversal_before_entry_date(self, books: Books) -> None:
        entry = await books.journal.post_lines(CASH_SALE, entry_date=date(2024, 1, 10))

        with pytest.raises(ValidationError):
            await books.journal.reverse(entry.entry_id, "back", reversal_date=date(2024, 1, 9))


class TestQueries:
    """조회 테스트"""

    @pytest.mark.asyncio
    async def test_missing_entry(self, books: Books) -> None:
        with pytest.raises(EntryNotFoundError):
            await books.journal.get_entry("missing")

    @pytest.mark.asyncio
    async def test_list_entries(self, books: Books) -> None:
        await books.journal.post_lines(CASH_SALE, entry_date=date(2024, 1, 10))
        await books.journal.create_draft(CASH_SALE, entry_date=date(2024, 1, 12))

        posted = await books.journal.list_entries(status="posted")
        in_range = await books.journal.list_entries(date_from=date(2024, 1, 11))

        assert len(posted) == 1
        assert [e.entry_date for e in in_range] == [date(2024, 1, 12)]

        with pytest.raises(ValidationError):
            await books.journal.list_entries(status="VOID")
