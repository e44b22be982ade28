"""
Books - 회사 단위 장부 구성

회사 하나당 Books 하나: 쓰기 연결 + 읽기 연결, EventBus, UnitOfWork와
그 위의 계정/분개/집계/재무제표/환율/송장 컴포넌트를 묶음.
모듈 전역 상태 없음. 진입점(web, scripts, 테스트)이 생성해서 주입.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter, is_memory_db
from core.config.loader import Settings
from core.domain.events import EventBus
from core.fx.store import FxRateStore
from core.invoicing.bridge import InvoiceLedgerBridge
from core.ledger.accounts import AccountRegistry
from core.ledger.aggregator import LedgerAggregator
from core.ledger.cache import ReportCache
from core.ledger.journal import JournalEngine
from core.ledger.schema import init_schema
from core.ledger.statements import FinancialStatementGenerator
from core.storage.event_store import EventStore
from core.storage.unit_of_work import UnitOfWork
from core.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


class Books:
    """회사 장부

    직접 생성하지 말고 Books.open() 사용.

    Attributes:
        accounts: 계정과목 관리
        journal: 분개 생성/전기/역분개
        aggregator: 시산표/기간 발생액/계정 원장
        statements: 손익계산서/재무상태표
        fx: 환율 저장소
        invoices: 송장 ↔ 원장 연결
        event_bus: 커밋 이후 도메인 이벤트 발행
        events: 도메인 이벤트 감사 로그 조회
    """

    def __init__(
        self,
        settings: Settings,
        company_id: str,
        writer: SQLiteAdapter,
        reader: SQLiteAdapter,
        clock: Clock,
    ):
        self.settings = settings
        self.company_id = company_id
        self.currency = settings.functional_currency
        self.clock = clock
        self._writer = writer
        self._reader = reader

        self.event_bus = EventBus()
        self.uow = UnitOfWork(writer, company_id, self.event_bus)
        self.cache = ReportCache()
        self.cache.attach(self.event_bus)

        self.accounts = AccountRegistry(self.uow, reader)
        self.journal = JournalEngine(self.uow, reader, self.accounts, self.currency, clock)
        self.fx = FxRateStore(self.uow, reader)
        self.events = EventStore(reader)
        self.aggregator = LedgerAggregator(
            self.uow,
            reader,
            self.accounts,
            self.currency,
            page_size=settings.report_page_size,
            cache=self.cache,
        )
        self.statements = FinancialStatementGenerator(
            self.aggregator, tolerance=settings.balance_tolerance
        )
        self.invoices = InvoiceLedgerBridge(
            self.uow,
            reader,
            self.journal,
            self.fx,
            settings.accounts,
            self.currency,
            clock,
        )

    @classmethod
    async def open(
        cls,
        settings: Settings,
        company_id: str | None = None,
        clock: Clock | None = None,
    ) -> "Books":
        """장부 열기 (스키마 생성 + 기본 계정과목표 시드)

        Args:
            settings: 애플리케이션 설정
            company_id: 회사 ID (None이면 settings.company_id)
            clock: 오늘 날짜 공급자 (None이면 시스템 시계)
        """
        company_id = company_id or settings.company_id
        writer = SQLiteAdapter(settings.db_path)
        await writer.connect()
        try:
            await init_schema(writer)
            if is_memory_db(settings.db_path):
                # 인메모리 DB는 연결마다 별도 DB이므로 같은 연결로 읽음
                reader = writer
            else:
                reader = SQLiteAdapter(settings.db_path, readonly=True)
                await reader.connect()
        except BaseException:
            await writer.close()
            raise

        books = cls(settings, company_id, writer, reader, clock or SystemClock())
        if settings.seed_default_chart:
            await books.accounts.seed_default_chart()

        logger.info(
            f"[{company_id}] 장부 열기: db={settings.db_path} currency={books.currency}"
        )
        return books

    async def close(self) -> None:
        self.cache.detach(self.event_bus)
        if self._reader is not self._writer:
            await self._reader.close()
        await self._writer.close()
        logger.info(f"[{self.company_id}] 장부 닫기")

    async def __aenter__(self) -> "Books":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class BooksRegistry:
    """회사 ID → Books (요청 시 지연 생성)

    Args:
        settings: 애플리케이션 설정
        clock: 모든 장부가 공유하는 시계
    """

    def __init__(self, settings: Settings, clock: Clock | None = None):
        self.settings = settings
        self.clock = clock or SystemClock()
        self._books: dict[str, Books] = {}
        self._lock = asyncio.Lock()

    @property
    def company_ids(self) -> list[str]:
        return sorted(self._books)

    async def get(self, company_id: str | None = None) -> Books:
        company_id = company_id or self.settings.company_id
        books = self._books.get(company_id)
        if books is not None:
            return books

        async with self._lock:
            books = self._books.get(company_id)
            if books is None:
                books = await Books.open(self.settings, company_id, self.clock)
                self._books[company_id] = books
        return books

    async def close_all(self) -> None:
        async with self._lock:
            for books in self._books.values():
                await books.close()
            self._books.clear()
