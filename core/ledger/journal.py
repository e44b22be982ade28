"""
Journal Engine

분개 생성(DRAFT) → 전기(POSTED) → 역분개(REVERSED) 관리.

규칙:
- DRAFT는 수정 가능, 균형 불필요
- 전기 시 차변 합계 = 대변 합계 (최소 단위 정수로 정확히 비교)
- POSTED 이후 불변. 정정은 역분개로만 (원분개는 삭제/수정하지 않음)
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Iterable, Mapping
from uuid import uuid4

from core.domain.events import EventTypes
from core.domain.state_machines import JournalEntryState, JournalEntryStateMachine
from core.errors import EntryNotFoundError, ImbalancedEntryError, ValidationError
from core.ledger.entry import JournalEntry, JournalLine, normalize_lines
from core.ledger.types import JournalSide, ReferenceType
from core.money import format_amount, from_minor, to_minor
from core.storage.repository import CompanyRepository
from core.types import EntityKind
from core.utils.clock import Clock, SystemClock, now_utc

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter
    from core.ledger.accounts import AccountRegistry
    from core.storage.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

LineInput = JournalLine | Mapping[str, Any]

_ENTRY_COLUMNS = """
    entry_id, company_id, entry_number, entry_date, description, status, currency,
    reference_type, reference_id, reverses_entry_id, reversed_by_entry_id,
    reversal_reason, posted_at, created_at
"""


def format_entry_number(year: int, sequence: int) -> str:
    """분개 번호 포맷 (JE-2024-000001)"""
    return f"JE-{year}-{sequence:06d}"


class JournalEngine(CompanyRepository):
    """분개 엔진

    Args:
        uow: 회사의 UnitOfWork
        reader: 읽기 연결
        accounts: AccountRegistry (계정 존재/활성 검증)
        currency: 기능통화 (모든 분개 금액의 통화)
        clock: 기본 분개일 결정용 시계

    사용 예시:
    ```python
    draft = await journal.create_draft([
        {"account_code": "1000", "side": "DEBIT", "amount": "500.00"},
        {"account_code": "4000", "side": "CREDIT", "amount": "500.00"},
    ], description="Cash sale")
    posted = await journal.post(draft.entry_id)
    ```
    """

    def __init__(
        self,
        uow: UnitOfWork,
        reader: SQLiteAdapter,
        accounts: AccountRegistry,
        currency: str,
        clock: Clock | None = None,
    ):
        super().__init__(uow, reader)
        self.accounts = accounts
        self.currency = currency
        self.clock = clock or SystemClock()

    # -------------------------------------------------------------------------
    # 쓰기
    # -------------------------------------------------------------------------

    async def create_draft(
        self,
        lines: Iterable[LineInput],
        entry_date: date | None = None,
        description: str = "",
        reference_type: str | None = None,
        reference_id: str | None = None,
    ) -> JournalEntry:
        """DRAFT 분개 생성 (균형 검증 없음)

        Raises:
            ValidationError: 라인 2개 미만, 잘못된 금액, 비활성 계정
            AccountNotFoundError: 존재하지 않는 계정
        """
        normalized = normalize_lines(lines, self.currency)
        entry_date = entry_date or self.clock.today()

        async with self.uow.begin() as txn:
            await self._validate_accounts(normalized)

            entry_number = await self._next_entry_number(entry_date.year)
            now = now_utc()
            entry = JournalEntry(
                entry_id=str(uuid4()),
                company_id=self.company_id,
                entry_number=entry_number,
                entry_date=entry_date,
                currency=self.currency,
                status=JournalEntryState.DRAFT.value,
                lines=normalized,
                description=description or "",
                reference_type=reference_type,
                reference_id=reference_id,
                created_at=now,
            )
            await self._insert_entry(txn.db, entry)

        logger.debug(f"[{self.company_id}] 분개 초안 생성: {entry.entry_number}")
        return entry

    async def update_draft(
        self,
        entry_id: str,
        lines: Iterable[LineInput] | None = None,
        description: str | None = None,
        entry_date: date | None = None,
    ) -> JournalEntry:
        """DRAFT 분개 수정

        Raises:
            EntryNotFoundError: 분개 없음
            AlreadyPostedError: DRAFT가 아닌 분개
            ValidationError: 잘못된 라인
        """
        normalized = normalize_lines(lines, self.currency) if lines is not None else None

        async with self.uow.begin() as txn:
            entry = await self.get_entry(entry_id)
            JournalEntryStateMachine(entry.status).require_editable()

            if normalized is not None:
                await self._validate_accounts(normalized)
                entry.lines = normalized
                await txn.db.execute("DELETE FROM journal_line WHERE entry_id = ?", (entry_id,))
                await self._insert_lines(txn.db, entry)
            if description is not None:
                entry.description = description
            if entry_date is not None:
                entry.entry_date = entry_date

            await txn.db.execute(
                """
                UPDATE journal_entry
                SET description = ?, entry_date = ?, updated_at = ?
                WHERE entry_id = ?
                """,
                (entry.description, entry.entry_date.isoformat(), now_utc().isoformat(), entry_id),
            )

        return entry

    async def post(self, entry_id: str) -> JournalEntry:
        """분개 전기 (DRAFT → POSTED)

        최신 저장 상태 기준으로 상태/계정/균형을 다시 검증.

        Raises:
            EntryNotFoundError: 분개 없음
            AlreadyPostedError: DRAFT가 아닌 분개
            ImbalancedEntryError: 차변 합계 ≠ 대변 합계
            ValidationError: 비활성 계정 포함
        """
        async with self.uow.begin() as txn:
            entry = await self.get_entry(entry_id)
            JournalEntryStateMachine(entry.status).require(JournalEntryState.POSTED)

            await self._validate_accounts(entry.lines)
            if not entry.is_balanced():
                raise ImbalancedEntryError(
                    entry.entry_number,
                    format_amount(entry.total_debit, self.currency),
                    format_amount(entry.total_credit, self.currency),
                )

            posted_at = now_utc()
            await txn.db.execute(
                """
                UPDATE journal_entry
                SET status = ?, posted_at = ?, updated_at = ?
                WHERE entry_id = ? AND status = ?
                """,
                (
                    JournalEntryState.POSTED.value,
                    posted_at.isoformat(),
                    posted_at.isoformat(),
                    entry_id,
                    JournalEntryState.DRAFT.value,
                ),
            )
            entry.status = JournalEntryState.POSTED.value
            entry.posted_at = posted_at

            txn.emit(
                EventTypes.JOURNAL_POSTED,
                EntityKind.JOURNAL_ENTRY.value,
                entry.entry_id,
                {
                    "entry_number": entry.entry_number,
                    "entry_date": entry.entry_date.isoformat(),
                    "amount": format_amount(entry.total_debit, self.currency),
                    "reference_type": entry.reference_type,
                    "reference_id": entry.reference_id,
                },
            )

        logger.info(
            f"[{self.company_id}] 분개 전기: {entry.entry_number} "
            f"{format_amount(entry.total_debit, self.currency)} {self.currency}"
        )
        return entry

    async def post_lines(
        self,
        lines: Iterable[LineInput],
        entry_date: date,
        description: str = "",
        reference_type: str | None = None,
        reference_id: str | None = None,
    ) -> JournalEntry:
        """분개 생성 + 전기 (호출자의 트랜잭션에 합류)

        Invoice Bridge 등 자동 분개에 사용.
        """
        async with self.uow.begin():
            draft = await self.create_draft(
                lines,
                entry_date=entry_date,
                description=description,
                reference_type=reference_type,
                reference_id=reference_id,
            )
            return await self.post(draft.entry_id)

    async def reverse(
        self,
        entry_id: str,
        reason: str,
        reversal_date: date | None = None,
    ) -> JournalEntry:
        """역분개 (POSTED → REVERSED)

        모든 라인의 차/대변을 뒤집은 새 분개를 자동 전기하고
        원분개는 REVERSED로 표시 (라인은 그대로 유지).
        역분개일 기본값은 원분개일.

        Returns:
            새로 생성된 역분개

        Raises:
            EntryNotFoundError: 분개 없음
            InvalidStateTransitionError: POSTED가 아닌 분개
            ValidationError: 사유 누락, 역분개일이 원분개일보다 이른 경우
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A reversal reason is required")

        async with self.uow.begin() as txn:
            original = await self.get_entry(entry_id)
            JournalEntryStateMachine(original.status).require_reversible()

            reversal_date = reversal_date or original.entry_date
            if reversal_date < original.entry_date:
                raise ValidationError(
                    f"Reversal date {reversal_date} precedes entry date {original.entry_date}"
                )

            now = now_utc()
            reversal = JournalEntry(
                entry_id=str(uuid4()),
                company_id=self.company_id,
                entry_number=await self._next_entry_number(reversal_date.year),
                entry_date=reversal_date,
                currency=original.currency,
                status=JournalEntryState.POSTED.value,
                lines=[line.flipped() for line in original.lines],
                description=f"Reversal of {original.entry_number}: {reason}",
                reference_type=ReferenceType.REVERSAL.value,
                reference_id=original.entry_id,
                reverses_entry_id=original.entry_id,
                reversal_reason=reason,
                posted_at=now,
                created_at=now,
            )
            await self._insert_entry(txn.db, reversal)

            await txn.db.execute(
                """
                UPDATE journal_entry
                SET status = ?, reversed_by_entry_id = ?, reversal_reason = ?, updated_at = ?
                WHERE entry_id = ? AND status = ?
                """,
                (
                    JournalEntryState.REVERSED.value,
                    reversal.entry_id,
                    reason,
                    now.isoformat(),
                    original.entry_id,
                    JournalEntryState.POSTED.value,
                ),
            )

            txn.emit(
                EventTypes.JOURNAL_REVERSED,
                EntityKind.JOURNAL_ENTRY.value,
                original.entry_id,
                {
                    "entry_number": original.entry_number,
                    "reversal_entry_id": reversal.entry_id,
                    "reversal_entry_number": reversal.entry_number,
                    "entry_date": reversal.entry_date.isoformat(),
                    "original_entry_date": original.entry_date.isoformat(),
                    "reason": reason,
                },
            )

        logger.info(
            f"[{self.company_id}] 역분개: {original.entry_number} → {reversal.entry_number} ({reason})"
        )
        return reversal

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    async def get_entry(self, entry_id: str) -> JournalEntry:
        """분개 조회 (라인 포함)

        Raises:
            EntryNotFoundError: 분개 없음
        """
        row = await self.db.fetchone(
            f"SELECT {_ENTRY_COLUMNS} FROM journal_entry WHERE company_id = ? AND entry_id = ?",
            (self.company_id, entry_id),
        )
        if row is None:
            raise EntryNotFoundError(f"Journal entry not found: {entry_id}")

        entry = self._row_to_entry(row)
        entry.lines = await self._load_lines(entry.entry_id, entry.currency)
        return entry

    async def list_entries(
        self,
        status: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[JournalEntry]:
        """분개 목록 (분개일, 번호순)"""
        conditions = ["company_id = ?"]
        params: list[Any] = [self.company_id]

        if status is not None:
            try:
                state = JournalEntryState(status.upper())
            except ValueError as e:
                raise ValidationError(f"Invalid entry status: {status!r}") from e
            conditions.append("status = ?")
            params.append(state.value)
        if date_from is not None:
            conditions.append("entry_date >= ?")
            params.append(date_from.isoformat())
        if date_to is not None:
            conditions.append("entry_date <= ?")
            params.append(date_to.isoformat())

        params.extend([limit, offset])
        rows = await self.db.fetchall(
            f"""
            SELECT {_ENTRY_COLUMNS}
            FROM journal_entry
            WHERE {' AND '.join(conditions)}
            ORDER BY entry_date, entry_number
            LIMIT ? OFFSET ?
            """,
            tuple(params),
        )

        entries = [self._row_to_entry(row) for row in rows]
        for entry in entries:
            entry.lines = await self._load_lines(entry.entry_id, entry.currency)
        return entries

    # -------------------------------------------------------------------------
    # 내부
    # -------------------------------------------------------------------------

    async def _validate_accounts(self, lines: list[JournalLine]) -> None:
        for code in sorted({line.account_code for line in lines}):
            await self.accounts.require_active(code)

    async def _next_entry_number(self, year: int) -> str:
        """회사/연도별 분개 번호 발급 (트랜잭션 안에서 호출)"""
        db = self.db
        await db.execute(
            "INSERT OR IGNORE INTO entry_sequence (company_id, year, last_value) VALUES (?, ?, 0)",
            (self.company_id, year),
        )
        await db.execute(
            "UPDATE entry_sequence SET last_value = last_value + 1 WHERE company_id = ? AND year = ?",
            (self.company_id, year),
        )
        row = await db.fetchone(
            "SELECT last_value FROM entry_sequence WHERE company_id = ? AND year = ?",
            (self.company_id, year),
        )
        return format_entry_number(year, row[0])

    async def _insert_entry(self, db: SQLiteAdapter, entry: JournalEntry) -> None:
        created_at = (entry.created_at or now_utc()).isoformat()
        await db.execute(
            """
            INSERT INTO journal_entry (
                entry_id, company_id, entry_number, entry_date, description, status,
                currency, reference_type, reference_id, reverses_entry_id,
                reversed_by_entry_id, reversal_reason, posted_at, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.entry_id,
                entry.company_id,
                entry.entry_number,
                entry.entry_date.isoformat(),
                entry.description,
                entry.status,
                entry.currency,
                entry.reference_type,
                entry.reference_id,
                entry.reverses_entry_id,
                entry.reversed_by_entry_id,
                entry.reversal_reason,
                entry.posted_at.isoformat() if entry.posted_at else None,
                created_at,
                created_at,
            ),
        )
        await self._insert_lines(db, entry)

    async def _insert_lines(self, db: SQLiteAdapter, entry: JournalEntry) -> None:
        await db.executemany(
            """
            INSERT INTO journal_line (
                entry_id, company_id, line_no, account_code, side, amount_minor, memo
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    entry.entry_id,
                    entry.company_id,
                    line.line_no,
                    line.account_code,
                    line.side.value,
                    to_minor(line.amount, entry.currency),
                    line.memo,
                )
                for line in entry.lines
            ],
        )

    async def _load_lines(self, entry_id: str, currency: str) -> list[JournalLine]:
        rows = await self.db.fetchall(
            """
            SELECT account_code, side, amount_minor, memo, line_no
            FROM journal_line
            WHERE entry_id = ?
            ORDER BY line_no
            """,
            (entry_id,),
        )
        return [
            JournalLine(
                account_code=row[0],
                side=JournalSide(row[1]),
                amount=from_minor(row[2], currency),
                memo=row[3],
                line_no=row[4],
            )
            for row in rows
        ]

    @staticmethod
    def _row_to_entry(row: tuple[Any, ...]) -> JournalEntry:
        """DB 행 → JournalEntry (라인 제외)

        컬럼 순서는 _ENTRY_COLUMNS 참조
        """
        return JournalEntry(
            entry_id=row[0],
            company_id=row[1],
            entry_number=row[2],
            entry_date=date.fromisoformat(row[3]),
            description=row[4],
            status=row[5],
            currency=row[6],
            reference_type=row[7],
            reference_id=row[8],
            reverses_entry_id=row[9],
            reversed_by_entry_id=row[10],
            reversal_reason=row[11],
            posted_at=datetime.fromisoformat(row[12]) if row[12] else None,
            created_at=datetime.fromisoformat(row[13]) if row[13] else None,
        )
