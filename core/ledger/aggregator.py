"""
Ledger Aggregator

전기된 분개(POSTED + 역분개된 원분개 REVERSED)를 재생하여
계정별 잔액(시산표), 기간 발생액, 계정 원장을 계산.

- 분개는 (entry_date, entry_number) 키셋 페이지 단위로 읽음 (전체 이력을 한 번에 로드하지 않음)
- 재생 중 분개별 차/대변 균형, 시산표 합계 균형을 매번 검증
- 위반 시 LedgerImbalanceError (절대 무시하지 않음)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any, AsyncIterator

from core.errors import LedgerImbalanceError, ValidationError
from core.ledger.types import AccountType, JournalSide
from core.money import format_amount, from_minor
from core.storage.repository import CompanyRepository

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter
    from core.ledger.accounts import Account, AccountRegistry
    from core.ledger.cache import ReportCache
    from core.storage.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

_BALANCE_STATUSES = ("POSTED", "REVERSED")


@dataclass(frozen=True)
class TrialBalanceRow:
    """시산표 행

    debit_balance / credit_balance 중 하나만 0이 아님.
    정상 잔액 방향과 반대인 잔액은 뒤집지 않고 anomalous로 표시.
    """

    code: str
    name: str
    account_type: AccountType
    total_debits: Decimal
    total_credits: Decimal
    debit_balance: Decimal
    credit_balance: Decimal
    anomalous: bool = False

    @property
    def balance(self) -> Decimal:
        """정상 잔액 방향 기준 부호 있는 잔액"""
        if self.account_type.normal_side is JournalSide.DEBIT:
            return self.debit_balance - self.credit_balance
        return self.credit_balance - self.debit_balance

    def to_dict(self, currency: str) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "account_type": self.account_type.value,
            "total_debits": format_amount(self.total_debits, currency),
            "total_credits": format_amount(self.total_credits, currency),
            "debit_balance": format_amount(self.debit_balance, currency),
            "credit_balance": format_amount(self.credit_balance, currency),
            "anomalous": self.anomalous,
        }


@dataclass(frozen=True)
class TrialBalance:
    """시산표 (as-of 날짜 기준)"""

    as_of: date
    currency: str
    rows: tuple[TrialBalanceRow, ...]
    total_debit_balance: Decimal
    total_credit_balance: Decimal
    entry_count: int = 0

    def row(self, code: str) -> TrialBalanceRow | None:
        for row in self.rows:
            if row.code == code:
                return row
        return None

    @property
    def is_balanced(self) -> bool:
        return self.total_debit_balance == self.total_credit_balance

    def to_dict(self) -> dict[str, Any]:
        return {
            "as_of": self.as_of.isoformat(),
            "currency": self.currency,
            "rows": [row.to_dict(self.currency) for row in self.rows],
            "total_debit_balance": format_amount(self.total_debit_balance, self.currency),
            "total_credit_balance": format_amount(self.total_credit_balance, self.currency),
            "entry_count": self.entry_count,
        }


@dataclass(frozen=True)
class AccountActivity:
    """기간 발생액"""

    code: str
    name: str
    account_type: AccountType
    total_debits: Decimal
    total_credits: Decimal

    @property
    def net(self) -> Decimal:
        """정상 잔액 방향 기준 순발생액"""
        if self.account_type.normal_side is JournalSide.DEBIT:
            return self.total_debits - self.total_credits
        return self.total_credits - self.total_debits


@dataclass(frozen=True)
class LedgerPosting:
    """계정 원장 한 줄"""

    entry_id: str
    entry_number: str
    entry_date: date
    description: str
    side: JournalSide
    amount: Decimal
    running_balance: Decimal
    memo: str | None = None

    def to_dict(self, currency: str) -> dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "entry_number": self.entry_number,
            "entry_date": self.entry_date.isoformat(),
            "description": self.description,
            "side": self.side.value,
            "amount": format_amount(self.amount, currency),
            "running_balance": format_amount(self.running_balance, currency),
            "memo": self.memo,
        }


@dataclass
class AccountLedger:
    """계정 원장 (기초 잔액 + 기간 내 전기 내역)"""

    code: str
    name: str
    account_type: AccountType
    currency: str
    opening_balance: Decimal
    closing_balance: Decimal
    postings: list[LedgerPosting] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "account_type": self.account_type.value,
            "currency": self.currency,
            "opening_balance": format_amount(self.opening_balance, self.currency),
            "closing_balance": format_amount(self.closing_balance, self.currency),
            "postings": [p.to_dict(self.currency) for p in self.postings],
        }


@dataclass
class _Totals:
    """계정별 누적 (최소 단위 정수)"""

    debit: int = 0
    credit: int = 0


class LedgerAggregator(CompanyRepository):
    """원장 집계기

    Args:
        uow: 회사의 UnitOfWork
        reader: 읽기 연결
        accounts: AccountRegistry (계정명/유형)
        currency: 기능통화
        page_size: 재생 시 한 번에 읽는 분개 수
        cache: 시산표 캐시 (None이면 매번 재계산)
    """

    def __init__(
        self,
        uow: UnitOfWork,
        reader: SQLiteAdapter,
        accounts: AccountRegistry,
        currency: str,
        page_size: int = 500,
        cache: ReportCache | None = None,
    ):
        super().__init__(uow, reader)
        self.accounts = accounts
        self.currency = currency
        self.page_size = page_size
        self.cache = cache

    async def trial_balance(self, as_of: date) -> TrialBalance:
        """as-of 날짜 기준 시산표

        Raises:
            LedgerImbalanceError: 분개 또는 시산표 합계 불균형
        """
        # 진행 중인 트랜잭션의 미커밋 상태는 캐시하지 않음
        use_cache = self.cache is not None and self.uow.active is None
        generation = 0
        if use_cache:
            cached = self.cache.get(as_of)
            if cached is not None:
                return cached
            generation = self.cache.generation

        async with self.db.snapshot():
            totals, entry_count = await self._accumulate(date_to=as_of)
            accounts = await self._account_map()

        rows: list[TrialBalanceRow] = []
        total_debit = 0
        total_credit = 0
        for code in sorted(totals):
            t = totals[code]
            account = self._resolve(accounts, code)
            debit_minor, credit_minor, anomalous = _net_balance(account.account_type, t)
            total_debit += debit_minor
            total_credit += credit_minor
            rows.append(
                TrialBalanceRow(
                    code=code,
                    name=account.name,
                    account_type=account.account_type,
                    total_debits=from_minor(t.debit, self.currency),
                    total_credits=from_minor(t.credit, self.currency),
                    debit_balance=from_minor(debit_minor, self.currency),
                    credit_balance=from_minor(credit_minor, self.currency),
                    anomalous=anomalous,
                )
            )
            if anomalous:
                logger.warning(
                    f"[{self.company_id}] 비정상 잔액 방향: {code} {account.account_type.value} "
                    f"(debit={t.debit} credit={t.credit})"
                )

        if total_debit != total_credit:
            logger.error(
                f"[{self.company_id}] 시산표 불균형 as_of={as_of}: "
                f"debit={total_debit} credit={total_credit}"
            )
            raise LedgerImbalanceError(
                f"Trial balance as of {as_of} does not balance: "
                f"debits={format_amount(from_minor(total_debit, self.currency), self.currency)} "
                f"credits={format_amount(from_minor(total_credit, self.currency), self.currency)}"
            )

        result = TrialBalance(
            as_of=as_of,
            currency=self.currency,
            rows=tuple(rows),
            total_debit_balance=from_minor(total_debit, self.currency),
            total_credit_balance=from_minor(total_credit, self.currency),
            entry_count=entry_count,
        )
        if use_cache:
            self.cache.put(as_of, result, generation=generation)
        return result

    async def period_activity(self, date_from: date, date_to: date) -> list[AccountActivity]:
        """기간 [date_from, date_to] 계정별 발생액

        Raises:
            ValidationError: date_from > date_to
            LedgerImbalanceError: 분개 불균형
        """
        if date_from > date_to:
            raise ValidationError(f"Period start {date_from} is after period end {date_to}")

        async with self.db.snapshot():
            totals, _ = await self._accumulate(date_to=date_to, date_from=date_from)
            accounts = await self._account_map()

        result = []
        for code in sorted(totals):
            account = self._resolve(accounts, code)
            result.append(
                AccountActivity(
                    code=code,
                    name=account.name,
                    account_type=account.account_type,
                    total_debits=from_minor(totals[code].debit, self.currency),
                    total_credits=from_minor(totals[code].credit, self.currency),
                )
            )
        return result

    async def account_ledger(
        self,
        code: str,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> AccountLedger:
        """계정 원장 (정상 잔액 방향 기준 누적 잔액)

        Raises:
            AccountNotFoundError: 계정 없음
            ValidationError: date_from > date_to
        """
        if date_from is not None and date_to is not None and date_from > date_to:
            raise ValidationError(f"Period start {date_from} is after period end {date_to}")

        account = await self.accounts.get_account(code)
        sign = 1 if account.account_type.normal_side is JournalSide.DEBIT else -1

        async with self.db.snapshot():
            opening = 0
            if date_from is not None:
                row = await self.db.fetchone(
                    """
                    SELECT
                        COALESCE(SUM(CASE WHEN jl.side = 'DEBIT' THEN jl.amount_minor ELSE 0 END), 0),
                        COALESCE(SUM(CASE WHEN jl.side = 'CREDIT' THEN jl.amount_minor ELSE 0 END), 0)
                    FROM journal_line jl
                    JOIN journal_entry je ON je.entry_id = jl.entry_id
                    WHERE je.company_id = ? AND jl.account_code = ?
                      AND je.status IN ('POSTED', 'REVERSED')
                      AND je.entry_date < ?
                    """,
                    (self.company_id, code, date_from.isoformat()),
                )
                opening = sign * (row[0] - row[1])

            conditions = [
                "je.company_id = ?",
                "jl.account_code = ?",
                "je.status IN ('POSTED', 'REVERSED')",
            ]
            params: list[Any] = [self.company_id, code]
            if date_from is not None:
                conditions.append("je.entry_date >= ?")
                params.append(date_from.isoformat())
            if date_to is not None:
                conditions.append("je.entry_date <= ?")
                params.append(date_to.isoformat())

            rows = await self.db.fetchall(
                f"""
                SELECT je.entry_id, je.entry_number, je.entry_date, je.description,
                       jl.side, jl.amount_minor, jl.memo
                FROM journal_line jl
                JOIN journal_entry je ON je.entry_id = jl.entry_id
                WHERE {' AND '.join(conditions)}
                ORDER BY je.entry_date, je.entry_number, jl.line_no
                """,
                tuple(params),
            )

        running = opening
        postings = []
        for row in rows:
            side = JournalSide(row[4])
            amount = row[5]
            running += sign * (amount if side is JournalSide.DEBIT else -amount)
            postings.append(
                LedgerPosting(
                    entry_id=row[0],
                    entry_number=row[1],
                    entry_date=date.fromisoformat(row[2]),
                    description=row[3],
                    side=side,
                    amount=from_minor(amount, self.currency),
                    running_balance=from_minor(running, self.currency),
                    memo=row[6],
                )
            )

        return AccountLedger(
            code=account.code,
            name=account.name,
            account_type=account.account_type,
            currency=self.currency,
            opening_balance=from_minor(opening, self.currency),
            closing_balance=from_minor(running, self.currency),
            postings=postings,
        )

    # -------------------------------------------------------------------------
    # 재생
    # -------------------------------------------------------------------------

    async def _accumulate(
        self,
        date_to: date,
        date_from: date | None = None,
    ) -> tuple[dict[str, _Totals], int]:
        """분개 재생 → 계정별 차/대변 누적

        Returns:
            (계정별 누적, 재생한 분개 수)
        """
        totals: dict[str, _Totals] = defaultdict(_Totals)
        entry_count = 0

        async for page in self._iter_entry_pages(date_to, date_from):
            lines_by_entry: dict[str, list[tuple[str, str, int]]] = defaultdict(list)
            placeholders = ", ".join("?" for _ in page)
            rows = await self.db.fetchall(
                f"""
                SELECT entry_id, account_code, side, amount_minor
                FROM journal_line
                WHERE entry_id IN ({placeholders})
                """,
                tuple(entry_id for entry_id, _ in page),
            )
            for entry_id, account_code, side, amount_minor in rows:
                lines_by_entry[entry_id].append((account_code, side, amount_minor))

            for entry_id, entry_number in page:
                entry_debit = 0
                entry_credit = 0
                for account_code, side, amount_minor in lines_by_entry[entry_id]:
                    if side == JournalSide.DEBIT.value:
                        totals[account_code].debit += amount_minor
                        entry_debit += amount_minor
                    else:
                        totals[account_code].credit += amount_minor
                        entry_credit += amount_minor

                if entry_debit != entry_credit or entry_debit == 0:
                    logger.error(
                        f"[{self.company_id}] 불균형 분개 발견: {entry_number} "
                        f"debit={entry_debit} credit={entry_credit}"
                    )
                    raise LedgerImbalanceError(
                        f"Posted entry {entry_number} is not balanced "
                        f"(debit={entry_debit} credit={entry_credit} minor units)"
                    )
                entry_count += 1

        return dict(totals), entry_count

    async def _iter_entry_pages(
        self,
        date_to: date,
        date_from: date | None,
    ) -> AsyncIterator[list[tuple[str, str]]]:
        """(entry_date, entry_number) 키셋 페이지네이션"""
        last_date = ""
        last_number = ""
        lower = date_from.isoformat() if date_from is not None else ""

        while True:
            rows = await self.db.fetchall(
                """
                SELECT entry_id, entry_number, entry_date
                FROM journal_entry
                WHERE company_id = ?
                  AND status IN (?, ?)
                  AND entry_date <= ?
                  AND entry_date >= ?
                  AND (entry_date > ? OR (entry_date = ? AND entry_number > ?))
                ORDER BY entry_date, entry_number
                LIMIT ?
                """,
                (
                    self.company_id,
                    *_BALANCE_STATUSES,
                    date_to.isoformat(),
                    lower,
                    last_date,
                    last_date,
                    last_number,
                    self.page_size,
                ),
            )
            if not rows:
                return

            yield [(row[0], row[1]) for row in rows]

            if len(rows) < self.page_size:
                return
            last_date = rows[-1][2]
            last_number = rows[-1][1]

    async def _account_map(self) -> dict[str, Account]:
        accounts = await self.accounts.list_accounts(include_inactive=True)
        return {account.code: account for account in accounts}

    def _resolve(self, accounts: dict[str, Account], code: str) -> Account:
        account = accounts.get(code)
        if account is None:
            # journal_line FK로 막히므로 발생하면 데이터 손상
            raise LedgerImbalanceError(f"Posting references unknown account {code}")
        return account


def _net_balance(account_type: AccountType, totals: _Totals) -> tuple[int, int, bool]:
    """정상 잔액 방향 기준 순잔액 (debit_minor, credit_minor, anomalous)"""
    net_debit = totals.debit - totals.credit
    if account_type.normal_side is JournalSide.DEBIT:
        if net_debit >= 0:
            return net_debit, 0, False
        return 0, -net_debit, True

    net_credit = -net_debit
    if net_credit >= 0:
        return 0, net_credit, False
    return -net_credit, 0, True
