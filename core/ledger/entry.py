"""
분개 데이터 구조

JournalLine / JournalEntry 정의와 입력 라인 정규화.
금액은 분개 통화(기능통화)의 최소 단위 정밀도를 넘을 수 없음.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping

from core.errors import ValidationError
from core.ledger.types import JournalSide
from core.money import format_amount, parse_positive_amount, to_minor


@dataclass(frozen=True)
class JournalLine:
    """분개 항목

    예: 500.00 현금 매출
        - JournalLine("1000", DEBIT, 500.00)
        - JournalLine("4000", CREDIT, 500.00)
    """

    account_code: str
    side: JournalSide
    amount: Decimal  # 항상 양수
    memo: str | None = None
    line_no: int = 0

    def flipped(self) -> "JournalLine":
        """차/대변을 뒤집은 라인 (역분개용)"""
        return JournalLine(
            account_code=self.account_code,
            side=self.side.opposite,
            amount=self.amount,
            memo=self.memo,
            line_no=self.line_no,
        )

    def to_dict(self, currency: str) -> dict[str, Any]:
        return {
            "line_no": self.line_no,
            "account_code": self.account_code,
            "side": self.side.value,
            "amount": format_amount(self.amount, currency),
            "memo": self.memo,
        }


@dataclass
class JournalEntry:
    """분개

    하나의 거래에 대한 복식부기 기록.
    POSTED 분개는 차변 합계 = 대변 합계 (정확히 일치)
    """

    entry_id: str
    company_id: str
    entry_number: str
    entry_date: date
    currency: str
    status: str
    lines: list[JournalLine] = field(default_factory=list)
    description: str = ""

    # 출처
    reference_type: str | None = None
    reference_id: str | None = None

    # 역분개 연결
    reverses_entry_id: str | None = None
    reversed_by_entry_id: str | None = None
    reversal_reason: str | None = None

    posted_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def total_debit(self) -> Decimal:
        return sum(
            (line.amount for line in self.lines if line.side is JournalSide.DEBIT),
            Decimal(0),
        )

    @property
    def total_credit(self) -> Decimal:
        return sum(
            (line.amount for line in self.lines if line.side is JournalSide.CREDIT),
            Decimal(0),
        )

    def minor_totals(self) -> tuple[int, int]:
        """차변/대변 합계 (최소 단위 정수)"""
        debit = sum(to_minor(l.amount, self.currency) for l in self.lines if l.side is JournalSide.DEBIT)
        credit = sum(to_minor(l.amount, self.currency) for l in self.lines if l.side is JournalSide.CREDIT)
        return debit, credit

    def is_balanced(self) -> bool:
        """차변 합계 = 대변 합계 (정수 비교, 허용 오차 없음)"""
        debit, credit = self.minor_totals()
        return debit == credit

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환 (API 응답용)"""
        return {
            "entry_id": self.entry_id,
            "entry_number": self.entry_number,
            "entry_date": self.entry_date.isoformat(),
            "description": self.description,
            "status": self.status,
            "currency": self.currency,
            "lines": [line.to_dict(self.currency) for line in self.lines],
            "total_debit": format_amount(self.total_debit, self.currency),
            "total_credit": format_amount(self.total_credit, self.currency),
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "reverses_entry_id": self.reverses_entry_id,
            "reversed_by_entry_id": self.reversed_by_entry_id,
            "reversal_reason": self.reversal_reason,
            "posted_at": self.posted_at.isoformat() if self.posted_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def parse_side(value: str | JournalSide) -> JournalSide:
    """차/대변 파싱

    Raises:
        ValidationError: DEBIT/CREDIT 이외의 값
    """
    if isinstance(value, JournalSide):
        return value
    try:
        return JournalSide(str(value).upper())
    except ValueError as e:
        raise ValidationError(f"Invalid journal side: {value!r} (expected DEBIT or CREDIT)") from e


def normalize_lines(
    lines: Iterable[JournalLine | Mapping[str, Any]],
    currency: str,
) -> list[JournalLine]:
    """입력 라인 정규화 및 형식 검증

    JournalLine 또는 {"account_code", "side", "amount", "memo"} 매핑 허용.
    계정 존재/활성 여부는 Journal Engine에서 별도 검증.

    Raises:
        ValidationError: 라인 2개 미만, 금액 0 이하, 정밀도 초과, 잘못된 side
    """
    result: list[JournalLine] = []
    for index, raw in enumerate(lines, start=1):
        if isinstance(raw, JournalLine):
            account_code, side, amount, memo = raw.account_code, raw.side, raw.amount, raw.memo
        elif isinstance(raw, Mapping):
            try:
                account_code = raw["account_code"]
                side = raw["side"]
                amount = raw["amount"]
            except KeyError as e:
                raise ValidationError(f"Line {index}: missing field {e.args[0]!r}") from e
            memo = raw.get("memo")
        else:
            raise ValidationError(f"Line {index}: unsupported line type {type(raw).__name__}")

        if not isinstance(account_code, str) or not account_code.strip():
            raise ValidationError(f"Line {index}: account_code is required")

        try:
            parsed_amount = parse_positive_amount(amount, currency)
        except ValidationError as e:
            raise ValidationError(f"Line {index}: {e}") from e

        result.append(
            JournalLine(
                account_code=account_code.strip(),
                side=parse_side(side),
                amount=parsed_amount,
                memo=memo,
                line_no=index,
            )
        )

    if len(result) < 2:
        raise ValidationError(f"A journal entry needs at least 2 lines (got {len(result)})")
    return result
