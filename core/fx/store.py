"""
FX Rate Store

날짜별 환율 관측치를 append-only로 보관.
- 같은 (통화쌍, 날짜)에 새 환율을 넣으면 기존 활성 환율은 비활성화 (날짜 기준 대체)
- 조회는 요청일 이전(같은 날 포함) 가장 최근의 활성 환율 (보간 없음)
- 직접 환율이 없으면 역방향 환율로 나눔. 제3통화 경유(삼각 환산)는 하지 않음

과거 날짜 보고서를 다시 실행해도 항상 같은 값이 나와야 하므로
"최신 환율"이 아니라 "해당일 기준 마지막 환율"을 사용.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from core.domain.events import EventTypes
from core.errors import NoRateAvailableError, ValidationError
from core.money import normalize_currency, parse_amount, round_money, to_decimal
from core.storage.repository import CompanyRepository
from core.types import EntityKind, RateSource
from core.utils.clock import now_utc

logger = logging.getLogger(__name__)

_RATE_COLUMNS = """
    rate_id, company_id, from_currency, to_currency, rate_date,
    rate, source, is_active, created_at
"""


@dataclass(frozen=True)
class ExchangeRate:
    """환율 관측치 (1 from_currency = rate to_currency)"""

    rate_id: str
    company_id: str
    from_currency: str
    to_currency: str
    rate_date: date
    rate: Decimal
    source: str
    is_active: bool
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "rate_id": self.rate_id,
            "from_currency": self.from_currency,
            "to_currency": self.to_currency,
            "rate_date": self.rate_date.isoformat(),
            "rate": str(self.rate),
            "source": self.source,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class Conversion:
    """환산 결과"""

    amount: Decimal
    from_currency: str
    to_currency: str
    rate_date: date
    rate: Decimal  # 실제 적용된 from → to 환율
    converted: Decimal
    inverse: bool = False  # 역방향 환율로 계산했는지

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": str(self.amount),
            "from_currency": self.from_currency,
            "to_currency": self.to_currency,
            "rate_date": self.rate_date.isoformat(),
            "rate": str(self.rate),
            "converted": str(self.converted),
            "inverse": self.inverse,
        }


def parse_rate(value: Any) -> Decimal:
    """환율 파싱 (양수 Decimal)

    Raises:
        ValidationError: 0 이하, float, 변환 불가
    """
    rate = to_decimal(value)
    if rate <= 0:
        raise ValidationError(f"Exchange rate must be positive: {value}")
    return rate


def parse_source(value: str | RateSource) -> str:
    if isinstance(value, RateSource):
        return value.value
    try:
        return RateSource(str(value).upper()).value
    except ValueError as e:
        valid = [s.value for s in RateSource]
        raise ValidationError(f"Invalid rate source: {value!r}. Valid: {valid}") from e


class FxRateStore(CompanyRepository):
    """환율 저장소

    Args:
        uow: 회사의 UnitOfWork
        reader: 읽기 연결
    """

    async def set_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate: Any,
        rate_date: date,
        source: str | RateSource = RateSource.MANUAL,
    ) -> ExchangeRate:
        """환율 등록

        같은 통화쌍/날짜의 기존 활성 환율은 비활성화. 다른 날짜는 건드리지 않음.

        Raises:
            ValidationError: 잘못된 통화, 같은 통화, 0 이하 환율
        """
        from_ccy = normalize_currency(from_currency)
        to_ccy = normalize_currency(to_currency)
        if from_ccy == to_ccy:
            raise ValidationError(f"Cannot set a rate from {from_ccy} to itself")
        parsed_rate = parse_rate(rate)
        parsed_source = parse_source(source)

        async with self.uow.begin() as txn:
            cursor = await txn.db.execute(
                """
                UPDATE exchange_rate
                SET is_active = 0
                WHERE company_id = ? AND from_currency = ? AND to_currency = ?
                  AND rate_date = ? AND is_active = 1
                """,
                (self.company_id, from_ccy, to_ccy, rate_date.isoformat()),
            )
            superseded = cursor.rowcount

            exchange_rate = ExchangeRate(
                rate_id=str(uuid4()),
                company_id=self.company_id,
                from_currency=from_ccy,
                to_currency=to_ccy,
                rate_date=rate_date,
                rate=parsed_rate,
                source=parsed_source,
                is_active=True,
                created_at=now_utc(),
            )
            await txn.db.execute(
                f"""
                INSERT INTO exchange_rate ({_RATE_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?)
                """,
                (
                    exchange_rate.rate_id,
                    self.company_id,
                    from_ccy,
                    to_ccy,
                    rate_date.isoformat(),
                    str(parsed_rate),
                    parsed_source,
                    exchange_rate.created_at.isoformat(),
                ),
            )
            txn.emit(
                EventTypes.RATE_SET,
                EntityKind.EXCHANGE_RATE.value,
                exchange_rate.rate_id,
                {**exchange_rate.to_dict(), "superseded": superseded},
            )

        logger.info(
            f"[{self.company_id}] 환율 등록: 1 {from_ccy} = {parsed_rate} {to_ccy} "
            f"({rate_date}, {parsed_source}){' (기존 환율 대체)' if superseded else ''}"
        )
        return exchange_rate

    async def find_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate_date: date,
    ) -> ExchangeRate | None:
        """요청일 이전 가장 최근 활성 환율 (없으면 None)"""
        row = await self.db.fetchone(
            f"""
            SELECT {_RATE_COLUMNS}
            FROM exchange_rate
            WHERE company_id = ? AND from_currency = ? AND to_currency = ?
              AND rate_date <= ? AND is_active = 1
            ORDER BY rate_date DESC
            LIMIT 1
            """,
            (
                self.company_id,
                normalize_currency(from_currency),
                normalize_currency(to_currency),
                rate_date.isoformat(),
            ),
        )
        return self._row_to_rate(row) if row else None

    async def get_rate(self, from_currency: str, to_currency: str, rate_date: date) -> Decimal:
        """직접 환율 조회 (같은 통화는 1)

        Raises:
            NoRateAvailableError: 요청일 이전 환율 없음 (1:1로 대체하지 않음)
        """
        from_ccy = normalize_currency(from_currency)
        to_ccy = normalize_currency(to_currency)
        if from_ccy == to_ccy:
            return Decimal(1)

        found = await self.find_rate(from_ccy, to_ccy, rate_date)
        if found is None:
            raise NoRateAvailableError(from_ccy, to_ccy, rate_date)
        return found.rate

    async def convert(
        self,
        amount: Any,
        from_currency: str,
        to_currency: str,
        rate_date: date,
    ) -> Conversion:
        """금액 환산 (결과는 대상 통화 자릿수로 반올림)

        역방향 환율을 쓸 때는 곱하지 않고 나눔 (1/rate 반올림 오차 방지).

        Raises:
            ValidationError: 원 통화 정밀도 초과
            NoRateAvailableError: 환율 없음
        """
        from_ccy = normalize_currency(from_currency)
        to_ccy = normalize_currency(to_currency)
        source_amount = parse_amount(amount, from_ccy)

        if from_ccy == to_ccy:
            return Conversion(
                amount=source_amount,
                from_currency=from_ccy,
                to_currency=to_ccy,
                rate_date=rate_date,
                rate=Decimal(1),
                converted=source_amount,
            )

        direct = await self.find_rate(from_ccy, to_ccy, rate_date)
        if direct is not None:
            return Conversion(
                amount=source_amount,
                from_currency=from_ccy,
                to_currency=to_ccy,
                rate_date=rate_date,
                rate=direct.rate,
                converted=round_money(source_amount * direct.rate, to_ccy),
            )

        inverse = await self.find_rate(to_ccy, from_ccy, rate_date)
        if inverse is not None:
            return Conversion(
                amount=source_amount,
                from_currency=from_ccy,
                to_currency=to_ccy,
                rate_date=rate_date,
                rate=Decimal(1) / inverse.rate,
                converted=round_money(source_amount / inverse.rate, to_ccy),
                inverse=True,
            )

        raise NoRateAvailableError(from_ccy, to_ccy, rate_date)

    async def list_rates(
        self,
        from_currency: str | None = None,
        to_currency: str | None = None,
        include_inactive: bool = False,
    ) -> list[ExchangeRate]:
        """환율 이력 (날짜 역순)"""
        conditions = ["company_id = ?"]
        params: list[Any] = [self.company_id]

        if from_currency is not None:
            conditions.append("from_currency = ?")
            params.append(normalize_currency(from_currency))
        if to_currency is not None:
            conditions.append("to_currency = ?")
            params.append(normalize_currency(to_currency))
        if not include_inactive:
            conditions.append("is_active = 1")

        rows = await self.db.fetchall(
            f"""
            SELECT {_RATE_COLUMNS}
            FROM exchange_rate
            WHERE {' AND '.join(conditions)}
            ORDER BY from_currency, to_currency, rate_date DESC, created_at DESC
            """,
            tuple(params),
        )
        return [self._row_to_rate(row) for row in rows]

    @staticmethod
    def _row_to_rate(row: tuple[Any, ...]) -> ExchangeRate:
        return ExchangeRate(
            rate_id=row[0],
            company_id=row[1],
            from_currency=row[2],
            to_currency=row[3],
            rate_date=date.fromisoformat(row[4]),
            rate=Decimal(row[5]),
            source=row[6],
            is_active=bool(row[7]),
            created_at=datetime.fromisoformat(row[8]),
        )
