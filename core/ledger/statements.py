"""
재무제표 생성기

Ledger Aggregator 결과로 손익계산서와 재무상태표 생성.

- 손익계산서: 기간 [from, to] 수익/비용 발생액, 순이익 = 수익 − 비용
- 재무상태표: as-of 잔액. 마감 분개가 없어도 균형이 맞도록
  자본에 당기 누적 손익(수익 − 비용) 라인을 포함.
  자산 ≠ 부채 + 자본 이면 요청은 성공하되 경고(차이 금액 포함)를 붙임.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Protocol

from core.errors import ValidationError
from core.ledger.aggregator import AccountActivity, TrialBalance
from core.ledger.types import AccountType
from core.money import format_amount

logger = logging.getLogger(__name__)

CURRENT_EARNINGS_CODE = "CURRENT_EARNINGS"
CURRENT_EARNINGS_NAME = "Current Earnings"


class BalanceSource(Protocol):
    """재무제표 생성에 필요한 집계 인터페이스 (LedgerAggregator)"""

    currency: str

    async def trial_balance(self, as_of: date) -> TrialBalance:
        ...

    async def period_activity(self, date_from: date, date_to: date) -> list[AccountActivity]:
        ...


@dataclass(frozen=True)
class StatementLine:
    """재무제표 한 줄"""

    code: str
    name: str
    amount: Decimal

    def to_dict(self, currency: str) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "amount": format_amount(self.amount, currency),
        }


@dataclass
class ProfitAndLoss:
    """손익계산서"""

    date_from: date
    date_to: date
    currency: str
    revenue: list[StatementLine] = field(default_factory=list)
    expenses: list[StatementLine] = field(default_factory=list)
    total_revenue: Decimal = Decimal(0)
    total_expenses: Decimal = Decimal(0)

    @property
    def net_profit(self) -> Decimal:
        return self.total_revenue - self.total_expenses

    def to_dict(self) -> dict[str, Any]:
        return {
            "from_date": self.date_from.isoformat(),
            "to_date": self.date_to.isoformat(),
            "currency": self.currency,
            "revenue": [line.to_dict(self.currency) for line in self.revenue],
            "expenses": [line.to_dict(self.currency) for line in self.expenses],
            "total_revenue": format_amount(self.total_revenue, self.currency),
            "total_expenses": format_amount(self.total_expenses, self.currency),
            "net_profit": format_amount(self.net_profit, self.currency),
        }


@dataclass
class BalanceSheet:
    """재무상태표"""

    as_of: date
    currency: str
    assets: list[StatementLine] = field(default_factory=list)
    liabilities: list[StatementLine] = field(default_factory=list)
    equity: list[StatementLine] = field(default_factory=list)
    total_assets: Decimal = Decimal(0)
    total_liabilities: Decimal = Decimal(0)
    total_equity: Decimal = Decimal(0)
    tolerance: Decimal = Decimal(0)
    warnings: list[str] = field(default_factory=list)

    @property
    def total_liabilities_and_equity(self) -> Decimal:
        return self.total_liabilities + self.total_equity

    @property
    def delta(self) -> Decimal:
        """자산 − (부채 + 자본)"""
        return self.total_assets - self.total_liabilities_and_equity

    @property
    def is_balanced(self) -> bool:
        return abs(self.delta) <= self.tolerance

    def to_dict(self) -> dict[str, Any]:
        return {
            "as_of": self.as_of.isoformat(),
            "currency": self.currency,
            "assets": [line.to_dict(self.currency) for line in self.assets],
            "liabilities": [line.to_dict(self.currency) for line in self.liabilities],
            "equity": [line.to_dict(self.currency) for line in self.equity],
            "total_assets": format_amount(self.total_assets, self.currency),
            "total_liabilities": format_amount(self.total_liabilities, self.currency),
            "total_equity": format_amount(self.total_equity, self.currency),
            "total_liabilities_and_equity": format_amount(
                self.total_liabilities_and_equity, self.currency
            ),
            "delta": format_amount(self.delta, self.currency),
            "is_balanced": self.is_balanced,
            "warnings": list(self.warnings),
        }


class FinancialStatementGenerator:
    """재무제표 생성기

    Args:
        aggregator: LedgerAggregator (또는 같은 인터페이스)
        tolerance: 재무상태표 불일치 허용 오차 (기본 0)
    """

    def __init__(self, aggregator: BalanceSource, tolerance: Decimal = Decimal(0)):
        self.aggregator = aggregator
        self.tolerance = tolerance

    @property
    def currency(self) -> str:
        return self.aggregator.currency

    async def profit_and_loss(self, date_from: date, date_to: date) -> ProfitAndLoss:
        """손익계산서

        Raises:
            ValidationError: date_from > date_to
        """
        if date_from > date_to:
            raise ValidationError(f"Period start {date_from} is after period end {date_to}")

        activity = await self.aggregator.period_activity(date_from, date_to)
        report = ProfitAndLoss(date_from=date_from, date_to=date_to, currency=self.currency)

        for item in activity:
            if item.account_type is AccountType.REVENUE:
                report.revenue.append(StatementLine(item.code, item.name, item.net))
                report.total_revenue += item.net
            elif item.account_type is AccountType.EXPENSE:
                report.expenses.append(StatementLine(item.code, item.name, item.net))
                report.total_expenses += item.net

        return report

    async def balance_sheet(self, as_of: date) -> BalanceSheet:
        """재무상태표

        불일치는 실패가 아니라 경고로 반환 (데이터 품질 신호).
        """
        tb = await self.aggregator.trial_balance(as_of)
        sheet = BalanceSheet(as_of=as_of, currency=self.currency, tolerance=self.tolerance)

        current_earnings = Decimal(0)
        for row in tb.rows:
            line = StatementLine(row.code, row.name, row.balance)
            if row.account_type is AccountType.ASSET:
                sheet.assets.append(line)
                sheet.total_assets += row.balance
            elif row.account_type is AccountType.LIABILITY:
                sheet.liabilities.append(line)
                sheet.total_liabilities += row.balance
            elif row.account_type is AccountType.EQUITY:
                sheet.equity.append(line)
                sheet.total_equity += row.balance
            elif row.account_type is AccountType.REVENUE:
                current_earnings += row.balance
            elif row.account_type is AccountType.EXPENSE:
                current_earnings -= row.balance

        if current_earnings != 0:
            sheet.equity.append(
                StatementLine(CURRENT_EARNINGS_CODE, CURRENT_EARNINGS_NAME, current_earnings)
            )
            sheet.total_equity += current_earnings

        if not sheet.is_balanced:
            delta = format_amount(sheet.delta, self.currency)
            message = (
                f"Balance sheet out of balance by {delta} {self.currency}: "
                f"assets={format_amount(sheet.total_assets, self.currency)} "
                f"liabilities+equity={format_amount(sheet.total_liabilities_and_equity, self.currency)}"
            )
            sheet.warnings.append(message)
            logger.warning(f"재무상태표 불일치 as_of={as_of}: delta={delta}")

        return sheet
