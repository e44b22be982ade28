"""
복식부기 타입 정의

AccountType, JournalSide 등 Ledger 시스템에서 사용하는 Enum과 기본 계정과목표
"""

import re
from enum import Enum


class AccountType(str, Enum):
    """계정 유형

    복식부기의 5대 계정 유형.
    str을 상속하여 JSON 직렬화 가능.
    """

    ASSET = "ASSET"  # 자산 (현금, 매출채권, 재고)
    LIABILITY = "LIABILITY"  # 부채 (매입채무, 미지급세금)
    EQUITY = "EQUITY"  # 자본 (출자금, 이익잉여금)
    REVENUE = "REVENUE"  # 수익 (매출, 환차익)
    EXPENSE = "EXPENSE"  # 비용 (매출원가, 환차손)

    @property
    def normal_side(self) -> "JournalSide":
        """정상 잔액 방향 (자산/비용은 차변, 나머지는 대변)"""
        if self in (AccountType.ASSET, AccountType.EXPENSE):
            return JournalSide.DEBIT
        return JournalSide.CREDIT


class JournalSide(str, Enum):
    """분개 방향 (차변/대변)"""

    DEBIT = "DEBIT"  # 차변 (자산 증가, 비용 증가)
    CREDIT = "CREDIT"  # 대변 (자산 감소, 수익 증가)

    @property
    def opposite(self) -> "JournalSide":
        """반대 방향 (역분개용)"""
        return JournalSide.CREDIT if self is JournalSide.DEBIT else JournalSide.DEBIT


class ReferenceType(str, Enum):
    """분개 출처 유형"""

    MANUAL = "manual"
    INVOICE = "invoice"
    INVOICE_PAYMENT = "invoice_payment"
    INVOICE_CANCELLATION = "invoice_cancellation"
    REVERSAL = "reversal"


ACCOUNT_CODE_PATTERN = re.compile(r"^[0-9A-Za-z][0-9A-Za-z.\-]*$")


# 기본 계정과목표 (회사 생성 시 seed)
DEFAULT_CHART: list[tuple[str, str, str, str | None]] = [
    # (code, name, account_type, subtype)

    # ASSET
    ("1000", "Cash", "ASSET", "current_asset"),
    ("1010", "Bank", "ASSET", "current_asset"),
    ("1100", "Accounts Receivable", "ASSET", "current_asset"),
    ("1200", "Inventory", "ASSET", "current_asset"),

    # LIABILITY
    ("2000", "Accounts Payable", "LIABILITY", "current_liability"),
    ("2100", "Tax Payable", "LIABILITY", "current_liability"),

    # EQUITY
    ("3000", "Owner's Equity", "EQUITY", None),
    ("3100", "Retained Earnings", "EQUITY", None),

    # REVENUE
    ("4000", "Sales Revenue", "REVENUE", "operating_revenue"),
    ("4900", "Foreign Exchange Gain", "REVENUE", "other_income"),

    # EXPENSE
    ("5000", "Cost of Goods Sold", "EXPENSE", "cost_of_sales"),
    ("5900", "Foreign Exchange Loss", "EXPENSE", "other_expense"),
    ("6000", "Operating Expenses", "EXPENSE", "operating_expense"),
]
