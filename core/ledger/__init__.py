"""
복식부기 (Double-Entry Bookkeeping) 시스템

계정과목표, 분개, 시산표, 재무제표.

사용 예시:
```python
async with await Books.open(settings) as books:
    entry = await books.journal.post_lines(
        [
            {"account_code": "1000", "side": "DEBIT", "amount": "500.00"},
            {"account_code": "4000", "side": "CREDIT", "amount": "500.00"},
        ],
        entry_date=date(2024, 1, 10),
        description="Cash sale",
    )

    tb = await books.aggregator.trial_balance(date(2024, 1, 31))
    sheet = await books.statements.balance_sheet(date(2024, 1, 31))
```
"""

from core.ledger.accounts import Account, AccountRegistry
from core.ledger.aggregator import (
    AccountActivity,
    AccountLedger,
    LedgerAggregator,
    LedgerPosting,
    TrialBalance,
    TrialBalanceRow,
)
from core.ledger.cache import ReportCache
from core.ledger.entry import JournalEntry, JournalLine
from core.ledger.journal import JournalEngine
from core.ledger.statements import BalanceSheet, FinancialStatementGenerator, ProfitAndLoss
from core.ledger.types import DEFAULT_CHART, AccountType, JournalSide, ReferenceType

__all__ = [
    # 핵심 클래스
    "AccountRegistry",
    "JournalEngine",
    "LedgerAggregator",
    "FinancialStatementGenerator",
    "ReportCache",
    # 데이터
    "Account",
    "JournalEntry",
    "JournalLine",
    "TrialBalance",
    "TrialBalanceRow",
    "AccountActivity",
    "AccountLedger",
    "LedgerPosting",
    "ProfitAndLoss",
    "BalanceSheet",
    # Enum
    "AccountType",
    "JournalSide",
    "ReferenceType",
    # 상수
    "DEFAULT_CHART",
]
