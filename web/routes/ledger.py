"""
원장 조회 API 라우트

시산표와 계정 원장(전기 내역 + 누적 잔액)
"""

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query

from core.books import Books
from web.dependencies import get_books

router = APIRouter(prefix="/api/ledger", tags=["Ledger"])


@router.get("/trial-balance")
async def get_trial_balance(
    as_of: date | None = Query(default=None, description="기준일 (기본: 오늘)"),
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    """시산표"""
    tb = await books.aggregator.trial_balance(as_of or books.clock.today())
    return tb.to_dict()


@router.get("/accounts/{code}/postings")
async def get_account_postings(
    code: str,
    from_date: date | None = Query(default=None),
    to_date: date | None = Query(default=None, description="기본: 오늘"),
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    """계정 원장 (기초 잔액 + 기간 전기 내역)"""
    ledger = await books.aggregator.account_ledger(
        code,
        date_from=from_date,
        date_to=to_date or books.clock.today(),
    )
    return ledger.to_dict()
