"""
재무제표 API 라우트
"""

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query

from core.books import Books
from web.dependencies import get_books

router = APIRouter(prefix="/api/reports", tags=["Reports"])


@router.get("/profit-loss")
async def get_profit_and_loss(
    from_date: date = Query(..., description="기간 시작일"),
    to_date: date = Query(..., description="기간 종료일"),
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    """손익계산서"""
    report = await books.statements.profit_and_loss(from_date, to_date)
    return report.to_dict()


@router.get("/balance-sheet")
async def get_balance_sheet(
    as_of: date | None = Query(default=None, description="기준일 (기본: 오늘)"),
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    """재무상태표

    불균형이어도 200으로 응답하고 warnings에 차이 금액을 담음.
    """
    sheet = await books.statements.balance_sheet(as_of or books.clock.today())
    return sheet.to_dict()
