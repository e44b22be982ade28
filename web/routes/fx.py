"""
환율 API 라우트
"""

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query

from core.books import Books
from web.dependencies import get_books
from web.models.requests import RateSetRequest

router = APIRouter(prefix="/api/fx", tags=["FX"])


@router.post("/rates", status_code=201)
async def set_rate(
    request: RateSetRequest,
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    """환율 등록 (같은 날짜의 기존 환율 대체)"""
    rate = await books.fx.set_rate(
        request.from_currency,
        request.to_currency,
        request.rate,
        request.rate_date,
        request.source,
    )
    return rate.to_dict()


@router.get("/rates")
async def list_rates(
    from_currency: str | None = Query(default=None),
    to_currency: str | None = Query(default=None),
    include_inactive: bool = Query(default=False, description="대체된 환율 포함"),
    books: Books = Depends(get_books),
) -> list[dict[str, Any]]:
    rates = await books.fx.list_rates(from_currency, to_currency, include_inactive)
    return [rate.to_dict() for rate in rates]


@router.get("/rate")
async def get_rate(
    from_currency: str = Query(...),
    to_currency: str = Query(...),
    rate_date: date | None = Query(default=None, description="기준일 (기본: 오늘)"),
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    """기준일 이전 가장 최근 환율 (직접 환율만)"""
    rate_date = rate_date or books.clock.today()
    rate = await books.fx.get_rate(from_currency, to_currency, rate_date)
    return {
        "from_currency": from_currency.upper(),
        "to_currency": to_currency.upper(),
        "rate_date": rate_date.isoformat(),
        "rate": str(rate),
    }


@router.get("/convert")
async def convert(
    amount: str = Query(..., description="금액"),
    from_currency: str = Query(...),
    to_currency: str = Query(...),
    rate_date: date | None = Query(default=None, description="기준일 (기본: 오늘)"),
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    """금액 환산 (직접 환율 → 역방향 환율 순)"""
    conversion = await books.fx.convert(
        amount, from_currency, to_currency, rate_date or books.clock.today()
    )
    return conversion.to_dict()
