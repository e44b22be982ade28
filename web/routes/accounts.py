"""
계정과목 API 라우트
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from core.books import Books
from web.dependencies import get_books
from web.models.requests import AccountCreateRequest, AccountUpdateRequest

router = APIRouter(prefix="/api/accounts", tags=["Accounts"])


@router.get("")
async def list_accounts(
    account_type: str | None = Query(default=None, description="계정 유형 필터"),
    include_inactive: bool = Query(default=False),
    books: Books = Depends(get_books),
) -> list[dict[str, Any]]:
    """계정과목 목록 (코드순)"""
    accounts = await books.accounts.list_accounts(account_type, include_inactive)
    return [account.to_dict() for account in accounts]


@router.post("", status_code=201)
async def create_account(
    request: AccountCreateRequest,
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    """계정 생성"""
    account = await books.accounts.create_account(
        code=request.code,
        name=request.name,
        account_type=request.account_type,
        subtype=request.subtype,
        parent_code=request.parent_code,
    )
    return account.to_dict()


@router.get("/{code}")
async def get_account(code: str, books: Books = Depends(get_books)) -> dict[str, Any]:
    account = await books.accounts.get_account(code)
    return account.to_dict()


@router.patch("/{code}")
async def update_account(
    code: str,
    request: AccountUpdateRequest,
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    """계정 수정 (전기 내역이 있는 계정의 유형 변경은 422)"""
    account = await books.accounts.update_account(
        code,
        name=request.name,
        account_type=request.account_type,
        subtype=request.subtype,
    )
    return account.to_dict()


@router.post("/{code}/deactivate")
async def deactivate_account(code: str, books: Books = Depends(get_books)) -> dict[str, Any]:
    account = await books.accounts.deactivate_account(code)
    return account.to_dict()


@router.post("/{code}/reactivate")
async def reactivate_account(code: str, books: Books = Depends(get_books)) -> dict[str, Any]:
    account = await books.accounts.reactivate_account(code)
    return account.to_dict()
