"""
분개 API 라우트

생성(DRAFT) → 수정 → 전기 → 역분개
"""

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Query

from core.books import Books
from web.dependencies import get_books
from web.models.requests import (
    JournalCreateRequest,
    JournalLineRequest,
    JournalReverseRequest,
    JournalUpdateRequest,
)

router = APIRouter(prefix="/api/journal", tags=["Journal"])


def _lines(lines: list[JournalLineRequest]) -> list[dict[str, Any]]:
    return [line.model_dump() for line in lines]


@router.post("", status_code=201)
async def create_entry(
    request: JournalCreateRequest,
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    """분개 생성 (post=true면 생성과 전기를 한 트랜잭션으로)"""
    if request.post:
        entry = await books.journal.post_lines(
            _lines(request.lines),
            entry_date=request.entry_date or books.clock.today(),
            description=request.description,
            reference_type=request.reference_type,
            reference_id=request.reference_id,
        )
    else:
        entry = await books.journal.create_draft(
            _lines(request.lines),
            entry_date=request.entry_date,
            description=request.description,
            reference_type=request.reference_type,
            reference_id=request.reference_id,
        )
    return entry.to_dict()


@router.get("")
async def list_entries(
    status: str | None = Query(default=None, description="DRAFT / POSTED / REVERSED"),
    from_date: date | None = Query(default=None),
    to_date: date | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    books: Books = Depends(get_books),
) -> list[dict[str, Any]]:
    """분개 목록 (분개일, 번호순)"""
    entries = await books.journal.list_entries(status, from_date, to_date, limit, offset)
    return [entry.to_dict() for entry in entries]


@router.get("/{entry_id}")
async def get_entry(entry_id: str, books: Books = Depends(get_books)) -> dict[str, Any]:
    entry = await books.journal.get_entry(entry_id)
    return entry.to_dict()


@router.patch("/{entry_id}")
async def update_entry(
    entry_id: str,
    request: JournalUpdateRequest,
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    """DRAFT 분개 수정"""
    entry = await books.journal.update_draft(
        entry_id,
        lines=_lines(request.lines) if request.lines is not None else None,
        description=request.description,
        entry_date=request.entry_date,
    )
    return entry.to_dict()


@router.post("/{entry_id}/post")
async def post_entry(entry_id: str, books: Books = Depends(get_books)) -> dict[str, Any]:
    entry = await books.journal.post(entry_id)
    return entry.to_dict()


@router.post("/{entry_id}/reverse", status_code=201)
async def reverse_entry(
    entry_id: str,
    request: JournalReverseRequest,
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    """역분개 (새로 생성된 역분개 반환)"""
    reversal = await books.journal.reverse(entry_id, request.reason, request.reversal_date)
    return reversal.to_dict()
