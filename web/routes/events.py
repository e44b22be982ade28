"""
도메인 이벤트 (감사 로그) 조회 API

GET /api/events           - 엔티티 / 타입 / seq 이후 조회
GET /api/events/{id}      - 단건 조회
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from core.books import Books
from core.domain.events import EventTypes
from core.errors import NotFoundError, ValidationError
from web.dependencies import get_books

router = APIRouter(prefix="/api/events", tags=["Events"])


@router.get("")
async def list_events(
    entity_kind: str | None = Query(default=None, description="JOURNAL_ENTRY / INVOICE / ACCOUNT / EXCHANGE_RATE"),
    entity_id: str | None = Query(default=None, description="엔티티 ID (entity_kind와 함께)"),
    event_type: str | None = Query(default=None, description="이벤트 타입 (예: JournalPosted)"),
    after_seq: int = Query(default=0, ge=0, description="이 seq 이후 이벤트"),
    limit: int = Query(default=100, ge=1, le=1000),
    books: Books = Depends(get_books),
) -> list[dict[str, Any]]:
    """이벤트 목록

    entity_kind + entity_id → 해당 엔티티 이력 (발생순)
    event_type → 타입별 (최신순)
    그 외 → after_seq 이후 전체 (seq순)
    """
    if entity_kind and entity_id:
        events = await books.events.get_by_entity(
            books.company_id, entity_kind.upper(), entity_id, limit
        )
    elif event_type:
        if not EventTypes.is_valid_type(event_type):
            raise ValidationError(f"Unknown event type: {event_type}")
        events = await books.events.get_by_type(books.company_id, event_type, limit)
    else:
        events = await books.events.get_since(books.company_id, after_seq, limit)
    return [event.to_dict() for event in events]


@router.get("/{event_id}")
async def get_event(event_id: str, books: Books = Depends(get_books)) -> dict[str, Any]:
    event = await books.events.get_by_id(event_id)
    if event is None or event.company_id != books.company_id:
        raise NotFoundError(f"Event not found: {event_id}")
    return event.to_dict()
