"""
헬스 체크 엔드포인트

GET /api/health - 서버 상태 확인
"""

from fastapi import APIRouter, Depends

from core.books import BooksRegistry
from core.utils.clock import now_utc
from web.dependencies import get_registry
from web.models.responses import HealthResponse

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(registry: BooksRegistry = Depends(get_registry)) -> HealthResponse:
    """서버 상태 확인

    Returns:
        HealthResponse: status, version, 기능통화, 열린 회사 목록
    """
    from web.app import API_VERSION

    return HealthResponse(
        status="ok",
        version=API_VERSION,
        functional_currency=registry.settings.functional_currency,
        companies=registry.company_ids,
        timestamp=now_utc(),
    )
