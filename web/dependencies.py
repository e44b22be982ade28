"""
의존성 주입

FastAPI의 Depends를 사용한 의존성 관리.
Settings / BooksRegistry는 lifespan에서 app.state에 저장.
"""

from fastapi import Header, Request

from core.books import Books, BooksRegistry


def get_registry(request: Request) -> BooksRegistry:
    """회사별 장부 레지스트리 반환"""
    return request.app.state.registry


async def get_books(
    request: Request,
    x_company_id: str | None = Header(default=None, description="회사 ID (기본: 설정값)"),
) -> Books:
    """요청 회사의 장부 반환 (X-Company-Id 헤더, 없으면 기본 회사)"""
    registry = get_registry(request)
    company_id = (x_company_id or "").strip() or registry.settings.company_id
    return await registry.get(company_id)
