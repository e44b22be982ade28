"""
FastAPI 애플리케이션

라우터 등록, 도메인 예외 → HTTP 상태 매핑, 장부 생명주기 관리.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.books import BooksRegistry
from core.config.loader import Settings, load_settings
from core.errors import (
    InvalidStateTransitionError,
    LedgerError,
    LedgerImbalanceError,
    NoRateAvailableError,
    NotFoundError,
    ValidationError,
)
from core.utils.clock import Clock
from web.models.responses import ErrorResponse
from web.routes import accounts, events, fx, health, invoices, journal, ledger, reports

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def error_status(exc: LedgerError) -> int:
    """도메인 예외 → HTTP 상태 코드"""
    if isinstance(exc, (ValidationError, NoRateAvailableError)):
        return 422
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, InvalidStateTransitionError):
        return 409
    return 500


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status = error_status(exc)
    if isinstance(exc, LedgerImbalanceError):
        logger.error(f"원장 불균형: {request.method} {request.url.path}: {exc}")
    elif status >= 500:
        logger.error(f"요청 실패: {request.method} {request.url.path}: {exc}", exc_info=exc)
    else:
        logger.warning(f"요청 거부 ({status}): {request.method} {request.url.path}: {exc}")

    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def create_app(settings: Settings | None = None, clock: Clock | None = None) -> FastAPI:
    """FastAPI 앱 생성

    Args:
        settings: 설정 (None이면 settings.yaml 로드)
        clock: 장부가 사용할 시계 (테스트에서 FixedClock 주입)
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """앱 생명주기 관리"""
        registry = BooksRegistry(settings, clock)
        app.state.settings = settings
        app.state.registry = registry

        # 기본 회사 장부는 시작 시 열어서 스키마 오류를 바로 드러냄
        await registry.get(settings.company_id)
        logger.info(f"Web 시작: company={settings.company_id} db={settings.db_path}")

        yield

        await registry.close_all()
        logger.info("Web 종료: 장부 연결 정리 완료")

    app = FastAPI(
        title="Ledger API",
        description="복식부기 원장 / 재무제표 / 환율 / 송장 API",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        responses={
            404: {"model": ErrorResponse, "description": "대상 없음"},
            409: {"model": ErrorResponse, "description": "상태 전이 불가"},
            500: {"model": ErrorResponse, "description": "원장 불균형 등 내부 오류"},
        },
    )

    # CORS 설정 (개발용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LedgerError, ledger_error_handler)

    # =========================================================================
    # API 라우터 등록
    # =========================================================================

    app.include_router(health.router)
    app.include_router(accounts.router)
    app.include_router(journal.router)
    app.include_router(ledger.router)
    app.include_router(reports.router)
    app.include_router(fx.router)
    app.include_router(invoices.router)
    app.include_router(events.router)

    return app
