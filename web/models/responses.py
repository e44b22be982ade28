"""
응답 스키마 (Pydantic)

대부분의 조회 API는 도메인 객체의 to_dict()를 그대로 반환.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """헬스 체크 응답"""

    status: str = Field(default="ok", description="서비스 상태")
    version: str = Field(..., description="API 버전")
    functional_currency: str = Field(..., description="기능통화")
    companies: list[str] = Field(default_factory=list, description="열려 있는 회사 ID")
    timestamp: datetime = Field(..., description="응답 시간 (UTC)")


class ErrorResponse(BaseModel):
    """오류 응답"""

    error: str = Field(..., description="오류 종류 (예외 클래스명)")
    detail: str = Field(..., description="오류 메시지")
