"""
요청 스키마 (Pydantic)

Web API 요청 데이터 검증.
금액/환율은 문자열(decimal)로만 받음 (float 금지).
"""

from datetime import date

from pydantic import BaseModel, Field


class AccountCreateRequest(BaseModel):
    """계정 생성 요청"""

    code: str = Field(..., description="계정 코드 (예: 1000)")
    name: str = Field(..., description="계정명")
    account_type: str = Field(..., description="ASSET / LIABILITY / EQUITY / REVENUE / EXPENSE")
    subtype: str | None = Field(default=None, description="세부 분류")
    parent_code: str | None = Field(default=None, description="상위 계정 코드")


class AccountUpdateRequest(BaseModel):
    """계정 수정 요청 (생략한 필드는 유지)"""

    name: str | None = Field(default=None, description="계정명")
    account_type: str | None = Field(default=None, description="계정 유형 (전기 내역이 있으면 변경 불가)")
    subtype: str | None = Field(default=None, description="세부 분류")


class JournalLineRequest(BaseModel):
    """분개 라인"""

    account_code: str = Field(..., description="계정 코드")
    side: str = Field(..., description="DEBIT / CREDIT")
    amount: str = Field(..., description="금액 (양수, 기능통화 자릿수 이내)")
    memo: str | None = Field(default=None, description="적요")


class JournalCreateRequest(BaseModel):
    """분개 생성 요청

    post=true면 생성 후 바로 전기.
    """

    lines: list[JournalLineRequest] = Field(..., description="분개 라인 (2개 이상)")
    entry_date: date | None = Field(default=None, description="분개일 (기본: 오늘)")
    description: str = Field(default="", description="적요")
    reference_type: str | None = Field(default=None, description="참조 유형")
    reference_id: str | None = Field(default=None, description="참조 ID")
    post: bool = Field(default=False, description="생성 후 즉시 전기")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "lines": [
                        {"account_code": "1000", "side": "DEBIT", "amount": "500.00"},
                        {"account_code": "4000", "side": "CREDIT", "amount": "500.00"},
                    ],
                    "entry_date": "2024-01-10",
                    "description": "Cash sale",
                    "post": True,
                }
            ]
        }
    }


class JournalUpdateRequest(BaseModel):
    """DRAFT 분개 수정 요청"""

    lines: list[JournalLineRequest] | None = Field(default=None, description="새 라인 (생략 시 유지)")
    entry_date: date | None = Field(default=None, description="분개일")
    description: str | None = Field(default=None, description="적요")


class JournalReverseRequest(BaseModel):
    """역분개 요청"""

    reason: str = Field(..., description="역분개 사유")
    reversal_date: date | None = Field(default=None, description="역분개일 (기본: 원분개일)")


class RateSetRequest(BaseModel):
    """환율 등록 요청 (1 from_currency = rate to_currency)"""

    from_currency: str = Field(..., description="기준 통화")
    to_currency: str = Field(..., description="대상 통화")
    rate: str = Field(..., description="환율 (양수)")
    rate_date: date = Field(..., description="적용일")
    source: str = Field(default="MANUAL", description="MANUAL / EXTERNAL / CBN / API")


class InvoiceItemRequest(BaseModel):
    """송장 항목"""

    description: str = Field(default="", description="품목")
    quantity: str = Field(default="1", description="수량")
    unit_price: str = Field(..., description="단가")


class InvoiceCreateRequest(BaseModel):
    """송장 생성 요청"""

    invoice_number: str = Field(..., description="송장 번호 (회사 내 유일)")
    invoice_type: str = Field(default="SALES", description="SALES / PURCHASE")
    counterparty: str = Field(..., description="거래처")
    currency: str = Field(..., description="송장 통화")
    items: list[InvoiceItemRequest] = Field(..., description="항목 (1개 이상)")
    issue_date: date = Field(..., description="발행일")
    due_date: date = Field(..., description="만기일")
    tax_rate: str = Field(default="0", description="세율 (%)")
    discount: str = Field(default="0", description="할인 금액")
    notes: str | None = Field(default=None, description="메모")
    payment_terms: str | None = Field(default=None, description="결제 조건")


class PaymentRequest(BaseModel):
    """결제 적용 요청"""

    amount: str = Field(..., description="결제 금액 (송장 통화)")
    payment_date: date | None = Field(default=None, description="결제일 (기본: 오늘)")


class InvoiceCancelRequest(BaseModel):
    """송장 취소 요청"""

    cancel_date: date | None = Field(default=None, description="취소 분개일 (기본: 오늘)")
