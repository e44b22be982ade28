"""
Web 모델 패키지

Pydantic 스키마 정의
"""

from web.models.requests import (
    AccountCreateRequest,
    AccountUpdateRequest,
    InvoiceCancelRequest,
    InvoiceCreateRequest,
    InvoiceItemRequest,
    JournalCreateRequest,
    JournalLineRequest,
    JournalReverseRequest,
    JournalUpdateRequest,
    PaymentRequest,
    RateSetRequest,
)
from web.models.responses import ErrorResponse, HealthResponse

__all__ = [
    # Requests
    "AccountCreateRequest",
    "AccountUpdateRequest",
    "InvoiceCancelRequest",
    "InvoiceCreateRequest",
    "InvoiceItemRequest",
    "JournalCreateRequest",
    "JournalLineRequest",
    "JournalReverseRequest",
    "JournalUpdateRequest",
    "PaymentRequest",
    "RateSetRequest",
    # Responses
    "ErrorResponse",
    "HealthResponse",
]
