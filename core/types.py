"""
타입 정의 모듈

Enum 등 여러 컴포넌트가 공유하는 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class EntityKind(str, Enum):
    """Entity 종류 (도메인 이벤트 대상)"""

    ACCOUNT = "ACCOUNT"
    JOURNAL_ENTRY = "JOURNAL_ENTRY"
    EXCHANGE_RATE = "EXCHANGE_RATE"
    INVOICE = "INVOICE"


class InvoiceType(str, Enum):
    """송장 종류

    SALES: 매출 (매출채권 발생)
    PURCHASE: 매입 (매입채무 발생)
    """

    SALES = "SALES"
    PURCHASE = "PURCHASE"


class InvoiceStatus(str, Enum):
    """송장 상태

    OVERDUE는 저장되지 않음. 조회 시점에 SENT + 만기 경과 + 잔액 > 0 이면 투영.
    """

    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class RateSource(str, Enum):
    """환율 출처"""

    MANUAL = "MANUAL"
    EXTERNAL = "EXTERNAL"
    CBN = "CBN"  # Central Bank of Nigeria
    API = "API"

