"""
Ledger 오류 정의

모든 도메인 예외의 기본 클래스와 분류.
- ValidationError 계열: 입력 오류 (상태 변경 전 거부)
- InvalidStateTransitionError 계열: 허용되지 않은 상태 전이
- NotFoundError 계열: 대상 없음
- LedgerImbalanceError: 원장 불변식 위반 (Journal Engine 버그)
"""


class LedgerError(Exception):
    """Ledger 도메인 예외 기본 클래스"""
    pass


class ValidationError(LedgerError):
    """입력값 오류 (라인 수 부족, 음수 금액, 정밀도 초과 등)"""
    pass


class ImbalancedEntryError(ValidationError):
    """차변 합계 ≠ 대변 합계 (전기 거부)"""

    def __init__(self, entry_id: str, total_debit: object, total_credit: object):
        self.entry_id = entry_id
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Imbalanced entry {entry_id}: debit={total_debit} credit={total_credit}"
        )


class InvalidPaymentError(ValidationError):
    """잘못된 결제 금액 (0 이하, 잔액 초과)"""
    pass


class AccountLockedError(ValidationError):
    """전기 내역이 있는 계정의 유형 변경 시도"""
    pass


class InvalidStateTransitionError(LedgerError):
    """허용되지 않은 상태 전이"""
    pass


class AlreadyPostedError(InvalidStateTransitionError):
    """DRAFT가 아닌 분개를 전기/수정하려는 경우"""
    pass


class NoRateAvailableError(LedgerError):
    """요청일 이전에 유효한 환율 없음 (1:1로 대체하지 않음)"""

    def __init__(self, from_currency: str, to_currency: str, rate_date: object):
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.rate_date = rate_date
        super().__init__(
            f"No exchange rate available for {from_currency}->{to_currency} on or before {rate_date}"
        )


class LedgerImbalanceError(LedgerError):
    """시산표 차변 합계 ≠ 대변 합계

    정상적인 Journal Engine에서는 발생할 수 없음. 절대 무시하지 않음.
    """
    pass


class NotFoundError(LedgerError):
    """조회 대상 없음"""
    pass


class AccountNotFoundError(NotFoundError):
    """계정 없음"""
    pass


class EntryNotFoundError(NotFoundError):
    """분개 없음"""
    pass


class InvoiceNotFoundError(NotFoundError):
    """송장 없음"""
    pass
