"""
금액/통화 유틸리티

모든 금액은 Decimal로 다루고, 저장 시에는 통화별 최소 단위(minor unit) 정수로 변환.
부동소수점(float)은 허용하지 않음 (차변 = 대변 정확 비교를 위해).

사용 예시:
```python
amount = parse_amount("500.00", "USD")   # Decimal("500.00")
minor = to_minor(amount, "USD")          # 50000
from_minor(minor, "USD")                 # Decimal("500.00")
```
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from core.errors import ValidationError


# ISO 4217 최소 단위 자릿수 (목록에 없으면 DEFAULT_MINOR_UNITS)
CURRENCY_MINOR_UNITS: dict[str, int] = {
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "NGN": 2,
    "GHS": 2,
    "CNY": 2,
    "INR": 2,
    "CHF": 2,
    "JPY": 0,
    "KRW": 0,
    "XOF": 0,
    "XAF": 0,
    "BHD": 3,
    "KWD": 3,
    "OMR": 3,
}

DEFAULT_MINOR_UNITS = 2

# SQLite INTEGER(부호 있는 64비트) 범위
MAX_MINOR_AMOUNT = 2**63 - 1

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def normalize_currency(code: str) -> str:
    """통화 코드 검증 및 대문자 변환

    Raises:
        ValidationError: 3자리 알파벳이 아닌 경우
    """
    if not isinstance(code, str):
        raise ValidationError(f"Invalid currency code: {code!r}")

    normalized = code.strip().upper()
    if not _CURRENCY_RE.match(normalized):
        raise ValidationError(f"Invalid currency code: {code!r}")
    return normalized


def minor_units(currency: str) -> int:
    """통화의 최소 단위 자릿수"""
    return CURRENCY_MINOR_UNITS.get(normalize_currency(currency), DEFAULT_MINOR_UNITS)


def quantum(currency: str) -> Decimal:
    """통화의 최소 단위 (USD → 0.01, JPY → 1)"""
    return Decimal(1).scaleb(-minor_units(currency))


def to_decimal(value: Any) -> Decimal:
    """입력값을 Decimal로 변환

    float는 거부 (이진 부동소수점 오차 방지).

    Raises:
        ValidationError: 변환 불가 또는 float 입력
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value!r}")
    if isinstance(value, float):
        raise ValidationError(
            f"Floating point amounts are not accepted: {value!r} (use a decimal string)"
        )
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValidationError(f"Invalid amount: {value!r}") from e
    else:
        raise ValidationError(f"Invalid amount: {value!r}")

    if not result.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return result


def parse_amount(value: Any, currency: str) -> Decimal:
    """금액 파싱 (통화 정밀도 초과 시 거부)

    "500.005" USD 처럼 최소 단위보다 작은 값은 반올림하지 않고 오류 처리.

    Returns:
        통화 자릿수로 정규화된 Decimal

    Raises:
        ValidationError: 정밀도 초과, 변환 불가 또는 저장 범위(64비트 최소 단위) 초과
    """
    amount = to_decimal(value)
    try:
        quantized = amount.quantize(quantum(currency))
    except InvalidOperation as e:
        raise ValidationError(f"Amount out of range: {value}") from e
    if quantized != amount:
        raise ValidationError(
            f"Amount {value} has more precision than {normalize_currency(currency)} allows"
        )
    if abs(quantized.scaleb(minor_units(currency))) > MAX_MINOR_AMOUNT:
        raise ValidationError(f"Amount out of range: {value}")
    return quantized


def parse_positive_amount(value: Any, currency: str) -> Decimal:
    """양수 금액 파싱

    Raises:
        ValidationError: 0 이하이거나 정밀도 초과
    """
    amount = parse_amount(value, currency)
    if amount <= 0:
        raise ValidationError(f"Amount must be positive: {value}")
    return amount


def round_money(amount: Decimal, currency: str) -> Decimal:
    """계산 결과를 통화 자릿수로 반올림 (ROUND_HALF_UP)

    환산, 세금 계산 등 파생 금액에만 사용.
    """
    try:
        return amount.quantize(quantum(currency), rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValidationError(f"Amount out of range: {amount}") from e


def to_minor(amount: Decimal, currency: str) -> int:
    """Decimal 금액 → 최소 단위 정수 (저장용)

    Raises:
        ValidationError: 정밀도 초과
    """
    exact = parse_amount(amount, currency)
    return int(exact.scaleb(minor_units(currency)))


def from_minor(minor: int, currency: str) -> Decimal:
    """최소 단위 정수 → Decimal 금액"""
    return (Decimal(int(minor)).scaleb(-minor_units(currency))).quantize(quantum(currency))


def format_amount(amount: Decimal, currency: str) -> str:
    """API 응답용 문자열 (통화 자릿수 고정)"""
    return str(amount.quantize(quantum(currency)))
