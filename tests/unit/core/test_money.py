"""
core/money.py 테스트

Decimal 변환, 통화 정밀도, 최소 단위 변환
"""

from decimal import Decimal

import pytest

from core.errors import ValidationError
from core.money import (
    format_amount,
    from_minor,
    minor_units,
    normalize_currency,
    parse_amount,
    parse_positive_amount,
    round_money,
    to_decimal,
    to_minor,
)


class TestNormalizeCurrency:
    """normalize_currency 테스트"""

    def test_uppercase(self) -> None:
        assert normalize_currency(" ngn ") == "NGN"

    @pytest.mark.parametrize("code", ["US", "USDT", "U$D", ""])
    def test_invalid(self, code: str) -> None:
        with pytest.raises(ValidationError):
            normalize_currency(code)


class TestToDecimal:
    """to_decimal 테스트"""

    def test_string(self) -> None:
        assert to_decimal("500.00") == Decimal("500.00")

    def test_int(self) -> None:
        assert to_decimal(3) == Decimal(3)

    def test_float_rejected(self) -> None:
        """부동소수점 거부"""
        with pytest.raises(ValidationError, match="Floating point"):
            to_decimal(0.1)

    def test_bool_rejected(self) -> None:
        with pytest.raises(ValidationError):
            to_decimal(True)

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity"])
    def test_not_a_number(self, value: str) -> None:
        with pytest.raises(ValidationError):
            to_decimal(value)


class TestParseAmount:
    """parse_amount 테스트"""

    def test_normalizes_to_currency_places(self) -> None:
        assert str(parse_amount("500", "USD")) == "500.00"

    def test_excess_precision_rejected(self) -> None:
        """최소 단위보다 작은 금액은 반올림하지 않고 거부"""
        with pytest.raises(ValidationError, match="precision"):
            parse_amount("500.005", "USD")

    def test_zero_decimal_currency(self) -> None:
        assert minor_units("JPY") == 0
        with pytest.raises(ValidationError):
            parse_amount("100.5", "JPY")

    def test_three_decimal_currency(self) -> None:
        assert str(parse_amount("1.125", "KWD")) == "1.125"

    def test_positive_required(self) -> None:
        with pytest.raises(ValidationError, match="positive"):
            parse_positive_amount("0", "USD")
        with pytest.raises(ValidationError):
            parse_positive_amount("-1.00", "USD")

    @pytest.mark.parametrize("value", ["1e30", "100000000000000000000.00", "-100000000000000000000"])
    def test_out_of_range_rejected(self, value: str) -> None:
        """64비트 최소 단위를 넘는 금액은 ValidationError"""
        with pytest.raises(ValidationError, match="out of range"):
            parse_amount(value, "USD")

    def test_largest_storable_amount(self) -> None:
        assert to_minor(parse_amount("92233720368547758.07", "USD"), "USD") == 2**63 - 1


class TestMinorUnits:
    """최소 단위 변환 테스트"""

    def test_to_minor(self) -> None:
        assert to_minor(Decimal("500.00"), "USD") == 50000
        assert to_minor(Decimal("1500"), "JPY") == 1500

    def test_from_minor(self) -> None:
        assert from_minor(50000, "USD") == Decimal("500.00")
        assert str(from_minor(-1, "USD")) == "-0.01"

    def test_to_minor_rejects_unrounded(self) -> None:
        with pytest.raises(ValidationError):
            to_minor(Decimal("0.001"), "USD")


class TestRoundMoney:
    """round_money 테스트 (파생 금액 반올림)"""

    def test_half_up(self) -> None:
        assert round_money(Decimal("0.005"), "USD") == Decimal("0.01")
        assert round_money(Decimal("0.0049"), "USD") == Decimal("0.00")

    def test_format_amount(self) -> None:
        assert format_amount(Decimal("150000"), "USD") == "150000.00"

    def test_out_of_range(self) -> None:
        with pytest.raises(ValidationError, match="out of range"):
            round_money(Decimal("1e30"), "USD")
