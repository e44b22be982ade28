"""
환율 저장소

날짜별 환율 시계열 (마지막 유효 환율 기준 조회)
"""

from core.fx.store import Conversion, ExchangeRate, FxRateStore

__all__ = [
    "Conversion",
    "ExchangeRate",
    "FxRateStore",
]
