"""
유틸리티 패키지

시계(Clock) 등 공통 유틸리티
"""

from core.utils.clock import Clock, FixedClock, SystemClock, now_utc

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "now_utc",
]
