"""
저장소 패키지

도메인 이벤트 저장소와 회사 단위 UnitOfWork
"""

from core.storage.event_store import EventStore
from core.storage.repository import CompanyRepository
from core.storage.unit_of_work import Transaction, UnitOfWork

__all__ = [
    "CompanyRepository",
    "EventStore",
    "Transaction",
    "UnitOfWork",
]
