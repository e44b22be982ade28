"""
회사 단위 저장소 기본 클래스

현재 Task에 진행 중인 트랜잭션이 있으면 쓰기 연결로 읽어서
자기 트랜잭션의 미커밋 변경을 보고, 없으면 읽기 전용 연결을 사용.
"""

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.storage.unit_of_work import UnitOfWork


class CompanyRepository:
    """회사 단위 저장소

    Args:
        uow: 회사의 UnitOfWork (쓰기)
        reader: 읽기 연결 (인메모리 DB에서는 쓰기 연결과 동일)
    """

    def __init__(self, uow: UnitOfWork, reader: SQLiteAdapter):
        self.uow = uow
        self.reader = reader
        self.company_id = uow.company_id

    @property
    def db(self) -> SQLiteAdapter:
        """조회에 사용할 연결"""
        txn = self.uow.active
        return txn.db if txn is not None else self.reader
