"""
데이터베이스 어댑터

SQLite WAL 모드 연결 관리.
"""

from adapters.db.sqlite_adapter import (
    MEMORY_DB,
    SQLiteAdapter,
    create_connection,
    is_memory_db,
)

__all__ = [
    "MEMORY_DB",
    "SQLiteAdapter",
    "create_connection",
    "is_memory_db",
]
