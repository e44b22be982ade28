"""
SQLite 어댑터

WAL 모드로 SQLite 연결 관리.
쓰기 연결 1개 + 읽기 전용 연결 1개 구성으로
보고서 조회가 진행 중인 쓰기 트랜잭션을 보지 않도록 함.

주의: SQLite alias로 time, count 사용 금지 (예약어)
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from core.constants import Defaults

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def is_memory_db(db_path: Path | str) -> bool:
    """인메모리 DB 여부"""
    return str(db_path) == MEMORY_DB


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
    busy_timeout_ms: int = Defaults.BUSY_TIMEOUT_MS,
) -> aiosqlite.Connection:
    """SQLite 연결 생성 (WAL 모드)

    Args:
        db_path: DB 파일 경로 (":memory:" 허용)
        readonly: 읽기 전용 여부
        busy_timeout_ms: 잠금 대기 시간 (ms)

    Returns:
        aiosqlite 연결 객체
    """
    db_path_str = str(db_path)

    if is_memory_db(db_path):
        conn = await aiosqlite.connect(MEMORY_DB)
    else:
        # 디렉토리가 없으면 생성
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        if readonly:
            conn = await aiosqlite.connect(f"file:{db_path_str}?mode=ro", uri=True)
        else:
            conn = await aiosqlite.connect(db_path_str)
            # WAL 모드 설정 (DB 파일 단위로 유지됨)
            await conn.execute("PRAGMA journal_mode=WAL")

    # 동시 접근 설정
    await conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")

    # 외래 키 제약 활성화
    await conn.execute("PRAGMA foreign_keys=ON")

    logger.info(f"SQLite 연결 생성: {db_path_str} (readonly={readonly})")

    return conn


class SQLiteAdapter:
    """SQLite 어댑터

    WAL 모드로 SQLite 연결 관리.
    트랜잭션 컨텍스트 매니저 제공.

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부 (보고서 조회용)

    사용 예시:
    ```python
    adapter = SQLiteAdapter(db_path)
    await adapter.connect()

    async with adapter.transaction(immediate=True):
        await adapter.execute("INSERT INTO ...")

    await adapter.close()
    ```
    """

    def __init__(self, db_path: Path | str, readonly: bool = False):
        self.db_path = db_path if is_memory_db(db_path) else Path(db_path)
        self.readonly = readonly
        self._conn: aiosqlite.Connection | None = None
        self._snapshot_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        """연결 상태 확인"""
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        """트랜잭션 진행 여부"""
        return self._conn is not None and self._conn.in_transaction

    async def connect(self) -> None:
        """연결 생성"""
        if self._conn is not None:
            return

        self._conn = await create_connection(self.db_path, self.readonly)

    async def close(self) -> None:
        """연결 종료"""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite 연결 종료")

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        """SQL 실행"""
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        if parameters:
            return await self._conn.execute(sql, parameters)
        return await self._conn.execute(sql)

    async def executemany(
        self,
        sql: str,
        parameters: list[tuple[Any, ...]],
    ) -> aiosqlite.Cursor:
        """SQL 다중 실행"""
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        return await self._conn.executemany(sql, parameters)

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        """단일 행 조회"""
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        """전체 행 조회"""
        cursor = await self.execute(sql, parameters)
        return list(await cursor.fetchall())

    async def commit(self) -> None:
        """커밋"""
        if self._conn is not None:
            await self._conn.commit()

    async def rollback(self) -> None:
        """롤백"""
        if self._conn is not None:
            await self._conn.rollback()

    @asynccontextmanager
    async def transaction(self, immediate: bool = False) -> AsyncIterator["SQLiteAdapter"]:
        """트랜잭션 컨텍스트 매니저

        성공 시 자동 커밋, 예외 시 자동 롤백.
        immediate=True이면 BEGIN IMMEDIATE로 시작하여
        다른 프로세스의 쓰기와도 직렬화됨.

        사용 예시:
        ```python
        async with adapter.transaction(immediate=True):
            await adapter.execute("INSERT INTO ...")
            # 성공 시 자동 커밋
        ```
        """
        if self._conn is None:
            raise RuntimeError("Not connected to database")
        if self.readonly:
            raise RuntimeError("Cannot open a write transaction on a read-only connection")

        await self._conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        try:
            yield self
            await self._conn.commit()
        except BaseException:
            await self._conn.rollback()
            raise

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator["SQLiteAdapter"]:
        """읽기 스냅샷 (여러 쿼리가 같은 커밋 시점을 보도록)

        인메모리 DB이거나 이미 트랜잭션 안이면 그대로 사용.
        """
        if self._conn is None:
            raise RuntimeError("Not connected to database")

        if is_memory_db(self.db_path) or self._conn.in_transaction:
            yield self
            return

        async with self._snapshot_lock:
            await self._conn.execute("BEGIN")
            try:
                yield self
            finally:
                await self._conn.rollback()

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
