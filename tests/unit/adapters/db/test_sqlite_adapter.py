"""
SQLite 어댑터 테스트

SQLiteAdapter 및 관련 함수 테스트.
"""

from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import (
    MEMORY_DB,
    SQLiteAdapter,
    create_connection,
    is_memory_db,
)


class TestCreateConnection:
    """create_connection 테스트"""

    @pytest.mark.asyncio
    async def test_wal_mode(self, tmp_path: Path) -> None:
        """WAL 모드 + 외래 키 활성화"""
        conn = await create_connection(tmp_path / "test.db")

        cursor = await conn.execute("PRAGMA journal_mode")
        row = await cursor.fetchone()
        assert row[0].upper() == "WAL"

        cursor = await conn.execute("PRAGMA foreign_keys")
        row = await cursor.fetchone()
        assert row[0] == 1

        await conn.close()

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path: Path) -> None:
        """부모 디렉토리 생성"""
        db_path = tmp_path / "subdir" / "test.db"

        conn = await create_connection(db_path)

        assert db_path.parent.exists()
        await conn.close()

    def test_is_memory_db(self, tmp_path: Path) -> None:
        assert is_memory_db(MEMORY_DB)
        assert not is_memory_db(tmp_path / "test.db")


class TestSQLiteAdapter:
    """SQLiteAdapter 테스트"""

    @pytest_asyncio.fixture
    async def adapter(self, tmp_path: Path) -> SQLiteAdapter:
        """어댑터 픽스처"""
        adapter = SQLiteAdapter(tmp_path / "test.db")
        await adapter.connect()
        await adapter.execute("CREATE TABLE items (value TEXT)")
        await adapter.commit()
        yield adapter
        await adapter.close()

    @pytest.mark.asyncio
    async def test_connect_and_close(self, tmp_path: Path) -> None:
        """연결 및 종료"""
        adapter = SQLiteAdapter(tmp_path / "test.db")
        assert adapter.is_connected is False

        await adapter.connect()
        assert adapter.is_connected is True

        await adapter.close()
        assert adapter.is_connected is False

    @pytest.mark.asyncio
    async def test_fetchall(self, adapter: SQLiteAdapter) -> None:
        """전체 조회"""
        await adapter.executemany(
            "INSERT INTO items (value) VALUES (?)",
            [("A",), ("B",), ("C",)],
        )
        await adapter.commit()

        rows = await adapter.fetchall("SELECT value FROM items ORDER BY value")

        assert [row[0] for row in rows] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_transaction_commit(self, adapter: SQLiteAdapter) -> None:
        async with adapter.transaction(immediate=True):
            assert adapter.in_transaction
            await adapter.execute("INSERT INTO items (value) VALUES (?)", ("A",))

        assert not adapter.in_transaction
        row = await adapter.fetchone("SELECT COUNT(*) FROM items")
        assert row[0] == 1

    @pytest.mark.asyncio
    async def test_transaction_rollback(self, adapter: SQLiteAdapter) -> None:
        """예외 발생 시 롤백"""
        with pytest.raises(RuntimeError):
            async with adapter.transaction():
                await adapter.execute("INSERT INTO items (value) VALUES (?)", ("A",))
                raise RuntimeError("fail")

        row = await adapter.fetchone("SELECT COUNT(*) FROM items")
        assert row[0] == 0

    @pytest.mark.asyncio
    async def test_readonly_rejects_write_transaction(
        self, adapter: SQLiteAdapter, tmp_path: Path
    ) -> None:
        async with SQLiteAdapter(tmp_path / "test.db", readonly=True) as reader:
            with pytest.raises(RuntimeError):
                async with reader.transaction():
                    pass

    @pytest.mark.asyncio
    async def test_snapshot_isolation(self, adapter: SQLiteAdapter, tmp_path: Path) -> None:
        """스냅샷 안에서는 이후 커밋이 보이지 않음"""
        await adapter.execute("INSERT INTO items (value) VALUES (?)", ("A",))
        await adapter.commit()

        async with SQLiteAdapter(tmp_path / "test.db", readonly=True) as reader:
            async with reader.snapshot():
                row = await reader.fetchone("SELECT COUNT(*) FROM items")
                assert row[0] == 1

                async with adapter.transaction(immediate=True):
                    await adapter.execute("INSERT INTO items (value) VALUES (?)", ("B",))

                row = await reader.fetchone("SELECT COUNT(*) FROM items")
                assert row[0] == 1

            row = await reader.fetchone("SELECT COUNT(*) FROM items")
            assert row[0] == 2
