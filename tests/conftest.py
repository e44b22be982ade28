"""
pytest 공통 fixture 정의

임시 디렉토리의 파일 DB로 장부를 열고, 날짜는 FixedClock으로 고정.
"""

from datetime import date
from pathlib import Path

import pytest
import pytest_asyncio

from core.books import Books
from core.config.loader import Settings
from core.utils.clock import FixedClock


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """테스트용 설정 (임시 파일 DB, 기능통화 USD)"""
    return Settings(
        company_id="acme",
        functional_currency="USD",
        db_path=str(tmp_path / "ledger_test.db"),
    )


@pytest.fixture
def clock() -> FixedClock:
    """2024-01-31로 고정된 시계"""
    return FixedClock(date(2024, 1, 31))


@pytest_asyncio.fixture
async def books(settings: Settings, clock: FixedClock) -> Books:
    """기본 계정과목표가 시드된 장부"""
    books = await Books.open(settings, clock=clock)
    yield books
    await books.close()
