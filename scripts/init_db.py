"""
Ledger DB 초기화

스키마 생성 + 기본 계정과목표 시드 (반복 실행해도 안전).

사용법:
    python -m scripts.init_db
    python -m scripts.init_db --config config/settings.yaml --company acme
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.books import Books
from core.config.loader import Settings, load_settings
from core.logging import setup_logging

logger = logging.getLogger(__name__)


async def init_db(settings: Settings, company_ids: list[str]) -> None:
    for company_id in company_ids or [settings.company_id]:
        async with await Books.open(settings, company_id) as books:
            accounts = await books.accounts.list_accounts(include_inactive=True)
            logger.info(f"[{company_id}] 초기화 완료: 계정 {len(accounts)}개 ({settings.db_path})")


def main() -> None:
    parser = argparse.ArgumentParser(description="Ledger DB 초기화")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="settings.yaml 경로 (기본: config/settings.yaml)",
    )
    parser.add_argument(
        "--company",
        action="append",
        default=[],
        help="초기화할 회사 ID (여러 번 지정 가능, 기본: 설정의 company_id)",
    )
    args = parser.parse_args()

    settings = load_settings(args.config)
    setup_logging("scripts", settings.log_level)
    asyncio.run(init_db(settings, args.company))


if __name__ == "__main__":
    main()
