"""
로깅 설정

진입점(python -m web, scripts/*)이 설정 로드 직후 한 번 호출.
라이브러리 코드(core/, adapters/)는 logging.getLogger(__name__)만 사용하고 핸들러를 붙이지 않음.

    settings = load_settings()
    setup_logging("web", settings.log_level)

로그 파일: logs/<process>/<process>.log (자정 롤링, 7일 보관)
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.constants import Paths

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 7

# 요청/쿼리마다 로그를 남기는 라이브러리
NOISY_LOGGERS = [
    "aiosqlite",
    "asyncio",
    "httpcore",
    "httpx",
    "uvicorn.access",
]


def resolve_level(level: str | int) -> int:
    """로그 레벨 이름/숫자 → logging 레벨

    Raises:
        ValueError: 알 수 없는 레벨 이름
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def get_log_file_path(process_name: str) -> Path:
    return Paths.LOG_DIR / process_name / f"{process_name}.log"


def _console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _daily_file_handler(
    log_file: Path,
    level: int,
    formatter: logging.Formatter,
) -> logging.Handler:
    handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        interval=1,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"  # ledger.log.2024-01-31
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    process_name: str,
    level: str | int = logging.INFO,
    log_dir: Path | None = None,
) -> logging.Logger:
    """루트 로거에 콘솔 + 일별 파일 핸들러 설치

    다시 호출하면 기존 핸들러를 닫고 교체 (중복 출력 없음).

    Args:
        process_name: 프로세스 이름 ("web", "scripts")
        level: 콘솔/파일 공통 로그 레벨 (이름 또는 숫자)
        log_dir: 로그 디렉토리 (None이면 logs/<process_name>)

    Returns:
        루트 Logger
    """
    handler_level = resolve_level(level)
    log_file = (log_dir / f"{process_name}.log") if log_dir else get_log_file_path(process_name)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    root.addHandler(_console_handler(handler_level, formatter))
    root.addHandler(_daily_file_handler(log_file, handler_level, formatter))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info(
        f"로깅 초기화: {process_name} level={logging.getLevelName(handler_level)} file={log_file}"
    )
    return root
