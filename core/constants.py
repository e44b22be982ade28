"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → 프로젝트 루트)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    COMPANY_ID: str = "default"
    FUNCTIONAL_CURRENCY: str = "USD"

    BALANCE_TOLERANCE: str = "0"
    REPORT_PAGE_SIZE: int = 500

    WEB_HOST: str = "127.0.0.1"
    WEB_PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    # SQLite 잠금 대기 (ms)
    BUSY_TIMEOUT_MS: int = 5000


class AccountCodes:
    """분개 자동 생성에 쓰이는 기본 계정 코드"""

    CASH: str = "1000"
    RECEIVABLE: str = "1100"
    PAYABLE: str = "2000"
    REVENUE: str = "4000"
    PURCHASES: str = "5000"
    FX_GAIN: str = "4900"
    FX_LOSS: str = "5900"


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOG_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "settings.yaml"

    # DB 파일
    DB: Path = DATA_DIR / "ledger.db"
