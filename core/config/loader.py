"""
설정 로더

settings.yaml 로드 및 Settings 생성.
싱글턴을 두지 않음: 진입점(web, scripts)이 한 번 로드해서 주입.
"""

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from core.constants import AccountCodes, Defaults, Paths
from core.errors import ValidationError
from core.money import normalize_currency, to_decimal


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostingAccounts:
    """자동 분개에 사용하는 계정 코드"""

    cash: str = AccountCodes.CASH
    receivable: str = AccountCodes.RECEIVABLE
    payable: str = AccountCodes.PAYABLE
    revenue: str = AccountCodes.REVENUE
    purchases: str = AccountCodes.PURCHASES
    fx_gain: str = AccountCodes.FX_GAIN
    fx_loss: str = AccountCodes.FX_LOSS


@dataclass(frozen=True)
class Settings:
    """애플리케이션 설정 (settings.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    company_id: str = Defaults.COMPANY_ID
    functional_currency: str = Defaults.FUNCTIONAL_CURRENCY
    db_path: str = str(Paths.DB)
    balance_tolerance: Decimal = Decimal(Defaults.BALANCE_TOLERANCE)
    report_page_size: int = Defaults.REPORT_PAGE_SIZE
    seed_default_chart: bool = True
    accounts: PostingAccounts = field(default_factory=PostingAccounts)
    web_host: str = Defaults.WEB_HOST
    web_port: int = Defaults.WEB_PORT
    log_level: str = Defaults.LOG_LEVEL

    def with_overrides(self, **changes: Any) -> "Settings":
        """일부 필드만 바꾼 사본 반환 (테스트/스크립트용)"""
        return replace(self, **changes)


class SettingsLoadError(Exception):
    """Settings 로드 실패 예외"""

    pass


def _parse_accounts(data: Any) -> PostingAccounts:
    if data is None:
        return PostingAccounts()
    if not isinstance(data, dict):
        raise SettingsLoadError("'accounts' 섹션은 매핑이어야 합니다")

    known = set(PostingAccounts.__dataclass_fields__)
    unknown = set(data) - known
    if unknown:
        raise SettingsLoadError(f"알 수 없는 accounts 키: {sorted(unknown)}")
    return PostingAccounts(**{k: str(v) for k, v in data.items()})


def parse_settings(data: dict[str, Any]) -> Settings:
    """딕셔너리 → Settings 변환

    Raises:
        SettingsLoadError: 필드 값이 잘못된 경우
    """
    defaults = Settings()
    try:
        currency = normalize_currency(
            data.get("functional_currency", defaults.functional_currency)
        )
        tolerance = to_decimal(
            str(data.get("balance_tolerance", defaults.balance_tolerance))
        )
    except ValidationError as e:
        raise SettingsLoadError(str(e)) from e

    if tolerance < 0:
        raise SettingsLoadError("balance_tolerance는 음수일 수 없습니다")

    page_size = data.get("report_page_size", defaults.report_page_size)
    if not isinstance(page_size, int) or page_size <= 0:
        raise SettingsLoadError(f"report_page_size는 양의 정수여야 합니다: {page_size!r}")

    web = data.get("web") or {}
    if not isinstance(web, dict):
        raise SettingsLoadError("'web' 섹션은 매핑이어야 합니다")

    log_level = str(data.get("log_level", defaults.log_level)).strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise SettingsLoadError(f"알 수 없는 log_level: {log_level!r}")

    company_id = str(data.get("company_id", defaults.company_id)).strip()
    if not company_id:
        raise SettingsLoadError("company_id가 비어 있습니다")

    return Settings(
        company_id=company_id,
        functional_currency=currency,
        db_path=str(data.get("db_path", defaults.db_path)),
        balance_tolerance=tolerance,
        report_page_size=page_size,
        seed_default_chart=bool(data.get("seed_default_chart", True)),
        accounts=_parse_accounts(data.get("accounts")),
        web_host=str(web.get("host", defaults.web_host)),
        web_port=int(web.get("port", defaults.web_port)),
        log_level=log_level,
    )


def load_settings(path: Path | None = None) -> Settings:
    """settings.yaml 파일 로드

    Args:
        path: settings.yaml 경로 (None이면 기본 경로, 없으면 기본값 사용)

    Returns:
        Settings 인스턴스

    Raises:
        SettingsLoadError: 명시한 파일이 없거나 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE
        if not path.exists():
            logger.info(f"settings.yaml 없음, 기본값 사용: {path}")
            return Settings()
    elif not path.exists():
        raise SettingsLoadError(f"settings.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"settings.yaml 파싱 실패: {e}") from e

    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise SettingsLoadError("settings.yaml 최상위는 매핑이어야 합니다")

    return parse_settings(data)
