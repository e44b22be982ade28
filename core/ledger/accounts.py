"""
계정과목 관리 (Account Registry)

회사별 계정과목표 생성/조회/수정/비활성화.
전기 내역이 있는 계정은 물리 삭제하지 않고 비활성화만 허용.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from core.domain.events import EventTypes
from core.errors import AccountLockedError, AccountNotFoundError, ValidationError
from core.ledger.types import ACCOUNT_CODE_PATTERN, DEFAULT_CHART, AccountType
from core.storage.repository import CompanyRepository
from core.types import EntityKind
from core.utils.clock import now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Account:
    """계정과목"""

    company_id: str
    code: str
    name: str
    account_type: AccountType
    subtype: str | None = None
    parent_code: str | None = None
    is_active: bool = True

    @property
    def normal_side(self) -> str:
        """정상 잔액 방향"""
        return self.account_type.normal_side.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "account_type": self.account_type.value,
            "subtype": self.subtype,
            "parent_code": self.parent_code,
            "is_active": self.is_active,
            "normal_side": self.normal_side,
        }


def parse_account_type(value: str | AccountType) -> AccountType:
    """계정 유형 파싱

    Raises:
        ValidationError: 알 수 없는 유형
    """
    if isinstance(value, AccountType):
        return value
    try:
        return AccountType(str(value).upper())
    except ValueError as e:
        valid = [t.value for t in AccountType]
        raise ValidationError(f"Invalid account type: {value!r}. Valid: {valid}") from e


def validate_account_code(code: str) -> str:
    """계정 코드 형식 검증"""
    if not isinstance(code, str) or not ACCOUNT_CODE_PATTERN.match(code.strip()):
        raise ValidationError(f"Invalid account code: {code!r}")
    return code.strip()


_ACCOUNT_COLUMNS = "company_id, code, name, account_type, subtype, parent_code, is_active"


def _row_to_account(row: tuple[Any, ...]) -> Account:
    return Account(
        company_id=row[0],
        code=row[1],
        name=row[2],
        account_type=AccountType(row[3]),
        subtype=row[4],
        parent_code=row[5],
        is_active=bool(row[6]),
    )


class AccountRegistry(CompanyRepository):
    """계정과목 저장소

    Args:
        uow: 회사의 UnitOfWork
        reader: 읽기 연결
    """

    async def create_account(
        self,
        code: str,
        name: str,
        account_type: str | AccountType,
        subtype: str | None = None,
        parent_code: str | None = None,
    ) -> Account:
        """계정 생성

        Raises:
            ValidationError: 코드 형식 오류, 중복 코드, 빈 이름
            AccountNotFoundError: 상위 계정 없음
        """
        code = validate_account_code(code)
        acc_type = parse_account_type(account_type)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name is required")

        async with self.uow.begin() as txn:
            if await self._find(code) is not None:
                raise ValidationError(f"Account code already exists: {code}")

            if parent_code is not None:
                parent = await self._find(parent_code)
                if parent is None:
                    raise AccountNotFoundError(f"Parent account not found: {parent_code}")

            now = now_utc().isoformat()
            await txn.db.execute(
                """
                INSERT INTO account (
                    company_id, code, name, account_type, subtype, parent_code,
                    is_active, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?)
                """,
                (self.company_id, code, name, acc_type.value, subtype, parent_code, now, now),
            )
            account = Account(
                company_id=self.company_id,
                code=code,
                name=name,
                account_type=acc_type,
                subtype=subtype,
                parent_code=parent_code,
            )
            txn.emit(
                EventTypes.ACCOUNT_CREATED,
                EntityKind.ACCOUNT.value,
                code,
                account.to_dict(),
            )

        logger.info(f"[{self.company_id}] 계정 생성: {code} {name} ({acc_type.value})")
        return account

    async def get_account(self, code: str) -> Account:
        """계정 조회

        Raises:
            AccountNotFoundError: 계정 없음
        """
        account = await self._find(code)
        if account is None:
            raise AccountNotFoundError(f"Account not found: {code}")
        return account

    async def list_accounts(
        self,
        account_type: str | AccountType | None = None,
        include_inactive: bool = False,
    ) -> list[Account]:
        """계정 목록 (코드순)"""
        conditions = ["company_id = ?"]
        params: list[Any] = [self.company_id]

        if account_type is not None:
            conditions.append("account_type = ?")
            params.append(parse_account_type(account_type).value)
        if not include_inactive:
            conditions.append("is_active = 1")

        rows = await self.db.fetchall(
            f"""
            SELECT {_ACCOUNT_COLUMNS}
            FROM account
            WHERE {' AND '.join(conditions)}
            ORDER BY code
            """,
            tuple(params),
        )
        return [_row_to_account(row) for row in rows]

    async def update_account(
        self,
        code: str,
        name: str | None = None,
        account_type: str | AccountType | None = None,
        subtype: str | None = None,
    ) -> Account:
        """계정 수정

        전기(POSTED/REVERSED) 분개에 사용된 계정의 유형 변경은 거부.

        Raises:
            AccountNotFoundError: 계정 없음
            AccountLockedError: 전기 내역이 있는 계정의 유형 변경
        """
        async with self.uow.begin() as txn:
            current = await self.get_account(code)
            new_type = current.account_type if account_type is None else parse_account_type(account_type)

            if new_type != current.account_type and await self.has_postings(code):
                raise AccountLockedError(
                    f"Account {code} has posted entries; its type cannot change "
                    f"({current.account_type.value} → {new_type.value})"
                )

            new_name = current.name if name is None else name.strip()
            if not new_name:
                raise ValidationError("Account name is required")
            new_subtype = current.subtype if subtype is None else subtype

            await txn.db.execute(
                """
                UPDATE account
                SET name = ?, account_type = ?, subtype = ?, updated_at = ?
                WHERE company_id = ? AND code = ?
                """,
                (new_name, new_type.value, new_subtype, now_utc().isoformat(), self.company_id, code),
            )
            updated = Account(
                company_id=self.company_id,
                code=code,
                name=new_name,
                account_type=new_type,
                subtype=new_subtype,
                parent_code=current.parent_code,
                is_active=current.is_active,
            )
            txn.emit(EventTypes.ACCOUNT_UPDATED, EntityKind.ACCOUNT.value, code, updated.to_dict())

        return updated

    async def deactivate_account(self, code: str) -> Account:
        """계정 비활성화 (신규 분개에 사용 불가, 기존 내역은 유지)"""
        return await self._set_active(code, False)

    async def reactivate_account(self, code: str) -> Account:
        """계정 재활성화"""
        return await self._set_active(code, True)

    async def require_active(self, code: str) -> Account:
        """활성 계정 검증 (Journal Engine에서 사용)

        Raises:
            AccountNotFoundError: 계정 없음
            ValidationError: 비활성 계정
        """
        account = await self.get_account(code)
        if not account.is_active:
            raise ValidationError(f"Account {code} is inactive")
        return account

    async def has_postings(self, code: str) -> bool:
        """전기된 분개 라인 존재 여부"""
        row = await self.db.fetchone(
            """
            SELECT 1
            FROM journal_line jl
            JOIN journal_entry je ON je.entry_id = jl.entry_id
            WHERE jl.company_id = ? AND jl.account_code = ?
              AND je.status IN ('POSTED', 'REVERSED')
            LIMIT 1
            """,
            (self.company_id, code),
        )
        return row is not None

    async def seed_default_chart(self) -> int:
        """기본 계정과목표 생성 (이미 있는 코드는 건너뜀)

        Returns:
            새로 생성한 계정 수
        """
        created = 0
        async with self.uow.begin() as txn:
            now = now_utc().isoformat()
            for code, name, account_type, subtype in DEFAULT_CHART:
                cursor = await txn.db.execute(
                    """
                    INSERT OR IGNORE INTO account (
                        company_id, code, name, account_type, subtype,
                        is_active, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, 1, ?, ?)
                    """,
                    (self.company_id, code, name, account_type, subtype, now, now),
                )
                created += cursor.rowcount

        if created:
            logger.info(f"[{self.company_id}] 기본 계정과목 {created}개 생성")
        return created

    async def _set_active(self, code: str, active: bool) -> Account:
        async with self.uow.begin() as txn:
            current = await self.get_account(code)
            if current.is_active != active:
                await txn.db.execute(
                    "UPDATE account SET is_active = ?, updated_at = ? WHERE company_id = ? AND code = ?",
                    (1 if active else 0, now_utc().isoformat(), self.company_id, code),
                )
                txn.emit(
                    EventTypes.ACCOUNT_REACTIVATED if active else EventTypes.ACCOUNT_DEACTIVATED,
                    EntityKind.ACCOUNT.value,
                    code,
                    {"code": code},
                )
                logger.info(f"[{self.company_id}] 계정 {'활성화' if active else '비활성화'}: {code}")

        return replace(current, is_active=active)

    async def _find(self, code: str) -> Account | None:
        row = await self.db.fetchone(
            f"SELECT {_ACCOUNT_COLUMNS} FROM account WHERE company_id = ? AND code = ?",
            (self.company_id, code),
        )
        return _row_to_account(row) if row else None
