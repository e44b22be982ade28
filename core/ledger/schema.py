"""
Ledger 스키마 초기화

Web 시작 / init_db 스크립트에서 호출되어 모든 테이블과 인덱스 생성.
CREATE IF NOT EXISTS 패턴으로 반복 호출해도 안전하게 동작.

금액 컬럼(*_minor)은 통화 최소 단위 정수.
환율/세율 등 비율 값은 Decimal 문자열(TEXT).
모든 테이블은 company_id로 회사 단위 분리.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_schema(db: "SQLiteAdapter") -> None:
    """전체 스키마 초기화

    Args:
        db: 쓰기 가능한 SQLiteAdapter 인스턴스
    """
    await _create_event_tables(db)
    await _create_ledger_tables(db)
    await _create_fx_tables(db)
    await _create_invoice_tables(db)
    await _create_indexes(db)
    await db.commit()
    logger.info("Ledger 스키마 초기화 완료")


async def _create_event_tables(db: "SQLiteAdapter") -> None:
    """도메인 이벤트(감사 로그) 테이블"""

    await db.execute("""
        CREATE TABLE IF NOT EXISTS domain_event (
            seq              INTEGER PRIMARY KEY AUTOINCREMENT,
            event_id         TEXT NOT NULL UNIQUE,
            company_id       TEXT NOT NULL,
            event_type       TEXT NOT NULL,
            ts               TEXT NOT NULL,
            entity_kind      TEXT NOT NULL,
            entity_id        TEXT NOT NULL,
            payload_json     TEXT NOT NULL
        )
    """)


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """계정과목 / 분개 테이블"""

    await db.execute("""
        CREATE TABLE IF NOT EXISTS account (
            company_id       TEXT NOT NULL,
            code             TEXT NOT NULL,
            name             TEXT NOT NULL,
            account_type     TEXT NOT NULL,
            subtype          TEXT,
            parent_code      TEXT,
            is_active        INTEGER NOT NULL DEFAULT 1,
            created_at       TEXT NOT NULL DEFAULT (datetime('now')),
            updated_at       TEXT NOT NULL DEFAULT (datetime('now')),
            PRIMARY KEY (company_id, code),
            FOREIGN KEY (company_id, parent_code) REFERENCES account(company_id, code)
        )
    """)

    # 분개 번호 시퀀스 (회사/연도별)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS entry_sequence (
            company_id       TEXT NOT NULL,
            year             INTEGER NOT NULL,
            last_value       INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (company_id, year)
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS journal_entry (
            entry_id             TEXT PRIMARY KEY,
            company_id           TEXT NOT NULL,
            entry_number         TEXT NOT NULL,
            entry_date           TEXT NOT NULL,
            description          TEXT NOT NULL DEFAULT '',
            status               TEXT NOT NULL DEFAULT 'DRAFT',
            currency             TEXT NOT NULL,
            reference_type       TEXT,
            reference_id         TEXT,
            reverses_entry_id    TEXT,
            reversed_by_entry_id TEXT,
            reversal_reason      TEXT,
            posted_at            TEXT,
            created_at           TEXT NOT NULL,
            updated_at           TEXT NOT NULL,
            UNIQUE (company_id, entry_number),
            FOREIGN KEY (reverses_entry_id) REFERENCES journal_entry(entry_id)
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS journal_line (
            line_id          INTEGER PRIMARY KEY AUTOINCREMENT,
            entry_id         TEXT NOT NULL,
            company_id       TEXT NOT NULL,
            line_no          INTEGER NOT NULL,
            account_code     TEXT NOT NULL,
            side             TEXT NOT NULL CHECK (side IN ('DEBIT', 'CREDIT')),
            amount_minor     INTEGER NOT NULL CHECK (amount_minor > 0),
            memo             TEXT,
            FOREIGN KEY (entry_id) REFERENCES journal_entry(entry_id) ON DELETE CASCADE,
            FOREIGN KEY (company_id, account_code) REFERENCES account(company_id, code)
        )
    """)


async def _create_fx_tables(db: "SQLiteAdapter") -> None:
    """환율 테이블"""

    await db.execute("""
        CREATE TABLE IF NOT EXISTS exchange_rate (
            rate_id          TEXT PRIMARY KEY,
            company_id       TEXT NOT NULL,
            from_currency    TEXT NOT NULL,
            to_currency      TEXT NOT NULL,
            rate_date        TEXT NOT NULL,
            rate             TEXT NOT NULL,
            source           TEXT NOT NULL DEFAULT 'MANUAL',
            is_active        INTEGER NOT NULL DEFAULT 1,
            created_at       TEXT NOT NULL
        )
    """)

    # 같은 (통화쌍, 날짜)에 활성 환율은 최대 1개
    await db.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS ux_exchange_rate_active
        ON exchange_rate(company_id, from_currency, to_currency, rate_date)
        WHERE is_active = 1
    """)


async def _create_invoice_tables(db: "SQLiteAdapter") -> None:
    """송장 / 송장 항목 / 결제 테이블"""

    await db.execute("""
        CREATE TABLE IF NOT EXISTS invoice (
            invoice_id           TEXT PRIMARY KEY,
            company_id           TEXT NOT NULL,
            invoice_number       TEXT NOT NULL,
            invoice_type         TEXT NOT NULL,
            counterparty         TEXT NOT NULL,
            currency             TEXT NOT NULL,
            subtotal_minor       INTEGER NOT NULL,
            tax_rate             TEXT NOT NULL DEFAULT '0',
            tax_minor            INTEGER NOT NULL DEFAULT 0,
            discount_minor       INTEGER NOT NULL DEFAULT 0,
            total_minor          INTEGER NOT NULL CHECK (total_minor > 0),
            amount_paid_minor    INTEGER NOT NULL DEFAULT 0,
            status               TEXT NOT NULL DEFAULT 'DRAFT',
            issue_date           TEXT NOT NULL,
            due_date             TEXT NOT NULL,
            notes                TEXT,
            payment_terms        TEXT,
            booked_rate          TEXT,
            ar_booked_minor      INTEGER NOT NULL DEFAULT 0,
            ar_relieved_minor    INTEGER NOT NULL DEFAULT 0,
            recognition_entry_id TEXT,
            paid_at              TEXT,
            cancelled_at         TEXT,
            created_at           TEXT NOT NULL,
            updated_at           TEXT NOT NULL,
            UNIQUE (company_id, invoice_number),
            FOREIGN KEY (recognition_entry_id) REFERENCES journal_entry(entry_id)
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS invoice_item (
            item_id          INTEGER PRIMARY KEY AUTOINCREMENT,
            invoice_id       TEXT NOT NULL,
            line_no          INTEGER NOT NULL,
            description      TEXT NOT NULL,
            quantity         TEXT NOT NULL,
            unit_price       TEXT NOT NULL,
            amount_minor     INTEGER NOT NULL,
            FOREIGN KEY (invoice_id) REFERENCES invoice(invoice_id) ON DELETE CASCADE
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS invoice_payment (
            payment_id        TEXT PRIMARY KEY,
            invoice_id        TEXT NOT NULL,
            company_id        TEXT NOT NULL,
            amount_minor      INTEGER NOT NULL CHECK (amount_minor > 0),
            payment_date      TEXT NOT NULL,
            exchange_rate     TEXT NOT NULL,
            functional_minor  INTEGER NOT NULL,
            journal_entry_id  TEXT,
            created_at        TEXT NOT NULL,
            FOREIGN KEY (invoice_id) REFERENCES invoice(invoice_id),
            FOREIGN KEY (journal_entry_id) REFERENCES journal_entry(entry_id)
        )
    """)


async def _create_indexes(db: "SQLiteAdapter") -> None:
    """조회용 인덱스"""

    statements = [
        "CREATE INDEX IF NOT EXISTS idx_domain_event_entity ON domain_event(company_id, entity_kind, entity_id)",
        "CREATE INDEX IF NOT EXISTS idx_domain_event_type ON domain_event(company_id, event_type, ts)",
        "CREATE INDEX IF NOT EXISTS idx_journal_entry_date ON journal_entry(company_id, entry_date, entry_number)",
        "CREATE INDEX IF NOT EXISTS idx_journal_entry_status ON journal_entry(company_id, status)",
        "CREATE INDEX IF NOT EXISTS idx_journal_entry_reference ON journal_entry(company_id, reference_type, reference_id)",
        "CREATE INDEX IF NOT EXISTS idx_journal_line_entry ON journal_line(entry_id)",
        "CREATE INDEX IF NOT EXISTS idx_journal_line_account ON journal_line(company_id, account_code)",
        "CREATE INDEX IF NOT EXISTS idx_exchange_rate_lookup ON exchange_rate(company_id, from_currency, to_currency, rate_date)",
        "CREATE INDEX IF NOT EXISTS idx_invoice_status ON invoice(company_id, status, due_date)",
        "CREATE INDEX IF NOT EXISTS idx_invoice_payment_invoice ON invoice_payment(invoice_id)",
    ]
    for sql in statements:
        await db.execute(sql)
