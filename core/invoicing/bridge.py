"""
Invoice Ledger Bridge

송장 생명주기(DRAFT → SENT → PAID / CANCELLED)와 결제 적용을 관리하고
각 단계의 분개를 Journal Engine에 전기.

분개 규칙 (기능통화로 환산):
- 발송 (발행일 환율)
    SALES:    Dr 매출채권 / Cr 매출
    PURCHASE: Dr 매입(매출원가) / Cr 매입채무
- 결제 (결제일 환율)
    SALES:    Dr 현금 / Cr 매출채권
    PURCHASE: Dr 매입채무 / Cr 현금
  통제계정은 발송 시 환율로 비례 상계 (마지막 결제는 남은 금액 전부),
  현금과의 차이는 환차익 / 환차손
- 취소: 상계되지 않은 통제계정 잔액을 인식 계정과 맞상계 (결제액은 건드리지 않음)

OVERDUE는 저장하지 않음. 조회 시 SENT + 만기 경과 + 잔액 > 0 이면 OVERDUE로 보고.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable, Mapping
from uuid import uuid4

from core.domain.events import EventTypes
from core.domain.state_machines import InvoiceState, InvoiceStateMachine
from core.errors import InvalidPaymentError, InvoiceNotFoundError, ValidationError
from core.invoicing.models import (
    Invoice,
    InvoiceItem,
    InvoicePayment,
    compute_totals,
    parse_invoice_type,
)
from core.ledger.types import JournalSide, ReferenceType
from core.money import (
    format_amount,
    from_minor,
    normalize_currency,
    parse_amount,
    round_money,
    to_minor,
)
from core.storage.repository import CompanyRepository
from core.types import EntityKind, InvoiceStatus, InvoiceType
from core.utils.clock import Clock, SystemClock, now_utc

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter
    from core.config.loader import PostingAccounts
    from core.fx.store import FxRateStore
    from core.ledger.journal import JournalEngine
    from core.storage.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

_INVOICE_COLUMNS = """
    invoice_id, company_id, invoice_number, invoice_type, counterparty, currency,
    subtotal_minor, tax_rate, tax_minor, discount_minor, total_minor, amount_paid_minor,
    status, issue_date, due_date, notes, payment_terms,
    booked_rate, ar_booked_minor, ar_relieved_minor, recognition_entry_id,
    paid_at, cancelled_at, created_at
"""


class InvoiceLedgerBridge(CompanyRepository):
    """송장 ↔ 원장 연결

    Args:
        uow: 회사의 UnitOfWork
        reader: 읽기 연결
        journal: JournalEngine (분개 전기)
        fx: FxRateStore (기능통화 환산)
        accounts: 자동 분개 계정 코드
        functional_currency: 기능통화
        clock: 오늘 날짜 (연체 판정, 기본 결제일)
    """

    def __init__(
        self,
        uow: UnitOfWork,
        reader: SQLiteAdapter,
        journal: JournalEngine,
        fx: FxRateStore,
        accounts: PostingAccounts,
        functional_currency: str,
        clock: Clock | None = None,
    ):
        super().__init__(uow, reader)
        self.journal = journal
        self.fx = fx
        self.accounts = accounts
        self.functional_currency = functional_currency
        self.clock = clock or SystemClock()

    # -------------------------------------------------------------------------
    # 생명주기
    # -------------------------------------------------------------------------

    async def create(
        self,
        invoice_number: str,
        counterparty: str,
        currency: str,
        items: Iterable[InvoiceItem | Mapping[str, Any]],
        issue_date: date,
        due_date: date,
        invoice_type: str | InvoiceType = InvoiceType.SALES,
        tax_rate: Any = 0,
        discount: Any = 0,
        notes: str | None = None,
        payment_terms: str | None = None,
    ) -> Invoice:
        """송장 생성 (DRAFT, 결제액 0, 잔액 = 합계)

        Raises:
            ValidationError: 번호/거래처 누락, 중복 번호, 만기일 < 발행일, 금액 오류
        """
        invoice_number = (invoice_number or "").strip()
        counterparty = (counterparty or "").strip()
        if not invoice_number:
            raise ValidationError("Invoice number is required")
        if not counterparty:
            raise ValidationError("Counterparty is required")
        if due_date < issue_date:
            raise ValidationError(f"Due date {due_date} is before issue date {issue_date}")

        currency = normalize_currency(currency)
        kind = parse_invoice_type(invoice_type)
        totals = compute_totals(items, currency, tax_rate=tax_rate, discount=discount)

        async with self.uow.begin() as txn:
            existing = await txn.db.fetchone(
                "SELECT 1 FROM invoice WHERE company_id = ? AND invoice_number = ?",
                (self.company_id, invoice_number),
            )
            if existing is not None:
                raise ValidationError(f"Invoice number already exists: {invoice_number}")

            now = now_utc()
            invoice = Invoice(
                invoice_id=str(uuid4()),
                company_id=self.company_id,
                invoice_number=invoice_number,
                invoice_type=kind,
                counterparty=counterparty,
                currency=currency,
                issue_date=issue_date,
                due_date=due_date,
                items=list(totals.items),
                subtotal=totals.subtotal,
                tax_rate=totals.tax_rate,
                tax_amount=totals.tax_amount,
                discount=totals.discount,
                total_amount=totals.total_amount,
                notes=notes,
                payment_terms=payment_terms,
                created_at=now,
            )
            await self._insert_invoice(txn.db, invoice)
            txn.emit(
                EventTypes.INVOICE_CREATED,
                EntityKind.INVOICE.value,
                invoice.invoice_id,
                {
                    "invoice_number": invoice_number,
                    "invoice_type": kind.value,
                    "currency": currency,
                    "total_amount": format_amount(invoice.total_amount, currency),
                },
            )

        logger.info(
            f"[{self.company_id}] 송장 생성: {invoice_number} {kind.value} "
            f"{format_amount(invoice.total_amount, currency)} {currency}"
        )
        return invoice

    async def send(self, invoice_id: str) -> Invoice:
        """송장 발송 (DRAFT → SENT) + 인식 분개 전기 (발행일 환율)

        Raises:
            InvoiceNotFoundError: 송장 없음
            InvalidStateTransitionError: DRAFT가 아닌 송장
            NoRateAvailableError: 발행일 환율 없음
        """
        async with self.uow.begin() as txn:
            invoice = await self.get_invoice(invoice_id)
            sm = InvoiceStateMachine(invoice.status)
            sm.require(InvoiceState.SENT)

            conversion = await self.fx.convert(
                invoice.total_amount,
                invoice.currency,
                self.functional_currency,
                invoice.issue_date,
            )
            booked = conversion.converted

            if invoice.invoice_type is InvoiceType.SALES:
                debit_code, credit_code = self.accounts.receivable, self.accounts.revenue
            else:
                debit_code, credit_code = self.accounts.purchases, self.accounts.payable

            memo = f"{invoice.invoice_number} {invoice.counterparty}"
            entry = await self.journal.post_lines(
                [
                    {"account_code": debit_code, "side": "DEBIT", "amount": booked, "memo": memo},
                    {"account_code": credit_code, "side": "CREDIT", "amount": booked, "memo": memo},
                ],
                entry_date=invoice.issue_date,
                description=f"Invoice {invoice.invoice_number} ({invoice.invoice_type.value.lower()})",
                reference_type=ReferenceType.INVOICE.value,
                reference_id=invoice.invoice_id,
            )

            sm.transition(InvoiceState.SENT)
            invoice.status = sm.state
            invoice.booked_rate = conversion.rate
            invoice.ar_booked = booked
            invoice.recognition_entry_id = entry.entry_id

            await txn.db.execute(
                """
                UPDATE invoice
                SET status = ?, booked_rate = ?, ar_booked_minor = ?,
                    recognition_entry_id = ?, updated_at = ?
                WHERE invoice_id = ?
                """,
                (
                    invoice.status,
                    str(conversion.rate),
                    to_minor(booked, self.functional_currency),
                    entry.entry_id,
                    now_utc().isoformat(),
                    invoice.invoice_id,
                ),
            )
            txn.emit(
                EventTypes.INVOICE_SENT,
                EntityKind.INVOICE.value,
                invoice.invoice_id,
                {
                    "invoice_number": invoice.invoice_number,
                    "entry_id": entry.entry_id,
                    "booked_amount": format_amount(booked, self.functional_currency),
                    "booked_rate": str(conversion.rate),
                },
            )

        logger.info(
            f"[{self.company_id}] 송장 발송: {invoice.invoice_number} → {entry.entry_number} "
            f"({format_amount(booked, self.functional_currency)} {self.functional_currency})"
        )
        return invoice

    async def record_payment(
        self,
        invoice_id: str,
        amount: Any,
        payment_date: date | None = None,
    ) -> Invoice:
        """결제 적용

        검증 순서: 상태 → 금액. 잔액이 0이 되면 PAID.

        Raises:
            InvoiceNotFoundError: 송장 없음
            InvalidStateTransitionError: DRAFT / PAID / CANCELLED
            InvalidPaymentError: 0 이하, 잔액 초과, 통화 정밀도 초과
            ValidationError: 결제일 < 발행일
            NoRateAvailableError: 결제일 환율 없음
        """
        payment_date = payment_date or self.clock.today()

        async with self.uow.begin() as txn:
            invoice = await self.get_invoice(invoice_id)
            sm = InvoiceStateMachine(invoice.status)
            sm.require_payable()

            paid_amount = self._parse_payment(amount, invoice)
            if payment_date < invoice.issue_date:
                raise ValidationError(
                    f"Payment date {payment_date} is before issue date {invoice.issue_date}"
                )

            fc = self.functional_currency
            conversion = await self.fx.convert(paid_amount, invoice.currency, fc, payment_date)
            cash = conversion.converted

            new_paid = invoice.amount_paid + paid_amount
            settled = new_paid == invoice.total_amount
            if settled:
                target_relieved = invoice.ar_booked
            else:
                target_relieved = round_money(
                    invoice.ar_booked * new_paid / invoice.total_amount, fc
                )
            relief = target_relieved - invoice.ar_relieved

            payment_id = str(uuid4())
            lines = self._payment_lines(invoice, cash, relief)
            entry_id = None
            if lines:
                entry = await self.journal.post_lines(
                    lines,
                    entry_date=payment_date,
                    description=f"Payment on invoice {invoice.invoice_number}",
                    reference_type=ReferenceType.INVOICE_PAYMENT.value,
                    reference_id=payment_id,
                )
                entry_id = entry.entry_id

            now = now_utc()
            payment = InvoicePayment(
                payment_id=payment_id,
                invoice_id=invoice.invoice_id,
                amount=paid_amount,
                payment_date=payment_date,
                exchange_rate=conversion.rate,
                functional_amount=cash,
                journal_entry_id=entry_id,
                created_at=now,
            )
            await txn.db.execute(
                """
                INSERT INTO invoice_payment (
                    payment_id, invoice_id, company_id, amount_minor, payment_date,
                    exchange_rate, functional_minor, journal_entry_id, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    payment.payment_id,
                    payment.invoice_id,
                    self.company_id,
                    to_minor(paid_amount, invoice.currency),
                    payment_date.isoformat(),
                    str(conversion.rate),
                    to_minor(cash, fc),
                    entry_id,
                    now.isoformat(),
                ),
            )

            invoice.amount_paid = new_paid
            invoice.ar_relieved = target_relieved
            if settled:
                sm.transition(InvoiceState.PAID)
                invoice.status = sm.state
                invoice.paid_at = now

            await txn.db.execute(
                """
                UPDATE invoice
                SET amount_paid_minor = ?, ar_relieved_minor = ?, status = ?,
                    paid_at = ?, updated_at = ?
                WHERE invoice_id = ?
                """,
                (
                    to_minor(invoice.amount_paid, invoice.currency),
                    to_minor(invoice.ar_relieved, fc),
                    invoice.status,
                    invoice.paid_at.isoformat() if invoice.paid_at else None,
                    now.isoformat(),
                    invoice.invoice_id,
                ),
            )

            txn.emit(
                EventTypes.PAYMENT_RECORDED,
                EntityKind.INVOICE.value,
                invoice.invoice_id,
                {
                    "payment_id": payment_id,
                    "amount": format_amount(paid_amount, invoice.currency),
                    "currency": invoice.currency,
                    "payment_date": payment_date.isoformat(),
                    "functional_amount": format_amount(cash, fc),
                    "balance_due": format_amount(invoice.balance_due, invoice.currency),
                    "entry_id": entry_id,
                },
            )
            if settled:
                txn.emit(
                    EventTypes.INVOICE_PAID,
                    EntityKind.INVOICE.value,
                    invoice.invoice_id,
                    {"invoice_number": invoice.invoice_number},
                )

        logger.info(
            f"[{self.company_id}] 결제 적용: {invoice.invoice_number} "
            f"{format_amount(paid_amount, invoice.currency)} {invoice.currency}, "
            f"잔액 {format_amount(invoice.balance_due, invoice.currency)} ({invoice.status})"
        )
        return invoice

    async def cancel(self, invoice_id: str, cancel_date: date | None = None) -> Invoice:
        """송장 취소 (DRAFT / SENT(OVERDUE 포함) → CANCELLED)

        결제액/잔액은 변경하지 않음 (환불은 별도 절차).
        SENT였으면 상계되지 않은 통제계정 잔액을 인식 계정과 맞상계.

        Raises:
            InvoiceNotFoundError: 송장 없음
            InvalidStateTransitionError: PAID / CANCELLED
            ValidationError: 취소일 < 발행일
        """
        async with self.uow.begin() as txn:
            invoice = await self.get_invoice(invoice_id)
            sm = InvoiceStateMachine(invoice.status)
            sm.require(InvoiceState.CANCELLED)

            write_off_entry_id = None
            unrelieved = invoice.ar_booked - invoice.ar_relieved
            if invoice.status == InvoiceState.SENT.value and unrelieved > 0:
                entry_date = cancel_date or max(self.clock.today(), invoice.issue_date)
                if entry_date < invoice.issue_date:
                    raise ValidationError(
                        f"Cancellation date {entry_date} is before issue date {invoice.issue_date}"
                    )

                if invoice.invoice_type is InvoiceType.SALES:
                    debit_code, credit_code = self.accounts.revenue, self.accounts.receivable
                else:
                    debit_code, credit_code = self.accounts.payable, self.accounts.purchases

                entry = await self.journal.post_lines(
                    [
                        {"account_code": debit_code, "side": "DEBIT", "amount": unrelieved},
                        {"account_code": credit_code, "side": "CREDIT", "amount": unrelieved},
                    ],
                    entry_date=entry_date,
                    description=f"Cancellation of invoice {invoice.invoice_number}",
                    reference_type=ReferenceType.INVOICE_CANCELLATION.value,
                    reference_id=invoice.invoice_id,
                )
                write_off_entry_id = entry.entry_id

            sm.transition(InvoiceState.CANCELLED)
            now = now_utc()
            invoice.status = sm.state
            invoice.cancelled_at = now

            await txn.db.execute(
                "UPDATE invoice SET status = ?, cancelled_at = ?, updated_at = ? WHERE invoice_id = ?",
                (invoice.status, now.isoformat(), now.isoformat(), invoice.invoice_id),
            )
            txn.emit(
                EventTypes.INVOICE_CANCELLED,
                EntityKind.INVOICE.value,
                invoice.invoice_id,
                {
                    "invoice_number": invoice.invoice_number,
                    "amount_paid": format_amount(invoice.amount_paid, invoice.currency),
                    "balance_due": format_amount(invoice.balance_due, invoice.currency),
                    "write_off_entry_id": write_off_entry_id,
                },
            )

        logger.info(f"[{self.company_id}] 송장 취소: {invoice.invoice_number}")
        return invoice

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    def today(self) -> date:
        return self.clock.today()

    async def get_invoice(self, invoice_id: str) -> Invoice:
        """송장 조회 (항목 포함)

        Raises:
            InvoiceNotFoundError: 송장 없음
        """
        row = await self.db.fetchone(
            f"SELECT {_INVOICE_COLUMNS} FROM invoice WHERE company_id = ? AND invoice_id = ?",
            (self.company_id, invoice_id),
        )
        if row is None:
            raise InvoiceNotFoundError(f"Invoice not found: {invoice_id}")

        invoice = self._row_to_invoice(row)
        invoice.items = await self._load_items(invoice)
        return invoice

    async def list_invoices(
        self,
        status: str | None = None,
        invoice_type: str | InvoiceType | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Invoice]:
        """송장 목록 (발행일 역순)

        status 필터는 조회 시점 상태 기준 (OVERDUE / SENT 구분).
        """
        conditions = ["company_id = ?"]
        params: list[Any] = [self.company_id]
        today = self.clock.today().isoformat()

        if status is not None:
            try:
                wanted = InvoiceStatus(status.upper())
            except ValueError as e:
                raise ValidationError(f"Invalid invoice status: {status!r}") from e

            overdue_sql = "(status = 'SENT' AND due_date < ? AND amount_paid_minor < total_minor)"
            if wanted is InvoiceStatus.OVERDUE:
                conditions.append(overdue_sql)
                params.append(today)
            elif wanted is InvoiceStatus.SENT:
                conditions.append(f"status = 'SENT' AND NOT {overdue_sql}")
                params.append(today)
            else:
                conditions.append("status = ?")
                params.append(wanted.value)

        if invoice_type is not None:
            conditions.append("invoice_type = ?")
            params.append(parse_invoice_type(invoice_type).value)

        params.extend([limit, offset])
        rows = await self.db.fetchall(
            f"""
            SELECT {_INVOICE_COLUMNS}
            FROM invoice
            WHERE {' AND '.join(conditions)}
            ORDER BY issue_date DESC, invoice_number DESC
            LIMIT ? OFFSET ?
            """,
            tuple(params),
        )
        invoices = [self._row_to_invoice(row) for row in rows]
        for invoice in invoices:
            invoice.items = await self._load_items(invoice)
        return invoices

    async def list_payments(self, invoice_id: str) -> list[InvoicePayment]:
        """송장 결제 내역 (결제일순)"""
        invoice = await self.get_invoice(invoice_id)
        rows = await self.db.fetchall(
            """
            SELECT payment_id, invoice_id, amount_minor, payment_date, exchange_rate,
                   functional_minor, journal_entry_id, created_at
            FROM invoice_payment
            WHERE invoice_id = ?
            ORDER BY payment_date, created_at
            """,
            (invoice_id,),
        )
        return [
            InvoicePayment(
                payment_id=row[0],
                invoice_id=row[1],
                amount=from_minor(row[2], invoice.currency),
                payment_date=date.fromisoformat(row[3]),
                exchange_rate=Decimal(row[4]),
                functional_amount=from_minor(row[5], self.functional_currency),
                journal_entry_id=row[6],
                created_at=datetime.fromisoformat(row[7]),
            )
            for row in rows
        ]

    # -------------------------------------------------------------------------
    # 내부
    # -------------------------------------------------------------------------

    def _parse_payment(self, amount: Any, invoice: Invoice) -> Decimal:
        try:
            parsed = parse_amount(amount, invoice.currency)
        except ValidationError as e:
            raise InvalidPaymentError(str(e)) from e

        if parsed <= 0:
            raise InvalidPaymentError(f"Payment amount must be positive: {amount}")
        if parsed > invoice.balance_due:
            raise InvalidPaymentError(
                f"Payment {format_amount(parsed, invoice.currency)} exceeds balance due "
                f"{format_amount(invoice.balance_due, invoice.currency)} on {invoice.invoice_number}"
            )
        return parsed

    def _payment_lines(
        self,
        invoice: Invoice,
        cash: Decimal,
        relief: Decimal,
    ) -> list[dict[str, Any]]:
        """결제 분개 라인 (0원 라인 제외)

        SALES: Dr 현금 cash / Cr 매출채권 relief, 차이는 환차익(cash > relief) 또는 환차손
        PURCHASE: Dr 매입채무 relief / Cr 현금 cash, 차이는 환차손(cash > relief) 또는 환차익
        """
        acc = self.accounts
        difference = cash - relief
        memo = invoice.invoice_number

        if invoice.invoice_type is InvoiceType.SALES:
            candidates = [
                (acc.cash, JournalSide.DEBIT, cash),
                (acc.receivable, JournalSide.CREDIT, relief),
                (acc.fx_gain, JournalSide.CREDIT, difference),
                (acc.fx_loss, JournalSide.DEBIT, -difference),
            ]
        else:
            candidates = [
                (acc.payable, JournalSide.DEBIT, relief),
                (acc.cash, JournalSide.CREDIT, cash),
                (acc.fx_loss, JournalSide.DEBIT, difference),
                (acc.fx_gain, JournalSide.CREDIT, -difference),
            ]

        return [
            {"account_code": code, "side": side.value, "amount": amount, "memo": memo}
            for code, side, amount in candidates
            if amount > 0
        ]

    async def _insert_invoice(self, db: SQLiteAdapter, invoice: Invoice) -> None:
        ccy = invoice.currency
        created_at = (invoice.created_at or now_utc()).isoformat()
        await db.execute(
            """
            INSERT INTO invoice (
                invoice_id, company_id, invoice_number, invoice_type, counterparty, currency,
                subtotal_minor, tax_rate, tax_minor, discount_minor, total_minor,
                amount_paid_minor, status, issue_date, due_date, notes, payment_terms,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                invoice.invoice_id,
                invoice.company_id,
                invoice.invoice_number,
                invoice.invoice_type.value,
                invoice.counterparty,
                ccy,
                to_minor(invoice.subtotal, ccy),
                str(invoice.tax_rate),
                to_minor(invoice.tax_amount, ccy),
                to_minor(invoice.discount, ccy),
                to_minor(invoice.total_amount, ccy),
                invoice.status,
                invoice.issue_date.isoformat(),
                invoice.due_date.isoformat(),
                invoice.notes,
                invoice.payment_terms,
                created_at,
                created_at,
            ),
        )
        await db.executemany(
            """
            INSERT INTO invoice_item (
                invoice_id, line_no, description, quantity, unit_price, amount_minor
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    invoice.invoice_id,
                    index,
                    item.description,
                    str(item.quantity),
                    str(item.unit_price),
                    to_minor(item.amount, ccy),
                )
                for index, item in enumerate(invoice.items, start=1)
            ],
        )

    async def _load_items(self, invoice: Invoice) -> list[InvoiceItem]:
        rows = await self.db.fetchall(
            """
            SELECT description, quantity, unit_price, amount_minor
            FROM invoice_item
            WHERE invoice_id = ?
            ORDER BY line_no
            """,
            (invoice.invoice_id,),
        )
        return [
            InvoiceItem(
                description=row[0],
                quantity=Decimal(row[1]),
                unit_price=Decimal(row[2]),
                amount=from_minor(row[3], invoice.currency),
            )
            for row in rows
        ]

    def _row_to_invoice(self, row: tuple[Any, ...]) -> Invoice:
        """DB 행 → Invoice (항목 제외)

        컬럼 순서는 _INVOICE_COLUMNS 참조
        """
        ccy = row[5]
        fc = self.functional_currency
        return Invoice(
            invoice_id=row[0],
            company_id=row[1],
            invoice_number=row[2],
            invoice_type=InvoiceType(row[3]),
            counterparty=row[4],
            currency=ccy,
            subtotal=from_minor(row[6], ccy),
            tax_rate=Decimal(row[7]),
            tax_amount=from_minor(row[8], ccy),
            discount=from_minor(row[9], ccy),
            total_amount=from_minor(row[10], ccy),
            amount_paid=from_minor(row[11], ccy),
            status=row[12],
            issue_date=date.fromisoformat(row[13]),
            due_date=date.fromisoformat(row[14]),
            notes=row[15],
            payment_terms=row[16],
            booked_rate=Decimal(row[17]) if row[17] is not None else None,
            ar_booked=from_minor(row[18], fc),
            ar_relieved=from_minor(row[19], fc),
            recognition_entry_id=row[20],
            paid_at=datetime.fromisoformat(row[21]) if row[21] else None,
            cancelled_at=datetime.fromisoformat(row[22]) if row[22] else None,
            created_at=datetime.fromisoformat(row[23]) if row[23] else None,
        )
