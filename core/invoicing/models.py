"""
송장 데이터 구조

금액 계산 규칙:
- 항목 금액 = 수량 × 단가 (통화 자릿수로 반올림)
- 세액 = 소계 × 세율 / 100 (반올림)
- 합계 = 소계 + 세액 − 할인 (0보다 커야 함)
- 미결제 잔액 = 합계 − 결제액 (항상)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping

from core.errors import ValidationError
from core.money import format_amount, parse_amount, round_money, to_decimal
from core.types import InvoiceStatus, InvoiceType

MAX_TAX_RATE = Decimal(100)


@dataclass(frozen=True)
class InvoiceItem:
    """송장 항목"""

    description: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal

    def to_dict(self, currency: str) -> dict[str, Any]:
        return {
            "description": self.description,
            "quantity": str(self.quantity),
            "unit_price": str(self.unit_price),
            "amount": format_amount(self.amount, currency),
        }


@dataclass(frozen=True)
class InvoiceTotals:
    """항목으로 계산한 송장 금액"""

    items: tuple[InvoiceItem, ...]
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class InvoicePayment:
    """송장 결제 기록"""

    payment_id: str
    invoice_id: str
    amount: Decimal
    payment_date: date
    exchange_rate: Decimal
    functional_amount: Decimal
    journal_entry_id: str | None
    created_at: datetime

    def to_dict(self, currency: str, functional_currency: str) -> dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "invoice_id": self.invoice_id,
            "amount": format_amount(self.amount, currency),
            "payment_date": self.payment_date.isoformat(),
            "exchange_rate": str(self.exchange_rate),
            "functional_amount": format_amount(self.functional_amount, functional_currency),
            "journal_entry_id": self.journal_entry_id,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class Invoice:
    """송장

    status는 저장 상태(DRAFT/SENT/PAID/CANCELLED).
    OVERDUE는 status_on(today)로만 계산 (저장하지 않음).
    """

    invoice_id: str
    company_id: str
    invoice_number: str
    invoice_type: InvoiceType
    counterparty: str
    currency: str
    issue_date: date
    due_date: date
    items: list[InvoiceItem] = field(default_factory=list)
    subtotal: Decimal = Decimal(0)
    tax_rate: Decimal = Decimal(0)
    tax_amount: Decimal = Decimal(0)
    discount: Decimal = Decimal(0)
    total_amount: Decimal = Decimal(0)
    amount_paid: Decimal = Decimal(0)
    status: str = InvoiceStatus.DRAFT.value
    notes: str | None = None
    payment_terms: str | None = None

    # 기능통화 기준 통제계정(매출채권/매입채무) 금액
    booked_rate: Decimal | None = None
    ar_booked: Decimal = Decimal(0)
    ar_relieved: Decimal = Decimal(0)
    recognition_entry_id: str | None = None

    paid_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def balance_due(self) -> Decimal:
        return self.total_amount - self.amount_paid

    def is_overdue(self, today: date) -> bool:
        return (
            self.status == InvoiceStatus.SENT.value
            and self.due_date < today
            and self.balance_due > 0
        )

    def status_on(self, today: date) -> str:
        """조회 시점 상태 (SENT + 만기 경과 + 잔액 > 0 → OVERDUE)"""
        if self.is_overdue(today):
            return InvoiceStatus.OVERDUE.value
        return self.status

    def to_dict(self, today: date, functional_currency: str) -> dict[str, Any]:
        return {
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice_number,
            "invoice_type": self.invoice_type.value,
            "counterparty": self.counterparty,
            "currency": self.currency,
            "items": [item.to_dict(self.currency) for item in self.items],
            "subtotal": format_amount(self.subtotal, self.currency),
            "tax_rate": str(self.tax_rate),
            "tax_amount": format_amount(self.tax_amount, self.currency),
            "discount": format_amount(self.discount, self.currency),
            "total_amount": format_amount(self.total_amount, self.currency),
            "amount_paid": format_amount(self.amount_paid, self.currency),
            "balance_due": format_amount(self.balance_due, self.currency),
            "status": self.status_on(today),
            "stored_status": self.status,
            "issue_date": self.issue_date.isoformat(),
            "due_date": self.due_date.isoformat(),
            "notes": self.notes,
            "payment_terms": self.payment_terms,
            "booked_rate": str(self.booked_rate) if self.booked_rate is not None else None,
            "functional_currency": functional_currency,
            "ar_booked": format_amount(self.ar_booked, functional_currency),
            "ar_relieved": format_amount(self.ar_relieved, functional_currency),
            "recognition_entry_id": self.recognition_entry_id,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
        }


def parse_invoice_type(value: str | InvoiceType) -> InvoiceType:
    if isinstance(value, InvoiceType):
        return value
    try:
        return InvoiceType(str(value).upper())
    except ValueError as e:
        valid = [t.value for t in InvoiceType]
        raise ValidationError(f"Invalid invoice type: {value!r}. Valid: {valid}") from e


def compute_totals(
    items: Iterable[InvoiceItem | Mapping[str, Any]],
    currency: str,
    tax_rate: Any = 0,
    discount: Any = 0,
) -> InvoiceTotals:
    """항목으로 송장 금액 계산

    Raises:
        ValidationError: 항목 없음, 수량 0 이하, 단가 음수, 세율 범위 초과,
            할인 음수, 합계 0 이하
    """
    parsed: list[InvoiceItem] = []
    for index, raw in enumerate(items, start=1):
        if isinstance(raw, InvoiceItem):
            description, quantity, unit_price = raw.description, raw.quantity, raw.unit_price
        elif isinstance(raw, Mapping):
            description = raw.get("description") or ""
            quantity = raw.get("quantity", 1)
            unit_price = raw.get("unit_price")
            if unit_price is None:
                raise ValidationError(f"Item {index}: unit_price is required")
        else:
            raise ValidationError(f"Item {index}: unsupported item type {type(raw).__name__}")

        qty = to_decimal(quantity)
        price = to_decimal(unit_price)
        if qty <= 0:
            raise ValidationError(f"Item {index}: quantity must be positive")
        if price < 0:
            raise ValidationError(f"Item {index}: unit_price cannot be negative")

        parsed.append(
            InvoiceItem(
                description=str(description).strip(),
                quantity=qty,
                unit_price=price,
                amount=round_money(qty * price, currency),
            )
        )

    if not parsed:
        raise ValidationError("An invoice needs at least one item")

    rate = to_decimal(tax_rate)
    if rate < 0 or rate > MAX_TAX_RATE:
        raise ValidationError(f"Tax rate must be between 0 and {MAX_TAX_RATE}: {tax_rate}")

    disc = parse_amount(discount, currency)
    if disc < 0:
        raise ValidationError(f"Discount cannot be negative: {discount}")

    subtotal = sum((item.amount for item in parsed), Decimal(0))
    tax_amount = round_money(subtotal * rate / 100, currency)
    total = subtotal + tax_amount - disc
    if total <= 0:
        raise ValidationError(f"Invoice total must be positive (got {total})")

    return InvoiceTotals(
        items=tuple(parsed),
        subtotal=subtotal,
        tax_rate=rate,
        tax_amount=tax_amount,
        discount=disc,
        total_amount=total,
    )
