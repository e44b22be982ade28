"""
송장 API 라우트

생성(DRAFT) → 발송(SENT, 인식 분개) → 결제(PAID) / 취소(CANCELLED)
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from core.books import Books
from core.invoicing.models import Invoice
from web.dependencies import get_books
from web.models.requests import InvoiceCancelRequest, InvoiceCreateRequest, PaymentRequest

router = APIRouter(prefix="/api/invoices", tags=["Invoices"])


def _render(books: Books, invoice: Invoice) -> dict[str, Any]:
    return invoice.to_dict(books.clock.today(), books.currency)


@router.post("", status_code=201)
async def create_invoice(
    request: InvoiceCreateRequest,
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    invoice = await books.invoices.create(
        invoice_number=request.invoice_number,
        invoice_type=request.invoice_type,
        counterparty=request.counterparty,
        currency=request.currency,
        items=[item.model_dump() for item in request.items],
        issue_date=request.issue_date,
        due_date=request.due_date,
        tax_rate=request.tax_rate,
        discount=request.discount,
        notes=request.notes,
        payment_terms=request.payment_terms,
    )
    return _render(books, invoice)


@router.get("")
async def list_invoices(
    status: str | None = Query(default=None, description="DRAFT / SENT / OVERDUE / PAID / CANCELLED"),
    invoice_type: str | None = Query(default=None, description="SALES / PURCHASE"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    books: Books = Depends(get_books),
) -> list[dict[str, Any]]:
    """송장 목록 (status는 조회 시점 기준, OVERDUE 포함)"""
    invoices = await books.invoices.list_invoices(status, invoice_type, limit, offset)
    return [_render(books, invoice) for invoice in invoices]


@router.get("/{invoice_id}")
async def get_invoice(invoice_id: str, books: Books = Depends(get_books)) -> dict[str, Any]:
    invoice = await books.invoices.get_invoice(invoice_id)
    return _render(books, invoice)


@router.post("/{invoice_id}/send")
async def send_invoice(invoice_id: str, books: Books = Depends(get_books)) -> dict[str, Any]:
    invoice = await books.invoices.send(invoice_id)
    return _render(books, invoice)


@router.post("/{invoice_id}/payments")
async def record_payment(
    invoice_id: str,
    request: PaymentRequest,
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    invoice = await books.invoices.record_payment(
        invoice_id, request.amount, request.payment_date
    )
    return _render(books, invoice)


@router.get("/{invoice_id}/payments")
async def list_payments(invoice_id: str, books: Books = Depends(get_books)) -> list[dict[str, Any]]:
    invoice = await books.invoices.get_invoice(invoice_id)
    payments = await books.invoices.list_payments(invoice_id)
    return [payment.to_dict(invoice.currency, books.currency) for payment in payments]


@router.post("/{invoice_id}/cancel")
async def cancel_invoice(
    invoice_id: str,
    request: InvoiceCancelRequest | None = None,
    books: Books = Depends(get_books),
) -> dict[str, Any]:
    cancel_date = request.cancel_date if request is not None else None
    invoice = await books.invoices.cancel(invoice_id, cancel_date)
    return _render(books, invoice)
