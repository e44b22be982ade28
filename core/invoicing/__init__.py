"""
송장 (Invoice)

매출/매입 송장 생명주기와 결제 적용, 원장 자동 분개.
"""

from core.invoicing.bridge import InvoiceLedgerBridge
from core.invoicing.models import (
    Invoice,
    InvoiceItem,
    InvoicePayment,
    InvoiceTotals,
    compute_totals,
)

__all__ = [
    "InvoiceLedgerBridge",
    "Invoice",
    "InvoiceItem",
    "InvoicePayment",
    "InvoiceTotals",
    "compute_totals",
]
