"""
Filtro de período para documentos de venda e de compra.
Devolve novas listas pela ordem original; os registos não são alterados.
"""
from datetime import date
from typing import Iterable, List, Optional

from .records import (
    Invoice, InvoiceStatus, InvoiceType, Purchase, PurchaseStatus
)


def in_period(value: date, year: int, month: Optional[int] = None) -> bool:
    """Ano obrigatório; mês opcional (filtros anuais omitem o mês)."""
    if value.year != year:
        return False
    return month is None or value.month == month


def filter_invoices(
    invoices: Iterable[Invoice],
    year: int,
    month: Optional[int] = None,
    certified_only: bool = False
) -> List[Invoice]:
    """
    Documentos de venda do período pela data contabilística (ou de emissão),
    excluindo os anulados.
    """
    return [
        inv for inv in invoices
        if in_period(inv.effective_date, year, month)
        and inv.status != InvoiceStatus.CANCELLED
        and (inv.is_certified or not certified_only)
    ]


def filter_cancelled_or_credit(
    invoices: Iterable[Invoice],
    year: int,
    month: Optional[int] = None,
    certified_only: bool = False
) -> List[Invoice]:
    """Anulações e notas de crédito do período (regularizações)."""
    return [
        inv for inv in invoices
        if in_period(inv.effective_date, year, month)
        and (inv.status == InvoiceStatus.CANCELLED or inv.type == InvoiceType.NC)
        and (inv.is_certified or not certified_only)
    ]


def filter_purchases(
    purchases: Iterable[Purchase],
    year: int,
    month: Optional[int] = None,
    exclude_pending: bool = True
) -> List[Purchase]:
    """
    Compras do período pela data do documento.
    exclude_pending=True: apenas compras confirmadas (base do IVA dedutível).
    exclude_pending=False: todas as compras (regime de competência).
    """
    return [
        p for p in purchases
        if in_period(p.date, year, month)
        and not (exclude_pending and p.status == PurchaseStatus.PENDING)
    ]


def filter_date_range(
    invoices: Iterable[Invoice],
    start: date,
    end: date,
    certified_only: bool = True
) -> List[Invoice]:
    """Documentos de venda com data contabilística entre start e end (inclusive)."""
    return [
        inv for inv in invoices
        if start <= inv.effective_date <= end
        and (inv.is_certified or not certified_only)
    ]
