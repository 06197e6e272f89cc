"""
Resumo do período SAF-T (AO).
Apenas agregação: contagens e totais do ficheiro mensal.
"""
from typing import List, Iterable, Optional
from dataclasses import dataclass, field
from datetime import date
import calendar

from .records import Invoice, Purchase, PurchaseStatus
from .period_filter import filter_date_range
from .document_totals import to_local_currency


@dataclass
class SaftSummary:
    fiscal_year: int
    start_date: date
    end_date: date
    number_of_entries: int = 0
    total_credit: float = 0
    number_of_purchases: int = 0
    total_purchases: float = 0
    client_ids: List[str] = field(default_factory=list)
    supplier_ids: List[str] = field(default_factory=list)


def validate_period(start: date, end: date) -> Optional[str]:
    """O SAF-T é gerado por mês completo: do dia 1 ao último dia do mesmo mês."""
    if start.day != 1:
        return "O período deve iniciar no dia 01 do mês."
    if (start.year, start.month) != (end.year, end.month):
        return "O SAF-T deve ser gerado para apenas um mês de cada vez."
    last_day = calendar.monthrange(start.year, start.month)[1]
    if end.day != last_day:
        return f"O período deve terminar no último dia do mês (Dia {last_day})."
    return None


def _unique(values: Iterable[Optional[str]]) -> List[str]:
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


def build_summary(
    invoices: Iterable[Invoice],
    purchases: Iterable[Purchase],
    start: date,
    end: date
) -> SaftSummary:
    """Documentos certificados pela data contabilística e compras não anuladas."""
    sales = filter_date_range(invoices, start, end, certified_only=True)
    bought = [
        p for p in purchases
        if start <= p.date <= end and p.status != PurchaseStatus.CANCELLED
    ]
    return SaftSummary(
        fiscal_year=start.year,
        start_date=start,
        end_date=end,
        number_of_entries=len(sales),
        total_credit=sum(
            to_local_currency(inv.total, inv.currency, inv.exchange_rate) for inv in sales
        ),
        number_of_purchases=len(bought),
        total_purchases=sum(p.total for p in bought),
        client_ids=_unique(inv.client_id for inv in sales),
        supplier_ids=_unique(p.supplier_id for p in bought)
    )
