"""
Imposto de Selo sobre recibos de quitação (verba 23.3).
Taxa plana de 1% sobre o total de FR, VD e RG certificados do mês.
"""
from typing import List, Iterable
from dataclasses import dataclass, field

from .records import Invoice, CASH_DOCUMENT_TYPES
from .period_filter import filter_invoices


STAMP_DUTY_RATE = 0.01


@dataclass
class StampDutyRow:
    document_number: str
    document_type: str
    date: str
    client_name: str
    base: float
    tax: float


@dataclass
class StampDutyResult:
    rows: List[StampDutyRow] = field(default_factory=list)
    total_base: float = 0
    total_tax: float = 0


def select_documents(invoices: Iterable[Invoice], year: int, month: int) -> List[Invoice]:
    return [
        inv for inv in filter_invoices(invoices, year, month, certified_only=True)
        if inv.type in CASH_DOCUMENT_TYPES
    ]


def calculate_stamp_duty(invoices: Iterable[Invoice], year: int, month: int) -> StampDutyResult:
    """
    Uma linha por documento.
    Fórmula: base = total, imposto = total × 1%
    """
    result = StampDutyResult()
    for inv in select_documents(invoices, year, month):
        result.rows.append(StampDutyRow(
            document_number=inv.number,
            document_type=inv.type.value,
            date=inv.date.isoformat(),
            client_name=inv.client_name,
            base=inv.total,
            tax=inv.total * STAMP_DUTY_RATE
        ))

    result.total_base = sum(r.base for r in result.rows)
    result.total_tax = sum(r.tax for r in result.rows)
    return result
