"""
Razão de tesouraria (caixas).
Saldo por caixa = saldo inicial + entradas - saídas, com as vendas e compras
pagas derivadas dos documentos e os movimentos manuais registados.
"""
from typing import List, Dict, Iterable, Optional, Set
from dataclasses import dataclass, field
from datetime import datetime, time
import logging
import uuid

from ..core.config import ANGOLA_TZ, get_angola_time
from .records import (
    Invoice, Purchase, CashMovement, CashRegister, CashMovementType,
    CashMovementSource, InvoiceStatus, InvoiceType, PurchaseStatus,
    DocumentNature, document_nature
)
from .document_totals import to_local_currency


logger = logging.getLogger(__name__)

TRANSFER = "TRANSFER"

INFLOW_TYPES = frozenset({CashMovementType.ENTRY, CashMovementType.TRANSFER_IN})
OUTFLOW_TYPES = frozenset({CashMovementType.EXIT, CashMovementType.TRANSFER_OUT})

DEFAULT_DESCRIPTIONS = {
    CashMovementType.ENTRY: "Reforço de Caixa",
    CashMovementType.EXIT: "Saída de Caixa",
    TRANSFER: "Transferência",
}


@dataclass
class RegisterBalance:
    cash_register_id: str
    name: str = ""
    initial_balance: float = 0
    entries: float = 0
    exits: float = 0

    @property
    def balance(self) -> float:
        return self.initial_balance + self.entries - self.exits


@dataclass
class MovementResult:
    """Movimentos criados, ou os motivos da recusa."""
    movements: List[CashMovement] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _at_start_of_day(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=ANGOLA_TZ)


def settled_by_receipt(invoices: Iterable[Invoice]) -> Set[str]:
    """Ids dos documentos liquidados por recibos certificados e não anulados."""
    return {
        inv.source_invoice_id for inv in invoices
        if inv.type == InvoiceType.RG and inv.is_certified
        and inv.status != InvoiceStatus.CANCELLED and inv.source_invoice_id
    }


def movements_from_invoices(invoices: Iterable[Invoice]) -> List[CashMovement]:
    """
    Entradas das vendas pagas (ou faturas/recibo) com meio de pagamento e caixa.
    Os anulados nunca afectam o saldo. Valor em kwanzas.
    Uma fatura liquidada por recibo entra em caixa apenas pelos recibos.
    Notas de crédito pagas são devoluções: saída de caixa.
    """
    invoices = list(invoices)
    settled = settled_by_receipt(invoices)
    movements = []
    for inv in invoices:
        if not inv.is_certified or inv.status == InvoiceStatus.CANCELLED:
            continue
        if inv.status != InvoiceStatus.PAID and inv.type != InvoiceType.FR:
            continue
        if not inv.payment_method or not inv.cash_register_id:
            continue
        if inv.id in settled:
            continue
        refund = document_nature(inv.type) == DocumentNature.CREDIT_NOTE
        movements.append(CashMovement(
            id=f"sale-{inv.id}",
            date=_at_start_of_day(inv.date),
            type=CashMovementType.EXIT if refund else CashMovementType.ENTRY,
            amount=to_local_currency(inv.total, inv.currency, inv.exchange_rate),
            cash_register_id=inv.cash_register_id,
            source=CashMovementSource.SALES,
            description=f"{'Devolução' if refund else 'Venda'} {inv.type.value} {inv.number}",
            document_ref=inv.number,
            operator_name="System"
        ))
    return movements


def movements_from_purchases(purchases: Iterable[Purchase]) -> List[CashMovement]:
    """Saídas das compras pagas com meio de pagamento e caixa."""
    movements = []
    for purchase in purchases:
        if purchase.status != PurchaseStatus.PAID:
            continue
        if not purchase.payment_method or not purchase.cash_register_id:
            continue
        movements.append(CashMovement(
            id=f"purch-{purchase.id}",
            date=_at_start_of_day(purchase.date),
            type=CashMovementType.EXIT,
            amount=purchase.total,
            cash_register_id=purchase.cash_register_id,
            source=CashMovementSource.PURCHASES,
            description=f"Pagamento Compra {purchase.document_number}",
            document_ref=purchase.document_number,
            operator_name="System"
        ))
    return movements


def replay(
    registers: Iterable[CashRegister],
    movements: Iterable[CashMovement]
) -> Dict[str, RegisterBalance]:
    """
    Saldo de cada caixa.
    Movimentos de caixas desconhecidas são ignorados.
    """
    balances = {
        r.id: RegisterBalance(
            cash_register_id=r.id,
            name=r.name,
            initial_balance=r.initial_balance
        )
        for r in registers
    }
    for movement in movements:
        balance = balances.get(movement.cash_register_id)
        if balance is None:
            continue
        if movement.type in INFLOW_TYPES:
            balance.entries += movement.amount
        elif movement.type in OUTFLOW_TYPES:
            balance.exits += movement.amount
    return balances


def total_balance(balances: Dict[str, RegisterBalance]) -> float:
    return sum(b.balance for b in balances.values())


def validate_manual_movement(
    operation: str,
    amount: float,
    source_register_id: Optional[str],
    target_register_id: Optional[str] = None
) -> List[str]:
    errors = []
    if operation not in (CashMovementType.ENTRY, CashMovementType.EXIT, TRANSFER):
        errors.append(f"Operação inválida: {operation}")
    if amount is None or amount <= 0:
        errors.append("Valor inválido")
    if not source_register_id:
        errors.append("Selecione caixa de origem/destino")
    if operation == TRANSFER:
        if not target_register_id:
            errors.append("Selecione caixa de destino")
        elif target_register_id == source_register_id:
            errors.append("A caixa de destino deve ser diferente da caixa de origem")
    return errors


def create_manual_movement(
    operation: str,
    amount: float,
    source_register_id: Optional[str],
    target_register_id: Optional[str] = None,
    description: str = "",
    operator_name: str = "Admin",
    at: Optional[datetime] = None,
    source_register_name: str = ""
) -> MovementResult:
    """
    Movimento manual de entrada ou saída, ou transferência entre caixas.
    Uma transferência gera sempre o par TRANSFER_OUT / TRANSFER_IN com o
    mesmo valor, a mesma data e o mesmo transfer_id.
    """
    errors = validate_manual_movement(operation, amount, source_register_id, target_register_id)
    if errors:
        logger.warning(f"Movimento de caixa recusado: {errors}")
        return MovementResult(errors=errors)

    at = at or get_angola_time()
    description = description or DEFAULT_DESCRIPTIONS[operation]

    if operation != TRANSFER:
        return MovementResult(movements=[CashMovement(
            id=uuid.uuid4().hex,
            date=at,
            type=CashMovementType(operation),
            amount=amount,
            cash_register_id=source_register_id,
            source=CashMovementSource.MANUAL,
            description=description,
            operator_name=operator_name
        )])

    transfer_id = uuid.uuid4().hex
    outgoing = CashMovement(
        id=uuid.uuid4().hex,
        date=at,
        type=CashMovementType.TRANSFER_OUT,
        amount=amount,
        cash_register_id=source_register_id,
        target_cash_register_id=target_register_id,
        source=CashMovementSource.MANUAL,
        description=description,
        transfer_id=transfer_id,
        operator_name=operator_name
    )
    incoming = CashMovement(
        id=uuid.uuid4().hex,
        date=at,
        type=CashMovementType.TRANSFER_IN,
        amount=amount,
        cash_register_id=target_register_id,
        target_cash_register_id=source_register_id,
        source=CashMovementSource.MANUAL,
        description=f"Transf. de {source_register_name or source_register_id}",
        transfer_id=transfer_id,
        operator_name=operator_name
    )
    logger.info(f"Transferência {transfer_id}: {source_register_id} -> {target_register_id} ({amount})")
    return MovementResult(movements=[outgoing, incoming])


def find_orphan_transfer_legs(movements: Iterable[CashMovement]) -> List[CashMovement]:
    """
    Pernas de transferência sem contrapartida.
    Um par válido partilha transfer_id, valor e data, e as caixas cruzam-se.
    """
    legs: Dict[Optional[str], List[CashMovement]] = {}
    for m in movements:
        if m.type in (CashMovementType.TRANSFER_IN, CashMovementType.TRANSFER_OUT):
            legs.setdefault(m.transfer_id, []).append(m)

    orphans = []
    for transfer_id, group in legs.items():
        outs = [m for m in group if m.type == CashMovementType.TRANSFER_OUT]
        ins = [m for m in group if m.type == CashMovementType.TRANSFER_IN]
        if transfer_id is None or len(outs) != 1 or len(ins) != 1:
            orphans.extend(group)
            continue
        out_leg, in_leg = outs[0], ins[0]
        matched = (
            out_leg.amount == in_leg.amount
            and out_leg.date == in_leg.date
            and out_leg.target_cash_register_id == in_leg.cash_register_id
            and in_leg.target_cash_register_id == out_leg.cash_register_id
        )
        if not matched:
            orphans.extend(group)
    return orphans
