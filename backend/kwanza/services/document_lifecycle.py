"""
Ciclo de vida dos documentos de venda.
Certificação (numeração por série/tipo e assinatura encadeada), anulação
e liquidação por recibo.
As funções devolvem cópias actualizadas; os registos recebidos não mudam.
"""
from typing import List, Iterable, Optional, Tuple
from dataclasses import dataclass, field, replace
from datetime import date
import logging
import uuid

from ..core.config import get_angola_time
from ..core.security import generate_document_hash
from .records import (
    Invoice, InvoiceItem, InvoiceType, InvoiceStatus, ItemType,
    DocumentSeries, SeriesType
)
from .document_totals import apply_totals


logger = logging.getLogger(__name__)

# Tipos que podem ser liquidados por recibo
LIQUIDABLE_TYPES = frozenset({InvoiceType.FT, InvoiceType.ND})


@dataclass
class CertificationResult:
    invoice: Optional[Invoice] = None
    series: Optional[DocumentSeries] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class CancellationResult:
    original: Optional[Invoice] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class LiquidationResult:
    invoice: Optional[Invoice] = None
    receipt: Optional[Invoice] = None
    series: Optional[DocumentSeries] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _today() -> date:
    return get_angola_time().date()


def validate_for_certification(
    invoice: Invoice,
    series: Optional[DocumentSeries],
    manual_number: Optional[str] = None,
    manual_hash: Optional[str] = None
) -> List[str]:
    """Campos obrigatórios antes da certificação (motivos, nunca excepções)."""
    errors = []
    if invoice.is_certified:
        errors.append("Documento já certificado")
    if not invoice.client_id and not invoice.client_name:
        errors.append("Selecione um cliente")
    if series is None:
        errors.append("Selecione uma série")
    elif not series.is_active:
        errors.append(f"Série {series.code} inactiva")
    if not invoice.items:
        errors.append("Adicione pelo menos um item")
    if series is not None and series.type == SeriesType.MANUAL:
        if not manual_number:
            errors.append("Número do documento manual é obrigatório")
        if not manual_hash:
            errors.append("Hash do documento manual é obrigatório")
    return errors


def _series_chain(
    certified: Iterable[Invoice],
    series_id: str,
    invoice_type: InvoiceType
) -> List[Invoice]:
    """Documentos certificados da mesma série e tipo, por data."""
    chain = [
        inv for inv in certified
        if inv.is_certified and inv.series_id == series_id and inv.type == invoice_type
    ]
    return sorted(chain, key=lambda inv: inv.date)


def check_chronology(
    invoice: Invoice,
    series: DocumentSeries,
    certified: Iterable[Invoice]
) -> Optional[str]:
    """
    Numa série NORMAL o documento não pode ter data anterior à do último
    documento certificado do mesmo tipo.
    """
    if series.type != SeriesType.NORMAL:
        return None
    chain = _series_chain(certified, series.id, invoice.type)
    if chain and invoice.date < chain[-1].date:
        return (
            f"Data {invoice.date.isoformat()} anterior ao último documento "
            f"certificado da série ({chain[-1].number}, {chain[-1].date.isoformat()})"
        )
    return None


def next_number(series: DocumentSeries, invoice_type: InvoiceType) -> Tuple[str, DocumentSeries]:
    """
    Próximo número da série para o tipo (sequência +1).
    Formato: "FT A 2024/7"
    """
    sequence = series.sequences.get(invoice_type.value, 0) + 1
    sequences = dict(series.sequences)
    sequences[invoice_type.value] = sequence
    number = f"{invoice_type.value} {series.code} {series.year}/{sequence}"
    updated = replace(
        series,
        sequences=sequences,
        current_sequence=series.current_sequence + 1
    )
    return number, updated


def _previous_hash(certified: Iterable[Invoice], series_id: str, invoice_type: InvoiceType) -> Optional[str]:
    chain = _series_chain(certified, series_id, invoice_type)
    return chain[-1].hash if chain else None


def _seal(
    invoice: Invoice,
    series: DocumentSeries,
    certified: Iterable[Invoice],
    manual_number: Optional[str] = None,
    manual_hash: Optional[str] = None
) -> Tuple[Invoice, DocumentSeries]:
    """Numera, recalcula e assina um documento (sem validações)."""
    certified = list(certified)
    if series.type == SeriesType.MANUAL and manual_number:
        number, series_after = manual_number, series
    else:
        number, series_after = next_number(series, invoice.type)

    # Último recálculo antes de congelar os totais
    sealed = apply_totals(replace(invoice, series_id=series.id, number=number))
    sealed = replace(sealed, is_certified=True)

    if series.type == SeriesType.MANUAL and manual_hash:
        signature = manual_hash
    else:
        signature = generate_document_hash(
            sealed.type.value,
            number,
            sealed.date,
            sealed.total,
            _previous_hash(certified, series.id, sealed.type)
        )
    return replace(sealed, hash=signature), series_after


def certify(
    invoice: Invoice,
    series: Optional[DocumentSeries],
    certified: Iterable[Invoice] = (),
    manual_number: Optional[str] = None,
    manual_hash: Optional[str] = None
) -> CertificationResult:
    """
    Certifica um documento: passagem irreversível de rascunho a documento fiscal.
    certified: documentos já certificados (cadeia de assinaturas e cronologia).
    """
    certified = list(certified)
    errors = validate_for_certification(invoice, series, manual_number, manual_hash)
    if not errors:
        chronology_error = check_chronology(invoice, series, certified)
        if chronology_error:
            errors.append(chronology_error)

    if errors:
        logger.warning(f"Certificação recusada para {invoice.id}: {errors}")
        return CertificationResult(errors=errors)

    sealed, series_after = _seal(invoice, series, certified, manual_number, manual_hash)
    if sealed.status == InvoiceStatus.DRAFT:
        paid = sealed.type == InvoiceType.FR or sealed.type == InvoiceType.VD
        sealed = replace(
            sealed,
            status=InvoiceStatus.PAID if paid else InvoiceStatus.PENDING,
            paid_amount=sealed.total if paid else sealed.paid_amount
        )

    logger.info(f"Documento certificado: {sealed.number} (total={sealed.total:.2f})")
    return CertificationResult(invoice=sealed, series=series_after)


def cancel(invoice: Invoice, reason: str) -> CancellationResult:
    """
    Anula um documento certificado: passa a CANCELLED com o motivo.
    O registo nunca é eliminado. As notas de crédito são documentos próprios
    e a anulação não emite rectificativo: os calculadores já ignoram o
    documento anulado (e o Modelo 7 regulariza o seu IVA).
    """
    errors = []
    if not reason or not reason.strip():
        errors.append("Indique o motivo da anulação")
    if not invoice.is_certified:
        errors.append("Apenas documentos certificados podem ser anulados")
    if invoice.status == InvoiceStatus.CANCELLED:
        errors.append("Documento já anulado")
    if errors:
        logger.warning(f"Anulação recusada para {invoice.id}: {errors}")
        return CancellationResult(errors=errors)

    original = replace(
        invoice,
        status=InvoiceStatus.CANCELLED,
        cancellation_reason=reason
    )
    logger.info(f"Documento anulado: {invoice.number} ({reason})")
    return CancellationResult(original=original)


def liquidate(
    invoice: Invoice,
    series: DocumentSeries,
    amount: float,
    payment_method: str,
    cash_register_id: Optional[str] = None,
    today: Optional[date] = None,
    certified: Iterable[Invoice] = ()
) -> LiquidationResult:
    """
    Liquidação (total ou parcial) de uma fatura por recibo RG certificado.
    A fatura acumula o valor pago e passa a PAID ou PARTIAL.
    """
    errors = []
    if not invoice.is_certified:
        errors.append("Apenas documentos certificados podem ser liquidados")
    if invoice.status == InvoiceStatus.CANCELLED:
        errors.append("Documento anulado")
    if invoice.type not in LIQUIDABLE_TYPES:
        errors.append("Recibos apenas para Faturas (FT)")
    if invoice.status == InvoiceStatus.PAID:
        errors.append("Documento pago na totalidade")
    if amount is None or amount <= 0:
        errors.append("Valor inválido")
    if not payment_method:
        errors.append("Selecione o meio de pagamento")
    if errors:
        logger.warning(f"Liquidação recusada para {invoice.id}: {errors}")
        return LiquidationResult(errors=errors)

    today = today or _today()
    draft = Invoice(
        id=uuid.uuid4().hex,
        type=InvoiceType.RG,
        date=today,
        due_date=today,
        accounting_date=today,
        client_id=invoice.client_id,
        client_name=invoice.client_name,
        client_nif=invoice.client_nif,
        items=[InvoiceItem(
            id=uuid.uuid4().hex,
            type=ItemType.SERVICE,
            description=f"Pagamento Ref: {invoice.number}",
            quantity=1,
            unit_price=amount,
            tax_rate=0
        )],
        currency=invoice.currency,
        exchange_rate=invoice.exchange_rate,
        status=InvoiceStatus.PAID,
        paid_amount=amount,
        # Recibos nascem certificados: sem retenção automática
        is_certified=True,
        source_invoice_id=invoice.id,
        payment_method=payment_method,
        cash_register_id=cash_register_id
    )
    receipt, series_after = _seal(draft, series, certified)

    paid_amount = invoice.paid_amount + amount
    updated = replace(
        invoice,
        paid_amount=paid_amount,
        status=InvoiceStatus.PAID if paid_amount >= invoice.total else InvoiceStatus.PARTIAL
    )
    logger.info(f"Recibo {receipt.number} emitido para {invoice.number}: {amount:.2f}")
    return LiquidationResult(invoice=updated, receipt=receipt, series=series_after)


def can_delete(invoice: Invoice) -> bool:
    """Documentos certificados nunca podem ser eliminados."""
    return not invoice.is_certified
