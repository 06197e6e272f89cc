"""
Endpoints dos documentos de venda.
Rascunhos, certificação, anulação e liquidação por recibo.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
import logging
import uuid

from ...db.database import get_db
from ...models import models
from ...schemas.schemas import (
    InvoiceCreate, InvoiceResponse, DocumentTotalsResponse, CertifyRequest,
    CancelRequest, LiquidateRequest, LiquidationResponse
)
from ...core.config import normalize_currency, get_exchange_rate
from ...services import records
from ...services.records import InvoiceType, InvoiceStatus
from ...services.document_totals import recompute, apply_totals
from ...services.document_lifecycle import certify, cancel, liquidate, can_delete
from ...services.period_filter import in_period
from ...services.snapshots import (
    invoice_to_record, invoice_from_record, series_to_record, series_from_record
)
from ...utils.validators import sanitize_string

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documentos de Venda"])


def build_invoice(data: InvoiceCreate, invoice_id: Optional[str] = None) -> records.Invoice:
    """Registo de rascunho a partir do pedido (os totais ficam por calcular)."""
    currency = normalize_currency(data.currency)
    return records.Invoice(
        id=invoice_id or uuid.uuid4().hex,
        type=data.type,
        date=data.date,
        due_date=data.due_date,
        accounting_date=data.accounting_date,
        client_id=data.client_id,
        client_name=data.client_name,
        client_nif=data.client_nif,
        series_id=data.series_id,
        items=[
            records.InvoiceItem(
                id=item.id or uuid.uuid4().hex,
                type=item.type,
                product_id=item.product_id,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount=item.discount,
                tax_rate=item.tax_rate,
                length=item.length,
                width=item.width,
                height=item.height,
                rubrica=item.rubrica
            )
            for item in data.items
        ],
        global_discount=data.global_discount,
        retention_type=data.retention_type,
        currency=currency,
        exchange_rate=data.exchange_rate or get_exchange_rate(currency),
        payment_method=data.payment_method,
        cash_register_id=data.cash_register_id,
        warehouse_id=data.warehouse_id,
        notes=data.notes
    )


def audit(db: Session, action: str, invoice: records.Invoice) -> None:
    db.add(models.AuditLog(
        action=action,
        entity_type="Invoice",
        entity_id=invoice.id,
        new_values={
            "number": invoice.number,
            "type": invoice.type.value,
            "status": invoice.status.value,
            "total": invoice.total,
            "hash": invoice.hash,
        }
    ))


def get_invoice_row(db: Session, invoice_id: str) -> models.Invoice:
    row = db.query(models.Invoice).filter(models.Invoice.id == invoice_id).first()
    if not row:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Documento não encontrado"
        )
    return row


def get_series_row(db: Session, series_id: Optional[str]) -> Optional[models.DocumentSeries]:
    if not series_id:
        return None
    return db.query(models.DocumentSeries).filter(models.DocumentSeries.id == series_id).first()


def certified_in_series(db: Session, series_id: str) -> List[records.Invoice]:
    rows = db.query(models.Invoice).filter(
        models.Invoice.series_id == series_id,
        models.Invoice.is_certified.is_(True)
    ).all()
    return [invoice_to_record(row) for row in rows]


@router.post("/", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    data: InvoiceCreate,
    db: Session = Depends(get_db)
):
    """
    Cria um documento em rascunho.
    Os campos derivados (linhas, subtotal, impostos, total) são recalculados.
    """
    if data.series_id and not get_series_row(db, data.series_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Série não encontrada"
        )

    invoice = apply_totals(build_invoice(data))
    db.add(invoice_from_record(invoice))
    audit(db, "CREATE", invoice)
    db.commit()

    return invoice


@router.post("/recompute", response_model=DocumentTotalsResponse)
async def recompute_document(data: InvoiceCreate):
    """Pré-visualização dos totais de um documento, sem gravar."""
    return recompute(build_invoice(data, invoice_id="preview"))


@router.get("/", response_model=List[InvoiceResponse])
async def list_documents(
    document_type: Optional[InvoiceType] = Query(None, alias="type"),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    certified: Optional[bool] = None,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: Session = Depends(get_db)
):
    """Lista documentos com filtros opcionais (período pela data contabilística)."""
    query = db.query(models.Invoice)
    if document_type:
        query = query.filter(models.Invoice.type == document_type)
    if status_filter:
        query = query.filter(models.Invoice.status == status_filter)
    if certified is not None:
        query = query.filter(models.Invoice.is_certified.is_(certified))

    documents = [invoice_to_record(row) for row in query.order_by(models.Invoice.date).all()]
    if year:
        documents = [d for d in documents if in_period(d.effective_date, year, month)]
    return documents


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_document(invoice_id: str, db: Session = Depends(get_db)):
    """Obtém um documento."""
    return invoice_to_record(get_invoice_row(db, invoice_id))


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(invoice_id: str, db: Session = Depends(get_db)):
    """Elimina um rascunho. Documentos certificados nunca são eliminados."""
    row = get_invoice_row(db, invoice_id)
    if not can_delete(invoice_to_record(row)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Documentos certificados não podem ser eliminados"
        )
    db.delete(row)
    db.commit()
    logger.info(f"Rascunho eliminado: {invoice_id}")


@router.post("/{invoice_id}/certify", response_model=InvoiceResponse)
async def certify_document(
    invoice_id: str,
    data: CertifyRequest,
    db: Session = Depends(get_db)
):
    """
    Certifica o documento: numeração da série, recálculo final e assinatura.
    """
    row = get_invoice_row(db, invoice_id)
    series_row = get_series_row(db, row.series_id)
    series = series_to_record(series_row) if series_row else None

    result = certify(
        invoice_to_record(row),
        series,
        certified=certified_in_series(db, series.id) if series else [],
        manual_number=data.manual_number,
        manual_hash=data.manual_hash
    )
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.errors
        )

    invoice_from_record(result.invoice, row)
    series_from_record(result.series, series_row)
    audit(db, "CERTIFY", result.invoice)
    db.commit()

    return result.invoice


@router.post("/{invoice_id}/cancel", response_model=InvoiceResponse)
async def cancel_document(
    invoice_id: str,
    data: CancelRequest,
    db: Session = Depends(get_db)
):
    """
    Anula um documento certificado (estado CANCELLED com motivo).
    O documento fica gravado; as notas de crédito emitem-se à parte.
    """
    row = get_invoice_row(db, invoice_id)

    result = cancel(invoice_to_record(row), sanitize_string(data.reason))
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.errors
        )

    invoice_from_record(result.original, row)
    audit(db, "CANCEL", result.original)
    db.commit()

    return result.original


@router.post("/{invoice_id}/liquidate", response_model=LiquidationResponse)
async def liquidate_document(
    invoice_id: str,
    data: LiquidateRequest,
    db: Session = Depends(get_db)
):
    """
    Liquida (total ou parcialmente) uma fatura emitindo um recibo RG certificado.
    """
    row = get_invoice_row(db, invoice_id)
    series_row = get_series_row(db, data.series_id or row.series_id)
    if not series_row:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Série não encontrada"
        )

    result = liquidate(
        invoice_to_record(row),
        series_to_record(series_row),
        data.amount,
        data.payment_method,
        data.cash_register_id,
        today=data.payment_date,
        certified=certified_in_series(db, series_row.id)
    )
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.errors
        )

    invoice_from_record(result.invoice, row)
    db.add(invoice_from_record(result.receipt))
    series_from_record(result.series, series_row)
    audit(db, "LIQUIDATE", result.invoice)
    audit(db, "CERTIFY", result.receipt)
    db.commit()

    return {"invoice": result.invoice, "receipt": result.receipt}
