"""
Conversão entre linhas da base de dados e registos dos calculadores.
Os registos são instantâneos: alterar um registo não altera a linha.
"""
from dataclasses import fields
from typing import List, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from ..core.config import ANGOLA_TZ
from ..models import models
from . import records


T = TypeVar("T")


def _to_record(row, record_cls: Type[T], **overrides) -> T:
    """Copia para o registo os campos com o mesmo nome."""
    values = {
        f.name: getattr(row, f.name)
        for f in fields(record_cls)
        if f.name not in overrides and hasattr(row, f.name)
    }
    values.update(overrides)
    # Colunas nulas ficam com o valor por omissão do registo
    return record_cls(**{k: v for k, v in values.items() if v is not None or k in overrides})


def _copy_to_row(record, row, exclude=()):
    for f in fields(record):
        if f.name in exclude or not hasattr(type(row), f.name):
            continue
        setattr(row, f.name, getattr(record, f.name))
    return row


def _sync_items(record_items, current_rows, row_cls):
    """Linhas de item alinhadas com o registo (as existentes são actualizadas pelo id)."""
    existing = {item.id: item for item in current_rows}
    synced = []
    for position, item in enumerate(record_items):
        target = existing.get(item.id) or row_cls(id=item.id)
        _copy_to_row(item, target, exclude=("id",))
        target.position = position
        synced.append(target)
    return synced


# ===================== VENDAS =====================

def invoice_to_record(row: models.Invoice) -> records.Invoice:
    items = [_to_record(item, records.InvoiceItem) for item in row.items]
    return _to_record(row, records.Invoice, items=items)


def invoice_from_record(
    record: records.Invoice,
    row: Optional[models.Invoice] = None
) -> models.Invoice:
    """Nova linha, ou a linha existente actualizada (as linhas de item são substituídas)."""
    row = row or models.Invoice(id=record.id)
    _copy_to_row(record, row, exclude=("id", "items"))
    row.items = _sync_items(record.items, row.items, models.InvoiceItem)
    return row


# ===================== COMPRAS =====================

def purchase_to_record(row: models.Purchase) -> records.Purchase:
    items = [_to_record(item, records.PurchaseItem) for item in row.items]
    return _to_record(row, records.Purchase, items=items)


def purchase_from_record(
    record: records.Purchase,
    row: Optional[models.Purchase] = None
) -> models.Purchase:
    row = row or models.Purchase(id=record.id)
    _copy_to_row(record, row, exclude=("id", "items"))
    row.items = _sync_items(record.items, row.items, models.PurchaseItem)
    return row


# ===================== SÉRIES =====================

def series_to_record(row: models.DocumentSeries) -> records.DocumentSeries:
    return _to_record(
        row,
        records.DocumentSeries,
        sequences=dict(row.sequences or {}),
        allowed_user_ids=list(row.allowed_user_ids or [])
    )


def series_from_record(
    record: records.DocumentSeries,
    row: Optional[models.DocumentSeries] = None
) -> models.DocumentSeries:
    row = row or models.DocumentSeries(id=record.id)
    _copy_to_row(record, row, exclude=("id", "sequences", "allowed_user_ids"))
    # Novo objecto para o SQLAlchemy detectar a alteração da coluna JSON
    row.sequences = dict(record.sequences)
    row.allowed_user_ids = list(record.allowed_user_ids)
    return row


# ===================== TESOURARIA =====================

def cash_register_to_record(row: models.CashRegister) -> records.CashRegister:
    return _to_record(row, records.CashRegister)


def cash_movement_to_record(row: models.CashMovement) -> records.CashMovement:
    moment = row.date
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=ANGOLA_TZ)
    return _to_record(row, records.CashMovement, date=moment)


def cash_movement_from_record(record: records.CashMovement) -> models.CashMovement:
    return _copy_to_row(record, models.CashMovement())


# ===================== STOCK E PESSOAL =====================

def product_to_record(row: models.Product) -> records.Product:
    return _to_record(row, records.Product)


def stock_movement_to_record(row: models.StockMovement) -> records.StockMovement:
    return _to_record(row, records.StockMovement)


def stock_movement_from_record(record: records.StockMovement) -> models.StockMovement:
    return _copy_to_row(record, models.StockMovement())


def salary_slip_to_record(row: models.SalarySlip) -> records.SalarySlip:
    return _to_record(row, records.SalarySlip)


# ===================== CARREGAMENTO =====================

def load_invoices(db: Session) -> List[records.Invoice]:
    rows = db.query(models.Invoice).order_by(models.Invoice.date, models.Invoice.created_at).all()
    return [invoice_to_record(row) for row in rows]


def load_purchases(db: Session) -> List[records.Purchase]:
    rows = db.query(models.Purchase).order_by(models.Purchase.date).all()
    return [purchase_to_record(row) for row in rows]


def load_payroll(db: Session) -> List[records.SalarySlip]:
    return [salary_slip_to_record(row) for row in db.query(models.SalarySlip).all()]


def load_cash_registers(db: Session) -> List[records.CashRegister]:
    return [cash_register_to_record(row) for row in db.query(models.CashRegister).all()]


def load_cash_movements(db: Session) -> List[records.CashMovement]:
    rows = db.query(models.CashMovement).order_by(models.CashMovement.date).all()
    return [cash_movement_to_record(row) for row in rows]


def load_products(db: Session) -> List[records.Product]:
    return [product_to_record(row) for row in db.query(models.Product).all()]


def load_stock_movements(db: Session) -> List[records.StockMovement]:
    rows = db.query(models.StockMovement).order_by(models.StockMovement.date).all()
    return [stock_movement_to_record(row) for row in rows]
