"""
Endpoints dos documentos de compra.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
import uuid

from ...db.database import get_db
from ...models import models
from ...schemas.schemas import PurchaseCreate, PurchaseResponse
from ...core.config import normalize_currency, get_exchange_rate
from ...services import records
from ...services.records import PurchaseStatus
from ...services.document_totals import apply_purchase_totals
from ...services.period_filter import filter_purchases
from ...services.snapshots import purchase_to_record, purchase_from_record, load_purchases

router = APIRouter(prefix="/purchases", tags=["Compras"])


@router.post("/", response_model=PurchaseResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase(
    data: PurchaseCreate,
    db: Session = Depends(get_db)
):
    """
    Regista uma compra.
    Totais: subtotal + imposto - desconto global.
    """
    currency = normalize_currency(data.currency)
    purchase = apply_purchase_totals(records.Purchase(
        id=uuid.uuid4().hex,
        type=data.type,
        date=data.date,
        due_date=data.due_date,
        supplier_id=data.supplier_id,
        supplier=data.supplier,
        nif=data.nif,
        document_number=data.document_number,
        items=[
            records.PurchaseItem(
                id=item.id or uuid.uuid4().hex,
                product_id=item.product_id,
                warehouse_id=item.warehouse_id,
                description=item.description,
                item_type=item.item_type,
                rubrica=item.rubrica,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount=item.discount,
                tax_rate=item.tax_rate,
                length=item.length,
                width=item.width,
                height=item.height
            )
            for item in data.items
        ],
        global_discount=data.global_discount,
        status=data.status,
        currency=currency,
        exchange_rate=data.exchange_rate or get_exchange_rate(currency),
        retention_type=data.retention_type,
        warehouse_id=data.warehouse_id,
        payment_method=data.payment_method,
        cash_register_id=data.cash_register_id
    ))

    db.add(purchase_from_record(purchase))
    db.commit()

    return purchase


@router.get("/", response_model=List[PurchaseResponse])
async def list_purchases(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    status_filter: Optional[PurchaseStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db)
):
    """Lista compras, opcionalmente por período (todas as situações)."""
    purchases = load_purchases(db)
    if year:
        purchases = filter_purchases(purchases, year, month, exclude_pending=False)
    if status_filter:
        purchases = [p for p in purchases if p.status == status_filter]
    return purchases


@router.get("/{purchase_id}", response_model=PurchaseResponse)
async def get_purchase(purchase_id: str, db: Session = Depends(get_db)):
    """Obtém uma compra."""
    row = db.query(models.Purchase).filter(models.Purchase.id == purchase_id).first()
    if not row:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Compra não encontrada"
        )
    return purchase_to_record(row)
