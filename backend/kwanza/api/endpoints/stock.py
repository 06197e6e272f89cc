"""
Endpoints de stock: produtos, ajustes manuais e saldos.
O stock de cada produto é derivado do razão de movimentos.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from ...db.database import get_db
from ...models import models
from ...schemas.schemas import (
    ProductCreate, ProductResponse, StockAdjustmentCreate, StockBalanceResponse
)
from ...core.config import get_angola_time
from ...services import records
from ...services import stock_ledger
from ...services.snapshots import (
    product_to_record, stock_movement_from_record, load_products,
    load_stock_movements, load_invoices, load_purchases
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stock", tags=["Stock"])


def all_movements(db: Session) -> List[records.StockMovement]:
    """Ajustes manuais mais os movimentos derivados dos documentos."""
    return (
        load_stock_movements(db)
        + stock_ledger.movements_from_invoices(load_invoices(db))
        + stock_ledger.movements_from_purchases(load_purchases(db))
    )


def refresh_products(db: Session) -> List[records.Product]:
    """Refresca a cache de stock dos produtos a partir do razão."""
    products = load_products(db)
    balances = stock_ledger.replay(all_movements(db), products)
    refreshed = stock_ledger.refresh_stock_cache(products, balances)

    rows = {row.id: row for row in db.query(models.Product).all()}
    for product in refreshed:
        rows[product.id].stock = product.stock
    db.commit()
    return refreshed


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    db: Session = Depends(get_db)
):
    if db.query(models.Product).filter(models.Product.id == data.id).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Produto já existe: {data.id}"
        )
    row = models.Product(**data.model_dump(), stock=0)
    db.add(row)
    db.commit()
    return product_to_record(row)


@router.get("/products", response_model=List[ProductResponse])
async def list_products(db: Session = Depends(get_db)):
    """Produtos com o stock recalculado."""
    return refresh_products(db)


@router.post("/adjustments", response_model=StockBalanceResponse, status_code=status.HTTP_201_CREATED)
async def create_adjustment(
    data: StockAdjustmentCreate,
    db: Session = Depends(get_db)
):
    """Ajuste manual (entrada ou saída). Devolve o novo saldo do produto."""
    product = db.query(models.Product).filter(models.Product.id == data.product_id).first()
    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Produto não encontrado"
        )

    movement = records.StockMovement(
        date=data.movement_date or get_angola_time().date(),
        type=data.type,
        product_id=product.id,
        quantity=data.quantity,
        warehouse_id=data.warehouse_id or product.warehouse_id or stock_ledger.DEFAULT_WAREHOUSE,
        product_name=product.name,
        notes=data.notes or "Ajuste manual"
    )
    db.add(stock_movement_from_record(movement))
    db.commit()

    refresh_products(db)
    balance = stock_ledger.replay(all_movements(db), load_products(db))[product.id]
    if balance.is_oversold:
        logger.warning(f"Stock negativo para {product.id}: {balance.balance}")
    return _balance_response(balance)


@router.get("/balances", response_model=List[StockBalanceResponse])
async def stock_balances(
    warehouse_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Saldo por produto (negativos assinalados como alerta)."""
    balances = stock_ledger.replay(all_movements(db), load_products(db), warehouse_id)
    return [_balance_response(b) for b in balances.values()]


def _balance_response(balance: stock_ledger.StockBalance) -> StockBalanceResponse:
    return StockBalanceResponse(
        product_id=balance.product_id,
        product_name=balance.product_name,
        entries=balance.entries,
        exits=balance.exits,
        balance=balance.balance,
        min_stock=balance.min_stock,
        is_oversold=balance.is_oversold,
        is_depleted=balance.is_depleted
    )
