"""
Endpoints de tesouraria: caixas, movimentos manuais e saldos.
Os saldos são sempre recalculados a partir dos movimentos.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import uuid

from ...db.database import get_db
from ...models import models
from ...schemas.schemas import (
    CashRegisterCreate, CashRegisterResponse, CashOperationRequest,
    CashMovementResponse, RegisterBalanceResponse
)
from ...services import records
from ...services import cash_ledger
from ...services.snapshots import (
    cash_register_to_record, cash_movement_from_record, load_cash_registers,
    load_cash_movements, load_invoices, load_purchases
)

router = APIRouter(prefix="/treasury", tags=["Tesouraria"])


def all_movements(db: Session) -> List[records.CashMovement]:
    """Movimentos manuais mais os derivados das vendas e compras pagas."""
    return (
        load_cash_movements(db)
        + cash_ledger.movements_from_invoices(load_invoices(db))
        + cash_ledger.movements_from_purchases(load_purchases(db))
    )


@router.post("/registers", response_model=CashRegisterResponse, status_code=status.HTTP_201_CREATED)
async def create_register(
    data: CashRegisterCreate,
    db: Session = Depends(get_db)
):
    """Cria uma caixa com o saldo inicial."""
    row = models.CashRegister(
        id=uuid.uuid4().hex,
        name=data.name,
        initial_balance=data.initial_balance
    )
    db.add(row)
    db.commit()
    return cash_register_to_record(row)


@router.get("/registers", response_model=List[CashRegisterResponse])
async def list_registers(db: Session = Depends(get_db)):
    return load_cash_registers(db)


@router.post("/movements", response_model=List[CashMovementResponse], status_code=status.HTTP_201_CREATED)
async def create_movement(
    data: CashOperationRequest,
    db: Session = Depends(get_db)
):
    """
    Entrada, saída ou transferência manual.
    Uma transferência grava sempre as duas pernas (saída na origem, entrada no destino).
    """
    registers = {r.id: r for r in load_cash_registers(db)}
    for register_id in (data.source_register_id, data.target_register_id):
        if register_id and register_id not in registers:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Caixa não encontrada: {register_id}"
            )

    source = registers.get(data.source_register_id)
    result = cash_ledger.create_manual_movement(
        data.operation.value,
        data.amount,
        data.source_register_id,
        data.target_register_id if data.operation.value == cash_ledger.TRANSFER else None,
        description=data.description,
        operator_name=data.operator_name,
        source_register_name=source.name if source else ""
    )
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.errors
        )

    for movement in result.movements:
        db.add(cash_movement_from_record(movement))
    db.commit()

    return result.movements


@router.get("/movements", response_model=List[CashMovementResponse])
async def list_movements(db: Session = Depends(get_db)):
    """Todos os movimentos, do mais recente para o mais antigo."""
    return sorted(all_movements(db), key=lambda m: m.date, reverse=True)


@router.get("/balances", response_model=List[RegisterBalanceResponse])
async def register_balances(db: Session = Depends(get_db)):
    """Saldo de cada caixa: saldo inicial + entradas - saídas."""
    balances = cash_ledger.replay(load_cash_registers(db), all_movements(db))
    return [
        RegisterBalanceResponse(
            cash_register_id=b.cash_register_id,
            name=b.name,
            initial_balance=b.initial_balance,
            entries=b.entries,
            exits=b.exits,
            balance=b.balance
        )
        for b in balances.values()
    ]


@router.get("/transfers/orphans", response_model=List[CashMovementResponse])
async def orphan_transfer_legs(db: Session = Depends(get_db)):
    """Pernas de transferência sem contrapartida (deve estar sempre vazio)."""
    return cash_ledger.find_orphan_transfer_legs(load_cash_movements(db))
