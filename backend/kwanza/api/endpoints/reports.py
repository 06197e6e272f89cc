"""
Endpoints das declarações e mapas fiscais.
Modelo 7 (IVA), Modelo 1 (Imposto Industrial), Imposto de Selo e resumo SAF-T.
Os valores são arredondados a 2 casas apenas na resposta.
"""
from dataclasses import asdict
from datetime import date
from typing import Any
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from ...db.database import get_db
from ...schemas.schemas import Modelo1Request, VatRegime
from ...services.vat_settlement import VATSettlementEngine
from ...services.industrial_tax import IndustrialTaxEngine
from ...services.stamp_duty import calculate_stamp_duty
from ...services.saft_summary import validate_period, build_summary
from ...services.document_totals import round_currency
from ...services.snapshots import load_invoices, load_purchases, load_payroll

router = APIRouter(prefix="/reports", tags=["Declarações Fiscais"])


def present(value: Any) -> Any:
    """Resultado de um calculador pronto a apresentar (valores a 2 casas)."""
    if hasattr(value, "__dataclass_fields__"):
        value = asdict(value)
    if isinstance(value, dict):
        return {key: present(item) for key, item in value.items()}
    if isinstance(value, list):
        return [present(item) for item in value]
    if isinstance(value, float):
        return round_currency(value)
    return value


@router.get("/modelo7")
async def modelo7(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    regime: VatRegime = VatRegime.GENERAL,
    db: Session = Depends(get_db)
):
    """
    Declaração periódica do IVA (Modelo 7).
    Regime geral: apuramento a pagar / a recuperar.
    Regime simplificado: 7% sobre o volume de negócios dos documentos de caixa.
    """
    invoices = load_invoices(db)
    if regime == VatRegime.SIMPLIFIED:
        result = VATSettlementEngine.calculate_simplified_regime(invoices, year, month)
    else:
        result = VATSettlementEngine.calculate_general_regime(
            invoices, load_purchases(db), year, month
        )
    return {
        "period": f"{year}-{month:02d}",
        "regime": regime.value,
        "result": present(result)
    }


@router.get("/modelo7/annexes")
async def modelo7_annexes(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db)
):
    """Anexo de fornecedores e anexo de regularizações do período."""
    return {
        "period": f"{year}-{month:02d}",
        "suppliers": present(
            VATSettlementEngine.build_supplier_annex(load_purchases(db), year, month)
        ),
        "regularizations": present(
            VATSettlementEngine.build_regularization_annex(load_invoices(db), year, month)
        )
    }


@router.post("/modelo1")
async def modelo1(
    data: Modelo1Request,
    db: Session = Depends(get_db)
):
    """
    Declaração anual do Imposto Industrial (Modelo 1).
    Os valores manuais aplicam-se ao ano corrente; o ano anterior é sempre calculado.
    """
    invoices = load_invoices(db)
    purchases = load_purchases(db)
    payroll = load_payroll(db)

    if data.comparative:
        result = IndustrialTaxEngine.calculate_comparative(
            data.year, invoices, purchases, payroll, data.overrides
        )
        return present(result)

    return {
        "current": present(
            IndustrialTaxEngine.calculate(data.year, invoices, purchases, payroll, data.overrides)
        )
    }


@router.get("/stamp-duty")
async def stamp_duty(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db)
):
    """Mapa do Imposto de Selo sobre recibos (1%)."""
    return {
        "period": f"{year}-{month:02d}",
        "result": present(calculate_stamp_duty(load_invoices(db), year, month))
    }


@router.get("/saft-summary")
async def saft_summary(
    start: date,
    end: date,
    db: Session = Depends(get_db)
):
    """Resumo do ficheiro SAF-T mensal."""
    error = validate_period(start, end)
    if error:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=[error]
        )
    return present(build_summary(load_invoices(db), load_purchases(db), start, end))
