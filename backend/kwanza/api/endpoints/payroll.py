"""
Endpoints dos recibos de salário (fonte dos custos com pessoal do Modelo 1).
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from ...db.database import get_db
from ...models import models
from ...schemas.schemas import SalarySlipCreate, SalarySlipResponse

router = APIRouter(prefix="/payroll", tags=["Pessoal"])


@router.post("/", response_model=SalarySlipResponse, status_code=status.HTTP_201_CREATED)
async def create_salary_slip(
    data: SalarySlipCreate,
    db: Session = Depends(get_db)
):
    slip = models.SalarySlip(**data.model_dump())
    db.add(slip)
    db.commit()
    db.refresh(slip)
    return slip


@router.get("/", response_model=List[SalarySlipResponse])
async def list_salary_slips(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: Session = Depends(get_db)
):
    """Recibos sem ano atribuído aparecem em todos os anos."""
    query = db.query(models.SalarySlip)
    if year:
        query = query.filter(
            (models.SalarySlip.year == year) | (models.SalarySlip.year.is_(None))
        )
    return query.all()
