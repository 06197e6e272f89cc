"""
Endpoints das séries de numeração.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import uuid

from ...db.database import get_db
from ...models import models
from ...schemas.schemas import SeriesCreate, SeriesResponse
from ...services import records
from ...services.snapshots import series_to_record, series_from_record

router = APIRouter(prefix="/series", tags=["Séries"])


@router.post("/", response_model=SeriesResponse, status_code=status.HTTP_201_CREATED)
async def create_series(
    data: SeriesCreate,
    db: Session = Depends(get_db)
):
    """Cria uma série anual. O par código/ano é único."""
    existing = db.query(models.DocumentSeries).filter(
        models.DocumentSeries.code == data.code,
        models.DocumentSeries.year == data.year
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Já existe a série {data.code} para {data.year}"
        )

    series = records.DocumentSeries(
        id=uuid.uuid4().hex,
        code=data.code,
        year=data.year,
        type=data.type,
        name=data.name or f"Série {data.code} {data.year}",
        is_active=data.is_active
    )
    db.add(series_from_record(series))
    db.commit()

    return series


@router.get("/", response_model=List[SeriesResponse])
async def list_series(db: Session = Depends(get_db)):
    """Lista as séries."""
    rows = db.query(models.DocumentSeries).order_by(
        models.DocumentSeries.year.desc(), models.DocumentSeries.code
    ).all()
    return [series_to_record(row) for row in rows]


@router.get("/{series_id}", response_model=SeriesResponse)
async def get_series(series_id: str, db: Session = Depends(get_db)):
    row = db.query(models.DocumentSeries).filter(models.DocumentSeries.id == series_id).first()
    if not row:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Série não encontrada"
        )
    return series_to_record(row)
