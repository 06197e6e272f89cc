"""
Esquemas Pydantic para validação de pedidos e respostas.
"""
from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Union
from datetime import datetime, date
from enum import Enum

from ..services.records import (
    InvoiceType, InvoiceStatus, PurchaseType, PurchaseStatus, ItemType,
    RetentionType, SeriesType, StockMovementType, CashMovementType,
    CashMovementSource
)
from ..services.industrial_tax import MANUAL_LINES, COMPUTED_LINES
from ..utils.validators import (
    VALID_TAX_RATES, parse_override, validate_nif, validate_monetary_amount
)


# ===================== FUNÇÕES DE VALIDAÇÃO REUTILIZÁVEIS =====================

def validate_vat_rate(rate: float) -> float:
    if rate not in VALID_TAX_RATES:
        raise ValueError(f'Taxa de IVA inválida: {rate}. Taxas válidas: 0, 5, 7, 14')
    return rate


def check_nif(nif: Optional[str]) -> Optional[str]:
    """NIF opcional: vazio passa, preenchido tem de ter formato válido."""
    if nif and not validate_nif(nif):
        raise ValueError(f'NIF inválido: {nif}')
    return nif.strip().upper() if nif else nif


def check_amount(amount: float) -> float:
    if not validate_monetary_amount(amount):
        raise ValueError('Montante inválido')
    return amount


class CashOperation(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"
    TRANSFER = "TRANSFER"


class VatRegime(str, Enum):
    GENERAL = "general"
    SIMPLIFIED = "simplified"


# ===================== DOCUMENTOS DE VENDA =====================

class InvoiceItemBase(BaseModel):
    id: Optional[str] = None
    type: ItemType = ItemType.PRODUCT
    product_id: Optional[str] = None
    description: str = Field("", max_length=500)
    quantity: float = Field(1, ge=0)
    unit_price: float = Field(0, ge=0)
    discount: float = Field(0, ge=0, le=100)
    tax_rate: float = 14
    length: float = 1
    width: float = 1
    height: float = 1
    rubrica: str = "61.1"

    @validator('tax_rate')
    def validate_tax_rate(cls, v):
        return validate_vat_rate(v)

    @validator('unit_price')
    def validate_unit_price(cls, v):
        return check_amount(v)


class InvoiceItemResponse(InvoiceItemBase):
    id: str
    total: float

    class Config:
        from_attributes = True


class InvoiceCreate(BaseModel):
    """Rascunho de documento de venda (os totais são sempre recalculados)."""
    type: InvoiceType
    date: date
    due_date: Optional[date] = None
    accounting_date: Optional[date] = None
    client_id: Optional[str] = None
    client_name: str = ""
    client_nif: Optional[str] = None
    series_id: Optional[str] = None
    items: List[InvoiceItemBase] = []
    global_discount: float = Field(0, ge=0, le=100)
    retention_type: RetentionType = RetentionType.NONE
    currency: str = "AOA"
    exchange_rate: Optional[float] = Field(None, gt=0)
    payment_method: Optional[str] = None
    cash_register_id: Optional[str] = None
    warehouse_id: Optional[str] = None
    notes: str = ""

    @validator('client_nif')
    def validate_client_nif(cls, v):
        return check_nif(v)


class InvoiceResponse(BaseModel):
    id: str
    type: InvoiceType
    date: date
    due_date: Optional[date] = None
    accounting_date: Optional[date] = None
    client_id: Optional[str] = None
    client_name: str
    client_nif: Optional[str] = None
    series_id: Optional[str] = None
    number: str
    items: List[InvoiceItemResponse]
    subtotal: float
    global_discount: float
    tax_amount: float
    withholding_amount: float
    retention_type: RetentionType
    retention_amount: float
    total: float
    currency: str
    exchange_rate: float
    contra_value: float
    status: InvoiceStatus
    paid_amount: float
    is_certified: bool
    hash: str
    payment_method: Optional[str] = None
    cash_register_id: Optional[str] = None
    warehouse_id: Optional[str] = None
    source_invoice_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    notes: str = ""

    class Config:
        from_attributes = True


class DocumentTotalsResponse(BaseModel):
    """Pré-visualização dos campos derivados de um documento."""
    subtotal: float
    tax_amount: float
    global_discount_value: float
    withholding_enabled: bool
    withholding_amount: float
    retention_amount: float
    total: float
    contra_value: float
    items: List[InvoiceItemResponse]

    class Config:
        from_attributes = True


class CertifyRequest(BaseModel):
    """Séries MANUAL exigem o número e o hash do documento em papel."""
    manual_number: Optional[str] = None
    manual_hash: Optional[str] = None


class CancelRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class LiquidateRequest(BaseModel):
    amount: float = Field(..., gt=0)
    payment_method: str = Field(..., min_length=1)
    cash_register_id: Optional[str] = None
    series_id: Optional[str] = None
    payment_date: Optional[date] = None

    @validator('amount')
    def validate_amount(cls, v):
        return check_amount(v)


class LiquidationResponse(BaseModel):
    invoice: InvoiceResponse
    receipt: InvoiceResponse


# ===================== COMPRAS =====================

class PurchaseItemBase(BaseModel):
    id: Optional[str] = None
    product_id: Optional[str] = None
    warehouse_id: Optional[str] = None
    description: str = Field("", max_length=500)
    item_type: str = "Produto"
    rubrica: str = "71.1"
    quantity: float = Field(1, ge=0)
    unit_price: float = Field(0, ge=0)
    discount: float = Field(0, ge=0, le=100)
    tax_rate: float = 14
    length: float = 1
    width: float = 1
    height: float = 1

    @validator('tax_rate')
    def validate_tax_rate(cls, v):
        return validate_vat_rate(v)

    @validator('unit_price')
    def validate_unit_price(cls, v):
        return check_amount(v)


class PurchaseItemResponse(PurchaseItemBase):
    id: str
    tax_amount: float
    total: float

    class Config:
        from_attributes = True


class PurchaseCreate(BaseModel):
    type: PurchaseType
    date: date
    due_date: Optional[date] = None
    supplier_id: Optional[str] = None
    supplier: str = Field(..., min_length=1)
    nif: str = ""
    document_number: str = Field(..., min_length=1)
    items: List[PurchaseItemBase] = []
    global_discount: float = Field(0, ge=0, le=100)
    status: PurchaseStatus = PurchaseStatus.PENDING
    currency: str = "AOA"
    exchange_rate: Optional[float] = Field(None, gt=0)
    retention_type: RetentionType = RetentionType.NONE
    warehouse_id: Optional[str] = None
    payment_method: Optional[str] = None
    cash_register_id: Optional[str] = None

    @validator('nif')
    def validate_supplier_nif(cls, v):
        return check_nif(v)


class PurchaseResponse(BaseModel):
    id: str
    type: PurchaseType
    date: date
    due_date: Optional[date] = None
    supplier_id: Optional[str] = None
    supplier: str
    nif: str
    document_number: str
    items: List[PurchaseItemResponse]
    subtotal: float
    global_discount: float
    tax_amount: float
    total: float
    status: PurchaseStatus
    currency: str
    exchange_rate: float
    warehouse_id: Optional[str] = None
    payment_method: Optional[str] = None
    cash_register_id: Optional[str] = None

    class Config:
        from_attributes = True


# ===================== SÉRIES =====================

class SeriesCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    year: int = Field(..., ge=2000, le=2100)
    type: SeriesType = SeriesType.NORMAL
    name: str = ""
    is_active: bool = True


class SeriesResponse(BaseModel):
    id: str
    code: str
    year: int
    type: SeriesType
    name: str
    current_sequence: int
    sequences: Dict[str, int]
    is_active: bool

    class Config:
        from_attributes = True


# ===================== TESOURARIA =====================

class CashRegisterCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    initial_balance: float = Field(0, ge=0)

    @validator('initial_balance')
    def validate_initial_balance(cls, v):
        return check_amount(v)


class CashRegisterResponse(BaseModel):
    id: str
    name: str
    initial_balance: float

    class Config:
        from_attributes = True


class CashOperationRequest(BaseModel):
    """Entrada, saída ou transferência manual (validada pelo razão de tesouraria)."""
    operation: CashOperation
    amount: float
    source_register_id: Optional[str] = None
    target_register_id: Optional[str] = None
    description: str = ""
    operator_name: str = "Admin"


class CashMovementResponse(BaseModel):
    id: Optional[str] = None
    date: datetime
    type: CashMovementType
    amount: float
    cash_register_id: str
    target_cash_register_id: Optional[str] = None
    transfer_id: Optional[str] = None
    source: CashMovementSource
    description: str
    document_ref: Optional[str] = None
    operator_name: str

    class Config:
        from_attributes = True


class RegisterBalanceResponse(BaseModel):
    cash_register_id: str
    name: str
    initial_balance: float
    entries: float
    exits: float
    balance: float


# ===================== STOCK =====================

class ProductCreate(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1)
    min_stock: float = Field(0, ge=0)
    warehouse_id: Optional[str] = None


class ProductResponse(BaseModel):
    id: str
    name: str
    stock: float
    min_stock: float
    warehouse_id: Optional[str] = None

    class Config:
        from_attributes = True


class StockAdjustmentCreate(BaseModel):
    product_id: str
    type: StockMovementType
    quantity: float = Field(..., gt=0)
    movement_date: Optional[date] = None
    warehouse_id: str = ""
    notes: str = ""


class StockBalanceResponse(BaseModel):
    product_id: str
    product_name: str
    entries: float
    exits: float
    balance: float
    min_stock: float
    is_oversold: bool
    is_depleted: bool


# ===================== PESSOAL =====================

class SalarySlipCreate(BaseModel):
    employee_id: str = Field(..., min_length=1)
    employee_name: str = ""
    year: Optional[int] = Field(None, ge=2000, le=2100)
    month: Optional[int] = Field(None, ge=1, le=12)
    base_salary: float = Field(0, ge=0)
    gross_total: float = Field(..., ge=0)
    inss: float = Field(0, ge=0)
    irt: float = Field(0, ge=0)
    net_total: float = Field(0, ge=0)


class SalarySlipResponse(SalarySlipCreate):
    id: int

    class Config:
        from_attributes = True


# ===================== DECLARAÇÕES =====================

class Modelo1Request(BaseModel):
    """
    Valores manuais por código de linha.
    Texto vazio ou inválido conta como "sem valor manual" (nunca 0).
    """
    year: int = Field(..., ge=2000, le=2100)
    overrides: Dict[str, Union[float, str, None]] = {}
    comparative: bool = True

    @validator('overrides')
    def validate_overrides(cls, v):
        known = set(MANUAL_LINES) | set(COMPUTED_LINES)
        unknown = [code for code in v if code not in known]
        if unknown:
            raise ValueError(f'Códigos de linha desconhecidos: {", ".join(unknown)}')
        return {code: parse_override(value) for code, value in v.items()}
