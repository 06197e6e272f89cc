"""
Modelo de documentos partilhado pelos motores de cálculo.
Registos simples (dataclasses) sem comportamento: são instantâneos
imutáveis que entram em cada calculadora.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional


# ===================== ENUMS =====================

class InvoiceType(str, Enum):
    FT = "FT"
    FR = "FR"
    PP = "PP"
    OR = "OR"
    GR = "GR"
    GT = "GT"
    GE = "GE"
    NE = "NE"
    NC = "NC"
    ND = "ND"
    RG = "RG"
    VD = "VD"
    FS = "FS"


INVOICE_TYPE_LABELS = {
    InvoiceType.FT: "Fatura",
    InvoiceType.FR: "Fatura/Recibo",
    InvoiceType.PP: "Fatura Pró-forma",
    InvoiceType.OR: "Orçamento",
    InvoiceType.GR: "Guia de Remessa",
    InvoiceType.GT: "Guia de Transporte",
    InvoiceType.GE: "Guia de Entrega",
    InvoiceType.NE: "Nota de Encomenda",
    InvoiceType.NC: "Nota de Crédito",
    InvoiceType.ND: "Nota de Débito",
    InvoiceType.RG: "Recibo",
    InvoiceType.VD: "Venda a Dinheiro",
    InvoiceType.FS: "Fatura Simplificada",
}


class PurchaseType(str, Enum):
    FT = "FT"
    FR = "FR"
    ND = "ND"
    NC = "NC"
    VD = "VD"
    REC = "REC"


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class PurchaseStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class ItemType(str, Enum):
    PRODUCT = "PRODUCT"
    SERVICE = "SERVICE"


class RetentionType(str, Enum):
    """Cativação do IVA."""
    NONE = "NONE"
    CAT_50 = "CAT_50"
    CAT_100 = "CAT_100"


class SeriesType(str, Enum):
    NORMAL = "NORMAL"
    MANUAL = "MANUAL"


class StockMovementType(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"


class CashMovementType(str, Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"


class CashMovementSource(str, Enum):
    SALES = "SALES"
    PURCHASES = "PURCHASES"
    MANUAL = "MANUAL"


class TransactionKind(str, Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class DocumentNature(str, Enum):
    """Natureza fiscal de cada tipo de documento de venda."""
    SALE = "SALE"
    RECEIPT = "RECEIPT"
    CREDIT_NOTE = "CREDIT_NOTE"
    NON_FISCAL = "NON_FISCAL"


# Tabelas totais: cada InvoiceType tem de estar classificado.
DOCUMENT_NATURE: Dict[InvoiceType, DocumentNature] = {
    InvoiceType.FT: DocumentNature.SALE,
    InvoiceType.FR: DocumentNature.SALE,
    InvoiceType.VD: DocumentNature.SALE,
    InvoiceType.FS: DocumentNature.SALE,
    InvoiceType.ND: DocumentNature.SALE,
    InvoiceType.RG: DocumentNature.RECEIPT,
    InvoiceType.NC: DocumentNature.CREDIT_NOTE,
    InvoiceType.PP: DocumentNature.NON_FISCAL,
    InvoiceType.OR: DocumentNature.NON_FISCAL,
    InvoiceType.GR: DocumentNature.NON_FISCAL,
    InvoiceType.GT: DocumentNature.NON_FISCAL,
    InvoiceType.GE: DocumentNature.NON_FISCAL,
    InvoiceType.NE: DocumentNature.NON_FISCAL,
}

# None = o documento não movimenta stock (o recibo liquida uma fatura que já
# deu saída às mercadorias)
STOCK_EFFECT: Dict[InvoiceType, Optional[StockMovementType]] = {
    InvoiceType.FT: StockMovementType.EXIT,
    InvoiceType.FR: StockMovementType.EXIT,
    InvoiceType.VD: StockMovementType.EXIT,
    InvoiceType.FS: StockMovementType.EXIT,
    InvoiceType.ND: StockMovementType.EXIT,
    InvoiceType.RG: None,
    InvoiceType.GR: StockMovementType.EXIT,
    InvoiceType.GT: StockMovementType.EXIT,
    InvoiceType.GE: StockMovementType.EXIT,
    InvoiceType.NC: StockMovementType.ENTRY,
    InvoiceType.PP: None,
    InvoiceType.OR: None,
    InvoiceType.NE: None,
}

# Documentos de caixa (pagos no acto)
CASH_DOCUMENT_TYPES = frozenset({InvoiceType.FR, InvoiceType.VD, InvoiceType.RG})


def document_nature(invoice_type: InvoiceType) -> DocumentNature:
    return DOCUMENT_NATURE[invoice_type]


# ===================== DOCUMENTOS =====================

@dataclass
class InvoiceItem:
    """Linha de documento de venda."""
    id: str
    description: str = ""
    quantity: float = 1
    unit_price: float = 0
    discount: float = 0
    tax_rate: float = 14
    total: float = 0
    type: ItemType = ItemType.PRODUCT
    product_id: Optional[str] = None
    length: float = 1
    width: float = 1
    height: float = 1
    rubrica: str = "61.1"


@dataclass
class Invoice:
    """Documento de venda (fatura, recibo, nota de crédito...)."""
    id: str
    type: InvoiceType
    date: date
    client_id: Optional[str] = None
    client_name: str = ""
    client_nif: Optional[str] = None
    series_id: Optional[str] = None
    number: str = ""
    due_date: Optional[date] = None
    accounting_date: Optional[date] = None
    items: List[InvoiceItem] = field(default_factory=list)
    subtotal: float = 0
    global_discount: float = 0
    tax_amount: float = 0
    withholding_amount: float = 0
    retention_type: RetentionType = RetentionType.NONE
    retention_amount: float = 0
    total: float = 0
    currency: str = "AOA"
    exchange_rate: float = 1
    contra_value: float = 0
    status: InvoiceStatus = InvoiceStatus.DRAFT
    paid_amount: float = 0
    is_certified: bool = False
    hash: str = ""
    payment_method: Optional[str] = None
    cash_register_id: Optional[str] = None
    warehouse_id: Optional[str] = None
    source_invoice_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    notes: str = ""

    @property
    def effective_date(self) -> date:
        """Data contabilística, ou data de emissão quando não existe."""
        return self.accounting_date or self.date


@dataclass
class PurchaseItem:
    """Linha de documento de compra (o total inclui o imposto)."""
    id: str
    description: str = ""
    quantity: float = 1
    unit_price: float = 0
    discount: float = 0
    tax_rate: float = 14
    tax_amount: float = 0
    total: float = 0
    product_id: Optional[str] = None
    warehouse_id: Optional[str] = None
    item_type: str = "Produto"
    rubrica: str = "71.1"
    length: float = 1
    width: float = 1
    height: float = 1


@dataclass
class Purchase:
    """Documento de fornecedor."""
    id: str
    type: PurchaseType
    date: date
    supplier_id: Optional[str] = None
    supplier: str = ""
    nif: str = ""
    document_number: str = ""
    due_date: Optional[date] = None
    items: List[PurchaseItem] = field(default_factory=list)
    subtotal: float = 0
    global_discount: float = 0
    tax_amount: float = 0
    total: float = 0
    status: PurchaseStatus = PurchaseStatus.PENDING
    currency: str = "AOA"
    exchange_rate: float = 1
    retention_type: RetentionType = RetentionType.NONE
    warehouse_id: Optional[str] = None
    payment_method: Optional[str] = None
    cash_register_id: Optional[str] = None
    hash: str = ""


@dataclass
class DocumentSeries:
    """Série de numeração, por ano. Sequências separadas por tipo de documento."""
    id: str
    code: str
    year: int
    type: SeriesType = SeriesType.NORMAL
    name: str = ""
    current_sequence: int = 0
    sequences: Dict[str, int] = field(default_factory=dict)
    allowed_user_ids: List[str] = field(default_factory=list)
    is_active: bool = True


@dataclass
class AccountTransaction:
    date: date
    kind: TransactionKind
    amount: float
    document_ref: str = ""
    description: str = ""


@dataclass
class Account:
    """Conta corrente de cliente ou fornecedor."""
    id: str
    name: str
    vat_number: str = ""
    initial_balance: float = 0
    account_balance: float = 0
    transactions: List[AccountTransaction] = field(default_factory=list)


@dataclass
class Product:
    id: str
    name: str
    stock: float = 0
    min_stock: float = 0
    warehouse_id: Optional[str] = None


@dataclass
class StockMovement:
    date: date
    type: StockMovementType
    product_id: str
    quantity: float
    warehouse_id: str = ""
    document_ref: str = ""
    product_name: str = ""
    notes: str = ""


@dataclass
class CashMovement:
    date: datetime
    type: CashMovementType
    amount: float
    cash_register_id: str
    source: CashMovementSource = CashMovementSource.MANUAL
    description: str = ""
    target_cash_register_id: Optional[str] = None
    transfer_id: Optional[str] = None
    document_ref: Optional[str] = None
    operator_name: str = ""
    id: Optional[str] = None


@dataclass
class CashRegister:
    id: str
    name: str
    initial_balance: float = 0


@dataclass
class SalarySlip:
    """Recibo de salário; o calculador do Modelo 1 usa apenas o bruto."""
    employee_id: str
    gross_total: float
    employee_name: str = ""
    base_salary: float = 0
    inss: float = 0
    irt: float = 0
    net_total: float = 0
    year: Optional[int] = None
    month: Optional[int] = None
