"""
Modelos de base de dados do serviço fiscal Kwanza.
Os calculadores nunca trabalham sobre estas linhas: recebem instantâneos
(services/records.py) construídos em services/snapshots.py.
"""
from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime,
    ForeignKey, Text, Enum, JSON, Date
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..db.database import Base
from ..services.records import (
    InvoiceType, InvoiceStatus, PurchaseType, PurchaseStatus, ItemType,
    RetentionType, SeriesType, StockMovementType, CashMovementType,
    CashMovementSource
)


# ===================== SÉRIES =====================

class DocumentSeries(Base):
    """
    Série de numeração anual.
    sequences: último número emitido por tipo de documento ({"FT": 7, "NC": 1}).
    """
    __tablename__ = "document_series"

    id = Column(String(32), primary_key=True, index=True)
    code = Column(String(20), nullable=False)
    year = Column(Integer, nullable=False)
    type = Column(Enum(SeriesType), default=SeriesType.NORMAL, nullable=False)
    name = Column(String(255), default="")
    current_sequence = Column(Integer, default=0)
    sequences = Column(JSON, default=dict)
    allowed_user_ids = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    invoices = relationship("Invoice", back_populates="series")


# ===================== VENDAS =====================

class Invoice(Base):
    """Documento de venda."""
    __tablename__ = "invoices"

    id = Column(String(32), primary_key=True, index=True)
    type = Column(Enum(InvoiceType), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    due_date = Column(Date)
    accounting_date = Column(Date, index=True)

    # Cliente
    client_id = Column(String(64))
    client_name = Column(String(255), default="")
    client_nif = Column(String(20))

    # Numeração
    series_id = Column(String(32), ForeignKey("document_series.id"))
    number = Column(String(64), default="", index=True)

    # Totais (derivados das linhas)
    subtotal = Column(Float, default=0)
    global_discount = Column(Float, default=0)
    tax_amount = Column(Float, default=0)
    withholding_amount = Column(Float, default=0)
    retention_type = Column(Enum(RetentionType), default=RetentionType.NONE)
    retention_amount = Column(Float, default=0)
    total = Column(Float, default=0)

    # Moeda
    currency = Column(String(3), default="AOA")
    exchange_rate = Column(Float, default=1)
    contra_value = Column(Float, default=0)

    # Estado
    status = Column(Enum(InvoiceStatus), default=InvoiceStatus.DRAFT, index=True)
    paid_amount = Column(Float, default=0)
    is_certified = Column(Boolean, default=False, index=True)
    hash = Column(String(128), default="")

    # Pagamento e logística
    payment_method = Column(String(50))
    cash_register_id = Column(String(32))
    warehouse_id = Column(String(64))

    # Anulação / liquidação
    source_invoice_id = Column(String(32), ForeignKey("invoices.id"))
    cancellation_reason = Column(Text)
    notes = Column(Text, default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    series = relationship("DocumentSeries", back_populates="invoices")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position"
    )


class InvoiceItem(Base):
    """Linha de documento de venda."""
    __tablename__ = "invoice_items"

    id = Column(String(32), primary_key=True, index=True)
    invoice_id = Column(String(32), ForeignKey("invoices.id"), nullable=False)
    position = Column(Integer, default=0)

    type = Column(Enum(ItemType), default=ItemType.PRODUCT)
    product_id = Column(String(64))
    description = Column(String(500), default="")
    quantity = Column(Float, default=1)
    unit_price = Column(Float, default=0)
    discount = Column(Float, default=0)
    tax_rate = Column(Float, default=14)
    total = Column(Float, default=0)
    length = Column(Float, default=1)
    width = Column(Float, default=1)
    height = Column(Float, default=1)
    rubrica = Column(String(20), default="61.1")

    invoice = relationship("Invoice", back_populates="items")


# ===================== COMPRAS =====================

class Purchase(Base):
    """Documento de fornecedor."""
    __tablename__ = "purchases"

    id = Column(String(32), primary_key=True, index=True)
    type = Column(Enum(PurchaseType), nullable=False)
    date = Column(Date, nullable=False, index=True)
    due_date = Column(Date)

    supplier_id = Column(String(64))
    supplier = Column(String(255), default="")
    nif = Column(String(20), default="")
    document_number = Column(String(64), default="")

    subtotal = Column(Float, default=0)
    global_discount = Column(Float, default=0)
    tax_amount = Column(Float, default=0)
    total = Column(Float, default=0)

    status = Column(Enum(PurchaseStatus), default=PurchaseStatus.PENDING, index=True)
    currency = Column(String(3), default="AOA")
    exchange_rate = Column(Float, default=1)
    retention_type = Column(Enum(RetentionType), default=RetentionType.NONE)

    warehouse_id = Column(String(64))
    payment_method = Column(String(50))
    cash_register_id = Column(String(32))
    hash = Column(String(128), default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship(
        "PurchaseItem",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.position"
    )


class PurchaseItem(Base):
    """Linha de compra (o total inclui o imposto)."""
    __tablename__ = "purchase_items"

    id = Column(String(32), primary_key=True, index=True)
    purchase_id = Column(String(32), ForeignKey("purchases.id"), nullable=False)
    position = Column(Integer, default=0)

    product_id = Column(String(64))
    warehouse_id = Column(String(64))
    description = Column(String(500), default="")
    item_type = Column(String(50), default="Produto")
    rubrica = Column(String(20), default="71.1")
    quantity = Column(Float, default=1)
    unit_price = Column(Float, default=0)
    discount = Column(Float, default=0)
    tax_rate = Column(Float, default=14)
    tax_amount = Column(Float, default=0)
    total = Column(Float, default=0)
    length = Column(Float, default=1)
    width = Column(Float, default=1)
    height = Column(Float, default=1)

    purchase = relationship("Purchase", back_populates="items")


# ===================== TESOURARIA =====================

class CashRegister(Base):
    """Caixa. O saldo é sempre derivado dos movimentos."""
    __tablename__ = "cash_registers"

    id = Column(String(32), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    initial_balance = Column(Float, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CashMovement(Base):
    """Movimento manual de caixa (entrada, saída ou perna de transferência)."""
    __tablename__ = "cash_movements"

    id = Column(String(32), primary_key=True, index=True)
    date = Column(DateTime(timezone=True), nullable=False)
    type = Column(Enum(CashMovementType), nullable=False)
    amount = Column(Float, nullable=False)
    cash_register_id = Column(String(32), ForeignKey("cash_registers.id"), nullable=False)
    target_cash_register_id = Column(String(32), ForeignKey("cash_registers.id"))
    transfer_id = Column(String(32), index=True)
    source = Column(Enum(CashMovementSource), default=CashMovementSource.MANUAL)
    description = Column(String(500), default="")
    document_ref = Column(String(64))
    operator_name = Column(String(255), default="")


# ===================== STOCK =====================

class Product(Base):
    """
    Produto.
    stock é uma cache do razão de movimentos, refrescada a partir dele.
    """
    __tablename__ = "products"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    stock = Column(Float, default=0)
    min_stock = Column(Float, default=0)
    warehouse_id = Column(String(64))


class StockMovement(Base):
    """Ajuste manual de stock (as vendas e compras derivam dos documentos)."""
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False)
    type = Column(Enum(StockMovementType), nullable=False)
    product_id = Column(String(64), nullable=False, index=True)
    product_name = Column(String(255), default="")
    quantity = Column(Float, nullable=False)
    warehouse_id = Column(String(64), default="")
    document_ref = Column(String(64), default="")
    notes = Column(Text, default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now())


# ===================== RECURSOS HUMANOS =====================

class SalarySlip(Base):
    """Recibo de salário (o Modelo 1 usa apenas o valor bruto)."""
    __tablename__ = "salary_slips"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(String(64), nullable=False)
    employee_name = Column(String(255), default="")
    year = Column(Integer)
    month = Column(Integer)
    base_salary = Column(Float, default=0)
    gross_total = Column(Float, default=0)
    inss = Column(Float, default=0)
    irt = Column(Float, default=0)
    net_total = Column(Float, default=0)


# ===================== AUDITORIA =====================

class AuditLog(Base):
    """
    Registo de auditoria das operações sobre documentos.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Acção
    action = Column(String(50), nullable=False)  # CREATE, CERTIFY, CANCEL, LIQUIDATE
    entity_type = Column(String(100))
    entity_id = Column(String(64))

    # Dados
    new_values = Column(JSON)

    timestamp = Column(DateTime(timezone=True), server_default=func.now())
