"""
Motor de apuramento do IVA - Declaração Periódica Modelo 7.
Regime geral (taxas 14%, 7%, 5% e isento), regime simplificado,
anexo de fornecedores e anexo de regularizações.
"""
from typing import List, Iterable
from dataclasses import dataclass, field
import logging

from .records import (
    Invoice, Purchase, InvoiceStatus, InvoiceType, DocumentNature,
    CASH_DOCUMENT_TYPES, document_nature
)
from .period_filter import (
    filter_invoices, filter_cancelled_or_credit, filter_purchases
)


logger = logging.getLogger(__name__)

VAT_RATES = (14, 7, 5, 0)
SIMPLIFIED_RATE = 0.07
# TODO: confirmar com o produto se a base isenta do regime simplificado
# deve ser tributada a 0%; mantém-se a taxa geral de 7% até decisão.
SIMPLIFIED_EXEMPT_RATE = SIMPLIFIED_RATE

FINAL_CONSUMER_NIF = "999999999"
REGULARIZATION_DESTINATION = "26"


@dataclass
class RateBucket:
    """Base tributável e imposto liquidado a uma taxa."""
    rate: float
    base: float = 0
    tax: float = 0


@dataclass
class GeneralRegimeResult:
    """Quadro 09 - Apuramento do imposto (regime geral)."""
    sales_14: RateBucket
    sales_7: RateBucket
    sales_5: RateBucket
    sales_exempt: RateBucket
    deductible_tax: float
    regularizations_subject: float
    total_favor_estado: float
    total_favor_sujeito: float
    to_pay: float
    to_recover: float


@dataclass
class SimplifiedRegimeResult:
    """Quadro 06 - Regime simplificado."""
    turnover: float
    tax_due: float
    exempt_base: float
    exempt_tax: float
    total_payable: float


@dataclass
class SupplierAnnexRow:
    order: int
    nif: str
    name: str
    document_type: str
    date: str
    document_number: str
    total: float
    base: float
    vat_supported: float
    vat_deductible: float
    deductible_percentage: float = 100
    typology: str = "OBC"


@dataclass
class SupplierAnnex:
    rows: List[SupplierAnnexRow] = field(default_factory=list)
    total_base: float = 0
    total_vat: float = 0
    total_deductible: float = 0
    total_documents: float = 0


@dataclass
class RegularizationAnnexRow:
    order: int
    operation: str
    nif: str
    name: str
    document_type: str
    date: str
    number: str
    total: float
    base: float
    vat: float
    reference_period: str
    destination: str = REGULARIZATION_DESTINATION


@dataclass
class RegularizationAnnex:
    rows: List[RegularizationAnnexRow] = field(default_factory=list)
    total_vat: float = 0


class VATSettlementEngine:
    """
    Motor de cálculo do Modelo 7.
    Apenas documentos certificados entram no apuramento.
    """

    @staticmethod
    def select_sales(invoices: Iterable[Invoice], year: int, month: int) -> List[Invoice]:
        """Vendas válidas do período: certificadas e não anuladas."""
        return filter_invoices(invoices, year, month, certified_only=True)

    @staticmethod
    def select_regularizations(invoices: Iterable[Invoice], year: int, month: int) -> List[Invoice]:
        """Anulações e notas de crédito certificadas do período."""
        return filter_cancelled_or_credit(invoices, year, month, certified_only=True)

    @staticmethod
    def select_purchases(purchases: Iterable[Purchase], year: int, month: int) -> List[Purchase]:
        """Compras confirmadas do período (as pendentes não deduzem IVA)."""
        return filter_purchases(purchases, year, month, exclude_pending=True)

    @staticmethod
    def calculate_rate_bucket(invoices: Iterable[Invoice], rate: float) -> RateBucket:
        """
        Base e imposto das linhas a uma taxa.
        Apenas documentos de natureza venda (NC e recibos têm tratamento próprio).
        """
        bucket = RateBucket(rate=rate)
        for invoice in invoices:
            if document_nature(invoice.type) != DocumentNature.SALE:
                continue
            for item in invoice.items:
                if item.tax_rate != rate:
                    continue
                bucket.base += item.total
                bucket.tax += item.total * (item.tax_rate / 100)
        return bucket

    @staticmethod
    def calculate_deductible_tax(purchases: Iterable[Purchase]) -> float:
        """IVA dedutível: dedução integral do IVA suportado (sem pro-rata)."""
        return sum(p.tax_amount for p in purchases)

    @staticmethod
    def calculate_regularizations(invoices: Iterable[Invoice]) -> float:
        """IVA a favor do sujeito passivo por anulações e notas de crédito."""
        return sum(
            inv.tax_amount for inv in invoices
            if inv.type == InvoiceType.NC or inv.status == InvoiceStatus.CANCELLED
        )

    @staticmethod
    def calculate_final_result(favor_estado: float, favor_sujeito: float) -> tuple:
        """
        Apuramento final: imposto a pagar / imposto a recuperar.
        Validação: nunca os dois ao mesmo tempo.
        """
        to_pay = max(0, favor_estado - favor_sujeito)
        to_recover = max(0, favor_sujeito - favor_estado)
        return to_pay, to_recover

    @classmethod
    def calculate_general_regime(
        cls,
        invoices: Iterable[Invoice],
        purchases: Iterable[Purchase],
        year: int,
        month: int
    ) -> GeneralRegimeResult:
        """Calcula o quadro de apuramento do regime geral."""
        invoices = list(invoices)
        sales = cls.select_sales(invoices, year, month)
        regularization_docs = cls.select_regularizations(invoices, year, month)
        valid_purchases = cls.select_purchases(purchases, year, month)

        sales_14, sales_7, sales_5, sales_exempt = (
            cls.calculate_rate_bucket(sales, rate) for rate in VAT_RATES
        )

        deductible_tax = cls.calculate_deductible_tax(valid_purchases)
        regularizations_subject = cls.calculate_regularizations(regularization_docs)

        total_favor_estado = sales_14.tax + sales_7.tax + sales_5.tax
        total_favor_sujeito = deductible_tax + regularizations_subject

        to_pay, to_recover = cls.calculate_final_result(
            total_favor_estado, total_favor_sujeito
        )

        logger.debug(
            f"Modelo 7 {year}-{month:02d}: estado={total_favor_estado:.2f} "
            f"sujeito={total_favor_sujeito:.2f}"
        )

        return GeneralRegimeResult(
            sales_14=sales_14,
            sales_7=sales_7,
            sales_5=sales_5,
            sales_exempt=sales_exempt,
            deductible_tax=deductible_tax,
            regularizations_subject=regularizations_subject,
            total_favor_estado=total_favor_estado,
            total_favor_sujeito=total_favor_sujeito,
            to_pay=to_pay,
            to_recover=to_recover
        )

    @classmethod
    def calculate_simplified_regime(
        cls,
        invoices: Iterable[Invoice],
        year: int,
        month: int
    ) -> SimplifiedRegimeResult:
        """
        Regime simplificado: 7% sobre o volume de negócios dos documentos
        de caixa (FR, VD e RG) do período.
        """
        cash_docs = [
            inv for inv in cls.select_sales(invoices, year, month)
            if inv.type in CASH_DOCUMENT_TYPES
        ]
        turnover = sum(inv.total for inv in cash_docs)
        tax_due = turnover * SIMPLIFIED_RATE

        exempt_base = sum(
            item.total
            for inv in cash_docs
            for item in inv.items
            if item.tax_rate == 0
        )
        exempt_tax = exempt_base * SIMPLIFIED_EXEMPT_RATE

        return SimplifiedRegimeResult(
            turnover=turnover,
            tax_due=tax_due,
            exempt_base=exempt_base,
            exempt_tax=exempt_tax,
            total_payable=tax_due + exempt_tax
        )

    @classmethod
    def build_supplier_annex(
        cls,
        purchases: Iterable[Purchase],
        year: int,
        month: int
    ) -> SupplierAnnex:
        """Anexo de fornecedores: uma linha por compra confirmada do período."""
        annex = SupplierAnnex()
        for order, purchase in enumerate(cls.select_purchases(purchases, year, month), start=1):
            annex.rows.append(SupplierAnnexRow(
                order=order,
                nif=purchase.nif,
                name=purchase.supplier,
                document_type=purchase.type.value,
                date=purchase.date.isoformat(),
                document_number=purchase.document_number,
                total=purchase.total,
                base=purchase.subtotal,
                vat_supported=purchase.tax_amount,
                vat_deductible=purchase.tax_amount
            ))

        annex.total_base = sum(r.base for r in annex.rows)
        annex.total_vat = sum(r.vat_supported for r in annex.rows)
        annex.total_deductible = sum(r.vat_deductible for r in annex.rows)
        annex.total_documents = sum(r.total for r in annex.rows)
        return annex

    @classmethod
    def build_regularization_annex(
        cls,
        invoices: Iterable[Invoice],
        year: int,
        month: int
    ) -> RegularizationAnnex:
        """Anexo de regularizações: anulações e notas de crédito do período."""
        annex = RegularizationAnnex()
        reference_period = f"{year}-{month:02d}"
        for order, doc in enumerate(cls.select_regularizations(invoices, year, month), start=1):
            annex.rows.append(RegularizationAnnexRow(
                order=order,
                operation="Anulação",
                nif=doc.client_nif or FINAL_CONSUMER_NIF,
                name=doc.client_name,
                document_type=doc.type.value,
                date=doc.date.isoformat(),
                number=doc.number,
                total=doc.total,
                base=doc.subtotal,
                vat=doc.tax_amount,
                reference_period=reference_period
            ))

        annex.total_vat = sum(r.vat for r in annex.rows)
        return annex
