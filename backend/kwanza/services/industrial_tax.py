"""
Motor de cálculo do Imposto Industrial - Declaração Modelo 1.
Percorre o plano fixo de linhas da declaração: cada linha é calculada a
partir dos documentos do ano ou é manual (0 até existir valor manual).
"""
from typing import List, Dict, Any, Iterable, Optional
from dataclasses import dataclass, field, asdict
import logging

from .records import (
    Invoice, Purchase, PurchaseType, SalarySlip, ItemType, InvoiceType,
    DocumentNature, document_nature
)
from .period_filter import filter_invoices, filter_purchases
from .document_totals import to_local_currency


logger = logging.getLogger(__name__)

INDUSTRIAL_TAX_RATE = 0.25
EMPLOYER_SOCIAL_SECURITY_RATE = 0.08

# Repartição ilustrativa do FSE (apenas apresentação)
FSE_SPLIT = {
    'utilities': 0.10,
    'rent': 0.20,
    'fees': 0.15,
    'other': 0.55,
}

MANUAL_LINES = (
    '61.3', '61.4', '61.5', '62.2', '63',
    '64', '65', '66', '67', '68', '69',
    '72.3', '73',
    '75.3', '75.4', '75.5', '75.6', '75.8',
    '76', '77', '78', '79',
    'art18', 'art37', 'art45', 'deducoes', 'deducoesColecta',
)

COMPUTED_LINES = (
    '61.1/2', '61.7', '61.8', '62.1', '71', '72.1', '72.2', '72', '75',
)

Overrides = Dict[str, Optional[float]]


def resolve_line(code: str, computed: float, overrides: Optional[Overrides]) -> float:
    """
    Valor final de uma linha.
    Um valor manual presente ganha sempre, incluindo 0.
    None (ou chave ausente) significa "sem valor manual".
    """
    if overrides:
        value = overrides.get(code)
        if value is not None:
            return value
    return computed


@dataclass
class OperatingIncome:
    """Proveitos operacionais (61 a 63)."""
    product_sales: float
    goods_sales: float
    packaging: float
    price_subsidies: float
    returns: float
    discounts: float
    domestic_services: float
    foreign_services: float
    other_operating_income: float
    total: float


@dataclass
class OtherIncome:
    """Outros proveitos e ganhos (64 a 69)."""
    inventory_change: float
    own_work: float
    financial_income: float
    affiliates_income: float
    non_operating_income: float
    extraordinary_income: float
    total: float


@dataclass
class Costs:
    """Custos e perdas por natureza (71 a 79)."""
    cmvmc: float
    salaries: float
    social_security: float
    accident_insurance: float
    personnel_total: float
    depreciation: float
    fse_total: float
    fse_breakdown: Dict[str, float]
    taxes: float
    confidential_expenses: float
    membership_fees: float
    samples: float
    other_operating_costs: float
    financial_costs: float
    affiliates_costs: float
    non_operating_costs: float
    extraordinary_costs: float
    total: float


@dataclass
class IndustrialTaxResult:
    """Resultado completo do Modelo 1 para um ano."""
    year: int
    operating_income: OperatingIncome
    other_income: OtherIncome
    total_income: float
    costs: Costs
    result_before_tax: float
    add_backs: float
    deductions: float
    taxable_profit: float
    assessed_tax: float
    collection_deductions: float
    tax_payable: float
    lines: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ComparativeResult:
    """Colunas do ano corrente (com valores manuais) e do ano anterior."""
    current: IndustrialTaxResult
    previous: IndustrialTaxResult


class IndustrialTaxEngine:
    """
    Motor de cálculo do Modelo 1.
    Vendas: documentos de natureza venda, certificados e não anulados.
    Compras: todas as do ano, qualquer estado (regime de competência).
    """

    @staticmethod
    def select_sales(invoices: Iterable[Invoice], year: int) -> List[Invoice]:
        return [
            inv for inv in filter_invoices(invoices, year, certified_only=True)
            if document_nature(inv.type) == DocumentNature.SALE
        ]

    @staticmethod
    def select_payroll(payroll: Iterable[SalarySlip], year: int) -> List[SalarySlip]:
        """Recibos sem ano atribuído contam em todos os anos."""
        return [s for s in payroll if s.year is None or s.year == year]

    @staticmethod
    def calculate_net_sales(invoices: Iterable[Invoice], item_type: ItemType) -> float:
        """
        Vendas líquidas de imposto por tipo de linha, em kwanzas.
        Fórmula: Σ total_linha / (1 + taxa/100)
        """
        return sum(
            to_local_currency(item.total / (1 + item.tax_rate / 100), inv.currency, inv.exchange_rate)
            for inv in invoices
            for item in inv.items
            if item.type == item_type
        )

    @staticmethod
    def calculate_returns(invoices: Iterable[Invoice], year: int) -> float:
        """
        Linha 61.7: Devoluções.
        Subtotal das notas de crédito do ano, convertido para kwanzas.
        """
        return sum(
            to_local_currency(inv.subtotal, inv.currency, inv.exchange_rate)
            for inv in filter_invoices(invoices, year, certified_only=True)
            if inv.type == InvoiceType.NC
        )

    @staticmethod
    def calculate_discounts(invoices: Iterable[Invoice]) -> float:
        """Linha 61.8: Σ subtotal × desconto global%, em kwanzas."""
        return sum(
            to_local_currency(inv.subtotal * (inv.global_discount / 100), inv.currency, inv.exchange_rate)
            for inv in invoices
        )

    @staticmethod
    def calculate_cmvmc(purchases: Iterable[Purchase]) -> float:
        """Linha 71: Σ subtotal das compras que não são recibos (REC)."""
        return sum(p.subtotal for p in purchases if p.type != PurchaseType.REC)

    @staticmethod
    def calculate_fse(purchases: Iterable[Purchase]) -> float:
        """Linha 75: Σ subtotal dos recibos (REC)."""
        return sum(p.subtotal for p in purchases if p.type == PurchaseType.REC)

    @staticmethod
    def calculate_fse_breakdown(fse_total: float) -> Dict[str, float]:
        return {key: fse_total * share for key, share in FSE_SPLIT.items()}

    @staticmethod
    def calculate_taxable_profit(result: float, add_backs: float, deductions: float) -> float:
        """
        Lucro tributável.
        Fórmula: max(0, resultado + acréscimos - deduções)
        """
        return max(0, result + add_backs - deductions)

    @staticmethod
    def calculate_tax_payable(assessed_tax: float, collection_deductions: float) -> float:
        """Imposto a pagar: max(0, colecta - deduções à colecta)."""
        return max(0, assessed_tax - collection_deductions)

    @classmethod
    def calculate(
        cls,
        year: int,
        invoices: Iterable[Invoice],
        purchases: Iterable[Purchase],
        payroll: Iterable[SalarySlip] = (),
        overrides: Optional[Overrides] = None
    ) -> IndustrialTaxResult:
        """Calcula a declaração completa de um ano."""
        invoices = list(invoices)
        sales = cls.select_sales(invoices, year)
        year_purchases = filter_purchases(purchases, year, exclude_pending=False)
        slips = cls.select_payroll(payroll, year)

        lines: Dict[str, float] = {}

        def line(code: str, computed: float = 0) -> float:
            lines[code] = resolve_line(code, computed, overrides)
            return lines[code]

        # --- PROVEITOS OPERACIONAIS ---
        product_sales = line('61.1/2', cls.calculate_net_sales(sales, ItemType.PRODUCT))
        goods_sales = line('61.3')
        packaging = line('61.4')
        price_subsidies = line('61.5')
        returns = line('61.7', cls.calculate_returns(invoices, year))
        discounts = line('61.8', cls.calculate_discounts(sales))
        domestic_services = line('62.1', cls.calculate_net_sales(sales, ItemType.SERVICE))
        foreign_services = line('62.2')
        other_operating_income = line('63')

        operating_income = OperatingIncome(
            product_sales=product_sales,
            goods_sales=goods_sales,
            packaging=packaging,
            price_subsidies=price_subsidies,
            returns=returns,
            discounts=discounts,
            domestic_services=domestic_services,
            foreign_services=foreign_services,
            other_operating_income=other_operating_income,
            total=(
                product_sales + goods_sales + packaging + domestic_services
                + foreign_services + price_subsidies + other_operating_income
            ) - returns - discounts
        )

        # --- OUTROS PROVEITOS E GANHOS ---
        other_values = [line(code) for code in ('64', '65', '66', '67', '68', '69')]
        other_income = OtherIncome(*other_values, total=sum(other_values))

        total_income = operating_income.total + other_income.total

        # --- CUSTOS E PERDAS ---
        cmvmc = line('71', cls.calculate_cmvmc(year_purchases))

        gross_total = sum(s.gross_total for s in slips)
        salaries = line('72.1', gross_total)
        social_security = line('72.2', gross_total * EMPLOYER_SOCIAL_SECURITY_RATE)
        accident_insurance = line('72.3')
        personnel_total = line('72', salaries + social_security + accident_insurance)

        depreciation = line('73')
        fse_total = line('75', cls.calculate_fse(year_purchases))

        remaining = [line(code) for code in ('75.3', '75.4', '75.5', '75.6', '75.8', '76', '77', '78', '79')]

        costs = Costs(
            cmvmc=cmvmc,
            salaries=salaries,
            social_security=social_security,
            accident_insurance=accident_insurance,
            personnel_total=personnel_total,
            depreciation=depreciation,
            fse_total=fse_total,
            fse_breakdown=cls.calculate_fse_breakdown(fse_total),
            taxes=remaining[0],
            confidential_expenses=remaining[1],
            membership_fees=remaining[2],
            samples=remaining[3],
            other_operating_costs=remaining[4],
            financial_costs=remaining[5],
            affiliates_costs=remaining[6],
            non_operating_costs=remaining[7],
            extraordinary_costs=remaining[8],
            total=cmvmc + personnel_total + depreciation + fse_total + sum(remaining)
        )

        # --- RESULTADOS ---
        result_before_tax = total_income - costs.total

        add_backs = line('art18') + line('art37') + line('art45')
        deductions = line('deducoes')
        taxable_profit = cls.calculate_taxable_profit(result_before_tax, add_backs, deductions)

        assessed_tax = taxable_profit * INDUSTRIAL_TAX_RATE
        collection_deductions = line('deducoesColecta')
        tax_payable = cls.calculate_tax_payable(assessed_tax, collection_deductions)

        logger.debug(
            f"Modelo 1 {year}: resultado={result_before_tax:.2f} imposto={tax_payable:.2f}"
        )

        return IndustrialTaxResult(
            year=year,
            operating_income=operating_income,
            other_income=other_income,
            total_income=total_income,
            costs=costs,
            result_before_tax=result_before_tax,
            add_backs=add_backs,
            deductions=deductions,
            taxable_profit=taxable_profit,
            assessed_tax=assessed_tax,
            collection_deductions=collection_deductions,
            tax_payable=tax_payable,
            lines=lines
        )

    @classmethod
    def calculate_comparative(
        cls,
        year: int,
        invoices: Iterable[Invoice],
        purchases: Iterable[Purchase],
        payroll: Iterable[SalarySlip] = (),
        overrides: Optional[Overrides] = None
    ) -> ComparativeResult:
        """
        Ano corrente com valores manuais e ano anterior sempre calculado
        (registo histórico, sem valores manuais).
        """
        invoices = list(invoices)
        purchases = list(purchases)
        payroll = list(payroll)
        return ComparativeResult(
            current=cls.calculate(year, invoices, purchases, payroll, overrides),
            previous=cls.calculate(year - 1, invoices, purchases, payroll)
        )
