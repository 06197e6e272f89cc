"""
Tests para o motor do Modelo 1 (Imposto Industrial).
"""
import pytest
from dataclasses import replace
from datetime import date

from kwanza.services.records import (
    Invoice, InvoiceItem, InvoiceType, InvoiceStatus, ItemType,
    Purchase, PurchaseType, PurchaseStatus, SalarySlip
)
from kwanza.services.document_totals import apply_totals
from kwanza.services.industrial_tax import IndustrialTaxEngine, resolve_line
from kwanza.utils.validators import parse_override


def certified_sale(id, items, on=date(2024, 6, 1), **kwargs):
    invoice = apply_totals(Invoice(id=id, type=kwargs.pop("type", InvoiceType.FT),
                                   date=on, items=items, **kwargs))
    return replace(invoice, is_certified=True, status=kwargs.get("status", InvoiceStatus.PENDING))


def purchase(id, subtotal, type=PurchaseType.FT, on=date(2024, 6, 1), status=PurchaseStatus.PENDING):
    return Purchase(id=id, type=type, date=on, subtotal=subtotal, status=status)


class TestLineOverrides:
    """Valor manual presente ganha sempre; ausente ou None usa o calculado."""

    def test_override_replaces_computed_cost(self):
        """
        Compras FT do ano com subtotal 2000000 (linha 71).
        Valor manual 1800000 -> custos 1800000 ; sem valor manual -> 2000000
        """
        purchases = [purchase("p1", 1500000), purchase("p2", 500000, status=PurchaseStatus.PAID)]

        overridden = IndustrialTaxEngine.calculate(2024, [], purchases, overrides={'71': 1800000})
        assert overridden.costs.cmvmc == 1800000
        assert overridden.costs.total == 1800000

        computed = IndustrialTaxEngine.calculate(2024, [], purchases, overrides={})
        assert computed.costs.cmvmc == 2000000
        assert computed.costs.total == 2000000

    def test_empty_override_falls_back(self):
        purchases = [purchase("p1", 2000000)]
        result = IndustrialTaxEngine.calculate(
            2024, [], purchases, overrides={'71': parse_override("")}
        )
        assert result.costs.cmvmc == 2000000

    def test_zero_override_is_applied(self):
        """FSE calculado 500 ; valor manual 0 -> 0 (não volta ao calculado)."""
        purchases = [purchase("r1", 500, type=PurchaseType.REC)]

        computed = IndustrialTaxEngine.calculate(2024, [], purchases)
        assert computed.costs.fse_total == 500

        zeroed = IndustrialTaxEngine.calculate(2024, [], purchases, overrides={'75': 0})
        assert zeroed.costs.fse_total == 0
        assert zeroed.lines['75'] == 0

    def test_resolve_line(self):
        assert resolve_line('71', 100, None) == 100
        assert resolve_line('71', 100, {'71': None}) == 100
        assert resolve_line('71', 100, {'71': 0}) == 0
        assert resolve_line('71', 100, {'72': 50}) == 100

    def test_manual_lines_default_to_zero(self):
        result = IndustrialTaxEngine.calculate(2024, [], [])
        assert result.lines['73'] == 0
        assert result.other_income.total == 0

    def test_manual_line_enters_totals(self):
        result = IndustrialTaxEngine.calculate(2024, [], [], overrides={'66': 30000, '73': 10000})
        assert result.other_income.financial_income == 30000
        assert result.total_income == 30000
        assert result.costs.depreciation == 10000
        assert result.result_before_tax == 20000


class TestIncome:

    def test_product_sales_net_of_tax(self):
        """
        Linha 61.1/2: Σ total_linha / (1 + taxa/100)
        250000 / 1,14 = 219298,25
        """
        sales = [certified_sale("ft1", [InvoiceItem(id="a", quantity=10, unit_price=25000, tax_rate=14)])]
        result = IndustrialTaxEngine.calculate(2024, sales, [])
        assert result.operating_income.product_sales == pytest.approx(250000 / 1.14)

    def test_only_certified_sales_of_the_year(self):
        items = [InvoiceItem(id="a", type=ItemType.SERVICE, unit_price=100000, tax_rate=0)]
        invoices = [
            certified_sale("ft1", items),
            certified_sale("ft2", items, on=date(2023, 12, 31)),
            certified_sale("ft3", items, status=InvoiceStatus.CANCELLED),
            certified_sale("pp1", items, type=InvoiceType.PP),
            Invoice(id="draft", type=InvoiceType.FT, date=date(2024, 6, 1), items=items),
        ]
        result = IndustrialTaxEngine.calculate(2024, invoices, [])
        assert result.operating_income.domestic_services == 100000

    def test_returns_in_kwanza(self):
        """NC de 100 USD a 850 -> devoluções 85000."""
        invoices = [
            certified_sale("nc1", [InvoiceItem(id="a", unit_price=100, tax_rate=0)],
                           type=InvoiceType.NC, currency="USD", exchange_rate=850),
        ]
        result = IndustrialTaxEngine.calculate(2024, invoices, [])
        assert result.operating_income.returns == 85000
        assert result.operating_income.total == -85000

    def test_foreign_sale_and_full_credit_note_cancel_out(self):
        """
        Venda de 100 USD a 850 (isenta, desconto global 10%) e NC de 100 USD:
        vendas 85000 - devoluções 85000 - descontos 8500 = -8500
        """
        items = [InvoiceItem(id="a", unit_price=100, tax_rate=0)]
        invoices = [
            certified_sale("ft1", items, currency="USD", exchange_rate=850, global_discount=10),
            certified_sale("nc1", items, type=InvoiceType.NC, currency="USD", exchange_rate=850),
        ]
        income = IndustrialTaxEngine.calculate(2024, invoices, []).operating_income

        assert income.product_sales == pytest.approx(85000)
        assert income.returns == pytest.approx(85000)
        assert income.discounts == pytest.approx(8500)
        assert income.total == pytest.approx(-8500)

    def test_global_discounts(self):
        """Linha 61.8: 100000 × 5% = 5000"""
        invoices = [
            certified_sale("ft1", [InvoiceItem(id="a", unit_price=100000, tax_rate=0)], global_discount=5),
        ]
        result = IndustrialTaxEngine.calculate(2024, invoices, [])
        assert result.operating_income.discounts == pytest.approx(5000)


class TestCosts:

    def test_cmvmc_and_fse_split_by_type(self):
        purchases = [
            purchase("p1", 300000),
            purchase("r1", 100000, type=PurchaseType.REC),
            purchase("old", 999999, on=date(2023, 1, 1)),
        ]
        result = IndustrialTaxEngine.calculate(2024, [], purchases)

        assert result.costs.cmvmc == 300000
        assert result.costs.fse_total == 100000
        assert result.costs.fse_breakdown['rent'] == pytest.approx(20000)
        assert sum(result.costs.fse_breakdown.values()) == pytest.approx(100000)

    def test_personnel_costs(self):
        """
        Brutos: 100000 (2024) + 50000 (sem ano) ; 2023 ignorado
        salários 150000 ; segurança social 8% = 12000 ; total 162000
        """
        payroll = [
            SalarySlip(employee_id="e1", gross_total=100000, year=2024, month=5),
            SalarySlip(employee_id="e2", gross_total=50000),
            SalarySlip(employee_id="e3", gross_total=70000, year=2023, month=5),
        ]
        result = IndustrialTaxEngine.calculate(2024, [], [], payroll)

        assert result.costs.salaries == 150000
        assert result.costs.social_security == pytest.approx(12000)
        assert result.costs.personnel_total == pytest.approx(162000)


class TestTaxPayable:

    def test_tax_payable(self):
        """
        Serviços 1000000 (isento) - compras 400000 = resultado 600000
        lucro tributável = 600000 + 100000 - 50000 = 650000
        colecta = 650000 × 25% = 162500 ; a pagar = 162500 - 12500 = 150000
        """
        invoices = [
            certified_sale("ft1", [InvoiceItem(id="a", type=ItemType.SERVICE, unit_price=1000000, tax_rate=0)]),
        ]
        purchases = [purchase("p1", 400000)]
        overrides = {'art18': 100000, 'deducoes': 50000, 'deducoesColecta': 12500}

        result = IndustrialTaxEngine.calculate(2024, invoices, purchases, overrides=overrides)

        assert result.result_before_tax == 600000
        assert result.taxable_profit == 650000
        assert result.assessed_tax == 162500
        assert result.tax_payable == 150000

    def test_loss_has_no_tax(self):
        result = IndustrialTaxEngine.calculate(2024, [], [purchase("p1", 400000)])
        assert result.result_before_tax == -400000
        assert result.taxable_profit == 0
        assert result.tax_payable == 0

    def test_collection_deductions_never_negative(self):
        assert IndustrialTaxEngine.calculate_tax_payable(1000, 5000) == 0


class TestComparative:

    def test_previous_year_ignores_overrides(self):
        purchases = [purchase("p1", 200000), purchase("p0", 150000, on=date(2023, 3, 1))]
        result = IndustrialTaxEngine.calculate_comparative(
            2024, [], purchases, overrides={'71': 1000}
        )

        assert result.current.year == 2024
        assert result.current.costs.cmvmc == 1000
        assert result.previous.year == 2023
        assert result.previous.costs.cmvmc == 150000
