"""
Motor de totais de documentos (vendas e compras).
Recalcula os campos derivados de um documento a partir das suas linhas.
Funções puras: nunca alteram o documento recebido.
"""
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

from ..core.config import normalize_currency
from .records import (
    Invoice, InvoiceItem, ItemType, Purchase, PurchaseItem, RetentionType
)


# Retenção na fonte sobre serviços (constante legal, não configurável)
WITHHOLDING_RATE = 0.065
WITHHOLDING_THRESHOLD = 20000

RETENTION_FACTORS = {
    RetentionType.NONE: 0.0,
    RetentionType.CAT_50: 0.5,
    RetentionType.CAT_100: 1.0,
}


@dataclass
class DocumentTotals:
    """Campos derivados de um documento de venda."""
    subtotal: float
    tax_amount: float
    global_discount_value: float
    withholding_enabled: bool
    withholding_amount: float
    retention_amount: float
    total: float
    contra_value: float
    items: List[InvoiceItem]


@dataclass
class PurchaseTotals:
    """Campos derivados de um documento de compra."""
    subtotal: float
    tax_amount: float
    global_discount_value: float
    total: float
    items: List[PurchaseItem]


def _dimension(value: Optional[float]) -> float:
    return value if value and value > 0 else 1


def calculate_line_total(
    quantity: float,
    unit_price: float,
    discount: float = 0,
    length: float = 1,
    width: float = 1,
    height: float = 1
) -> float:
    """
    Total da linha (sem imposto).
    Fórmula: qtd × comprimento × largura × altura × preço × (1 - desconto/100)
    Dimensões nulas ou negativas contam como 1.
    """
    base = quantity * _dimension(length) * _dimension(width) * _dimension(height) * unit_price
    return base - base * (discount / 100)


def calculate_line_tax(line_total: float, tax_rate: float) -> float:
    return line_total * tax_rate / 100


def calculate_item_total(item: InvoiceItem) -> float:
    return calculate_line_total(
        item.quantity, item.unit_price, item.discount,
        item.length, item.width, item.height
    )


def should_withhold(items: Iterable[InvoiceItem], subtotal: float) -> bool:
    """
    Retenção na fonte automática: pelo menos um serviço e subtotal > 20000.
    O limite é exclusivo e não depende da moeda.
    """
    has_service = any(item.type == ItemType.SERVICE for item in items)
    return has_service and subtotal > WITHHOLDING_THRESHOLD


def calculate_retention(tax_amount: float, retention_type: RetentionType) -> float:
    """Cativação do IVA: 0, 50% ou 100% do imposto liquidado."""
    return tax_amount * RETENTION_FACTORS[retention_type]


def calculate_document_total(
    subtotal: float,
    tax_amount: float,
    global_discount_value: float,
    withholding_amount: float,
    retention_amount: float
) -> float:
    """
    Total do documento.
    Fórmula: subtotal + imposto - desconto global - retenção - cativação
    """
    return subtotal + tax_amount - global_discount_value - withholding_amount - retention_amount


def recompute(invoice: Invoice) -> DocumentTotals:
    """
    Recalcula todos os campos derivados de um documento de venda.
    Em documentos certificados a decisão de retenção fica congelada
    (activa se o documento já tinha retenção gravada).
    """
    items = [replace(item, total=calculate_item_total(item)) for item in invoice.items]

    subtotal = sum(item.total for item in items)
    tax_amount = sum(calculate_line_tax(item.total, item.tax_rate) for item in items)

    if invoice.is_certified:
        withholding_enabled = invoice.withholding_amount > 0
    else:
        withholding_enabled = should_withhold(items, subtotal)

    withholding_amount = subtotal * WITHHOLDING_RATE if withholding_enabled else 0
    retention_amount = calculate_retention(tax_amount, invoice.retention_type)
    global_discount_value = subtotal * (invoice.global_discount / 100)

    total = calculate_document_total(
        subtotal, tax_amount, global_discount_value,
        withholding_amount, retention_amount
    )

    return DocumentTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        global_discount_value=global_discount_value,
        withholding_enabled=withholding_enabled,
        withholding_amount=withholding_amount,
        retention_amount=retention_amount,
        total=total,
        contra_value=total * invoice.exchange_rate,
        items=items
    )


def apply_totals(invoice: Invoice, totals: Optional[DocumentTotals] = None) -> Invoice:
    """Cópia do documento com os campos derivados actualizados."""
    if totals is None:
        totals = recompute(invoice)
    return replace(
        invoice,
        items=totals.items,
        subtotal=totals.subtotal,
        tax_amount=totals.tax_amount,
        withholding_amount=totals.withholding_amount,
        retention_amount=totals.retention_amount,
        total=totals.total,
        contra_value=totals.contra_value
    )


def compute_purchase_totals(purchase: Purchase) -> PurchaseTotals:
    """
    Totais de uma compra. Nas linhas de compra o total inclui o imposto.
    Fórmula: total = subtotal + imposto - desconto global
    """
    items = []
    subtotal = 0
    for item in purchase.items:
        base = calculate_line_total(
            item.quantity, item.unit_price, item.discount,
            item.length, item.width, item.height
        )
        tax = calculate_line_tax(base, item.tax_rate)
        items.append(replace(item, tax_amount=tax, total=base + tax))
        subtotal += base

    tax_amount = sum(item.tax_amount for item in items)
    global_discount_value = subtotal * (purchase.global_discount / 100)

    return PurchaseTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        global_discount_value=global_discount_value,
        total=subtotal + tax_amount - global_discount_value,
        items=items
    )


def apply_purchase_totals(purchase: Purchase) -> Purchase:
    totals = compute_purchase_totals(purchase)
    return replace(
        purchase,
        items=totals.items,
        subtotal=totals.subtotal,
        tax_amount=totals.tax_amount,
        total=totals.total
    )


def to_local_currency(amount: float, currency: Optional[str], exchange_rate: float) -> float:
    """Converte para kwanzas com o câmbio do próprio documento."""
    if normalize_currency(currency) == "AOA":
        return amount
    return amount * (exchange_rate or 1)


def round_currency(value: float) -> float:
    """Arredondamento para apresentação (2 casas decimais)."""
    return round(value, 2)
