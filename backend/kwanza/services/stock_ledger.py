"""
Razão de stock.
Os movimentos são a única fonte de verdade; o stock de cada produto é
sempre derivado deles (saldo = entradas - saídas, sem mínimo em zero).
"""
from typing import List, Dict, Iterable, Optional
from dataclasses import dataclass, replace

from .records import (
    Invoice, Purchase, Product, StockMovement, StockMovementType,
    InvoiceStatus, PurchaseStatus, ItemType, STOCK_EFFECT
)


DEFAULT_WAREHOUSE = "main"


@dataclass
class StockBalance:
    product_id: str
    product_name: str = ""
    entries: float = 0
    exits: float = 0
    min_stock: float = 0

    @property
    def balance(self) -> float:
        return self.entries - self.exits

    @property
    def is_oversold(self) -> bool:
        """Saldo negativo: vendeu-se mais do que entrou (alerta)."""
        return self.balance < 0

    @property
    def is_depleted(self) -> bool:
        return self.balance == 0

    @property
    def below_minimum(self) -> bool:
        return self.balance < self.min_stock


def movements_from_invoices(invoices: Iterable[Invoice]) -> List[StockMovement]:
    """
    Movimentos das vendas certificadas e não anuladas.
    Apenas linhas de produto com produto associado; a direcção vem de STOCK_EFFECT.
    """
    movements = []
    for inv in invoices:
        if not inv.is_certified or inv.status == InvoiceStatus.CANCELLED:
            continue
        effect = STOCK_EFFECT[inv.type]
        if effect is None:
            continue
        for item in inv.items:
            if item.type != ItemType.PRODUCT or not item.product_id:
                continue
            movements.append(StockMovement(
                date=inv.date,
                type=effect,
                product_id=item.product_id,
                quantity=item.quantity,
                warehouse_id=inv.warehouse_id or DEFAULT_WAREHOUSE,
                document_ref=inv.number,
                product_name=item.description,
                notes=f"{inv.type.value} {inv.client_name}".strip()
            ))
    return movements


def movements_from_purchases(purchases: Iterable[Purchase]) -> List[StockMovement]:
    """Entradas das compras não anuladas (armazém da linha ou da compra)."""
    movements = []
    for purchase in purchases:
        if purchase.status == PurchaseStatus.CANCELLED:
            continue
        for item in purchase.items:
            if not item.product_id:
                continue
            movements.append(StockMovement(
                date=purchase.date,
                type=StockMovementType.ENTRY,
                product_id=item.product_id,
                quantity=item.quantity,
                warehouse_id=item.warehouse_id or purchase.warehouse_id or DEFAULT_WAREHOUSE,
                document_ref=purchase.document_number,
                product_name=item.description,
                notes=purchase.supplier
            ))
    return movements


def replay(
    movements: Iterable[StockMovement],
    products: Iterable[Product] = (),
    warehouse_id: Optional[str] = None
) -> Dict[str, StockBalance]:
    """
    Saldo por produto a partir da lista de movimentos.
    Produtos do catálogo sem movimentos aparecem com saldo zero.
    Função pura: chamadas repetidas sobre a mesma lista dão o mesmo resultado.
    """
    balances: Dict[str, StockBalance] = {}
    for product in products:
        balances[product.id] = StockBalance(
            product_id=product.id,
            product_name=product.name,
            min_stock=product.min_stock
        )

    for movement in movements:
        if warehouse_id is not None and movement.warehouse_id != warehouse_id:
            continue
        balance = balances.get(movement.product_id)
        if balance is None:
            balance = StockBalance(
                product_id=movement.product_id,
                product_name=movement.product_name
            )
            balances[movement.product_id] = balance
        if movement.type == StockMovementType.ENTRY:
            balance.entries += movement.quantity
        else:
            balance.exits += movement.quantity

    return balances


def refresh_stock_cache(
    products: Iterable[Product],
    balances: Dict[str, StockBalance]
) -> List[Product]:
    """Novos registos de produto com o stock igual ao saldo do razão."""
    refreshed = []
    for product in products:
        balance = balances.get(product.id)
        refreshed.append(replace(product, stock=balance.balance if balance else 0))
    return refreshed
