"""
Tests do razão de stock.
"""
from datetime import date

from kwanza.services.records import (
    Invoice, InvoiceItem, InvoiceType, InvoiceStatus, ItemType, Product,
    Purchase, PurchaseItem, PurchaseType, PurchaseStatus, StockMovement,
    StockMovementType
)
from kwanza.services.stock_ledger import (
    DEFAULT_WAREHOUSE, movements_from_invoices, movements_from_purchases,
    replay, refresh_stock_cache
)


def sale(id, quantity, type=InvoiceType.FT, certified=True, **kwargs):
    return Invoice(
        id=id, type=type, date=date(2024, 3, 1), number=f"{type.value} A 2024/{id}",
        is_certified=certified, status=kwargs.pop("status", InvoiceStatus.PENDING),
        items=[InvoiceItem(id=f"{id}-1", product_id="p1", quantity=quantity, description="Cimento")],
        **kwargs
    )


def purchase(id, quantity, status=PurchaseStatus.PAID, **kwargs):
    return Purchase(
        id=id, type=PurchaseType.FT, date=date(2024, 2, 1), status=status,
        document_number=f"FT {id}",
        items=[PurchaseItem(id=f"{id}-1", product_id="p1", quantity=quantity, **kwargs)]
    )


class TestStockLedger:
    """Saldo = Σ entradas - Σ saídas"""

    def test_balance_from_documents(self):
        """
        Compra paga 5, compra anulada 100 (ignorada)
        FT 3 (saída), NC 1 (entrada), PP 100 (sem efeito), rascunho 50 (ignorado)
        saldo = 5 + 1 - 3 = 3
        """
        invoices = [
            sale("1", 3),
            sale("2", 1, type=InvoiceType.NC),
            sale("3", 100, type=InvoiceType.PP),
            sale("4", 50, certified=False, status=InvoiceStatus.DRAFT),
        ]
        purchases = [purchase("c1", 5), purchase("c2", 100, status=PurchaseStatus.CANCELLED)]
        movements = movements_from_purchases(purchases) + movements_from_invoices(invoices)

        balances = replay(movements)
        assert balances["p1"].entries == 6
        assert balances["p1"].exits == 3
        assert balances["p1"].balance == 3

    def test_cancelled_sale_does_not_move_stock(self):
        invoices = [sale("1", 3, status=InvoiceStatus.CANCELLED)]
        assert movements_from_invoices(invoices) == []

    def test_receipt_settling_invoice_does_not_move_stock(self):
        """FT 3 (saída) liquidada por RG com a mesma linha: saldo -3, não -6"""
        invoices = [
            sale("1", 3),
            sale("2", 3, type=InvoiceType.RG, status=InvoiceStatus.PAID, source_invoice_id="1"),
        ]
        movements = movements_from_invoices(invoices)

        assert [m.document_ref for m in movements] == ["FT A 2024/1"]
        assert replay(movements)["p1"].balance == -3

    def test_services_do_not_move_stock(self):
        invoice = sale("1", 3)
        invoice.items[0].type = ItemType.SERVICE
        assert movements_from_invoices([invoice]) == []

    def test_replay_is_idempotent(self):
        movements = movements_from_invoices([sale("1", 3)]) + movements_from_purchases([purchase("c1", 10)])
        first = replay(movements)
        second = replay(movements)
        assert first["p1"].balance == second["p1"].balance == 7

    def test_oversold_balance_is_kept_negative(self):
        balances = replay(movements_from_invoices([sale("1", 2)]))
        assert balances["p1"].balance == -2
        assert balances["p1"].is_oversold
        assert not balances["p1"].is_depleted

    def test_depleted(self):
        movements = movements_from_invoices([sale("1", 4)]) + movements_from_purchases([purchase("c1", 4)])
        balances = replay(movements)
        assert balances["p1"].is_depleted
        assert not balances["p1"].is_oversold

    def test_products_without_movements(self):
        products = [Product(id="p9", name="Areia", min_stock=10)]
        balances = replay([], products)
        assert balances["p9"].balance == 0
        assert balances["p9"].below_minimum

    def test_warehouse_filter(self):
        movements = movements_from_purchases([
            purchase("c1", 5, warehouse_id="luanda"),
            purchase("c2", 7),
        ])
        assert movements[1].warehouse_id == DEFAULT_WAREHOUSE
        assert replay(movements, warehouse_id="luanda")["p1"].balance == 5

    def test_manual_adjustment(self):
        movements = [
            StockMovement(date=date(2024, 1, 1), type=StockMovementType.ENTRY, product_id="p1", quantity=12),
            StockMovement(date=date(2024, 1, 2), type=StockMovementType.EXIT, product_id="p1", quantity=2),
        ]
        assert replay(movements)["p1"].balance == 10

    def test_refresh_stock_cache(self):
        products = [Product(id="p1", name="Cimento", stock=999), Product(id="p2", name="Areia", stock=5)]
        balances = replay(movements_from_purchases([purchase("c1", 8)]), products)

        refreshed = refresh_stock_cache(products, balances)
        assert [p.stock for p in refreshed] == [8, 0]
        # Os registos originais não mudam
        assert products[0].stock == 999
