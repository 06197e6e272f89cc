"""
Tests dos endpoints HTTP (TestClient sobre SQLite em memória).
"""
import pytest

API = "/api/v1"


def create_series(client, code="A", year=2024):
    response = client.post(f"{API}/series/", json={"code": code, "year": year})
    assert response.status_code == 201
    return response.json()["id"]


def create_draft(client, series_id, **overrides):
    payload = {
        "type": "FT",
        "date": "2024-03-15",
        "client_name": "Cliente Final",
        "series_id": series_id,
        "items": [{"quantity": 10, "unit_price": 25000, "tax_rate": 14}],
    }
    payload.update(overrides)
    response = client.post(f"{API}/documents/", json=payload)
    assert response.status_code == 201
    return response.json()


def create_certified(client, series_id, **overrides):
    draft = create_draft(client, series_id, **overrides)
    response = client.post(f"{API}/documents/{draft['id']}/certify", json={})
    assert response.status_code == 200
    return response.json()


def create_purchase(client, **overrides):
    payload = {
        "type": "FT",
        "date": "2024-05-01",
        "supplier": "Fornecedor Lda",
        "document_number": "FT 2024/88",
        "items": [{"quantity": 1, "unit_price": 2000000, "tax_rate": 14}],
    }
    payload.update(overrides)
    response = client.post(f"{API}/purchases/", json=payload)
    assert response.status_code == 201
    return response.json()


class TestApplication:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_process_time_header(self, client):
        assert "X-Process-Time" in client.get("/health").headers


class TestDocumentsAPI:

    def test_create_draft_recomputes_totals(self, client):
        series_id = create_series(client)
        draft = create_draft(client, series_id)

        assert draft["status"] == "DRAFT"
        assert draft["number"] == ""
        assert draft["items"][0]["total"] == 250000
        assert draft["total"] == 285000

    def test_invalid_tax_rate(self, client):
        series_id = create_series(client)
        response = client.post(f"{API}/documents/", json={
            "type": "FT", "date": "2024-03-15", "series_id": series_id,
            "items": [{"quantity": 1, "unit_price": 100, "tax_rate": 16}],
        })
        assert response.status_code == 422

    def test_unknown_series(self, client):
        response = client.post(f"{API}/documents/", json={"type": "FT", "date": "2024-03-15", "series_id": "x"})
        assert response.status_code == 404

    def test_recompute_preview(self, client):
        """Serviço de 25000: retenção 1625 ; total 26875"""
        response = client.post(f"{API}/documents/recompute", json={
            "type": "FT", "date": "2024-03-15",
            "items": [{"type": "SERVICE", "quantity": 1, "unit_price": 25000, "tax_rate": 14}],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["withholding_enabled"] is True
        assert data["withholding_amount"] == pytest.approx(1625)
        assert data["total"] == pytest.approx(26875)

    def test_certify(self, client):
        series_id = create_series(client)
        invoice = create_certified(client, series_id)

        assert invoice["number"] == "FT A 2024/1"
        assert invoice["is_certified"] is True
        assert invoice["status"] == "PENDING"
        assert len(invoice["hash"]) == 64

        series = client.get(f"{API}/series/{series_id}").json()
        assert series["sequences"] == {"FT": 1}

        second = create_certified(client, series_id, date="2024-03-16")
        assert second["number"] == "FT A 2024/2"

    def test_certify_twice(self, client):
        series_id = create_series(client)
        invoice = create_certified(client, series_id)

        response = client.post(f"{API}/documents/{invoice['id']}/certify", json={})
        assert response.status_code == 400
        assert "Documento já certificado" in response.json()["detail"]

    def test_certify_without_items(self, client):
        series_id = create_series(client)
        draft = create_draft(client, series_id, items=[])

        response = client.post(f"{API}/documents/{draft['id']}/certify", json={})
        assert response.status_code == 400
        assert response.json()["detail"] == ["Adicione pelo menos um item"]

    def test_delete(self, client):
        series_id = create_series(client)
        certified = create_certified(client, series_id)
        assert client.delete(f"{API}/documents/{certified['id']}").status_code == 400

        draft = create_draft(client, series_id)
        assert client.delete(f"{API}/documents/{draft['id']}").status_code == 204
        assert client.get(f"{API}/documents/{draft['id']}").status_code == 404

    def test_cancel(self, client):
        series_id = create_series(client)
        invoice = create_certified(client, series_id)

        response = client.post(f"{API}/documents/{invoice['id']}/cancel", json={"reason": "Erro de preço"})
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == invoice["id"]
        assert data["status"] == "CANCELLED"
        assert data["cancellation_reason"] == "Erro de preço"
        assert data["number"] == "FT A 2024/1"

        assert client.get(f"{API}/documents/", params={"type": "NC"}).json() == []
        assert client.get(f"{API}/series/{series_id}").json()["sequences"] == {"FT": 1}

    def test_cancel_twice(self, client):
        series_id = create_series(client)
        invoice = create_certified(client, series_id)
        client.post(f"{API}/documents/{invoice['id']}/cancel", json={"reason": "Erro"})

        response = client.post(f"{API}/documents/{invoice['id']}/cancel", json={"reason": "Erro"})
        assert response.status_code == 400
        assert response.json()["detail"] == ["Documento já anulado"]

    def test_invalid_client_nif(self, client):
        series_id = create_series(client)
        response = client.post(f"{API}/documents/", json={
            "type": "FT", "date": "2024-03-15", "series_id": series_id, "client_nif": "12345",
        })
        assert response.status_code == 422

        draft = create_draft(client, series_id, client_nif="5417048598")
        assert draft["client_nif"] == "5417048598"

    def test_liquidate(self, client):
        series_id = create_series(client)
        invoice = create_certified(client, series_id)

        response = client.post(f"{API}/documents/{invoice['id']}/liquidate", json={
            "amount": 100000, "payment_method": "CASH", "payment_date": "2024-03-20",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["invoice"]["status"] == "PARTIAL"
        assert data["invoice"]["paid_amount"] == 100000
        assert data["receipt"]["type"] == "RG"
        assert data["receipt"]["number"] == "RG A 2024/1"
        assert data["receipt"]["total"] == 100000

    def test_list_by_period(self, client):
        series_id = create_series(client)
        create_draft(client, series_id)
        create_draft(client, series_id, date="2024-04-02")

        march = client.get(f"{API}/documents/", params={"year": 2024, "month": 3}).json()
        assert len(march) == 1


class TestReportsAPI:

    def test_modelo7_general(self, client):
        """FT certificada com IVA 35000 ; recibo fora das bases -> a pagar 35000"""
        series_id = create_series(client)
        invoice = create_certified(client, series_id)
        client.post(f"{API}/documents/{invoice['id']}/liquidate", json={
            "amount": 100000, "payment_method": "CASH", "payment_date": "2024-03-20",
        })
        create_draft(client, series_id)

        response = client.get(f"{API}/reports/modelo7", params={"year": 2024, "month": 3})
        assert response.status_code == 200
        result = response.json()["result"]
        assert result["sales_14"]["tax"] == 35000
        assert result["to_pay"] == 35000
        assert result["to_recover"] == 0

    def test_modelo7_simplified(self, client):
        """FR de 114000 -> 114000 × 7% = 7980"""
        series_id = create_series(client)
        create_certified(client, series_id, type="FR", items=[{"quantity": 1, "unit_price": 100000, "tax_rate": 14}])

        response = client.get(f"{API}/reports/modelo7", params={"year": 2024, "month": 3, "regime": "simplified"})
        result = response.json()["result"]
        assert result["turnover"] == 114000
        assert result["tax_due"] == 7980

    def test_modelo7_annexes(self, client):
        create_purchase(client, date="2024-03-02", status="PAID")
        data = client.get(f"{API}/reports/modelo7/annexes", params={"year": 2024, "month": 3}).json()

        assert len(data["suppliers"]["rows"]) == 1
        assert data["suppliers"]["total_vat"] == 280000
        assert data["regularizations"]["rows"] == []

    def test_modelo1_override(self, client):
        """Compras de 2000000 ; valor manual 1800000 na linha 71"""
        create_purchase(client)

        overridden = client.post(f"{API}/reports/modelo1", json={"year": 2024, "overrides": {"71": "1800000"}})
        assert overridden.status_code == 200
        assert overridden.json()["current"]["costs"]["cmvmc"] == 1800000
        assert overridden.json()["previous"]["year"] == 2023

        cleared = client.post(f"{API}/reports/modelo1", json={"year": 2024, "overrides": {"71": ""}})
        assert cleared.json()["current"]["costs"]["cmvmc"] == 2000000

    def test_modelo1_unknown_line(self, client):
        response = client.post(f"{API}/reports/modelo1", json={"year": 2024, "overrides": {"99": 1}})
        assert response.status_code == 422

    def test_modelo1_personnel_costs(self, client):
        """Bruto 100000 -> salários 100000 + segurança social 8000"""
        response = client.post(f"{API}/payroll/", json={
            "employee_id": "e1", "year": 2024, "month": 1, "gross_total": 100000,
        })
        assert response.status_code == 201

        data = client.post(f"{API}/reports/modelo1", json={"year": 2024, "comparative": False}).json()
        assert "previous" not in data
        assert data["current"]["costs"]["personnel_total"] == 108000

    def test_stamp_duty(self, client):
        """RG de 100000 -> imposto de selo 1000"""
        series_id = create_series(client)
        invoice = create_certified(client, series_id)
        client.post(f"{API}/documents/{invoice['id']}/liquidate", json={
            "amount": 100000, "payment_method": "CASH", "payment_date": "2024-03-20",
        })

        result = client.get(f"{API}/reports/stamp-duty", params={"year": 2024, "month": 3}).json()["result"]
        assert len(result["rows"]) == 1
        assert result["rows"][0]["document_type"] == "RG"
        assert result["total_tax"] == 1000

    def test_saft_summary(self, client):
        series_id = create_series(client)
        create_certified(client, series_id)

        response = client.get(f"{API}/reports/saft-summary", params={"start": "2024-03-01", "end": "2024-03-31"})
        assert response.status_code == 200
        assert response.json()["number_of_entries"] == 1
        assert response.json()["total_credit"] == 285000

    def test_saft_summary_invalid_period(self, client):
        response = client.get(f"{API}/reports/saft-summary", params={"start": "2024-03-01", "end": "2024-04-30"})
        assert response.status_code == 400
        assert response.json()["detail"] == ["O SAF-T deve ser gerado para apenas um mês de cada vez."]


class TestTreasuryAPI:

    def create_register(self, client, name, initial_balance=0):
        response = client.post(f"{API}/treasury/registers", json={"name": name, "initial_balance": initial_balance})
        assert response.status_code == 201
        return response.json()["id"]

    def test_transfer(self, client):
        """Transferência de 300: origem 1000 -> 700 ; destino 0 -> 300"""
        source = self.create_register(client, "Caixa Principal", 1000)
        target = self.create_register(client, "Caixa Loja")

        response = client.post(f"{API}/treasury/movements", json={
            "operation": "TRANSFER", "amount": 300,
            "source_register_id": source, "target_register_id": target,
        })
        assert response.status_code == 201
        legs = response.json()
        assert [leg["type"] for leg in legs] == ["TRANSFER_OUT", "TRANSFER_IN"]
        assert legs[0]["transfer_id"] == legs[1]["transfer_id"]

        balances = {b["cash_register_id"]: b["balance"] for b in client.get(f"{API}/treasury/balances").json()}
        assert balances == {source: 700, target: 300}
        assert client.get(f"{API}/treasury/transfers/orphans").json() == []

    def test_invalid_amount(self, client):
        source = self.create_register(client, "Caixa Principal")
        response = client.post(f"{API}/treasury/movements", json={
            "operation": "ENTRY", "amount": 0, "source_register_id": source,
        })
        assert response.status_code == 400
        assert response.json()["detail"] == ["Valor inválido"]

    def test_unknown_register(self, client):
        response = client.post(f"{API}/treasury/movements", json={
            "operation": "ENTRY", "amount": 10, "source_register_id": "nope",
        })
        assert response.status_code == 404

    def test_paid_sale_enters_register(self, client):
        register = self.create_register(client, "Caixa Principal")
        series_id = create_series(client)
        create_certified(client, series_id, type="FR", payment_method="CASH", cash_register_id=register)

        balances = client.get(f"{API}/treasury/balances").json()
        assert balances[0]["entries"] == 285000
        movements = client.get(f"{API}/treasury/movements").json()
        assert movements[0]["source"] == "SALES"


class TestStockAPI:

    def test_stock_from_purchases_and_adjustments(self, client):
        """Compra de 5 unidades e saída manual de 2 -> saldo 3"""
        response = client.post(f"{API}/stock/products", json={"id": "p1", "name": "Cimento", "min_stock": 1})
        assert response.status_code == 201

        create_purchase(client, status="PAID", items=[
            {"product_id": "p1", "quantity": 5, "unit_price": 1000, "tax_rate": 14}
        ])

        response = client.post(f"{API}/stock/adjustments", json={
            "product_id": "p1", "type": "EXIT", "quantity": 2,
        })
        assert response.status_code == 201
        assert response.json()["balance"] == 3

        products = client.get(f"{API}/stock/products").json()
        assert products[0]["stock"] == 3

    def test_oversold_sale(self, client):
        client.post(f"{API}/stock/products", json={"id": "p1", "name": "Cimento"})
        series_id = create_series(client)
        create_certified(client, series_id, items=[
            {"product_id": "p1", "quantity": 4, "unit_price": 1000, "tax_rate": 14}
        ])

        balances = client.get(f"{API}/stock/balances").json()
        assert balances[0]["balance"] == -4
        assert balances[0]["is_oversold"] is True

    def test_duplicate_product(self, client):
        client.post(f"{API}/stock/products", json={"id": "p1", "name": "Cimento"})
        response = client.post(f"{API}/stock/products", json={"id": "p1", "name": "Cimento"})
        assert response.status_code == 400

    def test_adjustment_unknown_product(self, client):
        response = client.post(f"{API}/stock/adjustments", json={"product_id": "x", "type": "ENTRY", "quantity": 1})
        assert response.status_code == 404


class TestLifecycleEffectsAPI:
    """Efeitos da anulação e da liquidação nos relatórios e nos saldos."""

    def create_register(self, client, name="Caixa Principal"):
        response = client.post(f"{API}/treasury/registers", json={"name": name})
        assert response.status_code == 201
        return response.json()["id"]

    def register_balance(self, client, register):
        balances = {b["cash_register_id"]: b for b in client.get(f"{API}/treasury/balances").json()}
        return balances[register]["balance"]

    def test_cancelled_paid_sale_leaves_no_trace(self, client):
        """
        FR de 2 × 50000 a 14% (caixa r1, produto p1), anulada:
        caixa 0 ; stock 0 ; IVA regularizado 14000 ; proveitos do Modelo 1 0
        """
        register = self.create_register(client)
        client.post(f"{API}/stock/products", json={"id": "p1", "name": "Cimento"})
        series_id = create_series(client)
        invoice = create_certified(
            client, series_id, type="FR", payment_method="CASH", cash_register_id=register,
            items=[{"product_id": "p1", "quantity": 2, "unit_price": 50000, "tax_rate": 14}]
        )
        assert invoice["status"] == "PAID"
        assert self.register_balance(client, register) == 114000

        response = client.post(f"{API}/documents/{invoice['id']}/cancel", json={"reason": "Desistência"})
        assert response.status_code == 200

        assert self.register_balance(client, register) == 0

        stock = client.get(f"{API}/stock/balances").json()
        assert stock[0]["balance"] == 0

        result = client.get(f"{API}/reports/modelo7", params={"year": 2024, "month": 3}).json()["result"]
        assert result["sales_14"]["tax"] == 0
        assert result["regularizations_subject"] == 14000
        assert result["to_recover"] == 14000
        assert result["to_pay"] == 0

        modelo1 = client.post(f"{API}/reports/modelo1", json={"year": 2024, "comparative": False}).json()
        assert modelo1["current"]["operating_income"]["total"] == 0

        stamp = client.get(f"{API}/reports/stamp-duty", params={"year": 2024, "month": 3}).json()["result"]
        assert stamp["rows"] == []

    def test_liquidation_enters_register_through_receipt(self, client):
        """FT de 285000 pendente ; recibo de 100000 na caixa -> saldo 100000"""
        register = self.create_register(client)
        series_id = create_series(client)
        invoice = create_certified(client, series_id)
        assert self.register_balance(client, register) == 0

        response = client.post(f"{API}/documents/{invoice['id']}/liquidate", json={
            "amount": 100000, "payment_method": "CASH", "cash_register_id": register,
            "payment_date": "2024-03-20",
        })
        assert response.status_code == 200

        assert self.register_balance(client, register) == 100000
        movements = client.get(f"{API}/treasury/movements").json()
        assert [m["document_ref"] for m in movements] == ["RG A 2024/1"]

    def test_invoice_with_register_settled_by_receipt_counts_once(self, client):
        """
        FT de 285000 com meio de pagamento e caixa, liquidada na totalidade
        por recibo na mesma caixa: saldo 285000 (não 570000)
        """
        register = self.create_register(client)
        series_id = create_series(client)
        invoice = create_certified(client, series_id, payment_method="CASH", cash_register_id=register)

        response = client.post(f"{API}/documents/{invoice['id']}/liquidate", json={
            "amount": 285000, "payment_method": "CASH", "cash_register_id": register,
            "payment_date": "2024-03-20",
        })
        assert response.json()["invoice"]["status"] == "PAID"

        assert self.register_balance(client, register) == 285000
