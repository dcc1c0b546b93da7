from decimal import Decimal

import pytest

from payment_flow.config import Settings
from payment_flow.data_models import IndexPeriod
from payment_flow.index_store import IndexStore
from payment_flow_web.app import create_app


@pytest.fixture
def store(tmp_path):
    return IndexStore(f"sqlite:///{tmp_path / 'index.sqlite3'}")


@pytest.fixture
def client(store):
    app = create_app(Settings(), index_store=store)
    app.config["TESTING"] = True
    return app.test_client()


def test_calculate(client, reference_payload):
    response = client.post("/api/calculate", json=reference_payload)
    assert response.status_code == 200
    data = response.get_json()
    assert Decimal(data["result"]["total_paid"]) == Decimal("500000")
    assert data["result"]["index"] is None
    assert [block["key"] for block in data["summary"]][:3] == ["down_payment", "construction_start", "monthly"]
    assert data["summary"][2]["primary_line"] == "24x de R$ 12.500,00"


def test_calculate_with_stale_index(client, store, reference_payload):
    store.set_value(IndexPeriod(2025, 1), Decimal("2500"))
    response = client.post("/api/calculate", json=dict(reference_payload, index_period="2025-03"))
    result = response.get_json()["result"]
    assert Decimal(result["total_in_index_units"]) == Decimal("200")
    assert result["index"]["is_stale"] is True
    assert "03/2025" in result["index_staleness_warning"]


def test_calculate_rejects_bad_input(client, reference_payload):
    del reference_payload["property_value"]
    response = client.post("/api/calculate", json=reference_payload)
    assert response.status_code == 400
    assert "property value" in response.get_json()["error"]

    response = client.post("/api/calculate", data="not json", content_type="text/plain")
    assert response.status_code == 400


def test_export_txt(client, reference_payload):
    response = client.post("/api/export/txt", json=dict(reference_payload, agent_name="Ana Souza"))
    assert response.status_code == 200
    assert response.content_type.startswith("text/plain")
    disposition = response.headers["Content-Disposition"]
    assert disposition.startswith('attachment; filename="proposta_Maria_da_Silva_')
    assert disposition.endswith('.txt"')
    assert "Corretor: Ana Souza" in response.data.decode("cp1252")


def test_export_pdf(client, reference_payload):
    response = client.post(
        "/api/export/pdf", json=dict(reference_payload, agent_name="Ana Souza", agent_license="12345-F")
    )
    assert response.status_code == 200
    assert response.mimetype == "application/pdf"
    assert response.data.startswith(b"%PDF")


def test_export_requires_agent_and_valid_proposal(client, reference_payload):
    assert client.post("/api/export/pdf", json=reference_payload).status_code == 400
    response = client.post("/api/export/pdf", json=dict(reference_payload, agent_name="Ana", client_name=""))
    assert response.status_code == 400
    assert "Nome do cliente" in response.get_json()["error"]
    assert client.post("/api/export/docx", json=dict(reference_payload, agent_name="Ana")).status_code == 404


def test_index_endpoint(client, store):
    assert client.get("/api/index?period=2025-01").status_code == 404
    store.set_value(IndexPeriod(2025, 1), Decimal("2500"))
    data = client.get("/api/index?period=2025-02").get_json()
    assert data["name"] == "CUB/SC"
    assert data["period"] == "01/2025"
    assert data["is_stale"] is True
    assert Decimal(data["value"]) == Decimal("2500")


def test_currencies(client):
    data = client.get("/api/currencies").get_json()
    assert [c["code"] for c in data] == ["BRL", "USD", "EUR", "GBP"]
    assert data[2]["symbol"] == "€"


def test_calculate_rejects_wrongly_typed_fields(client, reference_payload):
    payload = dict(reference_payload, monthly=dict(reference_payload["monthly"], count=[1]))
    response = client.post("/api/calculate", json=payload)
    assert response.status_code == 400
    assert "Malformed proposal" in response.get_json()["error"]
