"""HTTP surface: status codes and payloads through FastAPI's TestClient.

The app lifespan is not entered (no `with TestClient(...)`), so no database
is touched; the store and advisor are supplied through dependency overrides.
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from conftest import make_batch, make_medicine
from trustmeds.api.deps import get_advisor, get_store
from trustmeds.main import app
from trustmeds.services.advisory_service import InteractionAdvisor
from trustmeds.store.catalog import InventoryStore

CUSTOMER = {"customer_name": "Aravind Swamy", "customer_phone": "9876543210"}


class StubAdvisor(InteractionAdvisor):
    def __init__(self, warning=None):
        super().__init__(complete=lambda prompt: warning or "No significant interactions detected.")


@pytest.fixture
def api_store():
    return InventoryStore([
        make_medicine("1", "Amoxicillin", "150.00", min_threshold=20, barcode="123456789",
                      batches=[make_batch("b1", "2025-05-01", 100, "110.00", number="AMX-202")]),
        make_medicine("2", "Paracetamol 500mg", "2.50", min_threshold=10, batches=[
            make_batch("b2", "2025-01-01", 5, "1.50"),
            make_batch("b3", "2025-06-01", 10, "1.20"),
        ]),
    ])


@pytest.fixture
def client(api_store):
    app.dependency_overrides[get_store] = lambda: api_store
    app.dependency_overrides[get_advisor] = lambda: StubAdvisor()
    yield TestClient(app)
    app.dependency_overrides.clear()


def checkout_body(*lines, **extra):
    body = {"lines": [{"medicine_id": mid, "quantity": qty} for mid, qty in lines], **CUSTOMER}
    body.update(extra)
    return body


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_checkout_returns_invoice(client, api_store):
    response = client.post("/sales/checkout", json=checkout_body(("1", 30)))

    assert response.status_code == 201
    data = response.json()
    assert Decimal(data["total_amount"]) == Decimal("4500")
    assert data["items"][0]["allocations"][0]["batch_number"] == "AMX-202"
    assert api_store.get_copy("1").batch("b1").stock == 70

    listed = client.get("/sales/invoices", params={"search": "aravind"}).json()
    assert [inv["id"] for inv in listed] == [data["id"]]


def test_checkout_conflict_names_failing_medicines(client, api_store):
    response = client.post("/sales/checkout", json=checkout_body(("1", 5), ("2", 16)))

    assert response.status_code == 409
    assert response.json()["detail"]["medicine_ids"] == ["2"]
    assert api_store.get_copy("1").batch("b1").stock == 100


def test_checkout_unknown_medicine_is_404(client):
    response = client.post("/sales/checkout", json=checkout_body(("999", 1)))
    assert response.status_code == 404


def test_checkout_rejects_bad_phone(client):
    response = client.post("/sales/checkout", json=checkout_body(("1", 1), customer_phone="12345"))
    assert response.status_code == 422


def test_interaction_hold_and_override(client, api_store):
    warning = "Paracetamol with Amoxicillin: monitor for hypersensitivity."
    app.dependency_overrides[get_advisor] = lambda: StubAdvisor(warning)

    held = client.post("/sales/checkout", json=checkout_body(("1", 1), ("2", 1)))
    assert held.status_code == 423
    assert held.json()["detail"]["advisory"] == warning
    assert api_store.invoices() == []

    passed = client.post(
        "/sales/checkout", json=checkout_body(("1", 1), ("2", 1), override_safety_hold=True)
    )
    assert passed.status_code == 201
    assert passed.json()["safety_override"] == warning


def test_return_endpoint(client, api_store):
    response = client.post(
        "/stock/returns", json={"medicine_id": "2", "batch_id": "b3", "quantity": 4, "reason": "Damaged"}
    )
    assert response.status_code == 201
    assert response.json()["rma_number"].startswith("RMA-")
    assert api_store.get_copy("2").batch("b3").stock == 6

    too_many = client.post("/stock/returns", json={"medicine_id": "2", "batch_id": "b2", "quantity": 6})
    assert too_many.status_code == 400

    unknown_batch = client.post("/stock/returns", json={"medicine_id": "2", "batch_id": "b9", "quantity": 1})
    assert unknown_batch.status_code == 404

    history = client.get("/stock/returns", params={"medicine_id": "2"}).json()
    assert len(history) == 1


def test_adjustment_endpoint_clamps(client):
    response = client.post("/stock/adjustments", json={"medicine_id": "2", "batch_id": "b2", "delta": -50})

    assert response.status_code == 200
    data = response.json()
    assert data["stock"] == 0
    assert data["adjustments"][0]["applied_delta"] == -5


def test_stats_endpoint(client):
    client.post("/sales/checkout", json=checkout_body(("1", 10)))

    response = client.get("/analytics/stats", params={"as_of": "2025-01-01"})

    assert response.status_code == 200
    data = response.json()
    # 90 x 150 + 15 x 2.50
    assert Decimal(data["total_stock_value"]) == Decimal("13537.50")
    assert data["low_stock_count"] == 0
    assert data["as_of"] == "2025-01-01"


def test_expiry_and_procurement_endpoints(client):
    expiry = client.get("/analytics/expiry", params={"as_of": "2025-02-01", "days": 90}).json()
    assert [(e["batch_id"], e["status"]) for e in expiry] == [("b2", "expired"), ("b1", "expiring")]

    client.post("/stock/adjustments", json={"medicine_id": "2", "batch_id": "b3", "delta": -8})
    procurement = client.get("/analytics/procurement").json()
    assert [(p["medicine_id"], p["suggested_order"]) for p in procurement] == [("2", 13)]


def test_catalog_create_and_barcode_conflict(client):
    body = {
        "name": "Cetirizine",
        "price": "4.00",
        "min_threshold": 5,
        "barcode": "890100",
        "initial_batch": {"batch_number": "CTZ-1", "expiry_date": "2026-03-01", "stock": 12},
    }
    created = client.post("/catalog/medicines", json=body)
    assert created.status_code == 201
    data = created.json()
    assert data["total_stock"] == 12
    assert data["batches"][0]["id"] == "b4"

    duplicate = client.post("/catalog/medicines", json={**body, "name": "Cetirizine Syrup"})
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["medicine_ids"] == [data["id"]]


def test_barcode_lookup(client):
    found = client.get("/catalog/barcode/123456789")
    assert found.status_code == 200
    assert found.json()["name"] == "Amoxicillin"
    assert found.json()["total_stock"] == 100

    assert client.get("/catalog/barcode/000").status_code == 404


def test_batch_management_endpoints(client):
    added = client.post(
        "/catalog/medicines/1/batches",
        json={"batch_number": "AMX-310", "expiry_date": "2025-03-01", "stock": 20, "purchase_price": "100"},
    )
    assert added.status_code == 201
    batch_id = added.json()["id"]

    # the new, earlier-expiring lot is sold first
    sale = client.post("/sales/checkout", json=checkout_body(("1", 25))).json()
    assert [(a["batch_id"], a["quantity"]) for a in sale["items"][0]["allocations"]] == [
        (batch_id, 20), ("b1", 5),
    ]

    removed = client.delete(f"/catalog/medicines/1/batches/{batch_id}")
    assert removed.status_code == 200
    assert client.get("/catalog/medicines/1").json()["total_stock"] == 95


def test_search_and_delete(client):
    results = client.get("/catalog/medicines", params={"search": "para"}).json()
    assert [m["id"] for m in results] == ["2"]

    assert client.delete("/catalog/medicines/2").status_code == 200
    assert client.get("/catalog/medicines/2").status_code == 404
