r"""backend/tests/test_catalog_api.py"""

from __future__ import annotations

import sys
from collections import defaultdict, deque
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

DATA_ROOT = ROOT / "data"
NOW = datetime(2026, 10, 15, tzinfo=timezone.utc)

from backend.app.core import observability as obs
from backend.app.main import app
from backend.app.services.analytics_service import AnalyticsService
from backend.app.services.inventory_service import InventoryService, PurchaseService
from backend.app.services.repositories import InMemoryInventoryStore
from backend.app.services.seed_service import load_seed_data

ADMIN_HEADERS = {"X-User-Id": "1", "X-User-Role": "ADMIN"}
MANAGER_HEADERS = {"X-User-Id": "2", "X-User-Role": "MANAGER", "X-Warehouse-Id": "1"}
SHOPPER_HEADERS = {"X-User-Id": "4", "X-User-Role": "USER"}

client = TestClient(app)


@pytest.fixture(autouse=True)
def _open_middleware(monkeypatch) -> None:
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_token", None, raising=False)
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_buckets", defaultdict(deque), raising=False)


@pytest.fixture()
def store(monkeypatch) -> InMemoryInventoryStore:
    seeded = InMemoryInventoryStore()
    load_seed_data(seeded, DATA_ROOT)
    monkeypatch.setattr("backend.app.api.v1.products._inventory_service", InventoryService(seeded))
    monkeypatch.setattr(
        "backend.app.api.v1.purchases._purchase_service", PurchaseService(seeded, clock=lambda: NOW)
    )
    monkeypatch.setattr(
        "backend.app.api.v1.analytics._analytics_service",
        AnalyticsService(seeded, seeded, seeded, clock=lambda: NOW),
    )
    return seeded


def _product_payload(**overrides) -> dict:
    payload = {
        "name": "Hard Hat",
        "sku": "sku-cen-004",
        "category": "Safety",
        "vendor": "ProtectCo",
        "reorder_level": 5,
        "max_stock_level": 30,
        "current_stock": 12,
        "price": "15.50",
    }
    payload.update(overrides)
    return payload


def test_shoppers_browse_every_warehouse(store) -> None:
    response = client.get("/api/v1/products", headers=SHOPPER_HEADERS)

    assert response.status_code == 200
    payload = response.json()
    assert [product["id"] for product in payload] == [1, 2, 3, 4, 5]
    light = payload[2]
    assert light["stock_status"] == "OUT_OF_STOCK"
    assert light["low_stock"] is True
    assert light["warehouse_code"] == "WH-CEN"


def test_product_listing_is_scoped_for_managers(store) -> None:
    own = client.get("/api/v1/products", params={"stock_status": "LOW_STOCK"}, headers=MANAGER_HEADERS)
    assert [product["id"] for product in own.json()] == [2]

    other = client.get("/api/v1/products", params={"warehouse_id": 2}, headers=MANAGER_HEADERS)
    assert other.status_code == 400


def test_create_product(store) -> None:
    response = client.post("/api/v1/products", json=_product_payload(), headers=MANAGER_HEADERS)

    assert response.status_code == 201
    payload = response.json()
    assert payload["sku"] == "SKU-CEN-004"
    assert payload["warehouse_id"] == 1
    assert payload["total_value"] == "186.00"

    duplicate = client.post("/api/v1/products", json=_product_payload(), headers=MANAGER_HEADERS)
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"]["error"] == "duplicate_sku"

    unknown = client.post(
        "/api/v1/products", json=_product_payload(sku="NEW-1", warehouse_id=99), headers=ADMIN_HEADERS
    )
    assert unknown.status_code == 404


def test_purchase_flow(store) -> None:
    bought = client.post("/api/v1/purchases", json={"product_id": 1, "quantity": 2}, headers=SHOPPER_HEADERS)

    assert bought.status_code == 201
    assert bought.json()["total_price"] == "179.98"
    assert store.get_product(1).current_stock == 38

    too_many = client.post("/api/v1/purchases", json={"product_id": 5, "quantity": 4}, headers=SHOPPER_HEADERS)
    assert too_many.status_code == 400
    assert too_many.json()["detail"]["error"] == "insufficient_stock"

    history = client.get("/api/v1/purchases/history", headers=SHOPPER_HEADERS).json()
    assert len(history["purchases"]) == 8
    assert history["purchases"][0]["id"] == bought.json()["id"]

    summary = client.get("/api/v1/purchases/summary", headers=MANAGER_HEADERS).json()
    assert summary["total_orders"] == 6
    assert summary["total_items"] == 35


def test_analytics_dashboard(store) -> None:
    response = client.get("/api/v1/analytics/dashboard", headers=ADMIN_HEADERS)

    assert response.status_code == 200
    payload = response.json()
    assert payload["scope_label"] == "All Warehouses"
    assert payload["inventory_status"]["total_products"] == 5
    assert [point["label"] for point in payload["monthly_quantity_trend"]] == [
        "2026-05",
        "2026-06",
        "2026-07",
        "2026-08",
        "2026-09",
        "2026-10",
    ]
    assert payload["monthly_quantity_trend"][-1]["sold_quantity"] == 35
    assert payload["top_restocked_items"] == []

    scoped = client.get("/api/v1/analytics/dashboard", headers=MANAGER_HEADERS).json()
    assert scoped["scope_label"] == "Central Distribution (WH-CEN)"

    assert client.get("/api/v1/analytics/dashboard", headers=SHOPPER_HEADERS).status_code == 400


def test_update_and_delete_product(store) -> None:
    updated = client.put(
        "/api/v1/products/2",
        json=_product_payload(sku="SKU-CEN-002", current_stock=40),
        headers=MANAGER_HEADERS,
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "Hard Hat"
    assert updated.json()["stock_status"] == "IN_STOCK"
    assert store.get_product(2).current_stock == 40

    foreign = client.put("/api/v1/products/4", json=_product_payload(), headers=MANAGER_HEADERS)
    assert foreign.status_code == 404

    clash = client.put("/api/v1/products/2", json=_product_payload(sku="sku-cen-001"), headers=ADMIN_HEADERS)
    assert clash.status_code == 400
    assert clash.json()["detail"]["error"] == "duplicate_sku"

    assert client.delete("/api/v1/products/3", headers=SHOPPER_HEADERS).status_code == 400
    deleted = client.delete("/api/v1/products/3", headers=MANAGER_HEADERS)
    assert deleted.status_code == 204
    assert store.get_product(3) is None
    assert client.delete("/api/v1/products/3", headers=ADMIN_HEADERS).status_code == 404


def test_purchase_history_rejects_staff(store) -> None:
    response = client.get("/api/v1/purchases/history", headers=MANAGER_HEADERS)

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "forbidden_role"


def test_sales_summaries_by_warehouse(store) -> None:
    by_warehouse = client.get("/api/v1/purchases/summary/by-warehouse", headers=ADMIN_HEADERS)
    assert by_warehouse.status_code == 200
    rows = by_warehouse.json()
    assert [row["warehouse_code"] for row in rows] == ["WH-CEN", "WH-NOR"]
    assert (rows[0]["total_orders"], rows[0]["total_items"]) == (5, 33)
    assert Decimal(rows[0]["total_revenue"]) == Decimal("404.97")
    assert Decimal(rows[1]["total_revenue"]) == Decimal("123.75")

    products = client.get("/api/v1/purchases/summary/by-warehouse/1/products", headers=ADMIN_HEADERS).json()
    assert [row["product_id"] for row in products] == [1, 2]
    assert products[1]["total_quantity"] == 30

    assert client.get("/api/v1/purchases/summary/by-warehouse", headers=MANAGER_HEADERS).status_code == 400
    missing = client.get("/api/v1/purchases/summary/by-warehouse/9/products", headers=ADMIN_HEADERS)
    assert missing.status_code == 404


def test_warehouse_purchase_history(store) -> None:
    response = client.get("/api/v1/purchases/warehouse-history", headers=MANAGER_HEADERS)

    assert response.status_code == 200
    payload = response.json()
    assert payload["total_orders"] == 5
    assert payload["total_items"] == 33
    latest = payload["purchases"][0]
    assert (latest["product_id"], latest["quantity"]) == (2, 10)
    assert latest["buyer_name"] == "Sam Shopper"

    admin = client.get("/api/v1/purchases/warehouse-history", headers=ADMIN_HEADERS)
    assert admin.status_code == 400
    assert admin.json()["detail"]["error"] == "warehouse_required"
    north = client.get("/api/v1/purchases/warehouse-history", params={"warehouse_id": 2}, headers=ADMIN_HEADERS)
    assert north.json()["total_items"] == 55
