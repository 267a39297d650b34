r"""backend/tests/test_seed_data.py"""

from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.core.access import Role
from backend.app.services.io_utils import prefer_parquet, read_seed_table
from backend.app.services.repositories import InMemoryInventoryStore
from backend.app.services.seed_service import load_seed_data

DATA_ROOT = ROOT / "data"


def test_bundled_seed_data_loads() -> None:
    store = InMemoryInventoryStore()
    counts = load_seed_data(store, DATA_ROOT)

    assert counts == {"warehouses": 2, "users": 4, "products": 5, "purchases": 7}
    assert store.get_user(2).role is Role.MANAGER
    assert store.get_user(1).warehouse_id is None
    assert store.get_product(2).auto_restock_enabled is True
    assert store.get_product(2).price == Decimal("4.50")

    gloves = store.aggregate_product_demand(1)[2]
    assert gloves.total_quantity == 30
    assert gloves.total_orders == 3


def test_missing_tables_are_skipped(tmp_path: Path) -> None:
    pd.DataFrame({"id": [5], "name": ["Depot"], "location_code": ["WH-DEP"]}).to_csv(
        tmp_path / "warehouses.csv", index=False
    )

    store = InMemoryInventoryStore()
    counts = load_seed_data(store, tmp_path)

    assert counts == {"warehouses": 1, "users": 0, "products": 0, "purchases": 0}
    assert store.get_warehouse(5).active is True


def test_purchases_for_unknown_products_are_skipped(tmp_path: Path) -> None:
    pd.DataFrame({"id": [1], "name": ["Depot"], "location_code": ["WH-DEP"]}).to_csv(
        tmp_path / "warehouses.csv", index=False
    )
    pd.DataFrame(
        {"user_id": [4], "product_id": [99], "quantity": [1], "purchased_at": ["2026-09-01T00:00:00Z"]}
    ).to_csv(tmp_path / "purchases.csv", index=False)

    store = InMemoryInventoryStore()
    assert load_seed_data(store, tmp_path)["purchases"] == 0


def test_read_seed_table_validates_columns(tmp_path: Path) -> None:
    assert read_seed_table(tmp_path, "products", required=["id"]) is None

    pd.DataFrame({"id": [1]}).to_csv(tmp_path / "products.csv", index=False)
    with pytest.raises(ValueError, match="missing columns: sku"):
        read_seed_table(tmp_path, "products", required=["id", "sku"])


def test_prefer_parquet_uses_parquet_when_present(tmp_path: Path) -> None:
    csv_path = tmp_path / "users.csv"
    pd.DataFrame({"id": [1], "full_name": ["From CSV"]}).to_csv(csv_path, index=False)
    assert prefer_parquet(csv_path)["full_name"].tolist() == ["From CSV"]

    pd.DataFrame({"id": [1], "full_name": ["From Parquet"]}).to_parquet(tmp_path / "users.parquet")
    assert prefer_parquet(csv_path, columns=["full_name"])["full_name"].tolist() == ["From Parquet"]
