r"""backend\app\services\seed_service.py

Load warehouses, users, products and past sales from the seed directory into
an inventory store at startup.  Every table is optional; a missing table is
simply skipped.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd

from ..core.access import Role
from ..models.entities import Product, Purchase, User, Warehouse, quantize_money
from .io_utils import read_seed_table
from .repositories import InMemoryInventoryStore

LOGGER = logging.getLogger(__name__)

WAREHOUSE_COLUMNS = ["id", "name", "location_code"]
USER_COLUMNS = ["id", "full_name", "email", "role"]
PRODUCT_COLUMNS = ["id", "sku", "name", "category", "vendor", "warehouse_id"]
PURCHASE_COLUMNS = ["user_id", "product_id", "quantity", "purchased_at"]


def _optional_int(value: Any) -> Optional[int]:
    if value is None or pd.isna(value):
        return None
    return int(value)


def _flag(value: Any, default: bool = False) -> bool:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return bool(value)


def _int_or(row: pd.Series, column: str, default: int = 0) -> int:
    value = row.get(column)
    return default if value is None or pd.isna(value) else int(value)


def _money_or(row: pd.Series, column: str) -> Decimal:
    value = row.get(column)
    return Decimal("0.00") if value is None or pd.isna(value) else quantize_money(value)


def load_seed_data(store: InMemoryInventoryStore, data_root: str | Path) -> Dict[str, int]:
    """Populate ``store`` from ``data_root`` and return how many rows each table added."""

    counts = {"warehouses": 0, "users": 0, "products": 0, "purchases": 0}

    warehouses = read_seed_table(data_root, "warehouses", required=WAREHOUSE_COLUMNS)
    if warehouses is not None:
        for _, row in warehouses.iterrows():
            store.save_warehouse(
                Warehouse(
                    id=int(row["id"]),
                    name=str(row["name"]).strip(),
                    location_code=str(row["location_code"]).strip(),
                    active=_flag(row.get("active"), default=True),
                )
            )
            counts["warehouses"] += 1

    users = read_seed_table(data_root, "users", required=USER_COLUMNS)
    if users is not None:
        for _, row in users.iterrows():
            store.save_user(
                User(
                    id=int(row["id"]),
                    full_name=str(row["full_name"]).strip(),
                    email=str(row["email"]).strip(),
                    role=Role(str(row["role"]).strip().upper()),
                    warehouse_id=_optional_int(row.get("warehouse_id")),
                )
            )
            counts["users"] += 1

    products = read_seed_table(data_root, "products", required=PRODUCT_COLUMNS)
    if products is not None:
        for _, row in products.iterrows():
            store.save_product(
                Product(
                    id=int(row["id"]),
                    sku=str(row["sku"]).strip().upper(),
                    name=str(row["name"]).strip(),
                    category=str(row["category"]).strip(),
                    vendor=str(row["vendor"]).strip(),
                    warehouse_id=int(row["warehouse_id"]),
                    current_stock=_int_or(row, "current_stock"),
                    reorder_level=_int_or(row, "reorder_level"),
                    max_stock_level=_int_or(row, "max_stock_level"),
                    price=_money_or(row, "price"),
                    auto_restock_enabled=_flag(row.get("auto_restock_enabled")),
                )
            )
            counts["products"] += 1

    purchases = read_seed_table(data_root, "purchases", required=PURCHASE_COLUMNS)
    if purchases is not None:
        purchases = purchases.assign(purchased_at=pd.to_datetime(purchases["purchased_at"], utc=True))
        for _, row in purchases.iterrows():
            product = store.get_product(int(row["product_id"]))
            if product is None:
                LOGGER.warning("Skipping seed purchase for unknown product %s", row["product_id"])
                continue
            warehouse = store.get_warehouse(product.warehouse_id)
            quantity = int(row["quantity"])
            store.save_purchase(
                Purchase(
                    id=None,
                    user_id=int(row["user_id"]),
                    product_id=product.id,
                    warehouse_id=product.warehouse_id,
                    quantity=quantity,
                    unit_price=product.price,
                    total_price=quantize_money(product.price * Decimal(quantity)),
                    purchased_at=row["purchased_at"].to_pydatetime(),
                    product_name=product.name,
                    product_sku=product.sku,
                    warehouse_name=warehouse.name if warehouse is not None else "",
                    warehouse_code=warehouse.location_code if warehouse is not None else "",
                )
            )
            counts["purchases"] += 1

    LOGGER.info(
        "Seed data loaded from %s: %d warehouses, %d users, %d products, %d purchases",
        data_root,
        counts["warehouses"],
        counts["users"],
        counts["products"],
        counts["purchases"],
    )
    return counts
