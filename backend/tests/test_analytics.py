r"""backend/tests/test_analytics.py"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.core.access import CurrentUser, Role
from backend.app.core.errors import NotFoundError, ValidationError
from backend.app.models.entities import (
    Product,
    Purchase,
    PurchaseOrder,
    PurchaseOrderItem,
    Warehouse,
)
from backend.app.services.analytics_service import AnalyticsService, month_window, shift_month
from backend.app.services.repositories import InMemoryInventoryStore

NOW = datetime(2026, 10, 15, tzinfo=timezone.utc)
ADMIN = CurrentUser(id=1, role=Role.ADMIN)


def _store() -> InMemoryInventoryStore:
    store = InMemoryInventoryStore()
    store.save_warehouse(Warehouse(1, "Central", "WH-CEN"))
    store.save_warehouse(Warehouse(2, "North", "WH-NOR"))
    store.save_product(Product(1, "SKU-1", "Drill", "Tools", "Acme", 1, current_stock=40, reorder_level=10, auto_restock_enabled=True))
    store.save_product(Product(2, "SKU-2", "Gloves", "Safety", "Acme", 1, current_stock=6, reorder_level=15))
    store.save_product(Product(3, "SKU-3", "Light", "Electrical", "Bright", 1, current_stock=0, reorder_level=5))
    store.save_product(Product(4, "SKU-4", "Tape", "Packaging", "WrapIt", 2, current_stock=120, reorder_level=30))

    sales = [
        (1, 1, 2, datetime(2026, 9, 3, tzinfo=timezone.utc)),
        (2, 2, 8, datetime(2026, 10, 2, tzinfo=timezone.utc)),
        (3, 4, 30, datetime(2026, 10, 4, tzinfo=timezone.utc)),
        (4, 2, 5, datetime(2026, 3, 1, tzinfo=timezone.utc)),  # outside the window
    ]
    for pid, product_id, quantity, when in sales:
        product = store.get_product(product_id)
        store.save_purchase(
            Purchase(
                id=pid,
                user_id=4,
                product_id=product_id,
                warehouse_id=product.warehouse_id,
                quantity=quantity,
                unit_price=Decimal("2.00"),
                total_price=Decimal("2.00") * quantity,
                purchased_at=when,
                product_name=product.name,
                product_sku=product.sku,
                warehouse_name="",
                warehouse_code="",
            )
        )

    orders = [
        (1, datetime(2026, 9, 10, tzinfo=timezone.utc), [(2, 20), (3, 10)]),
        (2, datetime(2026, 10, 1, tzinfo=timezone.utc), [(2, 15)]),
    ]
    for order_id, created_at, lines in orders:
        order = PurchaseOrder(
            reference=f"PO-0000000{order_id}",
            vendor_name="Acme",
            warehouse_id=1,
            created_by_id=1,
            created_at=created_at,
        )
        for product_id, quantity in lines:
            product = store.get_product(product_id)
            order.add_item(
                PurchaseOrderItem(
                    product_id=product_id,
                    product_name=product.name,
                    product_sku=product.sku,
                    quantity=quantity,
                    unit_price=Decimal("1.00"),
                    line_total=Decimal("1.00") * quantity,
                )
            )
        store.save_purchase_order(order)
    return store


def _service(store: InMemoryInventoryStore) -> AnalyticsService:
    return AnalyticsService(store, store, store, clock=lambda: NOW)


def test_month_window_covers_six_calendar_months() -> None:
    start, end, keys = month_window(NOW)

    assert start == datetime(2026, 5, 1, tzinfo=timezone.utc)
    assert end == datetime(2026, 11, 1, tzinfo=timezone.utc)
    assert keys == [(2026, 5), (2026, 6), (2026, 7), (2026, 8), (2026, 9), (2026, 10)]
    assert shift_month(2026, 1, -1) == (2025, 12)
    assert shift_month(2026, 12, 1) == (2027, 1)


def test_dashboard_for_one_warehouse() -> None:
    dashboard = _service(_store()).build_dashboard(ADMIN, warehouse_id=1)

    status = dashboard.inventory_status
    assert (status.total_products, status.total_units) == (3, 46)
    assert (status.low_stock_products, status.out_of_stock_products) == (1, 1)
    assert status.auto_restock_enabled_products == 1
    assert [(piece.label, piece.product_count) for piece in dashboard.status_distribution] == [
        ("Healthy", 1),
        ("Low Stock", 1),
        ("Out of Stock", 1),
    ]

    trend = {point.label: point for point in dashboard.monthly_quantity_trend}
    assert len(trend) == 6
    assert (trend["2026-09"].restocked_quantity, trend["2026-09"].sold_quantity) == (30, 2)
    assert (trend["2026-10"].restocked_quantity, trend["2026-10"].sold_quantity) == (15, 8)
    assert trend["2026-05"].sold_quantity == 0

    money = {point.label: point for point in dashboard.monthly_financials}
    assert money["2026-10"].sales_revenue == Decimal("16.00")
    assert money["2026-09"].restock_spend == Decimal("30.00")

    top = dashboard.top_restocked_items
    assert [(item.product_id, item.total_quantity, item.order_count) for item in top] == [(2, 35, 2), (3, 10, 1)]

    comparison = {point.product_id: point for point in dashboard.restock_demand_comparison}
    assert (comparison[2].restocked_quantity, comparison[2].sold_quantity) == (35, 8)
    assert comparison[1].restocked_quantity == 0
    assert 4 not in comparison

    assert dashboard.scope_label == "Central (WH-CEN)"
    assert dashboard.generated_at == NOW


def test_dashboard_for_all_warehouses() -> None:
    dashboard = _service(_store()).build_dashboard(ADMIN)

    assert dashboard.scope_label == "All Warehouses"
    assert dashboard.inventory_status.total_products == 4
    october = dashboard.monthly_quantity_trend[-1]
    assert october.sold_quantity == 38


def test_dashboard_scope_rules() -> None:
    service = _service(_store())

    manager = CurrentUser(id=3, role=Role.MANAGER, warehouse_id=2)
    assert service.build_dashboard(manager).scope_label == "North (WH-NOR)"
    with pytest.raises(ValidationError):
        service.build_dashboard(manager, warehouse_id=1)
    with pytest.raises(ValidationError):
        service.build_dashboard(CurrentUser(id=4, role=Role.USER))
    with pytest.raises(NotFoundError):
        service.build_dashboard(ADMIN, warehouse_id=9)
