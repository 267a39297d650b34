r"""backend/tests/test_demand_aggregator.py"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.models.entities import Purchase, PurchaseOrder, PurchaseOrderItem
from backend.app.services.demand_aggregator import DemandAggregator


def _sale(pid: int, product_id: int, quantity: int, when: datetime, warehouse_id: int = 1) -> Purchase:
    return Purchase(
        id=pid,
        user_id=4,
        product_id=product_id,
        warehouse_id=warehouse_id,
        quantity=quantity,
        unit_price=Decimal("2.00"),
        total_price=Decimal("2.00") * quantity,
        purchased_at=when,
        product_name=f"Product {product_id}",
        product_sku=f"SKU-{product_id}",
        warehouse_name="Central",
        warehouse_code="WH-CEN",
    )


def _order(order_id: int, created_at: datetime, *lines: tuple[int, int], warehouse_id: int = 1) -> PurchaseOrder:
    order = PurchaseOrder(
        reference=f"PO-{order_id:08d}",
        vendor_name="Acme",
        warehouse_id=warehouse_id,
        created_by_id=1,
        created_at=created_at,
        id=order_id,
    )
    for product_id, quantity in lines:
        order.add_item(
            PurchaseOrderItem(
                product_id=product_id,
                product_name=f"Product {product_id}",
                product_sku=f"SKU-{product_id}",
                quantity=quantity,
                unit_price=Decimal("1.50"),
                line_total=Decimal("1.50") * quantity,
            )
        )
    return order


def test_product_sales_totals_and_bounds() -> None:
    sales = [
        _sale(1, 10, 3, datetime(2026, 9, 1, tzinfo=timezone.utc)),
        _sale(2, 10, 5, datetime(2026, 9, 11, tzinfo=timezone.utc)),
        _sale(3, 11, 2, datetime(2026, 9, 5, tzinfo=timezone.utc), warehouse_id=2),
    ]
    aggregator = DemandAggregator(sales, [])

    totals = aggregator.product_sales()
    assert set(totals) == {10, 11}
    assert totals[10].total_quantity == 8
    assert totals[10].total_orders == 2
    assert totals[10].total_amount == Decimal("16.00")
    assert totals[10].earliest == datetime(2026, 9, 1, tzinfo=timezone.utc)
    assert totals[10].latest == datetime(2026, 9, 11, tzinfo=timezone.utc)

    scoped = aggregator.product_sales(warehouse_id=2)
    assert list(scoped) == [11]


def test_window_is_half_open() -> None:
    sales = [
        _sale(1, 10, 3, datetime(2026, 9, 1, tzinfo=timezone.utc)),
        _sale(2, 10, 5, datetime(2026, 10, 1, tzinfo=timezone.utc)),
    ]
    aggregator = DemandAggregator(sales, [])

    totals = aggregator.product_sales(
        datetime(2026, 9, 1, tzinfo=timezone.utc), datetime(2026, 10, 1, tzinfo=timezone.utc)
    )
    assert totals[10].total_quantity == 3


def test_empty_window_returns_empty_mapping() -> None:
    aggregator = DemandAggregator([], [])
    assert aggregator.product_sales() == {}
    assert aggregator.monthly_restocks() == {}


def test_restocks_count_orders_not_lines() -> None:
    orders = [
        _order(1, datetime(2026, 8, 20, tzinfo=timezone.utc), (10, 4), (10, 6), (11, 1)),
        _order(2, datetime(2026, 9, 2, tzinfo=timezone.utc), (10, 5)),
    ]
    aggregator = DemandAggregator([], orders)

    restocks = aggregator.product_restocks()
    assert restocks[10].total_quantity == 15
    assert restocks[10].total_orders == 2
    assert restocks[11].total_orders == 1

    months = aggregator.monthly_restocks()
    assert sorted(months) == [(2026, 8), (2026, 9)]
    assert months[(2026, 8)].total_quantity == 11
    assert months[(2026, 9)].total_amount == Decimal("7.50")


def test_sales_and_restocks_stay_separate() -> None:
    when = datetime(2026, 9, 3, tzinfo=timezone.utc)
    aggregator = DemandAggregator([_sale(1, 10, 2, when)], [_order(1, when, (10, 40))])

    assert aggregator.monthly_sales()[(2026, 9)].total_quantity == 2
    assert aggregator.monthly_restocks()[(2026, 9)].total_quantity == 40
