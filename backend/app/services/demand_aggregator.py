r"""backend\app\services\demand_aggregator.py

Reduce raw sale and restock records into per-product and per-month totals.

Sales (``Purchase`` rows) and restocks (purchase-order line items) are two
independent sources: each is turned into its own frame and aggregated on its
own, so a product's sold and restocked quantities are never summed together.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple

import pandas as pd

from ..models.entities import (
    MonthlyAggregate,
    ProductDemandAggregate,
    Purchase,
    PurchaseOrder,
    WarehouseSalesAggregate,
)

LOGGER = logging.getLogger(__name__)

RECORD_COLUMNS = [
    "record_id",
    "product_id",
    "product_name",
    "product_sku",
    "warehouse_id",
    "quantity",
    "amount",
    "timestamp",
]


# ---------------------------------------------------------------------------
# Frame builders


def sales_frame(purchases: Iterable[Purchase]) -> pd.DataFrame:
    """Return one row per sale."""

    rows = [
        (
            purchase.id,
            purchase.product_id,
            purchase.product_name,
            purchase.product_sku,
            purchase.warehouse_id,
            purchase.quantity,
            purchase.total_price,
            purchase.purchased_at,
        )
        for purchase in purchases
    ]
    return _build_frame(rows)


def restock_frame(orders: Iterable[PurchaseOrder]) -> pd.DataFrame:
    """Return one row per purchase-order line item, stamped with the order's creation time."""

    rows = [
        (
            order.id,
            item.product_id,
            item.product_name,
            item.product_sku,
            order.warehouse_id,
            item.quantity,
            item.line_total,
            order.created_at,
        )
        for order in orders
        for item in order.items
    ]
    return _build_frame(rows)


def _build_frame(rows: list[tuple]) -> pd.DataFrame:
    frame = pd.DataFrame(rows, columns=RECORD_COLUMNS)
    if frame.empty:
        return frame
    frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True)
    frame["quantity"] = pd.to_numeric(frame["quantity"], errors="coerce").fillna(0).astype("int64")
    return frame


# ---------------------------------------------------------------------------
# Reductions


def _as_utc(moment: datetime) -> pd.Timestamp:
    stamp = pd.Timestamp(moment)
    if stamp.tzinfo is None:
        return stamp.tz_localize(timezone.utc)
    return stamp.tz_convert(timezone.utc)


def _sum_amounts(values: pd.Series) -> Decimal:
    return sum((Decimal(str(value)) for value in values if value is not None), Decimal("0"))


def _to_datetime(value: object) -> Optional[datetime]:
    if value is None or pd.isna(value):
        return None
    return pd.Timestamp(value).to_pydatetime()


def filter_records(
    frame: pd.DataFrame,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    warehouse_id: Optional[int] = None,
) -> pd.DataFrame:
    """Restrict ``frame`` to ``[start, end)`` and, optionally, one warehouse."""

    if frame.empty:
        return frame

    mask = pd.Series(True, index=frame.index)
    if warehouse_id is not None:
        mask &= frame["warehouse_id"] == warehouse_id
    if start is not None:
        mask &= frame["timestamp"] >= _as_utc(start)
    if end is not None:
        mask &= frame["timestamp"] < _as_utc(end)
    return frame.loc[mask]


def aggregate_by_product(
    frame: pd.DataFrame,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    warehouse_id: Optional[int] = None,
) -> Dict[int, ProductDemandAggregate]:
    """Group records by product.

    Returns an empty mapping when nothing falls inside the window.
    """

    scoped = filter_records(frame, start, end, warehouse_id)
    if scoped.empty:
        return {}

    grouped = scoped.groupby("product_id", sort=True).agg(
        product_name=("product_name", "first"),
        product_sku=("product_sku", "first"),
        total_quantity=("quantity", "sum"),
        total_orders=("record_id", "nunique"),
        total_amount=("amount", _sum_amounts),
        earliest=("timestamp", "min"),
        latest=("timestamp", "max"),
    )

    aggregates: Dict[int, ProductDemandAggregate] = {}
    for product_id, row in grouped.iterrows():
        aggregates[int(product_id)] = ProductDemandAggregate(
            product_id=int(product_id),
            product_name=str(row["product_name"]),
            product_sku=str(row["product_sku"]),
            total_quantity=int(row["total_quantity"]),
            total_orders=int(row["total_orders"]),
            total_amount=row["total_amount"],
            earliest=_to_datetime(row["earliest"]),
            latest=_to_datetime(row["latest"]),
        )
    LOGGER.debug("Aggregated %d records into %d product totals", len(scoped), len(aggregates))
    return aggregates


def aggregate_by_month(
    frame: pd.DataFrame,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    warehouse_id: Optional[int] = None,
) -> Dict[Tuple[int, int], MonthlyAggregate]:
    """Group records by calendar month (UTC) of their timestamp."""

    scoped = filter_records(frame, start, end, warehouse_id)
    scoped = scoped.dropna(subset=["timestamp"]) if not scoped.empty else scoped
    if scoped.empty:
        return {}

    scoped = scoped.assign(
        year=scoped["timestamp"].dt.year,
        month=scoped["timestamp"].dt.month,
    )
    grouped = scoped.groupby(["year", "month"], sort=True).agg(
        total_quantity=("quantity", "sum"),
        total_amount=("amount", _sum_amounts),
    )

    months: Dict[Tuple[int, int], MonthlyAggregate] = {}
    for (year, month), row in grouped.iterrows():
        key = (int(year), int(month))
        months[key] = MonthlyAggregate(
            year=key[0],
            month=key[1],
            total_quantity=int(row["total_quantity"]),
            total_amount=row["total_amount"],
        )
    return months


def aggregate_by_warehouse(frame: pd.DataFrame) -> Dict[int, WarehouseSalesAggregate]:
    """Group records by warehouse."""

    if frame.empty:
        return {}

    grouped = frame.groupby("warehouse_id", sort=True).agg(
        total_orders=("record_id", "nunique"),
        total_quantity=("quantity", "sum"),
        total_amount=("amount", _sum_amounts),
    )
    return {
        int(warehouse_id): WarehouseSalesAggregate(
            warehouse_id=int(warehouse_id),
            total_orders=int(row["total_orders"]),
            total_quantity=int(row["total_quantity"]),
            total_amount=row["total_amount"],
        )
        for warehouse_id, row in grouped.iterrows()
    }

class DemandAggregator:
    """Aggregate views over a snapshot of sales and restock records."""

    def __init__(self, purchases: Iterable[Purchase], orders: Iterable[PurchaseOrder]) -> None:
        self.sales = sales_frame(purchases)
        self.restocks = restock_frame(orders)

    def product_sales(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        warehouse_id: Optional[int] = None,
    ) -> Dict[int, ProductDemandAggregate]:
        return aggregate_by_product(self.sales, start, end, warehouse_id)

    def product_restocks(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        warehouse_id: Optional[int] = None,
    ) -> Dict[int, ProductDemandAggregate]:
        return aggregate_by_product(self.restocks, start, end, warehouse_id)

    def monthly_sales(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        warehouse_id: Optional[int] = None,
    ) -> Dict[Tuple[int, int], MonthlyAggregate]:
        return aggregate_by_month(self.sales, start, end, warehouse_id)

    def monthly_restocks(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        warehouse_id: Optional[int] = None,
    ) -> Dict[Tuple[int, int], MonthlyAggregate]:
        return aggregate_by_month(self.restocks, start, end, warehouse_id)

    def warehouse_sales(self) -> Dict[int, WarehouseSalesAggregate]:
        return aggregate_by_warehouse(self.sales)
