r"""backend\app\services\analytics_service.py

Dashboard read model: stock health, six-month quantity and money trends and
the products that were restocked or sold the most.

All figures come from the demand aggregator through the store; this module
only arranges them into months and rankings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from ..core.access import CurrentUser, WarehouseScope, resolve_accessible_warehouse_scope
from ..core.errors import NotFoundError
from ..models.entities import Product, ProductDemandAggregate
from .repositories import DemandAggregateStore, ProductStore, WarehouseStore

LOGGER = logging.getLogger(__name__)

MONTH_WINDOW = 6
TOP_RESTOCKED_LIMIT = 5
RESTOCK_DEMAND_LIMIT = 7
ALL_WAREHOUSES_LABEL = "All Warehouses"


@dataclass(frozen=True)
class InventoryStatusSummary:
    total_products: int
    total_units: int
    low_stock_products: int
    out_of_stock_products: int
    auto_restock_enabled_products: int


@dataclass(frozen=True)
class StatusSlice:
    label: str
    product_count: int
    unit_count: int


@dataclass(frozen=True)
class MonthlyQuantityTrendPoint:
    year: int
    month: int
    restocked_quantity: int
    sold_quantity: int

    @property
    def label(self) -> str:
        return f"{self.year}-{self.month:02d}"


@dataclass(frozen=True)
class MonthlyFinancialPoint:
    year: int
    month: int
    restock_spend: Decimal
    sales_revenue: Decimal

    @property
    def label(self) -> str:
        return f"{self.year}-{self.month:02d}"


@dataclass(frozen=True)
class TopRestockedItem:
    product_id: int
    product_name: str
    product_sku: str
    total_quantity: int
    order_count: int


@dataclass(frozen=True)
class RestockDemandPoint:
    product_id: int
    product_name: str
    product_sku: str
    restocked_quantity: int
    sold_quantity: int


@dataclass(frozen=True)
class AnalyticsDashboard:
    inventory_status: InventoryStatusSummary
    status_distribution: List[StatusSlice]
    monthly_quantity_trend: List[MonthlyQuantityTrendPoint]
    monthly_financials: List[MonthlyFinancialPoint]
    top_restocked_items: List[TopRestockedItem]
    restock_demand_comparison: List[RestockDemandPoint]
    scope_label: str
    generated_at: datetime


# ---------------------------------------------------------------------------
# Helpers


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_window(now: datetime, months: int = MONTH_WINDOW) -> Tuple[datetime, datetime, List[Tuple[int, int]]]:
    """Return ``(start, end, months)`` covering the last ``months`` calendar months (UTC)."""

    moment = now.astimezone(timezone.utc) if now.tzinfo else now.replace(tzinfo=timezone.utc)
    first_year, first_month = shift_month(moment.year, moment.month, -(months - 1))
    end_year, end_month = shift_month(moment.year, moment.month, 1)
    start = datetime(first_year, first_month, 1, tzinfo=timezone.utc)
    end = datetime(end_year, end_month, 1, tzinfo=timezone.utc)
    keys = [shift_month(first_year, first_month, offset) for offset in range(months)]
    return start, end, keys


def summarise_inventory(products: List[Product]) -> InventoryStatusSummary:
    return InventoryStatusSummary(
        total_products=len(products),
        total_units=sum(product.current_stock for product in products),
        low_stock_products=sum(
            1 for product in products if 0 < product.current_stock <= product.reorder_level
        ),
        out_of_stock_products=sum(1 for product in products if product.current_stock == 0),
        auto_restock_enabled_products=sum(1 for product in products if product.auto_restock_enabled),
    )


def status_distribution(products: List[Product]) -> List[StatusSlice]:
    healthy = [product for product in products if product.current_stock > product.reorder_level]
    low = [product for product in products if 0 < product.current_stock <= product.reorder_level]
    out = [product for product in products if product.current_stock == 0]
    return [
        StatusSlice("Healthy", len(healthy), sum(product.current_stock for product in healthy)),
        StatusSlice("Low Stock", len(low), sum(product.current_stock for product in low)),
        StatusSlice("Out of Stock", len(out), 0),
    ]


def compare_restock_and_demand(
    restocks: Dict[int, ProductDemandAggregate],
    sales: Dict[int, ProductDemandAggregate],
    limit: int = RESTOCK_DEMAND_LIMIT,
) -> List[RestockDemandPoint]:
    points = []
    for product_id in sorted(set(restocks) | set(sales)):
        restock = restocks.get(product_id)
        sale = sales.get(product_id)
        source = restock or sale
        points.append(
            RestockDemandPoint(
                product_id=product_id,
                product_name=source.product_name if source is not None else "Unknown",
                product_sku=source.product_sku if source is not None else "--",
                restocked_quantity=restock.total_quantity if restock is not None else 0,
                sold_quantity=sale.total_quantity if sale is not None else 0,
            )
        )
    points.sort(key=lambda point: point.restocked_quantity + point.sold_quantity, reverse=True)
    return points[:limit]


class AnalyticsService:
    """Build the analytics dashboard for a warehouse or for the whole company."""

    def __init__(
        self,
        product_store: ProductStore,
        demand_store: DemandAggregateStore,
        warehouse_store: WarehouseStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.product_store = product_store
        self.demand_store = demand_store
        self.warehouse_store = warehouse_store
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    def resolve_scope(self, user: CurrentUser, warehouse_id: Optional[int]) -> WarehouseScope:
        scope = resolve_accessible_warehouse_scope(user, warehouse_id, resource="Analytics")
        if not scope.is_global and self.warehouse_store.get_warehouse(scope.warehouse_id) is None:
            raise NotFoundError("Warehouse not found")
        return scope

    def scope_label(self, scope: WarehouseScope) -> str:
        if scope.is_global:
            return ALL_WAREHOUSES_LABEL
        warehouse = self.warehouse_store.get_warehouse(scope.warehouse_id)
        if warehouse is None:
            return f"Warehouse ID {scope.warehouse_id}"
        return f"{warehouse.name} ({warehouse.location_code})"

    def build_dashboard(self, user: CurrentUser, warehouse_id: Optional[int] = None) -> AnalyticsDashboard:
        scope = self.resolve_scope(user, warehouse_id)
        now = self.clock()
        start, end, months = month_window(now)

        if scope.is_global:
            products = self.product_store.list_products()
        else:
            products = self.product_store.list_products_by_warehouse(scope.warehouse_id)

        restock_by_month = self.demand_store.monthly_restock_between(start, end, scope.warehouse_id)
        sales_by_month = self.demand_store.monthly_sales_between(start, end, scope.warehouse_id)

        quantity_trend: List[MonthlyQuantityTrendPoint] = []
        financials: List[MonthlyFinancialPoint] = []
        for year, month in months:
            restock = restock_by_month.get((year, month))
            sales = sales_by_month.get((year, month))
            quantity_trend.append(
                MonthlyQuantityTrendPoint(
                    year,
                    month,
                    restock.total_quantity if restock is not None else 0,
                    sales.total_quantity if sales is not None else 0,
                )
            )
            financials.append(
                MonthlyFinancialPoint(
                    year,
                    month,
                    restock.total_amount if restock is not None else Decimal("0"),
                    sales.total_amount if sales is not None else Decimal("0"),
                )
            )

        restocks = self.demand_store.aggregate_product_restock_between(start, end, scope.warehouse_id)
        sales = self.demand_store.aggregate_product_sales_between(start, end, scope.warehouse_id)

        ranked_restocks = sorted(
            restocks.values(), key=lambda aggregate: (-aggregate.total_quantity, aggregate.product_id)
        )
        top_restocked = [
            TopRestockedItem(
                product_id=aggregate.product_id,
                product_name=aggregate.product_name,
                product_sku=aggregate.product_sku,
                total_quantity=aggregate.total_quantity,
                order_count=aggregate.total_orders,
            )
            for aggregate in ranked_restocks[:TOP_RESTOCKED_LIMIT]
        ]

        dashboard = AnalyticsDashboard(
            inventory_status=summarise_inventory(products),
            status_distribution=status_distribution(products),
            monthly_quantity_trend=quantity_trend,
            monthly_financials=financials,
            top_restocked_items=top_restocked,
            restock_demand_comparison=compare_restock_and_demand(restocks, sales),
            scope_label=self.scope_label(scope),
            generated_at=now,
        )
        LOGGER.info(
            "Analytics dashboard built for %s (%d products, %d restocked)",
            dashboard.scope_label,
            len(products),
            len(restocks),
        )
        return dashboard
