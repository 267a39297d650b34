r"""backend\app\services\procurement_service.py

Restock recommendations from stock levels and recent sales velocity.

Each candidate gets an average daily demand (floored so new products never
look idle forever), a projected runway and a suggested quantity that refills
it to its stock ceiling or to the reorder level plus two weeks of demand.
"""

from __future__ import annotations

import logging
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from ..core.access import CurrentUser, resolve_accessible_warehouse_scope
from ..core.config import load_section
from ..models.entities import (
    Product,
    ProductDemandAggregate,
    RestockRecommendation,
    StockStatus,
    resolve_max_stock_level,
)
from .repositories import DemandAggregateStore, ProductStore, WarehouseStore

LOGGER = logging.getLogger(__name__)

FOUR_PLACES = Decimal("0.0001")
TWO_PLACES = Decimal("0.01")

REASON_BELOW_REORDER = "Below reorder level"
REASON_NEAR_STOCKOUT = "Projected stockout within a week"
REASON_AUTO_RESTOCK = "Auto-restock enabled"


# ---------------------------------------------------------------------------
def calculate_daily_demand(
    aggregate: Optional[ProductDemandAggregate],
    window_days: Decimal,
    minimum: Decimal,
) -> Decimal:
    """Return average units sold per day, never below ``minimum``."""

    if aggregate is None or aggregate.total_quantity <= 0:
        return minimum
    if aggregate.earliest is None or aggregate.latest is None:
        return minimum

    days = max(1, (aggregate.latest - aggregate.earliest).days)
    span = max(Decimal(days), window_days)
    average = (Decimal(aggregate.total_quantity) / span).quantize(FOUR_PLACES, rounding=ROUND_HALF_UP)
    return max(average, minimum)


def calculate_days_until_stockout(
    current_stock: int,
    daily_demand: Decimal,
    minimum: Decimal,
    far_future_days: Decimal,
) -> Decimal:
    """Projected runway at ``daily_demand``; the sentinel stands in for "no demand"."""

    if current_stock <= 0:
        return Decimal("0")
    if daily_demand <= minimum:
        return far_future_days
    return (Decimal(current_stock) / daily_demand).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def calculate_suggested_quantity(product: Product, daily_demand: Decimal, cover_days: int) -> int:
    """Units needed to reach the larger of the stock ceiling and reorder level plus demand cover."""

    target_level = resolve_max_stock_level(product)
    demand_cover = int((daily_demand * cover_days).to_integral_value(rounding=ROUND_CEILING))
    baseline_target = max(target_level, product.reorder_level + demand_cover)
    return max(0, baseline_target - product.current_stock)


def build_reason(below_reorder: bool, near_stockout: bool, auto_restock: bool) -> str:
    reasons = []
    if below_reorder:
        reasons.append(REASON_BELOW_REORDER)
    if near_stockout:
        reasons.append(REASON_NEAR_STOCKOUT)
    if auto_restock:
        reasons.append(REASON_AUTO_RESTOCK)
    return ", ".join(reasons)


def matches_stock_status(product: Product, status: Optional[StockStatus]) -> bool:
    if status is None:
        return True
    if status is StockStatus.OUT_OF_STOCK:
        return product.current_stock == 0
    if status is StockStatus.LOW_STOCK:
        return 0 < product.current_stock <= product.reorder_level
    return product.current_stock > product.reorder_level


def matches_category(product: Product, category: Optional[str]) -> bool:
    if category is None or not category.strip():
        return True
    if not product.category or not product.category.strip():
        return False
    return product.category.lower() == category.strip().lower()


class RestockRecommendationService:
    """Demand-velocity based restock recommendation engine."""

    def __init__(
        self,
        product_store: ProductStore,
        demand_store: DemandAggregateStore,
        warehouse_store: WarehouseStore | None = None,
        config_root: str = "configs",
    ) -> None:
        restock = load_section(config_root, "restock")

        self.forecast_window_days = Decimal(str(restock.get("forecast_window_days", 30)))
        self.minimum_daily_demand = Decimal(str(restock.get("minimum_daily_demand", "0.1")))
        self.stockout_threshold_days = Decimal(str(restock.get("stockout_threshold_days", 7)))
        self.demand_cover_days = int(restock.get("demand_cover_days", 14))
        self.far_future_days = Decimal(str(restock.get("far_future_days", 90)))

        self.product_store = product_store
        self.demand_store = demand_store
        self.warehouse_store = warehouse_store

    # ------------------------------------------------------------------
    def recommend(
        self,
        user: CurrentUser,
        warehouse_id: Optional[int] = None,
        category: Optional[str] = None,
        auto_restock_only: Optional[bool] = None,
        stock_status: Optional[StockStatus] = None,
    ) -> List[RestockRecommendation]:
        scope = resolve_accessible_warehouse_scope(user, warehouse_id, resource="Restock recommendations")

        if scope.is_global:
            candidates = self.product_store.list_products()
        else:
            candidates = self.product_store.list_products_by_warehouse(scope.warehouse_id)

        filtered = [
            product
            for product in candidates
            if matches_category(product, category)
            and (not auto_restock_only or product.auto_restock_enabled)
            and matches_stock_status(product, stock_status)
        ]
        if not filtered:
            LOGGER.info("No restock candidates after filtering (warehouse=%s)", scope.warehouse_id)
            return []

        demand_by_product = self.demand_store.aggregate_product_demand(scope.warehouse_id)
        warehouse_names: Dict[int, Optional[str]] = {}

        recommendations: List[RestockRecommendation] = []
        for product in filtered:
            recommendation = self.evaluate(product, demand_by_product.get(product.id), warehouse_names)
            if recommendation is not None:
                recommendations.append(recommendation)

        recommendations.sort(
            key=lambda rec: (rec.projected_days_until_stockout, -rec.suggested_reorder_quantity)
        )

        LOGGER.info(
            "Restock recommendations for warehouse=%s category=%s: %d of %d candidates",
            scope.warehouse_id,
            category,
            len(recommendations),
            len(filtered),
        )
        return recommendations

    # ------------------------------------------------------------------
    def evaluate(
        self,
        product: Product,
        aggregate: Optional[ProductDemandAggregate],
        warehouse_names: Dict[int, Optional[str]] | None = None,
    ) -> Optional[RestockRecommendation]:
        """Return a recommendation for ``product`` or ``None`` when it does not need one."""

        daily_demand = calculate_daily_demand(
            aggregate, self.forecast_window_days, self.minimum_daily_demand
        )
        days_until_stockout = calculate_days_until_stockout(
            product.current_stock, daily_demand, self.minimum_daily_demand, self.far_future_days
        )
        suggested = calculate_suggested_quantity(product, daily_demand, self.demand_cover_days)
        if suggested <= 0:
            return None

        below_reorder = product.current_stock <= product.reorder_level
        near_stockout = days_until_stockout <= self.stockout_threshold_days
        auto_restock = product.auto_restock_enabled
        if not (below_reorder or near_stockout or auto_restock):
            return None

        return RestockRecommendation(
            product_id=product.id,
            product_name=product.name,
            product_sku=product.sku,
            category=product.category,
            vendor=product.vendor,
            warehouse_id=product.warehouse_id,
            warehouse_name=self._warehouse_name(product.warehouse_id, warehouse_names),
            current_stock=product.current_stock,
            reorder_level=product.reorder_level,
            max_stock_level=resolve_max_stock_level(product),
            auto_restock_enabled=auto_restock,
            unit_price=product.price,
            average_daily_demand=daily_demand,
            projected_days_until_stockout=days_until_stockout,
            suggested_reorder_quantity=suggested,
            recommendation_reason=build_reason(below_reorder, near_stockout, auto_restock),
        )

    def _warehouse_name(
        self, warehouse_id: int, cache: Dict[int, Optional[str]] | None
    ) -> Optional[str]:
        if self.warehouse_store is None:
            return None
        if cache is not None and warehouse_id in cache:
            return cache[warehouse_id]
        warehouse = self.warehouse_store.get_warehouse(warehouse_id)
        name = warehouse.name if warehouse is not None else None
        if cache is not None:
            cache[warehouse_id] = name
        return name

    def describe(self) -> Dict[str, Any]:
        """Return the tunables in effect, for diagnostics."""

        return {
            "forecast_window_days": float(self.forecast_window_days),
            "minimum_daily_demand": float(self.minimum_daily_demand),
            "stockout_threshold_days": float(self.stockout_threshold_days),
            "demand_cover_days": self.demand_cover_days,
            "far_future_days": float(self.far_future_days),
        }
