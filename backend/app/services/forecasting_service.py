r"""backend\app\services\forecasting_service.py

Heuristic demand forecast for every product in the caller's scope.

The forecast is deliberately simple: a weekly run-rate derived from all-time
sales, lifted by how the product sells relative to the catalog's top seller.
Each item also carries a short synthetic weekly history (trend plus a
sinusoidal seasonal wobble) used by dashboards to draw a sparkline; it is an
illustration anchored on the current week, not measured data.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import numpy as np

from ..core.access import CurrentUser, resolve_accessible_warehouse_scope
from ..core.config import load_section
from ..core.errors import NotFoundError
from ..models.entities import (
    DemandForecastItem,
    DemandForecastSeriesPoint,
    Product,
    ProductDemandAggregate,
)
from .repositories import DemandAggregateStore, ProductStore, WarehouseStore

LOGGER = logging.getLogger(__name__)

DEFAULT_HISTORY_POINTS = 6
DEMAND_UPLIFT = 0.75
HIGH_DEMAND_SHARE = 0.7
TOP_DEMAND_SHARE = 0.8
HEALTHY_DEMAND_SHARE = 0.5

# Placeholder rows shown when the catalog is empty:
# (id, name, sku, stock, reorder level, forecast, at risk, reorder suggestion, relative demand)
SAMPLE_PRODUCTS = (
    (-1, "Alpha Widgets", "SKU-ALPHA", 42, 15, 32.5, False, 0, 0.9),
    (-2, "Beta Casing", "SKU-BETA", 8, 12, 18.0, True, 10, 0.7),
    (-3, "Gamma Sensors", "SKU-GAMMA", 5, 8, 12.0, True, 8, 0.5),
)


# ---------------------------------------------------------------------------
# Helper utilities (kept top-level for straightforward unit testing)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like ``Math.round``: halves always go towards +infinity."""

    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def week_anchor(now: datetime) -> datetime:
    """Return Monday 00:00 UTC of the week containing ``now``."""

    moment = now.astimezone(timezone.utc) if now.tzinfo else now.replace(tzinfo=timezone.utc)
    monday = moment - timedelta(days=moment.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def weekly_run_rate(aggregate: Optional[ProductDemandAggregate], total_sold: float) -> float:
    """Average units sold per week over the span of recorded sales."""

    if aggregate is None or total_sold <= 0:
        return 0.0
    if aggregate.earliest is None or aggregate.latest is None:
        return float(total_sold)
    elapsed_days = (aggregate.latest - aggregate.earliest).days
    days = max(1, elapsed_days + 1)
    weeks = max(1.0, days / 7.0)
    return total_sold / weeks


def build_demand_history(
    base_week_start: datetime,
    baseline: float,
    relative_demand: float,
    points: int = DEFAULT_HISTORY_POINTS,
) -> List[DemandForecastSeriesPoint]:
    """Synthesize ``points`` trailing weekly values, oldest first."""

    offsets = np.arange(points, 0, -1, dtype=float)
    progress = (points - offsets) / points
    trend = baseline * relative_demand * 0.6 * progress
    seasonal = np.sin(offsets) * baseline * 0.12
    values = np.maximum(1.0, baseline + trend + seasonal)

    return [
        DemandForecastSeriesPoint(
            week_start=base_week_start - timedelta(weeks=int(offset)),
            quantity=int(round_half_up(float(value))),
        )
        for offset, value in zip(offsets, values)
    ]


def choose_action(
    shortfall: int,
    has_sales: bool,
    buffer_gap: int,
    reorder_level: int,
    relative_demand: float,
) -> tuple[str, int]:
    """Return ``(action, recommended_reorder)``; the first matching rule wins.

    ``buffer_gap`` is ``current_stock - rounded_forecast``.
    """

    if shortfall > 0:
        if relative_demand >= HIGH_DEMAND_SHARE:
            return f"High demand - reorder {shortfall} units", shortfall
        return f"Reorder {shortfall} units", shortfall
    if not has_sales:
        return "No sales yet", 0
    if buffer_gap <= reorder_level:
        top_up = max(0, reorder_level - buffer_gap)
        if relative_demand >= HIGH_DEMAND_SHARE:
            return "Top seller - keep buffer", top_up
        return "Top up safety stock", top_up
    if relative_demand >= TOP_DEMAND_SHARE:
        return "Top demand product - monitor closely", 0
    if relative_demand >= HEALTHY_DEMAND_SHARE:
        return "Healthy demand", 0
    return "Sufficient", 0


class DemandForecastService:
    """Rank every product by demand and flag the ones likely to run short."""

    def __init__(
        self,
        product_store: ProductStore,
        demand_store: DemandAggregateStore,
        warehouse_store: WarehouseStore,
        config_root: str = "configs",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        forecast_settings = load_section(config_root, "forecast")
        self.history_points = int(forecast_settings.get("history_points", DEFAULT_HISTORY_POINTS))
        if self.history_points <= 0:
            LOGGER.warning(
                "Configured history_points=%s is not positive; using %d",
                self.history_points,
                DEFAULT_HISTORY_POINTS,
            )
            self.history_points = DEFAULT_HISTORY_POINTS

        self.product_store = product_store
        self.demand_store = demand_store
        self.warehouse_store = warehouse_store
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    def forecast_for_user(
        self, user: CurrentUser, warehouse_id: Optional[int] = None
    ) -> List[DemandForecastItem]:
        scope = resolve_accessible_warehouse_scope(user, warehouse_id, resource="Demand forecasts")
        if not scope.is_global and self.warehouse_store.get_warehouse(scope.warehouse_id) is None:
            raise NotFoundError("Warehouse not found")
        return self.forecast(scope.warehouse_id)

    def forecast(self, warehouse_id: Optional[int] = None) -> List[DemandForecastItem]:
        """Forecast every product, or only those of ``warehouse_id``.

        Relative demand is always measured against the top seller of the whole
        catalog, so a product scores the same whichever scope it is viewed in.
        """

        catalog = self.product_store.list_products()
        base_week_start = week_anchor(self.clock())
        if not catalog:
            LOGGER.info("Catalog is empty; returning sample forecast")
            return self._fallback_items(base_week_start)

        if warehouse_id is None:
            products = catalog
        else:
            products = self.product_store.list_products_by_warehouse(warehouse_id)
        if not products:
            LOGGER.info("No products stocked in warehouse=%s; nothing to forecast", warehouse_id)
            return []

        aggregates = self.demand_store.aggregate_product_demand(None)
        quantities = [agg.total_quantity for agg in aggregates.values() if agg.total_quantity > 0]
        max_quantity = float(max(quantities)) if quantities else 0.0

        demand_score: Dict[int, float] = {}
        items: List[DemandForecastItem] = []
        for product in products:
            aggregate = aggregates.get(product.id)
            total_sold = float(aggregate.total_quantity) if aggregate is not None else 0.0
            demand_score[product.id] = total_sold
            items.append(
                self._forecast_product(product, aggregate, total_sold, max_quantity, base_week_start)
            )

        items.sort(key=lambda item: item.product_name)
        items.sort(
            key=lambda item: (demand_score.get(item.product_id, 0.0), item.forecast_quantity),
            reverse=True,
        )

        LOGGER.info(
            "Demand forecast built for %d products (warehouse=%s, at_risk=%d)",
            len(items),
            warehouse_id,
            sum(1 for item in items if item.at_risk),
        )
        return items

    # ------------------------------------------------------------------
    def _forecast_product(
        self,
        product: Product,
        aggregate: Optional[ProductDemandAggregate],
        total_sold: float,
        max_quantity: float,
        base_week_start: datetime,
    ) -> DemandForecastItem:
        relative_demand = total_sold / max_quantity if max_quantity > 0 and total_sold > 0 else 0.0
        run_rate = weekly_run_rate(aggregate, total_sold)
        baseline = run_rate if run_rate > 0 else max(1.0, product.reorder_level / 2.0)
        forecast = max(1.0, baseline * (1 + DEMAND_UPLIFT * relative_demand))
        forecast = round_half_up(forecast, 1)

        rounded_forecast = int(math.ceil(forecast))
        current_stock = product.current_stock
        shortfall = max(0, rounded_forecast - current_stock)
        buffer_gap = current_stock - rounded_forecast
        at_risk = shortfall > 0 or buffer_gap <= product.reorder_level

        action, recommended_reorder = choose_action(
            shortfall,
            has_sales=aggregate is not None and total_sold != 0,
            buffer_gap=buffer_gap,
            reorder_level=product.reorder_level,
            relative_demand=relative_demand,
        )

        return DemandForecastItem(
            product_id=product.id,
            product_name=product.name,
            product_sku=product.sku,
            current_stock=current_stock,
            reorder_level=product.reorder_level,
            forecast_quantity=forecast,
            at_risk=at_risk,
            recommended_reorder=recommended_reorder,
            action=action,
            history=build_demand_history(base_week_start, baseline, relative_demand, self.history_points),
        )

    def _fallback_items(self, base_week_start: datetime) -> List[DemandForecastItem]:
        items = []
        for (
            product_id,
            name,
            sku,
            stock,
            reorder,
            forecast,
            at_risk,
            suggestion,
            relative_demand,
        ) in SAMPLE_PRODUCTS:
            baseline = max(6.0, forecast * 0.6)
            items.append(
                DemandForecastItem(
                    product_id=product_id,
                    product_name=name,
                    product_sku=sku,
                    current_stock=stock,
                    reorder_level=reorder,
                    forecast_quantity=forecast,
                    at_risk=at_risk,
                    recommended_reorder=suggestion,
                    action=f"High demand - reorder {suggestion} units" if at_risk else "Sufficient",
                    history=build_demand_history(
                        base_week_start, baseline, relative_demand, self.history_points
                    ),
                )
            )
        return items
