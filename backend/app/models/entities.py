r"""backend\app\models\entities.py

Domain entities held by the inventory store and the derived read-models the
store computes from them.

Entities are plain mutable dataclasses owned by the store; aggregates and
recommendations are frozen value objects recomputed for every request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import List, Optional

from ..core.access import Role

TWO_PLACES = Decimal("0.01")


def quantize_money(value: Decimal | float | int | str) -> Decimal:
    """Round a monetary value to cents, half-up."""

    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class StockStatus(str, Enum):
    OUT_OF_STOCK = "OUT_OF_STOCK"
    LOW_STOCK = "LOW_STOCK"
    IN_STOCK = "IN_STOCK"


class PurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_VENDOR_APPROVAL = "PENDING_VENDOR_APPROVAL"
    SENT_TO_VENDOR = "SENT_TO_VENDOR"
    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"


@dataclass
class Warehouse:
    id: int
    name: str
    location_code: str
    active: bool = True


@dataclass
class User:
    id: int
    full_name: str
    email: str
    role: Role
    warehouse_id: Optional[int] = None


@dataclass
class Product:
    """Catalog entry with its stock state; owned by exactly one warehouse."""

    id: Optional[int]
    sku: str
    name: str
    category: str
    vendor: str
    warehouse_id: int
    current_stock: int = 0
    reorder_level: int = 0
    max_stock_level: int = 0
    price: Decimal = Decimal("0.00")
    auto_restock_enabled: bool = False

    @property
    def stock_status(self) -> StockStatus:
        if self.current_stock <= 0:
            return StockStatus.OUT_OF_STOCK
        if self.current_stock <= self.reorder_level:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK


def resolve_max_stock_level(product: Product) -> int:
    """Return the restock ceiling, defaulting heuristically when unset."""

    if product.max_stock_level > 0:
        return product.max_stock_level
    return product.reorder_level * 2 if product.reorder_level > 0 else 50


@dataclass
class Purchase:
    """A completed sale; product and warehouse details are snapshotted."""

    id: Optional[int]
    user_id: int
    product_id: int
    warehouse_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    purchased_at: datetime
    product_name: str
    product_sku: str
    warehouse_name: str
    warehouse_code: str


@dataclass
class PurchaseOrderItem:
    product_id: int
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    id: Optional[int] = None


@dataclass
class PurchaseOrder:
    reference: str
    vendor_name: str
    warehouse_id: int
    created_by_id: int
    status: PurchaseOrderStatus = PurchaseOrderStatus.DRAFT
    vendor_email: Optional[str] = None
    vendor_phone: Optional[str] = None
    vendor_contact_preference: Optional[str] = None
    notes: Optional[str] = None
    subtotal_amount: Decimal = Decimal("0.00")
    tax_amount: Decimal = Decimal("0.00")
    shipping_amount: Decimal = Decimal("0.00")
    total_amount: Decimal = Decimal("0.00")
    expected_delivery_date: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[PurchaseOrderItem] = field(default_factory=list)
    id: Optional[int] = None

    def add_item(self, item: PurchaseOrderItem) -> None:
        self.items.append(item)


# ---------------------------------------------------------------------------
# Derived read-models


@dataclass(frozen=True)
class ProductDemandAggregate:
    """Per-product totals over a set of sale or restock records."""

    product_id: int
    product_name: str
    product_sku: str
    total_quantity: int
    total_orders: int
    total_amount: Decimal
    earliest: Optional[datetime]
    latest: Optional[datetime]


@dataclass(frozen=True)
class MonthlyAggregate:
    year: int
    month: int
    total_quantity: int
    total_amount: Decimal


@dataclass(frozen=True)
class WarehouseSalesAggregate:
    warehouse_id: int
    total_orders: int
    total_quantity: int
    total_amount: Decimal


@dataclass(frozen=True)
class RestockRecommendation:
    product_id: int
    product_name: str
    product_sku: str
    category: str
    vendor: str
    warehouse_id: int
    warehouse_name: Optional[str]
    current_stock: int
    reorder_level: int
    max_stock_level: int
    auto_restock_enabled: bool
    unit_price: Decimal
    average_daily_demand: Decimal
    projected_days_until_stockout: Decimal
    suggested_reorder_quantity: int
    recommendation_reason: str


@dataclass(frozen=True)
class DemandForecastSeriesPoint:
    week_start: datetime
    quantity: int


@dataclass(frozen=True)
class DemandForecastItem:
    product_id: int
    product_name: str
    product_sku: str
    current_stock: int
    reorder_level: int
    forecast_quantity: float
    at_risk: bool
    recommended_reorder: int
    action: str
    history: List[DemandForecastSeriesPoint]
