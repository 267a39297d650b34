r"""backend\app\models\schemas.py

Pydantic models used throughout the API.

These models serve as both request payload validators and response
serialisation schemas.  Response models are built straight from the service
dataclasses (``from_attributes``) so the field names line up one to one.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .entities import PurchaseOrderStatus, StockStatus


class _FromAttributes(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Forecast


class DemandForecastSeriesPoint(_FromAttributes):
    """One week of the illustrative demand history."""

    week_start: datetime
    quantity: int


class DemandForecastItem(_FromAttributes):
    """Forecast and reorder advice for a single product."""

    product_id: int
    product_name: str
    product_sku: str
    current_stock: int
    reorder_level: int
    forecast_quantity: float = Field(..., description="Units expected to sell next week")
    at_risk: bool = Field(..., description="Whether stock may not cover next week plus the reorder buffer")
    recommended_reorder: int = Field(..., ge=0)
    action: str
    history: List[DemandForecastSeriesPoint]


# ---------------------------------------------------------------------------
# Restock


class RestockRecommendation(_FromAttributes):
    """Suggested restock for a product that is low, about to run out or auto-restocked."""

    product_id: int
    product_name: str
    product_sku: str
    category: str
    vendor: str
    warehouse_id: int
    warehouse_name: Optional[str] = None
    current_stock: int
    reorder_level: int
    max_stock_level: int
    auto_restock_enabled: bool
    unit_price: Decimal
    average_daily_demand: Decimal
    projected_days_until_stockout: Decimal
    suggested_reorder_quantity: int = Field(..., ge=0)
    recommendation_reason: str


class PurchaseOrderItemRequest(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., gt=0)


class PurchaseOrderRequest(BaseModel):
    """Payload for creating a purchase order and notifying the vendor."""

    vendor_name: str = Field(..., min_length=1, max_length=150)
    vendor_email: Optional[EmailStr] = None
    vendor_phone: Optional[str] = Field(None, max_length=30)
    vendor_contact_preference: Optional[str] = Field(None, max_length=30)
    notes: Optional[str] = Field(None, max_length=250)
    warehouse_id: Optional[int] = Field(
        None, description="Target warehouse; managers may omit it to use their own"
    )
    expected_delivery_date: Optional[datetime] = None
    items: List[PurchaseOrderItemRequest] = Field(default_factory=list)
    send_email: bool = False
    send_sms: bool = False

    @field_validator("vendor_email", mode="before")
    @classmethod
    def _normalise_vendor_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not str(value).strip():
            return None
        value = str(value).strip()
        if len(value) > 150:
            raise ValueError("vendor_email must be at most 150 characters")
        return value


class PurchaseOrderItemResponse(_FromAttributes):
    id: Optional[int] = None
    product_id: int
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class PurchaseOrderResponse(BaseModel):
    id: Optional[int] = None
    reference: str
    status: PurchaseOrderStatus
    vendor_name: str
    vendor_email: Optional[str] = None
    vendor_phone: Optional[str] = None
    vendor_contact_preference: Optional[str] = None
    notes: Optional[str] = None
    warehouse_id: int
    warehouse_name: Optional[str] = None
    created_by_id: int
    created_by_name: Optional[str] = None
    expected_delivery_date: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    subtotal_amount: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    total_amount: Decimal
    items: List[PurchaseOrderItemResponse]


# ---------------------------------------------------------------------------
# Products and sales


class ProductRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    sku: str = Field(..., min_length=1, max_length=60)
    category: str = Field(..., min_length=1, max_length=80)
    vendor: str = Field(..., min_length=1, max_length=120)
    reorder_level: int = Field(..., ge=0)
    max_stock_level: int = Field(..., ge=0)
    current_stock: int = Field(..., ge=0)
    price: Decimal = Field(..., ge=0)
    auto_restock_enabled: bool = False
    warehouse_id: Optional[int] = None


class ProductResponse(BaseModel):
    id: int
    name: str
    sku: str
    category: str
    vendor: str
    reorder_level: int
    max_stock_level: int
    current_stock: int
    low_stock: bool
    stock_status: StockStatus
    auto_restock_enabled: bool
    price: Decimal
    total_value: Decimal
    warehouse_id: int
    warehouse_name: Optional[str] = None
    warehouse_code: Optional[str] = None


class PurchaseRequest(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)


class PurchaseResponse(_FromAttributes):
    id: int
    product_id: int
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    purchased_at: datetime
    warehouse_name: str
    warehouse_code: str


class PurchaseHistoryResponse(BaseModel):
    purchases: List[PurchaseResponse]
    total_spend: Decimal


class SalesSummaryResponse(_FromAttributes):
    total_orders: int
    total_items: int
    total_revenue: Decimal


class WarehouseSalesResponse(_FromAttributes):
    warehouse_id: int
    warehouse_name: Optional[str] = None
    warehouse_code: Optional[str] = None
    total_orders: int
    total_items: int
    total_revenue: Decimal


class WarehouseProductSalesResponse(_FromAttributes):
    product_id: int
    product_name: str
    product_sku: str
    total_orders: int
    total_quantity: int
    total_revenue: Decimal


class WarehousePurchaseItemResponse(_FromAttributes):
    purchase_id: int
    product_id: int
    product_name: str
    product_sku: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    purchased_at: datetime
    buyer_name: Optional[str] = None
    buyer_email: Optional[str] = None


class WarehousePurchaseHistoryResponse(BaseModel):
    """Latest sales of one warehouse plus its all-time totals."""

    purchases: List[WarehousePurchaseItemResponse]
    total_orders: int
    total_items: int
    total_revenue: Decimal


# ---------------------------------------------------------------------------
# Warehouses


class WarehouseSummaryResponse(_FromAttributes):
    id: int
    name: str
    location_code: str
    active: bool


class ManagerWarehouseDetailResponse(_FromAttributes):
    """A manager together with a stock snapshot of the warehouse they run."""

    id: int
    full_name: str
    email: str
    warehouse_id: int
    warehouse_name: str
    warehouse_code: str
    total_products: int
    total_value: Decimal
    low_stock_count: int


# ---------------------------------------------------------------------------
# Analytics


class InventoryStatusSummary(_FromAttributes):
    total_products: int
    total_units: int
    low_stock_products: int
    out_of_stock_products: int
    auto_restock_enabled_products: int


class StatusSlice(_FromAttributes):
    label: str
    product_count: int
    unit_count: int


class MonthlyQuantityTrendPoint(_FromAttributes):
    year: int
    month: int
    label: str
    restocked_quantity: int
    sold_quantity: int


class MonthlyFinancialPoint(_FromAttributes):
    year: int
    month: int
    label: str
    restock_spend: Decimal
    sales_revenue: Decimal


class TopRestockedItem(_FromAttributes):
    product_id: int
    product_name: str
    product_sku: str
    total_quantity: int
    order_count: int


class RestockDemandPoint(_FromAttributes):
    product_id: int
    product_name: str
    product_sku: str
    restocked_quantity: int
    sold_quantity: int


class AnalyticsDashboardResponse(_FromAttributes):
    """Everything the analytics dashboard renders for one warehouse scope."""

    inventory_status: InventoryStatusSummary
    status_distribution: List[StatusSlice]
    monthly_quantity_trend: List[MonthlyQuantityTrendPoint]
    monthly_financials: List[MonthlyFinancialPoint]
    top_restocked_items: List[TopRestockedItem]
    restock_demand_comparison: List[RestockDemandPoint]
    scope_label: str
    generated_at: datetime
