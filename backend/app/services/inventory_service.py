r"""backend\app\services\inventory_service.py

Product catalogue maintenance and point-of-sale purchases.

Both services work against the shared inventory store.  Product writes and
sales each run inside one unit of work, so a failed sale never leaves stock
decremented without its purchase record.  Sales reporting covers the
caller's own history, per-warehouse rollups for administrators and the
latest sales of one warehouse.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, ContextManager, List, Optional, Protocol

from ..core.access import CurrentUser, Role, require_role, resolve_accessible_warehouse_scope
from ..core.errors import NotFoundError, ValidationError
from ..models import schemas
from ..models.entities import Product, Purchase, StockStatus, quantize_money
from .repositories import DemandAggregateStore, ProductStore, PurchaseStore, UserStore, WarehouseStore

LOGGER = logging.getLogger(__name__)

RECENT_SALES_LIMIT = 50


class InventoryRepository(
    ProductStore, WarehouseStore, UserStore, PurchaseStore, DemandAggregateStore, Protocol
):
    def unit_of_work(self) -> ContextManager[object]: ...


class InventoryService:
    """Create and list products within the caller's warehouse scope."""

    def __init__(self, store: InventoryRepository) -> None:
        self.store = store

    # ------------------------------------------------------------------
    def create_product(self, user: CurrentUser, request: schemas.ProductRequest) -> Product:
        sku = request.sku.strip().upper()
        if self.store.exists_by_sku(sku):
            raise ValidationError("SKU already exists", code="duplicate_sku")
        if user.is_admin and request.warehouse_id is None:
            raise ValidationError(
                "Warehouse selection is required for new products", code="warehouse_required"
            )

        scope = resolve_accessible_warehouse_scope(user, request.warehouse_id, resource="Products")
        warehouse = self.store.get_warehouse(scope.warehouse_id)
        if warehouse is None:
            raise NotFoundError("Warehouse not found")
        if request.max_stock_level < request.reorder_level:
            raise ValidationError("Max stock level cannot be less than min stock level")

        product = Product(
            id=None,
            sku=sku,
            name=request.name.strip(),
            category=request.category.strip(),
            vendor=request.vendor.strip(),
            warehouse_id=warehouse.id,
            current_stock=request.current_stock,
            reorder_level=request.reorder_level,
            max_stock_level=request.max_stock_level,
            price=quantize_money(request.price),
            auto_restock_enabled=request.auto_restock_enabled,
        )
        with self.store.unit_of_work():
            saved = self.store.save_product(product)

        LOGGER.info("Product %s (%s) created in warehouse=%s", saved.id, saved.sku, warehouse.id)
        return saved

    def update_product(
        self, user: CurrentUser, product_id: int, request: schemas.ProductRequest
    ) -> Product:
        """Overwrite a managed product; only administrators may move it between warehouses."""

        with self.store.unit_of_work():
            product = self._managed_product(user, product_id)
            sku = request.sku.strip().upper()
            if self.store.exists_by_sku(sku, exclude_id=product.id):
                raise ValidationError("SKU already exists", code="duplicate_sku")

            scope = resolve_accessible_warehouse_scope(user, request.warehouse_id, resource="Products")
            target_id = scope.warehouse_id if scope.warehouse_id is not None else product.warehouse_id
            warehouse = self.store.get_warehouse(target_id)
            if warehouse is None:
                raise NotFoundError("Warehouse not found")
            if request.max_stock_level < request.reorder_level:
                raise ValidationError("Max stock level cannot be less than min stock level")

            product.sku = sku
            product.name = request.name.strip()
            product.category = request.category.strip()
            product.vendor = request.vendor.strip()
            product.warehouse_id = warehouse.id
            product.current_stock = request.current_stock
            product.reorder_level = request.reorder_level
            product.max_stock_level = request.max_stock_level
            product.price = quantize_money(request.price)
            product.auto_restock_enabled = request.auto_restock_enabled
            saved = self.store.save_product(product)

        LOGGER.info("Product %s (%s) updated by user=%s", saved.id, saved.sku, user.id)
        return saved

    def delete_product(self, user: CurrentUser, product_id: int) -> None:
        with self.store.unit_of_work():
            product = self._managed_product(user, product_id)
            self.store.delete_product(product.id)
        LOGGER.info("Product %s (%s) deleted by user=%s", product.id, product.sku, user.id)

    def _managed_product(self, user: CurrentUser, product_id: int) -> Product:
        scope = resolve_accessible_warehouse_scope(user, None, resource="Products")
        product = self.store.get_product(product_id, scope.warehouse_id)
        if product is None:
            if scope.is_global:
                raise NotFoundError("Product not found")
            raise NotFoundError("Product not found in your warehouse")
        return product

    def list_products(
        self,
        user: CurrentUser,
        warehouse_id: Optional[int] = None,
        stock_status: Optional[StockStatus] = None,
    ) -> List[Product]:
        """Return products visible to ``user``; shoppers browse every warehouse."""

        if user.role is Role.USER:
            target = warehouse_id
        else:
            target = resolve_accessible_warehouse_scope(user, warehouse_id, resource="Products").warehouse_id

        if target is None:
            products = self.store.list_products()
        else:
            products = self.store.list_products_by_warehouse(target)
        if stock_status is not None:
            products = [product for product in products if product.stock_status is stock_status]
        return products

    def to_response(self, product: Product) -> schemas.ProductResponse:
        warehouse = self.store.get_warehouse(product.warehouse_id)
        return schemas.ProductResponse(
            id=product.id,
            name=product.name,
            sku=product.sku,
            category=product.category,
            vendor=product.vendor,
            reorder_level=product.reorder_level,
            max_stock_level=product.max_stock_level if product.max_stock_level > 0 else product.reorder_level,
            current_stock=product.current_stock,
            low_stock=product.current_stock <= product.reorder_level,
            stock_status=product.stock_status,
            auto_restock_enabled=product.auto_restock_enabled,
            price=product.price,
            total_value=quantize_money(product.price * product.current_stock),
            warehouse_id=product.warehouse_id,
            warehouse_name=warehouse.name if warehouse is not None else None,
            warehouse_code=warehouse.location_code if warehouse is not None else None,
        )


class PurchaseService:
    """Record sales and report on them."""

    def __init__(
        self,
        store: InventoryRepository,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    def purchase_product(self, user: CurrentUser, product_id: int, quantity: int) -> Purchase:
        if user.role is not Role.USER:
            raise ValidationError("Only end users can purchase products", code="forbidden_role")
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        if self.store.get_user(user.id) is None:
            raise NotFoundError("User not found")

        with self.store.unit_of_work():
            product = self.store.get_product(product_id)
            if product is None:
                raise NotFoundError("Product not found")
            if product.current_stock < quantity:
                raise ValidationError("Insufficient stock for this product", code="insufficient_stock")
            warehouse = self.store.get_warehouse(product.warehouse_id)
            if warehouse is None:
                raise NotFoundError("Warehouse not found")

            product.current_stock -= quantity
            self.store.save_product(product)

            purchase = self.store.save_purchase(
                Purchase(
                    id=None,
                    user_id=user.id,
                    product_id=product.id,
                    warehouse_id=warehouse.id,
                    quantity=quantity,
                    unit_price=product.price,
                    total_price=quantize_money(product.price * quantity),
                    purchased_at=self.clock(),
                    product_name=product.name,
                    product_sku=product.sku,
                    warehouse_name=warehouse.name,
                    warehouse_code=warehouse.location_code,
                )
            )

        LOGGER.info(
            "User %s bought %d x %s (stock now %d)",
            user.id,
            quantity,
            purchase.product_sku,
            product.current_stock,
        )
        return purchase

    def history_for_user(self, user: CurrentUser) -> schemas.PurchaseHistoryResponse:
        require_role(user, Role.USER, resource="Purchase history")
        purchases = self.store.list_purchases(user_id=user.id)
        total_spend = sum((purchase.total_price for purchase in purchases), Decimal("0.00"))
        return schemas.PurchaseHistoryResponse(
            purchases=[schemas.PurchaseResponse.model_validate(purchase) for purchase in purchases],
            total_spend=total_spend,
        )

    def sales_summary(
        self, user: CurrentUser, warehouse_id: Optional[int] = None
    ) -> schemas.SalesSummaryResponse:
        scope = resolve_accessible_warehouse_scope(user, warehouse_id, resource="Sales summaries")
        purchases = self.store.list_purchases(warehouse_id=scope.warehouse_id)
        return schemas.SalesSummaryResponse(
            total_orders=len(purchases),
            total_items=sum(purchase.quantity for purchase in purchases),
            total_revenue=sum((purchase.total_price for purchase in purchases), Decimal("0.00")),
        )

    def sales_by_warehouse(self, user: CurrentUser) -> List[schemas.WarehouseSalesResponse]:
        """Sales totals per warehouse that has sold anything, highest revenue first."""

        require_role(user, Role.ADMIN, resource="Warehouse sales")
        rows = []
        for aggregate in self.store.aggregate_warehouse_sales().values():
            warehouse = self.store.get_warehouse(aggregate.warehouse_id)
            rows.append(
                schemas.WarehouseSalesResponse(
                    warehouse_id=aggregate.warehouse_id,
                    warehouse_name=warehouse.name if warehouse is not None else None,
                    warehouse_code=warehouse.location_code if warehouse is not None else None,
                    total_orders=aggregate.total_orders,
                    total_items=aggregate.total_quantity,
                    total_revenue=aggregate.total_amount,
                )
            )
        rows.sort(key=lambda row: row.total_revenue, reverse=True)
        return rows

    def product_sales_by_warehouse(
        self, user: CurrentUser, warehouse_id: int
    ) -> List[schemas.WarehouseProductSalesResponse]:
        require_role(user, Role.ADMIN, resource="Warehouse sales")
        if self.store.get_warehouse(warehouse_id) is None:
            raise NotFoundError("Warehouse not found")

        aggregates = self.store.aggregate_product_demand(warehouse_id).values()
        return [
            schemas.WarehouseProductSalesResponse(
                product_id=aggregate.product_id,
                product_name=aggregate.product_name,
                product_sku=aggregate.product_sku,
                total_orders=aggregate.total_orders,
                total_quantity=aggregate.total_quantity,
                total_revenue=aggregate.total_amount,
            )
            for aggregate in sorted(aggregates, key=lambda agg: agg.total_amount, reverse=True)
        ]

    def warehouse_history(
        self, user: CurrentUser, warehouse_id: Optional[int] = None
    ) -> schemas.WarehousePurchaseHistoryResponse:
        """Latest sales of one warehouse with the buyer attached, plus all-time totals."""

        scope = resolve_accessible_warehouse_scope(
            user, warehouse_id, resource="Purchase history", require_warehouse=True
        )
        if self.store.get_warehouse(scope.warehouse_id) is None:
            raise NotFoundError("Warehouse not found")

        purchases = self.store.list_purchases(warehouse_id=scope.warehouse_id)
        items = []
        for purchase in purchases[:RECENT_SALES_LIMIT]:
            buyer = self.store.get_user(purchase.user_id)
            items.append(
                schemas.WarehousePurchaseItemResponse(
                    purchase_id=purchase.id,
                    product_id=purchase.product_id,
                    product_name=purchase.product_name,
                    product_sku=purchase.product_sku,
                    quantity=purchase.quantity,
                    unit_price=purchase.unit_price,
                    total_price=purchase.total_price,
                    purchased_at=purchase.purchased_at,
                    buyer_name=buyer.full_name if buyer is not None else None,
                    buyer_email=buyer.email if buyer is not None else None,
                )
            )
        return schemas.WarehousePurchaseHistoryResponse(
            purchases=items,
            total_orders=len(purchases),
            total_items=sum(purchase.quantity for purchase in purchases),
            total_revenue=sum((purchase.total_price for purchase in purchases), Decimal("0.00")),
        )
