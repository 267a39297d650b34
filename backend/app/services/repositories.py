r"""backend\app\services\repositories.py

Storage interfaces consumed by the services and an in-memory implementation.

The services depend only on the ``Protocol`` classes below.  The in-memory
store backs the API process and the test-suite; a database-backed store can
replace it as long as it honours the same contracts, in particular the
``unit_of_work`` rollback guarantee and reference uniqueness on save.
"""

from __future__ import annotations

import copy
import itertools
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Protocol, Tuple

from ..core.errors import ReferenceCollisionError, ValidationError
from ..models.entities import (
    MonthlyAggregate,
    Product,
    ProductDemandAggregate,
    Purchase,
    PurchaseOrder,
    User,
    Warehouse,
    WarehouseSalesAggregate,
)
from .demand_aggregator import DemandAggregator

LOGGER = logging.getLogger(__name__)


class ProductStore(Protocol):
    def list_products(self) -> List[Product]: ...

    def list_products_by_warehouse(self, warehouse_id: int) -> List[Product]: ...

    def get_product(self, product_id: int, warehouse_id: Optional[int] = None) -> Optional[Product]: ...

    def exists_by_sku(self, sku: str, exclude_id: Optional[int] = None) -> bool: ...

    def save_product(self, product: Product) -> Product: ...

    def delete_product(self, product_id: int) -> None: ...


class WarehouseStore(Protocol):
    def get_warehouse(self, warehouse_id: int) -> Optional[Warehouse]: ...

    def list_warehouses(self) -> List[Warehouse]: ...


class UserStore(Protocol):
    def get_user(self, user_id: int) -> Optional[User]: ...


class PurchaseStore(Protocol):
    def save_purchase(self, purchase: Purchase) -> Purchase: ...

    def list_purchases(
        self, user_id: Optional[int] = None, warehouse_id: Optional[int] = None
    ) -> List[Purchase]: ...


class DemandAggregateStore(Protocol):
    def aggregate_product_demand(
        self, warehouse_id: Optional[int] = None
    ) -> Dict[int, ProductDemandAggregate]: ...

    def aggregate_product_sales_between(
        self, start: datetime, end: datetime, warehouse_id: Optional[int] = None
    ) -> Dict[int, ProductDemandAggregate]: ...

    def aggregate_product_restock_between(
        self, start: datetime, end: datetime, warehouse_id: Optional[int] = None
    ) -> Dict[int, ProductDemandAggregate]: ...

    def monthly_sales_between(
        self, start: datetime, end: datetime, warehouse_id: Optional[int] = None
    ) -> Dict[Tuple[int, int], MonthlyAggregate]: ...

    def monthly_restock_between(
        self, start: datetime, end: datetime, warehouse_id: Optional[int] = None
    ) -> Dict[Tuple[int, int], MonthlyAggregate]: ...

    def aggregate_warehouse_sales(self) -> Dict[int, WarehouseSalesAggregate]: ...


class PurchaseOrderStore(Protocol):
    def save_purchase_order(self, order: PurchaseOrder) -> PurchaseOrder: ...

    def exists_by_reference(self, reference: str) -> bool: ...

    def list_purchase_orders(self, warehouse_id: Optional[int] = None) -> List[PurchaseOrder]: ...

    def delete_purchase_order(self, order_id: int) -> None: ...


class InMemoryInventoryStore:
    """Dictionary-backed store implementing every storage protocol."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._warehouses: Dict[int, Warehouse] = {}
        self._users: Dict[int, User] = {}
        self._products: Dict[int, Product] = {}
        self._purchases: Dict[int, Purchase] = {}
        self._orders: Dict[int, PurchaseOrder] = {}
        self._ids = {name: itertools.count(1) for name in ("product", "purchase", "order", "order_item")}

    # ------------------------------------------------------------------
    @contextmanager
    def unit_of_work(self) -> Iterator["InMemoryInventoryStore"]:
        """Run a block atomically: any exception restores the previous state."""

        with self._lock:
            snapshot = copy.deepcopy(
                (self._warehouses, self._users, self._products, self._purchases, self._orders)
            )
            try:
                yield self
            except BaseException:
                (
                    self._warehouses,
                    self._users,
                    self._products,
                    self._purchases,
                    self._orders,
                ) = snapshot
                LOGGER.warning("Unit of work rolled back")
                raise

    def _next_id(self, name: str, taken: Dict[int, object] | None = None) -> int:
        candidate = next(self._ids[name])
        while taken is not None and candidate in taken:
            candidate = next(self._ids[name])
        return candidate

    # ------------------------------------------------------------------
    # Warehouses and users
    def save_warehouse(self, warehouse: Warehouse) -> Warehouse:
        with self._lock:
            for existing in self._warehouses.values():
                if existing.id == warehouse.id:
                    continue
                if existing.name.lower() == warehouse.name.lower():
                    raise ValidationError("Warehouse name already exists")
                if existing.location_code.lower() == warehouse.location_code.lower():
                    raise ValidationError("Warehouse location code already exists")
            self._warehouses[warehouse.id] = warehouse
            return warehouse

    def get_warehouse(self, warehouse_id: int) -> Optional[Warehouse]:
        return self._warehouses.get(warehouse_id)

    def list_warehouses(self) -> List[Warehouse]:
        return sorted(self._warehouses.values(), key=lambda warehouse: warehouse.id)

    def save_user(self, user: User) -> User:
        with self._lock:
            self._users[user.id] = user
            return user

    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    # ------------------------------------------------------------------
    # Products
    def list_products(self) -> List[Product]:
        return sorted(self._products.values(), key=lambda product: product.id)

    def list_products_by_warehouse(self, warehouse_id: int) -> List[Product]:
        return [product for product in self.list_products() if product.warehouse_id == warehouse_id]

    def get_product(self, product_id: int, warehouse_id: Optional[int] = None) -> Optional[Product]:
        product = self._products.get(product_id)
        if product is None or (warehouse_id is not None and product.warehouse_id != warehouse_id):
            return None
        return product

    def exists_by_sku(self, sku: str, exclude_id: Optional[int] = None) -> bool:
        wanted = sku.strip().lower()
        return any(
            product.sku.lower() == wanted and product.id != exclude_id
            for product in self._products.values()
        )

    def save_product(self, product: Product) -> Product:
        with self._lock:
            if product.id is None or product.id <= 0:
                product.id = self._next_id("product", self._products)
            self._products[product.id] = product
            return product

    def delete_product(self, product_id: int) -> None:
        with self._lock:
            self._products.pop(product_id, None)

    # ------------------------------------------------------------------
    # Sales
    def save_purchase(self, purchase: Purchase) -> Purchase:
        with self._lock:
            if purchase.id is None or purchase.id <= 0:
                purchase.id = self._next_id("purchase", self._purchases)
            self._purchases[purchase.id] = purchase
            return purchase

    def list_purchases(
        self, user_id: Optional[int] = None, warehouse_id: Optional[int] = None
    ) -> List[Purchase]:
        purchases = [
            purchase
            for purchase in self._purchases.values()
            if (user_id is None or purchase.user_id == user_id)
            and (warehouse_id is None or purchase.warehouse_id == warehouse_id)
        ]
        return sorted(purchases, key=lambda purchase: purchase.purchased_at, reverse=True)

    # ------------------------------------------------------------------
    # Purchase orders
    def exists_by_reference(self, reference: str) -> bool:
        wanted = reference.lower()
        return any(order.reference.lower() == wanted for order in self._orders.values())

    def save_purchase_order(self, order: PurchaseOrder) -> PurchaseOrder:
        with self._lock:
            wanted = order.reference.lower()
            for existing in self._orders.values():
                if existing.id != order.id and existing.reference.lower() == wanted:
                    raise ReferenceCollisionError(
                        f"Purchase order reference {order.reference} is already in use; retry the request"
                    )
            if order.id is None:
                order.id = self._next_id("order", self._orders)
            for item in order.items:
                if item.id is None:
                    item.id = self._next_id("order_item")
            self._orders[order.id] = order
            return order

    def delete_purchase_order(self, order_id: int) -> None:
        with self._lock:
            self._orders.pop(order_id, None)

    def list_purchase_orders(self, warehouse_id: Optional[int] = None) -> List[PurchaseOrder]:
        orders = [
            order
            for order in self._orders.values()
            if warehouse_id is None or order.warehouse_id == warehouse_id
        ]
        return sorted(orders, key=lambda order: (order.created_at is not None, order.created_at, order.id), reverse=True)

    # ------------------------------------------------------------------
    # Aggregates
    def _aggregator(self) -> DemandAggregator:
        return DemandAggregator(self._purchases.values(), self._orders.values())

    def aggregate_product_demand(
        self, warehouse_id: Optional[int] = None
    ) -> Dict[int, ProductDemandAggregate]:
        return self._aggregator().product_sales(warehouse_id=warehouse_id)

    def aggregate_product_sales_between(
        self, start: datetime, end: datetime, warehouse_id: Optional[int] = None
    ) -> Dict[int, ProductDemandAggregate]:
        return self._aggregator().product_sales(start, end, warehouse_id)

    def aggregate_product_restock_between(
        self, start: datetime, end: datetime, warehouse_id: Optional[int] = None
    ) -> Dict[int, ProductDemandAggregate]:
        return self._aggregator().product_restocks(start, end, warehouse_id)

    def monthly_sales_between(
        self, start: datetime, end: datetime, warehouse_id: Optional[int] = None
    ) -> Dict[Tuple[int, int], MonthlyAggregate]:
        return self._aggregator().monthly_sales(start, end, warehouse_id)

    def monthly_restock_between(
        self, start: datetime, end: datetime, warehouse_id: Optional[int] = None
    ) -> Dict[Tuple[int, int], MonthlyAggregate]:
        return self._aggregator().monthly_restocks(start, end, warehouse_id)

    def aggregate_warehouse_sales(self) -> Dict[int, WarehouseSalesAggregate]:
        return self._aggregator().warehouse_sales()
