r"""backend\app\services\warehouse_service.py

Warehouse directory and the per-manager stock snapshot shown on the admin
console.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Protocol

from ..core.access import CurrentUser, Role, require_role, resolve_accessible_warehouse_scope
from ..core.errors import NotFoundError, ValidationError
from ..models import schemas
from ..models.entities import Warehouse, quantize_money
from .repositories import ProductStore, UserStore, WarehouseStore

LOGGER = logging.getLogger(__name__)


class WarehouseRepository(ProductStore, WarehouseStore, UserStore, Protocol):
    pass


class WarehouseService:
    def __init__(self, store: WarehouseRepository) -> None:
        self.store = store

    def list_warehouses(self, user: CurrentUser) -> List[Warehouse]:
        """Active warehouses by name for administrators; a manager sees only their own."""

        scope = resolve_accessible_warehouse_scope(user, None, resource="Warehouses")
        if scope.is_global:
            active = [warehouse for warehouse in self.store.list_warehouses() if warehouse.active]
            return sorted(active, key=lambda warehouse: warehouse.name.lower())

        warehouse = self.store.get_warehouse(scope.warehouse_id)
        if warehouse is None:
            raise NotFoundError("Warehouse not found")
        return [warehouse]

    def manager_detail(self, user: CurrentUser, manager_id: int) -> schemas.ManagerWarehouseDetailResponse:
        require_role(user, Role.ADMIN, resource="Manager details")

        manager = self.store.get_user(manager_id)
        if manager is None:
            raise NotFoundError("Manager not found")
        if manager.role is not Role.MANAGER:
            raise ValidationError("User is not a manager", code="not_a_manager")
        if manager.warehouse_id is None:
            raise ValidationError("Manager is not assigned to a warehouse", code="warehouse_unassigned")
        warehouse = self.store.get_warehouse(manager.warehouse_id)
        if warehouse is None:
            raise NotFoundError("Warehouse not found")

        products = self.store.list_products_by_warehouse(warehouse.id)
        total_value = sum((product.price * product.current_stock for product in products), Decimal("0"))
        low_stock = sum(1 for product in products if 0 < product.current_stock <= product.reorder_level)
        LOGGER.debug("Manager %s runs warehouse=%s with %d products", manager.id, warehouse.id, len(products))

        return schemas.ManagerWarehouseDetailResponse(
            id=manager.id,
            full_name=manager.full_name,
            email=manager.email,
            warehouse_id=warehouse.id,
            warehouse_name=warehouse.name,
            warehouse_code=warehouse.location_code,
            total_products=len(products),
            total_value=quantize_money(total_value),
            low_stock_count=low_stock,
        )
