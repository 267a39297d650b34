"""Routes for point-of-sale purchases and sales reporting."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...core.access import CurrentUser
from ...core.errors import InventoryError
from ...models import schemas
from ...services.inventory_service import PurchaseService
from . import deps

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_purchase_service = PurchaseService(deps.STORE)


@router.post("/purchases", response_model=schemas.PurchaseResponse, status_code=status.HTTP_201_CREATED)
def purchase_product(
    body: schemas.PurchaseRequest,
    user: CurrentUser = Depends(deps.get_current_user),
) -> schemas.PurchaseResponse:
    """Buy ``quantity`` units of a product, decrementing its stock."""

    try:
        purchase = _purchase_service.purchase_product(user, body.product_id, body.quantity)
    except InventoryError as exc:
        LOGGER.warning("Purchase rejected for user=%s product=%s: %s", user.id, body.product_id, exc.message)
        raise deps.http_error(exc) from exc
    return schemas.PurchaseResponse.model_validate(purchase)


@router.get("/purchases/history", response_model=schemas.PurchaseHistoryResponse)
def purchase_history(user: CurrentUser = Depends(deps.get_current_user)) -> schemas.PurchaseHistoryResponse:
    try:
        return _purchase_service.history_for_user(user)
    except InventoryError as exc:
        raise deps.http_error(exc) from exc


@router.get("/purchases/summary", response_model=schemas.SalesSummaryResponse)
def sales_summary(
    warehouse_id: Optional[int] = Query(None),
    user: CurrentUser = Depends(deps.get_current_user),
) -> schemas.SalesSummaryResponse:
    try:
        return _purchase_service.sales_summary(user, warehouse_id)
    except InventoryError as exc:
        raise deps.http_error(exc) from exc


@router.get("/purchases/summary/by-warehouse", response_model=List[schemas.WarehouseSalesResponse])
def sales_by_warehouse(user: CurrentUser = Depends(deps.get_current_user)) -> List[schemas.WarehouseSalesResponse]:
    try:
        return _purchase_service.sales_by_warehouse(user)
    except InventoryError as exc:
        raise deps.http_error(exc) from exc


@router.get(
    "/purchases/summary/by-warehouse/{warehouse_id}/products",
    response_model=List[schemas.WarehouseProductSalesResponse],
)
def product_sales_by_warehouse(
    warehouse_id: int,
    user: CurrentUser = Depends(deps.get_current_user),
) -> List[schemas.WarehouseProductSalesResponse]:
    try:
        return _purchase_service.product_sales_by_warehouse(user, warehouse_id)
    except InventoryError as exc:
        raise deps.http_error(exc) from exc


@router.get("/purchases/warehouse-history", response_model=schemas.WarehousePurchaseHistoryResponse)
def warehouse_history(
    warehouse_id: Optional[int] = Query(None, description="Administrators must name the warehouse"),
    user: CurrentUser = Depends(deps.get_current_user),
) -> schemas.WarehousePurchaseHistoryResponse:
    """Return the latest sales of one warehouse together with its totals."""

    try:
        return _purchase_service.warehouse_history(user, warehouse_id)
    except InventoryError as exc:
        LOGGER.warning("Warehouse purchase history rejected for user=%s: %s", user.id, exc.message)
        raise deps.http_error(exc) from exc
