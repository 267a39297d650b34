"""Routes for the product catalogue."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ...core.access import CurrentUser
from ...core.errors import InventoryError
from ...models import schemas
from ...models.entities import StockStatus
from ...services.inventory_service import InventoryService
from . import deps

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_inventory_service = InventoryService(deps.STORE)


@router.get("/products", response_model=List[schemas.ProductResponse])
def list_products(
    warehouse_id: Optional[int] = Query(None),
    stock_status: Optional[StockStatus] = Query(None),
    user: CurrentUser = Depends(deps.get_current_user),
) -> List[schemas.ProductResponse]:
    try:
        products = _inventory_service.list_products(user, warehouse_id, stock_status)
    except InventoryError as exc:
        LOGGER.warning("Product listing rejected for user=%s: %s", user.id, exc.message)
        raise deps.http_error(exc) from exc
    return [_inventory_service.to_response(product) for product in products]


@router.post("/products", response_model=schemas.ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    body: schemas.ProductRequest,
    user: CurrentUser = Depends(deps.get_current_user),
) -> schemas.ProductResponse:
    try:
        product = _inventory_service.create_product(user, body)
    except InventoryError as exc:
        LOGGER.warning("Product creation rejected for user=%s sku=%s: %s", user.id, body.sku, exc.message)
        raise deps.http_error(exc) from exc
    return _inventory_service.to_response(product)


@router.put("/products/{product_id}", response_model=schemas.ProductResponse)
def update_product(
    product_id: int,
    body: schemas.ProductRequest,
    user: CurrentUser = Depends(deps.get_current_user),
) -> schemas.ProductResponse:
    try:
        product = _inventory_service.update_product(user, product_id, body)
    except InventoryError as exc:
        LOGGER.warning("Product update rejected for user=%s product=%s: %s", user.id, product_id, exc.message)
        raise deps.http_error(exc) from exc
    return _inventory_service.to_response(product)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: int, user: CurrentUser = Depends(deps.get_current_user)) -> Response:
    try:
        _inventory_service.delete_product(user, product_id)
    except InventoryError as exc:
        LOGGER.warning("Product deletion rejected for user=%s product=%s: %s", user.id, product_id, exc.message)
        raise deps.http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
