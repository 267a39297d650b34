r"""backend\app\api\v1\restock.py

Routes for restock recommendations and purchase orders."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...core.access import CurrentUser, resolve_accessible_warehouse_scope
from ...core.errors import InventoryError
from ...core.observability import record_purchase_order, record_recommendations
from ...models import schemas
from ...models.entities import StockStatus
from ...services.procurement_service import RestockRecommendationService
from ...services.purchase_order_service import PurchaseOrderService
from . import deps

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_recommendation_service = RestockRecommendationService(
    deps.STORE, deps.STORE, deps.STORE, config_root=deps.CONFIG_DIR
)
_purchase_order_service = PurchaseOrderService(deps.STORE, deps.DISPATCHER)


def _unexpected(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=deps._error_payload("internal_error", message),
    )


@router.get("/restock/suggestions", response_model=List[schemas.RestockRecommendation])
def get_restock_suggestions(
    warehouse_id: Optional[int] = Query(None, description="Warehouse to evaluate"),
    category: Optional[str] = Query(None, description="Exact category name, case-insensitive"),
    auto_only: Optional[bool] = Query(None, description="Only auto-restock products"),
    stock_status: Optional[StockStatus] = Query(None, description="Stock status filter"),
    user: CurrentUser = Depends(deps.get_current_user),
) -> List[schemas.RestockRecommendation]:
    """Return products that need restocking, most urgent first."""

    LOGGER.info(
        "Restock suggestions requested by user=%s warehouse=%s category=%s auto_only=%s status=%s",
        user.id,
        warehouse_id,
        category,
        auto_only,
        stock_status.value if stock_status else None,
    )
    try:
        recommendations = _recommendation_service.recommend(
            user,
            warehouse_id=warehouse_id,
            category=category,
            auto_restock_only=auto_only,
            stock_status=stock_status,
        )
    except InventoryError as exc:
        LOGGER.warning("Restock suggestions rejected for user=%s: %s", user.id, exc.message)
        raise deps.http_error(exc) from exc
    except Exception as exc:  # pragma: no cover
        LOGGER.exception("Unexpected error while building restock suggestions")
        raise _unexpected("An unexpected error occurred while building restock suggestions.") from exc

    record_recommendations(warehouse_id if warehouse_id is not None else user.warehouse_id, len(recommendations))
    return [schemas.RestockRecommendation.model_validate(rec) for rec in recommendations]


@router.get("/restock/purchase-orders", response_model=List[schemas.PurchaseOrderResponse])
def list_purchase_orders(
    warehouse_id: Optional[int] = Query(None, description="Warehouse whose orders to list"),
    user: CurrentUser = Depends(deps.get_current_user),
) -> List[schemas.PurchaseOrderResponse]:
    """List purchase orders, newest first."""

    try:
        orders = _purchase_order_service.list(user, warehouse_id)
    except InventoryError as exc:
        LOGGER.warning("Purchase order listing rejected for user=%s: %s", user.id, exc.message)
        raise deps.http_error(exc) from exc

    return [_purchase_order_service.to_response(order) for order in orders]


@router.post(
    "/restock/purchase-orders",
    response_model=schemas.PurchaseOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_purchase_order(
    body: schemas.PurchaseOrderRequest,
    user: CurrentUser = Depends(deps.get_current_user),
) -> schemas.PurchaseOrderResponse:
    """Create a purchase order and notify the vendor on the requested channels."""

    LOGGER.info(
        "Purchase order requested by user=%s warehouse=%s items=%d email=%s sms=%s",
        user.id,
        body.warehouse_id,
        len(body.items),
        body.send_email,
        body.send_sms,
    )
    try:
        order = _purchase_order_service.create(user, body)
    except InventoryError as exc:
        LOGGER.warning("Purchase order rejected for user=%s: %s", user.id, exc.message)
        raise deps.http_error(exc) from exc
    except Exception as exc:  # pragma: no cover
        LOGGER.exception("Unexpected error while creating a purchase order")
        raise _unexpected("An unexpected error occurred while creating the purchase order.") from exc

    record_purchase_order(order.status.value)
    return _purchase_order_service.to_response(order)


@router.get("/restock/settings")
def get_restock_settings(user: CurrentUser = Depends(deps.get_current_user)) -> Dict[str, Any]:
    """Return the recommendation tunables currently in effect."""

    try:
        resolve_accessible_warehouse_scope(user, None, resource="Restock settings")
    except InventoryError as exc:
        raise deps.http_error(exc) from exc
    return _recommendation_service.describe()
