"""Routes for the warehouse directory."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends

from ...core.access import CurrentUser
from ...core.errors import InventoryError
from ...models import schemas
from ...services.warehouse_service import WarehouseService
from . import deps

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_warehouse_service = WarehouseService(deps.STORE)


@router.get("/warehouses", response_model=List[schemas.WarehouseSummaryResponse])
def list_warehouses(user: CurrentUser = Depends(deps.get_current_user)) -> List[schemas.WarehouseSummaryResponse]:
    try:
        warehouses = _warehouse_service.list_warehouses(user)
    except InventoryError as exc:
        raise deps.http_error(exc) from exc
    return [schemas.WarehouseSummaryResponse.model_validate(warehouse) for warehouse in warehouses]


@router.get("/warehouses/manager/{manager_id}", response_model=schemas.ManagerWarehouseDetailResponse)
def manager_warehouse_detail(
    manager_id: int,
    user: CurrentUser = Depends(deps.get_current_user),
) -> schemas.ManagerWarehouseDetailResponse:
    """Return a manager's contact details with a stock snapshot of their warehouse."""

    try:
        return _warehouse_service.manager_detail(user, manager_id)
    except InventoryError as exc:
        LOGGER.warning("Manager detail rejected for user=%s manager=%s: %s", user.id, manager_id, exc.message)
        raise deps.http_error(exc) from exc
