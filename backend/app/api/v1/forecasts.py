"""Routes for demand forecasting."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...core.access import CurrentUser
from ...core.errors import InventoryError
from ...models import schemas
from ...services.forecasting_service import DemandForecastService
from . import deps

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_forecast_service = DemandForecastService(deps.STORE, deps.STORE, deps.STORE, config_root=deps.CONFIG_DIR)


@router.get("/forecast/demand", response_model=List[schemas.DemandForecastItem])
def get_demand_forecast(
    warehouse_id: Optional[int] = Query(None, description="Restrict the forecast to one warehouse"),
    user: CurrentUser = Depends(deps.get_current_user),
) -> List[schemas.DemandForecastItem]:
    """Return the ranked demand forecast for every product in scope."""

    LOGGER.info("Demand forecast requested by user=%s role=%s warehouse=%s", user.id, user.role.value, warehouse_id)
    try:
        items = _forecast_service.forecast_for_user(user, warehouse_id)
    except InventoryError as exc:
        LOGGER.warning("Demand forecast rejected for user=%s: %s", user.id, exc.message)
        raise deps.http_error(exc) from exc
    except Exception as exc:  # pragma: no cover
        LOGGER.exception("Unexpected error while forecasting demand for warehouse=%s", warehouse_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=deps._error_payload("forecast_failed", "An unexpected error occurred while forecasting."),
        ) from exc

    return [schemas.DemandForecastItem.model_validate(item) for item in items]
