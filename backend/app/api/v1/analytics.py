"""Routes for the analytics dashboard."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...core.access import CurrentUser
from ...core.errors import InventoryError
from ...models import schemas
from ...services.analytics_service import AnalyticsService
from . import deps

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_analytics_service = AnalyticsService(deps.STORE, deps.STORE, deps.STORE)


@router.get("/analytics/dashboard", response_model=schemas.AnalyticsDashboardResponse)
def get_dashboard(
    warehouse_id: Optional[int] = Query(None, description="Warehouse to report on; omit for all"),
    user: CurrentUser = Depends(deps.get_current_user),
) -> schemas.AnalyticsDashboardResponse:
    """Return stock health, monthly trends and top products for the caller's scope."""

    try:
        dashboard = _analytics_service.build_dashboard(user, warehouse_id)
    except InventoryError as exc:
        LOGGER.warning("Analytics dashboard rejected for user=%s: %s", user.id, exc.message)
        raise deps.http_error(exc) from exc
    return schemas.AnalyticsDashboardResponse.model_validate(dashboard)
