r"""backend\app\api\v1\deps.py

Shared wiring for the versioned routers: the process-wide inventory store,
the caller identity forwarded by the authentication gateway and the mapping
from service errors to HTTP responses."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Header, HTTPException, status

from ...core.access import CurrentUser, Role
from ...core.config import get_settings
from ...core.errors import InventoryError, NotFoundError, ReferenceCollisionError
from ...services.notification_service import build_dispatcher
from ...services.repositories import InMemoryInventoryStore
from ...services.seed_service import load_seed_data

LOGGER = logging.getLogger(__name__)


def _error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


def http_error(exc: InventoryError) -> HTTPException:
    """Translate a service error into the matching HTTP error."""

    if isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ReferenceCollisionError):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=status_code, detail=_error_payload(exc.code, exc.message))


def _unauthenticated(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=_error_payload("unauthenticated", message),
    )


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_warehouse_id: Optional[str] = Header(None),
) -> CurrentUser:
    """Build the caller from the identity headers set by the upstream gateway."""

    if not x_user_id or not x_user_role:
        raise _unauthenticated("X-User-Id and X-User-Role headers are required.")
    try:
        user_id = int(x_user_id)
        role = Role(x_user_role.strip().upper())
        warehouse_id = int(x_warehouse_id) if x_warehouse_id else None
    except ValueError as exc:
        raise _unauthenticated("Identity headers are malformed.") from exc
    return CurrentUser(id=user_id, role=role, warehouse_id=warehouse_id)


def build_store() -> InMemoryInventoryStore:
    settings = get_settings()
    store = InMemoryInventoryStore()
    try:
        load_seed_data(store, settings.seed_data_dir)
    except (OSError, ValueError) as exc:
        LOGGER.error("Seed data under %s could not be loaded: %s", settings.seed_data_dir, exc)
    return store


STORE = build_store()
DISPATCHER = build_dispatcher(get_settings(), STORE)
CONFIG_DIR = get_settings().config_dir
