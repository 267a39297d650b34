from __future__ import annotations

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.core.access import CurrentUser, Role, require_role, resolve_accessible_warehouse_scope
from backend.app.core.errors import ValidationError


def test_admin_scope_follows_request() -> None:
    admin = CurrentUser(id=1, role=Role.ADMIN)

    assert resolve_accessible_warehouse_scope(admin, None).is_global
    assert resolve_accessible_warehouse_scope(admin, 3).warehouse_id == 3
    with pytest.raises(ValidationError) as excinfo:
        resolve_accessible_warehouse_scope(admin, None, require_warehouse=True)
    assert excinfo.value.code == "warehouse_required"


def test_manager_is_pinned() -> None:
    manager = CurrentUser(id=2, role=Role.MANAGER, warehouse_id=7)

    assert resolve_accessible_warehouse_scope(manager, None).warehouse_id == 7
    assert resolve_accessible_warehouse_scope(manager, 7, require_warehouse=True).warehouse_id == 7
    with pytest.raises(ValidationError, match="Managers can only access purchase orders"):
        resolve_accessible_warehouse_scope(manager, 9, resource="Purchase orders")


def test_manager_without_assignment_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        resolve_accessible_warehouse_scope(CurrentUser(id=2, role=Role.MANAGER), None)
    assert excinfo.value.code == "warehouse_unassigned"


def test_other_roles_are_rejected() -> None:
    with pytest.raises(ValidationError, match="Demand forecasts is restricted"):
        resolve_accessible_warehouse_scope(CurrentUser(id=4, role=Role.USER), None, resource="Demand forecasts")


def test_require_role_rejects_other_roles() -> None:
    require_role(CurrentUser(id=1, role=Role.ADMIN), Role.ADMIN, resource="Warehouse sales")

    with pytest.raises(ValidationError, match="Warehouse sales is restricted to administrators") as excinfo:
        require_role(CurrentUser(id=2, role=Role.MANAGER, warehouse_id=1), Role.ADMIN, resource="Warehouse sales")
    assert excinfo.value.code == "forbidden_role"
    with pytest.raises(ValidationError, match="restricted to user accounts"):
        require_role(CurrentUser(id=1, role=Role.ADMIN), Role.USER, resource="Purchase history")
