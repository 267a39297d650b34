r"""backend\app\core\access.py

Role model and the single warehouse-scope authorization policy.

Every service that reads or writes warehouse-owned data calls
:func:`resolve_accessible_warehouse_scope` instead of branching on roles
itself.  Administrators may look at any warehouse (or all of them), managers
are pinned to their assigned warehouse and every other role is rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ValidationError


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    USER = "USER"


@dataclass(frozen=True)
class CurrentUser:
    """Already-authenticated caller as supplied by the upstream gateway."""

    id: int
    role: Role
    warehouse_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_manager(self) -> bool:
        return self.role is Role.MANAGER


@dataclass(frozen=True)
class WarehouseScope:
    """Resolved warehouse visibility; ``warehouse_id=None`` means every warehouse."""

    warehouse_id: Optional[int] = None

    @property
    def is_global(self) -> bool:
        return self.warehouse_id is None


def resolve_accessible_warehouse_scope(
    user: CurrentUser,
    requested_warehouse_id: Optional[int],
    *,
    resource: str = "Inventory data",
    require_warehouse: bool = False,
) -> WarehouseScope:
    """Return the warehouse scope ``user`` may act on for this request.

    ``resource`` only feeds the error messages.  With ``require_warehouse``
    an administrator must name a warehouse explicitly (used for writes).
    """

    if user.is_admin:
        if require_warehouse and requested_warehouse_id is None:
            raise ValidationError("Warehouse selection is required", code="warehouse_required")
        return WarehouseScope(requested_warehouse_id)

    if user.is_manager:
        if user.warehouse_id is None:
            raise ValidationError("No warehouse assigned to current user", code="warehouse_unassigned")
        if requested_warehouse_id is not None and requested_warehouse_id != user.warehouse_id:
            raise ValidationError(
                f"Managers can only access {resource.lower()} for their own warehouse",
                code="warehouse_scope_mismatch",
            )
        return WarehouseScope(user.warehouse_id)

    raise ValidationError(
        f"{resource} is restricted to administrators and managers",
        code="forbidden_role",
    )


def require_role(user: CurrentUser, role: Role, *, resource: str) -> None:
    """Reject ``user`` unless it holds exactly ``role``."""

    if user.role is not role:
        audience = "administrators" if role is Role.ADMIN else f"{role.value.lower()} accounts"
        raise ValidationError(f"{resource} is restricted to {audience}", code="forbidden_role")
