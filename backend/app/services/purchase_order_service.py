r"""backend\app\services\purchase_order_service.py

Purchase order creation, pricing and vendor notification.

A new order is priced, saved as ``PENDING_VENDOR_APPROVAL`` and handed to the
vendor dispatcher.  Any successful channel moves it to ``SENT_TO_VENDOR``;
any failed channel then moves it to ``NOTIFICATION_FAILED`` and appends a note,
so a partial dispatch ends up as a failure.  Building and saving the order
runs in one unit of work; the vendor is contacted outside it and the status
update is committed in a second, short unit of work.  An order whose dispatch
crashes is discarded.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, ContextManager, List, Optional, Protocol

from ..core.access import CurrentUser, resolve_accessible_warehouse_scope
from ..core.errors import NotFoundError, ValidationError
from ..models import schemas
from ..models.entities import (
    TWO_PLACES,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderStatus,
    Warehouse,
)
from .notification_service import PurchaseOrderNotificationOptions, VendorDispatcher
from .repositories import ProductStore, PurchaseOrderStore, UserStore, WarehouseStore

LOGGER = logging.getLogger(__name__)

REFERENCE_PREFIX = "PO-"
FAILURE_NOTE_PREFIX = "Notification failed: "
NOTE_SEPARATOR = " | "


class PurchaseOrderRepository(ProductStore, WarehouseStore, UserStore, PurchaseOrderStore, Protocol):
    def unit_of_work(self) -> ContextManager[object]: ...


def _money(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _safe_trim(value: Optional[str]) -> Optional[str]:
    return value.strip() if value is not None else None


def _as_aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


def append_failure_note(existing: Optional[str], failure_message: Optional[str]) -> str:
    """Return ``existing`` notes with the dispatch failure appended."""

    message = f"{FAILURE_NOTE_PREFIX}{failure_message}"
    if existing is None or not existing.strip():
        return message
    return f"{existing}{NOTE_SEPARATOR}{message}"


def price_order(order: PurchaseOrder) -> PurchaseOrder:
    """Round item prices and line totals and fill in the order amounts."""

    subtotal = Decimal("0")
    for item in order.items:
        item.unit_price = _money(Decimal(item.unit_price))
        item.line_total = _money(item.unit_price * item.quantity)
        subtotal += item.line_total

    order.subtotal_amount = _money(subtotal)
    order.tax_amount = Decimal("0.00")
    order.shipping_amount = Decimal("0.00")
    order.total_amount = order.subtotal_amount
    return order


class PurchaseOrderService:
    """Create and list purchase orders within the caller's warehouse scope."""

    def __init__(
        self,
        store: PurchaseOrderRepository,
        dispatcher: VendorDispatcher,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    def list(self, user: CurrentUser, warehouse_id: Optional[int] = None) -> List[PurchaseOrder]:
        scope = resolve_accessible_warehouse_scope(user, warehouse_id, resource="Purchase orders")
        orders = self.store.list_purchase_orders(scope.warehouse_id)
        LOGGER.info("Listed %d purchase orders (warehouse=%s)", len(orders), scope.warehouse_id)
        return orders

    def create(self, user: CurrentUser, request: schemas.PurchaseOrderRequest) -> PurchaseOrder:
        if not request.items:
            raise ValidationError("At least one item is required for a purchase order", code="items_required")

        scope = resolve_accessible_warehouse_scope(
            user, request.warehouse_id, resource="Purchase orders", require_warehouse=True
        )
        warehouse = self.store.get_warehouse(scope.warehouse_id)
        if warehouse is None:
            raise NotFoundError("Warehouse not found")
        if self.store.get_user(user.id) is None:
            raise NotFoundError("User not found")

        now = self.clock()
        if request.expected_delivery_date is not None and _as_aware(request.expected_delivery_date) < now:
            raise ValidationError("Expected delivery date cannot be in the past")

        with self.store.unit_of_work():
            order = self._build_order(user, request, warehouse, now)
            saved = self.store.save_purchase_order(order)

        # The store lock is not held while the vendor is contacted.
        try:
            result = self.dispatcher.dispatch(
                saved,
                PurchaseOrderNotificationOptions(
                    email_requested=request.send_email, sms_requested=request.send_sms
                ),
            )
        except Exception:
            LOGGER.error("Dispatch crashed for purchase order %s; discarding it", saved.reference)
            with self.store.unit_of_work():
                self.store.delete_purchase_order(saved.id)
            raise

        with self.store.unit_of_work():
            if result.email_dispatched or result.sms_dispatched:
                saved.status = PurchaseOrderStatus.SENT_TO_VENDOR
            if result.has_failure:
                saved.status = PurchaseOrderStatus.NOTIFICATION_FAILED
                saved.notes = append_failure_note(saved.notes, result.failure_message)
                LOGGER.warning(
                    "Vendor notification failed for purchase order %s: %s",
                    saved.reference,
                    result.failure_message,
                )
            saved.updated_at = self.clock()
            updated = self.store.save_purchase_order(saved)

        LOGGER.info(
            "Purchase order %s created for warehouse=%s with %d items (status=%s, total=%s)",
            updated.reference,
            warehouse.id,
            len(updated.items),
            updated.status.value,
            updated.total_amount,
        )
        return updated

    # ------------------------------------------------------------------
    def generate_reference(self) -> str:
        """Return a ``PO-XXXXXXXX`` reference not used by any stored order."""

        candidate = f"{REFERENCE_PREFIX}{uuid.uuid4().hex[:8].upper()}"
        while self.store.exists_by_reference(candidate):
            LOGGER.debug("Reference %s already taken; regenerating", candidate)
            candidate = f"{REFERENCE_PREFIX}{uuid.uuid4().hex[:8].upper()}"
        return candidate

    def _build_order(
        self,
        user: CurrentUser,
        request: schemas.PurchaseOrderRequest,
        warehouse: Warehouse,
        now: datetime,
    ) -> PurchaseOrder:
        order = PurchaseOrder(
            reference=self.generate_reference(),
            vendor_name=request.vendor_name.strip(),
            warehouse_id=warehouse.id,
            created_by_id=user.id,
            status=PurchaseOrderStatus.PENDING_VENDOR_APPROVAL,
            vendor_email=_safe_trim(request.vendor_email),
            vendor_phone=_safe_trim(request.vendor_phone),
            vendor_contact_preference=_safe_trim(request.vendor_contact_preference),
            notes=_safe_trim(request.notes),
            expected_delivery_date=request.expected_delivery_date,
            submitted_at=now,
            created_at=now,
            updated_at=now,
        )

        for item_request in request.items:
            product = self.store.get_product(item_request.product_id)
            if product is None:
                raise NotFoundError("Product not found")
            if product.warehouse_id != warehouse.id:
                raise ValidationError(
                    "Product does not belong to selected warehouse", code="product_warehouse_mismatch"
                )
            order.add_item(
                PurchaseOrderItem(
                    product_id=product.id,
                    product_name=product.name,
                    product_sku=product.sku,
                    quantity=item_request.quantity,
                    unit_price=item_request.unit_price,
                    line_total=Decimal("0.00"),
                )
            )
        return price_order(order)

    # ------------------------------------------------------------------
    def to_response(self, order: PurchaseOrder) -> schemas.PurchaseOrderResponse:
        warehouse = self.store.get_warehouse(order.warehouse_id)
        creator = self.store.get_user(order.created_by_id)
        return schemas.PurchaseOrderResponse(
            id=order.id,
            reference=order.reference,
            status=order.status,
            vendor_name=order.vendor_name,
            vendor_email=order.vendor_email,
            vendor_phone=order.vendor_phone,
            vendor_contact_preference=order.vendor_contact_preference,
            notes=order.notes,
            warehouse_id=order.warehouse_id,
            warehouse_name=warehouse.name if warehouse is not None else None,
            created_by_id=order.created_by_id,
            created_by_name=creator.full_name if creator is not None else None,
            expected_delivery_date=order.expected_delivery_date,
            submitted_at=order.submitted_at,
            created_at=order.created_at,
            updated_at=order.updated_at,
            subtotal_amount=order.subtotal_amount,
            tax_amount=order.tax_amount,
            shipping_amount=order.shipping_amount,
            total_amount=order.total_amount,
            items=[schemas.PurchaseOrderItemResponse.model_validate(item) for item in order.items],
        )
