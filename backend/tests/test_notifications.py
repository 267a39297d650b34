r"""backend/tests/test_notifications.py"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.core.config import Settings
from backend.app.models.entities import PurchaseOrder, PurchaseOrderItem, Warehouse
from backend.app.services.notification_service import (
    DefaultVendorDispatcher,
    LoggingSmsGateway,
    PurchaseOrderNotificationOptions,
    SmtpEmailGateway,
    build_dispatcher,
    build_email_body,
    build_sms_body,
    merge_failure,
)
from backend.app.services.repositories import InMemoryInventoryStore


class FailingSmsGateway:
    def send_sms(self, phone_number: str, message: str) -> None:
        raise TimeoutError("carrier timeout")


class RecordingEmailGateway:
    def __init__(self) -> None:
        self.sent = []

    def send(self, recipient, subject, body):
        self.sent.append((recipient, subject, body))


def _order(item_count: int = 2, **overrides) -> PurchaseOrder:
    fields = dict(
        reference="PO-1A2B3C4D",
        vendor_name="Acme Supply",
        warehouse_id=1,
        created_by_id=1,
        vendor_email="orders@acme-supply.com",
        vendor_phone="+15550100",
        subtotal_amount=Decimal("30.00"),
        total_amount=Decimal("30.00"),
        expected_delivery_date=datetime(2026, 11, 2, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    order = PurchaseOrder(**fields)
    for index in range(item_count):
        order.add_item(
            PurchaseOrderItem(
                product_id=index + 1,
                product_name=f"Item {index + 1}",
                product_sku=f"SKU-{index + 1}",
                quantity=3,
                unit_price=Decimal("5.00"),
                line_total=Decimal("15.00"),
            )
        )
    return order


def test_email_body_lists_items_and_delivery_date() -> None:
    body = build_email_body(_order(), "Central")

    assert body.startswith("Hello Acme Supply,\n")
    assert "Please review purchase order PO-1A2B3C4D for warehouse Central." in body
    assert " - Item 1 (SKU: SKU-1) -> 3 @ 5.00 = 15.00" in body
    assert "Requested delivery by: 2026-11-02" in body
    assert "Notes: N/A" in body


def test_sms_body_truncates_long_item_lists() -> None:
    body = build_sms_body(_order(item_count=5))

    assert body.startswith("PO PO-1A2B3C4D total 30.00. Items: Item 1 x3, Item 2 x3, Item 3 x3, ...")
    assert body.endswith("Deliver by 2026-11-02")
    assert "Item 4" not in body


def test_merge_failure_joins_with_semicolon() -> None:
    assert merge_failure(None, "a") == "a"
    assert merge_failure("a", None) == "a"
    assert merge_failure("a", "b") == "a; b"


def test_dispatch_reports_each_channel_independently() -> None:
    store = InMemoryInventoryStore()
    store.save_warehouse(Warehouse(1, "Central", "WH-CEN"))
    email = RecordingEmailGateway()
    dispatcher = DefaultVendorDispatcher(email, FailingSmsGateway(), store)

    result = dispatcher.dispatch(_order(), PurchaseOrderNotificationOptions(True, True))

    assert result.email_dispatched is True
    assert result.sms_dispatched is False
    assert result.failure_message == "SMS dispatch failed: carrier timeout"
    assert "for warehouse Central." in email.sent[0][2]


def test_dispatch_without_gateways_never_raises() -> None:
    dispatcher = DefaultVendorDispatcher()
    result = dispatcher.dispatch(_order(vendor_phone=None), PurchaseOrderNotificationOptions(True, True))

    assert not result.email_dispatched and not result.sms_dispatched
    assert result.failure_message == "Email gateway not configured; Vendor phone number is missing"
    assert result.has_failure


def test_nothing_requested_is_not_a_failure() -> None:
    result = DefaultVendorDispatcher().dispatch(_order(), PurchaseOrderNotificationOptions())
    assert result.has_failure is False


def test_build_dispatcher_follows_settings() -> None:
    dispatcher = build_dispatcher(Settings(smtp_host=None, sms_gateway="logging"))
    assert dispatcher.email_gateway is None
    assert isinstance(dispatcher.sms_gateway, LoggingSmsGateway)

    dispatcher = build_dispatcher(Settings(smtp_host="mail.test", sms_gateway="none"))
    assert isinstance(dispatcher.email_gateway, SmtpEmailGateway)
    assert dispatcher.email_gateway.host == "mail.test"
    assert dispatcher.sms_gateway is None
