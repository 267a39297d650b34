r"""backend\app\services\notification_service.py

Vendor dispatch for newly created purchase orders.

``DefaultVendorDispatcher.dispatch`` tries every requested channel on its
own and reports what happened; it never raises, so a broken gateway only
marks the order as ``NOTIFICATION_FAILED`` instead of failing the request.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional, Protocol

from ..core.config import Settings
from ..models.entities import PurchaseOrder
from .repositories import WarehouseStore

LOGGER = logging.getLogger(__name__)

SMS_ITEM_LIMIT = 3


@dataclass(frozen=True)
class PurchaseOrderNotificationOptions:
    email_requested: bool = False
    sms_requested: bool = False


@dataclass(frozen=True)
class VendorNotificationResult:
    email_dispatched: bool = False
    sms_dispatched: bool = False
    failure_message: Optional[str] = None

    @property
    def has_failure(self) -> bool:
        return bool(self.failure_message and self.failure_message.strip())


class VendorDispatcher(Protocol):
    def dispatch(
        self, order: PurchaseOrder, options: PurchaseOrderNotificationOptions
    ) -> VendorNotificationResult: ...


class EmailGateway(Protocol):
    def send(self, recipient: str, subject: str, body: str) -> None: ...


class SmsGateway(Protocol):
    def send_sms(self, phone_number: str, message: str) -> None: ...


# ---------------------------------------------------------------------------
# Gateways


class SmtpEmailGateway:
    """Send plain-text mail through the SMTP relay named in the settings."""

    def __init__(self, settings: Settings, timeout: float = 10.0) -> None:
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.username = settings.smtp_username
        self.password = settings.smtp_password
        self.sender = settings.smtp_sender
        self.use_tls = settings.smtp_use_tls
        self.timeout = timeout

    def send(self, recipient: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as client:
            if self.use_tls:
                client.starttls()
            if self.username and self.password:
                client.login(self.username, self.password)
            client.send_message(message)


class LoggingSmsGateway:
    """SMS gateway that only records the message in the application log."""

    def send_sms(self, phone_number: str, message: str) -> None:
        LOGGER.info("SMS to %s: %s", phone_number, message)


def build_dispatcher(settings: Settings, warehouse_store: WarehouseStore | None = None) -> "DefaultVendorDispatcher":
    """Wire the gateways enabled in ``settings``; unset ones stay ``None``."""

    email_gateway = SmtpEmailGateway(settings) if settings.smtp_host else None
    sms_gateway = LoggingSmsGateway() if (settings.sms_gateway or "").lower() == "logging" else None
    if email_gateway is None:
        LOGGER.info("SMTP host not configured; vendor e-mails will be reported as failed")
    return DefaultVendorDispatcher(email_gateway, sms_gateway, warehouse_store)


# ---------------------------------------------------------------------------
# Message bodies


def _format_date(order: PurchaseOrder) -> Optional[str]:
    if order.expected_delivery_date is None:
        return None
    return order.expected_delivery_date.date().isoformat()


def build_email_body(order: PurchaseOrder, warehouse_name: Optional[str] = None) -> str:
    lines = [f"Hello {order.vendor_name},", ""]
    lines.append(
        f"Please review purchase order {order.reference} for warehouse "
        f"{warehouse_name or order.warehouse_id}."
    )
    lines.append("")
    lines.append("Items:")
    for item in order.items:
        lines.append(
            f" - {item.product_name} (SKU: {item.product_sku}) -> "
            f"{item.quantity} @ {item.unit_price} = {item.line_total}"
        )
    lines.append("")
    lines.append(f"Subtotal: {order.subtotal_amount}")
    lines.append(f"Total: {order.total_amount}")
    delivery = _format_date(order)
    if delivery is not None:
        lines.append(f"Requested delivery by: {delivery}")
    lines.append("")
    notes = order.notes if order.notes and order.notes.strip() else "N/A"
    lines.append(f"Notes: {notes}")
    lines.append("")
    lines.append("Thank you,")
    lines.append("SmartShelfX Inventory Team")
    return "\n".join(lines) + "\n"


def build_sms_body(order: PurchaseOrder) -> str:
    total = order.total_amount if order.total_amount is not None else "0"
    items = ", ".join(
        f"{item.product_name} x{item.quantity}" for item in order.items[:SMS_ITEM_LIMIT]
    )
    if len(order.items) > SMS_ITEM_LIMIT:
        items += ", ..."
    body = f"PO {order.reference} total {total}. Items: {items}"
    delivery = _format_date(order)
    if delivery is not None:
        body += f". Deliver by {delivery}"
    return body


def merge_failure(existing: Optional[str], addition: Optional[str]) -> Optional[str]:
    if not addition or not addition.strip():
        return existing
    if not existing or not existing.strip():
        return addition
    return f"{existing}; {addition}"


class DefaultVendorDispatcher:
    """E-mail and SMS dispatch with per-channel failure reporting."""

    def __init__(
        self,
        email_gateway: EmailGateway | None = None,
        sms_gateway: SmsGateway | None = None,
        warehouse_store: WarehouseStore | None = None,
    ) -> None:
        self.email_gateway = email_gateway
        self.sms_gateway = sms_gateway
        self.warehouse_store = warehouse_store

    def dispatch(
        self, order: PurchaseOrder, options: PurchaseOrderNotificationOptions
    ) -> VendorNotificationResult:
        email_sent = False
        sms_sent = False
        failure: Optional[str] = None

        if options.email_requested:
            email_sent, error = self._send_email(order)
            failure = merge_failure(failure, error)
        if options.sms_requested:
            sms_sent, error = self._send_sms(order)
            failure = merge_failure(failure, error)

        return VendorNotificationResult(email_sent, sms_sent, failure)

    # ------------------------------------------------------------------
    def _send_email(self, order: PurchaseOrder) -> tuple[bool, Optional[str]]:
        if not order.vendor_email or not order.vendor_email.strip():
            return False, "Vendor email address is missing"
        if self.email_gateway is None:
            LOGGER.warning("Email dispatch requested for %s but no gateway is configured", order.reference)
            return False, "Email gateway not configured"

        try:
            self.email_gateway.send(
                order.vendor_email,
                f"Purchase Order {order.reference}",
                build_email_body(order, self._warehouse_name(order)),
            )
        except Exception as exc:  # noqa: BLE001 - any gateway error is reported on the order
            LOGGER.exception("Failed to email purchase order %s", order.reference)
            return False, f"Email dispatch failed: {exc}"

        LOGGER.info("Purchase order %s emailed to %s", order.reference, order.vendor_email)
        return True, None

    def _send_sms(self, order: PurchaseOrder) -> tuple[bool, Optional[str]]:
        if not order.vendor_phone or not order.vendor_phone.strip():
            return False, "Vendor phone number is missing"
        if self.sms_gateway is None:
            LOGGER.warning("SMS dispatch requested for %s but no gateway is configured", order.reference)
            return False, "SMS gateway not configured"

        try:
            self.sms_gateway.send_sms(order.vendor_phone, build_sms_body(order))
        except Exception as exc:  # noqa: BLE001 - any gateway error is reported on the order
            LOGGER.exception("Failed to send SMS for purchase order %s", order.reference)
            return False, f"SMS dispatch failed: {exc}"

        LOGGER.info("Purchase order %s SMS sent to %s", order.reference, order.vendor_phone)
        return True, None

    def _warehouse_name(self, order: PurchaseOrder) -> Optional[str]:
        if self.warehouse_store is None:
            return None
        warehouse = self.warehouse_store.get_warehouse(order.warehouse_id)
        return warehouse.name if warehouse is not None else None
