from __future__ import annotations

import logging
from typing import Iterable, Optional

from backoffice.domain.errors import ValidationError
from backoffice.domain.formatters import safe_multiply, to_number
from backoffice.domain.models import PurchaseOrder
from backoffice.domain.status import status_label
from backoffice.repositories.payloads import (
    as_list,
    purchase_order_create_payload,
    purchase_order_from_payload,
    require_object,
)
from backoffice.repositories.retry import RetryPolicy

log = logging.getLogger("backoffice.purchases")

BASE_PATH = "/api/purchase-orders"


class PurchaseService:
    def __init__(self, api, session, retry: RetryPolicy | None = None):
        self.api = api
        self.session = session
        self.retry = retry or RetryPolicy()

    def list_orders(self) -> list[PurchaseOrder]:
        return [purchase_order_from_payload(row) for row in as_list(self.api.get(BASE_PATH))]

    def get_order(self, order_id: int) -> PurchaseOrder:
        data = self.retry.call(self.api.get, f"{BASE_PATH}/{int(order_id)}")
        return purchase_order_from_payload(require_object(data, "purchase order"))

    @staticmethod
    def preview_total(lines: Iterable[dict]) -> float:
        return sum((safe_multiply(ln.get("quantity"), ln.get("unit_price")) for ln in lines), 0.0)

    def create_order(self, supplier_name: str, supplier_email: Optional[str], lines: Iterable[dict]) -> PurchaseOrder:
        """
        lines: [{product_id, quantity, unit_price, variant_id?, product_name?}]
        """
        supplier = (supplier_name or "").strip()
        if not supplier:
            raise ValidationError("Supplier name is required.", field="supplier_name")

        lines = list(lines)
        if not lines:
            raise ValidationError("Add at least one line to the order.", field="lines")

        for idx, ln in enumerate(lines, start=1):
            if not ln.get("product_id"):
                raise ValidationError(f"Line {idx}: product is required.", field="product_id")
            if to_number(ln.get("quantity")) <= 0:
                raise ValidationError(f"Line {idx}: quantity must be > 0.", field="quantity")
            if to_number(ln.get("unit_price")) <= 0:
                raise ValidationError(f"Line {idx}: unit price must be > 0.", field="unit_price")

        total = self.preview_total(lines)
        email = (supplier_email or "").strip() or None
        data = self.api.post(BASE_PATH, json=purchase_order_create_payload(supplier, email, lines, total))
        order = purchase_order_from_payload(require_object(data, "purchase order"))
        log.info("po_created po_id=%s lines=%s total=%.2f", order.id, len(lines), order.total)
        return order

    def submit_for_approval(self, order_id: int) -> PurchaseOrder:
        data = self.api.post(
            f"{BASE_PATH}/{int(order_id)}/send",
            params={"username": self.session.actor_name},
        )
        order = purchase_order_from_payload(require_object(data, "purchase order"))
        log.info("po_sent po_id=%s status=%s", order_id, order.raw_status)
        return order

    def receive_line(self, order: PurchaseOrder, line_id: int, received_quantity: float) -> PurchaseOrder:
        """Record receipt of (part of) a line. ``order`` is the copy currently on screen."""
        if order.id is None:
            raise ValidationError("Order has no id.")
        if not order.is_receivable:
            raise ValidationError(
                f"Order in status '{status_label(order.status)}' cannot receive goods.", field="status"
            )

        line = order.line(line_id)
        if line is None:
            raise ValidationError("Line not found in this order.", field="line_id")

        qty = to_number(received_quantity)
        if qty <= 0:
            raise ValidationError("Received quantity must be > 0.", field="received_quantity")
        if qty > line.remaining_quantity:
            raise ValidationError(
                f"Received quantity cannot exceed ordered quantity. Remaining: {line.remaining_quantity:g}",
                field="received_quantity",
            )

        qty_param = int(qty) if float(qty).is_integer() else qty
        data = self.api.post(
            f"{BASE_PATH}/{int(order.id)}/lines/{int(line_id)}/receive",
            params={"qty": qty_param, "username": self.session.actor_name},
        )
        updated = purchase_order_from_payload(require_object(data, "purchase order"))
        log.info("po_line_received po_id=%s line_id=%s qty=%s status=%s", order.id, line_id, qty_param, updated.raw_status)
        return updated
