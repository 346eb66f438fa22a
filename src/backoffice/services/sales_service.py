from __future__ import annotations

import logging
from typing import Iterable, Optional

from backoffice.domain.errors import ValidationError
from backoffice.domain.formatters import safe_multiply, to_number
from backoffice.domain.models import Customer, Sale
from backoffice.repositories.payloads import as_list, require_object, sale_create_payload, sale_from_payload
from backoffice.repositories.retry import RetryPolicy

log = logging.getLogger("backoffice.sales")

BASE_PATH = "/api/sales"


class SalesService:
    def __init__(self, api, session, retry: RetryPolicy | None = None, default_location: str = "default"):
        self.api = api
        self.session = session
        self.retry = retry or RetryPolicy()
        self.default_location = default_location

    def list_sales(self) -> list[Sale]:
        return [sale_from_payload(row) for row in as_list(self.api.get(BASE_PATH))]

    def get_sale(self, sale_id: int) -> Sale:
        data = self.retry.call(self.api.get, f"{BASE_PATH}/{int(sale_id)}")
        return sale_from_payload(require_object(data, "sale"))

    def create_sale(self, customer: Customer, items: Iterable[dict]) -> Sale:
        """
        items: [{product_id, quantity, unit_price, variant_id?}]
        """
        name = (customer.name or "").strip()
        if not name:
            raise ValidationError("Customer name is required.", field="customer_name")

        items = list(items)
        if not items:
            raise ValidationError("Add at least one item.", field="items")

        for idx, it in enumerate(items, start=1):
            if not it.get("product_id"):
                raise ValidationError(f"Item {idx}: product is required.", field="product_id")
            if to_number(it.get("quantity")) <= 0:
                raise ValidationError(f"Item {idx}: quantity must be > 0.", field="quantity")
            if to_number(it.get("unit_price")) <= 0:
                raise ValidationError(f"Item {idx}: unit price must be > 0.", field="unit_price")

        total = sum((safe_multiply(it.get("quantity"), it.get("unit_price")) for it in items), 0.0)
        clean = Customer(
            name=name,
            email=(customer.email or "").strip() or None,
            phone=(customer.phone or "").strip() or None,
        )
        data = self.api.post(BASE_PATH, json=sale_create_payload(clean, items, total))
        sale = sale_from_payload(require_object(data, "sale"))
        log.info("sale_created sale_id=%s items=%s total=%.2f", sale.id, len(items), sale.total)
        return sale

    def confirm(self, sale_id: int, location: Optional[str] = None, actor: Optional[str] = None) -> Sale:
        return self._transition(sale_id, "confirm", location, actor)

    def ship(self, sale_id: int, location: Optional[str] = None, actor: Optional[str] = None) -> Sale:
        return self._transition(sale_id, "ship", location, actor)

    def _transition(self, sale_id: int, action: str, location: Optional[str], actor: Optional[str]) -> Sale:
        params = {
            "location": location or self.default_location,
            "username": actor or self.session.actor_name or "system",
        }
        data = self.api.post(f"{BASE_PATH}/{int(sale_id)}/{action}", params=params)
        sale = sale_from_payload(require_object(data, "sale"))
        log.info("sale_%s sale_id=%s location=%s actor=%s", action, sale_id, params["location"], params["username"])
        return sale
