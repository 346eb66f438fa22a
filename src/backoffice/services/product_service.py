from __future__ import annotations

from typing import Optional

from backoffice.domain.errors import ValidationError
from backoffice.domain.models import Product
from backoffice.domain.status import ProductStatus, normalize_product_status, UnknownStatus
from backoffice.repositories.payloads import as_list, product_from_payload, product_payload, require_object
from backoffice.repositories.retry import RetryPolicy

BASE_PATH = "/api/products"


class ProductService:
    def __init__(self, api, retry: RetryPolicy | None = None):
        self.api = api
        self.retry = retry or RetryPolicy()

    def list_products(self, include_deleted: bool = False) -> list[Product]:
        products = [product_from_payload(row) for row in as_list(self.api.get(BASE_PATH))]
        if include_deleted:
            return products
        return [p for p in products if not p.is_deleted]

    def get_product(self, product_id: int) -> Product:
        data = self.retry.call(self.api.get, f"{BASE_PATH}/{int(product_id)}")
        return product_from_payload(require_object(data, "product"))

    def _validated(
        self,
        name: str,
        default_price: float,
        description: Optional[str],
        category: Optional[str],
        status: Optional[str],
        photo: Optional[str],
    ) -> dict:
        name = (name or "").strip()
        if len(name) < 3:
            raise ValidationError("Name must have at least 3 characters.", field="name")
        try:
            price = float(default_price)
        except (TypeError, ValueError):
            raise ValidationError("Price must be a number.", field="default_price")
        if price < 0:
            raise ValidationError("Price must be >= 0.", field="default_price")

        status_value = None
        if status:
            normalized = normalize_product_status(status)
            if isinstance(normalized, UnknownStatus):
                raise ValidationError(f"Unknown product status '{status}'.", field="status")
            status_value = normalized.value

        return product_payload(
            name=name,
            default_price=price,
            description=(description or "").strip() or None,
            category=(category or "").strip() or None,
            status=status_value,
            photo=photo,
        )

    def create_product(
        self,
        name: str,
        default_price: float,
        description: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = ProductStatus.ACTIVO.value,
        photo: Optional[str] = None,
    ) -> Product:
        payload = self._validated(name, default_price, description, category, status, photo)
        return product_from_payload(require_object(self.api.post(BASE_PATH, json=payload), "product"))

    def update_product(
        self,
        product_id: int,
        name: str,
        default_price: float,
        description: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
        photo: Optional[str] = None,
    ) -> Product:
        payload = self._validated(name, default_price, description, category, status, photo)
        data = self.api.put(f"{BASE_PATH}/{int(product_id)}", json=payload)
        return product_from_payload(require_object(data, "product"))

    def delete_product(self, product_id: int) -> None:
        self.api.delete(f"{BASE_PATH}/{int(product_id)}")
