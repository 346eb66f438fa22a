from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Optional

from backoffice.domain.formatters import safe_multiply, to_number
from backoffice.domain.status import (
    ApprovalStatus,
    ApprovalStatusValue,
    ProductStatusValue,
    PurchaseOrderStatus,
    PurchaseOrderStatusValue,
    SaleStatusValue,
    UserRole,
    UserRoleValue,
)


@dataclass(frozen=True)
class PurchaseOrderLine:
    id: Optional[int]
    product_id: int
    variant_id: Optional[int]
    quantity: float
    unit_price: float
    received_quantity: float = 0.0
    product_name: Optional[str] = None

    @property
    def total(self) -> float:
        return safe_multiply(self.quantity, self.unit_price)

    @property
    def remaining_quantity(self) -> float:
        return max(to_number(self.quantity) - to_number(self.received_quantity), 0.0)


@dataclass(frozen=True)
class PurchaseOrder:
    id: Optional[int]
    order_number: Optional[str]
    supplier_name: str
    supplier_email: Optional[str]
    status: PurchaseOrderStatusValue
    lines: tuple[PurchaseOrderLine, ...] = ()
    server_total: Optional[float] = None
    rejection_reason: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    raw_status: Optional[str] = None

    @property
    def computed_total(self) -> float:
        return compute_lines_total(self.lines)

    @property
    def total(self) -> float:
        # the server figure wins; line data on a list payload may be partial
        if self.server_total is not None:
            return self.server_total
        return self.computed_total

    def line(self, line_id: int) -> Optional[PurchaseOrderLine]:
        for ln in self.lines:
            if ln.id is not None and int(ln.id) == int(line_id):
                return ln
        return None

    def requires_approval(self, threshold: float) -> bool:
        return self.total > threshold

    @property
    def is_receivable(self) -> bool:
        return self.status == PurchaseOrderStatus.APPROVED


@dataclass(frozen=True)
class ApprovalTask:
    id: Optional[int]
    purchase_order_id: Optional[int]
    status: ApprovalStatusValue
    rejection_comment: Optional[str] = None
    requested_at: Optional[str] = None
    decided_at: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING


@dataclass(frozen=True)
class Customer:
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class SaleItem:
    product_id: int
    variant_id: Optional[int]
    quantity: float
    unit_price: float
    product_name: Optional[str] = None
    variant_sku: Optional[str] = None

    @property
    def total(self) -> float:
        return safe_multiply(self.quantity, self.unit_price)


@dataclass(frozen=True)
class Sale:
    id: Optional[int]
    sale_date: Optional[str]
    customer: Customer
    status: SaleStatusValue
    items: tuple[SaleItem, ...] = ()
    server_total: Optional[float] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def computed_total(self) -> float:
        return compute_lines_total(self.items)

    @property
    def total(self) -> float:
        if self.server_total is not None:
            return self.server_total
        return self.computed_total


@dataclass(frozen=True)
class ProductVariant:
    id: Optional[int]
    product_id: Optional[int]
    name: str
    sku: str
    price: float
    quantity: float
    reserved_quantity: float = 0.0


@dataclass(frozen=True)
class Product:
    id: Optional[int]
    name: str
    description: Optional[str]
    category: Optional[str]
    status: ProductStatusValue
    default_price: float
    photo: Optional[str] = None
    deleted_at: Optional[str] = None
    deleted_by: Optional[str] = None
    variants: tuple[ProductVariant, ...] = ()

    @property
    def is_deleted(self) -> bool:
        return bool(self.deleted_at or self.deleted_by)


@dataclass(frozen=True)
class User:
    id: Optional[int]
    name: str
    email: str
    role: UserRoleValue
    active: bool = True
    roles: tuple[str, ...] = field(default_factory=tuple)
    username: Optional[str] = None

    def has_role(self, role: UserRole | str) -> bool:
        wanted = role.value if isinstance(role, UserRole) else str(role).upper()
        if getattr(self.role, "value", None) == wanted:
            return True
        return wanted in {r.upper() for r in self.roles}


def compute_lines_total(lines: Iterable[PurchaseOrderLine | SaleItem]) -> float:
    return sum((ln.total for ln in lines), 0.0)
