"""Lifecycle vocabularies and the mappings between them.

The API speaks a richer status vocabulary than the screens need. Every
aggregate gets its own enum for the client side, purchase orders also get an
enum for the backend side, and the two are connected by explicit total maps.
Tokens nobody knows about yet become ``UnknownStatus(raw)`` so they can still
be shown verbatim instead of breaking a view.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


@dataclass(frozen=True)
class UnknownStatus:
    raw: str

    @property
    def value(self) -> str:
        return self.raw

    @property
    def label(self) -> str:
        return self.raw or "-"


class PurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "ENVIADO"
    APPROVED = "APROVADO"
    REJECTED = "REJEITADO"
    RECEIVED = "RECEBIDO"


class BackendPurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class SaleStatus(str, Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    RESERVED = "RESERVED"
    PAID = "PAID"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


class ApprovalStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ProductStatus(str, Enum):
    ACTIVO = "ACTIVO"
    INACTIVO = "INACTIVO"
    ARQUIVADO = "ARQUIVADO"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    GESTOR = "GESTOR"
    VENDEDOR = "VENDEDOR"
    GERENTE_COMPRAS = "GERENTE_COMPRAS"


PurchaseOrderStatusValue = Union[PurchaseOrderStatus, UnknownStatus]
SaleStatusValue = Union[SaleStatus, UnknownStatus]
ApprovalStatusValue = Union[ApprovalStatus, UnknownStatus]
ProductStatusValue = Union[ProductStatus, UnknownStatus]
UserRoleValue = Union[UserRole, UnknownStatus]


PO_FROM_BACKEND: dict[BackendPurchaseOrderStatus, PurchaseOrderStatus] = {
    BackendPurchaseOrderStatus.DRAFT: PurchaseOrderStatus.DRAFT,
    BackendPurchaseOrderStatus.SENT: PurchaseOrderStatus.SENT,
    BackendPurchaseOrderStatus.ACCEPTED: PurchaseOrderStatus.APPROVED,
    BackendPurchaseOrderStatus.PARTIALLY_RECEIVED: PurchaseOrderStatus.APPROVED,
    BackendPurchaseOrderStatus.CLOSED: PurchaseOrderStatus.RECEIVED,
    BackendPurchaseOrderStatus.CANCELLED: PurchaseOrderStatus.REJECTED,
}

PO_TO_BACKEND: dict[PurchaseOrderStatus, BackendPurchaseOrderStatus] = {
    PurchaseOrderStatus.DRAFT: BackendPurchaseOrderStatus.DRAFT,
    PurchaseOrderStatus.SENT: BackendPurchaseOrderStatus.SENT,
    PurchaseOrderStatus.APPROVED: BackendPurchaseOrderStatus.ACCEPTED,
    PurchaseOrderStatus.REJECTED: BackendPurchaseOrderStatus.CANCELLED,
    PurchaseOrderStatus.RECEIVED: BackendPurchaseOrderStatus.CLOSED,
}

_PRODUCT_SYNONYMS = {
    "ATIVO": ProductStatus.ACTIVO,
    "ACTIVE": ProductStatus.ACTIVO,
    "INATIVO": ProductStatus.INACTIVO,
    "INACTIVE": ProductStatus.INACTIVO,
    "ARCHIVED": ProductStatus.ARQUIVADO,
}

_ROLE_SYNONYMS = {
    "MANAGER": UserRole.GESTOR,
    "SALES": UserRole.VENDEDOR,
    "PURCHASING_MANAGER": UserRole.GERENTE_COMPRAS,
}


def _token(raw: object) -> str:
    return "" if raw is None else str(raw)


def _lookup(enum_cls, key: str, synonyms: dict | None = None):
    for member in enum_cls:
        if key == member.value or key == member.name:
            return member
    if synonyms and key in synonyms:
        return synonyms[key]
    return None


def _normalize(raw: object, enum_cls, synonyms: dict | None = None):
    if isinstance(raw, (enum_cls, UnknownStatus)):
        return raw
    token = _token(raw)
    found = _lookup(enum_cls, token.strip().upper(), synonyms)
    return found if found is not None else UnknownStatus(token)


def normalize_purchase_order_status(raw: object) -> PurchaseOrderStatusValue:
    if isinstance(raw, (PurchaseOrderStatus, UnknownStatus)):
        return raw
    if isinstance(raw, BackendPurchaseOrderStatus):
        return PO_FROM_BACKEND[raw]
    token = _token(raw)
    key = token.strip().upper()
    backend = _lookup(BackendPurchaseOrderStatus, key)
    if backend is not None:
        return PO_FROM_BACKEND[backend]
    ui = _lookup(PurchaseOrderStatus, key)
    return ui if ui is not None else UnknownStatus(token)


def purchase_order_status_to_backend(status: PurchaseOrderStatusValue) -> str:
    if isinstance(status, UnknownStatus):
        return status.raw
    return PO_TO_BACKEND[status].value


def normalize_sale_status(raw: object) -> SaleStatusValue:
    return _normalize(raw, SaleStatus)


def normalize_approval_status(raw: object) -> ApprovalStatusValue:
    return _normalize(raw, ApprovalStatus)


def normalize_product_status(raw: object) -> ProductStatusValue:
    return _normalize(raw, ProductStatus, _PRODUCT_SYNONYMS)


def normalize_user_role(raw: object) -> UserRoleValue:
    token = _token(raw)
    key = token.strip().upper()
    if key.startswith("ROLE_"):
        key = key[len("ROLE_"):]
    found = _lookup(UserRole, key, _ROLE_SYNONYMS)
    return found if found is not None else UnknownStatus(token)


LABELS: dict[Enum, str] = {
    PurchaseOrderStatus.DRAFT: "Rascunho",
    PurchaseOrderStatus.SENT: "Enviado",
    PurchaseOrderStatus.APPROVED: "Aprovado",
    PurchaseOrderStatus.REJECTED: "Rejeitado",
    PurchaseOrderStatus.RECEIVED: "Recebido",
    SaleStatus.DRAFT: "Rascunho",
    SaleStatus.CONFIRMED: "Confirmada",
    SaleStatus.RESERVED: "Reservada",
    SaleStatus.PAID: "Paga",
    SaleStatus.SHIPPED: "Enviada",
    SaleStatus.DELIVERED: "Entregue",
    SaleStatus.CANCELLED: "Cancelada",
    SaleStatus.RETURNED: "Devolvida",
    ApprovalStatus.PENDING: "Pendente",
    ApprovalStatus.APPROVED: "Aprovada",
    ApprovalStatus.REJECTED: "Rejeitada",
    ProductStatus.ACTIVO: "Activo",
    ProductStatus.INACTIVO: "Inactivo",
    ProductStatus.ARQUIVADO: "Arquivado",
    UserRole.ADMIN: "Administrador",
    UserRole.GESTOR: "Gestor",
    UserRole.VENDEDOR: "Vendedor",
    UserRole.GERENTE_COMPRAS: "Gerente de Compras",
}

_YELLOW = "#ca8a04"
_ORANGE = "#ea580c"
_GREEN = "#16a34a"
_RED = "#dc2626"
_BLUE = "#2563eb"
_GREY = "#6b7280"

COLORS: dict[Enum, str] = {
    PurchaseOrderStatus.DRAFT: _YELLOW,
    PurchaseOrderStatus.SENT: _ORANGE,
    PurchaseOrderStatus.APPROVED: _GREEN,
    PurchaseOrderStatus.REJECTED: _RED,
    PurchaseOrderStatus.RECEIVED: _BLUE,
    SaleStatus.DRAFT: _YELLOW,
    SaleStatus.CONFIRMED: _BLUE,
    SaleStatus.RESERVED: _BLUE,
    SaleStatus.PAID: _GREEN,
    SaleStatus.SHIPPED: _GREEN,
    SaleStatus.DELIVERED: _GREEN,
    SaleStatus.CANCELLED: _RED,
    SaleStatus.RETURNED: _RED,
    ApprovalStatus.PENDING: _YELLOW,
    ApprovalStatus.APPROVED: _GREEN,
    ApprovalStatus.REJECTED: _RED,
    ProductStatus.ACTIVO: _GREEN,
    ProductStatus.INACTIVO: _GREY,
    ProductStatus.ARQUIVADO: _GREY,
}

_BACKEND_DETAIL_LABELS = {
    BackendPurchaseOrderStatus.PARTIALLY_RECEIVED: "Parcialmente Recebido",
    BackendPurchaseOrderStatus.CANCELLED: "Cancelado",
}


def status_label(status: object) -> str:
    if isinstance(status, UnknownStatus):
        return status.label
    return LABELS.get(status, str(getattr(status, "value", status)))


def status_color(status: object) -> str:
    if isinstance(status, UnknownStatus):
        return _GREY
    return COLORS.get(status, _GREY)


def display_status(raw: object) -> str:
    """Purchase order label that keeps backend detail the canonical status folds away."""
    backend = _lookup(BackendPurchaseOrderStatus, _token(raw).strip().upper())
    if backend in _BACKEND_DETAIL_LABELS:
        return _BACKEND_DETAIL_LABELS[backend]
    return status_label(normalize_purchase_order_status(raw))
